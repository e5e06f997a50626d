"""Real-time notification port. Calls are fire-and-forget."""
from typing import Any, Dict, Protocol


class TaskEventPublisher(Protocol):
    def emit_task_created(self, payload: Dict[str, Any]) -> None: ...

    def emit_task_updated(self, payload: Dict[str, Any]) -> None: ...

    def emit_task_deleted(self, task_id: str) -> None: ...

    def emit_subtask_updated(self, payload: Dict[str, Any]) -> None: ...

    def emit_subtask_deleted(self, subtask_id: str, task_id: str) -> None: ...

    def emit_task_locked(self, task_id: str, user: Dict[str, Any]) -> None: ...

    def emit_task_unlocked(self, task_id: str) -> None: ...
