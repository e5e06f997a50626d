"""Event fan-out adapters for committed task mutations."""
import asyncio
import hashlib
import hmac
import json
import logging
from typing import Any, Dict, List, Optional, Set

import httpx
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from raciboard.config import Settings, settings
from raciboard.utils.dates import utc_now

logger = logging.getLogger(__name__)


class TaskEvent:
    """Event names published to subscribers."""

    TASK_CREATED = "task_created"
    TASK_UPDATED = "task_updated"
    TASK_DELETED = "task_deleted"
    SUBTASK_UPDATED = "subtask_updated"
    SUBTASK_DELETED = "subtask_deleted"
    TASK_LOCKED = "task_locked"
    TASK_UNLOCKED = "task_unlocked"


class EventBroker:
    """Maps the publisher methods onto a single ``publish`` call."""

    def publish(self, event: str, data: Dict[str, Any]) -> None:
        raise NotImplementedError

    def emit_task_created(self, payload: Dict[str, Any]) -> None:
        self.publish(TaskEvent.TASK_CREATED, payload)

    def emit_task_updated(self, payload: Dict[str, Any]) -> None:
        self.publish(TaskEvent.TASK_UPDATED, payload)

    def emit_task_deleted(self, task_id: str) -> None:
        self.publish(TaskEvent.TASK_DELETED, {"id": task_id})

    def emit_subtask_updated(self, payload: Dict[str, Any]) -> None:
        self.publish(TaskEvent.SUBTASK_UPDATED, payload)

    def emit_subtask_deleted(self, subtask_id: str, task_id: str) -> None:
        self.publish(TaskEvent.SUBTASK_DELETED, {"id": subtask_id, "task_id": task_id})

    def emit_task_locked(self, task_id: str, user: Dict[str, Any]) -> None:
        self.publish(TaskEvent.TASK_LOCKED, {"task_id": task_id, "user": user})

    def emit_task_unlocked(self, task_id: str) -> None:
        self.publish(TaskEvent.TASK_UNLOCKED, {"task_id": task_id})


class LoggingEventBroker(EventBroker):
    """Writes events to the log. Used when no webhook is configured."""

    def publish(self, event: str, data: Dict[str, Any]) -> None:
        logger.info("Event %s: %s", event, json.dumps(data, default=str))


class WebhookEventBroker(EventBroker):
    """Posts signed JSON envelopes to every configured URL.

    Delivery runs in background tasks on the current loop; ``publish``
    never waits for it and never raises.
    """

    def __init__(
        self,
        urls: List[str],
        *,
        secret: Optional[str] = None,
        timeout: float = 10.0,
        max_attempts: int = 3,
        client: Optional[httpx.AsyncClient] = None,
        retry_wait=None,
    ):
        self.urls = list(urls)
        self.secret = secret
        self.max_attempts = max_attempts
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._retry_wait = retry_wait if retry_wait is not None else wait_exponential(multiplier=1, min=2, max=10)
        self._pending: Set[asyncio.Task] = set()

    @staticmethod
    def _generate_signature(body: str, secret: str) -> str:
        return hmac.new(secret.encode("utf-8"), body.encode("utf-8"), hashlib.sha256).hexdigest()

    def _build_request(self, event: str, data: Dict[str, Any]):
        envelope = {
            "event": event,
            "timestamp": utc_now().isoformat(),
            "data": data,
        }
        body = json.dumps(envelope, default=str)
        headers = {
            "Content-Type": "application/json",
            "User-Agent": f"{settings.APP_NAME}-Events/{settings.APP_VERSION}",
            "X-Event-Name": event,
        }
        if self.secret:
            headers["X-Webhook-Signature"] = f"sha256={self._generate_signature(body, self.secret)}"
        return body, headers

    async def _deliver(self, url: str, body: str, headers: Dict[str, str]) -> bool:
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self.max_attempts),
                wait=self._retry_wait,
                retry=retry_if_exception_type(httpx.HTTPError),
                reraise=True,
            ):
                with attempt:
                    response = await self._client.post(url, content=body, headers=headers)
                    response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.warning("Event delivery to %s failed after %s attempts: %s", url, self.max_attempts, exc)
            return False
        return True

    def publish(self, event: str, data: Dict[str, Any]) -> None:
        if not self.urls:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("No running event loop, dropping event %s", event)
            return

        body, headers = self._build_request(event, data)
        for url in self.urls:
            task = loop.create_task(self._deliver(url, body, headers))
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)

    async def drain(self) -> None:
        """Wait for in-flight deliveries."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def aclose(self) -> None:
        await self.drain()
        await self._client.aclose()


def build_event_broker(config: Settings = settings) -> EventBroker:
    """Pick the webhook broker when URLs are configured, the logging one otherwise."""
    if config.EVENT_WEBHOOK_URLS:
        return WebhookEventBroker(
            config.EVENT_WEBHOOK_URLS,
            secret=config.EVENT_WEBHOOK_SECRET,
            timeout=config.EVENT_WEBHOOK_TIMEOUT,
            max_attempts=config.EVENT_WEBHOOK_MAX_ATTEMPTS,
        )
    return LoggingEventBroker()
