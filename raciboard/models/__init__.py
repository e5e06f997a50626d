"""Model modules."""
from raciboard.models.task import TaskModel, SubTaskModel, TaskRaciModel, SubTaskRaciModel
from raciboard.models.profile import ProfileModel, TaskProfileModel

__all__ = [
    "TaskModel",
    "SubTaskModel",
    "TaskRaciModel",
    "SubTaskRaciModel",
    "ProfileModel",
    "TaskProfileModel",
]
