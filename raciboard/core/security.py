"""Project roles used by the authorization policy."""
from raciboard.config import settings

# Roles that bypass ownership and RACI checks
ELEVATED_ROLES = frozenset(settings.ELEVATED_ROLES)

# Roles allowed to open new tasks
TASK_CREATOR_ROLES = frozenset(settings.TASK_CREATOR_ROLES)
