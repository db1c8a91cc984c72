"""
Owner-only operations.

Staff can scan receipts and ring up sales. Only the owner may delete
ledger records, change the catalog or change shop settings.
"""

from shopkeeper.errors import PermissionDeniedError
from shopkeeper.models.catalog import ActorRole


DELETE_RECORD = "delete records"
MANAGE_CATALOG = "change the product catalog"
MANAGE_SETTINGS = "change shop settings"
SWITCH_TO_OWNER = "switch to the owner role"

OWNER_ONLY_ACTIONS = (DELETE_RECORD, MANAGE_CATALOG, MANAGE_SETTINGS)


def is_allowed(role: ActorRole, action: str) -> bool:
    """Check whether a role may perform an action."""
    if action in OWNER_ONLY_ACTIONS:
        return role == ActorRole.OWNER
    return True


def require_owner(role: ActorRole, action: str) -> None:
    """Raise PermissionDeniedError unless role may perform action."""
    if not is_allowed(role, action):
        raise PermissionDeniedError(action, ActorRole(role).value)
