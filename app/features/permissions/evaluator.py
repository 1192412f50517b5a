"""
Coarse permission checks against a user's role grant table.
"""
from typing import Any, Union

from app.features.permissions.grants import (
    Action,
    GrantTable,
    Resource,
    coerce_action,
    coerce_resource,
)
from app.utils import get_logger


log = get_logger(__name__)


def get_grant_table(user: Any) -> GrantTable:
    """
    Grant table of the user's role.

    Empty when the user has no role or the role belongs to a different
    organization than the user.
    """
    role = getattr(user, "role", None)
    if role is None:
        return GrantTable()

    role_org = getattr(role, "organization_id", None)
    if role_org is not None and role_org != getattr(user, "organization_id", None):
        log.warning(f"User {getattr(user, 'id', None)} references a role outside its organization")
        return GrantTable()

    return GrantTable.from_json(getattr(role, "permissions", None))


def has_permission(
    user: Any,
    resource: Union[Resource, str],
    action: Union[Action, str],
) -> bool:
    """
    Check if the user's role grants ``action`` on ``resource``.

    Pure function of the user projection (``id``, ``organization_id``,
    ``role.permissions``). Missing role, resource entry or flag all mean
    "not permitted".

    Raises:
        ValueError: if ``resource`` or ``action`` is not a known name
    """
    resource = coerce_resource(resource)
    action = coerce_action(action)

    if user is None:
        return False

    allowed = get_grant_table(user).allows(resource, action)
    log.debug(
        f"User {getattr(user, 'id', None)} {'granted' if allowed else 'denied'} "
        f"{action.value} on {resource.value}"
    )
    return allowed
