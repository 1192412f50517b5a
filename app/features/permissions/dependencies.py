"""
Permission checking dependencies for routes.

Implements:
- A request-scoped ``AccessPolicy`` for the authenticated user
- FastAPI dependencies for coarse action checks
- Helpers for scoped list queries and single-record access
"""
from typing import Annotated, Any, Union

from fastapi import Depends, HTTPException, status
from sqlalchemy import Select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database.engine import get_db
from app.features.permissions.exceptions import HierarchyResolutionError
from app.features.permissions.grants import Action, Resource
from app.features.permissions.policy import AccessPolicy
from app.features.permissions.query import department_lookup, direct_reports_lookup, filter_clause
from app.features.users.dependencies import get_current_user
from app.features.users.models import User
from app.utils import get_logger


log = get_logger(__name__)


def forbidden() -> HTTPException:
    # Never say why; the reason may reveal other users' or tenants' data
    return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Permission denied")


async def get_access_policy(
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)]
) -> AccessPolicy:
    """
    Authorization policy for the current request.

    The policy caches the user's team, so each request resolves the
    hierarchy at most once.
    """
    return AccessPolicy(
        current_user,
        direct_reports_lookup(db, current_user.organization_id),
        department_lookup(db, current_user.organization_id),
    )


def require_permission(resource: Union[Resource, str], action: Union[Action, str]):
    """
    FastAPI dependency to require a specific permission.

    Usage:
        @router.post("")
        async def create_lead(
            policy: AccessPolicy = Depends(require_permission(Resource.LEADS, Action.CREATE))
        ):
            # The current user may create leads
            pass

    Returns:
        Dependency function that returns the request's AccessPolicy if permitted

    Raises:
        HTTPException: 403 if the user's role does not grant the action
    """
    resource = Resource(resource)
    action = Action(action)

    async def permission_dependency(
        policy: Annotated[AccessPolicy, Depends(get_access_policy)]
    ) -> AccessPolicy:
        if not policy.permitted(resource, action):
            log.info(f"User {policy.user.id} denied {action.value} on {resource.value}")
            raise forbidden()
        return policy

    return permission_dependency


async def scoped_select(policy: AccessPolicy, resource: Resource, stmt: Select, model: Any) -> Select:
    """
    Restrict a select to the records the user may see.

    The scope filter is applied here, before any caller-supplied search
    condition is added to the statement.

    Raises:
        HTTPException: 403 if the user's team could not be resolved
    """
    try:
        spec = await policy.compile_filter(resource)
    except HierarchyResolutionError as e:
        log.warning(f"Denying {resource.value} list for user {policy.user.id}: {e}")
        raise forbidden()
    return stmt.where(filter_clause(spec, model))


async def ensure_record_access(policy: AccessPolicy, resource: Resource, record: Any, not_found: str) -> Any:
    """
    Return ``record`` if the user may access it.

    Missing, foreign and out-of-scope records all raise the same 404 so
    callers cannot probe for records they are not allowed to see.
    """
    if record is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=not_found)

    try:
        allowed = await policy.can_access(resource, record)
    except HierarchyResolutionError as e:
        log.warning(f"Denying {resource.value} {record.id} for user {policy.user.id}: {e}")
        raise forbidden()

    if not allowed:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=not_found)
    return record
