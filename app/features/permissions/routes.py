"""
Permission introspection routes.

Roles and grants are managed elsewhere; these routes only report what the
authorization engine decides for the caller.
"""
from typing import Annotated
from fastapi import APIRouter, Depends

from app.features.permissions.dependencies import forbidden, get_access_policy
from app.features.permissions.evaluator import get_grant_table
from app.features.permissions.exceptions import HierarchyResolutionError
from app.features.permissions.policy import AccessPolicy
from app.features.permissions.schemas import EffectivePermissionsResponse, RolePublic
from app.utils import get_logger


log = get_logger(__name__)
router = APIRouter()


@router.get("/me", response_model=EffectivePermissionsResponse)
async def get_my_permissions(
    policy: Annotated[AccessPolicy, Depends(get_access_policy)]
):
    """Get the current user's effective permissions and team."""
    user = policy.user
    try:
        team_ids = await policy.team_ids()
    except HierarchyResolutionError as e:
        log.warning(f"Cannot report team for user {user.id}: {e}")
        raise forbidden()

    return EffectivePermissionsResponse(
        user_id=user.id,
        organization_id=user.organization_id,
        role=RolePublic.model_validate(user.role) if user.role else None,
        permissions=get_grant_table(user).to_json(),
        team_ids=sorted(team_ids),
    )
