"""
User feature routes.
"""
from typing import Annotated, Optional
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database.engine import get_db
from app.features.organizations.models import Department
from app.features.permissions.dependencies import (
    ensure_record_access,
    forbidden,
    get_access_policy,
    require_permission,
    scoped_select,
)
from app.features.permissions.exceptions import HierarchyResolutionError
from app.features.permissions.grants import Action, Resource
from app.features.permissions.hierarchy import resolve_subordinate_closure
from app.features.permissions.models import Role
from app.features.permissions.policy import AccessPolicy
from app.features.permissions.query import direct_reports_lookup
from app.features.records.models import Customer, Lead, Task
from app.features.users.dependencies import get_current_user
from app.features.users.models import User
from app.features.users.schemas import UserInvite, UserResponse, UserUpdate
from app.utils import get_logger


log = get_logger(__name__)
router = APIRouter(tags=["users"])


def bad_request(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


async def validate_references(
    db: AsyncSession,
    organization_id: str,
    role_id: Optional[str] = None,
    department_id: Optional[str] = None,
    manager_id: Optional[str] = None,
) -> None:
    """
    Ensure role, department and manager references stay inside the organization.

    Raises:
        HTTPException: 400 naming the first invalid reference
    """
    if role_id is not None and await db.scalar(
        select(Role.id).where(Role.id == role_id, Role.organization_id == organization_id)
    ) is None:
        raise bad_request("Role not found in your organization")

    if department_id is not None and await db.scalar(
        select(Department.id).where(Department.id == department_id, Department.organization_id == organization_id)
    ) is None:
        raise bad_request("Department not found in your organization")

    if manager_id is not None and await db.scalar(
        select(User.id).where(User.id == manager_id, User.organization_id == organization_id)
    ) is None:
        raise bad_request("Manager not found in your organization")


async def validate_manager_change(db: AsyncSession, user: User, manager_id: Optional[str]) -> None:
    """
    Reject a manager assignment that would put ``user`` inside its own team.

    Raises:
        HTTPException: 400 if the new manager reports to ``user``, 403 if the
            hierarchy below ``user`` cannot be resolved
    """
    if manager_id is None:
        return
    if manager_id == user.id:
        raise bad_request("A user cannot manage themselves")

    try:
        team_ids = await resolve_subordinate_closure(
            user.id, direct_reports_lookup(db, user.organization_id)
        )
    except HierarchyResolutionError as e:
        log.warning(f"Refusing manager change for user {user.id}: {e}")
        raise forbidden()

    if manager_id in team_ids:
        raise bad_request("Manager reports to this user")


@router.get("/me", response_model=UserResponse)
async def get_current_user_profile(
    user: Annotated[User, Depends(get_current_user)]
):
    """Get current authenticated user's profile."""
    return user


@router.get("", response_model=list[UserResponse])
async def list_users(
    db: Annotated[AsyncSession, Depends(get_db)],
    policy: Annotated[AccessPolicy, Depends(get_access_policy)],
    search: str | None = None,
    skip: int = 0,
    limit: int = 50
):
    """List users visible to the current user: everyone, the team, or only themselves."""
    stmt = await scoped_select(policy, Resource.USERS, select(User), User)

    if search:
        pattern = f"%{search}%"
        stmt = stmt.where(or_(User.name.ilike(pattern), User.email.ilike(pattern)))

    result = await db.execute(stmt.order_by(User.name).offset(skip).limit(limit))
    return result.scalars().all()


@router.get("/{user_id}", response_model=UserResponse)
async def get_user_by_id(
    user_id: str,
    db: Annotated[AsyncSession, Depends(get_db)],
    policy: Annotated[AccessPolicy, Depends(get_access_policy)]
):
    """Get a user profile by ID."""
    user = await db.scalar(select(User).where(User.id == user_id))
    return await ensure_record_access(policy, Resource.USERS, user, "User not found")


@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def invite_user(
    invite: UserInvite,
    db: Annotated[AsyncSession, Depends(get_db)],
    policy: Annotated[AccessPolicy, Depends(require_permission(Resource.USERS, Action.INVITE))]
):
    """Invite a user into the current organization."""
    organization_id = policy.user.organization_id
    await validate_references(
        db, organization_id,
        role_id=invite.role_id,
        department_id=invite.department_id,
        manager_id=invite.manager_id,
    )

    user = User(**invite.model_dump(), organization_id=organization_id)
    db.add(user)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Email already exists"
        )
    await db.refresh(user)

    log.info(f"User {policy.user.id} invited user {user.id}")
    return user


@router.patch("/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: str,
    update_data: UserUpdate,
    db: Annotated[AsyncSession, Depends(get_db)],
    policy: Annotated[AccessPolicy, Depends(get_access_policy)]
):
    """
    Update a user.

    Holders of ``users.edit`` may change any visible user. Everyone else may
    only change their own name.
    """
    changes = update_data.model_dump(exclude_unset=True)
    can_edit = policy.permitted(Resource.USERS, Action.EDIT)
    is_self = user_id == policy.user.id
    if not can_edit and not (is_self and set(changes) <= {"name"}):
        raise forbidden()

    user = await db.scalar(select(User).where(User.id == user_id))
    user = await ensure_record_access(policy, Resource.USERS, user, "User not found")

    await validate_references(
        db, user.organization_id,
        role_id=changes.get("role_id"),
        department_id=changes.get("department_id"),
        manager_id=changes.get("manager_id"),
    )
    if "manager_id" in changes:
        await validate_manager_change(db, user, changes["manager_id"])

    for key, value in changes.items():
        setattr(user, key, value)

    await db.commit()
    await db.refresh(user)
    return user


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(
    user_id: str,
    db: Annotated[AsyncSession, Depends(get_db)],
    policy: Annotated[AccessPolicy, Depends(require_permission(Resource.USERS, Action.DELETE))]
):
    """Delete a user of the current organization."""
    if user_id == policy.user.id:
        raise bad_request("Cannot delete yourself")

    user = await db.scalar(select(User).where(User.id == user_id))
    user = await ensure_record_access(policy, Resource.USERS, user, "User not found")

    # Mirror ON DELETE SET NULL for backends that do not enforce foreign keys
    for model in (Customer, Lead, Task):
        await db.execute(update(model).where(model.assigned_to == user.id).values(assigned_to=None))
    await db.execute(update(User).where(User.manager_id == user.id).values(manager_id=None))

    await db.delete(user)
    await db.commit()
    log.info(f"User {policy.user.id} deleted user {user_id}")
