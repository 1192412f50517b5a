"""
Organization and department API routes.

All routes act on the current user's own organization; there is no way to
address another tenant.
"""
from typing import Annotated
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database.engine import get_db
from app.features.organizations.dependencies import get_current_organization, get_department_in_organization
from app.features.organizations.models import Department, Organization
from app.features.organizations.schemas import (
    DepartmentCreate,
    DepartmentResponse,
    DepartmentUpdate,
    OrganizationResponse,
    OrganizationUpdate,
)
from app.features.permissions.dependencies import require_permission
from app.features.permissions.grants import Action, Resource
from app.features.permissions.policy import AccessPolicy
from app.features.users.dependencies import get_current_user
from app.features.users.models import User
from app.utils import get_logger


log = get_logger(__name__)
router = APIRouter()


def department_conflict() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_409_CONFLICT,
        detail="Department name already exists"
    )


@router.get("", response_model=OrganizationResponse)
async def get_organization(
    organization: Annotated[Organization, Depends(get_current_organization)]
):
    """Get the current user's organization."""
    return organization


@router.patch("", response_model=OrganizationResponse)
async def update_organization(
    update_data: OrganizationUpdate,
    db: Annotated[AsyncSession, Depends(get_db)],
    organization: Annotated[Organization, Depends(get_current_organization)],
    policy: Annotated[AccessPolicy, Depends(require_permission(Resource.ORGANIZATION, Action.EDIT))]
):
    """Update the current organization's name or settings."""
    for key, value in update_data.model_dump(exclude_unset=True).items():
        setattr(organization, key, value)

    await db.commit()
    await db.refresh(organization)
    log.info(f"User {policy.user.id} updated organization {organization.id}")
    return organization


@router.get("/departments", response_model=list[DepartmentResponse])
async def list_departments(
    db: Annotated[AsyncSession, Depends(get_db)],
    user: Annotated[User, Depends(get_current_user)]
):
    """List the departments of the current organization."""
    result = await db.execute(
        select(Department)
        .where(Department.organization_id == user.organization_id)
        .order_by(Department.name)
    )
    return result.scalars().all()


@router.post("/departments", response_model=DepartmentResponse, status_code=status.HTTP_201_CREATED)
async def create_department(
    department_data: DepartmentCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
    policy: Annotated[AccessPolicy, Depends(require_permission(Resource.DEPARTMENTS, Action.CREATE))]
):
    """Create a department in the current organization."""
    department = Department(**department_data.model_dump(), organization_id=policy.user.organization_id)
    db.add(department)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise department_conflict()
    await db.refresh(department)
    return department


@router.patch("/departments/{department_id}", response_model=DepartmentResponse)
async def update_department(
    department_id: str,
    update_data: DepartmentUpdate,
    db: Annotated[AsyncSession, Depends(get_db)],
    policy: Annotated[AccessPolicy, Depends(require_permission(Resource.DEPARTMENTS, Action.EDIT))]
):
    """Rename or describe a department."""
    department = await get_department_in_organization(db, department_id, policy.user.organization_id)

    for key, value in update_data.model_dump(exclude_unset=True).items():
        setattr(department, key, value)

    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise department_conflict()
    await db.refresh(department)
    return department


@router.delete("/departments/{department_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_department(
    department_id: str,
    db: Annotated[AsyncSession, Depends(get_db)],
    policy: Annotated[AccessPolicy, Depends(require_permission(Resource.DEPARTMENTS, Action.DELETE))]
):
    """Delete a department; its members keep their records but lose the department."""
    department = await get_department_in_organization(db, department_id, policy.user.organization_id)

    await db.execute(
        update(User).where(User.department_id == department.id).values(department_id=None)
    )
    await db.delete(department)
    await db.commit()
    log.info(f"User {policy.user.id} deleted department {department_id}")
