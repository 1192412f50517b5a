"""
Organization-related dependency injection functions.
"""
from typing import Annotated
from fastapi import Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database.engine import get_db
from app.features.organizations.models import Department, Organization
from app.features.users.dependencies import get_current_user
from app.features.users.models import User


async def get_current_organization(
    user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)]
) -> Organization:
    """
    Get the organization the current user belongs to.

    Raises:
        HTTPException: 404 if the organization no longer exists
    """
    result = await db.execute(
        select(Organization).where(Organization.id == user.organization_id)
    )
    organization = result.scalar_one_or_none()

    if organization is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Organization not found"
        )

    return organization


async def get_department_in_organization(
    db: AsyncSession,
    department_id: str,
    organization_id: str
) -> Department:
    """
    Get a department of ``organization_id`` or raise 404.

    Departments of other organizations are reported as missing.
    """
    department = await db.scalar(
        select(Department).where(
            Department.id == department_id,
            Department.organization_id == organization_id
        )
    )

    if department is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Department not found"
        )

    return department
