"""
Pydantic schemas for user-related requests and responses.
"""
from datetime import datetime
from pydantic import BaseModel, EmailStr, Field

from app.features.organizations.schemas import DepartmentPublic
from app.features.permissions.schemas import RolePublic


class UserBase(BaseModel):
    """Base user schema with common fields."""
    email: EmailStr
    name: str | None = Field(None, min_length=1, max_length=255)


class UserInvite(UserBase):
    """Schema for inviting a user into the current organization."""
    role_id: str | None = None
    department_id: str | None = None
    manager_id: str | None = None


class UserUpdate(BaseModel):
    """Schema for updating user information."""
    name: str | None = Field(None, min_length=1, max_length=255)
    role_id: str | None = None
    department_id: str | None = None
    manager_id: str | None = None


class UserResponse(UserBase):
    """Schema for user responses."""
    id: str
    is_active: bool
    organization_id: str
    department_id: str | None = None
    role_id: str | None = None
    manager_id: str | None = None
    last_login_at: datetime | None = None
    created_at: datetime
    updated_at: datetime

    role: RolePublic | None = None
    department: DepartmentPublic | None = None

    model_config = {"from_attributes": True}
