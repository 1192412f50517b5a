"""
Pydantic schemas for organization-related requests and responses.
"""
from datetime import datetime
from typing import Any, Dict
from pydantic import BaseModel, Field, field_validator


# Department Schemas
class DepartmentBase(BaseModel):
    """Base department schema."""
    name: str = Field(..., min_length=1, max_length=100)
    description: str | None = Field(None, max_length=1000)


class DepartmentCreate(DepartmentBase):
    """Schema for creating a department."""
    pass


class DepartmentUpdate(BaseModel):
    """Schema for updating a department."""
    name: str | None = Field(None, min_length=1, max_length=100)
    description: str | None = Field(None, max_length=1000)

    @field_validator("name")
    @classmethod
    def name_not_null(cls, v):
        if v is None:
            raise ValueError("Department name cannot be null")
        return v


class DepartmentPublic(BaseModel):
    """Public department information."""
    id: str
    name: str

    model_config = {"from_attributes": True}


class DepartmentResponse(DepartmentBase):
    """Schema for department responses."""
    id: str
    organization_id: str
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


# Organization Schemas
class OrganizationUpdate(BaseModel):
    """Schema for updating organization information."""
    name: str | None = Field(None, min_length=1, max_length=255)
    settings: Dict[str, Any] | None = None

    @field_validator("name")
    @classmethod
    def name_not_null(cls, v):
        if v is None:
            raise ValueError("Organization name cannot be null")
        return v


class OrganizationResponse(BaseModel):
    """Schema for organization responses."""
    id: str
    name: str
    slug: str
    settings: Dict[str, Any] | None = None
    is_active: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
