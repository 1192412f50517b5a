"""
Pydantic schemas for customer, lead and task requests/responses.
"""
from datetime import datetime
from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator


class AssignableResponse(BaseModel):
    """Fields shared by every assignable record response."""
    id: str
    organization_id: str
    assigned_to: str | None = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


# Customer Schemas
class CustomerBase(BaseModel):
    """Base customer schema."""
    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    phone: str | None = Field(None, max_length=50)
    company: str | None = Field(None, max_length=255)
    status: str = Field(default="active", max_length=50)


class CustomerCreate(CustomerBase):
    """Schema for creating a customer."""
    assigned_to: str | None = None


class CustomerUpdate(BaseModel):
    """Schema for updating a customer."""
    name: str | None = Field(None, min_length=1, max_length=255)
    email: EmailStr | None = None
    phone: str | None = Field(None, max_length=50)
    company: str | None = Field(None, max_length=255)
    status: str | None = Field(None, max_length=50)
    assigned_to: str | None = None

    @field_validator("name", "email", "status")
    @classmethod
    def not_null(cls, v):
        """Omit a field to keep it; null is only accepted for nullable columns."""
        if v is None:
            raise ValueError("Field cannot be null")
        return v


class CustomerResponse(CustomerBase, AssignableResponse):
    """Schema for customer response."""
    pass


# Lead Schemas
class LeadBase(BaseModel):
    """Base lead schema."""
    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    phone: str | None = Field(None, max_length=50)
    company: str | None = Field(None, max_length=255)
    status: str = Field(default="new", max_length=50)
    source: str | None = Field(None, max_length=100)


class LeadCreate(LeadBase):
    """Schema for creating a lead."""
    assigned_to: str | None = None


class LeadUpdate(BaseModel):
    """Schema for updating a lead."""
    name: str | None = Field(None, min_length=1, max_length=255)
    email: EmailStr | None = None
    phone: str | None = Field(None, max_length=50)
    company: str | None = Field(None, max_length=255)
    status: str | None = Field(None, max_length=50)
    source: str | None = Field(None, max_length=100)
    assigned_to: str | None = None

    @field_validator("name", "email", "status")
    @classmethod
    def not_null(cls, v):
        if v is None:
            raise ValueError("Field cannot be null")
        return v


class LeadResponse(LeadBase, AssignableResponse):
    """Schema for lead response."""
    pass


# Task Schemas
class TaskBase(BaseModel):
    """Base task schema."""
    title: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    status: str = Field(default="pending", max_length=50)
    priority: str = Field(default="medium", pattern="^(low|medium|high)$")
    due_date: datetime | None = None


class TaskCreate(TaskBase):
    """Schema for creating a task."""
    assigned_to: str | None = None


class TaskUpdate(BaseModel):
    """Schema for updating a task."""
    title: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    status: str | None = Field(None, max_length=50)
    priority: str | None = Field(None, pattern="^(low|medium|high)$")
    due_date: datetime | None = None
    assigned_to: str | None = None

    @field_validator("title", "status", "priority")
    @classmethod
    def not_null(cls, v):
        if v is None:
            raise ValueError("Field cannot be null")
        return v


class TaskResponse(TaskBase, AssignableResponse):
    """Schema for task response."""
    pass
