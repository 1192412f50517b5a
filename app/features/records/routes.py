"""
Customer, lead and task API routes.

The three record types share the same access rules, so their routers are
built by one factory. Every route goes through the authorization engine:
lists through the scope filter, by-id routes through the record guard, and
writes through the coarse action check first.
"""
from typing import Annotated, Any, Optional, Sequence, Type

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database.engine import get_db
from app.features.permissions.dependencies import (
    ensure_record_access,
    get_access_policy,
    require_permission,
    scoped_select,
)
from app.features.permissions.grants import Action, Resource
from app.features.permissions.policy import AccessPolicy
from app.features.records.models import Customer, Lead, Task
from app.features.records.schemas import (
    CustomerCreate,
    CustomerResponse,
    CustomerUpdate,
    LeadCreate,
    LeadResponse,
    LeadUpdate,
    TaskCreate,
    TaskResponse,
    TaskUpdate,
)
from app.features.users.models import User
from app.utils import get_logger


log = get_logger(__name__)


async def validate_assignee(db: AsyncSession, organization_id: str, assigned_to: Optional[str]) -> None:
    """
    Ensure ``assigned_to`` is empty or a user of ``organization_id``.

    Raises:
        HTTPException: 400 if the assignee is not a member of the organization
    """
    if assigned_to is None:
        return
    assignee_id = await db.scalar(
        select(User.id).where(User.id == assigned_to, User.organization_id == organization_id)
    )
    if assignee_id is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Assignee must be a member of your organization"
        )


def build_record_router(
    model: Type[Any],
    resource: Resource,
    create_schema: Type[BaseModel],
    update_schema: Type[BaseModel],
    response_schema: Type[BaseModel],
    search_fields: Sequence[str],
    label: str,
) -> APIRouter:
    """
    Build CRUD routes for one assignable record type.

    Args:
        model: SQLAlchemy model with ``organization_id`` and ``assigned_to``
        resource: Grant table resource governing the model
        create_schema: Request body for POST
        update_schema: Request body for PATCH
        response_schema: Response model
        search_fields: Columns matched case-insensitively by ``search``
        label: Human readable name used in error messages
    """
    router = APIRouter()
    not_found = f"{label} not found"

    async def fetch(db: AsyncSession, policy: AccessPolicy, record_id: str) -> Any:
        record = await db.scalar(select(model).where(model.id == record_id))
        return await ensure_record_access(policy, resource, record, not_found)

    @router.get("", response_model=list[response_schema])
    async def list_records(
        db: Annotated[AsyncSession, Depends(get_db)],
        policy: Annotated[AccessPolicy, Depends(get_access_policy)],
        search: str | None = None,
        status_filter: Annotated[str | None, Query(alias="status")] = None,
        skip: int = 0,
        limit: int = 100
    ):
        """
        List records visible to the current user.

        The scope filter is applied first; ``search`` and ``status`` only
        narrow what the scope already allows.
        """
        stmt = await scoped_select(policy, resource, select(model), model)

        if search:
            pattern = f"%{search}%"
            stmt = stmt.where(or_(*(getattr(model, field).ilike(pattern) for field in search_fields)))
        if status_filter:
            stmt = stmt.where(model.status == status_filter)

        stmt = stmt.order_by(model.created_at.desc()).offset(skip).limit(limit)
        result = await db.execute(stmt)
        return result.scalars().all()

    @router.get("/{record_id}", response_model=response_schema)
    async def get_record(
        record_id: str,
        db: Annotated[AsyncSession, Depends(get_db)],
        policy: Annotated[AccessPolicy, Depends(get_access_policy)]
    ):
        """Retrieve one record by ID."""
        return await fetch(db, policy, record_id)

    @router.post("", response_model=response_schema, status_code=status.HTTP_201_CREATED)
    async def create_record(
        data: create_schema,  # type: ignore[valid-type]
        db: Annotated[AsyncSession, Depends(get_db)],
        policy: Annotated[AccessPolicy, Depends(require_permission(resource, Action.CREATE))]
    ):
        """Create a record in the current user's organization."""
        organization_id = policy.user.organization_id
        await validate_assignee(db, organization_id, data.assigned_to)

        record = model(**data.model_dump(), organization_id=organization_id)
        db.add(record)
        await db.commit()
        await db.refresh(record)

        log.info(f"User {policy.user.id} created {resource.value} {record.id}")
        return record

    @router.patch("/{record_id}", response_model=response_schema)
    async def update_record(
        record_id: str,
        data: update_schema,  # type: ignore[valid-type]
        db: Annotated[AsyncSession, Depends(get_db)],
        policy: Annotated[AccessPolicy, Depends(require_permission(resource, Action.EDIT))]
    ):
        """Update a record the current user can see."""
        record = await fetch(db, policy, record_id)

        update_data = data.model_dump(exclude_unset=True)
        if "assigned_to" in update_data:
            await validate_assignee(db, policy.user.organization_id, update_data["assigned_to"])
        for key, value in update_data.items():
            setattr(record, key, value)

        await db.commit()
        await db.refresh(record)
        return record

    @router.delete("/{record_id}", status_code=status.HTTP_204_NO_CONTENT)
    async def delete_record(
        record_id: str,
        db: Annotated[AsyncSession, Depends(get_db)],
        policy: Annotated[AccessPolicy, Depends(require_permission(resource, Action.DELETE))]
    ):
        """Delete a record the current user can see."""
        record = await fetch(db, policy, record_id)
        await db.delete(record)
        await db.commit()
        log.info(f"User {policy.user.id} deleted {resource.value} {record_id}")

    return router


customer_router = build_record_router(
    Customer, Resource.CUSTOMERS, CustomerCreate, CustomerUpdate, CustomerResponse,
    search_fields=("name", "email", "company"), label="Customer",
)
lead_router = build_record_router(
    Lead, Resource.LEADS, LeadCreate, LeadUpdate, LeadResponse,
    search_fields=("name", "email", "company"), label="Lead",
)
task_router = build_record_router(
    Task, Resource.TASKS, TaskCreate, TaskUpdate, TaskResponse,
    search_fields=("title", "description"), label="Task",
)
