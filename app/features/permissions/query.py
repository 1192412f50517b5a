"""
SQLAlchemy bindings for the authorization engine.

Translates ``FilterSpec`` objects into ``WHERE`` clauses and provides the
hierarchy and department lookups backed by the ``users`` table. All lookups
are bound to one organization so they can never reach another tenant's
users.
"""
from typing import Any, FrozenSet, Optional

from sqlalchemy import and_, exists, false, or_, select, true
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql.elements import ColumnElement

from app.features.permissions.filters import (
    AnyOf,
    AssigneeIn,
    AssigneeInDepartment,
    FilterSpec,
    MatchAll,
    MatchNothing,
    Scope,
    SubjectIn,
)
from app.features.permissions.hierarchy import SubordinateLookup
from app.features.permissions.policy import DepartmentLookup
from app.features.users.models import User


def _assignee_or_unassigned(model: Any, condition: ColumnElement, include_unassigned: bool) -> ColumnElement:
    if include_unassigned:
        return or_(condition, model.assigned_to.is_(None))
    return and_(model.assigned_to.is_not(None), condition)


def scope_clause(scope: Scope, model: Any) -> ColumnElement:
    """Build the SQL condition for a scope predicate on ``model``."""
    if isinstance(scope, MatchAll):
        return true()
    if isinstance(scope, MatchNothing):
        return false()
    if isinstance(scope, AssigneeIn):
        return _assignee_or_unassigned(model, model.assigned_to.in_(scope.user_ids), scope.include_unassigned)
    if isinstance(scope, AssigneeInDepartment):
        assignee_in_department = exists(
            select(User.id).where(
                User.id == model.assigned_to,
                User.organization_id == model.organization_id,
                User.department_id == scope.department_id,
            )
        )
        return _assignee_or_unassigned(model, assignee_in_department, scope.include_unassigned)
    if isinstance(scope, SubjectIn):
        return model.id.in_(scope.user_ids)
    if isinstance(scope, AnyOf):
        return or_(*(scope_clause(clause, model) for clause in scope.clauses))
    raise TypeError(f"Unsupported scope: {scope!r}")


def filter_clause(spec: FilterSpec, model: Any) -> ColumnElement:
    """
    Full ``WHERE`` condition for a filter spec: organization match AND scope.

    Usage:
        spec = await policy.compile_filter(Resource.LEADS)
        stmt = select(Lead).where(filter_clause(spec, Lead))
    """
    return and_(model.organization_id == spec.organization_id, scope_clause(spec.scope, model))


def direct_reports_lookup(db: AsyncSession, organization_id: str) -> SubordinateLookup:
    """Frontier lookup of direct reports: one ``IN`` query per hierarchy level."""
    async def lookup(frontier: FrozenSet[str]) -> list[str]:
        result = await db.execute(
            select(User.id).where(
                User.organization_id == organization_id,
                User.manager_id.in_(frontier),
            )
        )
        return list(result.scalars().all())

    return lookup


def department_lookup(db: AsyncSession, organization_id: str) -> DepartmentLookup:
    """Department of a user of ``organization_id``; None for unknown users."""
    async def lookup(user_id: str) -> Optional[str]:
        return await db.scalar(
            select(User.department_id).where(
                User.id == user_id,
                User.organization_id == organization_id,
            )
        )

    return lookup
