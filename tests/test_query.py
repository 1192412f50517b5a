"""
Tests for the SQL translation of filter specs and the database-backed lookups.
"""
import itertools
from types import SimpleNamespace

import pytest
from sqlalchemy import inspect as sa_inspect
from sqlalchemy import select

from app.features.permissions.filters import FilterSpec, MatchAll
from app.features.permissions.hierarchy import resolve_subordinate_closure
from app.features.permissions.models import Role
from app.features.permissions.policy import AccessPolicy
from app.features.permissions.query import (
    department_lookup,
    direct_reports_lookup,
    filter_clause,
    scope_clause,
)
from app.features.records.models import Lead, Task
from app.features.users.models import User


SCOPE_FLAGS = ["viewAll", "viewDepartment", "viewTeam", "viewOwn"]
FLAG_COMBINATIONS = [
    combination
    for size in range(len(SCOPE_FLAGS) + 1)
    for combination in itertools.combinations(SCOPE_FLAGS, size)
]


def acting_as(user, flags, resource="leads"):
    """Detached copy of ``user`` holding an in-memory role with ``flags``."""
    role = SimpleNamespace(
        organization_id=user.organization_id,
        permissions={resource: {flag: True for flag in flags}},
    )
    return SimpleNamespace(
        id=user.id,
        organization_id=user.organization_id,
        department_id=user.department_id,
        role=role,
    )


def policy_for(db, user):
    return AccessPolicy(
        user,
        direct_reports_lookup(db, user.organization_id),
        department_lookup(db, user.organization_id),
    )


async def listed_ids(db, spec, model):
    result = await db.execute(select(model.id).where(filter_clause(spec, model)))
    return set(result.scalars().all())


@pytest.fixture
async def leads(factory, sales_org):
    """One lead per user of both organizations, plus unassigned ones."""
    org = sales_org
    created = {}
    for name in ("admin", "manager", "rep1", "intern", "rep2", "marketer"):
        created[name] = await factory.lead(org.org, getattr(org, name), name=f"{name} lead")
    created["unassigned"] = await factory.lead(org.org, None, name="unassigned lead")
    created["outsider"] = await factory.lead(org.other_org, org.outsider, name="outsider lead")
    created["foreign_unassigned"] = await factory.lead(org.other_org, None, name="foreign lead")
    return created


class TestDirectReportsLookup:
    """Hierarchy lookups against the users table."""

    async def test_closure_from_database(self, db, sales_org):
        org = sales_org
        lookup = direct_reports_lookup(db, org.org.id)

        closure = await resolve_subordinate_closure(org.manager.id, lookup)

        assert closure == {org.manager.id, org.rep1.id, org.intern.id, org.rep2.id}
        assert await resolve_subordinate_closure(org.rep1.id, lookup) == {org.rep1.id, org.intern.id}
        assert await resolve_subordinate_closure(org.marketer.id, lookup) == {org.marketer.id}

    async def test_reports_from_other_organization_are_ignored(self, db, factory, sales_org):
        org = sales_org
        # Corrupt row: a user of another tenant pointing at our manager
        await factory.user(org.other_org, manager=org.manager)

        closure = await resolve_subordinate_closure(org.manager.id, direct_reports_lookup(db, org.org.id))

        assert closure == {org.manager.id, org.rep1.id, org.intern.id, org.rep2.id}

    async def test_cycle_in_database_terminates(self, db, sales_org):
        org = sales_org
        manager = await db.get(User, org.manager.id)
        manager.manager_id = org.intern.id
        await db.commit()

        closure = await resolve_subordinate_closure(org.rep1.id, direct_reports_lookup(db, org.org.id))

        assert closure == {org.manager.id, org.rep1.id, org.intern.id, org.rep2.id}


class TestDepartmentLookup:
    """Department lookups are bound to one organization."""

    async def test_department_of_member(self, db, sales_org):
        lookup = department_lookup(db, sales_org.org.id)

        assert await lookup(sales_org.rep1.id) == sales_org.sales.id
        assert await lookup(sales_org.admin.id) is None

    async def test_other_organization_user_is_unknown(self, db, sales_org):
        lookup = department_lookup(db, sales_org.org.id)

        assert await lookup(sales_org.outsider.id) is None
        assert await lookup("missing") is None


class TestFilterClause:
    """SQL filters select exactly what the guard accepts."""

    async def test_manager_template(self, db, sales_org, leads):
        acting = acting_as(sales_org.manager, ("viewDepartment", "viewTeam", "viewOwn"))

        spec = await policy_for(db, acting).compile_filter("leads")

        assert await listed_ids(db, spec, Lead) == {
            leads[name].id for name in ("manager", "rep1", "intern", "rep2", "unassigned")
        }

    async def test_view_all_stays_in_organization(self, db, sales_org, leads):
        acting = acting_as(sales_org.admin, ("viewAll",))

        spec = await policy_for(db, acting).compile_filter("leads")

        assert await listed_ids(db, spec, Lead) == {
            lead.id for name, lead in leads.items() if name not in ("outsider", "foreign_unassigned")
        }

    async def test_department_scope_uses_assignee_department(self, db, sales_org, leads):
        acting = acting_as(sales_org.marketer, ("viewDepartment",))

        spec = await policy_for(db, acting).compile_filter("leads")

        assert await listed_ids(db, spec, Lead) == {leads["marketer"].id, leads["unassigned"].id}

    async def test_match_nothing(self, db, sales_org, leads):
        acting = acting_as(sales_org.admin, ("create",))

        spec = await policy_for(db, acting).compile_filter("leads")

        assert spec.matches_nothing
        assert await listed_ids(db, spec, Lead) == set()

    @pytest.mark.parametrize("flags", FLAG_COMBINATIONS, ids=lambda flags: "+".join(flags) or "none")
    async def test_agrees_with_guard(self, db, sales_org, leads, flags):
        for name in ("admin", "manager", "rep1", "marketer"):
            acting = acting_as(getattr(sales_org, name), flags)
            policy = policy_for(db, acting)
            spec = await policy.compile_filter("leads")

            guarded = {lead.id for lead in leads.values() if await policy.can_access("leads", lead)}

            assert await listed_ids(db, spec, Lead) == guarded, name

    async def test_user_scope(self, db, sales_org):
        org = sales_org
        acting = acting_as(org.manager, ("viewTeam",), resource="users")

        spec = await policy_for(db, acting).compile_filter("users")

        assert await listed_ids(db, spec, User) == {
            org.manager.id, org.rep1.id, org.intern.id, org.rep2.id,
        }

    async def test_other_model(self, db, factory, sales_org):
        org = sales_org
        own = await factory.task(org.org, org.rep2)
        await factory.task(org.org, org.marketer)
        acting = acting_as(org.rep2, ("viewOwn",), resource="tasks")

        spec = await policy_for(db, acting).compile_filter("tasks")

        assert await listed_ids(db, spec, Task) == {own.id}

    def test_unsupported_scope_raises(self):
        with pytest.raises(TypeError):
            scope_clause(object(), Lead)

    def test_organization_is_part_of_clause(self):
        clause = filter_clause(FilterSpec("org-1", MatchAll()), Lead)

        assert "organization_id" in str(clause)


class TestModelMappings:
    """Mapper configuration of the models the engine queries."""

    def test_no_relationship_uses_noload(self):
        for model in (User, Role, Lead, Task):
            for relationship in sa_inspect(model).relationships:
                assert relationship.lazy != "noload", f"{model.__name__}.{relationship.key}"

    def test_user_role_is_eager(self):
        assert sa_inspect(User).relationships["role"].lazy == "selectin"
        assert "users" not in sa_inspect(Role).relationships
