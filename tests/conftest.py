"""
Shared pytest fixtures for the CRM backend tests.

Provides:
- An isolated in-memory database per test
- An HTTP client bound to the FastAPI app with the database overridden
- A factory for organizations, departments, roles, users and records
- The standard Admin / Manager / Member grant tables
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ["RATE_LIMIT"] = "100000/minute"

from types import SimpleNamespace  # noqa: E402
from typing import AsyncGenerator  # noqa: E402

import httpx  # noqa: E402
import pytest  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from app.core.database.engine import get_db, init_db  # noqa: E402
from app.features.organizations.models import Department, Organization  # noqa: E402
from app.features.permissions.models import Role  # noqa: E402
from app.features.records.models import Customer, Lead, Task  # noqa: E402
from app.features.users.auth import create_access_token  # noqa: E402
from app.features.users.models import User  # noqa: E402
from app.main import app  # noqa: E402


ADMIN_PERMISSIONS = {
    "customers": {"viewAll": True, "viewDepartment": True, "viewTeam": True, "viewOwn": True, "create": True, "edit": True, "delete": True},
    "leads": {"viewAll": True, "viewDepartment": True, "viewTeam": True, "viewOwn": True, "create": True, "edit": True, "delete": True},
    "tasks": {"viewAll": True, "viewDepartment": True, "viewTeam": True, "viewOwn": True, "create": True, "edit": True, "delete": True},
    "users": {"viewAll": True, "invite": True, "edit": True, "delete": True},
    "departments": {"viewAll": True, "create": True, "edit": True, "delete": True},
    "roles": {"viewAll": True, "create": True, "edit": True, "delete": False},
    "organization": {"view": True, "edit": True},
}

MANAGER_PERMISSIONS = {
    "customers": {"viewAll": False, "viewDepartment": True, "viewTeam": True, "viewOwn": True, "create": True, "edit": True, "delete": False},
    "leads": {"viewAll": False, "viewDepartment": True, "viewTeam": True, "viewOwn": True, "create": True, "edit": True, "delete": False},
    "tasks": {"viewAll": False, "viewDepartment": True, "viewTeam": True, "viewOwn": True, "create": True, "edit": True, "delete": False},
    "users": {"viewAll": False, "viewTeam": True, "invite": False, "edit": False, "delete": False},
    "departments": {"viewAll": True, "create": False, "edit": False, "delete": False},
    "roles": {"viewAll": True, "create": False, "edit": False, "delete": False},
    "organization": {"view": True, "edit": False},
}

MEMBER_PERMISSIONS = {
    "customers": {"viewAll": False, "viewDepartment": False, "viewTeam": False, "viewOwn": True, "create": True, "edit": True, "delete": False},
    "leads": {"viewAll": False, "viewDepartment": False, "viewTeam": False, "viewOwn": True, "create": True, "edit": True, "delete": False},
    "tasks": {"viewAll": False, "viewDepartment": False, "viewTeam": False, "viewOwn": True, "create": True, "edit": True, "delete": False},
    "users": {"viewAll": False, "viewTeam": False, "invite": False, "edit": False, "delete": False},
    "departments": {"viewAll": True, "create": False, "edit": False, "delete": False},
    "roles": {"viewAll": False, "create": False, "edit": False, "delete": False},
    "organization": {"view": True, "edit": False},
}


# ============================================================================
# Database Fixtures
# ============================================================================

@pytest.fixture
async def session_factory() -> AsyncGenerator[async_sessionmaker, None]:
    """Fresh in-memory database with all tables created."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await init_db(bind=engine)
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)
    await engine.dispose()


@pytest.fixture
async def db(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Session for arranging and inspecting test data."""
    async with session_factory() as session:
        yield session


# ============================================================================
# API Client Fixtures
# ============================================================================

@pytest.fixture
async def client(session_factory) -> AsyncGenerator[httpx.AsyncClient, None]:
    """HTTP client for the app, with each request getting its own session."""
    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


def auth_headers(user: User) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}


@pytest.fixture
def headers():
    """Build Authorization headers for a user."""
    return auth_headers


# ============================================================================
# Test Data Factory
# ============================================================================

class Factory:
    """Creates persisted test objects."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self._seq = 0

    def _next(self) -> int:
        self._seq += 1
        return self._seq

    async def _save(self, obj):
        self.session.add(obj)
        await self.session.commit()
        await self.session.refresh(obj)
        return obj

    async def organization(self, name: str = "Demo Corporation") -> Organization:
        return await self._save(Organization(name=name, slug=f"org-{self._next()}"))

    async def department(self, organization: Organization, name: str = "Sales") -> Department:
        return await self._save(Department(organization_id=organization.id, name=name))

    async def role(self, organization: Organization, permissions: dict, name: str | None = None) -> Role:
        return await self._save(Role(
            organization_id=organization.id,
            name=name or f"role-{self._next()}",
            permissions=permissions,
        ))

    async def user(
        self,
        organization: Organization,
        role: Role | None = None,
        department: Department | None = None,
        manager: User | None = None,
        name: str | None = None,
    ) -> User:
        n = self._next()
        return await self._save(User(
            email=f"user{n}@example.com",
            name=name or f"User {n}",
            organization_id=organization.id,
            role_id=role.id if role else None,
            department_id=department.id if department else None,
            manager_id=manager.id if manager else None,
        ))

    async def lead(self, organization: Organization, assignee: User | None = None, name: str | None = None) -> Lead:
        return await self._save(Lead(
            organization_id=organization.id,
            assigned_to=assignee.id if assignee else None,
            name=name or f"Lead {self._next()}",
            email="lead@example.com",
        ))

    async def customer(self, organization: Organization, assignee: User | None = None, name: str | None = None) -> Customer:
        return await self._save(Customer(
            organization_id=organization.id,
            assigned_to=assignee.id if assignee else None,
            name=name or f"Customer {self._next()}",
            email="customer@example.com",
        ))

    async def task(self, organization: Organization, assignee: User | None = None, title: str | None = None) -> Task:
        return await self._save(Task(
            organization_id=organization.id,
            assigned_to=assignee.id if assignee else None,
            title=title or f"Task {self._next()}",
        ))


@pytest.fixture
def factory(db) -> Factory:
    return Factory(db)


@pytest.fixture
async def sales_org(factory):
    """
    A demo organization:

        admin (Admin, no department)
        manager (Manager, Sales)
          rep1 (Member, Sales)
            intern (Member, Sales)
          rep2 (Member, Sales)
        marketer (Member, Marketing)

    plus ``outsider`` (Admin) in a second organization.
    """
    org = await factory.organization()
    sales = await factory.department(org, "Sales")
    marketing = await factory.department(org, "Marketing")
    admin_role = await factory.role(org, ADMIN_PERMISSIONS, "Admin")
    manager_role = await factory.role(org, MANAGER_PERMISSIONS, "Manager")
    member_role = await factory.role(org, MEMBER_PERMISSIONS, "Member")

    admin = await factory.user(org, admin_role, name="Admin")
    manager = await factory.user(org, manager_role, sales, name="Sarah Manager")
    rep1 = await factory.user(org, member_role, sales, manager, name="John Rep")
    intern = await factory.user(org, member_role, sales, rep1, name="Ian Intern")
    rep2 = await factory.user(org, member_role, sales, manager, name="Jane Rep")
    marketer = await factory.user(org, member_role, marketing, name="Mike Marketer")

    other_org = await factory.organization("Other Corp")
    other_admin_role = await factory.role(other_org, ADMIN_PERMISSIONS, "Admin")
    outsider = await factory.user(other_org, other_admin_role, name="Olivia Outsider")

    return SimpleNamespace(
        org=org, other_org=other_org,
        sales=sales, marketing=marketing,
        admin_role=admin_role, manager_role=manager_role, member_role=member_role,
        admin=admin, manager=manager, rep1=rep1, intern=intern, rep2=rep2, marketer=marketer,
        outsider=outsider,
    )
