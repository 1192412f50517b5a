"""
Customer, Lead and Task models.

All three are "assignable" records: they belong to an organization and may
be assigned to one of its users. Unassigned records (``assigned_to`` is
NULL) are visible to every scope that filters by assignee.
"""
from datetime import datetime
from sqlalchemy import String, ForeignKey, Text, DateTime
from sqlalchemy.orm import Mapped, mapped_column, declared_attr
import ulid

from app.core.database.base import Base, TimestampMixin


def generate_ulid() -> str:
    """Generate a new ULID string."""
    return ulid.ulid()


class AssignableMixin:
    """Organization ownership and optional assignee shared by scoped records."""

    @declared_attr
    def organization_id(cls) -> Mapped[str]:
        return mapped_column(
            String(26),
            ForeignKey("organizations.id", ondelete="CASCADE"),
            nullable=False,
            index=True
        )

    @declared_attr
    def assigned_to(cls) -> Mapped[str | None]:
        return mapped_column(
            String(26),
            ForeignKey("users.id", ondelete="SET NULL"),
            nullable=True,
            index=True
        )


class Customer(Base, AssignableMixin, TimestampMixin):
    __tablename__ = "customers"

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    company: Mapped[str | None] = mapped_column(String(255), nullable=True)
    status: Mapped[str] = mapped_column(String(50), nullable=False, default="active", index=True)

    def __repr__(self) -> str:
        return f"<Customer(id={self.id}, name={self.name!r}, assigned_to={self.assigned_to})>"


class Lead(Base, AssignableMixin, TimestampMixin):
    __tablename__ = "leads"

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    company: Mapped[str | None] = mapped_column(String(255), nullable=True)
    status: Mapped[str] = mapped_column(String(50), nullable=False, default="new", index=True)  # new, contacted, qualified, ...
    source: Mapped[str | None] = mapped_column(String(100), nullable=True)  # website, referral, linkedin, ...

    def __repr__(self) -> str:
        return f"<Lead(id={self.id}, name={self.name!r}, status={self.status})>"


class Task(Base, AssignableMixin, TimestampMixin):
    __tablename__ = "tasks"

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)
    title: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(50), nullable=False, default="pending", index=True)  # pending, in-progress, done
    priority: Mapped[str] = mapped_column(String(20), nullable=False, default="medium")  # low, medium, high
    due_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    def __repr__(self) -> str:
        return f"<Task(id={self.id}, title={self.title!r}, status={self.status})>"
