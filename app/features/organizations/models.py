"""
Organization and department models.

Organizations are the tenant boundary: every user, role, department and
record belongs to exactly one organization.
"""
from typing import Any, Dict
from sqlalchemy import String, ForeignKey, Boolean, JSON, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
import ulid

from app.core.database.base import Base, TimestampMixin


def generate_ulid() -> str:
    """Generate a new ULID string."""
    return ulid.ulid()


class Organization(Base, TimestampMixin):
    """
    Organization model representing one tenant.
    """
    __tablename__ = "organizations"

    # Primary key using ULID
    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)

    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    slug: Mapped[str] = mapped_column(String(100), unique=True, nullable=False, index=True)

    # Free-form settings (timezone, date format, currency, ...)
    settings: Mapped[Dict[str, Any] | None] = mapped_column(JSON, nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # Relationships
    departments: Mapped[list["Department"]] = relationship(
        "Department",
        back_populates="organization",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="Department.name"
    )

    def __repr__(self) -> str:
        return f"<Organization(id={self.id}, name={self.name!r}, slug={self.slug})>"


class Department(Base, TimestampMixin):
    """
    Department within an organization.

    Users optionally belong to one department; roles with the
    ``viewDepartment`` scope see records assigned to members of their own
    department.
    """
    __tablename__ = "departments"
    __table_args__ = (
        UniqueConstraint("organization_id", "name", name="uq_departments_organization_name"),
    )

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)

    organization_id: Mapped[str] = mapped_column(
        String(26),
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Relationship
    organization: Mapped["Organization"] = relationship(
        "Organization",
        back_populates="departments",
        lazy="selectin"
    )

    def __repr__(self) -> str:
        return f"<Department(id={self.id}, org_id={self.organization_id}, name={self.name!r})>"
