"""
Module: estate_kernel.models.staff
Responsibility: Minimal internal-user directory used to resolve a role name
    to the users (and their email addresses) that a role notification
    reaches.
Architecture position: Kernel > Models.  May import from db/base.py only.

Identity, authentication and permission evaluation live outside the core;
these rows are a read-side projection of that system.
"""

from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from estate_kernel.db.base import TrackedBase, UUIDString


class StaffUser(TrackedBase):
    __tablename__ = "staff_users"

    __table_args__ = (
        UniqueConstraint("email", name="uq_staff_email"),
    )

    email: Mapped[str] = mapped_column(String(255), nullable=False)
    full_name: Mapped[str] = mapped_column(String(255), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    role_assignments: Mapped[list["StaffRoleAssignment"]] = relationship(
        "StaffRoleAssignment",
        back_populates="user",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<StaffUser {self.email}>"


class StaffRoleAssignment(TrackedBase):
    __tablename__ = "staff_role_assignments"

    __table_args__ = (
        UniqueConstraint("user_id", "role_name", name="uq_staff_role"),
        Index("idx_staff_role_name", "role_name"),
    )

    user_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("staff_users.id"),
        nullable=False,
    )

    role_name: Mapped[str] = mapped_column(String(50), nullable=False)

    user: Mapped["StaffUser"] = relationship(
        "StaffUser",
        back_populates="role_assignments",
    )
