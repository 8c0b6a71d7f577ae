"""
Module: estate_kernel.selectors.staff_selector
Responsibility: Resolve role names to active internal users for role
    notifications.
Architecture position: Kernel > Selectors.
"""

from uuid import UUID

from sqlalchemy import select

from estate_kernel.models.staff import StaffRoleAssignment, StaffUser
from estate_kernel.selectors.base import BaseSelector


class StaffSelector(BaseSelector):
    def user_ids_for_role(self, role_name: str) -> list[UUID]:
        """Active users holding ``role_name``, in a stable order."""
        stmt = (
            select(StaffUser.id)
            .join(StaffRoleAssignment, StaffRoleAssignment.user_id == StaffUser.id)
            .where(
                StaffRoleAssignment.role_name == role_name,
                StaffUser.is_active.is_(True),
            )
            .order_by(StaffUser.email)
        )
        return list(self.session.scalars(stmt))

    def email_for_user(self, user_id: UUID) -> str | None:
        user = self.session.get(StaffUser, user_id)
        if user is None or not user.is_active:
            return None
        return user.email
