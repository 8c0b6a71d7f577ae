"""Domain models for the estate kernel."""

from estate_kernel.models.asset import Asset
from estate_kernel.models.audit_log import AuditAction, AuditLogEntry
from estate_kernel.models.contract import Contract, Installment
from estate_kernel.models.investor import Investor
from estate_kernel.models.isnad_form import IsnadForm
from estate_kernel.models.notification import Notification
from estate_kernel.models.staff import StaffRoleAssignment, StaffUser

__all__ = [
    "Asset",
    "AuditAction",
    "AuditLogEntry",
    "Contract",
    "Installment",
    "Investor",
    "IsnadForm",
    "Notification",
    "StaffRoleAssignment",
    "StaffUser",
    "import_all_models",
]


def import_all_models() -> list[type]:
    """Return every mapped class so Base.metadata holds all tables."""
    return [
        Asset,
        AuditLogEntry,
        Contract,
        Installment,
        Investor,
        IsnadForm,
        Notification,
        StaffRoleAssignment,
        StaffUser,
    ]
