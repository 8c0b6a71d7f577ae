"""Selectors for the estate kernel (read side)."""

from estate_kernel.selectors.audit_selector import AuditSelector, AuditTrailEntry
from estate_kernel.selectors.lifecycle_selector import LifecycleSelector
from estate_kernel.selectors.staff_selector import StaffSelector

__all__ = [
    "AuditSelector",
    "AuditTrailEntry",
    "LifecycleSelector",
    "StaffSelector",
]
