"""Lifecycle state-machine services for the estate kernel (flush-only)."""

from estate_kernel.services.asset_workflow_service import AssetWorkflowService
from estate_kernel.services.auditor_service import AuditorService
from estate_kernel.services.base import DEFAULT_ACTOR, BaseService, TransitionOutcome
from estate_kernel.services.contract_workflow_service import ContractWorkflowService
from estate_kernel.services.isnad_workflow_service import IsnadWorkflowService

__all__ = [
    "AssetWorkflowService",
    "AuditorService",
    "BaseService",
    "ContractWorkflowService",
    "DEFAULT_ACTOR",
    "IsnadWorkflowService",
    "TransitionOutcome",
]
