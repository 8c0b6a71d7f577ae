"""
Typed Exception Hierarchy for the Estate Kernel.

Every error has a typed class (catch by type, not message), a ``code``
class attribute (machine-readable, API-safe), and carries its context as
structured attributes rather than inside the message string.

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    EstateKernelError (base)
    |
    +-- NotFoundError
    |   +-- AssetNotFoundError
    |   +-- IsnadFormNotFoundError
    |   +-- ContractNotFoundError
    |   +-- InstallmentNotFoundError
    |   +-- InvestorNotFoundError
    |
    +-- TransitionError
    |   +-- InvalidTransitionError
    |   |   +-- InvalidStatusValueError
    |   +-- InvalidStageError
    |   +-- ReceiptRequiredError
    |   +-- ContractValidationError
    |
    +-- NotificationDeliveryError
    |
    +-- SweepSubtaskError
    |
    +-- ConcurrencyError
    |   +-- OptimisticLockError
    |
    +-- ImmutabilityViolationError

===============================================================================
PROPAGATION
===============================================================================

NotFoundError and TransitionError subclasses propagate synchronously to the
caller of a command; nothing has been persisted when they are raised.

NotificationDeliveryError never leaves the notification dispatcher: it is
logged at warning level and the committed transition stands.

SweepSubtaskError is recorded by the reconciliation sweep for the failing
sub-task; the remaining sub-tasks of the same pass still run.
"""


class EstateKernelError(Exception):
    """
    Base exception for all estate kernel errors.

    All subclasses must have a ``code`` class attribute.
    """

    code: str = "ESTATE_KERNEL_ERROR"


# Lookup failures


class NotFoundError(EstateKernelError):
    """Referenced entity id does not exist."""

    code: str = "NOT_FOUND"
    entity_type: str = "Entity"

    def __init__(self, entity_id: str):
        self.entity_id = str(entity_id)
        super().__init__(f"{self.entity_type} not found: {entity_id}")


class AssetNotFoundError(NotFoundError):
    code: str = "ASSET_NOT_FOUND"
    entity_type = "Asset"


class IsnadFormNotFoundError(NotFoundError):
    code: str = "ISNAD_FORM_NOT_FOUND"
    entity_type = "IsnadForm"


class ContractNotFoundError(NotFoundError):
    code: str = "CONTRACT_NOT_FOUND"
    entity_type = "Contract"


class InstallmentNotFoundError(NotFoundError):
    code: str = "INSTALLMENT_NOT_FOUND"
    entity_type = "Installment"


class InvestorNotFoundError(NotFoundError):
    code: str = "INVESTOR_NOT_FOUND"
    entity_type = "Investor"


# Transition failures


class TransitionError(EstateKernelError):
    """Base exception for rejected state-machine commands."""

    code: str = "TRANSITION_ERROR"


class InvalidTransitionError(TransitionError):
    """The requested transition is not allowed from the entity's current state."""

    code: str = "INVALID_TRANSITION"

    def __init__(
        self,
        entity_type: str,
        entity_id: str,
        from_status: str | None,
        to_status: str,
        reason: str = "",
    ):
        self.entity_type = entity_type
        self.entity_id = str(entity_id)
        self.from_status = from_status
        self.to_status = to_status
        self.reason = reason
        message = (
            f"Invalid transition for {entity_type} {entity_id}: "
            f"{from_status} -> {to_status}"
        )
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)


class InvalidStatusValueError(InvalidTransitionError):
    """The target status is not a member of the entity's status enum."""

    code: str = "INVALID_STATUS_VALUE"

    def __init__(self, entity_type: str, entity_id: str, value: object):
        self.value = value
        super().__init__(
            entity_type,
            entity_id,
            None,
            str(value),
            reason=f"unrecognized {entity_type} status {value!r}",
        )


class InvalidStageError(TransitionError):
    """Free-text ISNAD stage label is not one of the recognized stages."""

    code: str = "INVALID_STAGE"

    def __init__(self, form_id: str, stage: str):
        self.form_id = str(form_id)
        self.stage = stage
        super().__init__(f"Invalid ISNAD stage {stage!r} for form {form_id}")


class ReceiptRequiredError(TransitionError):
    """An installment cannot be marked paid without a payment receipt."""

    code: str = "RECEIPT_REQUIRED"

    def __init__(self, installment_id: str):
        self.installment_id = str(installment_id)
        super().__init__(
            f"Installment {installment_id} cannot be marked paid without a receipt"
        )


class ContractValidationError(TransitionError):
    """Contract terms supplied at creation are inconsistent."""

    code: str = "CONTRACT_VALIDATION_FAILED"

    def __init__(self, contract_code: str, field: str, reason: str):
        self.contract_code = contract_code
        self.field = field
        self.reason = reason
        super().__init__(f"Contract {contract_code}: invalid {field}: {reason}")


# Side-effect failures


class NotificationDeliveryError(EstateKernelError):
    """A notification or email could not be delivered."""

    code: str = "NOTIFICATION_DELIVERY_FAILED"

    def __init__(self, channel: str, target: str, reason: str):
        self.channel = channel
        self.target = target
        self.reason = reason
        super().__init__(f"{channel} delivery to {target} failed: {reason}")


class SweepSubtaskError(EstateKernelError):
    """One reconciliation sub-task failed during a sweep pass."""

    code: str = "SWEEP_SUBTASK_FAILED"

    def __init__(self, task_type: str, reason: str):
        self.task_type = task_type
        self.reason = reason
        super().__init__(f"Sweep sub-task {task_type} failed: {reason}")


# Concurrency


class ConcurrencyError(EstateKernelError):
    """Base exception for concurrency-related errors."""

    code: str = "CONCURRENCY_ERROR"


class OptimisticLockError(ConcurrencyError):
    """Optimistic locking conflict detected."""

    code: str = "OPTIMISTIC_LOCK_CONFLICT"

    def __init__(self, entity_type: str, entity_id: str):
        self.entity_type = entity_type
        self.entity_id = str(entity_id)
        super().__init__(
            f"Optimistic lock conflict on {entity_type} {entity_id}: "
            "entity was modified by another transaction"
        )


# Immutability


class ImmutabilityViolationError(EstateKernelError):
    """Attempted to modify or delete an append-only or write-once value."""

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = str(entity_id)
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )
