"""Error Hierarchy - typed, categorized exceptions for every Posterity failure mode.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - Every engine error is fatal to the operation that raised it: the shell
      rolls the whole operation back, nothing is retried
    - to_response() produces the REST envelope
    - HTTP status is a function of the category (CATEGORY_STATUS), never chosen
      per error
    - No internal details leaked in user-facing messages

Design Decisions:
    - Single hierarchy with PosterityError base: FastAPI global handler catches all (ADR: uniform error shape)
    - ErrorContext as dataclass: rich observability without coupling to logging framework
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from datetime import datetime, timezone


class ErrorSeverity(str, Enum):
    """Error severity for observability and client handling."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """High-level error categories for routing and handling."""
    VALIDATION = "validation"
    BUSINESS_RULE = "business_rule"
    AUTHORIZATION = "authorization"
    RESOURCE_NOT_FOUND = "resource_not_found"
    CAPACITY = "capacity"
    DATABASE = "database"
    INTERNAL = "internal"
    CONFLICT = "conflict"


CATEGORY_STATUS: dict[ErrorCategory, int] = {
    ErrorCategory.VALIDATION: 400,
    ErrorCategory.BUSINESS_RULE: 400,
    ErrorCategory.AUTHORIZATION: 403,
    ErrorCategory.RESOURCE_NOT_FOUND: 404,
    ErrorCategory.CONFLICT: 409,
    ErrorCategory.CAPACITY: 429,
    ErrorCategory.INTERNAL: 500,
    ErrorCategory.DATABASE: 503,
}


@dataclass
class ErrorContext:
    """Rich context for error observability and debugging."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    community_id: str | None = None
    epoch: int | None = None
    address: str | None = None
    debug_info: dict[str, Any] | None = None


class PosterityError(Exception):
    """Base exception for all Posterity errors."""

    def __init__(
        self,
        message: str,
        code: str,
        category: ErrorCategory,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: ErrorContext | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext()

    @property
    def http_status(self) -> int:
        return CATEGORY_STATUS[self.category]

    def to_response(self) -> dict:
        """Convert to standardized REST error response."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "category": self.category.value,
                "severity": self.severity.value,
                "timestamp": self.context.timestamp.isoformat(),
                "context": {
                    "community_id": self.context.community_id,
                    "epoch": self.context.epoch,
                    "address": self.context.address,
                },
            }
        }


# --- Generation Errors ------------------------------------------------

class EpochNotAdvancingError(PosterityError):
    """Generation update targets an epoch that is not strictly newer."""
    def __init__(self, current: int, requested: int, context: ErrorContext | None = None):
        super().__init__(
            f"Epoch {requested} does not advance past current epoch {current}.",
            "EPOCH_NOT_ADVANCING", ErrorCategory.CONFLICT,
            ErrorSeverity.ERROR, context,
        )
        self.current = current
        self.requested = requested


class InvalidDecayRateError(PosterityError):
    """Zero decay rate supplied."""
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "Decay rate must be greater than zero.",
            "INVALID_DECAY_RATE", ErrorCategory.VALIDATION,
            ErrorSeverity.ERROR, context,
        )


class GenerationNotFoundError(PosterityError):
    """No generation was ever configured for the requested epoch."""
    def __init__(self, epoch: int, context: ErrorContext | None = None):
        super().__init__(
            f"Generation {epoch} has not been configured.",
            "GENERATION_NOT_FOUND", ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.ERROR, context,
        )
        self.epoch = epoch


class InvalidAuctionConstantError(PosterityError):
    """An auction constant is zero or negative once scaled to wad."""
    def __init__(self, name: str, context: ErrorContext | None = None):
        super().__init__(
            f"{name} must be at least 1e-18.",
            "INVALID_AUCTION_CONSTANT", ErrorCategory.VALIDATION,
            ErrorSeverity.ERROR, context,
        )
        self.name = name


# --- Admission Errors -------------------------------------------------

class InvalidAdmissionProofError(PosterityError):
    """Genesis claim proof does not verify against the current root."""
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "Invalid proof of permission to settle.",
            "INVALID_ADMISSION_PROOF", ErrorCategory.AUTHORIZATION,
            ErrorSeverity.ERROR, context,
        )


class AlreadyAdmittedError(PosterityError):
    """Genesis claim on an address already past Unseen in this epoch."""
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "Molecule is already alive in this generation.",
            "ALREADY_ADMITTED", ErrorCategory.CONFLICT,
            ErrorSeverity.ERROR, context,
        )


class EmissionCapacityExceededError(PosterityError):
    """Admission requested more emission-seconds than have accrued."""
    def __init__(self, requested: int, available: int, context: ErrorContext | None = None):
        super().__init__(
            "Admission capacity exhausted. Wait for the emission budget to refill.",
            "EMISSION_CAPACITY_EXCEEDED", ErrorCategory.CAPACITY,
            ErrorSeverity.WARNING, context,
        )
        self.requested = requested
        self.available = available


# --- Transfer Errors --------------------------------------------------

class RecipientIsDeadError(PosterityError):
    """Transfer targets a Dead member."""
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "Cannot house knowledge in a carcass.",
            "RECIPIENT_IS_DEAD", ErrorCategory.BUSINESS_RULE,
            ErrorSeverity.ERROR, context,
        )


class SenderPerishedError(PosterityError):
    """Sender's stored balance is below accrued decay."""
    def __init__(self, balance: int, decay: int, context: ErrorContext | None = None):
        super().__init__(
            "Sender has perished: accrued decay exceeds the stored balance.",
            "SENDER_PERISHED", ErrorCategory.BUSINESS_RULE,
            ErrorSeverity.ERROR, context,
        )
        self.balance = balance
        self.decay = decay


class InvalidTransferAmountError(PosterityError):
    """Amount is neither a shard (1) nor the sender's full remaining balance."""
    def __init__(self, amount: int, remaining: int, context: ErrorContext | None = None):
        super().__init__(
            f"Transfer amount must be 1 or the full remaining balance ({remaining}), got {amount}.",
            "INVALID_TRANSFER_AMOUNT", ErrorCategory.VALIDATION,
            ErrorSeverity.ERROR, context,
        )
        self.amount = amount
        self.remaining = remaining


class InsufficientRemainingBalanceError(PosterityError):
    """Remaining balance cannot cover amount plus admission cost."""
    def __init__(self, remaining: int, required: int, context: ErrorContext | None = None):
        super().__init__(
            f"Too much knowledge to transfer: {required} required, {remaining} remaining.",
            "INSUFFICIENT_REMAINING_BALANCE", ErrorCategory.BUSINESS_RULE,
            ErrorSeverity.ERROR, context,
        )
        self.remaining = remaining
        self.required = required


class SelfTransferError(PosterityError):
    """Sender and recipient are the same member."""
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "A molecule cannot transfer knowledge to itself.",
            "SELF_TRANSFER", ErrorCategory.VALIDATION,
            ErrorSeverity.ERROR, context,
        )


class ZeroAddressError(PosterityError):
    """The zero address named as a recipient or spender."""
    def __init__(self, role: str, context: ErrorContext | None = None):
        super().__init__(
            f"The zero address cannot be a {role}.",
            "ZERO_ADDRESS", ErrorCategory.VALIDATION,
            ErrorSeverity.ERROR, context,
        )
        self.role = role


# --- Ledger Errors ----------------------------------------------------

class InvalidBurnAmountError(PosterityError):
    """Burn of zero or a negative amount."""
    def __init__(self, amount: int, context: ErrorContext | None = None):
        super().__init__(
            f"Burn amount must be positive, got {amount}.",
            "INVALID_BURN_AMOUNT", ErrorCategory.VALIDATION,
            ErrorSeverity.ERROR, context,
        )
        self.amount = amount


class InsufficientBalanceError(PosterityError):
    """Ledger primitive asked to move more than an account holds."""
    def __init__(self, address: str, balance: int, amount: int, context: ErrorContext | None = None):
        super().__init__(
            f"Balance {balance} is below requested amount {amount}.",
            "INSUFFICIENT_BALANCE", ErrorCategory.BUSINESS_RULE,
            ErrorSeverity.ERROR, context,
        )
        self.address = address


class InsufficientAllowanceError(PosterityError):
    """Delegated transfer exceeds the approved allowance."""
    def __init__(self, allowance: int, amount: int, context: ErrorContext | None = None):
        super().__init__(
            f"Allowance {allowance} is below requested amount {amount}.",
            "INSUFFICIENT_ALLOWANCE", ErrorCategory.BUSINESS_RULE,
            ErrorSeverity.ERROR, context,
        )


# --- Shell Errors -----------------------------------------------------

class UnauthorizedError(PosterityError):
    """Caller is not permitted to perform a guarded action."""
    def __init__(self, action: str, context: ErrorContext | None = None):
        super().__init__(
            f"Caller is not authorized to {action}.",
            "UNAUTHORIZED", ErrorCategory.AUTHORIZATION,
            ErrorSeverity.ERROR, context,
        )
        self.action = action


class ResourceNotFoundError(PosterityError):
    """Requested resource does not exist."""
    def __init__(
        self, resource_type: str, resource_id: str, context: ErrorContext | None = None,
    ):
        super().__init__(
            f"{resource_type} '{resource_id}' not found",
            "RESOURCE_NOT_FOUND", ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.ERROR, context,
        )


class FixedPointOverflowError(PosterityError):
    """Exponent input beyond the representable wad range.

    Only a requested admission amount far beyond the accrued budget can push
    the auction exponent this high, so it is reported as bad input.
    """
    def __init__(self, value: int, context: ErrorContext | None = None):
        super().__init__(
            "Amount is beyond the representable price range.",
            "FIXED_POINT_OVERFLOW", ErrorCategory.VALIDATION,
            ErrorSeverity.ERROR, context,
        )
        self.value = value


class WriteConflictError(PosterityError):
    """A concurrent writer committed to the same community first."""
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "Another operation on this community committed first. Resubmit.",
            "WRITE_CONFLICT", ErrorCategory.CONFLICT,
            ErrorSeverity.WARNING, context,
        )


# --- Internal Errors (500-level) --------------------------------------

class InvalidStateTransitionError(PosterityError):
    """A member record was asked to move backward in its lifecycle."""
    def __init__(self, current: str, requested: str, context: ErrorContext | None = None):
        super().__init__(
            f"Member state cannot move from {current} to {requested}.",
            "INVALID_STATE_TRANSITION", ErrorCategory.INTERNAL,
            ErrorSeverity.CRITICAL, context,
        )


class DatabaseError(PosterityError):
    """Database operation failed."""
    def __init__(self, message: str, operation: str, context: ErrorContext | None = None):
        super().__init__(
            f"Database {operation} failed: {message}",
            "DATABASE_ERROR", ErrorCategory.DATABASE,
            ErrorSeverity.CRITICAL, context,
        )
        self.operation = operation
