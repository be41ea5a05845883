"""
Swap Orchestration Models

Defines tokens, pools, operation lifecycle states, user intents and the
error taxonomy shared by the swap core.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional


@dataclass(frozen=True)
class Token:
    """ERC-20 token metadata, supplied externally."""

    address: str
    decimals: int = 18
    symbol: str = ""

    def __post_init__(self):
        if self.decimals < 0:
            raise ValueError(f"Token decimals must be non-negative, got {self.decimals}")

    def same_as(self, other: Optional["Token"]) -> bool:
        return other is not None and self.address.lower() == other.address.lower()


@dataclass(frozen=True)
class Pool:
    """One exchange pair."""

    address: str
    token0: str
    token1: str


class OperationStatus(str, Enum):
    """Lifecycle of one tracked on-chain operation."""

    IDLE = "idle"                                   # Nothing submitted
    PENDING_SIGNATURE = "pending_signature"         # Waiting for the wallet to sign
    PENDING_CONFIRMATION = "pending_confirmation"   # Broadcast, waiting for settlement
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class FailureReason(str, Enum):
    """Categorised failure reasons reported with OperationStatus.FAILED."""

    USER_REJECTED = "user-rejected"
    REVERTED = "reverted"
    NETWORK_ERROR = "network-error"
    TIMEOUT = "timeout"


class OperationKind(str, Enum):
    APPROVE = "approve"
    SWAP = "swap"


@dataclass(frozen=True)
class OperationState:
    """Snapshot of a tracker's current status."""

    status: OperationStatus = OperationStatus.IDLE
    reason: Optional[FailureReason] = None
    error_message: Optional[str] = None
    tx_hash: Optional[str] = None
    operation_id: Optional[str] = None
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def is_idle(self) -> bool:
        return self.status == OperationStatus.IDLE

    @property
    def is_pending(self) -> bool:
        return self.status in (
            OperationStatus.PENDING_SIGNATURE,
            OperationStatus.PENDING_CONFIRMATION,
        )

    @property
    def is_terminal(self) -> bool:
        return self.status in (OperationStatus.SUCCEEDED, OperationStatus.FAILED)

    @property
    def succeeded(self) -> bool:
        return self.status == OperationStatus.SUCCEEDED

    @property
    def failed(self) -> bool:
        return self.status == OperationStatus.FAILED


class SwapAction(str, Enum):
    """The single action actionable at a given moment."""

    APPROVE = "approve"
    SWAP = "swap"
    NONE = "none"


class ValidationFailure(str, Enum):
    """Why no swap is currently actionable. Surfaced as UI state, never raised."""

    NO_ACCOUNT = "no_account"
    AMOUNT_NOT_POSITIVE = "amount_not_positive"
    NO_DESTINATION_TOKEN = "no_destination_token"
    INSUFFICIENT_BALANCE = "insufficient_balance"
    APPROVAL_PENDING = "approval_pending"
    SWAP_PENDING = "swap_pending"


@dataclass(frozen=True)
class SwapIntent:
    """What the user currently asks for. Rebuilt on every evaluation."""

    from_token: Token
    to_token: Optional[Token]
    amount_in: int


@dataclass(frozen=True)
class ApprovalRequest:
    token: str
    spender: str
    amount: int
    owner: str


@dataclass(frozen=True)
class SwapRequest:
    amount_in: int
    amount_out_min: int
    path: List[str]
    recipient: str
    deadline: int


# =============================================================================
# Errors
# =============================================================================


class SwapError(Exception):
    """Base exception for the swap core."""
    pass


class ParseError(SwapError, ValueError):
    """User-entered amount text is not a valid non-negative decimal."""
    pass


class OperationError(SwapError):
    """An operation could not be submitted or did not settle successfully."""

    def __init__(self, message: str, reason: Optional[FailureReason] = None):
        super().__init__(message)
        self.message = message
        self.reason = reason


class SubmissionError(OperationError):
    """Wallet rejection, RPC failure, or a submission while one is in flight."""
    pass


class SettlementFailure(OperationError):
    """The transaction was broadcast but reverted or never confirmed."""
    pass


class ActionUnavailableError(SwapError):
    """Requested an action that is not the currently actionable one."""

    def __init__(self, requested: SwapAction, current: SwapAction):
        super().__init__(
            f"Cannot {requested.value}: current action is {current.value}"
        )
        self.requested = requested
        self.current = current


class InvalidTransitionError(SwapError):
    """Illegal operation status transition."""

    def __init__(self, from_status: OperationStatus, to_status: OperationStatus, message: str = ""):
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(
            message or f"Invalid transition from {from_status.value} to {to_status.value}"
        )
