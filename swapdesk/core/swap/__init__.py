"""
Swap Orchestration Module

Decides between approve and swap, tracks both operations through their
on-chain lifecycle, and resets the session after a terminal outcome.
"""

from .models import (
    ActionUnavailableError,
    ApprovalRequest,
    FailureReason,
    InvalidTransitionError,
    OperationError,
    OperationKind,
    OperationState,
    OperationStatus,
    ParseError,
    Pool,
    SettlementFailure,
    SubmissionError,
    SwapAction,
    SwapError,
    SwapIntent,
    SwapRequest,
    Token,
    ValidationFailure,
)
from .amounts import AmountField, format_amount, parse_amount
from .gates import has_sufficient_balance, is_positive, needs_approval
from .tracker import OperationHandle, OperationSender, TransactionStateTracker
from .reset import ResetScheduler
from .orchestrator import SwapOrchestrator, TokenQueryService

__all__ = [
    # Orchestration
    "SwapOrchestrator",
    "TransactionStateTracker",
    "OperationHandle",
    "OperationSender",
    "ResetScheduler",
    "TokenQueryService",
    # Amounts and checks
    "AmountField",
    "parse_amount",
    "format_amount",
    "has_sufficient_balance",
    "needs_approval",
    "is_positive",
    # Models
    "Token",
    "Pool",
    "OperationKind",
    "OperationState",
    "OperationStatus",
    "FailureReason",
    "SwapAction",
    "SwapIntent",
    "ApprovalRequest",
    "SwapRequest",
    "ValidationFailure",
    # Errors
    "SwapError",
    "ParseError",
    "OperationError",
    "SubmissionError",
    "SettlementFailure",
    "ActionUnavailableError",
    "InvalidTransitionError",
]
