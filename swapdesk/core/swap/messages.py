"""User-facing outcome messages derived from tracker states."""

from typing import Optional

from .models import FailureReason, OperationState


_FAILURE_TEXT = {
    FailureReason.USER_REJECTED: "rejected in wallet",
    FailureReason.REVERTED: "transaction reverted",
    FailureReason.NETWORK_ERROR: "network error",
    FailureReason.TIMEOUT: "confirmation timed out",
}


def _describe(state: OperationState) -> str:
    text = _FAILURE_TEXT.get(state.reason, "unknown error") if state.reason else "unknown error"
    if state.error_message:
        return f"{text} ({state.error_message})"
    return text


def failure_message(approval: OperationState, swap: OperationState) -> Optional[str]:
    if approval.failed:
        return f"Approval failed - {_describe(approval)}"
    if swap.failed:
        return f"Swap failed - {_describe(swap)}"
    return None


def success_message(approval: OperationState, swap: OperationState) -> Optional[str]:
    if swap.succeeded:
        return "Swap executed successfully"
    if approval.succeeded:
        return "Approval successful"
    return None


def status_message(approval: OperationState, swap: OperationState) -> Optional[str]:
    """Failure if any, else success if any, else nothing."""
    return failure_message(approval, swap) or success_message(approval, swap)
