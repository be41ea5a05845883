"""
Transaction State Tracker

Wraps one kind of on-chain operation (approve or swap) and exposes its
lifecycle: IDLE -> PENDING_SIGNATURE -> PENDING_CONFIRMATION ->
{SUCCEEDED | FAILED} -> IDLE.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Generic, List, Optional, Protocol, Set, TypeVar
from uuid import uuid4

from .models import (
    FailureReason,
    InvalidTransitionError,
    OperationError,
    OperationKind,
    OperationState,
    OperationStatus,
    SubmissionError,
)


P = TypeVar("P")
P_contra = TypeVar("P_contra", contravariant=True)

StatusListener = Callable[[OperationState, OperationState], None]


class OperationSender(Protocol[P_contra]):
    """Blockchain-facing half of an operation."""

    async def send(self, params: P_contra) -> str:
        """Have the wallet sign and broadcast; return the transaction hash."""
        ...

    async def settle(self, tx_hash: str) -> Any:
        """Wait for settlement; raise SettlementFailure on revert or timeout."""
        ...


@dataclass
class OperationHandle:
    """Returned immediately by ``submit``; completion is observed via status changes."""

    operation_id: str
    kind: OperationKind
    task: "asyncio.Task[OperationState]" = field(repr=False)

    async def wait(self) -> OperationState:
        return await asyncio.shield(self.task)

    @property
    def done(self) -> bool:
        return self.task.done()


class TransactionStateTracker(Generic[P]):
    """
    Tracks the lifecycle of one kind of operation.

    Features:
    - Rejects a new submission while one is in flight
    - Converts sender errors into FAILED(reason)
    - Notifies subscribers synchronously after every transition
    """

    TRANSITIONS: Dict[OperationStatus, Set[OperationStatus]] = {
        OperationStatus.IDLE: {
            OperationStatus.PENDING_SIGNATURE,
        },
        OperationStatus.PENDING_SIGNATURE: {
            OperationStatus.PENDING_CONFIRMATION,
            OperationStatus.FAILED,  # Rejected in wallet or RPC failure
        },
        OperationStatus.PENDING_CONFIRMATION: {
            OperationStatus.SUCCEEDED,
            OperationStatus.FAILED,
        },
        OperationStatus.SUCCEEDED: {
            OperationStatus.IDLE,
        },
        OperationStatus.FAILED: {
            OperationStatus.IDLE,
        },
    }

    def __init__(
        self,
        kind: OperationKind,
        sender: OperationSender[P],
        logger: Optional[logging.Logger] = None,
    ):
        self.kind = kind
        self._sender = sender
        self.logger = logger or logging.getLogger(__name__)
        self._state = OperationState()
        self._listeners: List[StatusListener] = []
        self._handle: Optional[OperationHandle] = None

    @property
    def state(self) -> OperationState:
        return self._state

    def status(self) -> OperationStatus:
        return self._state.status

    @property
    def handle(self) -> Optional[OperationHandle]:
        return self._handle

    def subscribe(self, listener: StatusListener) -> Callable[[], None]:
        """Register ``listener(previous, current)``; returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def submit(self, params: P) -> OperationHandle:
        """
        Begin the operation and return immediately.

        A tracker sitting in a terminal state is reset first, so a retry
        after failure or a follow-up after success is accepted.

        Raises:
            SubmissionError: If an operation of this kind is already in flight.
        """
        if self._state.is_pending:
            raise SubmissionError(
                f"{self.kind.value} already in progress ({self._state.status.value})"
            )
        loop = asyncio.get_running_loop()
        if self._state.is_terminal:
            self.reset()

        operation_id = f"{self.kind.value}_{uuid4().hex[:12]}"
        self._transition(OperationState(
            status=OperationStatus.PENDING_SIGNATURE,
            operation_id=operation_id,
        ))

        task = loop.create_task(self._run(operation_id, params))
        self._handle = OperationHandle(operation_id=operation_id, kind=self.kind, task=task)
        return self._handle

    def reset(self) -> None:
        """Return a terminal tracker to IDLE."""
        if not self._state.is_terminal:
            raise InvalidTransitionError(
                from_status=self._state.status,
                to_status=OperationStatus.IDLE,
                message="Can only reset from terminal states",
            )
        self._transition(OperationState())

    async def _run(self, operation_id: str, params: P) -> OperationState:
        try:
            tx_hash = await self._sender.send(params)
            self._transition(OperationState(
                status=OperationStatus.PENDING_CONFIRMATION,
                tx_hash=tx_hash,
                operation_id=operation_id,
            ))

            await self._sender.settle(tx_hash)
            self._transition(OperationState(
                status=OperationStatus.SUCCEEDED,
                tx_hash=tx_hash,
                operation_id=operation_id,
            ))
        except OperationError as e:
            self._fail(operation_id, e.reason or FailureReason.NETWORK_ERROR, e.message)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self.logger.exception(f"Unexpected {self.kind.value} failure")
            self._fail(operation_id, FailureReason.NETWORK_ERROR, str(e))

        return self._state

    def _fail(self, operation_id: str, reason: FailureReason, message: str) -> None:
        self.logger.warning(f"{self.kind.value} {operation_id} failed ({reason.value}): {message}")
        self._transition(OperationState(
            status=OperationStatus.FAILED,
            reason=reason,
            error_message=message,
            tx_hash=self._state.tx_hash,
            operation_id=operation_id,
        ))

    def _transition(self, new_state: OperationState) -> None:
        previous = self._state
        allowed = self.TRANSITIONS.get(previous.status, set())
        if new_state.status not in allowed:
            raise InvalidTransitionError(from_status=previous.status, to_status=new_state.status)

        self._state = new_state
        self.logger.info(
            f"{self.kind.value}: {previous.status.value} -> {new_state.status.value}"
            f"{f' (tx {new_state.tx_hash})' if new_state.tx_hash else ''}"
        )

        for listener in list(self._listeners):
            try:
                listener(previous, new_state)
            except Exception as e:
                self.logger.error(f"Status listener error: {e}")
