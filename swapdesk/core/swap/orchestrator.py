"""
Swap Orchestrator

Decides which action (approve, swap, or none) is actionable for the
current session inputs and submits it through the matching tracker.

Every decision is recomputed from the latest inputs on each call; nothing
derived is cached.
"""

import asyncio
import logging
import time
from typing import Callable, List, Optional, Protocol, Sequence, Set

from ...config import Settings, settings as default_settings
from ..execution.tx_builder import MAX_UINT256
from . import gates
from .amounts import AmountField
from .messages import failure_message, status_message, success_message
from .models import (
    ActionUnavailableError,
    ApprovalRequest,
    OperationState,
    OperationStatus,
    Pool,
    SwapAction,
    SwapIntent,
    SwapRequest,
    Token,
    ValidationFailure,
)
from .pools import counterpart_tokens, find_pool
from .reset import ResetScheduler
from .tracker import OperationHandle, TransactionStateTracker


# Any positive output is accepted unless slippage protection is configured
MIN_AMOUNT_OUT = 1


class TokenQueryService(Protocol):
    async def balance_of(self, token: str, account: str) -> int: ...

    async def allowance_of(self, token: str, owner: str, spender: str) -> int: ...


class AmountOutQuoter(Protocol):
    async def get_amounts_out(self, router: str, amount_in: int, path: Sequence[str]) -> List[int]: ...


class SwapOrchestrator:
    """
    Central decision engine for one exchange session.

    Inputs (amount text, tokens, account, balances, allowance) are set by
    the UI and by query refreshes; ``current_action()`` is re-derived from
    them on every call. Tracker status changes drive the follow-ups:
    approval success refreshes the allowance, swap success zeroes the
    amount, and any terminal outcome arms the reset timer.
    """

    def __init__(
        self,
        from_token: Token,
        approval_tracker: TransactionStateTracker[ApprovalRequest],
        swap_tracker: TransactionStateTracker[SwapRequest],
        token_query: Optional[TokenQueryService] = None,
        *,
        account: Optional[str] = None,
        pools: Sequence[Pool] = (),
        quoter: Optional[AmountOutQuoter] = None,
        config: Optional[Settings] = None,
        clock: Callable[[], float] = time.time,
        logger: Optional[logging.Logger] = None,
    ):
        self.config = config or default_settings
        self.logger = logger or logging.getLogger(__name__)
        self.router_address = self.config.router_address
        self.approval_tracker = approval_tracker
        self.swap_tracker = swap_tracker
        self.token_query = token_query
        self.quoter = quoter
        self.pools = list(pools)
        self._clock = clock

        self.account = account
        self.from_token = from_token
        self.to_token: Optional[Token] = None
        self.amount = AmountField(decimals=from_token.decimals)

        # Latest completed query results; None until the first one lands
        self.balance: Optional[int] = None
        self.to_balance: Optional[int] = None
        self.allowance: Optional[int] = None

        self._background: Set[asyncio.Task] = set()

        self.reset_scheduler = ResetScheduler(
            on_reset=self._reset_session,
            delay_seconds=self.config.reset_delay_seconds,
        )
        self.reset_scheduler.watch(approval_tracker)
        self.reset_scheduler.watch(swap_tracker)

        self._unsubscribers = [
            approval_tracker.subscribe(self._on_approval_status),
            swap_tracker.subscribe(self._on_swap_status),
        ]

    # -------------------------------------------------------------------------
    # Inputs
    # -------------------------------------------------------------------------

    @property
    def amount_in(self) -> int:
        return self.amount.amount

    def set_amount_text(self, text: str) -> bool:
        """Apply user input; a failed parse keeps the previous value and returns False."""
        return self.amount.update(text)

    def set_account(self, account: Optional[str]) -> None:
        if account == self.account:
            return
        self.account = account
        self.balance = None
        self.to_balance = None
        self.allowance = None

    def select_from_token(self, token: Token) -> None:
        if token.same_as(self.from_token):
            return
        self.from_token = token
        self.balance = None
        self.allowance = None
        self.amount.rescale(token.decimals)

        if self.to_token is not None:
            stale = self.to_token.same_as(token) or (
                self.pools
                and not any(
                    self.to_token.address.lower() == other.lower()
                    for other in counterpart_tokens(self.pools, token.address)
                )
            )
            if stale:
                self.select_to_token(None)

    def select_to_token(self, token: Optional[Token]) -> None:
        if token is None and self.to_token is None:
            return
        if token is not None and token.same_as(self.to_token):
            return
        self.to_token = token
        self.to_balance = None

    def apply_balance(self, balance: Optional[int]) -> None:
        self.balance = balance

    def apply_to_balance(self, balance: Optional[int]) -> None:
        self.to_balance = balance

    def apply_allowance(self, allowance: Optional[int]) -> None:
        self.allowance = allowance

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    async def refresh(self) -> None:
        """Re-query balances and allowance concurrently."""
        await asyncio.gather(
            self.refresh_balance(),
            self.refresh_allowance(),
            self.refresh_to_balance(),
        )

    async def refresh_balance(self) -> None:
        account, token = self.account, self.from_token
        if not account or self.token_query is None:
            return
        try:
            balance = await self.token_query.balance_of(token.address, account)
        except Exception as e:
            self.logger.warning(f"Balance query failed for {token.address}: {e}")
            return
        if account == self.account and token.same_as(self.from_token):
            self.apply_balance(balance)

    async def refresh_to_balance(self) -> None:
        account, token = self.account, self.to_token
        if not account or token is None or self.token_query is None:
            return
        try:
            balance = await self.token_query.balance_of(token.address, account)
        except Exception as e:
            self.logger.warning(f"Balance query failed for {token.address}: {e}")
            return
        if account == self.account and token.same_as(self.to_token):
            self.apply_to_balance(balance)

    async def refresh_allowance(self) -> None:
        account, token = self.account, self.from_token
        if not account or self.token_query is None:
            return
        try:
            allowance = await self.token_query.allowance_of(token.address, account, self.router_address)
        except Exception as e:
            self.logger.warning(f"Allowance query failed for {token.address}: {e}")
            return
        if account == self.account and token.same_as(self.from_token):
            self.apply_allowance(allowance)

    async def quote_amount_out(self) -> Optional[int]:
        """Expected output through the selected pair, if a quoter is available."""
        if self.quoter is None or self.to_token is None or not gates.is_positive(self.amount_in):
            return None
        amounts = await self.quoter.get_amounts_out(
            self.router_address,
            self.amount_in,
            [self.from_token.address, self.to_token.address],
        )
        return amounts[-1] if amounts else None

    def pair_address(self) -> Optional[str]:
        if self.to_token is None:
            return None
        pool = find_pool(self.pools, self.from_token.address, self.to_token.address)
        return pool.address if pool else None

    # -------------------------------------------------------------------------
    # Decisions
    # -------------------------------------------------------------------------

    def intent(self) -> SwapIntent:
        return SwapIntent(
            from_token=self.from_token,
            to_token=self.to_token,
            amount_in=self.amount_in,
        )

    def needs_approval(self) -> bool:
        return gates.needs_approval(self.amount_in, self.allowance)

    def has_sufficient_balance(self) -> bool:
        return gates.has_sufficient_balance(self.amount_in, self.balance)

    @property
    def is_approving(self) -> bool:
        return self.approval_tracker.state.is_pending

    @property
    def is_swapping(self) -> bool:
        return self.swap_tracker.state.is_pending

    def blocking_reason(self) -> Optional[ValidationFailure]:
        """Why nothing is actionable right now, or None when an action is."""
        if not self.account:
            return ValidationFailure.NO_ACCOUNT
        if self.needs_approval():
            return ValidationFailure.APPROVAL_PENDING if self.is_approving else None
        if self.is_swapping:
            return ValidationFailure.SWAP_PENDING
        if not gates.is_positive(self.amount_in):
            return ValidationFailure.AMOUNT_NOT_POSITIVE
        if not self.has_sufficient_balance():
            return ValidationFailure.INSUFFICIENT_BALANCE
        if self.to_token is None:
            return ValidationFailure.NO_DESTINATION_TOKEN
        return None

    def current_action(self) -> SwapAction:
        if self.blocking_reason() is not None:
            return SwapAction.NONE
        return SwapAction.APPROVE if self.needs_approval() else SwapAction.SWAP

    def failure_message(self) -> Optional[str]:
        return failure_message(self.approval_tracker.state, self.swap_tracker.state)

    def success_message(self) -> Optional[str]:
        return success_message(self.approval_tracker.state, self.swap_tracker.state)

    def status_message(self) -> Optional[str]:
        return status_message(self.approval_tracker.state, self.swap_tracker.state)

    # -------------------------------------------------------------------------
    # Actions
    # -------------------------------------------------------------------------

    def request_approve(self) -> OperationHandle:
        """Approve the router for the maximum amount of the source token."""
        current = self.current_action()
        if current != SwapAction.APPROVE:
            raise ActionUnavailableError(SwapAction.APPROVE, current)

        request = ApprovalRequest(
            token=self.from_token.address,
            spender=self.router_address,
            amount=MAX_UINT256,
            owner=self.account,
        )
        self.logger.info(f"Approval requested: {request.token} for {request.spender}")
        return self.approval_tracker.submit(request)

    def request_swap(self, deadline_seconds: Optional[int] = None) -> OperationHandle:
        """Swap exactly ``amount_in`` of the source token for the destination token."""
        current = self.current_action()
        if current != SwapAction.SWAP:
            raise ActionUnavailableError(SwapAction.SWAP, current)

        if deadline_seconds is None:
            deadline_seconds = self.config.swap_deadline_seconds

        request = SwapRequest(
            amount_in=self.amount_in,
            amount_out_min=MIN_AMOUNT_OUT,
            path=[self.from_token.address, self.to_token.address],
            recipient=self.account,
            deadline=int(self._clock()) + int(deadline_seconds),
        )
        self.logger.info(
            f"Swap requested: {request.amount_in} {request.path[0]} -> {request.path[1]}, "
            f"deadline {request.deadline}"
        )
        return self.swap_tracker.submit(request)

    async def close(self) -> None:
        """Detach from trackers and stop background work."""
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers.clear()
        self.reset_scheduler.close()
        for task in list(self._background):
            task.cancel()
        if self._background:
            await asyncio.gather(*self._background, return_exceptions=True)
        self._background.clear()

    # -------------------------------------------------------------------------
    # Reactions
    # -------------------------------------------------------------------------

    def _on_approval_status(self, previous: OperationState, current: OperationState) -> None:
        if current.status == OperationStatus.SUCCEEDED:
            self._spawn(self.refresh_allowance())

    def _on_swap_status(self, previous: OperationState, current: OperationState) -> None:
        if current.status == OperationStatus.SUCCEEDED:
            self.amount.clear()
            self._spawn(self.refresh())

    def _spawn(self, coro) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    def _reset_session(self) -> None:
        for tracker in (self.approval_tracker, self.swap_tracker):
            if tracker.state.is_terminal:
                tracker.reset()
        self.select_to_token(None)
        self.amount.clear()
