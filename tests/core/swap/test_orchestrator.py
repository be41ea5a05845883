"""
Tests for the Swap Orchestrator

Action selection, request construction, reactions to tracker outcomes
and the post-outcome reset.
"""

import asyncio
from unittest.mock import AsyncMock

import pytest

from swapdesk.core.execution import MAX_UINT256
from swapdesk.core.swap import (
    ActionUnavailableError,
    FailureReason,
    OperationStatus,
    Pool,
    SettlementFailure,
    SubmissionError,
    SwapAction,
    ValidationFailure,
)

from helpers import ACCOUNT, RESET_DELAY, ROUTER, TOKEN_A, TOKEN_B, TOKEN_C, spin


def ready(orchestrator, amount="100", balance=500, allowance=MAX_UINT256):
    orchestrator.set_amount_text(amount)
    orchestrator.apply_balance(balance)
    orchestrator.apply_allowance(allowance)
    return orchestrator


async def settle(sender, tx_hash="0xfeed"):
    await spin()
    sender.sign(tx_hash)
    await spin()
    sender.confirm()
    await spin()


# =============================================================================
# Action selection
# =============================================================================


class TestCurrentAction:
    def test_approve_when_allowance_short(self, orchestrator):
        ready(orchestrator, amount="100", balance=500, allowance=0)

        assert orchestrator.needs_approval() is True
        assert orchestrator.current_action() == SwapAction.APPROVE

    def test_swap_when_everything_checks_out(self, orchestrator):
        ready(orchestrator)

        assert orchestrator.current_action() == SwapAction.SWAP
        assert orchestrator.blocking_reason() is None

    def test_insufficient_balance_is_reported_specifically(self, orchestrator):
        ready(orchestrator, amount="600", balance=500)

        assert orchestrator.current_action() == SwapAction.NONE
        assert orchestrator.blocking_reason() == ValidationFailure.INSUFFICIENT_BALANCE

    def test_unknown_balance_blocks_swap(self, orchestrator):
        ready(orchestrator, balance=None)

        assert orchestrator.blocking_reason() == ValidationFailure.INSUFFICIENT_BALANCE

    def test_zero_amount(self, orchestrator):
        ready(orchestrator, amount="", allowance=0)

        assert orchestrator.needs_approval() is False
        assert orchestrator.current_action() == SwapAction.NONE
        assert orchestrator.blocking_reason() == ValidationFailure.AMOUNT_NOT_POSITIVE

    def test_no_destination(self, orchestrator):
        ready(orchestrator)
        orchestrator.select_to_token(None)

        assert orchestrator.blocking_reason() == ValidationFailure.NO_DESTINATION_TOKEN

    def test_disconnected(self, orchestrator):
        ready(orchestrator)
        orchestrator.set_account(None)

        assert orchestrator.blocking_reason() == ValidationFailure.NO_ACCOUNT
        assert orchestrator.balance is None

    @pytest.mark.parametrize("allowance", [None, 0, 99, 100, 101])
    @pytest.mark.parametrize("balance", [None, 0, 100, 1000])
    def test_never_swap_while_approval_needed(self, orchestrator, allowance, balance):
        ready(orchestrator, amount="100", balance=balance, allowance=allowance)

        if orchestrator.needs_approval():
            assert orchestrator.current_action() != SwapAction.SWAP

    def test_intent_reflects_inputs(self, orchestrator):
        ready(orchestrator, amount="42")
        intent = orchestrator.intent()

        assert intent.from_token == TOKEN_A
        assert intent.to_token == TOKEN_B
        assert intent.amount_in == 42


class TestInputs:
    def test_failed_parse_keeps_previous_amount(self, orchestrator):
        orchestrator.set_amount_text("12")

        assert orchestrator.set_amount_text("12.5") is False
        assert orchestrator.amount_in == 12
        assert orchestrator.amount.text == "12"

    def test_amount_uses_source_token_decimals(self, orchestrator):
        orchestrator.select_from_token(TOKEN_C)
        orchestrator.set_amount_text("1.5")

        assert orchestrator.amount_in == 1_500_000

    def test_changing_source_drops_stale_queries(self, orchestrator):
        ready(orchestrator)
        orchestrator.select_from_token(TOKEN_C)

        assert orchestrator.balance is None
        assert orchestrator.allowance is None
        assert orchestrator.amount_in == 100_000_000

    def test_changing_source_clears_non_counterpart_destination(self, orchestrator):
        orchestrator.pools = [
            Pool(address="0xp1", token0=TOKEN_A.address, token1=TOKEN_B.address),
            Pool(address="0xp2", token0=TOKEN_A.address, token1=TOKEN_C.address),
        ]
        orchestrator.select_from_token(TOKEN_C)

        assert orchestrator.to_token is None

    def test_selecting_destination_as_source_clears_it(self, orchestrator):
        orchestrator.select_from_token(TOKEN_B)

        assert orchestrator.to_token is None

    def test_pair_address(self, orchestrator):
        orchestrator.pools = [Pool(address="0xpair", token0=TOKEN_B.address, token1=TOKEN_A.address)]

        assert orchestrator.pair_address() == "0xpair"
        orchestrator.select_to_token(None)
        assert orchestrator.pair_address() is None


# =============================================================================
# Queries
# =============================================================================


class TestRefresh:
    @pytest.mark.asyncio
    async def test_refresh_loads_balances_and_allowance(self, orchestrator, token_query):
        token_query.balances[(TOKEN_A.address, ACCOUNT)] = 500
        token_query.balances[(TOKEN_B.address, ACCOUNT)] = 7
        token_query.allowances[(TOKEN_A.address, ACCOUNT, ROUTER)] = 100

        await orchestrator.refresh()

        assert orchestrator.balance == 500
        assert orchestrator.to_balance == 7
        assert orchestrator.allowance == 100

    @pytest.mark.asyncio
    async def test_failed_query_keeps_previous_values(self, orchestrator, token_query):
        ready(orchestrator, balance=500, allowance=100)
        token_query.fail = True

        await orchestrator.refresh()

        assert orchestrator.balance == 500
        assert orchestrator.allowance == 100

    @pytest.mark.asyncio
    async def test_result_for_previous_token_is_discarded(self, orchestrator):
        gate = asyncio.Event()

        async def slow_balance(token, account):
            await gate.wait()
            return 999

        orchestrator.token_query = AsyncMock()
        orchestrator.token_query.balance_of.side_effect = slow_balance

        task = asyncio.create_task(orchestrator.refresh_balance())
        await spin()
        orchestrator.select_from_token(TOKEN_C)
        gate.set()
        await task

        assert orchestrator.balance is None

    @pytest.mark.asyncio
    async def test_quote_amount_out(self, orchestrator):
        orchestrator.quoter = AsyncMock()
        orchestrator.quoter.get_amounts_out.return_value = [100, 95]
        orchestrator.set_amount_text("100")

        assert await orchestrator.quote_amount_out() == 95
        orchestrator.quoter.get_amounts_out.assert_awaited_once_with(
            ROUTER, 100, [TOKEN_A.address, TOKEN_B.address]
        )

    @pytest.mark.asyncio
    async def test_quote_needs_amount(self, orchestrator):
        orchestrator.quoter = AsyncMock()

        assert await orchestrator.quote_amount_out() is None
        orchestrator.quoter.get_amounts_out.assert_not_awaited()


# =============================================================================
# Requests and reactions
# =============================================================================


class TestApprove:
    @pytest.mark.asyncio
    async def test_approve_then_swap(self, orchestrator, approval_sender, token_query):
        ready(orchestrator, amount="100", balance=500, allowance=0)

        orchestrator.request_approve()
        assert orchestrator.is_approving is True
        assert orchestrator.current_action() == SwapAction.NONE
        assert orchestrator.blocking_reason() == ValidationFailure.APPROVAL_PENDING

        token_query.allowances[(TOKEN_A.address, ACCOUNT, ROUTER)] = MAX_UINT256
        await settle(approval_sender)

        request = approval_sender.requests[0]
        assert request.token == TOKEN_A.address
        assert request.spender == ROUTER
        assert request.amount == MAX_UINT256
        assert request.owner == ACCOUNT

        assert orchestrator.approval_tracker.status() == OperationStatus.SUCCEEDED
        assert orchestrator.allowance == MAX_UINT256
        assert orchestrator.current_action() == SwapAction.SWAP
        assert orchestrator.status_message() == "Approval successful"
        await orchestrator.close()

    @pytest.mark.asyncio
    async def test_approve_rejected_when_not_actionable(self, orchestrator):
        ready(orchestrator)

        with pytest.raises(ActionUnavailableError):
            orchestrator.request_approve()

    @pytest.mark.asyncio
    async def test_double_click_does_not_submit_twice(self, orchestrator, approval_sender):
        ready(orchestrator, allowance=0)
        orchestrator.request_approve()

        with pytest.raises(ActionUnavailableError):
            orchestrator.request_approve()
        await spin()
        assert len(approval_sender.requests) == 1


class TestSwap:
    @pytest.mark.asyncio
    async def test_swap_request_contents(self, orchestrator, swap_sender):
        ready(orchestrator, amount="100")

        orchestrator.request_swap(deadline_seconds=60)
        await spin()

        request = swap_sender.requests[0]
        assert request.amount_in == 100
        assert request.amount_out_min == 1
        assert request.path == [TOKEN_A.address, TOKEN_B.address]
        assert request.recipient == ACCOUNT
        assert request.deadline == 1_060

    @pytest.mark.asyncio
    async def test_default_deadline_from_settings(self, orchestrator, swap_sender):
        ready(orchestrator)

        orchestrator.request_swap()
        await spin()

        assert swap_sender.requests[0].deadline == 1_120

    @pytest.mark.asyncio
    async def test_swap_rejected_when_not_actionable(self, orchestrator):
        ready(orchestrator, amount="600", balance=500)

        with pytest.raises(ActionUnavailableError) as exc_info:
            orchestrator.request_swap()

        assert exc_info.value.current == SwapAction.NONE

    @pytest.mark.asyncio
    async def test_pending_swap_blocks_another(self, orchestrator):
        ready(orchestrator)
        orchestrator.request_swap()

        assert orchestrator.is_swapping is True
        assert orchestrator.blocking_reason() == ValidationFailure.SWAP_PENDING
        with pytest.raises(ActionUnavailableError):
            orchestrator.request_swap()

    @pytest.mark.asyncio
    async def test_success_zeroes_amount_then_resets(self, orchestrator, swap_sender):
        ready(orchestrator)
        orchestrator.request_swap()

        await settle(swap_sender)

        assert orchestrator.swap_tracker.status() == OperationStatus.SUCCEEDED
        assert orchestrator.amount_in == 0
        assert orchestrator.status_message() == "Swap executed successfully"
        assert orchestrator.to_token == TOKEN_B

        await asyncio.sleep(RESET_DELAY * 3)

        assert orchestrator.to_token is None
        assert orchestrator.amount.text == "0"
        assert orchestrator.swap_tracker.status() == OperationStatus.IDLE
        assert orchestrator.status_message() is None

    @pytest.mark.asyncio
    async def test_user_rejection_is_recoverable(self, orchestrator, swap_sender):
        ready(orchestrator)
        assert orchestrator.current_action() == SwapAction.SWAP

        orchestrator.request_swap()
        await spin()
        swap_sender.reject(SubmissionError("User denied", reason=FailureReason.USER_REJECTED))
        await spin()

        state = orchestrator.swap_tracker.state
        assert state.status == OperationStatus.FAILED
        assert state.reason == FailureReason.USER_REJECTED
        assert orchestrator.status_message().startswith("Swap failed - rejected in wallet")
        assert orchestrator.current_action() == SwapAction.SWAP

        orchestrator.request_swap()
        assert orchestrator.swap_tracker.status() == OperationStatus.PENDING_SIGNATURE
        await orchestrator.close()

    @pytest.mark.asyncio
    async def test_revert_keeps_amount(self, orchestrator, swap_sender):
        ready(orchestrator)
        orchestrator.request_swap()
        await spin()
        swap_sender.sign()
        await spin()
        swap_sender.fail_settlement(SettlementFailure("Transaction reverted", reason=FailureReason.REVERTED))
        await spin()

        assert orchestrator.swap_tracker.state.reason == FailureReason.REVERTED
        assert orchestrator.amount_in == 100
        await orchestrator.close()


class TestResetTiming:
    @pytest.mark.asyncio
    async def test_new_request_cancels_pending_reset(self, orchestrator, approval_sender, token_query):
        ready(orchestrator, allowance=0)
        token_query.balances[(TOKEN_A.address, ACCOUNT)] = 500
        token_query.allowances[(TOKEN_A.address, ACCOUNT, ROUTER)] = MAX_UINT256

        orchestrator.request_approve()
        await settle(approval_sender)
        assert orchestrator.reset_scheduler.pending is True

        orchestrator.request_swap()
        assert orchestrator.reset_scheduler.pending is False

        await asyncio.sleep(RESET_DELAY * 3)

        assert orchestrator.to_token == TOKEN_B
        assert orchestrator.amount_in == 100
        assert orchestrator.status_message() == "Approval successful"
        await orchestrator.close()

    @pytest.mark.asyncio
    async def test_failure_message_wins_over_success(self, orchestrator, approval_sender, swap_sender, token_query):
        ready(orchestrator, allowance=0)
        token_query.balances[(TOKEN_A.address, ACCOUNT)] = 500
        token_query.allowances[(TOKEN_A.address, ACCOUNT, ROUTER)] = MAX_UINT256

        orchestrator.request_approve()
        await settle(approval_sender)
        orchestrator.request_swap()
        await spin()
        swap_sender.reject(SubmissionError("rpc down", reason=FailureReason.NETWORK_ERROR))
        await spin()

        assert orchestrator.success_message() == "Approval successful"
        assert orchestrator.failure_message() == "Swap failed - network error (rpc down)"
        assert orchestrator.status_message() == orchestrator.failure_message()

        await asyncio.sleep(RESET_DELAY * 3)
        assert orchestrator.status_message() is None
        assert orchestrator.approval_tracker.status() == OperationStatus.IDLE
