"""
Exchange submission service.

Turns approval and swap requests into transactions, has the wallet sign
and broadcast them, and waits for settlement. Every failure is raised as
a categorised SubmissionError / SettlementFailure so the tracker can
report FAILED(reason).
"""

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Optional

import httpx

from ...config import Settings, settings as default_settings
from ...providers.rpc import JsonRpcProvider, RpcError
from ..swap.models import (
    ApprovalRequest,
    FailureReason,
    SettlementFailure,
    SubmissionError,
    SwapRequest,
)
from .models import PreparedTransaction, TransactionResult, TransactionStatus
from .tx_builder import TransactionBuilder


logger = logging.getLogger(__name__)

# EIP-1193 "User Rejected Request"
USER_REJECTED_CODE = 4001


def classify_rpc_error(error: Exception) -> FailureReason:
    """Map a provider error onto a user-facing failure category."""
    if isinstance(error, RpcError):
        text = (error.message or "").lower()
        if error.code == USER_REJECTED_CODE or "user rejected" in text or "user denied" in text:
            return FailureReason.USER_REJECTED
        if error.code == 3 or "revert" in text:
            return FailureReason.REVERTED
        return FailureReason.NETWORK_ERROR
    if isinstance(error, httpx.TimeoutException):
        return FailureReason.TIMEOUT
    return FailureReason.NETWORK_ERROR


class ChainSender(ABC):
    """
    Shared broadcast and settlement logic.

    Subclasses build the transaction for their request type.
    """

    def __init__(
        self,
        provider: JsonRpcProvider,
        config: Optional[Settings] = None,
    ):
        self.provider = provider
        self.config = config or default_settings

    @abstractmethod
    async def build(self, params) -> PreparedTransaction:
        """Prepare the unsigned transaction for ``params``."""

    async def send(self, params) -> str:
        try:
            tx = await self.build(params)
            gas = await self.provider.estimate_gas(tx)
            tx.gas_limit = gas * (100 + self.config.gas_limit_buffer_percentage) // 100
            return await self.provider.send_transaction(tx)
        except (RpcError, httpx.HTTPError) as e:
            raise SubmissionError(str(e), reason=classify_rpc_error(e)) from e

    async def settle(self, tx_hash: str) -> TransactionResult:
        """
        Poll for the receipt until confirmed, reverted, or timed out.

        Raises:
            SettlementFailure: On revert or confirmation timeout.
        """
        timeout = self.config.confirmation_timeout_seconds
        deadline = time.monotonic() + timeout

        while time.monotonic() <= deadline:
            try:
                receipt = await self.provider.get_transaction_receipt(tx_hash)
                if receipt:
                    result = TransactionResult.from_receipt(tx_hash, receipt)
                    if result.status == TransactionStatus.REVERTED:
                        logger.warning(f"Transaction reverted: {tx_hash}")
                        raise SettlementFailure(result.error, reason=FailureReason.REVERTED)

                    if result.block_number is None:
                        logger.warning(f"Receipt for {tx_hash} has no block number yet")
                    else:
                        result.confirmations = await self.provider.block_number() - result.block_number + 1

                    if result.block_number is not None and result.confirmations >= self.config.required_confirmations:
                        result.status = TransactionStatus.CONFIRMED
                        result.confirmed_at = datetime.now(timezone.utc)
                        logger.info(
                            f"Transaction confirmed: {tx_hash} "
                            f"(block {result.block_number}, {result.confirmations} confirmations)"
                        )
                        return result
            except (RpcError, httpx.HTTPError) as e:
                logger.warning(f"Error checking transaction status: {e}")
            except ValueError as e:
                logger.warning(f"Malformed receipt for {tx_hash}: {e}")

            await asyncio.sleep(self.config.confirmation_poll_interval_seconds)

        raise SettlementFailure(f"Confirmation timeout after {timeout}s", reason=FailureReason.TIMEOUT)


class ApprovalSender(ChainSender):
    async def build(self, params: ApprovalRequest) -> PreparedTransaction:
        return TransactionBuilder.build_erc20_approve(
            chain_id=self.config.chain_id,
            owner_address=params.owner,
            token_address=params.token,
            spender_address=params.spender,
            amount=params.amount,
        )


class SwapSender(ChainSender):
    async def build(self, params: SwapRequest) -> PreparedTransaction:
        amount_out_min = await self._amount_out_floor(params)
        return TransactionBuilder.build_swap_exact_tokens_for_tokens(
            chain_id=self.config.chain_id,
            from_address=params.recipient,
            router_address=self.config.router_address,
            amount_in=params.amount_in,
            amount_out_min=amount_out_min,
            path=params.path,
            recipient=params.recipient,
            deadline=params.deadline,
        )

    async def _amount_out_floor(self, params: SwapRequest) -> int:
        bps = self.config.swap_slippage_bps
        if bps is None:
            return params.amount_out_min

        amounts = await self.provider.get_amounts_out(
            self.config.router_address, params.amount_in, params.path
        )
        if not amounts:
            raise SubmissionError(
                f"Router returned no quote for {params.path}", reason=FailureReason.NETWORK_ERROR
            )
        protected = amounts[-1] * (10_000 - bps) // 10_000
        return max(params.amount_out_min, protected)
