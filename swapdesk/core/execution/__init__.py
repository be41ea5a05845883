"""
Transaction Execution Layer

Blockchain-facing half of the exchange:
- TransactionBuilder: Encodes approvals and router swaps
- ApprovalSender / SwapSender (``submitter``): Sign, broadcast and wait
  for settlement

Usage:
    from swapdesk.core.execution.submitter import ApprovalSender, SwapSender
    from swapdesk.providers import JsonRpcProvider

    provider = JsonRpcProvider()
    approvals = ApprovalSender(provider)
    swaps = SwapSender(provider)
"""

from .models import (
    TransactionType,
    TransactionStatus,
    PreparedTransaction,
    TransactionResult,
)

from .tx_builder import (
    TransactionBuilder,
    MAX_UINT256,
)

__all__ = [
    # Models
    "TransactionType",
    "TransactionStatus",
    "PreparedTransaction",
    "TransactionResult",
    # Builder
    "TransactionBuilder",
    "MAX_UINT256",
]
