"""
Wire-level transaction types shared by the builder, provider and senders.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Mapping, Optional


def _hex_int(value: Optional[str]) -> Optional[int]:
    return int(value, 16) if value else None


class TransactionType(str, Enum):
    APPROVE = "approve"
    SWAP = "swap"


class TransactionStatus(str, Enum):
    """Where a broadcast transaction is, as seen through receipts."""
    SUBMITTED = "submitted"
    CONFIRMING = "confirming"  # mined, short of required confirmations
    CONFIRMED = "confirmed"
    REVERTED = "reverted"
    TIMEOUT = "timeout"


@dataclass
class PreparedTransaction:
    """Unsigned call the wallet behind the RPC endpoint signs and sends."""
    tx_type: TransactionType
    chain_id: int
    from_address: str
    to_address: str
    data: str
    value: int = 0
    gas_limit: Optional[int] = None
    description: str = ""
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def selector(self) -> str:
        return self.data[:10]

    def call_object(self, *, for_send: bool = True) -> Dict[str, Any]:
        """
        JSON-RPC call object.

        ``eth_estimateGas`` gets the bare from/to/data (plus value when
        non-zero); ``eth_sendTransaction`` also carries chain id and gas.
        """
        call: Dict[str, Any] = {
            "from": self.from_address,
            "to": self.to_address,
            "data": self.data,
        }
        if for_send:
            call["value"] = hex(self.value)
            call["chainId"] = hex(self.chain_id)
            if self.gas_limit is not None:
                call["gas"] = hex(self.gas_limit)
        elif self.value:
            call["value"] = hex(self.value)
        return call


@dataclass
class TransactionResult:
    tx_hash: str
    status: TransactionStatus = TransactionStatus.SUBMITTED
    block_number: Optional[int] = None
    block_hash: Optional[str] = None
    gas_used: Optional[int] = None
    effective_gas_price: Optional[int] = None
    confirmations: int = 0
    confirmed_at: Optional[datetime] = None
    error: Optional[str] = None

    @classmethod
    def from_receipt(cls, tx_hash: str, receipt: Mapping[str, Any]) -> "TransactionResult":
        """Populate block and gas fields from an ``eth_getTransactionReceipt`` result."""
        reverted = _hex_int(receipt.get("status")) == 0
        return cls(
            tx_hash=tx_hash,
            status=TransactionStatus.REVERTED if reverted else TransactionStatus.CONFIRMING,
            block_number=_hex_int(receipt.get("blockNumber")),
            block_hash=receipt.get("blockHash"),
            gas_used=_hex_int(receipt.get("gasUsed")),
            effective_gas_price=_hex_int(receipt.get("effectiveGasPrice")),
            error="Transaction reverted" if reverted else None,
        )

    @property
    def is_success(self) -> bool:
        return self.status == TransactionStatus.CONFIRMED
