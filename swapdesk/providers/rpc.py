"""Async JSON-RPC client for the wallet/node the exchange talks to."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence

import httpx

from ..config import settings
from ..core.execution import tx_builder
from ..core.execution.models import PreparedTransaction


logger = logging.getLogger(__name__)


class RpcError(RuntimeError):
    """Error object returned by the JSON-RPC endpoint."""

    def __init__(self, code: Optional[int], message: str, data: Any = None):
        super().__init__(f"RPC error {code}: {message}")
        self.code = code
        self.message = message
        self.data = data


class JsonRpcProvider:
    """
    Token queries, account lookup and transaction broadcast over JSON-RPC.

    Balance and allowance reads are plain ``eth_call``s and safe to repeat.
    Broadcasting uses ``eth_sendTransaction`` so the wallet behind the
    endpoint does the signing.
    """

    def __init__(
        self,
        rpc_url: Optional[str] = None,
        *,
        timeout_s: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.rpc_url = rpc_url or settings.rpc_url
        self._client = client or httpx.AsyncClient(timeout=timeout_s or settings.rpc_timeout_seconds)
        self._request_id = 0

    async def _rpc_call(self, method: str, params: List[Any]) -> Any:
        """Make an RPC call and return its ``result``."""
        self._request_id += 1
        payload = {
            "jsonrpc": "2.0",
            "method": method,
            "params": params,
            "id": self._request_id,
        }

        response = await self._client.post(self.rpc_url, json=payload)
        response.raise_for_status()
        result = response.json()

        if result.get("error"):
            error = result["error"]
            raise RpcError(error.get("code"), error.get("message", ""), error.get("data"))

        return result.get("result")

    async def _call(self, to: str, data: str, block: str = "latest") -> str:
        return await self._rpc_call("eth_call", [{"to": to, "data": data}, block])

    # Token Query Service

    async def balance_of(self, token: str, account: str) -> int:
        return tx_builder.decode_uint256(await self._call(token, tx_builder.encode_balance_of(account)))

    async def allowance_of(self, token: str, owner: str, spender: str) -> int:
        return tx_builder.decode_uint256(
            await self._call(token, tx_builder.encode_allowance(owner, spender))
        )

    async def decimals_of(self, token: str) -> int:
        return tx_builder.decode_uint256(await self._call(token, tx_builder.encode_decimals()))

    async def get_amounts_out(self, router: str, amount_in: int, path: Sequence[str]) -> List[int]:
        return tx_builder.decode_uint256_array(
            await self._call(router, tx_builder.encode_get_amounts_out(amount_in, path))
        )

    # Account Provider

    async def accounts(self) -> List[str]:
        return list(await self._rpc_call("eth_accounts", []) or [])

    # Submission

    async def estimate_gas(self, tx: PreparedTransaction) -> int:
        return int(await self._rpc_call("eth_estimateGas", [tx.call_object(for_send=False)]), 16)

    async def send_transaction(self, tx: PreparedTransaction) -> str:
        tx_hash = await self._rpc_call("eth_sendTransaction", [tx.call_object()])
        logger.info(f"Transaction submitted: {tx_hash}")
        return tx_hash

    async def get_transaction_receipt(self, tx_hash: str) -> Optional[Dict[str, Any]]:
        return await self._rpc_call("eth_getTransactionReceipt", [tx_hash])

    async def block_number(self) -> int:
        return int(await self._rpc_call("eth_blockNumber", []), 16)

    async def close(self) -> None:
        """Close HTTP client."""
        await self._client.aclose()
