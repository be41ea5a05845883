"""Fakes shared by the swap orchestration tests."""

import asyncio
from typing import Any, Dict, List, Optional, Tuple

from swapdesk.core.swap import Token


ACCOUNT = "0x1111111111111111111111111111111111111111"
ROUTER = "0x7a250d5630b4cf539739df2c5dacb4c659f2488d"
TOKEN_A = Token(address="0xaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaa", decimals=0, symbol="AAA")
TOKEN_B = Token(address="0xbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbb", decimals=0, symbol="BBB")
TOKEN_C = Token(address="0xcccccccccccccccccccccccccccccccccccccccc", decimals=6, symbol="CCC")

RESET_DELAY = 0.05


async def spin(times: int = 20) -> None:
    """Let scheduled tasks run until they block again."""
    for _ in range(times):
        await asyncio.sleep(0)


class ControlledSender:
    """Sender whose signature and settlement are released by the test."""

    def __init__(self):
        self.requests: List[Any] = []
        self._signed: Optional[asyncio.Future] = None
        self._settled: Optional[asyncio.Future] = None

    async def send(self, params: Any) -> str:
        self.requests.append(params)
        self._signed = asyncio.get_running_loop().create_future()
        return await self._signed

    async def settle(self, tx_hash: str) -> Any:
        self._settled = asyncio.get_running_loop().create_future()
        return await self._settled

    def sign(self, tx_hash: str = "0xfeed") -> None:
        self._signed.set_result(tx_hash)

    def reject(self, error: Exception) -> None:
        self._signed.set_exception(error)

    def confirm(self) -> None:
        self._settled.set_result(None)

    def fail_settlement(self, error: Exception) -> None:
        self._settled.set_exception(error)


class InstantSender:
    """Sender that completes immediately with a preset outcome."""

    def __init__(self, tx_hash: str = "0xbeef", send_error: Exception = None, settle_error: Exception = None):
        self.tx_hash = tx_hash
        self.send_error = send_error
        self.settle_error = settle_error
        self.requests: List[Any] = []

    async def send(self, params: Any) -> str:
        self.requests.append(params)
        if self.send_error:
            raise self.send_error
        return self.tx_hash

    async def settle(self, tx_hash: str) -> Any:
        if self.settle_error:
            raise self.settle_error
        return None


class FakeTokenQuery:
    """In-memory balances and allowances."""

    def __init__(self):
        self.balances: Dict[Tuple[str, str], int] = {}
        self.allowances: Dict[Tuple[str, str, str], int] = {}
        self.fail = False

    async def balance_of(self, token: str, account: str) -> int:
        if self.fail:
            raise RuntimeError("rpc down")
        return self.balances.get((token.lower(), account.lower()), 0)

    async def allowance_of(self, token: str, owner: str, spender: str) -> int:
        if self.fail:
            raise RuntimeError("rpc down")
        return self.allowances.get((token.lower(), owner.lower(), spender.lower()), 0)


