"""
Transaction builder for ERC-20 approvals and router swaps, plus the
read-only call encodings used by the token query service.
"""

from typing import List, Sequence

from .models import PreparedTransaction, TransactionType


# Function selectors
ERC20_APPROVE_SELECTOR = "0x095ea7b3"     # approve(address,uint256)
ERC20_BALANCE_OF_SELECTOR = "0x70a08231"  # balanceOf(address)
ERC20_ALLOWANCE_SELECTOR = "0xdd62ed3e"   # allowance(address,address)
ERC20_DECIMALS_SELECTOR = "0x313ce567"    # decimals()
ROUTER_SWAP_EXACT_TOKENS_SELECTOR = "0x38ed1739"  # swapExactTokensForTokens(uint256,uint256,address[],address,uint256)
ROUTER_GET_AMOUNTS_OUT_SELECTOR = "0xd06ca61f"    # getAmountsOut(uint256,address[])

# Unlimited approval
MAX_UINT256 = 2**256 - 1

_WORD_HEX = 64


def _encode_uint256(value: int) -> str:
    """Encode a uint256 as a 32-byte hex string (without 0x prefix)."""
    if value < 0 or value > MAX_UINT256:
        raise ValueError(f"Value out of uint256 range: {value}")
    return format(value, "064x")


def _encode_address(address: str) -> str:
    """Encode an address as a 32-byte hex string (without 0x prefix)."""
    addr = address.lower().replace("0x", "")
    return addr.zfill(64)


def _encode_address_array(addresses: Sequence[str]) -> str:
    """Tail encoding of a dynamic address[]: length word followed by elements."""
    return _encode_uint256(len(addresses)) + "".join(_encode_address(a) for a in addresses)


def _words(data: str) -> List[str]:
    raw = data[2:] if data.startswith("0x") else data
    if len(raw) % _WORD_HEX:
        raise ValueError("ABI data is not a whole number of 32-byte words")
    return [raw[i:i + _WORD_HEX] for i in range(0, len(raw), _WORD_HEX)]


def decode_uint256(data: str) -> int:
    """Decode a single uint256 return value."""
    words = _words(data)
    if not words:
        raise ValueError("Empty return data")
    return int(words[0], 16)


def decode_uint256_array(data: str) -> List[int]:
    """Decode a uint256[] returned as the only value."""
    words = _words(data)
    if not words:
        raise ValueError("Empty return data")
    offset = int(words[0], 16) // 32
    length = int(words[offset], 16)
    return [int(word, 16) for word in words[offset + 1: offset + 1 + length]]


def encode_balance_of(account: str) -> str:
    return ERC20_BALANCE_OF_SELECTOR + _encode_address(account)


def encode_allowance(owner: str, spender: str) -> str:
    return ERC20_ALLOWANCE_SELECTOR + _encode_address(owner) + _encode_address(spender)


def encode_decimals() -> str:
    return ERC20_DECIMALS_SELECTOR


def encode_get_amounts_out(amount_in: int, path: Sequence[str]) -> str:
    # Head: amountIn, offset of path (2 words)
    return (
        ROUTER_GET_AMOUNTS_OUT_SELECTOR +
        _encode_uint256(amount_in) +
        _encode_uint256(2 * 32) +
        _encode_address_array(path)
    )


class TransactionBuilder:
    """
    Builds the two transactions the exchange sends: an ERC-20 approval of
    the router and a V2-style ``swapExactTokensForTokens``.

    Addresses are lower-cased on the way in so prepared transactions
    compare equal regardless of the checksum casing callers pass.
    """

    @staticmethod
    def _prepare(
        tx_type: TransactionType,
        chain_id: int,
        sender: str,
        target: str,
        calldata: str,
        description: str,
    ) -> PreparedTransaction:
        return PreparedTransaction(
            tx_type=tx_type,
            chain_id=chain_id,
            from_address=sender.lower(),
            to_address=target.lower(),
            data=calldata,
            description=description,
        )

    @staticmethod
    def build_erc20_approve(
        chain_id: int,
        owner_address: str,
        token_address: str,
        spender_address: str,
        amount: int = MAX_UINT256,
        description: str = "",
    ) -> PreparedTransaction:
        """Let ``spender_address`` move ``amount`` (unlimited by default) of the owner's tokens."""
        calldata = ERC20_APPROVE_SELECTOR + _encode_address(spender_address) + _encode_uint256(amount)
        return TransactionBuilder._prepare(
            TransactionType.APPROVE,
            chain_id,
            owner_address,
            token_address,
            calldata,
            description or f"Approve {spender_address[:10]}... for {token_address[:10]}...",
        )

    @staticmethod
    def build_swap_exact_tokens_for_tokens(
        chain_id: int,
        from_address: str,
        router_address: str,
        amount_in: int,
        amount_out_min: int,
        path: Sequence[str],
        recipient: str,
        deadline: int,
        description: str = "",
    ) -> PreparedTransaction:
        """
        Build a router swap of an exact input amount.

        Args:
            chain_id: The chain ID
            from_address: The wallet paying ``amount_in``
            router_address: The V2-style router
            amount_in: Exact input, in base units of path[0]
            amount_out_min: Output floor, in base units of path[-1]
            path: Token addresses, input first
            recipient: Beneficiary of the output tokens
            deadline: Unix timestamp after which the router rejects the swap

        Raises:
            ValueError: If the path has fewer than two tokens or an
                amount does not fit in a uint256.
        """
        if len(path) < 2:
            raise ValueError("Swap path needs at least two tokens")

        # Head: amountIn, amountOutMin, offset(path), to, deadline (5 words)
        head = (
            _encode_uint256(amount_in)
            + _encode_uint256(amount_out_min)
            + _encode_uint256(5 * 32)
            + _encode_address(recipient)
            + _encode_uint256(deadline)
        )
        return TransactionBuilder._prepare(
            TransactionType.SWAP,
            chain_id,
            from_address,
            router_address,
            ROUTER_SWAP_EXACT_TOKENS_SELECTOR + head + _encode_address_array(path),
            description or f"Swap {path[0][:10]}... -> {path[-1][:10]}...",
        )
