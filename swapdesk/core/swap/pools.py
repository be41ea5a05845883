"""Lookups over the externally supplied pool directory."""

from typing import Iterable, List, Optional

from .models import Pool


def _same(a: str, b: str) -> bool:
    return a.lower() == b.lower()


def available_tokens(pools: Iterable[Pool]) -> List[str]:
    """Every token address that appears in some pool, first-seen order."""
    seen = set()
    tokens: List[str] = []
    for pool in pools:
        for token in (pool.token0, pool.token1):
            key = token.lower()
            if key not in seen:
                seen.add(key)
                tokens.append(token)
    return tokens


def counterpart_tokens(pools: Iterable[Pool], token: str) -> List[str]:
    """Tokens that share a pool with ``token``."""
    if not token:
        return []
    result: List[str] = []
    for pool in pools:
        if _same(pool.token0, token):
            other = pool.token1
        elif _same(pool.token1, token):
            other = pool.token0
        else:
            continue
        if not any(_same(other, existing) for existing in result):
            result.append(other)
    return result


def find_pool(pools: Iterable[Pool], token_a: str, token_b: str) -> Optional[Pool]:
    if not token_a or not token_b:
        return None
    for pool in pools:
        if (_same(pool.token0, token_a) and _same(pool.token1, token_b)) or (
            _same(pool.token0, token_b) and _same(pool.token1, token_a)
        ):
            return pool
    return None
