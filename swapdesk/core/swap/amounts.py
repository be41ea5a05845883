"""Conversion between user-entered decimal text and base-unit integer amounts."""

import logging
import re
from dataclasses import dataclass

from .models import ParseError


logger = logging.getLogger(__name__)

_DECIMAL_RE = re.compile(r"^(?P<whole>[0-9]*)(?:\.(?P<fraction>[0-9]*))?$")


def parse_amount(text: str, decimals: int) -> int:
    """
    Parse decimal text into an amount in the token's base unit.

    Empty (or all-whitespace) text is zero. "1.", ".5" and "007" are
    accepted; signs, exponents, separators and bare "." are not. Trailing
    fractional zeros do not count against ``decimals``.

    Raises:
        ParseError: If the text is not a non-negative decimal numeral or
            carries more fractional digits than ``decimals`` allows.
    """
    if decimals < 0:
        raise ParseError(f"decimals must be non-negative, got {decimals}")

    value = (text or "").strip()
    if not value:
        return 0

    match = _DECIMAL_RE.match(value)
    if not match:
        raise ParseError(f"Invalid amount: {text!r}")

    whole = match.group("whole") or ""
    fraction = (match.group("fraction") or "").rstrip("0")
    if not whole and not match.group("fraction"):
        raise ParseError(f"Invalid amount: {text!r}")

    if len(fraction) > decimals:
        raise ParseError(
            f"Amount {text!r} has more than {decimals} fractional digits"
        )

    return int(whole or "0") * 10 ** decimals + int(fraction.ljust(decimals, "0") or "0")


def format_amount(amount: int, decimals: int) -> str:
    """Render a base-unit amount as minimal decimal text."""
    if amount < 0:
        raise ValueError("Amounts are never negative")
    if decimals == 0:
        return str(amount)

    whole, fraction = divmod(amount, 10 ** decimals)
    fraction_str = str(fraction).rjust(decimals, "0").rstrip("0")
    return f"{whole}.{fraction_str}" if fraction_str else str(whole)


@dataclass
class AmountField:
    """
    Input box state: the text as last accepted and its parsed amount.

    A failed parse leaves both untouched.
    """

    decimals: int
    text: str = ""
    amount: int = 0

    def update(self, text: str) -> bool:
        try:
            amount = parse_amount(text, self.decimals)
        except ParseError as e:
            logger.debug(f"Ignoring amount input {text!r}: {e}")
            return False

        self.text = text
        self.amount = amount
        return True

    def rescale(self, decimals: int) -> None:
        """Re-parse the current text against new token decimals."""
        self.decimals = decimals
        if not self.update(self.text):
            self.text = ""
            self.amount = 0

    def clear(self) -> None:
        self.text = "0"
        self.amount = 0
