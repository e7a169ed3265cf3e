"""Commodity amounts as consumed by the reconciler.

The reconciler never does real commodity arithmetic (prices, lots, conversion);
it only needs an opaque amount that can be parsed from ledger output, subtracted
from a target, tested for zero and printed back. Quantities are ``Decimal`` so
``$100.00 - $100.00`` prints as ``$0.00`` with the precision of the inputs.

Display follows ledger conventions: one-character commodities are written as a
prefix (``$-4.50``), longer ones as a suffix separated by a space
(``4.50 EUR``).
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

# Lot prices, lot dates and per-unit costs trail the amount proper.
_ANNOTATION_RE = re.compile(r"\s+[{@(\[]")

_AMOUNT_RE = re.compile(
    r"""
    (?P<sign>-)?\s*
    (?P<pre>"[^"]+"|[^\d\s.,\-"]+)?\s*
    (?P<sign2>-)?
    (?P<num>\d[\d,]*(?:\.\d*)?|\.\d+)
    (?:\s*(?P<post>"[^"]+"|[^\d\s.,\-"][^\s]*))?
    """,
    re.VERBOSE,
)


class CommodityError(ValueError):
    """Raised for unparsable amounts or arithmetic across commodities."""


@dataclass(frozen=True, slots=True)
class Amount:
    """A single-commodity quantity, e.g. ``$4.50`` or ``12 AAPL``."""

    quantity: Decimal
    commodity: str = ""

    def is_zero(self) -> bool:
        return self.quantity == 0

    def __neg__(self) -> Amount:
        return Amount(-self.quantity, self.commodity)

    def __sub__(self, other: Amount) -> Amount:
        if not isinstance(other, Amount):
            return NotImplemented
        # A bare number (no commodity) adopts the other side's commodity; this
        # is how "0" from an empty balance report meets a "$" target.
        if self.commodity and other.commodity and self.commodity != other.commodity:
            raise CommodityError(
                f"Can't subtract different commodities: {self.commodity!r} and {other.commodity!r}"
            )
        return Amount(self.quantity - other.quantity, self.commodity or other.commodity)

    def __str__(self) -> str:
        number = format(self.quantity, "f")
        if not self.commodity:
            return number
        if len(self.commodity) > 1:
            return f"{number} {self.commodity}"
        return f"{self.commodity}{number}"


def parse_amount(text: str, *, default_commodity: str = "") -> Amount:
    """Parse ``text`` such as ``$4.50``, ``-$4.50``, ``$-1,200`` or ``3 EUR``.

    ``default_commodity`` is applied when the text carries a bare number
    (e.g. a target typed as ``100``). Raises :class:`CommodityError` when the
    text is not an amount.
    """

    s = (text or "").strip()
    cut = _ANNOTATION_RE.search(s)
    if cut:
        s = s[: cut.start()]
    m = _AMOUNT_RE.fullmatch(s)
    if not m:
        raise CommodityError(f"Not an amount: {text!r}")
    if m.group("pre") and m.group("post"):
        raise CommodityError(f"Amount has two commodities: {text!r}")

    try:
        quantity = Decimal(m.group("num").replace(",", ""))
    except InvalidOperation as e:  # pragma: no cover - regex already constrains digits
        raise CommodityError(f"Not an amount: {text!r}") from e
    if m.group("sign") or m.group("sign2"):
        quantity = -quantity

    commodity = (m.group("pre") or m.group("post") or "").strip('"')
    return Amount(quantity, commodity or default_commodity)


__all__ = ["Amount", "CommodityError", "parse_amount"]
