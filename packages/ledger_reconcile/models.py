"""Data models shared by the reconciler.

Transactions and postings are rebuilt from the ledger query on every refresh;
nothing here is mutated after construction. A :class:`LineBinding` ties one
rendered view line to the place in a source document it stands for.
"""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Literal

if TYPE_CHECKING:
    from .document import LedgerDocument

# ---------------------------------------------------------------------------
# Clearing status
# ---------------------------------------------------------------------------

# Closed set of clearing states; no other value is valid anywhere.
ClearingStatus = Literal["uncleared", "pending", "cleared"]
UNCLEARED: ClearingStatus = "uncleared"
PENDING: ClearingStatus = "pending"
CLEARED: ClearingStatus = "cleared"
ALLOWED_STATUSES: frozenset[str] = frozenset({UNCLEARED, PENDING, CLEARED})

# Ledger's state marks as written in a journal file.
STATUS_MARKS: dict[str, str] = {CLEARED: "*", PENDING: "!", UNCLEARED: ""}
MARK_STATUSES: dict[str, ClearingStatus] = {"*": CLEARED, "!": PENDING}

# Posting line number ledger reports when the posting has no line of its own
# (e.g. the reconciled account is the default account of the journal).
NO_POSTING_LINE = -1


def validate_status(value: str) -> ClearingStatus:
    if value not in ALLOWED_STATUSES:
        raise ValueError(
            f"Unsupported clearing status: {value!r}. Allowed: {sorted(ALLOWED_STATUSES)}"
        )
    return value  # type: ignore[return-value]


# ---------------------------------------------------------------------------
# Query records
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Posting:
    """One account/amount line of a transaction as reported by ledger.

    ``line`` is the 1-based line of the posting in its source file or
    ``NO_POSTING_LINE``. ``amount`` is the text ledger printed, shown as is.
    """

    line: int
    account: str
    amount: str
    status: ClearingStatus = UNCLEARED

    def __post_init__(self) -> None:
        validate_status(self.status)

    @property
    def has_line(self) -> bool:
        return self.line != NO_POSTING_LINE


@dataclass(frozen=True, slots=True)
class Transaction:
    """A transaction with the postings that matched the query.

    ``source`` is the file designator ledger printed; an empty string or the
    stdin marker means the text that was piped to it.
    """

    source: str
    line: int
    date: dt.date
    code: str | None
    payee: str
    postings: tuple[Posting, ...] = field(default_factory=tuple)


# ---------------------------------------------------------------------------
# View bindings
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class LineBinding:
    """Where a rendered view line points: a document and a 1-based line."""

    document: LedgerDocument
    line: int

    def is_valid(self) -> bool:
        return not self.document.killed and 1 <= self.line <= self.document.line_count


__all__ = [
    "ALLOWED_STATUSES",
    "CLEARED",
    "ClearingStatus",
    "LineBinding",
    "MARK_STATUSES",
    "NO_POSTING_LINE",
    "PENDING",
    "Posting",
    "STATUS_MARKS",
    "Transaction",
    "UNCLEARED",
    "validate_status",
]
