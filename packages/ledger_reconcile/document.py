"""In-memory ledger journal documents.

A :class:`LedgerDocument` is the editable source text the reconciler works
against: it knows just enough journal syntax to find a transaction around a
line, read and write clearing marks, annotate effective dates, and add or
delete whole transactions. It also carries the editor-ish state a front end
needs (cursor line, highlighted transaction, narrowing) and exposes explicit
save/kill observer registration instead of global hooks.

Journal shape understood here::

    2024/01/05=2024/01/07 * (1042) Coffee Shop
        ! Expenses:Dining          $4.50
        Assets:Checking

Lines are addressed 1-based, like ledger reports them.
"""

from __future__ import annotations

import datetime as dt
import os
import re
from collections.abc import Callable
from typing import TypeAlias
from os import PathLike
from pathlib import Path

from .logging_setup import get_logger
from .models import MARK_STATUSES, STATUS_MARKS, UNCLEARED, ClearingStatus, validate_status

_logger = get_logger("ledger_reconcile.document")

_HEADER_RE = re.compile(
    r"^(?P<head>\d[^\s=]*(?:=\S*)?)(?:(?P<sep>[ \t]+)(?P<mark>[*!][ \t]*)?(?P<rest>.*))?$"
)
_POSTING_RE = re.compile(r"^(?P<indent>[ \t]+)(?P<mark>[*!][ \t]*)?(?P<rest>[^;\s].*)$")
_ACCOUNT_END_RE = re.compile(r"\t| {2,}|;")
_POSTING_EDATE_RE = re.compile(r"[ \t]*;[ \t]*\[=[^\]]*\][ \t]*$")
_DATE_FORMATS = ("%Y/%m/%d", "%Y-%m-%d", "%Y.%m.%d")

DocumentObserver: TypeAlias = Callable[["LedgerDocument"], None]


def parse_journal_date(head: str) -> dt.date | None:
    """Parse the booking date of a header token (``DATE`` or ``DATE=EDATE``)."""

    text = head.split("=", 1)[0]
    for fmt in _DATE_FORMATS:
        try:
            return dt.datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    return None


def is_header_line(text: str) -> bool:
    return bool(text) and text[0].isdigit()


def is_posting_line(text: str) -> bool:
    return _POSTING_RE.match(text) is not None


class LedgerDocument:
    """An editable journal text with save/kill observers."""

    def __init__(
        self,
        text: str = "",
        *,
        path: str | PathLike[str] | None = None,
        name: str | None = None,
    ) -> None:
        self.path: Path | None = Path(path) if path is not None else None
        self.name = name or (self.path.name if self.path else "*ledger*")
        self._lines: list[str] = text.splitlines()
        self._trailing_newline = text.endswith("\n") or not text
        self.modified = False
        self.killed = False
        self.point = 1
        self.highlight: tuple[int, int] | None = None
        self.narrowed_to: str | None = None
        self._save_observers: list[DocumentObserver] = []
        self._kill_observers: list[DocumentObserver] = []

    @classmethod
    def from_file(cls, path: str | PathLike[str]) -> LedgerDocument:
        p = Path(path)
        return cls(p.read_text(encoding="utf-8"), path=p)

    def __repr__(self) -> str:  # pragma: no cover - trivial repr
        return f"LedgerDocument(name={self.name!r}, lines={len(self._lines)})"

    # ------------------------------------------------------------------
    # Text access
    # ------------------------------------------------------------------

    @property
    def text(self) -> str:
        body = "\n".join(self._lines)
        return body + "\n" if self._lines and self._trailing_newline else body

    @property
    def line_count(self) -> int:
        return len(self._lines)

    def line(self, lineno: int) -> str:
        self._check_line(lineno)
        return self._lines[lineno - 1]

    def contains(self, needle: str) -> bool:
        """Plain substring search over the whole text."""

        return bool(needle) and needle in self.text

    def accounts(self) -> list[str]:
        """Account names used by postings, sorted; feeds the account prompt."""

        names: set[str] = set()
        for text in self._lines:
            m = _POSTING_RE.match(text)
            if m is None:
                continue
            # Account ends at a tab or two spaces; the amount follows.
            name = _ACCOUNT_END_RE.split(m.group("rest"), maxsplit=1)[0].strip()
            if name.startswith(("(", "[")) and name.endswith((")", "]")):
                name = name[1:-1]
            if name:
                names.add(name)
        return sorted(names)

    def _check_line(self, lineno: int) -> None:
        if not 1 <= lineno <= len(self._lines):
            raise IndexError(f"line {lineno} outside {self.name} (1..{len(self._lines)})")

    def _set_line(self, lineno: int, text: str) -> None:
        if self._lines[lineno - 1] != text:
            self._lines[lineno - 1] = text
            self.modified = True

    # ------------------------------------------------------------------
    # Transaction structure
    # ------------------------------------------------------------------

    def transaction_bounds(self, lineno: int) -> tuple[int, int]:
        """Return the first and last line of the transaction containing ``lineno``."""

        self._check_line(lineno)
        start = lineno
        while not is_header_line(self._lines[start - 1]):
            text = self._lines[start - 1]
            # Only indented lines (postings, notes) belong to a transaction body.
            if not text.strip() or not text[0].isspace() or start == 1:
                raise LookupError(f"line {lineno} of {self.name} is not inside a transaction")
            start -= 1
        end = start
        while end < len(self._lines):
            nxt = self._lines[end]
            if not nxt.strip() or not nxt[0].isspace():
                break
            end += 1
        return start, end

    def goto(self, lineno: int) -> None:
        """Move the cursor to ``lineno`` (the navigation primitive)."""

        self._check_line(lineno)
        self.point = lineno

    def highlight_transaction_at(self, lineno: int) -> None:
        try:
            self.highlight = self.transaction_bounds(lineno)
        except LookupError:
            self.highlight = None

    # ------------------------------------------------------------------
    # Clearing marks
    # ------------------------------------------------------------------

    def status_at(self, lineno: int) -> ClearingStatus:
        """Clearing state at a header or posting line.

        A posting without its own mark inherits the transaction's mark.
        """

        text = self.line(lineno)
        if is_header_line(text):
            m = _HEADER_RE.match(text)
            mark = (m.group("mark") or "").strip() if m else ""
            return MARK_STATUSES.get(mark, UNCLEARED)
        m = _POSTING_RE.match(text)
        if m is None:
            raise LookupError(f"line {lineno} of {self.name} is neither a header nor a posting")
        mark = (m.group("mark") or "").strip()
        if mark:
            return MARK_STATUSES[mark]
        start, _ = self.transaction_bounds(lineno)
        return self.status_at(start)

    def set_status(self, lineno: int, status: ClearingStatus) -> ClearingStatus:
        """Write ``status`` as the mark at ``lineno``.

        Marking a transaction header drops the posting-level marks inside it so
        the whole transaction carries one state.
        """

        validate_status(status)
        mark = STATUS_MARKS[status]
        text = self.line(lineno)
        if is_header_line(text):
            m = _HEADER_RE.match(text)
            assert m is not None  # any digit-led line matches
            sep = m.group("sep") or " "
            rest = m.group("rest") or ""
            prefix = f"{mark} " if mark else ""
            self._set_line(lineno, f"{m.group('head')}{sep}{prefix}{rest}".rstrip())
            start, end = self.transaction_bounds(lineno)
            for n in range(start + 1, end + 1):
                pm = _POSTING_RE.match(self._lines[n - 1])
                if pm and pm.group("mark"):
                    self._set_line(n, pm.group("indent") + pm.group("rest"))
        else:
            m = _POSTING_RE.match(text)
            if m is None:
                raise LookupError(
                    f"line {lineno} of {self.name} is neither a header nor a posting"
                )
            prefix = f"{mark} " if mark else ""
            self._set_line(lineno, f"{m.group('indent')}{prefix}{m.group('rest')}")
        _logger.debug("%s:%d marked %s", self.name, lineno, status)
        return status

    def insert_effective_date(self, lineno: int, date_text: str) -> None:
        """Annotate ``lineno`` with an effective date.

        Headers get ``DATE=EDATE`` (an existing effective date is replaced);
        postings get a trailing ``; [=EDATE]`` note.
        """

        text = self.line(lineno)
        if is_header_line(text):
            m = _HEADER_RE.match(text)
            assert m is not None
            booking = m.group("head").split("=", 1)[0]
            self._set_line(lineno, f"{booking}={date_text}{text[m.end('head'):]}")
        else:
            base = _POSTING_EDATE_RE.sub("", text).rstrip()
            self._set_line(lineno, f"{base}  ; [={date_text}]")

    # ------------------------------------------------------------------
    # Whole transactions
    # ------------------------------------------------------------------

    def delete_transaction(self, lineno: int) -> None:
        """Remove the transaction around ``lineno`` and one following blank line."""

        start, end = self.transaction_bounds(lineno)
        if end < len(self._lines) and not self._lines[end].strip():
            end += 1
        del self._lines[start - 1 : end]
        self.modified = True
        self.highlight = None
        self.point = min(max(1, start), max(1, len(self._lines)))
        _logger.debug("deleted transaction at %s:%d-%d", self.name, start, end)

    def insert_transaction(self, text: str, date: dt.date | None = None) -> int:
        """Insert ``text`` before the first transaction dated after ``date``.

        Returns the line number of the inserted header. Without a date the
        transaction is appended.
        """

        block = text.strip("\n").splitlines()
        if not block:
            raise ValueError("empty transaction text")

        slot = len(self._lines) + 1
        if date is not None:
            for n, line in enumerate(self._lines, start=1):
                if not is_header_line(line):
                    continue
                m = _HEADER_RE.match(line)
                header_date = parse_journal_date(m.group("head")) if m else None
                if header_date is not None and header_date > date:
                    slot = n
                    break

        if slot > len(self._lines):
            slot_header = slot
            if self._lines and self._lines[-1].strip():
                block = ["", *block]
                slot_header += 1
            self._lines.extend(block)
            self._trailing_newline = True
        else:
            self._lines[slot - 1 : slot - 1] = [*block, ""]
            slot_header = slot
        self.modified = True
        self.point = slot_header
        return slot_header

    # ------------------------------------------------------------------
    # Narrowing
    # ------------------------------------------------------------------

    def narrow_to(self, needle: str) -> None:
        """Show only transactions whose text contains ``needle`` literally."""

        self.narrowed_to = needle

    def widen(self) -> None:
        self.narrowed_to = None

    def visible_lines(self) -> list[int]:
        if self.narrowed_to is None:
            return list(range(1, len(self._lines) + 1))
        visible: list[int] = []
        n = 1
        while n <= len(self._lines):
            if is_header_line(self._lines[n - 1]):
                start, end = self.transaction_bounds(n)
                chunk = self._lines[start - 1 : end]
                if any(self.narrowed_to in line for line in chunk):
                    visible.extend(range(start, end + 1))
                n = end + 1
            else:
                n += 1
        return visible

    # ------------------------------------------------------------------
    # Persistence and lifecycle observers
    # ------------------------------------------------------------------

    def add_save_observer(self, callback: DocumentObserver) -> None:
        if callback not in self._save_observers:
            self._save_observers.append(callback)

    def remove_save_observer(self, callback: DocumentObserver) -> None:
        if callback in self._save_observers:
            self._save_observers.remove(callback)

    def add_kill_observer(self, callback: DocumentObserver) -> None:
        if callback not in self._kill_observers:
            self._kill_observers.append(callback)

    def remove_kill_observer(self, callback: DocumentObserver) -> None:
        if callback in self._kill_observers:
            self._kill_observers.remove(callback)

    @property
    def save_observers(self) -> tuple[DocumentObserver, ...]:
        return tuple(self._save_observers)

    def save(self) -> None:
        """Write to disk (when backed by a file) and notify save observers."""

        if self.killed:
            raise RuntimeError(f"document {self.name} has been killed")
        if self.path is not None:
            tmp = self.path.with_name(self.path.name + ".tmp")
            tmp.write_text(self.text, encoding="utf-8")
            os.replace(tmp, self.path)
        self.modified = False
        _logger.debug("saved %s", self.name)
        for callback in list(self._save_observers):
            callback(self)

    def kill(self) -> None:
        """Close the document; kill observers run once."""

        if self.killed:
            return
        self.killed = True
        for callback in list(self._kill_observers):
            callback(self)
        self._save_observers.clear()
        self._kill_observers.clear()


class DocumentRegistry:
    """Open-or-reuse documents by file path."""

    def __init__(self) -> None:
        self._by_path: dict[Path, LedgerDocument] = {}

    @staticmethod
    def _key(path: str | PathLike[str]) -> Path:
        return Path(path).expanduser().resolve()

    def register(self, document: LedgerDocument) -> LedgerDocument:
        if document.path is not None:
            self._by_path[self._key(document.path)] = document
            document.add_kill_observer(self._forget)
        return document

    def open(self, path: str | PathLike[str]) -> LedgerDocument:
        key = self._key(path)
        doc = self._by_path.get(key)
        if doc is not None and not doc.killed:
            return doc
        _logger.debug("opening %s", key)
        return self.register(LedgerDocument.from_file(key))

    def get(self, path: str | PathLike[str]) -> LedgerDocument | None:
        return self._by_path.get(self._key(path))

    def documents(self) -> list[LedgerDocument]:
        return list(self._by_path.values())

    def _forget(self, document: LedgerDocument) -> None:
        if document.path is not None:
            self._by_path.pop(self._key(document.path), None)


__all__ = [
    "DocumentObserver",
    "DocumentRegistry",
    "LedgerDocument",
    "is_header_line",
    "is_posting_line",
    "parse_journal_date",
]
