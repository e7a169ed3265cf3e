"""Run the external ``ledger`` binary and decode what it prints.

The journal text is always piped on stdin (``-f -``) so unsaved edits are
visible to every query. Three command shapes are used:

- ``--uncleared --real emacs --sort SORT ACCOUNT``: uncleared postings as Lisp
  data, decoded by :func:`parse_emacs_output` into :class:`Transaction` records
  in exactly the order ledger printed them.
- ``balance --real --limit "cleared or pending" --empty --collapse --format
  %(scrub(display_total)) ACCOUNT``: the cleared-or-pending balance.
- ``xact WORDS...``: a generated transaction used when adding one.

A binary that cannot run, times out, or fails without producing output raises
:class:`LedgerExecError`; it is never read as "no transactions".
"""

from __future__ import annotations

import datetime as dt
import subprocess
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Any, TypeAlias

from .document import LedgerDocument
from .logging_setup import get_logger
from .models import CLEARED, PENDING, UNCLEARED, ClearingStatus, Posting, Transaction
from .sexp import Symbol, read_sexp

_logger = get_logger("ledger_reconcile.executor")

# File designators ledger prints for journal text read from standard input.
STDIN_MARKERS: frozenset[str] = frozenset({"", "-", "/dev/stdin", "<stdin>"})

# Named sort keys offered interactively; anything else passes through as-is.
SORT_KEYS: dict[str, str] = {
    "file": "(0)",
    "date": "(date)",
    "amount": "(amount)",
    "payee": "(payee)",
}

BALANCE_FORMAT = "%(scrub(display_total))"

_ERROR_BANNERS = ("While ", "Error: ")

Runner: TypeAlias = Callable[[Sequence[str], str, float], subprocess.CompletedProcess[str]]


class LedgerExecError(RuntimeError):
    """Raised when the ledger binary cannot produce usable output."""


def is_stdin(designator: str | None) -> bool:
    return designator is None or designator.strip() in STDIN_MARKERS


def resolve_sort_key(choice: str) -> str:
    """Map ``file``/``date``/``amount``/``payee`` to a sort expression."""

    key = choice.strip()
    return SORT_KEYS.get(key.lower(), key)


def _run_subprocess(
    cmd: Sequence[str], input_text: str, timeout: float
) -> subprocess.CompletedProcess[str]:
    return subprocess.run(
        list(cmd),
        input=input_text,
        capture_output=True,
        text=True,
        timeout=timeout,
        check=False,
    )


@dataclass(slots=True)
class LedgerExecutor:
    """Thin wrapper over the ledger CLI with a swappable process runner."""

    binary: str = "ledger"
    timeout: float = 60.0
    runner: Runner = field(default=_run_subprocess)

    def run(self, document: LedgerDocument, *args: str) -> str:
        """Run ledger over ``document`` and return its stdout."""

        cmd = [self.binary, "-f", "-", *args]
        _logger.debug("exec: %s", " ".join(cmd))
        try:
            result = self.runner(cmd, document.text, self.timeout)
        except FileNotFoundError as e:
            raise LedgerExecError(
                f"{self.binary} not found. Is ledger installed and on PATH?"
            ) from e
        except subprocess.TimeoutExpired as e:
            raise LedgerExecError(f"{self.binary} timed out after {self.timeout:g}s") from e
        except OSError as e:
            raise LedgerExecError(f"could not run {self.binary}: {e}") from e

        out = result.stdout or ""
        if out.lstrip().startswith(_ERROR_BANNERS):
            raise LedgerExecError(out.strip())
        if result.returncode != 0:
            err = (result.stderr or "").strip()
            if not out.strip():
                raise LedgerExecError(err or f"{self.binary} exited with status {result.returncode}")
            _logger.warning(
                "%s exited with status %d but produced output: %s",
                self.binary,
                result.returncode,
                err,
            )
        return out

    def query_uncleared(
        self, document: LedgerDocument, account: str, sort_key: str = "(0)"
    ) -> list[Transaction]:
        """Uncleared real postings for ``account``, in ledger's order."""

        out = self.run(document, "--uncleared", "--real", "emacs", "--sort", sort_key, account)
        return parse_emacs_output(out)

    def cleared_or_pending_balance(self, document: LedgerDocument, account: str) -> str:
        """Raw ``balance`` output for the cleared-or-pending postings of ``account``."""

        return self.run(
            document,
            "balance",
            "--real",
            "--limit",
            "cleared or pending",
            "--empty",
            "--collapse",
            "--format",
            BALANCE_FORMAT,
            account,
        )

    def generate_xact(self, document: LedgerDocument, words: Sequence[str]) -> str:
        """Ask ledger to expand ``DATE PAYEE ...`` into a full transaction."""

        return self.run(document, "xact", *words)


# ---------------------------------------------------------------------------
# Decoding ``ledger emacs`` output
# ---------------------------------------------------------------------------


def _decode_status(value: Any) -> ClearingStatus:
    if value is None:
        return UNCLEARED
    name = str(value)
    if name in {"t", CLEARED}:
        return CLEARED
    if name == PENDING:
        return PENDING
    raise ValueError(f"unknown posting state {value!r} in ledger output")


def _decode_date(value: Any) -> dt.date:
    # Emacs time value: (HIGH LOW [USEC]) seconds since the epoch.
    if isinstance(value, list) and len(value) >= 2:
        seconds = int(value[0]) * 65536 + int(value[1])
        return dt.datetime.fromtimestamp(seconds).date()
    if isinstance(value, str) and not isinstance(value, Symbol):
        return dt.date.fromisoformat(value.replace("/", "-"))
    raise ValueError(f"unrecognized date {value!r} in ledger output")


def _decode_posting(raw: Any) -> Posting:
    if not isinstance(raw, list) or len(raw) < 3:
        raise ValueError(f"malformed posting {raw!r} in ledger output")
    line, account, amount = raw[0], raw[1], raw[2]
    status = _decode_status(raw[3]) if len(raw) > 3 else UNCLEARED
    return Posting(line=int(line), account=str(account), amount=str(amount), status=status)


def _decode_transaction(raw: Any) -> Transaction:
    if not isinstance(raw, list) or len(raw) < 5:
        raise ValueError(f"malformed transaction {raw!r} in ledger output")
    source, line, date, code, payee, *postings = raw
    return Transaction(
        source=str(source or ""),
        line=int(line),
        date=_decode_date(date),
        code=str(code) if code is not None else None,
        payee=str(payee),
        postings=tuple(_decode_posting(p) for p in postings),
    )


def parse_emacs_output(text: str) -> list[Transaction]:
    """Decode ``ledger emacs`` output; empty or non-Lisp output yields ``[]``."""

    body = (text or "").lstrip()
    if not body.startswith("("):
        return []
    data = read_sexp(body)
    if not data:
        return []
    return [_decode_transaction(x) for x in data]


__all__ = [
    "BALANCE_FORMAT",
    "LedgerExecError",
    "LedgerExecutor",
    "Runner",
    "SORT_KEYS",
    "STDIN_MARKERS",
    "is_stdin",
    "parse_emacs_output",
    "resolve_sort_key",
]
