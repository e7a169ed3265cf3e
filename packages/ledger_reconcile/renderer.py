"""Build the reconcile view from a ledger query and keep it fresh.

``refresh`` is all-or-nothing: the query, decoding and formatting happen before
the view is touched, so a failing ledger run leaves the previous listing on
screen.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import TYPE_CHECKING, TypeAlias

from .balance import update_balance
from .formatting import LineFormatter, truncate_left, truncate_right
from .locations import resolve_location
from .logging_setup import get_logger
from .models import LineBinding, Transaction
from .view import ViewLine

if TYPE_CHECKING:
    from .config import ReconcileSettings
    from .document import DocumentRegistry, LedgerDocument
    from .executor import LedgerExecutor
    from .session import ReconcileSession

_logger = get_logger("ledger_reconcile.renderer")

# (text, binding, status) runs in output order, before line splitting.
_Segment: TypeAlias = tuple[str, LineBinding | None, str | None]


def empty_message(account: str) -> str:
    return f"There are no uncleared entries for {account}"


def _segments_to_lines(segments: Iterable[_Segment]) -> list[ViewLine]:
    """Split rendered runs into view lines, dropping one trailing newline.

    A line takes the binding and status of the run its first character came
    from; blank lines carry none.
    """

    lines: list[ViewLine] = []
    text = ""
    meta: tuple[LineBinding | None, str | None] = (None, None)
    started = False
    for chunk, binding, status in segments:
        parts = chunk.split("\n")
        for i, part in enumerate(parts):
            if part and not started:
                meta = (binding, status)
                started = True
            text += part
            if i < len(parts) - 1:
                lines.append(ViewLine(text, *meta))  # type: ignore[arg-type]
                text, meta, started = "", (None, None), False
    if text:
        lines.append(ViewLine(text, *meta))  # type: ignore[arg-type]
    return lines


def render_transactions(
    transactions: Sequence[Transaction],
    *,
    account: str,
    formatter: LineFormatter,
    settings: ReconcileSettings,
    default_document: LedgerDocument,
    registry: DocumentRegistry,
) -> list[ViewLine]:
    """Render one line per posting (per the line format) under an optional header."""

    if not transactions:
        return [ViewLine(empty_message(account))]

    segments: list[_Segment] = []
    if settings.buffer_header:
        segments.append((settings.buffer_header % account, None, None))
    for xact in transactions:
        date_text = xact.date.strftime(settings.date_format)
        payee = truncate_right(xact.payee, settings.payee_max_chars)
        for posting in xact.postings:
            binding = resolve_location(
                xact,
                posting,
                default_document=default_document,
                registry=registry,
                clear_whole_transactions=settings.clear_whole_transactions,
            )
            text = formatter(
                date_text,
                xact.code or "",
                posting.status,
                payee,
                truncate_left(posting.account, settings.account_max_chars),
                posting.amount,
            )
            segments.append((text, binding, posting.status))

    # The line format ends each posting with a newline; only the last one goes.
    if segments and segments[-1][0].endswith("\n"):
        last_text, last_binding, last_status = segments[-1]
        segments[-1] = (last_text[:-1], last_binding, last_status)
        return _segments_to_lines(segments) or [ViewLine("")]
    return _segments_to_lines(segments)


def refresh(
    session: ReconcileSession,
    *,
    executor: LedgerExecutor,
    registry: DocumentRegistry,
    settings: ReconcileSettings,
) -> int:
    """Re-query, re-render and re-balance ``session``; return the transaction count.

    The cursor keeps its line number across the refresh (clamped to the new
    content) rather than following a particular transaction.
    """

    view = session.view
    previous = view.cursor
    transactions = executor.query_uncleared(session.document, session.account, session.sort_key)
    lines = render_transactions(
        transactions,
        account=session.account,
        formatter=session.formatter_for(settings.line_format),
        settings=settings,
        default_document=session.document,
        registry=registry,
    )

    view.replace(lines)
    view.modified = session.document.modified
    view.fit_window(settings.max_window_height)
    update_balance(session, executor)
    view.goto(previous)
    _logger.debug(
        "refreshed %s for %s: %d transaction(s)", view.name, session.account, len(transactions)
    )
    return len(transactions)


__all__ = ["empty_message", "refresh", "render_transactions"]
