"""Clearing-status transitions for reconcile view lines.

The cycle is ``uncleared -> pending -> cleared -> uncleared``. With
``toggle_to_pending`` off, an uncleared posting goes straight to cleared.
:func:`toggle` edits one posting through its binding; :func:`finish_pending`
promotes every pending line in the view to cleared in one sweep.
"""

from __future__ import annotations

import datetime as dt
from collections.abc import Callable
from typing import TYPE_CHECKING

from .balance import update_balance
from .logging_setup import get_logger
from .models import CLEARED, PENDING, UNCLEARED, ClearingStatus, LineBinding
from .view import ReconcileView

if TYPE_CHECKING:
    from .config import ReconcileSettings
    from .document import LedgerDocument
    from .executor import LedgerExecutor
    from .session import ReconcileSession

_logger = get_logger("ledger_reconcile.state")


class BindingError(LookupError):
    """The view line has no usable source location."""


def next_status(current: ClearingStatus, *, to_pending: bool = True) -> ClearingStatus:
    if current == UNCLEARED:
        return PENDING if to_pending else CLEARED
    if current == PENDING:
        return CLEARED
    return UNCLEARED


def binding_for_line(view: ReconcileView, index: int | None = None) -> LineBinding:
    """Binding of the line at ``index`` (default: cursor) or :class:`BindingError`."""

    i = view.cursor if index is None else index
    binding = view.binding_at(i)
    if binding is None:
        raise BindingError(f"line {i + 1} of {view.name} is not a posting")
    if not binding.is_valid():
        raise BindingError(
            f"line {i + 1} of {view.name} points outside {binding.document.name}; refresh the view"
        )
    return binding


def wants_effective_date(
    policy: bool | Callable[[LedgerDocument, int], bool],
    document: LedgerDocument,
    lineno: int,
) -> bool:
    if callable(policy):
        return bool(policy(document, lineno))
    return bool(policy)


def toggle(
    session: ReconcileSession,
    *,
    executor: LedgerExecutor,
    settings: ReconcileSettings,
    today: Callable[[], dt.date] = dt.date.today,
) -> ClearingStatus:
    """Advance the posting under the cursor one step and move to the next line.

    Steps: resolve the binding, go to it in the source document, write the new
    mark, optionally annotate an effective date, re-highlight the view line,
    advance the cursor, recompute the balance.
    """

    view = session.view
    index = view.cursor
    binding = binding_for_line(view, index)
    document, lineno = binding.document, binding.line

    document.goto(lineno)
    new_status = next_status(document.status_at(lineno), to_pending=settings.toggle_to_pending)
    document.set_status(lineno, new_status)
    if wants_effective_date(settings.insert_effective_date, document, lineno):
        document.insert_effective_date(lineno, today().strftime(settings.date_format))

    view.set_status(index, new_status)
    view.modified = True
    view.move(1)
    update_balance(session, executor)
    _logger.info("%s:%d -> %s", document.name, lineno, new_status)
    return new_status


def finish_pending(view: ReconcileView) -> tuple[int, list[LedgerDocument]]:
    """Mark every pending view line cleared.

    Returns the number of lines cleared and the documents they live in.

    Lines without a valid binding are skipped; uncleared and cleared lines are
    left alone.
    """

    cleared = 0
    touched: list[LedgerDocument] = []
    for index, line in enumerate(view.lines):
        if line.status != PENDING:
            continue
        binding = line.binding
        if binding is None or not binding.is_valid():
            _logger.debug("finish: skipping unbound line %d of %s", index + 1, view.name)
            continue
        binding.document.goto(binding.line)
        binding.document.set_status(binding.line, CLEARED)
        view.set_status(index, CLEARED)
        cleared += 1
        if binding.document not in touched:
            touched.append(binding.document)
    _logger.info("finish: cleared %d pending line(s) in %d document(s)", cleared, len(touched))
    return cleared, touched


__all__ = [
    "BindingError",
    "binding_for_line",
    "finish_pending",
    "next_status",
    "toggle",
    "wants_effective_date",
]
