import datetime as dt

import pytest

from ledger_reconcile.config import ReconcileSettings
from ledger_reconcile.document import DocumentRegistry, LedgerDocument
from ledger_reconcile.renderer import refresh
from ledger_reconcile.session import ReconcileSession
from ledger_reconcile.state import BindingError, binding_for_line, finish_pending, next_status, toggle
from ledger_reconcile.view import ReconcileView
from tests.helpers.journals import JOURNAL

COFFEE = 2  # view index of the Coffee Shop posting (after header + blank)
GROCERY = 3


def _ready(executor, settings=None):
    settings = settings or ReconcileSettings()
    doc = LedgerDocument(JOURNAL)
    session = ReconcileSession(document=doc, account="Assets:Checking", view=ReconcileView())
    refresh(session, executor=executor, registry=DocumentRegistry(), settings=settings)
    return session, settings


def _toggle(session, executor, settings, index=COFFEE):
    session.view.goto(index)
    return toggle(session, executor=executor, settings=settings, today=lambda: dt.date(2024, 2, 1))


def test_next_status_cycle():
    assert next_status("uncleared") == "pending"
    assert next_status("pending") == "cleared"
    assert next_status("cleared") == "uncleared"
    assert next_status("uncleared", to_pending=False) == "cleared"


def test_toggle_marks_source_and_view_and_advances(executor):
    session, settings = _ready(executor)
    assert _toggle(session, executor, settings) == "pending"

    assert session.document.line(3) == "    ! Assets:Checking          $-4.50"
    assert session.view.status_at(COFFEE) == "pending"
    assert session.view.cursor == GROCERY
    assert session.view.modified
    assert session.balance_message == "Pending balance: $995.50"


def test_toggle_cycles_back_to_uncleared(executor):
    session, settings = _ready(executor)
    statuses = [_toggle(session, executor, settings) for _ in range(3)]
    assert statuses == ["pending", "cleared", "uncleared"]
    assert session.document.line(3) == "    Assets:Checking          $-4.50"


def test_toggle_straight_to_cleared(executor):
    session, settings = _ready(executor, ReconcileSettings(toggle_to_pending=False))
    assert _toggle(session, executor, settings) == "cleared"
    assert session.document.line(3).lstrip().startswith("* ")


def test_toggle_whole_transaction_marks_header(executor):
    session, settings = _ready(executor, ReconcileSettings(clear_whole_transactions=True))
    _toggle(session, executor, settings)
    assert session.document.line(1) == "2024/01/05 ! (1042) Coffee Shop"
    assert session.document.line(3) == "    Assets:Checking          $-4.50"


def test_toggle_inserts_effective_date_when_policy_allows(executor):
    session, settings = _ready(executor, ReconcileSettings(insert_effective_date=True))
    _toggle(session, executor, settings)
    assert session.document.line(3).endswith("; [=2024/02/01]")


def test_effective_date_policy_can_be_a_function(executor):
    seen = []

    def only_groceries(document, line):
        seen.append(line)
        return "Grocery" in document.line(document.transaction_bounds(line)[0])

    session, settings = _ready(executor, ReconcileSettings(insert_effective_date=only_groceries))
    _toggle(session, executor, settings, COFFEE)
    _toggle(session, executor, settings, GROCERY)
    assert seen == [3, 11]
    assert "[=" not in session.document.line(3)
    assert session.document.line(11).endswith("; [=2024/02/01]")


def test_toggle_on_header_line_raises(executor):
    session, settings = _ready(executor)
    with pytest.raises(BindingError):
        _toggle(session, executor, settings, index=0)
    with pytest.raises(BindingError):
        binding_for_line(session.view, 1)


def test_two_toggles_match_toggle_then_finish(executor):
    twice, settings = _ready(executor)
    _toggle(twice, executor, settings)
    _toggle(twice, executor, settings)

    once, _ = _ready(executor)
    _toggle(once, executor, settings)
    cleared, touched = finish_pending(once.view)

    assert cleared == 1
    assert touched == [once.document]
    assert once.document.line(3) == twice.document.line(3)
    assert once.view.status_at(COFFEE) == twice.view.status_at(COFFEE) == "cleared"


def test_finish_skips_uncleared_and_unbound_lines(executor):
    session, settings = _ready(executor)
    _toggle(session, executor, settings, GROCERY)
    cleared, _ = finish_pending(session.view)

    assert cleared == 1
    assert session.view.status_at(COFFEE) == "uncleared"
    assert session.document.line(3) == "    Assets:Checking          $-4.50"
    assert session.document.line(11) == "    * Assets:Checking          $-45.00"


def test_finish_skips_lines_whose_document_is_gone(executor):
    session, settings = _ready(executor)
    _toggle(session, executor, settings)
    session.document.kill()
    assert finish_pending(session.view) == (0, [])
    assert session.view.status_at(COFFEE) == "pending"
