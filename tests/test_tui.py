import contextlib

from prompt_toolkit.input import create_pipe_input
from prompt_toolkit.output import DummyOutput

from ledger_reconcile.tui import ReconcileApp, source_fragments, view_fragments

COFFEE = 2


@contextlib.contextmanager
def screen(reconciler):
    with create_pipe_input() as pipe:
        yield ReconcileApp(reconciler, input=pipe, output=DummyOutput())


def test_view_fragments_style_status_and_cursor(make_reconciler, document):
    r = make_reconciler()
    session = r.reconcile(document, "Assets:Checking")
    r.goto_line(COFFEE)
    r.toggle()

    fragments = view_fragments(session.view)
    texts = [text for _, text in fragments if text != "\n"]
    styles = [style for style, text in fragments if text != "\n"]
    assert texts == [line.text for line in session.view.lines]
    assert styles[COFFEE] == "class:pending"
    assert styles[COFFEE + 1] == "class:uncleared class:cursor"
    assert styles[0] == ""


def test_source_fragments_follow_narrowing_and_highlight(make_reconciler, document):
    r = make_reconciler(None)
    r.reconcile(document, "Expenses:Food")
    r.goto_line(COFFEE)

    fragments = [(style, text) for style, text in source_fragments(document) if text != "\n"]
    assert [text for _, text in fragments][0] == "2024/01/09 Grocery Store"
    assert len(fragments) == 3
    assert fragments[0][0] == "class:xact"
    assert fragments[1][0] == "class:xact class:point"


def test_command_errors_land_in_the_status_line(make_reconciler, document):
    r = make_reconciler()
    r.reconcile(document, "Assets:Checking")
    with screen(r) as app:
        assert app.run_command(r.toggle) is None  # cursor is on the header
        assert r.message.startswith("Error: line 1 of *Reconcile* is not a posting")
        assert app.run_command(r.next_line) == 1


def test_minibuffer_answer_reaches_the_command(make_reconciler, document):
    r = make_reconciler()
    session = r.reconcile(document, "Assets:Checking")
    with screen(r) as app:
        app.ask(r.settings.target_prompt, r.change_target)
        app.minibuffer.text = "$1000.00"
        app.minibuffer.buffer.validate_and_handle()
        assert session.balance_matches_target
        assert app._pending is None
