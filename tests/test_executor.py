import datetime as dt
import subprocess

import pytest

from ledger_reconcile.document import LedgerDocument
from ledger_reconcile.executor import (
    LedgerExecError,
    LedgerExecutor,
    is_stdin,
    parse_emacs_output,
    resolve_sort_key,
)
from tests.helpers.fake_ledger import FakeLedger, completed
from tests.helpers.journals import JOURNAL


@pytest.mark.parametrize("sort_key", ["(amount)", "(0)", "(date)", "payee + amount"])
def test_sort_key_is_forwarded_verbatim(sort_key):
    fake = FakeLedger()
    LedgerExecutor(runner=fake).query_uncleared(LedgerDocument(JOURNAL), "Checking", sort_key)

    cmd = fake.calls[-1]
    assert cmd[:3] == ["ledger", "-f", "-"]
    assert cmd[cmd.index("--sort") + 1] == sort_key
    assert cmd[-1] == "Checking"
    assert {"--uncleared", "--real", "emacs"} <= set(cmd)


def test_journal_text_is_piped_on_stdin():
    fake = FakeLedger()
    doc = LedgerDocument(JOURNAL)
    doc.set_status(3, "pending")  # unsaved edit
    LedgerExecutor(runner=fake).query_uncleared(doc, "Checking")
    assert fake.inputs[-1] == doc.text


def test_query_decodes_transactions_in_ledger_order():
    xacts = LedgerExecutor(runner=FakeLedger()).query_uncleared(
        LedgerDocument(JOURNAL), "Assets:Checking"
    )

    assert [x.line for x in xacts] == [1, 9]
    coffee = xacts[0]
    assert coffee.date == dt.date(2024, 1, 5)
    assert coffee.code == "1042"
    assert coffee.payee == "Coffee Shop"
    assert coffee.source == ""
    (posting,) = coffee.postings
    assert posting.line == 3
    assert posting.account == "Assets:Checking"
    assert posting.amount == "$-4.50"
    assert posting.status == "uncleared"
    assert xacts[1].code is None


def test_parse_emacs_output_statuses():
    text = (
        '(("/books/main.ledger" 12 (26000 0 0) nil "Rent"'
        ' (14 "Assets:Checking" "$-900.00" pending "May rent")'
        ' (15 "Expenses:Rent" "$900.00" t)'
        ' (-1 "Assets:Cash" "$1" nil)))'
    )
    (xact,) = parse_emacs_output(text)
    assert xact.source == "/books/main.ledger"
    assert xact.date == dt.datetime.fromtimestamp(26000 * 65536).date()
    assert [p.status for p in xact.postings] == ["pending", "cleared", "uncleared"]
    assert not xact.postings[2].has_line


@pytest.mark.parametrize(
    "amount", ["$1,200.00", "EUR 4.50", "1.000,00 EUR", "10 AAPL @ $150.00"]
)
def test_amount_text_is_kept_as_ledger_printed_it(amount):
    text = f'(("" 1 (26000 0 0) nil "X" (3 "Assets:Checking" "{amount}" nil)))'
    (xact,) = parse_emacs_output(text)
    assert xact.postings[0].amount == amount


@pytest.mark.parametrize("out", ["", "\n", "Nothing to see\n"])
def test_output_without_records_is_empty(out):
    executor = LedgerExecutor(runner=completed(out))
    assert executor.query_uncleared(LedgerDocument(JOURNAL), "Checking") == []


def test_missing_binary_is_an_error():
    def _missing(cmd, input_text, timeout):
        raise FileNotFoundError(cmd[0])

    with pytest.raises(LedgerExecError, match="not found"):
        LedgerExecutor(binary="nope", runner=_missing).query_uncleared(
            LedgerDocument(JOURNAL), "Checking"
        )


def test_timeout_is_an_error():
    def _slow(cmd, input_text, timeout):
        raise subprocess.TimeoutExpired(cmd, timeout)

    with pytest.raises(LedgerExecError, match="timed out"):
        LedgerExecutor(runner=_slow, timeout=1).run(LedgerDocument(JOURNAL), "balance")


def test_nonzero_exit_without_output_is_an_error():
    executor = LedgerExecutor(runner=completed("", returncode=1, stderr="bad journal"))
    with pytest.raises(LedgerExecError, match="bad journal"):
        executor.query_uncleared(LedgerDocument(JOURNAL), "Checking")


def test_nonzero_exit_with_output_still_returns_it():
    executor = LedgerExecutor(runner=completed("$5.00\n", returncode=1, stderr="warning"))
    assert executor.cleared_or_pending_balance(LedgerDocument(JOURNAL), "Checking") == "$5.00\n"


def test_ledger_error_banner_is_an_error():
    banner = 'While parsing file "", line 3:\nError: No quantity specified for amount\n'
    executor = LedgerExecutor(runner=completed(banner))
    with pytest.raises(LedgerExecError, match="While parsing"):
        executor.query_uncleared(LedgerDocument(JOURNAL), "Checking")


def test_balance_command_line():
    fake = FakeLedger()
    out = LedgerExecutor(runner=fake).cleared_or_pending_balance(
        LedgerDocument(JOURNAL), "Assets:Checking"
    )
    assert out == "$1000.00\n"
    cmd = fake.calls[-1]
    assert cmd[cmd.index("--limit") + 1] == "cleared or pending"
    assert cmd[cmd.index("--format") + 1] == "%(scrub(display_total))"
    assert {"balance", "--real", "--empty", "--collapse"} <= set(cmd)


def test_generate_xact_passes_words():
    fake = FakeLedger(xact_output="2024/01/08 Bank Fee\n")
    out = LedgerExecutor(runner=fake).generate_xact(LedgerDocument(JOURNAL), ["2024/01/08", "Bank"])
    assert out == "2024/01/08 Bank Fee\n"
    assert fake.calls[-1][-3:] == ["xact", "2024/01/08", "Bank"]


def test_sort_key_names_and_stdin_markers():
    assert resolve_sort_key("amount") == "(amount)"
    assert resolve_sort_key("File") == "(0)"
    assert resolve_sort_key("(payee)") == "(payee)"
    assert is_stdin("") and is_stdin("-") and is_stdin("/dev/stdin")
    assert not is_stdin("/books/main.ledger")
