from __future__ import annotations

from pathlib import Path

import pytest
from typer.testing import CliRunner

from ledger_reconcile import cli
from ledger_reconcile.executor import LedgerExecutor
from ledger_reconcile.session import Reconciler
from tests.helpers.fake_ledger import FakeLedger

runner = CliRunner()


@pytest.fixture
def fake_binary(monkeypatch: pytest.MonkeyPatch) -> FakeLedger:
    """Route every reconciler the CLI builds through a ``FakeLedger``."""

    fake = FakeLedger()

    def _reconciler(settings=None, **kwargs):
        return Reconciler(settings, executor=LedgerExecutor(runner=fake), **kwargs)

    monkeypatch.setattr(cli, "Reconciler", _reconciler)
    return fake


def test_list_prints_uncleared_lines_and_balance(journal_path: Path, fake_binary: FakeLedger):
    result = runner.invoke(cli.app, ["list", str(journal_path), "--account", "Assets:Checking"])

    assert result.exit_code == 0, result.output
    assert "Coffee Shop" in result.output
    assert "Grocery Store" in result.output
    assert "Paycheck" not in result.output
    assert "Pending balance: $1000.00" in result.output


def test_list_passes_sort_key_to_ledger(journal_path: Path, fake_binary: FakeLedger):
    result = runner.invoke(
        cli.app, ["list", str(journal_path), "--account", "Assets:Checking", "--sort", "payee"]
    )

    assert result.exit_code == 0, result.output
    emacs_calls = [call for call in fake_binary.calls if "emacs" in call]
    assert emacs_calls
    assert emacs_calls[-1][emacs_calls[-1].index("--sort") + 1] == "(payee)"


def test_balance_compares_against_target(journal_path: Path, fake_binary: FakeLedger):
    result = runner.invoke(
        cli.app,
        ["balance", str(journal_path), "--account", "Assets:Checking", "--target", "$1000.00"],
    )

    assert result.exit_code == 0, result.output
    assert "Difference from target: $0.00" in result.output


def test_unknown_account_exits_with_error(journal_path: Path, fake_binary: FakeLedger):
    result = runner.invoke(cli.app, ["list", str(journal_path), "--account", "Liabilities:Visa"])

    assert result.exit_code == 1
    assert "Error:" in result.output
    assert "not found" in result.output
    assert fake_binary.calls == []


def test_missing_ledger_binary_is_reported(journal_path: Path, tmp_path: Path):
    missing = tmp_path / "no-such-ledger"
    result = runner.invoke(
        cli.app,
        [
            "balance",
            str(journal_path),
            "--account",
            "Assets:Checking",
            "--ledger-binary",
            str(missing),
        ],
    )

    assert result.exit_code == 1
    assert "Error:" in result.output
    assert "no-such-ledger" in result.output.replace("\n", "")


def test_missing_journal_is_a_usage_error(tmp_path: Path):
    result = runner.invoke(
        cli.app, ["list", str(tmp_path / "absent.ledger"), "--account", "Assets:Checking"]
    )

    assert result.exit_code == 2
