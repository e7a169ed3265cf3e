"""Shared fixtures: a small journal, a fake ledger runner and a wired reconciler.

Tests never shell out to a real ``ledger``; the executor is built around
:class:`tests.helpers.fake_ledger.FakeLedger`, which answers from whatever
journal text the reconciler pipes to it. Environment variables that would
change settings are cleared per test so a developer's shell can't leak in.
"""

from __future__ import annotations

import datetime as dt
import os
from pathlib import Path

import pytest

from ledger_reconcile.config import ENV_PREFIX, ReconcileSettings
from ledger_reconcile.document import DocumentRegistry, LedgerDocument
from ledger_reconcile.executor import LedgerExecutor
from ledger_reconcile.session import Reconciler
from tests.helpers.fake_ledger import FakeLedger
from tests.helpers.journals import JOURNAL


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in list(os.environ):
        if name.startswith(ENV_PREFIX):
            monkeypatch.delenv(name, raising=False)


@pytest.fixture
def journal_path(tmp_path: Path) -> Path:
    path = tmp_path / "main.ledger"
    path.write_text(JOURNAL, encoding="utf-8")
    return path


@pytest.fixture
def document(journal_path: Path) -> LedgerDocument:
    return LedgerDocument.from_file(journal_path)


@pytest.fixture
def fake_ledger() -> FakeLedger:
    return FakeLedger()


@pytest.fixture
def executor(fake_ledger: FakeLedger) -> LedgerExecutor:
    return LedgerExecutor(runner=fake_ledger)


@pytest.fixture
def settings() -> ReconcileSettings:
    return ReconcileSettings()


@pytest.fixture
def make_reconciler(executor: LedgerExecutor):
    """Factory so tests can tweak settings or supply a scripted prompt."""

    def _make(settings: ReconcileSettings | None = None, prompt=None) -> Reconciler:
        return Reconciler(
            settings or ReconcileSettings(),
            executor=executor,
            registry=DocumentRegistry(),
            prompt=prompt,
            today=lambda: dt.date(2024, 2, 1),
        )

    return _make
