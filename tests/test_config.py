import pytest
from pydantic import ValidationError

from ledger_reconcile.config import DEFAULT_LINE_FORMAT, ReconcileSettings, load_settings


def test_defaults():
    s = ReconcileSettings()
    assert s.buffer_name == "*Reconcile*"
    assert s.narrow_on_reconcile and s.buffer_tracks_reconcile_buffer and s.toggle_to_pending
    assert not s.force_window_bottom and not s.finish_force_quit
    assert not s.clear_whole_transactions
    assert s.date_format == "%Y/%m/%d"
    assert s.buffer_header == "Reconciling account %s\n\n"
    assert s.line_format == DEFAULT_LINE_FORMAT
    assert s.payee_max_chars == -1 and s.account_max_chars == -1
    assert s.sort_key == "(0)"
    assert s.insert_effective_date is False


def test_environment_values_are_parsed():
    s = load_settings(
        {
            "LEDGER_RECONCILE_TOGGLE_TO_PENDING": "no",
            "LEDGER_RECONCILE_PAYEE_MAX_CHARS": "20",
            "LEDGER_RECONCILE_BUFFER_HEADER": "none",
            "LEDGER_RECONCILE_INSERT_EFFECTIVE_DATE": "yes",
            "LEDGER_RECONCILE_LEDGER_TIMEOUT": "5",
        }
    )
    assert s.toggle_to_pending is False
    assert s.payee_max_chars == 20
    assert s.buffer_header is None
    assert s.insert_effective_date is True
    assert s.ledger_timeout == 5.0


def test_overrides_win_and_none_is_ignored(monkeypatch):
    monkeypatch.setenv("LEDGER_RECONCILE_SORT_KEY", "(date)")
    assert load_settings().sort_key == "(date)"
    assert load_settings(sort_key="(payee)").sort_key == "(payee)"
    assert load_settings(sort_key=None).sort_key == "(date)"


def test_bad_boolean_in_environment():
    with pytest.raises(ValueError):
        load_settings({"LEDGER_RECONCILE_NARROW_ON_RECONCILE": "maybe"})


@pytest.mark.parametrize(
    "kwargs",
    [
        {"line_format": "%(date"},
        {"line_format": "%(nope)s"},
        {"buffer_header": "No slot here"},
        {"sort_key": "  "},
        {"ledger_timeout": 0},
        {"unknown_option": True},
    ],
)
def test_invalid_settings_are_rejected(kwargs):
    with pytest.raises(ValidationError):
        ReconcileSettings(**kwargs)


def test_effective_date_policy_accepts_a_function():
    def policy(document, line):
        return True

    assert ReconcileSettings(insert_effective_date=policy).insert_effective_date is policy
