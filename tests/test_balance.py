from decimal import Decimal

from ledger_reconcile.balance import balance_message, parse_balance
from ledger_reconcile.commodity import Amount, parse_amount


def test_balance_meeting_target_reports_zero_delta():
    message, matches = balance_message(parse_amount("$100.00"), parse_amount("$100.00"))
    assert matches is True
    assert message == "Cleared and Pending balance: $100.00,   Difference from target: $0.00"


def test_balance_short_of_target():
    message, matches = balance_message(parse_amount("$95.50"), parse_amount("$100.00"))
    assert matches is False
    assert message.endswith("Difference from target: $4.50")


def test_balance_without_target():
    message, matches = balance_message(parse_amount("$1000.00"), None)
    assert message == "Pending balance: $1000.00"
    assert matches is False


def test_parse_balance_output():
    assert parse_balance("$1000.00\n") == Amount(Decimal("1000.00"), "$")
    assert parse_balance("") == Amount(Decimal(0))
    # Several commodities: the first line wins.
    assert parse_balance("$5.00\n3 EUR\n") == Amount(Decimal("5.00"), "$")
