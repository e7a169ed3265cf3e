"""Cleared-or-pending balance and distance to the target.

The balance comes from ledger itself (``executor.cleared_or_pending_balance``);
this module only parses the single figure, subtracts it from the session
target, and caches the message and the "met target" flag on the session for
the front end to show.
"""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING

from .commodity import Amount, parse_amount
from .logging_setup import get_logger

if TYPE_CHECKING:
    from .executor import LedgerExecutor
    from .session import ReconcileSession

_logger = get_logger("ledger_reconcile.balance")


def parse_balance(text: str) -> Amount:
    """Read the first amount from ``balance`` output; no output means zero."""

    figures = [line.strip() for line in (text or "").splitlines() if line.strip()]
    if not figures:
        return Amount(Decimal(0))
    if len(figures) > 1:
        _logger.warning("balance spans %d commodities; using %s", len(figures), figures[0])
    return parse_amount(figures[0])


def balance_message(balance: Amount, target: Amount | None) -> tuple[str, bool]:
    """Return ``(message, balance_equals_target)``."""

    if target is None:
        return f"Pending balance: {balance}", False
    delta = target - balance
    return (
        f"Cleared and Pending balance: {balance},   Difference from target: {delta}",
        delta.is_zero(),
    )


def update_balance(session: ReconcileSession, executor: LedgerExecutor) -> str:
    """Recompute the balance for ``session`` and cache the display state."""

    raw = executor.cleared_or_pending_balance(session.document, session.account)
    balance = parse_balance(raw)
    message, matches = balance_message(balance, session.target)
    session.balance = balance
    session.balance_message = message
    session.balance_matches_target = matches
    return message


__all__ = ["balance_message", "parse_balance", "update_balance"]
