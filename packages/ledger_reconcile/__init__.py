"""Public interface for the ``ledger_reconcile`` package.

Symbol re-exports only; the command surface lives on :class:`Reconciler` and
the console entry point in ``ledger_reconcile.cli``.
"""

from .commodity import Amount, CommodityError, parse_amount
from .config import ReconcileSettings, load_settings
from .document import DocumentRegistry, LedgerDocument
from .executor import LedgerExecError, LedgerExecutor, parse_emacs_output
from .formatting import LineFormatError, LineFormatter, compile_line_format
from .models import (
    CLEARED,
    PENDING,
    UNCLEARED,
    ClearingStatus,
    LineBinding,
    Posting,
    Transaction,
)
from .session import ReconcileError, ReconcileSession, Reconciler
from .state import BindingError
from .view import ReconcileView, ViewLine

__all__ = [
    # Controller
    "Reconciler",
    "ReconcileSession",
    "ReconcileSettings",
    "load_settings",
    # Collaborators
    "LedgerDocument",
    "DocumentRegistry",
    "LedgerExecutor",
    "ReconcileView",
    "ViewLine",
    "compile_line_format",
    "LineFormatter",
    "parse_emacs_output",
    # Models / types
    "Amount",
    "parse_amount",
    "ClearingStatus",
    "UNCLEARED",
    "PENDING",
    "CLEARED",
    "Posting",
    "Transaction",
    "LineBinding",
    # Errors
    "BindingError",
    "CommodityError",
    "LedgerExecError",
    "LineFormatError",
    "ReconcileError",
]
