"""Map query records back to places in source documents.

Resolution is a pure lookup: it reads the transaction/posting data, opens (or
reuses) the document the record came from, and never edits anything.
"""

from __future__ import annotations

from .document import DocumentRegistry, LedgerDocument
from .executor import is_stdin
from .models import LineBinding, Posting, Transaction


def resolve_document(
    xact: Transaction, *, default_document: LedgerDocument, registry: DocumentRegistry
) -> LedgerDocument:
    """The session document for piped text, otherwise the file ledger named."""

    if is_stdin(xact.source):
        return default_document
    return registry.open(xact.source)


def resolve_location(
    xact: Transaction,
    posting: Posting,
    *,
    default_document: LedgerDocument,
    registry: DocumentRegistry,
    clear_whole_transactions: bool = False,
) -> LineBinding:
    """Binding for the view line that renders ``posting`` of ``xact``.

    The posting's own line is used when it has one and whole-transaction
    clearing is off. A posting without a line (the reconciled account is the
    journal's default account) always points at the transaction line.
    """

    document = resolve_document(xact, default_document=default_document, registry=registry)
    if clear_whole_transactions or not posting.has_line:
        return LineBinding(document, xact.line)
    return LineBinding(document, posting.line)


__all__ = ["resolve_document", "resolve_location"]
