"""Reconciliation sessions and the command surface front ends drive.

A :class:`ReconcileSession` is the state owned by one reconcile view: the
source document, the account, the optional target, the sort key, the compiled
line formatter and the last balance figures. :class:`Reconciler` owns at most
one live session and maps every interactive command onto the renderer, the
state machine and the balance tracker.

Front ends call commands with explicit values where they have them. When a
value is missing the controller asks through the optional ``prompt`` callback
``(message, completions) -> str | None``; ``None`` or an empty answer means
the user backed out.
"""

from __future__ import annotations

import datetime as dt
import shlex
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Literal, TypeAlias

from . import renderer, state
from .balance import update_balance
from .commodity import Amount, parse_amount
from .config import ReconcileSettings
from .document import DocumentRegistry, LedgerDocument, parse_journal_date
from .executor import SORT_KEYS, LedgerExecutor, resolve_sort_key
from .formatting import LineFormatter, compile_line_format
from .logging_setup import get_logger
from .models import ClearingStatus, LineBinding
from .view import ReconcileView

_logger = get_logger("ledger_reconcile.session")

Prompt: TypeAlias = Callable[[str, Sequence[str]], str | None]
Focus: TypeAlias = Literal["view", "source"]

ACCOUNT_PROMPT = "Account to reconcile: "
SORT_PROMPT = "Sort by: "
TRANSACTION_PROMPT = "Transaction: "


class ReconcileError(RuntimeError):
    """A command was issued without a usable session."""


@dataclass(slots=True)
class ReconcileSession:
    document: LedgerDocument
    account: str
    view: ReconcileView
    target: Amount | None = None
    sort_key: str = "(0)"
    balance: Amount | None = None
    balance_message: str = ""
    balance_matches_target: bool = False
    _formatter: LineFormatter | None = field(default=None, repr=False)

    def formatter_for(self, template: str) -> LineFormatter:
        """Compiled formatter for ``template``; recompiled only when it changes."""

        if self._formatter is None or self._formatter.template != template:
            self._formatter = compile_line_format(template)
        return self._formatter


class Reconciler:
    """Session controller: open, reuse, drive and tear down a reconciliation."""

    def __init__(
        self,
        settings: ReconcileSettings | None = None,
        *,
        executor: LedgerExecutor | None = None,
        registry: DocumentRegistry | None = None,
        prompt: Prompt | None = None,
        today: Callable[[], dt.date] | None = None,
    ) -> None:
        self.settings = settings or ReconcileSettings()
        self.executor = executor or LedgerExecutor(
            binary=self.settings.ledger_binary, timeout=self.settings.ledger_timeout
        )
        self.registry = registry or DocumentRegistry()
        self.prompt = prompt
        self.today = today or dt.date.today
        self.session: ReconcileSession | None = None
        self.focus: Focus = "source"
        self.source_document: LedgerDocument | None = None
        self.message = ""

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _ask(self, message: str, completions: Sequence[str] = ()) -> str | None:
        if self.prompt is None:
            return None
        answer = self.prompt(message, completions)
        if answer is None or not answer.strip():
            return None
        return answer.strip()

    def _require(self) -> ReconcileSession:
        session = self.session
        if session is None or session.view.killed:
            raise ReconcileError("no reconciliation in progress")
        if session.document.killed:
            raise ReconcileError(f"{session.document.name} has been closed")
        return session

    def _coerce_target(self, target: Amount | str | None) -> Amount | None:
        if target is None or isinstance(target, Amount):
            return target
        if not target.strip():
            return None
        return parse_amount(target, default_commodity=self.settings.default_commodity)

    def _attach(self, document: LedgerDocument) -> None:
        document.add_save_observer(self._on_source_saved)
        document.add_kill_observer(self._on_source_killed)
        self.registry.register(document)

    def _detach(self, document: LedgerDocument) -> None:
        document.remove_save_observer(self._on_source_saved)
        document.remove_kill_observer(self._on_source_killed)
        document.widen()
        document.highlight = None

    # ------------------------------------------------------------------
    # Open / reuse / quit
    # ------------------------------------------------------------------

    def reconcile(
        self,
        document: LedgerDocument,
        account: str | None = None,
        target: Amount | str | None = None,
    ) -> ReconcileSession | None:
        """Start (or retarget) reconciliation of ``account`` in ``document``.

        Returns ``None`` without creating anything when no account is given or
        the account name does not occur in the document.
        """

        if account is None:
            account = self._ask(ACCOUNT_PROMPT, document.accounts())
        if not account:
            return None
        if not document.contains(account):
            self.message = f"Account {account} not found in {document.name}"
            _logger.info("not reconciling: %s does not mention %s", document.name, account)
            return None

        session = self.session
        previous: tuple[LedgerDocument, str, Amount | None] | None = None
        if session is not None and not session.view.killed:
            previous = (session.document, session.account, session.target)
            if session.document is not document:
                self._detach(session.document)
            session.document, session.account, session.target = document, account, None
            _logger.info("reusing %s for %s in %s", session.view.name, account, document.name)
        else:
            view = ReconcileView(self.settings.buffer_name)
            view.layout.position = "bottom" if self.settings.force_window_bottom else "below-source"
            view.add_kill_observer(self._on_view_killed)
            session = ReconcileSession(
                document=document,
                account=account,
                view=view,
                sort_key=self.settings.sort_key,
            )
            self.session = session
            _logger.info("reconciling %s in %s", account, document.name)

        self._show(session)
        try:
            count = self.refresh()
        except Exception:
            if previous is not None:
                self._rebind(session, *previous)
            raise
        if count > 0:
            self.change_target(target)
        else:
            session.target = self._coerce_target(target)
            self.display_balance()
        return session

    def _show(self, session: ReconcileSession) -> None:
        document = session.document
        self._attach(document)
        if self.settings.narrow_on_reconcile:
            document.narrow_to(session.account)
        document.highlight = None
        session.view.layout.visible = True
        self.source_document = document
        self.focus = "view"

    def _rebind(
        self,
        session: ReconcileSession,
        document: LedgerDocument,
        account: str,
        target: Amount | None,
    ) -> None:
        # The view still shows the old listing; point the session back at it.
        if session.document is not document:
            self._detach(session.document)
        session.document, session.account, session.target = document, account, target
        self._show(session)
        _logger.info("kept %s on %s in %s", session.view.name, account, document.name)

    def quit(self) -> None:
        """Tear the session down; safe to call any number of times."""

        session = self.session
        if session is None:
            return
        self.session = None
        self._detach(session.document)
        session.view.kill()
        self.source_document = session.document
        self.focus = "source"
        self.message = ""
        _logger.info("stopped reconciling %s", session.account)

    # ------------------------------------------------------------------
    # Refresh, balance, target, sort
    # ------------------------------------------------------------------

    def refresh(self) -> int:
        session = self._require()
        count = renderer.refresh(
            session, executor=self.executor, registry=self.registry, settings=self.settings
        )
        self.message = session.balance_message
        return count

    def display_balance(self) -> str:
        session = self._require()
        self.message = update_balance(session, self.executor)
        return self.message

    def change_target(self, target: Amount | str | None = None) -> Amount | None:
        """Set the target (asking for it when not given) and redisplay the balance."""

        session = self._require()
        if target is None:
            target = self._ask(self.settings.target_prompt)
        session.target = self._coerce_target(target)
        self.display_balance()
        return session.target

    def change_sort_key(self, choice: str | None = None) -> str:
        session = self._require()
        if choice is None:
            choice = self._ask(SORT_PROMPT, list(SORT_KEYS))
        if choice:
            session.sort_key = resolve_sort_key(choice)
            self.refresh()
        return session.sort_key

    # ------------------------------------------------------------------
    # Line commands
    # ------------------------------------------------------------------

    def toggle(self) -> ClearingStatus:
        session = self._require()
        status = state.toggle(
            session, executor=self.executor, settings=self.settings, today=self.today
        )
        self.message = session.balance_message
        self.track()
        return status

    def finish(self) -> int:
        """Clear every pending line, save, and optionally quit."""

        session = self._require()
        cleared, touched = state.finish_pending(session.view)
        for document in touched:
            if document is not session.document and not document.killed:
                document.save()
        # Saving the session document refreshes the view via its save observer.
        self.save()
        if self.settings.finish_force_quit:
            self.quit()
        return cleared

    def save(self) -> None:
        session = self._require()
        session.document.save()
        session.view.modified = False

    def visit(self, come_back: bool = False) -> LineBinding:
        """Jump to the source location behind the current view line."""

        session = self._require()
        binding = state.binding_for_line(session.view)
        document = binding.document
        document.goto(binding.line)
        document.highlight_transaction_at(binding.line)
        self.source_document = document
        self.focus = "view" if come_back else "source"
        return binding

    def track(self) -> LineBinding | None:
        """Keep the source in step with the view cursor when tracking is on."""

        session = self._require()
        if not self.settings.buffer_tracks_reconcile_buffer:
            return None
        binding = session.view.binding_at()
        if binding is None or not binding.is_valid():
            return None
        return self.visit(come_back=True)

    def next_line(self) -> int:
        index = self._require().view.move(1)
        self.track()
        return index

    def previous_line(self) -> int:
        index = self._require().view.move(-1)
        self.track()
        return index

    def beginning_of_buffer(self) -> int:
        index = self._require().view.goto(0)
        self.track()
        return index

    def end_of_buffer(self) -> int:
        view = self._require().view
        index = view.goto(view.line_count - 1)
        self.track()
        return index

    def goto_line(self, index: int) -> int:
        """Put the cursor on ``index`` (a mouse click) and track it."""

        index = self._require().view.goto(index)
        self.track()
        return index

    def add_transaction(self, description: str | None = None) -> int | None:
        """Add a transaction from ``DATE PAYEE ...`` and refresh.

        Ledger's ``xact`` command expands the description from matching history;
        when it prints nothing the description itself is inserted. Returns the
        header line of the new transaction.
        """

        session = self._require()
        if description is None:
            description = self._ask(TRANSACTION_PROMPT)
        if not description:
            return None
        try:
            words = shlex.split(description)
        except ValueError:
            # Unbalanced quotes, as in "Joe's Diner".
            words = description.split()
        generated = self.executor.generate_xact(session.document, words).strip()
        date = parse_journal_date(words[0]) if words else None
        lineno = session.document.insert_transaction(generated or description, date)
        _logger.info("added transaction at %s:%d", session.document.name, lineno)
        self.refresh()
        return lineno

    def delete_transaction(self) -> None:
        session = self._require()
        binding = state.binding_for_line(session.view)
        binding.document.delete_transaction(binding.line)
        _logger.info("deleted transaction at %s:%d", binding.document.name, binding.line)
        self.refresh()
        self.track()

    # ------------------------------------------------------------------
    # Observers
    # ------------------------------------------------------------------

    def _on_source_saved(self, document: LedgerDocument) -> None:
        session = self.session
        if session is None or session.view.killed or session.document is not document:
            return
        focus, cursor, point = self.focus, session.view.cursor, document.point
        _logger.debug("%s saved; refreshing %s", document.name, session.view.name)
        self.refresh()
        session.view.modified = False
        session.view.goto(cursor)
        # The caller keeps its place; only the highlight follows the point.
        document.goto(point)
        document.highlight_transaction_at(point)
        self.focus = focus

    def _on_source_killed(self, document: LedgerDocument) -> None:
        self.quit()

    def _on_view_killed(self, view: ReconcileView) -> None:
        self.quit()


__all__ = [
    "ACCOUNT_PROMPT",
    "SORT_PROMPT",
    "TRANSACTION_PROMPT",
    "Focus",
    "Prompt",
    "ReconcileError",
    "ReconcileSession",
    "Reconciler",
]
