"""Full-screen reconcile screen (prompt_toolkit Application).

The screen stacks the source journal, the reconcile view, a one-line status
bar with the balance message and a minibuffer that only shows up while a
command is waiting for text. Every key maps to one :class:`Reconciler`
command; errors from a command land in the status bar and the screen keeps
running.

Keys
----
- ``space`` toggle, ``n``/``down`` next, ``p``/``up`` previous,
  ``<``/``home`` first line, ``>``/``end`` last line
- ``g``/``c-l`` refresh, ``a`` add, ``d`` delete, ``enter`` visit,
  ``o`` visit and come back, ``s`` save, ``c-c c-c`` finish, ``q`` quit
- ``t`` target, ``S`` sort key, ``b`` balance
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, TypeAlias

from prompt_toolkit.application import Application
from prompt_toolkit.data_structures import Point
from prompt_toolkit.filters import Condition, Filter
from prompt_toolkit.key_binding import KeyBindings
from prompt_toolkit.layout import ConditionalContainer, HSplit, Layout, Window
from prompt_toolkit.layout.controls import FormattedTextControl
from prompt_toolkit.layout.dimension import Dimension
from prompt_toolkit.styles import Style
from prompt_toolkit.widgets import TextArea

from .commodity import CommodityError
from .document import LedgerDocument
from .executor import LedgerExecError
from .formatting import LineFormatError
from .logging_setup import get_logger
from .session import SORT_PROMPT, TRANSACTION_PROMPT, ReconcileError, Reconciler
from .sexp import SexpError
from .state import BindingError
from .view import ReconcileView

_logger = get_logger("ledger_reconcile.tui")

# Errors a command may raise that the user can act on without leaving.
_COMMAND_ERRORS: tuple[type[Exception], ...] = (
    ReconcileError,
    BindingError,
    LedgerExecError,
    CommodityError,
    LineFormatError,
    SexpError,
    LookupError,
    ValueError,
)

STYLE = Style.from_dict(
    {
        "uncleared": "",
        "pending": "fg:ansiyellow",
        "cleared": "fg:ansigreen",
        "cursor": "reverse",
        "xact": "bg:#303030",
        "point": "underline",
        "status": "reverse",
        "status.met": "reverse fg:ansigreen bold",
        "rule": "fg:#666666",
    }
)

Fragments: TypeAlias = list[tuple[str, str]]


def view_fragments(view: ReconcileView) -> Fragments:
    """Styled lines of the reconcile view; the cursor line is reversed."""

    out: Fragments = []
    for index, line in enumerate(view.lines):
        styles = [f"class:{line.status}"] if line.status else []
        if index == view.cursor:
            styles.append("class:cursor")
        out.append((" ".join(styles), line.text))
        out.append(("", "\n"))
    return out


def source_fragments(document: LedgerDocument) -> Fragments:
    """Visible journal lines with the highlighted transaction and the point."""

    out: Fragments = []
    first, last = document.highlight or (0, -1)
    for lineno in document.visible_lines():
        styles = []
        if first <= lineno <= last:
            styles.append("class:xact")
        if lineno == document.point:
            styles.append("class:point")
        out.append((" ".join(styles), document.line(lineno)))
        out.append(("", "\n"))
    return out


def _source_cursor(document: LedgerDocument) -> Point:
    visible = document.visible_lines()
    row = visible.index(document.point) if document.point in visible else 0
    return Point(x=0, y=row)


class ReconcileApp:
    """prompt_toolkit front end over a running :class:`Reconciler`."""

    def __init__(self, reconciler: Reconciler, *, input: Any = None, output: Any = None) -> None:
        self.reconciler = reconciler
        self._pending: Callable[[str], Any] | None = None
        self._prompt_text = ""

        self.source_window = Window(
            FormattedTextControl(
                self._source_text, get_cursor_position=self._source_point, focusable=False
            ),
            wrap_lines=False,
        )
        self.view_window = Window(
            FormattedTextControl(
                self._view_text, get_cursor_position=self._view_point, focusable=True
            ),
            height=self._view_height,
            wrap_lines=False,
        )
        self.minibuffer = TextArea(
            height=1,
            multiline=False,
            prompt=lambda: self._prompt_text,
            accept_handler=self._accept,
        )
        waiting = Condition(lambda: self._pending is not None)

        root = HSplit(
            [
                self.source_window,
                Window(height=1, char="─", style="class:rule"),
                self.view_window,
                Window(
                    FormattedTextControl(self._status_text),
                    height=1,
                    style=self._status_style,
                ),
                ConditionalContainer(self.minibuffer, filter=waiting),
            ]
        )
        self.app: Application = Application(
            layout=Layout(root, focused_element=self.view_window),
            key_bindings=self._bindings(~waiting),
            style=STYLE,
            full_screen=True,
            input=input,
            output=output,
        )

    # ------------------------------------------------------------------
    # Rendering callbacks
    # ------------------------------------------------------------------

    def _view(self) -> ReconcileView | None:
        session = self.reconciler.session
        return session.view if session is not None else None

    def _view_text(self) -> Fragments:
        view = self._view()
        return view_fragments(view) if view is not None else []

    def _view_point(self) -> Point:
        view = self._view()
        return Point(x=0, y=view.cursor if view is not None else 0)

    def _view_height(self) -> Dimension:
        view = self._view()
        height = view.layout.height if view is not None else 1
        return Dimension(min=1, preferred=height, max=height)

    def _source_text(self) -> Fragments:
        document = self.reconciler.source_document
        return source_fragments(document) if document is not None else []

    def _source_point(self) -> Point:
        document = self.reconciler.source_document
        return _source_cursor(document) if document is not None else Point(x=0, y=0)

    def _status_text(self) -> Fragments:
        return [("", " " + self.reconciler.message)]

    def _status_style(self) -> str:
        session = self.reconciler.session
        if session is not None and session.balance_matches_target:
            return "class:status.met"
        return "class:status"

    # ------------------------------------------------------------------
    # Command plumbing
    # ------------------------------------------------------------------

    def run_command(self, command: Callable[..., Any], *args: Any) -> Any:
        """Run one reconciler command, reporting failures in the status bar."""

        try:
            result = command(*args)
        except _COMMAND_ERRORS as e:
            _logger.warning("%s failed: %s", getattr(command, "__name__", command), e)
            self.reconciler.message = f"Error: {e}"
            return None
        if self.reconciler.session is None and self.app.is_running:
            self.app.exit()
        return result

    def ask(self, prompt: str, then: Callable[[str], Any]) -> None:
        """Open the minibuffer with ``prompt``; ``then`` receives the answer."""

        self._prompt_text = prompt
        self._pending = then
        self.minibuffer.text = ""
        self.app.layout.focus(self.minibuffer)

    def _accept(self, buffer) -> bool:
        then, self._pending = self._pending, None
        self.app.layout.focus(self.view_window)
        if then is not None:
            self.run_command(then, buffer.text.strip())
        return False

    def _cancel(self) -> None:
        self._pending = None
        self.app.layout.focus(self.view_window)
        self.reconciler.message = "Quit"

    def _bindings(self, normal: Filter) -> KeyBindings:
        kb = KeyBindings()
        r = self.reconciler

        def command(*keys: str, fn: Callable[[], Any]) -> None:
            @kb.add(*keys, filter=normal)
            def _(event) -> None:  # pragma: no cover - exercised interactively
                self.run_command(fn)

        for keys, fn in (
            (("space",), r.toggle),
            (("n",), r.next_line),
            (("down",), r.next_line),
            (("p",), r.previous_line),
            (("up",), r.previous_line),
            (("<",), r.beginning_of_buffer),
            (("home",), r.beginning_of_buffer),
            ((">",), r.end_of_buffer),
            (("end",), r.end_of_buffer),
            (("g",), r.refresh),
            (("c-l",), r.refresh),
            (("d",), r.delete_transaction),
            (("enter",), r.visit),
            (("o",), lambda: r.visit(come_back=True)),
            (("s",), r.save),
            (("c-c", "c-c"), r.finish),
            (("q",), r.quit),
            (("b",), r.display_balance),
        ):
            command(*keys, fn=fn)

        @kb.add("a", filter=normal)
        def _(event) -> None:  # pragma: no cover - exercised interactively
            self.ask(TRANSACTION_PROMPT, lambda text: r.add_transaction(text) if text else None)

        @kb.add("t", filter=normal)
        def _(event) -> None:  # pragma: no cover - exercised interactively
            self.ask(r.settings.target_prompt, r.change_target)

        @kb.add("S", filter=normal)
        def _(event) -> None:  # pragma: no cover - exercised interactively
            self.ask(SORT_PROMPT, lambda text: r.change_sort_key(text) if text else None)

        @kb.add("escape", filter=~normal, eager=True)
        @kb.add("c-g", filter=~normal, eager=True)
        def _(event) -> None:  # pragma: no cover - exercised interactively
            self._cancel()

        return kb

    def run(self) -> None:
        self.app.run()


def run_tui(reconciler: Reconciler) -> None:
    """Show the reconcile screen until the user quits."""

    if reconciler.session is None:
        raise ReconcileError("no reconciliation in progress")
    ReconcileApp(reconciler).run()
    reconciler.quit()


__all__ = ["ReconcileApp", "STYLE", "run_tui", "source_fragments", "view_fragments"]
