"""The reconcile view: rendered lines plus a per-line side table.

Each :class:`ViewLine` carries its text, the :class:`LineBinding` it was
rendered for (``None`` for header, blank and informational lines) and the
clearing status that drives its highlight. Content is only ever replaced
wholesale by a refresh; toggles swap single lines for updated copies.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass, replace
from typing import Literal, TypeAlias

from .models import ClearingStatus, LineBinding, validate_status

WindowPosition = Literal["below-source", "bottom"]


@dataclass(frozen=True, slots=True)
class ViewLine:
    text: str
    binding: LineBinding | None = None
    status: ClearingStatus | None = None


@dataclass(slots=True)
class WindowLayout:
    """Where the view sits on screen and how tall it is."""

    position: WindowPosition = "below-source"
    height: int = 1
    visible: bool = False


ViewObserver: TypeAlias = Callable[["ReconcileView"], None]


class ReconcileView:
    """Line-addressable reconciliation listing with a cursor."""

    def __init__(self, name: str = "*Reconcile*") -> None:
        self.name = name
        self.lines: list[ViewLine] = []
        self.cursor = 0
        self.modified = False
        self.killed = False
        self.layout = WindowLayout()
        self._kill_observers: list[ViewObserver] = []

    # ------------------------------------------------------------------
    # Content
    # ------------------------------------------------------------------

    @property
    def text(self) -> str:
        return "\n".join(line.text for line in self.lines)

    @property
    def line_count(self) -> int:
        return len(self.lines)

    def replace(self, lines: Iterable[ViewLine]) -> None:
        """Swap in freshly rendered content; the cursor goes to the top."""

        self.lines = list(lines)
        self.cursor = 0

    def line_at(self, index: int | None = None) -> ViewLine | None:
        i = self.cursor if index is None else index
        if 0 <= i < len(self.lines):
            return self.lines[i]
        return None

    def binding_at(self, index: int | None = None) -> LineBinding | None:
        line = self.line_at(index)
        return line.binding if line is not None else None

    def status_at(self, index: int | None = None) -> ClearingStatus | None:
        line = self.line_at(index)
        return line.status if line is not None else None

    def set_status(self, index: int, status: ClearingStatus) -> None:
        """Re-highlight one line to match a new clearing status."""

        validate_status(status)
        self.lines[index] = replace(self.lines[index], status=status)

    # ------------------------------------------------------------------
    # Cursor and window
    # ------------------------------------------------------------------

    def goto(self, index: int) -> int:
        """Move to line ``index`` clamped into the content; returns the new index."""

        last = max(0, len(self.lines) - 1)
        self.cursor = min(max(0, index), last)
        return self.cursor

    def move(self, delta: int) -> int:
        return self.goto(self.cursor + delta)

    def fit_window(self, max_height: int) -> int:
        """Shrink the window to the content, capped at ``max_height``."""

        self.layout.height = max(1, min(len(self.lines), max_height))
        return self.layout.height

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def add_kill_observer(self, callback: ViewObserver) -> None:
        if callback not in self._kill_observers:
            self._kill_observers.append(callback)

    def kill(self) -> None:
        if self.killed:
            return
        self.killed = True
        self.layout.visible = False
        for callback in list(self._kill_observers):
            callback(self)
        self._kill_observers.clear()
        self.lines = []


__all__ = ["ReconcileView", "ViewLine", "WindowLayout", "WindowPosition"]
