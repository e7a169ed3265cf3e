"""Line-format templates for the reconcile view.

A template is ordinary printf-style text in which each conversion names the
field it prints, e.g. ``"%(date)s %-4(code)s %-50(payee)s %15(amount)s\\n"``.
Compiling strips the ``(field)`` names, remembers their order, and returns a
:class:`LineFormatter` that is called positionally as
``(date, code, status, payee, account, amount)`` whatever order the template
uses. Templates are validated once at compile time so a bad template never
fails once per rendered line.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

FIELDS: tuple[str, ...] = ("date", "code", "status", "payee", "account", "amount")

_FIELD_RE = re.compile(r"\(([^()]*)\)")

ELLIPSIS = "…"


class LineFormatError(ValueError):
    """Raised when a line template cannot be compiled."""


@dataclass(frozen=True, slots=True)
class LineFormatter:
    """A compiled line template; reusable across every rendered line."""

    template: str
    fmt: str
    fields: tuple[str, ...]

    def __call__(
        self,
        date: Any,
        code: Any,
        status: Any,
        payee: Any,
        account: Any,
        amount: Any,
    ) -> str:
        values = {
            "date": date,
            "code": code,
            "status": status,
            "payee": payee,
            "account": account,
            "amount": amount,
        }
        return self.fmt % tuple(str(values[name]) for name in self.fields)


def _check_balanced(template: str) -> None:
    depth = 0
    for pos, ch in enumerate(template):
        if ch == "(":
            depth += 1
            if depth > 1:
                raise LineFormatError(f"nested '(' at offset {pos} in line format {template!r}")
        elif ch == ")":
            depth -= 1
            if depth < 0:
                raise LineFormatError(f"unmatched ')' at offset {pos} in line format {template!r}")
    if depth:
        raise LineFormatError(f"unclosed '(' in line format {template!r}")


def compile_line_format(template: str) -> LineFormatter:
    """Compile ``template`` into a :class:`LineFormatter`.

    A template without placeholders is legal and yields a constant line.
    """

    _check_balanced(template)
    fields = tuple(name.strip() for name in _FIELD_RE.findall(template))
    unknown = sorted({f for f in fields if f not in FIELDS})
    if unknown:
        raise LineFormatError(
            f"unknown field(s) {unknown} in line format {template!r}; allowed: {list(FIELDS)}"
        )
    fmt = _FIELD_RE.sub("", template)

    # Trial run: the number of conversions must match the number of fields.
    try:
        fmt % tuple("" for _ in fields)
    except (TypeError, ValueError) as e:
        raise LineFormatError(f"line format {template!r} does not match its fields: {e}") from e

    return LineFormatter(template=template, fmt=fmt, fields=fields)


def truncate_right(text: str, width: int) -> str:
    """Keep the left part of ``text`` within ``width`` (negative = unlimited)."""

    if width < 0 or len(text) <= width:
        return text
    if width == 0:
        return ""
    return text[: width - 1] + ELLIPSIS


def truncate_left(text: str, width: int) -> str:
    """Keep the right part of ``text`` within ``width``; useful for deep accounts."""

    if width < 0 or len(text) <= width:
        return text
    if width == 0:
        return ""
    return ELLIPSIS + text[len(text) - width + 1 :]


__all__ = [
    "FIELDS",
    "LineFormatError",
    "LineFormatter",
    "compile_line_format",
    "truncate_left",
    "truncate_right",
]
