"""A small reader for the Lisp data printed by ``ledger emacs``.

Only the subset ledger emits is supported: lists, double-quoted strings with
backslash escapes, integers, decimals and bare symbols. ``nil`` reads as
``None``; every other bare word reads as a :class:`Symbol`.
"""

from __future__ import annotations

import re
from typing import Any

_TOKEN_RE = re.compile(
    r"""
    (?P<ws>\s+|;[^\n]*)
  | (?P<open>\()
  | (?P<close>\))
  | (?P<string>"(?:[^"\\]|\\.)*")
  | (?P<atom>[^\s()";]+)
    """,
    re.VERBOSE | re.DOTALL,
)
_INT_RE = re.compile(r"[-+]?\d+")
_FLOAT_RE = re.compile(r"[-+]?(?:\d+\.\d*|\.\d+)(?:[eE][-+]?\d+)?")
_ESCAPES = {"n": "\n", "t": "\t", "\\": "\\", '"': '"'}


class SexpError(ValueError):
    """Raised when the text is not a well-formed S-expression."""


class Symbol(str):
    """A bare Lisp symbol such as ``t`` or ``pending``."""

    __slots__ = ()

    def __repr__(self) -> str:  # pragma: no cover - trivial repr
        return f"Symbol({str(self)!r})"


def _unescape(body: str) -> str:
    out: list[str] = []
    i = 0
    while i < len(body):
        ch = body[i]
        if ch == "\\" and i + 1 < len(body):
            nxt = body[i + 1]
            # Escaped newline is a line continuation in Lisp strings.
            if nxt != "\n":
                out.append(_ESCAPES.get(nxt, nxt))
            i += 2
            continue
        out.append(ch)
        i += 1
    return "".join(out)


def _atom(text: str) -> Any:
    if text == "nil":
        return None
    if _INT_RE.fullmatch(text):
        return int(text)
    if _FLOAT_RE.fullmatch(text):
        return float(text)
    return Symbol(text)


def read_sexp(text: str) -> Any:
    """Read the first datum in ``text`` and return it as Python values.

    Lists become ``list``; trailing text after the first datum is ignored, the
    way Lisp ``read`` stops after one form.
    """

    stack: list[list[Any]] = []
    pos = 0
    while pos < len(text):
        m = _TOKEN_RE.match(text, pos)
        if m is None:
            raise SexpError(f"unexpected character {text[pos]!r} at offset {pos}")
        pos = m.end()
        kind = m.lastgroup
        if kind == "ws":
            continue
        if kind == "open":
            stack.append([])
            continue
        if kind == "close":
            if not stack:
                raise SexpError(f"unbalanced ')' at offset {m.start()}")
            value: Any = stack.pop()
        elif kind == "string":
            value = _unescape(m.group("string")[1:-1])
        else:
            value = _atom(m.group("atom"))

        if not stack:
            return value
        stack[-1].append(value)

    if stack:
        raise SexpError("unexpected end of input inside a list")
    raise SexpError("no datum in input")


__all__ = ["SexpError", "Symbol", "read_sexp"]
