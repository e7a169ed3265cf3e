"""Line prompts for the reconciler (prompt_toolkit-based).

These are the questions asked on a plain terminal before (or instead of) the
full-screen view: which account, what target, which sort order, what
transaction to add. Each helper accepts an optional ``session`` so tests can
drive it headlessly with a pipe input. Esc cancels and returns ``None``.
"""

from __future__ import annotations

from collections.abc import Sequence

from prompt_toolkit import PromptSession
from prompt_toolkit.completion import WordCompleter
from prompt_toolkit.key_binding import KeyBindings
from prompt_toolkit.validation import ValidationError, Validator

from .commodity import CommodityError, parse_amount
from .config import ReconcileSettings
from .executor import SORT_KEYS
from .session import ACCOUNT_PROMPT, SORT_PROMPT, TRANSACTION_PROMPT, Prompt

# ----------------------------------------------------------------------------
# Shared plumbing
# ----------------------------------------------------------------------------


def _cancel_bindings() -> KeyBindings:
    kb = KeyBindings()

    @kb.add("escape")
    def _(event) -> None:  # pragma: no cover - exercised indirectly
        event.app.exit(result=None)

    @kb.add("c-g", eager=True)
    def _(event) -> None:  # pragma: no cover - exercised indirectly
        event.app.exit(result=None)

    return kb


def _session(kb: KeyBindings, session: PromptSession | None) -> PromptSession:
    if session is None:
        return PromptSession(key_bindings=kb)
    return PromptSession(
        input=getattr(session, "input", None),
        output=getattr(session, "output", None),
        key_bindings=kb,
    )


def ask(
    message: str,
    completions: Sequence[str] = (),
    *,
    default: str = "",
    session: PromptSession | None = None,
) -> str | None:
    """Free-text question with optional completion; blank answers become ``None``."""

    kb = _cancel_bindings()
    completer = (
        WordCompleter(list(completions), ignore_case=True, match_middle=True, sentence=True)
        if completions
        else None
    )
    answer = _session(kb, session).prompt(message, default=default, completer=completer)
    if answer is None or not answer.strip():
        return None
    return answer.strip()


# ----------------------------------------------------------------------------
# Reconciler questions
# ----------------------------------------------------------------------------


def prompt_account(
    accounts: Sequence[str],
    *,
    session: PromptSession | None = None,
    message: str = ACCOUNT_PROMPT,
) -> str | None:
    """Choose an account; any text is accepted since the match is by substring."""

    return ask(message, accounts, session=session)


def prompt_target(
    *,
    message: str = "Target amount for reconciliation ",
    default_commodity: str = "$",
    session: PromptSession | None = None,
) -> str | None:
    """Ask for a target amount; Enter on an empty line means no target."""

    kb = _cancel_bindings()

    class _AmountValidator(Validator):
        def validate(self, document) -> None:
            text = document.text.strip()
            if not text:
                return
            try:
                parse_amount(text, default_commodity=default_commodity)
            except CommodityError as e:
                raise ValidationError(message=str(e)) from e

    answer = _session(kb, session).prompt(
        message, validator=_AmountValidator(), validate_while_typing=False
    )
    if answer is None or not answer.strip():
        return None
    return answer.strip()


def prompt_sort_key(
    *,
    default: str = "file",
    session: PromptSession | None = None,
    message: str = "Sort by (file, date, amount, payee or an expression): ",
) -> str | None:
    return ask(message, list(SORT_KEYS), default=default, session=session)


def prompt_transaction(
    *,
    session: PromptSession | None = None,
    message: str = "Transaction (DATE PAYEE [ACCOUNT AMOUNT ...]): ",
) -> str | None:
    return ask(message, session=session)


def make_prompt(settings: ReconcileSettings, *, session: PromptSession | None = None) -> Prompt:
    """Adapt these helpers to the ``Reconciler`` prompt callback."""

    def _prompt(message: str, completions: Sequence[str]) -> str | None:
        if message == ACCOUNT_PROMPT:
            return prompt_account(completions, session=session)
        if message == SORT_PROMPT:
            return prompt_sort_key(session=session)
        if message == TRANSACTION_PROMPT:
            return prompt_transaction(session=session)
        if message == settings.target_prompt:
            return prompt_target(
                message=message,
                default_commodity=settings.default_commodity,
                session=session,
            )
        return ask(message, completions, session=session)

    return _prompt


__all__ = [
    "ask",
    "make_prompt",
    "prompt_account",
    "prompt_sort_key",
    "prompt_target",
    "prompt_transaction",
]
