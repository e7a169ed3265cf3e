"""Reconciler settings.

All knobs live on one validated, immutable :class:`ReconcileSettings` model.
:func:`load_settings` reads ``LEDGER_RECONCILE_<FIELD>`` environment variables
(the CLI loads a local ``.env`` first) and applies explicit overrides last.
"""

from __future__ import annotations

import os
from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING, Any, TypeAlias

from pydantic import BaseModel, ConfigDict, field_validator

from .formatting import compile_line_format

if TYPE_CHECKING:
    from .document import LedgerDocument

ENV_PREFIX = "LEDGER_RECONCILE_"

DEFAULT_LINE_FORMAT = "%(date)s %-4(code)s %-50(payee)s %-30(account)s %15(amount)s\n"

# Decides at the edit point whether to add an effective date annotation.
EffectiveDatePolicy: TypeAlias = "bool | Callable[[LedgerDocument, int], bool]"


class ReconcileSettings(BaseModel):
    """Everything the user can configure about a reconciliation session."""

    model_config = ConfigDict(extra="forbid", frozen=True, arbitrary_types_allowed=True)

    buffer_name: str = "*Reconcile*"
    narrow_on_reconcile: bool = True
    buffer_tracks_reconcile_buffer: bool = True
    force_window_bottom: bool = False
    toggle_to_pending: bool = True
    date_format: str = "%Y/%m/%d"
    target_prompt: str = "Target amount for reconciliation "
    buffer_header: str | None = "Reconciling account %s\n\n"
    line_format: str = DEFAULT_LINE_FORMAT
    payee_max_chars: int = -1
    account_max_chars: int = -1
    sort_key: str = "(0)"
    insert_effective_date: bool | Callable[..., bool] = False
    finish_force_quit: bool = False
    clear_whole_transactions: bool = False
    ledger_binary: str = "ledger"
    ledger_timeout: float = 60.0
    default_commodity: str = "$"
    max_window_height: int = 20

    @field_validator("line_format")
    @classmethod
    def _line_format_compiles(cls, v: str) -> str:
        # Surface template mistakes at load time rather than once per line.
        compile_line_format(v)
        return v

    @field_validator("buffer_header")
    @classmethod
    def _header_has_one_slot(cls, v: str | None) -> str | None:
        if v is None:
            return None
        try:
            v % "account"
        except (TypeError, ValueError) as e:
            raise ValueError(f"buffer_header must take exactly one %s for the account: {e}") from e
        return v

    @field_validator("sort_key")
    @classmethod
    def _sort_key_non_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("sort_key must be non-empty; use '(0)' for file order")
        return v

    @field_validator("ledger_timeout")
    @classmethod
    def _timeout_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("ledger_timeout must be positive")
        return v


_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


def _parse_bool(name: str, raw: str) -> bool:
    v = raw.strip().lower()
    if v in _TRUE:
        return True
    if v in _FALSE:
        return False
    raise ValueError(f"{ENV_PREFIX}{name.upper()} must be a boolean (got {raw!r})")


def _from_env(environ: Mapping[str, str]) -> dict[str, Any]:
    values: dict[str, Any] = {}
    for name, info in ReconcileSettings.model_fields.items():
        raw = environ.get(ENV_PREFIX + name.upper())
        if raw is None:
            continue
        if info.annotation is bool or name == "insert_effective_date":
            # Only the boolean form of the effective-date policy is expressible in env.
            values[name] = _parse_bool(name, raw)
        elif name == "buffer_header" and raw.strip().lower() in {"", "none"}:
            values[name] = None
        else:
            # pydantic coerces numeric strings for int/float fields.
            values[name] = raw
    return values


def load_settings(
    environ: Mapping[str, str] | None = None, **overrides: Any
) -> ReconcileSettings:
    """Build settings from the environment plus keyword overrides.

    ``None`` overrides are ignored so CLI options left unset fall through to the
    environment and then to the defaults.
    """

    values = _from_env(os.environ if environ is None else environ)
    values.update({k: v for k, v in overrides.items() if v is not None})
    return ReconcileSettings(**values)


__all__ = [
    "DEFAULT_LINE_FORMAT",
    "ENV_PREFIX",
    "EffectiveDatePolicy",
    "ReconcileSettings",
    "load_settings",
]
