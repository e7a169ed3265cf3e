"""Console entry point for ``ledger_reconcile``.

``reconcile`` opens the interactive screen; ``list`` and ``balance`` print the
same view and balance non-interactively, which is handy in scripts. Settings
come from ``LEDGER_RECONCILE_*`` environment variables (a local ``.env`` is
loaded first with ``python-dotenv``) with command-line options applied last.
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from dotenv import load_dotenv
from pydantic import ValidationError
from rich.console import Console
from rich.text import Text

from .commodity import CommodityError
from .config import ReconcileSettings, load_settings
from .executor import LedgerExecError, resolve_sort_key
from .formatting import LineFormatError
from .logging_setup import configure_logging
from .session import ReconcileError, ReconcileSession, Reconciler
from .sexp import SexpError

app = typer.Typer(
    name="ledger-reconcile",
    no_args_is_help=True,
    add_completion=False,
    help="Reconcile a ledger account against a statement, interactively or in batch.",
)
console = Console()

_STATUS_STYLES = {"pending": "yellow", "cleared": "green"}

# Errors that end a command with "Error: ..." and exit status 1.
_FATAL = (
    LedgerExecError,
    ReconcileError,
    CommodityError,
    LineFormatError,
    SexpError,
    OSError,
)

LEDGER_FILE_ARG = typer.Argument(
    ...,
    help="Ledger journal to reconcile.",
    exists=True,
    dir_okay=False,
    readable=True,
)


def _fail(message: object) -> typer.Exit:
    console.print(Text.assemble(("Error:", "red"), f" {message}"))
    return typer.Exit(1)


def _settings(**overrides: object) -> ReconcileSettings:
    try:
        return load_settings(**overrides)
    except (ValidationError, ValueError) as e:
        raise _fail(e) from e


def _start(
    reconciler: Reconciler,
    ledger_file: Path,
    account: str | None,
    target: str | None,
) -> ReconcileSession:
    try:
        document = reconciler.registry.open(ledger_file)
        session = reconciler.reconcile(document, account, target)
    except _FATAL as e:
        raise _fail(e) from e
    if session is None:
        raise _fail(reconciler.message or "No account to reconcile.")
    return session


def _print_view(session: ReconcileSession) -> None:
    for line in session.view.lines:
        console.print(Text(line.text, style=_STATUS_STYLES.get(line.status or "", "")))


@app.command("reconcile")
def reconcile_cmd(
    ledger_file: Annotated[Path, LEDGER_FILE_ARG],
    *,
    account: str | None = typer.Option(None, help="Account to reconcile (prompted when omitted)."),
    target: str | None = typer.Option(None, help="Target balance, e.g. '$1,234.56'."),
    sort: str | None = typer.Option(
        None, help="Sort key: file, date, amount, payee or a ledger expression."
    ),
    ledger_binary: str | None = typer.Option(None, help="Path to the ledger executable."),
    log_file: Path | None = typer.Option(
        None, help="Write logs here; the screen owns the terminal while it runs."
    ),
) -> None:
    """Open the interactive reconcile screen."""

    # Deferred imports keep the batch commands from loading the full-screen UI.
    from .term_ui import make_prompt
    from .tui import run_tui

    if log_file is not None:
        configure_logging(log_file=log_file)
    settings = _settings(
        ledger_binary=ledger_binary,
        sort_key=resolve_sort_key(sort) if sort else None,
    )
    reconciler = Reconciler(settings, prompt=make_prompt(settings))
    _start(reconciler, ledger_file, account, target)
    run_tui(reconciler)


@app.command("list")
def list_cmd(
    ledger_file: Annotated[Path, LEDGER_FILE_ARG],
    *,
    account: str = typer.Option(..., help="Account to list."),
    target: str | None = typer.Option(None, help="Target balance to compare against."),
    sort: str | None = typer.Option(None, help="Sort key: file, date, amount, payee or expression."),
    ledger_binary: str | None = typer.Option(None, help="Path to the ledger executable."),
) -> None:
    """Print the uncleared postings of an account the way the screen shows them."""

    configure_logging()
    settings = _settings(
        ledger_binary=ledger_binary,
        sort_key=resolve_sort_key(sort) if sort else None,
    )
    reconciler = Reconciler(settings)
    session = _start(reconciler, ledger_file, account, target)
    _print_view(session)
    console.print(
        session.balance_message,
        style="bold green" if session.balance_matches_target else "bold",
        highlight=False,
    )
    reconciler.quit()


@app.command("balance")
def balance_cmd(
    ledger_file: Annotated[Path, LEDGER_FILE_ARG],
    *,
    account: str = typer.Option(..., help="Account whose cleared-or-pending balance to show."),
    target: str | None = typer.Option(None, help="Target balance to compare against."),
    ledger_binary: str | None = typer.Option(None, help="Path to the ledger executable."),
) -> None:
    """Show the cleared-or-pending balance and the distance to a target."""

    configure_logging()
    settings = _settings(ledger_binary=ledger_binary)
    reconciler = Reconciler(settings)
    session = _start(reconciler, ledger_file, account, target)
    console.print(session.balance_message, highlight=False)
    reconciler.quit()


@app.callback()
def _root() -> None:
    """Load ``.env`` from the current directory without overriding set variables."""

    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)


if __name__ == "__main__":  # pragma: no cover
    app()
