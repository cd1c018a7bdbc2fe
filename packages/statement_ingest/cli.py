"""CLI for the ``statement_ingest`` package.

Each subcommand has a plain ``cmd_*`` handler returning a process exit code;
the Typer wrappers only translate options and raise ``typer.Exit``. The root
callback loads ``.env`` from the working directory (without overriding
variables already set) and configures logging before any command runs.

Commands that touch the ledger need ``DATABASE_URL`` or ``--database-url``.
"""

from __future__ import annotations

import json
import sys
from collections.abc import Iterable
from pathlib import Path
from typing import Annotated, Any

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.markup import escape
from rich.table import Table
from sqlalchemy.exc import SQLAlchemyError

from .categories import list_categories
from .config import Settings, load_settings
from .context import LedgerContext
from .errors import IngestError, StatementError
from .importer import delete_transaction, import_batch
from .logging_setup import configure_logging
from .models import ImportResult, ImportRow, StatementPreview
from .statement import CSV_MIME_TYPE, PDF_MIME_TYPE, describe_pdf_text, process_statement

console = Console()

app = typer.Typer(
    name="statement-ingest",
    no_args_is_help=True,
    add_completion=False,
    help="Parse bank statements (PDF/CSV), categorize transactions and import them into the ledger.",
)

DatabaseUrlOption = Annotated[
    str | None, typer.Option("--database-url", help="Override DATABASE_URL (falls back to env var).")
]
UserIdOption = Annotated[
    int | None, typer.Option("--user-id", help="Owner of the accounts to act on.")
]
StatementPath = Annotated[
    Path, typer.Argument(help="Path to a PDF or CSV statement.", dir_okay=False)
]


# ---- helpers -----------------------------------------------------------------


def _error(message: str) -> None:
    print(f"Error: {message}", file=sys.stderr)


def _load_settings() -> Settings | None:
    try:
        return load_settings()
    except ValueError as e:
        _error(f"Invalid configuration: {e}")
        return None


def _open_context(database_url: str | None) -> LedgerContext | None:
    settings = _load_settings()
    if settings is None:
        return None
    try:
        return LedgerContext.from_settings(settings, database_url=database_url)
    except RuntimeError as e:
        _error(str(e))
        return None


def _mime_for(path: Path) -> str | None:
    suffix = path.suffix.lower()
    if suffix == ".pdf":
        return PDF_MIME_TYPE
    if suffix == ".csv":
        return CSV_MIME_TYPE
    return None


def _read_bytes(path: Path) -> bytes | None:
    try:
        return path.read_bytes()
    except FileNotFoundError:
        _error(f"File not found: {path}")
    except PermissionError:
        _error(f"Permission denied: {path}")
    return None


def _report_statement_error(exc: StatementError) -> None:
    _error(exc.message)
    for key, value in exc.debug.items():
        if value not in (None, ""):
            print(f"  {key}: {value}", file=sys.stderr)


def _render_preview(preview: StatementPreview) -> None:
    table = Table(title=f"{escape(preview.file_name)} ({preview.dialect})")
    table.add_column("Date", no_wrap=True)
    table.add_column("Description")
    table.add_column("Amount", justify="right", no_wrap=True)
    table.add_column("Category")
    for tx in preview.transactions:
        style = "red" if tx.amount < 0 else "green"
        table.add_row(
            tx.date,
            escape(tx.description),
            f"[{style}]{tx.amount:.2f}[/{style}]",
            escape(tx.category),
        )
    console.print(table)
    note = " (generic fallback)" if preview.used_fallback else ""
    console.print(f"{preview.total_count} transactions{note}")


def _render_import_result(result: ImportResult) -> None:
    console.print(
        f"Imported {result.imported_count}, skipped {result.skipped_count} "
        f"of {result.total_processed} transactions"
    )
    for message in result.errors:
        console.print(f"  [yellow]{escape(message)}[/yellow]")


def _run_import(
    ctx: LedgerContext, account: str, user_id: int | None, rows: Iterable[Any]
) -> int:
    try:
        result = import_batch(ctx.session_factory, ctx.categorizer, account, user_id, rows)
    except IngestError as e:
        _error(str(e))
        return 1
    _render_import_result(result)
    return 0


def _load_json_rows(path: Path) -> list[Any]:
    payload = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(payload, dict):
        payload = payload.get("transactions")
    if not isinstance(payload, list):
        raise ValueError("expected a JSON array of transactions or an object with 'transactions'")
    return payload


# ---- command handlers ----------------------------------------------------------


def cmd_init_db(database_url: str | None, accounts: Iterable[str] = ()) -> int:
    """Create the ledger tables and optionally seed shared accounts."""

    ctx = _open_context(database_url)
    if ctx is None:
        return 1
    from ledger_db.client import session_scope
    from ledger_db.models.ledger import Account
    from sqlalchemy import select

    try:
        ctx.create_schema()
        with session_scope(ctx.session_factory) as session:
            for name in accounts:
                exists = session.scalars(
                    select(Account.id).where(Account.name == name, Account.user_id.is_(None))
                ).first()
                if exists is None:
                    session.add(Account(name=name, type="checking"))
    finally:
        ctx.close()
    console.print("Ledger schema ready")
    return 0


def cmd_preview(
    path: Path,
    *,
    database_url: str | None = None,
    fallback_year: int | None = None,
    as_json: bool = False,
) -> int:
    """Extract and print a statement's transactions without importing them.

    Rows are categorized when a database is configured; otherwise they show
    ``Unknown`` and are categorized at import time.
    """

    buffer = _read_bytes(path)
    if buffer is None:
        return 1
    settings = _load_settings()
    if settings is None:
        return 1
    ctx = None
    if database_url or settings.database_url:
        ctx = _open_context(database_url)
        if ctx is None:
            return 1
    try:
        preview = process_statement(
            buffer,
            path.name,
            _mime_for(path),
            categorizer=ctx.categorizer if ctx else None,
            fallback_year=fallback_year,
            max_bytes=settings.max_upload_bytes,
        )
    except StatementError as e:
        _report_statement_error(e)
        return 1
    finally:
        if ctx is not None:
            ctx.close()

    if as_json:
        typer.echo(json.dumps(preview.to_dict(), indent=2))
    else:
        _render_preview(preview)
    return 0


def cmd_import_statement(
    path: Path,
    account: str,
    *,
    user_id: int | None = None,
    database_url: str | None = None,
    fallback_year: int | None = None,
    assume_yes: bool = False,
) -> int:
    """Preview a statement, confirm, then import its rows into ``account``."""

    buffer = _read_bytes(path)
    if buffer is None:
        return 1
    ctx = _open_context(database_url)
    if ctx is None:
        return 1
    try:
        try:
            preview = process_statement(
                buffer,
                path.name,
                _mime_for(path),
                categorizer=ctx.categorizer,
                fallback_year=fallback_year,
                max_bytes=ctx.settings.max_upload_bytes,
            )
        except StatementError as e:
            _report_statement_error(e)
            return 1

        _render_preview(preview)
        if not assume_yes and not typer.confirm(
            f"Import {preview.total_count} transactions into {account!r}?", default=False
        ):
            console.print("Aborted; nothing imported")
            return 1

        rows = [
            ImportRow(date=t.date, description=t.description, amount=t.amount, category=t.category)
            for t in preview.transactions
        ]
        return _run_import(ctx, account, user_id, rows)
    finally:
        ctx.close()


def cmd_import_json(
    path: Path,
    account: str,
    *,
    user_id: int | None = None,
    database_url: str | None = None,
) -> int:
    """Import reviewed rows from a JSON file (``date, description, amount, category``)."""

    try:
        rows = _load_json_rows(path)
    except FileNotFoundError:
        _error(f"File not found: {path}")
        return 1
    except (json.JSONDecodeError, ValueError) as e:
        _error(f"Invalid transactions file: {e}")
        return 1

    ctx = _open_context(database_url)
    if ctx is None:
        return 1
    try:
        return _run_import(ctx, account, user_id, rows)
    finally:
        ctx.close()


def cmd_learn(substring: str, category: str, *, database_url: str | None = None) -> int:
    ctx = _open_context(database_url)
    if ctx is None:
        return 1
    try:
        ctx.categorizer.learn_category_mapping(substring, category)
    except ValueError as e:
        _error(str(e))
        return 1
    except SQLAlchemyError as e:
        _error(f"Could not save mapping: {e}")
        return 1
    finally:
        ctx.close()
    console.print(f"Learned: {escape(substring)} -> {escape(category)}")
    return 0


def cmd_recategorize(*, user_id: int | None = None, database_url: str | None = None) -> int:
    ctx = _open_context(database_url)
    if ctx is None:
        return 1
    try:
        result = ctx.categorizer.recategorize_all(user_id)
    finally:
        ctx.close()
    console.print(
        f"Recategorized {result.updated_count} of {result.total_count} transactions"
    )
    for message in result.errors:
        console.print(f"  [yellow]{escape(message)}[/yellow]")
    return 0


def cmd_delete_transaction(
    transaction_id: int, *, user_id: int | None = None, database_url: str | None = None
) -> int:
    ctx = _open_context(database_url)
    if ctx is None:
        return 1
    try:
        delete_transaction(ctx.session_factory, transaction_id, user_id)
    except IngestError as e:
        _error(str(e))
        return 1
    finally:
        ctx.close()
    console.print(f"Deleted transaction {transaction_id}")
    return 0


def cmd_categories(*, user_id: int | None = None, database_url: str | None = None) -> int:
    ctx = _open_context(database_url)
    if ctx is None:
        return 1
    from ledger_db.client import session_scope

    try:
        with session_scope(ctx.session_factory) as session:
            names = list_categories(session, user_id)
    finally:
        ctx.close()
    for name in names:
        typer.echo(name)
    return 0


def cmd_debug_pdf(path: Path) -> int:
    """Print what text extraction sees in a PDF (counts and first lines)."""

    buffer = _read_bytes(path)
    if buffer is None:
        return 1
    try:
        summary = describe_pdf_text(buffer, path.name)
    except StatementError as e:
        _report_statement_error(e)
        return 1
    typer.echo(json.dumps(summary, indent=2))
    return 0


# ---- Typer-based console interface ---------------------------------------------


@app.command("init-db")
def init_db_cmd(
    database_url: DatabaseUrlOption = None,
    account: Annotated[
        list[str] | None,
        typer.Option("--account", help="Shared account to create (repeatable)."),
    ] = None,
) -> None:
    """Create ledger tables (development; use Alembic in production)."""

    raise typer.Exit(cmd_init_db(database_url, account or ()))


@app.command("preview")
def preview_cmd(
    path: StatementPath,
    database_url: DatabaseUrlOption = None,
    year: Annotated[
        int | None, typer.Option("--year", help="Year for dates printed without one.")
    ] = None,
    as_json: Annotated[bool, typer.Option("--json", help="Emit the preview as JSON.")] = False,
) -> None:
    """Show the transactions a statement would import."""

    raise typer.Exit(
        cmd_preview(path, database_url=database_url, fallback_year=year, as_json=as_json)
    )


@app.command("import-statement")
def import_statement_cmd(
    path: StatementPath,
    account: Annotated[str, typer.Option("--account", help="Destination account name.")],
    user_id: UserIdOption = None,
    database_url: DatabaseUrlOption = None,
    year: Annotated[
        int | None, typer.Option("--year", help="Year for dates printed without one.")
    ] = None,
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Skip the confirmation prompt.")] = False,
) -> None:
    """Parse a statement and import its transactions."""

    raise typer.Exit(
        cmd_import_statement(
            path,
            account,
            user_id=user_id,
            database_url=database_url,
            fallback_year=year,
            assume_yes=yes,
        )
    )


@app.command("import-json")
def import_json_cmd(
    path: Annotated[Path, typer.Argument(help="JSON file of reviewed transactions.")],
    account: Annotated[str, typer.Option("--account", help="Destination account name.")],
    user_id: UserIdOption = None,
    database_url: DatabaseUrlOption = None,
) -> None:
    """Import reviewed transactions from JSON."""

    raise typer.Exit(
        cmd_import_json(path, account, user_id=user_id, database_url=database_url)
    )


@app.command("learn")
def learn_cmd(
    substring: Annotated[str, typer.Argument(help="Text that identifies the merchant.")],
    category: Annotated[str, typer.Argument(help="Category to assign.")],
    database_url: DatabaseUrlOption = None,
) -> None:
    """Remember a merchant -> category mapping."""

    raise typer.Exit(cmd_learn(substring, category, database_url=database_url))


@app.command("recategorize")
def recategorize_cmd(user_id: UserIdOption = None, database_url: DatabaseUrlOption = None) -> None:
    """Re-run categorization over existing transactions."""

    raise typer.Exit(cmd_recategorize(user_id=user_id, database_url=database_url))


@app.command("delete-transaction")
def delete_transaction_cmd(
    transaction_id: Annotated[int, typer.Argument(help="Transaction id.")],
    user_id: UserIdOption = None,
    database_url: DatabaseUrlOption = None,
) -> None:
    """Delete a transaction and reverse its balance and budget effects."""

    raise typer.Exit(
        cmd_delete_transaction(transaction_id, user_id=user_id, database_url=database_url)
    )


@app.command("categories")
def categories_cmd(user_id: UserIdOption = None, database_url: DatabaseUrlOption = None) -> None:
    """List default and in-use categories."""

    raise typer.Exit(cmd_categories(user_id=user_id, database_url=database_url))


@app.command("debug-pdf")
def debug_pdf_cmd(path: StatementPath) -> None:
    """Summarize the text extracted from a PDF."""

    raise typer.Exit(cmd_debug_pdf(path))


@app.callback()
def _root(
    log_level: Annotated[
        str | None, typer.Option("--log-level", help="Override STATEMENT_INGEST_LOG_LEVEL.")
    ] = None,
) -> None:
    """Load ``.env`` and configure logging before any subcommand."""

    # Load environment from .env in CWD (override=False to keep existing env)
    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)
    configure_logging(log_level)


if __name__ == "__main__":  # pragma: no cover
    app()
