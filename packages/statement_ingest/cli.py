# ruff: noqa: I001
"""CLI for the ``statement_ingest`` package.

Two commands:

- ``ingest`` runs one upload end to end against the database named by
  ``--database-url`` or ``DATABASE_URL`` and prints the JSON payload a web
  route would return. Exit code 0 on success, 2 when rows were only partly
  persisted, 1 otherwise.
- ``parse`` is an offline debug view: it parses a PDF (or an already
  extracted text file) and prints candidate transactions without touching the
  database.

Environment variables are loaded from a local ``.env`` in the root callback.
Business logic lives in ``statement_ingest.api`` and the parser modules.
"""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Annotated, Any

import typer
from dotenv import load_dotenv
from typer.models import OptionInfo

from .logging_setup import configure_logging
from .models import IngestOutcome


# ---- Small module-level helpers used by CLI commands -------------------------


def _echo_json(payload: Any) -> None:
    typer.echo(json.dumps(payload, ensure_ascii=False, indent=2, default=str))


def _exit_code(outcome: IngestOutcome) -> int:
    if outcome is IngestOutcome.OK:
        return 0
    if outcome is IngestOutcome.PARTIAL:
        return 2
    return 1


def _read_bytes(path: Path) -> bytes:
    try:
        return path.read_bytes()
    except FileNotFoundError:
        print(f"Error: File not found: {path}", file=sys.stderr)
    except PermissionError:
        print(f"Error: Permission denied: {path}", file=sys.stderr)
    except OSError as e:
        print(f"Error: Unexpected failure reading '{path}': {e}", file=sys.stderr)
    raise typer.Exit(1)


# ---- Typer-based console interface -------------------------------------------


app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help=(
        "Parse bank statement PDFs into transactions and reconcile them with the "
        "database. Loads DATABASE_URL from a local .env before running."
    ),
)


# Module-level option objects to satisfy ruff B008 (no calls in parameter
# defaults).
PDF_PATH_OPTION: OptionInfo = typer.Option(
    ...,  # required
    "--pdf-path",
    help="Path to the statement PDF",
    dir_okay=False,
    file_okay=True,
    exists=False,  # the command reports missing files itself
)

OPTIONAL_PDF_PATH_OPTION: OptionInfo = typer.Option(
    ...,  # optional via the parameter default
    "--pdf-path",
    help="Path to a statement PDF to extract and parse",
    dir_okay=False,
    file_okay=True,
    exists=False,
)

TEXT_PATH_OPTION: OptionInfo = typer.Option(
    ...,  # optional via the parameter default
    "--text-path",
    help="Path to already-extracted statement text (UTF-8)",
    dir_okay=False,
    file_okay=True,
    exists=False,
)


@app.command("ingest")
def ingest_cmd(
    pdf_path: Annotated[Path, PDF_PATH_OPTION],
    *,
    account_name: str = typer.Option(
        ..., "--account-name", help="Account the statement belongs to."
    ),
    file_name: str | None = typer.Option(
        None, help="Source file name to record (defaults to the PDF's name)."
    ),
    database_url: str | None = typer.Option(
        None, help="Override DATABASE_URL (falls back to env var)."
    ),
    batch_size: int | None = typer.Option(
        None,
        min=1,
        help="Rows per bulk insert (falls back to STATEMENT_INGEST_BATCH_SIZE, then 500).",
    ),
) -> None:
    """Ingest one statement PDF and print the result payload."""

    # Deferred imports keep `--help` fast and avoid touching the DB driver.
    from db.client import get_session
    from .api import ingest_statement
    from .persistence import SqlAlchemyStore

    data = _read_bytes(pdf_path)

    try:
        session = get_session(database_url=database_url)
    except Exception as e:
        print(f"Error: failed to open database session: {e}", file=sys.stderr)
        raise typer.Exit(1) from e

    try:
        result = ingest_statement(
            account_name=account_name,
            pdf_bytes=data,
            file_name=file_name or pdf_path.name,
            store=SqlAlchemyStore(session),
            batch_size=batch_size,
        )
    finally:
        session.close()

    _echo_json(result.to_payload())
    raise typer.Exit(_exit_code(result.outcome))


@app.command("parse")
def parse_cmd(
    pdf_path: Annotated[Path | None, OPTIONAL_PDF_PATH_OPTION] = None,
    text_path: Annotated[Path | None, TEXT_PATH_OPTION] = None,
    *,
    show_lines: bool = typer.Option(
        False, help="Also print every line with its classification."
    ),
    no_fallback: bool = typer.Option(
        False, help="Disable the permissive second pass."
    ),
) -> None:
    """Parse a statement offline and print candidate transactions as JSON."""

    from .assembler import parse_statement
    from .classify import classify, split_lines
    from .config import STRICT
    from .errors import ExtractionError
    from .pdf_text import extract_pdf_text

    if pdf_path is not None and text_path is not None:
        print("Error: pass exactly one of --pdf-path or --text-path.", file=sys.stderr)
        raise typer.Exit(1)

    if text_path is not None:
        text = _read_bytes(text_path).decode("utf-8", errors="replace")
    elif pdf_path is not None:
        try:
            text = extract_pdf_text(_read_bytes(pdf_path))
        except ExtractionError as e:
            print(f"Error: {e}", file=sys.stderr)
            raise typer.Exit(1) from e
    else:
        print("Error: pass exactly one of --pdf-path or --text-path.", file=sys.stderr)
        raise typer.Exit(1)

    if no_fallback:
        parsed = parse_statement(text, fallback=None)
    else:
        parsed = parse_statement(text)

    payload: dict[str, Any] = {
        "line_count": parsed.line_count,
        "used_fallback": parsed.used_fallback,
        "transactions": [
            {
                "date": c.date,
                "description": c.description,
                "credit": str(c.credit),
                "debit": str(c.debit),
                "balance": None if c.balance is None else str(c.balance),
                "transaction_no": c.transaction_no,
                "source_line": c.source_line,
            }
            for c in parsed.candidates
        ],
    }
    if show_lines:
        payload["lines"] = [
            {
                "index": item.line.index,
                "kind": item.kind.value,
                "anchor": item.anchor,
                "text": item.line.text,
            }
            for item in classify(split_lines(text), STRICT)
        ]
    _echo_json(payload)


@app.callback(invoke_without_command=True)
def _root(ctx: typer.Context) -> None:
    """Root command.

    Loads ``.env`` from the current working directory (without overriding any
    already-set environment variables) and configures package logging.
    """

    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)

    # Central logging setup so child loggers inherit configuration
    configure_logging()

    if ctx.invoked_subcommand is None:
        typer.echo("No subcommand provided. Use --help to see available commands.")
        raise typer.Exit(1)


def main() -> None:
    """Console-script entry point."""

    app()


if __name__ == "__main__":  # pragma: no cover - exercised via console script
    # Running as a module: `python -m statement_ingest.cli`
    main()
