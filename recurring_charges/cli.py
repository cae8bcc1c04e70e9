# ruff: noqa: I001
"""CLI for the ``recurring_charges`` package.

Exposes a callable command handler (:func:`cmd_detect`) and a Typer-based
console interface. Environment variables (``DATABASE_URL``,
``RECURRING_CHARGES_LOG_LEVEL``, ``RC_DETECT_MAX_WORKERS``) are loaded from a
local ``.env`` using ``python-dotenv`` before delegating to command logic.
Business logic lives in ``recurring_charges.api``.
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Any

import typer
from dotenv import load_dotenv
from pydantic import ValidationError
from typer.models import OptionInfo

from .logging_setup import configure_logging
from .recurrence import round_cents


# ---- Small module-level helpers used by CLI commands -------------------------


def _resolve_max_workers() -> int:
    """Resolve the per-group detection worker count.

    Honors the optional ``RC_DETECT_MAX_WORKERS`` env var, capped to 32.
    Defaults to 1 (inline).
    """

    import os

    env_workers = os.getenv("RC_DETECT_MAX_WORKERS")
    try:
        max_workers = int(env_workers) if env_workers else None
    except ValueError:
        max_workers = None

    if max_workers is not None and max_workers > 0:
        return min(max_workers, 32)
    return 1


def _format_line(sub: Any) -> str:
    return "\t".join(
        [
            sub.merchant_name,
            f"{sub.amount:.2f}",
            sub.frequency.value,
            sub.next_expected_charge.isoformat(),
            str(round_cents(sub.monthly_equivalent)),
        ]
    )


def cmd_detect(
    csv_path: str,
    *,
    json_output: bool = True,
    persist: bool = False,
    user_id: str | None = None,
    database_url: str | None = None,
    config_overrides: dict[str, Any] | None = None,
) -> int:
    """Detect recurring subscriptions in a statement export and print them.

    Behavior
    --------
    - Reads ``csv_path`` as text and runs
      :func:`recurring_charges.api.analyze_statement`.
    - With ``json_output`` prints the camelCase report
      (``transactionsProcessed``, ``parseErrors``, ``detected``,
      ``subscriptions``); otherwise one tab-separated line per subscription:
      ``merchant, amount, frequency, next_expected_charge,
      monthly_equivalent``.
    - With ``persist`` upserts the results for ``user_id``.

    Errors are written to stderr and the function returns ``1``. On success,
    returns ``0``.
    """

    from .api import analyze_statement
    from .config import DetectorConfig
    from .ingest.utils import load_statement_text
    from .models import DetectionReportPayload

    if persist and not (user_id and user_id.strip()):
        typer.echo("Error: --user-id is required with --persist.", err=True)
        return 1

    try:
        config = DetectorConfig(
            concurrency=_resolve_max_workers(), **(config_overrides or {})
        )
    except ValidationError as e:
        typer.echo(f"Error: invalid detector configuration: {e}", err=True)
        return 1

    try:
        text = load_statement_text(csv_path)
    except FileNotFoundError:
        typer.echo(f"Error: File not found: {csv_path}", err=True)
        return 1
    except PermissionError:
        typer.echo(f"Error: Permission denied: {csv_path}", err=True)
        return 1
    except (OSError, ValueError) as e:
        typer.echo(f"Error: Failed to read '{csv_path}': {e}", err=True)
        return 1

    report = analyze_statement(text, config)

    if persist and report.subscriptions:
        try:
            from .db.client import session_scope
            from .persistence import upsert_subscriptions

            with session_scope(database_url=database_url) as session:
                upsert_subscriptions(
                    session,
                    user_id=user_id or "",
                    subscriptions=report.subscriptions,
                )
        except Exception as e:
            typer.echo(f"Error: persistence (upsert) failed: {e}", err=True)
            return 1

    if json_output:
        payload = DetectionReportPayload.from_report(report)
        typer.echo(payload.model_dump_json(by_alias=True, indent=2))
    else:
        for sub in report.subscriptions:
            typer.echo(_format_line(sub))
        for err in report.parse_errors:
            typer.echo(err, err=True)

    return 0


app = typer.Typer(add_completion=False, help="Detect recurring charges in statement exports.")


# Module-level option object to satisfy ruff B008 (no calls in parameter
# defaults).
CSV_PATH_OPTION: OptionInfo = typer.Option(
    ...,  # required
    "--csv-path",
    help="Path to a CSV/TSV statement export.",
    dir_okay=False,
    file_okay=True,
    exists=False,  # the handler reports missing files itself
    readable=True,
)


@app.command("detect")
def detect_cmd(
    csv_path: Annotated[Path, CSV_PATH_OPTION],
    *,
    json_output: bool = typer.Option(
        True, "--json/--no-json", help="Print a JSON report instead of tab-separated lines."
    ),
    persist: bool = typer.Option(False, help="Upsert detected subscriptions to the database."),
    user_id: str | None = typer.Option(None, help="Owner of the persisted subscriptions."),
    database_url: str | None = typer.Option(
        None, help="Override DATABASE_URL (falls back to env var)."
    ),
    similarity_threshold: float | None = typer.Option(
        None, help="Merchant similarity needed to share a group (default 0.75)."
    ),
    amount_tolerance: float | None = typer.Option(
        None, help="Relative amount tolerance (default 0.02)."
    ),
    min_occurrences: int | None = typer.Option(
        None, help="Minimum same-amount charges for a subscription (default 3)."
    ),
    grouping: str | None = typer.Option(
        None, help="Merchant grouping strategy: 'pivot' (default) or 'transitive'."
    ),
    near_misses: bool = typer.Option(
        False, "--near-misses", help="Include rejected candidate groups in the report."
    ),
) -> None:
    overrides: dict[str, Any] = {
        k: v
        for k, v in {
            "similarity_threshold": similarity_threshold,
            "amount_tolerance": amount_tolerance,
            "min_occurrences": min_occurrences,
            "grouping": grouping,
        }.items()
        if v is not None
    }
    if near_misses:
        overrides["collect_near_misses"] = True

    code = cmd_detect(
        str(csv_path),
        json_output=json_output,
        persist=persist,
        user_id=user_id,
        database_url=database_url,
        config_overrides=overrides,
    )
    if code:
        raise typer.Exit(code)


@app.callback(invoke_without_command=True)
def _root(ctx: typer.Context) -> None:
    """Root command.

    Loads ``.env`` from the current working directory without overriding
    already-set variables and configures package logging.
    """

    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)
    configure_logging()

    if ctx.invoked_subcommand is None:
        typer.echo("No subcommand provided. Use --help to see available commands.")
        raise typer.Exit(1)


def main() -> None:
    app()


if __name__ == "__main__":  # pragma: no cover
    main()
