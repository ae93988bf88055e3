from __future__ import annotations

import json
import signal
import sys
import threading
from typing import List, Optional

import typer

from benchsync.config import get_settings
from benchsync.domain.kinds import available_kinds, resolve_kinds
from benchsync.errors import StoreUnavailable, UnknownKindError
from benchsync.probe import AvailabilityProbe
from benchsync.reporter import print_status, print_summary
from benchsync.trigger import ReconciliationTrigger, default_adapters
from benchsync.utils.logging import configure_logging

app = typer.Typer(help="benchsync: keep benchmark records in sync across MongoDB and PostgreSQL.")


@app.callback()
def setup() -> None:
    settings = get_settings()
    configure_logging(level=settings.log_level, json_logs=settings.json_logs)


@app.command()
def info() -> None:
    """
    Show effective configuration values.
    """
    settings = get_settings()
    typer.echo(
        f"PG={settings.db_user}@{settings.db_host}:{settings.db_port}/{settings.db_name} | "
        f"MONGO={settings.mongo_uri}/{settings.mongo_db} | "
        f"kinds={settings.sync_kinds} workers={settings.sync_workers} "
        f"interval={settings.sync_interval_seconds}s timeout={settings.store_timeout_seconds}s"
    )
    typer.echo("Available kinds: " + ", ".join(available_kinds()))


@app.command()
def status() -> None:
    """
    Probe both stores and exit non-zero if either is unreachable.
    """
    kind = resolve_kinds(get_settings().kind_names())[0]
    adapters = default_adapters(kind)
    result = AvailabilityProbe(adapters).check_status()
    print_status(result)
    if not result.all_available:
        raise typer.Exit(code=1)


@app.command("init-schema")
def init_schema(
    kind: Optional[List[str]] = typer.Option(
        None, "--kind", "-k", help="Kind(s) to prepare (default: SYNC_KINDS)."
    ),
) -> None:
    """
    Create tables and indexes for the configured kinds in both stores.
    """
    try:
        kinds = resolve_kinds(kind or get_settings().kind_names())
    except UnknownKindError as exc:
        raise typer.BadParameter(str(exc)) from exc

    for entity in kinds:
        for adapter in default_adapters(entity):
            try:
                adapter.ensure_schema()
            except StoreUnavailable as exc:
                typer.echo(f"{entity.name}: {exc}", err=True)
                raise typer.Exit(code=1) from exc
            finally:
                adapter.close()
        typer.echo(f"{entity.name}: ready")


@app.command()
def reconcile(
    kind: Optional[List[str]] = typer.Option(
        None, "--kind", "-k", help="Kind(s) to reconcile (default: SYNC_KINDS, or 'all')."
    ),
    as_json: bool = typer.Option(False, "--json", help="Print the summary as JSON."),
) -> None:
    """
    Run a single reconciliation pass. Exits 2 when the pass was aborted.
    """
    try:
        trigger = ReconciliationTrigger(kinds=kind or None)
    except UnknownKindError as exc:
        raise typer.BadParameter(str(exc)) from exc

    summary = trigger.run_reconciliation()
    if as_json:
        typer.echo(json.dumps(summary.as_dict(), indent=2))
    else:
        print_summary(summary, store_a="mongo", store_b="postgres")
    if summary.aborted:
        raise typer.Exit(code=2)


@app.command()
def watch(
    interval: Optional[float] = typer.Option(
        None, "--interval", "-i", help="Seconds between passes (default: SYNC_INTERVAL_SECONDS)."
    ),
    kind: Optional[List[str]] = typer.Option(None, "--kind", "-k", help="Kind(s) to reconcile."),
) -> None:
    """
    Run passes periodically until interrupted (SIGINT/SIGTERM).
    """
    stop_event = threading.Event()
    trigger = ReconciliationTrigger(kinds=kind or None, cancel_event=stop_event)

    def _handle_signal(signum, frame) -> None:
        del frame
        typer.echo(f"Received signal {signum}; finishing current pass...", err=True)
        trigger.stop()

    signal.signal(signal.SIGINT, _handle_signal)
    signal.signal(signal.SIGTERM, _handle_signal)

    passes = trigger.run_forever(interval_seconds=interval)
    typer.echo(f"Stopped after {passes} pass(es).")


def main() -> None:
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)


if __name__ == "__main__":
    main()
