from __future__ import annotations

import asyncio
from datetime import datetime
import json
import logging
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import typer

from infra.ingestion.directory import NameDirectory, mapping_file_loader
from infra.ingestion.history_fetcher import (
    FetchedHistory,
    ProductHistoryFetcher,
    operation_sources_from_records,
)
from infra.ingestion.session import LoginServiceError
from infra.paths import dumps_root
from infra.settings import ConfigError, Settings, load_settings
from ledger.pipeline import HistoryResult, reconstruct_history, resolve_current_balance
from ledger.presentation import ledger_frame, ledger_rows, ledger_summary
from ledger.scope import WarehouseScope, resolve_matcher

LOGGER = logging.getLogger("stockledger.cli")

app = typer.Typer(add_completion=False, help="Reconstruct per-warehouse stock history for a product.")

_DATE_FORMATS = ["%Y-%m-%d", "%Y-%m-%dT%H:%M:%S", "%Y-%m-%dT%H:%M:%S%z"]


@app.callback()
def main(
    log_level: str = typer.Option("WARNING", "--log-level", help="Logging level (DEBUG, INFO, WARNING, ...)."),
) -> None:
    level = getattr(logging, log_level.upper(), None)
    if not isinstance(level, int):
        raise typer.BadParameter(f"Unknown log level {log_level!r}", param_hint="--log-level")
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s", force=True)


@app.command()
def history(
    product_id: str = typer.Argument(..., help="Product id in the inventory system."),
    warehouse_id: Optional[str] = typer.Option(None, "--warehouse-id", help="Scope to an explicit warehouse id."),
    warehouse_name: Optional[str] = typer.Option(None, "--warehouse-name", help="Scope to a warehouse title."),
    current_balance: Optional[float] = typer.Option(None, "--current-balance", help="Authoritative stock now."),
    balances: Optional[Path] = typer.Option(None, "--balances", help="JSON map of warehouse title to balance."),
    opening_balance: Optional[float] = typer.Option(None, "--opening-balance", help="Known opening stock."),
    start: Optional[datetime] = typer.Option(None, "--start", formats=_DATE_FORMATS),
    end: Optional[datetime] = typer.Option(None, "--end", formats=_DATE_FORMATS),
    config: Optional[Path] = typer.Option(None, "--config", help="Settings file (YAML or JSON)."),
    actors: Optional[Path] = typer.Option(None, "--actors", help="JSON/YAML map of employee id to name."),
    suppliers: Optional[Path] = typer.Option(None, "--suppliers", help="JSON/YAML map of supplier id to name."),
    output: Optional[Path] = typer.Option(None, "--output", help="Write the ledger to .csv or .json."),
    dump: bool = typer.Option(False, "--dump", help="Save fetched source records for `replay`."),
) -> None:
    """Fetch every source feed for PRODUCT_ID and print the reconciled ledger."""

    settings = _settings(config)
    try:
        fetched = asyncio.run(_fetch(settings, product_id, start, end))
    except LoginServiceError as exc:
        typer.echo(f"error: {exc}", err=True)
        raise typer.Exit(code=2)
    if fetched.auth_failed:
        for fetch_result in fetched.results.values():
            typer.echo(f"error: {fetch_result.error_message}", err=True)
        raise typer.Exit(code=2)
    if dump:
        dump_path = dumps_root(f"{product_id}.json")
        dump_path.parent.mkdir(parents=True, exist_ok=True)
        dump_path.write_text(json.dumps(fetched.dump_payload(), ensure_ascii=False, indent=2), encoding="utf-8")
        typer.echo(f"Source records saved to {dump_path}", err=True)
    for name in fetched.failed_sources:
        typer.echo(f"warning: {name} fetch incomplete: {fetched.results[name].error_message}", err=True)

    balance = _current_balance(current_balance, _read_mapping(balances) if balances else None, warehouse_name)
    result = reconstruct_history(
        fetched.sources,
        balance,
        WarehouseScope(warehouse_id=warehouse_id, warehouse_name=warehouse_name),
        matcher=resolve_matcher(settings.ledger.warehouse_matcher),
        tolerance=settings.ledger.tolerance,
        opening_balance=opening_balance,
    )
    _emit(result, output, actors=actors, suppliers=suppliers)


@app.command()
def replay(
    dump_file: Path = typer.Argument(..., exists=True, dir_okay=False, help="JSON dump of source records."),
    warehouse_id: Optional[str] = typer.Option(None, "--warehouse-id"),
    warehouse_name: Optional[str] = typer.Option(None, "--warehouse-name"),
    current_balance: Optional[float] = typer.Option(None, "--current-balance"),
    opening_balance: Optional[float] = typer.Option(None, "--opening-balance"),
    matcher: Optional[str] = typer.Option(None, "--matcher", help="Warehouse name matcher: substring or exact."),
    tolerance: Optional[float] = typer.Option(None, "--tolerance"),
    config: Optional[Path] = typer.Option(None, "--config"),
    actors: Optional[Path] = typer.Option(None, "--actors"),
    suppliers: Optional[Path] = typer.Option(None, "--suppliers"),
    output: Optional[Path] = typer.Option(None, "--output"),
) -> None:
    """Rebuild a ledger offline from previously dumped source records.

    The dump maps source names (postings, moves, outcomes, sales, goods_flow)
    to record lists and may carry ``current_balances`` by warehouse title.
    """

    settings = _settings(config)
    payload = _read_mapping(dump_file)
    try:
        sources = operation_sources_from_records(payload)
        selected_matcher = resolve_matcher(matcher or settings.ledger.warehouse_matcher)
    except ValueError as exc:
        typer.echo(f"error: {exc}", err=True)
        raise typer.Exit(code=2)
    balances = payload.get("current_balances") or payload.get("currentBalances")
    balance = _current_balance(current_balance, balances, warehouse_name)
    result = reconstruct_history(
        sources,
        balance,
        WarehouseScope(warehouse_id=warehouse_id, warehouse_name=warehouse_name),
        matcher=selected_matcher,
        tolerance=settings.ledger.tolerance if tolerance is None else tolerance,
        opening_balance=opening_balance,
    )
    _emit(result, output, actors=actors, suppliers=suppliers)


def _build_fetcher(settings: Settings) -> ProductHistoryFetcher:
    return ProductHistoryFetcher.from_settings(settings)


async def _fetch(
    settings: Settings,
    product_id: str,
    start: datetime | None,
    end: datetime | None,
) -> FetchedHistory:
    fetcher = _build_fetcher(settings)
    try:
        return await fetcher.fetch(product_id, start, end)
    finally:
        await fetcher.aclose()


def _settings(path: Path | None) -> Settings:
    try:
        return load_settings(path)
    except ConfigError as exc:
        typer.echo(f"error: {exc}", err=True)
        raise typer.Exit(code=2)


def _read_mapping(path: Path) -> Dict[str, Any]:
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except ValueError as exc:
        typer.echo(f"error: {path} is not valid JSON: {exc}", err=True)
        raise typer.Exit(code=2)
    if not isinstance(payload, Mapping):
        typer.echo(f"error: {path} must contain a JSON object", err=True)
        raise typer.Exit(code=2)
    return dict(payload)


def _current_balance(
    explicit: float | None,
    balances: Mapping[str, Any] | None,
    warehouse_name: str | None,
) -> float:
    if explicit is not None:
        return explicit
    if not balances:
        LOGGER.warning("No current balance given; reconciling against 0")
    return resolve_current_balance(balances, warehouse_name)


async def _directory_names(path: Path | None, name: str) -> Dict[str, str]:
    if path is None:
        return {}
    return await NameDirectory(mapping_file_loader(path), name=name).names()


def _emit(result: HistoryResult, output: Path | None, *, actors: Path | None, suppliers: Path | None) -> None:
    actor_names = asyncio.run(_directory_names(actors, "employee"))
    supplier_names = asyncio.run(_directory_names(suppliers, "supplier"))
    frame = ledger_frame(result.ledger, actor_names, supplier_names)
    summary = {**ledger_summary(result.ledger), "normalization": result.normalization.as_dict()}

    if output is not None:
        output.parent.mkdir(parents=True, exist_ok=True)
        if output.suffix.lower() == ".csv":
            frame.to_csv(output, index=False)
        else:
            document = {**summary, "rows": ledger_rows(result.ledger, actor_names, supplier_names)}
            output.write_text(json.dumps(document, ensure_ascii=False, indent=2, default=str), encoding="utf-8")
        typer.echo(f"Ledger written to {output}", err=True)
    elif not frame.empty:
        typer.echo(frame.to_string(index=False))
    typer.echo(json.dumps(summary, ensure_ascii=False, indent=2))
    if not result.ledger.reconciliation_ok:
        raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
