from __future__ import annotations

import asyncio
import json
import sys
from typing import Optional

import typer

from range_reader.config import Settings, get_settings
from range_reader.errors import BindingUnavailable, FetchError
from range_reader.fetchers.concurrent import ConcurrentRangePartitionedFetcher
from range_reader.fetchers.range_partitioned import RangePartitionedFetcher
from range_reader.infrastructure.backends import AsyncpgBackend, PsycopgBackend
from range_reader.infrastructure.db_factory import PoolManager, create_async_pool, get_sync_pool
from range_reader.service import available_fetch_modes
from range_reader.utils.logging import configure_logging

app = typer.Typer(help="Range-partitioned users page.")


@app.command()
def info() -> None:
    """
    Show effective configuration values.
    """
    settings = get_settings()
    typer.echo(
        f"DB={settings.db_user}@{settings.db_host}:{settings.db_port}/{settings.db_name} "
        f"enabled={settings.db_enabled} | table={settings.users_table} "
        f"partitions={settings.partition_count} cap={settings.partition_row_cap} "
        f"mode={settings.fetch_mode} snapshot={settings.snapshot_reads} | "
        f"secondary={'on' if settings.secondary_enabled else 'off'}"
    )


def _run_concurrent(settings: Settings, partitions: int, row_cap: bool) -> dict:
    async def _go() -> dict:
        backend = AsyncpgBackend(await create_async_pool(settings=settings))
        try:
            fetcher = ConcurrentRangePartitionedFetcher(
                backend, table=settings.users_table, partition_count=partitions, row_cap=row_cap
            )
            return await fetcher.execute_async()
        finally:
            await backend.close()

    return asyncio.run(_go())


@app.command()
def fetch(
    mode: Optional[str] = typer.Option(
        None,
        "--mode",
        "-m",
        help="Fetch mode (sequential, concurrent). Defaults to settings.",
    ),
    partitions: Optional[int] = typer.Option(
        None,
        "--partitions",
        "-k",
        min=1,
        help="Number of key-range partitions (default from settings).",
    ),
    no_cap: bool = typer.Option(
        False,
        "--no-cap",
        help="Drop the per-partition LIMIT and rely on the key ranges alone.",
    ),
) -> None:
    """
    Run the partitioned fetch once and print the rows as JSON.
    """
    settings = get_settings()
    configure_logging(level=settings.log_level, json_logs=settings.log_json)
    mode = mode or settings.fetch_mode
    if mode not in available_fetch_modes():
        typer.echo(
            f"Unknown mode '{mode}'. Available: {', '.join(available_fetch_modes())}", err=True
        )
        raise typer.Exit(code=2)

    k = partitions or settings.partition_count
    row_cap = settings.partition_row_cap and not no_cap

    try:
        if not settings.db_enabled:
            raise BindingUnavailable()
        if mode == "concurrent":
            result = _run_concurrent(settings, k, row_cap)
        else:
            backend = PsycopgBackend(
                get_sync_pool(settings),
                statement_timeout_ms=settings.db_statement_timeout_ms,
                snapshot=settings.snapshot_reads,
            )
            try:
                result = RangePartitionedFetcher(
                    backend, table=settings.users_table, partition_count=k, row_cap=row_cap
                ).execute()
            finally:
                PoolManager().close_all()
    except FetchError as exc:
        typer.echo(json.dumps({"error": exc.message, "status": exc.status_code}), err=True)
        raise typer.Exit(code=1)

    typer.echo(
        json.dumps(
            {
                "results": [record.model_dump(mode="json") for record in result["records"]],
                "partitions": result.get("partitions", []),
                "duration_seconds": round(result.get("duration_seconds", 0.0), 4),
            },
            indent=2,
        )
    )


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, "--host", help="Bind address (default from settings)."),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="Port (default from settings)."),
) -> None:
    """
    Serve the users page with uvicorn.
    """
    import uvicorn

    from range_reader.web.app import create_app

    settings = get_settings()
    configure_logging(level=settings.log_level, json_logs=settings.log_json)
    uvicorn.run(
        create_app(settings),
        host=host or settings.server_host,
        port=port or settings.server_port,
        log_config=None,
    )


def main() -> None:
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)


if __name__ == "__main__":
    main()
