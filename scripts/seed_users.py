"""
Data generation and loading script for the range reader service.

Implements deterministic pseudo-random user generation, CSV emission, and
Postgres COPY loading. `--skew` bunches most keys into the lowest third of the
key space, which makes the per-partition row cap drop rows.
"""

from __future__ import annotations

import csv
import random
import sys
import tempfile
import time
from pathlib import Path

import typer

from range_reader.infrastructure.db_factory import build_dsn, get_sync_connection

app = typer.Typer(help="Generate synthetic users and load them into Postgres (CSV + COPY).")

_FIRST_NAMES = ["Ada", "Grace", "Alan", "Edsger", "Barbara", "Donald", "Frances", "Ken"]
_LAST_NAMES = ["Lovelace", "Hopper", "Turing", "Dijkstra", "Liskov", "Knuth", "Allen", "Thompson"]


def _build_dsn(dsn_override: str | None) -> str:
    if dsn_override:
        return dsn_override
    return build_dsn()


def _generate_ids(rows: int, rng: random.Random, skew: bool) -> list[int]:
    """
    Sequential ids `1..rows`, or with `skew` 80% of the rows packed densely at
    the bottom of a key space three times as wide and the rest scattered above.
    """
    if not skew:
        return list(range(1, rows + 1))
    dense = int(rows * 0.8)
    sparse = rng.sample(range(dense + 1, rows * 3 + 1), rows - dense)
    return list(range(1, dense + 1)) + sorted(sparse)


def _generate_rows_csv(
    csv_path: Path, rows: int, batch_size: int, seed: int, skew: bool = False
) -> None:
    rng = random.Random(seed)

    with csv_path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(["id", "name", "email"])

        buffer: list[list[str]] = []
        for user_id in _generate_ids(rows, rng, skew):
            first = rng.choice(_FIRST_NAMES)
            last = rng.choice(_LAST_NAMES)
            buffer.append(
                [
                    str(user_id),
                    f"{first} {last}",
                    f"{first.lower()}.{last.lower()}.{user_id}@example.com",
                ]
            )
            if len(buffer) >= batch_size:
                writer.writerows(buffer)
                buffer.clear()
        if buffer:
            writer.writerows(buffer)


def _copy_into_db(dsn: str, csv_path: Path, truncate: bool = False) -> None:
    with get_sync_connection(dsn) as conn:
        with conn.cursor() as cur:
            if truncate:
                cur.execute("TRUNCATE TABLE public.users")
            with cur.copy(
                "COPY public.users (id, name, email) FROM STDIN WITH (FORMAT csv, HEADER TRUE)"
            ) as copy:
                with csv_path.open("r", encoding="utf-8") as f:
                    for line in f:
                        copy.write(line)
        conn.commit()


@app.command()
def main(
    rows: int = typer.Option(
        1_000,
        "--rows",
        "-r",
        help="Number of users to generate.",
    ),
    batch_size: int = typer.Option(
        500,
        "--batch-size",
        "-b",
        help="Batch size for CSV buffering during generation.",
    ),
    seed: int = typer.Option(
        42,
        "--seed",
        help="Deterministic RNG seed.",
    ),
    skew: bool = typer.Option(
        False,
        "--skew",
        help="Generate a non-uniform key distribution.",
    ),
    output: Path | None = typer.Option(
        None,
        "--output",
        "-o",
        help="Optional CSV output path (if omitted, a temp file will be used).",
    ),
    dsn: str | None = typer.Option(
        None,
        "--dsn",
        help="Optional DSN override for Postgres.",
    ),
    truncate: bool = typer.Option(
        False,
        "--truncate",
        help="Empty the users table before loading.",
    ),
    no_load: bool = typer.Option(
        False,
        "--no-load",
        help="Only generate CSV; skip loading into Postgres.",
    ),
) -> None:
    """
    Generate synthetic users and optionally load them into Postgres using COPY.
    """
    start = time.perf_counter()
    if output:
        csv_path = output
        csv_path.parent.mkdir(parents=True, exist_ok=True)
    else:
        tmpdir = Path(tempfile.mkdtemp(prefix="range_reader_csv_"))
        csv_path = tmpdir / "users.csv"

    typer.echo(f"Generating {rows:,} users -> {csv_path} (seed={seed}, skew={skew})")
    _generate_rows_csv(csv_path, rows=rows, batch_size=batch_size, seed=seed, skew=skew)
    typer.echo(f"CSV generation completed in {time.perf_counter() - start:.2f}s")

    if no_load:
        typer.echo("Skipping load (no-load flag set).")
        return

    load_start = time.perf_counter()
    typer.echo("Loading CSV into Postgres via COPY...")
    _copy_into_db(_build_dsn(dsn), csv_path, truncate=truncate)
    typer.echo(f"Load completed in {time.perf_counter() - load_start:.2f}s.")


if __name__ == "__main__":
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)
