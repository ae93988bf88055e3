"""
Synthetic benchmark seeding script for benchsync.

Generates deterministic pseudo-random benchmark records and writes each one to
its origin store (MongoDB when reachable, PostgreSQL otherwise, or a forced
store), leaving the other store for the reconciler to fill.
"""

from __future__ import annotations

import random
import sys
import time
from typing import Any, Dict, List

import typer

from benchsync.domain.kinds import EntityKind, get_kind
from benchsync.origin import store_new_record
from benchsync.stores.abstract import StoreAdapter
from benchsync.stores.document import MongoStoreAdapter
from benchsync.stores.relational import PostgresStoreAdapter

app = typer.Typer(help="Seed synthetic benchmark records into their origin stores.")

_SNIPPETS = [
    "for (let i = 0; i < 1e5; i++) {}",
    "[...Array(1000).keys()].map(x => x * 2)",
    "JSON.parse(JSON.stringify({a: [1, 2, 3]}))",
    "new Array(1e4).fill(0).reduce((a, b) => a + b, 0)",
]


def _generate_payload(rng: random.Random, kind: EntityKind) -> Dict[str, Any]:
    iterations = rng.randint(3, 10)
    codes = rng.sample(_SNIPPETS, k=rng.randint(1, len(_SNIPPETS)))
    results: List[Dict[str, Any]] = []
    for number, code in enumerate(codes, start=1):
        runs = [round(rng.uniform(0.05, 25.0), 2) for _ in range(iterations)]
        results.append(
            {
                "testCodeNumber": number,
                "testCode": code,
                "iterationsResults": [
                    {"iteration": i, "executionTime": f"{value:.2f} ms"}
                    for i, value in enumerate(runs, start=1)
                ],
                "averageExecutionTime": f"{sum(runs) / len(runs):.2f} ms",
            }
        )
    overall = sum(float(r["averageExecutionTime"].split()[0]) for r in results) / len(results)
    return {
        "javascriptType": rng.choice(["vanilla", "node", "deno"]),
        "testType": kind.name,
        "testConfig": {"iterations": iterations},
        "results": results,
        "overallAverage": f"{overall:.2f} ms",
    }


def _stores(kind: EntityKind, store: str) -> List[StoreAdapter]:
    mongo, postgres = MongoStoreAdapter(kind), PostgresStoreAdapter(kind)
    if store == "mongo":
        return [mongo]
    if store == "postgres":
        return [postgres]
    return [mongo, postgres]


@app.command()
def main(
    kind: str = typer.Option("execution_time", "--kind", "-k", help="Entity kind to seed."),
    count: int = typer.Option(100, "--count", "-n", help="Number of records to create."),
    store: str = typer.Option(
        "auto", "--store", "-s", help="Origin store: auto (mongo, then postgres), mongo or postgres."
    ),
    seed: int = typer.Option(42, "--seed", help="Deterministic RNG seed."),
) -> None:
    """
    Create `count` records, each in exactly one store.
    """
    if store not in {"auto", "mongo", "postgres"}:
        raise typer.BadParameter("store must be one of: auto, mongo, postgres")
    entity = get_kind(kind)
    rng = random.Random(seed)
    stores = _stores(entity, store)

    start = time.perf_counter()
    per_store: Dict[str, int] = {}
    for _ in range(count):
        origin, _record = store_new_record(_generate_payload(rng, entity), stores)
        per_store[origin] = per_store.get(origin, 0) + 1
    duration = time.perf_counter() - start

    breakdown = ", ".join(f"{name}={n}" for name, n in sorted(per_store.items()))
    typer.echo(f"Seeded {count:,} {entity.name} record(s) in {duration:.2f}s ({breakdown}).")


if __name__ == "__main__":
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)
