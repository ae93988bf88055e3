"""
End-to-end reconciliation against live PostgreSQL and MongoDB.

Skipped unless both stores are reachable with the configured DB_* / MONGO_*
environment. Uses a throwaway kind so real benchmark data is never touched.
"""

from __future__ import annotations

from datetime import timedelta

import psycopg
import pytest

from benchsync.domain.kinds import EntityKind
from benchsync.domain.models import Record, utcnow
from benchsync.origin import store_new_record
from benchsync.probe import AvailabilityProbe
from benchsync.reconciler import Reconciler
from benchsync.stores.document import MongoStoreAdapter
from benchsync.stores.relational import PostgresStoreAdapter

pytestmark = pytest.mark.integration

IT_KIND = EntityKind(
    name="it_records",
    table="benchsync_it_records",
    collection="benchsync_it_records",
    description="Integration test records",
)


@pytest.fixture
def live_stores(pg_available, test_dsn, test_settings, mongo_client):
    if not pg_available:
        pytest.skip("PostgreSQL not available")

    doc = MongoStoreAdapter(IT_KIND, client=mongo_client, database=test_settings.mongo_db)
    rel = PostgresStoreAdapter(IT_KIND, dsn_override=test_dsn)
    doc.ensure_schema()
    rel.ensure_schema()
    yield doc, rel

    mongo_client[test_settings.mongo_db].drop_collection(IT_KIND.collection)
    with psycopg.connect(test_dsn, autocommit=True) as conn:
        conn.execute(f"DROP TABLE IF EXISTS {IT_KIND.table}")
    doc.close()
    rel.close()


def test_both_stores_answer_the_probe(live_stores) -> None:
    status = AvailabilityProbe(list(live_stores)).check_status()

    assert status.all_available is True


def test_records_converge_across_live_stores(live_stores) -> None:
    doc, rel = live_stores
    _, from_doc = store_new_record({"testType": "loop", "overallAverage": "1.00 ms"}, [doc])
    _, from_rel = store_new_record({"testType": "map", "overallAverage": "2.00 ms"}, [rel])

    summary = Reconciler(doc, rel, max_workers=2).run()

    assert summary.aborted is False
    assert summary.created_a_to_b == 1
    assert summary.created_b_to_a == 1
    assert rel.fetch_by_correlation_id(from_doc.correlation_id).payload == from_doc.payload
    assert doc.fetch_by_correlation_id(from_rel.correlation_id).payload == from_rel.payload

    again = Reconciler(doc, rel, max_workers=2).run()
    assert again.writes == 0
    assert again.conflicts == 0


def test_newer_copy_wins_on_live_stores(live_stores) -> None:
    doc, rel = live_stores
    _, original = store_new_record({"overallAverage": "1.00 ms"}, [rel])
    Reconciler(doc, rel, max_workers=1).run()

    newer = Record(
        correlation_id=original.correlation_id,
        payload={"overallAverage": "0.50 ms"},
        created_at=original.created_at,
        updated_at=utcnow() + timedelta(seconds=1),
    )
    doc.update(original.correlation_id, newer)

    summary = Reconciler(doc, rel, max_workers=1).run()

    assert summary.updated_a_to_b == 1
    stored = rel.fetch_by_correlation_id(original.correlation_id)
    assert stored.payload == {"overallAverage": "0.50 ms"}
    assert stored.updated_at == newer.updated_at
