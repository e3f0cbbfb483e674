from datetime import datetime, timedelta, timezone

import polars as pl
import pytest

from timingsign.backends.ibis.ledger import IbisLedger, create_test_connection
from timingsign.backends.polars.io import sink_for_path, source_for_path
from timingsign.backends.polars.ledger import LEDGER_SCHEMA, PolarsLedger
from timingsign.core.ledger import PayloadRegistry
from timingsign.core.names import Namespace


def ibis_ledger():
    return IbisLedger(create_test_connection("duckdb"), "scan")


@pytest.fixture(params=["polars", "ibis"])
def any_ledger(request):
    return PolarsLedger() if request.param == "polars" else ibis_ledger()


def write_obs(ledger, experiment_id, look, reference, probe):
    ledger.write_event(
        time_index=f"t{look}",
        namespace=Namespace.OBS,
        kind="observation",
        experiment_id=experiment_id,
        step_key=f"look-{look}",
        payload_type="TimingObsBatch",
        payload={"reference": reference, "probe": probe},
        tag="obs",
    )


def test_rows_come_back_in_append_order(any_ledger):
    for look in range(1, 6):
        write_obs(any_ledger, "scan#1", look, [float(look)], [0.0])
    rows = list(any_ledger.iter_ns(namespace=Namespace.OBS, experiment_id="scan#1"))
    assert [r.snapshot_id for r in rows] == [f"look-{i}" for i in range(1, 6)]
    assert any_ledger.latest(namespace=Namespace.OBS).time_index == "t5"


def test_collect_measurements_concatenates_batches(any_ledger):
    write_obs(any_ledger, "scan#1", 1, [0.1, 0.2], [0.5, 0.6])
    write_obs(any_ledger, "scan#2", 1, [9.0], [9.0])
    write_obs(any_ledger, "scan#1", 2, [0.3], [0.7])
    groups = any_ledger.collect_measurements(experiment_id="scan#1")
    assert groups == {"reference": [0.1, 0.2, 0.3], "probe": [0.5, 0.6, 0.7]}


def test_filters(any_ledger):
    write_obs(any_ledger, "scan#1", 1, [0.1], [0.2])
    any_ledger.emit(
        time_index="t1", experiment_id="scan#1", step_key="look-1",
        topic="alert", body={"level": "high"},
    )
    reader = any_ledger.reader()
    assert reader.count(namespace="obs") == 1
    assert reader.count(namespace="signals", kind="emitted") == 1
    assert reader.count(entity="scan#2") == 0
    signal = any_ledger.latest(namespace=Namespace.SIGNALS, tag="signal")
    assert signal.payload == {"topic": "alert", "body": {"level": "high"}}
    assert any_ledger.latest(namespace=Namespace.STATS) is None


def test_timestamps_are_normalised_to_utc(any_ledger):
    local = datetime(2024, 5, 1, 12, 0, tzinfo=timezone(timedelta(hours=2)))
    any_ledger.write_event(
        time_index="t1", namespace=Namespace.RUNTIME, kind="start",
        experiment_id="scan#1", step_key="start", payload_type="RuntimeLifecycle",
        payload={}, ts=local,
    )
    ts = any_ledger.latest(namespace=Namespace.RUNTIME).ts
    assert ts.utcoffset() == timedelta(0)
    assert ts == local


def test_payload_registry_decoders(any_ledger):
    PayloadRegistry.register("Pair", lambda p: (p["a"], p["b"]))
    try:
        any_ledger.write_event(
            time_index="t1", namespace=Namespace.STATS, kind="updated",
            experiment_id="scan#1", step_key="look-1", payload_type="Pair",
            payload={"a": 1, "b": 2},
        )
        assert any_ledger.latest(namespace=Namespace.STATS).payload == (1, 2)
    finally:
        PayloadRegistry.unregister("Pair")


def test_ibis_ledgers_share_a_table():
    conn = create_test_connection("duckdb")
    first = IbisLedger(conn, "first")
    second = IbisLedger(conn, "second")
    write_obs(first, "scan#1", 1, [0.1], [0.2])
    write_obs(second, "scan#1", 1, [0.3], [0.4])
    write_obs(second, "scan#1", 2, [0.5], [0.6])
    assert first.reader().count() == 1
    assert second.reader().count() == 2
    assert int(first.raw_table.count().execute()) == 3
    # a reopened ledger continues the append sequence
    reopened = IbisLedger(conn, "second")
    write_obs(reopened, "scan#1", 3, [0.7], [0.8])
    assert reopened.latest(namespace=Namespace.OBS).snapshot_id == "look-3"


def test_unsupported_test_backend():
    with pytest.raises(ValueError):
        create_test_connection("sqlite")


@pytest.mark.parametrize("suffix", [".parquet", ".csv"])
def test_polars_ledger_file_round_trip(tmp_path, suffix):
    ledger = PolarsLedger()
    write_obs(ledger, "scan#1", 1, [0.1, 0.2], [0.3, 0.4])
    path = tmp_path / f"ledger{suffix}"
    sink_for_path(path).write(ledger.frame())

    restored = PolarsLedger(source_for_path(path).read())
    assert restored.frame().height == 1
    assert restored.collect_measurements(experiment_id="scan#1") == {
        "reference": [0.1, 0.2],
        "probe": [0.3, 0.4],
    }


def test_unknown_ledger_suffix():
    with pytest.raises(ValueError):
        sink_for_path("ledger.json")
    with pytest.raises(ValueError):
        source_for_path("ledger.txt")


def test_replace_with_frame_fills_missing_columns():
    ledger = PolarsLedger(pl.DataFrame({"uuid": ["u1"], "namespace": ["obs"]}))
    frame = ledger.frame()
    assert frame.columns == list(LEDGER_SCHEMA)
    assert frame["seq"].to_list() == [1]
    assert frame["kind"].to_list() == [None]


def test_ibis_ledger_objects_with_one_name_keep_a_total_order():
    conn = create_test_connection("duckdb")
    first = IbisLedger(conn, "scan")
    second = IbisLedger(conn, "scan")
    write_obs(first, "scan#1", 1, [0.1], [0.2])
    write_obs(second, "scan#1", 2, [0.3], [0.4])
    write_obs(first, "scan#1", 3, [0.5], [0.6])

    seqs = first.table.seq.execute().tolist()
    assert sorted(seqs) == [1, 2, 3]
    rows = list(second.iter_ns(namespace=Namespace.OBS, experiment_id="scan#1"))
    assert [r.snapshot_id for r in rows] == ["look-1", "look-2", "look-3"]
    assert second.collect_measurements(experiment_id="scan#1")["reference"] == [0.1, 0.3, 0.5]


def test_one_sided_batches_are_collected_without_gaps(any_ledger):
    write_obs(any_ledger, "scan#1", 1, [0.1], [])
    write_obs(any_ledger, "scan#1", 2, [], [0.2, 0.3])
    assert any_ledger.collect_measurements(experiment_id="scan#1") == {
        "reference": [0.1],
        "probe": [0.2, 0.3],
    }


def test_restored_polars_ledger_continues_append_order(tmp_path):
    ledger = PolarsLedger()
    write_obs(ledger, "scan#1", 1, [0.1], [0.2])
    write_obs(ledger, "scan#1", 2, [0.3], [0.4])
    path = tmp_path / "ledger.parquet"
    sink_for_path(path).write(ledger.frame())

    restored = PolarsLedger(source_for_path(path).read())
    write_obs(restored, "scan#1", 3, [0.5], [0.6])
    assert restored.frame()["seq"].to_list() == [1, 2, 3]
    assert restored.latest(namespace=Namespace.OBS).snapshot_id == "look-3"
