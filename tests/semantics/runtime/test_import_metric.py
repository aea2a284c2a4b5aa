"""
Semantic test: importing one metric end to end.

Invariant:
Each retention level is built from its plan with the most recent, finest
data winning where segments overlap, and every (retention, method) series
is written under its own row key.
"""

from __future__ import annotations

import logging

import pytest

from whisper_importer.config.import_config import ImportConfig
from whisper_importer.core.domain.types import Point
from whisper_importer.io.whisper_reader import WhisperFileReader
from whisper_importer.runtime.driver import (
    convert_retention,
    import_metric,
    metric_id_from_path,
    newest_timestamp,
)

NOW = 7200


@pytest.fixture()
def reader(make_whisper) -> WhisperFileReader:
    # 10 minutes of 10s data; whisper averages it into the minutely
    # archive for every minute with at least half of its points
    fine = [(ts, float(ts)) for ts in range(NOW - 590, NOW + 1, 10)]
    # older minutely data with two unset slots (3840, 3900)
    coarse = [
        (ts, ts / 60)
        for ts in range(NOW - 3540, NOW - 600, 60)
        if ts not in (3840, 3900)
    ]
    path = make_whisper("some.wsp", [(10, 60), (60, 60)], [(NOW, fine + coarse)])
    return WhisperFileReader(path)


def make_config(write_unfinished_chunks: bool = True) -> ImportConfig:
    return ImportConfig.from_json_obj(
        {
            "retentions": [
                {"seconds_per_point": 10, "number_of_points": 360, "chunk_span": 600},
                {"seconds_per_point": 60, "number_of_points": 60, "chunk_span": 1800},
            ],
            "write_unfinished_chunks": write_unfinished_chunks,
        }
    )


def decoded(chunks) -> list[Point]:
    return [point for chunk in chunks for point in chunk.iter_points()]


def test_newest_timestamp_ignores_gaps(reader: WhisperFileReader) -> None:
    assert newest_timestamp(reader) == NOW


def test_raw_level_prefers_fine_archive(reader: WhisperFileReader) -> None:
    config = make_config()

    series = convert_retention(config.retentions[0], 0, reader, NOW)

    assert sorted(series) == ["avg"]
    points = series["avg"]

    timestamps = [p.timestamp for p in points]
    assert timestamps == sorted(set(timestamps))
    assert all(ts % 10 == 0 for ts in timestamps)

    by_ts = dict(points)
    # genuine 10s data for the last 10 minutes
    assert by_ts[6610] == 6610.0
    assert by_ts[NOW] == float(NOW)
    # interpolated from the minutely archive before that; the 6600 minute
    # holds whisper's average of the fine points 6610..6650
    assert by_ts[6600] == 6630.0
    assert by_ts[6550] == 109.0
    assert by_ts[3660] == 61.0
    # unset coarse slots (3840, 3900) leave a hole
    assert 3840 not in by_ts
    assert 3900 not in by_ts
    assert by_ts[3960] == 66.0


def test_import_metric_writes_every_series(reader: WhisperFileReader, memory_store) -> None:
    store = memory_store

    result = import_metric("some.metric", reader, make_config(), store, now=NOW)

    assert sorted(store.rows) == [
        "some.metric",
        "some.metric_avg_60",
        "some.metric_cnt_60",
        "some.metric_sum_60",
    ]

    raw = decoded(store.rows["some.metric"])
    assert raw[0] == Point(3660, 61.0)
    assert raw[-1] == Point(NOW, float(NOW))

    cnt = decoded(store.rows["some.metric_cnt_60"])
    assert {value for _, value in cnt} == {1.0}
    assert len(cnt) == 57

    sums = decoded(store.rows["some.metric_sum_60"])
    assert sums == decoded(store.rows["some.metric_avg_60"])

    assert result.metric_id == "some.metric"
    assert result.truncated_retentions == []
    assert result.chunks_per_row["some.metric_cnt_60"] == 2
    assert result.points_written == sum(len(decoded(c)) for c in store.rows.values())


def test_import_metric_drops_unfinished_chunks_by_default(
    reader: WhisperFileReader, memory_store
) -> None:
    store = memory_store

    result = import_metric(
        "m", reader, make_config(write_unfinished_chunks=False), store, now=NOW
    )

    assert all(chunk.finished for chunks in store.rows.values() for chunk in chunks)
    assert result.chunks_per_row["m"] == 5
    assert result.chunks_per_row["m_avg_60"] == 1
    assert decoded(store.rows["m"])[-1].timestamp == 6600


def test_truncated_retention_is_logged(
    reader: WhisperFileReader, memory_store, caplog: pytest.LogCaptureFixture
) -> None:
    config = ImportConfig.from_json_obj(
        {"retentions": [{"seconds_per_point": 10, "number_of_points": 1000, "chunk_span": 600}]}
    )

    with caplog.at_level(logging.WARNING):
        result = import_metric("m", reader, config, memory_store, now=NOW)

    assert result.truncated_retentions == [0]
    assert "importing less history" in caplog.text


def test_aggregation_override_changes_row_keys(reader: WhisperFileReader, memory_store) -> None:
    config = ImportConfig.from_json_obj(
        {
            "retentions": [
                {"seconds_per_point": 10, "number_of_points": 60, "chunk_span": 600},
                {
                    "seconds_per_point": 60,
                    "number_of_points": 60,
                    "chunk_span": 1800,
                    "aggregation": "max",
                },
            ],
        }
    )
    store = memory_store

    import_metric("m", reader, config, store, now=NOW)

    assert "m_max_60" in store.rows
    assert "m_avg_60" not in store.rows


def test_metric_id_from_path(tmp_path) -> None:
    path = tmp_path / "servers" / "web-1" / "cpu.wsp"

    assert metric_id_from_path(path, tmp_path) == "servers.web-1.cpu"
    assert metric_id_from_path(path, tmp_path, "legacy.") == "legacy.servers.web-1.cpu"
