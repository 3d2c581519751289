"""Tests for daily snapshot coalescing."""

from datetime import datetime, timezone

import pytest

from agentbuilders.errors import ValidationError
from agentbuilders.storage import SnapshotStore, utc_day_start

DAY = 86400
# 2024-03-10 00:00:00 UTC
MIDNIGHT = datetime(2024, 3, 10, tzinfo=timezone.utc).timestamp()


@pytest.fixture
def snapshots(store):
    return SnapshotStore(store)


def test_utc_day_start():
    assert utc_day_start(MIDNIGHT) == MIDNIGHT
    assert utc_day_start(MIDNIGHT + DAY - 1) == MIDNIGHT
    assert utc_day_start(MIDNIGHT - 1) == MIDNIGHT - DAY


def test_same_day_writes_coalesce(snapshots, store):
    """Two writes on one UTC day with disjoint fields yield one row holding both."""
    snapshots.upsert_daily("fw_1", MIDNIGHT + 3600, {"github_stars": 100, "github_last_commit_timestamp": 5.0})
    merged = snapshots.upsert_daily("fw_1", MIDNIGHT + 20 * 3600, {"pypi_downloads": 7000})

    rows = store.all("metrics_snapshots")
    assert len(rows) == 1
    assert merged.github_stars == 100
    assert merged.pypi_downloads == 7000
    assert merged.github_last_commit_timestamp == 5.0
    # Keeps the timestamp of the first write of the day
    assert merged.timestamp == MIDNIGHT + 3600


def test_same_field_last_write_wins(snapshots):
    snapshots.upsert_daily("fw_1", MIDNIGHT + 60, {"github_stars": 100})
    snap = snapshots.upsert_daily("fw_1", MIDNIGHT + 120, {"github_stars": 120})
    assert snap.github_stars == 120


def test_none_does_not_clear_field(snapshots):
    snapshots.upsert_daily("fw_1", MIDNIGHT + 60, {"github_stars": 100, "github_last_commit_timestamp": 9.0})
    snap = snapshots.upsert_daily("fw_1", MIDNIGHT + 120, {"github_stars": 101, "github_last_commit_timestamp": None})
    assert snap.github_last_commit_timestamp == 9.0


def test_next_day_creates_new_row(snapshots, store):
    snapshots.upsert_daily("fw_1", MIDNIGHT + DAY - 1, {"github_stars": 100})
    snapshots.upsert_daily("fw_1", MIDNIGHT + DAY, {"github_stars": 105})
    assert len(store.all("metrics_snapshots")) == 2


def test_frameworks_do_not_share_rows(snapshots, store):
    snapshots.upsert_daily("fw_1", MIDNIGHT + 10, {"github_stars": 1})
    snapshots.upsert_daily("fw_2", MIDNIGHT + 10, {"github_stars": 2})
    assert len(store.all("metrics_snapshots")) == 2


def test_unknown_field_rejected(snapshots, store):
    with pytest.raises(ValidationError):
        snapshots.upsert_daily("fw_1", MIDNIGHT, {"forks": 3})
    assert store.all("metrics_snapshots") == []


def test_latest_and_historical(snapshots):
    for days_back, stars in [(40, 80), (31, 90), (10, 100), (0, 110)]:
        snapshots.upsert_daily("fw_1", MIDNIGHT - days_back * DAY, {"github_stars": stars})

    assert snapshots.latest("fw_1").github_stars == 110
    assert snapshots.historical_before("fw_1", MIDNIGHT - 30 * DAY).github_stars == 90
    assert snapshots.historical_before("fw_1", MIDNIGHT - 50 * DAY) is None
    assert snapshots.latest("fw_other") is None


def test_history_oldest_first(snapshots):
    for days_back in (2, 0, 1):
        snapshots.upsert_daily("fw_1", MIDNIGHT - days_back * DAY, {"github_stars": days_back})
    assert [s.github_stars for s in snapshots.history("fw_1")] == [2, 1, 0]
    assert [s.github_stars for s in snapshots.history("fw_1", since=MIDNIGHT - DAY)] == [1, 0]
