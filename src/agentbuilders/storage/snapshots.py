"""Daily metrics snapshots over the document store."""

import logging
from datetime import datetime, timezone

from agentbuilders.errors import ValidationError
from agentbuilders.models.schemas import MetricsSnapshot
from agentbuilders.storage.base import DocumentStore

logger = logging.getLogger(__name__)

TABLE = "metrics_snapshots"
INDEX = "by_framework_and_timestamp"
SECONDS_PER_DAY = 86400

METRIC_FIELDS = frozenset({
    "github_stars",
    "pypi_downloads",
    "npm_downloads",
    "similarweb_rank",
    "github_last_commit_timestamp",
})


def utc_day_start(timestamp: float) -> int:
    """Return the unix timestamp of UTC midnight for the day containing ``timestamp``."""
    day = datetime.fromtimestamp(timestamp, tz=timezone.utc).date()
    return int(datetime(day.year, day.month, day.day, tzinfo=timezone.utc).timestamp())


class SnapshotStore:
    """Time series of metrics snapshots, at most one per framework per UTC day.

    Writes from different refresh jobs on the same day coalesce into a single
    snapshot: each write overwrites only the fields it carries.
    """

    def __init__(self, store: DocumentStore) -> None:
        self.store = store

    def upsert_daily(
        self,
        framework_id: str,
        timestamp: float,
        metrics: dict[str, int | float | None],
    ) -> MetricsSnapshot:
        """Merge ``metrics`` into the framework's snapshot for the day of ``timestamp``.

        None values are ignored so a partial write never clears a field
        recorded earlier the same day.

        Raises:
            ValidationError: If ``metrics`` names a field that is not a snapshot metric.
        """
        unknown = set(metrics) - METRIC_FIELDS
        if unknown:
            raise ValidationError(f"Unknown snapshot fields: {', '.join(sorted(unknown))}")
        fields = {k: v for k, v in metrics.items() if v is not None}

        day_start = utc_day_start(timestamp)
        day_end = day_start + SECONDS_PER_DAY
        existing = self.store.first(
            TABLE,
            INDEX,
            eq={"framework_id": framework_id},
            gte=day_start,
            where=lambda d: d["timestamp"] < day_end,
        )

        if existing is not None:
            doc = self.store.patch(TABLE, existing["id"], fields) if fields else existing
            logger.debug(f"Updated snapshot {doc['id']} for {framework_id}: {sorted(fields)}")
        else:
            doc_id = self.store.insert(TABLE, {
                "framework_id": framework_id,
                "timestamp": timestamp,
                **fields,
            })
            doc = self.store.get(TABLE, doc_id)
            logger.debug(f"Created snapshot {doc_id} for {framework_id}: {sorted(fields)}")

        return MetricsSnapshot.model_validate(doc)

    def latest(self, framework_id: str) -> MetricsSnapshot | None:
        """Return the snapshot with the greatest timestamp."""
        doc = self.store.first(TABLE, INDEX, eq={"framework_id": framework_id}, order="desc")
        return MetricsSnapshot.model_validate(doc) if doc else None

    def historical_before(self, framework_id: str, cutoff: float) -> MetricsSnapshot | None:
        """Return the latest snapshot taken at or before ``cutoff``."""
        doc = self.store.first(
            TABLE, INDEX, eq={"framework_id": framework_id}, lte=cutoff, order="desc"
        )
        return MetricsSnapshot.model_validate(doc) if doc else None

    def history(self, framework_id: str, since: float | None = None) -> list[MetricsSnapshot]:
        """Return snapshots oldest first, optionally only those at or after ``since``."""
        docs = self.store.query(TABLE, INDEX, eq={"framework_id": framework_id}, gte=since)
        return [MetricsSnapshot.model_validate(d) for d in docs]
