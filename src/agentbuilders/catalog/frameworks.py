"""Framework listings, lookups and writes."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, TypeVar

from agentbuilders.adapters.base import parse_repo_path
from agentbuilders.catalog.filters import all_of, has_any_tag, matches_search
from agentbuilders.errors import NotFoundError, ValidationError
from agentbuilders.models.schemas import (
    Category,
    Framework,
    FrameworkDetail,
    FrameworkPage,
    MetricsSnapshot,
    Resource,
    SortDirection,
    SortField,
)
from agentbuilders.storage.base import Document, DocumentStore
from agentbuilders.storage.snapshots import SnapshotStore

logger = logging.getLogger(__name__)

TABLE = "frameworks"
DEFAULT_PAGE_SIZE = 20
DEFAULT_TRENDING_LIMIT = 10

# Sort fields served straight from an index; everything else sorts in memory.
INDEXED_SORTS = {
    SortField.TRENDING_SCORE: "by_trending_score",
    SortField.CURRENT_STARS: "by_stars",
}

E = TypeVar("E", bound=Enum)


def coerce_enum(enum_cls: type[E], value: Any, label: str) -> E:
    """Convert a raw value to ``enum_cls`` or raise ValidationError."""
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(member.value for member in enum_cls)
        raise ValidationError(f"Unknown {label} {value!r}; expected one of: {allowed}") from None


def check_page(limit: int, offset: int = 0) -> None:
    if limit <= 0:
        raise ValidationError(f"limit must be positive, got {limit}")
    if offset < 0:
        raise ValidationError(f"offset must not be negative, got {offset}")


def _sort_key(field: SortField):
    if field == SortField.NAME:
        return lambda d: (d.get("name") or "").casefold()
    if field == SortField.LAST_COMMIT:
        return lambda d: d.get("last_commit_timestamp") or 0
    # Indexed fields sorted in memory keep the index convention: None first
    return lambda d: (d.get(field.value) is not None, d.get(field.value) or 0)


class FrameworkQueries:
    """Read and write paths over the frameworks table."""

    def __init__(self, store: DocumentStore) -> None:
        self.store = store
        self.snapshots = SnapshotStore(store)

    def list_frameworks(
        self,
        category_id: str | None = None,
        tags: list[str] | None = None,
        search: str | None = None,
        sort_by: SortField | str = SortField.TRENDING_SCORE,
        sort_direction: SortDirection | str = SortDirection.DESC,
        limit: int = DEFAULT_PAGE_SIZE,
        offset: int = 0,
    ) -> FrameworkPage:
        """Filter, sort and paginate frameworks.

        The category filter and the trending/stars sorts go through indexes.
        Tag (any-match) and search filters, and the name/last-commit sorts,
        are applied in memory to the fetched rows.

        Raises:
            ValidationError: Unknown sort field or direction, bad limit or offset.
            NotFoundError: ``category_id`` does not exist.
        """
        sort_by = coerce_enum(SortField, sort_by, "sort field")
        sort_direction = coerce_enum(SortDirection, sort_direction, "sort direction")
        check_page(limit, offset)

        where = all_of(
            has_any_tag(tags) if tags else None,
            matches_search(search) if search else None,
        )
        descending = sort_direction == SortDirection.DESC

        if category_id is not None:
            if self.store.get("categories", category_id) is None:
                raise NotFoundError("category", category_id)
            rows = self.store.query(TABLE, "by_category", eq={"category_id": category_id}, where=where)
            rows.sort(key=_sort_key(sort_by), reverse=descending)
        elif sort_by in INDEXED_SORTS:
            rows = self.store.query(
                TABLE, INDEXED_SORTS[sort_by], order=sort_direction.value, where=where
            )
        else:
            rows = self.store.all(TABLE, where=where)
            rows.sort(key=_sort_key(sort_by), reverse=descending)

        total = len(rows)
        page = rows[offset:offset + limit]
        return FrameworkPage(
            frameworks=[Framework.model_validate(d) for d in page],
            total=total,
            has_more=offset + limit < total,
        )

    def get(self, framework_id: str) -> Framework:
        doc = self.store.get(TABLE, framework_id)
        if doc is None:
            raise NotFoundError("framework", framework_id)
        return Framework.model_validate(doc)

    def get_framework(self, framework_id: str) -> FrameworkDetail:
        """Return a framework with its category, latest snapshot and resources."""
        framework = self.get(framework_id)
        category_doc = self.store.get("categories", framework.category_id)
        resources = self.store.query("resources", "by_framework", eq={"framework_id": framework_id})
        return FrameworkDetail(
            framework=framework,
            category=Category.model_validate(category_doc) if category_doc else None,
            latest_snapshot=self.snapshots.latest(framework_id),
            resources=[Resource.model_validate(r) for r in resources],
        )

    def get_framework_by_repo_path(self, repo_path: str) -> Framework:
        doc = self.store.first(TABLE, "by_repo_path", eq={"repo_path": repo_path})
        if doc is None:
            raise NotFoundError("framework", repo_path)
        return Framework.model_validate(doc)

    def get_trending_frameworks(self, limit: int = DEFAULT_TRENDING_LIMIT) -> list[Framework]:
        """Return the highest trending scores first."""
        check_page(limit)
        docs = self.store.query(TABLE, "by_trending_score", order="desc", limit=limit)
        return [Framework.model_validate(d) for d in docs]

    def snapshot_history(self, framework_id: str, since: float | None = None) -> list[MetricsSnapshot]:
        self.get(framework_id)
        return self.snapshots.history(framework_id, since=since)

    def create_framework(
        self,
        name: str,
        category_id: str,
        description: str = "",
        website_url: str = "",
        github_repo_url: str = "",
        **fields: Any,
    ) -> Framework:
        """Insert a framework, deriving ``repo_path`` from the GitHub URL.

        Raises:
            NotFoundError: ``category_id`` does not exist.
        """
        if self.store.get("categories", category_id) is None:
            raise NotFoundError("category", category_id)

        doc: Document = {
            "name": name,
            "category_id": category_id,
            "description": description,
            "website_url": website_url,
            "github_repo_url": github_repo_url,
            "repo_path": parse_repo_path(github_repo_url) or "",
            **fields,
        }
        framework_id = doc.pop("id", None)
        # Validate before writing; the store assigns an id unless one was given
        doc = Framework.model_validate({"id": "", **doc}).model_dump(exclude={"id"}, mode="json")
        if framework_id:
            doc["id"] = framework_id
        framework_id = self.store.insert(TABLE, doc)
        logger.info(f"Created framework {name} ({framework_id})")
        return self.get(framework_id)
