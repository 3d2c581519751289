"""Abstract document store used by the catalog and the refresh jobs."""

from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any

Document = dict[str, Any]
Predicate = Callable[[Document], bool]

# Table -> index name -> indexed fields (in order).
INDEXES: dict[str, dict[str, tuple[str, ...]]] = {
    "categories": {
        "by_name": ("name",),
    },
    "frameworks": {
        "by_category": ("category_id",),
        "by_trending_score": ("trending_score",),
        "by_stars": ("current_stars",),
        "by_repo_path": ("repo_path",),
    },
    "metrics_snapshots": {
        "by_framework_and_timestamp": ("framework_id", "timestamp"),
    },
    "resources": {
        "by_framework": ("framework_id",),
        "by_type": ("type",),
    },
    "user_settings": {
        "by_subject": ("subject_id",),
    },
}

TABLES = tuple(INDEXES)


class DocumentStore(ABC):
    """Minimal document database surface.

    Documents are plain dicts carrying their own ``id``. Index queries take
    equality constraints on a prefix of the index fields, an optional range on
    the next field, an order, a limit and an optional post-filter predicate.
    Rows are ordered by the index fields; documents whose indexed value is None
    sort first.
    """

    @abstractmethod
    def get(self, table: str, doc_id: str) -> Document | None:
        """Return a copy of the document, or None if it does not exist."""
        ...

    @abstractmethod
    def insert(self, table: str, doc: Document) -> str:
        """Insert a document and return its id.

        A caller-supplied ``id`` is kept; otherwise one is generated.
        """
        ...

    @abstractmethod
    def patch(self, table: str, doc_id: str, fields: Document) -> Document:
        """Overwrite the given fields of an existing document.

        Raises:
            NotFoundError: If the document does not exist.
        """
        ...

    @abstractmethod
    def query(
        self,
        table: str,
        index: str,
        *,
        eq: Document | None = None,
        gte: Any = None,
        lte: Any = None,
        order: str = "asc",
        limit: int | None = None,
        where: Predicate | None = None,
    ) -> list[Document]:
        """Return documents through a declared index."""
        ...

    @abstractmethod
    def all(self, table: str, where: Predicate | None = None) -> list[Document]:
        """Return every document of a table in insertion order."""
        ...

    def first(self, table: str, index: str, **kwargs: Any) -> Document | None:
        """Return the first result of an index query, or None."""
        rows = self.query(table, index, limit=1, **kwargs)
        return rows[0] if rows else None
