"""Typed in-memory predicates for framework listings.

These run over documents already fetched through an index; fields with no
index (tags, free-text search) are only ever filtered here.
"""

from collections.abc import Iterable

from agentbuilders.storage.base import Document, Predicate


def has_any_tag(tags: Iterable[str]) -> Predicate:
    """Match frameworks carrying at least one of ``tags``."""
    wanted = set(tags)

    def predicate(doc: Document) -> bool:
        return bool(wanted.intersection(doc.get("tags") or ()))

    return predicate


def matches_search(term: str) -> Predicate:
    """Case-insensitive substring match over name and description."""
    needle = term.lower()

    def predicate(doc: Document) -> bool:
        return needle in (doc.get("name") or "").lower() or needle in (doc.get("description") or "").lower()

    return predicate


def all_of(*predicates: Predicate | None) -> Predicate | None:
    """Combine predicates with logical AND, ignoring None entries."""
    active = [p for p in predicates if p is not None]
    if not active:
        return None
    if len(active) == 1:
        return active[0]
    return lambda doc: all(p(doc) for p in active)
