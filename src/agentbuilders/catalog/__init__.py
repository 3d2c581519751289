"""Catalog query layer: frameworks, categories, resources and user settings."""

from agentbuilders.catalog.categories import CategoryQueries
from agentbuilders.catalog.frameworks import FrameworkQueries
from agentbuilders.catalog.resources import ResourceQueries
from agentbuilders.catalog.users import UserSettingsService
from agentbuilders.storage.base import DocumentStore


class Catalog:
    """Groups the read and write paths over one document store.

    Usage:
        catalog = Catalog(store)
        page = catalog.frameworks.list_frameworks(sort_by="current_stars", limit=10)
    """

    def __init__(self, store: DocumentStore) -> None:
        self.store = store
        self.categories = CategoryQueries(store)
        self.frameworks = FrameworkQueries(store)
        self.resources = ResourceQueries(store)
        self.users = UserSettingsService(store)


__all__ = [
    "Catalog",
    "CategoryQueries",
    "FrameworkQueries",
    "ResourceQueries",
    "UserSettingsService",
]
