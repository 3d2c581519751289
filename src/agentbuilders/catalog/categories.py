"""Category lookups and writes."""

from agentbuilders.errors import NotFoundError, ValidationError
from agentbuilders.models.schemas import Category
from agentbuilders.storage.base import DocumentStore

TABLE = "categories"


class CategoryQueries:
    def __init__(self, store: DocumentStore) -> None:
        self.store = store

    def list_categories(self) -> list[Category]:
        """Return all categories ordered by name."""
        return [Category.model_validate(d) for d in self.store.query(TABLE, "by_name")]

    def get_category(self, category_id: str) -> Category:
        doc = self.store.get(TABLE, category_id)
        if doc is None:
            raise NotFoundError("category", category_id)
        return Category.model_validate(doc)

    def get_category_by_name(self, name: str) -> Category:
        doc = self.store.first(TABLE, "by_name", eq={"name": name})
        if doc is None:
            raise NotFoundError("category", name)
        return Category.model_validate(doc)

    def create_category(self, name: str, description: str | None = None, category_id: str | None = None) -> Category:
        """Insert a category. Names are unique.

        Raises:
            ValidationError: A category with ``name`` already exists.
        """
        if self.store.first(TABLE, "by_name", eq={"name": name}) is not None:
            raise ValidationError(f"Category {name!r} already exists")
        doc = {"name": name, "description": description}
        if category_id:
            doc["id"] = category_id
        return self.get_category(self.store.insert(TABLE, doc))
