"""Learning resources attached to frameworks."""

import logging

from agentbuilders.catalog.frameworks import DEFAULT_PAGE_SIZE, check_page
from agentbuilders.errors import NotFoundError
from agentbuilders.models.schemas import (
    Framework,
    FrameworkSummary,
    Resource,
    ResourceDetail,
    ResourcePage,
    ResourceWithFramework,
)
from agentbuilders.storage.base import Document, DocumentStore

logger = logging.getLogger(__name__)

TABLE = "resources"
DEFAULT_RELATED_LIMIT = 3


class ResourceQueries:
    def __init__(self, store: DocumentStore) -> None:
        self.store = store

    def _require_framework(self, framework_id: str) -> Document:
        doc = self.store.get("frameworks", framework_id)
        if doc is None:
            raise NotFoundError("framework", framework_id)
        return doc

    def list_resources(
        self,
        framework_id: str | None = None,
        type: str | None = None,
        limit: int = DEFAULT_PAGE_SIZE,
        offset: int = 0,
    ) -> ResourcePage:
        """Paginate resources, each joined with its framework's id and name."""
        check_page(limit, offset)
        if framework_id is not None:
            self._require_framework(framework_id)
            rows = self.store.query(
                TABLE,
                "by_framework",
                eq={"framework_id": framework_id},
                where=(lambda d: d.get("type") == type) if type else None,
            )
        elif type:
            rows = self.store.query(TABLE, "by_type", eq={"type": type})
        else:
            rows = self.store.all(TABLE)

        total = len(rows)
        summaries: dict[str, FrameworkSummary | None] = {}
        page = []
        for doc in rows[offset:offset + limit]:
            fid = doc["framework_id"]
            if fid not in summaries:
                fw = self.store.get("frameworks", fid)
                summaries[fid] = FrameworkSummary(id=fw["id"], name=fw["name"]) if fw else None
            page.append(ResourceWithFramework(**doc, framework=summaries[fid]))

        return ResourcePage(resources=page, total=total, has_more=offset + limit < total)

    def get(self, resource_id: str) -> Resource:
        doc = self.store.get(TABLE, resource_id)
        if doc is None:
            raise NotFoundError("resource", resource_id)
        return Resource.model_validate(doc)

    def get_resource(self, resource_id: str) -> ResourceDetail:
        resource = self.get(resource_id)
        framework = self.store.get("frameworks", resource.framework_id)
        return ResourceDetail(
            resource=resource,
            framework=Framework.model_validate(framework) if framework else None,
        )

    def get_related_resources(self, resource_id: str, limit: int = DEFAULT_RELATED_LIMIT) -> list[Resource]:
        """Recommend resources similar to ``resource_id``.

        Other resources of the same framework come first; remaining slots are
        filled with resources of the same type from other frameworks.
        """
        check_page(limit)
        resource = self.get(resource_id)

        related = self.store.query(
            TABLE,
            "by_framework",
            eq={"framework_id": resource.framework_id},
            where=lambda d: d["id"] != resource_id,
            limit=limit,
        )
        if len(related) < limit:
            seen = {d["id"] for d in related} | {resource_id}
            related += self.store.query(
                TABLE,
                "by_type",
                eq={"type": resource.type},
                where=lambda d: d["id"] not in seen and d["framework_id"] != resource.framework_id,
                limit=limit - len(related),
            )
        return [Resource.model_validate(d) for d in related]

    def create_resource(self, framework_id: str, title: str, url: str, type: str) -> Resource:
        self._require_framework(framework_id)
        resource_id = self.store.insert(TABLE, {
            "framework_id": framework_id,
            "title": title,
            "url": url,
            "type": type,
        })
        logger.debug(f"Created resource {resource_id} for {framework_id}")
        return self.get(resource_id)
