"""Tests for the catalog query layer."""

import pytest

from agentbuilders.errors import NotFoundError, ValidationError
from agentbuilders.storage import SnapshotStore
from conftest import NOW


def names(page):
    return [fw.name for fw in page.frameworks]


# ── Framework listing ─────────────────────────────────────────────────────────

class TestListFrameworks:
    def test_defaults_sort_by_trending_desc(self, seeded, catalog):
        page = catalog.frameworks.list_frameworks()
        # Flowise has no score and sorts last
        assert names(page) == ["CrewAI", "LangChain", "LangChain.js", "Flowise"]
        assert page.total == 4
        assert not page.has_more

    def test_sort_by_stars_ascending(self, seeded, catalog):
        page = catalog.frameworks.list_frameworks(sort_by="current_stars", sort_direction="asc")
        assert names(page) == ["Flowise", "LangChain.js", "CrewAI", "LangChain"]

    def test_sort_by_name(self, seeded, catalog):
        page = catalog.frameworks.list_frameworks(sort_by="name", sort_direction="asc")
        assert names(page) == ["CrewAI", "Flowise", "LangChain", "LangChain.js"]

    def test_sort_by_last_commit_desc(self, seeded, catalog):
        page = catalog.frameworks.list_frameworks(sort_by="last_commit_timestamp")
        assert names(page) == ["CrewAI", "LangChain", "LangChain.js", "Flowise"]

    def test_category_filter(self, seeded, catalog):
        page = catalog.frameworks.list_frameworks(category_id=seeded.full_code.id, sort_by="current_stars")
        assert names(page) == ["LangChain", "CrewAI", "LangChain.js"]

    def test_unknown_category(self, seeded, catalog):
        with pytest.raises(NotFoundError):
            catalog.frameworks.list_frameworks(category_id="cat_missing")

    def test_tags_match_any(self, seeded, catalog):
        page = catalog.frameworks.list_frameworks(tags=["multi-agent", "low-code"], sort_by="name", sort_direction="asc")
        assert names(page) == ["CrewAI", "Flowise"]

    def test_search_is_case_insensitive_over_name_and_description(self, seeded, catalog):
        assert names(catalog.frameworks.list_frameworks(search="LANGCHAIN")) == ["LangChain", "LangChain.js"]
        assert names(catalog.frameworks.list_frameworks(search="drag-and-drop")) == ["Flowise"]

    def test_filters_combine(self, seeded, catalog):
        page = catalog.frameworks.list_frameworks(tags=["agents"], search="typescript")
        assert names(page) == ["LangChain.js"]

    @pytest.mark.parametrize("offset,limit", [(0, 1), (0, 4), (1, 2), (3, 2), (4, 1), (10, 3), (2, 100)])
    def test_pagination_invariant(self, seeded, catalog, offset, limit):
        page = catalog.frameworks.list_frameworks(offset=offset, limit=limit)
        assert page.total == 4
        assert len(page.frameworks) == max(0, min(limit, page.total - offset))
        assert page.has_more == (offset + limit < page.total)

    def test_pages_do_not_overlap(self, seeded, catalog):
        first = catalog.frameworks.list_frameworks(limit=2)
        second = catalog.frameworks.list_frameworks(limit=2, offset=2)
        assert first.has_more and not second.has_more
        assert set(names(first)).isdisjoint(names(second))

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"sort_by": "forks"},
            {"sort_direction": "sideways"},
            {"limit": 0},
            {"limit": -1},
            {"offset": -1},
        ],
    )
    def test_invalid_arguments(self, seeded, catalog, kwargs):
        with pytest.raises(ValidationError):
            catalog.frameworks.list_frameworks(**kwargs)


# ── Framework lookups ─────────────────────────────────────────────────────────

class TestFrameworkLookups:
    def test_get_framework_joins_detail(self, seeded, catalog, store):
        SnapshotStore(store).upsert_daily(seeded.langchain.id, NOW, {"github_stars": 90000})

        detail = catalog.frameworks.get_framework(seeded.langchain.id)
        assert detail.framework.name == "LangChain"
        assert detail.category.name == "Full-code"
        assert detail.latest_snapshot.github_stars == 90000
        assert {r.title for r in detail.resources} == {"LangChain docs", "RAG tutorial"}

    def test_get_framework_without_snapshot(self, seeded, catalog):
        detail = catalog.frameworks.get_framework(seeded.flowise.id)
        assert detail.latest_snapshot is None

    def test_get_missing_framework(self, seeded, catalog):
        with pytest.raises(NotFoundError):
            catalog.frameworks.get_framework("fw_missing")

    def test_by_repo_path(self, seeded, catalog):
        assert catalog.frameworks.get_framework_by_repo_path("crewAIInc/crewAI").id == seeded.crewai.id
        with pytest.raises(NotFoundError):
            catalog.frameworks.get_framework_by_repo_path("nobody/nothing")

    def test_trending(self, seeded, catalog):
        assert [f.name for f in catalog.frameworks.get_trending_frameworks()] == [
            "CrewAI", "LangChain", "LangChain.js", "Flowise",
        ]
        assert [f.name for f in catalog.frameworks.get_trending_frameworks(limit=2)] == ["CrewAI", "LangChain"]

    def test_snapshot_history(self, seeded, catalog, store):
        SnapshotStore(store).upsert_daily(seeded.crewai.id, NOW, {"github_stars": 1})
        assert len(catalog.frameworks.snapshot_history(seeded.crewai.id)) == 1
        with pytest.raises(NotFoundError):
            catalog.frameworks.snapshot_history("fw_missing")


class TestCreateFramework:
    def test_derives_repo_path_and_normalizes_tags(self, seeded, catalog):
        fw = catalog.frameworks.create_framework(
            "AutoGen",
            seeded.full_code.id,
            github_repo_url="https://github.com/microsoft/autogen.git",
            tags=["agents", " agents ", "python", "a", "b", "c", "d"],
        )
        assert fw.repo_path == "microsoft/autogen"
        assert fw.tags == ["agents", "python", "a", "b", "c"]
        assert fw.id.startswith("frameworks_")

    def test_requires_existing_category(self, catalog):
        with pytest.raises(NotFoundError):
            catalog.frameworks.create_framework("Orphan", "cat_missing")


# ── Categories ────────────────────────────────────────────────────────────────

class TestCategories:
    def test_list_ordered_by_name(self, seeded, catalog):
        assert [c.name for c in catalog.categories.list_categories()] == ["Full-code", "Low-code"]

    def test_lookups(self, seeded, catalog):
        assert catalog.categories.get_category("cat_low").name == "Low-code"
        assert catalog.categories.get_category_by_name("Full-code").id == "cat_full"
        with pytest.raises(NotFoundError):
            catalog.categories.get_category_by_name("No-code")

    def test_duplicate_name_rejected(self, seeded, catalog):
        with pytest.raises(ValidationError):
            catalog.categories.create_category("Low-code")


# ── Resources ─────────────────────────────────────────────────────────────────

class TestResources:
    def test_list_joins_framework_summary(self, seeded, catalog):
        page = catalog.resources.list_resources(framework_id=seeded.langchain.id)
        assert page.total == 2
        assert {r.framework.name for r in page.resources} == {"LangChain"}

    def test_list_by_type(self, seeded, catalog):
        page = catalog.resources.list_resources(type="Documentation", limit=2)
        assert page.total == 3
        assert len(page.resources) == 2
        assert page.has_more

    def test_list_by_framework_and_type(self, seeded, catalog):
        page = catalog.resources.list_resources(framework_id=seeded.langchain.id, type="Tutorial")
        assert [r.title for r in page.resources] == ["RAG tutorial"]

    def test_list_unknown_framework(self, seeded, catalog):
        with pytest.raises(NotFoundError):
            catalog.resources.list_resources(framework_id="fw_missing")

    def test_get_resource(self, seeded, catalog):
        detail = catalog.resources.get_resource(seeded.crew_docs.id)
        assert detail.framework.name == "CrewAI"

    def test_related_same_framework_first_then_same_type(self, seeded, catalog):
        related = catalog.resources.get_related_resources(seeded.docs.id)
        assert [r.id for r in related] == [seeded.tutorial.id, seeded.crew_docs.id, seeded.flow_docs.id]

    def test_related_capped_and_deduplicated(self, seeded, catalog):
        related = catalog.resources.get_related_resources(seeded.crew_docs.id, limit=2)
        ids = [r.id for r in related]
        assert len(ids) == len(set(ids)) == 2
        assert seeded.crew_docs.id not in ids
        # No other CrewAI resources, so both are Documentation from other frameworks
        assert set(ids) == {seeded.docs.id, seeded.flow_docs.id}

    def test_related_missing_resource(self, seeded, catalog):
        with pytest.raises(NotFoundError):
            catalog.resources.get_related_resources("res_missing")
