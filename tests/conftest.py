"""
tests/conftest.py: Shared pytest fixtures for the agentbuilders test suite.

Fixtures:
    store        Empty in-memory document store.
    catalog      Catalog over ``store``.
    seeded       Two categories, four frameworks and a handful of resources.
    mock_client  Factory for httpx.AsyncClient instances backed by a handler.
"""

import json
from types import SimpleNamespace

import httpx
import pytest

from agentbuilders.catalog import Catalog
from agentbuilders.storage import MemoryStore

# 2024-06-15 12:00:00 UTC
NOW = 1718452800.0
DAY = 86400


# ── Pytest configuration hooks ────────────────────────────────────────────────

def pytest_addoption(parser):
    """Add --run-integration CLI flag to enable integration tests."""
    parser.addoption(
        "--run-integration",
        action="store_true",
        default=False,
        help="Run integration tests that call real external APIs.",
    )


def pytest_collection_modifyitems(config, items):
    """Skip integration tests unless --run-integration is passed or -m integration is used."""
    markexpr = config.getoption("-m", default="")
    if "integration" in markexpr:
        return

    if config.getoption("--run-integration"):
        return

    skip_integration = pytest.mark.skip(
        reason="Integration test -- pass --run-integration or -m integration to run"
    )
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip_integration)


# ── Store fixtures ────────────────────────────────────────────────────────────

@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def catalog(store):
    return Catalog(store)


@pytest.fixture
def seeded(catalog):
    """Small catalog with denormalized metrics already populated."""
    full_code = catalog.categories.create_category("Full-code", "Code-first frameworks", category_id="cat_full")
    low_code = catalog.categories.create_category("Low-code", category_id="cat_low")

    langchain = catalog.frameworks.create_framework(
        "LangChain",
        full_code.id,
        description="Build context-aware reasoning applications",
        website_url="https://www.langchain.com",
        github_repo_url="https://github.com/langchain-ai/langchain",
        tags=["python", "agents", "rag"],
        id="fw_langchain",
        trending_score=62.5,
        current_stars=90000,
        current_pypi_downloads=1000,
        last_commit_timestamp=NOW - 2 * DAY,
    )
    langchainjs = catalog.frameworks.create_framework(
        "LangChain.js",
        full_code.id,
        description="LangChain for JavaScript and TypeScript",
        github_repo_url="https://github.com/langchain-ai/langchainjs",
        tags=["typescript", "agents"],
        id="fw_langchainjs",
        trending_score=35.0,
        current_stars=12000,
        current_npm_downloads=500,
        last_commit_timestamp=NOW - 10 * DAY,
    )
    crewai = catalog.frameworks.create_framework(
        "CrewAI",
        full_code.id,
        description="Framework for orchestrating role-playing autonomous AI agents",
        website_url="https://crewai.com",
        github_repo_url="https://github.com/crewAIInc/crewAI",
        tags=["python", "multi-agent"],
        id="fw_crewai",
        trending_score=80.0,
        current_stars=20000,
        pypi_package="crewai",
        last_commit_timestamp=NOW - 1 * DAY,
    )
    flowise = catalog.frameworks.create_framework(
        "Flowise",
        low_code.id,
        description="Drag-and-drop UI to build LLM flows",
        website_url="https://flowiseai.com/",
        tags=["low-code"],
        id="fw_flowise",
    )

    docs = catalog.resources.create_resource(langchain.id, "LangChain docs", "https://python.langchain.com", "Documentation")
    tutorial = catalog.resources.create_resource(langchain.id, "RAG tutorial", "https://example.com/rag", "Tutorial")
    crew_docs = catalog.resources.create_resource(crewai.id, "CrewAI docs", "https://docs.crewai.com", "Documentation")
    flow_docs = catalog.resources.create_resource(flowise.id, "Flowise docs", "https://docs.flowiseai.com", "Documentation")

    return SimpleNamespace(
        full_code=full_code,
        low_code=low_code,
        langchain=langchain,
        langchainjs=langchainjs,
        crewai=crewai,
        flowise=flowise,
        docs=docs,
        tutorial=tutorial,
        crew_docs=crew_docs,
        flow_docs=flow_docs,
    )


# ── HTTP stubs ────────────────────────────────────────────────────────────────

def json_response(payload, status_code=200, headers=None):
    return httpx.Response(
        status_code,
        content=json.dumps(payload).encode(),
        headers={"Content-Type": "application/json", **(headers or {})},
    )


@pytest.fixture
def mock_client():
    """Return a factory building AsyncClients that route requests to ``handler``."""

    def factory(handler):
        return httpx.AsyncClient(transport=httpx.MockTransport(handler))

    return factory
