"""Pydantic models for catalog documents, provider payloads and job results."""

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field, field_validator

MAX_TAGS = 5


class MetricSource(str, Enum):
    """Refresh job families."""

    GITHUB = "github"
    PYPI = "pypi"
    NPM = "npm"
    SIMILARWEB = "similarweb"
    TRENDING = "trending"


class SortField(str, Enum):
    """Sortable framework fields."""

    TRENDING_SCORE = "trending_score"
    CURRENT_STARS = "current_stars"
    LAST_COMMIT = "last_commit_timestamp"
    NAME = "name"


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"


class Theme(str, Enum):
    """UI theme preferences."""

    LIGHT = "light"
    DARK = "dark"
    SYSTEM = "system"


# --- Stored documents ---


class Category(BaseModel):
    """Framework category (e.g. Full-code, Low-code, No-code)."""

    id: str
    name: str
    description: str | None = None


class Framework(BaseModel):
    """A cataloged agent-building framework.

    The ``current_*``, ``trending_score`` and ``last_commit_timestamp`` fields
    are caches of the latest metrics snapshot, maintained by the refresh jobs.
    """

    id: str
    name: str
    description: str = ""
    website_url: str = ""
    github_repo_url: str = ""
    repo_path: str = ""  # "owner/repo", empty when no repository is linked
    category_id: str
    logo_url: str | None = None
    tags: list[str] = Field(default_factory=list)

    # Explicit registry package names; when unset the name is derived from repo_path
    pypi_package: str | None = None
    npm_package: str | None = None

    # Denormalized metrics
    trending_score: float | None = None
    last_commit_timestamp: float | None = None
    current_stars: int | None = None
    current_pypi_downloads: int | None = None
    current_npm_downloads: int | None = None
    current_similarweb_rank: int | None = None

    @field_validator("tags")
    @classmethod
    def _normalize_tags(cls, tags: list[str]) -> list[str]:
        seen: list[str] = []
        for tag in tags:
            tag = tag.strip()
            if tag and tag not in seen:
                seen.append(tag)
        return seen[:MAX_TAGS]


class MetricsSnapshot(BaseModel):
    """Point-in-time capture of a framework's metrics (one per UTC day)."""

    id: str
    framework_id: str
    timestamp: float
    github_stars: int | None = None
    pypi_downloads: int | None = None
    npm_downloads: int | None = None
    similarweb_rank: int | None = None
    github_last_commit_timestamp: float | None = None


class Resource(BaseModel):
    """Link to documentation, tutorials, articles or videos for a framework."""

    id: str
    framework_id: str
    title: str
    url: str
    type: str


class UserSettings(BaseModel):
    """Per-user preferences keyed by identity-provider subject."""

    id: str
    subject_id: str
    theme: Theme = Theme.SYSTEM
    favorite_framework_ids: list[str] = Field(default_factory=list)

    @field_validator("favorite_framework_ids")
    @classmethod
    def _dedupe_favorites(cls, ids: list[str]) -> list[str]:
        return list(dict.fromkeys(ids))


# --- Provider payloads ---


class RepositoryMetrics(BaseModel):
    """Normalized GitHub repository data."""

    stars: int
    last_commit_timestamp: float | None = None
    forks: int = 0
    open_issues: int = 0
    description: str | None = None
    language: str | None = None


class DownloadStats(BaseModel):
    """Download count for a package over a period."""

    downloads: int
    period: str
    start: str | None = None
    end: str | None = None


class RankData(BaseModel):
    """Web traffic rank for a domain. ``rank`` is None when the provider has no data."""

    domain: str
    rank: int | None = None
    message: str | None = None


# --- Scoring ---


class MetricBundle(BaseModel):
    """Metric values fed into the trending score."""

    github_stars: int | None = None
    pypi_downloads: int | None = None
    npm_downloads: int | None = None
    last_commit_timestamp: float | None = None


class TrendingBreakdown(BaseModel):
    """Individual trending score components."""

    stars: float = 0.0
    pypi: float = 0.0
    npm: float = 0.0
    recency: float = 0.0
    total: float = Field(default=0.0, ge=0, le=100)


# --- Job results ---


class RefreshOutcome(BaseModel):
    """Result of refreshing one framework within a job."""

    framework_name: str
    success: bool
    value: float | None = None
    error: str | None = None


class RefreshReport(BaseModel):
    """All outcomes of one job run."""

    job: MetricSource
    started_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    finished_at: datetime | None = None
    outcomes: list[RefreshOutcome] = Field(default_factory=list)

    @property
    def succeeded(self) -> int:
        return sum(1 for o in self.outcomes if o.success)

    @property
    def failed(self) -> int:
        return sum(1 for o in self.outcomes if not o.success)


# --- Query results ---


class FrameworkSummary(BaseModel):
    id: str
    name: str


class FrameworkPage(BaseModel):
    """One page of a framework listing."""

    frameworks: list[Framework]
    total: int
    has_more: bool


class FrameworkDetail(BaseModel):
    """A framework joined with its category, latest snapshot and resources."""

    framework: Framework
    category: Category | None = None
    latest_snapshot: MetricsSnapshot | None = None
    resources: list[Resource] = Field(default_factory=list)


class ResourceWithFramework(Resource):
    framework: FrameworkSummary | None = None


class ResourcePage(BaseModel):
    resources: list[ResourceWithFramework]
    total: int
    has_more: bool


class ResourceDetail(BaseModel):
    resource: Resource
    framework: Framework | None = None
