"""Core domain entities."""

from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any, Mapping, Optional

from nest_tools.core.errors import InvalidArgument, MissingParameter


class ResourceType(str, Enum):
    """Upstream resource served by a tool."""

    PROJECTS = "projects"
    EVENTS = "events"
    ISSUES = "issues"
    CONTRIBUTORS = "contributors"
    CHAPTERS = "chapters"
    COMMITTEES = "committees"
    MILESTONES = "milestones"
    RELEASES = "releases"
    REPOSITORIES = "repositories"
    SPONSORS = "sponsors"

    @classmethod
    def parse(cls, value: "ResourceType | str") -> "ResourceType":
        """Coerce a string into a resource type."""
        try:
            return cls(value)
        except ValueError:
            raise InvalidArgument(f"Unknown resource type: {value!r}") from None


PROJECT_LEVELS = ("flagship", "lab", "incubator")
PROJECT_TYPES = ("tool", "documentation", "code")
ISSUE_PRIORITIES = ("high", "medium", "low")

DEFAULT_ORGANIZATION = "OWASP"


def _check_string(name: str, value: Any) -> None:
    if value is not None and not isinstance(value, str):
        raise InvalidArgument(f"{name} must be a string")


def _check_choice(name: str, value: Optional[str], choices: tuple[str, ...]) -> None:
    _check_string(name, value)
    if value is not None and value not in choices:
        raise InvalidArgument(f"{name} must be one of: {', '.join(choices)}")


class ResourceFilters:
    """Base for the per-resource filter records."""

    def to_params(self) -> dict[str, Any]:
        """Query parameters sent upstream (unset values omitted)."""
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name) is not None
        }

    def as_context(self) -> dict[str, Any]:
        """Values the normalizer may fall back on."""
        return {f.name: getattr(self, f.name) for f in fields(self)}


@dataclass(frozen=True)
class ProjectFilters(ResourceFilters):
    level: Optional[str] = None
    type: Optional[str] = None

    def __post_init__(self) -> None:
        _check_choice("level", self.level, PROJECT_LEVELS)
        _check_choice("type", self.type, PROJECT_TYPES)


@dataclass(frozen=True)
class EventFilters(ResourceFilters):
    upcoming: bool = True

    def __post_init__(self) -> None:
        if not isinstance(self.upcoming, bool):
            raise InvalidArgument("upcoming must be a boolean")

    def to_params(self) -> dict[str, Any]:
        # The events endpoint takes no date filter
        return {}


@dataclass(frozen=True)
class IssueFilters(ResourceFilters):
    priority: Optional[str] = None
    project: Optional[str] = None

    def __post_init__(self) -> None:
        _check_choice("priority", self.priority, ISSUE_PRIORITIES)
        _check_string("project", self.project)


@dataclass(frozen=True)
class ContributorFilters(ResourceFilters):
    project: Optional[str] = None

    def __post_init__(self) -> None:
        _check_string("project", self.project)


@dataclass(frozen=True)
class ChapterFilters(ResourceFilters):
    location: Optional[str] = None

    def __post_init__(self) -> None:
        _check_string("location", self.location)

    def to_params(self) -> dict[str, Any]:
        # Upstream filters chapters by country
        return {"country": self.location} if self.location else {}


@dataclass(frozen=True)
class CommitteeFilters(ResourceFilters):
    pass


@dataclass(frozen=True)
class MilestoneFilters(ResourceFilters):
    repository: Optional[str] = None
    organization: str = DEFAULT_ORGANIZATION

    def __post_init__(self) -> None:
        _check_string("repository", self.repository)
        _check_string("organization", self.organization)
        if not self.repository:
            raise MissingParameter("repository", "milestones")


@dataclass(frozen=True)
class ReleaseFilters(ResourceFilters):
    repository: Optional[str] = None
    organization: str = DEFAULT_ORGANIZATION

    def __post_init__(self) -> None:
        _check_string("repository", self.repository)
        _check_string("organization", self.organization)
        if not self.repository:
            raise MissingParameter("repository", "releases")


@dataclass(frozen=True)
class RepositoryFilters(ResourceFilters):
    organization: str = DEFAULT_ORGANIZATION

    def __post_init__(self) -> None:
        _check_string("organization", self.organization)


@dataclass(frozen=True)
class SponsorFilters(ResourceFilters):
    pass


FILTER_TYPES: dict[ResourceType, type[ResourceFilters]] = {
    ResourceType.PROJECTS: ProjectFilters,
    ResourceType.EVENTS: EventFilters,
    ResourceType.ISSUES: IssueFilters,
    ResourceType.CONTRIBUTORS: ContributorFilters,
    ResourceType.CHAPTERS: ChapterFilters,
    ResourceType.COMMITTEES: CommitteeFilters,
    ResourceType.MILESTONES: MilestoneFilters,
    ResourceType.RELEASES: ReleaseFilters,
    ResourceType.REPOSITORIES: RepositoryFilters,
    ResourceType.SPONSORS: SponsorFilters,
}


def filters_from_arguments(
    resource_type: ResourceType, arguments: Mapping[str, Any]
) -> ResourceFilters:
    """Build the filter record for a resource type from a loose mapping.

    Keys that do not belong to the resource's filter record are rejected.
    Explicit ``None`` values fall back to the field default.
    """
    filter_cls = FILTER_TYPES[resource_type]
    allowed = {f.name for f in fields(filter_cls)}

    unknown = sorted(set(arguments) - allowed)
    if unknown:
        raise InvalidArgument(
            f"Unsupported argument(s) for {resource_type.value}: {', '.join(unknown)}"
        )

    values = {key: value for key, value in arguments.items() if value is not None}
    return filter_cls(**values)


@dataclass(frozen=True)
class ResourceQuery:
    """One logical request for up to ``requested_limit`` records."""

    resource_type: ResourceType
    requested_limit: int
    page_offset: int = 1
    filters: Optional[ResourceFilters] = None
    api_key: Optional[str] = field(default=None, compare=False, repr=False)

    def __post_init__(self) -> None:
        resource_type = ResourceType.parse(self.resource_type)
        object.__setattr__(self, "resource_type", resource_type)

        if not _is_int(self.requested_limit) or self.requested_limit < 1:
            raise InvalidArgument("limit must be a positive integer")
        if not _is_int(self.page_offset) or self.page_offset < 1:
            raise InvalidArgument("page must be a positive integer")

        filter_cls = FILTER_TYPES[resource_type]
        if self.filters is None:
            # Raises MissingParameter for resources with mandatory filters
            object.__setattr__(self, "filters", filter_cls())
        elif not isinstance(self.filters, filter_cls):
            raise InvalidArgument(
                f"{type(self.filters).__name__} cannot be used for {resource_type.value}"
            )

    def cache_key(self) -> tuple:
        """Key identifying equivalent queries."""
        return (self.resource_type, self.filters, self.requested_limit, self.page_offset)


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


@dataclass
class UpstreamPage:
    """One page returned by the upstream API."""

    items: list[Any]
    total_count: Optional[int] = None
    has_next: Optional[bool] = None


@dataclass
class NormalizedRecord:
    """Canonical output row for one upstream record.

    ``data`` holds the canonical fields under their wire names; every field
    of the resource's schema is present.
    """

    resource_type: ResourceType
    data: dict[str, Any]

    def __post_init__(self) -> None:
        if not self.title:
            raise ValueError("Title cannot be empty")
        if not self.url:
            raise ValueError("URL cannot be empty")

    @property
    def title(self) -> str:
        return self.data.get("name") or self.data.get("title") or ""

    @property
    def url(self) -> str:
        return self.data.get("url") or ""

    @property
    def description(self) -> str:
        return self.data.get("description", "")

    def to_dict(self) -> dict[str, Any]:
        return dict(self.data)


@dataclass
class Pagination:
    """Pagination metadata of an aggregation."""

    requested: int
    returned: int
    total_available: int
    has_more: bool
    requests_made: int
    error: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "requested": self.requested,
            "returned": self.returned,
            "totalAvailable": self.total_available,
            "hasMore": self.has_more,
            "requestsMade": self.requests_made,
        }
        if self.error is not None:
            data["error"] = self.error
        return data


@dataclass
class AggregationResult:
    """Envelope returned for every resource type."""

    items: list[NormalizedRecord]
    pagination: Pagination

    def to_dict(self) -> dict[str, Any]:
        return {
            "items": [item.to_dict() for item in self.items],
            "pagination": self.pagination.to_dict(),
        }


@dataclass
class EnrichmentResult:
    """Data extracted from a web page."""

    url: str
    success: bool
    title: str = ""
    description: str = ""
    content: str = ""
    links: list[str] = field(default_factory=list)
    resource_links: list[str] = field(default_factory=list)
    error: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "url": self.url,
            "title": self.title,
            "description": self.description,
            "content": self.content,
            "links": list(self.links),
            "resourceLinks": list(self.resource_links),
            "success": self.success,
        }
        if self.error is not None:
            data["error"] = self.error
        return data
