"""Core domain layer."""

from nest_tools.core.cache import ResultCache
from nest_tools.core.entities import (
    FILTER_TYPES,
    AggregationResult,
    ChapterFilters,
    CommitteeFilters,
    ContributorFilters,
    EnrichmentResult,
    EventFilters,
    IssueFilters,
    MilestoneFilters,
    NormalizedRecord,
    Pagination,
    ProjectFilters,
    ReleaseFilters,
    RepositoryFilters,
    ResourceFilters,
    ResourceQuery,
    ResourceType,
    SponsorFilters,
    UpstreamPage,
    filters_from_arguments,
)
from nest_tools.core.errors import (
    EnrichmentFailure,
    InvalidArgument,
    InvalidRequest,
    MethodNotFound,
    MissingParameter,
    NestToolsError,
    UpstreamTransportError,
)
from nest_tools.core.interfaces import PageEnricher, ResourceClient
from nest_tools.core.normalizer import RECORD_SCHEMAS, normalize

__all__ = [
    "AggregationResult",
    "ChapterFilters",
    "CommitteeFilters",
    "ContributorFilters",
    "EnrichmentFailure",
    "EnrichmentResult",
    "EventFilters",
    "FILTER_TYPES",
    "InvalidArgument",
    "InvalidRequest",
    "IssueFilters",
    "MethodNotFound",
    "MilestoneFilters",
    "MissingParameter",
    "NestToolsError",
    "NormalizedRecord",
    "PageEnricher",
    "Pagination",
    "ProjectFilters",
    "RECORD_SCHEMAS",
    "ReleaseFilters",
    "RepositoryFilters",
    "ResourceClient",
    "ResourceFilters",
    "ResourceQuery",
    "ResourceType",
    "ResultCache",
    "SponsorFilters",
    "UpstreamPage",
    "UpstreamTransportError",
    "filters_from_arguments",
    "normalize",
]
