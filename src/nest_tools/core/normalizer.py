"""Mapping of upstream records onto canonical per-resource records.

The upstream API is not consistent about field naming: the same logical
field may arrive in snake_case from the REST endpoints or in camelCase from
SDK-shaped payloads, and some resources use entirely different names
(``summary`` vs ``description``, ``website`` vs ``url``). Each resource type
therefore has an explicit schema listing, for every canonical field, the
source names to try in order and the literal (or builder) used when none of
them carries a value. Every canonical field is always present in the output.
"""

import copy
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Mapping, Optional, Union

from nest_tools.core.entities import DEFAULT_ORGANIZATION, NormalizedRecord, ResourceType

NO_DESCRIPTION = "No description available"

DefaultBuilder = Callable[[dict[str, Any], Mapping[str, Any]], Any]


@dataclass(frozen=True)
class FieldSpec:
    """One canonical field of a record schema."""

    name: str
    sources: tuple[str, ...]
    default: Union[Any, DefaultBuilder] = ""
    transform: Optional[Callable[[Any], Any]] = None

    def resolve(
        self, raw: Mapping[str, Any], record: dict[str, Any], context: Mapping[str, Any]
    ) -> Any:
        for source in self.sources:
            value = raw.get(source)
            if self.transform is not None and not is_missing(value):
                value = self.transform(value)
            if not is_missing(value):
                return value

        if callable(self.default):
            return self.default(record, context)
        return copy.copy(self.default)


def is_missing(value: Any) -> bool:
    """True for None, blank strings and empty collections."""
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, dict, set)):
        return len(value) == 0
    return False


def as_text(value: Any) -> Optional[str]:
    """Accept strings and plain numbers as text; anything else counts as missing."""
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return None


def slugify(name: Any) -> str:
    """Lower-case a display name and hyphenate whitespace runs."""
    return re.sub(r"\s+", "-", str(name).strip().lower())


def display_date(value: Any) -> Any:
    """Render an ISO timestamp as ``Aug 16, 2025``; other values pass through."""
    if not isinstance(value, str):
        return value
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return value
    return f"{parsed:%b} {parsed.day}, {parsed.year}"


def login_of(value: Any) -> Any:
    """Extract a login from a nested user object."""
    if isinstance(value, Mapping):
        return value.get("login") or value.get("name")
    return value


def _ctx(context: Mapping[str, Any], key: str, fallback: str) -> str:
    return context.get(key) or fallback


def _organization(context: Mapping[str, Any]) -> str:
    return _ctx(context, "organization", DEFAULT_ORGANIZATION)


def _key_from_name(record: dict[str, Any], context: Mapping[str, Any]) -> str:
    return slugify(record["name"])


def _description() -> FieldSpec:
    return FieldSpec("description", ("description", "summary"), NO_DESCRIPTION)


PROJECT_SCHEMA = (
    FieldSpec("name", ("name", "title"), "Unknown Project", transform=as_text),
    FieldSpec("key", ("key",), _key_from_name, transform=as_text),
    _description(),
    FieldSpec(
        "url",
        ("url", "website"),
        lambda rec, ctx: f"https://owasp.org/www-project-{slugify(rec['key'])}/",
        transform=as_text,
    ),
    FieldSpec("level", ("level",), "unknown"),
    FieldSpec(
        "type",
        ("type", "project_type", "projectType"),
        lambda rec, ctx: _ctx(ctx, "type", "general"),
    ),
    FieldSpec("leaders", ("leaders",), []),
    FieldSpec("githubUrl", ("repository_url", "repositoryUrl", "github_url", "githubUrl"), ""),
    FieldSpec("createdAt", ("created_at", "createdAt"), ""),
    FieldSpec("updatedAt", ("updated_at", "updatedAt"), ""),
)

EVENT_SCHEMA = (
    FieldSpec("name", ("name", "title"), "OWASP Event", transform=as_text),
    FieldSpec("key", ("key",), "", transform=as_text),
    _description(),
    FieldSpec("date", ("start_date", "startDate", "date", "end_date", "endDate"), "TBD"),
    FieldSpec("endDate", ("end_date", "endDate"), ""),
    FieldSpec("location", ("location", "venue"), "Virtual"),
    FieldSpec("url", ("url", "website"), "https://owasp.org/events", transform=as_text),
)

ISSUE_SCHEMA = (
    FieldSpec("title", ("title",), "Untitled Issue", transform=as_text),
    FieldSpec("description", ("body", "description", "summary"), NO_DESCRIPTION),
    FieldSpec(
        "project",
        ("project", "project_name", "projectName", "repository", "repository_name", "repositoryName"),
        lambda rec, ctx: _ctx(ctx, "project", "OWASP Project"),
    ),
    FieldSpec("priority", ("priority",), lambda rec, ctx: _ctx(ctx, "priority", "medium")),
    FieldSpec("labels", ("labels", "tags"), []),
    FieldSpec("state", ("state",), "open"),
    FieldSpec("url", ("url", "html_url", "htmlUrl"), "https://github.com/OWASP", transform=as_text),
    FieldSpec("createdAt", ("created_at", "createdAt"), ""),
)

CONTRIBUTOR_SCHEMA = (
    FieldSpec("name", ("name", "login", "username"), "Anonymous", transform=as_text),
    FieldSpec("login", ("login", "username"), "", transform=as_text),
    FieldSpec("description", ("bio", "description"), NO_DESCRIPTION),
    FieldSpec("avatarUrl", ("avatar_url", "avatarUrl"), ""),
    FieldSpec(
        "url",
        ("url", "html_url", "htmlUrl", "github_url", "githubUrl", "profile_url", "profileUrl"),
        lambda rec, ctx: f"https://github.com/{rec['login']}" if rec["login"] else "https://github.com",
        transform=as_text,
    ),
    FieldSpec("contributions", ("contributions", "contributions_count", "contributionsCount", "commits"), 0),
    FieldSpec("projects", ("projects", "repositories"), []),
    FieldSpec("joinedDate", ("created_at", "createdAt"), "", transform=display_date),
    FieldSpec("lastActive", ("updated_at", "updatedAt"), "", transform=display_date),
    FieldSpec("createdAt", ("created_at", "createdAt"), ""),
    FieldSpec("updatedAt", ("updated_at", "updatedAt"), ""),
)

CHAPTER_SCHEMA = (
    FieldSpec("name", ("name", "title"), "OWASP Chapter", transform=as_text),
    FieldSpec("key", ("key",), _key_from_name, transform=as_text),
    _description(),
    FieldSpec("location", ("location", "country", "city", "region"), "Unknown"),
    FieldSpec("country", ("country",), ""),
    FieldSpec("region", ("region",), ""),
    FieldSpec("meetingFrequency", ("meeting_frequency", "meetingFrequency", "frequency"), ""),
    FieldSpec(
        "url",
        ("url", "website"),
        lambda rec, ctx: f"https://owasp.org/www-chapter-{slugify(rec['key'])}/",
        transform=as_text,
    ),
)

COMMITTEE_SCHEMA = (
    FieldSpec("name", ("name", "title"), "OWASP Committee", transform=as_text),
    FieldSpec("key", ("key",), _key_from_name, transform=as_text),
    _description(),
    FieldSpec("leaders", ("leaders",), []),
    FieldSpec(
        "url",
        ("url", "website"),
        lambda rec, ctx: f"https://owasp.org/www-committee-{slugify(rec['key'])}/",
        transform=as_text,
    ),
)


def _repository_base(context: Mapping[str, Any]) -> str:
    return f"https://github.com/{_organization(context)}/{_ctx(context, 'repository', '')}"


def _milestone_url(record: dict[str, Any], context: Mapping[str, Any]) -> str:
    if record["number"]:
        return f"{_repository_base(context)}/milestone/{record['number']}"
    return f"{_repository_base(context)}/milestones"


def _release_url(record: dict[str, Any], context: Mapping[str, Any]) -> str:
    if record["tagName"]:
        return f"{_repository_base(context)}/releases/tag/{record['tagName']}"
    return f"{_repository_base(context)}/releases"


MILESTONE_SCHEMA = (
    FieldSpec("title", ("title", "name"), "Milestone", transform=as_text),
    FieldSpec("description", ("description", "body"), NO_DESCRIPTION),
    FieldSpec("state", ("state",), "open"),
    FieldSpec("number", ("number",), 0),
    FieldSpec("openIssues", ("open_issues_count", "openIssuesCount", "open_issues", "openIssues"), 0),
    FieldSpec("closedIssues", ("closed_issues_count", "closedIssuesCount", "closed_issues", "closedIssues"), 0),
    FieldSpec("dueDate", ("due_on", "dueOn"), ""),
    FieldSpec("url", ("html_url", "htmlUrl", "url"), _milestone_url, transform=as_text),
)

RELEASE_SCHEMA = (
    FieldSpec("tagName", ("tag_name", "tagName"), "", transform=as_text),
    FieldSpec("name", ("name", "tag_name", "tagName"), "Release", transform=as_text),
    FieldSpec("description", ("body", "description"), NO_DESCRIPTION),
    FieldSpec("publishedAt", ("published_at", "publishedAt"), ""),
    FieldSpec("author", ("author",), "Unknown", transform=login_of),
    FieldSpec("isPrerelease", ("prerelease", "is_pre_release", "isPreRelease"), False),
    FieldSpec("isDraft", ("draft", "is_draft", "isDraft"), False),
    FieldSpec("url", ("html_url", "htmlUrl", "url"), _release_url, transform=as_text),
)

REPOSITORY_SCHEMA = (
    FieldSpec("name", ("name",), "Repository", transform=as_text),
    FieldSpec(
        "fullName",
        ("full_name", "fullName"),
        lambda rec, ctx: f"{_organization(ctx)}/{rec['name']}",
        transform=as_text,
    ),
    _description(),
    FieldSpec(
        "url",
        ("html_url", "htmlUrl", "url"),
        lambda rec, ctx: f"https://github.com/{rec['fullName']}",
        transform=as_text,
    ),
    FieldSpec("stars", ("stargazers_count", "stargazersCount", "stars_count", "starsCount", "stars"), 0),
    FieldSpec("forks", ("forks_count", "forksCount", "forks"), 0),
    FieldSpec("language", ("language",), "Unknown"),
    FieldSpec("topics", ("topics",), []),
    FieldSpec("isArchived", ("archived", "is_archived", "isArchived"), False),
    FieldSpec("updatedAt", ("updated_at", "updatedAt"), ""),
)

SPONSOR_SCHEMA = (
    FieldSpec("name", ("name",), "Sponsor", transform=as_text),
    FieldSpec("key", ("key",), _key_from_name, transform=as_text),
    _description(),
    FieldSpec("url", ("url", "website"), "https://owasp.org/supporters/", transform=as_text),
    FieldSpec("logo", ("image_url", "imageUrl", "logo", "logo_url", "logoUrl"), ""),
    FieldSpec("tier", ("sponsor_type", "sponsorType", "tier", "level"), "supporter"),
    FieldSpec("joinedDate", ("joined_date", "joinedDate", "created_at", "createdAt"), ""),
)

RECORD_SCHEMAS: dict[ResourceType, tuple[FieldSpec, ...]] = {
    ResourceType.PROJECTS: PROJECT_SCHEMA,
    ResourceType.EVENTS: EVENT_SCHEMA,
    ResourceType.ISSUES: ISSUE_SCHEMA,
    ResourceType.CONTRIBUTORS: CONTRIBUTOR_SCHEMA,
    ResourceType.CHAPTERS: CHAPTER_SCHEMA,
    ResourceType.COMMITTEES: COMMITTEE_SCHEMA,
    ResourceType.MILESTONES: MILESTONE_SCHEMA,
    ResourceType.RELEASES: RELEASE_SCHEMA,
    ResourceType.REPOSITORIES: REPOSITORY_SCHEMA,
    ResourceType.SPONSORS: SPONSOR_SCHEMA,
}


def normalize(
    resource_type: ResourceType,
    raw_item: Mapping[str, Any],
    context: Optional[Mapping[str, Any]] = None,
) -> NormalizedRecord:
    """Map one raw upstream record onto its canonical shape.

    Args:
        resource_type: Resource the record belongs to
        raw_item: Record as returned upstream
        context: Caller filters used by fallbacks (organization, repository,
            type, priority, project)
    """
    resource_type = ResourceType.parse(resource_type)
    context = context or {}

    record: dict[str, Any] = {}
    # Fields resolve in schema order so builders can use earlier fields
    for spec in RECORD_SCHEMAS[resource_type]:
        record[spec.name] = spec.resolve(raw_item, record, context)

    return NormalizedRecord(resource_type=resource_type, data=record)
