"""Tool dispatcher: the JSON-RPC tool surface over the aggregation core.

Request::

    {"jsonrpc": "2.0", "id": 1, "method": "tools/call",
     "params": {"name": "get_chapters", "arguments": {"location": "London", "limit": 5}}}

Success response::

    {"jsonrpc": "2.0", "id": 1,
     "result": {"content": [{"type": "text", "text": "<json>"}],
                "structuredContent": {"items": [...], "pagination": {...}}}}

Error response::

    {"jsonrpc": "2.0", "id": 1, "error": {"code": -32601, "message": "Unknown tool: x"}}
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from nest_tools.core import (
    InvalidArgument,
    InvalidRequest,
    MethodNotFound,
    NestToolsError,
    PageEnricher,
    ResourceQuery,
    ResourceType,
    filters_from_arguments,
)
from nest_tools.use_cases import AggregationService, EnrichmentService

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 10

# Older clients call tools with a "nest_" prefix
LEGACY_PREFIX = "nest_"


@dataclass(frozen=True)
class ToolSpec:
    """A tool exposed to the model provider."""

    name: str
    description: str
    properties: dict[str, Any] = field(default_factory=dict)
    required: tuple[str, ...] = ()
    resource_type: Optional[ResourceType] = None

    def input_schema(self) -> dict[str, Any]:
        schema: dict[str, Any] = {"type": "object", "properties": self.properties}
        if self.required:
            schema["required"] = list(self.required)
        return schema

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.input_schema(),
        }


def _limit(noun: str) -> dict[str, Any]:
    return {
        "type": "integer",
        "minimum": 1,
        "default": DEFAULT_LIMIT,
        "description": f"Maximum number of {noun} to return",
    }


_PAGE = {"type": "integer", "minimum": 1, "default": 1, "description": "Upstream page to start from"}
_ORGANIZATION = {"type": "string", "default": "OWASP", "description": "GitHub organization"}
_REPOSITORY = {"type": "string", "description": "Repository name"}

TOOLS: tuple[ToolSpec, ...] = (
    ToolSpec(
        "get_projects",
        "Fetch OWASP projects (tools, documentation, code libraries).",
        {
            "level": {"type": "string", "enum": ["flagship", "lab", "incubator"]},
            "type": {"type": "string", "enum": ["tool", "documentation", "code"]},
            "limit": _limit("projects"),
            "page": _PAGE,
            "enrich": {
                "type": "boolean",
                "description": "Fetch each project page to fill in descriptions",
            },
        },
        resource_type=ResourceType.PROJECTS,
    ),
    ToolSpec(
        "get_events",
        "Fetch OWASP conferences, meetups and training events.",
        {
            "upcoming": {"type": "boolean", "default": True},
            "limit": _limit("events"),
            "page": _PAGE,
        },
        resource_type=ResourceType.EVENTS,
    ),
    ToolSpec(
        "get_issues",
        "Fetch open issues from OWASP projects on GitHub.",
        {
            "priority": {"type": "string", "enum": ["high", "medium", "low"]},
            "project": {"type": "string", "description": "Project name"},
            "limit": _limit("issues"),
            "page": _PAGE,
        },
        resource_type=ResourceType.ISSUES,
    ),
    ToolSpec(
        "get_contributors",
        "Fetch OWASP community members. Ordered as the upstream returns them "
        "(by join date), not by contribution volume.",
        {
            "project": {"type": "string", "description": "Project name"},
            "limit": _limit("contributors"),
            "page": _PAGE,
        },
        resource_type=ResourceType.CONTRIBUTORS,
    ),
    ToolSpec(
        "get_chapters",
        "Fetch OWASP chapters worldwide.",
        {
            "location": {"type": "string", "description": "Country or region"},
            "limit": _limit("chapters"),
            "page": _PAGE,
        },
        resource_type=ResourceType.CHAPTERS,
    ),
    ToolSpec(
        "get_committees",
        "Fetch OWASP committees and working groups.",
        {"limit": _limit("committees"), "page": _PAGE},
        resource_type=ResourceType.COMMITTEES,
    ),
    ToolSpec(
        "get_milestones",
        "Fetch GitHub milestones of an OWASP repository.",
        {
            "organization": _ORGANIZATION,
            "repository": _REPOSITORY,
            "limit": _limit("milestones"),
            "page": _PAGE,
        },
        required=("repository",),
        resource_type=ResourceType.MILESTONES,
    ),
    ToolSpec(
        "get_releases",
        "Fetch GitHub releases of an OWASP repository.",
        {
            "organization": _ORGANIZATION,
            "repository": _REPOSITORY,
            "limit": _limit("releases"),
            "page": _PAGE,
        },
        required=("repository",),
        resource_type=ResourceType.RELEASES,
    ),
    ToolSpec(
        "get_repositories",
        "Fetch OWASP GitHub repositories.",
        {"organization": _ORGANIZATION, "limit": _limit("repositories"), "page": _PAGE},
        resource_type=ResourceType.REPOSITORIES,
    ),
    ToolSpec(
        "get_sponsors",
        "Fetch OWASP sponsors and supporters.",
        {"limit": _limit("sponsors"), "page": _PAGE},
        resource_type=ResourceType.SPONSORS,
    ),
    ToolSpec(
        "search_internet",
        "Fetch a web page and extract its title, description and links.",
        {"url": {"type": "string", "description": "Absolute http(s) URL"}},
        required=("url",),
    ),
)


def _positive_int(arguments: dict[str, Any], name: str, default: int) -> int:
    value = arguments.pop(name, None)
    if value is None:
        return default
    # Model providers sometimes send integral floats
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if not isinstance(value, int) or isinstance(value, bool) or value < 1:
        raise InvalidArgument(f"{name} must be a positive integer")
    return value


class ToolDispatcher:
    """Route tool invocations to the aggregator and the page enricher."""

    def __init__(
        self,
        aggregator: AggregationService,
        enricher: PageEnricher,
        enrich_projects: bool = True,
        tools: tuple[ToolSpec, ...] = TOOLS,
    ) -> None:
        self.aggregator = aggregator
        self.enricher = enricher
        self.enrichment = EnrichmentService(enricher)
        self.enrich_projects = enrich_projects
        self.tools = {tool.name: tool for tool in tools}

    def list_tools(self) -> list[dict[str, Any]]:
        return [tool.to_dict() for tool in self.tools.values()]

    def resolve_tool(self, name: Any) -> ToolSpec:
        """Look up a tool by name, accepting the legacy prefixed names."""
        if isinstance(name, str):
            if name in self.tools:
                return self.tools[name]
            if name.startswith(LEGACY_PREFIX):
                alias = name[len(LEGACY_PREFIX):]
                if not alias.startswith("get_"):
                    alias = f"get_{alias}"
                if alias in self.tools:
                    return self.tools[alias]
        raise MethodNotFound(f"Unknown tool: {name}")

    async def call_tool(
        self,
        name: str,
        arguments: Optional[dict[str, Any]] = None,
        api_key: Optional[str] = None,
    ) -> dict[str, Any]:
        """Invoke a tool and return its payload.

        Raises:
            MethodNotFound: unknown tool name.
            InvalidArgument: bad or missing arguments (raised before any I/O).
        """
        tool = self.resolve_tool(name)
        if arguments is None:
            arguments = {}
        if not isinstance(arguments, dict):
            raise InvalidArgument("arguments must be an object")

        args = dict(arguments)
        logger.info("Tool call: %s %s", tool.name, args, extra={"tool": tool.name})

        if tool.resource_type is None:
            return await self._search_internet(args)

        limit = _positive_int(args, "limit", DEFAULT_LIMIT)
        page = _positive_int(args, "page", 1)

        enrich = False
        if tool.resource_type is ResourceType.PROJECTS:
            enrich = args.pop("enrich", None)
            if enrich is None:
                enrich = self.enrich_projects
            elif not isinstance(enrich, bool):
                raise InvalidArgument("enrich must be a boolean")

        query = ResourceQuery(
            resource_type=tool.resource_type,
            requested_limit=limit,
            page_offset=page,
            filters=filters_from_arguments(tool.resource_type, args),
            api_key=api_key,
        )

        result = await self.aggregator.aggregate(query)
        if enrich and result.items:
            result = await self.enrichment.enrich_result(result)

        return result.to_dict()

    async def _search_internet(self, args: dict[str, Any]) -> dict[str, Any]:
        url = args.pop("url", None)
        if args:
            raise InvalidArgument(f"Unsupported argument(s) for search_internet: {', '.join(sorted(args))}")
        if not isinstance(url, str) or not url.startswith(("http://", "https://")):
            raise InvalidArgument("url must be an absolute http(s) URL")

        page = await self.enricher.enrich(url)
        return page.to_dict()

    async def handle_request(
        self, request: Any, api_key: Optional[str] = None
    ) -> dict[str, Any]:
        """Handle one JSON-RPC request object and build the response object."""
        request_id = request.get("id") if isinstance(request, dict) else None

        try:
            if not isinstance(request, dict) or not isinstance(request.get("method"), str):
                raise InvalidRequest("Invalid request")

            method = request["method"]
            params = request.get("params") or {}
            if not isinstance(params, dict):
                raise InvalidRequest("params must be an object")

            if method == "tools/list":
                result: dict[str, Any] = {"tools": self.list_tools()}
            elif method == "tools/call":
                if api_key is None:
                    api_key = _request_api_key(params)
                payload = await self.call_tool(
                    params.get("name"), params.get("arguments"), api_key=api_key
                )
                result = {
                    "content": [{"type": "text", "text": json.dumps(payload, ensure_ascii=False)}],
                    "structuredContent": payload,
                }
            else:
                raise MethodNotFound(f"Method not found: {method}")

        except NestToolsError as e:
            logger.warning("Request failed: %s", e)
            return _error_response(request_id, e.code, str(e))
        except Exception as e:
            logger.exception("Tool execution failed")
            return _error_response(request_id, NestToolsError.code, f"Tool execution failed: {e}")

        return {"jsonrpc": "2.0", "id": request_id, "result": result}


def _request_api_key(params: dict[str, Any]) -> Optional[str]:
    """Per-call key sent as ``params._meta.apiKey``."""
    meta = params.get("_meta")
    if meta is None:
        return None
    if not isinstance(meta, dict):
        raise InvalidRequest("_meta must be an object")

    api_key = meta.get("apiKey")
    if api_key is None:
        return None
    if not isinstance(api_key, str) or not api_key.strip():
        raise InvalidArgument("apiKey must be a non-empty string")
    return api_key


def _error_response(request_id: Any, code: int, message: str) -> dict[str, Any]:
    return {"jsonrpc": "2.0", "id": request_id, "error": {"code": code, "message": message}}
