"""CLI entry point for nest-tools."""

import asyncio
import json
import sys
from pathlib import Path
from typing import Any, Optional, TextIO

import typer

from nest_tools.adapters.enrichment import WebPageEnricher
from nest_tools.adapters.nest import NestApiClient, build_resource_clients
from nest_tools.config import Settings, get_settings
from nest_tools.core import NestToolsError, ResultCache
from nest_tools.dispatcher import TOOLS, ToolDispatcher
from nest_tools.logging_config import setup_logging
from nest_tools.use_cases import AggregationService

app = typer.Typer(help="Tool-call aggregation layer over the OWASP Nest API.", no_args_is_help=True)

PARSE_ERROR = -32700

CONFIG_OPTION = typer.Option(Path("config.yaml"), "--config", "-c", help="Path to YAML config")


def build_dispatcher(settings: Settings, api: NestApiClient) -> ToolDispatcher:
    """Wire the services for one process."""
    cache = ResultCache(settings.cache.ttl_seconds) if settings.cache.enabled else None

    aggregator = AggregationService(
        clients=build_resource_clients(api),
        page_size_caps=settings.page_size_caps,
        default_page_size=settings.pagination.default_page_size,
        cache=cache,
    )

    enricher = WebPageEnricher(
        timeout=settings.enrichment.timeout,
        user_agent=settings.enrichment.user_agent,
        max_content_chars=settings.enrichment.max_content_chars,
        max_links=settings.enrichment.max_links,
    )

    return ToolDispatcher(aggregator, enricher, enrich_projects=settings.enrichment.enabled)


def create_api_client(settings: Settings) -> NestApiClient:
    return NestApiClient(
        base_url=settings.nest.base_url,
        api_key=settings.nest_api_key,
        timeout=settings.nest.timeout,
        max_retries=settings.nest.max_retries,
        retry_delay=settings.nest.retry_delay,
    )


def _load_settings(config: Path) -> Settings:
    settings = get_settings(config)
    setup_logging(json_format=settings.logging.json_format, level=settings.logging.level.upper())
    return settings


@app.command()
def call(
    tool: str = typer.Argument(..., help="Tool name, e.g. get_projects"),
    args: str = typer.Option("{}", "--args", "-a", help="Tool arguments as a JSON object"),
    api_key: Optional[str] = typer.Option(None, "--api-key", help="Per-call Nest API key"),
    config: Path = CONFIG_OPTION,
) -> None:
    """Invoke one tool and print its JSON payload."""
    try:
        arguments = json.loads(args)
    except json.JSONDecodeError as e:
        typer.echo(f"Invalid --args JSON: {e}", err=True)
        raise typer.Exit(code=2)

    settings = _load_settings(config)

    try:
        payload = asyncio.run(_call(settings, tool, arguments, api_key))
    except NestToolsError as e:
        typer.echo(f"Error ({e.code}): {e}", err=True)
        raise typer.Exit(code=1)

    typer.echo(json.dumps(payload, indent=2, ensure_ascii=False))


async def _call(
    settings: Settings, tool: str, arguments: Any, api_key: Optional[str]
) -> dict[str, Any]:
    async with create_api_client(settings) as api:
        dispatcher = build_dispatcher(settings, api)
        return await dispatcher.call_tool(tool, arguments, api_key=api_key)


@app.command()
def tools() -> None:
    """List the available tools."""
    for spec in TOOLS:
        typer.echo(f"{spec.name:<18} {spec.description}")


@app.command()
def serve(config: Path = CONFIG_OPTION) -> None:
    """Serve line-delimited JSON-RPC requests on stdin/stdout."""
    settings = _load_settings(config)
    asyncio.run(_serve(settings, sys.stdin, sys.stdout))


async def _serve(settings: Settings, reader: TextIO, writer: TextIO) -> None:
    async with create_api_client(settings) as api:
        dispatcher = build_dispatcher(settings, api)
        await serve_stream(dispatcher, reader, writer)


async def serve_stream(dispatcher: ToolDispatcher, reader: TextIO, writer: TextIO) -> None:
    """Answer one JSON-RPC request per input line until EOF.

    Only responses go to ``writer``; logs stay on stderr.
    """
    while True:
        line = await asyncio.to_thread(reader.readline)
        if not line:
            break
        line = line.strip()
        if not line:
            continue

        try:
            request = json.loads(line)
        except json.JSONDecodeError:
            response = {
                "jsonrpc": "2.0",
                "id": None,
                "error": {"code": PARSE_ERROR, "message": "Parse error"},
            }
        else:
            response = await dispatcher.handle_request(request)

        writer.write(json.dumps(response, ensure_ascii=False) + "\n")
        writer.flush()


if __name__ == "__main__":
    app()
