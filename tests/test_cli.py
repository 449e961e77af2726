"""Tests for the CLI."""

import io
import json
import logging
from pathlib import Path
from unittest.mock import AsyncMock

import httpx
import pytest
from typer.testing import CliRunner

from conftest import CursorClient
from nest_tools import cli
from nest_tools.adapters.nest import NestApiClient
from nest_tools.core import ResourceType
from nest_tools.dispatcher import ToolDispatcher
from nest_tools.use_cases import AggregationService

runner = CliRunner()


@pytest.fixture(autouse=True)
def reset_logging():
    yield
    logging.getLogger("nest_tools").handlers.clear()


@pytest.fixture
def quiet_config(tmp_path: Path) -> Path:
    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        "logging:\n  level: WARNING\nenrichment:\n  enabled: false\n", encoding="utf-8"
    )
    return config_path


def test_tools_command() -> None:
    result = runner.invoke(cli.app, ["tools"])

    assert result.exit_code == 0
    assert "get_projects" in result.stdout
    assert "search_internet" in result.stdout


def test_call_rejects_bad_json(quiet_config: Path) -> None:
    result = runner.invoke(cli.app, ["call", "get_projects", "--args", "{oops", "--config", str(quiet_config)])

    assert result.exit_code == 2


def test_call_prints_payload(quiet_config: Path, monkeypatch) -> None:
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(
            200,
            json={"items": [{"name": "OWASP Nest", "key": "nest"}], "total_count": 1},
        )

    def fake_api_client(settings) -> NestApiClient:
        return NestApiClient(
            base_url="https://nest.test/api/v0",
            http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
        )

    monkeypatch.setattr(cli, "create_api_client", fake_api_client)

    result = runner.invoke(
        cli.app,
        [
            "call",
            "get_projects",
            "--args",
            '{"limit": 3, "level": "flagship"}',
            "--api-key",
            "caller-key",
            "--config",
            str(quiet_config),
        ],
    )

    assert result.exit_code == 0
    payload = json.loads(result.stdout)
    assert payload["items"][0]["url"] == "https://owasp.org/www-project-nest/"
    assert payload["pagination"]["returned"] == 1
    assert requests[0].url.params["level"] == "flagship"
    assert requests[0].headers["X-API-Key"] == "caller-key"


def test_call_reports_invalid_arguments(quiet_config: Path) -> None:
    result = runner.invoke(
        cli.app, ["call", "get_releases", "--args", '{"limit": 2}', "--config", str(quiet_config)]
    )

    assert result.exit_code == 1


@pytest.mark.asyncio
async def test_serve_stream_answers_each_line() -> None:
    client = CursorClient(ResourceType.CHAPTERS, [{"name": "OWASP London", "key": "london"}])
    dispatcher = ToolDispatcher(AggregationService({client.resource_type: client}), AsyncMock())
    reader = io.StringIO(
        "\n".join(
            [
                '{"jsonrpc": "2.0", "id": 1, "method": "tools/list"}',
                "",
                "not json",
                '{"jsonrpc": "2.0", "id": 2, "method": "tools/call",'
                ' "params": {"name": "get_chapters", "arguments": {"limit": 1}}}',
            ]
        )
        + "\n"
    )
    writer = io.StringIO()

    await cli.serve_stream(dispatcher, reader, writer)

    responses = [json.loads(line) for line in writer.getvalue().splitlines()]
    assert [response["id"] for response in responses] == [1, None, 2]
    assert "tools" in responses[0]["result"]
    assert responses[1]["error"]["code"] == -32700
    assert responses[2]["result"]["structuredContent"]["items"][0]["name"] == "OWASP London"


@pytest.mark.asyncio
async def test_serve_stream_passes_request_api_key() -> None:
    client = CursorClient(ResourceType.CHAPTERS, [{"name": "OWASP London", "key": "london"}])
    dispatcher = ToolDispatcher(AggregationService({client.resource_type: client}), AsyncMock())
    request = {
        "jsonrpc": "2.0",
        "id": 7,
        "method": "tools/call",
        "params": {"name": "get_chapters", "arguments": {}, "_meta": {"apiKey": "tenant-key"}},
    }
    reader = io.StringIO(json.dumps(request) + "\n")
    writer = io.StringIO()

    await cli.serve_stream(dispatcher, reader, writer)

    response = json.loads(writer.getvalue())
    assert response["id"] == 7
    assert client.calls[0]["api_key"] == "tenant-key"
