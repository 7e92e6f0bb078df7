"""Tests for the MCP server module: ping tool, accessors and dispatch."""

from unittest.mock import MagicMock, patch

import pytest

from contentful_migrations.mcp import server
from contentful_migrations.mcp.tools import ALL_SPECS, ToolRegistry


@pytest.fixture
def client(mock_config):
    client = MagicMock()
    client.config = mock_config
    client.list_environments.return_value = ["master", "staging"]
    return client


@pytest.fixture
def installed(client):
    server.set_client(client)
    server.set_registry(ToolRegistry([server.PING_SPEC] + ALL_SPECS, read_only=True))
    yield
    server.set_client(None)
    server.set_registry(None)


class TestPing:
    async def test_lists_environments(self, client):
        result = await server._handle_ping(client, {})
        assert not result.isError
        assert result.content[0].text == (
            "Connected to space space1. Environments: master, staging"
        )

    async def test_connection_failure(self, client):
        client.list_environments.side_effect = ConnectionError("refused")
        result = await server._handle_ping(client, {})
        assert result.isError
        assert "Management API connection failed: refused" in result.content[0].text


class TestAccessors:
    def test_uninitialized_client(self):
        with pytest.raises(RuntimeError, match="not initialized"):
            server.get_client()

    def test_uninitialized_registry(self):
        with pytest.raises(RuntimeError, match="not initialized"):
            server.get_registry()


class TestHandlers:
    async def test_read_only_tool_list(self, installed):
        tools = await server.handle_list_tools()
        assert [t.name for t in tools] == ["ping", "migration_status"]

    async def test_call_dispatches(self, installed):
        result = await server.handle_call_tool("ping", None)
        assert "Environments: master, staging" in result.content[0].text

    async def test_filtered_tool_reported_as_unknown(self, installed):
        result = await server.handle_call_tool("content_transfer", {})
        assert result.isError
        assert result.content[0].text.startswith("Error (unknown_tool)")


class TestRun:
    def test_init_config_writes_starter_file(self, tmp_path):
        with patch("sys.argv", ["contentful-migrations-mcp", "--init-config"]):
            server.run()
        assert (tmp_path / ".migrations" / "config.yml").exists()

    def test_cli_overrides_passed_to_main(self):
        argv = [
            "contentful-migrations-mcp",
            "--space-id",
            "abc",
            "--storage",
            "content",
            "--read-only",
        ]
        with (
            patch("sys.argv", argv),
            patch.object(server, "main", new=MagicMock(return_value=None)) as main,
            patch.object(server.asyncio, "run") as run,
        ):
            server.run()

        run.assert_called_once()
        overrides = main.call_args.kwargs["config_overrides"]
        assert overrides["space_id"] == "abc"
        assert overrides["storage"] == "content"
        assert overrides["read_only"] is True

    def test_startup_failure_exits(self):
        with (
            patch("sys.argv", ["contentful-migrations-mcp"]),
            patch.object(server, "main", new=MagicMock(return_value=None)),
            patch.object(server.asyncio, "run", side_effect=RuntimeError("bad")),
        ):
            with pytest.raises(SystemExit) as excinfo:
                server.run()
        assert excinfo.value.code == 1
