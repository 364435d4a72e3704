"""
Tests for the MCP server lifecycle and tool registration.
"""

import asyncio
import os
import signal
from unittest.mock import AsyncMock

import pytest

from pdb_analysis.config import SystemConfig
from pdb_analysis.mcp_server import ServerLifecycle, create_server, serve_stdio


class TestServerLifecycle:
    """Test keep-alive ownership and shutdown."""

    @pytest.mark.asyncio
    async def test_shutdown_happens_once(self):
        lifecycle = ServerLifecycle(keep_alive_interval=0.01)
        lifecycle.start()
        await asyncio.sleep(0.03)
        assert lifecycle.running

        assert lifecycle.shutdown() is True
        assert lifecycle.shutdown() is False
        await asyncio.sleep(0.01)

        assert lifecycle.closed
        assert not lifecycle.running

    @pytest.mark.asyncio
    async def test_start_after_shutdown_rejected(self):
        lifecycle = ServerLifecycle(keep_alive_interval=1.0)
        lifecycle.shutdown()
        with pytest.raises(RuntimeError):
            lifecycle.start()

    @pytest.mark.asyncio
    async def test_start_is_idempotent(self):
        lifecycle = ServerLifecycle(keep_alive_interval=1.0)
        lifecycle.start()
        task = lifecycle._keep_alive_task
        lifecycle.start()
        assert lifecycle._keep_alive_task is task
        lifecycle.shutdown()

    def test_shutdown_without_start(self):
        lifecycle = ServerLifecycle(keep_alive_interval=1.0)
        assert lifecycle.shutdown() is True
        assert not lifecycle.running


class TestCreateServer:
    """Test tool registration."""

    @pytest.mark.asyncio
    async def test_tools_registered(self, curated_store):
        server = create_server(SystemConfig(), store=curated_store)

        tools = {tool.name: tool for tool in await server.list_tools()}

        assert set(tools) == {"analyze-active-site", "search-disease-proteins"}
        assert list(tools["analyze-active-site"].inputSchema["properties"]) == ["pdbId"]
        assert "disease" in tools["search-disease-proteins"].inputSchema["properties"]

    @pytest.mark.asyncio
    async def test_analyze_tool_accepts_pdb_id_argument(self, monkeypatch, curated_store):
        analyze = AsyncMock(return_value="report")
        monkeypatch.setattr("pdb_analysis.mcp_server.analyze_active_site", analyze)
        server = create_server(SystemConfig(), store=curated_store)

        await server.call_tool("analyze-active-site", {"pdbId": "6LU7"})

        analyze.assert_awaited_once_with("6LU7", client=None, store=curated_store)


class TestServeStdio:
    """Test the stdio run loop and its teardown."""

    @pytest.mark.asyncio
    async def test_session_end_releases_resources(self, monkeypatch):
        server = create_server(SystemConfig())
        lifecycle = ServerLifecycle(keep_alive_interval=1.0)
        observed = {}

        async def fake_run():
            observed["running"] = lifecycle.running

        monkeypatch.setattr(server, "run_stdio_async", fake_run)

        await asyncio.create_task(serve_stdio(server, lifecycle))

        assert observed["running"] is True
        assert lifecycle.closed
        assert lifecycle.shutdown() is False

    @pytest.mark.asyncio
    async def test_sigterm_stops_server(self, monkeypatch):
        server = create_server(SystemConfig())
        lifecycle = ServerLifecycle(keep_alive_interval=1.0)

        async def fake_run():
            os.kill(os.getpid(), signal.SIGTERM)
            await asyncio.sleep(10)

        monkeypatch.setattr(server, "run_stdio_async", fake_run)

        await asyncio.wait_for(asyncio.create_task(serve_stdio(server, lifecycle)), timeout=5)

        assert lifecycle.closed
        assert not lifecycle.running

    @pytest.mark.asyncio
    async def test_external_cancellation_propagates(self, monkeypatch):
        server = create_server(SystemConfig())
        lifecycle = ServerLifecycle(keep_alive_interval=1.0)
        started = asyncio.Event()

        async def fake_run():
            started.set()
            await asyncio.sleep(10)

        monkeypatch.setattr(server, "run_stdio_async", fake_run)

        task = asyncio.create_task(serve_stdio(server, lifecycle))
        await started.wait()
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task
        assert lifecycle.closed
