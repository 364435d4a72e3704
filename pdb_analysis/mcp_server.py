"""
MCP server exposing the report tools over stdio.

The server's keep-alive task lives in an explicit ``ServerLifecycle``
handle that is created at start-up and torn down exactly once, either on
SIGINT/SIGTERM or when the stdio session ends.
"""

import asyncio
import logging
import signal
from datetime import datetime
from typing import Optional

from mcp.server.fastmcp import FastMCP

from .api.pdb_client import PDBClient
from .config import SystemConfig, get_config
from .errors import ValidationError
from .knowledge import KnownActiveSiteStore
from .tools import analyze_active_site, search_disease_proteins

logger = logging.getLogger(__name__)


class ServerLifecycle:
    """Owns the process-wide keep-alive task of a running server."""

    def __init__(self, keep_alive_interval: float):
        self.keep_alive_interval = keep_alive_interval
        self._keep_alive_task: Optional[asyncio.Task] = None
        self._closed = False
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def running(self) -> bool:
        return self._keep_alive_task is not None and not self._keep_alive_task.done()

    def start(self) -> None:
        """Start the keep-alive task. Must be called inside a running loop."""
        if self._closed:
            raise RuntimeError("Server lifecycle already shut down")
        if self._keep_alive_task is None:
            self._keep_alive_task = asyncio.get_running_loop().create_task(self._keep_alive())

    async def _keep_alive(self) -> None:
        while True:
            await asyncio.sleep(self.keep_alive_interval)
            self.logger.debug("Keep-alive ping", extra={"ping_at": datetime.now().isoformat()})

    def shutdown(self) -> bool:
        """
        Cancel the keep-alive task.

        Returns:
            True on the first call, False on every later call
        """
        if self._closed:
            return False
        self._closed = True
        if self._keep_alive_task is not None:
            self._keep_alive_task.cancel()
        self.logger.info("Server resources released")
        return True


def create_server(
    config: Optional[SystemConfig] = None,
    client: Optional[PDBClient] = None,
    store: Optional[KnownActiveSiteStore] = None
) -> FastMCP:
    """
    Create the MCP server and register its tools.

    Args:
        config: System configuration, global config if not provided
        client: PDB client shared by the tools
        store: Curated active-site data, the packaged data if not provided
    """
    config = config or get_config()
    server = FastMCP(config.server.name)

    @server.tool(name="analyze-active-site", description="Analyze the active site of a protein structure")
    async def analyze_active_site_tool(pdbId: str) -> str:
        try:
            return await analyze_active_site(pdbId, client=client, store=store)
        except ValidationError as e:
            return e.message

    @server.tool(name="search-disease-proteins", description="Search for proteins related to a disease")
    async def search_disease_proteins_tool(disease: str) -> str:
        try:
            return await search_disease_proteins(disease, client=client)
        except ValidationError as e:
            return e.message

    return server


def _handle_signal(sig: signal.Signals, lifecycle: ServerLifecycle, main_task: asyncio.Task) -> None:
    logger.info("Received %s signal", sig.name)
    lifecycle.shutdown()
    main_task.cancel()


async def serve_stdio(server: FastMCP, lifecycle: ServerLifecycle) -> None:
    """Run ``server`` on stdio until the session ends or a shutdown signal arrives."""
    loop = asyncio.get_running_loop()
    main_task = asyncio.current_task()
    installed = []
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, _handle_signal, sig, lifecycle, main_task)
            installed.append(sig)
        except NotImplementedError:
            # Windows event loops; KeyboardInterrupt still ends the session
            logger.debug("Signal handlers unavailable on this platform")

    lifecycle.start()
    logger.info("PDB Analysis MCP server running on stdio")
    try:
        await server.run_stdio_async()
    except asyncio.CancelledError:
        if not lifecycle.closed:
            raise
        logger.info("MCP server stopped by signal")
    finally:
        lifecycle.shutdown()
        for sig in installed:
            loop.remove_signal_handler(sig)


def run_mcp_server(config: Optional[SystemConfig] = None) -> None:
    """Entry point for the stdio MCP server."""
    config = config or get_config()
    lifecycle = ServerLifecycle(config.server.keep_alive_interval)
    asyncio.run(serve_stdio(create_server(config), lifecycle))
