"""
Server runner for the PDB Analysis REST API.
"""

import logging
from typing import Optional

import uvicorn

from .config import get_config
from .logging_config import setup_logging


def run_server(
    host: Optional[str] = None,
    port: Optional[int] = None,
    reload: bool = False,
    workers: int = 1
):
    """
    Run the FastAPI server.

    Args:
        host: Host to bind to, configured host if not provided
        port: Port to bind to, configured port if not provided
        reload: Enable auto-reload for development
        workers: Number of worker processes
    """
    config = get_config()
    setup_logging(config.logging)

    host = host or config.server.host
    port = port or config.server.port

    logger = logging.getLogger(__name__)
    logger.info("Starting PDB Analysis API server on %s:%d", host, port)

    uvicorn.run(
        "pdb_analysis.api.rest_api:app",
        host=host,
        port=port,
        reload=reload,
        workers=workers,
        log_level=config.logging.level.lower(),
        access_log=True
    )
