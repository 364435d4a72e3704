"""
REST API endpoints for the PDB Analysis toolkit.

This module exposes the report tools over HTTP with FastAPI. Request
bodies are validated by the shared argument models; invalid arguments
produce a 422 response.
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, Dict, Optional

from fastapi import FastAPI, Depends, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from .. import __version__
from ..config import get_config, SystemConfig
from ..errors import ValidationError
from ..knowledge import KnownActiveSiteStore, get_default_store
from ..tools import (
    AnalyzeActiveSiteArgs,
    SearchDiseaseProteinsArgs,
    analyze_active_site,
    search_disease_proteins,
)
from .pdb_client import PDBClient

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan context manager."""
    logger.info("PDB Analysis API starting up")

    # Fail at start-up rather than on the first request if the data is bad
    store = get_default_store()
    logger.info("Curated active-site data loaded", extra={"entry_count": len(store)})

    yield

    logger.info("PDB Analysis API shutting down")


class ToolResponse(BaseModel):
    """Response model for tool invocations."""
    tool: str
    text: str


class ErrorResponse(BaseModel):
    """Response model for errors."""
    error: str
    detail: Optional[str] = None
    timestamp: datetime = Field(default_factory=datetime.now)


app = FastAPI(
    title="PDB Analysis API",
    description="Active-site analysis and disease search over the RCSB PDB",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)


def get_system_config() -> SystemConfig:
    """Get system configuration."""
    return get_config()


def get_pdb_client() -> PDBClient:
    """Get a PDB client instance."""
    return PDBClient()


def get_knowledge_store() -> KnownActiveSiteStore:
    """Get the curated active-site store."""
    return get_default_store()


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=ErrorResponse(error="Invalid arguments", detail=exc.message).model_dump(mode="json")
    )


@app.get("/", response_model=Dict[str, str])
async def root(config: SystemConfig = Depends(get_system_config)):
    """Root endpoint with API information."""
    return {
        "name": config.server.name,
        "version": __version__,
        "description": "Active-site analysis and disease search over the RCSB PDB",
        "docs": "/docs",
        "health": "/health"
    }


@app.get("/health", response_model=Dict[str, Any])
async def health_check(store: KnownActiveSiteStore = Depends(get_knowledge_store)):
    """Basic health check endpoint. Does not contact upstream APIs."""
    return {
        "status": "healthy",
        "version": __version__,
        "curated_entries": len(store),
        "timestamp": datetime.now().isoformat()
    }


@app.post("/tools/analyze-active-site", response_model=ToolResponse)
async def analyze_active_site_endpoint(
    args: AnalyzeActiveSiteArgs,
    client: PDBClient = Depends(get_pdb_client),
    store: KnownActiveSiteStore = Depends(get_knowledge_store)
):
    """Analyze the active site of a protein structure."""
    text = await analyze_active_site(args.pdb_id, client=client, store=store)
    return ToolResponse(tool="analyze-active-site", text=text)


@app.post("/tools/search-disease-proteins", response_model=ToolResponse)
async def search_disease_proteins_endpoint(
    args: SearchDiseaseProteinsArgs,
    client: PDBClient = Depends(get_pdb_client)
):
    """Search for proteins related to a disease."""
    text = await search_disease_proteins(args.disease, client=client)
    return ToolResponse(tool="search-disease-proteins", text=text)
