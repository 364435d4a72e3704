"""
API integration layer for external database access.

This package contains the resilient fetcher shared by every upstream call,
the RCSB PDB / UniProt client built on it, and the REST API exposing the
report tools.
"""

from .fetcher import (
    RequestDescriptor,
    ResilientFetcher,
    make_api_request,
)

from .pdb_client import PDBClient

__all__ = [
    'RequestDescriptor',
    'ResilientFetcher',
    'make_api_request',
    'PDBClient',
]
