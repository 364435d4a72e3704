"""
Response models for upstream payloads.

This package provides Pydantic models for RCSB PDB entries, binding sites,
ligands, polymer entities, search hits and UniProt comments.
"""

from .entities import (
    BindingSite,
    Citation,
    EntryInfo,
    EntryMetadata,
    KnownActiveSite,
    Ligand,
    PolymerEntity,
    SearchHit,
    StructInfo,
    UniprotComments,
    parse_model,
)

__all__ = [
    "BindingSite",
    "Citation",
    "EntryInfo",
    "EntryMetadata",
    "KnownActiveSite",
    "Ligand",
    "PolymerEntity",
    "SearchHit",
    "StructInfo",
    "UniprotComments",
    "parse_model",
]
