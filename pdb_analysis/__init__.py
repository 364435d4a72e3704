"""
PDB Analysis - protein structure lookups against the RCSB PDB and UniProt.

This package provides a resilient fetcher for the RCSB PDB Data, Search and
GraphQL APIs and for UniProt, plus two report tools built on it:
active-site analysis of a PDB entry and disease-related structure search.
"""

__version__ = "1.0.0"
__author__ = "PDB Analysis Team"
