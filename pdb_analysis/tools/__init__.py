"""
Report tools exposed by the MCP server, the REST API and the CLI.
"""

from .active_site import analyze_active_site
from .arguments import AnalyzeActiveSiteArgs, SearchDiseaseProteinsArgs, validate_arguments
from .disease_search import search_disease_proteins

__all__ = [
    "analyze_active_site",
    "search_disease_proteins",
    "AnalyzeActiveSiteArgs",
    "SearchDiseaseProteinsArgs",
    "validate_arguments",
]
