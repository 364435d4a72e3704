"""
Disease-related structure search report.
"""

import logging
from typing import List, Optional

from ..api.pdb_client import PDBClient
from ..models.entities import EntryMetadata, SearchHit
from .arguments import SearchDiseaseProteinsArgs, validate_arguments

logger = logging.getLogger(__name__)

TOP_RESULTS = 5

ANALYZE_HINT = (
    "To analyze any of these structures in detail, you can use the "
    "analyze-active-site tool with the PDB ID."
)


def render_hit(pdb_id: str, entry: Optional[EntryMetadata]) -> str:
    if entry is None:
        return f"PDB ID: {pdb_id} (Error fetching details)\n---\n\n"

    title = entry.struct.title if entry.struct and entry.struct.title else "Unknown"
    text = f"PDB ID: {pdb_id}\nTitle: {title}\n"

    citation = entry.rcsb_primary_citation
    if citation is not None:
        text += (
            f"Publication: {citation.title or 'Unknown'} "
            f"({citation.journal_abbrev or 'Unknown'}, {citation.year or 'Unknown'})\n"
        )
    return text + "---\n\n"


async def render_results(client: PDBClient, disease: str, hits: List[SearchHit], broadened: bool) -> str:
    relation = "that might be related to" if broadened else "related to"
    text = f'Found {len(hits)} proteins {relation}: "{disease}"\n\n'

    pdb_ids = [hit.identifier for hit in hits[:TOP_RESULTS]]
    entries = await client.get_entries(pdb_ids, concurrent=True)
    for pdb_id, entry in zip(pdb_ids, entries):
        text += render_hit(pdb_id, entry)

    return text + ANALYZE_HINT


async def search_disease_proteins(disease: str, client: Optional[PDBClient] = None) -> str:
    """
    Search for protein structures related to a disease.

    A full-text search runs first; when it finds nothing a broader phrase
    search is tried. Details are fetched for the top five hits.

    Args:
        disease: Disease name or free-text description
        client: PDB client, a default one if not provided

    Returns:
        The report text, or a message explaining why nothing was found

    Raises:
        ValidationError: If ``disease`` is empty
    """
    disease = validate_arguments(SearchDiseaseProteinsArgs, disease=disease).disease
    client = client or PDBClient()

    logger.info("Processing search-disease-proteins request", extra={"disease": disease})

    hits = await client.search_full_text(disease)
    if hits is None:
        return (
            f"Failed to search for proteins related to: {disease}. "
            "The search API might be temporarily unavailable."
        )

    if hits:
        return await render_results(client, disease, hits, broadened=False)

    logger.info("No full-text hits, trying phrase search", extra={"disease": disease})
    hits = await client.search_text_phrase(disease)
    if not hits:
        return (
            f"No proteins found related to: {disease}. "
            "Try using a different disease name or more general terms."
        )

    return await render_results(client, disease, hits, broadened=True)
