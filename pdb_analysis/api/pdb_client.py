"""
RCSB PDB and UniProt client built on the resilient fetcher.

Methods return typed models, ``None`` or empty lists; upstream failures
never raise out of this module.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional, Sequence

from ..config import APIConfig
from ..models.entities import EntryMetadata, SearchHit, UniprotComments, parse_model
from .fetcher import ResilientFetcher, make_api_request

DEFAULT_SEARCH_ROWS = 25

ENTRY_GRAPHQL_QUERY = """{
  entry(entry_id: "%s") {
    rcsb_id
    struct {
      title
      pdbx_descriptor
    }
    rcsb_primary_citation {
      title
      journal_abbrev
      year
    }
    rcsb_entry_info {
      molecular_weight
      polymer_entity_count_protein
      deposited_polymer_monomer_count
      deposited_atom_count
    }
    polymer_entities {
      rcsb_polymer_entity_container_identifiers {
        uniprot_ids
      }
    }
    nonpolymer_entities {
      pdbx_entity_nonpoly {
        comp_id
        name
      }
    }
  }
}"""


def full_text_query(text: str, rows: int = DEFAULT_SEARCH_ROWS) -> Dict[str, Any]:
    """Search API request for a full-text match over experimental entries."""
    return {
        "query": {
            "type": "group",
            "nodes": [
                {
                    "type": "group",
                    "nodes": [
                        {
                            "type": "group",
                            "nodes": [
                                {
                                    "type": "terminal",
                                    "service": "full_text",
                                    "parameters": {"value": text}
                                }
                            ],
                            "logical_operator": "and"
                        }
                    ],
                    "logical_operator": "and",
                    "label": "full_text"
                }
            ],
            "logical_operator": "and"
        },
        "return_type": "entry",
        "request_options": {
            "paginate": {"start": 0, "rows": rows},
            "results_content_type": ["experimental"],
            "sort": [{"sort_by": "score", "direction": "desc"}],
            "scoring_strategy": "combined"
        }
    }


def text_phrase_query(text: str, rows: int = DEFAULT_SEARCH_ROWS) -> Dict[str, Any]:
    """Broader Search API request matching the phrase anywhere in the entry text."""
    return {
        "query": {
            "type": "group",
            "nodes": [
                {
                    "type": "group",
                    "nodes": [
                        {
                            "type": "terminal",
                            "service": "text",
                            "parameters": {
                                "attribute": "text",
                                "operator": "contains_phrase",
                                "value": text
                            }
                        }
                    ],
                    "logical_operator": "and"
                }
            ],
            "logical_operator": "and"
        },
        "return_type": "entry",
        "request_options": {
            "paginate": {"start": 0, "rows": rows},
            "sort": [{"sort_by": "score", "direction": "desc"}]
        }
    }


class PDBClient:
    """
    Client for the RCSB PDB Data, GraphQL and Search APIs and UniProtKB.

    Identifiers are used as given; the tool layer upper-cases PDB ids.
    """

    def __init__(self, fetcher: Optional[ResilientFetcher] = None, api_config: Optional[APIConfig] = None):
        """
        Initialize the client.

        Args:
            fetcher: Fetcher for all requests, a default one if not provided
            api_config: API configuration, the fetcher's if not provided
        """
        self.fetcher = fetcher or ResilientFetcher(api_config=api_config)
        self.config = api_config or self.fetcher.config
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    async def _request(self, url: str, method: str = "GET", body: Optional[Any] = None) -> Optional[Any]:
        return await make_api_request(url, method=method, body=body, fetcher=self.fetcher)

    def entry_url(self, pdb_id: str) -> str:
        return f"{self.config.pdb_data_api.rstrip('/')}/core/entry/{pdb_id}"

    def structure_url(self, pdb_id: str) -> str:
        return f"{self.config.structure_viewer_url.rstrip('/')}/{pdb_id}"

    async def get_entry(self, pdb_id: str) -> Optional[EntryMetadata]:
        """
        Get entry metadata from the REST Data API.

        A 404 is rescued by the fetcher's GraphQL lookup, in which case only
        the id and title are populated.
        """
        data = await self._request(self.entry_url(pdb_id))
        return parse_model(EntryMetadata, data)

    async def get_entry_graphql(self, pdb_id: str) -> Optional[EntryMetadata]:
        """Get entry metadata, polymer and ligand entities through GraphQL."""
        data = await self._request(
            self.config.pdb_graphql_api,
            method="POST",
            body={"query": ENTRY_GRAPHQL_QUERY % pdb_id}
        )
        if not isinstance(data, dict):
            return None
        payload = data.get("data")
        entry = payload.get("entry") if isinstance(payload, dict) else None
        if not entry:
            self.logger.debug("GraphQL returned no entry for %s", pdb_id, extra={"pdb_id": pdb_id})
            return None
        return parse_model(EntryMetadata, entry)

    async def _search(self, query: Dict[str, Any], text: str) -> Optional[List[SearchHit]]:
        data = await self._request(self.config.pdb_search_api, method="POST", body=query)
        if not isinstance(data, dict) or not isinstance(data.get("result_set"), list):
            return None

        hits = []
        for row in data["result_set"]:
            hit = parse_model(SearchHit, row)
            if hit is not None:
                hits.append(hit)

        self.logger.debug(
            "Search for %r returned %d hits",
            text,
            len(hits),
            extra={"query_text": text, "hit_count": len(hits), "total_count": data.get("total_count")}
        )
        return hits

    async def search_full_text(self, text: str, rows: int = DEFAULT_SEARCH_ROWS) -> Optional[List[SearchHit]]:
        """
        Full-text search over experimental entries.

        Returns:
            Hits ordered by score, or None if the search request failed
        """
        return await self._search(full_text_query(text, rows), text)

    async def search_text_phrase(self, text: str, rows: int = DEFAULT_SEARCH_ROWS) -> Optional[List[SearchHit]]:
        """Phrase search over all entries, or None if the request failed."""
        return await self._search(text_phrase_query(text, rows), text)

    async def get_uniprot_entry(self, accession: str) -> Optional[UniprotComments]:
        data = await self._request(f"{self.config.uniprot_api.rstrip('/')}/{accession}")
        return parse_model(UniprotComments, data)

    async def get_entries(self, pdb_ids: Sequence[str], concurrent: bool = True) -> List[Optional[EntryMetadata]]:
        """
        Get several entries, preserving input order.

        Lookups are independent; a failed one yields None in its slot.
        """
        if concurrent:
            return list(await asyncio.gather(*(self.get_entry(pdb_id) for pdb_id in pdb_ids)))
        return [await self.get_entry(pdb_id) for pdb_id in pdb_ids]
