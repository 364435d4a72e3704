"""
Curated active-site descriptions for well-studied PDB entries.

The data lives in a JSON file keyed by PDB id. The packaged file is used by
default; any other file or mapping can be injected into the tools instead.
"""

import json
import logging
from importlib import resources
from pathlib import Path
from typing import Any, Dict, Iterator, Mapping, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from .errors import ConfigurationError
from .models.entities import KnownActiveSite

logger = logging.getLogger(__name__)

PACKAGED_DATA_FILE = "known_active_sites.json"


class KnownActiveSiteStore:
    """Read-only lookup of curated active sites by PDB id."""

    def __init__(self, entries: Optional[Mapping[str, Any]] = None):
        """
        Args:
            entries: Mapping of PDB id to ``KnownActiveSite`` or its dict form

        Raises:
            ConfigurationError: If an entry does not validate
        """
        self._entries: Dict[str, KnownActiveSite] = {}
        for pdb_id, entry in (entries or {}).items():
            try:
                site = entry if isinstance(entry, KnownActiveSite) else KnownActiveSite.model_validate(entry)
            except PydanticValidationError as e:
                raise ConfigurationError(
                    f"Invalid active-site entry for {pdb_id}: {e}",
                    original_exception=e
                )
            self._entries[pdb_id.upper()] = site

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "KnownActiveSiteStore":
        """Load a store from a JSON file."""
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigurationError(f"Cannot load active-site data from {path}: {e}", original_exception=e)
        if not isinstance(data, dict):
            raise ConfigurationError(f"Active-site data in {path} must be a JSON object")
        return cls(data)

    @classmethod
    def packaged(cls) -> "KnownActiveSiteStore":
        """Load the store shipped with the package."""
        text = resources.files("pdb_analysis").joinpath("data").joinpath(PACKAGED_DATA_FILE).read_text(encoding="utf-8")
        store = cls(json.loads(text))
        logger.debug("Loaded %d curated active sites", len(store))
        return store

    def get(self, pdb_id: str) -> Optional[KnownActiveSite]:
        return self._entries.get(pdb_id.upper())

    def __contains__(self, pdb_id: object) -> bool:
        return isinstance(pdb_id, str) and pdb_id.upper() in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)


_default_store: Optional[KnownActiveSiteStore] = None


def get_default_store() -> KnownActiveSiteStore:
    """Get the packaged store, loading it on first use."""
    global _default_store
    if _default_store is None:
        _default_store = KnownActiveSiteStore.packaged()
    return _default_store
