"""
Tests for the curated active-site store.
"""

import json
import os
import tempfile

import pytest

from pdb_analysis.errors import ConfigurationError
from pdb_analysis.knowledge import KnownActiveSiteStore, get_default_store
from pdb_analysis.models import KnownActiveSite


class TestPackagedStore:
    """Test the data shipped with the package."""

    def test_packaged_entries(self):
        store = KnownActiveSiteStore.packaged()

        assert set(store) == {"6LU7", "1ACB", "4EY7", "1ATP", "7CAT"}
        site = store.get("6LU7")
        assert site.active_site == "SARS-CoV-2 main protease active site"
        assert site.binding_site == "Catalytic dyad: HIS41, CYS145"
        assert "CYS 145 (Chain A) - Catalytic residue" in site.catalytic_residues

    def test_default_store_is_cached(self):
        assert get_default_store() is get_default_store()
        assert len(get_default_store()) == 5


class TestLookup:
    """Test case-insensitive lookups."""

    def test_lookup_ignores_case(self, curated_store):
        assert "6lu7" in curated_store
        assert curated_store.get("6lu7") is curated_store.get("6LU7")
        assert curated_store.get("1ABC") is None
        assert 1234 not in curated_store

    def test_accepts_model_instances(self):
        site = KnownActiveSite(active_site="Site", binding_site="Pocket")
        store = KnownActiveSiteStore({"1abc": site})
        assert store.get("1ABC") is site

    def test_empty_store(self):
        store = KnownActiveSiteStore()
        assert len(store) == 0
        assert store.get("6LU7") is None


class TestLoading:
    """Test loading curated data from files."""

    def _write(self, content):
        with tempfile.NamedTemporaryFile(mode='w', suffix='.json', delete=False) as f:
            f.write(content)
            return f.name

    def test_from_file(self):
        path = self._write(json.dumps({"1abc": {"active_site": "A", "binding_site": "B", "ligands": ["L"]}}))
        try:
            store = KnownActiveSiteStore.from_file(path)
        finally:
            os.unlink(path)

        assert list(store) == ["1ABC"]
        assert store.get("1ABC").ligands == ["L"]

    @pytest.mark.parametrize("content", [
        "{broken",
        "[1, 2, 3]",
        json.dumps({"1ABC": {"binding_site": "missing active_site"}}),
    ])
    def test_invalid_files_rejected(self, content):
        path = self._write(content)
        try:
            with pytest.raises(ConfigurationError):
                KnownActiveSiteStore.from_file(path)
        finally:
            os.unlink(path)

    def test_missing_file(self):
        with pytest.raises(ConfigurationError):
            KnownActiveSiteStore.from_file("/nonexistent/sites.json")
