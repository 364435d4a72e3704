"""
Pydantic models for RCSB PDB and UniProt response payloads.

Upstream responses are loosely shaped and frequently partial, so every
field is optional and unknown fields are ignored. Each variant is validated
on its own; ``parse_model`` turns a payload that fails validation into
``None`` instead of raising.
"""

import logging
from typing import Any, List, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError as PydanticValidationError, field_validator

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


class PayloadModel(BaseModel):
    """Base for upstream payload models."""
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class StructInfo(PayloadModel):
    title: Optional[str] = None
    pdbx_descriptor: Optional[str] = None


class Citation(PayloadModel):
    title: Optional[str] = None
    journal_abbrev: Optional[str] = None
    year: Optional[int] = None


class EntryInfo(PayloadModel):
    molecular_weight: Optional[float] = None
    deposited_polymer_monomer_count: Optional[int] = None
    deposited_atom_count: Optional[int] = None
    polymer_entity_count_protein: Optional[int] = None
    ligand_count: Optional[int] = None


class BindingSite(PayloadModel):
    """A ``pdbx_struct_site`` record."""
    id: Optional[str] = None
    rcsb_id: Optional[str] = None
    details: Optional[str] = None
    pdbx_evidence_code: Optional[str] = None
    pdbx_site_details: Optional[str] = None


class _NonpolymerComp(PayloadModel):
    id: Optional[str] = None
    name: Optional[str] = None


class _PdbxEntityNonpoly(PayloadModel):
    comp_id: Optional[str] = None
    name: Optional[str] = None


class _NonpolymerIdentifiers(PayloadModel):
    comp_id: Optional[str] = None


class Ligand(PayloadModel):
    """
    A non-polymer entity.

    The component id and name live in different places depending on which
    endpoint produced the payload; ``comp_id`` and ``display_name`` resolve
    them.
    """
    nonpolymer_comp: Optional[_NonpolymerComp] = None
    pdbx_entity_nonpoly: Optional[_PdbxEntityNonpoly] = None
    rcsb_nonpolymer_entity_container_identifiers: Optional[_NonpolymerIdentifiers] = None
    chem_comp_id: Optional[str] = None
    chem_comp_name: Optional[str] = None
    id: Optional[str] = None
    name: Optional[str] = None

    @property
    def comp_id(self) -> Optional[str]:
        candidates = [
            self.nonpolymer_comp.id if self.nonpolymer_comp else None,
            self.pdbx_entity_nonpoly.comp_id if self.pdbx_entity_nonpoly else None,
            self.rcsb_nonpolymer_entity_container_identifiers.comp_id
            if self.rcsb_nonpolymer_entity_container_identifiers else None,
            self.chem_comp_id,
            self.id,
        ]
        return next((c for c in candidates if c), None)

    @property
    def display_name(self) -> Optional[str]:
        candidates = [
            self.nonpolymer_comp.name if self.nonpolymer_comp else None,
            self.pdbx_entity_nonpoly.name if self.pdbx_entity_nonpoly else None,
            self.chem_comp_name,
            self.name,
        ]
        return next((c for c in candidates if c), None)


class _PolymerIdentifiers(PayloadModel):
    uniprot_ids: List[str] = Field(default_factory=list)

    @field_validator("uniprot_ids", mode="before")
    @classmethod
    def none_as_empty(cls, v):
        return v or []


class PolymerEntityAnnotation(PayloadModel):
    type: Optional[str] = None
    name: Optional[str] = None
    description: Optional[str] = None


class PolymerEntity(PayloadModel):
    rcsb_polymer_entity_container_identifiers: Optional[_PolymerIdentifiers] = None
    rcsb_polymer_entity_annotation: List[PolymerEntityAnnotation] = Field(default_factory=list)
    rcsb_entity_polymer_type: Optional[str] = None

    @field_validator("rcsb_polymer_entity_annotation", mode="before")
    @classmethod
    def none_as_empty(cls, v):
        return v or []

    @property
    def uniprot_ids(self) -> List[str]:
        if self.rcsb_polymer_entity_container_identifiers is None:
            return []
        return list(self.rcsb_polymer_entity_container_identifiers.uniprot_ids)


class EntryMetadata(PayloadModel):
    """An entry as returned by the REST ``core/entry`` or GraphQL ``entry`` endpoints."""
    rcsb_id: Optional[str] = None
    struct: Optional[StructInfo] = None
    rcsb_primary_citation: Optional[Citation] = None
    rcsb_entry_info: Optional[EntryInfo] = None
    pdbx_struct_site: List[BindingSite] = Field(default_factory=list)
    nonpolymer_entities: List[Ligand] = Field(default_factory=list)
    polymer_entities: List[PolymerEntity] = Field(default_factory=list)

    @field_validator("pdbx_struct_site", "nonpolymer_entities", "polymer_entities", mode="before")
    @classmethod
    def none_as_empty(cls, v):
        return v or []

    @property
    def display_title(self) -> str:
        """Struct title, then descriptor, then citation title."""
        candidates = [
            self.struct.title if self.struct else None,
            self.struct.pdbx_descriptor if self.struct else None,
            self.rcsb_primary_citation.title if self.rcsb_primary_citation else None,
        ]
        return next((c for c in candidates if c), "Unknown protein")

    @property
    def uniprot_ids(self) -> List[str]:
        ids: List[str] = []
        for entity in self.polymer_entities:
            ids.extend(entity.uniprot_ids)
        return ids


class _CommentText(PayloadModel):
    value: Optional[str] = None


class UniprotComment(PayloadModel):
    comment_type: Optional[str] = Field(default=None, alias="commentType")
    texts: List[_CommentText] = Field(default_factory=list)

    @field_validator("texts", mode="before")
    @classmethod
    def none_as_empty(cls, v):
        return v or []


class UniprotComments(PayloadModel):
    """The ``comments`` section of a UniProtKB entry."""
    primary_accession: Optional[str] = Field(default=None, alias="primaryAccession")
    comments: Optional[List[UniprotComment]] = None

    @property
    def function_text(self) -> Optional[str]:
        """First text of the first FUNCTION comment."""
        for comment in self.comments or []:
            if comment.comment_type == "FUNCTION":
                if comment.texts and comment.texts[0].value:
                    return comment.texts[0].value
                return None
        return None


class SearchHit(PayloadModel):
    """One row of an RCSB Search API ``result_set``."""
    identifier: str
    score: Optional[float] = None


class KnownActiveSite(PayloadModel):
    """A curated active-site description for a well-studied entry."""
    active_site: str
    binding_site: str
    catalytic_residues: List[str] = Field(default_factory=list)
    ligands: List[str] = Field(default_factory=list)


def parse_model(model: Type[M], payload: Any) -> Optional[M]:
    """
    Validate ``payload`` as ``model``.

    Returns:
        The model instance, or None when the payload is absent or invalid
    """
    if payload is None:
        return None
    try:
        return model.model_validate(payload)
    except PydanticValidationError as e:
        logger.warning(
            "Discarding invalid %s payload",
            model.__name__,
            extra={"model": model.__name__, "error_count": e.error_count()}
        )
        return None
