"""
Active-site analysis report for a single PDB entry.
"""

import logging
from typing import List, Optional, Union

from ..api.pdb_client import PDBClient
from ..knowledge import KnownActiveSiteStore, get_default_store
from ..models.entities import EntryMetadata, KnownActiveSite, UniprotComments
from .arguments import AnalyzeActiveSiteArgs, validate_arguments

logger = logging.getLogger(__name__)


def format_number(value: Union[int, float]) -> str:
    """Thousands separators, at most three decimals (``34371.26`` -> ``34,371.26``)."""
    if isinstance(value, float) and not value.is_integer():
        return f"{value:,.3f}".rstrip("0").rstrip(".")
    return f"{int(value):,}"


def render_summary(entry: EntryMetadata) -> str:
    info = entry.rcsb_entry_info
    if info is None:
        return ""

    lines = ["Structure Summary:"]
    if info.molecular_weight:
        lines.append(f"Molecular Weight: {format_number(info.molecular_weight)} Da")
    if info.deposited_polymer_monomer_count:
        lines.append(f"Residue Count: {format_number(info.deposited_polymer_monomer_count)}")
    if info.deposited_atom_count:
        lines.append(f"Atom Count: {format_number(info.deposited_atom_count)}")
    if info.polymer_entity_count_protein:
        lines.append(f"Protein Chains: {info.polymer_entity_count_protein}")
    if info.ligand_count:
        lines.append(f"Ligand Count: {info.ligand_count}")
    return "\n".join(lines) + "\n\n"


def render_known_site(site: KnownActiveSite) -> str:
    text = "Binding Site Information:\n"
    text += "Site 1 (Active site):\n"
    text += f"Description: {site.active_site}\n"
    text += "Evidence: Experimental and computational evidence\n"
    text += f"Additional details: {site.binding_site}\n\n"

    text += "Residues in catalytic site:\n"
    for residue in site.catalytic_residues:
        text += f"- {residue}\n"
    return text + "\n"


def render_struct_sites(entry: EntryMetadata) -> str:
    text = "Binding Site Information:\n"
    for index, site in enumerate(entry.pdbx_struct_site, start=1):
        label = site.id or site.rcsb_id or str(index)
        text += f"Site {index} ({label}):\n"
        if site.details:
            text += f"Description: {site.details}\n"
        if site.pdbx_evidence_code:
            text += f"Evidence: {site.pdbx_evidence_code}\n"
        if site.pdbx_site_details:
            text += f"Additional details: {site.pdbx_site_details}\n"
        text += "\n"
    return text


def render_ligands(ligands: List[str]) -> str:
    return "Ligands:\n" + "".join(f"- {ligand}\n" for ligand in ligands) + "\n"


def entry_ligands(entry: EntryMetadata) -> List[str]:
    ligands = []
    for ligand in entry.nonpolymer_entities:
        comp_id, name = ligand.comp_id, ligand.display_name
        if comp_id and name:
            ligands.append(f"{comp_id}: {name}")
        elif comp_id or name:
            ligands.append(comp_id or name)
    return ligands


def render_uniprot_function(accession: str, uniprot: UniprotComments) -> str:
    text = f"\nProtein Function (from UniProt {accession}):\n"
    if uniprot.comments is None:
        text += "Function information not available."
    else:
        text += uniprot.function_text or "No function information available in UniProt."
    return text + "\n\n"


def render_report(
    pdb_id: str,
    entry: EntryMetadata,
    known_site: Optional[KnownActiveSite],
    uniprot: Optional[UniprotComments],
    structure_url: str
) -> str:
    """
    Render the plain-text active-site report.

    Binding sites and ligands come from the curated record when there is
    one, otherwise from the entry payload itself.
    """
    text = f"Analysis of {pdb_id}: {entry.display_title}\n\n"
    text += render_summary(entry)

    if known_site is not None:
        text += render_known_site(known_site)
    elif entry.pdbx_struct_site:
        text += render_struct_sites(entry)
    else:
        text += "No binding site information available in the structure data.\n\n"
        text += (
            "Note: Detailed information about binding sites may be obtained "
            "by searching for this structure in the PDB database.\n\n"
        )

    ligands = known_site.ligands if known_site and known_site.ligands else entry_ligands(entry)
    if ligands:
        text += render_ligands(ligands)
    else:
        text += "No ligand information available.\n\n"

    if uniprot is not None and entry.uniprot_ids:
        text += render_uniprot_function(entry.uniprot_ids[0], uniprot)

    text += f"View this structure in 3D: {structure_url}"
    return text


async def analyze_active_site(
    pdb_id: str,
    client: Optional[PDBClient] = None,
    store: Optional[KnownActiveSiteStore] = None
) -> str:
    """
    Analyze the active site of a protein structure.

    Args:
        pdb_id: PDB identifier, case-insensitive
        client: PDB client, a default one if not provided
        store: Curated active-site data, the packaged data if not provided

    Returns:
        The report text, or a failure message when the entry cannot be found

    Raises:
        ValidationError: If ``pdb_id`` is not a 4-character identifier
    """
    args = validate_arguments(AnalyzeActiveSiteArgs, pdb_id=pdb_id)
    pdb_id = args.pdb_id
    client = client or PDBClient()
    store = store if store is not None else get_default_store()

    logger.info("Processing analyze-active-site request", extra={"pdb_id": pdb_id})

    entry = await client.get_entry_graphql(pdb_id)
    if entry is None:
        logger.info("GraphQL lookup failed, using REST entry", extra={"pdb_id": pdb_id})
        entry = await client.get_entry(pdb_id)

    if entry is None:
        return (
            f"Failed to retrieve structure data for PDB ID: {pdb_id}. "
            "Please verify this is a valid PDB ID."
        )

    uniprot = None
    if entry.uniprot_ids:
        uniprot = await client.get_uniprot_entry(entry.uniprot_ids[0])

    return render_report(pdb_id, entry, store.get(pdb_id), uniprot, client.structure_url(pdb_id))
