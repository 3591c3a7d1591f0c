"""Protein digestion for candidate peptide generation.

In silico digestion of protein sequences with support for:
- Any registered enzyme (C- or N-terminal cleavage rules)
- Trypsin proline blocking (no cleavage before P)
- Missed cleavages
- Non-specific digestion for enzymes without residue specificity
- Peptide length filtering
- Non-standard amino acid filtering

Performance
-----------
~1000-5000 proteins/second on modern CPU
"""

import logging
from collections import defaultdict
from typing import Dict, List, Tuple

from ..constants import AA_MASSES_DICT
from ..enzyme import TRYPSIN, Enzyme

logger = logging.getLogger(__name__)


def find_cleavage_sites(sequence: str, enzyme: Enzyme) -> List[int]:
    """Positions after which the enzyme cuts.

    Returns
    -------
    cleavage_sites : List[int]
        Sorted positions, starting with -1 (before the first residue) and
        ending with len(sequence) - 1 (protein C-terminus)

    Examples
    --------
    >>> find_cleavage_sites("PEPKTIDERP", TRYPSIN)
    [-1, 3, 9]
    """
    block_proline = enzyme.name == TRYPSIN.name
    cleavage_sites = [-1]
    for i, aa in enumerate(sequence[:-1]):
        if enzyme.is_n_term:
            # Cut before a cleavable residue
            if enzyme.is_cleavable(sequence[i + 1]):
                cleavage_sites.append(i)
        elif enzyme.is_cleavable(aa):
            if block_proline and sequence[i + 1] == 'P':
                continue
            cleavage_sites.append(i)
    cleavage_sites.append(len(sequence) - 1)
    return cleavage_sites


def digest_protein(
    sequence: str,
    enzyme: Enzyme = TRYPSIN,
    min_length: int = 7,
    max_length: int = 35,
    missed_cleavages: int = 2,
) -> List[str]:
    """Digest a single protein.

    Parameters
    ----------
    sequence : str
        Protein sequence
    enzyme : Enzyme
        Cleavage rule (default: trypsin)
    min_length : int
        Minimum peptide length (default: 7)
    max_length : int
        Maximum peptide length (default: 35)
    missed_cleavages : int
        Number of missed cleavages allowed (default: 2). Ignored for enzymes
        without residue specificity, which digest non-specifically.

    Returns
    -------
    peptides : List[str]
        Peptides from this protein in generation order (may contain repeats)

    Examples
    --------
    >>> digest_protein("PEPTIDEKRPAGEINK", TRYPSIN, min_length=1, missed_cleavages=0)
    ['PEPTIDEK', 'RPAGEINK']
    """
    peptides = []

    if enzyme.residues is None:
        for start in range(len(sequence)):
            for end in range(start + min_length, min(start + max_length, len(sequence)) + 1):
                peptide = sequence[start:end]
                if all(aa in AA_MASSES_DICT for aa in peptide):
                    peptides.append(peptide)
        return peptides

    cleavage_sites = find_cleavage_sites(sequence, enzyme)

    # Generate peptides with 0 to N missed cleavages
    for mc in range(missed_cleavages + 1):
        for i in range(len(cleavage_sites) - mc - 1):
            start = cleavage_sites[i] + 1
            end = cleavage_sites[i + mc + 1] + 1

            peptide = sequence[start:end]

            if min_length <= len(peptide) <= max_length:
                if all(aa in AA_MASSES_DICT for aa in peptide):
                    peptides.append(peptide)

    return peptides


def digest_protein_list(
    proteins: List[Tuple[str, str]],
    enzyme: Enzyme = TRYPSIN,
    min_length: int = 7,
    max_length: int = 35,
    missed_cleavages: int = 2,
) -> Tuple[List[str], Dict[int, List[str]]]:
    """Digest proteins and build peptide-to-protein mapping.

    Parameters
    ----------
    proteins : List[Tuple[str, str]]
        (protein_id, sequence) pairs
    enzyme : Enzyme
        Cleavage rule
    min_length, max_length, missed_cleavages
        See ``digest_protein``

    Returns
    -------
    unique_peptides : List[str]
        Unique peptide sequences in first-seen order
    peptide_to_proteins : Dict[int, List[str]]
        Index-based mapping: peptide_idx -> list of protein IDs
    """
    logger.info(f"Digesting {len(proteins):,} proteins with {enzyme.description or enzyme.name}...")

    seq_to_proteins = defaultdict(list)
    total_peptides_generated = 0

    for protein_id, sequence in proteins:
        peptides = digest_protein(sequence, enzyme, min_length, max_length, missed_cleavages)
        for peptide in dict.fromkeys(peptides):
            seq_to_proteins[peptide].append(protein_id)
        total_peptides_generated += len(peptides)

    unique_peptides = list(seq_to_proteins.keys())
    peptide_to_proteins = {
        i: seq_to_proteins[peptide]
        for i, peptide in enumerate(unique_peptides)
    }

    logger.info(
        f"✓ Digestion complete: {total_peptides_generated:,} peptides, "
        f"{len(unique_peptides):,} unique"
    )
    return unique_peptides, peptide_to_proteins
