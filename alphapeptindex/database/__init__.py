"""Candidate peptide generation by in-silico digestion."""

from .digestion import (
    digest_protein,
    digest_protein_list,
    find_cleavage_sites,
)

__all__ = [
    'digest_protein',
    'digest_protein_list',
    'find_cleavage_sites',
]
