"""Database search scorers: score a candidate peptide against one spectrum.

Two variants are selected once per spectrum when the spectrum index is built:

- ``FastScorer``: sums prefix and suffix node scores over the cleavage sites
  of a candidate.
- ``DBScanScorer``: additionally adds edge scores between consecutive
  cleavage sites, for scoring models that support them.

The search loop only depends on ``DBSearchScorer``.

Candidates are given as cumulative nominal residue masses (prefix masses);
the last prefix mass is the nominal mass of the whole peptide.

Examples
--------
>>> scorer = FastScorer(scored_spectrum, max_nominal_peptide_mass=1200)
>>> prefix_masses = np.cumsum([97, 129, 97, 101, 113, 115, 129])
>>> scorer.score(prefix_masses, 0, len(prefix_masses) - 1)
"""

from __future__ import annotations

from abc import ABC, abstractmethod

import numpy as np
from numba import njit

from .spectrum_scorer import ScoredSpectrum


@njit(cache=True)
def _sum_node_scores(
    prefix_table: np.ndarray,
    suffix_table: np.ndarray,
    prefix_masses: np.ndarray,
    from_index: int,
    to_index: int,
) -> int:
    """Sum of node scores over cleavage sites from_index..to_index-1."""
    n_nodes = len(prefix_table)
    peptide_mass = prefix_masses[len(prefix_masses) - 1]
    total = 0
    for i in range(from_index, to_index):
        prefix = prefix_masses[i]
        suffix = peptide_mass - prefix
        if 0 <= prefix < n_nodes:
            total += prefix_table[prefix]
        if 0 <= suffix < n_nodes:
            total += suffix_table[suffix]
    return total


@njit(cache=True)
def _sum_edge_scores(
    prefix_table: np.ndarray,
    suffix_table: np.ndarray,
    prefix_masses: np.ndarray,
    from_index: int,
    to_index: int,
) -> int:
    """Number of consecutive cleavage-site pairs that both carry evidence."""
    n_nodes = len(prefix_table)
    peptide_mass = prefix_masses[len(prefix_masses) - 1]
    total = 0
    prev_supported = False
    for i in range(from_index, to_index):
        prefix = prefix_masses[i]
        suffix = peptide_mass - prefix
        supported = False
        if 0 <= prefix < n_nodes and prefix_table[prefix] > 0:
            supported = True
        if 0 <= suffix < n_nodes and suffix_table[suffix] > 0:
            supported = True
        if supported and prev_supported:
            total += 1
        prev_supported = supported
    return total


class DBSearchScorer(ABC):
    """Scores candidates of nominal mass up to ``max_nominal_peptide_mass``.

    Attributes
    ----------
    scored_spectrum : ScoredSpectrum
    max_nominal_peptide_mass : int
    precursor_mass : float
    charge : int
    """

    def __init__(self, scored_spectrum: ScoredSpectrum, max_nominal_peptide_mass: int):
        self.scored_spectrum = scored_spectrum
        self.max_nominal_peptide_mass = max_nominal_peptide_mass
        self.precursor_mass = scored_spectrum.precursor_mass
        self.charge = scored_spectrum.charge
        self.prefix_table, self.suffix_table = scored_spectrum.node_score_tables(
            max(max_nominal_peptide_mass, 0)
        )

    @abstractmethod
    def score(self, prefix_masses: np.ndarray, from_index: int, to_index: int) -> int:
        """Score of a candidate over cleavage sites from_index..to_index-1.

        Parameters
        ----------
        prefix_masses : np.ndarray (int64)
            Cumulative nominal residue masses of the candidate
        from_index : int
            First cleavage site (inclusive)
        to_index : int
            Last cleavage site (exclusive)
        """

    def _check(self, prefix_masses: np.ndarray) -> np.ndarray:
        prefix_masses = np.asarray(prefix_masses, dtype=np.int64)
        if len(prefix_masses) == 0:
            raise ValueError("Candidate has no residues")
        return prefix_masses


class FastScorer(DBSearchScorer):
    """Node scores only."""

    def score(self, prefix_masses: np.ndarray, from_index: int, to_index: int) -> int:
        prefix_masses = self._check(prefix_masses)
        return int(_sum_node_scores(
            self.prefix_table, self.suffix_table, prefix_masses, from_index, to_index
        ))


class DBScanScorer(FastScorer):
    """Node scores plus edge scores between consecutive cleavage sites."""

    def score(self, prefix_masses: np.ndarray, from_index: int, to_index: int) -> int:
        prefix_masses = self._check(prefix_masses)
        node_score = _sum_node_scores(
            self.prefix_table, self.suffix_table, prefix_masses, from_index, to_index
        )
        edge_score = _sum_edge_scores(
            self.prefix_table, self.suffix_table, prefix_masses, from_index, to_index
        )
        return int(node_score + edge_score)
