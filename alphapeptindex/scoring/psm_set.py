"""Target or decoy score collections for FDR estimation.

A ``PSMSet`` holds one population (target or decoy) of peptide-spectrum
matches: the match-level scores and the best score of every distinct peptide.
Peptides are compared without flanking residues and modification markup, so
'K.PEPM+15.995TIDE.R' and 'PEPMTIDE' are the same peptide.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple, Union

import numpy as np


def get_peptide_from_annotation(annotation: str) -> str:
    """Unmodified peptide sequence of an annotation.

    Examples
    --------
    >>> get_peptide_from_annotation("K.PEPM+15.995TIDE.R")
    'PEPMTIDE'
    >>> get_peptide_from_annotation("-.ACDEFGK.-")
    'ACDEFGK'
    >>> get_peptide_from_annotation("PEPTIDE")
    'PEPTIDE'
    """
    if len(annotation) >= 4 and annotation[1] == '.' and annotation[-2] == '.':
        annotation = annotation[2:-2]
    return ''.join(c for c in annotation if 'A' <= c <= 'Z')


@dataclass(frozen=True)
class PSM:
    """One peptide-spectrum match.

    Attributes
    ----------
    spec_id : int or str
        Spectrum identifier
    peptide : str
        Peptide annotation (flanking residues and modifications allowed)
    score : float
    """

    spec_id: Union[int, str]
    peptide: str
    score: float


class PSMSet:
    """Scores of one PSM population.

    Attributes
    ----------
    is_greater_better : bool
        Score direction
    psm_scores : np.ndarray (float64)
        Match-level scores
    pep_scores : np.ndarray (float64)
        Best score of every distinct peptide
    peptide_score_table : Dict[str, float]
        Peptide -> best score

    Examples
    --------
    >>> target = PSMSet([PSM(0, "K.PEPTIDE.R", 12.0), PSM(1, "PEPTIDE", 10.0)])
    >>> target.peptide_score_table
    {'PEPTIDE': 12.0}
    """

    def __init__(self, psms: Iterable[PSM] = (), is_greater_better: bool = True):
        self.is_greater_better = is_greater_better
        self.psms: List[PSM] = list(psms)

        self.psm_scores = np.array([psm.score for psm in self.psms], dtype=np.float64)
        self.peptide_score_table = self._best_per_peptide(
            (psm.peptide, psm.score) for psm in self.psms
        )
        self.pep_scores = np.array(list(self.peptide_score_table.values()), dtype=np.float64)

    @classmethod
    def from_scores(
        cls,
        psm_scores: Iterable[float],
        peptide_scores: Dict[str, float],
        is_greater_better: bool = True,
    ) -> PSMSet:
        """Build from already aggregated scores.

        Parameters
        ----------
        psm_scores : Iterable[float]
            Match-level scores
        peptide_scores : Dict[str, float]
            Best score per peptide
        """
        psm_set = cls((), is_greater_better)
        psm_set.psm_scores = np.asarray(list(psm_scores), dtype=np.float64)
        psm_set.peptide_score_table = psm_set._best_per_peptide(peptide_scores.items())
        psm_set.pep_scores = np.array(list(psm_set.peptide_score_table.values()), dtype=np.float64)
        return psm_set

    def _best_per_peptide(self, annotated_scores: Iterable[Tuple[str, float]]) -> Dict[str, float]:
        """Best score of every normalized peptide; NaN scores are ignored."""
        table: Dict[str, float] = {}
        for annotation, score in annotated_scores:
            score = float(score)
            if np.isnan(score):
                continue
            peptide = get_peptide_from_annotation(annotation)
            best = table.get(peptide)
            if best is None or self.is_better(score, best):
                table[peptide] = score
        return table

    def is_better(self, score: float, other: float) -> bool:
        """True if ``score`` is strictly better than ``other``."""
        if self.is_greater_better:
            return score > other
        return score < other

    def get_peptide_score(self, peptide: str) -> Optional[float]:
        return self.peptide_score_table.get(get_peptide_from_annotation(peptide))

    def __len__(self) -> int:
        return len(self.psm_scores)

    def __repr__(self) -> str:
        return (
            f"PSMSet(n_psms={len(self.psm_scores):,}, n_peptides={len(self.pep_scores):,}, "
            f"is_greater_better={self.is_greater_better})"
        )
