"""Target-decoy FDR and q-value estimation (pure NumPy/Numba).

Turns two independent score populations, target and decoy, into a monotonic
score -> q-value map at PSM level and at peptide level, and answers q-value
and score-threshold queries against those maps.

Key Features
------------
- Separate target and decoy searches (no target-decoy competition)
- Both score directions (higher-is-better and lower-is-better)
- Tie-aware: tied decoy scores form a single threshold, tied targets are
  never counted as better than the decoy threshold
- FDR = round(n_decoys_better * pit) / n_targets_better (Käll et al., JPR 2008)
- Q-values are the running minimum of FDR from the worst score upwards

Map layout
----------
A map is an ``FDRMap`` of two arrays sorted by ascending score. It always
contains the sentinels -inf and +inf. The best sentinel maps to 0, the worst
to 1 (or to 0 when there are no decoys at all).

Examples
--------
>>> import numpy as np
>>> from alphapeptindex.scoring import get_fdr_map, lookup_qvalues
>>>
>>> fdr_map = get_fdr_map(np.array([10.0, 9.0, 8.0, 7.0, 6.0]), np.array([9.0, 7.0, 5.0]))
>>> fdr_map.scores
array([-inf,   5.,   7.,   9.,  inf])
>>> lookup_qvalues(fdr_map, np.array([8.0]), is_greater_better=True)
array([0.33333333])
"""

from __future__ import annotations

import logging
from typing import NamedTuple, Optional

import numpy as np
from numba import njit

from ..config import check_range
from ..constants import DEFAULT_PIT
from .psm_set import PSMSet, get_peptide_from_annotation

logger = logging.getLogger(__name__)


class FDRMap(NamedTuple):
    """Score -> q-value map.

    Attributes
    ----------
    scores : np.ndarray (float64)
        Threshold scores, ascending, including -inf and +inf
    qvalues : np.ndarray (float64)
        Q-value at each threshold score
    """
    scores: np.ndarray
    qvalues: np.ndarray


@njit(cache=True)
def _calculate_fdr_map_core(
    target_scores: np.ndarray,
    decoy_scores: np.ndarray,
    is_greater_better: bool,
    pit: float,
) -> tuple:
    """Empirical FDR at every distinct decoy score.

    Parameters
    ----------
    target_scores : np.ndarray
        Target scores sorted best first
    decoy_scores : np.ndarray
        Decoy scores sorted best first
    is_greater_better : bool
        Score direction
    pit : float
        Portion of incorrect target PSMs

    Returns
    -------
    scores : np.ndarray
        Distinct decoy scores, best first
    fdrs : np.ndarray
        FDR at each decoy score

    Notes
    -----
    At decoy position i (0-based, i.e. i decoys are strictly better), the
    target cursor counts targets strictly better than the decoy score:
        FDR = round(i * pit) / n_targets   if n_targets > i
        FDR = 1                            otherwise
    Accumulation stops at the first FDR of 1.
    """
    n_targets = len(target_scores)
    n_decoys = len(decoy_scores)
    scores = np.empty(n_decoys, dtype=np.float64)
    fdrs = np.empty(n_decoys, dtype=np.float64)
    n_entries = 0

    target_index = 0
    # A leading -inf decoy never forms a threshold
    prev_decoy_score = -np.inf

    for decoy_index in range(n_decoys):
        decoy_score = decoy_scores[decoy_index]
        if decoy_score == prev_decoy_score:
            continue
        prev_decoy_score = decoy_score

        if is_greater_better:
            while target_index < n_targets and target_scores[target_index] > decoy_score:
                target_index += 1
        else:
            while target_index < n_targets and target_scores[target_index] < decoy_score:
                target_index += 1

        if target_index > 0:
            if target_index <= decoy_index:
                fdr = 1.0
            else:
                fdr = np.floor(decoy_index * pit + 0.5) / target_index

            if fdr > 1.0:
                fdr = 1.0

            scores[n_entries] = decoy_score
            fdrs[n_entries] = fdr
            n_entries += 1
            if fdr >= 1.0:
                break

    return scores[:n_entries], fdrs[:n_entries]


@njit(cache=True)
def _fdr_to_qvalues(fdrs: np.ndarray, is_greater_better: bool) -> np.ndarray:
    """Running minimum of FDR from the worst score towards the best.

    ``fdrs`` is ordered by ascending score.
    """
    n = len(fdrs)
    qvalues = np.empty(n, dtype=np.float64)
    min_fdr = 1.0
    for k in range(n):
        i = k if is_greater_better else n - 1 - k
        fdr = fdrs[i]
        if fdr > min_fdr:
            fdr = min_fdr
        min_fdr = fdr
        qvalues[i] = fdr
    return qvalues


def _sort_best_first(scores: np.ndarray, is_greater_better: bool) -> np.ndarray:
    scores = np.asarray(scores, dtype=np.float64)
    nan_mask = np.isnan(scores)
    if nan_mask.any():
        logger.warning(f"Ignoring {int(nan_mask.sum()):,} NaN scores")
        scores = scores[~nan_mask]
    scores = np.sort(scores)
    if is_greater_better:
        scores = scores[::-1]
    return np.ascontiguousarray(scores)


def get_fdr_map(
    target_scores: np.ndarray,
    decoy_scores: np.ndarray,
    is_greater_better: bool = True,
    pit: float = DEFAULT_PIT,
) -> FDRMap:
    """Build a score -> q-value map from target and decoy scores.

    Parameters
    ----------
    target_scores : np.ndarray
        Target scores (any order)
    decoy_scores : np.ndarray
        Decoy scores (any order)
    is_greater_better : bool, default=True
        Score direction
    pit : float, default=1.0
        Portion of incorrect target PSMs

    Returns
    -------
    FDRMap
        Ascending scores with their q-values

    Examples
    --------
    >>> fdr_map = get_fdr_map(np.array([10.0, 9.0]), np.array([]))
    >>> fdr_map.qvalues
    array([0., 0.])
    """
    target_sorted = _sort_best_first(target_scores, is_greater_better)
    decoy_sorted = _sort_best_first(decoy_scores, is_greater_better)

    decoy_thresholds, fdrs = _calculate_fdr_map_core(
        target_sorted, decoy_sorted, is_greater_better, float(pit)
    )

    best, worst = (np.inf, -np.inf) if is_greater_better else (-np.inf, np.inf)
    fdr_map = {best: 0.0, worst: 1.0}
    for score, fdr in zip(decoy_thresholds.tolist(), fdrs.tolist()):
        fdr_map[score] = fdr

    if len(decoy_sorted) == 0:
        logger.warning("No decoy scores: every q-value is 0")
        fdr_map[worst] = 0.0

    scores = np.array(sorted(fdr_map), dtype=np.float64)
    fdr_values = np.array([fdr_map[score] for score in scores.tolist()], dtype=np.float64)
    return FDRMap(scores, _fdr_to_qvalues(fdr_values, is_greater_better))


def lookup_qvalues(
    fdr_map: FDRMap,
    scores: np.ndarray,
    is_greater_better: bool,
) -> np.ndarray:
    """Q-values of scores.

    A score takes the q-value of the nearest threshold on its worse side:
    the greatest map score strictly below it when higher is better, the
    smallest map score strictly above it otherwise.

    Raises
    ------
    ValueError
        If a score is NaN or has no threshold on its worse side
    """
    scores = np.atleast_1d(np.asarray(scores, dtype=np.float64))
    if np.isnan(scores).any():
        raise ValueError("Cannot look up the q-value of a NaN score")

    if is_greater_better:
        idx = np.searchsorted(fdr_map.scores, scores, side='left') - 1
        invalid = idx < 0
    else:
        idx = np.searchsorted(fdr_map.scores, scores, side='right')
        invalid = idx >= len(fdr_map.scores)

    if invalid.any():
        raise ValueError(f"No q-value threshold below score {scores[invalid][0]}")
    return fdr_map.qvalues[idx]


def get_threshold_score(
    fdr_map: FDRMap,
    fdr_threshold: float,
    is_greater_better: bool,
) -> float:
    """Loosest score threshold whose q-value is at most ``fdr_threshold``.

    Scans the map from the best score to the worst and stops at the first
    q-value above the cutoff. Scores strictly better than the returned
    threshold pass the cutoff.

    Returns
    -------
    float
        Threshold score; +inf (higher is better) or -inf (lower is better)
        if no threshold qualifies
    """
    if is_greater_better:
        threshold = np.inf
        order = range(len(fdr_map.scores) - 1, -1, -1)
    else:
        threshold = -np.inf
        order = range(len(fdr_map.scores))

    for i in order:
        if fdr_map.qvalues[i] > fdr_threshold:
            break
        threshold = float(fdr_map.scores[i])
    return threshold


class TargetDecoyAnalysis:
    """PSM-level and peptide-level q-values from separate target and decoy searches.

    The maps are computed on construction and are read-only afterwards, so
    queries are safe from several threads.

    Attributes
    ----------
    target : PSMSet
    decoy : PSMSet
    is_greater_better : bool
    pit : float
        Portion of incorrect target PSMs
    psm_level_fdr_map : FDRMap
    pep_level_fdr_map : FDRMap

    Examples
    --------
    >>> analysis = TargetDecoyAnalysis(target_set, decoy_set)
    >>> threshold = analysis.get_threshold_score(0.01)
    >>> analysis.get_pep_qvalue("PEPTIDE")
    """

    def __init__(self, target: PSMSet, decoy: PSMSet, pit: float = DEFAULT_PIT):
        if target.is_greater_better != decoy.is_greater_better:
            raise ValueError("Target and decoy PSM sets use different score directions")
        check_range("pit", pit, 0.0, 1.0, max_inclusive=True)

        self.target = target
        self.decoy = decoy
        self.is_greater_better = target.is_greater_better
        self.pit = pit

        self.psm_level_fdr_map = get_fdr_map(
            target.psm_scores, decoy.psm_scores, self.is_greater_better, pit
        )
        self.pep_level_fdr_map = get_fdr_map(
            target.pep_scores, decoy.pep_scores, self.is_greater_better, pit
        )

        logger.info(
            f"Target-decoy analysis: {len(target.psm_scores):,} target / "
            f"{len(decoy.psm_scores):,} decoy PSMs, {len(target.pep_scores):,} target / "
            f"{len(decoy.pep_scores):,} decoy peptides"
        )

    def _fdr_map(self, is_peptide_level: bool) -> FDRMap:
        return self.pep_level_fdr_map if is_peptide_level else self.psm_level_fdr_map

    def get_psm_qvalue(self, score: float) -> float:
        return float(lookup_qvalues(self.psm_level_fdr_map, score, self.is_greater_better)[0])

    def get_pep_qvalue_for_score(self, score: float) -> float:
        return float(lookup_qvalues(self.pep_level_fdr_map, score, self.is_greater_better)[0])

    def get_qvalues(self, scores: np.ndarray, is_peptide_level: bool = False) -> np.ndarray:
        """Vectorized q-value lookup."""
        return lookup_qvalues(self._fdr_map(is_peptide_level), scores, self.is_greater_better)

    def get_pep_qvalue(self, peptide: str) -> Optional[float]:
        """Peptide-level q-value of a peptide, or None if it was never matched.

        The target population is consulted before the decoy population.
        """
        score = self.target.get_peptide_score(peptide)
        if score is None:
            score = self.decoy.get_peptide_score(peptide)
            if score is None:
                return None
        return self.get_pep_qvalue_for_score(score)

    def get_pep_qvalue_from_annotation(self, annotation: str) -> Optional[float]:
        """Like ``get_pep_qvalue`` for an annotation such as 'K.PEPTIDE.R'."""
        return self.get_pep_qvalue(get_peptide_from_annotation(annotation))

    def get_threshold_score(self, fdr_threshold: float, is_peptide_level: bool = False) -> float:
        """Score threshold for an FDR cutoff; see ``get_threshold_score``."""
        return get_threshold_score(
            self._fdr_map(is_peptide_level), fdr_threshold, self.is_greater_better
        )

    def count_identifications(self, fdr_threshold: float, is_peptide_level: bool = False) -> int:
        """Number of target PSMs (or peptides) with q-value at most ``fdr_threshold``."""
        scores = self.target.pep_scores if is_peptide_level else self.target.psm_scores
        scores = scores[~np.isnan(scores)]
        if len(scores) == 0:
            return 0
        qvalues = self.get_qvalues(scores, is_peptide_level)
        return int(np.sum(qvalues <= fdr_threshold))
