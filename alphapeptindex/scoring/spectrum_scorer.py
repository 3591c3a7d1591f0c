"""Scoring models that turn a spectrum into a scored spectrum.

A scoring model ("scorer") is selected by activation method, instrument type
and enzyme. It converts a spectrum into a scored spectrum: per nominal mass
node scores that a database scorer sums over the cleavage sites of a
candidate peptide.

The rank-based model below is the reference implementation used by the
spectrum index. Each peak votes for a b-ion prefix node and a y-ion suffix
node at its nominal mass, weighted by its intensity rank:

    node_score = max(0, round(log2(n_peaks / rank)))

Models for CID and ETD spectra also provide edge scores (consecutive cleavage
sites both supported by evidence); the HCD model does not.

Examples
--------
>>> provider = ScorerProvider()
>>> scorer = provider.get(ActivationMethod.CID, InstrumentType.ORBITRAP, TRYPSIN)
>>> scored = scorer.get_scored_spectrum(spectrum)
>>> prefix_table, suffix_table = scored.node_score_tables(1500)
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Dict, List, Optional, Protocol, Sequence, Tuple

import numpy as np
from numba import njit

from ..constants import H2O_MASS, PROTON_MASS
from ..enzyme import Enzyme
from ..mass import to_nominal_mass
from ..spectrum import ActivationMethod, InstrumentType, Spectrum

EDGE_SCORE_ACTIVATIONS = frozenset({ActivationMethod.CID, ActivationMethod.ETD, ActivationMethod.ECD})


@dataclass(frozen=True)
class SpecDataType:
    """Selects a scoring model."""
    activation_method: Optional[ActivationMethod]
    instrument_type: InstrumentType
    enzyme: Enzyme


class ScoredSpectrum(Protocol):
    """Scored spectrum capability consumed by the database scorers."""

    precursor_mass: float
    charge: int

    def node_score_tables(self, max_nominal_mass: int) -> Tuple[np.ndarray, np.ndarray]:
        ...


@njit(cache=True)
def _rank_node_scores(
    fragment_nominal_masses: np.ndarray,
    ranks: np.ndarray,
    n_peaks: int,
    size: int,
) -> np.ndarray:
    """Best rank score per nominal mass node."""
    scores = np.zeros(size, dtype=np.int32)
    for i in range(len(fragment_nominal_masses)):
        node = fragment_nominal_masses[i]
        if node < 0 or node >= size:
            continue
        score = int(np.floor(np.log2(n_peaks / ranks[i]) + 0.5))
        if score > scores[node]:
            scores[node] = score
    return scores


class RankScoredSpectrum:
    """Spectrum scored by intensity rank.

    Attributes
    ----------
    precursor_mass : float
        Neutral precursor mass (M)
    charge : int
        Precursor charge
    activation_method : ActivationMethod, optional
    prefix_scores : np.ndarray (int32)
        Node scores indexed by nominal prefix residue mass (b-ion evidence)
    suffix_scores : np.ndarray (int32)
        Node scores indexed by nominal suffix residue mass (y-ion evidence)
    """

    def __init__(self, spectrum: Spectrum, activation_method: Optional[ActivationMethod] = None):
        self.precursor_mass = spectrum.parent_mass
        self.charge = spectrum.charge
        self.activation_method = activation_method or spectrum.activation_method
        self.scan_num = spectrum.scan_num

        size = to_nominal_mass(self.precursor_mass) + 1
        n_peaks = len(spectrum)
        if n_peaks == 0 or size <= 0:
            self.prefix_scores = np.zeros(max(size, 0), dtype=np.int32)
            self.suffix_scores = np.zeros(max(size, 0), dtype=np.int32)
            return

        # Rank 1 = most intense peak
        order = np.argsort(-spectrum.intensity, kind="stable")
        ranks = np.empty(n_peaks, dtype=np.float64)
        ranks[order] = np.arange(1, n_peaks + 1, dtype=np.float64)

        prefix_nominal = np.array(
            [to_nominal_mass(mz - PROTON_MASS) for mz in spectrum.mz], dtype=np.int64
        )
        suffix_nominal = np.array(
            [to_nominal_mass(mz - PROTON_MASS - H2O_MASS) for mz in spectrum.mz], dtype=np.int64
        )
        self.prefix_scores = _rank_node_scores(prefix_nominal, ranks, n_peaks, size)
        self.suffix_scores = _rank_node_scores(suffix_nominal, ranks, n_peaks, size)

    def node_score_tables(self, max_nominal_mass: int) -> Tuple[np.ndarray, np.ndarray]:
        """Prefix and suffix node scores for nominal masses 0..max_nominal_mass."""
        return (
            _resize_table(self.prefix_scores, max_nominal_mass + 1),
            _resize_table(self.suffix_scores, max_nominal_mass + 1),
        )


class ScoredSpectrumSum:
    """Several scored spectra of one precursor scored as a unit.

    Node scores are summed; the precursor is taken from the first spectrum.
    """

    def __init__(self, scored_spectra: Sequence[ScoredSpectrum]):
        if len(scored_spectra) == 0:
            raise ValueError("ScoredSpectrumSum needs at least one scored spectrum")
        self.scored_spectra = list(scored_spectra)
        self.precursor_mass = self.scored_spectra[0].precursor_mass
        self.charge = self.scored_spectra[0].charge

    def node_score_tables(self, max_nominal_mass: int) -> Tuple[np.ndarray, np.ndarray]:
        prefix_total = np.zeros(max_nominal_mass + 1, dtype=np.int32)
        suffix_total = np.zeros(max_nominal_mass + 1, dtype=np.int32)
        for scored_spec in self.scored_spectra:
            prefix, suffix = scored_spec.node_score_tables(max_nominal_mass)
            prefix_total += prefix
            suffix_total += suffix
        return prefix_total, suffix_total

    def __len__(self) -> int:
        return len(self.scored_spectra)


def _resize_table(table: np.ndarray, size: int) -> np.ndarray:
    resized = np.zeros(size, dtype=np.int32)
    n = min(size, len(table))
    resized[:n] = table[:n]
    return resized


class RankScorer:
    """Rank-based scoring model for one spectrum data type."""

    def __init__(
        self,
        activation_method: Optional[ActivationMethod],
        instrument_type: InstrumentType,
        enzyme: Enzyme,
    ):
        self.activation_method = activation_method
        self.instrument_type = instrument_type
        self.enzyme = enzyme

    @property
    def supports_edge_scores(self) -> bool:
        """True if the model provides edge scores between cleavage sites."""
        return self.activation_method in EDGE_SCORE_ACTIVATIONS

    def get_scored_spectrum(self, spectrum: Spectrum) -> RankScoredSpectrum:
        return RankScoredSpectrum(spectrum, self.activation_method)

    def __repr__(self) -> str:
        method = self.activation_method.name if self.activation_method else None
        return (
            f"RankScorer(activation={method}, instrument={self.instrument_type.name}, "
            f"enzyme={self.enzyme.name})"
        )


class ScorerProvider:
    """Hands out one cached scorer per (activation, instrument, enzyme).

    Safe to call from several index workers at once.
    """

    def __init__(self, scorer_class=RankScorer):
        self._scorer_class = scorer_class
        self._scorers: Dict[SpecDataType, RankScorer] = {}
        self._lock = threading.Lock()

    def get(
        self,
        activation_method: Optional[ActivationMethod],
        instrument_type: InstrumentType,
        enzyme: Enzyme,
    ) -> RankScorer:
        key = SpecDataType(activation_method, instrument_type, enzyme)
        with self._lock:
            scorer = self._scorers.get(key)
            if scorer is None:
                scorer = self._scorer_class(activation_method, instrument_type, enzyme)
                self._scorers[key] = scorer
        return scorer

    def cached_scorers(self) -> List[RankScorer]:
        with self._lock:
            return list(self._scorers.values())
