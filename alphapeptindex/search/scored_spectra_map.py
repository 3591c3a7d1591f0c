"""Mass-indexed map of scored spectra for database search.

Core data structure of the search stage. Before the database is scanned, every
spectrum of a batch is scored once and registered under its peptide mass
(precursor mass minus water). The search loop then asks, for each candidate
peptide mass, which spectra are mass-compatible and scores the candidate
against each of them.

Design principles:
1. No lost entries: equal masses are moved to the next representable float
2. Isotope errors: up to two extra keys at -1 and -2 C13 spacings
3. Thread-safe insertion (parallel construction, one lock per map)
4. Numba-accelerated range search on a sorted snapshot of the mass keys

Because colliding masses are nudged to neighboring floats, lookups must scan a
mass window (``get_spec_keys_in_range``), never probe a single key.

Examples
--------
>>> params = SearchParams(left_tolerance=Tolerance(0.5), right_tolerance=Tolerance(0.5))
>>> index = ScoredSpectraMap(accessor, params)
>>> index.preprocess_spectra([SpecKey(0, 2), SpecKey(1, 3)], num_threads=4)
>>> for spec_key in index.get_candidate_spec_keys(calculate_peptide_mass("PEPTIDEK")):
...     scorer = index.get_scorer(spec_key)
...     score = scorer.score(prefix_masses, 0, len(prefix_masses) - 1)
"""

import logging
import os
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Dict, List, NamedTuple, Optional, Sequence, Tuple

import numpy as np
import numba

from ..config import SearchParams
from ..constants import (
    H2O_MASS,
    ISOTOPE_ERROR_TOLERANCE_THRESHOLD,
    ISOTOPE_MASS_DIFFERENCE,
)
from ..mass import max_nominal_peptide_mass
from ..scoring.db_scorers import DBScanScorer, DBSearchScorer, FastScorer
from ..scoring.spectrum_scorer import ScoredSpectrum, ScoredSpectrumSum, ScorerProvider
from ..spectrum import SpecKey, SpectrumAccessor

logger = logging.getLogger(__name__)


# =============================================================================
# Numba-Accelerated Binary Search
# =============================================================================

@numba.jit(nopython=True, cache=True)
def search_mass_range_numba(
    masses: np.ndarray,
    mass_min: float,
    mass_max: float,
) -> Tuple[int, int]:
    """Binary search for the masses in [mass_min, mass_max].

    Parameters
    ----------
    masses : np.ndarray (float64)
        Sorted masses
    mass_min : float
        Lower bound (inclusive)
    mass_max : float
        Upper bound (inclusive)

    Returns
    -------
    start_idx : int
        First index in range (inclusive)
    end_idx : int
        Last index in range (exclusive, Python convention)

    Examples
    --------
    >>> masses = np.array([100.0, 200.0, 200.1, 300.0])
    >>> search_mass_range_numba(masses, 199.5, 200.5)
    (1, 3)
    """
    n = len(masses)
    if n == 0:
        return (0, 0)

    # First mass >= mass_min
    left, right = 0, n
    while left < right:
        mid = (left + right) // 2
        if masses[mid] < mass_min:
            left = mid + 1
        else:
            right = mid
    start_idx = left

    # First mass > mass_max
    left, right = start_idx, n
    while left < right:
        mid = (left + right) // 2
        if masses[mid] <= mass_max:
            left = mid + 1
        else:
            right = mid
    end_idx = left

    return (start_idx, end_idx)


class IndexStats(NamedTuple):
    """Outcome of one preprocessing call.

    Attributes
    ----------
    n_indexed : int
        Spectrum keys registered with a scorer
    n_skipped : int
        Spectrum keys skipped (missing spectra, too few peaks, empty fused groups)
    """
    n_indexed: int
    n_skipped: int


# =============================================================================
# Scored Spectra Map
# =============================================================================

class ScoredSpectraMap:
    """Peptide mass -> spectrum key and spectrum key -> scorer maps.

    Attributes
    ----------
    left_tolerance : Tolerance
        Bounds candidates heavier than the observed peptide mass
    right_tolerance : Tolerance
        Bounds candidates lighter than the observed peptide mass
    max_isotope_errors : int
        Number of isotope-shifted keys registered per spectrum (0, 1 or 2)
    min_num_peaks : int
        Spectra with fewer peaks are skipped
    """

    def __init__(
        self,
        spectrum_accessor: SpectrumAccessor,
        params: SearchParams,
        scorer_provider: Optional[ScorerProvider] = None,
    ):
        self.spectrum_accessor = spectrum_accessor
        self.params = params
        self.scorer_provider = scorer_provider or ScorerProvider()

        self.left_tolerance = params.left_tolerance
        self.right_tolerance = params.right_tolerance
        self.max_isotope_errors = params.max_isotope_errors
        self.min_num_peaks = params.min_num_peaks

        self._pep_mass_spec_key_map: Dict[float, SpecKey] = {}
        self._spec_key_scorer_map: Dict[SpecKey, DBSearchScorer] = {}
        self._mass_lock = threading.Lock()
        self._scorer_lock = threading.Lock()

        # Sorted snapshot of the mass map, rebuilt after inserts
        self._sorted_masses: Optional[np.ndarray] = None
        self._sorted_spec_keys: List[SpecKey] = []

    # -------------------------------------------------------------------------
    # Construction
    # -------------------------------------------------------------------------

    def preprocess_spectra(
        self,
        spec_keys: Sequence[SpecKey],
        num_threads: Optional[int] = None,
    ) -> IndexStats:
        """Score and index a batch of spectrum keys.

        Parameters
        ----------
        spec_keys : Sequence[SpecKey]
            Keys to index; expected unique within the batch
        num_threads : int, optional
            Worker threads (default: ``params.num_threads`` or one per CPU)

        Returns
        -------
        IndexStats
            Number of indexed and skipped keys

        Notes
        -----
        Worker exceptions propagate to the caller; entries added before the
        failure stay in the maps.
        """
        spec_keys = list(spec_keys)
        if num_threads is None:
            num_threads = self.params.num_threads or os.cpu_count() or 1
        num_threads = max(1, min(num_threads, len(spec_keys)))

        if self.params.is_fused:
            worker = self._preprocess_fused_spectra
        else:
            worker = self._preprocess_individual_spectra

        logger.info(
            f"Indexing {len(spec_keys):,} spectrum keys "
            f"({'fused' if self.params.is_fused else 'individual'}, {num_threads} threads)..."
        )

        if num_threads == 1:
            n_indexed, n_skipped = worker(spec_keys)
        else:
            chunks = [
                spec_keys[start:stop]
                for start, stop in _chunk_bounds(len(spec_keys), num_threads)
            ]
            n_indexed = n_skipped = 0
            with ThreadPoolExecutor(max_workers=num_threads) as executor:
                futures = [executor.submit(worker, chunk) for chunk in chunks]
                for future in as_completed(futures):
                    chunk_indexed, chunk_skipped = future.result()
                    n_indexed += chunk_indexed
                    n_skipped += chunk_skipped

        logger.info(
            f"✓ Indexed {n_indexed:,} spectra ({n_skipped:,} skipped), "
            f"{len(self._pep_mass_spec_key_map):,} mass keys"
        )
        return IndexStats(n_indexed, n_skipped)

    def _preprocess_individual_spectra(self, spec_keys: Sequence[SpecKey]) -> Tuple[int, int]:
        params = self.params
        activation_method = params.activation_method

        scorer = None
        if activation_method is not None:
            scorer = self.scorer_provider.get(activation_method, params.instrument_type, params.enzyme)

        n_indexed = n_skipped = 0
        for spec_key in spec_keys:
            spec = self.spectrum_accessor.get_spectrum(spec_key.spec_index)
            if spec is None or len(spec) < self.min_num_peaks:
                logger.debug(
                    f"Spectrum {spec_key} has too few peaks "
                    f"(#Peaks: {0 if spec is None else len(spec)}): ignored."
                )
                n_skipped += 1
                continue

            spec_scorer = scorer
            if spec_scorer is None:
                spec_scorer = self.scorer_provider.get(
                    spec.activation_method, params.instrument_type, params.enzyme
                )

            scored_spec = spec_scorer.get_scored_spectrum(spec.with_charge(spec_key.charge))
            self._register(spec_key, scored_spec, spec_scorer.supports_edge_scores)
            n_indexed += 1

        return n_indexed, n_skipped

    def _preprocess_fused_spectra(self, spec_keys: Sequence[SpecKey]) -> Tuple[int, int]:
        params = self.params

        n_indexed = n_skipped = 0
        for spec_key in spec_keys:
            scored_spec_list = []
            for spec_index in spec_key.constituent_indices():
                spec = self.spectrum_accessor.get_spectrum(spec_index)
                if spec is None or len(spec) < self.min_num_peaks:
                    logger.debug(
                        f"Spectrum {spec_index} of {spec_key} has too few peaks "
                        f"(#Peaks: {0 if spec is None else len(spec)}): ignored."
                    )
                    continue

                scorer = self.scorer_provider.get(
                    spec.activation_method, params.instrument_type, params.enzyme
                )
                scored_spec_list.append(
                    scorer.get_scored_spectrum(spec.with_charge(spec_key.charge))
                )

            if not scored_spec_list:
                n_skipped += 1
                continue

            self._register(spec_key, ScoredSpectrumSum(scored_spec_list), use_edge_scores=False)
            n_indexed += 1

        return n_indexed, n_skipped

    def _register(
        self,
        spec_key: SpecKey,
        scored_spec: ScoredSpectrum,
        use_edge_scores: bool,
    ) -> None:
        peptide_mass = scored_spec.precursor_mass - H2O_MASS
        tol_da_left = self.left_tolerance.to_da(peptide_mass)
        max_nominal_mass = max_nominal_peptide_mass(peptide_mass, tol_da_left)

        if use_edge_scores:
            scorer = DBScanScorer(scored_spec, max_nominal_mass)
        else:
            scorer = FastScorer(scored_spec, max_nominal_mass)
        with self._scorer_lock:
            self._spec_key_scorer_map[spec_key] = scorer

        self._put_mass_key(peptide_mass, spec_key)

        tol_da_right = self.right_tolerance.to_da(peptide_mass)
        if self.max_isotope_errors > 0 and tol_da_right < ISOTOPE_ERROR_TOLERANCE_THRESHOLD:
            for n_isotopes in range(1, self.max_isotope_errors + 1):
                self._put_mass_key(peptide_mass - n_isotopes * ISOTOPE_MASS_DIFFERENCE, spec_key)

    def _put_mass_key(self, mass: float, spec_key: SpecKey) -> float:
        """Insert under the first free float at or above ``mass``; returns the key used."""
        mass_key = float(mass)
        with self._mass_lock:
            while mass_key in self._pep_mass_spec_key_map:
                mass_key = float(np.nextafter(mass_key, np.inf))
            self._pep_mass_spec_key_map[mass_key] = spec_key
            self._sorted_masses = None
        return mass_key

    # -------------------------------------------------------------------------
    # Lookup
    # -------------------------------------------------------------------------

    def _snapshot(self) -> Tuple[np.ndarray, List[SpecKey]]:
        with self._mass_lock:
            if self._sorted_masses is None:
                items = sorted(self._pep_mass_spec_key_map.items())
                self._sorted_masses = np.array([mass for mass, _ in items], dtype=np.float64)
                self._sorted_spec_keys = [spec_key for _, spec_key in items]
            return self._sorted_masses, self._sorted_spec_keys

    def mass_keys(self) -> np.ndarray:
        """All mass keys, sorted ascending."""
        return self._snapshot()[0].copy()

    def spec_keys_by_mass(self) -> List[SpecKey]:
        """Spectrum keys in mass-key order (one per mass key)."""
        return list(self._snapshot()[1])

    def get_spec_keys_in_range(self, min_mass: float, max_mass: float) -> List[SpecKey]:
        """Spectrum keys registered under masses in [min_mass, max_mass].

        A spectrum key appears once per matching mass key, so a spectrum with
        isotope-shifted keys in range is returned more than once.
        """
        masses, spec_keys = self._snapshot()
        start_idx, end_idx = search_mass_range_numba(masses, min_mass, max_mass)
        return spec_keys[start_idx:end_idx]

    def get_candidate_spec_keys(self, peptide_mass: float) -> List[SpecKey]:
        """Spectrum keys compatible with a candidate peptide mass.

        Observed masses between ``peptide_mass - left tolerance`` and
        ``peptide_mass + right tolerance`` are matched.
        """
        min_mass = peptide_mass - self.left_tolerance.to_da(peptide_mass)
        max_mass = peptide_mass + self.right_tolerance.to_da(peptide_mass)
        return self.get_spec_keys_in_range(min_mass, max_mass)

    def get_scorer(self, spec_key: SpecKey) -> Optional[DBSearchScorer]:
        with self._scorer_lock:
            return self._spec_key_scorer_map.get(spec_key)

    @property
    def pep_mass_spec_key_map(self) -> Dict[float, SpecKey]:
        """Copy of the mass map, in ascending mass order."""
        masses, spec_keys = self._snapshot()
        return dict(zip(masses.tolist(), spec_keys))

    @property
    def spec_key_scorer_map(self) -> Dict[SpecKey, DBSearchScorer]:
        """Copy of the scorer map."""
        with self._scorer_lock:
            return dict(self._spec_key_scorer_map)

    def __len__(self) -> int:
        """Number of indexed spectrum keys."""
        with self._scorer_lock:
            return len(self._spec_key_scorer_map)

    def __repr__(self) -> str:
        return (
            f"ScoredSpectraMap(n_spectra={len(self):,}, "
            f"n_mass_keys={len(self._pep_mass_spec_key_map):,}, "
            f"tolerance=[-{self.left_tolerance}, +{self.right_tolerance}], "
            f"max_isotope_errors={self.max_isotope_errors})"
        )


def _chunk_bounds(n_items: int, n_chunks: int) -> List[Tuple[int, int]]:
    """Contiguous (start, stop) ranges splitting n_items into n_chunks parts."""
    bounds = np.linspace(0, n_items, n_chunks + 1).astype(np.int64)
    return [
        (int(bounds[i]), int(bounds[i + 1]))
        for i in range(n_chunks)
        if bounds[i + 1] > bounds[i]
    ]
