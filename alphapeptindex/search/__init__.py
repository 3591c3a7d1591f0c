"""Mass-indexed spectrum lookup for database search.

Provides the scored spectra map consulted by the search loop: candidate
peptide mass -> compatible spectrum keys -> per-spectrum scorer.
"""

from .scored_spectra_map import (
    IndexStats,
    ScoredSpectraMap,
    search_mass_range_numba,
)

__all__ = [
    "IndexStats",
    "ScoredSpectraMap",
    "search_mass_range_numba",
]
