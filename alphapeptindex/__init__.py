"""AlphaPeptIndex - Spectrum indexing and target-decoy statistics for peptide search.

This library provides the scoring-index and statistical-validation core of a
peptide database search:

- A mass-tolerant spectrum index that maps candidate peptide masses to the
  spectra that could have produced them (isotope errors included) and holds
  one database scorer per spectrum.
- A target-decoy FDR engine that turns target and decoy scores into
  monotonic q-values at PSM and peptide level.

Numeric hot paths are Numba-compiled; everything else is plain NumPy.
"""

__version__ = "0.1.0"

from alphapeptindex import database
from alphapeptindex import scoring
from alphapeptindex import search
from alphapeptindex.config import SearchParams
from alphapeptindex.enzyme import Enzyme, EnzymeDefinitionError, EnzymeRegistry
from alphapeptindex.spectrum import (
    ActivationMethod,
    InMemorySpectrumAccessor,
    InstrumentType,
    SpecKey,
    Spectrum,
)
from alphapeptindex.tolerance import Tolerance

__all__ = [
    "database",
    "scoring",
    "search",
    "SearchParams",
    "Enzyme",
    "EnzymeDefinitionError",
    "EnzymeRegistry",
    "ActivationMethod",
    "InMemorySpectrumAccessor",
    "InstrumentType",
    "SpecKey",
    "Spectrum",
    "Tolerance",
]
