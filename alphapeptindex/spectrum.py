"""Spectrum containers, spectrum keys and spectrum accessors.

A ``SpecKey`` identifies one spectrum (or, for fused acquisition, an ordered
group of spectra) together with the charge state it is searched at. Keys are
immutable and hashable so they can be used in the spectrum index.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Dict, Iterable, Optional, Protocol, Tuple

import numpy as np

from .constants import PROTON_MASS


class ActivationMethod(Enum):
    """Fragmentation methods."""
    CID = "cid"
    ETD = "etd"
    HCD = "hcd"
    ECD = "ecd"
    FUSION = "fusion"  # Several spectra of one precursor merged into one key


class InstrumentType(Enum):
    """Instrument types with different fragment mass accuracy characteristics."""
    LOW_RES_ION_TRAP = "low_res_ion_trap"
    ORBITRAP = "orbitrap"
    MR_TOF = "mr_tof"
    ASTRAL = "astral"


@dataclass
class Spectrum:
    """Centroided MS2 spectrum.

    Attributes
    ----------
    mz : np.ndarray (float64)
        Peak m/z values
    intensity : np.ndarray (float64)
        Peak intensities (parallel to mz)
    precursor_mz : float
        Precursor m/z
    charge : int
        Precursor charge state (0 if unknown)
    activation_method : ActivationMethod, optional
        Fragmentation method the spectrum was acquired with
    scan_num : int
        Scan number (for logging only)
    """

    mz: np.ndarray
    intensity: np.ndarray
    precursor_mz: float
    charge: int = 0
    activation_method: Optional[ActivationMethod] = None
    scan_num: int = -1

    def __post_init__(self):
        self.mz = np.asarray(self.mz, dtype=np.float64)
        self.intensity = np.asarray(self.intensity, dtype=np.float64)
        if len(self.mz) != len(self.intensity):
            raise ValueError(
                f"mz and intensity length mismatch: {len(self.mz)} != {len(self.intensity)}"
            )

    @property
    def parent_mass(self) -> float:
        """Neutral precursor mass (M), computed from m/z and charge."""
        return (self.precursor_mz - PROTON_MASS) * self.charge

    def with_charge(self, charge: int) -> Spectrum:
        """Copy of this spectrum assigned to another charge state."""
        return replace(self, charge=charge)

    def __len__(self) -> int:
        """Number of peaks."""
        return len(self.mz)


@dataclass(frozen=True, order=True)
class SpecKey:
    """Identity of a searched spectrum: spectrum index and charge.

    Equality, hashing and ordering use ``(spec_index, charge)`` only.
    ``spec_index_list`` lists the constituent spectra of a fused key.
    """

    spec_index: int
    charge: int
    spec_index_list: Optional[Tuple[int, ...]] = field(default=None, compare=False)

    def __post_init__(self):
        if self.spec_index_list is not None:
            object.__setattr__(self, "spec_index_list", tuple(self.spec_index_list))

    def constituent_indices(self) -> Tuple[int, ...]:
        """Spectrum indices this key is made of."""
        if self.spec_index_list is None:
            return (self.spec_index,)
        return self.spec_index_list

    def __str__(self) -> str:
        return f"{self.spec_index}:{self.charge}"


class SpectrumAccessor(Protocol):
    """Anything that returns a spectrum for a spectrum index."""

    def get_spectrum(self, spec_index: int) -> Optional[Spectrum]:
        ...


class InMemorySpectrumAccessor:
    """Spectrum accessor backed by a dictionary.

    Examples
    --------
    >>> accessor = InMemorySpectrumAccessor({0: spectrum})
    >>> accessor.get_spectrum(0) is spectrum
    True
    """

    def __init__(self, spectra: Dict[int, Spectrum]):
        self._spectra = dict(spectra)

    @classmethod
    def from_list(cls, spectra: Iterable[Spectrum]) -> InMemorySpectrumAccessor:
        """Index spectra by their position in the iterable."""
        return cls(dict(enumerate(spectra)))

    def get_spectrum(self, spec_index: int) -> Optional[Spectrum]:
        return self._spectra.get(spec_index)

    def __len__(self) -> int:
        return len(self._spectra)
