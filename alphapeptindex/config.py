"""Search parameters for spectrum indexing and FDR estimation.

All recognized options are collected in ``SearchParams``. Numeric options are
range-checked on construction; an invalid value raises ``ValueError`` before
any spectrum is touched.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from .constants import (
    DEFAULT_MAX_ISOTOPE_ERRORS,
    DEFAULT_PIT,
    DEFAULT_PRECURSOR_TOLERANCE_PPM,
    MAX_ISOTOPE_ERRORS,
    MIN_NUM_PEAKS_PER_SPECTRUM,
)
from .enzyme import TRYPSIN, Enzyme
from .spectrum import ActivationMethod, InstrumentType
from .tolerance import Tolerance


def check_range(
    name: str,
    value: float,
    min_value: Optional[float] = None,
    max_value: Optional[float] = None,
    min_inclusive: bool = True,
    max_inclusive: bool = False,
) -> None:
    """Raise ValueError if ``value`` is outside the given range.

    By default the minimum is inclusive and the maximum exclusive.

    Examples
    --------
    >>> check_range("max_isotope_errors", 3, 0, 2, max_inclusive=True)
    Traceback (most recent call last):
    ...
    ValueError: max_isotope_errors must be in [0,2], got 3
    """
    below = min_value is not None and (value < min_value if min_inclusive else value <= min_value)
    above = max_value is not None and (value > max_value if max_inclusive else value >= max_value)
    if below or above:
        valid_range = (
            f"{'[' if min_inclusive else '('}{min_value},"
            f"{max_value}{']' if max_inclusive else ')'}"
        )
        raise ValueError(f"{name} must be in {valid_range}, got {value}")


@dataclass
class SearchParams:
    """Parameters for spectrum indexing and target-decoy analysis.

    Attributes
    ----------
    left_tolerance : Tolerance
        Precursor tolerance bounding candidate masses above the observed mass
    right_tolerance : Tolerance
        Precursor tolerance bounding candidate masses below the observed mass;
        isotope errors are only searched when it is below 0.5 Da
    max_isotope_errors : int
        Number of C13 isotope errors searched (0, 1 or 2)
    min_num_peaks : int
        Spectra with fewer peaks are skipped
    activation_method : ActivationMethod, optional
        FUSION builds fused spectrum keys; None uses each spectrum's own method
    instrument_type : InstrumentType
    enzyme : Enzyme
    pit : float
        Portion of incorrect target PSMs used for FDR estimation, in [0, 1]
    num_threads : int, optional
        Worker threads for index construction (None: one per CPU)
    """

    left_tolerance: Tolerance = field(
        default_factory=lambda: Tolerance(DEFAULT_PRECURSOR_TOLERANCE_PPM, is_ppm=True)
    )
    right_tolerance: Tolerance = field(
        default_factory=lambda: Tolerance(DEFAULT_PRECURSOR_TOLERANCE_PPM, is_ppm=True)
    )
    max_isotope_errors: int = DEFAULT_MAX_ISOTOPE_ERRORS
    min_num_peaks: int = MIN_NUM_PEAKS_PER_SPECTRUM
    activation_method: Optional[ActivationMethod] = None
    instrument_type: InstrumentType = InstrumentType.LOW_RES_ION_TRAP
    enzyme: Enzyme = TRYPSIN
    pit: float = DEFAULT_PIT
    num_threads: Optional[int] = None

    def __post_init__(self):
        check_range("max_isotope_errors", self.max_isotope_errors, 0, MAX_ISOTOPE_ERRORS,
                    max_inclusive=True)
        check_range("min_num_peaks", self.min_num_peaks, 0)
        check_range("pit", self.pit, 0.0, 1.0, max_inclusive=True)
        if self.num_threads is not None:
            check_range("num_threads", self.num_threads, 1)

    @property
    def is_fused(self) -> bool:
        return self.activation_method == ActivationMethod.FUSION

    @classmethod
    def for_instrument(cls, instrument: InstrumentType, **kwargs) -> SearchParams:
        """Create parameters with instrument-specific precursor tolerances.

        Args:
            instrument: Instrument type enum
            **kwargs: Overrides for any other field

        Returns:
            SearchParams with instrument-specific defaults
        """
        if instrument == InstrumentType.LOW_RES_ION_TRAP:
            tolerance = Tolerance(0.5)
        elif instrument == InstrumentType.MR_TOF:
            tolerance = Tolerance(5.0, is_ppm=True)
        elif instrument in (InstrumentType.ORBITRAP, InstrumentType.ASTRAL):
            tolerance = Tolerance(10.0, is_ppm=True)
        else:
            raise ValueError(f"Unknown instrument type: {instrument}")

        kwargs.setdefault("left_tolerance", tolerance)
        kwargs.setdefault("right_tolerance", tolerance)
        return cls(instrument_type=instrument, **kwargs)
