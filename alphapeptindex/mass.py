"""Nominal mass conversion (Numba-compiled).

Nominal masses are integer-scaled approximations of monoisotopic masses used
to index node scores and bound candidate generation.
"""

import numpy as np
import numba

from .constants import AA_MASSES, INTEGER_MASS_SCALER, NOMINAL_TOLERANCE_EPSILON


@numba.jit(nopython=True, cache=True)
def round_half_up(value: float) -> int:
    """Round to the nearest integer, ties towards +inf.

    Examples
    --------
    >>> round_half_up(2.5), round_half_up(-2.5)
    (3, -2)
    """
    return int(np.floor(value + 0.5))


@numba.jit(nopython=True, cache=True)
def to_nominal_mass(mass: float) -> int:
    """Nominal mass of a monoisotopic mass.

    Examples
    --------
    >>> to_nominal_mass(1000.5)
    1000
    """
    return round_half_up(mass * INTEGER_MASS_SCALER)


def max_nominal_peptide_mass(peptide_mass: float, tolerance_da: float) -> int:
    """Largest nominal candidate mass compatible with an observed peptide mass.

    The tolerance is rounded to nominal units after subtracting a small bias
    so that a boundary tolerance does not admit an extra nominal mass.

    Examples
    --------
    >>> max_nominal_peptide_mass(1000.5, 0.5)
    1000
    >>> max_nominal_peptide_mass(1000.5, 1.5)
    1001
    """
    return to_nominal_mass(peptide_mass) + round_half_up(tolerance_da - NOMINAL_TOLERANCE_EPSILON)


def prefix_nominal_masses(peptide: str) -> np.ndarray:
    """Nominal masses of all prefixes of an unmodified peptide.

    The last element is the nominal residue mass of the whole peptide.

    Examples
    --------
    >>> prefix_nominal_masses("GAS")
    array([ 57, 128, 215])
    """
    residue_masses = np.array([AA_MASSES[ord(aa)] for aa in peptide], dtype=np.float64)
    if np.any(residue_masses == 0.0):
        raise ValueError(f"Peptide contains non-standard residues: {peptide}")
    return np.array(
        [to_nominal_mass(mass) for mass in np.cumsum(residue_masses)], dtype=np.int64
    )


def calculate_peptide_mass(peptide: str) -> float:
    """Sum of residue masses (neutral peptide mass without water).

    This is the mass the spectrum index is keyed by.
    """
    return float(sum(AA_MASSES[ord(aa)] for aa in peptide))
