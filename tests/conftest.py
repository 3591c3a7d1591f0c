"""Pytest configuration for AlphaPeptIndex tests.

Provides synthetic spectra (b/y ions of known peptides). No I/O: tests wrap
them in an in-memory accessor.
"""

import numpy as np
import pytest

from alphapeptindex.constants import AA_MASSES_DICT, H2O_MASS, PROTON_MASS
from alphapeptindex.spectrum import ActivationMethod, Spectrum


def peptide_spectrum(
    peptide: str,
    charge: int = 2,
    activation_method=ActivationMethod.CID,
    precursor_shift: float = 0.0,
    scan_num: int = -1,
) -> Spectrum:
    """Singly charged b/y ion spectrum of an unmodified peptide.

    All peaks share one intensity, so ranks follow peak order (b ions first).
    ``precursor_shift`` (Da) is added to the neutral precursor mass.
    """
    residue_masses = np.array([AA_MASSES_DICT[aa] for aa in peptide])
    prefix = np.cumsum(residue_masses)[:-1]
    suffix = np.cumsum(residue_masses[::-1])[:-1]

    b_ions = prefix + PROTON_MASS
    y_ions = suffix + H2O_MASS + PROTON_MASS
    mz = np.concatenate([b_ions, y_ions])
    intensity = np.full(len(mz), 1000.0)

    neutral_mass = residue_masses.sum() + H2O_MASS + precursor_shift
    precursor_mz = neutral_mass / charge + PROTON_MASS
    return Spectrum(
        mz=mz,
        intensity=intensity,
        precursor_mz=precursor_mz,
        charge=charge,
        activation_method=activation_method,
        scan_num=scan_num,
    )


@pytest.fixture
def make_spectrum():
    """Factory for synthetic peptide spectra."""
    return peptide_spectrum


@pytest.fixture
def tryptic_peptides():
    """Peptides with distinct masses and at least 10 fragment peaks."""
    return [
        "PEPTIDEK",
        "TESTPEPTIDER",
        "YGGFMTSEK",
        "LGEHNIDVLEGNEQFINAAK",
        "SAMPLERSK",
    ]


@pytest.fixture
def short_spectrum():
    """Spectrum with too few peaks to be indexed."""
    return Spectrum(
        mz=np.array([200.1, 300.2, 400.3]),
        intensity=np.array([10.0, 20.0, 30.0]),
        precursor_mz=500.25,
        charge=2,
        activation_method=ActivationMethod.CID,
    )


@pytest.fixture(scope="session", autouse=True)
def set_random_seed():
    """Set random seed for reproducible tests."""
    np.random.seed(42)
