"""Physical constants and indexing defaults for spectrum indexing and FDR.

This module provides the physical constants, amino acid residue masses and
numeric defaults used throughout AlphaPeptIndex. Mass values are sourced from
NIST or established proteomics standards.

Key Features
------------
- Correct PROTON_MASS (1.007276466622 Da, not hydrogen atom mass!)
- C13 isotope spacing used for isotope-error duplication of index keys
- Integer mass scaler for nominal-mass conversion
- Indexing defaults (minimum peaks per spectrum, isotope error limits)

Sources
-------
- NIST physical constants: https://physics.nist.gov/cgi-bin/cuu/Value
- IUPAC amino acid masses: https://www.unimod.org/masses.html
"""

import numpy as np

# =============================================================================
# Fundamental Physical Constants (NIST values)
# =============================================================================

# Proton mass (NOT hydrogen atom mass!)
# Source: NIST 2018 CODATA
PROTON_MASS = 1.007276466622  # Da

# Water mass (H2O)
# Calculated: 2*1.007825 + 15.994915 = 18.010564684
H2O_MASS = 18.010564684  # Da

# =============================================================================
# Isotope Masses
# =============================================================================

# Mass difference between C12 and C13 as used for precursor isotope errors
ISOTOPE_MASS_DIFFERENCE = 1.00335  # Da

# Right-side tolerance (Da) below which isotope mis-assignment is searched
ISOTOPE_ERROR_TOLERANCE_THRESHOLD = 0.5  # Da

# Largest supported number of C13 isotope errors
MAX_ISOTOPE_ERRORS = 2

# =============================================================================
# Nominal Mass
# =============================================================================

# Scales a monoisotopic mass so that rounding lands on the integer mass
# of a typical peptide residue composition
INTEGER_MASS_SCALER = 0.999497

# Bias applied to the left tolerance before rounding it to nominal units;
# keeps a tolerance of exactly 0.5 Da from including an extra nominal mass
NOMINAL_TOLERANCE_EPSILON = 0.4999

# =============================================================================
# Indexing Defaults
# =============================================================================

# Spectra with fewer peaks are skipped during indexing
MIN_NUM_PEAKS_PER_SPECTRUM = 10

# Default number of allowed C13 isotope errors
DEFAULT_MAX_ISOTOPE_ERRORS = 1

# Default portion of incorrect target PSMs (pi0-like prior)
DEFAULT_PIT = 1.0

# Default precursor tolerance in PPM (both sides)
DEFAULT_PRECURSOR_TOLERANCE_PPM = 20.0

# =============================================================================
# Amino Acid Monoisotopic Masses (Da)
# =============================================================================

# Standard 20 amino acids (unmodified residues)
AA_MASSES_DICT = {
    'A': 71.037114,   # Alanine
    'R': 156.101111,  # Arginine
    'N': 114.042927,  # Asparagine
    'D': 115.026943,  # Aspartic acid
    'C': 103.009185,  # Cysteine (unmodified)
    'E': 129.042593,  # Glutamic acid
    'Q': 128.058578,  # Glutamine
    'G': 57.021464,   # Glycine
    'H': 137.058912,  # Histidine
    'I': 113.084064,  # Isoleucine
    'L': 113.084064,  # Leucine
    'K': 128.094963,  # Lysine
    'M': 131.040485,  # Methionine
    'F': 147.068414,  # Phenylalanine
    'P': 97.052764,   # Proline
    'S': 87.032028,   # Serine
    'T': 101.047679,  # Threonine
    'W': 186.079313,  # Tryptophan
    'Y': 163.063320,  # Tyrosine
    'V': 99.068414,   # Valine
}

STANDARD_AMINO_ACIDS = frozenset(AA_MASSES_DICT)

# ord()-indexed lookup array for Numba access
# Access via: AA_MASSES[ord('A')] -> 71.037114
AA_MASSES = np.zeros(256, dtype=np.float64)
for aa, mass in AA_MASSES_DICT.items():
    AA_MASSES[ord(aa)] = mass


def validate_constants():
    """Validate that constants are physically reasonable.

    Raises AssertionError if any constant is out of expected range.
    """
    assert 1.0072 < PROTON_MASS < 1.0073, f"PROTON_MASS is wrong: {PROTON_MASS}"
    assert 18.00 < H2O_MASS < 18.02, f"H2O_MASS is wrong: {H2O_MASS}"
    assert 1.003 < ISOTOPE_MASS_DIFFERENCE < 1.004, \
        f"ISOTOPE_MASS_DIFFERENCE is wrong: {ISOTOPE_MASS_DIFFERENCE}"
    assert 0.999 < INTEGER_MASS_SCALER < 1.0, \
        f"INTEGER_MASS_SCALER is wrong: {INTEGER_MASS_SCALER}"

    for aa, mass in AA_MASSES_DICT.items():
        assert mass > 50.0, f"AA {aa} mass is too low: {mass}"
        assert mass < 250.0, f"AA {aa} mass is too high: {mass}"
