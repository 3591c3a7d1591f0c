"""Precursor mass tolerances in Da or parts per million.

Tolerances are queried per peptide mass, so PPM tolerances scale with the
mass they are applied to.

Examples
--------
>>> tol = Tolerance.parse("20ppm")
>>> tol.to_da(1000.0)
0.02
>>> Tolerance.parse("0.5Da").to_da(1000.0)
0.5
"""

from __future__ import annotations

import re
from dataclasses import dataclass

_TOLERANCE_PATTERN = re.compile(r"^\s*([0-9]*\.?[0-9]+(?:[eE][-+]?[0-9]+)?)\s*([A-Za-z]*)\s*$")


@dataclass(frozen=True)
class Tolerance:
    """Mass tolerance.

    Attributes
    ----------
    value : float
        Tolerance magnitude (non-negative)
    is_ppm : bool
        True if ``value`` is in parts per million, False if in Da
    """

    value: float
    is_ppm: bool = False

    def __post_init__(self):
        if self.value < 0:
            raise ValueError(f"Tolerance must be non-negative, got {self.value}")

    def to_da(self, mass: float) -> float:
        """Tolerance in Da at the given mass."""
        if self.is_ppm:
            return mass * self.value * 1e-6
        return self.value

    @classmethod
    def parse(cls, tolerance: str) -> Tolerance:
        """Parse a tolerance string such as ``"20ppm"``, ``"0.5Da"`` or ``"10"``.

        A missing unit is read as Da.
        """
        match = _TOLERANCE_PATTERN.match(tolerance)
        if match is None:
            raise ValueError(f"Cannot parse tolerance: {tolerance!r}")

        value = float(match.group(1))
        unit = match.group(2).lower()
        if unit == "ppm":
            return cls(value, is_ppm=True)
        if unit in ("", "da"):
            return cls(value, is_ppm=False)
        raise ValueError(f"Unknown tolerance unit: {match.group(2)!r}. Use 'ppm' or 'Da'.")

    def __str__(self) -> str:
        return f"{self.value:g}{'ppm' if self.is_ppm else 'Da'}"
