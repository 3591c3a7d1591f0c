"""Enzyme cleavage rules and the enzyme registry.

Enzymes are plain immutable values. The set of available enzymes lives in an
``EnzymeRegistry`` that is built once (``EnzymeRegistry.builtin()``) and passed
to whatever needs it; user-defined enzymes are added with an explicit
``load_file`` call.

Enzyme definition files contain one enzyme per line::

    # name,residues,terminus,description
    LysCP,K,C,LysC ignoring proline
    NoCut,null,C,No specificity

``residues`` is ``null`` for enzymes without residue specificity and
``terminus`` is ``C`` or ``N``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Union

from .constants import STANDARD_AMINO_ACIDS

logger = logging.getLogger(__name__)


class EnzymeDefinitionError(ValueError):
    """Raised for malformed enzyme definitions."""


@dataclass(frozen=True)
class Enzyme:
    """Cleavage rule of a protease.

    Attributes
    ----------
    name : str
        Short name used for lookup (e.g. 'Tryp')
    residues : str, optional
        Residues the enzyme cleaves at; None cleaves everywhere
    is_n_term : bool
        True if the enzyme cleaves N-terminal to its residues
    description : str
        Human readable name
    peptide_cleavage_efficiency : float
        Probability that a peptide produced by this enzyme follows the rule
        (e.g. ends with K or R for trypsin)
    neighboring_aa_cleavage_efficiency : float
        Probability that the neighboring residue follows the rule
        (e.g. the preceding residue is K or R for trypsin)
    """

    name: str
    residues: Optional[str]
    is_n_term: bool = False
    description: str = ""
    peptide_cleavage_efficiency: float = 0.0
    neighboring_aa_cleavage_efficiency: float = 0.0

    def __post_init__(self):
        if self.residues is not None:
            for residue in self.residues:
                if not residue.isupper():
                    raise EnzymeDefinitionError(
                        f"Enzyme residues must be upper case: {residue!r} ({self.name})"
                    )

    @property
    def is_c_term(self) -> bool:
        return not self.is_n_term

    def is_cleavable(self, residue: str) -> bool:
        """True if the enzyme cleaves at ``residue``."""
        if self.residues is None:
            return True
        return residue in self.residues

    def is_cleaved(self, peptide: str) -> bool:
        """True if the peptide terminus produced by this enzyme follows its rule."""
        if not peptide:
            return False
        residue = peptide[0] if self.is_n_term else peptide[-1]
        return self.is_cleavable(residue)

    def num_cleaved_termini(self, annotation: str) -> int:
        """Number of termini of an annotated peptide that follow the cleavage rule.

        Parameters
        ----------
        annotation : str
            Peptide with flanking residues, e.g. 'K.DLFGEK.I'. A '-' flank
            marks a protein terminus and always counts as cleaved.

        Returns
        -------
        int
            0, 1 or 2
        """
        first_dot = annotation.index('.')
        last_dot = annotation.rindex('.')
        peptide = ''.join(c for c in annotation[first_dot + 1:last_dot] if c.isupper())

        n_cleaved = 1 if self.is_cleaved(peptide) else 0

        if self.is_n_term:
            neighbor = annotation[-1]
        else:
            neighbor = annotation[0]
        if neighbor not in STANDARD_AMINO_ACIDS or self.is_cleavable(neighbor):
            n_cleaved += 1

        return n_cleaved


# =============================================================================
# Built-in Enzymes
# =============================================================================

NOENZYME = Enzyme("NoEnzyme", None, False, "No enzyme")
TRYPSIN = Enzyme(
    "Tryp", "KR", False, "Trypsin",
    peptide_cleavage_efficiency=0.99999,
    neighboring_aa_cleavage_efficiency=0.99999,
)
CHYMOTRYPSIN = Enzyme("CHYMOTRYPSIN", "FYWL", False, "Chymotrypsin")
LYS_C = Enzyme(
    "LysC", "K", False, "Lys-C",
    peptide_cleavage_efficiency=0.999,
    neighboring_aa_cleavage_efficiency=0.999,
)
LYS_N = Enzyme(
    "LysN", "K", True, "Lys-N",
    peptide_cleavage_efficiency=0.89,
    neighboring_aa_cleavage_efficiency=0.79,
)
GLU_C = Enzyme("GluC", "E", False, "Glu-C")
ARG_C = Enzyme("ArgC", "R", False, "Arg-C")
ASP_N = Enzyme("AspN", "D", True, "Asp-N")
ALP = Enzyme("aLP", None, False, "alphaLP")
PEPTIDOMICS = Enzyme("Peptidomics", None, False, "Endogenous peptides")

BUILTIN_ENZYMES = (
    NOENZYME, TRYPSIN, CHYMOTRYPSIN, LYS_C, LYS_N,
    GLU_C, ARG_C, ASP_N, ALP, PEPTIDOMICS,
)


# =============================================================================
# Registry
# =============================================================================

class EnzymeRegistry:
    """Name -> Enzyme lookup table.

    Examples
    --------
    >>> registry = EnzymeRegistry.builtin()
    >>> registry.get("Tryp").residues
    'KR'
    >>> registry.load_file("params/enzymes.txt")  # doctest: +SKIP
    """

    def __init__(self, enzymes: Optional[List[Enzyme]] = None):
        self._enzymes: Dict[str, Enzyme] = {}
        for enzyme in enzymes or []:
            self.register(enzyme)

    @classmethod
    def builtin(cls) -> EnzymeRegistry:
        """Fresh registry with the built-in enzymes."""
        return cls(list(BUILTIN_ENZYMES))

    def register(self, enzyme: Enzyme) -> Enzyme:
        """Add an enzyme; an enzyme with the same name is replaced."""
        if enzyme.name in self._enzymes:
            logger.warning(f"Enzyme {enzyme.name} is redefined")
        self._enzymes[enzyme.name] = enzyme
        return enzyme

    def get(self, name: str) -> Optional[Enzyme]:
        return self._enzymes.get(name)

    def all_enzymes(self) -> List[Enzyme]:
        """Registered enzymes in registration order."""
        return list(self._enzymes.values())

    def load_file(self, path: Union[str, Path]) -> List[Enzyme]:
        """Register the user-defined enzymes of a definition file.

        Raises
        ------
        EnzymeDefinitionError
            If a line is malformed, names a non-standard residue or a
            terminus other than 'C' or 'N'
        """
        path = Path(path)
        logger.info(f"Loading enzymes from {path.name}")

        loaded = []
        for line_num, line in enumerate(path.read_text().splitlines(), start=1):
            line = line.strip()
            if not line or line.startswith('#'):
                continue
            loaded.append(self.register(_parse_enzyme_line(line, f"{path}:{line_num}")))

        logger.info(f"✓ Loaded {len(loaded)} user-defined enzymes")
        return loaded

    def __contains__(self, name: str) -> bool:
        return name in self._enzymes

    def __iter__(self) -> Iterator[Enzyme]:
        return iter(self._enzymes.values())

    def __len__(self) -> int:
        return len(self._enzymes)


def _parse_enzyme_line(line: str, location: str) -> Enzyme:
    tokens = [token.strip() for token in line.split(',')]
    if len(tokens) != 4:
        raise EnzymeDefinitionError(
            f"Illegal user-defined enzyme at {location}: {line} (expected 4 fields)"
        )
    name, residues, terminus, description = tokens

    if residues.lower() == 'null':
        residues = None
    else:
        for residue in residues:
            if residue not in STANDARD_AMINO_ACIDS:
                raise EnzymeDefinitionError(
                    f"Illegal user-defined enzyme at {location}: {line} "
                    f"(unrecognizable residue {residue!r})"
                )

    if terminus == 'C':
        is_n_term = False
    elif terminus == 'N':
        is_n_term = True
    else:
        raise EnzymeDefinitionError(
            f"Illegal user-defined enzyme at {location}: {line} "
            f"({terminus!r} must be 'C' or 'N')"
        )

    return Enzyme(name, residues, is_n_term, description)
