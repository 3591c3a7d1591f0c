"""Scoring models and statistical validation.

This module provides:
- Scoring models that turn spectra into scored spectra (rank-based reference model)
- Database scorers (node-only fast scorer, edge-aware scan scorer)
- Target/decoy PSM collections
- Target-decoy FDR and q-value maps with threshold queries

Examples
--------
>>> from alphapeptindex.scoring import PSM, PSMSet, TargetDecoyAnalysis
>>>
>>> target = PSMSet([PSM(0, "K.PEPTIDE.R", 12.0), PSM(1, "K.ELVISK.L", 8.0)])
>>> decoy = PSMSet([PSM(0, "K.EDITPEP.R", 7.5)])
>>> analysis = TargetDecoyAnalysis(target, decoy)
>>> analysis.get_threshold_score(0.01)
"""

from .db_scorers import (
    DBScanScorer,
    DBSearchScorer,
    FastScorer,
)
from .fdr import (
    FDRMap,
    TargetDecoyAnalysis,
    get_fdr_map,
    get_threshold_score,
    lookup_qvalues,
)
from .psm_set import (
    PSM,
    PSMSet,
    get_peptide_from_annotation,
)
from .spectrum_scorer import (
    RankScoredSpectrum,
    RankScorer,
    ScoredSpectrumSum,
    ScorerProvider,
    SpecDataType,
)

__all__ = [
    # Database scorers
    "DBSearchScorer",
    "FastScorer",
    "DBScanScorer",
    # FDR
    "FDRMap",
    "TargetDecoyAnalysis",
    "get_fdr_map",
    "get_threshold_score",
    "lookup_qvalues",
    # PSM collections
    "PSM",
    "PSMSet",
    "get_peptide_from_annotation",
    # Scoring models
    "RankScorer",
    "RankScoredSpectrum",
    "ScoredSpectrumSum",
    "ScorerProvider",
    "SpecDataType",
]
