"""Tests for target-decoy FDR estimation.

Tests cover:
1. FDR map construction (sentinels, degenerate regions, ties, pit)
2. Q-value monotonicity and bounds
3. Q-value lookup in both score directions
4. Threshold score queries
5. Peptide-level queries via PSM sets
6. Input validation
"""

import numpy as np
import pytest

from alphapeptindex.scoring import (
    PSM,
    PSMSet,
    TargetDecoyAnalysis,
    get_fdr_map,
    get_threshold_score,
    lookup_qvalues,
)


class TestFDRMap:
    """Test score -> q-value map construction."""

    def test_higher_is_better_example(self):
        """Targets [10..6], decoys [9, 7, 5]."""
        fdr_map = get_fdr_map(
            np.array([10.0, 9.0, 8.0, 7.0, 6.0]), np.array([9.0, 7.0, 5.0])
        )

        # Decoy 9: 0 better decoys, 1 better target -> 0/1
        # Decoy 7: 1 better decoy, 3 better targets -> 1/3
        # Decoy 5: 2 better decoys, 5 better targets -> 2/5
        np.testing.assert_array_equal(fdr_map.scores, [-np.inf, 5.0, 7.0, 9.0, np.inf])
        np.testing.assert_allclose(fdr_map.qvalues, [1.0, 0.4, 1.0 / 3.0, 0.0, 0.0])

    def test_input_order_does_not_matter(self):
        """Scores are sorted internally."""
        fdr_map_sorted = get_fdr_map(np.array([10.0, 9.0, 8.0]), np.array([8.5, 7.0]))
        fdr_map_shuffled = get_fdr_map(np.array([8.0, 10.0, 9.0]), np.array([7.0, 8.5]))

        np.testing.assert_array_equal(fdr_map_sorted.scores, fdr_map_shuffled.scores)
        np.testing.assert_array_equal(fdr_map_sorted.qvalues, fdr_map_shuffled.qvalues)

    def test_degenerate_region_forced_to_one(self):
        """Decoys not outnumbered by targets give FDR 1 and stop the walk."""
        fdr_map = get_fdr_map(np.array([5.0, 4.0]), np.array([10.0, 9.0, 3.0]))

        # Decoys 10 and 9: no better targets -> no entry
        # Decoy 3: 2 better decoys, 2 better targets -> FDR 1
        np.testing.assert_array_equal(fdr_map.scores, [-np.inf, 3.0, np.inf])
        np.testing.assert_allclose(fdr_map.qvalues, [1.0, 1.0, 0.0])

    def test_walk_stops_at_fdr_one(self):
        """No entries are added after the first FDR of 1."""
        fdr_map = get_fdr_map(np.array([10.0, 2.0]), np.array([9.0, 8.0, 1.0]))

        # Decoy 9: 1 target, 0 decoys -> 0; decoy 8: 1 target, 1 decoy -> 1 (stop)
        np.testing.assert_array_equal(fdr_map.scores, [-np.inf, 8.0, 9.0, np.inf])
        assert 1.0 not in fdr_map.scores

    def test_empty_decoys_all_zero(self):
        """No decoys: every q-value is 0, including the worst sentinel."""
        fdr_map = get_fdr_map(np.array([10.0, 9.0, 8.0]), np.array([]))

        np.testing.assert_array_equal(fdr_map.scores, [-np.inf, np.inf])
        np.testing.assert_array_equal(fdr_map.qvalues, [0.0, 0.0])

        qvalues = lookup_qvalues(fdr_map, np.array([10.0, 9.0, 8.0]), is_greater_better=True)
        np.testing.assert_array_equal(qvalues, [0.0, 0.0, 0.0])

    def test_empty_decoys_lower_is_better(self):
        """Worst sentinel is +inf when lower is better."""
        fdr_map = get_fdr_map(np.array([1.0, 2.0]), np.array([]), is_greater_better=False)

        np.testing.assert_array_equal(fdr_map.qvalues, [0.0, 0.0])
        assert lookup_qvalues(fdr_map, np.array([2.0]), is_greater_better=False)[0] == 0.0

    def test_sentinels(self):
        """Best sentinel maps to 0, worst to 1 when decoys exist."""
        rng = np.random.default_rng(0)
        target = rng.normal(10.0, 2.0, 200)
        decoy = rng.normal(5.0, 2.0, 200)

        higher = get_fdr_map(target, decoy, is_greater_better=True)
        assert higher.scores[-1] == np.inf and higher.qvalues[-1] == 0.0
        assert higher.scores[0] == -np.inf and higher.qvalues[0] == 1.0

        lower = get_fdr_map(-target, -decoy, is_greater_better=False)
        assert lower.scores[0] == -np.inf and lower.qvalues[0] == 0.0
        assert lower.scores[-1] == np.inf and lower.qvalues[-1] == 1.0

    def test_tied_decoys_counted_once(self):
        """Tied decoy scores form one threshold; the decoy rank still advances."""
        fdr_map = get_fdr_map(np.array([9.0, 9.0, 8.0]), np.array([9.0, 9.0, 7.0]))

        # Decoy 9 (twice): no target strictly better -> no entry
        # Decoy 7: 2 better decoys, 3 better targets -> 2/3
        np.testing.assert_array_equal(fdr_map.scores, [-np.inf, 7.0, np.inf])
        np.testing.assert_allclose(fdr_map.qvalues, [1.0, 2.0 / 3.0, 0.0])

    def test_tied_target_not_better_than_decoy(self):
        """A target equal to the decoy threshold falls on the decoy's side."""
        fdr_map = get_fdr_map(np.array([10.0, 9.0]), np.array([9.0]))

        assert lookup_qvalues(fdr_map, np.array([9.5]), True)[0] == 0.0
        assert lookup_qvalues(fdr_map, np.array([9.0]), True)[0] == 1.0

    def test_pit_scales_decoy_count(self):
        """pit multiplies the decoy count before rounding."""
        target = np.array([10.0, 9.0, 8.0, 7.0, 6.0])
        decoy = np.array([9.5, 7.5, 5.5])

        full = get_fdr_map(target, decoy, pit=1.0)
        reduced = get_fdr_map(target, decoy, pit=0.4)

        # Decoy 7.5: round(1 * 1.0) / 3 vs round(1 * 0.4) / 3
        assert lookup_qvalues(full, np.array([8.0]), True)[0] == pytest.approx(1.0 / 3.0)
        assert lookup_qvalues(reduced, np.array([8.0]), True)[0] == 0.0
        # Decoy 5.5: round(2 * 0.4) / 5
        assert lookup_qvalues(reduced, np.array([6.0]), True)[0] == pytest.approx(0.2)

    def test_pit_rounds_half_up(self):
        """0.5 decoys round to 1, not to the nearest even number."""
        fdr_map = get_fdr_map(
            np.array([10.0, 9.0, 8.0, 7.0, 6.0]), np.array([9.5, 7.5]), pit=0.5
        )

        assert lookup_qvalues(fdr_map, np.array([8.0]), True)[0] == pytest.approx(1.0 / 3.0)

    def test_leading_negative_infinity_decoy_skipped(self):
        """A -inf decoy does not overwrite the worst sentinel."""
        fdr_map = get_fdr_map(np.array([5.0]), np.array([-np.inf]))

        np.testing.assert_array_equal(fdr_map.scores, [-np.inf, np.inf])
        np.testing.assert_array_equal(fdr_map.qvalues, [1.0, 0.0])

    def test_nan_scores_ignored(self):
        """NaN scores do not enter the map."""
        fdr_map = get_fdr_map(np.array([10.0, np.nan, 8.0]), np.array([np.nan, 9.0]))

        assert not np.isnan(fdr_map.scores).any()
        np.testing.assert_array_equal(fdr_map.scores, [-np.inf, 9.0, np.inf])


class TestQValueProperties:
    """Monotonicity and bounds on realistic score distributions."""

    @pytest.mark.parametrize("is_greater_better", [True, False])
    def test_monotonic_from_best_to_worst(self, is_greater_better):
        """Q-values never decrease from the best score to the worst."""
        rng = np.random.default_rng(42)
        target = np.concatenate([rng.normal(12.0, 2.0, 300), rng.normal(5.0, 2.0, 300)])
        decoy = rng.normal(5.0, 2.0, 400)
        if not is_greater_better:
            target, decoy = -target, -decoy

        fdr_map = get_fdr_map(target, decoy, is_greater_better=is_greater_better)

        qvalues_best_first = fdr_map.qvalues[::-1] if is_greater_better else fdr_map.qvalues
        assert np.all(np.diff(qvalues_best_first) >= 0.0)

    def test_bounds(self):
        """FDR and q-values lie in [0, 1]."""
        rng = np.random.default_rng(7)
        fdr_map = get_fdr_map(rng.normal(6.0, 3.0, 500), rng.normal(5.0, 3.0, 500))

        assert np.all(fdr_map.qvalues >= 0.0)
        assert np.all(fdr_map.qvalues <= 1.0)

    def test_rounded_integer_scores(self):
        """Heavily tied integer scores still give a monotonic map."""
        rng = np.random.default_rng(3)
        target = np.round(rng.normal(20.0, 6.0, 1000))
        decoy = np.round(rng.normal(10.0, 6.0, 1000))

        fdr_map = get_fdr_map(target, decoy)

        assert len(np.unique(fdr_map.scores)) == len(fdr_map.scores)
        assert np.all(np.diff(fdr_map.qvalues) <= 0.0)


class TestQValueLookup:
    """Nearest-threshold lookup in both directions."""

    def test_higher_is_better(self):
        """Scores take the q-value of the greatest threshold strictly below."""
        fdr_map = get_fdr_map(
            np.array([10.0, 9.0, 8.0, 7.0, 6.0]), np.array([9.0, 7.0, 5.0])
        )
        scores = np.array([10.0, 9.0, 8.0, 7.0, 6.0, 5.0])

        qvalues = lookup_qvalues(fdr_map, scores, is_greater_better=True)

        np.testing.assert_allclose(qvalues, [0.0, 1 / 3, 1 / 3, 0.4, 0.4, 1.0])

    def test_lower_is_better(self):
        """Scores take the q-value of the smallest threshold strictly above."""
        fdr_map = get_fdr_map(
            np.array([1.0, 2.0, 3.0, 4.0, 5.0]), np.array([2.0, 4.0, 6.0]),
            is_greater_better=False,
        )

        # Decoy 2: 0/1, decoy 4: 1/3, decoy 6: 2/5
        np.testing.assert_array_equal(fdr_map.scores, [-np.inf, 2.0, 4.0, 6.0, np.inf])
        np.testing.assert_allclose(fdr_map.qvalues, [0.0, 0.0, 1 / 3, 0.4, 1.0])

        qvalues = lookup_qvalues(fdr_map, np.array([1.0, 3.0, 4.0, 5.0, 6.0]), False)
        np.testing.assert_allclose(qvalues, [0.0, 1 / 3, 0.4, 0.4, 1.0])

    def test_score_beyond_sentinel_raises(self):
        """A score with no threshold on its worse side is rejected."""
        fdr_map = get_fdr_map(np.array([10.0]), np.array([5.0]))

        with pytest.raises(ValueError):
            lookup_qvalues(fdr_map, np.array([-np.inf]), is_greater_better=True)

    def test_nan_query_raises(self):
        fdr_map = get_fdr_map(np.array([10.0]), np.array([5.0]))

        with pytest.raises(ValueError, match="NaN"):
            lookup_qvalues(fdr_map, np.array([np.nan]), is_greater_better=True)


class TestThresholdScore:
    """Score thresholds for FDR cutoffs."""

    def test_higher_is_better(self):
        fdr_map = get_fdr_map(
            np.array([10.0, 9.0, 8.0, 7.0, 6.0]), np.array([9.0, 7.0, 5.0])
        )

        assert get_threshold_score(fdr_map, 0.35, True) == 7.0
        assert get_threshold_score(fdr_map, 0.0, True) == 9.0
        assert get_threshold_score(fdr_map, 0.4, True) == 5.0
        assert get_threshold_score(fdr_map, 1.0, True) == -np.inf

    def test_lower_is_better(self):
        fdr_map = get_fdr_map(
            np.array([1.0, 2.0, 3.0, 4.0, 5.0]), np.array([2.0, 4.0, 6.0]),
            is_greater_better=False,
        )

        assert get_threshold_score(fdr_map, 0.35, False) == 4.0
        assert get_threshold_score(fdr_map, 0.0, False) == 2.0

    def test_unreachable_cutoff(self):
        """No qualifying threshold returns the best possible score."""
        fdr_map = get_fdr_map(np.array([10.0]), np.array([5.0]))

        assert get_threshold_score(fdr_map, -0.1, True) == np.inf
        lower = get_fdr_map(np.array([1.0]), np.array([5.0]), is_greater_better=False)
        assert get_threshold_score(lower, -0.1, False) == -np.inf

    @pytest.mark.parametrize("cutoff", [0.01, 0.05, 0.1, 0.25])
    def test_consistent_with_lookup(self, cutoff):
        """Scores better than the threshold pass; the next worse threshold fails."""
        rng = np.random.default_rng(11)
        target = np.concatenate([rng.normal(15.0, 2.0, 500), rng.normal(5.0, 2.0, 500)])
        decoy = rng.normal(5.0, 2.0, 1000)
        fdr_map = get_fdr_map(target, decoy)

        threshold = get_threshold_score(fdr_map, cutoff, True)

        passing = target[target > threshold]
        assert len(passing) > 0
        assert np.all(lookup_qvalues(fdr_map, passing, True) <= cutoff)

        worse = fdr_map.scores < threshold
        if worse.any():
            assert fdr_map.qvalues[worse][-1] > cutoff


class TestTargetDecoyAnalysis:
    """PSM-level and peptide-level analysis from PSM sets."""

    @pytest.fixture
    def analysis(self):
        target = PSMSet([
            PSM(0, "K.PEPTIDEK.A", 10.0),
            PSM(1, "R.PEPTIDEK.A", 9.0),
            PSM(2, "K.ELVISK.L", 8.0),
            PSM(3, "K.LIVESK.L", 7.0),
        ])
        decoy = PSMSet([
            PSM(4, "K.KEDITPEP.A", 8.5),
            PSM(5, "K.KSIVLE.L", 6.0),
        ])
        return TargetDecoyAnalysis(target, decoy)

    def test_psm_level(self, analysis):
        # Decoy 8.5: 0/2, decoy 6: 1/4
        assert analysis.get_psm_qvalue(10.0) == 0.0
        assert analysis.get_psm_qvalue(9.0) == 0.0
        assert analysis.get_psm_qvalue(8.0) == pytest.approx(0.25)
        assert analysis.get_psm_qvalue(7.0) == pytest.approx(0.25)

    def test_peptide_level_uses_best_score(self, analysis):
        # Peptide scores: targets 10, 8, 7; decoys 8.5, 6 -> decoy 6: 1/3
        assert analysis.get_pep_qvalue("PEPTIDEK") == 0.0
        assert analysis.get_pep_qvalue("ELVISK") == pytest.approx(1.0 / 3.0)

    def test_peptide_from_annotation(self, analysis):
        assert analysis.get_pep_qvalue_from_annotation("K.ELVISK.L") == pytest.approx(1.0 / 3.0)

    def test_decoy_peptide_lookup(self, analysis):
        """Peptides missing from the targets are looked up in the decoys."""
        assert analysis.get_pep_qvalue("KEDITPEP") == pytest.approx(1.0 / 3.0)

    def test_unknown_peptide_returns_none(self, analysis):
        assert analysis.get_pep_qvalue("NEVERSEEN") is None
        assert analysis.get_pep_qvalue_from_annotation("K.NEVERSEEN.R") is None

    def test_threshold_scores(self, analysis):
        assert analysis.get_threshold_score(0.01) == 8.5
        assert analysis.get_threshold_score(0.01, is_peptide_level=True) == 8.5

    def test_count_identifications(self, analysis):
        assert analysis.count_identifications(0.01) == 2
        assert analysis.count_identifications(0.25) == 4
        assert analysis.count_identifications(0.01, is_peptide_level=True) == 1

    def test_vectorized_qvalues(self, analysis):
        qvalues = analysis.get_qvalues(np.array([10.0, 8.0]))
        np.testing.assert_allclose(qvalues, [0.0, 0.25])

    def test_nan_target_score_does_not_block_peptide_lookup(self):
        target = PSMSet([
            PSM(0, "PEPTIDE", np.nan),
            PSM(1, "PEPTIDE", 12.0),
            PSM(2, "ELVISK", 9.0),
        ])
        decoy = PSMSet([PSM(3, "KEDITPEP", 10.0)])

        analysis = TargetDecoyAnalysis(target, decoy)

        assert analysis.get_pep_qvalue("PEPTIDE") == 0.0
        assert analysis.count_identifications(0.0) == 1

    def test_no_decoys(self):
        """Empty decoy set gives q-value 0 for every target."""
        target = PSMSet([PSM(i, f"PEPTIDE{aa}", s) for i, (aa, s) in enumerate(zip("KRH", [3.0, 2.0, 1.0]))])
        analysis = TargetDecoyAnalysis(target, PSMSet())

        assert all(analysis.get_psm_qvalue(s) == 0.0 for s in [3.0, 2.0, 1.0])
        assert analysis.get_pep_qvalue("PEPTIDEH") == 0.0

    def test_direction_mismatch_raises(self):
        with pytest.raises(ValueError, match="score directions"):
            TargetDecoyAnalysis(PSMSet(is_greater_better=True), PSMSet(is_greater_better=False))

    def test_invalid_pit_raises(self):
        with pytest.raises(ValueError, match="pit"):
            TargetDecoyAnalysis(PSMSet(), PSMSet(), pit=1.5)

    def test_lower_is_better_sets(self):
        target = PSMSet([PSM(0, "PEPTIDEK", 1e-5), PSM(1, "ELVISK", 1e-3)], is_greater_better=False)
        decoy = PSMSet([PSM(2, "KEDITPEP", 1e-4)], is_greater_better=False)
        analysis = TargetDecoyAnalysis(target, decoy)

        assert analysis.get_pep_qvalue("PEPTIDEK") == 0.0
        assert analysis.get_threshold_score(0.01) == 1e-4
