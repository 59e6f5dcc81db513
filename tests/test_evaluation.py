"""
Tests for Noise Reduction Evaluation

Tests per-channel power ratios, zero-power and negative-reduction flags,
reference correlation and the convergence check.
"""

from __future__ import annotations

import logging

import numpy as np
import pytest

from magcancel.errors import DimensionMismatch
from magcancel.filtering import (
    evaluate_noise_reduction,
    reference_correlation,
    samples_to_threshold,
)


class TestEvaluateNoiseReduction:
    """Tests for evaluate_noise_reduction."""

    def test_known_reduction(self):
        """Test halving the amplitude gives a 75% power reduction."""
        before = np.ones((1, 4))
        after = np.full((1, 4), 0.5)

        report = evaluate_noise_reduction(before, after)

        np.testing.assert_allclose(report.reduction_pct, [75.0])
        np.testing.assert_allclose(report.power_before, [1.0])
        np.testing.assert_allclose(report.power_after, [0.25])
        assert report.warnings == []

    def test_per_channel_values(self):
        """Test each channel is evaluated independently."""
        before = np.array([[2.0, -2.0], [1.0, 1.0]])
        after = np.array([[1.0, -1.0], [0.0, 0.0]])

        report = evaluate_noise_reduction(before, after)

        np.testing.assert_allclose(report.reduction_pct, [75.0, 100.0])
        assert report.n_channels == 2
        assert report.mean_reduction_pct == pytest.approx(87.5)

    def test_identity_gives_zero(self):
        """Test unchanged data gives 0% reduction."""
        data = np.random.default_rng(0).standard_normal((3, 100))

        report = evaluate_noise_reduction(data, data)

        np.testing.assert_allclose(report.reduction_pct, 0.0)

    def test_zero_power_channel(self, caplog):
        """Test a silent input channel reports 0% and is flagged."""
        before = np.array([[0.0, 0.0, 0.0], [1.0, 1.0, 1.0]])
        after = np.array([[0.0, 0.0, 0.0], [0.1, 0.1, 0.1]])

        with caplog.at_level(logging.WARNING, logger="magcancel"):
            report = evaluate_noise_reduction(before, after)

        assert report.reduction_pct[0] == 0.0
        assert np.all(np.isfinite(report.reduction_pct))
        assert report.zero_power_channels == [0]
        assert "zero power" in report.warnings[0]
        assert "zero power" in caplog.text

    def test_negative_reduction_reported(self, caplog):
        """Test increased power is reported as a negative value, not clipped."""
        before = np.ones((2, 10))
        after = np.vstack([np.full(10, 2.0), np.full(10, 0.5)])

        with caplog.at_level(logging.WARNING, logger="magcancel"):
            report = evaluate_noise_reduction(before, after)

        assert report.reduction_pct[0] == pytest.approx(-300.0)
        assert report.negative_channels == [0]
        assert any("negative" in w for w in report.warnings)
        assert "negative noise reduction" in caplog.text

    def test_non_finite_output_flagged(self, caplog):
        """Test a NaN filter output is flagged instead of silently giving NaN."""
        before = np.ones((2, 6))
        after = np.vstack([np.full(6, np.nan), np.full(6, 0.5)])

        with caplog.at_level(logging.WARNING, logger="magcancel"):
            report = evaluate_noise_reduction(before, after)

        assert report.non_finite_channels == [0]
        assert np.isnan(report.reduction_pct[0])
        assert report.reduction_pct[1] == pytest.approx(75.0)
        assert report.zero_power_channels == []
        assert report.negative_channels == []
        assert any("non-finite" in w for w in report.warnings)
        assert "non-finite power" in caplog.text

    def test_non_finite_input_not_counted_as_zero_power(self):
        """Test NaN or infinite power before filtering is not filed as silence."""
        before = np.array([[np.nan, 1.0], [np.inf, 1.0], [0.0, 0.0]])
        after = np.zeros((3, 2))

        report = evaluate_noise_reduction(before, after)

        assert report.non_finite_channels == [0, 1]
        assert report.zero_power_channels == [2]
        assert report.reduction_pct[2] == 0.0

    def test_finite_data_has_no_non_finite_flag(self):
        """Test ordinary data leaves the non-finite list empty."""
        report = evaluate_noise_reduction(np.ones((2, 4)), np.zeros((2, 4)))

        assert report.non_finite_channels == []

    def test_one_dimensional_input(self):
        """Test 1-D inputs are treated as a single channel."""
        report = evaluate_noise_reduction(np.ones(5), np.zeros(5))

        np.testing.assert_allclose(report.reduction_pct, [100.0])

    def test_as_tuple(self):
        """Test as_tuple returns reduction, power before and power after."""
        report = evaluate_noise_reduction(np.ones((1, 4)), np.full((1, 4), 0.5))

        reduction, p_before, p_after = report.as_tuple()

        assert reduction is report.reduction_pct
        assert p_before is report.power_before
        assert p_after is report.power_after

    def test_channel_count_mismatch(self):
        """Test DimensionMismatch carries both channel counts."""
        with pytest.raises(DimensionMismatch) as exc_info:
            evaluate_noise_reduction(np.ones((2, 5)), np.ones((3, 5)))

        assert exc_info.value.parameter == "n_channels"
        assert exc_info.value.value == (2, 3)

    def test_sample_count_mismatch(self):
        """Test DimensionMismatch carries both sample counts."""
        with pytest.raises(DimensionMismatch) as exc_info:
            evaluate_noise_reduction(np.ones((2, 5)), np.ones((2, 4)))

        assert exc_info.value.parameter == "n_samples"
        assert exc_info.value.value == (5, 4)


class TestReferenceCorrelation:
    """Tests for reference_correlation."""

    def test_scaled_reference(self):
        """Test a channel that is a scaled reference has correlation 1."""
        refs = np.random.default_rng(1).standard_normal((2, 200))
        data = np.vstack([-3.0 * refs[1], refs[0] + 1.0])

        corr = reference_correlation(data, refs)

        np.testing.assert_allclose(corr, [1.0, 1.0])

    def test_constant_channel(self):
        """Test a constant channel counts as uncorrelated."""
        refs = np.random.default_rng(2).standard_normal((1, 50))

        corr = reference_correlation(np.full((1, 50), 4.0), refs)

        np.testing.assert_array_equal(corr, [0.0])

    def test_sample_count_mismatch(self):
        """Test mismatched lengths raise DimensionMismatch."""
        with pytest.raises(DimensionMismatch):
            reference_correlation(np.ones((1, 10)), np.ones((1, 9)))


class TestSamplesToThreshold:
    """Tests for the convergence check."""

    def test_perfect_tracking(self):
        """Test identical signals reach the threshold in the first window."""
        t = np.arange(1000) / 1000.0
        truth = np.sin(2 * np.pi * 10 * t)

        assert samples_to_threshold(truth, truth, window=100) == 100

    def test_start_offset(self):
        """Test windows begin at start."""
        t = np.arange(1000) / 1000.0
        truth = np.sin(2 * np.pi * 10 * t)

        assert samples_to_threshold(truth, truth, window=100, start=9) == 109

    def test_late_convergence(self):
        """Test the first matching window is the one returned."""
        t = np.arange(1000) / 1000.0
        truth = np.sin(2 * np.pi * 10 * t)
        filtered = truth.copy()
        filtered[:500] = np.random.default_rng(3).standard_normal(500)

        assert samples_to_threshold(filtered, truth, window=100) == 600

    def test_never_reached(self):
        """Test None when no window reaches the threshold."""
        rng = np.random.default_rng(4)

        assert samples_to_threshold(rng.standard_normal(500), rng.standard_normal(500), window=50) is None

    def test_invalid_window(self):
        """Test windows shorter than two samples are rejected."""
        with pytest.raises(ValueError, match="window"):
            samples_to_threshold(np.ones(10), np.ones(10), window=1)

    def test_length_mismatch(self):
        """Test mismatched lengths raise DimensionMismatch."""
        with pytest.raises(DimensionMismatch):
            samples_to_threshold(np.ones(10), np.ones(11))
