"""
Tests for variance-explained analysis.
"""

import pytest
import numpy as np

from pcaengine.errors import DegenerateInputError, NumericalInstabilityError
from pcaengine.math.preprocess import preprocess
from pcaengine.math.dispersion import dispersion, COVARIANCE
from pcaengine.math.eigen import decompose
from pcaengine.math.variance import analyze, proportion_explained, cumulative_explained


class TestAnalyze:
    """Tests for analyze on real decompositions."""

    def test_pve_over_p_for_standardized_input(self, feature_frame):
        """Test that PVE is eigenvalue over p for correlation input."""
        report = analyze(decompose(dispersion(preprocess(feature_frame))))

        assert report.total_variance == pytest.approx(5.0, rel=1e-6)
        assert np.allclose(report.pve, report.eigenvalues / 5.0)

    def test_cve_monotone_and_ends_at_one(self, feature_frame):
        """Test that CVE never decreases and ends at one."""
        report = analyze(decompose(dispersion(preprocess(feature_frame))))

        assert np.all(np.diff(report.cve) >= 0)
        assert report.cve[-1] == 1.0
        assert np.allclose(report.cve, np.cumsum(report.pve))

    def test_covariance_total_is_trace(self, feature_frame):
        """Test that total covariance variance is the trace."""
        disp = dispersion(preprocess(feature_frame, standardize=False), kind=COVARIANCE)
        report = analyze(decompose(disp))

        assert report.total_variance == pytest.approx(np.trace(disp.values), rel=1e-9)
        assert report.cve[-1] == 1.0

    def test_to_frame(self, feature_frame):
        """Test the variance report DataFrame."""
        report = analyze(decompose(dispersion(preprocess(feature_frame))))
        frame = report.to_frame()

        assert list(frame.index) == ['PC1', 'PC2', 'PC3', 'PC4', 'PC5']
        assert list(frame.columns) == ['eigenvalue', 'pve', 'cve']
        assert frame['pve'].sum() == pytest.approx(1.0)


class TestSequences:
    """Tests for the PVE and CVE helpers."""

    def test_proportion_explained(self):
        """Test proportions from raw eigenvalues."""
        pve = proportion_explained(np.array([3.0, 1.0, 0.0]))
        assert np.allclose(pve, [0.75, 0.25, 0.0])

    def test_zero_total_variance(self):
        """Test rejecting a zero total variance."""
        with pytest.raises(DegenerateInputError):
            proportion_explained(np.zeros(3))

    def test_cumulative_explained(self):
        """Test cumulative proportions."""
        cve = cumulative_explained(np.array([0.40, 0.25, 0.13, 0.12, 0.10]))
        assert np.allclose(cve, [0.40, 0.65, 0.78, 0.90, 1.0])
        assert cve[-1] == 1.0

    def test_cumulative_rounding_is_pinned(self):
        """Test pinning a final CVE within rounding to exactly one."""
        pve = np.full(10, 0.1)
        cve = cumulative_explained(pve)
        assert cve[-1] == 1.0
        assert np.all(cve <= 1.0)

    def test_cumulative_drift_rejected(self):
        """Test rejecting a final CVE far from one."""
        with pytest.raises(NumericalInstabilityError):
            cumulative_explained(np.array([0.5, 0.4]))
