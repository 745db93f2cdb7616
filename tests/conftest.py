"""
Shared fixtures for the pcaengine tests.
"""

import numpy as np
import pandas as pd
import pytest

from pcaengine.components.config import ConfigManager


def random_orthogonal(p: int, seed: int = 0) -> np.ndarray:
    """Random p x p orthogonal matrix from a QR factorization."""
    rng = np.random.RandomState(seed)
    q, r = np.linalg.qr(rng.randn(p, p))
    return q * np.sign(np.diag(r))


def matrix_with_spectrum(eigenvalues, seed: int = 0) -> np.ndarray:
    """Symmetric matrix Q diag(eigenvalues) Q^T for a random orthogonal Q."""
    eigenvalues = np.asarray(eigenvalues, dtype=float)
    q = random_orthogonal(len(eigenvalues), seed)
    m = q @ np.diag(eigenvalues) @ q.T
    return np.triu(m) + np.triu(m, k=1).T


@pytest.fixture
def feature_frame():
    """100 samples of 5 correlated features with distinct names and scales."""
    rng = np.random.RandomState(7)
    latent = rng.randn(100, 2)
    data = {
        'height': 170 + 10 * latent[:, 0] + rng.randn(100),
        'weight': 70 + 8 * latent[:, 0] + 2 * rng.randn(100),
        'income': 5e4 + 1e4 * latent[:, 1] + 1e3 * rng.randn(100),
        'savings': 1e4 + 3e3 * latent[:, 1] + 5e2 * rng.randn(100),
        'noise': rng.randn(100),
    }
    return pd.DataFrame(data, index=[f"s{i}" for i in range(100)])


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Keep PCA_* variables and the shared config out of every test."""
    for name in ('PCA_STANDARDIZE', 'PCA_IMPUTE_MISSING', 'PCA_DISPERSION_KIND',
                 'PCA_CVE_THRESHOLD', 'PCA_EIGEN_METHOD', 'PCA_SIGN_CONVENTION',
                 'LOG_LEVEL'):
        monkeypatch.delenv(name, raising=False)
    ConfigManager.reset()
    yield
    ConfigManager.reset()
