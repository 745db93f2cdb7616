"""
Covariance and correlation estimation for PCA.

The dispersion matrix is the input to the eigensolver. Both estimators
work on column-centered data.
"""

import logging
from dataclasses import dataclass
from typing import List, Any, Union

import numpy as np

from pcaengine.errors import InvalidInputError, DegenerateInputError
from pcaengine.math.named_matrix import NamedMatrix
from pcaengine.math.preprocess import PreprocessedMatrix, validate_dataset

logger = logging.getLogger(__name__)

COVARIANCE = 'covariance'
CORRELATION = 'correlation'
DISPERSION_KINDS = (COVARIANCE, CORRELATION)


@dataclass(frozen=True)
class DispersionMatrix:
    """A p x p symmetric covariance or correlation matrix over named features."""
    values: np.ndarray
    features: List[Any]
    kind: str
    n_samples: int

    @property
    def size(self) -> int:
        return len(self.features)

    def to_named_matrix(self) -> NamedMatrix:
        """Return the matrix with features as both row and column names."""
        return NamedMatrix(self.values, self.features, self.features)


def mirror_upper(m: np.ndarray) -> np.ndarray:
    """
    Build a symmetric matrix from the upper triangle (diagonal included) of m.

    Args:
        m: Square matrix

    Returns:
        Matrix whose lower triangle is the transpose of m's upper triangle
    """
    upper = np.triu(m)
    return upper + np.triu(m, k=1).T


def covariance_matrix(centered: np.ndarray) -> np.ndarray:
    """
    Sample covariance (1/(n-1)) X^T X of column-centered data.

    Args:
        centered: n x p centered data

    Returns:
        p x p symmetric covariance matrix
    """
    n_rows = centered.shape[0]
    return mirror_upper(centered.T @ centered / (n_rows - 1))


def correlation_from_covariance(cov: np.ndarray, features: List[Any]) -> np.ndarray:
    """
    Divide each covariance entry by the product of the two standard deviations.

    Args:
        cov: Symmetric covariance matrix
        features: Feature names, used in error messages

    Returns:
        Symmetric correlation matrix with a unit diagonal

    Raises:
        DegenerateInputError: If a feature has zero variance
    """
    variances = np.diag(cov)
    zero = [name for name, v in zip(features, variances) if v <= 0]
    if zero:
        raise DegenerateInputError(
            f"Correlation undefined for zero-variance columns: {zero}"
        )

    sd = np.sqrt(variances)
    corr = mirror_upper(cov / np.outer(sd, sd))
    np.fill_diagonal(corr, 1.0)
    return corr


def dispersion(matrix: Union[PreprocessedMatrix, NamedMatrix],
               kind: str = CORRELATION) -> DispersionMatrix:
    """
    Compute the covariance or correlation matrix of centered data.

    Args:
        matrix: PreprocessedMatrix, or a raw NamedMatrix (centered here)
        kind: 'covariance' or 'correlation'

    Returns:
        DispersionMatrix over the matrix's features

    Raises:
        InvalidInputError: Unknown kind or malformed data
        DegenerateInputError: Zero-variance column in correlation mode
    """
    if kind not in DISPERSION_KINDS:
        raise InvalidInputError(
            f"Unknown dispersion kind: {kind}. Expected one of {DISPERSION_KINDS}"
        )

    nmat = matrix.matrix if isinstance(matrix, PreprocessedMatrix) else matrix
    values = validate_dataset(nmat)
    if np.any(np.isnan(values)):
        raise InvalidInputError("Cannot estimate dispersion with missing values")

    if not isinstance(matrix, PreprocessedMatrix):
        values = values - values.mean(axis=0)

    features = nmat.colnames()
    cov = covariance_matrix(values)

    if kind == CORRELATION:
        result = correlation_from_covariance(cov, features)
    else:
        result = cov

    logger.info(f"Computed {len(features)}x{len(features)} {kind} matrix from {values.shape[0]} samples")

    return DispersionMatrix(
        values=result,
        features=features,
        kind=kind,
        n_samples=values.shape[0],
    )
