"""
Column preprocessing for PCA.

Imputes missing entries, centers each column to zero mean and optionally
scales each column to unit sample variance.
"""

import logging
from dataclasses import dataclass
from typing import List, Any, Optional

import numpy as np

from pcaengine.errors import InvalidInputError, DegenerateInputError
from pcaengine.math.named_matrix import NamedMatrix, as_named_matrix

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PreprocessedMatrix:
    """A centered (and possibly scaled) dataset plus the parameters used."""
    matrix: NamedMatrix
    center: np.ndarray
    scale: np.ndarray
    fill_values: Optional[np.ndarray]
    standardized: bool
    imputed: bool

    @property
    def features(self) -> List[Any]:
        return self.matrix.colnames()

    @property
    def values(self) -> np.ndarray:
        return self.matrix.values

    @property
    def n_samples(self) -> int:
        return self.matrix.shape[0]


def numeric_values(nmat: NamedMatrix) -> np.ndarray:
    """
    Extract the values of a matrix as a float array.

    Args:
        nmat: Matrix to convert

    Returns:
        Float copy of the matrix values (NaN preserved)

    Raises:
        InvalidInputError: If the values are not numeric or contain infinities
    """
    try:
        values = np.array(nmat.values, dtype=float)
    except (ValueError, TypeError) as e:
        raise InvalidInputError(f"Matrix contains non-numeric values: {e}") from e

    if np.any(np.isinf(values)):
        raise InvalidInputError("Matrix contains infinite values")

    return values


def validate_dataset(nmat: NamedMatrix) -> np.ndarray:
    """
    Check the shape invariants of a dataset and return its float values.

    Args:
        nmat: Dataset to check

    Returns:
        Float array of the dataset values

    Raises:
        InvalidInputError: If there are fewer than 2 rows or no columns
    """
    n_rows, n_cols = nmat.shape
    if n_cols < 1:
        raise InvalidInputError("Dataset has no feature columns")
    if n_rows < 2:
        raise InvalidInputError(f"Dataset needs at least 2 samples, got {n_rows}")
    return numeric_values(nmat)


def column_means(values: np.ndarray, colnames: List[Any]) -> np.ndarray:
    """
    Mean of each column over its non-missing entries.

    Args:
        values: Float matrix possibly containing NaN
        colnames: Column names, used in error messages

    Returns:
        Array of column means

    Raises:
        InvalidInputError: If a column has no observed entries
    """
    observed = ~np.isnan(values)
    empty = [name for name, has_any in zip(colnames, observed.any(axis=0)) if not has_any]
    if empty:
        raise InvalidInputError(f"Columns are entirely missing: {empty}")

    counts = observed.sum(axis=0)
    return np.where(observed, values, 0.0).sum(axis=0) / counts


def impute_column_means(values: np.ndarray, fill_values: np.ndarray) -> np.ndarray:
    """
    Replace NaN entries in each column with that column's fill value.

    Args:
        values: Float matrix possibly containing NaN
        fill_values: One value per column

    Returns:
        New matrix with no missing entries
    """
    missing = np.isnan(values)
    return np.where(missing, fill_values[np.newaxis, :], values)


def preprocess(matrix: Any,
               standardize: bool = True,
               impute_missing: bool = False) -> PreprocessedMatrix:
    """
    Impute, center and optionally standardize each column of a dataset.

    Args:
        matrix: Dataset as a NamedMatrix, DataFrame or 2-D array
        standardize: Divide each centered column by its sample standard deviation
        impute_missing: Replace missing entries with the column mean first

    Returns:
        PreprocessedMatrix with the transformed values and the per-column
        center, scale and fill values

    Raises:
        InvalidInputError: Malformed input, entirely-missing columns, or
            missing entries when imputation is disabled
        DegenerateInputError: A constant column when standardizing
    """
    nmat = as_named_matrix(matrix)
    values = validate_dataset(nmat)
    colnames = nmat.colnames()

    fill_values = None
    if impute_missing:
        fill_values = column_means(values, colnames)
        n_missing = int(np.isnan(values).sum())
        values = impute_column_means(values, fill_values)
        logger.debug(f"Imputed {n_missing} missing entries with column means")
    elif np.any(np.isnan(values)):
        missing_cols = [name for name, col in zip(colnames, np.isnan(values).any(axis=0)) if col]
        raise InvalidInputError(
            f"Missing values in columns {missing_cols}; enable impute_missing to fill them"
        )

    n_rows = values.shape[0]
    center = values.mean(axis=0)
    centered = values - center

    if standardize:
        # A constant column has zero range even when rounding leaves tiny residuals
        constant = np.ptp(values, axis=0) == 0
        scale = np.sqrt((centered ** 2).sum(axis=0) / (n_rows - 1))
        degenerate = [name for name, c, s in zip(colnames, constant, scale) if c or s == 0]
        if degenerate:
            raise DegenerateInputError(
                f"Cannot standardize zero-variance columns: {degenerate}"
            )
        centered = centered / scale
    else:
        scale = np.ones(values.shape[1])

    logger.info(
        f"Preprocessed {n_rows}x{values.shape[1]} matrix "
        f"(standardize={standardize}, impute_missing={impute_missing})"
    )

    return PreprocessedMatrix(
        matrix=nmat.with_values(centered),
        center=center,
        scale=scale,
        fill_values=fill_values,
        standardized=standardize,
        imputed=impute_missing,
    )


def transform(matrix: Any, prep: PreprocessedMatrix) -> NamedMatrix:
    """
    Apply a fitted preprocessing to new rows.

    Columns are aligned to the fitted feature order by name. Missing entries
    are filled with the fitted column means when the fit imputed.

    Args:
        matrix: New data with (at least) the fitted feature columns
        prep: Result of a previous preprocess call

    Returns:
        NamedMatrix of centered (and scaled) values in fitted feature order

    Raises:
        InvalidInputError: Missing feature columns, or missing entries
            that the fit would not impute
    """
    nmat = as_named_matrix(matrix)
    features = prep.features

    absent = [f for f in features if f not in nmat.get_col_index()]
    if absent:
        raise InvalidInputError(f"Data is missing feature columns: {absent}")

    aligned = nmat.colname_subset(features)
    values = numeric_values(aligned)

    if np.any(np.isnan(values)):
        if prep.fill_values is None:
            raise InvalidInputError("Missing values in data and the fit did not impute")
        values = impute_column_means(values, prep.fill_values)

    return aligned.with_values((values - prep.center) / prep.scale)
