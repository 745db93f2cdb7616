"""
pcaengine package for Principal Components Analysis.

Standardizes a named numeric dataset, estimates its covariance or
correlation matrix, decomposes it into principal components and reports
the variance each component explains together with retention criteria.
"""

__version__ = '0.1.0'

from pcaengine.errors import (
    PCAError,
    InvalidInputError,
    DegenerateInputError,
    NumericalInstabilityError,
    ThresholdUnreachableError,
)
from pcaengine.components.config import Config, ConfigManager
from pcaengine.pipeline import PCAResult, run_pca, project, save_result_to_json
