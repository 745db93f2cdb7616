"""
Proportion and cumulative variance explained by principal components.
"""

import logging
from dataclasses import dataclass
from typing import List

import numpy as np
import pandas as pd

from pcaengine.errors import DegenerateInputError, NumericalInstabilityError
from pcaengine.math.eigen import ComponentSet

logger = logging.getLogger(__name__)

# Relative tolerance on the final cumulative value
CVE_TOLERANCE = 1e-9


@dataclass(frozen=True)
class VarianceReport:
    """Per-component PVE and running CVE, indexed by component rank."""
    eigenvalues: np.ndarray
    pve: np.ndarray
    cve: np.ndarray
    total_variance: float
    labels: List[str]

    def to_frame(self) -> pd.DataFrame:
        """
        Tabulate the report with one row per component.

        Returns:
            DataFrame indexed by component label with eigenvalue, pve and
            cve columns
        """
        return pd.DataFrame(
            {'eigenvalue': self.eigenvalues, 'pve': self.pve, 'cve': self.cve},
            index=self.labels,
        )


def proportion_explained(eigenvalues: np.ndarray) -> np.ndarray:
    """
    PVE of each component: its eigenvalue over the sum of all eigenvalues.

    Args:
        eigenvalues: Non-negative eigenvalues

    Returns:
        Array of proportions summing to 1

    Raises:
        DegenerateInputError: If the eigenvalues sum to zero
    """
    total = float(np.sum(eigenvalues))
    if total <= 0:
        raise DegenerateInputError("Total variance is zero; no component explains anything")
    return np.asarray(eigenvalues, dtype=float) / total


def cumulative_explained(pve: np.ndarray) -> np.ndarray:
    """
    Running sum of PVE.

    The last value is pinned to exactly 1.0 after checking that rounding
    drift is within CVE_TOLERANCE.

    Args:
        pve: Proportions in component rank order

    Returns:
        Non-decreasing array ending at 1.0

    Raises:
        NumericalInstabilityError: If the proportions do not sum to 1
    """
    cve = np.cumsum(pve)
    if abs(cve[-1] - 1.0) > CVE_TOLERANCE:
        raise NumericalInstabilityError(
            f"Cumulative variance explained ends at {cve[-1]:.12g}, not 1.0"
        )
    cve[-1] = 1.0
    # Clip rounding overshoot so the sequence never exceeds its final value
    return np.minimum(cve, 1.0)


def analyze(components: ComponentSet) -> VarianceReport:
    """
    Derive the variance report for a component set.

    Args:
        components: Components from decompose

    Returns:
        VarianceReport with eigenvalues, PVE, CVE and total variance
    """
    eigenvalues = components.eigenvalues
    pve = proportion_explained(eigenvalues)
    cve = cumulative_explained(pve)
    total = float(np.sum(eigenvalues))

    logger.info(
        f"Total variance {total:.4g}; first component explains {pve[0] * 100:.2f}%"
    )

    return VarianceReport(
        eigenvalues=eigenvalues,
        pve=pve,
        cve=cve,
        total_variance=total,
        labels=components.labels,
    )
