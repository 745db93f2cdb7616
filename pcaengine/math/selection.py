"""
Component retention criteria.

Three criteria are reported side by side:

- Eigenvalue (Kaiser) criterion: keep components with eigenvalue >= 1.
  The average eigenvalue of a correlation matrix is 1, so this is only
  meaningful for correlation input. It is not validated here; applying it
  to a covariance matrix is a caller error.
- CVE criterion: keep the fewest leading components whose cumulative
  variance explained reaches a threshold.
- Scree criterion: left to the caller. The ordered eigenvalue, PVE and CVE
  sequences are returned for inspection or plotting; no elbow is inferred.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np

from pcaengine.errors import InvalidInputError, ThresholdUnreachableError
from pcaengine.math.dispersion import CORRELATION
from pcaengine.math.eigen import ComponentSet
from pcaengine.math.variance import VarianceReport

logger = logging.getLogger(__name__)

KAISER_CUTOFF = 1.0
DEFAULT_CVE_THRESHOLD = 0.75

# Absorbs rounding when a cumulative sum lands just under the threshold
THRESHOLD_SLACK = 1e-12


@dataclass(frozen=True)
class SelectionResult:
    """
    Recommended component counts plus the raw scree sequences.

    scree_count is always None: no elbow is inferred, and callers read it
    off the eigenvalues or pve instead. The sequences are read-only copies.
    """
    eigenvalue_count: int
    cve_count: int
    cve_threshold: float
    eigenvalues: np.ndarray
    pve: np.ndarray
    cve: np.ndarray
    scree_count: Optional[int] = None


def read_only(values: Sequence[float]) -> np.ndarray:
    """Float copy of values that cannot be written to."""
    copy = np.array(values, dtype=float)
    copy.setflags(write=False)
    return copy


def kaiser_count(eigenvalues: Sequence[float], cutoff: float = KAISER_CUTOFF) -> int:
    """
    Number of eigenvalues greater than or equal to the cutoff.

    Args:
        eigenvalues: Eigenvalues (any order)
        cutoff: Minimum eigenvalue to retain

    Returns:
        Count of retained components
    """
    return int(np.sum(np.asarray(eigenvalues, dtype=float) >= cutoff))


def cve_count(cve: Sequence[float], threshold: float = DEFAULT_CVE_THRESHOLD) -> int:
    """
    Smallest 1-based rank whose cumulative variance explained meets the threshold.

    Args:
        cve: Non-decreasing cumulative proportions ending at 1.0
        threshold: Target proportion in (0, 1]

    Returns:
        Number of leading components to retain

    Raises:
        ThresholdUnreachableError: If threshold > 1
        InvalidInputError: If threshold is not a finite number in (0, 1],
            or cve is empty
    """
    if not np.isfinite(threshold):
        raise InvalidInputError(f"CVE threshold must be a finite number, got {threshold}")
    if threshold > 1.0:
        raise ThresholdUnreachableError(
            f"CVE threshold {threshold} exceeds 1.0 and can never be reached"
        )
    if threshold <= 0.0:
        raise InvalidInputError(f"CVE threshold must be in (0, 1], got {threshold}")

    cve = np.asarray(cve, dtype=float)
    if cve.size == 0:
        raise InvalidInputError("CVE sequence is empty")

    reached = np.nonzero(cve >= threshold - THRESHOLD_SLACK)[0]
    if reached.size == 0:
        # A valid report ends at 1.0, so only a truncated sequence lands here
        raise ThresholdUnreachableError(
            f"CVE sequence peaks at {cve[-1]:.6g} and never reaches {threshold}"
        )
    return int(reached[0]) + 1


def select(components: ComponentSet,
           report: VarianceReport,
           cve_threshold: float = DEFAULT_CVE_THRESHOLD) -> SelectionResult:
    """
    Apply the retention criteria to a decomposition.

    Args:
        components: Components from decompose
        report: Variance report from analyze
        cve_threshold: Target cumulative proportion in (0, 1]

    Returns:
        SelectionResult with both counts and the raw sequences
    """
    if components.kind != CORRELATION:
        logger.debug(
            f"Eigenvalue criterion applied to a {components.kind} matrix; "
            f"the >= {KAISER_CUTOFF} cutoff assumes correlation input"
        )

    by_eigenvalue = kaiser_count(report.eigenvalues)
    by_cve = cve_count(report.cve, cve_threshold)

    logger.info(
        f"Eigenvalue criterion keeps {by_eigenvalue} components; "
        f"CVE >= {cve_threshold} keeps {by_cve}"
    )

    return SelectionResult(
        eigenvalue_count=by_eigenvalue,
        cve_count=by_cve,
        cve_threshold=cve_threshold,
        eigenvalues=read_only(report.eigenvalues),
        pve=read_only(report.pve),
        cve=read_only(report.cve),
    )
