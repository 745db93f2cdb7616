"""
Symmetric eigendecomposition of a dispersion matrix.

Two solvers are provided: a direct symmetric solver (scipy.linalg.eigh) and
a power iteration with deflation for callers that want an iterative method.
Both return components ordered by descending eigenvalue.

Eigenvector sign is arbitrary: v and -v describe the same component, and
which one a solver returns is an implementation detail. Callers must not
attach meaning to the sign of a loading unless they opt in to a sign
convention.
"""

import logging
from dataclasses import dataclass
from typing import Iterator, List, Optional, Tuple, Any

import numpy as np
import pandas as pd
import scipy.linalg

from pcaengine.errors import InvalidInputError, NumericalInstabilityError
from pcaengine.math.dispersion import DispersionMatrix

logger = logging.getLogger(__name__)

EIGH = 'eigh'
POWER = 'power'
EIGEN_METHODS = (EIGH, POWER)

MAX_ABS_POSITIVE = 'max_abs_positive'
SIGN_CONVENTIONS = (None, MAX_ABS_POSITIVE)


@dataclass(frozen=True)
class Component:
    """One principal component: its rank (1-based), eigenvalue and loadings."""
    rank: int
    eigenvalue: float
    loadings: np.ndarray

    @property
    def label(self) -> str:
        return f"PC{self.rank}"


@dataclass(frozen=True)
class ComponentSet:
    """
    All p components of a dispersion matrix in descending eigenvalue order.

    Loadings are indexed in the order of ``features``.
    """
    components: Tuple[Component, ...]
    features: List[Any]
    kind: str

    def __len__(self) -> int:
        return len(self.components)

    def __iter__(self) -> Iterator[Component]:
        return iter(self.components)

    def __getitem__(self, idx: int) -> Component:
        return self.components[idx]

    @property
    def eigenvalues(self) -> np.ndarray:
        return np.array([c.eigenvalue for c in self.components])

    @property
    def vectors(self) -> np.ndarray:
        """p x p matrix whose i-th column is the i-th eigenvector."""
        return np.column_stack([c.loadings for c in self.components])

    @property
    def labels(self) -> List[str]:
        return [c.label for c in self.components]

    def loadings_frame(self) -> pd.DataFrame:
        """
        Loadings as a DataFrame: one row per feature, one column per component.
        """
        return pd.DataFrame(self.vectors, index=list(self.features), columns=self.labels)

    def reconstruct(self, n_components: Optional[int] = None) -> np.ndarray:
        """
        Rebuild the dispersion matrix as sum of eigenvalue * v v^T.

        Args:
            n_components: Use only the leading components (defaults to all)

        Returns:
            p x p matrix
        """
        comps = self.components[:n_components]
        p = len(self.features)
        result = np.zeros((p, p))
        for comp in comps:
            result += comp.eigenvalue * np.outer(comp.loadings, comp.loadings)
        return result


def normalize_vector(v: np.ndarray) -> np.ndarray:
    """
    Normalize a vector to unit length.

    Args:
        v: Vector to normalize

    Returns:
        Normalized vector (the zero vector is returned unchanged)
    """
    norm = np.linalg.norm(v)
    if norm == 0:
        return v
    return v / norm


def orthogonalize(v: np.ndarray, basis: List[np.ndarray]) -> np.ndarray:
    """
    Remove from v its projection onto each unit vector in basis.

    Args:
        v: Vector to orthogonalize
        basis: Orthonormal vectors

    Returns:
        Component of v orthogonal to the span of basis
    """
    for b in basis:
        v = v - np.dot(b, v) * b
    return v


def check_dispersion_values(values: np.ndarray) -> np.ndarray:
    """
    Validate that a matrix is square, finite and symmetric.

    Args:
        values: Candidate dispersion matrix

    Returns:
        The matrix as a float array

    Raises:
        InvalidInputError: If any check fails
    """
    values = np.asarray(values, dtype=float)
    if values.ndim != 2 or values.shape[0] != values.shape[1] or values.shape[0] == 0:
        raise InvalidInputError(f"Dispersion matrix must be square and non-empty, got {values.shape}")
    if not np.all(np.isfinite(values)):
        raise InvalidInputError("Dispersion matrix contains non-finite values")
    scale = max(1.0, np.max(np.abs(values)))
    if not np.allclose(values, values.T, rtol=0.0, atol=1e-12 * scale):
        raise InvalidInputError("Dispersion matrix is not symmetric")
    return values


def default_tolerance(eigenvalues: np.ndarray) -> float:
    """
    Tolerance below which an eigenvalue is treated as zero.

    Scales with the spectrum magnitude and the matrix size.
    """
    magnitude = max(1.0, float(np.max(np.abs(eigenvalues))))
    return 1e-10 * magnitude * len(eigenvalues)


def eigh_decompose(values: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """
    Eigendecompose a symmetric matrix with LAPACK's symmetric driver.

    Args:
        values: Symmetric matrix

    Returns:
        Tuple of (eigenvalues, eigenvectors as columns) in solver order
    """
    eigenvalues, eigenvectors = scipy.linalg.eigh(values)
    return eigenvalues, eigenvectors


def power_iteration(matrix: np.ndarray,
                    iters: int = 1000,
                    start_vector: Optional[np.ndarray] = None,
                    convergence_threshold: float = 1e-12,
                    basis: Optional[List[np.ndarray]] = None) -> Tuple[float, np.ndarray]:
    """
    Find the dominant eigenpair of a symmetric matrix by power iteration.

    Each step multiplies by the matrix, re-orthogonalizes against the
    already-found vectors in ``basis`` and normalizes. Iteration stops when
    successive vectors agree in direction to within the threshold.

    Args:
        matrix: Symmetric matrix
        iters: Maximum number of iterations
        start_vector: Initial vector (defaults to a seeded random vector)
        convergence_threshold: Stop when 1 - |<v_k, v_k+1>| falls below this
        basis: Orthonormal vectors to stay orthogonal to

    Returns:
        Tuple of (Rayleigh quotient eigenvalue, unit eigenvector)
    """
    n_cols = matrix.shape[1]
    basis = basis or []

    if start_vector is None:
        rng = np.random.RandomState(42)
        start_vector = rng.rand(n_cols)

    vec = normalize_vector(orthogonalize(np.asarray(start_vector, dtype=float), basis))

    # Start vector collapsed into the span of basis: fall back to unit axes
    if np.linalg.norm(vec) == 0:
        for j in range(n_cols):
            candidate = normalize_vector(orthogonalize(np.eye(n_cols)[j], basis))
            if np.linalg.norm(candidate) > 0.5:
                vec = candidate
                break

    for i in range(iters):
        product = orthogonalize(matrix @ vec, basis)
        norm = np.linalg.norm(product)

        # Remaining subspace is annihilated by the matrix
        if norm < convergence_threshold:
            logger.debug(f"Power iteration hit a null direction at step {i}")
            break

        normed = product / norm
        similarity = abs(np.dot(normed, vec))
        vec = normed
        if similarity > 1.0 - convergence_threshold:
            logger.debug(f"Power iteration converged after {i + 1} steps")
            break
    else:
        logger.warning(
            f"Power iteration stopped at {iters} steps without converging; "
            f"eigenvalues may be near-tied, consider the eigh method"
        )

    eigenvalue = float(vec @ matrix @ vec)
    return eigenvalue, vec


def power_decompose(values: np.ndarray,
                    iters: int = 1000,
                    convergence_threshold: float = 1e-12) -> Tuple[np.ndarray, np.ndarray]:
    """
    Full eigendecomposition by repeated power iteration and Hotelling deflation.

    Converges reliably only when eigenvalues are well separated; use the
    direct solver for spectra with near-ties.

    Args:
        values: Symmetric matrix
        iters: Maximum iterations per component
        convergence_threshold: Passed to power_iteration

    Returns:
        Tuple of (eigenvalues, eigenvectors as columns) in discovery order
    """
    p = values.shape[0]
    deflated = values.copy()
    eigenvalues = []
    vectors = []

    for _ in range(p):
        eigval, vec = power_iteration(
            deflated, iters=iters,
            convergence_threshold=convergence_threshold,
            basis=vectors,
        )
        eigenvalues.append(eigval)
        vectors.append(vec)
        deflated = deflated - eigval * np.outer(vec, vec)

    return np.array(eigenvalues), np.column_stack(vectors)


def order_components(eigenvalues: np.ndarray, tie_tolerance: float = 0.0) -> List[int]:
    """
    Indices that sort eigenvalues in descending order.

    Eigenvalues within tie_tolerance of their neighbour are treated as equal
    and keep ascending solver index order.

    Args:
        eigenvalues: Eigenvalues in solver order
        tie_tolerance: Absolute tolerance for treating values as tied (exact
            ties only by default, which keeps the result strictly non-increasing)

    Returns:
        List of solver indices in component rank order
    """
    order = list(np.lexsort((np.arange(len(eigenvalues)), -eigenvalues)))

    result = []
    run = [order[0]]
    for idx in order[1:]:
        if eigenvalues[run[-1]] - eigenvalues[idx] <= tie_tolerance:
            run.append(idx)
        else:
            result.extend(sorted(run))
            run = [idx]
    result.extend(sorted(run))
    return [int(i) for i in result]


def clamp_eigenvalues(eigenvalues: np.ndarray, tolerance: float) -> np.ndarray:
    """
    Set slightly negative eigenvalues to exactly zero.

    Args:
        eigenvalues: Raw eigenvalues
        tolerance: Magnitude below which a negative value counts as rounding

    Returns:
        Eigenvalues with no negative entries

    Raises:
        NumericalInstabilityError: If an eigenvalue is below -tolerance
    """
    most_negative = float(np.min(eigenvalues))
    if most_negative < -tolerance:
        raise NumericalInstabilityError(
            f"Dispersion matrix is not positive semi-definite: eigenvalue "
            f"{most_negative:.6g} is below tolerance -{tolerance:.3g}"
        )

    clamped = np.where(eigenvalues < 0, 0.0, eigenvalues)
    n_clamped = int(np.sum(eigenvalues < 0))
    if n_clamped:
        logger.debug(f"Clamped {n_clamped} negative eigenvalues to zero")
    return clamped


def apply_sign_convention(vec: np.ndarray, convention: Optional[str]) -> np.ndarray:
    """
    Optionally flip an eigenvector to a deterministic sign.

    Args:
        vec: Unit eigenvector
        convention: None (leave as returned) or 'max_abs_positive' (make the
            largest-magnitude loading positive; first one wins on ties)

    Returns:
        The vector, possibly negated
    """
    if convention is None:
        return vec
    if vec[int(np.argmax(np.abs(vec)))] < 0:
        return -vec
    return vec


def decompose(dispersion: DispersionMatrix,
              method: str = EIGH,
              sign_convention: Optional[str] = None,
              tolerance: Optional[float] = None,
              iters: int = 1000,
              convergence_threshold: float = 1e-12) -> ComponentSet:
    """
    Decompose a dispersion matrix into principal components.

    Args:
        dispersion: Symmetric covariance or correlation matrix
        method: 'eigh' (direct symmetric solver) or 'power' (power iteration)
        sign_convention: None or 'max_abs_positive'
        tolerance: Zero tolerance for eigenvalues (defaults to a value scaled
            to the spectrum)
        iters: Maximum iterations per component for the power method
        convergence_threshold: Convergence threshold for the power method

    Returns:
        ComponentSet with p components in descending eigenvalue order

    Raises:
        InvalidInputError: Bad matrix, method or sign convention
        NumericalInstabilityError: A clearly negative eigenvalue
    """
    if method not in EIGEN_METHODS:
        raise InvalidInputError(f"Unknown eigen method: {method}. Expected one of {EIGEN_METHODS}")
    if sign_convention not in SIGN_CONVENTIONS:
        raise InvalidInputError(
            f"Unknown sign convention: {sign_convention}. Expected one of {SIGN_CONVENTIONS}"
        )

    values = check_dispersion_values(dispersion.values)
    if values.shape[0] != len(dispersion.features):
        raise InvalidInputError(
            f"Dispersion matrix has {values.shape[0]} rows but {len(dispersion.features)} feature names"
        )

    if method == EIGH:
        eigenvalues, eigenvectors = eigh_decompose(values)
    else:
        eigenvalues, eigenvectors = power_decompose(values, iters, convergence_threshold)

    if tolerance is None:
        tolerance = default_tolerance(eigenvalues)

    eigenvalues = clamp_eigenvalues(eigenvalues, tolerance)
    order = order_components(eigenvalues)

    components = []
    for rank, idx in enumerate(order, start=1):
        vec = apply_sign_convention(normalize_vector(eigenvectors[:, idx].copy()), sign_convention)
        vec.setflags(write=False)
        components.append(Component(rank=rank, eigenvalue=float(eigenvalues[idx]), loadings=vec))

    logger.info(
        f"Decomposed {len(order)}x{len(order)} {dispersion.kind} matrix with {method}; "
        f"leading eigenvalue {components[0].eigenvalue:.4g}"
    )

    return ComponentSet(
        components=tuple(components),
        features=list(dispersion.features),
        kind=dispersion.kind,
    )
