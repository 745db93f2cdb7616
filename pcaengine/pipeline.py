"""
End-to-end PCA pipeline.

Composes preprocessing, dispersion estimation, eigendecomposition,
variance analysis and component selection into a single call, and
projects data onto the resulting components.

Example:
    >>> import pandas as pd
    >>> from pcaengine import run_pca
    >>> df = pd.DataFrame({'a': [1.0, 2.0, 3.0, 4.0],
    ...                    'b': [2.0, 1.0, 4.0, 3.0],
    ...                    'c': [0.5, 0.7, 0.2, 0.9]})
    >>> result = run_pca(df, cve_threshold=0.9)
    >>> float(result.report.cve[-1])
    1.0
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import numpy as np

from pcaengine.components.config import Config
from pcaengine.math.named_matrix import NamedMatrix, as_named_matrix
from pcaengine.math.preprocess import PreprocessedMatrix, preprocess, transform
from pcaengine.math.dispersion import DispersionMatrix, dispersion
from pcaengine.math.eigen import ComponentSet, decompose
from pcaengine.math.variance import VarianceReport, analyze
from pcaengine.math.selection import SelectionResult, select
from pcaengine.errors import InvalidInputError

logger = logging.getLogger(__name__)

# Pipeline keyword -> config key under 'pca'
OPTION_KEYS = {
    'standardize': 'standardize',
    'impute_missing': 'impute-missing',
    'dispersion_kind': 'dispersion-kind',
    'cve_threshold': 'cve-threshold',
    'eigen_method': 'eigen-method',
    'sign_convention': 'sign-convention',
}


@dataclass(frozen=True)
class PCAResult:
    """Everything produced by one PCA run."""
    preprocessed: PreprocessedMatrix
    dispersion: DispersionMatrix
    components: ComponentSet
    report: VarianceReport
    selection: SelectionResult

    @property
    def features(self) -> List[Any]:
        return self.components.features

    def to_dict(self) -> Dict[str, Any]:
        """
        JSON-ready summary of the run.

        Loadings are keyed by component label, then by feature name.

        Returns:
            Dictionary of plain Python types
        """
        features = [str(f) for f in self.features]
        return {
            'features': features,
            'n_samples': self.dispersion.n_samples,
            'dispersion_kind': self.dispersion.kind,
            'standardized': self.preprocessed.standardized,
            'imputed': self.preprocessed.imputed,
            'center': dict(zip(features, self.preprocessed.center.tolist())),
            'scale': dict(zip(features, self.preprocessed.scale.tolist())),
            'eigenvalues': self.report.eigenvalues.tolist(),
            'loadings': {
                comp.label: dict(zip(features, comp.loadings.tolist()))
                for comp in self.components
            },
            'pve': self.report.pve.tolist(),
            'cve': self.report.cve.tolist(),
            'total_variance': self.report.total_variance,
            'selection': {
                'eigenvalue_count': self.selection.eigenvalue_count,
                'cve_count': self.selection.cve_count,
                'cve_threshold': self.selection.cve_threshold,
                'scree_count': self.selection.scree_count,
            },
        }


def resolve_options(config: Optional[Config] = None, **overrides) -> Dict[str, Any]:
    """
    Merge a config with keyword overrides into pipeline options.

    Args:
        config: Base configuration (defaults and environment if None)
        **overrides: Any of the keys in OPTION_KEYS

    Returns:
        Validated option dictionary keyed by pipeline parameter name
    """
    unknown = sorted(set(overrides) - set(OPTION_KEYS))
    if unknown:
        raise TypeError(f"Unknown PCA options: {unknown}")

    if config is None and not overrides:
        return Config().pca_options()

    base = config.to_dict() if config is not None else {}
    pca_overrides = {OPTION_KEYS[k]: v for k, v in overrides.items()}
    base.setdefault('pca', {}).update(pca_overrides)
    return Config(base).pca_options()


def run_pca(data: Any,
            config: Optional[Config] = None,
            colnames: Optional[List[Any]] = None,
            **overrides) -> PCAResult:
    """
    Run the full PCA pipeline on a dataset.

    Args:
        data: NamedMatrix, DataFrame, 2-D array or nested lists
        config: Optional Config supplying defaults
        colnames: Feature names for array input
        **overrides: standardize, impute_missing, dispersion_kind,
            cve_threshold, eigen_method, sign_convention

    Returns:
        PCAResult

    Raises:
        PCAError: Any stage failure; no partial result is returned
    """
    options = resolve_options(config, **overrides)
    nmat = as_named_matrix(data, colnames=colnames)

    logger.info(f"Running PCA on {nmat.shape[0]}x{nmat.shape[1]} dataset with {options}")

    prep = preprocess(
        nmat,
        standardize=options['standardize'],
        impute_missing=options['impute_missing'],
    )
    disp = dispersion(prep, kind=options['dispersion_kind'])
    components = decompose(
        disp,
        method=options['eigen_method'],
        sign_convention=options['sign_convention'],
    )
    report = analyze(components)
    selection = select(components, report, cve_threshold=options['cve_threshold'])

    return PCAResult(
        preprocessed=prep,
        dispersion=disp,
        components=components,
        report=report,
        selection=selection,
    )


def project(data: Any,
            result: PCAResult,
            n_components: Optional[int] = None) -> NamedMatrix:
    """
    Project data onto the leading principal components of a fitted run.

    The fitted centering, scaling and imputation are applied first, with
    columns matched by feature name.

    Args:
        data: New (or the original) data containing the fitted features
        result: A previous run_pca result
        n_components: Number of leading components (defaults to all)

    Returns:
        NamedMatrix of scores: one row per sample, columns PC1..PCk
    """
    p = len(result.components)
    if n_components is None:
        n_components = p
    if not 1 <= n_components <= p:
        raise InvalidInputError(f"n_components must be between 1 and {p}, got {n_components}")

    # Bare arrays carry no names; assume fitted feature order
    if isinstance(data, (np.ndarray, list)):
        nmat = as_named_matrix(data, colnames=result.features)
    else:
        nmat = as_named_matrix(data)

    aligned = transform(nmat, result.preprocessed)
    scores = aligned.values @ result.components.vectors[:, :n_components]

    return NamedMatrix(scores, aligned.rownames(), result.components.labels[:n_components])


def save_result_to_json(result: PCAResult, filepath: str) -> None:
    """
    Save a PCA result summary to a JSON file.

    Args:
        result: Result from run_pca
        filepath: Path to save the JSON file
    """
    with open(filepath, 'w') as f:
        json.dump(result.to_dict(), f, indent=2)
