"""
Main entry point for the PCA engine.

Runs PCA on a CSV file of numeric features and writes the result summary
as JSON.

Usage:
    python -m pcaengine data.csv --index-col 0 --cve-threshold 0.8 --output result.json
"""

import argparse
import json
import logging
import sys
from typing import List, Optional

import pandas as pd

from pcaengine.components.config import ConfigManager, load_config_file
from pcaengine.errors import PCAError
from pcaengine.pipeline import run_pca, save_result_to_json

logger = logging.getLogger(__name__)


def setup_logging(level: str = 'WARNING') -> None:
    """
    Set up logging.

    Args:
        level: Logging level
    """
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.StreamHandler()
        ]
    )


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parse command line arguments.

    Returns:
        Parsed arguments
    """
    parser = argparse.ArgumentParser(description='Principal Components Analysis of a CSV dataset')

    parser.add_argument(
        'input',
        help='CSV file with one column per feature'
    )

    parser.add_argument(
        '--index-col',
        type=int,
        help='Column number holding row labels'
    )

    parser.add_argument(
        '--config',
        help='Path to configuration file (JSON or YAML)'
    )

    parser.add_argument(
        '--standardize',
        dest='standardize',
        action='store_true',
        default=None,
        help='Scale columns to unit variance'
    )

    parser.add_argument(
        '--no-standardize',
        dest='standardize',
        action='store_false',
        help='Only center columns'
    )

    parser.add_argument(
        '--impute-missing',
        action='store_true',
        default=None,
        help='Fill missing entries with column means'
    )

    parser.add_argument(
        '--kind',
        choices=['covariance', 'correlation'],
        help='Dispersion matrix to decompose'
    )

    parser.add_argument(
        '--cve-threshold',
        type=float,
        help='Cumulative variance explained to reach'
    )

    parser.add_argument(
        '--sign-convention',
        choices=['max_abs_positive'],
        help='Deterministic eigenvector sign'
    )

    parser.add_argument(
        '--output',
        help='Write the JSON result here instead of stdout'
    )

    parser.add_argument(
        '--log-level',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
        help='Logging level'
    )

    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point.

    Returns:
        Process exit status
    """
    args = parse_args(argv)

    overrides = {}

    if args.config:
        overrides.update(load_config_file(args.config))

    pca = overrides.setdefault('pca', {})
    if args.standardize is not None:
        pca['standardize'] = args.standardize
    if args.impute_missing is not None:
        pca['impute-missing'] = args.impute_missing
    if args.kind:
        pca['dispersion-kind'] = args.kind
    if args.cve_threshold is not None:
        pca['cve-threshold'] = args.cve_threshold
    if args.sign_convention:
        pca['sign-convention'] = args.sign_convention
    if args.log_level:
        overrides.setdefault('logging', {})['level'] = args.log_level.lower()

    try:
        config = ConfigManager.get_config(overrides)
    except PCAError as e:
        setup_logging()
        logger.error(f"Invalid configuration: {e}")
        return 2

    setup_logging(config.get('logging.level', 'warning'))

    try:
        df = pd.read_csv(args.input, index_col=args.index_col)
    except (OSError, pd.errors.ParserError, pd.errors.EmptyDataError) as e:
        logger.error(f"Could not read {args.input}: {e}")
        return 2

    try:
        result = run_pca(df, config=config)
    except PCAError as e:
        logger.error(f"PCA failed: {e}")
        return 2

    if args.output:
        save_result_to_json(result, args.output)
        logger.info(f"Wrote result to {args.output}")
    else:
        json.dump(result.to_dict(), sys.stdout, indent=2)
        sys.stdout.write('\n')

    return 0


if __name__ == '__main__':
    sys.exit(main())
