"""
Setup script for pcaengine package.
"""

from setuptools import setup, find_packages

setup(
    name="pcaengine",
    version="0.1.0",
    packages=find_packages(include=["pcaengine", "pcaengine.*"]),
    install_requires=[
        # Core numerical dependencies
        "numpy>=1.20.0",
        "pandas>=1.3.0",
        "scipy>=1.7.0",

        # Utilities
        "pyyaml>=6.0.0",
    ],
    extras_require={
        "test": [
            "pytest>=6.0.0",
            "scikit-learn>=1.0.0",
        ],
    },
    entry_points={
        'console_scripts': [
            'pcaengine=pcaengine.__main__:main',
        ],
    },
    description="Principal Components Analysis with variance-explained reporting and retention criteria",
    keywords="pca, principal components, eigendecomposition, dimensionality reduction",
    python_requires=">=3.8",
)
