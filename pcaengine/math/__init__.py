"""
Numerical stages of the PCA pipeline, leaf-first:
preprocess -> dispersion -> decompose -> analyze -> select.
"""

from pcaengine.math.named_matrix import NamedMatrix, create_named_matrix
from pcaengine.math.preprocess import PreprocessedMatrix, preprocess
from pcaengine.math.dispersion import DispersionMatrix, dispersion
from pcaengine.math.eigen import Component, ComponentSet, decompose
from pcaengine.math.variance import VarianceReport, analyze
from pcaengine.math.selection import SelectionResult, select
