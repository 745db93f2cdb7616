"""
Named Matrix implementation for the PCA engine.

This module provides a data structure for matrices with named rows and columns.
Column order is the feature identity of a dataset, so names travel with the
numbers through every stage of the pipeline.
"""

import numpy as np
import pandas as pd
from typing import List, Optional, Union, Any

from pcaengine.errors import InvalidInputError


class IndexHash:
    """
    Maintains an ordered index of names with fast lookup.
    """

    def __init__(self, names: Optional[List[Any]] = None):
        """
        Initialize an IndexHash with optional initial names.

        Args:
            names: Optional list of initial names

        Raises:
            InvalidInputError: If a name appears more than once
        """
        self._names = [] if names is None else list(names)
        self._index_hash = {name: idx for idx, name in enumerate(self._names)}

        if len(self._index_hash) != len(self._names):
            dupes = [n for i, n in enumerate(self._names) if n in self._names[:i]]
            raise InvalidInputError(f"Duplicate names in index: {dupes}")

    def get_names(self) -> List[Any]:
        """Return the ordered list of names."""
        return self._names.copy()

    def index(self, name: Any) -> Optional[int]:
        """
        Get the index for a given name, or None if not found.

        Args:
            name: The name to look up

        Returns:
            The index if found, None otherwise
        """
        return self._index_hash.get(name)

    def subset(self, names: List[Any]) -> 'IndexHash':
        """
        Create a subset of the index with only the specified names.

        Args:
            names: List of names to include in the subset

        Returns:
            A new IndexHash containing only the specified names
        """
        valid_names = [name for name in names if name in self._index_hash]
        return IndexHash(valid_names)

    def __len__(self) -> int:
        return len(self._names)

    def __contains__(self, name: Any) -> bool:
        return name in self._index_hash


class NamedMatrix:
    """
    A matrix with named rows and columns, backed by a pandas DataFrame.

    Instances are treated as immutable: every transforming method returns
    a new NamedMatrix and leaves the original untouched.
    """

    def __init__(self,
                 matrix: Optional[Union[np.ndarray, pd.DataFrame]] = None,
                 rownames: Optional[List[Any]] = None,
                 colnames: Optional[List[Any]] = None):
        """
        Initialize a NamedMatrix.

        Args:
            matrix: Matrix data (numpy array or pandas DataFrame)
            rownames: List of row names (defaults to 0..n-1)
            colnames: List of column names (defaults to 0..p-1)
        """
        if matrix is None:
            matrix = np.empty((0 if rownames is None else len(rownames),
                               0 if colnames is None else len(colnames)))

        if isinstance(matrix, pd.DataFrame):
            frame = matrix.copy()
            try:
                if rownames is not None:
                    frame.index = rownames
                if colnames is not None:
                    frame.columns = colnames
            except ValueError as e:
                raise InvalidInputError(f"Names do not match a {frame.shape} matrix: {e}") from e
        else:
            matrix = np.asarray(matrix)
            if matrix.ndim != 2:
                raise InvalidInputError(
                    f"Expected a 2-dimensional matrix, got shape {matrix.shape}"
                )
            rows = rownames if rownames is not None else range(matrix.shape[0])
            cols = colnames if colnames is not None else range(matrix.shape[1])
            try:
                frame = pd.DataFrame(matrix, index=list(rows), columns=list(cols))
            except ValueError as e:
                raise InvalidInputError(f"Names do not match a {matrix.shape} matrix: {e}") from e

        self._row_index = IndexHash(list(frame.index))
        self._col_index = IndexHash(list(frame.columns))
        self._matrix = frame

    @classmethod
    def from_dataframe(cls, df: pd.DataFrame) -> 'NamedMatrix':
        """
        Build a NamedMatrix from a DataFrame, keeping its index and columns.

        Args:
            df: Source DataFrame

        Returns:
            A new NamedMatrix
        """
        return cls(df)

    @property
    def matrix(self) -> pd.DataFrame:
        """Get a copy of the underlying DataFrame."""
        return self._matrix.copy()

    @property
    def values(self) -> np.ndarray:
        """Get the matrix as a numpy array."""
        return self._matrix.values

    @property
    def shape(self):
        return self._matrix.shape

    def rownames(self) -> List[Any]:
        """Get the list of row names."""
        return self._row_index.get_names()

    def colnames(self) -> List[Any]:
        """Get the list of column names."""
        return self._col_index.get_names()

    def get_col_index(self) -> IndexHash:
        """Get the column index object."""
        return self._col_index

    def with_values(self, values: np.ndarray) -> 'NamedMatrix':
        """
        Create a matrix with the same names and new values.

        Args:
            values: Array with the same shape as this matrix

        Returns:
            A new NamedMatrix
        """
        values = np.asarray(values)
        if values.shape != self.shape:
            raise InvalidInputError(
                f"Shape mismatch: expected {self.shape}, got {values.shape}"
            )
        return NamedMatrix(values, self.rownames(), self.colnames())

    def rowname_subset(self, rownames: List[Any]) -> 'NamedMatrix':
        """
        Create a subset of the matrix with only the specified rows.

        Args:
            rownames: List of row names to include

        Returns:
            A new NamedMatrix with only the specified rows
        """
        valid_rows = [row for row in rownames if row in self._row_index]
        return NamedMatrix(self._matrix.loc[valid_rows])

    def colname_subset(self, colnames: List[Any]) -> 'NamedMatrix':
        """
        Create a subset of the matrix with only the specified columns.

        Columns are returned in the order given, which makes this the way
        to align a new dataset with the feature order of a fitted model.

        Args:
            colnames: List of column names to include

        Returns:
            A new NamedMatrix with only the specified columns
        """
        valid_cols = [col for col in colnames if col in self._col_index]
        return NamedMatrix(self._matrix[valid_cols])

    def get_col_by_name(self, col_name: Any) -> np.ndarray:
        """
        Get a column of the matrix by name.

        Args:
            col_name: The name of the column

        Returns:
            The column as a numpy array
        """
        if col_name not in self._col_index:
            raise KeyError(f"Column name '{col_name}' not found")
        return self._matrix[col_name].values

    def __repr__(self) -> str:
        return f"NamedMatrix(rows={len(self.rownames())}, cols={len(self.colnames())})"

    def __str__(self) -> str:
        return (f"NamedMatrix with {len(self.rownames())} rows and "
                f"{len(self.colnames())} columns\n{self._matrix}")


def create_named_matrix(matrix_data: Optional[Union[np.ndarray, List[List[Any]]]] = None,
                        rownames: Optional[List[Any]] = None,
                        colnames: Optional[List[Any]] = None) -> NamedMatrix:
    """
    Create a NamedMatrix from data.

    Args:
        matrix_data: Matrix data (numpy array or nested lists)
        rownames: List of row names
        colnames: List of column names

    Returns:
        A new NamedMatrix
    """
    if matrix_data is not None and not isinstance(matrix_data, (np.ndarray, pd.DataFrame)):
        try:
            matrix_data = np.array(matrix_data, dtype=float)
        except (ValueError, TypeError) as e:
            raise InvalidInputError(f"Matrix data must be numeric: {e}") from e
    return NamedMatrix(matrix_data, rownames, colnames)


def as_named_matrix(data: Any, colnames: Optional[List[Any]] = None) -> NamedMatrix:
    """
    Coerce a NamedMatrix, DataFrame, ndarray or nested list to a NamedMatrix.

    Args:
        data: Input data
        colnames: Optional feature names for array input

    Returns:
        A NamedMatrix
    """
    if isinstance(data, NamedMatrix):
        return data
    if isinstance(data, pd.DataFrame):
        return NamedMatrix.from_dataframe(data)
    return create_named_matrix(data, colnames=colnames)
