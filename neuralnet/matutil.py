"""
matutil.py
~~~~~~~~~~

Dense matrix helpers used by the network engine.

A matrix is a 2-D numpy array of float64 values. Every operation here
validates its operands, leaves them untouched and returns a new read-only
array, so results can be shared freely between layers and snapshots.
"""

from typing import Callable, List, Optional, Sequence

import numpy as np

from neuralnet.errors import DimensionMismatch, EmptyInput, InvalidShape

Matrix = np.ndarray


def _frozen(m: np.ndarray) -> Matrix:
    """Mark a freshly computed array as read-only and return it."""
    m.setflags(write=False)
    return m


def as_matrix(m) -> Matrix:
    """
    Validate that an object is usable as a matrix.

    Args:
        m: A 2-D array-like of numbers

    Returns:
        The value as a float64 numpy array (not copied when already one)

    Raises:
        InvalidShape: If the value is not two-dimensional
    """
    arr = np.asarray(m, dtype=np.float64)
    if arr.ndim != 2:
        raise InvalidShape(
            f"matrix must be 2-dimensional, got {arr.ndim} dimension(s)"
        )
    return arr


def new_matrix(rows: int, cols: int, data: Sequence[float]) -> Matrix:
    """
    Build a matrix from row-major data.

    Args:
        rows: Number of rows
        cols: Number of columns
        data: rows * cols values in row-major order

    Returns:
        A new read-only matrix of shape (rows, cols)

    Raises:
        DimensionMismatch: If len(data) != rows * cols
    """
    values = np.array(data, dtype=np.float64).reshape(-1)
    if rows <= 0 or cols <= 0 or values.size != rows * cols:
        raise DimensionMismatch(
            f"cannot build {rows}x{cols} matrix from {values.size} values"
        )
    return _frozen(values.reshape(rows, cols))


def copy(m) -> Matrix:
    """Return a read-only copy of a matrix."""
    return _frozen(np.array(as_matrix(m), dtype=np.float64, copy=True))


def dot(m, n) -> Matrix:
    """
    Matrix product of two matrices.

    Raises:
        DimensionMismatch: If m's column count differs from n's row count
    """
    a, b = as_matrix(m), as_matrix(n)
    if a.shape[1] != b.shape[0]:
        raise DimensionMismatch(
            f"dot: inner dimensions differ, {a.shape} x {b.shape}"
        )
    return _frozen(np.dot(a, b))


def apply(fn: Callable[[float], float], m) -> Matrix:
    """Apply a scalar function to every element of a matrix."""
    a = as_matrix(m)
    out = np.empty_like(a)
    for index, value in np.ndenumerate(a):
        out[index] = fn(float(value))
    return _frozen(out)


def scale(s: float, m) -> Matrix:
    """Multiply every element of a matrix by a scalar."""
    return _frozen(as_matrix(m) * float(s))


def _check_same_shape(op: str, a: np.ndarray, b: np.ndarray) -> None:
    if a.shape != b.shape:
        raise DimensionMismatch(
            f"{op}: matrix shapes differ, {a.shape} vs {b.shape}"
        )


def mul_elem(m, n) -> Matrix:
    """Multiply the corresponding elements of two same-shaped matrices."""
    a, b = as_matrix(m), as_matrix(n)
    _check_same_shape('mul_elem', a, b)
    return _frozen(a * b)


def add(m, n) -> Matrix:
    """Add the corresponding elements of two same-shaped matrices."""
    a, b = as_matrix(m), as_matrix(n)
    _check_same_shape('add', a, b)
    return _frozen(a + b)


def sub(m, n) -> Matrix:
    """Subtract the elements of the second matrix from the first."""
    a, b = as_matrix(m), as_matrix(n)
    _check_same_shape('sub', a, b)
    return _frozen(a - b)


def add_scalar(s: float, m) -> Matrix:
    """Add a scalar to every element of a matrix."""
    a = as_matrix(m)
    return add(a, np.full(a.shape, float(s)))


def transpose(m) -> Matrix:
    """Return the transpose of a matrix."""
    return _frozen(np.array(as_matrix(m).T, copy=True))


def fill_array(size: int, value: float) -> List[float]:
    """Return a list holding size copies of value."""
    return [float(value)] * size


def from_vector(v: Optional[Sequence[float]]) -> Matrix:
    """
    Create a single-column matrix from a vector.

    Args:
        v: Non-empty sequence of numbers

    Returns:
        Matrix of shape (len(v), 1)

    Raises:
        EmptyInput: If the vector is None or has no values
    """
    if v is None or len(v) == 0:
        raise EmptyInput("vector length is zero, cannot create matrix")
    values = np.array(v, dtype=np.float64)
    if values.ndim != 1:
        raise InvalidShape(
            f"vector must be 1-dimensional, got {values.ndim} dimension(s)"
        )
    return _frozen(values.reshape(-1, 1))


def to_vector(m) -> List[float]:
    """
    Create a vector from a single-column matrix.

    Raises:
        InvalidShape: If the matrix has more or fewer than one column
    """
    if m is None:
        raise InvalidShape("matrix cannot be None")
    a = as_matrix(m)
    if a.shape[1] != 1:
        raise InvalidShape(
            "matrix must have a single column to convert to a vector, "
            f"but has {a.shape[1]}"
        )
    return [float(x) for x in a[:, 0]]
