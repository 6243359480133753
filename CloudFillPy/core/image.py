"""
Image Access Layer
==================

View caller-supplied buffers as (row, col, band) cubes and (row, col) masks.

Linear buffers are interpreted with column-major (Fortran) flattening, so
the sample for (row, col, band) lives at ``row + col * R + band * R * C``.
A pixels-by-bands matrix of shape (R * C, B) uses the same convention: each
column holds one band with its pixels in column-major order.
"""

import numpy as np
from typing import Sequence, Tuple

from .errors import ShapeMismatchError


def normalize_dims(dims: Sequence[int]) -> Tuple[int, int, int]:
    """Return dims as a (rows, cols, bands) tuple of Python ints."""
    dims = tuple(int(d) for d in np.asarray(dims).ravel())
    if len(dims) != 3:
        raise ShapeMismatchError(f"dims must have 3 entries (rows, cols, bands), got {len(dims)}")
    if min(dims) < 1:
        raise ShapeMismatchError(f"dims must be positive, got {dims}")
    return dims


def as_image_cube(buffer, dims: Sequence[int]) -> np.ndarray:
    """
    View an image buffer as a (rows, cols, bands) float64 cube.

    Parameters
    ----------
    buffer : array-like
        Either a 3D array already shaped (rows, cols, bands), a 2D
        pixels-by-bands matrix of shape (rows * cols, bands), or a flat
        vector of rows * cols * bands samples. 2D and 1D buffers are read
        in column-major order.
    dims : sequence of int
        Image extents (rows, cols, bands).

    Returns
    -------
    np.ndarray
        Float64 cube. A copy is made only when the dtype or memory layout
        requires one.

    Raises
    ------
    ShapeMismatchError
        If the buffer does not hold exactly the number of samples in dims,
        or a 3D buffer has a different shape.
    """
    rows, cols, bands = normalize_dims(dims)
    arr = np.asarray(buffer, dtype=np.float64)

    if arr.ndim == 3:
        if arr.shape != (rows, cols, bands):
            raise ShapeMismatchError(
                f"image shape {arr.shape} does not match dims {(rows, cols, bands)}"
            )
        return arr

    if arr.ndim == 2 and arr.shape != (rows * cols, bands):
        raise ShapeMismatchError(
            f"pixel matrix shape {arr.shape} does not match "
            f"({rows * cols}, {bands}) implied by dims"
        )
    if arr.size != rows * cols * bands:
        raise ShapeMismatchError(
            f"buffer holds {arr.size} samples, dims {(rows, cols, bands)} "
            f"require {rows * cols * bands}"
        )

    return arr.reshape((rows, cols, bands), order='F')


def as_mask_grid(buffer, dims: Sequence[int]) -> np.ndarray:
    """
    View a cloud mask buffer as a (rows, cols) grid.

    A 2D buffer must already be (rows, cols); anything else is flattened in
    column-major order.
    """
    rows, cols, _ = normalize_dims(dims)
    arr = np.asarray(buffer)

    if arr.ndim == 2:
        if arr.shape != (rows, cols):
            raise ShapeMismatchError(
                f"mask shape {arr.shape} does not match dims {(rows, cols)}"
            )
        grid = arr
    else:
        if arr.size != rows * cols:
            raise ShapeMismatchError(
                f"mask holds {arr.size} cells, dims {(rows, cols)} require {rows * cols}"
            )
        grid = arr.reshape((rows, cols), order='F')

    return grid


def from_image_cube(cube: np.ndarray, like) -> np.ndarray:
    """Return cube laid out like the buffer it was read from."""
    like = np.asarray(like)
    if like.ndim == 3:
        return cube
    if like.ndim == 2:
        return cube.reshape(like.shape, order='F')
    return cube.ravel(order='F')
