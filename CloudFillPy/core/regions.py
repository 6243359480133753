"""
Cloud Region Locator
====================

Enumerate cloud regions and the neighborhood windows searched for
similar pixels.
"""

import numpy as np
from typing import List, NamedTuple, Tuple

from .errors import InvalidParameterError
from .._numba_kernels import locate_cloud_windows


class RegionWindow(NamedTuple):
    """Neighborhood window of one cloud region, in global pixel indices (inclusive)."""

    code: int
    up_row: int
    down_row: int
    left_col: int
    right_col: int

    @property
    def n_rows(self) -> int:
        return self.down_row - self.up_row + 1

    @property
    def n_cols(self) -> int:
        return self.right_col - self.left_col + 1

    @property
    def center(self) -> Tuple[float, float]:
        """Window-local (row, col) reference point used for temporal weights."""
        return self.n_rows / 2.0, self.n_cols / 2.0

    @property
    def slices(self) -> Tuple[slice, slice]:
        return slice(self.up_row, self.down_row + 1), slice(self.left_col, self.right_col + 1)


def locate_cloud_regions(cloud_mask: np.ndarray, cloud_nbh: int) -> List[RegionWindow]:
    """
    Find every cloud region in the mask and its neighborhood window.

    Parameters
    ----------
    cloud_mask : np.ndarray
        2D integer mask (rows, cols); codes >= 1 identify cloud regions.
    cloud_nbh : int
        Margin in pixels added around each region's bounding box. Windows
        are clamped to the image.

    Returns
    -------
    list of RegionWindow
        One entry per distinct code, in ascending code order.
    """
    if cloud_nbh < 0:
        raise InvalidParameterError(f"cloud_nbh must be >= 0, got {cloud_nbh}")

    mask = np.ascontiguousarray(cloud_mask, dtype=np.int64)
    if mask.ndim != 2:
        raise ValueError(f"cloud_mask must be 2D array, got {mask.ndim}D")

    codes, windows = locate_cloud_windows(mask, int(cloud_nbh))
    return [
        RegionWindow(int(code), *(int(v) for v in window))
        for code, window in zip(codes, windows)
    ]
