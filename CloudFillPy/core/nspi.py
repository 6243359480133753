"""
NSPI Cloud Filling
==================

Fill cloud regions of a multi-band image from a clear image of the same
scene using the Neighborhood Similar Pixel Interpolator (NSPI).

For each cloud region the clear pixels in a neighborhood window are ranked
by distance from each cloudy pixel; the nearest spectrally similar ones are
combined into a spatial prediction and a temporal-difference prediction,
blended by the pixel's distance from the window center. Pixels with fewer
than two similar pixels get the clear value plus the mean cloudy-minus-clear
difference of the window.

All heavy lifting is done by Numba kernels; this module validates inputs,
converts dtypes and drives the per-region loop.
"""

import numpy as np
from tqdm import tqdm
from typing import Dict, Sequence, Tuple

from .errors import InvalidParameterError, ShapeMismatchError
from .image import as_image_cube, as_mask_grid, from_image_cube
from .quality import validate_cloud_mask
from .regions import RegionWindow, locate_cloud_regions
from .._numba_kernels import (
    fill_region,
    fill_all_regions,
    COUNT_WEIGHTED,
    COUNT_FALLBACK,
    COUNT_RANGE_GATED,
)


# Default tuning parameters
DEFAULT_NUM_CLASS = 4
DEFAULT_MIN_PIXEL = 20
DEFAULT_CLOUD_NBH = 10
DEFAULT_DN_MIN = 0.0
DEFAULT_DN_MAX = 255.0


def validate_fill_parameters(num_class, min_pixel, cloud_nbh, dn_min, dn_max) -> None:
    """
    Reject out-of-range tuning parameters.

    Raises
    ------
    InvalidParameterError
        If num_class < 1, min_pixel < 1, cloud_nbh < 0 or dn_min >= dn_max.
    """
    for name, value in (('num_class', num_class), ('min_pixel', min_pixel), ('cloud_nbh', cloud_nbh)):
        if int(value) != value:
            raise InvalidParameterError(f"{name} must be an integer, got {value!r}")

    if num_class < 1:
        raise InvalidParameterError(f"num_class must be >= 1, got {num_class}")
    if min_pixel < 1:
        raise InvalidParameterError(f"min_pixel must be >= 1, got {min_pixel}")
    if cloud_nbh < 0:
        raise InvalidParameterError(f"cloud_nbh must be >= 0, got {cloud_nbh}")
    if not dn_min < dn_max:
        raise InvalidParameterError(f"DN_min ({dn_min}) must be less than DN_max ({dn_max})")


def validate_fill_inputs(
    cloudy: np.ndarray,
    clear: np.ndarray,
    cloud_mask: np.ndarray
) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Check shapes of the image cubes and mask and convert them for the kernels.

    Returns
    -------
    tuple
        (cloudy, clear, cloud_mask) as C-contiguous float64, float64 and
        int64 arrays.

    Raises
    ------
    ShapeMismatchError
        If cloudy is not 3D, the cubes differ in shape, or the mask does
        not match their spatial extent.
    """
    cloudy = np.asarray(cloudy)
    clear = np.asarray(clear)
    cloud_mask = np.asarray(cloud_mask)

    if cloudy.ndim != 3:
        raise ShapeMismatchError(f"cloudy must be 3D array (rows, cols, bands), got {cloudy.ndim}D")
    if clear.shape != cloudy.shape:
        raise ShapeMismatchError(
            f"clear image shape {clear.shape} does not match cloudy image shape {cloudy.shape}"
        )
    if cloud_mask.shape != cloudy.shape[:2]:
        raise ShapeMismatchError(
            f"cloud_mask shape {cloud_mask.shape} does not match "
            f"image spatial dimensions {cloudy.shape[:2]}"
        )
    if cloudy.size == 0:
        raise ShapeMismatchError(f"images must not be empty, got shape {cloudy.shape}")

    mask = validate_cloud_mask(cloud_mask)

    return (
        np.ascontiguousarray(cloudy, dtype=np.float64),
        np.ascontiguousarray(clear, dtype=np.float64),
        np.ascontiguousarray(mask, dtype=np.int64),
    )


def _new_counters() -> Dict[str, list]:
    return {
        'code': [],
        'up_row': [],
        'down_row': [],
        'left_col': [],
        'right_col': [],
        'cloud_pixels': [],
        'candidate_pixels': [],
        'weighted_pixels': [],
        'fallback_pixels': [],
        'range_gated_bands': [],
    }


def _record_region(counters: dict, region: RegionWindow, mask: np.ndarray, counts) -> None:
    window = mask[region.slices]
    counters['code'].append(region.code)
    counters['up_row'].append(region.up_row)
    counters['down_row'].append(region.down_row)
    counters['left_col'].append(region.left_col)
    counters['right_col'].append(region.right_col)
    counters['cloud_pixels'].append(int(np.count_nonzero(window == region.code)))
    counters['candidate_pixels'].append(int(np.count_nonzero(window == 0)))
    counters['weighted_pixels'].append(int(counts[COUNT_WEIGHTED]))
    counters['fallback_pixels'].append(int(counts[COUNT_FALLBACK]))
    counters['range_gated_bands'].append(int(counts[COUNT_RANGE_GATED]))


def nspi_fill(
    cloudy: np.ndarray,
    clear: np.ndarray,
    cloud_mask: np.ndarray,
    num_class: int = DEFAULT_NUM_CLASS,
    min_pixel: int = DEFAULT_MIN_PIXEL,
    cloud_nbh: int = DEFAULT_CLOUD_NBH,
    dn_min: float = DEFAULT_DN_MIN,
    dn_max: float = DEFAULT_DN_MAX,
    parallel: bool = False,
    verbose: bool = False
) -> Tuple[np.ndarray, Dict[str, list]]:
    """
    Fill cloud regions and report per-region counters.

    Parameters
    ----------
    cloudy : np.ndarray
        3D array (rows, cols, bands) of the image to repair.
    clear : np.ndarray
        3D array of the same shape: the clear reference image.
    cloud_mask : np.ndarray
        2D integer array (rows, cols): 0 clear, -1 unusable, k >= 1 cloud
        region k.
    num_class : int
        Estimated number of land-cover classes in a window. Larger values
        give tighter similarity thresholds.
    min_pixel : int
        Number of similar pixels sought for each cloudy pixel.
    cloud_nbh : int
        Neighborhood margin in pixels around each cloud region.
    dn_min, dn_max : float
        Valid DN range. Temporal corrections leaving this open interval
        are discarded in favour of the spatial prediction.
    parallel : bool
        Process regions concurrently. Results are identical to the serial
        path.
    verbose : bool
        Show a progress bar over regions (serial path only).

    Returns
    -------
    filled : np.ndarray
        Float64 copy of cloudy with every cloud region reconstructed.
        Cells coded 0 or -1 are unchanged.
    counters : dict
        Lists keyed by 'code', window bounds, 'cloud_pixels',
        'candidate_pixels', 'weighted_pixels', 'fallback_pixels' and
        'range_gated_bands', one entry per region.

    Raises
    ------
    ShapeMismatchError
        If the arrays disagree in shape.
    InvalidParameterError
        If a tuning parameter or mask code is out of range.
    """
    validate_fill_parameters(num_class, min_pixel, cloud_nbh, dn_min, dn_max)
    cloudy, clear, mask = validate_fill_inputs(cloudy, clear, cloud_mask)

    num_class = int(num_class)
    min_pixel = int(min_pixel)
    dn_min = float(dn_min)
    dn_max = float(dn_max)

    regions = locate_cloud_regions(mask, int(cloud_nbh))
    out = cloudy.copy()
    counters = _new_counters()

    if not regions:
        return out, counters

    if parallel:
        codes = np.array([r.code for r in regions], dtype=np.int64)
        windows = np.array([r[1:] for r in regions], dtype=np.int64)
        all_counts = fill_all_regions(
            cloudy, clear, mask, out, codes, windows,
            num_class, min_pixel, dn_min, dn_max
        )
        for region, counts in zip(regions, all_counts):
            _record_region(counters, region, mask, counts)
        return out, counters

    iterator = regions
    if verbose:
        iterator = tqdm(regions, desc="Filling cloud regions")

    for region in iterator:
        counts = fill_region(
            cloudy, clear, mask, out, region.code,
            region.up_row, region.down_row, region.left_col, region.right_col,
            num_class, min_pixel, dn_min, dn_max
        )
        _record_region(counters, region, mask, counts)

    return out, counters


def fill_clouds(
    cloudy: np.ndarray,
    clear: np.ndarray,
    cloud_mask: np.ndarray,
    num_class: int = DEFAULT_NUM_CLASS,
    min_pixel: int = DEFAULT_MIN_PIXEL,
    cloud_nbh: int = DEFAULT_CLOUD_NBH,
    dn_min: float = DEFAULT_DN_MIN,
    dn_max: float = DEFAULT_DN_MAX,
    parallel: bool = False
) -> np.ndarray:
    """
    Fill clouds in a (rows, cols, bands) image using a clear image.

    See :func:`nspi_fill` for the parameters.

    Examples
    --------
    >>> import numpy as np
    >>> from CloudFillPy import fill_clouds
    >>>
    >>> clear = np.full((5, 5, 1), 100.0)
    >>> cloudy = clear.copy()
    >>> cloudy[2, 2:4, 0] = 9999.0
    >>> mask = np.zeros((5, 5), dtype=int)
    >>> mask[2, 2:4] = 1
    >>> filled = fill_clouds(cloudy, clear, mask, num_class=1, min_pixel=2, cloud_nbh=2)
    """
    filled, _ = nspi_fill(
        cloudy, clear, cloud_mask,
        num_class=num_class,
        min_pixel=min_pixel,
        cloud_nbh=cloud_nbh,
        dn_min=dn_min,
        dn_max=dn_max,
        parallel=parallel
    )
    return filled


def cloud_fill(
    cloudy,
    clear,
    cloud_mask,
    dims: Sequence[int],
    num_class: int,
    min_pixel: int,
    cloud_nbh: int,
    DN_min: float,
    DN_max: float
):
    """
    Fill clouds in images given as buffers with an explicit shape.

    cloudy and clear may be (rows, cols, bands) cubes, (rows * cols, bands)
    pixel matrices or flat vectors; cloud_mask may be (rows, cols) or flat.
    Matrices and vectors are read in column-major order. The result is
    returned in the same layout as cloudy.

    Parameters
    ----------
    dims : sequence of int
        (rows, cols, bands). Must agree with every buffer.

    Other parameters are as in :func:`nspi_fill`.

    Raises
    ------
    ShapeMismatchError
        If dims disagrees with a buffer, or the buffers with each other.
    InvalidParameterError
        If a tuning parameter is out of range.
    """
    validate_fill_parameters(num_class, min_pixel, cloud_nbh, DN_min, DN_max)

    cloudy_cube = as_image_cube(cloudy, dims)
    clear_cube = as_image_cube(clear, dims)
    mask_grid = as_mask_grid(cloud_mask, dims)

    filled = fill_clouds(
        cloudy_cube, clear_cube, mask_grid,
        num_class=num_class,
        min_pixel=min_pixel,
        cloud_nbh=cloud_nbh,
        dn_min=DN_min,
        dn_max=DN_max
    )
    return from_image_cube(filled, cloudy)

