"""
CloudFillPy - NSPI Cloud Filling for Multi-Band Imagery
=======================================================

Fill cloud-contaminated regions of a satellite image using a second,
clear acquisition of the same scene, with Numba JIT-compiled kernels.

The method is the Neighborhood Similar Pixel Interpolator (NSPI): for every
cloudy pixel, clear pixels in a neighborhood window that are spectrally
similar in the clear image are weighted by spectral and spatial distance.
Their cloudy-date values give a spatial prediction, and their cloudy-minus-
clear differences give a temporal prediction; the two are blended by the
pixel's distance from the cloud center.

Key Features:
    - Any number of bands and cloud regions
    - Per-region neighborhood windows and similarity thresholds
    - Optional parallel processing of cloud regions
    - Zarr input/output with ZSTD compression
    - Interactive command-line interface

Quick Start:
    >>> from CloudFillPy import fill_clouds
    >>> filled = fill_clouds(cloudy, clear, cloud_mask,
    ...                      num_class=4, min_pixel=20, cloud_nbh=10,
    ...                      dn_min=0, dn_max=255)

Mask codes: 0 = clear in both images, -1 = unusable, k >= 1 = cloud region k.

Reference:
    Zhu, X., Gao, F., Liu, D., Chen, J., 2012. A modified neighborhood
    similar pixel interpolator approach for removing thick clouds in Landsat
    images. IEEE Geoscience and Remote Sensing Letters 9, 521-525.

License: MIT
"""

__version__ = "1.0.0"
__license__ = "MIT"

# Core functionality
from .core import (
    # Errors
    CloudFillError,
    ShapeMismatchError,
    InvalidParameterError,

    # Image access
    as_image_cube,
    as_mask_grid,
    from_image_cube,

    # Regions
    RegionWindow,
    locate_cloud_regions,

    # NSPI
    nspi_fill,
    fill_clouds,
    cloud_fill,

    # Quality control
    MASK_CLEAR,
    MASK_INVALID,
    get_cloud_codes,
    validate_cloud_mask,
    summarize_cloud_mask,
    cloud_fraction,

    # Data I/O
    load_image,
    load_cloud_mask,
    load_zarr_dataset,
    build_output_dataset,
    save_as_zarr,
)

from .pipeline import process_cloud_fill

# Expose Numba kernels for advanced users
from ._numba_kernels import (
    locate_cloud_windows,
    similarity_thresholds,
    collect_candidates,
    search_similar_pixels,
    donor_weights,
    predict_pixel,
    fill_region,
    fill_all_regions,
)


__all__ = [
    # Version info
    '__version__',

    # Main entry points
    'fill_clouds',
    'cloud_fill',
    'nspi_fill',
    'process_cloud_fill',

    # Errors
    'CloudFillError',
    'ShapeMismatchError',
    'InvalidParameterError',

    # Image access
    'as_image_cube',
    'as_mask_grid',
    'from_image_cube',

    # Regions
    'RegionWindow',
    'locate_cloud_regions',

    # Quality
    'MASK_CLEAR',
    'MASK_INVALID',
    'get_cloud_codes',
    'validate_cloud_mask',
    'summarize_cloud_mask',
    'cloud_fraction',

    # Data I/O
    'load_image',
    'load_cloud_mask',
    'load_zarr_dataset',
    'build_output_dataset',
    'save_as_zarr',

    # Numba kernels (advanced)
    'locate_cloud_windows',
    'similarity_thresholds',
    'collect_candidates',
    'search_similar_pixels',
    'donor_weights',
    'predict_pixel',
    'fill_region',
    'fill_all_regions',
]
