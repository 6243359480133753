"""
CloudFillPy Core Module
=======================

Building blocks of the NSPI cloud filling workflow:
    - Image access over cubes and column-major buffers
    - Cloud region discovery and neighborhood windows
    - NSPI fill entry points and input validation
    - Cloud mask checks and summaries
    - Data I/O with Zarr compression
    - Console and memory utilities
"""

from .errors import (
    CloudFillError,
    ShapeMismatchError,
    InvalidParameterError
)

from .image import (
    as_image_cube,
    as_mask_grid,
    from_image_cube
)

from .regions import (
    RegionWindow,
    locate_cloud_regions
)

from .nspi import (
    nspi_fill,
    fill_clouds,
    cloud_fill,
    validate_fill_inputs,
    validate_fill_parameters,
    DEFAULT_NUM_CLASS,
    DEFAULT_MIN_PIXEL,
    DEFAULT_CLOUD_NBH,
    DEFAULT_DN_MIN,
    DEFAULT_DN_MAX
)

from .quality import (
    MASK_CLEAR,
    MASK_INVALID,
    get_cloud_codes,
    validate_cloud_mask,
    summarize_cloud_mask,
    cloud_fraction
)

from .data_io import (
    load_image,
    load_cloud_mask,
    load_zarr_dataset,
    build_output_dataset,
    save_as_zarr
)

from .console import (
    suppress_warnings,
    print_banner,
    print_section,
    print_config,
    print_success,
    print_error,
    print_warning,
    print_info,
    print_complete,
    print_fill_summary
)

from .memory import (
    get_memory_usage_gb,
    estimate_fill_memory,
    check_memory_available,
    MemoryTracker
)


__all__ = [
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

    # NSPI
    'nspi_fill',
    'fill_clouds',
    'cloud_fill',
    'validate_fill_inputs',
    'validate_fill_parameters',
    'DEFAULT_NUM_CLASS',
    'DEFAULT_MIN_PIXEL',
    'DEFAULT_CLOUD_NBH',
    'DEFAULT_DN_MIN',
    'DEFAULT_DN_MAX',

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

    # Console
    'suppress_warnings',
    'print_banner',
    'print_section',
    'print_config',
    'print_success',
    'print_error',
    'print_warning',
    'print_info',
    'print_complete',
    'print_fill_summary',

    # Memory
    'get_memory_usage_gb',
    'estimate_fill_memory',
    'check_memory_available',
    'MemoryTracker',
]
