"""
Cloud Mask Quality Control
==========================

Check and summarize cloud masks before filling.

Mask codes:
    0   pixel is clear in both images (usable as a donor)
    -1  pixel is unusable, e.g. missing in the clear image
    k   pixel belongs to cloud region k (any integer >= 1)
"""

import numpy as np

from .errors import InvalidParameterError


MASK_CLEAR = 0
MASK_INVALID = -1


def get_cloud_codes(cloud_mask):
    """Return the sorted distinct cloud region codes (values >= 1)."""
    codes = np.unique(np.asarray(cloud_mask))
    return codes[codes >= 1].astype(np.int64)


def validate_cloud_mask(cloud_mask) -> np.ndarray:
    """
    Check mask codes and return the mask as int64.

    Raises
    ------
    InvalidParameterError
        If the mask holds non-finite or non-integral values, or codes
        below -1.
    """
    mask = np.asarray(cloud_mask)

    if not np.issubdtype(mask.dtype, np.integer):
        mask = mask.astype(np.float64)
        if not np.all(np.isfinite(mask)):
            raise InvalidParameterError("cloud mask contains NaN or infinite values")
        if not np.all(mask == np.round(mask)):
            raise InvalidParameterError("cloud mask must contain integer codes")

    mask = mask.astype(np.int64)
    if mask.size and mask.min() < MASK_INVALID:
        raise InvalidParameterError(
            f"cloud mask codes must be -1, 0 or >= 1, found {int(mask.min())}"
        )

    return mask


def summarize_cloud_mask(cloud_mask) -> dict:
    """Count clear, invalid and cloud cells and the number of regions."""
    mask = np.asarray(cloud_mask)
    cloud = mask >= 1
    return {
        'clear_pixels': int(np.count_nonzero(mask == MASK_CLEAR)),
        'invalid_pixels': int(np.count_nonzero(mask == MASK_INVALID)),
        'cloud_pixels': int(np.count_nonzero(cloud)),
        'n_regions': int(get_cloud_codes(mask).size),
        'total_pixels': int(mask.size),
    }


def cloud_fraction(cloud_mask) -> float:
    """Fraction of cells that belong to a cloud region."""
    mask = np.asarray(cloud_mask)
    if mask.size == 0:
        return 0.0
    return float(np.count_nonzero(mask >= 1)) / mask.size
