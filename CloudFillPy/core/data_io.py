"""
Data I/O Operations
===================

Read cloudy/clear image cubes and cloud masks, and write filled images.

Uses Zarr format with ZSTD compression for efficient storage and fast
random access. Images are handled as (y, x, band) arrays; masks as (y, x).
"""

import os
import numpy as np
import xarray as xr
from typing import Optional, Tuple, Union

from numcodecs.zarr3 import Zstd

from .quality import MASK_INVALID, validate_cloud_mask

DEFAULT_CHUNKS = (512, 512, 1)

IMAGE_DIMS = ('y', 'x', 'band')
MASK_DIMS = ('y', 'x')

Source = Union[str, os.PathLike, xr.Dataset, xr.DataArray]


def load_zarr_dataset(zarr_path: str) -> xr.Dataset:
    """
    Load a Zarr store as xarray Dataset.

    Parameters
    ----------
    zarr_path : str
        Path to the Zarr store.

    Returns
    -------
    xr.Dataset
        Loaded dataset.
    """
    return xr.open_zarr(zarr_path)


def _select_variable(source: Source, var_name: Optional[str]) -> xr.DataArray:
    """Resolve a path, Dataset or DataArray to a single DataArray."""
    if isinstance(source, (str, os.PathLike)):
        source = load_zarr_dataset(os.fspath(source))

    if isinstance(source, xr.DataArray):
        return source

    if isinstance(source, xr.Dataset):
        if var_name is None:
            names = list(source.data_vars)
            if len(names) != 1:
                raise ValueError(
                    f"Dataset has {len(names)} data variables {names}; "
                    f"pass var_name to choose one"
                )
            var_name = names[0]
        if var_name not in source.data_vars:
            raise KeyError(f"Variable '{var_name}' not found in dataset")
        return source[var_name]

    raise TypeError(f"source must be a path, xr.Dataset or xr.DataArray, got {type(source)}")


def load_image(source: Source, var_name: Optional[str] = None) -> np.ndarray:
    """
    Load a multi-band image as a (y, x, band) float64 array.

    Parameters
    ----------
    source : str, xr.Dataset or xr.DataArray
        Path to a Zarr store, or an in-memory dataset/array.
    var_name : str, optional
        Variable to read when the dataset holds more than one.

    Returns
    -------
    np.ndarray
        3D float64 array. 2D single-band data gets a trailing band axis.
    """
    da = _select_variable(source, var_name)

    # Ensure proper dimension order (y, x, band)
    if set(da.dims) == set(IMAGE_DIMS):
        da = da.transpose(*IMAGE_DIMS)
    elif set(da.dims) == set(MASK_DIMS):
        da = da.transpose(*MASK_DIMS)

    image = da.values.astype(np.float64)

    if image.ndim == 2:
        image = image[:, :, np.newaxis]
    if image.ndim != 3:
        raise ValueError(f"image must be 2D or 3D, got {image.ndim}D")

    return image


def load_cloud_mask(source: Source, var_name: Optional[str] = 'mask') -> np.ndarray:
    """
    Load a cloud mask as a (y, x) int64 array.

    NaN cells are coded -1 (unusable). Other codes are checked with
    :func:`validate_cloud_mask`, so fractional values raise
    InvalidParameterError instead of being truncated.
    """
    if isinstance(source, xr.Dataset) and var_name not in source.data_vars:
        var_name = None
    da = _select_variable(source, var_name)

    if set(da.dims) == set(MASK_DIMS):
        da = da.transpose(*MASK_DIMS)

    mask = da.values
    if mask.ndim == 3 and mask.shape[2] == 1:
        mask = mask[:, :, 0]
    if mask.ndim != 2:
        raise ValueError(f"cloud mask must be 2D, got {mask.ndim}D")

    if np.issubdtype(mask.dtype, np.floating):
        mask = np.where(np.isnan(mask), MASK_INVALID, mask)

    return validate_cloud_mask(mask)


def build_output_dataset(
    filled: np.ndarray,
    template: Optional[Source] = None,
    var_name: str = 'filled',
    attrs: Optional[dict] = None
) -> xr.Dataset:
    """
    Wrap a filled (y, x, band) array in an xarray Dataset.

    Coordinates are copied from template when it carries y, x or band
    coordinates of matching length.
    """
    coords = {}
    if template is not None:
        if isinstance(template, (str, os.PathLike)):
            template = load_zarr_dataset(os.fspath(template))
        for dim, size in zip(IMAGE_DIMS, filled.shape):
            if dim in template.coords and template.coords[dim].size == size:
                coords[dim] = (dim, template.coords[dim].values, dict(template.coords[dim].attrs))

    var_attrs = {
        "long_name": "Cloud-filled image",
        "comment": "Cloud regions reconstructed with the Neighborhood Similar Pixel Interpolator (NSPI).",
    }

    global_attrs = {
        "title": "NSPI cloud-filled image",
        "method": "Neighborhood Similar Pixel Interpolator (Zhu et al., 2012)",
        "references": ("Zhu, X., Gao, F., Liu, D., Chen, J., 2012. A modified neighborhood similar "
                       "pixel interpolator approach for removing thick clouds in Landsat images. "
                       "IEEE Geoscience and Remote Sensing Letters 9, 521-525."),
        "storage_format": "Zarr v3",
    }
    if attrs:
        global_attrs.update(attrs)

    return xr.Dataset(
        {var_name: (IMAGE_DIMS, filled, var_attrs)},
        coords=coords,
        attrs=global_attrs
    )


def save_as_zarr(
    ds: xr.Dataset,
    output_folder: str,
    file_name: str,
    chunks: Optional[Tuple[int, ...]] = None,
    compression_level: int = 3,
    dtype: Optional[str] = 'float32'
) -> str:
    """
    Save xarray Dataset as optimized Zarr store.

    Uses ZSTD compression which provides excellent compression ratios with
    fast read/write speeds.

    NOTE: Only data variables are converted to the specified dtype.
    Coordinate variables remain in their original precision.

    Parameters
    ----------
    ds : xr.Dataset
        Dataset to save.
    output_folder : str
        Directory to save the Zarr store.
    file_name : str
        Name for the Zarr store (without .zarr extension).
    chunks : tuple of int, optional
        Chunk sizes as (y, x, band). Default is derived from the data size.
    compression_level : int, optional
        ZSTD compression level (1-22). Default is 3.
    dtype : str, optional
        Output data type for data variables: 'float32' (default) or
        'float64'. None keeps the current dtype.

    Returns
    -------
    str
        Path to the saved Zarr store.

    Raises
    ------
    ValueError
        If output_folder is empty or dtype is not supported. Integer types
        are rejected because filled values are fractional DNs.
    """
    if not output_folder:
        raise ValueError("Output folder must be provided.")

    os.makedirs(output_folder, exist_ok=True)
    zarr_path = os.path.join(output_folder, f"{file_name}.zarr")

    valid_dtypes = {'float32': np.float32, 'float64': np.float64}
    invalid_dtypes = ['int8', 'int16', 'int32', 'int64', 'uint8', 'uint16', 'uint32', 'uint64']

    if dtype is not None:
        dtype_lower = dtype.lower().strip()

        # Check for integer types and reject them
        if dtype_lower in invalid_dtypes:
            raise ValueError(
                f"Invalid dtype '{dtype}'. Integer types are not supported because "
                f"filled values are fractional DNs.\n"
                f"Valid options: {', '.join(valid_dtypes.keys())}"
            )

        if dtype_lower not in valid_dtypes:
            raise ValueError(
                f"Unsupported dtype '{dtype}'.\n"
                f"Valid options: {', '.join(valid_dtypes.keys())}"
            )

        target_dtype = valid_dtypes[dtype_lower]

        ds_converted = ds.copy()
        for var in ds.data_vars:
            if ds[var].dtype != target_dtype:
                ds_converted[var] = ds[var].astype(target_dtype)
        ds = ds_converted

    if chunks is None:
        chunks = _calculate_optimal_chunks(ds)

    compressor = Zstd(level=compression_level)

    encoding = {}
    for var in ds.data_vars:
        var_shape = ds[var].shape
        # Adjust chunks if larger than data dimensions
        var_chunks = tuple(min(c, s) for c, s in zip(chunks, var_shape))
        encoding[var] = {
            'compressors': (compressor,),
            'chunks': var_chunks
        }

    ds.to_zarr(zarr_path, mode='w', encoding=encoding)

    return zarr_path


def _calculate_optimal_chunks(ds: xr.Dataset) -> Tuple[int, ...]:
    """
    Calculate chunk sizes based on dataset dimensions.

    Aims for chunks of approximately 2 MB, one band per chunk.
    """
    first_var = list(ds.data_vars)[0]
    shape = ds[first_var].shape

    # ~2MB chunks of float64
    target_elements = 262144
    side = int(np.sqrt(target_elements))

    if len(shape) == 3:
        y_size, x_size, _ = shape
        return (min(y_size, side), min(x_size, side), 1)
    elif len(shape) == 2:
        y_size, x_size = shape
        return (min(y_size, side), min(x_size, side))
    else:
        return DEFAULT_CHUNKS[:len(shape)]
