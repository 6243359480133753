"""
Cloud Fill Processing Pipeline
==============================

Load a cloudy image, a clear reference image and a cloud mask, fill the
cloud regions with NSPI and save the result as Zarr.

Steps:
    - Load inputs (Zarr stores or in-memory xarray objects)
    - Validate shapes, mask codes and parameters
    - Fill every cloud region (serial with progress bar, or parallel)
    - Save the filled image and, optionally, per-region counters as CSV
"""

import os
import time
import pandas as pd
import xarray as xr
from typing import Optional, Tuple

from .core.console import (
    print_section, print_success, print_info, print_config,
    print_banner, print_complete, print_warning, print_fill_summary,
    suppress_warnings
)
from .core.data_io import load_image, load_cloud_mask, build_output_dataset, save_as_zarr, Source
from .core.memory import MemoryTracker, estimate_fill_memory, check_memory_available
from .core.nspi import (
    nspi_fill,
    DEFAULT_NUM_CLASS,
    DEFAULT_MIN_PIXEL,
    DEFAULT_CLOUD_NBH,
    DEFAULT_DN_MIN,
    DEFAULT_DN_MAX,
)
from .core.quality import summarize_cloud_mask

suppress_warnings()


def _source_label(source: Source) -> str:
    if isinstance(source, (str, os.PathLike)):
        return os.path.basename(os.path.normpath(os.fspath(source)))
    return type(source).__name__


def process_cloud_fill(
    cloudy_path: Source,
    clear_path: Source,
    mask_path: Source,
    output_path: str,
    file_name: str = "cloud_filled",
    cloudy_var: Optional[str] = None,
    clear_var: Optional[str] = None,
    mask_var: Optional[str] = 'mask',
    num_class: int = DEFAULT_NUM_CLASS,
    min_pixel: int = DEFAULT_MIN_PIXEL,
    cloud_nbh: int = DEFAULT_CLOUD_NBH,
    dn_min: float = DEFAULT_DN_MIN,
    dn_max: float = DEFAULT_DN_MAX,
    parallel: bool = False,
    output_dtype: str = 'float32',
    verbose: bool = True,
    save_region_counters: bool = False
) -> Tuple[xr.Dataset, dict]:
    """
    Fill clouds in an image stored on disk and save the result.

    Parameters
    ----------
    cloudy_path : str, xr.Dataset or xr.DataArray
        Image to repair, dims (y, x, band).
    clear_path : str, xr.Dataset or xr.DataArray
        Clear reference image of the same scene and shape.
    mask_path : str, xr.Dataset or xr.DataArray
        Cloud mask, dims (y, x): 0 clear, -1 unusable, k >= 1 cloud region.
    output_path : str
        Directory for the output Zarr store.
    file_name : str
        Output store name (without .zarr). Default 'cloud_filled'.
    cloudy_var, clear_var, mask_var : str, optional
        Variable names inside the input datasets.
    num_class, min_pixel, cloud_nbh, dn_min, dn_max
        NSPI parameters, see :func:`CloudFillPy.core.nspi.nspi_fill`.
    parallel : bool
        Fill regions concurrently. Default False.
    output_dtype : str
        'float32' (default) or 'float64'.
    verbose : bool
        Print progress. Default True.
    save_region_counters : bool
        Save per-region counters to CSV next to the Zarr store.

    Returns
    -------
    tuple
        (filled dataset, counters dictionary)
    """
    start_time = time.time()

    if verbose:
        print_banner()
        print_section("Processing Parameters")
        print_config("Cloudy image", _source_label(cloudy_path))
        print_config("Clear image", _source_label(clear_path))
        print_config("Cloud mask", _source_label(mask_path))
        print_config("Output", f"{file_name}.zarr")
        print_config("Classes", num_class)
        print_config("Similar pixels", min_pixel)
        print_config("Neighborhood", f"{cloud_nbh} px")
        print_config("Valid DN range", f"({dn_min}, {dn_max})")
        print_config("Parallel", "Yes" if parallel else "No")

    if verbose:
        print_section("Loading Data")
        print_info("Reading cloudy and clear images...")

    cloudy = load_image(cloudy_path, cloudy_var)
    clear = load_image(clear_path, clear_var)
    cloud_mask = load_cloud_mask(mask_path, mask_var)

    summary = summarize_cloud_mask(cloud_mask)

    if verbose:
        rows, cols, bands = cloudy.shape
        print_success(f"Loaded {rows} x {cols} pixels, {bands} band(s)")
        print_info(
            f"{summary['n_regions']} cloud region(s), {summary['cloud_pixels']} cloudy, "
            f"{summary['clear_pixels']} clear, {summary['invalid_pixels']} unusable pixels"
        )
        estimate = estimate_fill_memory(rows, cols, bands)
        if not check_memory_available(estimate['total_peak_gb']):
            print_warning(
                f"Estimated peak memory ({estimate['total_peak_gb']:.2f} GB) "
                f"exceeds available RAM"
            )
        if summary['n_regions'] == 0:
            print_warning("No cloud regions in mask - output equals input")

    if verbose:
        print_section("Filling Clouds")

    with MemoryTracker("NSPI fill", verbose=verbose):
        filled, counters = nspi_fill(
            cloudy, clear, cloud_mask,
            num_class=num_class,
            min_pixel=min_pixel,
            cloud_nbh=cloud_nbh,
            dn_min=dn_min,
            dn_max=dn_max,
            parallel=parallel,
            verbose=verbose
        )

    if verbose:
        print_fill_summary(counters)

    attrs = {
        "num_class": int(num_class),
        "min_pixel": int(min_pixel),
        "cloud_nbh": int(cloud_nbh),
        "dn_min": float(dn_min),
        "dn_max": float(dn_max),
        "n_cloud_regions": summary['n_regions'],
    }
    template = cloudy_path if not isinstance(cloudy_path, xr.DataArray) else cloudy_path.to_dataset(name='cloudy')
    ds_out = build_output_dataset(filled, template=template, attrs=attrs)

    if verbose:
        print_section("Saving Results")
        print_info(f"Saving to {file_name}.zarr...")

    save_as_zarr(ds_out, output_path, file_name, dtype=output_dtype)

    if save_region_counters:
        counters_df = pd.DataFrame(counters)
        counters_csv_path = os.path.join(output_path, f"{file_name}_region_counters.csv")
        counters_df.to_csv(counters_csv_path, index=False)

        if verbose:
            print_success("Region counters saved")

    if verbose:
        print_complete("Processing complete!", elapsed_seconds=time.time() - start_time)

    return ds_out, counters
