"""
Memory Management Utilities
===========================

Tools for estimating and monitoring memory usage while filling clouds.
"""

import gc

import numpy as np
import psutil


def get_memory_usage_gb() -> float:
    """
    Get current process memory usage in GB.

    Returns
    -------
    float
        Resident memory of this process in gigabytes.
    """
    return psutil.Process().memory_info().rss / (1024 ** 3)


def estimate_fill_memory(rows: int, cols: int, bands: int) -> dict:
    """
    Estimate memory requirements for filling one image.

    Parameters
    ----------
    rows, cols, bands : int
        Image extents.

    Returns
    -------
    dict
        Memory estimates in GB for the different arrays held during a fill.
    """
    cube_bytes = rows * cols * bands * np.dtype(np.float64).itemsize
    mask_bytes = rows * cols * np.dtype(np.int64).itemsize

    # cloudy + clear inputs, output copy; candidate buffers are bounded by
    # one window of cloudy + clear spectra
    input_bytes = 2 * cube_bytes
    output_bytes = cube_bytes
    window_bytes = 2 * cube_bytes

    total = input_bytes + output_bytes + mask_bytes + window_bytes
    return {
        'input_gb': input_bytes / (1024 ** 3),
        'output_gb': output_bytes / (1024 ** 3),
        'mask_gb': mask_bytes / (1024 ** 3),
        'window_buffer_gb': window_bytes / (1024 ** 3),
        'total_peak_gb': total / (1024 ** 3),
        'shape': (rows, cols, bands),
    }


def check_memory_available(required_gb: float, safety_factor: float = 1.5) -> bool:
    """
    Check if sufficient memory is available.

    Parameters
    ----------
    required_gb : float
        Required memory in GB.
    safety_factor : float
        Multiplier for safety margin (default 1.5x).

    Returns
    -------
    bool
        True if sufficient memory available, False otherwise.
    """
    available_gb = psutil.virtual_memory().available / (1024 ** 3)
    return available_gb >= (required_gb * safety_factor)


class MemoryTracker:
    """
    Context manager to track memory usage during an operation.

    Usage
    -----
    >>> with MemoryTracker("Filling clouds") as tracker:
    ...     filled = fill_clouds(cloudy, clear, mask)
    >>> print(f"Peak memory: {tracker.peak_gb:.2f} GB")
    """

    def __init__(self, operation_name: str = "", verbose: bool = True):
        self.operation_name = operation_name
        self.verbose = verbose
        self.start_memory = 0.0
        self.end_memory = 0.0
        self.peak_gb = 0.0

    def __enter__(self):
        gc.collect()
        self.start_memory = get_memory_usage_gb()
        if self.verbose and self.operation_name:
            print(f"  [Memory] Starting {self.operation_name}: {self.start_memory:.2f} GB")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        gc.collect()
        self.end_memory = get_memory_usage_gb()
        delta = self.end_memory - self.start_memory
        self.peak_gb = max(self.start_memory, self.end_memory)

        if self.verbose and self.operation_name:
            print(f"  [Memory] Finished {self.operation_name}: {self.end_memory:.2f} GB (Δ{delta:+.2f} GB)")

        return False
