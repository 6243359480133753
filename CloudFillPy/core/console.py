"""
Console Utilities
=================

Terminal output for the fill pipeline and CLI: coloured status lines,
section headers, the banner and warning filters.
"""

import sys
import os
import warnings

import pyfiglet


def suppress_warnings():
    """
    Silence library warnings that clutter pipeline output.

    Covers Zarr v3 codec notices from zarr/numcodecs, Numba performance
    hints from the parallel kernels and xarray deprecations.
    """
    for module in ('zarr', 'numcodecs'):
        warnings.filterwarnings('ignore', category=UserWarning, module=module)
    warnings.filterwarnings('ignore', message='.*Numcodecs codecs are not in the Zarr.*')
    warnings.filterwarnings('ignore', message='.*Consolidated metadata.*')
    warnings.filterwarnings('ignore', module='numba')
    warnings.filterwarnings('ignore', category=DeprecationWarning)
    warnings.filterwarnings('ignore', category=FutureWarning)


class Colors:
    """ANSI escape codes, empty when the terminal does not support them."""

    _enabled = sys.stdout.isatty() and os.name != 'nt' or \
               os.environ.get('TERM_PROGRAM') == 'vscode' or \
               bool(os.environ.get('WT_SESSION')) or \
               'ANSICON' in os.environ

    RESET = '\033[0m' if _enabled else ''
    BOLD = '\033[1m' if _enabled else ''
    DIM = '\033[2m' if _enabled else ''
    RED = '\033[91m' if _enabled else ''
    GREEN = '\033[92m' if _enabled else ''
    YELLOW = '\033[93m' if _enabled else ''
    BLUE = '\033[94m' if _enabled else ''
    CYAN = '\033[96m' if _enabled else ''
    WHITE = '\033[97m' if _enabled else ''


def styled(text, *codes):
    """Wrap text in one or more Colors codes."""
    return f"{''.join(codes)}{text}{Colors.RESET}"


def print_section(title, char='-', width=40):
    """Print a section header."""
    print(f"\n{styled(title, Colors.BLUE)}")
    print(styled(char * width, Colors.DIM))


def print_success(message):
    print(f"{styled('✓', Colors.GREEN)} {message}")


def print_error(message):
    print(f"{styled('✗', Colors.RED)} {styled(message, Colors.RED)}")


def print_warning(message):
    print(f"{styled('⚠', Colors.YELLOW)} {styled(message, Colors.YELLOW)}")


def print_info(message):
    print(f"{styled('→', Colors.CYAN)} {message}")


def print_config(label, value):
    """Print an indented key-value pair."""
    print(f"  {styled(label + ':', Colors.WHITE)} {styled(value, Colors.DIM)}")


def print_fill_summary(counters):
    """
    Report how the cloudy pixels of all regions were predicted.

    Parameters
    ----------
    counters : dict
        Per-region counters as returned by ``nspi_fill``.
    """
    n_weighted = sum(counters['weighted_pixels'])
    n_fallback = sum(counters['fallback_pixels'])
    print_success(f"Filled {n_weighted + n_fallback} pixels in {len(counters['code'])} region(s)")
    print_config("Weighted prediction", n_weighted)
    print_config("Linear adjustment", n_fallback)
    print_config("Range-gated bands", sum(counters['range_gated_bands']))


def print_banner(version=None):
    """Print the CloudFillPy ASCII art banner."""
    from .. import __version__

    ascii_art = pyfiglet.figlet_format('CloudFillPy', font='standard')
    print()
    for line in ascii_art.split('\n'):
        if line.strip():
            print(styled(line, Colors.CYAN))
    print()
    subtitle = f"CloudFillPy v{version or __version__}  |  NSPI Cloud Filling"
    print(f"           {styled(subtitle, Colors.DIM)}")
    print()


def print_complete(message=None, elapsed_seconds=None):
    """Print the closing banner, with total run time when given."""
    rule = styled("=" * 60, Colors.GREEN)
    print()
    print(rule)
    print(f"  {styled(message or 'Processing Complete!', Colors.BOLD, Colors.GREEN)}")
    print(rule)
    if elapsed_seconds is not None:
        print()
        print(f"  Total time: {styled(f'{elapsed_seconds:.1f}s', Colors.GREEN)} "
              f"({elapsed_seconds / 60:.1f} minutes)")
    print()
