#!/usr/bin/env python3
"""
CloudFillPy - Interactive Command Line Interface

Fill clouds in a multi-band image from a clear image of the same scene
with an interactive, user-friendly command-line interface.

Usage:
    cloudfillpy              # Interactive mode (recommended)
    cloudfillpy --help       # Show help
"""

import os
import sys
import time
from pathlib import Path

import questionary
from questionary import Style

from . import __version__
from .core.console import (
    suppress_warnings, print_banner, print_section, print_config,
    print_success, print_error, print_info, print_complete
)
from .core.nspi import (
    DEFAULT_NUM_CLASS,
    DEFAULT_MIN_PIXEL,
    DEFAULT_CLOUD_NBH,
    DEFAULT_DN_MIN,
    DEFAULT_DN_MAX,
)

suppress_warnings()

# Custom style for questionary prompts
CUSTOM_STYLE = Style([
    ('qmark', 'fg:cyan bold'),
    ('question', 'bold'),
    ('answer', 'fg:green bold'),
    ('pointer', 'fg:cyan bold'),
    ('highlighted', 'fg:cyan bold'),
    ('selected', 'fg:green'),
    ('separator', 'fg:gray'),
    ('instruction', 'fg:gray'),
    ('text', ''),
    ('disabled', 'fg:gray italic'),
])


def get_store_name(path: str) -> str:
    """Extract store name without extension for default output name."""
    return Path(os.path.normpath(path)).stem


def validate_store(path: str) -> bool:
    """Validate input Zarr store exists."""
    return os.path.isdir(path)


def validate_positive_int(value: str, minimum: int = 1) -> bool:
    """Validate an integer prompt answer."""
    try:
        return int(value) >= minimum
    except ValueError:
        return False


def validate_number(value: str) -> bool:
    """Validate a numeric prompt answer."""
    try:
        float(value)
        return True
    except ValueError:
        return False


def _run_fill(cloudy, clear, mask, output_path, output_name, cloudy_var, clear_var,
              mask_var, num_class, min_pixel, cloud_nbh, dn_min, dn_max, parallel,
              save_counters):
    from .pipeline import process_cloud_fill

    return process_cloud_fill(
        cloudy_path=cloudy,
        clear_path=clear,
        mask_path=mask,
        output_path=output_path,
        file_name=output_name,
        cloudy_var=cloudy_var,
        clear_var=clear_var,
        mask_var=mask_var,
        num_class=num_class,
        min_pixel=min_pixel,
        cloud_nbh=cloud_nbh,
        dn_min=dn_min,
        dn_max=dn_max,
        parallel=parallel,
        verbose=True,
        save_region_counters=save_counters
    )


def run_interactive():
    """Run the interactive CLI."""
    print_banner()
    print()
    print_info("Welcome to CloudFillPy Interactive Mode!")
    print_info("Press Ctrl+C at any time to cancel.")
    print()

    try:
        # =====================================================================
        # Input Images
        # =====================================================================
        print_section("Input Configuration")

        cloudy = questionary.path(
            "Select the cloudy image (.zarr):",
            only_directories=True,
            style=CUSTOM_STYLE,
            validate=lambda x: validate_store(x) or "Please select an existing Zarr store"
        ).ask()
        if cloudy is None:
            return 1

        clear = questionary.path(
            "Select the clear reference image (.zarr):",
            only_directories=True,
            style=CUSTOM_STYLE,
            validate=lambda x: validate_store(x) or "Please select an existing Zarr store"
        ).ask()
        if clear is None:
            return 1

        mask = questionary.path(
            "Select the cloud mask (.zarr):",
            only_directories=True,
            style=CUSTOM_STYLE,
            validate=lambda x: validate_store(x) or "Please select an existing Zarr store"
        ).ask()
        if mask is None:
            return 1

        default_name = f"{get_store_name(cloudy)}_filled"

        # =====================================================================
        # Output Configuration
        # =====================================================================
        print()
        print_section("Output Configuration")

        output_path = questionary.path(
            "Select output directory:",
            only_directories=True,
            style=CUSTOM_STYLE,
            default="./"
        ).ask()
        if output_path is None:
            return 1

        output_name = questionary.text(
            "Enter output filename:",
            instruction="(without extension)",
            default=default_name,
            style=CUSTOM_STYLE,
            validate=lambda x: len(x) > 0 or "Filename is required"
        ).ask()
        if output_name is None:
            return 1

        # =====================================================================
        # NSPI Parameters
        # =====================================================================
        print()
        print_section("NSPI Parameters")

        num_class = questionary.text(
            "Estimated number of land-cover classes:",
            default=str(DEFAULT_NUM_CLASS),
            style=CUSTOM_STYLE,
            validate=lambda x: validate_positive_int(x) or "Enter an integer >= 1"
        ).ask()
        if num_class is None:
            return 1

        min_pixel = questionary.text(
            "Number of similar pixels per cloudy pixel:",
            default=str(DEFAULT_MIN_PIXEL),
            style=CUSTOM_STYLE,
            validate=lambda x: validate_positive_int(x) or "Enter an integer >= 1"
        ).ask()
        if min_pixel is None:
            return 1

        cloud_nbh = questionary.text(
            "Neighborhood margin around clouds (pixels):",
            default=str(DEFAULT_CLOUD_NBH),
            style=CUSTOM_STYLE,
            validate=lambda x: validate_positive_int(x, minimum=0) or "Enter an integer >= 0"
        ).ask()
        if cloud_nbh is None:
            return 1

        dn_min = questionary.text(
            "Minimum valid DN:",
            default=str(DEFAULT_DN_MIN),
            style=CUSTOM_STYLE,
            validate=lambda x: validate_number(x) or "Enter a number"
        ).ask()
        if dn_min is None:
            return 1

        dn_max = questionary.text(
            "Maximum valid DN:",
            default=str(DEFAULT_DN_MAX),
            style=CUSTOM_STYLE,
            validate=lambda x: validate_number(x) or "Enter a number"
        ).ask()
        if dn_max is None:
            return 1

        if float(dn_min) >= float(dn_max):
            print_error("Minimum DN must be below maximum DN!")
            return 1

        # =====================================================================
        # Advanced Options
        # =====================================================================
        print()
        show_advanced = questionary.confirm(
            "Show advanced options?",
            default=False,
            style=CUSTOM_STYLE
        ).ask()

        parallel = False
        save_counters = False

        if show_advanced:
            print()
            print_section("Advanced Options")

            parallel = questionary.confirm(
                "Fill cloud regions in parallel?",
                default=False,
                style=CUSTOM_STYLE
            ).ask()

            save_counters = questionary.confirm(
                "Save region counters to CSV?",
                default=False,
                style=CUSTOM_STYLE
            ).ask()

        # =====================================================================
        # Confirmation
        # =====================================================================
        print()
        print_section("Configuration Summary")
        print_config("Cloudy image", cloudy)
        print_config("Clear image", clear)
        print_config("Cloud mask", mask)
        print_config("Output", f"{output_path}/{output_name}.zarr")
        print_config("Classes", num_class)
        print_config("Similar pixels", min_pixel)
        print_config("Neighborhood", cloud_nbh)
        print_config("Valid DN range", f"({dn_min}, {dn_max})")
        print_config("Parallel", "Yes" if parallel else "No")
        print_config("Save Region Counters", "Yes" if save_counters else "No")
        print()

        confirm = questionary.confirm(
            "Proceed with processing?",
            default=True,
            style=CUSTOM_STYLE
        ).ask()

        if not confirm:
            print_info("Processing cancelled.")
            return 0

        # =====================================================================
        # Run Processing
        # =====================================================================
        print()
        print_section("Starting Processing")
        start_time = time.time()

        _run_fill(
            cloudy, clear, mask, output_path, output_name,
            cloudy_var=None, clear_var=None, mask_var='mask',
            num_class=int(num_class),
            min_pixel=int(min_pixel),
            cloud_nbh=int(cloud_nbh),
            dn_min=float(dn_min),
            dn_max=float(dn_max),
            parallel=parallel,
            save_counters=save_counters
        )

        elapsed = time.time() - start_time

        print()
        print_complete(f"Processing completed in {elapsed:.1f} seconds!")
        print_success(f"Output saved to: {output_path}/{output_name}.zarr")

        return 0

    except KeyboardInterrupt:
        print()
        print_info("Processing cancelled by user.")
        return 1
    except Exception as e:
        print()
        print_error(f"Error: {e}")
        return 1


def build_parser():
    """Build the argument parser for command-line mode."""
    import argparse

    parser = argparse.ArgumentParser(
        prog="cloudfillpy",
        description=f"CloudFillPy v{__version__} - NSPI Cloud Filling",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Interactive Mode (recommended):
  cloudfillpy                  Launch interactive wizard

Command-Line Mode:
  cloudfillpy -c CLOUDY -r CLEAR -m MASK -o OUTPUT

Examples:
  cloudfillpy -c ./cloudy.zarr -r ./clear.zarr -m ./mask.zarr -o ./output --num-class 4
        """
    )

    parser.add_argument('-c', '--cloudy', type=str, help='Cloudy image Zarr store')
    parser.add_argument('-r', '--clear', type=str, help='Clear reference image Zarr store')
    parser.add_argument('-m', '--mask', type=str, help='Cloud mask Zarr store')
    parser.add_argument('-o', '--output', type=str, help='Output directory')
    parser.add_argument('-n', '--name', type=str, help='Output filename (default: <cloudy>_filled)')
    parser.add_argument('--cloudy-var', type=str, default=None, help='Variable name in the cloudy store')
    parser.add_argument('--clear-var', type=str, default=None, help='Variable name in the clear store')
    parser.add_argument('--mask-var', type=str, default='mask', help="Variable name in the mask store (default: mask)")
    parser.add_argument('--num-class', type=int, default=DEFAULT_NUM_CLASS,
                        help=f'Estimated number of land-cover classes (default: {DEFAULT_NUM_CLASS})')
    parser.add_argument('--min-pixel', type=int, default=DEFAULT_MIN_PIXEL,
                        help=f'Similar pixels per cloudy pixel (default: {DEFAULT_MIN_PIXEL})')
    parser.add_argument('--cloud-nbh', type=int, default=DEFAULT_CLOUD_NBH,
                        help=f'Neighborhood margin in pixels (default: {DEFAULT_CLOUD_NBH})')
    parser.add_argument('--dn-min', type=float, default=DEFAULT_DN_MIN,
                        help=f'Minimum valid DN (default: {DEFAULT_DN_MIN})')
    parser.add_argument('--dn-max', type=float, default=DEFAULT_DN_MAX,
                        help=f'Maximum valid DN (default: {DEFAULT_DN_MAX})')
    parser.add_argument('--parallel', action='store_true', help='Fill cloud regions in parallel')
    parser.add_argument('--save-counters', action='store_true', help='Save region counters CSV')
    parser.add_argument('--version', action='version', version=f'CloudFillPy v{__version__}')

    return parser


def run_cli(argv=None):
    """Main entry point for the CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    # If no arguments provided, run interactive mode
    if argv is None and len(sys.argv) == 1:
        return run_interactive()

    required = ['cloudy', 'clear', 'mask', 'output']
    missing = [arg for arg in required if getattr(args, arg) is None]

    if missing:
        print_error(f"Missing required arguments: {', '.join(missing)}")
        print_info("Run 'cloudfillpy' without arguments for interactive mode")
        print_info("Or use 'cloudfillpy --help' for usage information")
        return 1

    for label, path in (('Cloudy image', args.cloudy), ('Clear image', args.clear), ('Cloud mask', args.mask)):
        if not validate_store(path):
            print_error(f"{label} not found: {path}")
            return 1

    output_name = args.name or f"{get_store_name(args.cloudy)}_filled"

    try:
        _run_fill(
            args.cloudy, args.clear, args.mask, args.output, output_name,
            cloudy_var=args.cloudy_var,
            clear_var=args.clear_var,
            mask_var=args.mask_var,
            num_class=args.num_class,
            min_pixel=args.min_pixel,
            cloud_nbh=args.cloud_nbh,
            dn_min=args.dn_min,
            dn_max=args.dn_max,
            parallel=args.parallel,
            save_counters=args.save_counters
        )
        return 0

    except Exception as e:
        print_error(f"Processing failed: {e}")
        return 1


def main():
    """Entry point for the cloudfillpy command."""
    sys.exit(run_cli())


if __name__ == "__main__":
    main()
