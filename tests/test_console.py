from CloudFillPy.core.console import (
    Colors,
    styled,
    print_config,
    print_error,
    print_fill_summary,
    print_complete,
)


def test_styled_wraps_and_resets():
    assert styled('x', Colors.BOLD, Colors.RED) == f"{Colors.BOLD}{Colors.RED}x{Colors.RESET}"


def test_print_helpers_include_message(capsys):
    print_config("Classes", 4)
    print_error("bad mask")

    out = capsys.readouterr().out
    assert "Classes:" in out and "4" in out
    assert "bad mask" in out


def test_print_fill_summary_totals_regions(capsys):
    counters = {
        'code': [1, 2],
        'weighted_pixels': [5, 3],
        'fallback_pixels': [1, 0],
        'range_gated_bands': [2, 0],
    }

    print_fill_summary(counters)

    out = capsys.readouterr().out
    assert "Filled 9 pixels in 2 region(s)" in out
    assert "Range-gated bands" in out


def test_print_complete_reports_time(capsys):
    print_complete("Done", elapsed_seconds=90.0)

    out = capsys.readouterr().out
    assert "Done" in out
    assert "1.5 minutes" in out
