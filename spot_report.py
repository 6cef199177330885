#!/usr/bin/env python3
"""
Console rendering for spot price checker results.
"""
from decimal import Decimal

from rich.console import Console
from rich.markup import escape

from instance_details import InstanceSpec
from spot_prices import Classification, SpotPriceSummary

TOOL_TITLE = "AWS Spot Price Checker"

BANNER = r"""
    _____  _       _  ___       ___                  _    _
   (  _  )( )  _  ( )(  _`\    (  _`\               ( )_ ( )_
   | (_) || | ( ) | || (_(_)   | (_(_) _ _      _   | ,_)| ,_)   __   _ __
   |  _  || | | | | |`\__ \    `\__ \ ( '_`\  /'_`\ | |  | |   /'__`\( '__)
   | | | || (_/ \_) |( )_) |   ( )_) || (_) )( (_) )| |_ | |_ (  ___/| |
   (_) (_)`\___x___/'`\____)   `\____)| ,__/'`\___/'`\__)`\__)`\____)(_)
                                      | |
                                      (_)
"""

TABLE_RULE = "-" * 48
TABLE_HEADING = f"| {'Availability Zone':<22} | {'Hourly Rate':<19} |"

ROW_STYLES = {
    Classification.CHEAPEST: "green",
    Classification.NEAR_CHEAPEST: "yellow",
    Classification.NORMAL: None,
}

UNKNOWN = "unknown"


def _print(console: Console, text: str, style=None):
    # markup/highlight off so zone names and prices are printed verbatim
    console.print(text, style=style, markup=False, highlight=False, emoji=False, soft_wrap=True)


def format_price(price: Decimal) -> str:
    """Format a price without trailing zeros ($0.055, not $0.055000)."""
    return f"${format(price.normalize(), 'f')}"


def format_memory(memory_gib: Decimal) -> str:
    """Format GiB without trailing zeros (8, 1.5, 0.5)."""
    return format(memory_gib.normalize(), 'f')


def format_table_row(zone: str, price: Decimal) -> str:
    return f"| {zone:<22} | {format_price(price):<19} |"


def print_banner(console: Console):
    _print(console, BANNER, style="cyan")


def print_header(console: Console, instance_type: str, region: str):
    """Print the per-instance-type section header."""
    _print(console, f"{TOOL_TITLE}\n======================\n", style="bright_blue")
    console.print(f"Instance Type: [bright_green]{escape(instance_type)}[/]", highlight=False)
    console.print(f"Region: [bright_green]{escape(region)}[/]\n", highlight=False)


def print_instance_details(console: Console, spec: InstanceSpec):
    """Print architecture, vCPUs and memory, marking unreported fields."""
    architecture = spec.architecture if spec.is_known('architecture') else UNKNOWN
    vcpus = str(spec.vcpus) if spec.is_known('vcpus') else UNKNOWN
    memory = f"{format_memory(spec.memory_gib)} GiB" if spec.is_known('memory_gib') else UNKNOWN

    console.print(f"Architecture: [bright_green]{escape(architecture)}[/]", highlight=False)
    console.print(f"vCPU's: [bright_green]{vcpus}[/]", highlight=False)
    console.print(f"Memory: [bright_green]{memory}[/]\n", highlight=False)


def print_spot_price_table(console: Console, summary: SpotPriceSummary):
    """Print zones in ascending price order, coloured by classification."""
    _print(console, f"\n{TABLE_RULE}\n{TABLE_HEADING}\n{TABLE_RULE}", style="bold")
    for zone in summary.zones:
        _print(console, format_table_row(zone.zone, zone.price), style=ROW_STYLES[zone.classification])
    _print(console, TABLE_RULE)


def cheapest_summary_line(summary: SpotPriceSummary) -> str:
    cheapest = summary.cheapest
    if cheapest is None:
        return (f"Cheapest hourly rate: unavailable "
                f"(no spot price history in the last {summary.window_hours:g} hours)")
    return f"Cheapest hourly rate: {format_price(cheapest.price)} in zone {cheapest.zone}"


def print_cheapest_summary(console: Console, summary: SpotPriceSummary):
    style = "bright_green" if summary.has_data else "red"
    _print(console, f"\n💡 {cheapest_summary_line(summary)}", style=style)
    if summary.skipped_records:
        _print(console, f"({summary.skipped_records} malformed price records skipped)", style="dim")


def print_spot_prices(console: Console, summary: SpotPriceSummary):
    print_spot_price_table(console, summary)
    print_cheapest_summary(console, summary)


def print_error(err_console: Console, message: str):
    _print(err_console, message, style="red")
