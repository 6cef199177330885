#!/usr/bin/env python3
"""
Check AWS spot instance prices for one or more EC2 instance types.

For each instance type, print its hardware specification followed by the
latest spot price in every availability zone of the region, cheapest first.
"""
import argparse
import logging
import sys
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from botocore.exceptions import BotoCoreError, ClientError
from rich.console import Console

from ec2_client import create_ec2_client
from instance_details import InstanceSpec, get_instance_details
from spot_config import load_checker_config, validate_config
from spot_errors import ConfigError, SpotCheckerError
from spot_prices import SpotPriceSummary, get_spot_prices
import spot_report

__version__ = "3.2.1"

LOG_FORMAT = '%(asctime)s - %(levelname)s - %(message)s'

logger = logging.getLogger(__name__)

# Errors that fail one pipeline for one instance type without stopping the batch
CHECK_ERRORS = (SpotCheckerError, ClientError, BotoCoreError)


@dataclass
class InstanceTypeReport:
    """Outcome of both lookups for a single instance type."""
    instance_type: str
    region: str
    details: Optional[InstanceSpec] = None
    details_error: Optional[Exception] = None
    spot_prices: Optional[SpotPriceSummary] = None
    spot_prices_error: Optional[Exception] = None

    @property
    def failed(self) -> bool:
        return self.details_error is not None or self.spot_prices_error is not None


def check_instance_type(instance_type: str, region: str, config: Dict[str, Any],
                        client_factory: Optional[Callable] = None) -> InstanceTypeReport:
    """Run the instance details lookup, then the spot price aggregation."""
    report = InstanceTypeReport(instance_type=instance_type, region=region)
    client_factory = client_factory or create_ec2_client

    try:
        ec2 = client_factory(region)
    except CHECK_ERRORS as e:
        logger.debug(f"Could not create EC2 client for {region}", exc_info=True)
        report.details_error = report.spot_prices_error = e
        return report

    try:
        report.details = get_instance_details(instance_type, region, ec2_client=ec2)
    except CHECK_ERRORS as e:
        logger.debug(f"Instance details lookup failed for {instance_type}", exc_info=True)
        report.details_error = e

    try:
        report.spot_prices = get_spot_prices(instance_type, region, ec2_client=ec2, config=config)
    except CHECK_ERRORS as e:
        logger.debug(f"Spot price lookup failed for {instance_type}", exc_info=True)
        report.spot_prices_error = e

    return report


def _check_or_record(instance_type: str, region: str, config: Dict[str, Any],
                     client_factory: Optional[Callable] = None) -> InstanceTypeReport:
    # Anything unexpected still fails only this instance type
    try:
        return check_instance_type(instance_type, region, config, client_factory)
    except Exception as e:
        logger.error(f"Unexpected error checking {instance_type}: {e}", exc_info=True)
        return InstanceTypeReport(instance_type=instance_type, region=region,
                                  details_error=e, spot_prices_error=e)


def run_checks(instance_types: List[str], region: str, config: Dict[str, Any],
               client_factory: Optional[Callable] = None,
               on_report: Optional[Callable[[InstanceTypeReport], None]] = None) -> List[InstanceTypeReport]:
    """Check every instance type, delivering reports in input order.

    With max_workers > 1 the checks run in a thread pool; each report is
    handed to on_report only once all reports before it have been.
    """
    workers = min(config['max_workers'], len(instance_types))
    reports = []

    if workers <= 1:
        for instance_type in instance_types:
            report = _check_or_record(instance_type, region, config, client_factory)
            reports.append(report)
            if on_report:
                on_report(report)
        return reports

    logger.info(f"Checking {len(instance_types)} instance types with {workers} workers")
    with ThreadPoolExecutor(max_workers=workers) as executor:
        futures = [
            executor.submit(_check_or_record, instance_type, region, config, client_factory)
            for instance_type in instance_types
        ]
        for future in futures:
            report = future.result()
            reports.append(report)
            if on_report:
                on_report(report)

    return reports


def print_report(report: InstanceTypeReport, console: Console, err_console: Console):
    """Print one instance type's section; errors go to the error console."""
    spot_report.print_header(console, report.instance_type, report.region)

    if report.details is not None:
        spot_report.print_instance_details(console, report.details)
    else:
        spot_report.print_error(
            err_console, f"Error fetching instance details for {report.instance_type}: {report.details_error}"
        )

    if report.spot_prices is not None:
        spot_report.print_spot_prices(console, report.spot_prices)
    else:
        spot_report.print_error(
            err_console, f"Error fetching spot prices for {report.instance_type}: {report.spot_prices_error}"
        )

    console.print()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="spot-price-checker",
        description="Check AWS Spot Instance prices",
    )
    parser.add_argument("instance_types", nargs="+", metavar="INSTANCE_TYPE",
                        help="EC2 instance types")
    parser.add_argument("--region", "-r", metavar="REGION",
                        help="Specify the AWS region (default: us-west-2)")
    parser.add_argument("--config", default="config.json",
                        help="Configuration file (default: config.json)")
    parser.add_argument("--workers", type=int,
                        help="Check up to N instance types concurrently (default: 1)")
    parser.add_argument("--no-color", action="store_true",
                        help="Disable colored output")
    parser.add_argument("--verbose", "-v", action="store_true",
                        help="Enable debug logging")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def configure_logging(verbose: bool = False):
    logging.basicConfig(level=logging.DEBUG if verbose else logging.WARNING, format=LOG_FORMAT)


def main(argv: Optional[List[str]] = None) -> int:
    """Main function for spot_price_checker.py"""
    parser = build_parser()
    args = parser.parse_args(argv)

    configure_logging(args.verbose)

    try:
        config = load_checker_config(args.config)
        if args.region is not None:
            config['region'] = args.region
        if args.workers is not None:
            config['max_workers'] = args.workers
        config = validate_config(config)
    except ConfigError as e:
        parser.error(str(e))

    console = Console(no_color=args.no_color)
    err_console = Console(stderr=True, no_color=args.no_color)

    spot_report.print_banner(console)

    reports = run_checks(
        args.instance_types, config['region'], config,
        on_report=lambda report: print_report(report, console, err_console),
    )

    failed = [r.instance_type for r in reports if r.failed]
    if failed:
        logger.error(f"{len(failed)} of {len(reports)} instance types failed: {', '.join(failed)}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
