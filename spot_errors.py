#!/usr/bin/env python3
"""
Exceptions raised by the spot price checker.
Transport failures are left as botocore's own ClientError / BotoCoreError.
"""


class SpotCheckerError(Exception):
    """Base class for errors reported per instance type."""


class InvalidRegionError(SpotCheckerError):
    """Region string is not a known AWS region identifier."""

    def __init__(self, region: str):
        self.region = region
        super().__init__(f"Unknown AWS region: {region!r}")


class InstanceTypeNotFoundError(SpotCheckerError):
    """EC2 returned no instance type record for the requested type."""

    def __init__(self, instance_type: str):
        self.instance_type = instance_type
        super().__init__("Instance details not found")


class MalformedPriceError(SpotCheckerError):
    """A spot price record could not be parsed."""

    def __init__(self, message: str, record=None):
        self.record = record
        super().__init__(message)


class ConfigError(SpotCheckerError):
    """Invalid checker configuration value."""
