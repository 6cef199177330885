#!/usr/bin/env python3
"""
EC2 client construction with region validation.
"""
import logging
from functools import lru_cache
from typing import FrozenSet

import boto3

from spot_errors import InvalidRegionError

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def known_ec2_regions() -> FrozenSet[str]:
    """All EC2 region names botocore knows about, across every partition."""
    session = boto3.session.Session()
    regions = set()
    for partition in session.get_available_partitions():
        regions.update(session.get_available_regions('ec2', partition_name=partition))
    return frozenset(regions)


def validate_region(region: str) -> str:
    """Return the normalised region name or raise InvalidRegionError."""
    name = (region or '').strip().lower()
    if name not in known_ec2_regions():
        raise InvalidRegionError(region)
    return name


def create_ec2_client(region: str):
    """Create a boto3 EC2 client for a validated region."""
    region = validate_region(region)
    logger.debug(f"Creating EC2 client for {region}")
    return boto3.client('ec2', region_name=region)
