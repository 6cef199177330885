#!/usr/bin/env python3
"""
Spot price aggregation for a single instance type.

EC2 returns a window of historical spot price observations, possibly several
per availability zone and in no particular order. This module reduces them to
the latest price per zone, finds the cheapest zone, and classifies every zone
relative to it:

* CHEAPEST       - the minimum price (ties go to the smallest zone name)
* NEAR_CHEAPEST  - within the margin above the minimum, inclusive
* NORMAL         - everything else
"""
import enum
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from decimal import Decimal, InvalidOperation
from typing import Dict, Any, Iterable, List, Optional

from ec2_client import create_ec2_client, validate_region
from spot_config import default_config
from spot_errors import MalformedPriceError

logger = logging.getLogger(__name__)


class Classification(enum.Enum):
    CHEAPEST = 'cheapest'
    NEAR_CHEAPEST = 'near_cheapest'
    NORMAL = 'normal'


@dataclass(frozen=True)
class PriceObservation:
    availability_zone: str
    price: Decimal
    observed_at: datetime


@dataclass(frozen=True)
class ZoneLatestPrice:
    zone: str
    price: Decimal
    observed_at: datetime


@dataclass(frozen=True)
class RankedZone:
    zone: str
    price: Decimal
    observed_at: datetime
    classification: Classification


@dataclass
class SpotPriceSummary:
    """Ranked spot prices for one instance type in one region."""
    instance_type: str
    region: str
    zones: List[RankedZone] = field(default_factory=list)
    skipped_records: int = 0
    window_hours: float = 4

    @property
    def cheapest(self) -> Optional[RankedZone]:
        """The CHEAPEST zone, or None when there was no usable price data."""
        for zone in self.zones:
            if zone.classification is Classification.CHEAPEST:
                return zone
        return None

    @property
    def has_data(self) -> bool:
        return bool(self.zones)


def parse_price(raw) -> Decimal:
    """Parse an EC2 SpotPrice string into a Decimal."""
    try:
        price = Decimal(str(raw).strip())
    except (InvalidOperation, ValueError):
        raise MalformedPriceError(f"Invalid spot price: {raw!r}")
    if not price.is_finite() or price < 0:
        raise MalformedPriceError(f"Invalid spot price: {raw!r}")
    return price


def parse_timestamp(raw) -> datetime:
    """Parse an EC2 timestamp into a timezone-aware datetime (UTC if naive)."""
    if isinstance(raw, datetime):
        value = raw
    elif isinstance(raw, str):
        try:
            value = datetime.fromisoformat(raw.strip().replace('Z', '+00:00'))
        except ValueError:
            raise MalformedPriceError(f"Invalid spot price timestamp: {raw!r}")
    else:
        raise MalformedPriceError(f"Invalid spot price timestamp: {raw!r}")

    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


def parse_price_observation(record: Dict[str, Any]) -> PriceObservation:
    """Convert one SpotPriceHistory record into a PriceObservation."""
    try:
        return PriceObservation(
            availability_zone=record['AvailabilityZone'],
            price=parse_price(record['SpotPrice']),
            observed_at=parse_timestamp(record['Timestamp']),
        )
    except MalformedPriceError as e:
        e.record = record
        raise


def reduce_latest_per_zone(observations: Iterable[PriceObservation]) -> Dict[str, ZoneLatestPrice]:
    """Keep only the most recent observation for each zone.

    On equal timestamps the observation seen last wins.
    """
    latest: Dict[str, ZoneLatestPrice] = {}
    for obs in observations:
        current = latest.get(obs.availability_zone)
        if current is None or obs.observed_at >= current.observed_at:
            latest[obs.availability_zone] = ZoneLatestPrice(
                zone=obs.availability_zone,
                price=obs.price,
                observed_at=obs.observed_at,
            )
    return latest


def _price_order(entry) -> tuple:
    return (entry.price, entry.zone)


def find_cheapest(latest: Dict[str, ZoneLatestPrice]) -> Optional[ZoneLatestPrice]:
    """Lowest-priced zone; exact ties go to the lexicographically smallest zone."""
    if not latest:
        return None
    return min(latest.values(), key=_price_order)


def classify_price(price: Decimal, min_price: Decimal, near_cheapest_margin: Decimal) -> Classification:
    """Classify a non-cheapest zone's price against the minimum."""
    if price <= min_price * (1 + near_cheapest_margin):
        return Classification.NEAR_CHEAPEST
    return Classification.NORMAL


def rank_zones(latest: Dict[str, ZoneLatestPrice],
               near_cheapest_margin: Decimal = Decimal('0.1')) -> List[RankedZone]:
    """Sort zones by ascending price and classify each against the cheapest."""
    cheapest = find_cheapest(latest)
    if cheapest is None:
        return []

    ranked = []
    for entry in sorted(latest.values(), key=_price_order):
        if entry.zone == cheapest.zone:
            classification = Classification.CHEAPEST
        else:
            classification = classify_price(entry.price, cheapest.price, near_cheapest_margin)
        ranked.append(RankedZone(
            zone=entry.zone,
            price=entry.price,
            observed_at=entry.observed_at,
            classification=classification,
        ))
    return ranked


def summarize_spot_prices(instance_type: str, region: str,
                          observations: Iterable[PriceObservation],
                          near_cheapest_margin: Decimal = Decimal('0.1'),
                          skipped_records: int = 0,
                          window_hours: float = 4) -> SpotPriceSummary:
    """Reduce, rank and classify a batch of observations."""
    latest = reduce_latest_per_zone(observations)
    return SpotPriceSummary(
        instance_type=instance_type,
        region=region,
        zones=rank_zones(latest, near_cheapest_margin),
        skipped_records=skipped_records,
        window_hours=window_hours,
    )


def fetch_spot_price_history(ec2_client, instance_type: str, start_time: datetime,
                             product_descriptions: List[str]) -> List[Dict[str, Any]]:
    """Fetch all SpotPriceHistory records since start_time, across pages."""
    paginator = ec2_client.get_paginator('describe_spot_price_history')
    records = []
    for page in paginator.paginate(
        InstanceTypes=[instance_type],
        ProductDescriptions=product_descriptions,
        StartTime=start_time,
    ):
        records.extend(page.get('SpotPriceHistory', []))
    return records


def get_spot_prices(instance_type: str, region: str, ec2_client=None,
                    config: Optional[Dict[str, Any]] = None) -> SpotPriceSummary:
    """Fetch recent spot price history and rank availability zones by price."""
    config = config or default_config()
    validate_region(region)
    if ec2_client is None:
        ec2_client = create_ec2_client(region)

    window_hours = config['history_window_hours']
    start_time = datetime.now(timezone.utc) - timedelta(hours=window_hours)
    logger.info(f"Querying spot prices for {instance_type} in {region} since {start_time.isoformat()}")

    records = fetch_spot_price_history(
        ec2_client, instance_type, start_time, config['product_descriptions']
    )

    observations = []
    skipped = 0
    for record in records:
        if not all(record.get(key) is not None for key in ('SpotPrice', 'AvailabilityZone', 'Timestamp')):
            logger.debug(f"Ignoring incomplete spot price record: {record}")
            continue
        try:
            observations.append(parse_price_observation(record))
        except MalformedPriceError as e:
            skipped += 1
            logger.warning(f"Skipping spot price record for {instance_type}: {e}")

    logger.info(f"Got {len(observations)} spot price observations for {instance_type}")

    summary = summarize_spot_prices(
        instance_type, region, observations,
        near_cheapest_margin=config['near_cheapest_margin'],
        skipped_records=skipped,
        window_hours=window_hours,
    )
    if not summary.has_data:
        logger.warning(f"No spot price history for {instance_type} in {region} "
                       f"in the last {window_hours} hours")
    return summary
