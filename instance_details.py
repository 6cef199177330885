#!/usr/bin/env python3
"""
Look up static EC2 instance type specifications (architecture, vCPUs, memory).
"""
import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, Any, FrozenSet

from botocore.exceptions import ClientError

from ec2_client import create_ec2_client, validate_region
from spot_errors import InstanceTypeNotFoundError

logger = logging.getLogger(__name__)

MIB_PER_GIB = 1024


@dataclass(frozen=True)
class InstanceSpec:
    """Hardware specification of one instance type.

    Fields EC2 did not report keep their zero defaults and are named in
    ``unknown_fields``.
    """
    instance_type: str
    architecture: str = ""
    vcpus: int = 0
    memory_gib: Decimal = Decimal(0)
    unknown_fields: FrozenSet[str] = field(default_factory=frozenset)

    def is_known(self, name: str) -> bool:
        return name not in self.unknown_fields


def parse_instance_spec(instance_type: str, record: Dict[str, Any]) -> InstanceSpec:
    """Build an InstanceSpec from one describe_instance_types record."""
    unknown = set()

    architectures = (record.get('ProcessorInfo') or {}).get('SupportedArchitectures') or []
    architecture = ", ".join(architectures)
    if not architecture:
        unknown.add('architecture')

    vcpus = (record.get('VCpuInfo') or {}).get('DefaultVCpus') or 0
    if vcpus <= 0:
        # zero vCPUs is never a real value
        vcpus = 0
        unknown.add('vcpus')

    memory_mib = (record.get('MemoryInfo') or {}).get('SizeInMiB')
    if memory_mib is None:
        memory_gib = Decimal(0)
        unknown.add('memory_gib')
    else:
        memory_gib = Decimal(memory_mib) / MIB_PER_GIB

    return InstanceSpec(
        instance_type=record.get('InstanceType', instance_type),
        architecture=architecture,
        vcpus=vcpus,
        memory_gib=memory_gib,
        unknown_fields=frozenset(unknown),
    )


def get_instance_details(instance_type: str, region: str, ec2_client=None) -> InstanceSpec:
    """Query EC2 for the specification of a single instance type."""
    validate_region(region)
    if ec2_client is None:
        ec2_client = create_ec2_client(region)

    logger.info(f"Querying instance details for {instance_type} in {region}")
    try:
        response = ec2_client.describe_instance_types(InstanceTypes=[instance_type])
    except ClientError as e:
        if e.response.get('Error', {}).get('Code') == 'InvalidInstanceType':
            raise InstanceTypeNotFoundError(instance_type) from e
        raise

    records = response.get('InstanceTypes') or []
    if not records:
        raise InstanceTypeNotFoundError(instance_type)

    spec = parse_instance_spec(instance_type, records[0])
    if spec.unknown_fields:
        logger.warning(f"EC2 did not report {', '.join(sorted(spec.unknown_fields))} for {instance_type}")
    return spec
