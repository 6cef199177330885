"""Integration tests against emulated and stubbed EC2 endpoints."""
import os
import sys
from datetime import datetime, timezone
from decimal import Decimal

import boto3
import pytest
from botocore.stub import ANY, Stubber
from moto import mock_aws

# Add project root to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '../..'))

from instance_details import get_instance_details
from spot_config import default_config
from spot_price_checker import check_instance_type
from spot_prices import Classification, get_spot_prices


class TestMotoInstanceDetails:
    """Instance type lookup against moto's EC2 catalogue."""

    def test_m5_large(self, aws_credentials):
        with mock_aws():
            spec = get_instance_details('m5.large', 'us-east-1')

        assert 'x86_64' in spec.architecture
        assert spec.vcpus == 2
        assert spec.memory_gib == Decimal(8)
        assert spec.unknown_fields == frozenset()

    def test_graviton_type(self, aws_credentials):
        with mock_aws():
            spec = get_instance_details('m6g.large', 'us-east-1')

        assert spec.architecture == 'arm64'
        assert spec.vcpus == 2


@pytest.fixture
def stubbed_ec2(aws_credentials):
    client = boto3.client('ec2', region_name='us-west-2')
    with Stubber(client) as stubber:
        yield client, stubber
        stubber.assert_no_pending_responses()


def spot_record(zone, price, hour):
    return {
        'AvailabilityZone': zone,
        'InstanceType': 'c5.xlarge',
        'ProductDescription': 'Linux/UNIX',
        'SpotPrice': price,
        'Timestamp': datetime(2024, 1, 1, hour, 0, tzinfo=timezone.utc),
    }


SPOT_REQUEST = {
    'InstanceTypes': ['c5.xlarge'],
    'ProductDescriptions': ['Linux/UNIX', 'Linux/UNIX (Amazon VPC)'],
    'StartTime': ANY,
}


class TestStubbedSpotPrices:
    """Spot price aggregation through the real boto3 paginator."""

    def test_paginated_history(self, stubbed_ec2):
        client, stubber = stubbed_ec2
        stubber.add_response(
            'describe_spot_price_history',
            {
                'SpotPriceHistory': [spot_record('us-west-2a', '0.080000', 9), spot_record('us-west-2b', '0.070000', 9)],
                'NextToken': 'page-2',
            },
            SPOT_REQUEST,
        )
        stubber.add_response(
            'describe_spot_price_history',
            {
                'SpotPriceHistory': [spot_record('us-west-2a', '0.075000', 10), spot_record('us-west-2c', '0.090000', 8)],
            },
            dict(SPOT_REQUEST, NextToken='page-2'),
        )

        summary = get_spot_prices('c5.xlarge', 'us-west-2', ec2_client=client, config=default_config())

        assert [(z.zone, z.price, z.classification) for z in summary.zones] == [
            ('us-west-2b', Decimal('0.07'), Classification.CHEAPEST),
            ('us-west-2a', Decimal('0.075'), Classification.NEAR_CHEAPEST),
            ('us-west-2c', Decimal('0.09'), Classification.NORMAL),
        ]

    def test_full_check(self, stubbed_ec2):
        client, stubber = stubbed_ec2
        stubber.add_response(
            'describe_instance_types',
            {'InstanceTypes': [{
                'InstanceType': 'c5.xlarge',
                'ProcessorInfo': {'SupportedArchitectures': ['x86_64']},
                'VCpuInfo': {'DefaultVCpus': 4},
                'MemoryInfo': {'SizeInMiB': 8192},
            }]},
            {'InstanceTypes': ['c5.xlarge']},
        )
        stubber.add_response(
            'describe_spot_price_history',
            {'SpotPriceHistory': [spot_record('us-west-2a', '0.080000', 9)]},
            SPOT_REQUEST,
        )

        report = check_instance_type('c5.xlarge', 'us-west-2', default_config(), lambda region: client)

        assert not report.failed
        assert report.details.vcpus == 4
        assert report.details.memory_gib == Decimal(8)
        assert report.spot_prices.cheapest.zone == 'us-west-2a'

    def test_client_error_is_reported(self, stubbed_ec2):
        client, stubber = stubbed_ec2
        stubber.add_client_error('describe_instance_types', service_error_code='UnauthorizedOperation',
                                 http_status_code=403)
        stubber.add_response('describe_spot_price_history', {'SpotPriceHistory': []}, SPOT_REQUEST)

        report = check_instance_type('c5.xlarge', 'us-west-2', default_config(), lambda region: client)

        assert 'UnauthorizedOperation' in str(report.details_error)
        assert report.spot_prices.cheapest is None
        assert report.failed
