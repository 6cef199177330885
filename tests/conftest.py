"""Test configuration and fixtures for spot price checker tests."""
import io
import json
import os
import tempfile
from datetime import datetime, timezone

import pytest
from unittest.mock import MagicMock
from rich.console import Console


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield tmpdir


@pytest.fixture
def sample_config():
    """Sample configuration for testing."""
    return {
        "spot_checker": {
            "region": "us-east-1",
            "history_window_hours": 6,
            "product_descriptions": ["Linux/UNIX"],
            "near_cheapest_margin": 0.2,
            "max_workers": 4
        },
        "aws": {
            "key_name": "unrelated-section"
        }
    }


@pytest.fixture
def config_file(temp_dir, sample_config):
    """Create a temporary config file."""
    config_path = os.path.join(temp_dir, "config.json")
    with open(config_path, 'w') as f:
        json.dump(sample_config, f)
    return config_path


@pytest.fixture
def checker_config():
    """Built-in checker configuration."""
    from spot_config import default_config
    return default_config()


@pytest.fixture
def sample_spot_price_history():
    """Raw describe_spot_price_history records, as boto3 returns them."""
    return [
        {
            'AvailabilityZone': 'us-west-2a',
            'InstanceType': 'm5.large',
            'ProductDescription': 'Linux/UNIX',
            'SpotPrice': '0.050000',
            'Timestamp': datetime(2024, 1, 1, 10, 0, tzinfo=timezone.utc)
        },
        {
            'AvailabilityZone': 'us-west-2a',
            'InstanceType': 'm5.large',
            'ProductDescription': 'Linux/UNIX',
            'SpotPrice': '0.060000',
            'Timestamp': datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
        },
        {
            'AvailabilityZone': 'us-west-2b',
            'InstanceType': 'm5.large',
            'ProductDescription': 'Linux/UNIX (Amazon VPC)',
            'SpotPrice': '0.055000',
            'Timestamp': datetime(2024, 1, 1, 11, 0, tzinfo=timezone.utc)
        },
        {
            'AvailabilityZone': 'us-west-2c',
            'InstanceType': 'm5.large',
            'ProductDescription': 'Linux/UNIX',
            'SpotPrice': '0.090000',
            'Timestamp': datetime(2024, 1, 1, 11, 30, tzinfo=timezone.utc)
        }
    ]


@pytest.fixture
def sample_instance_type_record():
    """A describe_instance_types record for m5.large."""
    return {
        'InstanceType': 'm5.large',
        'ProcessorInfo': {'SupportedArchitectures': ['x86_64']},
        'VCpuInfo': {'DefaultVCpus': 2},
        'MemoryInfo': {'SizeInMiB': 8192}
    }


@pytest.fixture
def mock_ec2_client(sample_spot_price_history, sample_instance_type_record):
    """Mock EC2 client serving spot price history through a paginator."""
    ec2_mock = MagicMock()
    ec2_mock.describe_instance_types.return_value = {
        'InstanceTypes': [sample_instance_type_record]
    }
    ec2_mock.get_paginator.return_value.paginate.return_value = [
        {'SpotPriceHistory': sample_spot_price_history[:2]},
        {'SpotPriceHistory': sample_spot_price_history[2:]}
    ]
    return ec2_mock


@pytest.fixture
def aws_credentials(monkeypatch):
    """Fake credentials so boto3 never reaches real AWS."""
    monkeypatch.setenv('AWS_ACCESS_KEY_ID', 'testing')
    monkeypatch.setenv('AWS_SECRET_ACCESS_KEY', 'testing')
    monkeypatch.setenv('AWS_SECURITY_TOKEN', 'testing')
    monkeypatch.setenv('AWS_SESSION_TOKEN', 'testing')
    monkeypatch.setenv('AWS_DEFAULT_REGION', 'us-east-1')


@pytest.fixture
def console_output():
    """Plain-text rich consoles writing to in-memory buffers."""
    out, err = io.StringIO(), io.StringIO()
    consoles = {
        'console': Console(file=out, width=120, color_system=None),
        'err_console': Console(file=err, width=120, color_system=None),
        'out': out,
        'err': err,
    }
    return consoles
