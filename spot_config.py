#!/usr/bin/env python3
"""
Configuration for the spot price checker.
Defaults can be overridden by a "spot_checker" section in config.json.
"""
import json
import logging
import math
import os
from decimal import Decimal, InvalidOperation
from typing import Dict, Any

from spot_errors import ConfigError

logger = logging.getLogger(__name__)

# Default configuration (can be overridden)
DEFAULT_REGION = 'us-west-2'
DEFAULT_HISTORY_WINDOW_HOURS = 4
MAX_HISTORY_WINDOW_HOURS = 90 * 24
DEFAULT_PRODUCT_DESCRIPTIONS = ['Linux/UNIX', 'Linux/UNIX (Amazon VPC)']
DEFAULT_NEAR_CHEAPEST_MARGIN = Decimal('0.1')
DEFAULT_MAX_WORKERS = 1

CONFIG_SECTION = 'spot_checker'


def default_config() -> Dict[str, Any]:
    """Return a fresh copy of the built-in configuration."""
    return {
        'region': DEFAULT_REGION,
        'history_window_hours': DEFAULT_HISTORY_WINDOW_HOURS,
        'product_descriptions': list(DEFAULT_PRODUCT_DESCRIPTIONS),
        'near_cheapest_margin': DEFAULT_NEAR_CHEAPEST_MARGIN,
        'max_workers': DEFAULT_MAX_WORKERS,
    }


def load_checker_config(config_file: str = "config.json") -> Dict[str, Any]:
    """Load checker settings from config file, falling back to defaults."""
    config = default_config()

    if os.path.exists(config_file):
        try:
            with open(config_file, 'r') as f:
                file_config = json.load(f)

            section = file_config.get(CONFIG_SECTION, {})
            if not isinstance(section, dict):
                logger.warning(f"Ignoring \"{CONFIG_SECTION}\" in {config_file}: expected an object, "
                               f"got {type(section).__name__}")
                section = {}
            config.update({key: section[key] for key in config if key in section})
            logger.debug(f"Loaded {CONFIG_SECTION} settings from {config_file}")
        except (OSError, json.JSONDecodeError, AttributeError) as e:
            logger.warning(f"Could not load config file {config_file}: {e}")

    return validate_config(config)


def validate_config(config: Dict[str, Any]) -> Dict[str, Any]:
    """Normalise value types and reject values the checker cannot use."""
    try:
        # str() so that JSON floats like 0.1 become exact decimals
        margin = Decimal(str(config['near_cheapest_margin']))
    except (InvalidOperation, ValueError):
        raise ConfigError(f"near_cheapest_margin must be a number, got {config['near_cheapest_margin']!r}")
    if not margin.is_finite() or margin < 0:
        raise ConfigError(f"near_cheapest_margin must be >= 0, got {margin}")
    config['near_cheapest_margin'] = margin

    hours = config['history_window_hours']
    if isinstance(hours, bool) or not isinstance(hours, (int, float)) or not math.isfinite(hours) or hours <= 0:
        raise ConfigError(f"history_window_hours must be a positive number, got {hours!r}")
    if hours > MAX_HISTORY_WINDOW_HOURS:
        raise ConfigError(f"history_window_hours must be at most {MAX_HISTORY_WINDOW_HOURS} "
                          f"(EC2 keeps 90 days of spot price history), got {hours!r}")

    workers = config['max_workers']
    if isinstance(workers, bool) or not isinstance(workers, int) or workers < 1:
        raise ConfigError(f"max_workers must be an integer >= 1, got {workers!r}")

    descriptions = config['product_descriptions']
    if isinstance(descriptions, str):
        descriptions = [descriptions]
    if not descriptions or not all(isinstance(d, str) and d for d in descriptions):
        raise ConfigError("product_descriptions must be a non-empty list of strings")
    config['product_descriptions'] = list(descriptions)

    if not isinstance(config['region'], str) or not config['region']:
        raise ConfigError("region must be a non-empty string")

    return config
