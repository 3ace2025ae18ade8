"""
utils.py — Shared Utility Functions and Logging Setup
======================================================

Common helpers used across the soil monitor modules.
"""

import logging
import math

from . import config


def setup_logging(level: str = None) -> None:
    """
    Configure logging for the soil monitor.

    Sets up a console handler with timestamp, logger name, level,
    and message. All soil.* loggers inherit this configuration.

    Args:
        level: Log level string (DEBUG/INFO/WARNING/ERROR/CRITICAL).
               Defaults to config.LOG_LEVEL.
    """
    level = level or config.LOG_LEVEL
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    formatter = logging.Formatter(
        fmt="%(asctime)s [%(name)s] %(levelname)s — %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    soil_logger = logging.getLogger("soil")
    soil_logger.setLevel(numeric_level)

    # Avoid duplicate handlers on repeated calls
    if not soil_logger.handlers:
        soil_logger.addHandler(handler)


def validate_measurement(value) -> float:
    """
    Check a raw reading against the measurement source contract.

    Args:
        value: Reading from the measurement source.

    Returns:
        The reading as a float.

    Raises:
        ValueError: If the reading is not a finite, non-negative number.
    """
    try:
        measurement = float(value)
    except (TypeError, ValueError) as e:
        raise ValueError(f"Measurement is not a number: {value!r}") from e
    if not math.isfinite(measurement):
        raise ValueError(f"Measurement is not finite: {measurement}")
    if measurement < 0:
        raise ValueError(f"Measurement is negative: {measurement}")
    return measurement
