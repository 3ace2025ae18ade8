"""
classification.py — Agronomic Range Classification
====================================================

Maps a parameter value onto the reference bands in
config.PARAMETER_RANGES:

    optimal   — inside the optimal band (bounds inclusive)
    warning   — outside optimal but inside the warning band
    critical  — outside the warning band
    unknown   — the parameter has no configured bands

An unknown parameter is a display state, never an error.
"""

import logging

from . import config
from .errors import ConfigError

logger = logging.getLogger("soil.classification")

OPTIMAL = "optimal"
WARNING = "warning"
CRITICAL = "critical"
UNKNOWN = "unknown"


class RangeClassifier:
    """
    Classifier over a fixed table of per-parameter bands.

    Attributes:
        ranges (dict): parameter -> {"optimal": (lo, hi), "warning": (lo, hi)}
    """

    def __init__(self, ranges: dict = None):
        """
        Args:
            ranges: Band table. Defaults to config.PARAMETER_RANGES.

        Raises:
            ConfigError: If a band is inverted or the warning band does not
                contain the optimal band.
        """
        ranges = ranges if ranges is not None else config.PARAMETER_RANGES
        self.ranges = {name: _validate_bands(name, bands) for name, bands in ranges.items()}

    def classify(self, value: float, parameter: str) -> str:
        bands = self.ranges.get(parameter)
        if bands is None:
            logger.debug(f"No reference range for parameter '{parameter}'")
            return UNKNOWN

        opt_low, opt_high = bands["optimal"]
        warn_low, warn_high = bands["warning"]
        if opt_low <= value <= opt_high:
            return OPTIMAL
        if warn_low <= value <= warn_high:
            return WARNING
        return CRITICAL

    def classify_all(self, values: dict) -> dict:
        """Classify every entry of a {parameter: value} dict, skipping None."""
        return {
            name: self.classify(value, name)
            for name, value in values.items()
            if value is not None
        }


_default = None


def classify(value: float, parameter: str) -> str:
    """Classify against the default reference ranges."""
    global _default
    if _default is None:
        _default = RangeClassifier()
    return _default.classify(value, parameter)


def _validate_bands(name: str, bands: dict) -> dict:
    try:
        opt_low, opt_high = (float(v) for v in bands["optimal"])
        warn_low, warn_high = (float(v) for v in bands["warning"])
    except (KeyError, TypeError, ValueError) as e:
        raise ConfigError(f"Malformed range for '{name}': {bands!r}") from e

    if opt_low > opt_high or warn_low > warn_high:
        raise ConfigError(f"Inverted band for '{name}': {bands!r}")
    if warn_low > opt_low or warn_high < opt_high:
        raise ConfigError(f"Warning band for '{name}' must contain the optimal band")

    return {"optimal": (opt_low, opt_high), "warning": (warn_low, warn_high)}
