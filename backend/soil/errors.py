"""
errors.py — Soil Monitor Exceptions
====================================
"""


class SoilMonitorError(Exception):
    """Base class for soil monitor errors."""


class ConfigError(SoilMonitorError, ValueError):
    """
    Raised at construction time when a component is given an invalid
    configuration (non-positive noise, inverted range bands, ...).

    Not recoverable mid-run: the engine refuses to be built.
    """


class TickError(SoilMonitorError):
    """
    Raised when a tick fails part-way.

    The engine state is left exactly as it was before the tick. The
    scheduler decides whether to skip the tick or stop monitoring.
    """
