"""
Exception hierarchy for the analytics engine.

Missing or insufficient data never raises: analyzers return empty or
degraded results instead. These exceptions cover malformed upstream data
and invalid configuration only.
"""


class AnalyticsError(Exception):
    """Base class for analytics errors."""


class MalformedSnapshotError(AnalyticsError):
    """Snapshot violates a structural assumption of an analyzer."""


class MissingATMOptionError(MalformedSnapshotError):
    """ATM call or put missing from a non-empty options chain."""

    def __init__(self, underlying: str, strike: float, side: str):
        self.underlying = underlying
        self.strike = strike
        self.side = side
        super().__init__(
            f"{underlying}: ATM {side} at strike {strike} missing from options chain"
        )


class ConfigError(AnalyticsError):
    """Invalid analytics configuration."""

    def __init__(self, errors: list[str]):
        self.errors = errors
        super().__init__("Invalid configuration: " + "; ".join(errors))
