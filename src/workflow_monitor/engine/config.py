"""Configuration for the reconciliation engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timedelta

__all__ = ["MonitorConfig"]

MIN_FETCH_TIMEOUT = 1.0
MAX_FETCH_TIMEOUT = 120.0


@dataclass
class MonitorConfig:
    """Tunables for run reconciliation.

    Attributes:
        stale_timeout: A running run whose ``updated_at`` is older than this is stale.
        fetch_timeout: Upper bound in seconds for one remote execution fetch. A fetch
            that exceeds it is treated as ``UNKNOWN``.

    Example:
        >>> from datetime import timedelta
        >>> config = MonitorConfig(stale_timeout=timedelta(hours=2), fetch_timeout=10.0)
    """

    stale_timeout: timedelta = field(default_factory=lambda: timedelta(hours=6))
    fetch_timeout: float = 15.0

    def __post_init__(self) -> None:
        if self.stale_timeout <= timedelta(0):
            msg = "stale_timeout must be positive"
            raise ValueError(msg)
        if not MIN_FETCH_TIMEOUT <= self.fetch_timeout <= MAX_FETCH_TIMEOUT:
            msg = f"fetch_timeout must be between {MIN_FETCH_TIMEOUT:g} and {MAX_FETCH_TIMEOUT:g} seconds"
            raise ValueError(msg)

    @property
    def stale_hours(self) -> float:
        """The staleness threshold expressed in hours."""
        return self.stale_timeout.total_seconds() / 3600
