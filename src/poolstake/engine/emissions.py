"""Module A: Emission Schedule - Piecewise-constant token issuance over time.

Key Concepts:
- A schedule is an ordered list of (timestamp, rate) points
- Each rate is in effect from its timestamp until the next point
- The last rate stays in effect forever
- Nothing is emitted before the first point
"""

import logging
from dataclasses import dataclass
from typing import Iterable, Optional, Tuple

from .errors import ConfigError, ErrorKind, ValidationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EmissionPoint:
    """A rate change in the emission schedule."""
    timestamp: int  # Time the rate takes effect
    rate: int  # Tokens emitted per unit of time


class EmissionSchedule:
    """Immutable, validated emission schedule."""

    def __init__(self, points: Iterable[EmissionPoint]):
        """
        Build and validate a schedule.

        Args:
            points: Emission points in ascending timestamp order

        Raises:
            ConfigError: If the schedule is empty, not strictly ascending,
                or contains a negative rate
        """
        points = tuple(points)
        if not points:
            raise ConfigError(ErrorKind.CANNOT_HAVE_EMPTY_EMISSION_SCHEDULE)

        for prev, point in zip(points, points[1:]):
            if point.timestamp <= prev.timestamp:
                raise ConfigError(ErrorKind.EMISSION_SCHEDULE_NOT_ASCENDING)
        if any(point.rate < 0 for point in points):
            raise ConfigError(ErrorKind.NEGATIVE_EMISSION_RATE)

        self.points: Tuple[EmissionPoint, ...] = points

    def __len__(self) -> int:
        return len(self.points)

    def __iter__(self):
        return iter(self.points)

    @property
    def earliest_time(self) -> int:
        """Minimum timestamp across all points."""
        return min(point.timestamp for point in self.points)

    def rate_at(self, t: int) -> int:
        """Rate in effect at time t (0 before the first point)."""
        rate = 0
        for point in self.points:
            if t < point.timestamp:
                break
            rate = point.rate
        return rate

    def total_emitted(self, from_time: int, to_time: int) -> int:
        """
        Compute tokens emitted over [from_time, to_time).

        Additive over adjacent intervals:
        total_emitted(a, c) == total_emitted(a, b) + total_emitted(b, c)

        Args:
            from_time: Interval start
            to_time: Interval end

        Returns:
            Total tokens emitted in the interval

        Raises:
            ValidationError: If to_time < from_time
        """
        if to_time < from_time:
            raise ValidationError(ErrorKind.CANNOT_CALCULATE_EMISSIONS)

        total = 0
        working_time = from_time
        working_rate = 0
        for point in self.points:
            # Points past the window end cannot contribute
            if to_time < point.timestamp:
                return total + (to_time - working_time) * working_rate
            if working_time < point.timestamp:
                total += (point.timestamp - working_time) * working_rate
                working_time = point.timestamp
            working_rate = point.rate

        if working_time < to_time:
            total += (to_time - working_time) * working_rate
        return total


class StakerConfigStore:
    """Versioned holder of the active emission schedule.

    Each accepted update bumps `version`; rejected updates leave the store
    untouched.
    """

    def __init__(self):
        self.schedule: Optional[EmissionSchedule] = None
        self.version = 0

    @property
    def has_schedule(self) -> bool:
        return self.schedule is not None

    @property
    def earliest_emission_time(self) -> int:
        """Accrual floor for newly configured pools (0 with no schedule)."""
        if self.schedule is None:
            return 0
        return self.schedule.earliest_time

    def set_schedule(self, points: Iterable[EmissionPoint]) -> EmissionSchedule:
        """Validate and install a replacement schedule."""
        schedule = EmissionSchedule(points)
        self.schedule = schedule
        self.version += 1
        logger.info(
            "Emission schedule v%d installed: %d points from t=%d",
            self.version, len(schedule), schedule.earliest_time
        )
        return schedule

    def total_emitted(self, from_time: int, to_time: int) -> int:
        """Evaluate the active schedule; no schedule emits nothing."""
        if self.schedule is None:
            if to_time < from_time:
                raise ValidationError(ErrorKind.CANNOT_CALCULATE_EMISSIONS)
            return 0
        return self.schedule.total_emitted(from_time, to_time)
