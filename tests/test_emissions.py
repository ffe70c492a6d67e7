"""Unit tests for the emission schedule evaluator.

Tests verify:
- Piecewise emission totals over and across rate changes
- Additivity over adjacent intervals
- Schedule validation at write time
- Versioned config store behavior
"""

import pytest
import sys
import os

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from poolstake.engine.emissions import EmissionPoint, EmissionSchedule, StakerConfigStore
from poolstake.engine.errors import ConfigError, ErrorKind, ValidationError


def _schedule(*points):
    return EmissionSchedule(EmissionPoint(t, r) for t, r in points)


class TestTotalEmitted:
    """Tests for total_emitted."""

    def test_single_rate(self):
        """Constant rate emits rate * duration."""
        schedule = _schedule((0, 10))
        assert schedule.total_emitted(0, 100) == 1000
        assert schedule.total_emitted(50, 150) == 1000

    def test_nothing_before_first_point(self):
        """Time before the first point emits nothing."""
        schedule = _schedule((100, 10))
        assert schedule.total_emitted(0, 100) == 0
        assert schedule.total_emitted(0, 150) == 500

    def test_across_rate_changes(self):
        """Each segment is charged at its own rate."""
        schedule = _schedule((10, 5), (20, 7), (40, 0))
        # 10 units at 5, 20 units at 7, then rate 0
        assert schedule.total_emitted(0, 50) == 190
        assert schedule.total_emitted(15, 25) == 5 * 5 + 5 * 7
        assert schedule.total_emitted(40, 1000) == 0

    def test_last_rate_is_open_ended(self):
        """The final rate stays in effect forever."""
        schedule = _schedule((0, 1), (10, 3))
        assert schedule.total_emitted(10, 10_010) == 30_000

    def test_window_ending_exactly_on_point(self):
        """A window ending on a rate change does not use the new rate."""
        schedule = _schedule((0, 2), (10, 100))
        assert schedule.total_emitted(0, 10) == 20

    def test_zero_width_window(self):
        """total_emitted(t, t) is zero everywhere."""
        schedule = _schedule((10, 5), (20, 7))
        for t in (0, 10, 15, 20, 99):
            assert schedule.total_emitted(t, t) == 0

    def test_reversed_window_fails(self):
        """to < from raises CannotCalculateEmissions."""
        schedule = _schedule((0, 10))
        with pytest.raises(ValidationError) as exc_info:
            schedule.total_emitted(100, 50)
        assert exc_info.value.kind == ErrorKind.CANNOT_CALCULATE_EMISSIONS

    def test_additive_over_adjacent_intervals(self):
        """total(a, c) == total(a, b) + total(b, c) for a <= b <= c."""
        schedule = _schedule((5, 3), (17, 11), (30, 2), (31, 9))
        cuts = [0, 5, 6, 17, 29, 30, 31, 45]
        for a in cuts:
            for b in cuts:
                for c in cuts:
                    if a <= b <= c:
                        assert schedule.total_emitted(a, c) == (
                            schedule.total_emitted(a, b) + schedule.total_emitted(b, c)
                        )

    def test_rate_at(self):
        """rate_at reports the rate in effect."""
        schedule = _schedule((10, 5), (20, 7))
        assert schedule.rate_at(0) == 0
        assert schedule.rate_at(10) == 5
        assert schedule.rate_at(19) == 5
        assert schedule.rate_at(20) == 7
        assert schedule.rate_at(10_000) == 7


class TestScheduleValidation:
    """Schedules are validated when written."""

    def test_empty_schedule_rejected(self):
        with pytest.raises(ConfigError) as exc_info:
            EmissionSchedule([])
        assert exc_info.value.kind == ErrorKind.CANNOT_HAVE_EMPTY_EMISSION_SCHEDULE

    def test_descending_schedule_rejected(self):
        with pytest.raises(ConfigError) as exc_info:
            _schedule((20, 1), (10, 1))
        assert exc_info.value.kind == ErrorKind.EMISSION_SCHEDULE_NOT_ASCENDING

    def test_duplicate_timestamp_rejected(self):
        """Ascending order is strict."""
        with pytest.raises(ConfigError) as exc_info:
            _schedule((10, 1), (10, 2))
        assert exc_info.value.kind == ErrorKind.EMISSION_SCHEDULE_NOT_ASCENDING

    def test_negative_rate_rejected(self):
        with pytest.raises(ConfigError) as exc_info:
            _schedule((0, 1), (10, -1))
        assert exc_info.value.kind == ErrorKind.NEGATIVE_EMISSION_RATE

    def test_earliest_time(self):
        assert _schedule((7, 1), (9, 2)).earliest_time == 7


class TestConfigStore:
    """Tests for the versioned schedule store."""

    def test_starts_empty(self):
        store = StakerConfigStore()
        assert not store.has_schedule
        assert store.version == 0
        assert store.total_emitted(0, 100) == 0

    def test_set_schedule_bumps_version(self):
        store = StakerConfigStore()
        store.set_schedule([EmissionPoint(5, 1)])
        store.set_schedule([EmissionPoint(3, 2), EmissionPoint(8, 1)])
        assert store.version == 2
        assert store.earliest_emission_time == 3

    def test_rejected_update_keeps_previous(self):
        """A failed update leaves schedule and version untouched."""
        store = StakerConfigStore()
        store.set_schedule([EmissionPoint(0, 4)])
        with pytest.raises(ConfigError):
            store.set_schedule([])
        assert store.version == 1
        assert store.total_emitted(0, 10) == 40

    def test_reversed_window_fails_without_schedule(self):
        store = StakerConfigStore()
        with pytest.raises(ValidationError):
            store.total_emitted(10, 0)


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
