"""Unit tests for pool accrual and position settlement.

These tests verify:
- Reward-per-share growth matches weight share of emission
- Empty pools forfeit emission instead of back-dating it
- Pool reconfiguration settles pools and respects the emission floor
- Position pending/checkpoint arithmetic
"""

import pytest
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from poolstake.engine.collateral import LockableCollection
from poolstake.engine.emissions import EmissionPoint, StakerConfigStore
from poolstake.engine.errors import ConfigError, ErrorKind, ValidationError
from poolstake.engine.pools import SCALE, PoolRegistry
from poolstake.engine.positions import Position, PositionLedger


def _registry(*points):
    store = StakerConfigStore()
    if points:
        store.set_schedule([EmissionPoint(t, r) for t, r in points])
    return PoolRegistry(store)


class TestUpdatePool:
    """Tests for update_pool."""

    def test_no_op_when_not_advanced(self):
        """now <= last_reward_time changes nothing."""
        registry = _registry((0, 10))
        pool = registry.set_pool(0, 1, LockableCollection("a"), now=50)
        pool.amount_staked = 1
        registry.update_pool(0, 50)
        registry.update_pool(0, 20)
        assert pool.reward_per_share == 0
        assert pool.last_reward_time == 50

    def test_empty_pool_only_advances_time(self):
        """No retroactive accrual for a window with nothing staked."""
        registry = _registry((0, 10))
        pool = registry.set_pool(0, 1, LockableCollection("a"), now=0)
        registry.update_pool(0, 500)
        assert pool.reward_per_share == 0
        assert pool.last_reward_time == 500

    def test_single_pool_full_share(self):
        """One pool with all the strength gets all emission."""
        registry = _registry((0, 10))
        pool = registry.set_pool(0, 100, LockableCollection("a"), now=0)
        pool.amount_staked = 1
        registry.update_pool(0, 100)
        assert pool.reward_per_share == 1000 * SCALE
        assert pool.last_reward_time == 100

    def test_weighted_split_between_pools(self):
        """Strengths 1 and 3 split emission 1/4 and 3/4."""
        registry = _registry((0, 8))
        pool_a = registry.set_pool(0, 1, LockableCollection("a"), now=0)
        pool_b = registry.set_pool(1, 3, LockableCollection("b"), now=0)
        pool_a.amount_staked = 3
        pool_b.amount_staked = 3

        registry.update_all(100)

        emitted = 800
        assert pool_a.reward_per_share == emitted * 1 // 4 * SCALE // 3
        assert pool_b.reward_per_share == emitted * 3 // 4 * SCALE // 3
        # Integer division leaves dust in pool A
        assert pool_a.reward_per_share == 66_666_666_666_666

    def test_accumulator_is_monotonic(self):
        """reward_per_share never decreases across updates."""
        registry = _registry((0, 3), (50, 0), (70, 9))
        pool = registry.set_pool(0, 1, LockableCollection("a"), now=0)
        pool.amount_staked = 7
        previous = 0
        for now in range(0, 200, 13):
            registry.update_pool(0, now)
            assert pool.reward_per_share >= previous
            previous = pool.reward_per_share

    def test_zero_total_strength_earns_nothing(self):
        """A deactivated registry advances time without dividing by zero."""
        registry = _registry((0, 10))
        pool = registry.set_pool(0, 0, LockableCollection("a"), now=0)
        pool.amount_staked = 1
        registry.update_pool(0, 100)
        assert pool.reward_per_share == 0
        assert pool.last_reward_time == 100

    def test_unknown_pool(self):
        registry = _registry((0, 10))
        with pytest.raises(ValidationError) as exc_info:
            registry.update_pool(9, 10)
        assert exc_info.value.kind == ErrorKind.UNKNOWN_POOL


class TestSetPool:
    """Tests for pool configuration."""

    def test_requires_schedule(self):
        registry = _registry()
        with pytest.raises(ConfigError) as exc_info:
            registry.set_pool(0, 1, LockableCollection("a"), now=0)
        assert exc_info.value.kind == ErrorKind.CANNOT_ADD_POOL_WITHOUT_EMISSION_SCHEDULE

    def test_total_strength_tracks_delta(self):
        registry = _registry((0, 1))
        collection = LockableCollection("a")
        registry.set_pool(0, 5, collection, now=0)
        registry.set_pool(1, 2, LockableCollection("b"), now=0)
        registry.set_pool(0, 1, collection, now=0)
        assert registry.total_strength == 3

    def test_last_reward_time_floored_at_first_emission(self):
        """A pool created before emissions start accrues from the first point."""
        registry = _registry((1000, 10))
        pool = registry.set_pool(0, 1, LockableCollection("a"), now=0)
        assert pool.last_reward_time == 1000

    def test_last_reward_time_uses_now_after_start(self):
        registry = _registry((1000, 10))
        pool = registry.set_pool(0, 1, LockableCollection("a"), now=1500)
        assert pool.last_reward_time == 1500

    def test_reweight_settles_under_old_weights(self):
        """Accrual before a reweight uses the old total_strength."""
        registry = _registry((0, 10))
        collection = LockableCollection("a")
        pool_a = registry.set_pool(0, 1, collection, now=0)
        registry.set_pool(1, 1, LockableCollection("b"), now=0)
        pool_a.amount_staked = 1

        registry.set_pool(1, 3, registry.pools[1].collateral, now=100)
        assert pool_a.reward_per_share == 500 * SCALE

        registry.update_pool(0, 200)
        assert pool_a.reward_per_share == 750 * SCALE

    def test_negative_strength_rejected(self):
        registry = _registry((0, 10))
        with pytest.raises(ConfigError) as exc_info:
            registry.set_pool(0, -1, LockableCollection("a"), now=0)
        assert exc_info.value.kind == ErrorKind.NEGATIVE_POOL_STRENGTH
        assert registry.pools == {}

    def test_cannot_swap_collateral_of_occupied_pool(self):
        registry = _registry((0, 10))
        pool = registry.set_pool(0, 1, LockableCollection("a"), now=0)
        pool.amount_staked = 1
        with pytest.raises(ConfigError) as exc_info:
            registry.set_pool(0, 1, LockableCollection("other"), now=10)
        assert exc_info.value.kind == ErrorKind.CANNOT_CHANGE_POOL_COLLATERAL


class TestPositions:
    """Tests for position settlement arithmetic."""

    def test_pending_from_checkpoint(self):
        position = Position(amount_staked=2)
        position.checkpoint(1000 * SCALE)
        assert position.reward_debt == 2000
        assert position.pending(1500 * SCALE) == 1000

    def test_empty_position_has_nothing_pending(self):
        assert Position().pending(10 ** 30) == 0

    def test_ledger_custody(self):
        ledger = PositionLedger()
        ledger.hold(0, 5, "alice")
        ledger.hold(0, 3, "alice")
        ledger.hold(1, 5, "bob")
        assert ledger.items_of(0, "alice") == [3, 5]
        assert ledger.holder_of(1, 5) == "bob"
        ledger.release(0, 5)
        assert ledger.holder_of(0, 5) is None

    def test_unknown_position_is_zeroed_and_not_stored(self):
        ledger = PositionLedger()
        position = ledger.get(0, "nobody")
        assert position.amount_staked == 0
        assert (0, "nobody") not in ledger.positions


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
