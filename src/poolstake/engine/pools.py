"""Module B: Pool Registry & Accrual Engine - Advance per-pool reward accumulators.

Key Concepts:
- Each pool receives emissions in proportion to strength / total_strength
- reward_per_share is scaled by SCALE = 1e12 and only ever grows
- Emission over a window where a pool holds nothing is forfeited
- Integer division dust is accepted and never reconciled
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

from .collateral import CollateralContract
from .emissions import StakerConfigStore
from .errors import ConfigError, ErrorKind, ValidationError

logger = logging.getLogger(__name__)

SCALE = 10 ** 12


@dataclass
class Pool:
    """Weighted bucket that collateral is staked into."""
    collateral: CollateralContract
    amount_staked: int = 0
    strength: int = 0
    reward_per_share: int = 0  # Scaled by SCALE
    last_reward_time: int = 0

    @property
    def is_active(self) -> bool:
        return self.strength > 0


class PoolRegistry:
    """Pool store and accrual engine.

    Invariant: total_strength == sum(pool.strength for every pool).
    """

    def __init__(self, config_store: StakerConfigStore):
        """
        Initialize registry.

        Args:
            config_store: Source of the active emission schedule
        """
        self.config_store = config_store
        self.pools: Dict[int, Pool] = {}
        self.total_strength = 0

    def pool_ids(self) -> List[int]:
        return sorted(self.pools)

    def get(self, pool_id: int) -> Pool:
        """Look up a pool; unknown ids raise UNKNOWN_POOL."""
        pool = self.pools.get(pool_id)
        if pool is None:
            raise ValidationError(ErrorKind.UNKNOWN_POOL)
        return pool

    def pool_reward(self, pool: Pool, now: int) -> int:
        """
        Scaled reward a pool has earned since its last update.

        Formula: emitted * strength / total_strength * SCALE

        Args:
            pool: Pool to evaluate
            now: Current time

        Returns:
            Scaled reward (0 if nothing accrues)
        """
        if now <= pool.last_reward_time or self.total_strength == 0:
            return 0
        emitted = self.config_store.total_emitted(pool.last_reward_time, now)
        # SCALE is applied after the weight division
        return emitted * pool.strength // self.total_strength * SCALE

    def projected_reward_per_share(self, pool: Pool, now: int) -> int:
        """Accumulator value update_pool would produce at `now`, without mutating."""
        if now <= pool.last_reward_time or pool.amount_staked == 0:
            return pool.reward_per_share
        return pool.reward_per_share + self.pool_reward(pool, now) // pool.amount_staked

    def update_pool(self, pool_id: int, now: int) -> Pool:
        """
        Bring a pool's accumulator up to `now`.

        Args:
            pool_id: Pool to update
            now: Current time (untrusted; going backwards is a no-op)

        Returns:
            The updated pool
        """
        pool = self.get(pool_id)
        if now <= pool.last_reward_time:
            return pool

        if pool.amount_staked == 0:
            pool.last_reward_time = now
            return pool

        reward = self.pool_reward(pool, now)
        increment = reward // pool.amount_staked
        pool.reward_per_share += increment
        pool.last_reward_time = now
        logger.debug(
            "Pool %d accrued to t=%d: +%d per share (acc=%d)",
            pool_id, now, increment, pool.reward_per_share
        )
        return pool

    def update_all(self, now: int):
        """Settle every pool at `now`."""
        for pool_id in self.pool_ids():
            self.update_pool(pool_id, now)

    def set_pool(
        self,
        pool_id: int,
        strength: int,
        collateral: CollateralContract,
        now: int
    ) -> Pool:
        """
        Create a pool or replace its weight.

        All pools are settled first, since a change in total_strength shifts
        every pool's share from this moment on.

        Args:
            pool_id: Pool identifier
            strength: New weight (0 deactivates deposits)
            collateral: Collection whose items the pool accepts
            now: Current time

        Returns:
            The created or updated pool

        Raises:
            ConfigError: Without an emission schedule, for a negative strength,
                or when changing the collateral of a pool that still holds items
        """
        if not self.config_store.has_schedule:
            raise ConfigError(ErrorKind.CANNOT_ADD_POOL_WITHOUT_EMISSION_SCHEDULE)
        if strength < 0:
            raise ConfigError(ErrorKind.NEGATIVE_POOL_STRENGTH)

        existing: Optional[Pool] = self.pools.get(pool_id)
        if (
            existing is not None
            and existing.amount_staked > 0
            and existing.collateral is not collateral
        ):
            raise ConfigError(ErrorKind.CANNOT_CHANGE_POOL_COLLATERAL)

        self.update_all(now)

        floor = max(now, self.config_store.earliest_emission_time)
        if existing is None:
            pool = Pool(collateral=collateral, strength=strength, last_reward_time=floor)
            self.pools[pool_id] = pool
            self.total_strength += strength
        else:
            pool = existing
            self.total_strength = self.total_strength - pool.strength + strength
            pool.strength = strength
            pool.collateral = collateral
            pool.last_reward_time = max(pool.last_reward_time, floor)

        logger.info(
            "Pool %d configured: strength=%d total_strength=%d collateral=%r",
            pool_id, strength, self.total_strength, collateral
        )
        return pool
