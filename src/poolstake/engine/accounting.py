"""Module E: Accounting - Point-in-time snapshots of a staker and their invariants."""

from dataclasses import dataclass, field
from typing import Dict, Optional

from .staker import Staker


@dataclass
class PoolState:
    """Observable pool values at a point in time."""
    strength: int
    amount_staked: int
    reward_per_share: int
    last_reward_time: int
    pending_total: int  # Sum of pending rewards across the pool's positions


@dataclass
class StakerState:
    """Staker state at a point in time.

    Reward Ledger Semantics:
    - reward_funding: tokens deposited into the engine for payouts
    - reward_balance: tokens the engine still holds
    - total_disbursed: tokens paid out to stakers
    - total_emitted: schedule emission since the observation start

    Conservation Identity (no sweeps):
    reward_funding = reward_balance + total_disbursed

    Solvency Bound:
    total_disbursed + pending <= total_emitted
    """
    t: int
    reward_funding: int
    reward_balance: int
    total_disbursed: int
    total_emitted: int
    total_strength: int
    pools: Dict[int, PoolState] = field(default_factory=dict)

    @property
    def total_staked(self) -> int:
        return sum(pool.amount_staked for pool in self.pools.values())

    @property
    def total_pending(self) -> int:
        return sum(pool.pending_total for pool in self.pools.values())

    def validate_conservation(self) -> tuple[bool, Optional[str]]:
        """
        Validate reward conservation:
        Funding = Balance + Disbursed

        Returns:
            (is_valid, error_message)
        """
        computed = self.reward_balance + self.total_disbursed
        if computed != self.reward_funding:
            return False, (
                f"Conservation violation at t={self.t}: "
                f"Funding={self.reward_funding}, "
                f"Sum={computed}, "
                f"(balance={self.reward_balance}, disbursed={self.total_disbursed})"
            )
        return True, None

    def validate_emission_bound(self, tolerance: int = 0) -> tuple[bool, Optional[str]]:
        """
        Stakers can never be credited more than the schedule emitted.

        Each settlement floors two products separately, so it can credit
        less than one unit above the exact share; `tolerance` is the number
        of settlements (payouts plus pending projections) to allow for.
        """
        credited = self.total_disbursed + self.total_pending
        if credited > self.total_emitted + tolerance:
            return False, (
                f"Over-credit at t={self.t}: "
                f"credited={credited} > emitted={self.total_emitted}"
            )
        return True, None


def capture_state(staker: Staker, since: int, reward_funding: int) -> StakerState:
    """
    Snapshot a staker at its current clock time.

    Args:
        staker: Engine to observe
        since: Start of the emission window to compare payouts against
        reward_funding: Tokens put into the engine so far

    Returns:
        StakerState
    """
    now = staker.now()
    pools = {}
    for pool_id in staker.pool_ids():
        pool = staker.get_pool(pool_id)
        pending = sum(
            staker.pending_rewards(pool_id, holder)
            for holder in staker.ledger.stakers_in(pool_id)
        )
        pools[pool_id] = PoolState(
            strength=pool.strength,
            amount_staked=pool.amount_staked,
            reward_per_share=pool.reward_per_share,
            last_reward_time=pool.last_reward_time,
            pending_total=pending,
        )

    return StakerState(
        t=now,
        reward_funding=reward_funding,
        reward_balance=staker.reward_token.balance_of(staker.address),
        total_disbursed=staker.total_disbursed,
        total_emitted=staker.get_total_emitted(since, max(since, now)),
        total_strength=staker.total_strength,
        pools=pools,
    )
