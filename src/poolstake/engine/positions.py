"""Module C: Position Ledger - Per-staker stake records and item custody.

Settlement is O(1) per position:
    pending = amount_staked * reward_per_share / SCALE - reward_debt
"""

from dataclasses import dataclass
from typing import Dict, List, Tuple

from .pools import SCALE


@dataclass
class Position:
    """One staker's stake record within one pool."""
    amount_staked: int = 0
    reward_debt: int = 0  # Portion of the accumulator already credited

    @property
    def is_staked(self) -> bool:
        return self.amount_staked > 0

    def accrued(self, reward_per_share: int) -> int:
        """Total reward credited at the given accumulator value."""
        return self.amount_staked * reward_per_share // SCALE

    def pending(self, reward_per_share: int) -> int:
        """Reward earned since the last checkpoint."""
        if self.amount_staked == 0:
            return 0
        return self.accrued(reward_per_share) - self.reward_debt

    def checkpoint(self, reward_per_share: int):
        """Mark everything up to reward_per_share as credited."""
        self.reward_debt = self.accrued(reward_per_share)


class PositionLedger:
    """Positions keyed by (pool_id, staker) plus custody of locked items.

    Invariant: for every pool, the sum of position amounts equals the
    pool's amount_staked, and equals the number of items in custody for it.
    """

    def __init__(self):
        self.positions: Dict[Tuple[int, str], Position] = {}
        # (pool_id, item_id) -> staker the item is held for
        self.custody: Dict[Tuple[int, int], str] = {}

    def get(self, pool_id: int, staker: str) -> Position:
        """Position for (pool_id, staker); a zeroed one if never created."""
        return self.positions.get((pool_id, staker), Position())

    def get_or_create(self, pool_id: int, staker: str) -> Position:
        key = (pool_id, staker)
        if key not in self.positions:
            self.positions[key] = Position()
        return self.positions[key]

    def holder_of(self, pool_id: int, item_id: int):
        return self.custody.get((pool_id, item_id))

    def hold(self, pool_id: int, item_id: int, staker: str):
        self.custody[(pool_id, item_id)] = staker

    def release(self, pool_id: int, item_id: int):
        del self.custody[(pool_id, item_id)]

    def items_of(self, pool_id: int, staker: str) -> List[int]:
        return sorted(
            item_id for (pid, item_id), holder in self.custody.items()
            if pid == pool_id and holder == staker
        )

    def stakers_in(self, pool_id: int) -> List[str]:
        return sorted(staker for (pid, staker) in self.positions if pid == pool_id)

    def total_in_pool(self, pool_id: int) -> int:
        return sum(
            position.amount_staked
            for (pid, _), position in self.positions.items()
            if pid == pool_id
        )
