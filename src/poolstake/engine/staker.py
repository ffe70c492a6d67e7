"""Module D: Staker - Deposit/withdraw orchestration over pools and positions.

Every mutating entry point:
- holds the re-entrancy guard for its whole duration
- is all-or-nothing: on any failure, the journal undoes every pool,
  position, custody and collaborator lock change it made
- pays at most one reward transfer, performed after all locks succeed
"""

import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass, fields, replace
from functools import partial
from typing import Callable, Iterable, List, Optional, Tuple, Union

from .collateral import NATIVE, ZERO_ADDRESS, CollateralContract, NativeCurrency, RewardToken
from .emissions import EmissionPoint, EmissionSchedule, StakerConfigStore
from .errors import AccessError, ErrorKind, TransferError, ValidationError
from .guard import ReentrancyGuard, UndoJournal
from .pools import Pool, PoolRegistry
from .positions import Position, PositionLedger

logger = logging.getLogger(__name__)

PointLike = Union[EmissionPoint, Tuple[int, int]]


def system_clock() -> int:
    """Wall-clock seconds."""
    return int(time.time())


class ManualClock:
    """Clock advanced explicitly; used by tests and simulation."""

    def __init__(self, t: int = 0):
        self.t = t

    def __call__(self) -> int:
        return self.t

    def advance(self, dt: int) -> int:
        self.t += dt
        return self.t


def _rewind(live, saved):
    """Copy saved dataclass field values back onto the live object."""
    for f in fields(saved):
        setattr(live, f.name, getattr(saved, f.name))


@dataclass
class _Totals:
    """Engine-wide scalars captured at the start of a mutating operation."""
    total_strength: int
    total_disbursed: int
    schedule: Optional[EmissionSchedule]
    config_version: int


class Staker:
    """Time-weighted multi-pool staking engine."""

    def __init__(
        self,
        owner: str,
        reward_token: RewardToken,
        native: Optional[NativeCurrency] = None,
        clock: Callable[[], int] = system_clock,
        address: str = "staker"
    ):
        """
        Initialize staker.

        Args:
            owner: Address allowed to call administrative operations
            reward_token: Token paid out as rewards, held at `address`
            native: Native currency transport (needed only for sweeping it)
            clock: Returns the current time as an int
            address: This engine's own address in collaborator ledgers
        """
        self.owner = owner
        self.reward_token = reward_token
        self.native = native
        self.clock = clock
        self.address = address

        self.config_store = StakerConfigStore()
        self.registry = PoolRegistry(self.config_store)
        self.ledger = PositionLedger()
        self.total_disbursed = 0
        self._guard = ReentrancyGuard()

    # ------------------------------------------------------------------
    # Execution model
    # ------------------------------------------------------------------

    def now(self) -> int:
        return int(self.clock())

    def _totals(self) -> _Totals:
        return _Totals(
            total_strength=self.registry.total_strength,
            total_disbursed=self.total_disbursed,
            schedule=self.config_store.schedule,
            config_version=self.config_store.version,
        )

    def _restore_totals(self, totals: _Totals):
        self.registry.total_strength = totals.total_strength
        self.total_disbursed = totals.total_disbursed
        self.config_store.schedule = totals.schedule
        self.config_store.version = totals.config_version

    @contextmanager
    def _transaction(self):
        """Guarded, all-or-nothing scope for one mutating operation.

        Only the scalars are captured up front. Pools, positions and custody
        entries are journaled as the operation touches them.
        """
        with self._guard:
            totals = self._totals()
            journal = UndoJournal()
            try:
                yield journal
            except Exception as exc:
                journal.rollback()
                self._restore_totals(totals)
                logger.info("Operation reverted: %s", exc)
                raise

    @staticmethod
    def _save(journal: UndoJournal, obj):
        """Journal the current field values of a pool or position."""
        # Rewound in place so references handed out stay valid
        journal.record(partial(_rewind, obj, replace(obj)))

    def _save_all_pools(self, journal: UndoJournal):
        for pool in self.registry.pools.values():
            self._save(journal, pool)

    def _open_position(self, journal: UndoJournal, pool_id: int, caller: str) -> Position:
        key = (pool_id, caller)
        if key not in self.ledger.positions:
            journal.record(partial(self.ledger.positions.pop, key, None))
        else:
            self._save(journal, self.ledger.positions[key])
        return self.ledger.get_or_create(pool_id, caller)

    def _require_owner(self, caller: str):
        if caller != self.owner:
            raise AccessError(ErrorKind.CALLER_NOT_OWNER)

    # ------------------------------------------------------------------
    # Administrative operations
    # ------------------------------------------------------------------

    def set_emission_schedule(self, caller: str, points: Iterable[PointLike]) -> EmissionSchedule:
        """
        Replace the emission schedule wholesale.

        Pools are settled under the outgoing schedule before the swap.

        Args:
            caller: Must be the owner
            points: Strictly ascending (timestamp, rate) points

        Returns:
            The installed schedule
        """
        points = [p if isinstance(p, EmissionPoint) else EmissionPoint(*p) for p in points]
        with self._transaction() as journal:
            self._require_owner(caller)
            if self.config_store.has_schedule:
                self._save_all_pools(journal)
                self.registry.update_all(self.now())
            return self.config_store.set_schedule(points)

    def set_pool(
        self,
        caller: str,
        pool_id: int,
        strength: int,
        collateral: CollateralContract
    ) -> Pool:
        """Create a pool or replace its strength and collateral."""
        with self._transaction() as journal:
            self._require_owner(caller)
            # Reconfiguration settles every pool
            self._save_all_pools(journal)
            if pool_id not in self.registry.pools:
                journal.record(partial(self.registry.pools.pop, pool_id, None))
            return self.registry.set_pool(pool_id, strength, collateral, self.now())

    def sweep(self, caller: str, token: Optional[RewardToken], destination: str, amount: int):
        """
        Move a balance held by this engine to `destination`.

        Args:
            caller: Must be the owner
            token: Token to move, or NATIVE (or the zero address) for native currency
            destination: Recipient address
            amount: Amount to move

        Raises:
            TransferError: If the underlying transfer reports failure or raises
        """
        with self._transaction():
            self._require_owner(caller)
            try:
                if token is NATIVE or token == ZERO_ADDRESS:
                    sent = self.native is not None and self.native.send(
                        self.address, destination, amount
                    )
                else:
                    sent = token.transfer(self.address, destination, amount)
            except Exception as exc:
                raise TransferError(ErrorKind.SWEEPING_TRANSFER_FAILED) from exc
            if sent is not True:
                raise TransferError(ErrorKind.SWEEPING_TRANSFER_FAILED)
        logger.info("Swept %d of %s to %s", amount, token or "native", destination)

    # ------------------------------------------------------------------
    # Staking operations
    # ------------------------------------------------------------------

    def _settle(self, pool: Pool, position: Position) -> int:
        """Credit a position's pending reward; the transfer happens in _pay."""
        pending = position.pending(pool.reward_per_share)
        self.total_disbursed += pending
        return pending

    def _pay(self, recipient: str, amount: int):
        if amount <= 0:
            return
        try:
            sent = self.reward_token.transfer(self.address, recipient, amount)
        except Exception as exc:
            raise TransferError(ErrorKind.REWARD_TRANSFER_FAILED) from exc
        if sent is not True:
            raise TransferError(ErrorKind.REWARD_TRANSFER_FAILED)

    def deposit(self, caller: str, pool_id: int, item_ids: Iterable[int]) -> List[int]:
        """
        Lock items into a pool, paying out any pending reward first.

        Items already locked are skipped. An item not owned by the caller
        fails the whole call.

        Args:
            caller: Staker address
            pool_id: Target pool
            item_ids: Items to lock

        Returns:
            Item ids newly locked by this call
        """
        item_ids = list(item_ids)
        with self._transaction() as journal:
            pool = self.registry.get(pool_id)
            if not pool.is_active:
                raise ValidationError(ErrorKind.CANNOT_DEPOSIT_INACTIVE_POOL)

            self._save(journal, pool)
            self.registry.update_pool(pool_id, self.now())
            position = self._open_position(journal, pool_id, caller)
            # Settled before new items count, so they never earn this interval
            pending = self._settle(pool, position)

            collateral = pool.collateral
            deposited = []
            for item_id in item_ids:
                if collateral.is_locked(item_id):
                    continue
                if collateral.owner_of(item_id) != caller:
                    raise ValidationError(ErrorKind.CANNOT_DEPOSIT_UNOWNED_TOKEN)
                # Journal before calling out
                journal.record(partial(collateral.set_locked, item_id, False))
                collateral.set_locked(item_id, True)
                pool.amount_staked += 1
                position.amount_staked += 1
                journal.record(partial(self.ledger.release, pool_id, item_id))
                self.ledger.hold(pool_id, item_id, caller)
                deposited.append(item_id)

            position.checkpoint(pool.reward_per_share)
            self._pay(caller, pending)

        logger.info(
            "Deposit: %s locked %d item(s) into pool %d, paid %d",
            caller, len(deposited), pool_id, pending
        )
        return deposited

    def withdraw(self, caller: str, pool_id: int, item_ids: Iterable[int]) -> List[int]:
        """
        Unlock items from a pool, paying out any pending reward first.

        Args:
            caller: Staker address
            pool_id: Source pool
            item_ids: Items to unlock; each must be held for the caller

        Returns:
            Item ids unlocked by this call
        """
        item_ids = list(item_ids)
        with self._transaction() as journal:
            pool = self.registry.get(pool_id)
            self._save(journal, pool)
            self.registry.update_pool(pool_id, self.now())
            position = self._open_position(journal, pool_id, caller)
            pending = self._settle(pool, position)

            if len(item_ids) > position.amount_staked:
                raise ValidationError(ErrorKind.CANNOT_WITHDRAW_UNHELD_TOKEN)

            collateral = pool.collateral
            withdrawn = []
            for item_id in item_ids:
                if (
                    position.amount_staked == 0
                    or self.ledger.holder_of(pool_id, item_id) != caller
                    or not collateral.is_locked(item_id)
                ):
                    raise ValidationError(ErrorKind.CANNOT_WITHDRAW_UNHELD_TOKEN)
                # Journal before calling out
                journal.record(partial(collateral.set_locked, item_id, True))
                collateral.set_locked(item_id, False)
                pool.amount_staked -= 1
                position.amount_staked -= 1
                journal.record(partial(self.ledger.hold, pool_id, item_id, caller))
                self.ledger.release(pool_id, item_id)
                withdrawn.append(item_id)

            position.checkpoint(pool.reward_per_share)
            self._pay(caller, pending)

        logger.info(
            "Withdraw: %s unlocked %d item(s) from pool %d, paid %d",
            caller, len(withdrawn), pool_id, pending
        )
        return withdrawn

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    @property
    def total_strength(self) -> int:
        return self.registry.total_strength

    @property
    def earliest_emission_time(self) -> int:
        return self.config_store.earliest_emission_time

    def get_total_emitted(self, from_time: int, to_time: int) -> int:
        return self.config_store.total_emitted(from_time, to_time)

    def get_pool(self, pool_id: int) -> Pool:
        return self.registry.get(pool_id)

    def pool_ids(self) -> List[int]:
        return self.registry.pool_ids()

    def get_position(self, pool_id: int, staker: str) -> Position:
        return self.ledger.get(pool_id, staker)

    def staked_items(self, pool_id: int, staker: str) -> List[int]:
        return self.ledger.items_of(pool_id, staker)

    def pending_rewards(self, pool_id: int, staker: str) -> int:
        """Reward a staker would be paid by a settlement at the current time."""
        pool = self.registry.get(pool_id)
        acc = self.registry.projected_reward_per_share(pool, self.now())
        return self.ledger.get(pool_id, staker).pending(acc)
