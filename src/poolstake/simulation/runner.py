"""Simulation runner - Drive a real Staker with randomized staker behavior.

Key Features:
- Engine, collections and reward token built from Config
- Stakers deposit/withdraw items at random each timestep (numpy Generator)
- Every step records a StakerState snapshot and ledger invariant checks
- Rejected operations are counted, never hidden
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List

import numpy as np

from ..config.schema import Config
from ..engine.accounting import StakerState, capture_state
from ..engine.collateral import LockableCollection, SweepableToken
from ..engine.errors import StakerError
from ..engine.staker import ManualClock, Staker
from ..validation.sanity_checks import SanityChecker

logger = logging.getLogger(__name__)


@dataclass
class SimulationResult:
    """Complete simulation result."""
    config: Config
    states: List[StakerState]
    metrics_over_time: List[Dict[str, Any]]
    final_metrics: Dict[str, Any]
    invariant_errors: List[str] = field(default_factory=list)
    rejected_operations: List[str] = field(default_factory=list)


class SimulationRunner:
    """Builds a staking deployment from config and plays it forward."""

    def __init__(self, config: Config):
        """
        Initialize simulation runner.

        Args:
            config: Simulation configuration
        """
        self.config = config
        self.checker = SanityChecker(config)
        self._invariant_errors: List[str] = []
        self._rejected: List[str] = []
        self._settlements = 0

        sim = config.simulation
        self.clock = ManualClock(sim.start_time)
        self.reward_token = SweepableToken(config.staker.reward_token)
        self.staker = Staker(
            owner=config.staker.owner,
            reward_token=self.reward_token,
            clock=self.clock,
            address=config.staker.address,
        )
        self.reward_token.mint(config.staker.address, config.staker.reward_funding)

        self.stakers = [f"staker_{i}" for i in range(sim.num_stakers)]

        # Items are dealt round-robin so every staker holds some of each collection
        self.collections: Dict[str, LockableCollection] = {}
        for coll_config in config.collections:
            collection = LockableCollection(coll_config.name)
            for item_id in range(coll_config.supply):
                collection.mint(self.stakers[item_id % len(self.stakers)], item_id)
            self.collections[coll_config.name] = collection

        owner = config.staker.owner
        self.staker.set_emission_schedule(
            owner,
            [(p.timestamp, p.rate) for p in config.emission_schedule]
        )
        for pool in config.pools:
            self.staker.set_pool(owner, pool.pool_id, pool.strength, self.collections[pool.collection])

    def run(self, random_seed: int = None) -> SimulationResult:
        """
        Run the simulation.

        Args:
            random_seed: Random seed (defaults to config value)

        Returns:
            SimulationResult
        """
        sim = self.config.simulation
        if random_seed is None:
            random_seed = sim.random_seed
        rng = np.random.default_rng(random_seed)

        states = [self._capture()]
        metrics_over_time = [self._compute_metrics(states[0])]

        for _ in range(sim.num_steps):
            self.clock.advance(sim.timestep)
            for staker_address in self.stakers:
                self._act(rng, staker_address)

            state = self._capture()
            metrics = self._compute_metrics(state)
            self._record_violations(states[-1], state, metrics)
            states.append(state)
            metrics_over_time.append(metrics)

        if self._invariant_errors:
            logger.warning(
                "Simulation recorded %d invariant violation(s)", len(self._invariant_errors)
            )

        return SimulationResult(
            config=self.config,
            states=states,
            metrics_over_time=metrics_over_time,
            final_metrics=self._compute_final_metrics(states[-1]),
            invariant_errors=list(self._invariant_errors),
            rejected_operations=list(self._rejected),
        )

    def _act(self, rng: np.random.Generator, staker_address: str):
        """Let one staker deposit, withdraw or idle."""
        sim = self.config.simulation
        pool_ids = self.staker.pool_ids()
        if not pool_ids:
            return

        pool_id = int(rng.choice(pool_ids))
        draw = rng.random()
        if draw < sim.deposit_probability:
            pool = self.staker.get_pool(pool_id)
            if not pool.is_active:
                return
            collection = pool.collateral
            candidates = [
                item for item in collection.items_of(staker_address)
                if not collection.is_locked(item)
            ]
            action = "deposit"
        elif draw < sim.deposit_probability + sim.withdraw_probability:
            candidates = self.staker.staked_items(pool_id, staker_address)
            action = "withdraw"
        else:
            return

        if not candidates:
            return
        count = int(rng.integers(1, min(len(candidates), sim.max_items_per_action) + 1))
        chosen = [int(i) for i in rng.choice(candidates, size=count, replace=False)]

        try:
            if action == "deposit":
                self.staker.deposit(staker_address, pool_id, chosen)
            else:
                self.staker.withdraw(staker_address, pool_id, chosen)
            self._settlements += 1
        except StakerError as e:
            message = f"t={self.clock()}: {action} by {staker_address} in pool {pool_id} rejected ({e.kind.value})"
            logger.warning(message)
            self._rejected.append(message)

    def _capture(self) -> StakerState:
        return capture_state(
            self.staker,
            since=self.config.simulation.start_time,
            reward_funding=self.config.staker.reward_funding,
        )

    def _record_violations(self, previous: StakerState, current: StakerState, metrics: Dict[str, Any]):
        warnings = (
            self.checker.check_staker(self.staker)
            + self.checker.check_state(current, tolerance=metrics['settlements'])
            + self.checker.check_progress(previous, current)
        )
        for warning in warnings:
            if warning.severity == "error":
                self._invariant_errors.append(
                    f"t={current.t}: {warning.message}" + (f" ({warning.details})" if warning.details else "")
                )

    def _compute_metrics(self, state: StakerState) -> Dict[str, Any]:
        """Flatten a snapshot into per-step metrics."""
        open_positions = sum(
            1 for position in self.staker.ledger.positions.values() if position.is_staked
        )
        metrics = {
            't': state.t,
            'total_emitted': state.total_emitted,
            'total_disbursed': state.total_disbursed,
            'total_pending': state.total_pending,
            'reward_balance': state.reward_balance,
            'total_staked': state.total_staked,
            'open_positions': open_positions,
            # Each payout and each pending projection may round up by < 1 unit
            'settlements': self._settlements + open_positions,
            'rejected_operations': len(self._rejected),
        }
        for pool_id, pool in state.pools.items():
            metrics[f'pool_{pool_id}_staked'] = pool.amount_staked
            metrics[f'pool_{pool_id}_reward_per_share'] = pool.reward_per_share
        return metrics

    def _compute_final_metrics(self, state: StakerState) -> Dict[str, Any]:
        credited = state.total_disbursed + state.total_pending
        if state.total_emitted > 0:
            credited_share = credited / state.total_emitted
        else:
            credited_share = 0.0
        return {
            'final_time': state.t,
            'final_total_emitted': state.total_emitted,
            'final_total_disbursed': state.total_disbursed,
            'final_total_pending': state.total_pending,
            'final_reward_balance': state.reward_balance,
            'final_total_staked': state.total_staked,
            'credited_share': credited_share,
            # Emission lost to empty pools and rounding dust
            'forfeited': max(0, state.total_emitted - credited),
            'config_hash': self.config.compute_hash(),
        }
