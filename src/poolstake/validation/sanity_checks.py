"""Sanity checks and validation for staking configuration and engine state."""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from ..config.schema import Config
from ..engine.accounting import StakerState
from ..engine.emissions import EmissionPoint, EmissionSchedule
from ..engine.staker import Staker


@dataclass
class ValidationWarning:
    """A validation warning with severity and message."""
    severity: str  # "warning" or "error"
    category: str  # e.g., "input", "conservation", "ledger"
    message: str
    details: Optional[str] = None


class SanityChecker:
    """Run sanity checks on configuration and live staker state."""

    def __init__(self, config: Config):
        """Initialize with configuration."""
        self.config = config

    def check_config_inputs(self) -> List[ValidationWarning]:
        """
        Check configuration inputs for implausible values.

        Returns:
            List of validation warnings
        """
        warnings = []

        if self.config.total_strength == 0:
            warnings.append(ValidationWarning(
                severity="error",
                category="input",
                message="Total pool strength is zero; no pool can accept deposits",
                details=f"Pools: {len(self.config.pools)}"
            ))

        for pool in self.config.pools:
            if pool.strength == 0:
                warnings.append(ValidationWarning(
                    severity="warning",
                    category="input",
                    message=f"Pool {pool.pool_id} has zero strength and is inactive",
                ))

        if all(point.rate == 0 for point in self.config.emission_schedule):
            warnings.append(ValidationWarning(
                severity="warning",
                category="input",
                message="Every emission rate is zero; stakers will earn nothing",
            ))

        sim = self.config.simulation
        first = self.config.emission_schedule[0].timestamp
        if first > sim.start_time + sim.duration:
            warnings.append(ValidationWarning(
                severity="warning",
                category="input",
                message="Emission schedule starts after the simulation ends",
                details=f"First emission at t={first}, simulation ends at t={sim.start_time + sim.duration}"
            ))

        # Funding must cover every token the schedule emits over the horizon
        emitted = _schedule_emission(self.config, sim.start_time, sim.start_time + sim.duration)
        funding = self.config.staker.reward_funding
        if emitted > funding:
            warnings.append(ValidationWarning(
                severity="warning",
                category="solvency",
                message="Reward funding is below scheduled emission; payouts may fail",
                details=f"Emitted: {emitted:,}, Funding: {funding:,}"
            ))

        return warnings

    def check_state(self, state: StakerState, tolerance: int = 0) -> List[ValidationWarning]:
        """
        Check an accounting snapshot.

        Args:
            state: Staker state snapshot
            tolerance: Settlement count allowed as rounding slack

        Returns:
            List of validation warnings
        """
        warnings = []

        is_valid, error_msg = state.validate_conservation()
        if not is_valid:
            warnings.append(ValidationWarning(
                severity="error",
                category="conservation",
                message="Reward conservation violated",
                details=error_msg
            ))

        is_valid, error_msg = state.validate_emission_bound(tolerance)
        if not is_valid:
            warnings.append(ValidationWarning(
                severity="error",
                category="conservation",
                message="Stakers credited beyond scheduled emission",
                details=error_msg
            ))

        if state.reward_balance < state.total_pending:
            warnings.append(ValidationWarning(
                severity="warning",
                category="solvency",
                message=f"Engine balance cannot cover pending rewards at t={state.t}",
                details=f"Balance: {state.reward_balance:,}, Pending: {state.total_pending:,}"
            ))

        return warnings

    def check_staker(self, staker: Staker) -> List[ValidationWarning]:
        """
        Check structural ledger invariants of a live staker.

        Args:
            staker: Engine to inspect

        Returns:
            List of validation warnings
        """
        warnings = []
        registry = staker.registry
        ledger = staker.ledger

        strength_sum = sum(pool.strength for pool in registry.pools.values())
        if strength_sum != registry.total_strength:
            warnings.append(ValidationWarning(
                severity="error",
                category="ledger",
                message="total_strength does not match the sum of pool strengths",
                details=f"total_strength={registry.total_strength}, sum={strength_sum}"
            ))

        for pool_id, pool in registry.pools.items():
            position_sum = ledger.total_in_pool(pool_id)
            if position_sum != pool.amount_staked:
                warnings.append(ValidationWarning(
                    severity="error",
                    category="ledger",
                    message=f"Pool {pool_id} amount does not match its positions",
                    details=f"pool={pool.amount_staked}, positions={position_sum}"
                ))

            held = [item for (pid, item) in ledger.custody if pid == pool_id]
            if len(held) != pool.amount_staked:
                warnings.append(ValidationWarning(
                    severity="error",
                    category="ledger",
                    message=f"Pool {pool_id} custody does not match its amount",
                    details=f"pool={pool.amount_staked}, custody={len(held)}"
                ))
            unlocked = [item for item in held if not pool.collateral.is_locked(item)]
            if unlocked:
                warnings.append(ValidationWarning(
                    severity="error",
                    category="ledger",
                    message=f"Pool {pool_id} holds items that are not locked",
                    details=f"Items: {unlocked}"
                ))

        return warnings

    def check_progress(
        self,
        previous: StakerState,
        current: StakerState
    ) -> List[ValidationWarning]:
        """
        Check that accumulators and update times never move backwards.

        Args:
            previous: Earlier snapshot
            current: Later snapshot

        Returns:
            List of validation warnings
        """
        warnings = []
        for pool_id, before in previous.pools.items():
            after = current.pools.get(pool_id)
            if after is None:
                warnings.append(ValidationWarning(
                    severity="error",
                    category="ledger",
                    message=f"Pool {pool_id} disappeared between t={previous.t} and t={current.t}",
                ))
                continue
            if after.reward_per_share < before.reward_per_share:
                warnings.append(ValidationWarning(
                    severity="error",
                    category="monotonicity",
                    message=f"Pool {pool_id} reward_per_share decreased at t={current.t}",
                    details=f"{before.reward_per_share} -> {after.reward_per_share}"
                ))
            if after.last_reward_time < before.last_reward_time:
                warnings.append(ValidationWarning(
                    severity="error",
                    category="monotonicity",
                    message=f"Pool {pool_id} last_reward_time decreased at t={current.t}",
                    details=f"{before.last_reward_time} -> {after.last_reward_time}"
                ))
        if current.total_disbursed < previous.total_disbursed:
            warnings.append(ValidationWarning(
                severity="error",
                category="monotonicity",
                message=f"total_disbursed decreased at t={current.t}",
            ))
        return warnings


def _schedule_emission(config: Config, from_time: int, to_time: int) -> int:
    """Evaluate the configured schedule without building an engine."""
    schedule = EmissionSchedule(
        EmissionPoint(p.timestamp, p.rate) for p in config.emission_schedule
    )
    return schedule.total_emitted(from_time, to_time)


def validate_simulation_results(
    config: Config,
    states: List[StakerState],
    metrics_over_time: List[Dict[str, Any]]
) -> List[ValidationWarning]:
    """
    Validate complete simulation results.

    Args:
        config: Simulation configuration
        states: Staker states over time
        metrics_over_time: List of metrics dictionaries

    Returns:
        List of all validation warnings
    """
    checker = SanityChecker(config)
    warnings = []

    warnings.extend(checker.check_config_inputs())

    for i, (previous, current) in enumerate(zip(states, states[1:])):
        settlements = metrics_over_time[i + 1].get('settlements', 0) if i + 1 < len(metrics_over_time) else 0
        warnings.extend(checker.check_state(current, tolerance=settlements))
        warnings.extend(checker.check_progress(previous, current))

    if states:
        final_state = states[-1]
        if final_state.total_emitted > 0:
            paid_share = final_state.total_disbursed / final_state.total_emitted
            if paid_share < 0.5:
                warnings.append(ValidationWarning(
                    severity="warning",
                    category="utilization",
                    message="Less than half of scheduled emission reached stakers",
                    details=(
                        f"Disbursed: {final_state.total_disbursed:,}, "
                        f"Emitted: {final_state.total_emitted:,} ({paid_share*100:.1f}%)"
                    )
                ))

    return warnings
