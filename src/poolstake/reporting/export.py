"""Export functionality for CSV and JSON."""

import json

import pandas as pd

from ..simulation.runner import SimulationResult


def results_frame(result: SimulationResult) -> pd.DataFrame:
    """One row per simulation step: metrics plus per-pool state."""
    return pd.DataFrame(result.metrics_over_time)


def export_csv(result: SimulationResult, filepath: str):
    """Export simulation results to CSV."""
    df = results_frame(result)
    df.to_csv(filepath, index=False)


def export_json(result: SimulationResult, filepath: str):
    """Export simulation results to JSON."""
    export_data = {
        'config': result.config.to_dict(),
        'config_hash': result.config.compute_hash(),
        'states': [
            {
                't': state.t,
                'total_emitted': state.total_emitted,
                'total_disbursed': state.total_disbursed,
                'reward_balance': state.reward_balance,
                'total_strength': state.total_strength,
                'pools': {
                    str(pool_id): {
                        'strength': pool.strength,
                        'amount_staked': pool.amount_staked,
                        'reward_per_share': pool.reward_per_share,
                        'last_reward_time': pool.last_reward_time,
                        'pending_total': pool.pending_total,
                    }
                    for pool_id, pool in state.pools.items()
                },
            }
            for state in result.states
        ],
        'metrics_over_time': result.metrics_over_time,
        'final_metrics': result.final_metrics,
        'invariant_errors': result.invariant_errors,
        'rejected_operations': result.rejected_operations,
    }

    with open(filepath, 'w') as f:
        json.dump(export_data, f, indent=2)
