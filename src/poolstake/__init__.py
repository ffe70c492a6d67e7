"""poolstake - time-weighted multi-pool staking rewards for locked collateral."""

__version__ = "0.1.0"
