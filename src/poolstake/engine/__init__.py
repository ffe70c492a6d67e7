"""Reward-accrual engine: emission schedule, pools, positions and the staker."""

from .collateral import (
    NATIVE,
    ZERO_ADDRESS,
    CollateralContract,
    LockableCollection,
    NativeCurrency,
    NativeLedger,
    RewardToken,
    SweepableToken,
)
from .emissions import EmissionPoint, EmissionSchedule, StakerConfigStore
from .errors import (
    AccessError,
    ConfigError,
    ErrorKind,
    ReentrancyError,
    StakerError,
    TransferError,
    ValidationError,
)
from .pools import SCALE, Pool, PoolRegistry
from .positions import Position, PositionLedger
from .staker import ManualClock, Staker, system_clock

__all__ = [
    "NATIVE",
    "SCALE",
    "ZERO_ADDRESS",
    "AccessError",
    "CollateralContract",
    "ConfigError",
    "EmissionPoint",
    "EmissionSchedule",
    "ErrorKind",
    "LockableCollection",
    "ManualClock",
    "NativeCurrency",
    "NativeLedger",
    "Pool",
    "PoolRegistry",
    "Position",
    "PositionLedger",
    "ReentrancyError",
    "RewardToken",
    "Staker",
    "StakerConfigStore",
    "StakerError",
    "SweepableToken",
    "TransferError",
    "ValidationError",
    "system_clock",
]
