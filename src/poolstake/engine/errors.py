"""Error kinds raised by the staking engine.

Every failure carries exactly one ErrorKind and no other payload. Callers
match on `err.kind`, never on the message text.
"""

from enum import Enum


class ErrorKind(Enum):
    """Closed set of failure conditions."""
    # Configuration
    CANNOT_HAVE_EMPTY_EMISSION_SCHEDULE = "CannotHaveEmptyEmissionSchedule"
    CANNOT_ADD_POOL_WITHOUT_EMISSION_SCHEDULE = "CannotAddPoolWithoutEmissionSchedule"
    EMISSION_SCHEDULE_NOT_ASCENDING = "EmissionScheduleNotAscending"
    NEGATIVE_EMISSION_RATE = "NegativeEmissionRate"
    NEGATIVE_POOL_STRENGTH = "NegativePoolStrength"
    CANNOT_CHANGE_POOL_COLLATERAL = "CannotChangePoolCollateral"

    # Validation
    CANNOT_CALCULATE_EMISSIONS = "CannotCalculateEmissions"
    CANNOT_DEPOSIT_INACTIVE_POOL = "CannotDepositInactivePool"
    CANNOT_DEPOSIT_UNOWNED_TOKEN = "CannotDepositUnownedToken"
    CANNOT_WITHDRAW_UNHELD_TOKEN = "CannotWithdrawUnheldToken"
    UNKNOWN_POOL = "UnknownPool"

    # Transfers
    SWEEPING_TRANSFER_FAILED = "SweepingTransferFailed"
    REWARD_TRANSFER_FAILED = "RewardTransferFailed"

    # Execution
    CALLER_NOT_OWNER = "CallerNotOwner"
    REENTRANT_CALL = "ReentrantCall"


class StakerError(Exception):
    """Base class for all engine failures."""

    kinds: frozenset = frozenset(ErrorKind)

    def __init__(self, kind: ErrorKind):
        if kind not in self.kinds:
            raise TypeError(f"{type(self).__name__} cannot carry {kind}")
        super().__init__(kind.value)
        self.kind = kind


class ConfigError(StakerError):
    """Invalid administrative configuration."""
    kinds = frozenset({
        ErrorKind.CANNOT_HAVE_EMPTY_EMISSION_SCHEDULE,
        ErrorKind.CANNOT_ADD_POOL_WITHOUT_EMISSION_SCHEDULE,
        ErrorKind.EMISSION_SCHEDULE_NOT_ASCENDING,
        ErrorKind.NEGATIVE_EMISSION_RATE,
        ErrorKind.NEGATIVE_POOL_STRENGTH,
        ErrorKind.CANNOT_CHANGE_POOL_COLLATERAL,
    })


class ValidationError(StakerError):
    """Rejected query or staking request."""
    kinds = frozenset({
        ErrorKind.CANNOT_CALCULATE_EMISSIONS,
        ErrorKind.CANNOT_DEPOSIT_INACTIVE_POOL,
        ErrorKind.CANNOT_DEPOSIT_UNOWNED_TOKEN,
        ErrorKind.CANNOT_WITHDRAW_UNHELD_TOKEN,
        ErrorKind.UNKNOWN_POOL,
    })


class TransferError(StakerError):
    """A collaborator reported a failed value transfer."""
    kinds = frozenset({
        ErrorKind.SWEEPING_TRANSFER_FAILED,
        ErrorKind.REWARD_TRANSFER_FAILED,
    })


class AccessError(StakerError):
    """Caller is not allowed to invoke an administrative operation."""
    kinds = frozenset({ErrorKind.CALLER_NOT_OWNER})


class ReentrancyError(StakerError):
    """A mutating operation was entered while another was in flight."""
    kinds = frozenset({ErrorKind.REENTRANT_CALL})
