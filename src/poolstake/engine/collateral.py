"""Collaborator interfaces and in-memory reference implementations.

The engine only ever talks to these through the Protocol classes below.
The concrete classes model a lockable item collection, a sweepable reward
token and a native-currency ledger, and are used by tests and simulation.
"""

from dataclasses import dataclass, field
from typing import Dict, Protocol, Set, runtime_checkable

# Sentinel address: sweeping `NATIVE` moves native currency instead of a token
NATIVE = None
ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


@runtime_checkable
class CollateralContract(Protocol):
    """Lockable non-fungible item collection."""

    def owner_of(self, item_id: int) -> str: ...

    def is_locked(self, item_id: int) -> bool: ...

    def set_locked(self, item_id: int, locked: bool) -> None: ...


@runtime_checkable
class RewardToken(Protocol):
    """Fungible token; transfers report success as a bool."""

    def balance_of(self, address: str) -> int: ...

    def transfer(self, sender: str, recipient: str, amount: int) -> bool: ...


@runtime_checkable
class NativeCurrency(Protocol):
    """Native balance transport."""

    def balance_of(self, address: str) -> int: ...

    def send(self, sender: str, recipient: str, amount: int) -> bool: ...


class CollectionError(Exception):
    """Raised by LockableCollection on a rejected call."""


class LockableCollection:
    """Item collection whose items can be locked in place.

    Locked items keep their owner but cannot be transferred.
    """

    def __init__(self, name: str):
        """
        Initialize collection.

        Args:
            name: Collection name, also used as its address
        """
        self.name = name
        self.address = name
        self._owners: Dict[int, str] = {}
        self._locked: Set[int] = set()

    def __repr__(self) -> str:
        return f"LockableCollection({self.name!r})"

    def mint(self, to: str, item_id: int):
        if item_id in self._owners:
            raise CollectionError(f"item {item_id} already minted")
        self._owners[item_id] = to

    def owner_of(self, item_id: int) -> str:
        if item_id not in self._owners:
            raise CollectionError(f"item {item_id} does not exist")
        return self._owners[item_id]

    def is_locked(self, item_id: int) -> bool:
        return item_id in self._locked

    def set_locked(self, item_id: int, locked: bool) -> None:
        self.owner_of(item_id)
        if locked:
            self._locked.add(item_id)
        else:
            self._locked.discard(item_id)

    def transfer(self, sender: str, recipient: str, item_id: int):
        if self.owner_of(item_id) != sender:
            raise CollectionError(f"{sender} does not own item {item_id}")
        if self.is_locked(item_id):
            raise CollectionError(f"item {item_id} is locked")
        self._owners[item_id] = recipient

    def items_of(self, owner: str) -> list:
        return sorted(i for i, o in self._owners.items() if o == owner)


@dataclass
class SweepableToken:
    """Reward token with plain balances.

    Transfers never raise; they return False when the sender is short.
    """
    name: str
    balances: Dict[str, int] = field(default_factory=dict)
    total_supply: int = 0

    @property
    def address(self) -> str:
        return self.name

    def mint(self, to: str, amount: int):
        self.balances[to] = self.balances.get(to, 0) + amount
        self.total_supply += amount

    def balance_of(self, address: str) -> int:
        return self.balances.get(address, 0)

    def transfer(self, sender: str, recipient: str, amount: int) -> bool:
        if amount < 0 or self.balance_of(sender) < amount:
            return False
        self.balances[sender] = self.balance_of(sender) - amount
        self.balances[recipient] = self.balance_of(recipient) + amount
        return True


@dataclass
class NativeLedger:
    """Native currency balances; addresses in `rejecting` refuse receipt."""
    balances: Dict[str, int] = field(default_factory=dict)
    rejecting: Set[str] = field(default_factory=set)

    def credit(self, address: str, amount: int):
        self.balances[address] = self.balances.get(address, 0) + amount

    def balance_of(self, address: str) -> int:
        return self.balances.get(address, 0)

    def send(self, sender: str, recipient: str, amount: int) -> bool:
        if recipient in self.rejecting:
            return False
        if amount < 0 or self.balance_of(sender) < amount:
            return False
        self.balances[sender] = self.balance_of(sender) - amount
        self.credit(recipient, amount)
        return True
