"""Pydantic schema for configuration validation."""

import hashlib
import json
from typing import Any, Dict, List

from pydantic import BaseModel, Field, field_validator, model_validator


class StakerSettings(BaseModel):
    """Engine deployment settings."""
    owner: str = Field(default="admin", min_length=1, description="Administrator address")
    address: str = Field(default="staker", min_length=1, description="Engine address")
    reward_token: str = Field(default="REWARD", min_length=1, description="Reward token name")
    reward_funding: int = Field(ge=0, description="Reward tokens minted to the engine up front")


class EmissionPointConfig(BaseModel):
    """One rate change in the emission schedule."""
    timestamp: int = Field(ge=0, description="Time the rate takes effect")
    rate: int = Field(ge=0, description="Tokens emitted per unit of time")


class CollectionConfig(BaseModel):
    """Lockable item collection."""
    name: str = Field(min_length=1, description="Collection name")
    supply: int = Field(gt=0, description="Items minted, ids 0..supply-1")


class PoolConfig(BaseModel):
    """Staking pool."""
    pool_id: int = Field(ge=0, description="Pool identifier")
    collection: str = Field(description="Name of the collection the pool accepts")
    strength: int = Field(ge=0, description="Pool weight")


class Simulation(BaseModel):
    """Simulation parameters."""
    start_time: int = Field(ge=0, default=0, description="Clock value at simulation start")
    duration: int = Field(gt=0, description="Simulated time span")
    timestep: int = Field(gt=0, description="Clock advance per step")
    num_stakers: int = Field(gt=0, description="Number of simulated stakers")
    deposit_probability: float = Field(ge=0, le=1, description="Per-step chance a staker deposits")
    withdraw_probability: float = Field(ge=0, le=1, description="Per-step chance a staker withdraws")
    max_items_per_action: int = Field(gt=0, default=3, description="Upper bound on items moved per call")
    random_seed: int = Field(description="Random seed for reproducibility")

    @model_validator(mode='after')
    def validate_probabilities(self):
        """Deposit and withdraw are exclusive outcomes of one draw."""
        total = self.deposit_probability + self.withdraw_probability
        if total > 1.0:
            raise ValueError(
                f"deposit_probability + withdraw_probability must be <= 1.0, got {total:.3f}"
            )
        return self

    @property
    def num_steps(self) -> int:
        return self.duration // self.timestep


class Config(BaseModel):
    """Complete configuration for a staking deployment and its simulation."""
    staker: StakerSettings
    emission_schedule: List[EmissionPointConfig]
    collections: List[CollectionConfig]
    pools: List[PoolConfig]
    simulation: Simulation

    @field_validator('emission_schedule')
    @classmethod
    def validate_schedule(cls, v):
        """Schedule must be non-empty and strictly ascending."""
        if not v:
            raise ValueError("emission_schedule must contain at least one point")
        for prev, point in zip(v, v[1:]):
            if point.timestamp <= prev.timestamp:
                raise ValueError(
                    f"emission_schedule timestamps must be strictly ascending: "
                    f"{prev.timestamp} then {point.timestamp}"
                )
        return v

    @model_validator(mode='after')
    def validate_pools(self):
        """Pools must be unique and reference declared collections."""
        names = {c.name for c in self.collections}
        if len(names) != len(self.collections):
            raise ValueError("collection names must be unique")
        seen = set()
        for pool in self.pools:
            if pool.pool_id in seen:
                raise ValueError(f"duplicate pool_id {pool.pool_id}")
            seen.add(pool.pool_id)
            if pool.collection not in names:
                raise ValueError(
                    f"pool {pool.pool_id} references unknown collection '{pool.collection}'"
                )
        return self

    @property
    def total_strength(self) -> int:
        return sum(pool.strength for pool in self.pools)

    def compute_hash(self) -> str:
        """Compute config hash for reproducibility."""
        config_dict = self.model_dump()
        config_str = json.dumps(config_dict, sort_keys=True)
        return hashlib.sha256(config_str.encode()).hexdigest()[:16]

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Config':
        """Create config from dictionary."""
        return cls(**data)

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary."""
        return self.model_dump()
