"""Load staking deployments from YAML."""

from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from .schema import Config

DEFAULTS_PATH = Path(__file__).parent / "defaults.yaml"


def load_config(yaml_path: Optional[Union[str, Path]] = None) -> Config:
    """
    Load a staking deployment (schedule, collections, pools, simulation) from YAML.

    Args:
        yaml_path: Path to a YAML file; the packaged defaults.yaml
            (three-step halving schedule, genesis and relics pools) if omitted

    Returns:
        Validated Config
    """
    if yaml_path is None:
        yaml_path = DEFAULTS_PATH

    with open(yaml_path, 'r') as f:
        data = yaml.safe_load(f)

    return Config.from_dict(data)


def config_from_dict(data: Dict[str, Any]) -> Config:
    """Validate an already-parsed deployment mapping (e.g. `Config.to_dict()` output)."""
    return Config.from_dict(data)
