# config_loader.py
#
# YAML -> in-memory config structs for the spray-and-wait router.

from __future__ import annotations

from typing import Any, Dict

import yaml  # pip install pyyaml

from snw_config import (
    FrequencyConfig,
    QUEUE_MODE_NAMES,
    RouterConfig,
    SprayConfig,
    STRATEGY_NAMES,
)


def _get_required(mapping: Dict[str, Any], key: str) -> Any:
    if key not in mapping:
        raise KeyError(f"Missing required config key: {key}")
    return mapping[key]


def _section(root: Dict[str, Any], name: str) -> Dict[str, Any]:
    section_any = root.get(name, {})
    if not isinstance(section_any, dict):
        return {}
    return section_any


# ---------------------------------------------------------------------------
# Spray / frequency sections
# ---------------------------------------------------------------------------

def load_spray_config(root: Dict[str, Any]) -> SprayConfig:
    """Load copy budget settings from the top-level `spray` section.

    Example YAML:

        spray:
          initial_copies: 6
          binary_mode: true
    """

    spray_cfg = _section(root, "spray")

    initial_copies = int(spray_cfg.get("initial_copies", 6))
    binary_mode = bool(spray_cfg.get("binary_mode", True))

    if initial_copies < 1:
        raise ValueError("spray.initial_copies must be >= 1")

    return SprayConfig(initial_copies=initial_copies, binary_mode=binary_mode)


def load_frequency_config(root: Dict[str, Any]) -> FrequencyConfig:
    freq_cfg = _section(root, "frequency")

    time_window = float(freq_cfg.get("time_window", 600.0))
    if not time_window > 0.0:
        raise ValueError("frequency.time_window must be > 0")

    return FrequencyConfig(time_window=time_window)


# ---------------------------------------------------------------------------
# Router config
# ---------------------------------------------------------------------------

def load_router_config(root: Dict[str, Any]) -> RouterConfig:
    """Load RouterConfig from the `router`, `spray` and `frequency` sections."""

    router_cfg = _section(root, "router")

    node_id = str(_get_required(router_cfg, "node_id"))

    strategy = str(router_cfg.get("strategy", "spray") or "spray").strip().lower()
    if strategy not in STRATEGY_NAMES:
        raise ValueError(f"router.strategy must be one of: {', '.join(STRATEGY_NAMES)}")

    queue_mode = str(router_cfg.get("queue_mode", "fifo") or "fifo").strip().lower()
    if queue_mode not in QUEUE_MODE_NAMES:
        raise ValueError(f"router.queue_mode must be one of: {', '.join(QUEUE_MODE_NAMES)}")

    queue_seed = int(router_cfg.get("queue_seed", 0))

    return RouterConfig(
        node_id=node_id,
        strategy=strategy,
        queue_mode=queue_mode,
        queue_seed=queue_seed,
        spray=load_spray_config(root),
        frequency=load_frequency_config(root),
    )


def load_yaml_mapping(path: str) -> Dict[str, Any]:
    with open(path, "r", encoding="utf-8") as f:
        root = yaml.safe_load(f)

    if not isinstance(root, dict):
        raise ValueError("Top-level YAML must be a mapping")

    return root


def load_router_config_from_yaml(path: str) -> RouterConfig:
    """Load a complete RouterConfig from a YAML file."""
    return load_router_config(load_yaml_mapping(path))
