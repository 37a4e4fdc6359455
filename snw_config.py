"""
Configuration structs for the spray-and-wait routing core.

One RouterConfig per node. Strategy and queue mode are selected by name;
the numeric knobs mirror the classic router settings (nrofCopies,
binaryMode, timeWindow).
"""

from __future__ import annotations

from dataclasses import dataclass, field


STRATEGY_NAMES = ("spray", "frequency", "encounter_age", "distance")
QUEUE_MODE_NAMES = ("fifo", "ttl", "random")


@dataclass
class SprayConfig:
    """Copy budget settings.

    - initial_copies: copies a message starts with at its origin (>= 1)
    - binary_mode: split ceil/floor on every hop instead of handing out
      single copies
    """

    initial_copies: int = 6
    binary_mode: bool = True


@dataclass
class FrequencyConfig:
    """Contact-frequency window, in simulation seconds."""

    time_window: float = 600.0


@dataclass
class RouterConfig:
    """Overall per-node router configuration."""

    node_id: str
    strategy: str = "spray"

    # Secondary ordering used to break score ties
    queue_mode: str = "fifo"
    queue_seed: int = 0

    spray: SprayConfig = field(default_factory=SprayConfig)
    frequency: FrequencyConfig = field(default_factory=FrequencyConfig)
