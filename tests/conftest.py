from __future__ import annotations

import pytest

from helpers import node_config
from sim_engine import SimWorld


@pytest.fixture
def line_world():
    """Three nodes on a line: a(0,0) b(5,0) c(10,0); bandwidth 1 unit/s."""

    def build(strategy: str = "spray", copies: int = 6, binary: bool = True) -> SimWorld:
        world = SimWorld(bandwidth=1.0)
        world.add_node(node_config("a", strategy, copies, binary), (0.0, 0.0))
        world.add_node(node_config("b", strategy, copies, binary), (5.0, 0.0))
        world.add_node(node_config("c", strategy, copies, binary), (10.0, 0.0))
        return world

    return build
