import pytest

from config_loader import load_router_config, load_router_config_from_yaml

CONFIG_YAML = """
router:
  node_id: n1
  strategy: Distance
  queue_mode: ttl
  queue_seed: 3
spray:
  initial_copies: 8
  binary_mode: false
frequency:
  time_window: 120
"""


def test_load_full_config(tmp_path):
    path = tmp_path / "router.yaml"
    path.write_text(CONFIG_YAML, encoding="utf-8")

    cfg = load_router_config_from_yaml(str(path))
    assert cfg.node_id == "n1"
    assert cfg.strategy == "distance"
    assert cfg.queue_mode == "ttl"
    assert cfg.queue_seed == 3
    assert cfg.spray.initial_copies == 8
    assert cfg.spray.binary_mode is False
    assert cfg.frequency.time_window == 120.0


def test_defaults():
    cfg = load_router_config({"router": {"node_id": "n1"}})
    assert cfg.strategy == "spray"
    assert cfg.queue_mode == "fifo"
    assert cfg.spray.initial_copies == 6
    assert cfg.spray.binary_mode is True
    assert cfg.frequency.time_window == 600.0


def test_node_id_required():
    with pytest.raises(KeyError):
        load_router_config({"router": {}})


@pytest.mark.parametrize(
    "root",
    [
        {"router": {"node_id": "n1", "strategy": "epidemic"}},
        {"router": {"node_id": "n1", "queue_mode": "lifo"}},
        {"router": {"node_id": "n1"}, "spray": {"initial_copies": 0}},
        {"router": {"node_id": "n1"}, "frequency": {"time_window": -5}},
        {"router": {"node_id": "n1"}, "frequency": {"time_window": float("nan")}},
    ],
)
def test_invalid_values_rejected(root):
    with pytest.raises(ValueError):
        load_router_config(root)


def test_top_level_must_be_mapping(tmp_path):
    path = tmp_path / "bad.yaml"
    path.write_text("- just\n- a list\n", encoding="utf-8")
    with pytest.raises(ValueError):
        load_router_config_from_yaml(str(path))
