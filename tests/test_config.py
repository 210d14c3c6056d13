"""Tests for configuration loading."""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / 'src'))

import pytest

from rebel.config import Config
from rebel.types import ModelConfig, PipelineConfig, ReplayConfig


def test_defaults():
    """A default config has the documented section defaults."""
    config = Config()
    
    assert config.subgame.num_iters == 1024
    assert config.subgame.max_depth == 2
    assert config.solving.random_action_prob == 0.25
    assert config.replay.capacity == 2 ** 20
    assert config.replay.alpha == 1.0
    assert config.replay.beta == 0.4
    assert config.pipeline.num_threads == 4


def test_from_options():
    """Flat option names are routed to their sections."""
    config = Config.from_options(
        num_iters=64,
        max_depth=3,
        linear_update=True,
        dcfr=False,
        random_action_prob=0.1,
        sample_leaf=True,
        num_threads=2,
        buffer_capacity=100,
        buffer_alpha=0.6,
        buffer_beta=0.5,
        buffer_prefetch=2,
        buffer_compressed_values=True,
    )
    
    assert config.subgame.num_iters == 64
    assert config.subgame.max_depth == 3
    assert config.subgame.linear_update
    assert config.solving.random_action_prob == 0.1
    assert config.solving.sample_leaf
    assert config.pipeline.num_threads == 2
    assert config.replay.capacity == 100
    assert config.replay.alpha == 0.6
    assert config.replay.prefetch == 2
    assert config.replay.compressed_values


def test_unknown_option_rejected():
    """Unrecognized option names raise ValueError."""
    with pytest.raises(ValueError):
        Config.from_options(num_iterations=10)


def test_yaml_round_trip(tmp_path):
    """A config saved to YAML loads back unchanged."""
    config = Config.from_options(num_iters=32, antes=(2, 1), buffer_capacity=64, hidden_dims=(32, 16))
    path = tmp_path / "config.yaml"
    
    config.save_yaml(path)
    loaded = Config.from_yaml(path)
    
    assert loaded.to_dict() == config.to_dict()
    assert loaded.solving.antes == (2, 1)
    assert loaded.model.hidden_dims == (32, 16)


def test_json_round_trip(tmp_path):
    """A config saved to JSON loads back unchanged."""
    config = Config.from_options(max_depth=None, num_threads=8)
    path = tmp_path / "config.json"
    
    config.save_json(path)
    loaded = Config.from_json(path)
    
    assert loaded.subgame.max_depth is None
    assert loaded.pipeline.num_threads == 8


def test_section_validation():
    """Invalid section values raise ValueError."""
    with pytest.raises(ValueError):
        ReplayConfig(capacity=0)
    with pytest.raises(ValueError):
        PipelineConfig(num_threads=0)
    with pytest.raises(ValueError):
        ModelConfig(per_device=0)
