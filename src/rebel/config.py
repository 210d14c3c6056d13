"""Configuration management."""

import yaml
from dataclasses import asdict, fields
from pathlib import Path
from typing import Any, Dict
from rebel.utils.serialization import load_json, save_json
from rebel.types import (
    RecursiveSolvingConfig, SubgameSolvingConfig, ReplayConfig,
    ModelConfig, PipelineConfig
)


# Flat option names accepted by ``Config.from_options``, mapped to their section
_SUBGAME_OPTIONS = {f.name for f in fields(SubgameSolvingConfig)}
_SOLVING_OPTIONS = {f.name for f in fields(RecursiveSolvingConfig)} - {"subgame_params"}
_PIPELINE_OPTIONS = {f.name for f in fields(PipelineConfig)}
_MODEL_OPTIONS = {f.name for f in fields(ModelConfig)}
_BUFFER_PREFIX = "buffer_"


class Config:
    """Central configuration manager."""
    
    def __init__(self):
        self.solving: RecursiveSolvingConfig = RecursiveSolvingConfig()
        self.replay: ReplayConfig = ReplayConfig()
        self.model: ModelConfig = ModelConfig()
        self.pipeline: PipelineConfig = PipelineConfig()
    
    @property
    def subgame(self) -> SubgameSolvingConfig:
        return self.solving.subgame_params
    
    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Config":
        """Load config from a sectioned dictionary."""
        config = cls()
        if "solving" in data:
            config.solving = RecursiveSolvingConfig(**data["solving"])
        if "replay" in data:
            config.replay = ReplayConfig(**data["replay"])
        if "model" in data:
            config.model = ModelConfig(**data["model"])
        if "pipeline" in data:
            config.pipeline = PipelineConfig(**data["pipeline"])
        return config
    
    @classmethod
    def from_options(cls, **options: Any) -> "Config":
        """Build a config from flat option names.
        
        Recognized names are the fields of the subgame, solving, pipeline and
        model sections (``num_iters``, ``max_depth``, ``linear_update``,
        ``optimistic``, ``use_cfr``, ``dcfr``, ``dcfr_alpha``, ``random_action_prob``,
        ``sample_leaf``, ``num_threads``, ...) plus replay fields prefixed with
        ``buffer_`` (``buffer_capacity``, ``buffer_alpha``, ``buffer_beta``,
        ``buffer_prefetch``, ``buffer_compressed_values``, ...).
        
        Raises:
            ValueError: If an option name is not recognized
        """
        subgame, solving, replay, model, pipeline = {}, {}, {}, {}, {}
        for name, value in options.items():
            if name in _SUBGAME_OPTIONS:
                subgame[name] = value
            elif name in _SOLVING_OPTIONS:
                solving[name] = value
            elif name in _PIPELINE_OPTIONS:
                pipeline[name] = value
            elif name in _MODEL_OPTIONS:
                model[name] = value
            elif name.startswith(_BUFFER_PREFIX):
                replay[name[len(_BUFFER_PREFIX):]] = value
            else:
                raise ValueError(f"Unknown configuration option: {name}")
        
        config = cls()
        config.solving = RecursiveSolvingConfig(
            subgame_params=SubgameSolvingConfig(**subgame), **solving
        )
        config.replay = ReplayConfig(**replay)
        config.model = ModelConfig(**model)
        config.pipeline = PipelineConfig(**pipeline)
        return config
    
    @classmethod
    def from_yaml(cls, path: Path) -> "Config":
        """Load config from YAML file."""
        with open(path, 'r') as f:
            data = yaml.safe_load(f)
        return cls.from_dict(data or {})
    
    @classmethod
    def from_json(cls, path: Path) -> "Config":
        """Load config from JSON file."""
        return cls.from_dict(load_json(path))
    
    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary of plain values."""
        solving = asdict(self.solving)
        solving["antes"] = list(self.solving.antes)
        model = asdict(self.model)
        model["hidden_dims"] = list(self.model.hidden_dims)
        return {
            "solving": solving,
            "replay": asdict(self.replay),
            "model": model,
            "pipeline": asdict(self.pipeline),
        }
    
    def save_yaml(self, path: Path):
        """Save config to YAML file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w') as f:
            yaml.dump(self.to_dict(), f, default_flow_style=False)
    
    def save_json(self, path: Path):
        """Save config to JSON file."""
        save_json(self.to_dict(), path)
