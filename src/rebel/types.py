"""Core data types and configuration dataclasses."""

from dataclasses import dataclass, field
from typing import Optional, Tuple

import numpy as np


@dataclass(frozen=True)
class Transition:
    """A training sample: featurized query and per-player value targets.
    
    ``query`` encodes the public state and both players' beliefs;
    ``values`` has shape ``(num_players, num_hands)``.
    """
    query: np.ndarray
    values: np.ndarray
    
    def __eq__(self, other) -> bool:
        if not isinstance(other, Transition):
            return NotImplemented
        return (
            np.array_equal(self.query, other.query)
            and np.array_equal(self.values, other.values)
        )
    
    def __hash__(self) -> int:
        return hash((self.query.tobytes(), self.values.tobytes()))


@dataclass(frozen=True)
class ReplayEntry:
    """A stored transition with its priority and insertion sequence number."""
    transition: Transition
    priority: float
    seq: int


@dataclass
class SubgameSolvingConfig:
    """Configuration for solving one depth-limited subgame."""
    num_iters: int = 1024
    max_depth: Optional[int] = 2  # None unrolls to the end of the game
    
    # Linear CFR: iteration t contributes with weight t
    linear_update: bool = False
    # Optimistic CFR: regret matching on cumulative + last instantaneous regret
    optimistic: bool = False
    # True: CFR (regret matching), False: fictitious play
    use_cfr: bool = True
    
    # Discounted CFR (Brown & Sandholm, 2019)
    dcfr: bool = False
    dcfr_alpha: float = 1.5  # positive regret discount exponent
    dcfr_beta: float = 0.0   # negative regret discount exponent
    dcfr_gamma: float = 2.0  # average strategy discount exponent
    
    def __post_init__(self):
        if self.num_iters < 1:
            raise ValueError(f"num_iters must be positive, got {self.num_iters}")
        if self.max_depth is not None and self.max_depth < 1:
            raise ValueError(f"max_depth must be positive or None, got {self.max_depth}")
        if self.dcfr and self.linear_update:
            raise ValueError("dcfr and linear_update are mutually exclusive")


@dataclass
class RecursiveSolvingConfig:
    """Configuration for continual re-solving over one game."""
    deck_size: int = 3
    antes: Tuple[int, int] = (1, 1)
    subgame_params: SubgameSolvingConfig = field(default_factory=SubgameSolvingConfig)
    
    # Probability of taking a uniformly random action instead of the policy
    random_action_prob: float = 0.25
    # Advance to a leaf of the solved subgame instead of a single action
    sample_leaf: bool = False
    seed: int = 0
    
    def __post_init__(self):
        if isinstance(self.subgame_params, dict):
            self.subgame_params = SubgameSolvingConfig(**self.subgame_params)
        self.antes = tuple(self.antes)
        if self.deck_size < 2:
            raise ValueError(f"deck_size must be at least 2, got {self.deck_size}")
        if not 0.0 <= self.random_action_prob <= 1.0:
            raise ValueError(
                f"random_action_prob must be in [0, 1], got {self.random_action_prob}"
            )


@dataclass
class ReplayConfig:
    """Configuration for the prioritized replay buffer."""
    capacity: int = 2 ** 20
    alpha: float = 1.0  # priority exponent for sampling
    beta: float = 0.4   # importance-sampling exponent
    prefetch: int = 3   # batches sampled ahead by PrefetchingSampler
    compressed_values: bool = False
    use_priority: bool = True
    # Entries must have been sampled this many times before they can be evicted
    min_samples_before_eviction: int = 0
    seed: int = 1000
    
    def __post_init__(self):
        if self.capacity < 1:
            raise ValueError(f"capacity must be positive, got {self.capacity}")
        if self.alpha < 0 or self.beta < 0:
            raise ValueError("alpha and beta must be non-negative")
        if self.min_samples_before_eviction < 0:
            raise ValueError("min_samples_before_eviction must be non-negative")


@dataclass
class ModelConfig:
    """Value network and model cache configuration."""
    hidden_dims: Tuple[int, ...] = (256, 256)
    dropout: float = 0.0
    device: str = "cpu"
    per_device: int = 1  # model copies (inference slots) per device
    
    def __post_init__(self):
        self.hidden_dims = tuple(self.hidden_dims)
        if self.per_device < 1:
            raise ValueError(f"per_device must be positive, got {self.per_device}")


@dataclass
class PipelineConfig:
    """Worker pool configuration."""
    num_threads: int = 4
    push_timeout: float = 1.0  # seconds a worker waits for buffer space per attempt
    pause_poll_interval: float = 0.1
    
    def __post_init__(self):
        if self.num_threads < 1:
            raise ValueError(f"num_threads must be positive, got {self.num_threads}")
