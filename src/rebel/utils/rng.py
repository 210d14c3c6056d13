"""Random number generation utilities."""

import numpy as np
from typing import Optional, Dict, Any


class RNG:
    """Random number generator owned by a single thread.
    
    Worker loops each construct their own instance from a distinct seed so no
    generator state is shared between threads.
    """
    
    def __init__(self, seed: Optional[int] = None):
        self.seed = seed
        self.rng = np.random.default_rng(seed)
    
    def randint(self, low: int, high: int) -> int:
        """Generate random integer in [low, high)."""
        return int(self.rng.integers(low, high))
    
    def random(self) -> float:
        """Generate random float in [0.0, 1.0)."""
        return float(self.rng.random())
    
    def choice(self, arr, size=None, replace=True, p=None):
        """Randomly choose elements from array."""
        return self.rng.choice(arr, size=size, replace=replace, p=p)
    
    def categorical(self, probs: np.ndarray) -> int:
        """Draw an index with probability proportional to ``probs``."""
        probs = np.asarray(probs, dtype=np.float64)
        total = probs.sum()
        if total <= 0:
            return self.randint(0, len(probs))
        return int(self.rng.choice(len(probs), p=probs / total))
    
    def get_state(self) -> Dict[str, Any]:
        """Get the current RNG state for serialization."""
        return {
            'seed': self.seed,
            'numpy_state': self.rng.bit_generator.state,
        }
    
    def set_state(self, state: Dict[str, Any]):
        """Restore RNG state from serialized data."""
        self.seed = state['seed']
        self.rng.bit_generator.state = state['numpy_state']
