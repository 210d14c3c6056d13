"""Value estimation backed by a model from the ModelLocker."""

from typing import Optional

import numpy as np
import torch

from rebel.game.base import Game
from rebel.resolver.value_estimator import ValueEstimator
from rebel.value_net.features import build_query
from rebel.value_net.model_locker import ModelLocker


class ModelValueEstimator(ValueEstimator):
    """Queries the latest published value network.
    
    Every call acquires a fresh handle, so a model update becomes visible at
    the next leaf evaluation while in-flight calls finish on the old model.
    """
    
    def __init__(self, locker: ModelLocker, game: Game, slot: Optional[int] = None):
        """Initialize estimator.
        
        Args:
            locker: Model cache shared by all workers
            game: Game description
            slot: Fixed inference slot, or None for round-robin
        """
        self.locker = locker
        self.game = game
        self.slot = slot
    
    def evaluate(self, beliefs: np.ndarray, state) -> np.ndarray:
        handle = self.locker.acquire(self.slot)
        query = build_query(self.game, state, beliefs)
        with torch.no_grad():
            x = torch.from_numpy(query).unsqueeze(0).to(handle.device)
            values = handle.model(x)
        return values[0].cpu().numpy().astype(np.float64)
