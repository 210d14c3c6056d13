"""Value-estimation interface used at depth-limited leaves.

An estimator maps both players' beliefs at a public state to per-hand
expected values. Implementations must be safe to call concurrently from
several worker threads.
"""

from abc import ABC, abstractmethod

import numpy as np

from rebel.cfr.solver import CFRSolver
from rebel.game.base import Game
from rebel.types import SubgameSolvingConfig


class ValueEstimator(ABC):
    """Synchronous leaf-value capability."""
    
    @abstractmethod
    def evaluate(self, beliefs: np.ndarray, state) -> np.ndarray:
        """Estimate values at ``state``.
        
        Args:
            beliefs: Normalized beliefs of both players, shape (players, hands)
            state: Public state
        
        Returns:
            Per-hand expected values of both players, shape (players, hands)
        """


class OracleValueEstimator(ValueEstimator):
    """Solves the remaining game below ``state`` to the end with CFR.
    
    Exact up to CFR convergence; meant for diagnostics and tests on small games.
    """
    
    def __init__(self, game: Game, num_iters: int = 256, linear_update: bool = True):
        self.game = game
        self.params = SubgameSolvingConfig(
            num_iters=num_iters, max_depth=None, linear_update=linear_update
        )
    
    def evaluate(self, beliefs: np.ndarray, state) -> np.ndarray:
        solver = CFRSolver(self.game, state, beliefs, self.params)
        solver.multistep()
        return solver.get_root_values()
