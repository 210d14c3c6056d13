"""Abstract extensive-form game description used by the solver."""

from abc import ABC, abstractmethod
from typing import Hashable, List

import numpy as np


class Game(ABC):
    """Immutable description of a two-player zero-sum game over public states.
    
    Private information is summarized by ``num_hands`` hidden values per
    player. All methods are deterministic; a game instance holds no mutable
    state and may be shared freely between threads.
    """
    
    num_players: int = 2
    
    @property
    @abstractmethod
    def num_actions(self) -> int:
        """Total number of distinct actions."""
    
    @property
    @abstractmethod
    def num_hands(self) -> int:
        """Number of private hands each player can hold."""
    
    @abstractmethod
    def initial_state(self) -> Hashable:
        """Public state at the start of the game."""
    
    def initial_beliefs(self) -> np.ndarray:
        """Uniform beliefs over hands for every player, shape (players, hands)."""
        return np.full(
            (self.num_players, self.num_hands), 1.0 / self.num_hands, dtype=np.float64
        )
    
    @abstractmethod
    def legal_actions(self, state) -> List[int]:
        """Legal actions in ascending id order; empty for terminal states."""
    
    @abstractmethod
    def transition(self, state, action: int):
        """Public state reached by taking ``action``.
        
        Raises:
            InvalidAction: If ``action`` is not legal in ``state``
        """
    
    def is_terminal(self, state) -> bool:
        return not self.legal_actions(state)
    
    @abstractmethod
    def acting_player(self, state) -> int:
        """Player to move in ``state``."""
    
    @abstractmethod
    def terminal_values(
        self, state, traverser: int, opponent_reach: np.ndarray
    ) -> np.ndarray:
        """Counterfactual values of the traverser's hands at a terminal state.
        
        Args:
            state: Terminal public state
            traverser: Player whose values are computed
            opponent_reach: Opponent reach probability per hand, shape (hands,)
        
        Returns:
            Array of shape (hands,)
        """
    
    @abstractmethod
    def encode_state(self, state) -> np.ndarray:
        """Fixed-size float feature vector of a public state."""
    
    def action_to_string(self, action: int) -> str:
        return str(action)
    
    def state_to_string(self, state) -> str:
        return str(state)
