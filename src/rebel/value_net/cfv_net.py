"""Value network architecture.

MLP over queries with GELU activation, LayerNorm and Dropout. The output
head predicts one value per (player, hand) pair.
"""

from typing import Sequence

import torch
import torch.nn as nn

from rebel.game.base import Game
from rebel.types import ModelConfig
from rebel.value_net.features import get_query_dimension


class ValueNet(nn.Module):
    """Counterfactual value network.
    
    Architecture:
    - Input: query vector (state encoding + beliefs)
    - Hidden: ``hidden_dims`` with GELU, LayerNorm, Dropout
    - Output: [batch_size, num_players, num_hands]
    """
    
    def __init__(
        self,
        input_dim: int,
        num_players: int,
        num_hands: int,
        hidden_dims: Sequence[int] = (256, 256),
        dropout: float = 0.0
    ):
        """Initialize value net.
        
        Args:
            input_dim: Query dimension
            num_players: Number of players
            num_hands: Number of private hands per player
            hidden_dims: Hidden layer dimensions
            dropout: Dropout probability
        """
        super().__init__()
        
        self.input_dim = input_dim
        self.num_players = num_players
        self.num_hands = num_hands
        self.hidden_dims = tuple(hidden_dims)
        
        layers = []
        prev_dim = input_dim
        for hidden_dim in self.hidden_dims:
            layers.append(nn.Linear(prev_dim, hidden_dim))
            layers.append(nn.LayerNorm(hidden_dim))
            layers.append(nn.GELU())
            layers.append(nn.Dropout(dropout))
            prev_dim = hidden_dim
        
        self.backbone = nn.Sequential(*layers)
        self.value_head = nn.Linear(prev_dim, num_players * num_hands)
    
    def forward(self, x: torch.Tensor) -> torch.Tensor:
        """Forward pass.
        
        Args:
            x: Queries [batch_size, input_dim]
        
        Returns:
            Values [batch_size, num_players, num_hands]
        """
        h = self.backbone(x)
        return self.value_head(h).view(-1, self.num_players, self.num_hands)


def create_value_net(game: Game, config: ModelConfig) -> ValueNet:
    """Build a value network sized for ``game``."""
    return ValueNet(
        input_dim=get_query_dimension(game),
        num_players=game.num_players,
        num_hands=game.num_hands,
        hidden_dims=config.hidden_dims,
        dropout=config.dropout,
    )
