"""Query construction for the value network.

A query is the public-state encoding followed by both players' beliefs:

    [encode_state(state) | beliefs[0] | beliefs[1]]
"""

from typing import List, Sequence, Tuple

import numpy as np

from rebel.game.base import Game
from rebel.types import Transition


def get_query_dimension(game: Game) -> int:
    """Length of a query vector for ``game``."""
    state_dim = len(game.encode_state(game.initial_state()))
    return state_dim + game.num_players * game.num_hands


def build_query(game: Game, state, beliefs: np.ndarray) -> np.ndarray:
    """Featurize a public belief state as a float32 vector."""
    state_features = game.encode_state(state)
    return np.concatenate([
        np.asarray(state_features, dtype=np.float32),
        np.asarray(beliefs, dtype=np.float32).reshape(-1),
    ])


def split_query(game: Game, query: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """Inverse of ``build_query``: (state features, beliefs of shape (players, hands))."""
    belief_dim = game.num_players * game.num_hands
    state_features = query[:-belief_dim]
    beliefs = query[-belief_dim:].reshape(game.num_players, game.num_hands)
    return state_features, beliefs


def stack_transitions(transitions: Sequence[Transition]) -> Tuple[np.ndarray, np.ndarray]:
    """Stack transitions into (queries [batch, query_dim], values [batch, players, hands])."""
    queries: List[np.ndarray] = [t.query for t in transitions]
    values: List[np.ndarray] = [t.values for t in transitions]
    return np.stack(queries).astype(np.float32), np.stack(values).astype(np.float32)
