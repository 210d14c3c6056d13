"""Post-hoc diagnostics of a strategy over the full game tree.

Values are expectations over the deal: each player's per-hand values are
weighted by their own beliefs and normalized by the probability mass of
compatible hand pairs (cards are dealt without replacement).
"""

from typing import Optional

import numpy as np

from rebel.cfr.solver import TreeIndex, compute_reach, compute_values
from rebel.game.base import Game
from rebel.game.tree import Tree, unroll


def _pair_mass(beliefs: np.ndarray) -> float:
    return float(beliefs[0].sum() * beliefs[1].sum() - np.dot(beliefs[0], beliefs[1]))


def _expected_values(
    game: Game,
    strategy: np.ndarray,
    tree: Optional[Tree],
    beliefs: Optional[np.ndarray],
    best_response: bool
) -> np.ndarray:
    if tree is None:
        tree = unroll(game, game.initial_state(), max_depth=None)
    if beliefs is None:
        beliefs = game.initial_beliefs()
    index = TreeIndex(game, tree)
    if index.pseudo_leaves:
        raise ValueError("Strategy diagnostics require a tree unrolled to the end of the game")
    if strategy.shape != (len(tree), game.num_hands, game.num_actions):
        raise ValueError(
            f"Strategy shape {strategy.shape} does not match tree of {len(tree)} nodes"
        )
    
    reach = [compute_reach(index, strategy, beliefs[p], p) for p in range(game.num_players)]
    mass = _pair_mass(beliefs)
    result = np.zeros(game.num_players)
    for player in range(game.num_players):
        values = compute_values(
            game, tree, index, strategy, reach[1 - player], player,
            best_response=best_response
        )
        result[player] = np.dot(beliefs[player], values[0]) / mass
    return result


def compute_ev(
    game: Game,
    strategy: np.ndarray,
    tree: Optional[Tree] = None,
    beliefs: Optional[np.ndarray] = None
) -> np.ndarray:
    """Expected value of each player when both follow ``strategy``.
    
    Args:
        game: Game description
        strategy: Strategy over the full game tree, shape (nodes, hands, actions)
        tree: Full game tree (unrolled from the initial state when omitted)
        beliefs: Deal distribution (the game's initial beliefs when omitted)
    
    Returns:
        Array of shape (players,)
    """
    return _expected_values(game, strategy, tree, beliefs, best_response=False)


def compute_best_response_values(
    game: Game,
    strategy: np.ndarray,
    tree: Optional[Tree] = None,
    beliefs: Optional[np.ndarray] = None
) -> np.ndarray:
    """Value of each player's best response to the other player's part of ``strategy``."""
    return _expected_values(game, strategy, tree, beliefs, best_response=True)


def compute_exploitability(
    game: Game,
    strategy: np.ndarray,
    tree: Optional[Tree] = None,
    beliefs: Optional[np.ndarray] = None
) -> float:
    """Mean of both players' best-response values; zero exactly at a Nash equilibrium."""
    values = compute_best_response_values(game, strategy, tree, beliefs)
    return float(values.mean())
