"""Bayesian belief updates over private hands."""

import numpy as np
from rebel.utils.logging import get_logger

logger = get_logger("resolver.belief")


def update_beliefs(beliefs: np.ndarray, player: int, action_probs: np.ndarray) -> np.ndarray:
    """Condition ``player``'s beliefs on an observed action.
    
    P(hand | action) is proportional to P(action | hand) * P(hand).
    
    Args:
        beliefs: Beliefs of all players, shape (players, hands)
        player: Player who acted
        action_probs: Probability of the observed action per hand, shape (hands,)
    
    Returns:
        New beliefs array; the input is not modified. If no hand could have
        taken the action the prior is kept.
    """
    posterior = np.array(beliefs, dtype=np.float64)
    updated = posterior[player] * action_probs
    total = updated.sum()
    if total <= 0:
        logger.debug(f"Action has zero probability under player {player}'s beliefs, keeping prior")
        return posterior
    posterior[player] = updated / total
    return posterior
