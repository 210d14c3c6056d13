"""Regret matching and strategy normalization over flat (node, hand, action) arrays."""

import numpy as np


def uniform_strategy(action_mask: np.ndarray, num_hands: int) -> np.ndarray:
    """Uniform distribution over legal actions.
    
    Args:
        action_mask: Boolean array (nodes, actions) of legal action slots
        num_hands: Number of private hands
    
    Returns:
        Array of shape (nodes, hands, actions); rows of nodes without
        actions are all zero
    """
    counts = np.maximum(action_mask.sum(axis=1, keepdims=True), 1)
    uniform = action_mask / counts
    return np.repeat(uniform[:, None, :], num_hands, axis=1)


def normalize_strategy(weights: np.ndarray, action_mask: np.ndarray) -> np.ndarray:
    """Normalize non-negative weights per information set.
    
    Information sets whose weights sum to zero fall back to uniform.
    """
    weights = weights * action_mask[:, None, :]
    totals = weights.sum(axis=2, keepdims=True)
    uniform = uniform_strategy(action_mask, weights.shape[1])
    safe_totals = np.where(totals > 0, totals, 1.0)
    return np.where(totals > 0, weights / safe_totals, uniform)


def regret_matching(regrets: np.ndarray, action_mask: np.ndarray) -> np.ndarray:
    """Strategy proportional to positive cumulative regret.
    
    Falls back to uniform where all regrets are non-positive.
    """
    return normalize_strategy(np.maximum(regrets, 0.0), action_mask)
