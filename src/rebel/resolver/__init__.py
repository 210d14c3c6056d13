"""Depth-limited re-solving with external leaf values."""

from rebel.resolver.value_estimator import ValueEstimator, OracleValueEstimator
from rebel.resolver.belief import update_beliefs
from rebel.resolver.recursive_resolver import RecursiveResolver

__all__ = [
    'ValueEstimator',
    'OracleValueEstimator',
    'update_beliefs',
    'RecursiveResolver',
]
