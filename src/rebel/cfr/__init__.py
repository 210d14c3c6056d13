"""Counterfactual regret minimization over public trees."""

from rebel.cfr.solver import CFRSolver, SolverStatus, TreeIndex, compute_reach, compute_values
from rebel.cfr.strategy import regret_matching, normalize_strategy, uniform_strategy
from rebel.cfr.exploitability import (
    compute_ev, compute_best_response_values, compute_exploitability
)

__all__ = [
    'CFRSolver',
    'SolverStatus',
    'TreeIndex',
    'compute_reach',
    'compute_values',
    'regret_matching',
    'normalize_strategy',
    'uniform_strategy',
    'compute_ev',
    'compute_best_response_values',
    'compute_exploitability',
]
