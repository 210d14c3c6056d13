"""Tests for the CFR solver and strategy diagnostics."""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / 'src'))

import numpy as np
import pytest

from rebel.cfr.exploitability import compute_ev, compute_exploitability
from rebel.cfr.solver import CFRSolver, SolverStatus
from rebel.cfr.strategy import regret_matching
from rebel.errors import DivergedNumerically, EvaluationError
from rebel.game.kuhn_poker import BET, KuhnPoker
from rebel.resolver.value_estimator import ValueEstimator
from rebel.types import SubgameSolvingConfig

KUHN_VALUE = -1.0 / 18


def kuhn_nash_strategy() -> np.ndarray:
    """Equilibrium with alpha = 0 laid out on the full Kuhn tree.
    
    Nodes: 0 root, 1 P, 2 B, 3 PP, 4 PB, 5 BP, 6 BB, 7 PBP, 8 PBB.
    """
    strategy = np.zeros((9, 3, 2))
    strategy[0] = [[1, 0], [1, 0], [1, 0]]
    strategy[1] = [[2 / 3, 1 / 3], [1, 0], [0, 1]]
    strategy[2] = [[1, 0], [2 / 3, 1 / 3], [0, 1]]
    strategy[4] = [[1, 0], [2 / 3, 1 / 3], [0, 1]]
    return strategy


def full_game_solver(game, **params) -> CFRSolver:
    config = SubgameSolvingConfig(max_depth=None, **params)
    return CFRSolver(game, game.initial_state(), game.initial_beliefs(), config)


def test_regret_matching():
    """Strategy is proportional to positive regret, uniform when none is positive."""
    mask = np.array([[True, True, False]])
    regrets = np.array([[[2.0, 6.0, 5.0], [-1.0, -3.0, 0.0]]])
    
    strategy = regret_matching(regrets, mask)
    
    np.testing.assert_allclose(strategy[0, 0], [0.25, 0.75, 0.0])
    np.testing.assert_allclose(strategy[0, 1], [0.5, 0.5, 0.0])


def test_nash_strategy_diagnostics():
    """The Kuhn equilibrium is unexploitable and worth -1/18 to the first player."""
    game = KuhnPoker()
    strategy = kuhn_nash_strategy()
    
    assert compute_exploitability(game, strategy) == pytest.approx(0.0, abs=1e-9)
    ev = compute_ev(game, strategy)
    assert ev[0] == pytest.approx(KUHN_VALUE)
    assert ev[1] == pytest.approx(-KUHN_VALUE)


def test_exploitability_decreases():
    """Exploitability shrinks as linear CFR runs longer."""
    game = KuhnPoker()
    solver = full_game_solver(game, num_iters=1024, linear_update=True)
    
    exploitabilities = []
    for num_iters in [8, 56, 448]:
        solver.multistep(num_iters)
        exploitabilities.append(compute_exploitability(game, solver.get_strategy(), solver.tree))
    
    assert exploitabilities[0] > exploitabilities[1] > exploitabilities[2]
    assert exploitabilities[2] < 0.02


@pytest.mark.parametrize("params", [
    {},
    {"linear_update": True},
    {"dcfr": True},
    {"optimistic": True},
    {"linear_update": True, "optimistic": True},
])
def test_cfr_variants_converge(params):
    """Every CFR variant approaches equilibrium on full Kuhn poker."""
    game = KuhnPoker()
    solver = full_game_solver(game, num_iters=1024, **params)
    solver.multistep()
    
    assert solver.num_iterations == 1024
    assert compute_exploitability(game, solver.get_strategy(), solver.tree) < 0.02


def test_fictitious_play_improves_on_uniform():
    """Fictitious play ends less exploitable than the uniform strategy."""
    game = KuhnPoker()
    solver = full_game_solver(game, num_iters=1024, use_cfr=False)
    uniform_exploitability = compute_exploitability(game, solver.get_strategy(), solver.tree)
    
    solver.multistep()
    
    exploitability = compute_exploitability(game, solver.get_strategy(), solver.tree)
    assert exploitability < 0.1
    assert exploitability < uniform_exploitability


def test_average_strategy_value():
    """The average strategy earns the game value."""
    game = KuhnPoker()
    solver = full_game_solver(game, num_iters=2048, linear_update=True)
    solver.multistep()
    
    ev = compute_ev(game, solver.get_strategy(), solver.tree)
    assert ev[0] == pytest.approx(KUHN_VALUE, abs=0.01)


def test_root_values_are_zero_sum():
    """Root values of both players cancel under their beliefs."""
    game = KuhnPoker()
    solver = full_game_solver(game, num_iters=256, linear_update=True)
    solver.multistep()
    
    beliefs = game.initial_beliefs()
    root = solver.get_root_values()
    
    assert root.shape == (2, 3)
    assert np.dot(beliefs[0], root[0]) + np.dot(beliefs[1], root[1]) == pytest.approx(0.0, abs=1e-9)
    # Normalized by the mass of compatible card pairs (2/3 for three cards)
    assert np.dot(beliefs[0], root[0]) / (2.0 / 3) == pytest.approx(KUHN_VALUE, abs=0.02)


def test_strategy_valid_before_and_during_solve():
    """The average strategy is a distribution at every stage of solving."""
    game = KuhnPoker()
    solver = full_game_solver(game, num_iters=10)
    assert solver.status == SolverStatus.UNINITIALIZED
    
    np.testing.assert_allclose(solver.get_strategy()[0], 0.5)
    
    solver.step()
    assert solver.status == SolverStatus.ITERATING
    strategy = solver.get_strategy()
    for node_id in solver.index.player_nodes[0] + solver.index.player_nodes[1]:
        np.testing.assert_allclose(strategy[node_id].sum(axis=1), 1.0)
    
    solver.multistep()
    assert solver.status == SolverStatus.STOPPED
    assert solver.num_iterations == 11


def test_depth_limited_solve_requires_estimator():
    """A tree with depth-limited leaves needs a value estimator."""
    game = KuhnPoker()
    config = SubgameSolvingConfig(num_iters=4, max_depth=1)
    
    with pytest.raises(ValueError):
        CFRSolver(game, game.initial_state(), game.initial_beliefs(), config)


def test_depth_limited_solve_queries_estimator():
    """Each pseudo-leaf is evaluated once per iteration with normalized beliefs."""
    calls = []
    
    class RecordingEstimator(ValueEstimator):
        def evaluate(self, beliefs, state):
            calls.append((beliefs.copy(), state))
            return np.zeros_like(beliefs)
    
    game = KuhnPoker()
    config = SubgameSolvingConfig(num_iters=3, max_depth=1)
    solver = CFRSolver(
        game, game.initial_state(), game.initial_beliefs(), config, RecordingEstimator()
    )
    solver.multistep()
    
    assert len(calls) == 2 * 3
    for beliefs, state in calls:
        np.testing.assert_allclose(beliefs.sum(axis=1), 1.0)
        assert len(state.history) == 1


def test_leaf_values_queried_when_acting_player_never_reaches_leaf():
    """Regrets stay continuous as an action's probability goes to zero."""
    class ShiftedEstimator(ValueEstimator):
        def evaluate(self, beliefs, state):
            hands = np.arange(beliefs.shape[1], dtype=np.float64)
            bonus = 1.0 if state.last_action == BET else 0.0
            return np.stack([
                hands - beliefs[1 - player] @ hands + bonus
                for player in range(beliefs.shape[0])
            ])
    
    game = KuhnPoker()
    config = SubgameSolvingConfig(num_iters=1, max_depth=1)
    
    def bet_regrets(bet_prob):
        solver = CFRSolver(
            game, game.initial_state(), game.initial_beliefs(), config, ShiftedEstimator()
        )
        solver._strategy[0, :, BET] = bet_prob
        solver._strategy[0, :, 1 - BET] = 1.0 - bet_prob
        solver.step()
        return solver._regrets[0, :, BET]
    
    rare = bet_regrets(1e-9)
    never = bet_regrets(0.0)
    
    np.testing.assert_allclose(never, [1.0, 1.0, 1.0])
    np.testing.assert_allclose(rare, never, atol=1e-6)


def test_estimator_failure_becomes_evaluation_error():
    """Exceptions from the estimator surface as EvaluationError."""
    class FailingEstimator(ValueEstimator):
        def evaluate(self, beliefs, state):
            raise RuntimeError("model unavailable")
    
    game = KuhnPoker()
    config = SubgameSolvingConfig(num_iters=2, max_depth=1)
    solver = CFRSolver(
        game, game.initial_state(), game.initial_beliefs(), config, FailingEstimator()
    )
    
    with pytest.raises(EvaluationError):
        solver.multistep()


@pytest.mark.parametrize("bad_values", [np.zeros((3, 2)), np.full((2, 3), np.nan)])
def test_malformed_estimates_become_evaluation_error(bad_values):
    """Wrongly shaped or NaN estimates are rejected."""
    class BadEstimator(ValueEstimator):
        def evaluate(self, beliefs, state):
            return bad_values
    
    game = KuhnPoker()
    config = SubgameSolvingConfig(num_iters=2, max_depth=1)
    solver = CFRSolver(
        game, game.initial_state(), game.initial_beliefs(), config, BadEstimator()
    )
    
    with pytest.raises(EvaluationError):
        solver.step()


def test_overflowing_regrets_raise_diverged():
    """Regrets that overflow stop the solve with DivergedNumerically."""
    class HugeEstimator(ValueEstimator):
        def evaluate(self, beliefs, state):
            sign = 1.0 if state.last_action == BET else -1.0
            return np.full_like(beliefs, sign * 1.7e308)
    
    game = KuhnPoker()
    config = SubgameSolvingConfig(num_iters=8, max_depth=1)
    solver = CFRSolver(
        game, game.initial_state(), game.initial_beliefs(), config, HugeEstimator()
    )
    
    with np.errstate(over='ignore', invalid='ignore'):
        with pytest.raises(DivergedNumerically):
            solver.multistep()


def test_invalid_beliefs_rejected():
    """Beliefs of the wrong shape or with negative entries are rejected."""
    game = KuhnPoker()
    config = SubgameSolvingConfig(num_iters=1, max_depth=None)
    
    with pytest.raises(ValueError):
        CFRSolver(game, game.initial_state(), np.ones((2, 4)), config)
    with pytest.raises(ValueError):
        CFRSolver(game, game.initial_state(), -np.ones((2, 3)), config)


def test_config_validation():
    """Invalid subgame settings raise ValueError."""
    with pytest.raises(ValueError):
        SubgameSolvingConfig(num_iters=0)
    with pytest.raises(ValueError):
        SubgameSolvingConfig(dcfr=True, linear_update=True)
