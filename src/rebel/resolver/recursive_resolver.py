"""Continual re-solving over one game with depth-limited subgames.

At every public state of a trajectory the resolver solves a subgame of
``max_depth`` actions with CFR, using the value estimator at the cutoff,
emits the root values as a training transition, then advances the real game
with the solved policy and updates beliefs before solving again.
"""

from typing import Iterator, Optional, Tuple

import numpy as np

from rebel.cfr.solver import CFRSolver
from rebel.game.base import Game
from rebel.resolver.belief import update_beliefs
from rebel.resolver.value_estimator import ValueEstimator
from rebel.types import RecursiveSolvingConfig, Transition
from rebel.utils.logging import get_logger
from rebel.utils.metrics import MetricsTracker
from rebel.utils.rng import RNG
from rebel.value_net.features import build_query

logger = get_logger("resolver.recursive")


class RecursiveResolver:
    """Generates training transitions by self-play with re-solving.
    
    An instance is owned by one worker thread: it keeps its own RNG, and every
    tree, regret table and belief vector it creates stays local to it.
    """
    
    def __init__(
        self,
        game: Game,
        config: RecursiveSolvingConfig,
        value_estimator: ValueEstimator,
        rng: Optional[RNG] = None,
        metrics: Optional[MetricsTracker] = None
    ):
        """Initialize resolver.
        
        Args:
            game: Game description
            config: Re-solving configuration
            value_estimator: Leaf value estimator shared with other workers
            rng: Random generator (seeded from ``config.seed`` if omitted)
            metrics: Optional tracker receiving per-resolve timings
        """
        self.game = game
        self.config = config
        self.value_estimator = value_estimator
        self.rng = rng if rng is not None else RNG(config.seed)
        self.metrics = metrics
    
    def solve_subgame(self, state, beliefs: np.ndarray) -> CFRSolver:
        """Solve the depth-limited subgame rooted at ``state``.
        
        Raises:
            EvaluationError: If the value estimator fails
            DivergedNumerically: If CFR produces non-finite regrets
        """
        solver = CFRSolver(
            self.game, state, beliefs, self.config.subgame_params, self.value_estimator
        )
        solver.multistep()
        if self.metrics is not None:
            self.metrics.record_resolve(solver.last_solve_time_ms, solver.num_iterations)
        return solver
    
    def make_transition(self, state, beliefs: np.ndarray, solver: CFRSolver) -> Transition:
        values = solver.get_root_values().astype(np.float32)
        return Transition(query=build_query(self.game, state, beliefs), values=values)
    
    def run_trajectory(self) -> Iterator[Transition]:
        """Play one game from the initial state, yielding a transition per resolve.
        
        Raises:
            EvaluationError: If the value estimator fails; transitions already
                yielded remain valid
            DivergedNumerically: If CFR produces non-finite regrets
        """
        state = self.game.initial_state()
        beliefs = self.game.initial_beliefs()
        
        while not self.game.is_terminal(state):
            solver = self.solve_subgame(state, beliefs)
            yield self.make_transition(state, beliefs, solver)
            
            if self.config.sample_leaf:
                node_id, beliefs = self.sample_leaf(solver, beliefs)
            else:
                node_id, beliefs = self.sample_action(solver, 0, beliefs)
            state = solver.tree[node_id].state
            logger.debug(f"Advanced to {self.game.state_to_string(state)}")
    
    def sample_action(
        self, solver: CFRSolver, node_id: int, beliefs: np.ndarray
    ) -> Tuple[int, np.ndarray]:
        """Take one action at ``node_id`` and condition beliefs on it.
        
        With probability ``random_action_prob`` the action is uniform over
        legal actions; otherwise a hand is drawn from the acting player's
        beliefs and the action from the sampling policy for that hand.
        
        Returns:
            Tuple of (child node id, updated beliefs)
        """
        node = solver.tree[node_id]
        player = self.game.acting_player(node.state)
        num_children = node.num_children
        
        if self.rng.random() < self.config.random_action_prob:
            position = self.rng.randint(0, num_children)
        else:
            hand = self.rng.categorical(beliefs[player])
            policy = solver.get_sampling_strategy()[node_id, hand, :num_children]
            position = self.rng.categorical(policy)
        
        propagation = solver.get_belief_propagation_strategy()
        beliefs = update_beliefs(beliefs, player, propagation[node_id, :, position])
        return node.children_begin + position, beliefs
    
    def sample_leaf(self, solver: CFRSolver, beliefs: np.ndarray) -> Tuple[int, np.ndarray]:
        """Walk the solved tree from the root to a leaf under the policy."""
        node_id = 0
        while not solver.tree.is_leaf(node_id):
            node_id, beliefs = self.sample_action(solver, node_id, beliefs)
        return node_id, beliefs
