"""CFR solver over a depth-limited public tree.

Regrets, strategy sums and the current strategy are flat numpy arrays of
shape (nodes, hands, actions); an information set is a (node, hand) pair of
the acting player. Traversals are pure functions over those arrays:

- compute_reach: forward pass, reach probability of every node per hand
- compute_values: backward pass, counterfactual values per hand

Variants: vanilla CFR, linear CFR, discounted CFR (alpha/beta/gamma),
optimistic regret matching, and fictitious play (use_cfr=False).
Non-terminal leaves at the depth cutoff are valued by a value estimator.
"""

import time
from enum import Enum
from typing import List, Optional

import numpy as np

from rebel.cfr.strategy import normalize_strategy, regret_matching, uniform_strategy
from rebel.errors import DivergedNumerically, EvaluationError
from rebel.game.base import Game
from rebel.game.tree import Tree, unroll
from rebel.types import SubgameSolvingConfig
from rebel.utils.logging import get_logger

logger = get_logger("cfr.solver")

NODE_INTERNAL = 0
NODE_TERMINAL = 1
NODE_PSEUDO_LEAF = 2


class SolverStatus(Enum):
    """Lifecycle of a solver over its fixed tree."""
    UNINITIALIZED = "uninitialized"
    ITERATING = "iterating"
    STOPPED = "stopped"


class TreeIndex:
    """Integer-indexed view of a tree used by the traversal functions."""
    
    def __init__(self, game: Game, tree: Tree):
        num_nodes = len(tree)
        self.num_nodes = num_nodes
        self.parent = np.full(num_nodes, -1, dtype=np.int64)
        self.action_pos = np.full(num_nodes, -1, dtype=np.int64)
        self.player = np.zeros(num_nodes, dtype=np.int64)
        self.kind = np.zeros(num_nodes, dtype=np.int64)
        self.action_mask = np.zeros((num_nodes, game.num_actions), dtype=bool)
        self.player_nodes: List[List[int]] = [[] for _ in range(game.num_players)]
        self.pseudo_leaves: List[int] = []
        
        for node_id, node in enumerate(tree):
            self.player[node_id] = game.acting_player(node.state)
            for pos, child in enumerate(node.children()):
                self.parent[child] = node_id
                self.action_pos[child] = pos
            if node.num_children > 0:
                self.kind[node_id] = NODE_INTERNAL
                self.action_mask[node_id, :node.num_children] = True
                self.player_nodes[self.player[node_id]].append(node_id)
            elif game.is_terminal(node.state):
                self.kind[node_id] = NODE_TERMINAL
            else:
                self.kind[node_id] = NODE_PSEUDO_LEAF
                self.pseudo_leaves.append(node_id)


def compute_reach(
    index: TreeIndex,
    strategy: np.ndarray,
    beliefs: np.ndarray,
    player: int
) -> np.ndarray:
    """Reach probability of every node for each of ``player``'s hands.
    
    Only the player's own actions contribute; chance is folded into the
    root beliefs and opponent actions do not change the player's reach.
    
    Returns:
        Array of shape (nodes, hands)
    """
    reach = np.empty((index.num_nodes, beliefs.shape[0]), dtype=np.float64)
    reach[0] = beliefs
    # Nodes are stored breadth-first, so a parent always precedes its children.
    for node_id in range(1, index.num_nodes):
        parent = index.parent[node_id]
        if index.player[parent] == player:
            reach[node_id] = reach[parent] * strategy[parent, :, index.action_pos[node_id]]
        else:
            reach[node_id] = reach[parent]
    return reach


def compute_values(
    game: Game,
    tree: Tree,
    index: TreeIndex,
    strategy: np.ndarray,
    opponent_reach: np.ndarray,
    traverser: int,
    leaf_values: Optional[np.ndarray] = None,
    best_response: bool = False
) -> np.ndarray:
    """Counterfactual values of every node for each of the traverser's hands.
    
    Args:
        game: Game description
        tree: Public tree
        index: Index of ``tree``
        strategy: Strategy of shape (nodes, hands, actions)
        opponent_reach: Opponent reach of shape (nodes, hands)
        traverser: Player whose values are computed
        leaf_values: Normalized estimator values (nodes, players, hands) at pseudo-leaves
        best_response: Take the best action at the traverser's nodes instead
            of following ``strategy``
    
    Returns:
        Array of shape (nodes, hands)
    """
    values = np.zeros_like(opponent_reach)
    for node_id in range(index.num_nodes - 1, -1, -1):
        kind = index.kind[node_id]
        if kind == NODE_TERMINAL:
            values[node_id] = game.terminal_values(
                tree[node_id].state, traverser, opponent_reach[node_id]
            )
        elif kind == NODE_PSEUDO_LEAF:
            values[node_id] = leaf_values[node_id, traverser] * opponent_reach[node_id].sum()
        else:
            node = tree[node_id]
            child_values = values[node.children_begin:node.children_end]
            if index.player[node_id] != traverser:
                values[node_id] = child_values.sum(axis=0)
            elif best_response:
                values[node_id] = child_values.max(axis=0)
            else:
                policy = strategy[node_id, :, :node.num_children]
                values[node_id] = np.einsum('ha,ah->h', policy, child_values)
    return values


class CFRSolver:
    """Solves a subgame rooted at ``root_state`` given both players' beliefs.
    
    The solver owns its tree and tables exclusively; one instance must only
    be driven from one thread.
    """
    
    def __init__(
        self,
        game: Game,
        root_state,
        beliefs: np.ndarray,
        params: SubgameSolvingConfig,
        value_estimator=None
    ):
        """Initialize solver.
        
        Args:
            game: Game description
            root_state: Public state at the subgame root
            beliefs: Beliefs of both players, shape (players, hands)
            params: Subgame solving configuration
            value_estimator: Object with ``evaluate(beliefs, state)``; required
                when the depth cutoff leaves non-terminal leaves
        """
        self.game = game
        self.root_state = root_state
        self.params = params
        self.value_estimator = value_estimator
        self.beliefs = np.asarray(beliefs, dtype=np.float64)
        
        expected_shape = (game.num_players, game.num_hands)
        if self.beliefs.shape != expected_shape:
            raise ValueError(f"beliefs must have shape {expected_shape}, got {self.beliefs.shape}")
        if np.any(self.beliefs < 0):
            raise ValueError("beliefs must be non-negative")
        
        self.tree = unroll(game, root_state, params.max_depth)
        self.index = TreeIndex(game, self.tree)
        if self.index.pseudo_leaves and value_estimator is None:
            raise ValueError(
                f"Tree has {len(self.index.pseudo_leaves)} depth-limited leaves "
                f"but no value estimator was given"
            )
        
        shape = (len(self.tree), game.num_hands, game.num_actions)
        self._regrets = np.zeros(shape, dtype=np.float64)
        self._sum_strategy = np.zeros(shape, dtype=np.float64)
        self._strategy = uniform_strategy(self.index.action_mask, game.num_hands)
        
        self.num_iterations = 0
        self.status = SolverStatus.UNINITIALIZED
        self.last_solve_time_ms = 0.0
        self._root_values: Optional[np.ndarray] = None
    
    def step(self):
        """Advance the solver by one iteration updating both players."""
        self.status = SolverStatus.ITERATING
        self._root_values = None
        t = self.num_iterations + 1
        if self.params.use_cfr:
            self._cfr_step(t)
        else:
            self._fictitious_play_step(t)
        self.num_iterations = t
    
    def multistep(self, num_iters: Optional[int] = None):
        """Run ``num_iters`` iterations (defaults to the configured count).
        
        Raises:
            DivergedNumerically: If regrets or strategy sums become non-finite
            EvaluationError: If the value estimator fails
        """
        if num_iters is None:
            num_iters = self.params.num_iters
        start_time = time.time()
        for _ in range(num_iters):
            self.step()
        self.status = SolverStatus.STOPPED
        self.last_solve_time_ms = (time.time() - start_time) * 1000
        logger.debug(
            f"Solved subgame at {self.game.state_to_string(self.root_state)}: "
            f"{num_iters} iterations over {len(self.tree)} nodes in {self.last_solve_time_ms:.1f}ms"
        )
    
    def get_strategy(self) -> np.ndarray:
        """Average strategy, shape (nodes, hands, actions).
        
        Valid at any point; information sets never reached are uniform.
        """
        return normalize_strategy(self._sum_strategy, self.index.action_mask)
    
    def get_sampling_strategy(self) -> np.ndarray:
        """Strategy of the latest iterate."""
        return self._strategy.copy()
    
    def get_belief_propagation_strategy(self) -> np.ndarray:
        """Strategy used to update beliefs after an action is taken."""
        return self.get_strategy()
    
    def get_root_values(self) -> np.ndarray:
        """Per-hand values of both players at the root under the average strategy.
        
        Values are divided by the opponent's total reach at the root, the
        scale a value estimator returns at pseudo-leaves.
        
        Returns:
            Array of shape (players, hands)
        """
        if self._root_values is None:
            strategy = self.get_strategy()
            reach = self._compute_all_reach(strategy)
            leaf_values = self._query_leaf_values(reach)
            root_values = np.zeros_like(self.beliefs)
            for player in range(self.game.num_players):
                opponent = 1 - player
                values = compute_values(
                    self.game, self.tree, self.index, strategy,
                    reach[opponent], player, leaf_values
                )
                mass = reach[opponent][0].sum()
                root_values[player] = values[0] / mass if mass > 0 else values[0]
            self._root_values = root_values
        return self._root_values.copy()
    
    def _compute_all_reach(self, strategy: np.ndarray) -> List[np.ndarray]:
        return [
            compute_reach(self.index, strategy, self.beliefs[player], player)
            for player in range(self.game.num_players)
        ]
    
    def _cfr_step(self, t: int):
        params = self.params
        strategy = self._strategy
        reach = self._compute_all_reach(strategy)
        leaf_values = self._query_leaf_values(reach)
        weight = float(t) if params.linear_update else 1.0
        
        increment = np.zeros_like(self._regrets)
        for player in range(self.game.num_players):
            values = compute_values(
                self.game, self.tree, self.index, strategy,
                reach[1 - player], player, leaf_values
            )
            for node_id in self.index.player_nodes[player]:
                node = self.tree[node_id]
                k = node.num_children
                increment[node_id, :, :k] = (
                    values[node.children_begin:node.children_end] - values[node_id]
                ).T
                self._sum_strategy[node_id] += (
                    weight * reach[player][node_id][:, None] * strategy[node_id]
                )
        
        increment *= weight
        self._regrets += increment
        if params.dcfr:
            self._apply_dcfr_discount(t)
        self._check_finite(t)
        
        if params.optimistic:
            self._strategy = regret_matching(self._regrets + increment, self.index.action_mask)
        else:
            self._strategy = regret_matching(self._regrets, self.index.action_mask)
    
    def _apply_dcfr_discount(self, t: int):
        params = self.params
        pos_discount = t ** params.dcfr_alpha / (t ** params.dcfr_alpha + 1)
        neg_discount = t ** params.dcfr_beta / (t ** params.dcfr_beta + 1)
        self._regrets *= np.where(self._regrets > 0, pos_discount, neg_discount)
        self._sum_strategy *= (t / (t + 1)) ** params.dcfr_gamma
    
    def _fictitious_play_step(self, t: int):
        # The current strategy is the running average each player responds to.
        average = self._strategy
        reach = self._compute_all_reach(average)
        leaf_values = self._query_leaf_values(reach)
        weight = float(t) if self.params.linear_update else 1.0
        hands = np.arange(self.game.num_hands)
        
        for player in range(self.game.num_players):
            values = compute_values(
                self.game, self.tree, self.index, average,
                reach[1 - player], player, leaf_values, best_response=True
            )
            response = np.zeros_like(average)
            for node_id in self.index.player_nodes[player]:
                node = self.tree[node_id]
                best = values[node.children_begin:node.children_end].argmax(axis=0)
                response[node_id, hands, best] = 1.0
            response_reach = compute_reach(self.index, response, self.beliefs[player], player)
            for node_id in self.index.player_nodes[player]:
                self._sum_strategy[node_id] += (
                    weight * response_reach[node_id][:, None] * response[node_id]
                )
        
        self._check_finite(t)
        self._strategy = normalize_strategy(self._sum_strategy, self.index.action_mask)
    
    def _check_finite(self, t: int):
        if not np.all(np.isfinite(self._regrets)):
            raise DivergedNumerically(t, "regrets")
        if not np.all(np.isfinite(self._sum_strategy)):
            raise DivergedNumerically(t, "strategy sums")
    
    def _query_leaf_values(self, reach: List[np.ndarray]) -> Optional[np.ndarray]:
        """Normalized estimator values at every pseudo-leaf, shape (nodes, players, hands).
        
        A player's leaf value is scaled by the opponent's reach, so a leaf is
        only skipped when nobody reaches it. A player who never reaches the
        leaf still needs the opponent's values there for the regret of the
        action not taken; their beliefs fall back to the root beliefs.
        """
        if not self.index.pseudo_leaves:
            return None
        num_players = self.game.num_players
        leaf_values = np.zeros((len(self.tree), num_players, self.game.num_hands))
        for node_id in self.index.pseudo_leaves:
            beliefs = np.stack([reach[player][node_id] for player in range(num_players)])
            totals = beliefs.sum(axis=1)
            if np.all(totals <= 0):
                continue
            for player in range(num_players):
                if totals[player] <= 0:
                    beliefs[player] = self._fallback_beliefs(player)
                else:
                    beliefs[player] /= totals[player]
            leaf_values[node_id] = self._evaluate(beliefs, self.tree[node_id].state)
        return leaf_values
    
    def _fallback_beliefs(self, player: int) -> np.ndarray:
        prior = self.beliefs[player]
        total = prior.sum()
        if total > 0:
            return prior / total
        return np.full(self.game.num_hands, 1.0 / self.game.num_hands)
    
    def _evaluate(self, beliefs: np.ndarray, state) -> np.ndarray:
        try:
            values = self.value_estimator.evaluate(beliefs, state)
        except EvaluationError:
            raise
        except Exception as e:
            raise EvaluationError(
                f"Value estimator failed at {self.game.state_to_string(state)}: {e}"
            ) from e
        
        values = np.asarray(values, dtype=np.float64)
        expected_shape = (self.game.num_players, self.game.num_hands)
        if values.shape != expected_shape:
            raise EvaluationError(
                f"Value estimator returned shape {values.shape}, expected {expected_shape}"
            )
        if not np.all(np.isfinite(values)):
            raise EvaluationError(
                f"Value estimator returned non-finite values at {self.game.state_to_string(state)}"
            )
        return values
