"""Unrolled public-state tree built once per subgame solve."""

from collections import deque
from dataclasses import dataclass
from typing import Any, List, Optional

from rebel.game.base import Game


@dataclass
class TreeNode:
    """Node in the public tree.
    
    Children of a node occupy the contiguous index range
    ``[children_begin, children_end)`` in ascending action order.
    """
    state: Any
    parent: int = -1
    depth: int = 0
    children_begin: int = 0
    children_end: int = 0
    
    @property
    def num_children(self) -> int:
        return self.children_end - self.children_begin
    
    def children(self) -> range:
        return range(self.children_begin, self.children_end)


class Tree:
    """Flat array of nodes rooted at index 0. Read-only after construction."""
    
    def __init__(self, nodes: List[TreeNode], max_depth: Optional[int]):
        self.nodes = nodes
        self.max_depth = max_depth
    
    def __len__(self) -> int:
        return len(self.nodes)
    
    def __getitem__(self, node_id: int) -> TreeNode:
        return self.nodes[node_id]
    
    def __iter__(self):
        return iter(self.nodes)
    
    def children(self, node_id: int) -> range:
        return self.nodes[node_id].children()
    
    def is_leaf(self, node_id: int) -> bool:
        return self.nodes[node_id].num_children == 0


def unroll(game: Game, root_state=None, max_depth: Optional[int] = None) -> Tree:
    """Expand every legal action breadth-first from ``root_state``.
    
    Expansion stops at terminal states and at ``max_depth`` actions below the
    root. Non-terminal nodes at the cutoff are pseudo-leaves whose value must
    come from a value estimator.
    
    Args:
        game: Game description
        root_state: Root public state (defaults to the game's initial state)
        max_depth: Maximum number of actions from root to any leaf, or None
    
    Returns:
        Tree with the root at index 0
    """
    if root_state is None:
        root_state = game.initial_state()
    
    nodes = [TreeNode(state=root_state, parent=-1, depth=0)]
    queue = deque([0])
    while queue:
        node_id = queue.popleft()
        node = nodes[node_id]
        if max_depth is not None and node.depth >= max_depth:
            continue
        actions = game.legal_actions(node.state)
        node.children_begin = len(nodes)
        for action in actions:
            child = TreeNode(
                state=game.transition(node.state, action),
                parent=node_id,
                depth=node.depth + 1,
            )
            queue.append(len(nodes))
            nodes.append(child)
        node.children_end = len(nodes)
    
    return Tree(nodes, max_depth)


def get_depth(tree: Tree, root: int = 0) -> int:
    """Number of levels below and including ``root``."""
    depth = 1
    for child in tree.children(root):
        depth = max(depth, 1 + get_depth(tree, child))
    return depth
