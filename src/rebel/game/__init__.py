"""Game model and public-tree construction."""

from rebel.game.base import Game
from rebel.game.kuhn_poker import KuhnPoker, PublicState, PASS, BET
from rebel.game.tree import Tree, TreeNode, unroll, get_depth

__all__ = [
    'Game',
    'KuhnPoker',
    'PublicState',
    'PASS',
    'BET',
    'Tree',
    'TreeNode',
    'unroll',
    'get_depth',
]
