"""Recursive belief-based solving for parameterized Kuhn poker.

Depth-limited CFR with learned leaf values, and a multithreaded self-play
pipeline feeding a prioritized replay buffer.
"""

__version__ = "0.1.0"
