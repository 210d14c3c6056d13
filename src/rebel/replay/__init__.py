"""Prioritized experience replay."""

from rebel.replay.prioritized_replay import PrioritizedReplay
from rebel.replay.sampler import PrefetchingSampler

__all__ = ['PrioritizedReplay', 'PrefetchingSampler']
