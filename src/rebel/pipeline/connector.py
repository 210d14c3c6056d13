"""Shared resources seen by one data loop."""

from typing import Optional

from rebel.game.base import Game
from rebel.replay.prioritized_replay import PrioritizedReplay
from rebel.resolver.value_estimator import ValueEstimator
from rebel.types import Transition
from rebel.value_net.infer import ModelValueEstimator
from rebel.value_net.model_locker import ModelLocker


class DataConnector:
    """Binds a value estimator to the replay buffer producers write into."""
    
    def __init__(
        self,
        replay: PrioritizedReplay,
        value_estimator: ValueEstimator,
        priority: float = 1.0
    ):
        self.replay = replay
        self.value_estimator = value_estimator
        self.priority = priority
    
    @classmethod
    def from_model_locker(
        cls,
        locker: ModelLocker,
        replay: PrioritizedReplay,
        game: Game,
        slot: Optional[int] = None
    ) -> "DataConnector":
        """Connector whose leaf values come from the locker's current model."""
        return cls(replay, ModelValueEstimator(locker, game, slot))
    
    def push(self, transition: Transition, timeout: Optional[float] = None) -> int:
        return self.replay.push(transition, self.priority, block=True, timeout=timeout)
