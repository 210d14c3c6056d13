"""Worker loops and the shared run-state machine.

Loops are plain blocking threads. They only observe pause and termination at
checkpoints, which sit between resolves, so a resolve in progress always
completes before its loop pauses or exits.
"""

import threading
from abc import ABC, abstractmethod
from enum import Enum
from typing import Optional

from rebel.errors import CapacityError, EvaluationError
from rebel.game.base import Game
from rebel.pipeline.connector import DataConnector
from rebel.resolver.recursive_resolver import RecursiveResolver
from rebel.types import RecursiveSolvingConfig
from rebel.utils.logging import get_logger
from rebel.utils.metrics import MetricsTracker
from rebel.utils.rng import RNG

logger = get_logger("pipeline.thread_loop")


class LoopState(Enum):
    STOPPED = "stopped"
    RUNNING = "running"
    PAUSED = "paused"
    TERMINATED = "terminated"


class LoopControl:
    """Run state shared by all loops of a context.
    
    Stopped -> Running <-> Paused, and any state -> Terminated (absorbing).
    """
    
    def __init__(self, poll_interval: float = 0.1):
        self.poll_interval = poll_interval
        self._state = LoopState.STOPPED
        self._cond = threading.Condition()
    
    @property
    def state(self) -> LoopState:
        with self._cond:
            return self._state
    
    @property
    def is_terminated(self) -> bool:
        return self.state == LoopState.TERMINATED
    
    def start(self):
        self._move({LoopState.STOPPED}, LoopState.RUNNING)
    
    def pause(self):
        self._move({LoopState.RUNNING}, LoopState.PAUSED)
    
    def resume(self):
        self._move({LoopState.PAUSED}, LoopState.RUNNING)
    
    def terminate(self):
        with self._cond:
            self._state = LoopState.TERMINATED
            self._cond.notify_all()
    
    def checkpoint(self) -> bool:
        """Block while paused. Returns False once terminated."""
        with self._cond:
            while self._state == LoopState.PAUSED:
                self._cond.wait(self.poll_interval)
            return self._state != LoopState.TERMINATED
    
    def _move(self, allowed, target: LoopState):
        with self._cond:
            if self._state not in allowed:
                raise RuntimeError(
                    f"Cannot move loops from {self._state.value} to {target.value}"
                )
            self._state = target
            self._cond.notify_all()


class ThreadLoop(ABC):
    """Body of one worker thread."""
    
    def __init__(self, name: str, metrics: Optional[MetricsTracker] = None):
        self.name = name
        self.metrics = metrics
        self.error: Optional[BaseException] = None
    
    @abstractmethod
    def main_loop(self, control: LoopControl):
        """Work until ``control.checkpoint()`` returns False."""
    
    def run(self, control: LoopControl):
        """Thread target: runs ``main_loop`` and records a fatal error if it raises."""
        logger.debug(f"{self.name} started")
        try:
            self.main_loop(control)
        except Exception as e:
            logger.exception(f"{self.name} stopped by fatal error: {e}")
            self.error = e
            if self.metrics is not None:
                self.metrics.record_fatal_failure()
            return
        logger.debug(f"{self.name} exited")


class DataThreadLoop(ThreadLoop):
    """Plays re-solving trajectories and pushes their transitions to the replay buffer."""
    
    def __init__(
        self,
        name: str,
        game: Game,
        config: RecursiveSolvingConfig,
        connector: DataConnector,
        seed: int,
        push_timeout: float = 1.0,
        metrics: Optional[MetricsTracker] = None
    ):
        super().__init__(name, metrics)
        self.game = game
        self.config = config
        self.connector = connector
        self.seed = seed
        self.push_timeout = push_timeout
        self.num_trajectories = 0
    
    def main_loop(self, control: LoopControl):
        resolver = RecursiveResolver(
            self.game,
            self.config,
            self.connector.value_estimator,
            rng=RNG(self.seed),
            metrics=self.metrics,
        )
        while control.checkpoint():
            if not self.run_trajectory(resolver, control):
                break
    
    def run_trajectory(self, resolver: RecursiveResolver, control: LoopControl) -> bool:
        """Play one trajectory. Returns False if the loop was terminated meanwhile.
        
        An evaluation failure abandons the trajectory; transitions pushed
        before the failure are kept.
        """
        trajectory = resolver.run_trajectory()
        try:
            for transition in trajectory:
                if not self._push(transition, control):
                    return False
                if not control.checkpoint():
                    return False
        except EvaluationError as e:
            logger.warning(f"{self.name}: value estimation failed, starting a new trajectory: {e}")
            if self.metrics is not None:
                self.metrics.record_evaluation_failure()
            return True
        finally:
            trajectory.close()
        
        self.num_trajectories += 1
        if self.metrics is not None:
            self.metrics.record_trajectory()
        return True
    
    def _push(self, transition, control: LoopControl) -> bool:
        while True:
            try:
                self.connector.push(transition, timeout=self.push_timeout)
            except CapacityError:
                if control.is_terminated:
                    return False
                logger.debug(f"{self.name}: replay buffer full, retrying push")
                continue
            if self.metrics is not None:
                self.metrics.record_transition()
            return True
