"""Pipeline controller owning a fixed pool of worker threads."""

import threading
from typing import Callable, List, Optional

from rebel.config import Config
from rebel.game.base import Game
from rebel.pipeline.connector import DataConnector
from rebel.pipeline.thread_loop import DataThreadLoop, LoopControl, LoopState, ThreadLoop
from rebel.types import PipelineConfig
from rebel.utils.logging import get_logger
from rebel.utils.metrics import MetricsTracker

logger = get_logger("pipeline.context")


class Context:
    """Starts, pauses, resumes and terminates a set of worker loops.
    
    Loops share nothing but the replay buffer and model cache reachable from
    their connectors; this object only coordinates their lifecycle.
    """
    
    def __init__(
        self,
        config: Optional[PipelineConfig] = None,
        metrics: Optional[MetricsTracker] = None
    ):
        self.config = config or PipelineConfig()
        self.metrics = metrics or MetricsTracker()
        self.control = LoopControl(self.config.pause_poll_interval)
        self._loops: List[ThreadLoop] = []
        self._threads: List[threading.Thread] = []
    
    @property
    def state(self) -> LoopState:
        return self.control.state
    
    @property
    def loops(self) -> List[ThreadLoop]:
        return list(self._loops)
    
    def push_loop(self, loop: ThreadLoop) -> int:
        """Register a loop before ``start``. Returns its index."""
        if self.control.state != LoopState.STOPPED:
            raise RuntimeError("Loops can only be added before the context starts")
        self._loops.append(loop)
        return len(self._loops) - 1
    
    def start(self):
        """Launch one thread per registered loop."""
        self.control.start()
        for loop in self._loops:
            thread = threading.Thread(
                target=loop.run, args=(self.control,), name=loop.name, daemon=True
            )
            self._threads.append(thread)
            thread.start()
        logger.info(f"Started {len(self._threads)} worker loop(s)")
    
    def pause(self):
        """Ask loops to block at their next checkpoint."""
        self.control.pause()
        logger.info("Pausing worker loops")
    
    def resume(self):
        self.control.resume()
        logger.info("Resuming worker loops")
    
    def terminate(self, timeout: Optional[float] = None):
        """Stop every loop at its next checkpoint and join the threads."""
        self.control.terminate()
        for thread in self._threads:
            thread.join(timeout)
        still_running = self.num_running()
        if still_running:
            logger.warning(f"{still_running} worker loop(s) did not exit within {timeout}s")
        else:
            logger.info("All worker loops terminated")
    
    def is_terminated(self) -> bool:
        return self.control.is_terminated and self.num_running() == 0
    
    def num_running(self) -> int:
        return sum(1 for thread in self._threads if thread.is_alive())
    
    def fatal_errors(self) -> List[BaseException]:
        return [loop.error for loop in self._loops if loop.error is not None]
    
    def check_health(self):
        """Re-raise the first fatal error recorded by any loop."""
        errors = self.fatal_errors()
        if errors:
            raise errors[0]
    
    def __enter__(self) -> "Context":
        self.start()
        return self
    
    def __exit__(self, exc_type, exc_val, exc_tb):
        if not self.control.is_terminated:
            self.terminate()


def create_data_context(
    config: Config,
    game: Game,
    make_connector: Callable[[int], DataConnector],
    metrics: Optional[MetricsTracker] = None
) -> Context:
    """Build a context with ``config.pipeline.num_threads`` data loops.
    
    Args:
        config: Full configuration
        game: Game description shared by all loops
        make_connector: Returns the connector for the worker with the given index
        metrics: Tracker shared by the loops (a new one if omitted)
    """
    context = Context(config.pipeline, metrics)
    for i in range(config.pipeline.num_threads):
        context.push_loop(DataThreadLoop(
            name=f"data-loop-{i}",
            game=game,
            config=config.solving,
            connector=make_connector(i),
            seed=config.solving.seed + i,
            push_timeout=config.pipeline.push_timeout,
            metrics=context.metrics,
        ))
    return context
