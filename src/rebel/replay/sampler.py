"""Background sampling from the replay buffer."""

import queue
import threading
from typing import List, Optional, Tuple

import numpy as np

from rebel.errors import EmptyBuffer
from rebel.replay.prioritized_replay import PrioritizedReplay
from rebel.types import ReplayEntry
from rebel.utils.logging import get_logger

logger = get_logger("replay.sampler")

Batch = Tuple[List[ReplayEntry], np.ndarray]


class PrefetchingSampler:
    """Keeps up to ``prefetch`` sampled batches ready on a daemon thread."""
    
    def __init__(
        self,
        replay: PrioritizedReplay,
        batch_size: int,
        prefetch: Optional[int] = None,
        poll_interval: float = 0.05
    ):
        self.replay = replay
        self.batch_size = batch_size
        self.poll_interval = poll_interval
        if prefetch is None:
            prefetch = replay.config.prefetch
        self._queue: "queue.Queue[Batch]" = queue.Queue(maxsize=max(1, prefetch))
        self._stop_event = threading.Event()
        self._error: Optional[BaseException] = None
        self._thread = threading.Thread(
            target=self._run, name="replay-prefetch", daemon=True
        )
    
    def start(self) -> "PrefetchingSampler":
        self._thread.start()
        return self
    
    def stop(self, timeout: Optional[float] = None):
        self._stop_event.set()
        if self._thread.is_alive():
            self._thread.join(timeout)
    
    def is_alive(self) -> bool:
        return self._thread.is_alive()
    
    def get(self, timeout: Optional[float] = None) -> Batch:
        """Next prefetched batch.
        
        Raises:
            queue.Empty: If no batch arrived within ``timeout``
        """
        if self._error is not None:
            raise self._error
        return self._queue.get(timeout=timeout)
    
    def _run(self):
        while not self._stop_event.is_set():
            try:
                batch = self.replay.sample(self.batch_size)
            except EmptyBuffer:
                self._stop_event.wait(self.poll_interval)
                continue
            except Exception as e:
                logger.exception("Prefetching sampler failed")
                self._error = e
                return
            
            while not self._stop_event.is_set():
                try:
                    self._queue.put(batch, timeout=self.poll_interval)
                    break
                except queue.Full:
                    continue
    
    def __enter__(self) -> "PrefetchingSampler":
        return self.start()
    
    def __exit__(self, exc_type, exc_val, exc_tb):
        self.stop()
