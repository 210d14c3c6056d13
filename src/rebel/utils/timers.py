"""Timing utilities."""

import time
from typing import Optional
from contextlib import contextmanager


class Timer:
    """Simple timer for measuring execution time."""
    
    def __init__(self, name: str = ""):
        self.name = name
        self.start_time: Optional[float] = time.perf_counter()
        self.elapsed: float = 0.0
    
    def start(self):
        """Start the timer."""
        self.start_time = time.perf_counter()
    
    def stop(self) -> float:
        """Stop the timer and return elapsed time."""
        if self.start_time is None:
            return 0.0
        self.elapsed = time.perf_counter() - self.start_time
        self.start_time = None
        return self.elapsed
    
    def tick(self) -> float:
        """Seconds since the timer was (re)started, without stopping it."""
        if self.start_time is None:
            return self.elapsed
        return time.perf_counter() - self.start_time
    
    def reset(self):
        """Reset the timer."""
        self.start_time = None
        self.elapsed = 0.0
    
    @contextmanager
    def measure(self):
        """Context manager for timing a block of code."""
        self.start()
        try:
            yield self
        finally:
            self.stop()
