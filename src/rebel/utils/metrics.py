"""Metrics tracking for the self-play data pipeline.

Tracks:
- resolve/solve_time_ms, resolve/iterations
- pipeline/trajectories, pipeline/transitions
- pipeline/evaluation_failures, pipeline/fatal_failures
"""

import threading
from dataclasses import dataclass, field
from typing import Dict, List
import numpy as np
from rebel.utils.logging import get_logger

logger = get_logger("metrics")


@dataclass
class MetricsTracker:
    """Metrics shared by all worker loops of one pipeline.
    
    Every recording method takes the internal lock, so workers may record
    concurrently. Solve times are kept in a bounded window.
    """
    
    window: int = 10000
    
    solve_times_ms: List[float] = field(default_factory=list)
    iterations: List[int] = field(default_factory=list)
    num_resolves: int = 0
    num_trajectories: int = 0
    num_transitions: int = 0
    num_evaluation_failures: int = 0
    num_fatal_failures: int = 0
    
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)
    
    def record_resolve(self, solve_time_ms: float, iterations: int):
        """Record one finished subgame resolve.
        
        Args:
            solve_time_ms: Wall time of the resolve (milliseconds)
            iterations: Number of CFR iterations completed
        """
        with self._lock:
            self.solve_times_ms.append(solve_time_ms)
            self.iterations.append(iterations)
            if len(self.solve_times_ms) > self.window:
                del self.solve_times_ms[0]
                del self.iterations[0]
            self.num_resolves += 1
    
    def record_transition(self):
        with self._lock:
            self.num_transitions += 1
    
    def record_trajectory(self):
        with self._lock:
            self.num_trajectories += 1
    
    def record_evaluation_failure(self):
        with self._lock:
            self.num_evaluation_failures += 1
    
    def record_fatal_failure(self):
        with self._lock:
            self.num_fatal_failures += 1
    
    def get_metrics(self) -> Dict[str, float]:
        """Get all metrics as a dictionary.
        
        Returns:
            Dictionary of metric_name -> value
        """
        with self._lock:
            times = list(self.solve_times_ms)
            iters = list(self.iterations)
            metrics = {
                'pipeline/resolves': float(self.num_resolves),
                'pipeline/trajectories': float(self.num_trajectories),
                'pipeline/transitions': float(self.num_transitions),
                'pipeline/evaluation_failures': float(self.num_evaluation_failures),
                'pipeline/fatal_failures': float(self.num_fatal_failures),
            }
        
        if times:
            metrics['resolve/solve_time_ms'] = float(np.mean(times))
            metrics['resolve/solve_time_p50'] = float(np.percentile(times, 50))
            metrics['resolve/solve_time_p90'] = float(np.percentile(times, 90))
            metrics['resolve/solve_time_p99'] = float(np.percentile(times, 99))
        
        if iters:
            metrics['resolve/iterations'] = float(np.mean(iters))
        
        return metrics
    
    def log_summary(self):
        """Log a summary of all metrics."""
        metrics = self.get_metrics()
        
        logger.info("=" * 60)
        logger.info("PIPELINE METRICS")
        logger.info("=" * 60)
        for key, value in sorted(metrics.items()):
            logger.info(f"  {key}: {value:.4f}")
        logger.info("=" * 60)
    
    def reset(self):
        """Reset all metrics."""
        with self._lock:
            self.solve_times_ms.clear()
            self.iterations.clear()
            self.num_resolves = 0
            self.num_trajectories = 0
            self.num_transitions = 0
            self.num_evaluation_failures = 0
            self.num_fatal_failures = 0
