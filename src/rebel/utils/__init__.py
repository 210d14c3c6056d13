"""Utility modules."""

from rebel.utils.logging import get_logger, setup_logger
from rebel.utils.rng import RNG
from rebel.utils.timers import Timer
from rebel.utils.metrics import MetricsTracker

__all__ = ['get_logger', 'setup_logger', 'RNG', 'Timer', 'MetricsTracker']
