"""Self-play data pipeline."""

from rebel.pipeline.connector import DataConnector
from rebel.pipeline.thread_loop import LoopState, LoopControl, ThreadLoop, DataThreadLoop
from rebel.pipeline.context import Context, create_data_context

__all__ = [
    'DataConnector',
    'LoopState',
    'LoopControl',
    'ThreadLoop',
    'DataThreadLoop',
    'Context',
    'create_data_context',
]
