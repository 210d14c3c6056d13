"""Value network, query features and the model cache.

Main components:
- features.py: Query construction
- cfv_net.py: PyTorch model definition
- model_locker.py: Copy-on-write model cache for concurrent readers
- infer.py: Model-backed value estimator (import from rebel.value_net.infer)
"""

from rebel.value_net.features import (
    get_query_dimension,
    build_query,
    split_query,
    stack_transitions
)
from rebel.value_net.cfv_net import ValueNet, create_value_net
from rebel.value_net.model_locker import ModelLocker, ModelHandle

__all__ = [
    # Features
    'get_query_dimension',
    'build_query',
    'split_query',
    'stack_transitions',
    # Model
    'ValueNet',
    'create_value_net',
    # Cache
    'ModelLocker',
    'ModelHandle',
]
