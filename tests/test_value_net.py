"""Tests for the value network, the model cache and model-backed estimation."""

import sys
import threading
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / 'src'))

import numpy as np
import pytest
import torch
import torch.nn as nn

from rebel.game.kuhn_poker import KuhnPoker
from rebel.types import ModelConfig, Transition
from rebel.value_net.cfv_net import ValueNet, create_value_net
from rebel.value_net.features import build_query, get_query_dimension, split_query, stack_transitions
from rebel.value_net.infer import ModelValueEstimator
from rebel.value_net.model_locker import ModelLocker


def constant_model(value: float) -> nn.Module:
    model = nn.Sequential(nn.Linear(4, 8), nn.Linear(8, 1))
    with torch.no_grad():
        for param in model.parameters():
            param.fill_(value)
    return model


def param_values(model: nn.Module) -> set:
    return {float(v) for param in model.parameters() for v in param.flatten()}


def test_query_layout():
    """A query holds the state encoding followed by both beliefs."""
    game = KuhnPoker()
    beliefs = np.array([[0.2, 0.3, 0.5], [0.6, 0.4, 0.0]])
    
    query = build_query(game, game.initial_state(), beliefs)
    
    assert query.shape == (get_query_dimension(game),)
    assert query.dtype == np.float32
    state_features, recovered = split_query(game, query)
    np.testing.assert_allclose(state_features, game.encode_state(game.initial_state()))
    np.testing.assert_allclose(recovered, beliefs, rtol=1e-6)


def test_stack_transitions():
    """Transitions stack into query and value batches."""
    transitions = [
        Transition(query=np.zeros(5, dtype=np.float32), values=np.ones((2, 3), dtype=np.float32)),
        Transition(query=np.ones(5, dtype=np.float32), values=np.zeros((2, 3), dtype=np.float32)),
    ]
    
    queries, values = stack_transitions(transitions)
    
    assert queries.shape == (2, 5)
    assert values.shape == (2, 2, 3)


def test_value_net_output_shape():
    """The value net outputs values per player and hand."""
    game = KuhnPoker(deck_size=4)
    net = create_value_net(game, ModelConfig(hidden_dims=(16, 16)))
    
    out = net(torch.zeros(5, get_query_dimension(game)))
    
    assert isinstance(net, ValueNet)
    assert out.shape == (5, 2, 4)


def test_acquire_and_update_versions():
    """Each update publishes a new model version."""
    locker = ModelLocker(constant_model(1.0))
    handle = locker.acquire()
    
    assert handle.version == 0
    assert not handle.model.training
    
    locker.update(constant_model(2.0))
    
    new_handle = locker.acquire()
    assert new_handle.version == 1
    assert param_values(new_handle.model) == {2.0}
    # A handle acquired before the update still sees the old model
    assert handle.version == 0
    assert param_values(handle.model) == {1.0}


def test_update_copies_the_model():
    """Published models are copies, unaffected by later training."""
    source = constant_model(3.0)
    locker = ModelLocker(source)
    
    with torch.no_grad():
        for param in source.parameters():
            param.fill_(4.0)
    
    assert param_values(locker.acquire().model) == {3.0}


def test_update_state_dict():
    """Weights can be published from a state dict."""
    locker = ModelLocker(constant_model(1.0))
    
    locker.update_state_dict(constant_model(5.0).state_dict())
    
    assert locker.version == 1
    assert param_values(locker.acquire().model) == {5.0}


def test_round_robin_slots():
    """Acquire without a slot cycles through model copies."""
    locker = ModelLocker(constant_model(1.0), num_slots=3)
    
    slots = [locker.acquire().slot for _ in range(6)]
    
    assert slots == [0, 1, 2, 0, 1, 2]
    assert locker.acquire(slot=2).slot == 2
    assert locker.acquire(0).model is not locker.acquire(1).model


def test_empty_locker_rejected():
    """A model cache needs at least one model."""
    with pytest.raises(ValueError):
        ModelLocker([])


def test_concurrent_acquire_never_sees_mixed_weights():
    """Readers always see one complete model version."""
    locker = ModelLocker(constant_model(0.0), num_slots=2)
    stop = threading.Event()
    errors = []
    
    def reader():
        while not stop.is_set():
            handle = locker.acquire()
            values = param_values(handle.model)
            if values != {float(handle.version)}:
                errors.append((handle.version, values))
    
    readers = [threading.Thread(target=reader) for _ in range(4)]
    for thread in readers:
        thread.start()
    for version in range(1, 30):
        locker.update(constant_model(float(version)))
    stop.set()
    for thread in readers:
        thread.join()
    
    assert not errors
    assert locker.version == 29


def test_model_value_estimator():
    """The model-backed estimator returns values of the right shape."""
    game = KuhnPoker()
    net = create_value_net(game, ModelConfig(hidden_dims=(8,)))
    estimator = ModelValueEstimator(ModelLocker(net), game)
    
    values = estimator.evaluate(game.initial_beliefs(), game.initial_state())
    
    assert values.shape == (2, 3)
    assert values.dtype == np.float64
    assert np.all(np.isfinite(values))
