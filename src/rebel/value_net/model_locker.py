"""Copy-on-write cache of value models shared by worker threads.

Readers call ``acquire`` and keep the returned handle for one query; they
never take a lock. Writers build fully prepared copies of the new model and
publish them by replacing the handle tuple in a single assignment, so a
reader sees either the old or the new model, never a mix.
"""

import copy
import itertools
import threading
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Union

import torch
import torch.nn as nn

from rebel.utils.logging import get_logger

logger = get_logger("value_net.model_locker")


@dataclass(frozen=True)
class ModelHandle:
    """Immutable reference to one prepared model instance."""
    model: nn.Module
    version: int
    slot: int
    device: str


class ModelLocker:
    """Holds one model copy per inference slot on a compute device."""
    
    def __init__(
        self,
        models: Union[nn.Module, Sequence[nn.Module]],
        device: str = "cpu",
        num_slots: Optional[int] = None
    ):
        """Initialize model locker.
        
        Args:
            models: One model per slot, or a single model to replicate
            device: Torch device string all slots live on
            num_slots: Number of slots when a single model is given
        """
        if isinstance(models, nn.Module):
            models = [models] * (num_slots or 1)
        if not models:
            raise ValueError("ModelLocker needs at least one model")
        
        self.device = device
        self.num_slots = len(models)
        self._update_lock = threading.Lock()
        self._round_robin = itertools.count()
        self._handles = tuple(
            ModelHandle(self._prepare(model), 0, slot, device)
            for slot, model in enumerate(models)
        )
    
    @property
    def version(self) -> int:
        return self._handles[0].version
    
    def acquire(self, slot: Optional[int] = None) -> ModelHandle:
        """Borrow the current handle for ``slot`` (round-robin when None).
        
        The handle stays valid after later updates; it simply refers to the
        model that was current when it was acquired.
        """
        handles = self._handles
        if slot is None:
            slot = next(self._round_robin) % len(handles)
        return handles[slot]
    
    def update(self, new_model: nn.Module):
        """Publish a new model to every slot."""
        with self._update_lock:
            prepared = [self._prepare(new_model) for _ in range(self.num_slots)]
            self._publish(prepared)
    
    def update_state_dict(self, state_dict: Dict[str, torch.Tensor]):
        """Publish new weights using the current model architecture."""
        with self._update_lock:
            prepared: List[nn.Module] = []
            for handle in self._handles:
                model = copy.deepcopy(handle.model)
                model.load_state_dict(state_dict)
                prepared.append(model)
            self._publish(prepared)
    
    def _prepare(self, model: nn.Module) -> nn.Module:
        model = copy.deepcopy(model).to(self.device)
        model.eval()
        for param in model.parameters():
            param.requires_grad_(False)
        return model
    
    def _publish(self, models: List[nn.Module]):
        version = self._handles[0].version + 1
        self._handles = tuple(
            ModelHandle(model, version, slot, self.device)
            for slot, model in enumerate(models)
        )
        logger.debug(f"Published model version {version} to {self.num_slots} slot(s)")
