"""Thread-safe prioritized replay buffer.

Entries are kept in insertion order keyed by a global sequence number.
Sampling draws with probability proportional to ``priority ** alpha`` (with
replacement) and returns importance weights ``(1 / (N * P(i))) ** beta``.

Eviction on a full buffer removes the oldest entry that has been sampled at
least ``min_samples_before_eviction`` times. With the default of 0 this is
plain FIFO. Priority updates never change which entries may be evicted.
"""

import threading
import time
from collections import OrderedDict
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import List, Optional, Sequence, Tuple, Union

import numpy as np
import zstandard as zstd

from rebel.errors import CapacityError, EmptyBuffer
from rebel.types import ReplayConfig, ReplayEntry, Transition
from rebel.utils.logging import get_logger
from rebel.utils.rng import RNG
from rebel.utils.serialization import load_pickle, save_pickle

logger = get_logger("replay.prioritized_replay")

FORMAT_VERSION = 1


@dataclass
class _Record:
    query: np.ndarray
    values: Union[np.ndarray, bytes]
    values_shape: Tuple[int, ...]
    priority: float
    sample_count: int = 0


class PrioritizedReplay:
    """Bounded store of training transitions shared by producers and a consumer.
    
    Every public method holds one internal lock for its whole critical
    section, so a push is either fully visible or not visible at all, and
    ``size()``/``num_add()`` are always mutually consistent.
    """
    
    def __init__(self, config: Optional[ReplayConfig] = None):
        self.config = config or ReplayConfig()
        self.capacity = self.config.capacity
        
        self._lock = threading.Lock()
        self._not_full = threading.Condition(self._lock)
        self._records: "OrderedDict[int, _Record]" = OrderedDict()
        self._num_add = 0
        self._rng = RNG(self.config.seed)
        
        if self.config.compressed_values:
            self._compressor = zstd.ZstdCompressor(level=3)
            self._decompressor = zstd.ZstdDecompressor()
    
    def size(self) -> int:
        with self._lock:
            return len(self._records)
    
    def __len__(self) -> int:
        return self.size()
    
    def num_add(self) -> int:
        """Total number of pushes ever accepted; unaffected by eviction."""
        with self._lock:
            return self._num_add
    
    def push(
        self,
        transition: Transition,
        priority: float = 1.0,
        block: bool = True,
        timeout: Optional[float] = None
    ) -> int:
        """Insert a transition, evicting the oldest eligible entry when full.
        
        Args:
            transition: Transition to store
            priority: Non-negative sampling priority
            block: Wait for an entry to become evictable when none is
            timeout: Maximum seconds to wait (None waits indefinitely)
        
        Returns:
            Sequence number assigned to the entry
        
        Raises:
            CapacityError: If no space could be made
            ValueError: If priority is negative or not finite
        """
        priority = self._check_priority(priority)
        deadline = None if timeout is None else time.monotonic() + timeout
        
        with self._not_full:
            while len(self._records) >= self.capacity and not self._evict_one():
                if not block:
                    raise CapacityError(
                        f"Replay buffer full ({self.capacity}) and no entry is evictable"
                    )
                remaining = None if deadline is None else deadline - time.monotonic()
                if remaining is not None and remaining <= 0:
                    raise CapacityError(
                        f"Timed out after {timeout}s waiting for an evictable entry"
                    )
                self._not_full.wait(remaining)
            
            seq = self._num_add
            self._records[seq] = self._encode(transition, priority)
            self._num_add += 1
        return seq
    
    def sample(self, batch_size: int) -> Tuple[List[ReplayEntry], np.ndarray]:
        """Draw ``batch_size`` entries with replacement.
        
        Returns:
            Tuple of (entries, importance weights of shape (batch_size,))
        
        Raises:
            EmptyBuffer: If fewer than ``batch_size`` entries are stored
        """
        with self._not_full:
            size = len(self._records)
            if batch_size < 1 or size < batch_size:
                raise EmptyBuffer(size, batch_size)
            
            seqs = np.fromiter(self._records.keys(), dtype=np.int64, count=size)
            probs = self._sampling_probs(size)
            indices = self._rng.choice(size, size=batch_size, replace=True, p=probs)
            weights = (1.0 / (size * probs[indices])) ** self.config.beta
            
            entries = []
            for i in indices:
                seq = int(seqs[i])
                record = self._records[seq]
                record.sample_count += 1
                entries.append(ReplayEntry(self._decode(record), record.priority, seq))
            
            if self.config.min_samples_before_eviction > 0:
                self._not_full.notify_all()
        return entries, weights.astype(np.float32)
    
    def update_priority(self, seqs: Sequence[int], priorities: Sequence[float]) -> int:
        """Set new priorities for entries identified by sequence number.
        
        Entries that were evicted in the meantime are skipped.
        
        Returns:
            Number of entries updated
        """
        if len(seqs) != len(priorities):
            raise ValueError(
                f"Got {len(seqs)} sequence numbers but {len(priorities)} priorities"
            )
        checked = [self._check_priority(p) for p in priorities]
        applied = 0
        with self._lock:
            for seq, priority in zip(seqs, checked):
                record = self._records.get(int(seq))
                if record is not None:
                    record.priority = priority
                    applied += 1
        return applied
    
    def pop_until(self, seq: int) -> int:
        """Remove every entry with sequence number below ``seq``.
        
        Returns:
            Number of entries removed
        """
        removed = 0
        with self._not_full:
            while self._records:
                oldest = next(iter(self._records))
                if oldest >= seq:
                    break
                del self._records[oldest]
                removed += 1
            if removed:
                self._not_full.notify_all()
        return removed
    
    def get_all(self) -> List[ReplayEntry]:
        """Snapshot of all stored entries in insertion order."""
        with self._lock:
            return [
                ReplayEntry(self._decode(record), record.priority, seq)
                for seq, record in self._records.items()
            ]
    
    def save(self, path: Path):
        """Write all entries and counters to ``path`` atomically."""
        with self._lock:
            state = {
                'version': FORMAT_VERSION,
                'config': asdict(self.config),
                'num_add': self._num_add,
                'rng_state': self._rng.get_state(),
                'entries': [
                    (seq, self._decode(record), record.priority, record.sample_count)
                    for seq, record in self._records.items()
                ],
            }
        save_pickle(state, path)
        logger.info(f"Saved replay buffer ({len(state['entries'])} entries) to {path}")
    
    def load(self, path: Path):
        """Replace the buffer contents with those saved at ``path``.
        
        Raises:
            ValueError: If the file format is unknown or holds more entries
                than this buffer's capacity
        """
        state = load_pickle(path)
        if state.get('version') != FORMAT_VERSION:
            raise ValueError(f"Unsupported replay buffer format: {state.get('version')}")
        if len(state['entries']) > self.capacity:
            raise ValueError(
                f"Saved buffer holds {len(state['entries'])} entries, capacity is {self.capacity}"
            )
        
        records: "OrderedDict[int, _Record]" = OrderedDict()
        for seq, transition, priority, sample_count in state['entries']:
            record = self._encode(transition, priority)
            record.sample_count = sample_count
            records[seq] = record
        
        with self._not_full:
            self._records = records
            self._num_add = state['num_add']
            self._rng.set_state(state['rng_state'])
            self._not_full.notify_all()
        logger.info(f"Loaded replay buffer ({len(records)} entries) from {path}")
    
    def _sampling_probs(self, size: int) -> np.ndarray:
        if self.config.use_priority:
            priorities = np.fromiter(
                (record.priority for record in self._records.values()),
                dtype=np.float64, count=size
            )
            weights = priorities ** self.config.alpha
            total = weights.sum()
            if total > 0:
                return weights / total
        return np.full(size, 1.0 / size)
    
    def _evict_one(self) -> bool:
        min_samples = self.config.min_samples_before_eviction
        for seq, record in self._records.items():
            if record.sample_count >= min_samples:
                del self._records[seq]
                return True
        return False
    
    def _encode(self, transition: Transition, priority: float) -> _Record:
        # Stored arrays are private read-only copies; producers may reuse their buffers.
        query = np.array(transition.query, copy=True)
        query.setflags(write=False)
        values = np.array(transition.values, dtype=np.float32, copy=True)
        if self.config.compressed_values:
            payload = self._compressor.compress(values.astype(np.float16).tobytes())
            return _Record(query, payload, values.shape, priority)
        values.setflags(write=False)
        return _Record(query, values, values.shape, priority)
    
    def _decode(self, record: _Record) -> Transition:
        if self.config.compressed_values:
            raw = self._decompressor.decompress(record.values)
            values = np.frombuffer(raw, dtype=np.float16).reshape(record.values_shape)
            return Transition(query=record.query, values=values.astype(np.float32))
        return Transition(query=record.query, values=record.values)
    
    @staticmethod
    def _check_priority(priority: float) -> float:
        priority = float(priority)
        if not np.isfinite(priority) or priority < 0:
            raise ValueError(f"priority must be finite and non-negative, got {priority}")
        return priority
