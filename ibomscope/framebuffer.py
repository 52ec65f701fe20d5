"""Bounded frame queue between a camera producer and its consumers."""

from __future__ import annotations

import threading
from collections import deque
from typing import Any, Optional

import numpy as np


class FrameBuffer:
    """Fixed-size ring of frames.

    The producer never blocks: when the buffer is full the oldest frame is
    dropped. Consumers pop frames in arrival order.
    """

    def __init__(self, capacity: int = 3) -> None:
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self._capacity = capacity
        self._frames: deque[np.ndarray] = deque(maxlen=capacity)
        self._cond = threading.Condition()
        self._total = 0
        self._dropped = 0

    @property
    def capacity(self) -> int:
        return self._capacity

    def push(self, frame: Any) -> None:
        """Store a copy of ``frame``, overwriting the oldest one if full."""
        stored = np.array(frame, copy=True)
        with self._cond:
            if len(self._frames) == self._capacity:
                self._dropped += 1
            self._frames.append(stored)
            self._total += 1
            self._cond.notify()

    def pop(self, timeout_ms: int = 0) -> Optional[np.ndarray]:
        """Remove and return the oldest frame, waiting for one to arrive.

        ``timeout_ms`` of 0 waits forever; on timeout ``None`` is returned.
        """
        if timeout_ms < 0:
            raise ValueError("timeout_ms must not be negative")
        timeout = None if timeout_ms == 0 else timeout_ms / 1000.0
        with self._cond:
            if not self._cond.wait_for(lambda: len(self._frames) > 0, timeout):
                return None
            return self._frames.popleft()

    def try_pop(self) -> Optional[np.ndarray]:
        """Remove and return the oldest frame, or ``None`` if there is none."""
        with self._cond:
            if not self._frames:
                return None
            return self._frames.popleft()

    def __len__(self) -> int:
        with self._cond:
            return len(self._frames)

    def empty(self) -> bool:
        with self._cond:
            return not self._frames

    def clear(self) -> None:
        """Discard all buffered frames; the counters are kept."""
        with self._cond:
            self._frames.clear()

    def total_frames(self) -> int:
        """Frames pushed since creation."""
        return self._total

    def dropped_frames(self) -> int:
        """Frames overwritten before they were consumed."""
        return self._dropped