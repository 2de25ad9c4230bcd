from __future__ import annotations

import logging
from typing import Dict, Iterator, Optional, Tuple
import numpy as np

logger = logging.getLogger(__name__)


class BufferArena:
    """Named arrays owned by one layer, reallocated only when their shape changes.

    A request for a shape the arena already holds returns the same array, so
    repeated calls with a fixed batch and sequence size allocate nothing.
    Contents are whatever the previous user left behind unless ``zero=True``.
    """

    def __init__(self, dtype=np.float32) -> None:
        self.dtype = np.dtype(dtype)
        self._buffers: Dict[str, np.ndarray] = {}

    def get(self, name: str, shape: Tuple[int, ...], zero: bool = False) -> np.ndarray:
        shape = tuple(int(s) for s in shape)
        buf = self._buffers.get(name)
        if buf is None or buf.shape != shape:
            logger.debug("allocating buffer %s with shape %s (was %s)", name, shape, None if buf is None else buf.shape)
            buf = np.zeros(shape, dtype=self.dtype)
            self._buffers[name] = buf
        elif zero:
            buf.fill(0)
        return buf

    def peek(self, name: str) -> Optional[np.ndarray]:
        return self._buffers.get(name)

    def clear(self) -> None:
        if self._buffers:
            logger.debug("releasing %d buffers", len(self._buffers))
        self._buffers.clear()

    @property
    def size(self) -> int:
        return sum(int(b.size) for b in self._buffers.values())

    @property
    def nbytes(self) -> int:
        return sum(int(b.nbytes) for b in self._buffers.values())

    def __contains__(self, name: str) -> bool:
        return name in self._buffers

    def __iter__(self) -> Iterator[str]:
        return iter(self._buffers)

    def __len__(self) -> int:
        return len(self._buffers)
