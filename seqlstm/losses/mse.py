from __future__ import annotations

import numpy as np

from ..errors import DimensionMismatch, UnpreparedStateError


class MSELoss:
    def __init__(self) -> None:
        self._diff: np.ndarray | None = None

    def forward(self, y: np.ndarray, t: np.ndarray) -> float:
        y = np.asarray(y)
        t = np.asarray(t, dtype=y.dtype)
        if y.shape != t.shape:
            raise DimensionMismatch("target", y.shape, t.shape)
        self._diff = y - t
        return float(np.mean(self._diff * self._diff))

    def backward(self) -> np.ndarray:
        if self._diff is None:
            raise UnpreparedStateError("MSE backward called before forward")
        n = self._diff.size
        return (2.0 / float(n)) * self._diff

    __call__ = forward
