from __future__ import annotations

import math
import numpy as np

from ..errors import DimensionMismatch, UnpreparedStateError
from .module import Module, Parameter


def _kaiming_uniform(fan_in: int, fan_out: int, rng: np.random.Generator, dtype) -> np.ndarray:
    bound = math.sqrt(6.0 / fan_in)
    return rng.uniform(low=-bound, high=bound, size=(fan_in, fan_out)).astype(dtype)


class Linear(Module):
    """Affine read-out ``y = x W + b`` over (N, in_features) rows."""

    def __init__(self, in_features: int, out_features: int, seed: int | None = None, dtype=np.float32) -> None:
        super().__init__()
        if in_features <= 0 or out_features <= 0:
            raise ValueError("in_features and out_features must be positive")
        rng = np.random.default_rng(seed)
        self.dtype = np.dtype(dtype)
        self.W = Parameter(_kaiming_uniform(in_features, out_features, rng, self.dtype))
        self.b = Parameter(np.zeros((out_features,), dtype=self.dtype))
        self._cache_x: np.ndarray | None = None

    def forward(self, x: np.ndarray) -> np.ndarray:
        x = np.asarray(x, dtype=self.dtype)
        if x.ndim != 2 or x.shape[1] != self.W.shape[0]:
            raise DimensionMismatch("x", ("N", self.W.shape[0]), x.shape)
        self._cache_x = x
        return x @ self.W.readonly() + self.b.readonly()

    def backward(self, dy: np.ndarray, scale: float = 1.0) -> np.ndarray:
        if self._cache_x is None:
            raise UnpreparedStateError("Linear backward called before forward")
        x = self._cache_x
        dy = np.asarray(dy, dtype=self.dtype)
        if dy.shape != (x.shape[0], self.W.shape[1]):
            raise DimensionMismatch("dy", (x.shape[0], self.W.shape[1]), dy.shape)
        self.W.grad += scale * (x.T @ dy)
        self.b.grad += scale * dy.sum(axis=0)
        return dy @ self.W.readonly().T
