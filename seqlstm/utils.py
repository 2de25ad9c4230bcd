from __future__ import annotations

from typing import Sequence
import numpy as np

from .errors import DimensionMismatch


def check_dims(x: np.ndarray, dims: Sequence[int], name: str = "tensor") -> None:
    if tuple(x.shape) != tuple(dims):
        raise DimensionMismatch(name, dims, x.shape)
