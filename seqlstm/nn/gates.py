"""Column layout of the fused gate block.

The four gates share one (..., 4H) array filled by a single matrix multiply
per timestep. Blocks of width H appear in the order below; forward and
backward both slice through these helpers.
"""
from __future__ import annotations

from typing import Tuple
import numpy as np

GATES: Tuple[str, str, str, str] = ("i", "f", "o", "g")


def gate_slice(name: str, H: int) -> slice:
    try:
        k = GATES.index(name)
    except ValueError:
        raise KeyError(f"unknown gate {name!r}") from None
    return slice(k * H, (k + 1) * H)


def sigmoid_span(H: int) -> slice:
    # i, f and o are adjacent and all sigmoid-activated
    return slice(gate_slice("i", H).start, gate_slice("o", H).stop)


def tanh_span(H: int) -> slice:
    return gate_slice("g", H)


def split_gates(a: np.ndarray, H: int) -> Tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
    """Return (i, f, o, g) views into the last axis of ``a``."""
    if a.shape[-1] != 4 * H:
        raise ValueError(f"gate block must have last dimension {4 * H}, got {a.shape[-1]}")
    i, f, o, g = (a[..., gate_slice(name, H)] for name in GATES)
    return i, f, o, g
