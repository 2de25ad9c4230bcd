"""Finite-difference helpers for checking hand-written backward passes."""
from __future__ import annotations

from typing import Callable, Dict
import numpy as np

from .nn.lstm import SequenceLSTM


def numeric_gradient(f: Callable[[], np.ndarray], x: np.ndarray, dout: np.ndarray, h: float = 1e-5) -> np.ndarray:
    """Central-difference estimate of d sum(f() * dout) / dx.

    ``x`` is perturbed in place one element at a time and restored afterwards,
    so ``f`` must read it on every call. The result of ``f`` is copied before
    the next call in case it is a reused buffer.
    """
    grad = np.zeros_like(x, dtype=np.float64)
    for idx in np.ndindex(*x.shape):
        orig = x[idx]
        x[idx] = orig + h
        pos = np.array(f(), dtype=np.float64, copy=True)
        x[idx] = orig - h
        neg = np.array(f(), dtype=np.float64, copy=True)
        x[idx] = orig
        grad[idx] = np.sum((pos - neg) * dout) / (2.0 * h)
    return grad


def rel_error(a: np.ndarray, b: np.ndarray) -> float:
    a = np.asarray(a, dtype=np.float64)
    b = np.asarray(b, dtype=np.float64)
    if a.size == 0:
        return 0.0
    return float(np.max(np.abs(a - b) / np.maximum(1e-8, np.abs(a) + np.abs(b))))


def check_sequence_lstm(N: int = 2, T: int = 3, D: int = 4, H: int = 5, seed: int = 0, h: float = 1e-5) -> Dict[str, float]:
    """Compare analytic and numeric gradients of a float64 SequenceLSTM.

    Returns the relative error for each of grad_x, grad_h0, grad_c0, grad_W
    and grad_b.
    """
    rng = np.random.default_rng(seed)
    lstm = SequenceLSTM(D, H, seed=seed, dtype=np.float64)
    lstm.bias.data[...] = rng.standard_normal(lstm.bias.shape) * 0.1
    h0 = rng.standard_normal((N, H))
    c0 = rng.standard_normal((N, H))
    x = rng.standard_normal((N, T, D))
    dout = rng.standard_normal((N, T, H))

    def fwd() -> np.ndarray:
        return lstm.forward(h0, c0, x)

    lstm.zero_grad()
    fwd()
    grad_h0, grad_c0, grad_x = (g.copy() for g in lstm.backward(h0, c0, x, dout))
    grad_W = lstm.weight.grad.copy()
    grad_b = lstm.bias.grad.copy()

    return {
        "grad_x": rel_error(grad_x, numeric_gradient(fwd, x, dout, h)),
        "grad_h0": rel_error(grad_h0, numeric_gradient(fwd, h0, dout, h)),
        "grad_c0": rel_error(grad_c0, numeric_gradient(fwd, c0, dout, h)),
        "grad_W": rel_error(grad_W, numeric_gradient(fwd, lstm.weight.data, dout, h)),
        "grad_b": rel_error(grad_b, numeric_gradient(fwd, lstm.bias.data, dout, h)),
    }
