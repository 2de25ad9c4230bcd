from __future__ import annotations

from typing import List, Tuple
import numpy as np

from ..nn.module import Parameter


def clip_grad_norm(params: List[Parameter], max_norm: float) -> float:
    """Rescale accumulated gradients in place so their global L2 norm is at most ``max_norm``.

    Returns the norm measured before clipping.
    """
    tot = 0.0
    for p in params:
        tot += float(np.sum(p.grad * p.grad))
    norm = float(np.sqrt(max(0.0, tot)))
    if max_norm > 0.0 and norm > max_norm:
        k = max_norm / max(1e-12, norm)
        for p in params:
            p.grad *= k
    return norm


class AdamW:
    """Adam with weight decay applied to the parameters rather than the gradients."""

    def __init__(self, params: List[Parameter], lr: float = 1e-3, betas: Tuple[float, float] = (0.9, 0.999), eps: float = 1e-8, weight_decay: float = 0.0) -> None:
        if lr <= 0:
            raise ValueError("lr must be positive")
        if not (0 < betas[0] < 1 and 0 < betas[1] < 1):
            raise ValueError("betas must be in (0,1)")
        if eps <= 0:
            raise ValueError("eps must be positive")
        if weight_decay < 0:
            raise ValueError("weight_decay must be non-negative")
        self.params = list(params)
        self.lr = float(lr)
        self.b1, self.b2 = float(betas[0]), float(betas[1])
        self.eps = float(eps)
        self.wd = float(weight_decay)
        self.t = 0
        self.m = [np.zeros_like(p.data) for p in self.params]
        self.v = [np.zeros_like(p.data) for p in self.params]

    def step(self) -> None:
        self.t += 1
        b1t = 1.0 - self.b1 ** self.t
        b2t = 1.0 - self.b2 ** self.t
        for p, m, v in zip(self.params, self.m, self.v):
            g = p.grad
            m *= self.b1
            m += (1.0 - self.b1) * g
            v *= self.b2
            v += (1.0 - self.b2) * (g * g)
            if self.wd != 0.0:
                p.data *= 1.0 - self.lr * self.wd
            p.data -= self.lr * (m / b1t) / (np.sqrt(v / b2t) + self.eps)

    def zero_grad(self) -> None:
        for p in self.params:
            p.zero_grad()
