from __future__ import annotations

from typing import List
import numpy as np


class Parameter:
    """A learnable array paired with its gradient accumulator.

    Engines read ``data`` through :meth:`readonly` and only ever add into
    ``grad``; the accumulator is cleared by :meth:`zero_grad`.
    """

    def __init__(self, data: np.ndarray):
        if not isinstance(data, np.ndarray):
            raise TypeError("Parameter data must be a numpy.ndarray")
        if data.dtype not in (np.float32, np.float64):
            raise TypeError("Parameter dtype must be float32 or float64")
        self.data = data
        self.grad = np.zeros_like(data)

    @property
    def shape(self):
        return self.data.shape

    def readonly(self) -> np.ndarray:
        v = self.data.view()
        v.setflags(write=False)
        return v

    def zero_grad(self) -> None:
        self.grad[...] = 0


class Module:
    def parameters(self) -> List[Parameter]:
        ps: List[Parameter] = []
        for v in self.__dict__.values():
            if isinstance(v, Parameter):
                ps.append(v)
            elif isinstance(v, (list, tuple)):
                for x in v:
                    if isinstance(x, Parameter):
                        ps.append(x)
        return ps

    def zero_grad(self) -> None:
        for p in self.parameters():
            p.zero_grad()

    def forward(self, *args, **kwargs):  # type: ignore[no-untyped-def]
        raise NotImplementedError

    def backward(self, *args, **kwargs):  # type: ignore[no-untyped-def]
        raise NotImplementedError

    def __call__(self, *args, **kwargs):  # type: ignore[no-untyped-def]
        return self.forward(*args, **kwargs)
