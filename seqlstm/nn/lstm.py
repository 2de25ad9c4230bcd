from __future__ import annotations

from typing import Dict, Tuple
import numpy as np

from ..errors import DimensionMismatch, UnpreparedStateError
from ..utils import check_dims
from .buffers import BufferArena
from .gates import sigmoid_span, split_gates, tanh_span
from .module import Module, Parameter


def _sigmoid(x: np.ndarray, out: np.ndarray | None = None) -> np.ndarray:
    y = np.empty_like(x) if out is None else out
    m = x >= 0
    y[m] = 1.0 / (1.0 + np.exp(-x[m]))
    e = np.exp(x[~m])
    y[~m] = e / (1.0 + e)
    return y


class SequenceLSTM(Module):
    """LSTM over a whole (N, T, D) sequence with hand-written backpropagation.

    ``weight`` is (D + H, 4H): rows ``[0, D)`` map the input and rows
    ``[D, D + H)`` map the previous hidden state onto the fused gate block
    (i, f, o, g). ``bias`` is (4H,).

    forward(h0, c0, x) caches post-activation gates (N, T, 4H) and cell
    states (N, T, H) and returns the hidden states (N, T, H).
    backward(h0, c0, x, grad_h, scale) walks the sequence in reverse, adds
    ``scale``-weighted contributions into ``weight.grad`` and ``bias.grad`` and
    returns (grad_h0, grad_c0, grad_x).

    Outputs and input gradients live in buffers owned by the layer: they are
    overwritten by the next call and must be copied if they need to outlive it.
    """

    def __init__(self, input_dim: int, hidden_dim: int, std: float | None = None, seed: int | None = None, dtype=np.float32) -> None:
        super().__init__()
        if input_dim <= 0 or hidden_dim <= 0:
            raise ValueError("input_dim and hidden_dim must be positive")
        dtype = np.dtype(dtype)
        if dtype not in (np.float32, np.float64):
            raise ValueError("dtype must be float32 or float64")
        D, H = int(input_dim), int(hidden_dim)
        self.input_dim = D
        self.hidden_dim = H
        self.dtype = dtype
        self.rng = np.random.default_rng(seed)
        self.weight = Parameter(np.zeros((D + H, 4 * H), dtype=dtype))
        self.bias = Parameter(np.zeros((4 * H,), dtype=dtype))
        self._arena = BufferArena(dtype)
        # (N, T) of the forward whose caches are live; None until then
        self._sizes: Tuple[int, int] | None = None
        self.reset_parameters(std)

    def reset_parameters(self, std: float | None = None) -> "SequenceLSTM":
        if std is None:
            std = 1.0 / np.sqrt(self.hidden_dim + self.input_dim)
        if std < 0:
            raise ValueError("std must be non-negative")
        self.weight.data[...] = self.rng.normal(0.0, std, size=self.weight.shape)
        self.bias.data[...] = 0
        return self

    def init_state(self, batch_size: int) -> Tuple[np.ndarray, np.ndarray]:
        if batch_size <= 0:
            raise ValueError("batch_size must be positive")
        h = np.zeros((batch_size, self.hidden_dim), dtype=self.dtype)
        c = np.zeros((batch_size, self.hidden_dim), dtype=self.dtype)
        return h, c

    @property
    def prepared(self) -> bool:
        return self._sizes is not None

    def clear_state(self) -> None:
        self._arena.clear()
        self._sizes = None

    def memory_footprint(self, batch_size: int, seq_len: int) -> int:
        """Scalars held after a forward and backward with this batch and sequence size.

        Counts parameters, their gradients, caches, saved initial state, input
        gradients and scratch: NTD + 6NTH + 10NH + 12H^2 + 12DH + 12H.
        """
        N, T, D, H = int(batch_size), int(seq_len), self.input_dim, self.hidden_dim
        return N * T * D + 6 * N * T * H + 10 * N * H + 12 * H * H + 12 * D * H + 12 * H

    def state_dict(self) -> Dict[str, np.ndarray]:
        return {"weight": self.weight.data.copy(), "bias": self.bias.data.copy()}

    def load_state_dict(self, state: Dict[str, np.ndarray]) -> None:
        w = np.asarray(state["weight"])
        b = np.asarray(state["bias"])
        check_dims(w, self.weight.shape, "weight")
        check_dims(b, self.bias.shape, "bias")
        np.copyto(self.weight.data, w, casting="same_kind")
        np.copyto(self.bias.data, b, casting="same_kind")

    def _get_sizes(self, h0: np.ndarray, c0: np.ndarray, x: np.ndarray) -> Tuple[int, int, int, int]:
        D, H = self.input_dim, self.hidden_dim
        if x.ndim != 3:
            raise DimensionMismatch("x", ("N", "T", D), x.shape)
        N, T = x.shape[0], x.shape[1]
        check_dims(x, (N, T, D), "x")
        check_dims(h0, (N, H), "h0")
        check_dims(c0, (N, H), "c0")
        return N, T, D, H

    def _weight_blocks(self, D: int) -> Tuple[np.ndarray, np.ndarray]:
        w = self.weight.readonly()
        return w[:D], w[D:]

    def forward(self, h0: np.ndarray, c0: np.ndarray, x: np.ndarray) -> np.ndarray:
        h0 = np.asarray(h0, dtype=self.dtype)
        c0 = np.asarray(c0, dtype=self.dtype)
        x = np.asarray(x, dtype=self.dtype)
        N, T, D, H = self._get_sizes(h0, c0, x)

        Wx, Wh = self._weight_blocks(D)
        b = self.bias.readonly()
        h = self._arena.get("output", (N, T, H))
        c = self._arena.get("cell", (N, T, H))
        gates = self._arena.get("gates", (N, T, 4 * H))
        recur = self._arena.get("grad_a", (N, 4 * H))
        sig, tnh = sigmoid_span(H), tanh_span(H)
        # h0 and c0 may be views into the output or cell cache from a previous call
        prev_h = self._arena.get("h0", (N, H))
        prev_c = self._arena.get("c0", (N, H))
        np.copyto(prev_h, h0)
        np.copyto(prev_c, c0)

        for t in range(T):
            cur_gates = gates[:, t]
            np.matmul(x[:, t], Wx, out=cur_gates)
            np.matmul(prev_h, Wh, out=recur)
            cur_gates += recur
            cur_gates += b
            _sigmoid(cur_gates[:, sig], out=cur_gates[:, sig])
            np.tanh(cur_gates[:, tnh], out=cur_gates[:, tnh])
            i, f, o, g = split_gates(cur_gates, H)
            next_h, next_c = h[:, t], c[:, t]
            np.multiply(i, g, out=next_h)
            np.multiply(f, prev_c, out=next_c)
            next_c += next_h
            np.tanh(next_c, out=next_h)
            next_h *= o
            prev_h, prev_c = next_h, next_c

        self._sizes = (N, T)
        return h

    def backward(self, h0: np.ndarray, c0: np.ndarray, x: np.ndarray, grad_h: np.ndarray, scale: float = 1.0) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        if self._sizes is None:
            raise UnpreparedStateError("SequenceLSTM backward called before forward")
        h0 = np.asarray(h0, dtype=self.dtype)
        c0 = np.asarray(c0, dtype=self.dtype)
        x = np.asarray(x, dtype=self.dtype)
        grad_h = np.asarray(grad_h, dtype=self.dtype)
        N, T, D, H = self._get_sizes(h0, c0, x)
        check_dims(grad_h, (N, T, H), "grad_h")
        if (N, T) != self._sizes:
            raise DimensionMismatch("x", (self._sizes[0], self._sizes[1], D), x.shape)
        scale = float(scale)

        Wx, Wh = self._weight_blocks(D)
        grad_W = self.weight.grad
        grad_b = self.bias.grad
        h = self._arena.peek("output")
        c = self._arena.peek("cell")
        gates = self._arena.peek("gates")
        saved_h0 = self._arena.peek("h0")
        saved_c0 = self._arena.peek("c0")

        grad_h0 = self._arena.get("grad_h0", (N, H))
        grad_c0 = self._arena.get("grad_c0", (N, H))
        grad_x = self._arena.get("grad_x", (N, T, D))
        grad_next_h = self._arena.get("buffer1", (N, H), zero=True)
        grad_next_c = self._arena.get("buffer2", (N, H), zero=True)
        grad_a_sum = self._arena.get("buffer3", (4 * H,))
        grad_a = self._arena.get("grad_a", (N, 4 * H))
        grad_w_step = self._arena.get("grad_w_step", self.weight.shape)
        grad_ai, grad_af, grad_ao, grad_ag = split_gates(grad_a, H)

        for t in range(T - 1, -1, -1):
            next_c = c[:, t]
            if t == 0:
                prev_h, prev_c = saved_h0, saved_c0
            else:
                prev_h, prev_c = h[:, t - 1], c[:, t - 1]
            grad_next_h += grad_h[:, t]
            i, f, o, g = split_gates(gates[:, t], H)

            # grad_ai holds tanh(c_t) until grad_ao is done with it; grad_af
            # and grad_ao are free to use as scratch until then.
            tanh_next_c = np.tanh(next_c, out=grad_ai)
            tanh_next_c2 = np.multiply(tanh_next_c, tanh_next_c, out=grad_af)
            my_grad_next_c = grad_ao
            np.subtract(1.0, tanh_next_c2, out=my_grad_next_c)
            my_grad_next_c *= o
            my_grad_next_c *= grad_next_h
            grad_next_c += my_grad_next_c

            np.subtract(1.0, o, out=grad_ao)
            grad_ao *= o
            grad_ao *= tanh_next_c
            grad_ao *= grad_next_h

            g2 = np.multiply(g, g, out=grad_ai)
            np.subtract(1.0, g2, out=grad_ag)
            grad_ag *= i
            grad_ag *= grad_next_c

            np.subtract(1.0, i, out=grad_ai)
            grad_ai *= i
            grad_ai *= g
            grad_ai *= grad_next_c

            np.subtract(1.0, f, out=grad_af)
            grad_af *= f
            grad_af *= prev_c
            grad_af *= grad_next_c

            np.matmul(grad_a, Wx.T, out=grad_x[:, t])
            np.matmul(x[:, t].T, grad_a, out=grad_w_step[:D])
            np.matmul(prev_h.T, grad_a, out=grad_w_step[D:])
            grad_w_step *= scale
            grad_W += grad_w_step
            np.sum(grad_a, axis=0, out=grad_a_sum)
            grad_a_sum *= scale
            grad_b += grad_a_sum

            np.matmul(grad_a, Wh.T, out=grad_next_h)
            # must follow the gate gradients above: they use this step's cell gradient
            grad_next_c *= f

        np.copyto(grad_h0, grad_next_h)
        np.copyto(grad_c0, grad_next_c)
        return grad_h0, grad_c0, grad_x
