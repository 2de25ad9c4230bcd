from __future__ import annotations

import numpy as np
import pytest

from seqlstm.errors import DimensionMismatch
from seqlstm.nn.gates import split_gates
from seqlstm.nn.lstm import SequenceLSTM


def _sig(z):
    return 1.0 / (1.0 + np.exp(-z))


def reference_forward(weight, bias, h0, c0, x):
    N, T, D = x.shape
    H = h0.shape[1]
    h_prev, c_prev = h0, c0
    hs = np.zeros((N, T, H))
    for t in range(T):
        a = np.concatenate([x[:, t], h_prev], axis=1) @ weight + bias
        i = _sig(a[:, :H])
        f = _sig(a[:, H:2 * H])
        o = _sig(a[:, 2 * H:3 * H])
        g = np.tanh(a[:, 3 * H:])
        c_prev = f * c_prev + i * g
        h_prev = np.tanh(c_prev) * o
        hs[:, t] = h_prev
    return hs


@pytest.mark.parametrize("N,T,D,H", [(1, 1, 1, 1), (2, 3, 4, 5), (4, 7, 3, 2), (3, 2, 6, 8)])
def test_forward_output_shape(N, T, D, H):
    lstm = SequenceLSTM(D, H, seed=0)
    rng = np.random.default_rng(0)
    h = lstm(np.zeros((N, H)), np.zeros((N, H)), rng.standard_normal((N, T, D)))
    assert h.shape == (N, T, H)
    assert h.dtype == np.float32


def test_concrete_single_unit_scenario():
    lstm = SequenceLSTM(1, 1, dtype=np.float64)
    lstm.weight.data[0, :] = 1.0
    lstm.weight.data[1, :] = 0.0
    lstm.bias.data[...] = 0.0
    h = lstm(np.array([[0.0]]), np.array([[0.0]]), np.array([[[1.0]]]))

    s = _sig(1.0)
    c1 = s * np.tanh(1.0)
    assert np.isclose(s, 0.731, atol=1e-3)
    assert np.isclose(np.tanh(1.0), 0.762, atol=1e-3)
    assert np.isclose(c1, 0.557, atol=1e-3)
    assert h[0, 0, 0] == pytest.approx(np.tanh(c1) * s, abs=1e-12)
    assert h[0, 0, 0] == pytest.approx(0.3696, abs=1e-3)

    i, f, o, g = split_gates(lstm._arena.peek("gates")[0, 0], 1)
    assert i[0] == pytest.approx(s) and f[0] == pytest.approx(s) and o[0] == pytest.approx(s)
    assert g[0] == pytest.approx(np.tanh(1.0))
    assert lstm._arena.peek("cell")[0, 0, 0] == pytest.approx(c1)


def test_single_step_matches_cell_formula():
    rng = np.random.default_rng(4)
    N, D, H = 3, 2, 4
    lstm = SequenceLSTM(D, H, seed=1, dtype=np.float64)
    lstm.bias.data[...] = rng.standard_normal(4 * H) * 0.5
    h0 = rng.standard_normal((N, H))
    c0 = rng.standard_normal((N, H))
    x = rng.standard_normal((N, 1, D))

    Wx, Wh = lstm.weight.data[:D], lstm.weight.data[D:]
    a = x[:, 0] @ Wx + h0 @ Wh + lstm.bias.data
    i, f, o = _sig(a[:, :H]), _sig(a[:, H:2 * H]), _sig(a[:, 2 * H:3 * H])
    g = np.tanh(a[:, 3 * H:])
    expected = np.tanh(f * c0 + i * g) * o

    h = lstm(h0, c0, x)
    np.testing.assert_allclose(h[:, 0], expected, rtol=1e-12, atol=1e-12)


def test_sequence_matches_reference_recurrence():
    rng = np.random.default_rng(5)
    N, T, D, H = 2, 6, 3, 4
    lstm = SequenceLSTM(D, H, seed=9, dtype=np.float64)
    lstm.bias.data[...] = rng.standard_normal(4 * H) * 0.2
    h0 = rng.standard_normal((N, H))
    c0 = rng.standard_normal((N, H))
    x = rng.standard_normal((N, T, D))
    np.testing.assert_allclose(lstm(h0, c0, x), reference_forward(lstm.weight.data, lstm.bias.data, h0, c0, x), rtol=1e-10, atol=1e-12)


def test_forward_does_not_touch_parameters_or_grads():
    lstm = SequenceLSTM(3, 4, seed=0)
    w = lstm.weight.data.copy()
    b = lstm.bias.data.copy()
    lstm(np.ones((2, 4)), np.ones((2, 4)), np.ones((2, 5, 3)))
    np.testing.assert_array_equal(lstm.weight.data, w)
    np.testing.assert_array_equal(lstm.bias.data, b)
    assert not lstm.weight.grad.any()
    assert not lstm.bias.grad.any()


@pytest.mark.parametrize(
    "h0_shape,c0_shape,x_shape,bad",
    [
        ((2, 5), (2, 5), (2, 3, 3), "x"),
        ((3, 5), (2, 5), (2, 3, 4), "h0"),
        ((2, 5), (2, 4), (2, 3, 4), "c0"),
        ((2, 5), (2, 5), (2, 4), "x"),
    ],
)
def test_dimension_mismatch_leaves_state_untouched(h0_shape, c0_shape, x_shape, bad):
    rng = np.random.default_rng(0)
    lstm = SequenceLSTM(4, 5, seed=0)
    h = lstm(np.zeros((2, 5)), np.zeros((2, 5)), rng.standard_normal((2, 3, 4)))
    before = h.copy()
    gates = lstm._arena.peek("gates")
    gates_before = gates.copy()

    with pytest.raises(DimensionMismatch) as ei:
        lstm(np.zeros(h0_shape), np.zeros(c0_shape), np.zeros(x_shape))
    assert ei.value.name == bad
    assert isinstance(ei.value, ValueError)

    np.testing.assert_array_equal(lstm._arena.peek("output"), before)
    assert lstm._arena.peek("gates") is gates
    np.testing.assert_array_equal(gates, gates_before)
    assert lstm.prepared


def test_caches_resize_between_calls_and_are_reused():
    rng = np.random.default_rng(1)
    lstm = SequenceLSTM(3, 4, seed=0)
    h = lstm(np.zeros((2, 4)), np.zeros((2, 4)), rng.standard_normal((2, 5, 3)))
    assert h.shape == (2, 5, 4)
    gates = lstm._arena.peek("gates")

    h = lstm(np.zeros((2, 4)), np.zeros((2, 4)), rng.standard_normal((2, 5, 3)))
    assert lstm._arena.peek("gates") is gates

    h = lstm(np.zeros((6, 4)), np.zeros((6, 4)), rng.standard_normal((6, 2, 3)))
    assert h.shape == (6, 2, 4)
    assert lstm._arena.peek("gates").shape == (6, 2, 16)
    assert lstm._arena.peek("cell").shape == (6, 2, 4)


def test_saturated_inputs_stay_finite():
    lstm = SequenceLSTM(2, 3, seed=0, dtype=np.float64)
    x = np.full((2, 4, 2), 1e4)
    x[1] *= -1.0
    with np.errstate(over="raise"):
        h = lstm(np.zeros((2, 3)), np.zeros((2, 3)), x)
    assert np.all(np.isfinite(h))
    assert np.all(np.abs(h) <= 1.0)


def test_reset_parameters_scaling_and_override():
    D, H = 64, 64
    lstm = SequenceLSTM(D, H, seed=0)
    assert lstm.weight.shape == (D + H, 4 * H)
    assert lstm.bias.shape == (4 * H,)
    assert not lstm.bias.data.any()
    assert abs(float(lstm.weight.data.mean())) < 0.01
    assert float(lstm.weight.data.std()) == pytest.approx(1.0 / np.sqrt(H + D), rel=0.03)

    w = lstm.weight
    lstm.bias.data[...] = 1.0
    lstm.reset_parameters(std=0.5)
    assert lstm.weight is w
    assert float(lstm.weight.data.std()) == pytest.approx(0.5, rel=0.03)
    assert not lstm.bias.data.any()

    with pytest.raises(ValueError):
        lstm.reset_parameters(std=-1.0)


def test_reset_parameters_zero_std_gives_zero_weights():
    lstm = SequenceLSTM(3, 4, seed=0, dtype=np.float64)
    lstm.reset_parameters(std=0.0)
    assert not lstm.weight.data.any()
    assert not lstm.bias.data.any()
    h = lstm(np.zeros((2, 4)), np.zeros((2, 4)), np.ones((2, 3, 3)))
    # every gate is sigmoid(0) or tanh(0): c_t = 0.5 c_{t-1}, so the state never leaves zero
    assert not h.any()


def test_constructor_validation():
    with pytest.raises(ValueError):
        SequenceLSTM(0, 3)
    with pytest.raises(ValueError):
        SequenceLSTM(3, -1)
    with pytest.raises(ValueError):
        SequenceLSTM(3, 3, dtype=np.int32)


def test_same_seed_gives_same_weights():
    a = SequenceLSTM(3, 4, seed=11)
    b = SequenceLSTM(3, 4, seed=11)
    np.testing.assert_array_equal(a.weight.data, b.weight.data)
