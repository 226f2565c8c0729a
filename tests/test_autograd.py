import numpy as np
import pytest

import zerograd.autograd as autograd
from zerograd.autograd import collect_backward_graph
from zerograd.variable import Variable
from zerograd.variable_ops import square, exp, add


def test_square_gradient():
    d = np.array([-1.5, 0.0, 2.0, 3.0])
    x = Variable(d)
    y = square(x)
    np.testing.assert_allclose(y.data, d ** 2)
    y.backward()
    np.testing.assert_allclose(x.grad, 2 * d)


def test_composed_square_exp_square():
    x = Variable(np.array([0.5]))
    y = square(exp(square(x)))
    y.backward()
    np.testing.assert_allclose(y.data, [1.64872127], rtol=1e-7)
    np.testing.assert_allclose(x.grad, [3.29744254], rtol=1e-7)
    d = 0.5
    np.testing.assert_allclose(x.grad, 2 * d * np.exp(d ** 2) * 2 * np.exp(d ** 2))


def test_fan_out_gradients_are_summed():
    a = Variable(np.array([2.0]))
    p = square(a)
    q = exp(a)
    y = add(p, q)
    y.backward()
    np.testing.assert_allclose(a.grad, 2 * 2.0 + np.exp(2.0))


def test_diamond_graph_processes_each_creator_once():
    # y = a^2 + a^2 with a = x^2, so y = 2x^4 and dy/dx = 8x^3
    x = Variable(np.array([2.0]))
    a = square(x)
    y = add(square(a), square(a))
    y.backward()
    np.testing.assert_allclose(y.data, [32.0])
    np.testing.assert_allclose(x.grad, [64.0])
    np.testing.assert_allclose(a.grad, [16.0])


def test_same_variable_twice_as_input():
    x = Variable(np.array([3.0]))
    y = x * x
    y.backward()
    np.testing.assert_allclose(x.grad, [6.0])


def test_start_node_is_seeded_with_ones():
    x = Variable(np.arange(6.0).reshape(2, 3))
    y = square(x)
    y.backward()
    assert y.grad.shape == y.data.shape
    np.testing.assert_array_equal(y.grad, np.ones((2, 3)))


def test_existing_grad_on_start_node_is_used():
    x = Variable(np.array([1.0, 2.0]))
    y = square(x)
    y.backward()
    x.cleargrad()
    # y.grad is retained from the first pass, so the second pass sees the same seed
    y.backward()
    np.testing.assert_allclose(x.grad, [2.0, 4.0])


def test_cleargrad_then_backward_reproduces_gradients():
    x = Variable(np.array([0.5, 1.0]))
    a = square(x)
    b = exp(a)
    y = square(b)
    y.backward()
    first = x.grad.copy()

    for v in (x, a, b, y):
        v.cleargrad()
    y.backward()
    np.testing.assert_allclose(x.grad, first)


def test_backward_without_cleargrad_accumulates():
    x = Variable(np.array([3.0]))
    square(x).backward()
    square(x).backward()
    np.testing.assert_allclose(x.grad, [12.0])


def test_backward_on_leaf_is_a_noop():
    x = Variable(np.array([1.0, 2.0]))
    assert x.backward() is x
    np.testing.assert_array_equal(x.grad, [1.0, 1.0])
    assert collect_backward_graph(x) == []


def test_collect_backward_graph_is_ordered_by_generation():
    x = Variable(np.array([1.0]))
    a = square(x)
    b = exp(a)
    y = add(square(b), a)
    creators = collect_backward_graph(y)
    generations = [c.generation for c in creators]
    assert generations == sorted(generations, reverse=True)
    assert len(creators) == 4
    assert len({id(c) for c in creators}) == len(creators)
    assert creators[0] is y.creator
    assert creators[-1] is a.creator
    assert y.collect_backward_graph() == creators


def test_deep_chain_does_not_hit_recursion_limit():
    x = Variable(np.array([1.0]))
    y = x
    for _ in range(2000):
        y = y * 1.0
    y.backward()
    np.testing.assert_allclose(x.grad, [1.0])


def test_debug_output(monkeypatch, capsys):
    monkeypatch.setattr(autograd, "DEBUG", 2)
    x = Variable(np.array([1.0]))
    square(exp(x)).backward()
    out = capsys.readouterr().out
    assert "backward from" in out
    assert "<Creator Square generation=1" in out
    assert "<Creator Exp generation=0" in out
    assert "2 creators processed" in out


@pytest.mark.parametrize("shape", [(), (3,), (2, 4)])
def test_gradient_matches_numerical_derivative(shape):
    rng = np.random.default_rng(0)
    d = rng.uniform(0.1, 1.0, size=shape)
    eps = 1e-6

    def f(v):
        return np.exp(v ** 2) ** 2

    x = Variable(d)
    square(exp(square(x))).backward()
    numeric = (f(d + eps) - f(d - eps)) / (2 * eps)
    np.testing.assert_allclose(x.grad, numeric, rtol=1e-5)


def test_repeated_backward_does_not_reuse_intermediate_grads():
    x = Variable(np.array([0.5]))
    y = square(exp(square(x)))
    y.backward()
    first = x.grad.copy()
    x.cleargrad()
    y.cleargrad()
    y.backward()
    np.testing.assert_allclose(x.grad, first)
    np.testing.assert_allclose(x.grad, [3.29744254], rtol=1e-7)


def test_backward_from_two_outputs_sharing_an_intermediate():
    x = Variable(np.array([0.5]))
    a = square(x)
    y1 = exp(a)
    y2 = a.sin()
    y1.backward()
    y2.backward()
    np.testing.assert_allclose(x.grad, 2 * 0.5 * (np.exp(0.25) + np.cos(0.25)))
    np.testing.assert_allclose(a.grad, np.cos([0.25]))
