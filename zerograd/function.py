"""Contains the operation contract, the call record it leaves in the graph, and the elementary differentiable functions.

A Function maps a tuple of numpy arrays to a tuple of numpy arrays (forward) and knows how to map the gradients of its
outputs back onto its inputs (backward). Calling a Function instance on Variables is the only place where the
computational graph grows: every call leaves exactly one Creator behind, shared by all the outputs of that call.

All elementary functions below work on raw numpy arrays. They can be called with Variable.data, and
zerograd.variable_ops wraps them into the functional and operator-overload API.

"""
from __future__ import annotations
import math
import weakref
from typing import Tuple, Optional, ClassVar, Type, Union
import numpy as np

from zerograd.helpers import DEBUG, all_same_shape


class Creator:
    """Record of one Function call: the edge of the computational graph.

    A Creator owns its inputs and only weakly references its outputs. The outputs point back at the Creator through
    Variable.creator, so owning them as well would tie every output and its Creator into a reference cycle.

    Attributes:
        function (Function): The Function instance that was called. Shared by every output of the call.
        inputs (tuple[Variable]): Strong references to the input Variables, in call order.
        outputs (tuple[weakref.ref]): Weak references to the output Variables, in forward output order.
        output_shapes (tuple[tuple[int]]): Shapes of the outputs at call time.
        output_dtypes (tuple[np.dtype]): Dtypes of the outputs at call time.
        generation (int): The largest generation among the inputs.

    """
    __slots__ = "function", "inputs", "outputs", "output_shapes", "output_dtypes", "generation"

    def __init__(self, function: Function, inputs: Tuple['Variable', ...], outputs: Tuple['Variable', ...]):
        self.function = function
        self.inputs = inputs
        self.outputs = tuple(weakref.ref(y) for y in outputs)
        self.output_shapes = tuple(y.shape for y in outputs)
        self.output_dtypes = tuple(y.data.dtype for y in outputs)
        self.generation = max(x.generation for x in inputs) if inputs else 0

    def __repr__(self):
        return f"<Creator {type(self.function).__name__} generation={self.generation} " \
               f"inputs={len(self.inputs)} outputs={len(self.outputs)}>"


class Function:
    """Base class for all differentiable operations in the autograd system.

    Subclasses implement `forward` and `backward` on numpy arrays and bind any constant parameters (an exponent, for
    example) in `__init__`. A Function instance holds no per-call state, so the same instance may be called any
    number of times; each call records its own Creator.

    Attributes:
        n_outputs (int or None): Number of arrays `forward` must return. None leaves the count unchecked.

    """
    n_outputs: ClassVar[Optional[int]] = 1

    def forward(self, xs: Tuple[np.ndarray, ...]) -> Tuple[np.ndarray, ...]:
        """Forward pass of the function.

        Computes the output arrays from the input arrays. Must not touch the graph and must be deterministic given
        its inputs and the parameters bound into the instance.

        """
        raise NotImplementedError(f"forward not implemented for {type(self)}")

    def backward(self, xs: Tuple[np.ndarray, ...], gys: Tuple[np.ndarray, ...]) -> Tuple[np.ndarray, ...]:
        """Backward pass (gradient computation) of the function.

        Receives the original input arrays and one upstream gradient per output, and returns one gradient per input
        with the same shape as that input.

        """
        raise RuntimeError(f"backward not implemented for {type(self)}")

    def __call__(self, *inputs: Union['Variable', np.ndarray, float]) -> Tuple['Variable', ...]:
        """Apply the function to the given Variables and wire the result into the graph.

        Non-Variable inputs are lifted into leaf Variables first. The forward result is validated before any output is
        connected, so a failing call leaves the graph untouched.

        Returns:
            tuple[Variable]: One Variable per forward output. They share a single Creator and all have generation
            `1 + max(input generations)`.
        """
        from zerograd.variable import Variable
        inputs = tuple(x if isinstance(x, Variable) else Variable(x) for x in inputs)
        ys = self.forward(tuple(x.data for x in inputs))
        assert isinstance(ys, (tuple, list)), f"{type(self).__name__}.forward must return a tuple of arrays, got {type(ys)}"
        assert self.n_outputs is None or len(ys) == self.n_outputs, \
            f"{type(self).__name__}.forward returned {len(ys)} arrays, expected {self.n_outputs}"
        assert all(isinstance(y, (np.ndarray, np.generic)) for y in ys), \
            f"{type(self).__name__}.forward must return numpy arrays, got {[type(y) for y in ys]}"
        outputs = tuple(Variable(np.asarray(y)) for y in ys)

        if Variable.enable_backprop:
            creator = Creator(self, inputs, outputs)
            for y in outputs:
                y._set_creator(creator)
            if DEBUG >= 3:
                print(f"call {creator}")
        return outputs

    @classmethod
    def apply(fxn: Type[Function], *x: Union['Variable', np.ndarray, float], **kwargs) -> Union['Variable', Tuple['Variable', ...]]:
        """Create a Function with the given parameters and call it on `x`.

        Returns a single Variable for single-output functions and a tuple of Variables otherwise.
        """
        outputs = fxn(**kwargs)(*x)
        return outputs[0] if len(outputs) == 1 else outputs


# ----------------------------------------------------------------------------------------------------------------------
# unary ops

class Square(Function):
    def forward(self, xs):
        return (xs[0] ** 2,)

    def backward(self, xs, gys):
        return (2 * xs[0] * gys[0],)


class Exp(Function):
    def forward(self, xs):
        return (np.exp(xs[0]),)

    def backward(self, xs, gys):
        return (np.exp(xs[0]) * gys[0],)


class Pow(Function):
    """Raises the input to a constant power `c`."""
    def __init__(self, c: float):
        self.c = c

    def forward(self, xs):
        return (xs[0] ** self.c,)

    def backward(self, xs, gys):
        return (self.c * xs[0] ** (self.c - 1) * gys[0],)


class Neg(Function):
    def forward(self, xs):
        return (np.negative(xs[0]),)

    def backward(self, xs, gys):
        return (np.negative(gys[0]),)


class Log(Function):
    def forward(self, xs):
        return (np.log(xs[0]),)

    def backward(self, xs, gys):
        return (gys[0] / xs[0],)


class Sin(Function):
    def forward(self, xs):
        return (np.sin(xs[0]),)

    def backward(self, xs, gys):
        return (np.sin(math.pi / 2 - xs[0]) * gys[0],)


class Cos(Function):
    def forward(self, xs):
        return (np.cos(xs[0]),)

    def backward(self, xs, gys):
        return (-np.sin(xs[0]) * gys[0],)


class Tanh(Function):
    def forward(self, xs):
        return (np.tanh(xs[0]),)

    def backward(self, xs, gys):
        y = np.tanh(xs[0])
        return ((1 - y * y) * gys[0],)


# ----------------------------------------------------------------------------------------------------------------------
# binary ops
# NOTE: gradients are not reduced over broadcast axes, so both operands must have the same shape

def _same_shape(fxn: Function, xs: Tuple[np.ndarray, ...]) -> Tuple[np.ndarray, ...]:
    assert xs[0].shape == xs[1].shape, f"{type(fxn).__name__} operands must have the same shape, {xs[0].shape} != {xs[1].shape}"
    return xs

class Add(Function):
    def forward(self, xs):
        x0, x1 = _same_shape(self, xs)
        return (x0 + x1,)

    def backward(self, xs, gys):
        return gys[0], gys[0]


class Sub(Function):
    def forward(self, xs):
        x0, x1 = _same_shape(self, xs)
        return (x0 - x1,)

    def backward(self, xs, gys):
        return gys[0], np.negative(gys[0])


class Mul(Function):
    def forward(self, xs):
        x0, x1 = _same_shape(self, xs)
        return (x0 * x1,)

    def backward(self, xs, gys):
        return xs[1] * gys[0], xs[0] * gys[0]


class Div(Function):
    def forward(self, xs):
        x0, x1 = _same_shape(self, xs)
        return (x0 / x1,)

    def backward(self, xs, gys):
        x0, x1 = xs
        return gys[0] / x1, np.negative(gys[0]) * x0 / (x1 * x1)


def check_gradients(fxn: Function, xs: Tuple[np.ndarray, ...], gxs) -> Tuple[np.ndarray, ...]:
    """Validate the result of `fxn.backward` against the inputs it was computed for.

    Raises:
        AssertionError: If the number of gradients differs from the number of inputs, or a gradient's shape differs
            from its input's shape.
    """
    assert isinstance(gxs, (tuple, list)), f"{type(fxn).__name__}.backward must return a tuple of arrays, got {type(gxs)}"
    assert len(gxs) == len(xs), f"{type(fxn).__name__}.backward returned {len(gxs)} gradients for {len(xs)} inputs"
    assert all_same_shape(gxs, tuple(x.shape for x in xs)), \
        f"grad shape must match input shape, {[np.shape(g) for g in gxs]} != {[x.shape for x in xs]}"
    return tuple(gxs)
