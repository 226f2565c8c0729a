from __future__ import annotations

from typing import Tuple, Union

import numpy as np

import zerograd.function as function


# elementary functions

def square(x: 'Variable') -> 'Variable': return function.Square.apply(x)
def exp(x: 'Variable') -> 'Variable': return function.Exp.apply(x)
def neg(x: 'Variable') -> 'Variable': return function.Neg.apply(x)
def log(x: 'Variable') -> 'Variable': return function.Log.apply(x)
def sin(x: 'Variable') -> 'Variable': return function.Sin.apply(x)
def cos(x: 'Variable') -> 'Variable': return function.Cos.apply(x)
def tanh(x: 'Variable') -> 'Variable': return function.Tanh.apply(x)

def pow(x: 'Variable', c: float) -> 'Variable':
    from zerograd.variable import Variable
    assert not isinstance(c, (Variable, np.ndarray)), f"exponent must be a constant number, got {type(c)}"
    return function.Pow.apply(x, c=c)


# scalar and array operands

def _lifted(variable: 'Variable', y: Union['Variable', np.ndarray, float], reverse: bool = False) -> Tuple['Variable', 'Variable']:
    """Turn the other operand of a binary op into a Variable and order the pair.

    Python numbers become a constant leaf filled to the shape and dtype of `variable`. Arrays are wrapped as they are,
    their shape has to match or the call fails.
    """
    from zerograd.variable import Variable
    x: Variable = variable
    if not isinstance(y, Variable):
        y = Variable(np.full(x.shape, y, dtype=x.data.dtype)) if np.ndim(y) == 0 else Variable(np.asarray(y, dtype=x.data.dtype))
    return (y, x) if reverse else (x, y)

def add(variable: 'Variable', x: Union['Variable', np.ndarray, float], reverse=False) -> 'Variable':
    return function.Add.apply(*_lifted(variable, x, reverse))

def sub(variable: 'Variable', x: Union['Variable', np.ndarray, float], reverse=False) -> 'Variable':
    return function.Sub.apply(*_lifted(variable, x, reverse))

def mul(variable: 'Variable', x: Union['Variable', np.ndarray, float], reverse=False) -> 'Variable':
    return function.Mul.apply(*_lifted(variable, x, reverse))

def div(variable: 'Variable', x: Union['Variable', np.ndarray, float], reverse=False) -> 'Variable':
    return function.Div.apply(*_lifted(variable, x, reverse))
