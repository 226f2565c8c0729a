from __future__ import annotations
from typing import Tuple, Optional, ClassVar, Union, Any
import numpy as np

from zerograd.helpers import getenv, DType, dtypes, DTYPES_DICT
from zerograd.autograd import backward, collect_backward_graph
from zerograd import variable_ops

class Variable:
    __slots__ = "_data", "_grad", "_generation", "creator", "name", "__weakref__"
    enable_backprop: ClassVar[bool] = True
    class no_grad:
        def __init__(self): self.prev = None
        def __enter__(self): self.prev, Variable.enable_backprop = Variable.enable_backprop, False
        def __exit__(self, exc_type: Any, exc_value: Any, traceback: Any): Variable.enable_backprop = self.prev

    default_type: ClassVar[DType] = dtypes.float32 if getenv("FLOAT32") else dtypes.float64
    __array_ufunc__ = None  # numpy operands defer to the reflected operators below

    def __init__(self, data:Union[int, float, list, np.ndarray, np.generic], name:Optional[str]=None, dtype:Optional[DType]=None):
        assert dtype is None or isinstance(dtype, DType), f"invalid dtype {dtype}"
        try:
            data = np.asarray(data, dtype=dtype.np if dtype is not None else None)
            # complex data would lose its imaginary part in the cast below
            if data.dtype.kind == "c": raise TypeError(f"complex data is not supported, got {data.dtype}")
            # gradients only make sense for the float types we know, everything else is upcast
            if data.dtype.name not in DTYPES_DICT: data = data.astype(Variable.default_type.np)
        except (TypeError, ValueError) as e:
            raise RuntimeError(f"can't create Variable from {data!r} with type {type(data)}") from e

        self._data: np.ndarray = data
        # absent until the engine writes it, see backward() and cleargrad()
        self._grad: Optional[np.ndarray] = None
        self._generation: int = 0
        # internal variables used for autograd graph construction
        self.creator = None
        self.name = name

    # ------------------------------------------------------------------------------------------------------------------
    # basic properties

    def __repr__(self):
        label = f" {self.name!r}" if self.name is not None else ""
        return f"<Variable{label} {np.array2string(self._data, precision=4)} with grad " \
               f"{None if self._grad is None else np.array2string(self._grad, precision=4)}>"
    def __len__(self) -> int: return len(self._data)

    @property
    def data(self) -> np.ndarray: return _readonly(self._data)
    @property
    def grad(self) -> Optional[np.ndarray]: return None if self._grad is None else _readonly(self._grad)
    @property
    def generation(self) -> int: return self._generation
    @property
    def shape(self) -> Tuple[int, ...]: return self._data.shape
    @property
    def ndim(self) -> int: return self._data.ndim
    @property
    def size(self) -> int: return self._data.size
    @property
    def dtype(self) -> DType: return dtypes.from_np(self._data.dtype)

    # ------------------------------------------------------------------------------------------------------------------
    # graph bookkeeping, only called by Function and the backward engine

    def _set_creator(self, creator) -> None:
        self.creator = creator
        self._generation = creator.generation + 1

    def _accumulate_grad(self, gx: np.ndarray) -> None:
        # out-of-place, a Function may hand the same array to several inputs
        gx = np.asarray(gx)
        self._grad = gx if self._grad is None else self._grad + gx

    # ------------------------------------------------------------------------------------------------------------------
    # data handlers

    def assign(self, x) -> Variable:
        if x.__class__ is Variable: x = x._data
        x = np.asarray(x, dtype=self._data.dtype)
        assert self.shape == x.shape, f"assign shape mismatch {self.shape} != {x.shape}"
        self._data = x.copy()
        return self

    def detach(self) -> Variable: return Variable(self._data.copy(), name=self.name)
    def numpy(self) -> np.ndarray: return self._data.copy()
    def item(self) -> float: return self._data.item()

    # ------------------------------------------------------------------------------------------------------------------
    # autograd.py
    # generation ordered backward pass

    def backward(self) -> Variable:
        if self._grad is None: self._grad = np.ones_like(self._data)
        return backward(self)
    def cleargrad(self) -> None: self._grad = None
    def collect_backward_graph(self): return collect_backward_graph(self)

    # ------------------------------------------------------------------------------------------------------------------
    # variable_ops.py
    # elementary functions

    def neg(self) -> Variable: return variable_ops.neg(self)
    def square(self) -> Variable: return variable_ops.square(self)
    def exp(self) -> Variable: return variable_ops.exp(self)
    def log(self) -> Variable: return variable_ops.log(self)
    def sin(self) -> Variable: return variable_ops.sin(self)
    def cos(self) -> Variable: return variable_ops.cos(self)
    def tanh(self) -> Variable: return variable_ops.tanh(self)

    def add(self, x, reverse=False) -> Variable: return variable_ops.add(self, x, reverse)
    def sub(self, x, reverse=False) -> Variable: return variable_ops.sub(self, x, reverse)
    def mul(self, x, reverse=False) -> Variable: return variable_ops.mul(self, x, reverse)
    def div(self, x, reverse=False) -> Variable: return variable_ops.div(self, x, reverse)
    def pow(self, c:float) -> Variable: return variable_ops.pow(self, c)

    # ***** op wrappers *****

    def __neg__(self) -> Variable: return self.neg()

    def __add__(self, x) -> Variable: return self.add(x)
    def __sub__(self, x) -> Variable: return self.sub(x)
    def __mul__(self, x) -> Variable: return self.mul(x)
    def __pow__(self, x) -> Variable: return self.pow(x)
    def __truediv__(self, x) -> Variable: return self.div(x)

    def __radd__(self, x) -> Variable: return self.add(x, True)
    def __rsub__(self, x) -> Variable: return self.sub(x, True)
    def __rmul__(self, x) -> Variable: return self.mul(x, True)
    def __rtruediv__(self, x) -> Variable: return self.div(x, True)


def _readonly(x: np.ndarray) -> np.ndarray:
    # a fresh view, so neither the values nor the shape of the stored array can be changed through it
    view = x.view()
    view.flags.writeable = False
    return view
