from typing import Optional, Final, Any, Tuple
import os
import functools
import numpy as np
from dataclasses import dataclass


def all_same_shape(arrays: Tuple[Any, ...], shapes: Tuple[Tuple[int, ...], ...]) -> bool:
    """Check that every array has the shape at the same position in `shapes`."""
    return all(np.shape(a) == s for a, s in zip(arrays, shapes))

@functools.lru_cache(maxsize=None)
def getenv(key, default=0):
    """Get an environment variable and convert it to the type of 'default'."""
    return type(default)(os.getenv(key, default))

# Global flags for debugging
DEBUG = getenv("DEBUG")

@dataclass(frozen=True, order=True)
class DType:
    """Data type class for the floating point types a Variable can hold."""
    priority: int  # Priority for upcasting
    itemsize: int  # Size of the data type in bytes
    name: str      # Name of the data type
    np: Optional[type]  # Corresponding numpy data type

    def __repr__(self):
        return f"dtypes.{self.name}"

class dtypes:
    """Container for the supported data types.

    Gradients are only meaningful for floating point data, so integer and boolean input is upcast to
    the default float type when a Variable is created.
    """
    @staticmethod
    def from_np(x) -> DType:
        """Convert a numpy data type to a DType."""
        return DTYPES_DICT[np.dtype(x).name]

    float16: Final[DType] = DType(9, 2, "float16", np.float16)
    half = float16
    float32: Final[DType] = DType(10, 4, "float32", np.float32)
    float = float32
    float64: Final[DType] = DType(11, 8, "float64", np.float64)
    double = float64

# Dictionary mapping numpy dtype names to DType objects
DTYPES_DICT = {v.name: v for k, v in dtypes.__dict__.items() if isinstance(v, DType)}
