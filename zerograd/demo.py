"""Small command line driver that builds a graph, runs backward and prints values and gradients.

Usage:
    python -m zerograd.demo 0.5            # y = square(exp(square(x)))
    python -m zerograd.demo --divide 3 2 5  # c = 2.0 / a

Set DEBUG=2 in the environment to see every Creator the backward pass processes.

"""
import argparse
from typing import List, Optional

import numpy as np

from zerograd.variable import Variable
from zerograd.variable_ops import square, exp


def composed(values: List[float]):
    x = Variable(np.array(values), name="x")
    y = square(exp(square(x)))
    y.name = "y"
    y.backward()
    return x, y


def divide(values: List[float], numerator: float = 2.0):
    a = Variable(np.array(values), name="a")
    c = numerator / a
    c.name = "c"
    c.backward()
    return a, c


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(prog="zerograd-demo", description="Run a forward and backward pass and print the gradients.")
    parser.add_argument("values", nargs="*", type=float, default=[0.5], help="input values (default: 0.5)")
    parser.add_argument("--divide", action="store_true", help="compute c = 2.0 / a instead of square(exp(square(x)))")
    args = parser.parse_args(argv)

    x, y = divide(args.values) if args.divide else composed(args.values)
    print(f"{y.name}.data = {y.data}")
    print(f"{x.name}.grad = {x.grad}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
