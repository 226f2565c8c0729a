"""This module contains the backward pass that computes gradients from an output Variable w.r.t. everything upstream of it.

The graph is built in forward execution order, so every Creator's generation is the length of the longest chain of
calls beneath it. Processing Creators from the highest generation down is therefore a valid reverse topological
order: a path through the graph strictly increases the generation at each step, so Creators sharing a generation can
never depend on each other. This replaces a full topological sort with a heap and a seen set.

"""
from __future__ import annotations

import heapq
import itertools
from typing import Iterator, List
import numpy as np

from zerograd.helpers import DEBUG
from zerograd.function import check_gradients


def _walk(variable: 'Variable') -> Iterator['Creator']:
    """Yields the Creators upstream of `variable` in non-increasing generation order, each exactly once.

    The inputs of a Creator are inspected only after the consumer of the generator resumes it, so callers may mutate
    the gradients of the yielded Creator's inputs before its parents are scheduled.

    Example:
    For y = square(exp(square(x))) called on y, the Creators of the two squares and the exp have generations 2, 1 and
    0, and they are yielded as [square (2), exp (1), square (0)].

    """
    if variable.creator is None:
        return
    # heapq is a min-heap: order by negated generation, the counter keeps ties in insertion order
    counter = itertools.count()
    heap = [(-variable.creator.generation, next(counter), variable.creator)]
    seen = {id(variable.creator)}
    while heap:
        _, _, creator = heapq.heappop(heap)
        yield creator
        for x in creator.inputs:
            if x.creator is not None and id(x.creator) not in seen:
                seen.add(id(x.creator))
                heapq.heappush(heap, (-x.creator.generation, next(counter), x.creator))


def collect_backward_graph(variable: 'Variable') -> List['Creator']:
    """Collects the Creators involved in computing `variable`, in the order backward processes them.

    Args:
        variable: Starting point for graph traversal.

    Returns:
        List[Creator]: Creators ordered from the highest generation to the lowest. Empty for a leaf.
    """
    return list(_walk(variable))


def _output_grads(creator: 'Creator'):
    gys = []
    for ref, shape, dtype in zip(creator.outputs, creator.output_shapes, creator.output_dtypes):
        y = ref()
        if y is None:
            # output was garbage collected before backward, nothing flows from it
            gys.append(np.zeros(shape, dtype=dtype))
        elif y._grad is None:
            # an output no later call consumed acts as its own objective
            y._grad = np.ones_like(y._data)
            gys.append(y._grad)
        else:
            gys.append(y._grad)
    return tuple(gys)


def backward(variable: 'Variable') -> 'Variable':
    """Performs the backward pass of automatic differentiation starting at `variable`.

    The gradient of `variable` itself must already be set (Variable.backward seeds it with ones). Every Variable
    reachable through creators ends up holding the sum of the gradient contributions along all paths from `variable`
    to it. If a Variable feeds several calls, each call adds its share, so a Variable used twice receives both.

    Consider z = x * y + y. The Creator of the addition (generation 1) runs first and hands dz to both the product
    and y. The multiplication (generation 0) runs next and adds x * dz to y.grad, so y.grad = (x + 1) * dz.

    Args:
        variable: The Variable to differentiate. Backward on a leaf does nothing.

    Returns:
        Variable: The Variable backward was called on.

    Raises:
        AssertionError: If a Function's backward returns the wrong number of gradients or a gradient whose shape
            differs from its input.
    """
    if DEBUG >= 1:
        print(f"backward from {variable!r}, generation {variable.generation}")

    creators = collect_backward_graph(variable)
    # gradients left on intermediate outputs by an earlier pass would be added into this one
    for creator in creators:
        for ref in creator.outputs:
            y = ref()
            if y is not None and y is not variable:
                y._grad = None

    for creator in creators:
        if DEBUG >= 2:
            print(f"  {creator}")
        gys = _output_grads(creator)
        xs = tuple(x._data for x in creator.inputs)
        gxs = check_gradients(creator.function, xs, creator.function.backward(xs, gys))
        for x, gx in zip(creator.inputs, gxs):
            x._accumulate_grad(gx)

    if DEBUG >= 1:
        print(f"backward done, {len(creators)} creators processed")
    return variable
