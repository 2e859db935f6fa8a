"""Decision heuristics: a seeded random source, the Luby restart sequence and
the activity-ordered variable heap."""

from __future__ import annotations

from typing import Iterable, List, Sequence

_MODULUS = 2147483647
_MULTIPLIER = 1389796


class RandomSource:
    """Deterministic pseudo-random numbers driven by a floating point seed."""

    __slots__ = ("seed",)

    def __init__(self, seed: float = 91648253.0) -> None:
        if seed == 0:
            raise ValueError("random seed must not be 0")
        self.seed = float(seed)

    def drand(self) -> float:
        """Return a float ``x`` with ``0 <= x < 1`` and advance the seed."""
        self.seed *= _MULTIPLIER
        q = int(self.seed / _MODULUS)
        self.seed -= q * float(_MODULUS)
        return self.seed / _MODULUS

    def irand(self, size: int) -> int:
        """Return an integer ``x`` with ``0 <= x < size``."""
        return int(self.drand() * size)


def luby(y: float, x: int) -> float:
    """Return element ``x`` of the Luby sequence scaled by base ``y``.

    With ``y == 2`` the sequence is 1 1 2 1 1 2 4 1 1 2 1 1 2 4 8 ...
    """
    if x < 0:
        raise ValueError("luby index must be non-negative")
    size, seq = 1, 0
    while size < x + 1:
        seq += 1
        size = 2 * size + 1
    while size - 1 != x:
        size = (size - 1) >> 1
        seq -= 1
        x %= size
    return y ** seq


class VarOrderHeap:
    """Binary heap of variables; the variable with the highest activity is on top.

    ``activity`` is read live, so after raising a variable's activity call
    :meth:`decrease` to restore the heap order.
    """

    def __init__(self, activity: Sequence[float]) -> None:
        self._activity = activity
        self._heap: List[int] = []
        self._indices: List[int] = []

    def _lt(self, x: int, y: int) -> bool:
        return self._activity[x] > self._activity[y]

    def __len__(self) -> int:
        return len(self._heap)

    def __contains__(self, var: object) -> bool:
        return (
            isinstance(var, int)
            and 0 <= var < len(self._indices)
            and self._indices[var] >= 0
        )

    def __getitem__(self, index: int) -> int:
        return self._heap[index]

    def grow(self, var: int) -> None:
        """Make room for variables up to and including ``var``."""
        if var < 0:
            raise ValueError("variables are non-negative")
        missing = var + 1 - len(self._indices)
        if missing > 0:
            self._indices.extend([-1] * missing)

    def insert(self, var: int) -> None:
        self.grow(var)
        if var in self:
            raise ValueError(f"variable {var} is already in the heap")
        self._indices[var] = len(self._heap)
        self._heap.append(var)
        self._percolate_up(self._indices[var])

    def decrease(self, var: int) -> None:
        """Move ``var`` up after its activity has grown."""
        if var not in self:
            raise KeyError(var)
        self._percolate_up(self._indices[var])

    def remove_min(self) -> int:
        """Remove and return the variable with the highest activity."""
        if not self._heap:
            raise IndexError("remove_min from an empty heap")
        top = self._heap[0]
        last = self._heap.pop()
        self._indices[top] = -1
        if self._heap:
            self._heap[0] = last
            self._indices[last] = 0
            if len(self._heap) > 1:
                self._percolate_down(0)
        return top

    def build(self, variables: Iterable[int]) -> None:
        """Replace the contents of the heap with ``variables``."""
        for var in self._heap:
            self._indices[var] = -1
        self._heap = list(variables)
        for position, var in enumerate(self._heap):
            self.grow(var)
            if self._indices[var] >= 0:
                raise ValueError(f"variable {var} given twice")
            self._indices[var] = position
        for position in range(len(self._heap) // 2 - 1, -1, -1):
            self._percolate_down(position)

    def _percolate_up(self, i: int) -> None:
        heap, indices = self._heap, self._indices
        x = heap[i]
        while i != 0:
            parent = (i - 1) >> 1
            if not self._lt(x, heap[parent]):
                break
            heap[i] = heap[parent]
            indices[heap[i]] = i
            i = parent
        heap[i] = x
        indices[x] = i

    def _percolate_down(self, i: int) -> None:
        heap, indices = self._heap, self._indices
        x = heap[i]
        size = len(heap)
        while 2 * i + 1 < size:
            left, right = 2 * i + 1, 2 * i + 2
            child = right if right < size and self._lt(heap[right], heap[left]) else left
            if not self._lt(heap[child], x):
                break
            heap[i] = heap[child]
            indices[heap[i]] = i
            i = child
        heap[i] = x
        indices[x] = i