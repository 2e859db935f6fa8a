"""Variables, literals, lifted booleans, clauses and occurrence lists."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Callable, Dict, Generic, Hashable, Iterable, Iterator, List, Set, TypeVar

VAR_UNDEF = -1


@dataclass(frozen=True, order=True)
class Lit:
    """A literal encoded as ``2 * var + sign``; ordering keeps ``p`` and ``~p`` adjacent."""

    x: int

    @property
    def var(self) -> int:
        return self.x >> 1

    @property
    def sign(self) -> bool:
        return bool(self.x & 1)

    def __invert__(self) -> Lit:
        return Lit(self.x ^ 1)

    def __xor__(self, b: bool) -> Lit:
        return Lit(self.x ^ int(bool(b)))

    @staticmethod
    def from_dimacs(value: int) -> Lit:
        """Build a literal from a non-zero DIMACS integer."""
        if value == 0:
            raise ValueError("0 is not a DIMACS literal")
        var = abs(value) - 1
        lit = make_lit(var)
        return lit if value > 0 else ~lit

    def to_dimacs(self) -> int:
        """Return the DIMACS integer for this literal."""
        if self.x < 0:
            raise ValueError(f"{self!r} has no DIMACS form")
        number = self.var + 1
        return -number if self.sign else number


def make_lit(var: int, sign: bool = False) -> Lit:
    """Create the literal of ``var``; a true ``sign`` means the negated literal."""
    return Lit(var + var + int(bool(sign)))


LIT_UNDEF = Lit(-2)
LIT_ERROR = Lit(-1)


class LBool(enum.Enum):
    """Three-valued (Kleene) boolean."""

    TRUE = 0
    FALSE = 1
    UNDEF = 2

    @staticmethod
    def from_bool(value: bool) -> LBool:
        return LBool.TRUE if value else LBool.FALSE

    def __xor__(self, b: bool) -> LBool:
        if self is LBool.UNDEF or not b:
            return self
        return LBool.FALSE if self is LBool.TRUE else LBool.TRUE

    def conj(self, other: LBool) -> LBool:
        if self is LBool.FALSE or other is LBool.FALSE:
            return LBool.FALSE
        if self is LBool.UNDEF or other is LBool.UNDEF:
            return LBool.UNDEF
        return LBool.TRUE

    def disj(self, other: LBool) -> LBool:
        if self is LBool.TRUE or other is LBool.TRUE:
            return LBool.TRUE
        if self is LBool.UNDEF or other is LBool.UNDEF:
            return LBool.UNDEF
        return LBool.FALSE


class Clause:
    """A disjunction of literals with bookkeeping used by the solver.

    Learnt clauses carry an activity; other clauses created with ``extra``
    carry a 32-bit abstraction of their variables.
    """

    __slots__ = ("lits", "learnt", "has_extra", "mark", "activity", "abstraction")

    def __init__(self, lits: Iterable[Lit], learnt: bool = False, extra: bool = False) -> None:
        self.lits: List[Lit] = list(lits)
        self.learnt = learnt
        self.has_extra = learnt or extra
        self.mark = 0
        self.activity = 0.0
        self.abstraction = 0
        if self.has_extra and not learnt:
            self.calc_abstraction()

    @property
    def removed(self) -> bool:
        return self.mark == 1

    def __len__(self) -> int:
        return len(self.lits)

    def __getitem__(self, index):
        return self.lits[index]

    def __setitem__(self, index, lit: Lit) -> None:
        self.lits[index] = lit

    def __iter__(self) -> Iterator[Lit]:
        return iter(self.lits)

    def __repr__(self) -> str:
        body = " ".join(str(lit.to_dimacs()) for lit in self.lits)
        kind = "learnt" if self.learnt else "original"
        return f"Clause([{body}], {kind})"

    def calc_abstraction(self) -> None:
        if not self.has_extra:
            raise ValueError("clause has no extra field for an abstraction")
        abstraction = 0
        for lit in self.lits:
            abstraction |= 1 << (lit.var & 31)
        self.abstraction = abstraction

    def shrink(self, count: int) -> None:
        """Drop the last ``count`` literals."""
        if count < 0 or count > len(self.lits):
            raise ValueError(f"cannot shrink a clause of size {len(self.lits)} by {count}")
        if count:
            del self.lits[-count:]

    def pop(self) -> None:
        self.shrink(1)

    def subsumes(self, other: Clause) -> Lit:
        """Check subsumption and subsumption resolution against ``other``.

        Returns ``LIT_ERROR`` if neither applies, ``LIT_UNDEF`` if this clause
        subsumes ``other``, or a literal ``p`` such that ``~p`` can be removed
        from ``other``.
        """
        for clause in (self, other):
            if clause.learnt or not clause.has_extra:
                raise ValueError("subsumption needs original clauses with an abstraction")
        if len(other) < len(self) or (self.abstraction & ~other.abstraction) != 0:
            return LIT_ERROR

        ret = LIT_UNDEF
        for lit in self.lits:
            for other_lit in other.lits:
                if lit == other_lit:
                    break
                if ret == LIT_UNDEF and lit == ~other_lit:
                    ret = lit
                    break
            else:
                return LIT_ERROR
        return ret

    def strengthen(self, p: Lit) -> None:
        """Remove ``p`` from the clause and refresh the abstraction."""
        self.lits.remove(p)
        self.calc_abstraction()


K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


class OccLists(Generic[K, V]):
    """Occurrence lists with lazy deletion of entries flagged by ``deleted``."""

    def __init__(self, deleted: Callable[[V], bool]) -> None:
        self._deleted = deleted
        self._occs: Dict[K, List[V]] = {}
        self._dirty: Set[K] = set()
        self._dirties: List[K] = []

    def init(self, key: K) -> None:
        self._occs.setdefault(key, []).clear()

    def __getitem__(self, key: K) -> List[V]:
        return self._occs[key]

    def lookup(self, key: K) -> List[V]:
        """Return the list for ``key``, first purging deleted entries if needed."""
        if key in self._dirty:
            self.clean(key)
        return self._occs[key]

    def smudge(self, key: K) -> None:
        if key not in self._dirty:
            self._dirty.add(key)
            self._dirties.append(key)

    def clean(self, key: K) -> None:
        entries = self._occs[key]
        entries[:] = [entry for entry in entries if not self._deleted(entry)]
        self._dirty.discard(key)

    def clean_all(self) -> None:
        for key in self._dirties:
            if key in self._dirty:
                self.clean(key)
        self._dirties.clear()

    def clear(self) -> None:
        self._occs.clear()
        self._dirty.clear()
        self._dirties.clear()