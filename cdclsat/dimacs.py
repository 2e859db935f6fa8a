"""Reading problems in (optionally gzipped) DIMACS CNF format into a solver."""

from __future__ import annotations

import gzip
import os
from typing import Iterable, Iterator, List, Protocol, Union

from .types import Lit

_WHITESPACE = frozenset("\t\n\v\f\r ")
_GZIP_MAGIC = b"\x1f\x8b"


class DimacsParseError(ValueError):
    """Raised when DIMACS input is malformed."""


class _SolverLike(Protocol):
    def n_vars(self) -> int: ...

    def new_var(self): ...

    def add_clause(self, lits): ...


class _Reader:
    def __init__(self, text: str) -> None:
        self._text = text
        self._pos = 0

    def peek(self) -> str:
        return self._text[self._pos] if self._pos < len(self._text) else ""

    def advance(self) -> None:
        self._pos += 1

    def skip_whitespace(self) -> None:
        while self.peek() in _WHITESPACE and self.peek():
            self.advance()

    def skip_line(self) -> None:
        end = self._text.find("\n", self._pos)
        self._pos = len(self._text) if end < 0 else end + 1

    def eager_match(self, word: str) -> bool:
        for ch in word:
            if self.peek() != ch:
                return False
            self.advance()
        return True

    def unexpected(self) -> DimacsParseError:
        ch = self.peek()
        if not ch:
            return DimacsParseError("unexpected end of input")
        return DimacsParseError(f"unexpected char: {ch!r}")

    def parse_int(self) -> int:
        self.skip_whitespace()
        negative = False
        if self.peek() == "-":
            negative = True
            self.advance()
        elif self.peek() == "+":
            self.advance()
        if not self.peek().isdigit():
            raise self.unexpected()
        value = 0
        while self.peek().isdigit():
            value = value * 10 + int(self.peek())
            self.advance()
        return -value if negative else value


def _ints(reader: _Reader) -> Iterator[int]:
    while True:
        yield reader.parse_int()


def _to_int(token) -> int:
    if isinstance(token, int):
        return token
    try:
        return int(token)
    except ValueError:
        raise DimacsParseError(f"not an integer: {token!r}") from None


def read_clause(tokens: Iterable, solver: _SolverLike) -> List[Lit]:
    """Read literals up to the terminating 0, creating variables as needed."""
    lits: List[Lit] = []
    for token in tokens:
        value = _to_int(token)
        if value == 0:
            return lits
        var = abs(value) - 1
        while var >= solver.n_vars():
            solver.new_var()
        lits.append(Lit.from_dimacs(value))
    raise DimacsParseError("unexpected end of input")


def parse_dimacs(text: Union[str, bytes], solver: _SolverLike, strict: bool = False) -> int:
    """Add every clause in ``text`` to ``solver`` and return how many were read.

    With ``strict`` the clause count must match the ``p cnf`` header.
    """
    if isinstance(text, bytes):
        text = text.decode("latin-1")
    reader = _Reader(text)
    numbers = _ints(reader)
    declared_clauses = 0
    count = 0
    while True:
        reader.skip_whitespace()
        ch = reader.peek()
        if not ch:
            break
        if ch == "p":
            if not reader.eager_match("p cnf"):
                raise reader.unexpected()
            reader.parse_int()
            declared_clauses = reader.parse_int()
        elif ch == "c":
            reader.skip_line()
        else:
            count += 1
            solver.add_clause(read_clause(numbers, solver))
    if strict and count != declared_clauses:
        raise DimacsParseError("DIMACS header mismatch: wrong number of clauses")
    return count


def parse_dimacs_file(
    path: Union[str, "os.PathLike[str]"], solver: _SolverLike, strict: bool = False
) -> int:
    """Parse a plain or gzip-compressed DIMACS file into ``solver``."""
    with open(path, "rb") as handle:
        data = handle.read()
    if data.startswith(_GZIP_MAGIC):
        data = gzip.decompress(data)
    return parse_dimacs(data, solver, strict)