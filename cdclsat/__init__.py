"""A conflict-driven clause-learning SAT solver with a DIMACS reader and command line."""

__version__ = "0.1.0"
__all__ = ["types", "dimacs", "heuristics", "engine", "solver", "cli"]