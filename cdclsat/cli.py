"""Command line front end: solve a DIMACS CNF problem and optionally write the result."""

from __future__ import annotations

import argparse
import gzip
import signal
import sys
import time
from contextlib import contextmanager
from typing import Callable, Iterator, List, Optional, Sequence

from .dimacs import DimacsParseError, parse_dimacs
from .solver import Solver
from .types import LBool

_GZIP_MAGIC = b"\x1f\x8b"
_INT32_MAX = 2**31 - 1
_RULE = "=" * 79
_USAGE = (
    "%(prog)s [options] <input-file> <result-output-file>\n\n"
    "  where input may be either in plain or gzipped DIMACS."
)

EXIT_SAT = 10
EXIT_UNSAT = 20
EXIT_INDETERMINATE = 0


def format_model(solver: Solver) -> str:
    """Return the model line of a result file, e.g. ``"1 -2 3 0"``.

    Variables without a value in the model are left out.
    """
    parts: List[str] = []
    for index, value in enumerate(solver.model):
        if value is LBool.UNDEF:
            continue
        separator = "" if index == 0 else " "
        negation = "" if value is LBool.TRUE else "-"
        parts.append(f"{separator}{negation}{index + 1}")
    return "".join(parts) + " 0"


def _int_range(low: int, high: int) -> Callable[[str], int]:
    def convert(text: str) -> int:
        try:
            value = int(text)
        except ValueError:
            raise argparse.ArgumentTypeError(f"invalid integer value: {text!r}") from None
        if not low <= value <= high:
            raise argparse.ArgumentTypeError(f"value {value} is not in range [{low}..{high}]")
        return value

    return convert


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(usage=_USAGE, allow_abbrev=False)
    parser.add_argument(
        "-verb", "--verb", type=_int_range(0, 2), default=1,
        help="Verbosity level (0=silent, 1=some, 2=more).",
    )
    parser.add_argument(
        "-cpu-lim", "--cpu-lim", dest="cpu_lim", type=_int_range(0, _INT32_MAX), default=0,
        help="Limit on CPU time allowed in seconds.",
    )
    parser.add_argument(
        "-mem-lim", "--mem-lim", dest="mem_lim", type=_int_range(0, _INT32_MAX), default=0,
        help="Limit on memory usage in megabytes.",
    )
    parser.add_argument(
        "-strict", "--strict", dest="strict", action="store_true", default=False,
        help="Validate DIMACS header during parsing.",
    )
    parser.add_argument("-no-strict", "--no-strict", dest="strict", action="store_false")
    parser.add_argument("input", nargs="?", default=None)
    parser.add_argument("output", nargs="?", default=None)
    return parser


def _limit_resource(name: str, limit: int, label: str) -> None:
    try:
        import resource
    except ImportError:
        print(f"WARNING! Could not set resource limit: {label}.")
        return
    kind = getattr(resource, name, None)
    if kind is None:
        print(f"WARNING! Could not set resource limit: {label}.")
        return
    try:
        _, hard = resource.getrlimit(kind)
        if hard == resource.RLIM_INFINITY or limit < hard:
            resource.setrlimit(kind, (limit, hard))
    except (OSError, ValueError):
        print(f"WARNING! Could not set resource limit: {label}.")


def _print_stats(solver: Solver) -> None:
    cpu = time.process_time()

    def rate(count: int) -> float:
        return count / cpu if cpu > 0 else 0.0

    deleted = (
        (solver.max_literals - solver.tot_literals) * 100 / solver.max_literals
        if solver.max_literals
        else 0.0
    )
    random_share = solver.rnd_decisions * 100 / solver.decisions if solver.decisions else 0.0
    print(f"restarts              : {solver.starts}")
    print(f"conflicts             : {solver.conflicts:<12d}   ({rate(solver.conflicts):.0f} /sec)")
    print(
        f"decisions             : {solver.decisions:<12d}   ({random_share:4.2f} % random) "
        f"({rate(solver.decisions):.0f} /sec)"
    )
    print(
        f"propagations          : {solver.propagations:<12d}   "
        f"({rate(solver.propagations):.0f} /sec)"
    )
    print(f"conflict literals     : {solver.tot_literals:<12d}   ({deleted:4.2f} % deleted)")
    print(f"CPU time              : {cpu:g} s")


@contextmanager
def _signal_handlers(handler: Callable) -> Iterator[None]:
    """Route SIGINT (and SIGXCPU where it exists) to ``handler`` while active."""
    installed = []
    for name in ("SIGINT", "SIGXCPU"):
        signum = getattr(signal, name, None)
        if signum is None:
            continue
        try:
            previous = signal.signal(signum, handler)
        except (ValueError, OSError):
            continue
        installed.append((signum, previous))
    try:
        yield
    finally:
        for signum, previous in reversed(installed):
            signal.signal(signum, previous if previous is not None else signal.SIG_DFL)


def _read_input(path: Optional[str]) -> bytes:
    if path is None:
        data = sys.stdin.buffer.read()
    else:
        with open(path, "rb") as handle:
            data = handle.read()
    if data.startswith(_GZIP_MAGIC):
        data = gzip.decompress(data)
    return data


def _run(args: argparse.Namespace) -> int:
    solver = Solver(verbosity=args.verb)
    initial_time = time.process_time()

    def exit_handler(signum, frame) -> None:
        print()
        print("*** INTERRUPTED ***")
        if solver.verbosity > 0:
            _print_stats(solver)
            print()
            print("*** INTERRUPTED ***")
        raise SystemExit(1)

    def interrupt_handler(signum, frame) -> None:
        solver.interrupt()

    if args.cpu_lim != 0:
        _limit_resource("RLIMIT_CPU", args.cpu_lim, "CPU-time")
    if args.mem_lim != 0:
        _limit_resource("RLIMIT_AS", args.mem_lim * 1024 * 1024, "Virtual memory")

    with _signal_handlers(exit_handler):
        if args.input is None:
            print("Reading from standard input... Use '--help' for help.")
        try:
            data = _read_input(args.input)
        except OSError:
            print(f"ERROR! Could not open file: {args.input or '<stdin>'}")
            return 1

        if solver.verbosity > 0:
            print("============================[ Problem Statistics ]=============================")
            print("|                                                                             |")

        try:
            parse_dimacs(data, solver, args.strict)
        except DimacsParseError as error:
            print(f"PARSE ERROR! {error}")
            return 3

    result = open(args.output, "w", encoding="ascii") if args.output else None
    try:
        if solver.verbosity > 0:
            print(f"|  Number of variables:  {solver.n_vars():12d}                                         |")
            print(f"|  Number of clauses:    {solver.n_clauses():12d}                                         |")
        parsed_time = time.process_time()
        if solver.verbosity > 0:
            print(f"|  Parse time:           {parsed_time - initial_time:12.2f} s                                       |")
            print("|                                                                             |")

        with _signal_handlers(interrupt_handler):
            if not solver.simplify():
                if result is not None:
                    result.write("UNSAT\n")
                if solver.verbosity > 0:
                    print(_RULE)
                    print("Solved by unit propagation")
                    _print_stats(solver)
                    print()
                print("UNSATISFIABLE")
                return EXIT_UNSAT

            status = solver.solve_limited([])

        if solver.verbosity > 0:
            _print_stats(solver)
            print()
        if status is LBool.TRUE:
            print("SATISFIABLE")
        elif status is LBool.FALSE:
            print("UNSATISFIABLE")
        else:
            print("INDETERMINATE")

        if result is not None:
            if status is LBool.TRUE:
                result.write("SAT\n")
                result.write(format_model(solver) + "\n")
            elif status is LBool.FALSE:
                result.write("UNSAT\n")
            else:
                result.write("INDET\n")

        if status is LBool.TRUE:
            return EXIT_SAT
        if status is LBool.FALSE:
            return EXIT_UNSAT
        return EXIT_INDETERMINATE
    finally:
        if result is not None:
            result.close()


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run the solver on a DIMACS file; return 10 (SAT), 20 (UNSAT) or 0 (unknown)."""
    args = _build_parser().parse_args(argv)
    try:
        return _run(args)
    except MemoryError:
        print(_RULE)
        print("INDETERMINATE")
        return EXIT_INDETERMINATE


if __name__ == "__main__":
    sys.exit(main())