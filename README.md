# cdclsat

A conflict-driven clause-learning (CDCL) SAT solver in pure Python, with no
dependencies outside the standard library. It uses two-watched-literal unit
propagation, first-UIP conflict analysis with clause minimisation,
activity-ordered branching with phase saving, Luby or geometric restarts,
reduction of the learnt-clause database, and solving under assumptions.

## Installation

```
pip install .
```

## Command line

```
cdclsat [options] [input-file] [result-output-file]
```

The input is a DIMACS CNF file, plain or gzip-compressed (recognised by its
gzip header). Without an input file the problem is read from standard input.

Options (written either `-verb=2` or `--verb 2`):

- `-verb` — verbosity level 0, 1 or 2 (default 1)
- `-cpu-lim` — limit on CPU time in seconds; 0 means no limit
- `-mem-lim` — limit on virtual memory in megabytes; 0 means no limit
- `-strict` / `-no-strict` — check that the number of clauses matches the
  `p cnf` header (off by default)

The limits are set through the operating system's resource limits where the
platform offers them; otherwise a warning is printed and solving goes on.

The command prints `SATISFIABLE`, `UNSATISFIABLE` or `INDETERMINATE` and exits
with status 10, 20 or 0 respectively. It exits with 1 if the input cannot be
opened and with 3 on a DIMACS parse error. If a result file is given, it
receives `SAT` followed by a line with the model as DIMACS literals ended by
`0` (as produced by `cdclsat.cli.format_model`), or `UNSAT`, or `INDET`.

An interrupt (Ctrl-C) while the input is read stops the program at once;
during the search it asks the solver to stop, which then reports
`INDETERMINATE`.

## Library use

```python
from cdclsat.solver import Solver
from cdclsat.types import Lit

s = Solver()
a, b = s.new_var(), s.new_var()
s.add_clause([Lit.from_dimacs(1), Lit.from_dimacs(2)])
s.add_clause([Lit.from_dimacs(-1)])

if s.solve([]):
    print(s.model_value(b))   # LBool.TRUE
```

A DIMACS problem can be loaded straight into a solver; `parse_dimacs` returns
the number of clauses read and raises `DimacsParseError` on malformed input.
`parse_dimacs_file` reads a plain or gzipped file.

```python
from cdclsat.dimacs import parse_dimacs
from cdclsat.solver import Solver

s = Solver()
parse_dimacs("p cnf 2 2\n1 2 0\n-1 0\n", s, False)
print(s.solve([]))
```

Modules:

- `cdclsat.types` — `Lit`, `make_lit`, the three-valued `LBool`, `Clause`
  (with subsumption checks) and `OccLists`
- `cdclsat.dimacs` — the DIMACS reader
- `cdclsat.heuristics` — `RandomSource`, the `luby` sequence and
  `VarOrderHeap`
- `cdclsat.engine` — `SolverCore`: variables, clause database, propagation,
  conflict analysis and `simplify`
- `cdclsat.solver` — `Solver`, the search loop
- `cdclsat.cli` — the command line front end

`Solver` takes its tuning parameters as keyword arguments (for example
`verbosity`, `var_decay`, `clause_decay`, `random_var_freq`, `random_seed`,
`luby_restart`, `ccmin_mode`, `phase_saving`, `restart_first`, `restart_inc`).
After a satisfiable `solve`, `model` holds a value for every variable; after
an unsatisfiable one under assumptions, `conflict` holds the final conflict in
terms of the negated assumptions.

`solve_limited` runs under the budgets set with `set_conf_budget` and
`set_prop_budget` and returns `LBool.UNDEF` when cut short; `interrupt` stops a
running search the same way. `implies` returns the literals implied by unit
propagation from a set of assumptions, or `None` on a conflict.

## Limitations

- There is no preprocessing such as variable elimination or subsumption over
  the whole clause database.
- The solver cannot write its clause set back out as DIMACS.
- Being pure Python, it is much slower than compiled solvers on large
  instances.

## Tests

```
pip install .[test]
pytest
```