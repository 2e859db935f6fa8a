import itertools
import random

import pytest

from cdclsat.solver import Solver
from cdclsat.types import LBool, Lit, make_lit


def _solver_with(n_vars, clauses, **options):
    solver = Solver(**options)
    for _ in range(n_vars):
        solver.new_var()
    for clause in clauses:
        solver.add_clause([Lit.from_dimacs(v) for v in clause])
    return solver


def _brute_force_sat(n_vars, clauses):
    for bits in itertools.product([False, True], repeat=n_vars):
        if all(any(bits[abs(v) - 1] == (v > 0) for v in c) for c in clauses):
            return True
    return False


def _model_satisfies(solver, clauses):
    return all(
        any(solver.model_value(Lit.from_dimacs(v)) is LBool.TRUE for v in c)
        for c in clauses
    )


def _pigeonhole(pigeons, holes):
    def var(i, j):
        return i * holes + j + 1

    clauses = [[var(i, j) for j in range(holes)] for i in range(pigeons)]
    for j in range(holes):
        for a, b in itertools.combinations(range(pigeons), 2):
            clauses.append([-var(a, j), -var(b, j)])
    return pigeons * holes, clauses


def test_empty_problem_is_satisfiable():
    solver = Solver()
    assert solver.solve() is True
    assert solver.model == []


def test_simple_satisfiable_model_satisfies_clauses():
    clauses = [[1, 2], [-1, 3], [-2, -3], [2, 3]]
    solver = _solver_with(3, clauses)
    assert solver.solve() is True
    assert len(solver.model) == 3
    assert _model_satisfies(solver, clauses)


def test_contradictory_units():
    solver = _solver_with(1, [[1]])
    assert solver.add_clause([Lit.from_dimacs(-1)]) is False
    assert solver.solve() is False
    assert solver.okay() is False


@pytest.mark.parametrize("ccmin_mode", [0, 1, 2])
@pytest.mark.parametrize("luby_restart", [True, False])
def test_pigeonhole_unsat(ccmin_mode, luby_restart):
    n, clauses = _pigeonhole(5, 4)
    solver = _solver_with(n, clauses, ccmin_mode=ccmin_mode, luby_restart=luby_restart)
    assert solver.solve() is False
    assert solver.conflicts > 0
    assert solver.okay() is False
    assert solver.model == []


def test_pigeonhole_equal_sizes_sat():
    n, clauses = _pigeonhole(4, 4)
    solver = _solver_with(n, clauses)
    assert solver.solve() is True
    assert _model_satisfies(solver, clauses)


@pytest.mark.parametrize("seed", range(12))
def test_random_3sat_agrees_with_brute_force(seed):
    rng = random.Random(seed)
    n_vars = 10
    clauses = []
    for _ in range(43):
        chosen = rng.sample(range(1, n_vars + 1), 3)
        clauses.append([v if rng.random() < 0.5 else -v for v in chosen])
    solver = _solver_with(n_vars, clauses)
    result = solver.solve()
    assert result == _brute_force_sat(n_vars, clauses)
    if result:
        assert _model_satisfies(solver, clauses)


def test_model_enumeration_with_blocking_clauses():
    clauses = [[1, 2, 3]]
    solver = _solver_with(3, clauses)
    models = set()
    while solver.solve():
        model = tuple(solver.model_value(v) is LBool.TRUE for v in range(3))
        models.add(model)
        solver.add_clause([make_lit(v, model[v]) for v in range(3)])
    expected = {m for m in itertools.product([False, True], repeat=3) if any(m)}
    assert models == expected


def test_failing_assumptions_give_conflict_of_negated_assumptions():
    solver = _solver_with(3, [[1, 2]])
    assumptions = [Lit.from_dimacs(-1), Lit.from_dimacs(-2)]
    assert solver.solve(assumptions) is False
    assert solver.conflict
    assert set(solver.conflict) <= {~lit for lit in assumptions}
    assert solver.okay() is True
    assert solver.solve() is True


def test_assumption_respected_in_model():
    solver = _solver_with(2, [[1, 2]])
    assert solver.solve([Lit.from_dimacs(-1)]) is True
    assert solver.model_value(Lit.from_dimacs(1)) is LBool.FALSE
    assert solver.model_value(Lit.from_dimacs(2)) is LBool.TRUE


def test_model_value_literal_matches_variable():
    solver = _solver_with(2, [[1], [-2]])
    assert solver.solve() is True
    for v in range(2):
        assert solver.model_value(make_lit(v)) is solver.model_value(v)
        assert solver.model_value(make_lit(v, True)) is (solver.model_value(v) ^ True)


def test_model_value_rejects_other_types():
    solver = _solver_with(1, [])
    solver.solve()
    with pytest.raises(TypeError):
        solver.model_value("x")


def test_zero_conflict_budget_is_indeterminate():
    n, clauses = _pigeonhole(4, 3)
    solver = _solver_with(n, clauses)
    solver.set_conf_budget(0)
    assert solver.solve_limited() is LBool.UNDEF
    assert solver.model == []
    solver.budget_off()
    assert solver.solve_limited() is LBool.FALSE


def test_zero_propagation_budget_is_indeterminate():
    solver = _solver_with(2, [[1, 2]])
    solver.set_prop_budget(0)
    assert solver.within_budget() is False
    assert solver.solve_limited() is LBool.UNDEF


def test_interrupt_stops_search_until_cleared():
    solver = _solver_with(2, [[1, 2]])
    solver.interrupt()
    assert solver.within_budget() is False
    assert solver.solve() is False
    assert solver.solve_limited() is LBool.UNDEF
    solver.clear_interrupt()
    assert solver.within_budget() is True
    assert solver.solve() is True


def test_implies_returns_propagated_literals():
    solver = _solver_with(3, [[-1, 2], [-2, 3]])
    implied = solver.implies([Lit.from_dimacs(1)])
    assert set(implied) == {Lit.from_dimacs(2), Lit.from_dimacs(3)}
    assert solver.value(Lit.from_dimacs(1)) is LBool.UNDEF
    assert solver.n_assigns() == 0


def test_implies_with_false_assumption():
    solver = _solver_with(2, [[-1]])
    assert solver.implies([Lit.from_dimacs(1)]) is None
    assert solver.value(Lit.from_dimacs(1)) is LBool.FALSE


def test_implies_with_conflicting_propagation():
    solver = _solver_with(3, [[-1, 2], [-1, -2]])
    assert solver.implies([Lit.from_dimacs(1)]) is None
    assert solver.okay() is True


def test_progress_estimate_bounds():
    assert Solver().progress_estimate() == 0.0
    solver = _solver_with(4, [[1], [2, 3]])
    solver.solve()
    estimate = solver.progress_estimate()
    assert 0.0 <= estimate <= 1.0


def test_statistics_increase_with_solving():
    n, clauses = _pigeonhole(5, 4)
    solver = _solver_with(n, clauses)
    solver.solve()
    assert solver.solves == 1
    assert solver.starts >= 1
    assert solver.decisions > 0
    assert solver.propagations > 0


def test_verbose_solve_prints_search_statistics(capsys):
    solver = _solver_with(2, [[1, 2]], verbosity=1)
    assert solver.solve() is True
    out = capsys.readouterr().out
    assert "Search Statistics" in out


def test_non_decision_variable_may_stay_unassigned():
    solver = Solver()
    a = solver.new_var()
    b = solver.new_var(dvar=False)
    solver.add_clause([make_lit(a)])
    assert solver.solve() is True
    assert solver.model_value(a) is LBool.TRUE
    assert solver.model_value(b) is LBool.UNDEF


def test_user_polarity_guides_model():
    solver = Solver()
    v = solver.new_var()
    solver.set_polarity(v, LBool.TRUE)
    assert solver.solve() is True
    assert solver.model_value(make_lit(v, True)) is LBool.TRUE