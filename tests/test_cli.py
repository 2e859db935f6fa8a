import gzip
import io

import pytest

from cdclsat.cli import main, format_model
from cdclsat.solver import Solver
from cdclsat.types import Lit


SAT_CNF = "c example\np cnf 3 3\n1 -2 0\n2 3 0\n-1 -3 0\n"
UNSAT_CNF = "p cnf 2 4\n1 2 0\n-1 2 0\n1 -2 0\n-1 -2 0\n"


def _clauses(text):
    clauses = []
    for line in text.splitlines():
        if not line or line[0] in "cp":
            continue
        numbers = [int(tok) for tok in line.split()]
        clauses.append(numbers[:-1])
    return clauses


def _check_model(line, text):
    tokens = [int(tok) for tok in line.split()]
    assert tokens[-1] == 0
    assigned = set(tokens[:-1])
    for clause in _clauses(text):
        assert any(lit in assigned for lit in clause)


def _solver_with(clauses):
    solver = Solver()
    for clause in clauses:
        for value in clause:
            while abs(value) > solver.n_vars():
                solver.new_var()
        solver.add_clause([Lit.from_dimacs(v) for v in clause])
    return solver


def test_satisfiable_file_writes_model(tmp_path, capsys):
    src = tmp_path / "problem.cnf"
    src.write_text(SAT_CNF)
    out = tmp_path / "result.txt"
    code = main(["-verb=0", str(src), str(out)])
    assert code == 10
    assert "SATISFIABLE" in capsys.readouterr().out.splitlines()
    lines = out.read_text().splitlines()
    assert lines[0] == "SAT"
    _check_model(lines[1], SAT_CNF)


def test_unsatisfiable_file(tmp_path, capsys):
    src = tmp_path / "problem.cnf"
    src.write_text(UNSAT_CNF)
    out = tmp_path / "result.txt"
    assert main(["-verb=0", str(src), str(out)]) == 20
    assert "UNSATISFIABLE" in capsys.readouterr().out.splitlines()
    assert out.read_text() == "UNSAT\n"


def test_unsat_by_unit_propagation(tmp_path, capsys):
    src = tmp_path / "problem.cnf"
    src.write_text("p cnf 1 2\n1 0\n-1 0\n")
    out = tmp_path / "result.txt"
    assert main(["-verb=1", str(src), str(out)]) == 20
    printed = capsys.readouterr().out
    assert "Solved by unit propagation" in printed
    assert out.read_text() == "UNSAT\n"


def test_gzipped_input(tmp_path):
    src = tmp_path / "problem.cnf.gz"
    src.write_bytes(gzip.compress(SAT_CNF.encode()))
    out = tmp_path / "result.txt"
    assert main(["-verb=0", str(src), str(out)]) == 10
    _check_model(out.read_text().splitlines()[1], SAT_CNF)


def test_missing_file_reports_error(tmp_path, capsys):
    missing = tmp_path / "absent.cnf"
    assert main(["-verb=0", str(missing)]) == 1
    assert "ERROR! Could not open file" in capsys.readouterr().out


def test_parse_error_exit_code(tmp_path, capsys):
    src = tmp_path / "problem.cnf"
    src.write_text("p dnf 1 1\n1 0\n")
    assert main(["-verb=0", str(src)]) == 3
    assert "PARSE ERROR!" in capsys.readouterr().out


def test_strict_header_mismatch(tmp_path):
    src = tmp_path / "problem.cnf"
    src.write_text("p cnf 1 2\n1 0\n")
    assert main(["-verb=0", "-strict", str(src)]) == 3
    assert main(["-verb=0", str(src)]) == 10


def test_reads_standard_input(monkeypatch, capsys):
    stream = io.TextIOWrapper(io.BytesIO(UNSAT_CNF.encode()))
    monkeypatch.setattr("sys.stdin", stream)
    assert main(["-verb=0"]) == 20
    printed = capsys.readouterr().out
    assert "Reading from standard input" in printed


def test_verbose_prints_problem_statistics(tmp_path, capsys):
    src = tmp_path / "problem.cnf"
    src.write_text(SAT_CNF)
    assert main(["-verb=1", str(src)]) == 10
    printed = capsys.readouterr().out
    assert "Problem Statistics" in printed
    assert "Search Statistics" in printed


def test_verbosity_out_of_range_rejected(tmp_path):
    src = tmp_path / "problem.cnf"
    src.write_text(SAT_CNF)
    with pytest.raises(SystemExit) as info:
        main(["-verb=5", str(src)])
    assert info.value.code == 2


def test_format_model_units():
    solver = _solver_with([[1], [-2]])
    assert solver.solve()
    assert format_model(solver) == "1 -2 0"


def test_format_model_satisfies_clauses():
    clauses = _clauses(SAT_CNF)
    solver = _solver_with(clauses)
    assert solver.solve()
    line = format_model(solver)
    _check_model(line, SAT_CNF)
    assert len(line.split()) == solver.n_vars() + 1