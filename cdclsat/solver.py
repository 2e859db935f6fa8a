"""The CDCL search loop: restarts, learnt clause management, assumptions and budgets."""

from __future__ import annotations

from typing import Iterable, List, Optional, Union

from .engine import SolverCore
from .heuristics import luby
from .types import LIT_UNDEF, LBool, Lit

_RULE = "=" * 79


class Solver(SolverCore):
    """A complete conflict-driven clause-learning SAT solver.

    After a satisfiable call to :meth:`solve`, :attr:`model` holds the value of
    every variable. After an unsatisfiable call under assumptions,
    :attr:`conflict` holds the final conflict expressed in negated assumptions.
    """

    def __init__(self, **options) -> None:
        super().__init__(**options)
        self.model: List[LBool] = []
        self.conflict: List[Lit] = []
        self._assumptions: List[Lit] = []
        self._conflict_budget = -1
        self._propagation_budget = -1
        self._asynch_interrupt = False
        self._max_learnts = 0.0
        self._learntsize_adjust_confl = 0.0
        self._learntsize_adjust_cnt = 0

    # ------------------------------------------------------------------
    # Solving

    def solve(self, assumptions: Iterable[Lit] = ()) -> bool:
        """Search for a model respecting ``assumptions``, without resource limits."""
        self.budget_off()
        self._assumptions = list(assumptions)
        return self._solve() is LBool.TRUE

    def solve_limited(self, assumptions: Iterable[Lit] = ()) -> LBool:
        """Search under the current budgets; UNDEF means the search was cut short."""
        self._assumptions = list(assumptions)
        return self._solve()

    def implies(self, assumptions: Iterable[Lit]) -> Optional[List[Lit]]:
        """Return the literals propagated from ``assumptions``, or None on a conflict."""
        self._new_decision_level()
        for lit in assumptions:
            val = self.value(lit)
            if val is LBool.FALSE:
                self._cancel_until(0)
                return None
            if val is LBool.UNDEF:
                self._unchecked_enqueue(lit)

        trail_before = len(self._trail)
        implied: Optional[List[Lit]] = None
        if self._propagate() is None:
            implied = self._trail[trail_before:]
        self._cancel_until(0)
        return implied

    def model_value(self, item: Union[Lit, int]) -> LBool:
        """Value of a variable or literal in the last model found."""
        if isinstance(item, Lit):
            return self.model[item.var] ^ item.sign
        if isinstance(item, int) and not isinstance(item, bool):
            return self.model[item]
        raise TypeError(f"expected a Lit or a variable, got {item!r}")

    def progress_estimate(self) -> float:
        """Rough estimate of how much of the search space has been covered."""
        n_vars = self.n_vars()
        if n_vars == 0:
            return 0.0
        factor = 1.0 / n_vars
        level = self._decision_level()
        progress = 0.0
        for i in range(level + 1):
            begin = 0 if i == 0 else self._trail_lim[i - 1]
            end = len(self._trail) if i == level else self._trail_lim[i]
            progress += factor**i * (end - begin)
        return progress / n_vars

    # ------------------------------------------------------------------
    # Resource constraints

    def set_conf_budget(self, budget: int) -> None:
        """Allow at most ``budget`` further conflicts in limited solving."""
        self._conflict_budget = self.conflicts + budget

    def set_prop_budget(self, budget: int) -> None:
        """Allow at most ``budget`` further propagations in limited solving."""
        self._propagation_budget = self.propagations + budget

    def budget_off(self) -> None:
        self._conflict_budget = -1
        self._propagation_budget = -1

    def interrupt(self) -> None:
        """Ask a running search to stop at the next opportunity."""
        self._asynch_interrupt = True

    def clear_interrupt(self) -> None:
        self._asynch_interrupt = False

    def within_budget(self) -> bool:
        return (
            not self._asynch_interrupt
            and (self._conflict_budget < 0 or self.conflicts < self._conflict_budget)
            and (
                self._propagation_budget < 0
                or self.propagations < self._propagation_budget
            )
        )

    # ------------------------------------------------------------------
    # Search

    def _solve(self) -> LBool:
        self.model = []
        self.conflict = []
        if not self._ok:
            return LBool.FALSE

        self.solves += 1
        self._max_learnts = max(
            self.n_clauses() * self.learntsize_factor, float(self.min_learnts_lim)
        )
        self._learntsize_adjust_confl = float(self.learntsize_adjust_start_confl)
        self._learntsize_adjust_cnt = int(self._learntsize_adjust_confl)
        status = LBool.UNDEF

        if self.verbosity >= 1:
            print("============================[ Search Statistics ]==============================")
            print("| Conflicts |          ORIGINAL         |          LEARNT          | Progress |")
            print("|           |    Vars  Clauses Literals |    Limit  Clauses Lit/Cl |          |")
            print(_RULE)

        restarts = 0
        while status is LBool.UNDEF:
            if self.luby_restart:
                rest_base = luby(self.restart_inc, restarts)
            else:
                rest_base = self.restart_inc**restarts
            status = self._search(int(rest_base * self.restart_first))
            if not self.within_budget():
                break
            restarts += 1

        if self.verbosity >= 1:
            print(_RULE)

        if status is LBool.TRUE:
            self.model = [self.value(v) for v in range(self.n_vars())]
        elif status is LBool.FALSE and not self.conflict:
            self._ok = False

        self._cancel_until(0)
        return status

    def _search(self, nof_conflicts: int) -> LBool:
        """Search until a model, a refutation, or ``nof_conflicts`` conflicts (negative: no bound)."""
        if not self._ok:
            raise RuntimeError("search started on an inconsistent solver")
        conflict_count = 0
        self.starts += 1

        while True:
            confl = self._propagate()
            if confl is not None:
                self.conflicts += 1
                conflict_count += 1
                if self._decision_level() == 0:
                    return LBool.FALSE

                learnt, backtrack_level = self._analyze(confl)
                self._cancel_until(backtrack_level)
                if len(learnt) == 1:
                    self._unchecked_enqueue(learnt[0])
                else:
                    clause = self._alloc(learnt, learnt=True)
                    self._learnts.append(clause)
                    self._attach_clause(clause)
                    self._cla_bump_activity(clause)
                    self._unchecked_enqueue(learnt[0], clause)

                self._var_decay_activity()
                self._cla_decay_activity()

                self._learntsize_adjust_cnt -= 1
                if self._learntsize_adjust_cnt == 0:
                    self._learntsize_adjust_confl *= self.learntsize_adjust_inc
                    self._learntsize_adjust_cnt = int(self._learntsize_adjust_confl)
                    self._max_learnts *= self.learntsize_inc
                    if self.verbosity >= 1:
                        self._print_progress()
                continue

            if (nof_conflicts >= 0 and conflict_count >= nof_conflicts) or not self.within_budget():
                self._progress_estimate = self.progress_estimate()
                self._cancel_until(0)
                return LBool.UNDEF

            if self._decision_level() == 0 and not self.simplify():
                return LBool.FALSE

            if len(self._learnts) - self.n_assigns() >= self._max_learnts:
                self._reduce_db()

            next_lit = LIT_UNDEF
            while self._decision_level() < len(self._assumptions):
                p = self._assumptions[self._decision_level()]
                val = self.value(p)
                if val is LBool.TRUE:
                    self._new_decision_level()
                elif val is LBool.FALSE:
                    self.conflict = self._analyze_final(~p)
                    return LBool.FALSE
                else:
                    next_lit = p
                    break

            if next_lit == LIT_UNDEF:
                self.decisions += 1
                next_lit = self._pick_branch_lit()
                if next_lit == LIT_UNDEF:
                    return LBool.TRUE

            self._new_decision_level()
            self._unchecked_enqueue(next_lit)

    def _print_progress(self) -> None:
        n_learnts = self.n_learnts()
        lits_per_clause = self.learnts_literals / n_learnts if n_learnts else 0.0
        print(
            f"| {self.conflicts:9d} | {self.n_free_vars():7d} {self.n_clauses():8d} "
            f"{self.clauses_literals:8d} | {int(self._max_learnts):8d} {n_learnts:8d} "
            f"{lits_per_clause:6.0f} | {self.progress_estimate() * 100:6.3f} % |"
        )