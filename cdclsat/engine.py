"""Solver state: variables, clause database, unit propagation and conflict analysis.

:class:`SolverCore` holds everything the search needs; the search loop itself
is built on top of it.
"""

from __future__ import annotations

import math
from itertools import islice
from typing import Iterable, Iterator, List, Optional, Tuple, Union

from .heuristics import RandomSource, VarOrderHeap
from .types import LIT_UNDEF, VAR_UNDEF, Clause, LBool, Lit, OccLists, make_lit

_UNIT_SIZE = 4

_SEEN_UNDEF = 0
_SEEN_SOURCE = 1
_SEEN_REMOVABLE = 2
_SEEN_FAILED = 3


class _Watcher:
    """Entry of a watch list: a clause and a literal that, when true, satisfies it."""

    __slots__ = ("cref", "blocker")

    def __init__(self, cref: Clause, blocker: Lit) -> None:
        self.cref = cref
        self.blocker = blocker


def _watcher_deleted(watcher: _Watcher) -> bool:
    return watcher.cref.removed


def _remove_watch(watchers: List[_Watcher], clause: Clause) -> None:
    for position, watcher in enumerate(watchers):
        if watcher.cref is clause:
            del watchers[position]
            return
    raise ValueError("clause is not watched here")


def _store(items: list, index: int, value) -> None:
    if index < len(items):
        items[index] = value
    else:
        items.append(value)


def _clause_words(clause: Clause) -> int:
    return 1 + len(clause) + int(clause.has_extra)


class SolverCore:
    """Variables, clauses, trail and the propagation/analysis machinery of a CDCL solver."""

    def __init__(
        self,
        *,
        verbosity: int = 0,
        var_decay: float = 0.95,
        clause_decay: float = 0.999,
        random_var_freq: float = 0.0,
        random_seed: float = 91648253.0,
        luby_restart: bool = True,
        ccmin_mode: int = 2,
        phase_saving: int = 2,
        rnd_pol: bool = False,
        rnd_init_act: bool = False,
        garbage_frac: float = 0.20,
        min_learnts_lim: int = 0,
        restart_first: int = 100,
        restart_inc: float = 2.0,
        learntsize_factor: float = 1.0 / 3.0,
        learntsize_inc: float = 1.1,
        learntsize_adjust_start_confl: int = 100,
        learntsize_adjust_inc: float = 1.5,
    ) -> None:
        if ccmin_mode not in (0, 1, 2):
            raise ValueError("ccmin_mode must be 0, 1 or 2")
        if phase_saving not in (0, 1, 2):
            raise ValueError("phase_saving must be 0, 1 or 2")

        self.verbosity = verbosity
        self.var_decay = var_decay
        self.clause_decay = clause_decay
        self.random_var_freq = random_var_freq
        self.luby_restart = luby_restart
        self.ccmin_mode = ccmin_mode
        self.phase_saving = phase_saving
        self.rnd_pol = rnd_pol
        self.rnd_init_act = rnd_init_act
        self.garbage_frac = garbage_frac
        self.min_learnts_lim = min_learnts_lim
        self.restart_first = restart_first
        self.restart_inc = restart_inc
        self.learntsize_factor = learntsize_factor
        self.learntsize_inc = learntsize_inc
        self.learntsize_adjust_start_confl = learntsize_adjust_start_confl
        self.learntsize_adjust_inc = learntsize_adjust_inc
        self._rand = RandomSource(random_seed)

        # Statistics:
        self.solves = 0
        self.starts = 0
        self.decisions = 0
        self.rnd_decisions = 0
        self.propagations = 0
        self.conflicts = 0
        self.dec_vars = 0
        self.num_clauses = 0
        self.num_learnts = 0
        self.clauses_literals = 0
        self.learnts_literals = 0
        self.max_literals = 0
        self.tot_literals = 0

        # Solver state:
        self._clauses: List[Clause] = []
        self._learnts: List[Clause] = []
        self._trail: List[Lit] = []
        self._trail_lim: List[int] = []
        self._activity: List[float] = []
        self._assigns: List[LBool] = []
        self._polarity: List[bool] = []
        self._user_pol: List[LBool] = []
        self._decision: List[bool] = []
        self._reason: List[Optional[Clause]] = []
        self._level: List[int] = []
        self._seen: List[int] = []
        self._watches: OccLists[Lit, _Watcher] = OccLists(_watcher_deleted)
        self._order_heap = VarOrderHeap(self._activity)

        self._ok = True
        self._cla_inc = 1.0
        self._var_inc = 1.0
        self._qhead = 0
        self._simp_db_assigns = -1
        self._simp_db_props = 0
        self._progress_estimate = 0.0
        self._remove_satisfied = True
        self._next_var = 0
        self._released_vars: List[int] = []
        self._free_vars: List[int] = []
        self._analyze_toclear: List[Lit] = []

        # Clause memory accounting, in 32-bit words:
        self._ca_size = 0
        self._ca_wasted = 0

    # ------------------------------------------------------------------
    # Problem specification

    @property
    def random_seed(self) -> float:
        return self._rand.seed

    def new_var(self, upol: LBool = LBool.UNDEF, dvar: bool = True) -> int:
        """Create a variable (reusing a released one if possible) and return it."""
        if self._free_vars:
            v = self._free_vars.pop()
        else:
            v = self._next_var
            self._next_var += 1

        self._watches.init(make_lit(v, False))
        self._watches.init(make_lit(v, True))
        _store(self._assigns, v, LBool.UNDEF)
        _store(self._reason, v, None)
        _store(self._level, v, 0)
        _store(self._activity, v, self._rand.drand() * 0.00001 if self.rnd_init_act else 0.0)
        _store(self._seen, v, 0)
        _store(self._polarity, v, True)
        _store(self._user_pol, v, upol)
        if v >= len(self._decision):
            self._decision.append(False)
        self._order_heap.grow(v)
        self.set_decision_var(v, dvar)
        return v

    def release_var(self, lit: Lit) -> None:
        """Make ``lit`` true and allow its variable to be reused later."""
        if self.value(lit) is LBool.UNDEF:
            self.add_clause([lit])
            self._released_vars.append(lit.var)

    def add_clause(self, lits: Iterable[Lit]) -> bool:
        """Add a clause at the top level; return False if the solver became inconsistent."""
        if self._trail_lim:
            raise RuntimeError("clauses can only be added at decision level 0")
        ps = sorted(lits)
        for lit in ps:
            if not 0 <= lit.var < self._next_var:
                raise ValueError(f"literal {lit!r} refers to an unknown variable")
        if not self._ok:
            return False

        kept: List[Lit] = []
        prev = LIT_UNDEF
        for lit in ps:
            val = self.value(lit)
            if val is LBool.TRUE or lit == ~prev:
                return True
            if val is not LBool.FALSE and lit != prev:
                kept.append(lit)
                prev = lit

        if not kept:
            self._ok = False
            return False
        if len(kept) == 1:
            self._unchecked_enqueue(kept[0])
            self._ok = self._propagate() is None
            return self._ok
        clause = self._alloc(kept, learnt=False)
        self._clauses.append(clause)
        self._attach_clause(clause)
        return True

    def add_empty_clause(self) -> bool:
        """Add the empty clause, making the solver contradictory."""
        return self.add_clause([])

    def set_polarity(self, var: int, value: LBool) -> None:
        """Fix the polarity the decision heuristic uses for ``var`` (UNDEF to clear)."""
        self._user_pol[var] = value

    def set_decision_var(self, var: int, eligible: bool) -> None:
        """Declare whether ``var`` may be picked by the decision heuristic."""
        if eligible and not self._decision[var]:
            self.dec_vars += 1
        elif not eligible and self._decision[var]:
            self.dec_vars -= 1
        self._decision[var] = bool(eligible)
        self._insert_var_order(var)

    # ------------------------------------------------------------------
    # Reading state

    def value(self, item: Union[Lit, int]) -> LBool:
        """Current value of a variable or literal."""
        if isinstance(item, Lit):
            return self._assigns[item.var] ^ item.sign
        if isinstance(item, int) and not isinstance(item, bool):
            return self._assigns[item]
        raise TypeError(f"expected a Lit or a variable, got {item!r}")

    def okay(self) -> bool:
        """False means the constraints are already known to be unsatisfiable."""
        return self._ok

    def n_vars(self) -> int:
        return self._next_var

    def n_clauses(self) -> int:
        return self.num_clauses

    def n_learnts(self) -> int:
        return self.num_learnts

    def n_assigns(self) -> int:
        return len(self._trail)

    def n_free_vars(self) -> int:
        return self.dec_vars - (self._trail_lim[0] if self._trail_lim else len(self._trail))

    def iter_clauses(self) -> Iterator[Clause]:
        """Iterate over the original (problem) clauses."""
        return iter(list(self._clauses))

    def iter_trail(self) -> Iterator[Lit]:
        """Iterate over the top-level assignments."""
        end = self._trail_lim[0] if self._trail_lim else len(self._trail)
        return iter(self._trail[:end])

    # ------------------------------------------------------------------
    # Simplification

    def simplify(self) -> bool:
        """Remove clauses satisfied at the top level; False if a conflict is found."""
        if self._trail_lim:
            raise RuntimeError("simplify must be called at decision level 0")
        if not self._ok or self._propagate() is not None:
            self._ok = False
            return False
        if self.n_assigns() == self._simp_db_assigns or self._simp_db_props > 0:
            return True

        self._remove_satisfied_from(self._learnts)
        if self._remove_satisfied:
            self._remove_satisfied_from(self._clauses)
            released = set(self._released_vars)
            self._trail[:] = [lit for lit in self._trail if lit.var not in released]
            self._qhead = len(self._trail)
            self._free_vars.extend(self._released_vars)
            self._released_vars.clear()
        self._check_garbage()
        self._rebuild_order_heap()

        self._simp_db_assigns = self.n_assigns()
        self._simp_db_props = self.clauses_literals + self.learnts_literals
        return True

    def _remove_satisfied_from(self, clauses: List[Clause]) -> None:
        kept: List[Clause] = []
        for clause in clauses:
            if self._satisfied(clause):
                self._remove_clause(clause)
                continue
            k = 2
            while k < len(clause):
                if self.value(clause[k]) is LBool.FALSE:
                    clause[k] = clause[-1]
                    clause.pop()
                else:
                    k += 1
            kept.append(clause)
        clauses[:] = kept

    def _rebuild_order_heap(self) -> None:
        self._order_heap.build(
            v
            for v, (eligible, val) in enumerate(zip(self._decision, self._assigns))
            if eligible and val is LBool.UNDEF
        )

    # ------------------------------------------------------------------
    # Memory management

    def garbage_collect(self) -> None:
        """Purge removed clauses from watch lists and clause lists."""
        old_size = self._ca_size
        self._watches.clean_all()
        self._learnts[:] = [c for c in self._learnts if not c.removed]
        self._clauses[:] = [c for c in self._clauses if not c.removed]
        self._ca_size = sum(_clause_words(c) for c in self._learnts) + sum(
            _clause_words(c) for c in self._clauses
        )
        self._ca_wasted = 0
        if self.verbosity >= 2:
            print(
                f"|  Garbage collection:   {old_size * _UNIT_SIZE:12d} bytes => "
                f"{self._ca_size * _UNIT_SIZE:12d} bytes             |"
            )

    def _check_garbage(self, fraction: Optional[float] = None) -> None:
        if fraction is None:
            fraction = self.garbage_frac
        if self._ca_wasted > self._ca_size * fraction:
            self.garbage_collect()

    # ------------------------------------------------------------------
    # Clause operations

    def _alloc(self, lits: Iterable[Lit], learnt: bool) -> Clause:
        clause = Clause(lits, learnt=learnt)
        self._ca_size += _clause_words(clause)
        return clause

    def _attach_clause(self, clause: Clause) -> None:
        if len(clause) < 2:
            raise ValueError("only clauses of two or more literals are watched")
        self._watches[~clause[0]].append(_Watcher(clause, clause[1]))
        self._watches[~clause[1]].append(_Watcher(clause, clause[0]))
        if clause.learnt:
            self.num_learnts += 1
            self.learnts_literals += len(clause)
        else:
            self.num_clauses += 1
            self.clauses_literals += len(clause)

    def _detach_clause(self, clause: Clause, strict: bool = False) -> None:
        if strict:
            _remove_watch(self._watches[~clause[0]], clause)
            _remove_watch(self._watches[~clause[1]], clause)
        else:
            self._watches.smudge(~clause[0])
            self._watches.smudge(~clause[1])
        if clause.learnt:
            self.num_learnts -= 1
            self.learnts_literals -= len(clause)
        else:
            self.num_clauses -= 1
            self.clauses_literals -= len(clause)

    def _remove_clause(self, clause: Clause) -> None:
        self._detach_clause(clause)
        if self._locked(clause):
            self._reason[clause[0].var] = None
        clause.mark = 1
        self._ca_wasted += _clause_words(clause)

    def _locked(self, clause: Clause) -> bool:
        first = clause[0]
        return self.value(first) is LBool.TRUE and self._reason[first.var] is clause

    def _satisfied(self, clause: Clause) -> bool:
        return any(self.value(lit) is LBool.TRUE for lit in clause)

    # ------------------------------------------------------------------
    # Trail handling

    def _decision_level(self) -> int:
        return len(self._trail_lim)

    def _new_decision_level(self) -> None:
        self._trail_lim.append(len(self._trail))

    def _unchecked_enqueue(self, p: Lit, reason: Optional[Clause] = None) -> None:
        v = p.var
        self._assigns[v] = LBool.from_bool(not p.sign)
        self._reason[v] = reason
        self._level[v] = self._decision_level()
        self._trail.append(p)

    def _enqueue(self, p: Lit, reason: Optional[Clause] = None) -> bool:
        val = self.value(p)
        if val is not LBool.UNDEF:
            return val is not LBool.FALSE
        self._unchecked_enqueue(p, reason)
        return True

    def _cancel_until(self, level: int) -> None:
        """Undo all assignments above decision ``level``."""
        if self._decision_level() <= level:
            return
        start = self._trail_lim[level]
        last_lim = self._trail_lim[-1]
        for position in reversed(range(start, len(self._trail))):
            lit = self._trail[position]
            x = lit.var
            self._assigns[x] = LBool.UNDEF
            if self.phase_saving > 1 or (self.phase_saving == 1 and position > last_lim):
                self._polarity[x] = lit.sign
            self._insert_var_order(x)
        self._qhead = start
        del self._trail[start:]
        del self._trail_lim[level:]

    def _insert_var_order(self, var: int) -> None:
        if var not in self._order_heap and self._decision[var]:
            self._order_heap.insert(var)

    # ------------------------------------------------------------------
    # Activities

    def _var_decay_activity(self) -> None:
        self._var_inc *= 1 / self.var_decay

    def _var_bump_activity(self, var: int, inc: Optional[float] = None) -> None:
        if inc is None:
            inc = self._var_inc
        self._activity[var] += inc
        if self._activity[var] > 1e100:
            self._activity[:] = [a * 1e-100 for a in self._activity]
            self._var_inc *= 1e-100
        if var in self._order_heap:
            self._order_heap.decrease(var)

    def _cla_decay_activity(self) -> None:
        self._cla_inc *= 1 / self.clause_decay

    def _cla_bump_activity(self, clause: Clause) -> None:
        clause.activity += self._cla_inc
        if clause.activity > 1e20:
            for learnt in self._learnts:
                learnt.activity *= 1e-20
            self._cla_inc *= 1e-20

    # ------------------------------------------------------------------
    # Propagation

    def _propagate(self) -> Optional[Clause]:
        """Propagate all enqueued facts; return a conflicting clause or None."""
        confl: Optional[Clause] = None
        num_props = 0
        trail = self._trail
        value = self.value

        while self._qhead < len(trail):
            p = trail[self._qhead]
            self._qhead += 1
            watchers = self._watches.lookup(p)
            num_props += 1
            false_lit = ~p
            kept: List[_Watcher] = []
            pending = iter(watchers)

            for watcher in pending:
                blocker = watcher.blocker
                if value(blocker) is LBool.TRUE:
                    kept.append(watcher)
                    continue

                clause = watcher.cref
                if clause[0] == false_lit:
                    clause[0], clause[1] = clause[1], false_lit

                first = clause[0]
                new_watcher = _Watcher(clause, first)
                if first != blocker and value(first) is LBool.TRUE:
                    kept.append(new_watcher)
                    continue

                for k, lit in enumerate(islice(clause.lits, 2, None), 2):
                    if value(lit) is not LBool.FALSE:
                        clause[1] = lit
                        clause[k] = false_lit
                        self._watches[~lit].append(new_watcher)
                        break
                else:
                    kept.append(new_watcher)
                    if value(first) is LBool.FALSE:
                        confl = clause
                        self._qhead = len(trail)
                        kept.extend(pending)
                    else:
                        self._unchecked_enqueue(first, clause)

            watchers[:] = kept

        self.propagations += num_props
        self._simp_db_props -= num_props
        return confl

    # ------------------------------------------------------------------
    # Decisions and conflict analysis

    def _pick_branch_lit(self) -> Lit:
        heap = self._order_heap
        next_var = VAR_UNDEF

        if self._rand.drand() < self.random_var_freq and len(heap):
            next_var = heap[self._rand.irand(len(heap))]
            if self._assigns[next_var] is LBool.UNDEF and self._decision[next_var]:
                self.rnd_decisions += 1

        while (
            next_var == VAR_UNDEF
            or self._assigns[next_var] is not LBool.UNDEF
            or not self._decision[next_var]
        ):
            if not len(heap):
                next_var = VAR_UNDEF
                break
            next_var = heap.remove_min()

        if next_var == VAR_UNDEF:
            return LIT_UNDEF
        if self._user_pol[next_var] is not LBool.UNDEF:
            return make_lit(next_var, self._user_pol[next_var] is LBool.TRUE)
        if self.rnd_pol:
            return make_lit(next_var, self._rand.drand() < 0.5)
        return make_lit(next_var, self._polarity[next_var])

    def _analyze(self, confl: Clause) -> Tuple[List[Lit], int]:
        """Derive a learnt clause from a conflict and the level to backtrack to.

        The first literal of the result is the asserting literal; if there is
        more than one, the second has the highest level among the rest.
        """
        seen, level, reason, trail = self._seen, self._level, self._reason, self._trail
        current = self._decision_level()
        path_count = 0
        p = LIT_UNDEF
        learnt: List[Lit] = [LIT_UNDEF]
        index = len(trail) - 1

        while True:
            if confl is None:
                raise RuntimeError("conflict analysis reached a literal without a reason")
            if confl.learnt:
                self._cla_bump_activity(confl)
            start = 0 if p == LIT_UNDEF else 1
            for q in islice(confl.lits, start, None):
                v = q.var
                if not seen[v] and level[v] > 0:
                    self._var_bump_activity(v)
                    seen[v] = 1
                    if level[v] >= current:
                        path_count += 1
                    else:
                        learnt.append(q)
            while not seen[trail[index].var]:
                index -= 1
            p = trail[index]
            index -= 1
            confl = reason[p.var]
            seen[p.var] = 0
            path_count -= 1
            if path_count <= 0:
                break
        learnt[0] = ~p

        self._analyze_toclear = list(learnt)
        if self.ccmin_mode == 2:
            kept = [learnt[0]] + [
                lit
                for lit in learnt[1:]
                if reason[lit.var] is None or not self._lit_redundant(lit)
            ]
        elif self.ccmin_mode == 1:
            kept = [learnt[0]] + [
                lit
                for lit in learnt[1:]
                if reason[lit.var] is None
                or any(
                    not seen[q.var] and level[q.var] > 0
                    for q in islice(reason[lit.var].lits, 1, None)
                )
            ]
        else:
            kept = learnt

        self.max_literals += len(learnt)
        self.tot_literals += len(kept)

        if len(kept) == 1:
            backtrack_level = 0
        else:
            max_i = 1
            for position, lit in enumerate(islice(kept, 2, None), 2):
                if level[lit.var] > level[kept[max_i].var]:
                    max_i = position
            kept[1], kept[max_i] = kept[max_i], kept[1]
            backtrack_level = level[kept[1].var]

        for lit in self._analyze_toclear:
            seen[lit.var] = 0
        return kept, backtrack_level

    def _lit_redundant(self, p: Lit) -> bool:
        """Check whether ``p`` can be removed from the clause being learnt."""
        seen, level, reason = self._seen, self._level, self._reason
        clause = reason[p.var]
        stack: List[Tuple[int, Lit]] = []
        i = 1

        while True:
            if i < len(clause):
                lit = clause[i]
                v = lit.var
                if level[v] == 0 or seen[v] in (_SEEN_SOURCE, _SEEN_REMOVABLE):
                    i += 1
                    continue
                if reason[v] is None or seen[v] == _SEEN_FAILED:
                    stack.append((0, p))
                    for _, q in stack:
                        if seen[q.var] == _SEEN_UNDEF:
                            seen[q.var] = _SEEN_FAILED
                            self._analyze_toclear.append(q)
                    return False
                stack.append((i, p))
                i = 1
                p = lit
                clause = reason[v]
            else:
                if seen[p.var] == _SEEN_UNDEF:
                    seen[p.var] = _SEEN_REMOVABLE
                    self._analyze_toclear.append(p)
                if not stack:
                    return True
                i, p = stack.pop()
                clause = reason[p.var]
                i += 1

    def _analyze_final(self, p: Lit) -> List[Lit]:
        """Express the final conflict on ``p`` in terms of the assumptions."""
        out = [p]
        if self._decision_level() == 0:
            return out
        seen, level, reason = self._seen, self._level, self._reason
        seen[p.var] = 1
        for lit in reversed(self._trail[self._trail_lim[0]:]):
            x = lit.var
            if not seen[x]:
                continue
            why = reason[x]
            if why is None:
                negated = ~lit
                if negated not in out:
                    out.append(negated)
            else:
                for q in islice(why.lits, 1, None):
                    if level[q.var] > 0:
                        seen[q.var] = 1
            seen[x] = 0
        seen[p.var] = 0
        return out

    def _reduce_db(self) -> None:
        """Remove about half of the learnt clauses, keeping binary and locked ones."""
        learnts = self._learnts
        extra_lim = self._cla_inc / len(learnts) if learnts else math.inf
        learnts.sort(key=lambda c: (len(c) <= 2, c.activity if len(c) > 2 else 0.0))
        half = len(learnts) // 2
        kept: List[Clause] = []
        for position, clause in enumerate(learnts):
            if (
                len(clause) > 2
                and not self._locked(clause)
                and (position < half or clause.activity < extra_lim)
            ):
                self._remove_clause(clause)
            else:
                kept.append(clause)
        learnts[:] = kept
        self._check_garbage()