"""
Lock-state flow analysis (pass 2).

Walks each method body of a mutex-bearing type by recursive descent,
threading an Optional[LockState] through the statements:

- `recv.mu.Lock()` / `recv.mu.Unlock()` (or `recv.Lock()` for an embedded
  mutex) move the state to LOCKED / NOT_LOCKED
- branches join conjunctively; `break`, `continue` and `fallthrough` feed
  their state into the join they jump to
- loops iterate silently to a fixed point, then walk once more to report
- `return` and `goto` end the path (state None)
- `defer` and `go` evaluate the call's operands in place but the call itself
  changes nothing
- function literals are separate scopes starting NOT_LOCKED
- a parameter or local declaration that reuses the receiver name hides the
  receiver until the end of its scope; nothing is tracked through it

The `defer recv.mu.Unlock()` idiom is approximated: the release is assumed to
happen after every statement of the body, and nothing checks that the lock
was actually held when the release was registered.
"""

from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Iterator, List, Optional

from core.utils import debug
from golang.ir import (
    Expr,
    Ident,
    Selector,
    Call,
    FuncLit,
    Composite,
    Stmt,
    SimpleStmt,
    BlockStmt,
    IfStmt,
    ForStmt,
    SwitchStmt,
    SelectStmt,
    CaseClause,
    DeferStmt,
    GoStmt,
    ReturnStmt,
    BranchStmt,
    LabeledStmt,
    stmt_exprs,
)
from golang.utils import SourceLocation
from lockcheck.calls import check_call, resolve_method_call
from lockcheck.classify import MethodDescriptor, MutexBearingType, TypeMap
from lockcheck.lattice import INITIAL_STATE, LockState, join, join_all, may_be_unlocked
from lockcheck.violations import (
    Violation,
    ViolationCollector,
    ViolationKind,
    self_locking_message,
    unguarded_access_message,
)

LOCK_METHOD = "Lock"
UNLOCK_METHOD = "Unlock"

# Two-value lattice: the loop header can only drop from LOCKED to NOT_LOCKED once
MAX_LOOP_PASSES = 3


@dataclass
class _Frame:
    """A statement `break` can target (loop, switch, select)."""

    kind: str
    label: Optional[str]
    breaks: List[Optional[LockState]] = field(default_factory=list)
    continues: List[Optional[LockState]] = field(default_factory=list)
    fallthrough: Optional[LockState] = None


class ScopeAnalyzer:
    """
    Analyzes one scope: a method body or a function literal inside it.

    A fresh instance is used for every scope, so no lock state crosses scope
    boundaries. Violations go to the run-scoped collector.
    """

    def __init__(
        self,
        method: MethodDescriptor,
        mtype: MutexBearingType,
        collector: ViolationCollector,
        check_state: bool = True,
        emit: bool = True,
    ):
        self.method = method
        self.mtype = mtype
        self.collector = collector
        # False for literals that never take the lock: they run in their
        # creator's context, so only the state-independent checks apply
        self.check_state = check_state
        self._emit = emit
        # None while a local declaration hides the receiver name
        self.receiver: Optional[str] = method.receiver
        self._frames: List[_Frame] = []

    def run(self, body: List[Stmt]) -> Optional[LockState]:
        """Walk the scope from the initial state; returns the state at the end of the body."""
        return self._walk_stmts(body, INITIAL_STATE)

    @contextmanager
    def _scope(self) -> Iterator[None]:
        """A Go block: declarations made inside it stop hiding the receiver on exit."""
        receiver = self.receiver
        try:
            yield
        finally:
            self.receiver = receiver

    def _declare(self, names: List[str]) -> None:
        if self.receiver is not None and self.receiver in names:
            debug(f"{self.method.location}: receiver {self.receiver} shadowed in {self.method.name}")
            self.receiver = None

    # =========================================================================
    # Reporting
    # =========================================================================

    def _report(self, expr: Expr, kind: ViolationKind, message: str) -> None:
        if not self._emit:
            return
        location = SourceLocation(self.method.location.file, expr.line, expr.column)
        debug(f"{location}: {message}")
        self.collector.add(Violation(method=self.method.name, location=location, kind=kind, message=message))

    def _on_access(self, expr: Selector, state: Optional[LockState]) -> None:
        if self.method.is_privileged and self.check_state and may_be_unlocked(state):
            self._report(expr, ViolationKind.UNGUARDED_ACCESS, unguarded_access_message(self.method.name, expr.field))

    def _on_lock_call(self, call: Call) -> None:
        if not self.method.is_privileged:
            self._report(call, ViolationKind.SELF_LOCKING, self_locking_message(self.method.name))

    # =========================================================================
    # Statements
    # =========================================================================

    def _walk_stmts(self, stmts: List[Stmt], state: Optional[LockState]) -> Optional[LockState]:
        # Unreachable statements are still walked for the state-independent checks
        with self._scope():
            for stmt in stmts:
                state = self._walk_stmt(stmt, state)
        return state

    def _walk_stmt(
        self, stmt: Optional[Stmt], state: Optional[LockState], label: Optional[str] = None
    ) -> Optional[LockState]:
        if stmt is None:
            return state
        if isinstance(stmt, SimpleStmt):
            state = self._eval_all(stmt.exprs, state)
            self._declare(stmt.declares)
            return state
        elif isinstance(stmt, BlockStmt):
            return self._walk_stmts(stmt.body, state)
        elif isinstance(stmt, IfStmt):
            return self._walk_if(stmt, state)
        elif isinstance(stmt, ForStmt):
            return self._walk_for(stmt, state, label)
        elif isinstance(stmt, SwitchStmt):
            with self._scope():
                state = self._walk_stmt(stmt.init, state)
                if stmt.tag is not None:
                    state = self._eval(stmt.tag, state)
                if stmt.alias is not None:
                    self._declare([stmt.alias])
                return self._walk_cases(stmt.cases, state, "switch", label, may_skip=not stmt.has_default)
        elif isinstance(stmt, SelectStmt):
            return self._walk_cases(stmt.cases, state, "select", label, may_skip=False)
        elif isinstance(stmt, (DeferStmt, GoStmt)):
            return self._eval_deferred(stmt.call, state)
        elif isinstance(stmt, ReturnStmt):
            self._eval_all(stmt.values, state)
            return None
        elif isinstance(stmt, BranchStmt):
            return self._walk_branch(stmt, state)
        elif isinstance(stmt, LabeledStmt):
            return self._walk_stmt(stmt.stmt, state, label=stmt.label)
        return state

    def _walk_if(self, stmt: IfStmt, state: Optional[LockState]) -> Optional[LockState]:
        with self._scope():
            state = self._walk_stmt(stmt.init, state)
            if stmt.condition is not None:
                state = self._eval(stmt.condition, state)
            then_end = self._walk_stmts(stmt.then_body, state)
            else_end = self._walk_stmts(stmt.else_body, state) if stmt.else_body is not None else state
        return join(then_end, else_end)

    def _walk_for(self, stmt: ForStmt, state: Optional[LockState], label: Optional[str]) -> Optional[LockState]:
        with self._scope():
            return self._walk_loop(stmt, state, label)

    def _walk_loop(self, stmt: ForStmt, state: Optional[LockState], label: Optional[str]) -> Optional[LockState]:
        pre = self._walk_stmt(stmt.init, state)

        # Fixed point of the header state, without reporting
        header = pre
        emit = self._emit
        self._emit = False
        try:
            for _ in range(MAX_LOOP_PASSES):
                back_edge, _, _ = self._loop_pass(stmt, header, label)
                new_header = join(pre, back_edge)
                if new_header == header:
                    break
                header = new_header
        finally:
            self._emit = emit

        _, breaks, after_condition = self._loop_pass(stmt, header, label)
        exits = list(breaks)
        if stmt.condition is not None or stmt.is_range:
            exits.append(after_condition)
        return join_all(exits)

    def _loop_pass(self, stmt: ForStmt, header: Optional[LockState], label: Optional[str]):
        """Walk condition, body and post statement once from the header state.

        Returns (state on the back edge, break states, state after the condition).
        """
        frame = _Frame("loop", label)
        self._frames.append(frame)
        try:
            after_condition = self._eval(stmt.condition, header) if stmt.condition is not None else header
            body_end = self._walk_stmts(stmt.body, after_condition)
        finally:
            self._frames.pop()
        back_edge = join(body_end, *frame.continues)
        back_edge = self._walk_stmt(stmt.post, back_edge)
        return back_edge, frame.breaks, after_condition

    def _walk_cases(
        self,
        cases: List[CaseClause],
        state: Optional[LockState],
        kind: str,
        label: Optional[str],
        may_skip: bool,
    ) -> Optional[LockState]:
        frame = _Frame(kind, label)
        self._frames.append(frame)
        ends: List[Optional[LockState]] = []
        try:
            carried: Optional[LockState] = None
            for case in cases:
                with self._scope():
                    entry = self._eval_all(case.exprs, state)
                    entry = self._walk_stmt(case.comm, entry)
                    entry = join(entry, carried)
                    frame.fallthrough = None
                    ends.append(self._walk_stmts(case.body, entry))
                carried = frame.fallthrough
        finally:
            self._frames.pop()
        if may_skip:
            ends.append(state)
        return join_all(ends + frame.breaks)

    def _walk_branch(self, stmt: BranchStmt, state: Optional[LockState]) -> Optional[LockState]:
        if stmt.kind == "break":
            target = self._find_frame(stmt.label, loops_only=False)
            if target is not None:
                target.breaks.append(state)
        elif stmt.kind == "continue":
            target = self._find_frame(stmt.label, loops_only=True)
            if target is not None:
                target.continues.append(state)
        elif stmt.kind == "fallthrough":
            target = self._find_frame(None, loops_only=False)
            if target is not None and target.kind == "switch":
                target.fallthrough = state
        # goto: the jump target is not tracked
        return None

    def _find_frame(self, label: Optional[str], loops_only: bool) -> Optional[_Frame]:
        for frame in reversed(self._frames):
            if label is not None:
                if frame.label == label:
                    return frame
            elif not loops_only or frame.kind == "loop":
                return frame
        return None

    # =========================================================================
    # Expressions
    # =========================================================================

    def _eval_all(self, exprs: List[Expr], state: Optional[LockState]) -> Optional[LockState]:
        for expr in exprs:
            state = self._eval(expr, state)
        return state

    def _eval(self, expr: Expr, state: Optional[LockState]) -> Optional[LockState]:
        if isinstance(expr, Selector):
            state = self._eval(expr.operand, state)
            if self._is_receiver(expr.operand) and self.mtype.is_protected(expr.field):
                self._on_access(expr, state)
            return state
        elif isinstance(expr, Call):
            state = self._eval(expr.func, state)
            state = self._eval_all(expr.args, state)
            return self._apply_call(expr, state, deferred=False)
        elif isinstance(expr, FuncLit):
            self._analyze_literal(expr)
            return state
        elif isinstance(expr, Composite):
            return self._eval_all(expr.parts, state)
        return state

    def _eval_deferred(self, expr: Expr, state: Optional[LockState]) -> Optional[LockState]:
        """`defer`/`go`: operands are evaluated now, the call happens elsewhere."""
        if not isinstance(expr, Call):
            return self._eval(expr, state)
        state = self._eval(expr.func, state)
        state = self._eval_all(expr.args, state)
        return self._apply_call(expr, state, deferred=True)

    def _apply_call(self, call: Call, state: Optional[LockState], deferred: bool) -> Optional[LockState]:
        op = self._lock_op(call)
        if op is not None:
            self._on_lock_call(call)
            if deferred or state is None:
                return state
            return LockState.LOCKED if op == LOCK_METHOD else LockState.NOT_LOCKED

        if deferred:
            return state
        callee = resolve_method_call(call, self.receiver, self.mtype)
        if callee is not None:
            result = check_call(self.method, callee, state, self.check_state)
            if result is not None:
                self._report(call, *result)
        return state

    def _is_receiver(self, expr: Expr) -> bool:
        return self.receiver is not None and isinstance(expr, Ident) and expr.name == self.receiver

    def _lock_op(self, call: Call) -> Optional[str]:
        """LOCK_METHOD / UNLOCK_METHOD if the call locks or unlocks the receiver's mutex."""
        func = call.func
        if not isinstance(func, Selector) or func.field not in (LOCK_METHOD, UNLOCK_METHOD):
            return None
        target = func.operand
        if isinstance(target, Selector) and target.field == self.mtype.lock_field:
            if self._is_receiver(target.operand):
                return func.field
        elif self.mtype.lock_embedded and self._is_receiver(target):
            # Promoted from the embedded mutex unless the type defines its own
            if self.mtype.method(func.field) is None:
                return func.field
        return None

    def _analyze_literal(self, lit: FuncLit) -> None:
        nested = ScopeAnalyzer(self.method, self.mtype, self.collector, emit=self._emit)
        nested.receiver = None if self.receiver in lit.params else self.receiver
        nested.check_state = any(
            isinstance(expr, Call) and nested._lock_op(expr) == LOCK_METHOD
            for stmt in lit.body
            for expr in stmt_exprs(stmt)
        )
        nested.run(lit.body)


def analyze_method(method: MethodDescriptor, mtype: MutexBearingType, collector: ViolationCollector) -> None:
    """Run the flow analysis over one method body."""
    if method.receiver is None:
        debug(f"{method.location}: {mtype.name}.{method.name} has no named receiver, skipping")
        return
    ScopeAnalyzer(method, mtype, collector).run(method.body)


def analyze_types(type_map: TypeMap, collector: ViolationCollector) -> None:
    """Pass 2: analyze every method of every mutex-bearing type, read-only against type_map."""
    for type_name in sorted(type_map):
        mtype = type_map[type_name]
        for method_name in sorted(mtype.methods):
            analyze_method(mtype.methods[method_name], mtype, collector)
