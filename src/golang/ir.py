"""
Go IR - Minimal typed AST for lock-state analysis.

This IR is designed for the mutex-discipline check, not full Go semantics.
We care about:
- Selector chains rooted at identifiers (receiver field accesses, lock calls)
- Calls and function literals (call-site checks, nested scopes)
- Control flow structure (branches, loops, jumps, defer/go)

We deliberately ignore:
- Types of expressions other than struct field declarations
- Constants, imports and top-level functions
- Generics (type arguments are stripped from receiver types)
"""

from dataclasses import dataclass, field
from typing import Iterator, List, Optional

from golang.utils import SourceLocation


# =============================================================================
# Expressions
# =============================================================================


@dataclass
class Expr:
    """Base expression. All expressions carry a 1-indexed source position."""

    line: int
    column: int


@dataclass
class Ident(Expr):
    """Identifier reference: `f`, `x`"""

    name: str


@dataclass
class Selector(Expr):
    """Selector: `f.i`, `f.mu`, `f.other.Bar`"""

    operand: Expr
    field: str


@dataclass
class Call(Expr):
    """
    Call: `f.mu.Lock()`, `f.bar(x)`, `func() {...}()`

    func is the callee expression; a method call has a Selector callee.
    """

    func: Expr
    args: List[Expr] = field(default_factory=list)


@dataclass
class FuncLit(Expr):
    """Function literal: `func() { ... }`. Analyzed as a nested scope.

    params holds the names of its parameters and named results.
    """

    body: List["Stmt"] = field(default_factory=list)
    params: List[str] = field(default_factory=list)


@dataclass
class Composite(Expr):
    """Any other expression (binary, unary, index, composite literal, ...).

    Children are kept in source order, which is Go's evaluation order for
    everything the lock check cares about.
    """

    kind: str
    parts: List[Expr] = field(default_factory=list)


# =============================================================================
# Statements
# =============================================================================


@dataclass
class Stmt:
    """Base statement."""

    line: int


@dataclass
class SimpleStmt(Stmt):
    """Expression, assignment, inc/dec, send and declaration statements.

    Only the evaluated expressions are kept; targets of assignments count
    as accesses just like reads.

    declares lists the names the statement brings into scope (`:=`, `var`).
    """

    exprs: List[Expr] = field(default_factory=list)
    declares: List[str] = field(default_factory=list)


@dataclass
class BlockStmt(Stmt):
    """Nested block: `{ ... }`"""

    body: List[Stmt] = field(default_factory=list)


@dataclass
class IfStmt(Stmt):
    """If statement. An `else if` is an else_body holding a single IfStmt."""

    init: Optional[Stmt]
    condition: Optional[Expr]
    then_body: List[Stmt]
    else_body: Optional[List[Stmt]] = None


@dataclass
class ForStmt(Stmt):
    """
    For statement in any form.

    - `for init; cond; post {}`: init, condition, post set as present
    - `for x := range e {}`: init holds the range expression, is_range=True
    - `for {}`: no condition, not a range; exits only through break
    """

    init: Optional[Stmt]
    condition: Optional[Expr]
    post: Optional[Stmt]
    body: List[Stmt]
    is_range: bool = False


@dataclass
class CaseClause:
    """One `case`/`default` arm of a switch or select."""

    line: int
    exprs: List[Expr]
    body: List[Stmt]
    is_default: bool = False
    comm: Optional[Stmt] = None  # select: the send/receive statement


@dataclass
class SwitchStmt(Stmt):
    """Expression or type switch."""

    init: Optional[Stmt]
    tag: Optional[Expr]
    cases: List[CaseClause]
    # `switch v := x.(type)`
    alias: Optional[str] = None

    @property
    def has_default(self) -> bool:
        return any(c.is_default for c in self.cases)


@dataclass
class SelectStmt(Stmt):
    """Select statement. Exactly one case runs; without cases it blocks forever."""

    cases: List[CaseClause]


@dataclass
class DeferStmt(Stmt):
    """`defer call`: the call runs at function exit."""

    call: Expr


@dataclass
class GoStmt(Stmt):
    """`go call`: the call runs on a new goroutine."""

    call: Expr


@dataclass
class ReturnStmt(Stmt):
    """Return: `return a, b`"""

    values: List[Expr] = field(default_factory=list)


@dataclass
class BranchStmt(Stmt):
    """break / continue / goto / fallthrough, with optional label."""

    kind: str
    label: Optional[str] = None


@dataclass
class LabeledStmt(Stmt):
    """`Label: stmt`"""

    label: str
    stmt: Optional[Stmt]


# =============================================================================
# Declarations and files
# =============================================================================


@dataclass
class FieldDecl:
    """Struct field. Embedded fields are named after their type (sync.Mutex -> Mutex)."""

    name: str
    type_text: str
    embedded: bool = False


@dataclass
class TypeDecl:
    """Struct type declaration."""

    name: str
    fields: List[FieldDecl]
    location: SourceLocation


@dataclass
class MethodDecl:
    """
    Method declaration: `func (f *Foo) Bar() { ... }`

    receiver is None for unnamed (`func (*Foo) Bar()`) or blank receivers.
    receiver_type has the pointer and type arguments stripped.
    """

    name: str
    receiver: Optional[str]
    receiver_type: str
    body: List[Stmt]
    location: SourceLocation


@dataclass
class GoFile:
    """One parsed Go source file."""

    path: str
    package: str
    types: List[TypeDecl] = field(default_factory=list)
    methods: List[MethodDecl] = field(default_factory=list)


# =============================================================================
# Helpers
# =============================================================================


def iter_exprs(expr: Expr, into_literals: bool = False) -> Iterator[Expr]:
    """Yield expr and its sub-expressions in evaluation order (pre-order)."""
    yield expr
    if isinstance(expr, Selector):
        yield from iter_exprs(expr.operand, into_literals)
    elif isinstance(expr, Call):
        yield from iter_exprs(expr.func, into_literals)
        for arg in expr.args:
            yield from iter_exprs(arg, into_literals)
    elif isinstance(expr, Composite):
        for part in expr.parts:
            yield from iter_exprs(part, into_literals)
    elif isinstance(expr, FuncLit) and into_literals:
        for stmt in expr.body:
            yield from stmt_exprs(stmt, into_literals)


def stmt_exprs(stmt: Optional[Stmt], into_literals: bool = False) -> Iterator[Expr]:
    """Yield every expression inside a statement, recursing into nested statements."""
    if stmt is None:
        return
    top: List[Expr] = []
    nested: List[Stmt] = []

    if isinstance(stmt, SimpleStmt):
        top = stmt.exprs
    elif isinstance(stmt, BlockStmt):
        nested = stmt.body
    elif isinstance(stmt, IfStmt):
        nested = [stmt.init] if stmt.init else []
        top = [stmt.condition] if stmt.condition else []
        nested = nested + stmt.then_body + (stmt.else_body or [])
    elif isinstance(stmt, ForStmt):
        top = [stmt.condition] if stmt.condition else []
        nested = [s for s in (stmt.init, stmt.post) if s] + stmt.body
    elif isinstance(stmt, (SwitchStmt, SelectStmt)):
        if isinstance(stmt, SwitchStmt):
            nested = [stmt.init] if stmt.init else []
            top = [stmt.tag] if stmt.tag else []
        for case in stmt.cases:
            top = top + case.exprs
            nested = nested + ([case.comm] if case.comm else []) + case.body
    elif isinstance(stmt, (DeferStmt, GoStmt)):
        top = [stmt.call]
    elif isinstance(stmt, ReturnStmt):
        top = stmt.values
    elif isinstance(stmt, LabeledStmt):
        nested = [stmt.stmt] if stmt.stmt else []

    for expr in top:
        yield from iter_exprs(expr, into_literals)
    for sub in nested:
        yield from stmt_exprs(sub, into_literals)
