"""Tests for the tree-sitter CST -> Go IR transformation."""
from golang.ir import (
    BlockStmt,
    BranchStmt,
    Call,
    Composite,
    DeferStmt,
    ForStmt,
    FuncLit,
    GoStmt,
    Ident,
    IfStmt,
    LabeledStmt,
    ReturnStmt,
    Selector,
    SelectStmt,
    SimpleStmt,
    SwitchStmt,
    iter_exprs,
    stmt_exprs,
)
from test_utils import parse_go


def method_body(body: str, params: str = ""):
    """Build the IR of `func (f *Foo) M(<params>) { <body> }`."""
    _, go_file = parse_go("package a\n\nfunc (f *Foo) M(" + params + ") {\n" + body + "\n}\n")
    return go_file.methods[0].body


class TestDeclarations:
    def test_package_and_structs(self):
        _, go_file = parse_go(
            """
            package store

            import "sync"

            type (
                Foo struct {
                    i, j int
                    mu   sync.Mutex
                }

                Bar struct {
                    *Foo
                    sync.Mutex
                }

                Alias = Foo
                ID    int
            )
            """,
            filename="store/store.go",
        )
        assert go_file.package == "store"
        assert go_file.path == "store/store.go"
        assert [t.name for t in go_file.types] == ["Foo", "Bar"]

        foo, bar = go_file.types
        assert [(f.name, f.type_text, f.embedded) for f in foo.fields] == [
            ("i", "int", False),
            ("j", "int", False),
            ("mu", "sync.Mutex", False),
        ]
        assert [(f.name, f.type_text, f.embedded) for f in bar.fields] == [
            ("Foo", "*Foo", True),
            ("Mutex", "sync.Mutex", True),
        ]
        assert foo.location.file == "store/store.go"
        assert foo.location.line == 6

    def test_methods_and_receivers(self):
        _, go_file = parse_go(
            """
            package a

            func (f *Foo) Pointer() {}
            func (f Foo) Value() {}
            func (*Foo) Unnamed() {}
            func (_ *Foo) Blank() {}
            func (b *Box[K, V]) Generic() {}
            func Plain() {}
            """
        )
        methods = {m.name: m for m in go_file.methods}
        assert set(methods) == {"Pointer", "Value", "Unnamed", "Blank", "Generic"}
        assert (methods["Pointer"].receiver, methods["Pointer"].receiver_type) == ("f", "Foo")
        assert (methods["Value"].receiver, methods["Value"].receiver_type) == ("f", "Foo")
        assert (methods["Unnamed"].receiver, methods["Unnamed"].receiver_type) == (None, "Foo")
        assert (methods["Blank"].receiver, methods["Blank"].receiver_type) == (None, "Foo")
        assert methods["Generic"].receiver_type == "Box"
        assert methods["Pointer"].location.line == 3

    def test_missing_package_clause(self):
        from golang.parse import parse_go_source, build_go_file

        source = "// just a comment\n"
        assert build_go_file(parse_go_source(source)) is None


class TestStatements:
    def test_simple_statements(self):
        body = method_body("f.i++\nf.i = f.j\nx := f.j\nf.mu.Lock()")
        assert all(isinstance(s, SimpleStmt) for s in body)
        assert [s.line for s in body] == [4, 5, 6, 7]
        assert [s.declares for s in body] == [[], [], ["x"], []]

        call = body[3].exprs[0]
        assert isinstance(call, Call)
        assert isinstance(call.func, Selector) and call.func.field == "Lock"
        assert isinstance(call.func.operand, Selector) and call.func.operand.field == "mu"
        assert call.func.operand.operand == Ident(line=7, column=1, name="f")

    def test_if_else_if(self):
        body = method_body("if x := 1; x > 0 {\n} else if y {\n} else {\nf.i++\n}")
        stmt = body[0]
        assert isinstance(stmt, IfStmt)
        assert isinstance(stmt.init, SimpleStmt)
        assert isinstance(stmt.condition, Composite)
        assert stmt.then_body == []
        assert len(stmt.else_body) == 1
        nested = stmt.else_body[0]
        assert isinstance(nested, IfStmt)
        assert isinstance(nested.condition, Ident)
        assert len(nested.else_body) == 1

    def test_if_without_else(self):
        stmt = method_body("if true {\nf.i++\n}")[0]
        assert stmt.else_body is None
        assert stmt.condition is None  # literals evaluate nothing

    def test_for_forms(self):
        body = method_body(
            "for i := 0; i < 3; i++ {\n}\nfor x := range f.items {\n}\nfor ok {\n}\nfor {\n}",
            params="ok bool",
        )
        clause, ranged, cond, forever = body
        assert isinstance(clause, ForStmt)
        assert clause.init is not None and clause.post is not None and clause.condition is not None
        assert clause.init.declares == ["i"]
        assert not clause.is_range

        assert ranged.is_range
        assert isinstance(ranged.init.exprs[0], Selector)
        assert ranged.init.declares == ["x"]
        assert ranged.condition is None

        assert isinstance(cond.condition, Ident) and cond.condition.name == "ok"
        assert cond.init is None and not cond.is_range

        assert forever.condition is None and forever.init is None and not forever.is_range

    def test_switch(self):
        body = method_body(
            "switch x := f.i; x {\ncase 1, 2:\nf.j++\nfallthrough\ncase 3:\ndefault:\n}"
        )
        stmt = body[0]
        assert isinstance(stmt, SwitchStmt)
        assert isinstance(stmt.tag, Ident)
        assert stmt.has_default
        assert [len(c.body) for c in stmt.cases] == [2, 0, 0]
        assert stmt.cases[0].exprs == []  # int literals
        assert isinstance(stmt.cases[0].body[1], BranchStmt)
        assert stmt.cases[0].body[1].kind == "fallthrough"

    def test_type_switch(self):
        stmt = method_body("switch v := x.(type) {\ncase int:\nf.i = v\n}", params="x interface{}")[0]
        assert isinstance(stmt, SwitchStmt)
        assert not stmt.has_default
        assert stmt.alias == "v"
        assert len(stmt.cases) == 1
        assert len(stmt.cases[0].body) == 1

    def test_select(self):
        stmt = method_body("select {\ncase v := <-in:\nf.i = v\ncase out <- f.j:\ndefault:\n}")[0]
        assert isinstance(stmt, SelectStmt)
        recv, send, default = stmt.cases
        assert recv.comm is not None and len(recv.body) == 1
        assert recv.comm.declares == ["v"]
        assert send.comm is not None and send.body == []
        assert send.comm.declares == []
        assert isinstance(send.comm.exprs[1], Selector)
        assert default.is_default and default.comm is None

    def test_defer_go_return(self):
        defer, go, ret = method_body("defer f.mu.Unlock()\ngo f.run(f.i)\nreturn f.i, nil")
        assert isinstance(defer, DeferStmt) and isinstance(defer.call, Call)
        assert isinstance(go, GoStmt) and isinstance(go.call, Call)
        assert len(go.call.args) == 1
        assert isinstance(ret, ReturnStmt)
        assert len(ret.values) == 1

    def test_branches_and_labels(self):
        body = method_body("outer:\nfor {\nbreak outer\ncontinue\n}\ngoto outer")
        labeled, goto = body
        assert isinstance(labeled, LabeledStmt)
        assert labeled.label == "outer"
        assert isinstance(labeled.stmt, ForStmt)
        brk, cont = labeled.stmt.body
        assert (brk.kind, brk.label) == ("break", "outer")
        assert (cont.kind, cont.label) == ("continue", None)
        assert (goto.kind, goto.label) == ("goto", "outer")

    def test_declarations(self):
        body = method_body("var a, b int\nvar (\nc = f.i\nd int\n)\nconst e = 2\nx, f := 1, 2\nf = nil")
        assert [s.declares for s in body] == [["a", "b"], ["c", "d"], ["e"], ["x", "f"], []]

    def test_nested_block(self):
        stmt = method_body("{\nf.i++\n}")[0]
        assert isinstance(stmt, BlockStmt)
        assert len(stmt.body) == 1

    def test_comments_are_dropped(self):
        body = method_body("// leading\nf.i++ // trailing\n/* block */")
        assert len(body) == 1


class TestExpressions:
    def test_func_literal(self):
        stmt = method_body("fn := func() {\nf.i++\n}\nfn()")[0]
        lit = stmt.exprs[1].parts[0]
        assert isinstance(lit, FuncLit)
        assert len(lit.body) == 1
        assert lit.params == []

    def test_func_literal_params(self):
        lit = method_body("apply(func(a, b int, rest ...string) (n int, err error) {\n})")[0].exprs[0].args[0]
        assert isinstance(lit, FuncLit)
        assert lit.params == ["a", "b", "rest", "n", "err"]

        unnamed = method_body("apply(func(int) error {\n})")[0].exprs[0].args[0]
        assert unnamed.params == []

    def test_immediately_invoked_literal(self):
        call = method_body("func() {\nf.mu.Lock()\n}()")[0].exprs[0]
        assert isinstance(call, Call)
        assert isinstance(call.func, FuncLit)

    def test_parenthesized(self):
        expr = method_body("_ = (f.i)")[0].exprs[1].parts[0]
        assert isinstance(expr, Selector) and expr.field == "i"

    def test_iter_exprs_order(self):
        call = method_body("f.set(f.i + g(f.j))")[0].exprs[0]
        fields = [e.field for e in iter_exprs(call) if isinstance(e, Selector)]
        assert fields == ["set", "i", "j"]

    def test_stmt_exprs_into_literals(self):
        stmt = method_body("go func() {\nf.i++\n}()")[0]
        shallow = [e for e in stmt_exprs(stmt) if isinstance(e, Selector)]
        deep = [e for e in stmt_exprs(stmt, into_literals=True) if isinstance(e, Selector)]
        assert shallow == []
        assert [e.field for e in deep] == ["i"]
