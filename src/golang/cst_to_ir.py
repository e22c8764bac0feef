"""
CST to IR Transformer - Converts tree-sitter-go CST to Go IR.

This module transforms the concrete syntax tree from tree-sitter
into our minimal IR suitable for lock-state analysis.
"""

from typing import List, Optional

from core.utils import debug, get_simple_name, strip_pointer, strip_type_args
from .utils import node_text, _node_line_col, _node_location
from .ir import (
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
    CaseClause,
    SwitchStmt,
    SelectStmt,
    DeferStmt,
    GoStmt,
    ReturnStmt,
    BranchStmt,
    LabeledStmt,
    FieldDecl,
    TypeDecl,
    MethodDecl,
    GoFile,
)


STATEMENT_TYPES = {
    "expression_statement",
    "send_statement",
    "inc_statement",
    "dec_statement",
    "assignment_statement",
    "short_var_declaration",
    "var_declaration",
    "const_declaration",
    "type_declaration",
    "return_statement",
    "go_statement",
    "defer_statement",
    "if_statement",
    "for_statement",
    "expression_switch_statement",
    "type_switch_statement",
    "select_statement",
    "labeled_statement",
    "fallthrough_statement",
    "break_statement",
    "continue_statement",
    "goto_statement",
    "block",
    "empty_statement",
}

# Statements that only evaluate expressions
SIMPLE_STATEMENT_TYPES = {
    "expression_statement",
    "send_statement",
    "receive_statement",
    "inc_statement",
    "dec_statement",
    "assignment_statement",
    "short_var_declaration",
    "var_declaration",
    "const_declaration",
}

# Type syntax never evaluates anything we track
TYPE_NODE_TYPES = {
    "type_identifier",
    "qualified_type",
    "pointer_type",
    "array_type",
    "implicit_length_array_type",
    "slice_type",
    "map_type",
    "channel_type",
    "function_type",
    "struct_type",
    "interface_type",
    "generic_type",
    "type_arguments",
    "parameter_list",
}

BRANCH_TYPES = {
    "break_statement": "break",
    "continue_statement": "continue",
    "goto_statement": "goto",
    "fallthrough_statement": "fallthrough",
}


class IRBuilder:
    """
    Transforms tree-sitter-go CST nodes into Go IR.

    Usage:
        builder = IRBuilder("a/a.go")
        go_file = builder.build_file(root_node)
    """

    def __init__(self, filename: str = ""):
        self.filename = filename

    def _get_text(self, node) -> str:
        """Source text of a node."""
        return node_text(node)

    def _get_line(self, node) -> int:
        """Get 1-indexed line number for a node."""
        return node.start_point[0] + 1

    # =========================================================================
    # File and declaration building
    # =========================================================================

    def build_file(self, root) -> Optional[GoFile]:
        """Build a GoFile IR from the root CST node."""
        package = None
        for child in root.named_children:
            if child.type == "package_clause":
                for sub in child.named_children:
                    if sub.type == "package_identifier":
                        package = self._get_text(sub)
                break

        if package is None:
            return None

        go_file = GoFile(path=self.filename, package=package)
        for child in root.named_children:
            if child.type == "type_declaration":
                go_file.types.extend(self._build_type_declaration(child))
            elif child.type == "method_declaration":
                method = self._build_method(child)
                if method:
                    go_file.methods.append(method)

        debug(f"{self.filename}: package {package}, {len(go_file.types)} struct(s), {len(go_file.methods)} method(s)")
        return go_file

    def _build_type_declaration(self, decl_node) -> List[TypeDecl]:
        """Build TypeDecls for every struct type_spec (grouped declarations included)."""
        types = []
        for spec in decl_node.named_children:
            if spec.type != "type_spec":
                continue
            name_node = spec.child_by_field_name("name")
            type_node = spec.child_by_field_name("type")
            if name_node is None or type_node is None or type_node.type != "struct_type":
                continue
            types.append(
                TypeDecl(
                    name=self._get_text(name_node),
                    fields=self._build_fields(type_node),
                    location=_node_location(spec, self.filename),
                )
            )
        return types

    def _build_fields(self, struct_node) -> List[FieldDecl]:
        fields: List[FieldDecl] = []
        for child in struct_node.named_children:
            if child.type != "field_declaration_list":
                continue
            for decl in child.named_children:
                if decl.type != "field_declaration":
                    continue
                type_node = decl.child_by_field_name("type")
                if type_node is None:
                    continue
                type_text = self._get_text(type_node)
                names = decl.children_by_field_name("name")
                if names:
                    for name_node in names:
                        fields.append(FieldDecl(name=self._get_text(name_node), type_text=type_text))
                else:
                    # Embedded field: `sync.Mutex`, `*Base`
                    if any(c.type == "*" for c in decl.children):
                        type_text = "*" + type_text
                    name = get_simple_name(strip_type_args(strip_pointer(type_text)))
                    fields.append(FieldDecl(name=name, type_text=type_text, embedded=True))
        return fields

    def _build_method(self, method_node) -> Optional[MethodDecl]:
        """Build a MethodDecl from a method_declaration node."""
        name_node = method_node.child_by_field_name("name")
        receiver_node = method_node.child_by_field_name("receiver")
        if name_node is None or receiver_node is None:
            return None

        receiver = None
        receiver_type = None
        for param in receiver_node.named_children:
            if param.type != "parameter_declaration":
                continue
            param_name = param.child_by_field_name("name")
            param_type = param.child_by_field_name("type")
            if param_name is not None:
                receiver = self._get_text(param_name)
            if param_type is not None:
                receiver_type = strip_type_args(strip_pointer(self._get_text(param_type)))
            break

        if receiver_type is None:
            return None
        if receiver == "_":
            receiver = None

        body_node = method_node.child_by_field_name("body")
        body = self._build_block(body_node) if body_node is not None else []

        return MethodDecl(
            name=self._get_text(name_node),
            receiver=receiver,
            receiver_type=receiver_type,
            body=body,
            location=_node_location(name_node, self.filename),
        )

    # =========================================================================
    # Statement building
    # =========================================================================

    def _statement_nodes(self, node) -> list:
        """Statement children of a block or case clause, flattening statement_list."""
        stmts = []
        for child in node.named_children:
            if child.type == "statement_list":
                stmts.extend(self._statement_nodes(child))
            elif child.type in STATEMENT_TYPES:
                stmts.append(child)
        return stmts

    def _build_block(self, block_node, skip=None) -> List[Stmt]:
        """Build statements from a block node, leaving out the `skip` node if given."""
        stmts = []
        for child in self._statement_nodes(block_node):
            if skip is not None and (child.start_byte, child.end_byte) == (skip.start_byte, skip.end_byte):
                continue
            stmt = self._build_stmt(child)
            if stmt is not None:
                stmts.append(stmt)
        return stmts

    def _build_stmt(self, node) -> Optional[Stmt]:
        if node is None:
            return None
        node_type = node.type
        line = self._get_line(node)

        if node_type in SIMPLE_STATEMENT_TYPES:
            return SimpleStmt(line=line, exprs=self._build_child_exprs(node), declares=self._declared_names(node))
        elif node_type == "block":
            return BlockStmt(line=line, body=self._build_block(node))
        elif node_type == "if_statement":
            return self._build_if(node)
        elif node_type == "for_statement":
            return self._build_for(node)
        elif node_type in ("expression_switch_statement", "type_switch_statement"):
            return self._build_switch(node)
        elif node_type == "select_statement":
            return SelectStmt(line=line, cases=self._build_cases(node))
        elif node_type == "defer_statement":
            return DeferStmt(line=line, call=self._first_expr(node))
        elif node_type == "go_statement":
            return GoStmt(line=line, call=self._first_expr(node))
        elif node_type == "return_statement":
            values: List[Expr] = []
            for child in node.named_children:
                if child.type == "expression_list":
                    values.extend(self._build_child_exprs(child))
                else:
                    expr = self._build_expr(child)
                    if expr is not None:
                        values.append(expr)
            return ReturnStmt(line=line, values=values)
        elif node_type in BRANCH_TYPES:
            label = None
            for child in node.named_children:
                if child.type == "label_name":
                    label = self._get_text(child)
            return BranchStmt(line=line, kind=BRANCH_TYPES[node_type], label=label)
        elif node_type == "labeled_statement":
            label_node = node.child_by_field_name("label")
            inner = None
            for child in node.named_children:
                if child.type in STATEMENT_TYPES:
                    inner = self._build_stmt(child)
                    break
            label = self._get_text(label_node) if label_node is not None else ""
            return LabeledStmt(line=line, label=label, stmt=inner)
        elif node_type in ("empty_statement", "type_declaration", "comment"):
            return None

        # Unknown statement type - keep whatever it evaluates
        return SimpleStmt(line=line, exprs=self._build_child_exprs(node))

    def _build_if(self, node) -> IfStmt:
        """Build an if statement; `else if` becomes a single nested IfStmt."""
        consequence = node.child_by_field_name("consequence")
        alternative = node.child_by_field_name("alternative")

        else_body: Optional[List[Stmt]] = None
        if alternative is not None:
            if alternative.type == "if_statement":
                else_body = [self._build_if(alternative)]
            else:
                else_body = self._build_block(alternative)

        return IfStmt(
            line=self._get_line(node),
            init=self._build_stmt(node.child_by_field_name("initializer")),
            condition=self._build_expr(node.child_by_field_name("condition")),
            then_body=self._build_block(consequence) if consequence is not None else [],
            else_body=else_body,
        )

    def _build_for(self, node) -> ForStmt:
        body_node = node.child_by_field_name("body")
        init: Optional[Stmt] = None
        condition: Optional[Expr] = None
        post: Optional[Stmt] = None
        is_range = False

        for child in node.named_children:
            if child.type == "for_clause":
                init = self._build_stmt(child.child_by_field_name("initializer"))
                condition = self._build_expr(child.child_by_field_name("condition"))
                post = self._build_stmt(child.child_by_field_name("update"))
            elif child.type == "range_clause":
                is_range = True
                right = self._build_expr(child.child_by_field_name("right"))
                init = SimpleStmt(
                    line=self._get_line(child),
                    exprs=[right] if right is not None else [],
                    declares=self._declared_names(child),
                )
            elif child.type not in ("block", "comment"):
                condition = self._build_expr(child)

        return ForStmt(
            line=self._get_line(node),
            init=init,
            condition=condition,
            post=post,
            body=self._build_block(body_node) if body_node is not None else [],
            is_range=is_range,
        )

    def _build_switch(self, node) -> SwitchStmt:
        return SwitchStmt(
            line=self._get_line(node),
            init=self._build_stmt(node.child_by_field_name("initializer")),
            tag=self._build_expr(node.child_by_field_name("value")),
            cases=self._build_cases(node),
            alias=next(iter(self._identifier_names(node.child_by_field_name("alias"))), None),
        )

    def _build_cases(self, node) -> List[CaseClause]:
        cases = []
        for child in node.named_children:
            if child.type == "default_case":
                cases.append(
                    CaseClause(line=self._get_line(child), exprs=[], body=self._build_block(child), is_default=True)
                )
            elif child.type == "expression_case":
                value = child.child_by_field_name("value")
                exprs = self._build_child_exprs(value) if value is not None else []
                cases.append(CaseClause(line=self._get_line(child), exprs=exprs, body=self._build_block(child)))
            elif child.type == "type_case":
                cases.append(CaseClause(line=self._get_line(child), exprs=[], body=self._build_block(child)))
            elif child.type == "communication_case":
                comm_node = child.child_by_field_name("communication")
                comm = None
                if comm_node is not None:
                    comm = SimpleStmt(
                        line=self._get_line(comm_node),
                        exprs=self._build_child_exprs(comm_node),
                        declares=self._declared_names(comm_node),
                    )
                body = self._build_block(child, skip=comm_node)
                cases.append(CaseClause(line=self._get_line(child), exprs=[], body=body, comm=comm))
        return cases

    # =========================================================================
    # Declared names
    # =========================================================================

    def _identifier_names(self, node) -> List[str]:
        if node is None:
            return []
        if node.type == "identifier":
            return [self._get_text(node)]
        return [self._get_text(child) for child in node.named_children if child.type == "identifier"]

    def _declared_names(self, node) -> List[str]:
        """Names brought into scope by `var`/`const` specs or by a `:=` (declarations, range, receive)."""
        if node.type in ("var_declaration", "const_declaration"):
            names = []
            specs = list(node.named_children)
            while specs:
                spec = specs.pop(0)
                if spec.type.endswith("_spec_list"):
                    specs = list(spec.named_children) + specs
                    continue
                names.extend(self._get_text(name) for name in spec.children_by_field_name("name"))
            return names
        if any(child.type == ":=" for child in node.children):
            return self._identifier_names(node.child_by_field_name("left"))
        return []

    def _param_names(self, func_node) -> List[str]:
        """Parameter and named result names of a function literal."""
        names = []
        for field_name in ("parameters", "result"):
            params = func_node.child_by_field_name(field_name)
            if params is None or params.type != "parameter_list":
                continue
            for param in params.named_children:
                names.extend(self._get_text(name) for name in param.children_by_field_name("name"))
        return names

    # =========================================================================
    # Expression building
    # =========================================================================

    def _first_expr(self, node) -> Expr:
        for child in node.named_children:
            expr = self._build_expr(child)
            if expr is not None:
                return expr
        line, col = _node_line_col(node)
        return Composite(line=line, column=col, kind=node.type)

    def _build_child_exprs(self, node) -> List[Expr]:
        exprs = []
        for child in node.named_children:
            expr = self._build_expr(child)
            if expr is not None:
                exprs.append(expr)
        return exprs

    def _build_expr(self, node) -> Optional[Expr]:
        """Build an expression node into IR. Returns None for nodes that evaluate nothing."""
        if node is None:
            return None
        node_type = node.type
        if node_type == "comment" or node_type in TYPE_NODE_TYPES:
            return None

        line, col = _node_line_col(node)

        if node_type == "parenthesized_expression":
            return self._first_expr(node)
        elif node_type == "identifier":
            return Ident(line=line, column=col, name=self._get_text(node))
        elif node_type == "selector_expression":
            operand_node = node.child_by_field_name("operand")
            field_node = node.child_by_field_name("field")
            operand = self._build_expr(operand_node)
            if operand is None:
                operand = Composite(line=line, column=col, kind=operand_node.type if operand_node else "missing")
            return Selector(
                line=line,
                column=col,
                operand=operand,
                field=self._get_text(field_node) if field_node is not None else "",
            )
        elif node_type == "call_expression":
            func_node = node.child_by_field_name("function")
            func = self._build_expr(func_node)
            if func is None:
                func = Composite(line=line, column=col, kind="callee")
            args_node = node.child_by_field_name("arguments")
            args = self._build_child_exprs(args_node) if args_node is not None else []
            return Call(line=line, column=col, func=func, args=args)
        elif node_type == "func_literal":
            body_node = node.child_by_field_name("body")
            return FuncLit(
                line=line,
                column=col,
                body=self._build_block(body_node) if body_node is not None else [],
                params=self._param_names(node),
            )
        elif node.named_child_count == 0:
            # Literals, field/package identifiers, blank identifiers
            return None

        return Composite(line=line, column=col, kind=node_type, parts=self._build_child_exprs(node))
