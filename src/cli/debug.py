"""
Development commands: tree-sitter dump, parse-tree validation, classification dump.
"""

from core.utils import error
from core.context import ProjectContext
from golang.utils import node_text, preview
from lockcheck.classify import build_type_map


def dump_ast_tree(root, max_depth: int = 12, named_only: bool = True) -> None:
    """Print a tree-sitter subtree, one node per line, with field names and positions."""
    stack = [(root, 0, None)]
    while stack:
        node, depth, field_name = stack.pop()
        label = f"{field_name}: " if field_name else ""
        line, col = node.start_point[0] + 1, node.start_point[1] + 1
        print(f"{'  ' * depth}{label}{node.type} @{line}:{col} {preview(node_text(node))!r}")
        if depth == max_depth:
            continue
        children = []
        for i, child in enumerate(node.children):
            if named_only and not child.is_named:
                continue
            children.append((child, depth + 1, node.field_name_for_child(i)))
        stack.extend(reversed(children))


def dump_ast_impl(ctx: ProjectContext) -> None:
    for path, file_ctx in sorted(ctx.source_files.items()):
        if file_ctx.root is None:
            continue
        print(f"\n=== {path} ===")
        dump_ast_tree(file_ctx.root)


def check_parser_impl(ctx: ProjectContext) -> int:
    """Exit status 1 if any file could not be read or contains ERROR/missing nodes."""
    failed = 0
    for path, file_ctx in sorted(ctx.source_files.items()):
        if file_ctx.source_code is None:
            failed += 1
            continue
        for line, col, snippet in file_ctx.parse_errors:
            error(f"{path}:{line}:{col}: {snippet!r}")
        if file_ctx.parse_errors:
            failed += 1

    if failed:
        error(f"Parser check FAILED: {failed} of {len(ctx.source_files)} file(s)")
        return 1
    print(f"Parser check passed: {len(ctx.source_files)} file(s)")
    return 0


def dump_types_impl(ctx: ProjectContext) -> None:
    """Print every mutex-bearing type with its lock field, protected fields and method privileges."""
    for (directory, package), files in ctx.packages().items():
        type_map = build_type_map(files)
        if not type_map:
            continue
        print(f"\n=== package {package} ({directory or '.'}) ===")
        for name in sorted(type_map):
            mtype = type_map[name]
            lock = f"{mtype.lock_field} (embedded)" if mtype.lock_embedded else mtype.lock_field
            print(f"{name} [{mtype.location}]")
            print(f"  lock: {lock}")
            print(f"  protected: {', '.join(sorted(mtype.protected_fields)) or '-'}")
            for method_name in sorted(mtype.methods):
                method = mtype.methods[method_name]
                print(f"  {method.privilege.value:>12}  {method_name}")
