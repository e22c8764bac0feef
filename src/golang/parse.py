"""
Go source code parsing - main entry points.

This is the public API for Go parsing. Internal implementation is split across:
- golang/utils.py: Shared utilities (text extraction, line/col calculation)
- golang/ir.py: Minimal statement/expression IR for lock-state analysis
- golang/cst_to_ir.py: tree-sitter CST -> IR transformer
"""

import sys
from functools import lru_cache
from typing import Any, List, Optional, Tuple

from core.utils import error
from golang.utils import node_text, preview
from golang.ir import GoFile

try:
    import tree_sitter_go
    from tree_sitter import Language, Parser
except ImportError:
    error("tree-sitter / tree-sitter-go not installed. Run: pip install -e .")
    sys.exit(1)


@lru_cache(maxsize=1)
def _setup_tree_sitter_go() -> Language:
    return Language(tree_sitter_go.language())


def parse_go_source(source_code: str):
    """
    Parse Go source code using tree-sitter and return the root node.
    """
    parser = Parser(_setup_tree_sitter_go())
    tree = parser.parse(bytes(source_code, "utf8"))
    return tree.root_node


def build_go_file(root, filename: str = "") -> Optional[GoFile]:
    """
    Build the IR for one Go file from its pre-parsed root node.

    Returns None if the file has no package clause.
    """
    from golang.cst_to_ir import IRBuilder

    return IRBuilder(filename).build_file(root)


def find_error_nodes(root, max_depth: int = 200) -> List[Tuple[Any, int, str]]:
    """
    Collect ERROR and missing nodes of a parse tree as (node, depth, snippet).

    A non-empty result means tree-sitter had to recover from a syntax error.
    Children of missing nodes are not visited.
    """
    found = []
    stack = [(root, 0)]
    while stack:
        node, depth = stack.pop()
        if depth > max_depth:
            continue
        if node.type == "ERROR" or node.is_missing:
            found.append((node, depth, preview(node_text(node), 100)))
            if node.is_missing:
                continue
        stack.extend((child, depth + 1) for child in reversed(node.children))
    return found
