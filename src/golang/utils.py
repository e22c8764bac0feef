"""
Shared utilities for Go parsing: node text and source positions.
"""

from typing import Tuple
from dataclasses import dataclass


def node_text(node) -> str:
    """
    Source text of a tree-sitter node.

    Offsets reported by tree-sitter are byte offsets into the UTF-8 encoding,
    so the node's own bytes are decoded instead of slicing the Python string.
    """
    return node.text.decode("utf-8", errors="replace")


def preview(text: str, limit: int = 60) -> str:
    """One-line, length-limited rendering of a source snippet for diagnostics."""
    if len(text) > limit:
        text = text[:limit] + "..."
    return text.replace("\n", "\\n")


@dataclass(frozen=True)
class SourceLocation:
    """Position of a diagnostic: file, 1-indexed line and column."""

    file: str
    line: int
    column: int

    def __str__(self) -> str:
        return f"{self.file}:{self.line}:{self.column}"


def _node_line_col(node) -> Tuple[int, int]:
    """Get 1-indexed (line, column) of a node's start. Column counts bytes, like go/token."""
    row, col = node.start_point[0], node.start_point[1]
    return (row + 1, col + 1)


def _node_location(node, filename: str) -> SourceLocation:
    line, col = _node_line_col(node)
    return SourceLocation(filename, line, col)
