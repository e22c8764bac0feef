"""Shared test utilities."""
import textwrap
from typing import Any, List, Optional, Tuple

from golang.ir import GoFile
from golang.parse import parse_go_source, build_go_file, find_error_nodes
from lockcheck import check_sources
from lockcheck.classify import TypeMap, build_type_map
from lockcheck.violations import Violation

__all__ = ["go", "parse_go", "type_map_of", "lockcheck", "messages", "foo_source"]

# Mutex-bearing type most tests put their methods on
FOO_PRELUDE = """\
package a

import "sync"

type Foo struct {
	i  int
	j  int
	mu sync.Mutex
}

"""


def go(source: str) -> str:
    """Dedent a Go snippet."""
    return textwrap.dedent(source).lstrip("\n")


def parse_go(source: str, filename: str = "a.go") -> Tuple[Any, Optional[GoFile]]:
    """Parse Go source and return (root, GoFile IR).

    Fails the test if tree-sitter reports syntax errors.
    """
    source = go(source)
    root = parse_go_source(source)
    errors = find_error_nodes(root)
    assert not errors, f"unexpected parse errors: {[e[2] for e in errors]}"
    return root, build_go_file(root, filename)


def type_map_of(source: str) -> TypeMap:
    """Classify the declarations of a single Go file."""
    _, go_file = parse_go(source)
    return build_type_map([go_file])


def foo_source(methods: str) -> str:
    """Go file declaring Foo{i, j int; mu sync.Mutex} followed by the given methods."""
    return FOO_PRELUDE + go(methods)


def lockcheck(source: str, filename: str = "a.go") -> List[Violation]:
    """Run the full analysis over one in-memory file."""
    return check_sources({filename: go(source)})


def messages(violations: List[Violation]) -> List[str]:
    return [v.message for v in violations]


def lines(violations: List[Violation]) -> List[int]:
    return [v.location.line for v in violations]
