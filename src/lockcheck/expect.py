"""
Inline expectation harness.

Go test fixtures mark expected diagnostics with comments on the offending
line, the same way golang.org/x/tools/go/analysis/analysistest does:

    f.mu.Lock() // want "unprivileged method bar locks mutex"

Each `// want` comment holds one or more Go string literals ("..." or `...`),
each a regular expression that must match one diagnostic on that line.
"""

import re
from typing import Dict, Iterable, List, Optional, Tuple

from golang.parse import parse_go_source
from golang.utils import node_text
from lockcheck.violations import Violation

_WANT_PREFIX = "want"
_LITERAL_RE = re.compile(r'"((?:[^"\\]|\\.)*)"|`([^`]*)`')
_ESCAPES = {"n": "\n", "t": "\t", "r": "\r"}

# line -> list of (raw pattern, compiled pattern)
Expectations = Dict[int, List[Tuple[str, "re.Pattern[str]"]]]


def _unquote(body: str) -> str:
    return re.sub(r"\\(.)", lambda m: _ESCAPES.get(m.group(1), m.group(1)), body)


def _compile(pattern: str) -> "re.Pattern[str]":
    try:
        return re.compile(pattern)
    except re.error as e:
        raise ValueError(f"invalid want pattern {pattern!r}: {e}") from e


def parse_want(comment_text: str) -> Optional[List[str]]:
    """Patterns of a `// want ...` comment, or None if it is not one."""
    text = comment_text.strip()
    if not text.startswith("//"):
        return None
    text = text[2:].strip()
    if not text.startswith(_WANT_PREFIX + " ") and not text.startswith(_WANT_PREFIX + "\t"):
        return None
    text = text[len(_WANT_PREFIX) :].strip()

    patterns = []
    pos = 0
    while pos < len(text):
        match = _LITERAL_RE.match(text, pos)
        if match is None:
            raise ValueError(f"malformed want comment: {comment_text!r}")
        if match.group(1) is not None:
            patterns.append(_unquote(match.group(1)))
        else:
            patterns.append(match.group(2))
        pos = match.end()
        while pos < len(text) and text[pos] in " \t":
            pos += 1
    return patterns


def collect_expectations(
    source_code: str, root=None, malformed: Optional[List[Tuple[int, str]]] = None
) -> Expectations:
    """
    Collect `// want` expectations by line from Go source.

    Unparseable comments and invalid patterns raise ValueError, unless a
    malformed list is given: then they are appended to it as (line, error).
    """
    if root is None:
        root = parse_go_source(source_code)
    expectations: Expectations = {}

    def visit(node):
        if node.type == "comment":
            line = node.start_point[0] + 1
            try:
                compiled = [(p, _compile(p)) for p in parse_want(node_text(node)) or []]
            except ValueError as e:
                if malformed is None:
                    raise
                malformed.append((line, str(e)))
                return
            if compiled:
                expectations.setdefault(line, []).extend(compiled)
            return
        for child in node.children:
            visit(child)

    visit(root)
    return expectations


def check_expectations(source_code: str, violations: Iterable[Violation], filename: Optional[str] = None) -> List[str]:
    """
    Compare diagnostics with the `// want` comments of one file.

    Returns human-readable problems, one per mismatch or malformed `// want`
    comment. An empty list means the file checks out.
    """
    malformed: List[Tuple[int, str]] = []
    expectations = collect_expectations(source_code, malformed=malformed)
    remaining = {line: list(patterns) for line, patterns in expectations.items()}
    problems: List[str] = []
    label = filename or "<source>"

    for line, message in malformed:
        problems.append(f"{label}:{line}: {message}")

    for violation in sorted(violations, key=Violation.sort_key):
        if filename is not None and violation.location.file != filename:
            continue
        candidates = remaining.get(violation.location.line, [])
        for i, (_, compiled) in enumerate(candidates):
            if compiled.search(violation.message):
                del candidates[i]
                break
        else:
            problems.append(f"{violation.location}: unexpected diagnostic: {violation.message}")

    for line in sorted(remaining):
        for raw, _ in remaining[line]:
            problems.append(f"{label}:{line}: no diagnostic was reported matching {raw!r}")
    return problems
