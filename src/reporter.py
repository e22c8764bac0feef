import json
import os
from enum import Enum
from typing import Dict, List, Optional, TextIO

from core.context import ProjectContext
from lockcheck.violations import Violation, ViolationKind


_USE_COLOR = not os.environ.get("LOCKCHECK_NO_COLORS")


def _ansi(code: str) -> str:
    return f"\033[{code}m" if _USE_COLOR else ""


class _C:
    """ANSI color codes, empty when LOCKCHECK_NO_COLORS is set."""

    RESET = _ansi("0")
    BOLD = _ansi("1")
    DIM = _ansi("2")
    RED = _ansi("31")
    YELLOW = _ansi("33")
    BRIGHT_RED = _ansi("91")


_KIND_COLORS = {
    ViolationKind.UNGUARDED_ACCESS: _C.BOLD + _C.BRIGHT_RED,
    ViolationKind.PRIVILEGED_CALL_WHILE_LOCKED: _C.RED,
    ViolationKind.UNPRIVILEGED_CALL_WITHOUT_LOCK: _C.RED,
    ViolationKind.SELF_LOCKING: _C.YELLOW,
    ViolationKind.UNPRIVILEGED_CALLS_PRIVILEGED: _C.YELLOW,
}


class OutputMode(Enum):
    """Violation output verbosity modes."""

    SHORT = "short"  # file:line:col: message, like `go vet`
    FULL = "full"  # + category, method and the offending source line
    JSON = "json"


class _Tee:
    """Writes every line to stdout and, if given, to an output file."""

    def __init__(self, output_file: Optional[TextIO]):
        self.output_file = output_file

    def __call__(self, line: str = "") -> None:
        print(line)
        if self.output_file:
            print(line, file=self.output_file)


def report_violations(
    violations: List[Violation],
    ctx: Optional[ProjectContext] = None,
    output_mode: OutputMode = OutputMode.SHORT,
    output_file: Optional[TextIO] = None,
) -> int:
    """
    Print violations in presentation order.

    Args:
        violations: Sorted violations from run_lockcheck()
        ctx: Project context; FULL mode uses it to quote the offending line
        output_mode: SHORT (default), FULL or JSON
        output_file: Optional file that receives a copy of the output

    Returns: Number of violations
    """
    if output_mode == OutputMode.JSON:
        return report_violations_json(violations, output_file)

    out = _Tee(output_file)
    if not violations:
        out("No violations found")
    elif output_mode == OutputMode.SHORT:
        for violation in violations:
            out(str(violation))
    else:
        out(f"\nFound {len(violations)} violation(s):\n")
        quote = _SourceQuoter(ctx)
        for violation in violations:
            kind = f"{_KIND_COLORS[violation.kind]}{violation.kind.value}{_C.RESET}"
            out(f"[{kind}][{violation.location}] {_C.BOLD}{violation.message}{_C.RESET}")
            out(f"  {_C.DIM}method:{_C.RESET} {violation.method}")
            line = quote(violation)
            if line:
                out(f"  {_C.DIM}source:{_C.RESET} {line}")
            out()
    return len(violations)


class _SourceQuoter:
    """Looks up the source line of a violation, splitting each file once."""

    def __init__(self, ctx: Optional[ProjectContext]):
        self.ctx = ctx
        self._lines: Dict[str, List[str]] = {}

    def __call__(self, violation: Violation) -> Optional[str]:
        if self.ctx is None:
            return None
        path = violation.location.file
        if path not in self._lines:
            file_ctx = self.ctx.source_files.get(path)
            self._lines[path] = (file_ctx.source_code or "").splitlines() if file_ctx else []
        lines = self._lines[path]
        if 1 <= violation.location.line <= len(lines):
            return lines[violation.location.line - 1].strip()
        return None


def report_violations_json(
    violations: List[Violation],
    output_file: Optional[TextIO] = None,
) -> int:
    """Print {"violations": [...], "total": n}."""
    _Tee(output_file)(json.dumps({"violations": [v.to_dict() for v in violations], "total": len(violations)}, indent=2))
    return len(violations)


def report_expectation_problems(problems: List[str], output_file: Optional[TextIO] = None) -> int:
    """Report `// want` mismatches. Returns the number of problems."""
    out = _Tee(output_file)
    if not problems:
        out("All expectations matched")
        return 0
    for problem in problems:
        out(f"{_C.RED}{problem}{_C.RESET}")
    out(f"\n{len(problems)} expectation problem(s)")
    return len(problems)
