"""
Mutex-discipline analysis for Go.

Pass 1: Declaration classification - mutex-bearing types, method privilege
Pass 2: Lock-state flow analysis and call-site checks, per method
"""

from typing import Dict, List, Optional

from core.context import ProjectContext
from core.utils import debug
from lockcheck.classify import (
    LOCK_TYPES,
    PrivilegeClassifier,
    build_type_map,
    classify_privilege,
)
from lockcheck.flow import analyze_types
from lockcheck.violations import Violation, ViolationCollector


def run_lockcheck(
    ctx: ProjectContext,
    skip_tests: bool = False,
    classify: PrivilegeClassifier = classify_privilege,
) -> List[Violation]:
    """
    Run both passes over every package of the project.

    Args:
        skip_tests: If True, leave out *_test.go files.
        classify: Method privilege policy.

    Returns: violations ordered by source position
    """
    collector = ViolationCollector()
    skipped = {path for path, f in ctx.source_files.items() if skip_tests and f.is_test_file}

    for (directory, package), files in ctx.packages().items():
        files = [f for f in files if f.path not in skipped]
        if not files:
            continue
        debug(f"Package {package} ({directory or '.'}): {len(files)} file(s)")
        type_map = build_type_map(files, classify=classify, lock_types=LOCK_TYPES)
        analyze_types(type_map, collector)

    return collector.sorted()


def check_sources(sources: Dict[str, str], classify: Optional[PrivilegeClassifier] = None) -> List[Violation]:
    """Analyze in-memory Go sources (path -> code)."""
    ctx = ProjectContext.from_sources(sources)
    return run_lockcheck(ctx, classify=classify or classify_privilege)


def check_source(source_code: str, filename: str = "a.go") -> List[Violation]:
    """Analyze a single in-memory Go file."""
    return check_sources({filename: source_code})


__all__ = [
    "run_lockcheck",
    "check_sources",
    "check_source",
    "Violation",
]
