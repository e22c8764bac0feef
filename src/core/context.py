"""
Describes the context used to keep the parsed files of the project under analysis,
grouped into Go packages.
"""

import os
from typing import List, Dict, Any, Optional, Tuple
from dataclasses import dataclass, field

from core.utils import error, warn
from golang.ir import GoFile

# Maps: (directory, package clause) -> files of that package
PackageKey = Tuple[str, str]


@dataclass
class SourceFileContext:
    path: str
    root: Optional[Any] = None
    source_code: Optional[str] = None
    go_file: Optional[GoFile] = None
    # (line, column, snippet) of the first ERROR nodes; non-empty means the file was skipped
    parse_errors: List[Tuple[int, int, str]] = field(default_factory=list)

    @property
    def is_test_file(self) -> bool:
        return self.path.endswith("_test.go")


class ProjectContext:
    """
    Describes the whole project-under-analysis: every source file, parsed once,
    and the packages they form. Holds no analysis results.
    """

    def __init__(self, source_files: List[str], sources: Optional[Dict[str, str]] = None):
        """
        Args:
            source_files: Paths of .go files to read from disk
            sources: Optional in-memory sources (path -> code); used instead of reading the path
        """
        sources = sources or {}
        paths = list(source_files) + [p for p in sources if p not in source_files]
        self.source_files: Dict[str, SourceFileContext] = {path: SourceFileContext(path) for path in paths}
        for path, file_ctx in self.source_files.items():
            if path in sources:
                file_ctx.source_code = sources[path]
            else:
                file_ctx.source_code = _read_source(path)
            if file_ctx.source_code is not None:
                _parse_file(file_ctx)

    @classmethod
    def from_sources(cls, sources: Dict[str, str]) -> "ProjectContext":
        return cls([], sources=sources)

    def packages(self) -> Dict[PackageKey, List[GoFile]]:
        """Group successfully parsed files by (directory, package name), in path order."""
        packages: Dict[PackageKey, List[GoFile]] = {}
        for path in sorted(self.source_files):
            go_file = self.source_files[path].go_file
            if go_file is None:
                continue
            key = (os.path.dirname(path), go_file.package)
            packages.setdefault(key, []).append(go_file)
        return packages

    def files_with_errors(self) -> List[SourceFileContext]:
        return [f for f in self.source_files.values() if f.parse_errors]


def _read_source(path: str) -> Optional[str]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            return f.read()
    except (OSError, UnicodeDecodeError) as e:
        error(f"reading {path}: {e}")
        return None


def _parse_file(file_ctx: SourceFileContext) -> None:
    from golang.parse import parse_go_source, build_go_file, find_error_nodes

    source_code = file_ctx.source_code or ""
    file_ctx.root = parse_go_source(source_code)

    errors = find_error_nodes(file_ctx.root)
    if errors:
        file_ctx.parse_errors = [
            (node.start_point[0] + 1, node.start_point[1] + 1, text) for node, _, text in errors
        ]
        line, col, _ = file_ctx.parse_errors[0]
        warn(f"{file_ctx.path}:{line}:{col}: syntax error, skipping file ({len(errors)} error node(s))")
        return

    file_ctx.go_file = build_go_file(file_ctx.root, file_ctx.path)
    if file_ctx.go_file is None:
        warn(f"{file_ctx.path}: no package clause, skipping file")
