"""
CLI helper functions: environment validation, file collection.
"""

import importlib.util
import os
import sys
from typing import List

from core.utils import debug, error

# Directories the go tool itself ignores
SKIP_DIR_NAMES = {"vendor", "testdata"}

# import name -> distribution name
REQUIRED_MODULES = {
    "tree_sitter": "tree-sitter",
    "tree_sitter_go": "tree-sitter-go",
}


def validate_environment() -> None:
    """Exit with status 1 if the parser libraries are not importable."""
    missing = [dist for module, dist in REQUIRED_MODULES.items() if importlib.util.find_spec(module) is None]
    if missing:
        error("Environment validation failed: missing " + ", ".join(missing))
        error(f"Install with:\n  pip install {' '.join(missing)}")
        sys.exit(1)


def _is_skipped_dir(name: str) -> bool:
    return name in SKIP_DIR_NAMES or name.startswith((".", "_"))


def collect_source_files(input_path: str, skip_tests: bool = False) -> List[str]:
    """
    Collect .go files from a file or a directory tree, sorted by path.

    A file given explicitly is always returned. Directory walks skip vendor/,
    testdata/ and directories starting with "." or "_", like `go build ./...`.
    """
    if os.path.isfile(input_path):
        return [input_path]
    if not os.path.isdir(input_path):
        return []

    source_files = []
    for dirpath, dirnames, filenames in os.walk(input_path):
        dirnames[:] = [d for d in dirnames if not _is_skipped_dir(d)]
        for filename in filenames:
            if not filename.endswith(".go"):
                continue
            if skip_tests and filename.endswith("_test.go"):
                debug(f"--skip-tests: skipping {os.path.join(dirpath, filename)}")
                continue
            source_files.append(os.path.join(dirpath, filename))
    return sorted(source_files)
