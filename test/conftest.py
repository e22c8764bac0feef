import os
import sys
from pathlib import Path

import pytest


# Ensure the project `src` directory is on sys.path so tests can import
# modules like `golang`, `lockcheck`, `reporter`, etc.
PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_DIR = PROJECT_ROOT / "src"

if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

# Disable colors before the reporter is imported (evaluated at import time)
os.environ.setdefault("LOCKCHECK_NO_COLORS", "1")


@pytest.fixture
def go_package(tmp_path):
    """Write Go files into a temporary package directory and return its path."""

    def write(files):
        pkg_dir = tmp_path / "pkg"
        for name, content in files.items():
            path = pkg_dir / name
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")
        return pkg_dir

    return write
