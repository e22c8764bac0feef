from core.context import ProjectContext, SourceFileContext
from core.utils import debug, info, warn, error

__all__ = [
    "ProjectContext",
    "SourceFileContext",
    "debug",
    "info",
    "warn",
    "error",
]
