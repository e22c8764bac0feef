import os
import sys

_DEBUG_ENABLED = bool(os.getenv("LOCKCHECK_DEBUG"))


def debug(*args, **kwargs):
    if _DEBUG_ENABLED:
        prefix = "\033[1m[DEBUG]\033[0m"
        print(prefix, *args, file=sys.stderr, **kwargs)


def info(*args, **kwargs):
    prefix = "\033[1;34m[INFO]\033[0m"
    print(prefix, *args, file=sys.stderr, **kwargs)


def warn(*args, **kwargs):
    prefix = "\033[1;33m[WARNING]\033[0m"
    print(prefix, *args, file=sys.stderr, **kwargs)


def error(*args, **kwargs):
    prefix = "\033[1;31m[ERROR]\033[0m"
    print(prefix, *args, file=sys.stderr, **kwargs)


# Go name utilities


def strip_pointer(type_text: str) -> str:
    """Strip leading pointer stars and surrounding parens (*Foo -> Foo)."""
    text = type_text.strip()
    while text.startswith("(") and text.endswith(")"):
        text = text[1:-1].strip()
    return text.lstrip("*").strip()


def strip_type_args(type_text: str) -> str:
    """Strip generic type arguments (Foo[K, V] -> Foo)."""
    return type_text.split("[", 1)[0].strip()


def get_simple_name(name: str) -> str:
    """Extract simple name from a package-qualified name (sync.Mutex -> Mutex)."""
    return name.rsplit(".", 1)[-1] if "." in name else name
