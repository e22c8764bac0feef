"""
Violation records and the run-scoped collector.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List

from golang.utils import SourceLocation


class ViolationKind(Enum):
    """Violation categories."""

    UNGUARDED_ACCESS = "unguarded-access"
    SELF_LOCKING = "self-locking"
    PRIVILEGED_CALL_WHILE_LOCKED = "privileged-call-while-locked"
    UNPRIVILEGED_CALL_WITHOUT_LOCK = "unprivileged-call-without-lock"
    UNPRIVILEGED_CALLS_PRIVILEGED = "unprivileged-calls-privileged"


@dataclass(frozen=True)
class Violation:
    method: str
    location: SourceLocation
    kind: ViolationKind
    message: str

    def sort_key(self):
        return (self.location.file, self.location.line, self.location.column, self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "file": self.location.file,
            "line": self.location.line,
            "column": self.location.column,
            "method": self.method,
            "category": self.kind.value,
            "message": self.message,
        }

    def __str__(self) -> str:
        return f"{self.location}: {self.message}"


def unguarded_access_message(method: str, field_name: str) -> str:
    return f"privileged method {method} accesses {field_name} without holding mutex"


def self_locking_message(method: str) -> str:
    return f"unprivileged method {method} locks mutex"


def privileged_call_while_locked_message(method: str, callee: str) -> str:
    return f"privileged method {method} calls privileged method {callee} while holding mutex"


def unprivileged_call_without_lock_message(method: str, callee: str) -> str:
    return f"privileged method {method} calls unprivileged method {callee} without holding mutex"


def unprivileged_calls_privileged_message(method: str, callee: str) -> str:
    return f"unprivileged method {method} calls privileged method {callee}"


class ViolationCollector:
    """
    Accumulates violations for one analyzer run.

    Every offending access or call site is recorded; nothing is merged or
    deduplicated. `sorted()` gives the deterministic presentation order.
    """

    def __init__(self):
        self._violations: List[Violation] = []

    def add(self, violation: Violation) -> None:
        self._violations.append(violation)

    def __len__(self) -> int:
        return len(self._violations)

    def sorted(self) -> List[Violation]:
        return sorted(self._violations, key=Violation.sort_key)
