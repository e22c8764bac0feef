"""
Lock-state lattice.

LockState models a property of the program under analysis (is the receiver's
mutex held at this point?), not a lock the analyzer itself takes.

Points that no control-flow path reaches are represented by None. They are
not part of the lattice: a join simply ignores them.
"""

from enum import Enum
from typing import Iterable, Optional


class LockState(Enum):
    NOT_LOCKED = "not-locked"
    LOCKED = "locked"

    def __str__(self) -> str:
        return self.value


# Entry state of every method and function literal
INITIAL_STATE = LockState.NOT_LOCKED


def join(*states: Optional[LockState]) -> Optional[LockState]:
    """Conjunctive join: LOCKED only if every reaching predecessor is LOCKED."""
    return join_all(states)


def join_all(states: Iterable[Optional[LockState]]) -> Optional[LockState]:
    result: Optional[LockState] = None
    for state in states:
        if state is None:
            continue
        if state is LockState.NOT_LOCKED:
            return LockState.NOT_LOCKED
        result = state
    return result


def is_locked(state: Optional[LockState]) -> bool:
    return state is LockState.LOCKED


def may_be_unlocked(state: Optional[LockState]) -> bool:
    """True if the point is reachable and at least one path reaches it unlocked."""
    return state is LockState.NOT_LOCKED
