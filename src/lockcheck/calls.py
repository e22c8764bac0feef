"""
Call-site checker.

Validates calls from one method of a mutex-bearing type to another method of
the same type, through the same receiver, against the caller's lock state:

    caller        callee        state       result
    privileged    privileged    locked      violation (would deadlock)
    privileged    privileged    not locked  ok
    privileged    unprivileged  not locked  violation (callee expects the lock)
    privileged    unprivileged  locked      ok
    unprivileged  privileged    any         violation
    unprivileged  unprivileged  any         ok

Calls that cannot be resolved to the caller's own receiver (other variables,
fields of another type, function values) are never checked.
"""

from typing import Optional, Tuple

from golang.ir import Call, Ident, Selector
from lockcheck.classify import MethodDescriptor, MutexBearingType
from lockcheck.lattice import LockState, is_locked, may_be_unlocked
from lockcheck.violations import (
    ViolationKind,
    privileged_call_while_locked_message,
    unprivileged_call_without_lock_message,
    unprivileged_calls_privileged_message,
)


def resolve_method_call(call: Call, receiver: Optional[str], mtype: MutexBearingType) -> Optional[MethodDescriptor]:
    """Resolve `recv.m(...)` to a method of the receiver's own type, or None."""
    if receiver is None:
        return None
    func = call.func
    if not isinstance(func, Selector) or not isinstance(func.operand, Ident):
        return None
    if func.operand.name != receiver:
        return None
    return mtype.method(func.field)


def check_call(
    caller: MethodDescriptor,
    callee: MethodDescriptor,
    state: Optional[LockState],
    check_state: bool = True,
) -> Optional[Tuple[ViolationKind, str]]:
    """
    Apply the call table. Returns (kind, message) for a violation, else None.

    check_state=False disables the state-dependent rows (used for function
    literals that never take the lock themselves). An unreachable call site
    (state None) only triggers the state-independent row.
    """
    if not caller.is_privileged:
        if callee.is_privileged:
            return (
                ViolationKind.UNPRIVILEGED_CALLS_PRIVILEGED,
                unprivileged_calls_privileged_message(caller.name, callee.name),
            )
        return None

    if not check_state:
        return None
    if callee.is_privileged and is_locked(state):
        return (
            ViolationKind.PRIVILEGED_CALL_WHILE_LOCKED,
            privileged_call_while_locked_message(caller.name, callee.name),
        )
    if not callee.is_privileged and may_be_unlocked(state):
        return (
            ViolationKind.UNPRIVILEGED_CALL_WITHOUT_LOCK,
            unprivileged_call_without_lock_message(caller.name, callee.name),
        )
    return None
