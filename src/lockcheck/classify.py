"""
Declaration classifier (pass 1).

Finds mutex-bearing struct types and classifies each of their methods as
privileged or unprivileged by name. The resulting map is built once per
package and is read-only for the flow analysis.

Privilege policy:
- Exported methods (upper-case first letter) manage their own locking.
- So do methods named managedX, threadedX and callX: the prefix must be a
  whole camelCase word, so `callsBar` or `managed` do not qualify.
- Everything else is a bare method: it assumes the caller holds the lock.
"""

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Callable, Dict, FrozenSet, Iterable, List, Mapping, Optional, Tuple

from core.utils import debug
from golang.ir import GoFile, MethodDecl, Stmt, TypeDecl
from golang.utils import SourceLocation


LOCK_TYPES: Tuple[str, ...] = ("sync.Mutex",)

PRIVILEGED_PREFIXES: Tuple[str, ...] = ("managed", "threaded", "call")


class Privilege(Enum):
    PRIVILEGED = "privileged"
    UNPRIVILEGED = "unprivileged"

    def __str__(self) -> str:
        return self.value


def classify_privilege(name: str) -> Privilege:
    """Classify a method name under the project's locking convention."""
    if name[:1].isupper():
        return Privilege.PRIVILEGED
    for prefix in PRIVILEGED_PREFIXES:
        rest = name[len(prefix) :]
        if name.startswith(prefix) and rest[:1].isupper():
            return Privilege.PRIVILEGED
    return Privilege.UNPRIVILEGED


PrivilegeClassifier = Callable[[str], Privilege]


@dataclass(frozen=True)
class MethodDescriptor:
    """A method of a mutex-bearing type."""

    name: str
    type_name: str
    privilege: Privilege
    receiver: Optional[str]
    body: List[Stmt] = field(compare=False, hash=False, repr=False)
    location: SourceLocation = field(compare=False)

    @property
    def is_privileged(self) -> bool:
        return self.privilege is Privilege.PRIVILEGED


@dataclass(frozen=True)
class MutexBearingType:
    """A struct type with a recognized lock field."""

    name: str
    lock_field: str
    lock_embedded: bool
    protected_fields: FrozenSet[str]
    methods: Mapping[str, MethodDescriptor]
    location: SourceLocation = field(compare=False)

    def is_protected(self, field_name: str) -> bool:
        return field_name in self.protected_fields

    def method(self, name: str) -> Optional[MethodDescriptor]:
        return self.methods.get(name)


TypeMap = Mapping[str, MutexBearingType]


def find_lock_field(type_decl: TypeDecl, lock_types: Iterable[str] = LOCK_TYPES) -> Optional[Tuple[str, bool]]:
    """Return (lock field name, embedded) for the first lock-typed field, or None."""
    lock_types = tuple(lock_types)
    for fld in type_decl.fields:
        # `*sync.Mutex` fields are not recognized
        if fld.type_text.strip() in lock_types:
            return (fld.name, fld.embedded)
    return None


def build_type_map(
    files: Iterable[GoFile],
    classify: PrivilegeClassifier = classify_privilege,
    lock_types: Iterable[str] = LOCK_TYPES,
) -> TypeMap:
    """
    Build the immutable type -> MutexBearingType map for one package.

    Types without a lock field are absent from the map, so every later check
    ignores them. Methods are classified exactly once, here.
    """
    files = list(files)
    lock_types = tuple(lock_types)

    lock_info: Dict[str, Tuple[TypeDecl, str, bool]] = {}
    for go_file in files:
        for type_decl in go_file.types:
            found = find_lock_field(type_decl, lock_types)
            if found is None:
                continue
            if type_decl.name in lock_info:
                debug(f"Duplicate struct {type_decl.name} at {type_decl.location}, keeping the first")
                continue
            lock_info[type_decl.name] = (type_decl, found[0], found[1])

    methods: Dict[str, Dict[str, MethodDescriptor]] = {name: {} for name in lock_info}
    for go_file in files:
        for method in go_file.methods:
            if method.receiver_type not in lock_info:
                continue
            methods[method.receiver_type][method.name] = _describe(method, classify)

    type_map: Dict[str, MutexBearingType] = {}
    for name, (type_decl, lock_field, embedded) in lock_info.items():
        protected = frozenset(f.name for f in type_decl.fields if f.name != lock_field)
        type_map[name] = MutexBearingType(
            name=name,
            lock_field=lock_field,
            lock_embedded=embedded,
            protected_fields=protected,
            methods=MappingProxyType(methods[name]),
            location=type_decl.location,
        )
        debug(
            f"Mutex-bearing type {name}: lock={lock_field}, protected={sorted(protected)}, "
            f"methods={sorted(methods[name])}"
        )

    return MappingProxyType(type_map)


def _describe(method: MethodDecl, classify: PrivilegeClassifier) -> MethodDescriptor:
    return MethodDescriptor(
        name=method.name,
        type_name=method.receiver_type,
        privilege=classify(method.name),
        receiver=method.receiver,
        body=method.body,
        location=method.location,
    )
