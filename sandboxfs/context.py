# sandboxfs/context.py
from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping, Tuple


@dataclass(frozen=True)
class PermissionSet:
    """
    Snapshot of the capability flags granted at startup.
    full_access subsumes every other flag.
    """
    create: bool = False
    edit: bool = False
    move: bool = False
    delete: bool = False
    rename: bool = False
    full_access: bool = False

    def allows(self, capability: str) -> bool:
        return self.full_access or bool(getattr(self, capability))


@dataclass(frozen=True)
class SandboxContext:
    """
    Everything a request needs to know about the sandbox, built once before
    the server starts and shared read-only by all requests.
    """
    allowed_roots: Tuple[str, ...]
    permissions: PermissionSet = PermissionSet()
    symlinks: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    follow_symlinks: bool = False
    working_root: str | None = None
    max_read_bytes: int = 10 * 1024

    def __post_init__(self):
        if not self.allowed_roots:
            raise ValueError("At least one allowed directory is required")
        if self.working_root is None:
            object.__setattr__(self, "working_root", self.allowed_roots[0])
        if not isinstance(self.symlinks, MappingProxyType):
            object.__setattr__(self, "symlinks", MappingProxyType(dict(self.symlinks)))
