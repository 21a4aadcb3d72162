# sandboxfs/di.py
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from sandboxfs.config import Settings
from sandboxfs.context import PermissionSet, SandboxContext
from sandboxfs.services.filesystem import FileSystemService
from sandboxfs.services.sandbox import build_symlink_cache, resolve_allowed_roots


@dataclass
class Container:
    settings: Settings
    context: SandboxContext
    fs_service: FileSystemService


def build_context(s: Settings) -> SandboxContext:
    directories = s.allowed_directories()
    for d in directories:
        Path(d).expanduser().mkdir(parents=True, exist_ok=True)
    roots = resolve_allowed_roots(directories)

    permissions = PermissionSet(
        create=s.ALLOW_CREATE,
        edit=s.ALLOW_EDIT,
        move=s.ALLOW_MOVE,
        delete=s.ALLOW_DELETE,
        rename=s.ALLOW_RENAME,
        full_access=s.FULL_ACCESS,
    )

    # The cache is only consulted when symlinks are not followed
    symlinks = (
        MappingProxyType({})
        if s.FOLLOW_SYMLINKS
        else build_symlink_cache(directories, max_depth=s.SYMLINK_SCAN_MAX_DEPTH)
    )

    working_root = str(Path(s.WORKING_DIR).expanduser().resolve()) if s.WORKING_DIR else None

    return SandboxContext(
        allowed_roots=roots,
        permissions=permissions,
        symlinks=symlinks,
        follow_symlinks=s.FOLLOW_SYMLINKS,
        working_root=working_root,
        max_read_bytes=s.MAX_READ_BYTES,
    )


def build_container(settings: Settings | None = None) -> Container:
    s = settings or Settings()
    context = build_context(s)
    return Container(s, context, FileSystemService(context))
