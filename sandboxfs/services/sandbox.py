# sandboxfs/services/sandbox.py
"""
Path sandboxing.

validate_path() turns a caller-supplied path into an absolute, canonical,
symlink-resolved path that lies inside one of the allowed roots, or raises a
PathRejected subclass. The path is normalized lexically first, so `..` is
collapsed before any symlink is looked at; symlinks are then resolved one
component at a time, either by following them or through the startup cache.
"""
from __future__ import annotations

import logging
import os
import stat
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Sequence, Tuple

from aiofiles.os import wrap

from sandboxfs.context import SandboxContext
from sandboxfs.errors import (
    AncestorNotFound,
    IOFailure,
    OutsideSandbox,
    UnresolvableSymlink,
    ValidationError,
)

logger = logging.getLogger(__name__)

_lstat = wrap(os.lstat)
_realpath = wrap(os.path.realpath)


# ---------- Roots ----------

def is_within_roots(path: str, roots: Iterable[str]) -> bool:
    """Segment-aligned prefix test: /a/b admits /a/b and /a/b/c, never /a/bc."""
    for root in roots:
        try:
            if os.path.commonpath([root, path]) == root:
                return True
        except ValueError:
            # different drives, or mixed absolute/relative
            continue
    return False


def resolve_allowed_roots(directories: Sequence[str]) -> Tuple[str, ...]:
    roots: List[str] = []
    for directory in directories:
        real = os.path.realpath(os.path.abspath(os.path.expanduser(directory)))
        if not os.path.isdir(real):
            raise ValueError(f"Allowed directory is not a directory: {directory}")
        if real not in roots:
            roots.append(real)
    return tuple(roots)


# ---------- Symlink cache ----------

def _split(path: str) -> Tuple[str, List[str]]:
    drive, rest = os.path.splitdrive(path)
    return drive + os.sep, [p for p in rest.split(os.sep) if p]


def _record_symlinked_components(path: str, cache: Dict[str, str]) -> None:
    current, parts = _split(path)
    for part in parts:
        candidate = os.path.join(current, part)
        if os.path.islink(candidate):
            target = os.path.realpath(candidate)
            cache[candidate] = target
            current = target
        else:
            current = candidate


def build_symlink_cache(directories: Sequence[str], max_depth: int = 8) -> Mapping[str, str]:
    """
    Map every symlink found under the allowed directories (down to max_depth)
    to its real target. Keys use the real path of the containing directory,
    which is how validate_path() looks them up.

    Symlinked components of the configured spellings themselves (e.g. /tmp on
    systems where it points to /private/tmp) are recorded as well.
    """
    cache: Dict[str, str] = {}
    for directory in directories:
        configured = os.path.abspath(os.path.expanduser(directory))
        _record_symlinked_components(configured, cache)

        root = os.path.realpath(configured)
        base_depth = root.rstrip(os.sep).count(os.sep)
        for dirpath, dirnames, filenames in os.walk(root, followlinks=False):
            for name in dirnames + filenames:
                full = os.path.join(dirpath, name)
                if os.path.islink(full):
                    cache[full] = os.path.realpath(full)
            if dirpath.rstrip(os.sep).count(os.sep) - base_depth + 1 >= max_depth:
                dirnames[:] = []

    logger.info("Symlink cache: %d entries", len(cache))
    return MappingProxyType(cache)


# ---------- Validation ----------

def _outside(requested: str) -> OutsideSandbox:
    logger.warning("Sandbox rejection: %s resolves outside allowed directories", requested)
    return OutsideSandbox(f"Access denied - path outside allowed directories: {requested}")


async def _follow(link: str, requested: str, context: SandboxContext) -> str:
    if context.follow_symlinks:
        return await _realpath(link)

    target = context.symlinks.get(link)
    if target is None:
        if not is_within_roots(link, context.allowed_roots):
            raise _outside(requested)
        logger.warning("Sandbox rejection: untrusted symlink in %s", requested)
        raise UnresolvableSymlink(f"Access denied - symlink not permitted: {requested}")
    return target


async def _resolve(normalized: str, requested: str, context: SandboxContext,
                   check_parent_exists: bool) -> str:
    current, parts = _split(normalized)
    for index, part in enumerate(parts):
        candidate = os.path.join(current, part)
        try:
            st = await _lstat(candidate)
        except (FileNotFoundError, NotADirectoryError):
            remaining = parts[index:]
            unresolved = os.path.join(current, *remaining)
            if not is_within_roots(unresolved, context.allowed_roots):
                raise _outside(requested)
            if check_parent_exists and len(remaining) > 1:
                raise AncestorNotFound(
                    f"Parent directory does not exist: {os.path.dirname(requested) or requested}"
                )
            return unresolved
        except (OSError, ValueError) as e:
            if not is_within_roots(candidate, context.allowed_roots):
                raise _outside(requested)
            raise IOFailure(f"Cannot resolve {requested}: {getattr(e, 'strerror', None) or e}") from e

        if stat.S_ISLNK(st.st_mode):
            current = await _follow(candidate, requested, context)
        else:
            current = candidate
    return current


async def validate_path(requested: str, context: SandboxContext, *,
                        check_parent_exists: bool = True) -> str:
    """
    Return the canonical path for `requested`, guaranteed inside the sandbox.

    check_parent_exists=False is for targets that are about to be created:
    missing intermediate directories are allowed as long as the first existing
    ancestor, and the full lexical path below it, stay inside the roots.

    Raises ValidationError for a path containing NUL, otherwise OutsideSandbox,
    UnresolvableSymlink or AncestorNotFound.
    """
    if "\x00" in requested:
        raise ValidationError(f"Invalid path (contains NUL byte): {requested!r}")

    expanded = os.path.expanduser(requested)
    if not os.path.isabs(expanded):
        expanded = os.path.join(context.working_root, expanded)
    normalized = os.path.normpath(expanded)

    resolved = await _resolve(normalized, requested, context, check_parent_exists)
    if not is_within_roots(resolved, context.allowed_roots):
        raise _outside(requested)
    return resolved
