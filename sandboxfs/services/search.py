# sandboxfs/services/search.py
"""
Bounded recursive search.

The walk is depth-first, stops descending at max_depth (exclusive) and stops
adding results once max_results is reached; no directory is listed after that.
Symlinked directories are never descended into.
"""
from __future__ import annotations

import os
from typing import Callable, List, Sequence

import aiofiles.os
from pathspec import PathSpec

from sandboxfs.errors import IOFailure

Matcher = Callable[[os.DirEntry], bool]


def compile_excludes(patterns: Sequence[str]) -> List[PathSpec]:
    """
    A bare name is treated as `**/name/**`; anything with a `*` is used as a
    glob on the path relative to the search root, so `*.log` only covers
    entries directly under the root.
    """
    specs = []
    for pattern in patterns:
        if "*" not in pattern:
            # `**/name/**` does not match the directory itself; add it explicitly
            lines = [f"**/{pattern}/**", f"**/{pattern}"]
        elif "/" not in pattern:
            # gitwildmatch floats slash-less patterns to every depth
            lines = [f"/{pattern}"]
        else:
            lines = [pattern]
        specs.append(PathSpec.from_lines("gitwildmatch", lines))
    return specs


def _excluded(relative: str, excludes: Sequence[PathSpec]) -> bool:
    return any(spec.match_file(relative) for spec in excludes)


async def _walk(root: str, matches: Matcher, exclude_patterns: Sequence[str],
                max_depth: int, max_results: int) -> List[str]:
    results: List[str] = []
    excludes = compile_excludes(exclude_patterns)

    async def visit(current: str, depth: int):
        if depth >= max_depth or len(results) >= max_results:
            return

        try:
            with await aiofiles.os.scandir(current) as it:
                entries = list(it)
        except OSError as e:
            raise IOFailure(f"Cannot list {current}: {e.strerror or e}") from e

        for entry in entries:
            if len(results) >= max_results:
                return
            relative = os.path.relpath(entry.path, root).replace(os.sep, "/")
            if _excluded(relative, excludes):
                continue

            if matches(entry):
                results.append(entry.path)
                if len(results) >= max_results:
                    return

            if entry.is_dir(follow_symlinks=False):
                await visit(entry.path, depth + 1)

    await visit(root, 0)
    return results


async def search_files(root: str, pattern: str, exclude_patterns: Sequence[str] = (),
                       max_depth: int = 2, max_results: int = 10) -> List[str]:
    """Entries (files or directories) whose name contains `pattern`, case-insensitive."""
    needle = pattern.lower()
    return await _walk(
        root,
        lambda entry: needle in entry.name.lower(),
        exclude_patterns,
        max_depth,
        max_results,
    )


async def find_files_by_extension(root: str, extension: str, exclude_patterns: Sequence[str] = (),
                                  max_depth: int = 2, max_results: int = 10) -> List[str]:
    """Regular files whose extension equals `extension` (leading dot optional), case-insensitive."""
    wanted = extension.lower()
    if wanted.startswith("."):
        wanted = wanted[1:]

    def matches(entry: os.DirEntry) -> bool:
        if not entry.is_file(follow_symlinks=False):
            return False
        return os.path.splitext(entry.name)[1].lower()[1:] == wanted

    return await _walk(root, matches, exclude_patterns, max_depth, max_results)
