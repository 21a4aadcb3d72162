# sandboxfs/services/filesystem.py
from __future__ import annotations

import asyncio
import logging
import os
import stat
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import List, Optional, Sequence

import aiofiles
import aiofiles.os

from sandboxfs.context import SandboxContext
from sandboxfs.errors import (
    AlreadyExists,
    FilesystemToolError,
    IOFailure,
    NotFound,
    PermissionDenied,
    SizeLimitExceeded,
    ValidationError,
)
from sandboxfs.services import search
from sandboxfs.services.edits import EditOperation, apply_edits, create_unified_diff, format_diff
from sandboxfs.services.sandbox import validate_path

logger = logging.getLogger(__name__)

# capability -> env flag that grants it, for error messages
_FLAGS = {
    "create": "ALLOW_CREATE",
    "edit": "ALLOW_EDIT",
    "move": "ALLOW_MOVE",
    "delete": "ALLOW_DELETE",
    "rename": "ALLOW_RENAME",
}


def _iso(ts: float) -> str:
    return datetime.fromtimestamp(ts, tz=timezone.utc).isoformat()


@dataclass
class FileInfo:
    size: int
    created: str
    modified: str
    accessed: str
    is_directory: bool
    is_file: bool
    permissions: str

    @classmethod
    def from_stat(cls, st: os.stat_result) -> "FileInfo":
        return cls(
            size=st.st_size,
            created=_iso(getattr(st, "st_birthtime", st.st_ctime)),
            modified=_iso(st.st_mtime),
            accessed=_iso(st.st_atime),
            is_directory=stat.S_ISDIR(st.st_mode),
            is_file=stat.S_ISREG(st.st_mode),
            permissions=oct(st.st_mode)[-3:],
        )

    def render(self) -> str:
        return "\n".join(f"{k}: {v}" for k, v in asdict(self).items())


class FileSystemService:
    """
    One coroutine per tool. Every path goes through validate_path() before
    any other filesystem call; write operations then check their capability.
    """

    def __init__(self, context: SandboxContext):
        self.context = context

    # ---------- Guards ----------

    def _require(self, capability: str, action: str):
        if not self.context.permissions.allows(capability):
            logger.warning("Permission refused: %s requires %s", action, capability)
            raise PermissionDenied(
                f"Cannot {action}: {capability} permission not granted "
                f"(set {_FLAGS[capability]}=true or FULL_ACCESS=true)"
            )

    async def _stat(self, path: str, requested: str) -> os.stat_result:
        try:
            return await aiofiles.os.stat(path)
        except FileNotFoundError as e:
            raise NotFound(f"File not found: {requested}") from e
        except OSError as e:
            raise IOFailure(f"Cannot access {requested}: {e.strerror or e}") from e

    async def _exists(self, path: str, requested: str) -> bool:
        """Only FileNotFoundError means "absent"; any other failure is re-raised."""
        try:
            await aiofiles.os.stat(path)
        except FileNotFoundError:
            return False
        except OSError as e:
            raise IOFailure(f"Cannot access {requested}: {e.strerror or e}") from e
        return True

    async def _check_size(self, path: str, requested: str, max_bytes: Optional[int],
                          purpose: str = "") -> int:
        st = await self._stat(path, requested)
        limit = max_bytes if max_bytes is not None else self.context.max_read_bytes
        if st.st_size > limit:
            raise SizeLimitExceeded(
                f"File size ({st.st_size} bytes) exceeds the maximum allowed size "
                f"({limit} bytes){purpose}."
            )
        return st.st_size

    async def _read_text(self, path: str, requested: str) -> str:
        try:
            async with aiofiles.open(path, "r", encoding="utf-8", newline="") as f:
                return await f.read()
        except UnicodeDecodeError as e:
            raise IOFailure(f"Cannot read {requested}: not valid UTF-8 text") from e
        except OSError as e:
            raise IOFailure(f"Cannot read {requested}: {e.strerror or e}") from e

    async def _write_text(self, path: str, requested: str, content: str, mode: str = "w"):
        try:
            async with aiofiles.open(path, mode, encoding="utf-8", newline="") as f:
                await f.write(content)
        except FileExistsError as e:
            raise AlreadyExists(f"File already exists: {requested}") from e
        except OSError as e:
            raise IOFailure(f"Cannot write {requested}: {e.strerror or e}") from e

    # ---------- Read ----------

    async def read_file(self, path: str, max_bytes: Optional[int] = None) -> str:
        valid = await validate_path(path, self.context)
        await self._check_size(valid, path, max_bytes)
        return await self._read_text(valid, path)

    async def read_multiple_files(self, paths: Sequence[str],
                                  max_bytes_per_file: Optional[int] = None) -> str:
        async def read_one(requested: str) -> str:
            try:
                content = await self.read_file(requested, max_bytes_per_file)
            except FilesystemToolError as e:
                return f"{requested}: Error - {e}"
            return f"{requested}:\n{content}\n"

        results = await asyncio.gather(*(read_one(p) for p in paths))
        return "\n---\n".join(results)

    async def get_file_info(self, path: str) -> str:
        valid = await validate_path(path, self.context)
        st = await self._stat(valid, path)
        return FileInfo.from_stat(st).render()

    async def list_directory(self, path: str) -> str:
        valid = await validate_path(path, self.context)
        try:
            with await aiofiles.os.scandir(valid) as it:
                entries = sorted(it, key=lambda e: e.name)
        except FileNotFoundError as e:
            raise NotFound(f"Directory not found: {path}") from e
        except OSError as e:
            raise IOFailure(f"Cannot list {path}: {e.strerror or e}") from e
        return "\n".join(
            f"{'[DIR]' if e.is_dir(follow_symlinks=False) else '[FILE]'} {e.name}" for e in entries
        )

    def list_allowed_directories(self) -> str:
        return "Allowed directories:\n" + "\n".join(self.context.allowed_roots)

    # ---------- Write ----------

    async def create_file(self, path: str, content: str) -> str:
        valid = await validate_path(path, self.context, check_parent_exists=False)
        self._require("create", "create new file")
        if await self._exists(valid, path):
            raise AlreadyExists(f"File already exists: {path}")

        try:
            await aiofiles.os.makedirs(os.path.dirname(valid), exist_ok=True)
        except OSError as e:
            raise IOFailure(f"Cannot create parent directory for {path}: {e.strerror or e}") from e
        await self._write_text(valid, path, content, mode="x")
        logger.info("Created %s", valid)
        return f"Successfully created {path}"

    async def modify_file(self, path: str, content: str) -> str:
        valid = await validate_path(path, self.context)
        self._require("edit", "modify file")
        if not await self._exists(valid, path):
            raise NotFound(f"Cannot modify file: file does not exist: {path}")

        await self._write_text(valid, path, content)
        logger.info("Modified %s", valid)
        return f"Successfully modified {path}"

    async def edit_file(self, path: str, edits: Sequence[EditOperation], dry_run: bool = False,
                        max_bytes: Optional[int] = None) -> str:
        """
        Apply `edits` in order and return the fenced unified diff.
        The file is written only when every edit matched and dry_run is False.
        """
        valid = await validate_path(path, self.context)
        self._require("edit", "edit file")
        await self._check_size(valid, path, max_bytes, purpose=" for editing")

        original = await self._read_text(valid, path)
        modified = apply_edits(original, edits)
        diff = format_diff(create_unified_diff(original, modified, valid))

        if not dry_run:
            await self._write_text(valid, path, modified)
            logger.info("Edited %s (%d edits)", valid, len(edits))
        return diff

    async def create_directory(self, path: str) -> str:
        valid = await validate_path(path, self.context, check_parent_exists=False)
        self._require("create", "create directory")
        try:
            await aiofiles.os.makedirs(valid, exist_ok=True)
        except FileExistsError as e:
            raise AlreadyExists(f"Path exists and is not a directory: {path}") from e
        except OSError as e:
            raise IOFailure(f"Cannot create directory {path}: {e.strerror or e}") from e
        return f"Successfully created directory {path}"

    async def move_file(self, source: str, destination: str) -> str:
        valid_source = await validate_path(source, self.context)
        valid_dest = await validate_path(destination, self.context, check_parent_exists=False)
        self._require("move", "move file")

        await self._stat(valid_source, source)
        if not await self._exists(os.path.dirname(valid_dest), destination):
            raise NotFound(
                f"Destination parent directory does not exist: {os.path.dirname(destination)}"
            )
        if await self._exists(valid_dest, destination):
            raise AlreadyExists(f"Destination already exists: {destination}")

        try:
            await aiofiles.os.rename(valid_source, valid_dest)
        except OSError as e:
            raise IOFailure(f"Failed to move {source}: {e.strerror or e}") from e
        logger.info("Moved %s -> %s", valid_source, valid_dest)
        return f"Successfully moved {source} to {destination}"

    async def rename_file(self, path: str, new_name: str) -> str:
        if not new_name or new_name in (".", "..") or "/" in new_name or os.sep in new_name:
            raise ValidationError(f"Invalid new name (must be a single file name): {new_name!r}")

        valid_source = await validate_path(path, self.context)
        self._require("rename", "rename file")
        await self._stat(valid_source, path)

        destination = os.path.join(os.path.dirname(valid_source), new_name)
        valid_dest = await validate_path(destination, self.context)
        if await self._exists(valid_dest, new_name):
            raise AlreadyExists(
                f'Cannot rename file: a file with name "{new_name}" already exists in the directory'
            )

        try:
            await aiofiles.os.rename(valid_source, valid_dest)
        except OSError as e:
            raise IOFailure(f"Failed to rename {path}: {e.strerror or e}") from e
        logger.info("Renamed %s -> %s", valid_source, valid_dest)
        return f"Successfully renamed {path} to {new_name}"

    async def delete_file(self, path: str) -> str:
        valid = await validate_path(path, self.context)
        self._require("delete", "delete file")
        await self._stat(valid, path)

        try:
            await aiofiles.os.remove(valid)
        except OSError as e:
            raise IOFailure(f"Failed to delete file: {e.strerror or e}") from e
        logger.info("Deleted %s", valid)
        return f"Successfully deleted {path}"

    # ---------- Search ----------

    async def _search_root(self, path: str) -> str:
        valid = await validate_path(path, self.context)
        st = await self._stat(valid, path)
        if not stat.S_ISDIR(st.st_mode):
            raise ValidationError(f"Search root is not a directory: {path}")
        return valid

    async def search_files(self, path: str, pattern: str, exclude_patterns: Sequence[str] = (),
                           max_depth: int = 2, max_results: int = 10) -> str:
        root = await self._search_root(path)
        results = await search.search_files(root, pattern, exclude_patterns, max_depth, max_results)
        return "\n".join(results) if results else "No matches found"

    async def find_files_by_extension(self, path: str, extension: str,
                                      exclude_patterns: Sequence[str] = (),
                                      max_depth: int = 2, max_results: int = 10) -> str:
        root = await self._search_root(path)
        results: List[str] = await search.find_files_by_extension(
            root, extension, exclude_patterns, max_depth, max_results
        )
        return "\n".join(results) if results else f"No files with extension '{extension}' found"
