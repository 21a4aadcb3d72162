# tests/test_files.py
from pathlib import Path

import pytest

from sandboxfs.context import PermissionSet
from sandboxfs.errors import (
    AlreadyExists,
    MatchFailure,
    NotFound,
    PathRejected,
    PermissionDenied,
    SizeLimitExceeded,
    ValidationError,
)
from sandboxfs.services.edits import EditOperation
from sandboxfs.services.filesystem import FileSystemService


@pytest.mark.asyncio
async def test_fs_sandbox_prevents_escape(fs: FileSystemService, sandbox: Path):
    await fs.create_file("ok.txt", "ok")
    assert await fs.read_file("ok.txt") == "ok"
    with pytest.raises(PermissionError):
        await fs.read_file("../escape.txt")


# ---------- read ----------

@pytest.mark.asyncio
async def test_read_file_size_limit(readonly_fs: FileSystemService, sandbox: Path):
    (sandbox / "big.txt").write_text("x" * 11 * 1024)
    with pytest.raises(SizeLimitExceeded) as exc:
        await readonly_fs.read_file(str(sandbox / "big.txt"))
    assert "11264 bytes" in str(exc.value)
    assert "10240 bytes" in str(exc.value)

    content = await readonly_fs.read_file(str(sandbox / "big.txt"), max_bytes=20 * 1024)
    assert len(content) == 11 * 1024


@pytest.mark.asyncio
async def test_read_missing_file(readonly_fs: FileSystemService, sandbox: Path):
    with pytest.raises(NotFound):
        await readonly_fs.read_file(str(sandbox / "missing.txt"))


@pytest.mark.asyncio
async def test_read_multiple_reports_failures_inline(readonly_fs: FileSystemService, sandbox: Path):
    (sandbox / "a.txt").write_text("alpha")
    (sandbox / "big.txt").write_text("x" * 100)

    out = await readonly_fs.read_multiple_files(
        ["a.txt", "missing.txt", "../etc/passwd", "big.txt"], max_bytes_per_file=50
    )
    parts = out.split("\n---\n")
    assert parts[0] == "a.txt:\nalpha\n"
    assert parts[1].startswith("missing.txt: Error - ")
    assert parts[2].startswith("../etc/passwd: Error - Access denied")
    assert parts[3].startswith("big.txt: Error - File size (100 bytes)")


@pytest.mark.asyncio
async def test_read_multiple_survives_nul_in_path(readonly_fs: FileSystemService, sandbox: Path):
    (sandbox / "ok.txt").write_text("fine")

    out = await readonly_fs.read_multiple_files(["ok.txt", "bad\x00name"])
    parts = out.split("\n---\n")
    assert parts[0] == "ok.txt:\nfine\n"
    assert parts[1].startswith("bad\x00name: Error - Invalid path")

    with pytest.raises(ValidationError):
        await readonly_fs.read_file("bad\x00name")


@pytest.mark.asyncio
async def test_get_file_info(readonly_fs: FileSystemService, sandbox: Path):
    (sandbox / "a.txt").write_text("hello")
    info = dict(
        line.split(": ", 1) for line in (await readonly_fs.get_file_info("a.txt")).splitlines()
    )
    assert info["size"] == "5"
    assert info["is_file"] == "True"
    assert info["is_directory"] == "False"
    assert len(info["permissions"]) == 3
    assert {"created", "modified", "accessed"} <= info.keys()


@pytest.mark.asyncio
async def test_list_directory(readonly_fs: FileSystemService, sandbox: Path):
    (sandbox / "b.txt").write_text("")
    (sandbox / "a").mkdir()
    assert await readonly_fs.list_directory(str(sandbox)) == "[DIR] a\n[FILE] b.txt"


def test_list_allowed_directories(readonly_fs: FileSystemService, sandbox: Path):
    assert readonly_fs.list_allowed_directories().splitlines()[1:] == [str(sandbox)]


# ---------- create / modify ----------

@pytest.mark.asyncio
async def test_create_file_refuses_existing(fs: FileSystemService, sandbox: Path):
    (sandbox / "a.txt").write_text("original")
    with pytest.raises(AlreadyExists):
        await fs.create_file("a.txt", "replacement")
    assert (sandbox / "a.txt").read_text() == "original"


@pytest.mark.asyncio
async def test_create_file_makes_parents(fs: FileSystemService, sandbox: Path):
    assert await fs.create_file("x/y/z.txt", "deep") == "Successfully created x/y/z.txt"
    assert (sandbox / "x" / "y" / "z.txt").read_text() == "deep"


@pytest.mark.asyncio
async def test_create_requires_permission(readonly_fs: FileSystemService, sandbox: Path):
    with pytest.raises(PermissionDenied) as exc:
        await readonly_fs.create_file("a.txt", "x")
    assert "ALLOW_CREATE" in str(exc.value)
    assert not (sandbox / "a.txt").exists()


@pytest.mark.asyncio
async def test_specific_flag_grants_only_its_operation(make_context, sandbox: Path):
    fs = FileSystemService(make_context(permissions=PermissionSet(create=True)))
    await fs.create_file("a.txt", "x")
    with pytest.raises(PermissionDenied):
        await fs.delete_file("a.txt")


@pytest.mark.asyncio
async def test_modify_file(fs: FileSystemService, sandbox: Path):
    with pytest.raises(NotFound):
        await fs.modify_file("a.txt", "x")
    (sandbox / "a.txt").write_text("old")
    await fs.modify_file("a.txt", "new")
    assert (sandbox / "a.txt").read_text() == "new"


@pytest.mark.asyncio
async def test_create_directory(fs: FileSystemService, sandbox: Path):
    await fs.create_directory("d/e")
    assert (sandbox / "d" / "e").is_dir()
    (sandbox / "file").write_text("")
    with pytest.raises(AlreadyExists):
        await fs.create_directory("file")


# ---------- edit ----------

@pytest.mark.asyncio
async def test_edit_file_dry_run_is_idempotent(fs: FileSystemService, sandbox: Path):
    (sandbox / "f.txt").write_text("foo\nbar\n")
    edits = [EditOperation("bar", "baz")]

    first = await fs.edit_file("f.txt", edits, dry_run=True)
    second = await fs.edit_file("f.txt", edits, dry_run=True)
    assert first == second
    assert first.startswith("```diff\n")
    assert "\n-bar\n+baz\n" in first
    assert (sandbox / "f.txt").read_text() == "foo\nbar\n"


@pytest.mark.asyncio
async def test_edit_file_writes(fs: FileSystemService, sandbox: Path):
    (sandbox / "f.txt").write_text("  indented\n")
    await fs.edit_file("f.txt", [EditOperation("indented", "changed")])
    assert (sandbox / "f.txt").read_text() == "  changed\n"


@pytest.mark.asyncio
async def test_edit_file_is_all_or_nothing(fs: FileSystemService, sandbox: Path):
    (sandbox / "f.txt").write_text("alpha\n")
    with pytest.raises(MatchFailure):
        await fs.edit_file("f.txt", [EditOperation("alpha", "beta"), EditOperation("nope", "x")])
    assert (sandbox / "f.txt").read_text() == "alpha\n"


@pytest.mark.asyncio
async def test_edit_file_writes_normalized_line_endings(fs: FileSystemService, sandbox: Path):
    (sandbox / "f.txt").write_bytes(b"a\r\nb\r\n")
    await fs.edit_file("f.txt", [EditOperation("b", "c")])
    assert (sandbox / "f.txt").read_bytes() == b"a\nc\n"


@pytest.mark.asyncio
async def test_edit_file_guards(readonly_fs: FileSystemService, fs: FileSystemService, sandbox: Path):
    (sandbox / "f.txt").write_text("x" * 200)
    with pytest.raises(PermissionDenied):
        await readonly_fs.edit_file("f.txt", [EditOperation("x", "y")])
    with pytest.raises(SizeLimitExceeded) as exc:
        await fs.edit_file("f.txt", [EditOperation("x", "y")], max_bytes=100)
    assert "for editing" in str(exc.value)


# ---------- move / rename / delete ----------

@pytest.mark.asyncio
async def test_move_file(fs: FileSystemService, sandbox: Path):
    (sandbox / "a.txt").write_text("a")
    (sandbox / "dir").mkdir()
    assert await fs.move_file("a.txt", "dir/b.txt") == "Successfully moved a.txt to dir/b.txt"
    assert (sandbox / "dir" / "b.txt").read_text() == "a"
    assert not (sandbox / "a.txt").exists()


@pytest.mark.asyncio
async def test_move_file_preconditions(fs: FileSystemService, sandbox: Path, outside: Path):
    (sandbox / "a.txt").write_text("a")
    (sandbox / "b.txt").write_text("b")
    with pytest.raises(AlreadyExists):
        await fs.move_file("a.txt", "b.txt")
    with pytest.raises(NotFound):
        await fs.move_file("a.txt", "missing/dir/a.txt")
    with pytest.raises(NotFound):
        await fs.move_file("nope.txt", "c.txt")
    with pytest.raises(PathRejected):
        await fs.move_file("a.txt", str(outside / "a.txt"))
    assert (sandbox / "a.txt").read_text() == "a"


@pytest.mark.asyncio
async def test_rename_file(fs: FileSystemService, sandbox: Path):
    (sandbox / "sub").mkdir()
    (sandbox / "sub" / "a.txt").write_text("a")
    (sandbox / "sub" / "taken.txt").write_text("t")

    assert await fs.rename_file("sub/a.txt", "b.txt") == "Successfully renamed sub/a.txt to b.txt"
    assert (sandbox / "sub" / "b.txt").read_text() == "a"

    with pytest.raises(AlreadyExists):
        await fs.rename_file("sub/b.txt", "taken.txt")
    for bad in ("../b.txt", "x/y.txt", ".."):
        with pytest.raises(ValidationError):
            await fs.rename_file("sub/b.txt", bad)


@pytest.mark.asyncio
async def test_delete_file(fs: FileSystemService, readonly_fs: FileSystemService, sandbox: Path):
    (sandbox / "a.txt").write_text("a")
    with pytest.raises(PermissionDenied):
        await readonly_fs.delete_file("a.txt")
    assert await fs.delete_file("a.txt") == "Successfully deleted a.txt"
    assert not (sandbox / "a.txt").exists()
    with pytest.raises(NotFound):
        await fs.delete_file("a.txt")


# ---------- search ----------

@pytest.mark.asyncio
async def test_search_through_service(readonly_fs: FileSystemService, sandbox: Path):
    (sandbox / "notes.md").write_text("")
    assert await readonly_fs.search_files(".", "NOTES") == str(sandbox / "notes.md")
    assert await readonly_fs.search_files(".", "zzz") == "No matches found"
    with pytest.raises(ValidationError):
        await readonly_fs.search_files("notes.md", "x")
