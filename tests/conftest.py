# tests/conftest.py
from pathlib import Path
import pytest

from sandboxfs.context import PermissionSet, SandboxContext
from sandboxfs.services.filesystem import FileSystemService


@pytest.fixture
def sandbox(tmp_path: Path) -> Path:
    root = tmp_path / "sandbox"
    root.mkdir()
    return root.resolve()


@pytest.fixture
def outside(tmp_path: Path) -> Path:
    d = tmp_path / "outside"
    d.mkdir()
    (d / "secret.txt").write_text("top secret", encoding="utf-8")
    return d.resolve()


@pytest.fixture
def make_context(sandbox: Path):
    def _make(*roots: Path, **kwargs) -> SandboxContext:
        return SandboxContext(allowed_roots=tuple(str(r) for r in (roots or (sandbox,))), **kwargs)
    return _make


@pytest.fixture
def fs(make_context) -> FileSystemService:
    """Service with every capability granted."""
    return FileSystemService(make_context(permissions=PermissionSet(full_access=True)))


@pytest.fixture
def readonly_fs(make_context) -> FileSystemService:
    return FileSystemService(make_context())
