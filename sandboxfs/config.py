# sandboxfs/config.py
from pathlib import Path
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Sandbox roots (comma-separated). Relative paths resolve against WORKING_DIR,
    # or the first root when unset.
    ALLOWED_DIRECTORIES: str = "./.sandbox"
    WORKING_DIR: Path | None = None

    # Capabilities (FULL_ACCESS grants everything)
    ALLOW_CREATE: bool = False
    ALLOW_EDIT: bool = False
    ALLOW_MOVE: bool = False
    ALLOW_DELETE: bool = False
    ALLOW_RENAME: bool = False
    FULL_ACCESS: bool = False

    # Symlinks: when not followed, only links found at startup are trusted
    FOLLOW_SYMLINKS: bool = False
    SYMLINK_SCAN_MAX_DEPTH: int = 8

    # Limits
    MAX_READ_BYTES: int = 10 * 1024
    SEARCH_MAX_DEPTH: int = 2
    SEARCH_MAX_RESULTS: int = 10

    # Logging
    LOG_LEVEL: str = "INFO"

    def allowed_directories(self) -> list[str]:
        return [d.strip() for d in self.ALLOWED_DIRECTORIES.split(",") if d.strip()]
