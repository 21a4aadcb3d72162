# mcpserver/main.py
import logging

from fastmcp import FastMCP
from sandboxfs.config import Settings
from sandboxfs.di import build_container
from sandboxfs.logging import configure_logging
from mcpserver.registry import build_tool_registry, register_into_fastmcp

logger = logging.getLogger(__name__)


def create_app() -> FastMCP:
    """
    Build DI container (sandbox roots, permissions, symlink cache), create the
    FastMCP host, and register tools. The container is built before any
    request is served and is read-only afterwards.
    """
    settings = Settings()
    configure_logging(settings.LOG_LEVEL)
    container = build_container(settings)

    mcp = FastMCP("SandboxFS", version="0.1.0")
    register_into_fastmcp(mcp, build_tool_registry(container))

    logger.info(
        "Serving %s (follow_symlinks=%s, permissions=%s)",
        ", ".join(container.context.allowed_roots),
        container.context.follow_symlinks,
        container.context.permissions,
    )
    return mcp


def main():
    app = create_app()
    # stdio transport: client (agent/IDE) launches this process and speaks JSON-RPC on stdin/stdout
    app.run(transport="stdio")


if __name__ == "__main__":
    main()
