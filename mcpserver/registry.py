# mcpserver/registry.py
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Type
from pydantic import BaseModel
from pydantic import ValidationError as SchemaError

from sandboxfs.di import Container
from sandboxfs.errors import ValidationError
from sandboxfs.logging import log_tool_call

from mcpserver.tools.files import (
    EditFileIn,
    MoveFileIn,
    NoArgsIn,
    PathIn,
    ReadFileIn,
    ReadMultipleFilesIn,
    RenameFileIn,
    WriteFileIn,
)
from mcpserver.tools.search import FindByExtensionIn, SearchFilesIn

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ToolSpec:
    name: str
    description: str
    input_model: Type[BaseModel]
    handler: Callable[[BaseModel], Awaitable[str]]


class ToolHandlers:
    """
    Named handlers for each tool (no lambdas).
    Arguments arrive already validated against the tool's input model.
    """
    def __init__(self, container: Container):
        self.container = container
        self.fs = container.fs_service

    # ---- Read
    async def read_file(self, args: ReadFileIn) -> str:
        return await self.fs.read_file(args.path, args.max_bytes)

    async def read_multiple_files(self, args: ReadMultipleFilesIn) -> str:
        return await self.fs.read_multiple_files(args.paths, args.max_bytes_per_file)

    async def get_file_info(self, args: PathIn) -> str:
        return await self.fs.get_file_info(args.path)

    async def list_directory(self, args: PathIn) -> str:
        return await self.fs.list_directory(args.path)

    async def list_allowed_directories(self, args: NoArgsIn) -> str:
        return self.fs.list_allowed_directories()

    # ---- Write
    async def create_file(self, args: WriteFileIn) -> str:
        return await self.fs.create_file(args.path, args.content)

    async def modify_file(self, args: WriteFileIn) -> str:
        return await self.fs.modify_file(args.path, args.content)

    async def edit_file(self, args: EditFileIn) -> str:
        edits = [e.to_operation() for e in args.edits]
        return await self.fs.edit_file(args.path, edits, args.dry_run, args.max_bytes)

    async def create_directory(self, args: PathIn) -> str:
        return await self.fs.create_directory(args.path)

    async def move_file(self, args: MoveFileIn) -> str:
        return await self.fs.move_file(args.source, args.destination)

    async def rename_file(self, args: RenameFileIn) -> str:
        return await self.fs.rename_file(args.path, args.new_name)

    async def delete_file(self, args: PathIn) -> str:
        return await self.fs.delete_file(args.path)

    # ---- Search
    async def search_files(self, args: SearchFilesIn) -> str:
        s = self.container.settings
        return await self.fs.search_files(
            args.path,
            args.pattern,
            args.exclude_patterns,
            max_depth=args.max_depth or s.SEARCH_MAX_DEPTH,
            max_results=args.max_results or s.SEARCH_MAX_RESULTS,
        )

    async def find_files_by_extension(self, args: FindByExtensionIn) -> str:
        s = self.container.settings
        return await self.fs.find_files_by_extension(
            args.path,
            args.extension,
            args.exclude_patterns,
            max_depth=args.max_depth or s.SEARCH_MAX_DEPTH,
            max_results=args.max_results or s.SEARCH_MAX_RESULTS,
        )


def build_tool_registry(container: Container) -> Dict[str, ToolSpec]:
    """
    Build the registry once at startup. FastMCP registration and
    dispatch_tool_call both read from it.
    """
    h = ToolHandlers(container)
    specs = [
        ToolSpec("read_file", "Read a UTF-8 text file inside the allowed directories "
                 "(rejects files over the size limit).", ReadFileIn, h.read_file),
        ToolSpec("read_multiple_files", "Read several files at once; per-file failures are "
                 "reported inline.", ReadMultipleFilesIn, h.read_multiple_files),
        ToolSpec("create_file", "Create a new file; fails if it already exists. "
                 "Requires create permission.", WriteFileIn, h.create_file),
        ToolSpec("modify_file", "Overwrite an existing file. Requires edit permission.",
                 WriteFileIn, h.modify_file),
        ToolSpec("edit_file", "Apply ordered find/replace edits (exact, then whitespace-tolerant "
                 "line match) and return a unified diff. Requires edit permission.",
                 EditFileIn, h.edit_file),
        ToolSpec("get_file_info", "Size, timestamps, type and permissions of a file or directory.",
                 PathIn, h.get_file_info),
        ToolSpec("list_directory", "List the entries of a directory.", PathIn, h.list_directory),
        ToolSpec("create_directory", "Create a directory (and missing parents). "
                 "Requires create permission.", PathIn, h.create_directory),
        ToolSpec("move_file", "Move a file; the destination must not exist. "
                 "Requires move permission.", MoveFileIn, h.move_file),
        ToolSpec("rename_file", "Rename a file within its directory. Requires rename permission.",
                 RenameFileIn, h.rename_file),
        ToolSpec("delete_file", "Delete a file. Requires delete permission.", PathIn, h.delete_file),
        ToolSpec("search_files", "Find files and directories whose name contains a pattern.",
                 SearchFilesIn, h.search_files),
        ToolSpec("find_files_by_extension", "Find files with a given extension.",
                 FindByExtensionIn, h.find_files_by_extension),
        ToolSpec("list_allowed_directories", "List the directories this server may access.",
                 NoArgsIn, h.list_allowed_directories),
    ]
    return {spec.name: spec for spec in specs}


def list_tools_payload(registry: Dict[str, ToolSpec]) -> Dict[str, Any]:
    """
    Produce the `tools/list` payload body as per MCP Tools spec.
    """
    tools = []
    for spec in registry.values():
        tools.append({
            "name": spec.name,
            "description": spec.description,
            "inputSchema": spec.input_model.model_json_schema(),
        })
    return {"tools": tools}


async def _invoke(spec: ToolSpec, args_obj: BaseModel) -> str:
    log_tool_call(logger, spec.name, args_obj.model_dump())
    return await spec.handler(args_obj)


async def dispatch_tool_call(registry: Dict[str, ToolSpec], name: str, arguments: Dict[str, Any]) -> str:
    """
    Validate args with the tool's Pydantic model, then invoke the named handler.
    Schema violations never reach the filesystem.
    """
    if name not in registry:
        raise KeyError(f"Tool not found: {name}")
    spec = registry[name]
    try:
        args_obj = spec.input_model.model_validate(arguments or {})
    except SchemaError as e:
        raise ValidationError(f"Invalid arguments for {name}: {e}") from e
    return await _invoke(spec, args_obj)


def register_into_fastmcp(mcp, registry: Dict[str, ToolSpec]) -> None:
    """
    Register all registry tools into a FastMCP host.
    """
    for spec in registry.values():
        # Create a local closure so each handler binds to its spec
        def make_tool(spec: ToolSpec):
            async def tool_handler(input: spec.input_model) -> str:
                return await _invoke(spec, input)
            tool_handler.__name__ = spec.name
            return tool_handler

        mcp.tool(name=spec.name, description=spec.description)(make_tool(spec))
