# mcpserver/tools/files.py
from __future__ import annotations
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field

from sandboxfs.services.edits import EditOperation


class ReadFileIn(BaseModel):
    path: str = Field(..., min_length=1, description="Path inside an allowed directory")
    max_bytes: Optional[int] = Field(
        None, alias="maxBytes", ge=1, description="Override the maximum file size to read"
    )

    model_config = ConfigDict(populate_by_name=True)


class ReadMultipleFilesIn(BaseModel):
    paths: List[str] = Field(..., min_length=1, description="Paths to read; failures are reported inline")
    max_bytes_per_file: Optional[int] = Field(
        None, alias="maxBytesPerFile", ge=1, description="Override the maximum size per file"
    )

    model_config = ConfigDict(populate_by_name=True)


class WriteFileIn(BaseModel):
    path: str = Field(..., min_length=1, description="Path inside an allowed directory")
    content: str = Field(..., description="UTF-8 text content to write")


class EditIn(BaseModel):
    old_text: str = Field(..., alias="oldText", min_length=1, description="Text to search for")
    new_text: str = Field(..., alias="newText", description="Text to replace it with")

    model_config = ConfigDict(populate_by_name=True)

    def to_operation(self) -> EditOperation:
        return EditOperation(self.old_text, self.new_text)


class EditFileIn(BaseModel):
    path: str = Field(..., min_length=1, description="File to edit")
    edits: List[EditIn] = Field(
        ..., min_length=1,
        description="Edits applied in order, each against the result of the previous ones",
    )
    dry_run: bool = Field(False, alias="dryRun", description="Return the diff without writing")
    max_bytes: Optional[int] = Field(
        None, alias="maxBytes", ge=1, description="Override the maximum file size to edit"
    )

    model_config = ConfigDict(populate_by_name=True)


class PathIn(BaseModel):
    path: str = Field(..., min_length=1, description="Path inside an allowed directory")


class MoveFileIn(BaseModel):
    source: str = Field(..., min_length=1, description="Existing file to move")
    destination: str = Field(..., min_length=1, description="New location; must not exist")


class RenameFileIn(BaseModel):
    path: str = Field(..., min_length=1, description="Existing file to rename")
    new_name: str = Field(
        ..., alias="newName", min_length=1, description="New file name (same directory)"
    )

    model_config = ConfigDict(populate_by_name=True)


class NoArgsIn(BaseModel):
    pass
