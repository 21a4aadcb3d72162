# mcpserver/tools/search.py
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field


class SearchFilesIn(BaseModel):
    path: str = Field(..., min_length=1, description="Directory to search from")
    pattern: str = Field(..., min_length=1, description="Case-insensitive substring of the name")
    exclude_patterns: List[str] = Field(
        default_factory=list, alias="excludePatterns",
        description="Names (excluded at any depth) or glob patterns relative to the search root",
    )
    # None falls back to SEARCH_MAX_DEPTH / SEARCH_MAX_RESULTS
    max_depth: Optional[int] = Field(
        None, alias="maxDepth", ge=1, le=20, description="Maximum directory depth (exclusive)"
    )
    max_results: Optional[int] = Field(
        None, alias="maxResults", ge=1, le=1000, description="Maximum number of matches"
    )

    model_config = ConfigDict(populate_by_name=True)


class FindByExtensionIn(BaseModel):
    path: str = Field(..., min_length=1, description="Directory to search from")
    extension: str = Field(..., min_length=1, description="File extension, with or without the dot")
    exclude_patterns: List[str] = Field(
        default_factory=list, alias="excludePatterns",
        description="Names (excluded at any depth) or glob patterns relative to the search root",
    )
    max_depth: Optional[int] = Field(
        None, alias="maxDepth", ge=1, le=20, description="Maximum directory depth (exclusive)"
    )
    max_results: Optional[int] = Field(
        None, alias="maxResults", ge=1, le=1000, description="Maximum number of matches"
    )

    model_config = ConfigDict(populate_by_name=True)
