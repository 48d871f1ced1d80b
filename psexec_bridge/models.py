"""
PsExec Bridge - Pydantic models.
Wire format is camelCase; Python attributes stay snake_case.
"""
from dataclasses import dataclass
from typing import List, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ─── Core records ─────────────────────────────────────────────────────────────

class DirectoryEntry(WireModel):
    name: str
    is_directory: bool
    size: Optional[int] = None  # None for directories, 0 is a real size
    path: str
    date: str
    time: str


class SearchResult(WireModel):
    name: str
    path: str
    is_directory: bool  # no extension => directory, a heuristic
    relative_path: str


@dataclass
class RemoteCommandResult:
    exit_succeeded: bool
    captured_output: str
    error_text: Optional[str] = None
    exit_code: Optional[int] = None


# ─── Requests ─────────────────────────────────────────────────────────────────

class LoginRequest(WireModel):
    username: str = ""
    password: str = ""


class MkdirRequest(WireModel):
    path: Optional[str] = None
    name: Optional[str] = None


class RenameRequest(WireModel):
    path: Optional[str] = None
    new_name: Optional[str] = None


class DeleteRequest(WireModel):
    path: Optional[str] = None


# ─── Responses ────────────────────────────────────────────────────────────────

class LoginResponse(WireModel):
    token: str
    username: str


class ListResponse(WireModel):
    path: str
    items: List[DirectoryEntry]
    raw_output: str
    parse_error: Optional[str] = None


class SearchResponse(WireModel):
    query: str
    path: str
    results: List[SearchResult]
    count: int


class FileInfoResponse(WireModel):
    file_info: Optional[DirectoryEntry] = None
    raw_output: str


class PreviewResponse(WireModel):
    type: str  # text | binary
    extension: str
    name: str
    content: Optional[str] = None
    truncated: Optional[bool] = None
    url: Optional[str] = None


class UploadedFile(WireModel):
    filename: str
    target_path: str
    size: int
    error: Optional[str] = None


class UploadResponse(WireModel):
    success: bool
    message: str
    files: List[UploadedFile]


class MkdirResponse(WireModel):
    success: bool
    message: str
    path: str


class RenameResponse(WireModel):
    success: bool
    message: str
    old_path: str
    new_path: str


class DeleteResponse(WireModel):
    success: bool
    message: str
    path: str
    kind: str  # directory | file
