"""
Response producers used by connection workers and action handlers.
"""

from .writer import FileIOError, write_file, write_text
from .static import RootPathNotSetError, resolve_static_path, default_document_path
from .actions import (
    MalformedActionURLError,
    write_default_action,
    get_post_data,
    get_query_string,
)

__all__ = [
    "FileIOError",
    "write_file",
    "write_text",
    "RootPathNotSetError",
    "resolve_static_path",
    "default_document_path",
    "MalformedActionURLError",
    "write_default_action",
    "get_post_data",
    "get_query_string",
]
