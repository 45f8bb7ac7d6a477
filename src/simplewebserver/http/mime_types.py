"""
=============================================================================
MIME TYPE TABLE
=============================================================================

Maps file extensions to Content-Type header values.

The table does double duty in this server:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    WHO READS THE TABLE?                             │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   RequestClassifier                                                 │
    │      └── "Is this extension a key?"  → static file request         │
    │                                                                      │
    │   ResponseWriter.write_file                                         │
    │      └── "What Content-Type for this file?"                         │
    │      └── Unknown extension → application/octet-stream              │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Because the table decides *routing*, it is intentionally small. Adding an
extension here changes which URLs are served from disk.

The mapping is built once at import time and exposed read-only
(MappingProxyType), so every worker thread can read it without locking.

=============================================================================
"""

from pathlib import PurePath
from types import MappingProxyType
from typing import Mapping, Union


MIME_TYPES: Mapping[str, str] = MappingProxyType({
    ".js": "application/js",
    ".json": "application/json",
    ".html": "text/html; charset=utf-8",
    ".css": "text/css; charset=utf-8",
    ".text": "text/text; charset=utf-8",
    ".jpg": "image/jpeg",
    ".png": "image/png",
})

# "I don't know what this is, treat it as binary"
DEFAULT_MIME_TYPE = "application/octet-stream"


def extension_of(path: Union[str, PurePath]) -> str:
    """
    Return the extension of the last segment of a path, dot included.

    Both "/" and the OS separator end a segment. A segment without a dot,
    or ending in a dot, has no extension.

    Examples:
        >>> extension_of("/css/site.css")
        '.css'

        >>> extension_of("/archive.tar.gz")
        '.gz'

        >>> extension_of("/v1.2/readme")
        ''
    """
    path = str(path)
    segment = path.replace("\\", "/").rsplit("/", 1)[-1]
    dot = segment.rfind(".")
    if dot == -1 or dot == len(segment) - 1:
        return ""
    return segment[dot:]


def is_registered_extension(path: Union[str, PurePath]) -> bool:
    """Check whether the path's extension is a key of the table (exact match)."""
    return extension_of(path) in MIME_TYPES


def get_mime_type(path: Union[str, PurePath]) -> str:
    """
    Get the Content-Type value for a file path.

    Lookup is exact: ".HTML" is not ".html".

    Examples:
        >>> get_mime_type("index.html")
        'text/html; charset=utf-8'

        >>> get_mime_type("unknown.xyz")
        'application/octet-stream'
    """
    return MIME_TYPES.get(extension_of(path), DEFAULT_MIME_TYPE)
