"""
=============================================================================
STATIC FILE RESOLUTION
=============================================================================

Maps URL paths onto files under the configured root directory.

    Request: GET /css/site.css          root: /var/www
                 │
                 ▼
    1. Strip the leading "/"            "css/site.css"
    2. Use the OS separator             "css/site.css"  (or "css\\site.css")
    3. Join with the root               /var/www/css/site.css
    4. Check it stays inside the root   ✓

The request parser already rejects paths with a ".." segment, so step 4 only
catches what is left: symlinks pointing out of the root. Such files are
treated exactly like missing ones.

=============================================================================
"""

import logging
import os
from pathlib import Path
from typing import Optional


logger = logging.getLogger(__name__)


def physical_path(url_path: str) -> str:
    """
    Convert a URL path into a root-relative filesystem path.

    Example:
        >>> physical_path("/css/site.css")   # on POSIX
        'css/site.css'
    """
    return url_path.replace("/", os.sep).lstrip(os.sep)


class RootPathNotSetError(ValueError):
    """A file was requested before the host set a root path."""


def root_directory(root: Optional[str]) -> Path:
    """
    The root as a Path.

    Raises:
        RootPathNotSetError: If root is None or empty. An empty string
            would otherwise mean the process's working directory.
    """
    if not root:
        raise RootPathNotSetError("Root path is not set")
    return Path(root)


def resolve_static_path(root: Optional[str], url_path: str) -> Optional[Path]:
    """
    Resolve a URL path to an existing file under root.

    Args:
        root: Root directory.
        url_path: Decoded request path ("/css/site.css").

    Returns:
        Path to the file, or None if it does not exist, is not a regular
        file, or resolves outside the root.

    Raises:
        RootPathNotSetError: If no root is set.
    """
    root_dir = root_directory(root).resolve()
    full_path = (root_dir / physical_path(url_path)).resolve()

    try:
        full_path.relative_to(root_dir)
    except ValueError:
        logger.warning(f"Static path escapes root: {url_path}")
        return None

    if not full_path.is_file():
        return None

    return full_path


def default_document_path(root: Optional[str], index_file: str = "index.html") -> Path:
    """
    Path of the document served for "/".

    Not checked for existence: a missing index file surfaces as a
    FileIOError from write_file.

    Raises:
        RootPathNotSetError: If no root is set.
    """
    return root_directory(root) / index_file
