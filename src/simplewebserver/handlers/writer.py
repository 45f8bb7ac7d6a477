"""
=============================================================================
RESPONSE WRITERS
=============================================================================

The two primitive ways this server produces a body:

    write_file(response, path)              write_text(response, message)
    ──────────────────────────              ─────────────────────────────
    Content-Type from MIME table            Content-Type text/html (optional)
    streamed in fixed-size chunks           one write, UTF-8 encoded
    any file size                           small messages only

=============================================================================
STREAMING FILES
=============================================================================

    ┌──────────┐   read(4096)   ┌──────────┐   write()   ┌──────────────┐
    │   disk   │ ─────────────► │  chunk   │ ──────────► │   socket     │
    └──────────┘                └──────────┘             └──────────────┘
          ▲                                                     │
          └──────────────── until read() returns b"" ◄──────────┘

Memory use is one chunk per worker, whatever the file size.

=============================================================================
"""

import logging
from pathlib import Path
from typing import Union

from ..http.mime_types import get_mime_type
from ..http.response import ResponseStream


logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 4096
HTML_CONTENT_TYPE = "text/html; charset=utf-8"


class FileIOError(OSError):
    """
    A file could not be opened or read while writing it to a response.

    Not handled here: the worker's failure handler decides what the client
    sees.
    """


def write_file(
    response: ResponseStream,
    file_path: Union[str, Path],
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> None:
    """
    Stream a file to the response.

    Sets Content-Type from the MIME table (application/octet-stream for
    unknown extensions), then copies the file in chunk_size pieces.

    Args:
        response: Response stream to write to.
        file_path: File to send.
        chunk_size: Bytes per read/write.

    Raises:
        FileIOError: If the file cannot be opened or read.
    """
    response.set_content_type(get_mime_type(file_path))

    try:
        f = open(file_path, "rb")
    except OSError as e:
        raise FileIOError(e.errno, e.strerror, str(file_path)) from e

    with f:
        while True:
            try:
                chunk = f.read(chunk_size)
            except OSError as e:
                raise FileIOError(e.errno, e.strerror, str(file_path)) from e

            if not chunk:
                break

            response.write(chunk)

    logger.debug(f"Sent {file_path} ({response.bytes_written} bytes)")


def write_text(response: ResponseStream, message: str, with_header: bool = False) -> None:
    """
    Write a text message to the response.

    Args:
        response: Response stream to write to.
        message: Text to send, encoded as UTF-8.
        with_header: Also set Content-Type to text/html; charset=utf-8.
    """
    if with_header:
        response.set_content_type(HTML_CONTENT_TYPE)

    response.write(message.encode("utf-8"))
