"""
HTTP protocol pieces: request parsing, the streaming response, request
classification, the MIME table and status codes.
"""

from .request import HTTPRequest, HTTPParseError, RequestParser, parse_request
from .response import ResponseStream, HeadersSentError
from .classifier import RequestKind, ClassifiedRequest, classify
from .context import RequestContext
from .mime_types import MIME_TYPES, DEFAULT_MIME_TYPE, get_mime_type
from .status_codes import HTTPStatus

__all__ = [
    "HTTPRequest",
    "HTTPParseError",
    "RequestParser",
    "parse_request",
    "ResponseStream",
    "HeadersSentError",
    "RequestKind",
    "ClassifiedRequest",
    "classify",
    "RequestContext",
    "MIME_TYPES",
    "DEFAULT_MIME_TYPE",
    "get_mime_type",
    "HTTPStatus",
]
