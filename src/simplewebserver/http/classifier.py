"""
=============================================================================
REQUEST CLASSIFICATION
=============================================================================

Every request that reaches a worker falls into exactly one of four
categories. There is no router: these rules ARE the routing.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CLASSIFICATION RULES                             │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Checked top to bottom, first match wins:                          │
    │                                                                      │
    │   1. DEFAULT       path is "" or "/"                                │
    │                    └── serve <root>/index.html                      │
    │                                                                      │
    │   2. STATIC_FILE   extension is a key of the MIME table             │
    │                    └── serve <root>/<path>                          │
    │                                                                      │
    │   3. ACTION        path ends with ".action"                         │
    │                    └── hand off to the host's action handler        │
    │                                                                      │
    │   4. UNKNOWN       anything else                                    │
    │                    └── "URL not found" message                      │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

ORDER MATTERS. Rule 2 runs before rule 3, so if ".action" were ever added to
the MIME table, "/report.action" would be served from disk instead of being
dispatched. Precedence is positional, not "most specific wins".

=============================================================================
"""

from dataclasses import dataclass
from enum import Enum

from .mime_types import is_registered_extension


ACTION_SUFFIX = ".action"


class RequestKind(Enum):
    """The four request categories."""
    DEFAULT = "default"
    STATIC_FILE = "static_file"
    ACTION = "action"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class ClassifiedRequest:
    """
    Result of classify().

    Attributes:
        kind: Which rule matched.
        path: The request path the decision was made on.
    """
    kind: RequestKind
    path: str

    @property
    def is_default(self) -> bool:
        return self.kind is RequestKind.DEFAULT

    @property
    def is_static_file(self) -> bool:
        return self.kind is RequestKind.STATIC_FILE

    @property
    def is_action(self) -> bool:
        return self.kind is RequestKind.ACTION

    @property
    def is_unknown(self) -> bool:
        return self.kind is RequestKind.UNKNOWN


def classify(method: str, path: str) -> ClassifiedRequest:
    """
    Classify a request by its path.

    The method is accepted for symmetry with the request line but does not
    influence the result: a POST to "/index.html" is still a static file.

    Args:
        method: HTTP method (GET, POST, ...).
        path: Request path without the query string.

    Returns:
        The ClassifiedRequest for the first matching rule.

    Examples:
        >>> classify("GET", "/").kind
        <RequestKind.DEFAULT: 'default'>

        >>> classify("GET", "/report.action").kind
        <RequestKind.ACTION: 'action'>
    """
    if path == "" or path == "/":
        return ClassifiedRequest(RequestKind.DEFAULT, path)

    if is_registered_extension(path):
        return ClassifiedRequest(RequestKind.STATIC_FILE, path)

    if path.endswith(ACTION_SUFFIX):
        return ClassifiedRequest(RequestKind.ACTION, path)

    return ClassifiedRequest(RequestKind.UNKNOWN, path)
