"""
=============================================================================
DEFAULT ACTION RESPONSE
=============================================================================

When a request ends in ".action" and the host registered no action handler,
the server answers with a small diagnostic page describing the request:

    Request time : 2026-10-19 14:03:12<br>
    Request URL : http://localhost:9999/report.action?a=1&b=2<br>
    Action name : /report.action<br>
    Request method : GET<br>
    POST DATA : <br>
    QUERY STRING : a=1&b=2<br>

Hosts can also produce this page on purpose from their own handler:

    def on_action(server, context):
        server.write_default_action(context)

=============================================================================
THE "?" REQUIREMENT
=============================================================================

The action name is the raw URL cut at its "?". A URL without a query string
has nothing to cut at, and action_name() raises MalformedActionURLError.
Inside a worker that error lands in the generic failure handler, so a bare
"/report.action" with no handler registered answers with the error text.
The behaviour is kept as-is; hosts that register a handler never hit it.

=============================================================================
"""

from datetime import datetime
from typing import Optional

from ..http.context import RequestContext
from ..http.request import HTTPRequest
from .writer import write_text


class MalformedActionURLError(ValueError):
    """The raw action URL has no "?" to cut the action name at."""


def action_name(raw_url: str) -> str:
    """
    Return the raw URL up to, not including, its "?".

    Raises:
        MalformedActionURLError: If the URL has no "?".

    Example:
        >>> action_name("/report.action?a=1")
        '/report.action'
    """
    index = raw_url.find("?")
    if index == -1:
        raise MalformedActionURLError(f"Action URL has no query string: {raw_url}")
    return raw_url[:index]


def get_post_data(request: HTTPRequest) -> Optional[str]:
    """
    Decode the request body.

    Returns:
        None if the request carries no body, else the body decoded with the
        request's declared charset (UTF-8 when none is declared).
    """
    if not request.has_body:
        return None

    try:
        return request.body.decode(request.charset, errors="replace")
    except LookupError:
        # Unknown charset name from the client
        return request.body.decode("utf-8", errors="replace")


def get_query_string(request: HTTPRequest) -> Optional[str]:
    """
    Rebuild the query string from the parsed parameters.

    Keys keep their first-seen order; repeated keys have their values
    joined with ",".

    Returns:
        None if there are no parameters.

    Example:
        ?a=1&b=2      → "a=1&b=2"
        ?a=1&a=2&b=3  → "a=1,2&b=3"
    """
    if not request.query_params:
        return None

    pairs = []
    for key, values in request.query_params.items():
        pairs.append(f"{key}={','.join(values)}")

    return "&".join(pairs).lstrip("&")


def write_default_action(context: RequestContext) -> None:
    """
    Write the diagnostic page for an action request.

    The whole fragment is built before anything is written, so a
    MalformedActionURLError leaves the response untouched.
    """
    request = context.request

    lines = [
        f"Request time : {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}",
        f"Request URL : {context.url}",
        f"Action name : {action_name(context.raw_url)}",
        f"Request method : {request.method}",
        f"POST DATA : {get_post_data(request) or ''}",
        f"QUERY STRING : {get_query_string(request) or ''}",
    ]
    fragment = "".join(f"{line}<br>\n" for line in lines)

    write_text(context.response, fragment, with_header=True)
