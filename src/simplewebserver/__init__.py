"""
=============================================================================
SIMPLEWEBSERVER - Embeddable Multi-Threaded Web Server
=============================================================================

A small HTTP server meant to live inside another program. The host adds
binding addresses, points it at a root directory, optionally registers an
action handler, and calls start(). Everything else happens on background
threads.

=============================================================================
QUICK START
=============================================================================

    from simplewebserver import WebServer

    def on_action(server, context):
        server.write_default_action(context)

    with WebServer() as server:
        server.add_binding_address("http://localhost:9999/")
        server.root_path = "./wwwroot"
        server.action_handler = on_action
        server.start()
        input("Press Enter to stop\\n")

=============================================================================
PACKAGE LAYOUT
=============================================================================

    simplewebserver/
    ├── server.py        WebServer: lifecycle, binding addresses, helpers
    ├── config.py        ServerConfig: timeouts, buffer sizes, log format
    ├── logs.py          configure_logging(), access log entries
    ├── core/
    │   ├── addresses.py     binding address parsing and registry
    │   ├── connection.py    one client socket: read request, send, close
    │   ├── listener.py      listening sockets and the accept loop
    │   └── worker.py        one thread per connection, WorkerSet
    ├── http/
    │   ├── request.py       request parsing
    │   ├── response.py      streaming response
    │   ├── classifier.py    default / static file / action / unknown
    │   ├── mime_types.py    extension → Content-Type table
    │   ├── context.py       RequestContext handed to action handlers
    │   └── status_codes.py
    └── handlers/
        ├── writer.py        write_file(), write_text()
        ├── static.py        URL path → file under the root
        └── actions.py       default action page, POST data, query string

=============================================================================
"""

__version__ = "1.0.0"

from .server import WebServer, WebServerError, ListenerBindError, ServerState, ActionHandler
from .config import ServerConfig
from .http.context import RequestContext

__all__ = [
    "WebServer",
    "WebServerError",
    "ListenerBindError",
    "ServerState",
    "ActionHandler",
    "ServerConfig",
    "RequestContext",
    "__version__",
]
