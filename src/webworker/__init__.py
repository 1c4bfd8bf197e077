"""
=============================================================================
WEBWORKER
=============================================================================

A small HTTP file server that answers exactly one request per
connection:

    1. read the request line, skip the headers
    2. pick a Content-Type from the file extension
    3. write "200 Ok" or "404 Not Found" plus a fixed set of headers
    4. stream the file (text pages get <cs371server> and <cs371date>
       filled in), then close

Quick start:

    from webworker import WebServer, ServerConfig

    WebServer(ServerConfig(port=8080, root_dir="./public")).run()

or from a shell:

    python -m webworker --port 8080 --root ./public

=============================================================================
"""

__version__ = "1.0.0"

from .config import ServerConfig
from .server import WebServer
from .worker import WebWorker, WorkerState

__all__ = [
    "ServerConfig",
    "WebServer",
    "WebWorker",
    "WorkerState",
    "__version__",
]
