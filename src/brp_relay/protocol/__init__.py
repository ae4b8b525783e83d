"""Wire protocol for the BRP relay.

- Envelope: inbound JSON-RPC style requests, parsed and validated
- Frames: outbound responses correlated by the echoed request id
- Errors: structured executor errors and reserved JSON-RPC codes
"""

from .envelope import (
    SINGLE_SHOT_CAPACITY,
    WATCH_CAPACITY,
    WATCH_MARKER,
    InboundRequest,
    ParseFailure,
    is_watch_method,
    parse_request,
)
from .errors import (
    INTERNAL_ERROR,
    INVALID_PARAMS,
    INVALID_REQUEST,
    METHOD_NOT_FOUND,
    PARSE_ERROR,
    BrpError,
    BrpException,
)
from .frames import JSONRPC_VERSION, make_error_response, make_response

__all__ = [
    # Envelope
    "InboundRequest",
    "ParseFailure",
    "parse_request",
    "is_watch_method",
    "WATCH_MARKER",
    "SINGLE_SHOT_CAPACITY",
    "WATCH_CAPACITY",
    # Errors
    "BrpError",
    "BrpException",
    "PARSE_ERROR",
    "INVALID_REQUEST",
    "METHOD_NOT_FOUND",
    "INVALID_PARAMS",
    "INTERNAL_ERROR",
    # Frames
    "JSONRPC_VERSION",
    "make_response",
    "make_error_response",
]
