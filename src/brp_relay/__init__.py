"""WebSocket relay transport for the BRP remote protocol.

Connects to a relay server as a WebSocket client and bridges JSON-RPC
requests arriving on that socket into an executor intake, writing the
correlated responses back on the same socket.

    BRP client -> HTTP -> relay server -> WebSocket -> BrpRelay -> executor
"""

from .app import BrpRelay
from .channel import BrpMessage, create_intake, create_response_channel
from .config import DEFAULT_RELAY_PATH, RelayConfig, derive_url
from .connection import RelayConnection
from .executor import MethodRegistry
from .lifecycle import ConnectionState, InvalidTransition
from .protocol import BrpError, BrpException, InboundRequest, parse_request
from .router import MessageRouter
from .status import RelayStatus

__version__ = "0.1.0"

__all__ = [
    "BrpRelay",
    "BrpMessage",
    "BrpError",
    "BrpException",
    "ConnectionState",
    "DEFAULT_RELAY_PATH",
    "InboundRequest",
    "InvalidTransition",
    "MessageRouter",
    "MethodRegistry",
    "RelayConfig",
    "RelayConnection",
    "RelayStatus",
    "create_intake",
    "create_response_channel",
    "derive_url",
    "parse_request",
]
