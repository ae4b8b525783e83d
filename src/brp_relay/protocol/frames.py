"""Response frame builder.

Every frame is a JSON-RPC 2.0 response:
    {"jsonrpc": "2.0", "id": <echoed>, "result": ...}
    {"jsonrpc": "2.0", "id": <echoed>, "error": {"code": ..., "message": ...}}
"""

from __future__ import annotations

import json
import logging
from typing import Any

from pydantic_core import PydanticSerializationError

from .errors import INTERNAL_ERROR, BrpError

logger = logging.getLogger(__name__)

JSONRPC_VERSION = "2.0"

# Executor errors that cannot be serialized collapse to this
FALLBACK_ERROR: dict[str, Any] = {"code": INTERNAL_ERROR}


def _dumps(frame: dict[str, Any]) -> str:
    """Serialize a frame as strict, UTF-8 encodable JSON.

    Raises:
        ValueError: For non-finite floats or lone surrogates
        TypeError: For values JSON cannot represent
    """
    text = json.dumps(frame, separators=(",", ":"), ensure_ascii=False, allow_nan=False)
    text.encode("utf-8")
    return text


def make_response(request_id: Any, outcome: Any) -> str:
    """Build the frame for one executor outcome.

    Args:
        request_id: The id of the originating request, echoed verbatim
        outcome: A result value, or a BrpError reported by the executor

    Returns:
        Serialized response frame
    """
    if isinstance(outcome, BrpError):
        try:
            error = outcome.to_wire()
            return _dumps({"jsonrpc": JSONRPC_VERSION, "id": request_id, "error": error})
        except (PydanticSerializationError, TypeError, ValueError) as e:
            logger.warning(f"Could not serialize executor error: {e}")
            return _dumps({"jsonrpc": JSONRPC_VERSION, "id": request_id, "error": FALLBACK_ERROR})

    try:
        return _dumps({"jsonrpc": JSONRPC_VERSION, "id": request_id, "result": outcome})
    except (TypeError, ValueError) as e:
        logger.warning(f"Could not serialize result for request {request_id!r}: {e}")
        return make_error_response(request_id, INTERNAL_ERROR, f"Result serialization failed: {e}")


def make_error_response(request_id: Any, code: int, message: str) -> str:
    """Build a protocol-level error frame (no auxiliary data)."""
    return _dumps(
        {
            "jsonrpc": JSONRPC_VERSION,
            "id": request_id,
            "error": {"code": code, "message": message},
        }
    )
