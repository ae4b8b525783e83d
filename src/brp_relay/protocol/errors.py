"""Structured errors carried by BRP responses.

Executors report failures as ``BrpError`` values. The relay never
interprets them; they are serialized verbatim into the ``error`` member
of the response envelope.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel

# JSON-RPC 2.0 reserved codes
PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603


class BrpError(BaseModel):
    """An error produced by the executor for a single request.

    Example:
        {"code": -32601, "message": "Method `world.query` not found"}
    """

    code: int
    message: str
    data: Any = None

    @classmethod
    def method_not_found(cls, method: str) -> BrpError:
        return cls(code=METHOD_NOT_FOUND, message=f"Method `{method}` not found")

    @classmethod
    def invalid_params(cls, message: str) -> BrpError:
        return cls(code=INVALID_PARAMS, message=message)

    @classmethod
    def internal(cls, message: str, data: Any = None) -> BrpError:
        return cls(code=INTERNAL_ERROR, message=message, data=data)

    def to_wire(self) -> dict[str, Any]:
        """Serialize for the response envelope, omitting empty ``data``."""
        return self.model_dump(mode="json", exclude_none=True)


class BrpException(Exception):
    """Raised by method handlers to answer with a specific ``BrpError``."""

    def __init__(self, error: BrpError):
        super().__init__(error.message)
        self.error = error
