"""Inbound request envelope parsing.

Wire format (one JSON object per text frame):
    {"id": 7, "method": "world.get_components", "params": {...}}

``id`` is optional and opaque; it is echoed verbatim on every response.
A request whose ``method`` contains ``+watch`` is a streaming request and
may be answered with any number of frames.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel

from .errors import INVALID_REQUEST, PARSE_ERROR

WATCH_MARKER = "+watch"

# Response channel capacity per request class
SINGLE_SHOT_CAPACITY = 1
WATCH_CAPACITY = 8


class InboundRequest(BaseModel):
    """A validated request from the relay peer."""

    id: Any = None
    method: str
    params: Any = None

    @property
    def is_watch(self) -> bool:
        """Check if this request may yield more than one response."""
        return is_watch_method(self.method)

    @property
    def channel_capacity(self) -> int:
        return WATCH_CAPACITY if self.is_watch else SINGLE_SHOT_CAPACITY


@dataclass(frozen=True)
class ParseFailure:
    """A request that was rejected before reaching the executor."""

    code: int
    message: str
    id: Any = None


def is_watch_method(method: str) -> bool:
    return WATCH_MARKER in method


def _reject_constant(name: str) -> Any:
    raise ValueError(f"Invalid number literal {name}")


def _check_strings(value: Any) -> None:
    """Raise UnicodeEncodeError if any decoded string holds a lone surrogate."""
    if isinstance(value, str):
        value.encode("utf-8")
    elif isinstance(value, dict):
        for key, item in value.items():
            key.encode("utf-8")
            _check_strings(item)
    elif isinstance(value, list):
        for item in value:
            _check_strings(item)


def parse_request(text: str) -> InboundRequest | ParseFailure:
    """Parse a text frame into a request.

    Only strict JSON is accepted: NaN/Infinity literals, lone surrogate
    escapes and nesting too deep to decode are parse errors.

    Args:
        text: Raw text frame received from the socket

    Returns:
        The request, or a ParseFailure describing the error frame to send
    """
    try:
        data = json.loads(text, parse_constant=_reject_constant)
        _check_strings(data)
    except (ValueError, RecursionError) as e:
        # JSONDecodeError and UnicodeEncodeError are both ValueErrors
        return ParseFailure(code=PARSE_ERROR, message=f"Parse error: {e}")

    if not isinstance(data, dict):
        return ParseFailure(code=INVALID_REQUEST, message="Missing method field")

    request_id = data.get("id")
    method = data.get("method")
    if not isinstance(method, str):
        return ParseFailure(code=INVALID_REQUEST, message="Missing method field", id=request_id)

    return InboundRequest(id=request_id, method=method, params=data.get("params"))
