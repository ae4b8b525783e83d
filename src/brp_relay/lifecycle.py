"""Connection lifecycle state machine.

    DISCONNECTED --connect--> CONNECTING --open--> CONNECTED
                                   |                   |
                                   +------close--------+--> CLOSED

CLOSED is terminal: there is no reconnection. Each event yields the next
state and the side effects the connection must perform.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ConnectionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    CLOSED = "closed"


class LifecycleEvent(str, Enum):
    CONNECT = "connect"  # Local: connection attempt started
    OPEN = "open"
    MESSAGE = "message"
    CLOSE = "close"
    ERROR = "error"


class Effect(str, Enum):
    MARK_CONNECTED = "mark_connected"
    MARK_DISCONNECTED = "mark_disconnected"
    ROUTE_MESSAGE = "route_message"
    LOG_ERROR = "log_error"


class InvalidTransition(RuntimeError):
    """Raised when the lifecycle is driven in a way it cannot follow."""

    def __init__(self, state: ConnectionState, event: LifecycleEvent):
        super().__init__(f"Cannot handle {event.value} in state {state.value}")
        self.state = state
        self.event = event


@dataclass(frozen=True)
class Transition:
    state: ConnectionState
    effects: tuple[Effect, ...] = ()


def transition(state: ConnectionState, event: LifecycleEvent) -> Transition:
    """Compute the next state and side effects for an event.

    Errors are logged in every state. Other events arriving after CLOSED
    are ignored, and messages outside CONNECTED are dropped. Only CONNECT
    is rejected, since a connection cannot be reopened.

    Raises:
        InvalidTransition: If CONNECT is requested outside DISCONNECTED
    """
    if event == LifecycleEvent.CONNECT:
        if state != ConnectionState.DISCONNECTED:
            raise InvalidTransition(state, event)
        return Transition(ConnectionState.CONNECTING)

    if event == LifecycleEvent.ERROR:
        return Transition(state, (Effect.LOG_ERROR,))

    if state == ConnectionState.CLOSED:
        return Transition(state)

    match event:
        case LifecycleEvent.OPEN:
            if state == ConnectionState.CONNECTING:
                return Transition(ConnectionState.CONNECTED, (Effect.MARK_CONNECTED,))
            return Transition(state)

        case LifecycleEvent.MESSAGE:
            if state == ConnectionState.CONNECTED:
                return Transition(state, (Effect.ROUTE_MESSAGE,))
            return Transition(state)

        case LifecycleEvent.CLOSE:
            return Transition(ConnectionState.CLOSED, (Effect.MARK_DISCONNECTED,))

    return Transition(state)
