"""Transport interface.

This is the (small) contract that transport implementations should follow.
It lives outside :mod:`pubquery.protocol` so the protocol remains
transport-agnostic; the registry and correlator only ever see this surface.
"""

from __future__ import annotations

import enum
from abc import ABC, abstractmethod
from typing import Any, Callable

from ..errors import PubqueryError
from ..protocol.message import Message


# Transport agnostic exceptions

class TransportError(PubqueryError):
    """Base class for all transport-layer errors."""


class ConnectivityError(TransportError):
    """The transport could not establish or maintain a connection."""


class PublishError(TransportError):
    """A publish attempt failed; the message was not sent."""


class ConnectionState(enum.Enum):
    DOWN = 'down'
    UP = 'up'


DOWN = ConnectionState.DOWN
UP = ConnectionState.UP


class Transport(ABC):
    """Minimal contract for a publish/subscribe transport."""

    @abstractmethod
    def connect(self) -> None:
        """Establish the underlying connection(s)."""

    @abstractmethod
    def close(self) -> None:
        """Tear down the underlying connection(s)."""

    @abstractmethod
    def subscribe(self, pattern: str, on_message: Callable[[Message], Any]) -> None:
        """Route messages on channels matching *pattern* to *on_message*.

        Returns only once the transport is ready to route the pattern.
        *on_message* is invoked on the transport's delivery thread.
        """

    @abstractmethod
    def unsubscribe(self, pattern: str) -> None:
        """Stop routing *pattern*. Unknown patterns are ignored."""

    @abstractmethod
    def publish(self, channel: str, payload: Any) -> None:
        """Send *payload* on *channel*; raise :class:`PublishError` on failure."""

    @abstractmethod
    def on(self, state: ConnectionState, handler: Callable[[ConnectionState], Any]) -> None:
        """Invoke *handler* whenever the connection enters *state*."""

    @property
    def state(self) -> ConnectionState:
        """The most recently observed connection state."""
        return DOWN
