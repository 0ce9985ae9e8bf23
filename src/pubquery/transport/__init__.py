"""Transport layer implementations."""

from .base import (
    ConnectionState,
    ConnectivityError,
    DOWN,
    PublishError,
    Transport,
    TransportError,
    UP,
)

from .zmq import ZMQTransport
