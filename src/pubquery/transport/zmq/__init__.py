"""ZeroMQ transport backend."""

from .client import ZMQTransport
