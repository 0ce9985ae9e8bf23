from . import channel
from . import message
from . import query

from .message import Message, new_token


"""
pubquery Protocol Layer
=======================

This package defines what travels over the publish/subscribe transport,
independent of how it travels.

    channel.py
        Channel naming conventions (the query service channel, the
        broadcast channels, the per-token reply channel) and wildcard
        pattern matching.

    message.py
        The :class:`Message` container and the correlation token generator.

    query.py
        Construction of query request payloads.

The protocol layer MUST NOT depend on any transport implementation.
"""


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
