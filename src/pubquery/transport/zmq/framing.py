"""ZMQ multipart framing for pubquery messages.

Publish (PUB/SUB, through the forwarding device)
    channel, version, payload_json

The channel is the first frame so that SUB socket prefix filtering applies
to it directly.
"""

from __future__ import annotations

from typing import Any, Sequence, Tuple

from ... import json
from ...protocol.message import Message, version


def to_frames(channel: str, payload: Any) -> Tuple[bytes, ...]:
    """Encode a payload bound for *channel* as multipart frames."""

    if payload is None:
        payload_bytes = b''
    else:
        payload_bytes = json.dumps(payload)

    return (channel.encode(), version, payload_bytes)


def from_frames(parts: Sequence[bytes]) -> Message:
    """Decode multipart frames into a :class:`Message`.

    Raises ValueError for anything that is not a well-formed message of
    the expected framing version.
    """

    if len(parts) != 3:
        raise ValueError("expected 3 frames, received %d" % (len(parts)))

    channel_bytes, their_version, payload_bytes = parts

    if their_version != version:
        raise ValueError("message is framing version %r, recipient expects %r" % (their_version, version))

    channel = channel_bytes.decode()

    if payload_bytes == b'':
        payload = None
    else:
        try:
            payload = json.loads(payload_bytes)
        except json.JSONDecodeError as e:
            raise ValueError("undecodable payload on %s: %s" % (channel, e)) from e

    return Message(channel, payload)
