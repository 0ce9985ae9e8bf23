""" A class representation of a pubquery message, plus the generator for
    the correlation tokens that tie a request to its reply.
"""

import time
import uuid


# This is the version of the on-the-wire framing implemented here. It is
# carried as its own frame so that mismatched peers can be detected rather
# than misinterpreted.

version = b'1'


class Message:
    """ The :class:`Message` provides a very thin encapsulation of what it
        means to be a message in a pubquery context: a *channel* name, and
        the decoded JSON *payload* that arrived on it (or will be sent on it).
        Channel names are slash-delimited, for example ``/service/query``.

        A :class:`Message` is transient; it is handed to subscription handlers
        for the duration of their handling, and nothing retains it afterwards
        unless a handler chooses to.

        :ivar timestamp: A UNIX epoch timestamp for when the message was
            created locally, either for sending or upon arrival.
    """

    def __init__(self, channel, payload=None):

        if channel is None or channel == '':
            raise ValueError('a message requires a channel')

        self.channel = str(channel)
        self.payload = payload
        self.timestamp = time.time()


    def __eq__(self, other):
        try:
            return self.channel == other.channel and self.payload == other.payload
        except AttributeError:
            return NotImplemented


    def __repr__(self):
        return 'Message(%s, %s)' % (repr(self.channel), repr(self.payload))


# end of class Message



def new_token():
    """ Return a new correlation token. This is a random (version 4) UUID
        rendered as a string; the collision probability is negligible across
        the lifetime of any process, so no bookkeeping of previously issued
        tokens is required.
    """

    return str(uuid.uuid4())


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
