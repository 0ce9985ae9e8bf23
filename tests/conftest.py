import pytest

import pubquery
from pubquery.broker import Broker
from pubquery.protocol import channel as channels
from pubquery.protocol.message import Message
from pubquery.transport import DOWN, UP, PublishError, Transport, ZMQTransport


class StubTransport(Transport):
    """ An in-process stand-in for a real transport. Every call is recorded,
        in order, in the *calls* list. If a *responder* is set it is invoked
        for every publish with the channel and payload, and whatever
        (channel, payload) pairs it returns are delivered immediately, as
        though a remote service replied.
    """

    def __init__(self, responder=None):

        self.calls = list()
        self.routes = dict()
        self.responder = responder
        self.fail_publish = False
        self.handlers = {UP: list(), DOWN: list()}
        self._state = UP


    @property
    def state(self):
        return self._state


    def connect(self):
        self.calls.append(('connect',))


    def close(self):
        self.calls.append(('close',))


    def subscribe(self, pattern, on_message):
        self.calls.append(('subscribe', pattern))
        self.routes[pattern] = on_message


    def unsubscribe(self, pattern):
        self.calls.append(('unsubscribe', pattern))
        self.routes.pop(pattern, None)


    def publish(self, channel, payload):

        if self.fail_publish:
            raise PublishError('stub transport refuses to publish')

        self.calls.append(('publish', channel, payload))

        if self.responder is not None:
            for reply_channel, reply_payload in self.responder(channel, payload) or ():
                self.deliver(Message(reply_channel, reply_payload))


    def on(self, state, handler):
        self.handlers[state].append(handler)


    def deliver(self, message):
        """ Deliver an inbound *message* the way a prefix-filtering transport
            would: once to each distinct callback with a matching route.
        """

        delivered = list()
        for pattern, callback in list(self.routes.items()):
            if message.channel.startswith(channels.prefix(pattern)) == False:
                continue
            if callback in delivered:
                continue
            delivered.append(callback)
            callback(message)


    def set_state(self, state):
        self._state = state
        for handler in self.handlers[state]:
            handler(state)


    def published(self):
        return [call for call in self.calls if call[0] == 'publish']


# end of class StubTransport



def reply_payload(*titles, cached=None):
    """ Build a query reply payload with one metacard per title.
    """

    results = list()
    for number, title in enumerate(titles):
        properties = dict()
        properties['title'] = title
        properties['id'] = 'id%d' % (number)
        properties['source-id'] = 'ddf.distribution'
        properties['resource-download-url'] = 'https://localhost:8993/services/catalog/sources/ddf.distribution/id%d?transform=resource' % (number)

        metacard = dict()
        metacard['properties'] = properties
        if cached is not None:
            metacard['cached'] = cached

        results.append({'metacard': metacard})

    payload = dict()
    payload['id'] = None
    payload['status'] = [{'results': len(results), 'hits': len(results), 'state': 'SUCCEEDED'}]
    payload['results'] = results
    return payload



def echo(*titles, cached=None):
    """ Return a responder that answers every query on the query channel
        with a reply on the requester's reply channel.
    """

    def responder(channel, payload):
        if channel != channels.QUERY:
            return ()

        reply = reply_payload(*titles, cached=cached)
        reply['id'] = payload['id']
        return ((channels.reply(payload['id']), reply),)

    return responder



@pytest.fixture
def transport():
    return StubTransport()


@pytest.fixture
def registry(transport):
    return pubquery.Registry(transport)


@pytest.fixture
def correlator(transport, registry):
    correlator = pubquery.Correlator(transport, registry, settle=0)
    yield correlator
    correlator.close()


@pytest.fixture
def broker():
    broker = Broker(0, 0, hostname='127.0.0.1')
    yield broker
    broker.stop()


def new_transport(broker):
    return ZMQTransport('127.0.0.1', broker.publish_port, broker.subscribe_port, connect_timeout=5)


@pytest.fixture
def responder(broker):
    """ A stand-in query service on a real forwarding device: every query
        is answered on the reply channel named by its correlation token.
    """

    transport = new_transport(broker)
    transport.connect()

    def answer(message):
        token = message.payload['id']
        reply = reply_payload('Sample Laptop')
        reply['id'] = token
        transport.publish(channels.reply(token), reply)

    transport.subscribe(channels.QUERY, answer)

    yield transport
    transport.close()


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
