""" Classes and methods implemented here tie an outbound request to its
    reply, using a correlation token that is both the name of a private
    reply channel and a field in the published request.
"""

import enum
import logging
import threading

from . import results
from .errors import RequestCancelled, RequestTimeout
from .protocol import channel as channels
from .protocol.message import new_token
from .protocol.query import ID
from .registry import Registry
from .transport.base import DOWN, UP

logger = logging.getLogger(__name__)


SINGLE = 'single'
STREAMING = 'streaming'


class State(enum.Enum):
    IDLE = 'idle'
    RESERVED = 'reserved'
    SUBSCRIBED = 'subscribed'
    PUBLISHED = 'published'
    RESOLVED = 'resolved'
    TIMED_OUT = 'timed out'
    CANCELLED = 'cancelled'


TERMINAL = frozenset((State.RESOLVED, State.TIMED_OUT, State.CANCELLED))


class Reply:
    """ One correlated reply: the :class:`Message` that arrived on the reply
        channel, and the :class:`pubquery.results.Results` projected from it.
    """

    def __init__(self, message, results):
        self.message = message
        self.results = results


    @property
    def status(self):
        return results.status(self.message)


    def __repr__(self):
        return 'Reply(%s, %d results)' % (repr(self.message.channel), len(self.results))



class Pending:
    """ A :class:`Pending` instance tracks one in-flight request from the
        moment its token is reserved until exactly one terminal state is
        reached: resolved, timed out, or cancelled. Whichever terminal
        transition happens first wins; any later attempt is a no-op.

        All transitions and reply handling are serialized by a re-entrant
        lock. Because the per-reply *callback* is invoked while that lock is
        held, :func:`cancel` does not return while a reply is being handled,
        and once it returns no further replies will be handled.

        :ivar token: The correlation token for this request.
        :ivar channel: The private reply channel, derived from the token.
        :ivar payload: The payload as published, once built.
        :ivar replies: Every :class:`Reply` received, in arrival order.
    """

    def __init__(self, correlator, token, destination, mode=SINGLE, callback=None):

        if mode in (SINGLE, STREAMING):
            pass
        else:
            raise ValueError('invalid mode: ' + repr(mode))

        self.correlator = correlator
        self.token = token
        self.channel = channels.reply(token)
        self.destination = destination
        self.mode = mode
        self.callback = callback
        self.payload = None
        self.replies = list()
        self.state = State.IDLE

        self._lock = threading.RLock()
        self._done = threading.Event()
        self._done_callbacks = list()
        self._subscription = None
        self._timer = None


    def __repr__(self):
        return 'Pending(%s, %s)' % (repr(self.token), self.state.value)


    @property
    def response(self):
        """ The first :class:`Reply` received, or None.
        """

        try:
            return self.replies[0]
        except IndexError:
            return None


    def add_done_callback(self, callback):
        """ Invoke *callback* with this :class:`Pending` instance once it
            reaches a terminal state. If it already has, the callback is
            invoked immediately.
        """

        with self._lock:
            if self.state not in TERMINAL:
                self._done_callbacks.append(callback)
                return

        callback(self)


    def cancel(self):
        """ Cancel the request. Returns True if this call performed the
            cancellation, False if the request had already finished.
        """

        return self._finish(State.CANCELLED)


    def close(self):
        """ Stop accepting replies. This is the normal way to end a
            streaming request; the request resolves if any reply was
            received, and is otherwise treated as cancelled.
        """

        with self._lock:
            if self.replies:
                return self._finish(State.RESOLVED)
            else:
                return self._finish(State.CANCELLED)


    def done(self):
        """ Return True if the request has reached a terminal state.
        """

        return self._done.is_set()


    def wait(self, timeout=None):
        """ Block until the request reaches a terminal state, or until
            *timeout* seconds elapse. Returns the first :class:`Reply` if
            the request resolved, or None if it is still pending when the
            *timeout* expires. Raises :class:`RequestTimeout` if the request
            timed out with no reply, and :class:`RequestCancelled` if it was
            cancelled.
        """

        if self._done.wait(timeout) == False:
            return None

        if self.state is State.TIMED_OUT:
            raise RequestTimeout('no reply on %s within %.3f sec' % (self.channel, self._timer.interval))

        if self.state is State.CANCELLED:
            raise RequestCancelled('request %s was cancelled' % (self.token))

        return self.response


    def _advance(self, state):
        """ Move to a non-terminal *state*, unless the request already
            finished. Returns True if the transition happened.
        """

        with self._lock:
            if self.state in TERMINAL:
                return False

            logger.debug("%s: %s -> %s", self.token, self.state.value, state.value)
            self.state = state
            return True


    def _deliver(self, message):
        """ Subscription handler for the reply channel.
        """

        with self._lock:
            if self.state in TERMINAL:
                return

            reply = Reply(message, self.correlator.project(message))
            self.replies.append(reply)

            if self.callback is not None:
                try:
                    self.callback(reply)
                except Exception:
                    logger.exception("Reply callback for %s failed", self.token)

            if self.mode == SINGLE:
                self._finish(State.RESOLVED)


    def _expire(self):
        """ Timer handler. A streaming request that has seen replies simply
            reached the end of its window.
        """

        with self._lock:
            if self.mode == STREAMING and self.replies:
                self._finish(State.RESOLVED)
            else:
                self._finish(State.TIMED_OUT)


    def _start_timer(self, timeout):

        with self._lock:
            if self.state in TERMINAL:
                return

            self._timer = threading.Timer(timeout, self._expire)
            self._timer.daemon = True
            self._timer.start()


    def _finish(self, state):

        with self._lock:
            if self.state in TERMINAL:
                return False

            logger.debug("%s: %s -> %s", self.token, self.state.value, state.value)
            self.state = state

            if self._timer is not None:
                self._timer.cancel()

            self.correlator.registry.unsubscribe(self._subscription)
            self.correlator._forget(self)

            callbacks = self._done_callbacks
            self._done_callbacks = list()
            self._done.set()

        for callback in callbacks:
            try:
                callback(self)
            except Exception:
                logger.exception("Done callback for %s failed", self.token)

        return True


# end of class Pending



class Correlator:
    """ Issue requests over a publish/subscribe *transport* and correlate
        the replies. The *registry* defaults to a new :class:`Registry`
        bound to the same transport.

        The *settle* delay, in seconds, is observed between the reply
        subscription becoming active and the request being published; it
        gives the subscription time to propagate beyond the local transport.
        A default *timeout* applies to any request issued without one; None
        means requests wait indefinitely.
    """

    def __init__(self, transport, registry=None, settle=0.5, timeout=None, project=results.project):

        if registry is None:
            registry = Registry(transport)

        self.transport = transport
        self.registry = registry
        self.settle = settle
        self.timeout = timeout
        self.project = project

        self._pending = dict()
        self._pending_lock = threading.Lock()

        transport.on(DOWN, self._connectivity)
        transport.on(UP, self._connectivity)


    def __len__(self):
        with self._pending_lock:
            return len(self._pending)


    def pending(self):
        """ Return a tuple of the requests currently in flight.
        """

        with self._pending_lock:
            return tuple(self._pending.values())


    def issue(self, destination, build, timeout=None, mode=SINGLE, callback=None):
        """ Publish a request on the *destination* channel and return the
            :class:`Pending` instance tracking it.

            *build* is called with the correlation token and must return the
            payload to publish; the payload must carry the same token as its
            ``id`` field, which is how the remote side knows where to send
            its reply. The reply subscription is active before the payload is
            published.

            The optional *callback* is invoked with each :class:`Reply`.
            In :data:`SINGLE` mode the request resolves with the first reply;
            in :data:`STREAMING` mode every reply is handled until the
            request is closed, cancelled, or its *timeout* expires.

            If the publish fails the request is cancelled, not retried, and
            the exception (normally :class:`pubquery.transport.PublishError`)
            propagates to the caller.
        """

        if timeout is None:
            timeout = self.timeout

        pending = Pending(self, new_token(), destination, mode, callback)

        with self._pending_lock:
            self._pending[pending.token] = pending

        pending._advance(State.RESERVED)

        try:
            subscription = self.registry.subscribe(pending.channel, pending._deliver)
        except Exception:
            pending.cancel()
            raise

        with pending._lock:
            pending._subscription = subscription
            subscribed = pending._advance(State.SUBSCRIBED)

        # Cancelled while the subscription was being established.

        if subscribed == False:
            self.registry.unsubscribe(subscription)
            return pending

        try:
            payload = build(pending.token)
            token = payload[ID]
        except Exception:
            pending.cancel()
            raise

        if token != pending.token:
            pending.cancel()
            raise ValueError('payload %s %s does not match reply channel %s' % (ID, repr(token), pending.channel))

        pending.payload = payload

        if self.settle:
            # Waiting on the done event, rather than sleeping, lets a
            # cancellation during the settle period take effect immediately.
            if pending._done.wait(self.settle):
                return pending

        try:
            self.transport.publish(destination, payload)
        except Exception:
            pending.cancel()
            raise

        pending._advance(State.PUBLISHED)

        if timeout:
            pending._start_timer(timeout)

        return pending


    def close(self):
        """ Cancel every request in flight.
        """

        for pending in self.pending():
            pending.cancel()


    def _forget(self, pending):

        with self._pending_lock:
            self._pending.pop(pending.token, None)


    def _connectivity(self, state):

        count = len(self)

        if state is DOWN and count > 0:
            logger.warning("Connection lost with %d request(s) in flight; awaiting reconnection or timeout", count)
        elif state is UP and count > 0:
            logger.info("Connection restored with %d request(s) in flight", count)


# end of class Correlator


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
