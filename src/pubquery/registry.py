""" The subscription registry tracks which handler is bound to which channel,
    and is the single point where inbound messages are matched to handlers.
"""

import itertools
import logging
import threading

from .errors import DispatchMismatchError
from .protocol import channel as channels

logger = logging.getLogger(__name__)


class Subscription:
    """ The binding of a *handler* to a *channel* (or channel pattern).
        Instances are created by :func:`Registry.subscribe` and act as the
        handle for a later :func:`Registry.unsubscribe`.

        :ivar active: True until the subscription is removed or replaced.
    """

    def __init__(self, channel, handler, sequence):

        self.channel = channel
        self.handler = handler
        self.active = True
        self.sequence = sequence


    def __repr__(self):
        state = 'active' if self.active else 'inactive'
        return 'Subscription(%s, %s)' % (repr(self.channel), state)


# end of class Subscription



class Registry:
    """ Maintain the mapping of channels to :class:`Subscription` instances.
        There is at most one active subscription per distinct channel string.

        If a *transport* is provided, the registry asks it to route each
        channel when the channel is first subscribed, with :func:`dispatch`
        as the delivery callback, and to stop routing it once the last
        subscription for the channel is removed.

        Transport calls for any one channel are serialized: subscribing to
        a channel whose removal is still under way waits for the removal to
        finish, so the new route is never undone by the old one.
    """

    def __init__(self, transport=None):

        self.transport = transport
        self._subscriptions = dict()
        self._lock = threading.Lock()
        self._changed = threading.Condition(self._lock)
        self._routing = set()
        self._sequence = itertools.count()


    def __contains__(self, channel):
        with self._lock:
            return channel in self._subscriptions


    def __len__(self):
        with self._lock:
            return len(self._subscriptions)


    def channels(self):
        """ Return a tuple of the currently subscribed channels.
        """

        with self._lock:
            return tuple(self._subscriptions.keys())


    def subscribe(self, channel, handler):
        """ Register *handler* to be invoked with every :class:`Message`
            arriving on *channel*. If a subscription already exists for the
            same channel string it is replaced; the replacement is logged but
            is not an error. The transport, if any, is ready to route the
            channel by the time this method returns.
        """

        if callable(handler):
            pass
        else:
            raise TypeError('handler must be callable')

        channel = str(channel)
        subscription = Subscription(channel, handler, next(self._sequence))

        with self._lock:
            self._await_routing(channel)

            previous = self._subscriptions.get(channel)
            self._subscriptions[channel] = subscription

            if previous is None and self.transport is not None:
                self._routing.add(channel)
                route = True
            else:
                route = False

        if previous is not None:
            previous.active = False
            logger.warning("Replacing existing handler for %s", channel)
            return subscription

        if route:
            try:
                self.transport.subscribe(channel, self.dispatch)
            except Exception:
                with self._lock:
                    if self._subscriptions.get(channel) is subscription:
                        del self._subscriptions[channel]
                subscription.active = False
                raise
            finally:
                self._routed(channel)

        return subscription


    def unsubscribe(self, subscription):
        """ Remove a :class:`Subscription`. Removing a subscription that is
            already gone, or that has been replaced, is a no-op.
        """

        if subscription is None:
            return

        channel = subscription.channel

        with self._lock:
            while True:
                if self._subscriptions.get(channel) is not subscription:
                    subscription.active = False
                    return
                if channel not in self._routing:
                    break
                self._changed.wait()

            subscription.active = False
            del self._subscriptions[channel]

            if self.transport is None:
                return

            self._routing.add(channel)

        try:
            self.transport.unsubscribe(channel)
        finally:
            self._routed(channel)


    def _await_routing(self, channel):
        """ Wait, with the lock held, for any transport call already under
            way for *channel* to complete.
        """

        while channel in self._routing:
            self._changed.wait()


    def _routed(self, channel):

        with self._lock:
            self._routing.discard(channel)
            self._changed.notify_all()


    def lookup(self, channel):
        """ Return the active subscriptions matching *channel*, in the order
            they were registered. Raises :class:`DispatchMismatchError` if
            nothing matches.
        """

        with self._lock:
            subscriptions = list(self._subscriptions.values())

        matched = list()
        for subscription in subscriptions:
            if channels.matches(subscription.channel, channel):
                matched.append(subscription)

        if len(matched) == 0:
            raise DispatchMismatchError('no subscription for ' + channel)

        matched.sort(key=lambda subscription: subscription.sequence)
        return matched


    def dispatch(self, message):
        """ Hand an inbound *message* to every matching handler, in
            registration order, and return the number of handlers invoked.
            Handlers run synchronously on the caller's thread, which is
            usually the transport's delivery thread; they should return
            promptly. A message with no matching subscription is dropped.
        """

        try:
            matched = self.lookup(message.channel)
        except DispatchMismatchError as e:
            logger.info("Dropping message: %s", e)
            return 0

        invoked = 0

        for subscription in matched:

            # A handler earlier in this loop may have removed a later one.

            if subscription.active == False:
                continue

            invoked += 1

            try:
                subscription.handler(message)
            except Exception:
                logger.exception("Handler for %s failed", subscription.channel)

        return invoked


    def clear(self):
        """ Remove all subscriptions.
        """

        with self._lock:
            subscriptions = list(self._subscriptions.values())

        for subscription in subscriptions:
            self.unsubscribe(subscription)


# end of class Registry


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
