"""ZeroMQ publish/subscribe transport.

A client holds two sockets against a forwarding device (see
:mod:`pubquery.broker`): a PUB socket connected to the device's XSUB side,
used for outbound messages, and a SUB socket connected to the device's XPUB
side, used for inbound messages. ZeroMQ sockets are not thread-safe, so all
socket operations happen on a single background I/O thread; callers hand
work to that thread via a queue and an inproc PAIR signal, the same way a
request client hands off outbound requests.
"""

from __future__ import annotations

import concurrent.futures
import logging
import queue
import threading
from typing import Any, Callable, Dict, List, Optional

import zmq
import zmq.utils.monitor

from ...protocol import channel as channels
from ...protocol.message import Message
from ..base import DOWN, UP, ConnectionState, ConnectivityError, PublishError, Transport, TransportError
from .framing import from_frames, to_frames

logger = logging.getLogger(__name__)

zmq_context = zmq.Context()

_MONITORED = zmq.EVENT_CONNECTED | zmq.EVENT_DISCONNECTED


class ZMQTransport(Transport):
    """Publish/subscribe over ZeroMQ, via a forwarding device at *hostname*.

    *publish_port* is the device's XSUB port and *subscribe_port* its XPUB
    port. :meth:`connect` waits up to *connect_timeout* seconds for both
    sockets to come up; failing to do so is logged, not raised, since
    ZeroMQ keeps retrying in the background.
    """

    command_timeout = 5.0

    def __init__(
        self,
        hostname: str = 'localhost',
        publish_port: int = 10139,
        subscribe_port: int = 10140,
        connect_timeout: float = 1.0,
    ):
        self.hostname = hostname
        self.publish_port = int(publish_port)
        self.subscribe_port = int(subscribe_port)
        self.connect_timeout = connect_timeout

        self._handlers: Dict[str, Callable[[Message], Any]] = {}
        self._state_handlers: Dict[ConnectionState, List[Callable]] = {UP: [], DOWN: []}
        self._state = DOWN
        self._up = threading.Event()
        self._connected = {'pub': False, 'sub': False}

        self._outbox: queue.SimpleQueue = queue.SimpleQueue()
        self._thread: Optional[threading.Thread] = None
        self._closed = False

        self._pub = None
        self._sub = None
        self._signal_rx = None
        self._signal_tx = None
        self._signal_lock = threading.Lock()
        self._monitors: Dict[Any, str] = {}

    # --- public surface ---

    @property
    def state(self) -> ConnectionState:
        return self._state

    def connect(self) -> None:
        if self._thread is not None:
            return

        pub_address = f"tcp://{self.hostname}:{self.publish_port}"
        sub_address = f"tcp://{self.hostname}:{self.subscribe_port}"

        self._pub = zmq_context.socket(zmq.PUB)
        self._pub.setsockopt(zmq.LINGER, 0)
        self._sub = zmq_context.socket(zmq.SUB)
        self._sub.setsockopt(zmq.LINGER, 0)

        # Monitors must be attached before connecting, otherwise the initial
        # connection event can be missed.

        self._monitors = {
            self._pub.get_monitor_socket(_MONITORED): 'pub',
            self._sub.get_monitor_socket(_MONITORED): 'sub',
        }

        try:
            self._pub.connect(pub_address)
            self._sub.connect(sub_address)
        except zmq.ZMQError as e:
            for socket in list(self._monitors) + [self._pub, self._sub]:
                socket.close(linger=0)
            raise ConnectivityError(f"cannot connect to {self.hostname}: {e}") from e

        internal = f"inproc://pubquery.transport:signal:{id(self)}"
        self._signal_rx = zmq_context.socket(zmq.PAIR)
        self._signal_rx.bind(internal)
        self._signal_tx = zmq_context.socket(zmq.PAIR)
        self._signal_tx.connect(internal)

        logger.info("Connecting to %s (publish) and %s (subscribe)", pub_address, sub_address)

        self._thread = threading.Thread(target=self.run, name='pubquery.transport', daemon=True)
        self._thread.start()

        if not self._up.wait(self.connect_timeout):
            logger.warning("No connection to %s after %.1f sec; still trying", self.hostname, self.connect_timeout)

    def close(self) -> None:
        if self._thread is None or self._closed:
            self._closed = True
            return

        self._closed = True
        self._submit('stop')

        if threading.current_thread() is not self._thread:
            self._thread.join(self.command_timeout)

    def subscribe(self, pattern: str, on_message: Callable[[Message], Any]) -> None:
        if callable(on_message):
            pass
        else:
            raise TypeError('on_message must be callable')

        self._call('subscribe', pattern, on_message)

    def unsubscribe(self, pattern: str) -> None:
        if self._closed or self._thread is None:
            self._handlers.pop(pattern, None)
            return

        # Fire and forget: unsubscribe is routinely invoked from within a
        # handler running on the I/O thread itself.
        self._submit('unsubscribe', pattern)

    def publish(self, channel: str, payload: Any) -> None:
        if self._closed or self._thread is None:
            raise PublishError('transport is not open')

        if self._state is not UP:
            raise PublishError(f"not connected to {self.hostname}; {channel} not published")

        try:
            frames = to_frames(channel, payload)
        except TypeError as e:
            raise PublishError(f"cannot encode payload for {channel}: {e}") from e

        try:
            self._call('publish', frames)
        except (zmq.ZMQError, TransportError) as e:
            raise PublishError(f"publish to {channel} failed: {e}") from e

    def on(self, state: ConnectionState, handler: Callable[[ConnectionState], Any]) -> None:
        self._state_handlers[ConnectionState(state)].append(handler)

    # --- command hand-off ---

    def _submit(self, command: str, *args) -> concurrent.futures.Future:
        future: concurrent.futures.Future = concurrent.futures.Future()
        self._outbox.put((future, command, args))

        with self._signal_lock:
            self._signal_tx.send(b'')

        return future

    def _call(self, command: str, *args) -> Any:
        """Run *command* on the I/O thread and wait for its result."""

        if self._thread is None or self._closed:
            raise TransportError('transport is not open')

        if threading.current_thread() is self._thread:
            return self._execute(command, *args)

        future = self._submit(command, *args)

        try:
            return future.result(self.command_timeout)
        except concurrent.futures.TimeoutError as e:
            raise TransportError(f"{command}: no response from I/O thread in {self.command_timeout:.1f} sec") from e

    def _execute(self, command: str, *args) -> Any:

        if command == 'publish':
            (frames,) = args
            self._pub.send_multipart(frames)

        elif command == 'subscribe':
            pattern, on_message = args
            if pattern not in self._handlers:
                self._sub.setsockopt(zmq.SUBSCRIBE, channels.prefix(pattern).encode())
                self._poll_flush()
            self._handlers[pattern] = on_message

        elif command == 'unsubscribe':
            (pattern,) = args
            if self._handlers.pop(pattern, None) is not None:
                self._sub.setsockopt(zmq.UNSUBSCRIBE, channels.prefix(pattern).encode())

        else:
            raise ValueError('unknown transport command: ' + repr(command))

    def _handle_outgoing(self) -> bool:
        # Clear one signal and process one command.
        self._signal_rx.recv(flags=zmq.NOBLOCK)
        future, command, args = self._outbox.get(block=False)

        if command == 'stop':
            future.set_result(None)
            return False

        try:
            result = self._execute(command, *args)
        except Exception as e:
            future.set_exception(e)
        else:
            future.set_result(result)

        return True

    # --- I/O thread ---

    def _poll_flush(self, timeout: float = 0.01) -> None:
        """Poll the subscribe socket briefly after changing subscriptions.

        This is not deterministic, but gives ZeroMQ a chance to push the
        subscription upstream before anything depends on it.
        """

        poller = zmq.Poller()
        poller.register(self._sub, zmq.POLLIN | zmq.POLLOUT)
        poller.poll(timeout * 1000)

    def _handle_incoming(self, parts) -> None:
        try:
            message = from_frames(parts)
        except ValueError as e:
            logger.warning("Dropping undecodable message: %s", e)
            return

        delivered = []
        for pattern, on_message in list(self._handlers.items()):
            if not message.channel.startswith(channels.prefix(pattern)):
                continue
            if on_message in delivered:
                continue
            delivered.append(on_message)

            try:
                on_message(message)
            except Exception:
                logger.exception("Delivery of %s failed", message.channel)

    def _handle_monitor(self, monitor) -> None:
        event = zmq.utils.monitor.recv_monitor_message(monitor)
        which = self._monitors[monitor]

        if event['event'] == zmq.EVENT_CONNECTED:
            self._connected[which] = True
        elif event['event'] == zmq.EVENT_DISCONNECTED:
            self._connected[which] = False
        else:
            return

        if all(self._connected.values()):
            self._set_state(UP)
        else:
            self._set_state(DOWN)

    def _set_state(self, state: ConnectionState) -> None:
        if state is self._state:
            return

        self._state = state

        if state is UP:
            self._up.set()
            logger.info("Connection to %s active", self.hostname)
        else:
            self._up.clear()
            logger.error("Connection to %s failure", self.hostname)

        for handler in list(self._state_handlers[state]):
            try:
                handler(state)
            except Exception:
                logger.exception("Connection state handler failed")

    def run(self) -> None:
        poller = zmq.Poller()
        poller.register(self._sub, zmq.POLLIN)
        poller.register(self._signal_rx, zmq.POLLIN)
        for monitor in self._monitors:
            poller.register(monitor, zmq.POLLIN)

        running = True
        while running:
            for active, _flag in poller.poll(1000):
                if active == self._signal_rx:
                    running = self._handle_outgoing()
                elif active == self._sub:
                    self._handle_incoming(self._sub.recv_multipart())
                elif active in self._monitors:
                    self._handle_monitor(active)

                if not running:
                    break

        self._shutdown()

    def _shutdown(self) -> None:
        # Anything queued behind the stop command will never execute.
        while True:
            try:
                future, command, _args = self._outbox.get(block=False)
            except queue.Empty:
                break
            future.set_exception(TransportError(f"{command}: transport closed"))

        self._pub.disable_monitor()
        self._sub.disable_monitor()

        for socket in list(self._monitors) + [self._pub, self._sub, self._signal_rx, self._signal_tx]:
            socket.close(linger=0)

        # A deliberate close is not a connectivity failure; no handlers fire.
        self._handlers.clear()
        self._state = DOWN
        self._up.clear()


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
