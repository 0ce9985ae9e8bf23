""" A forwarding device for the ZeroMQ transport. Publishers connect to the
    XSUB side, subscribers connect to the XPUB side; messages and
    subscriptions flow through :func:`zmq.proxy_steerable` in a background
    thread.
    The device has no knowledge of channels or payloads.
"""

import argparse
import logging
import threading

import zmq

logger = logging.getLogger(__name__)

publish_port = 10139
subscribe_port = 10140


class Broker:
    """ Bind an XSUB socket on *publish_port* and an XPUB socket on
        *subscribe_port*, on all interfaces unless a *hostname* is given.
        A port of zero selects a free port; the chosen ports are available
        as :ivar:`publish_port` and :ivar:`subscribe_port` after
        construction.
    """

    def __init__(self, publish_port=publish_port, subscribe_port=subscribe_port, hostname='*'):

        self.context = zmq.Context()

        self.frontend = self.context.socket(zmq.XSUB)
        self.frontend.setsockopt(zmq.LINGER, 0)
        self.backend = self.context.socket(zmq.XPUB)
        self.backend.setsockopt(zmq.LINGER, 0)

        self.publish_port = self._bind(self.frontend, hostname, publish_port)
        self.subscribe_port = self._bind(self.backend, hostname, subscribe_port)

        # The proxy is stopped through its control socket; the device sockets
        # themselves are only ever touched by the proxy thread.

        internal = 'inproc://pubquery.broker:control:%d' % (id(self))
        self.control_rx = self.context.socket(zmq.PAIR)
        self.control_rx.bind(internal)
        self.control_tx = self.context.socket(zmq.PAIR)
        self.control_tx.connect(internal)

        self.thread = threading.Thread(target=self.run, name='pubquery.broker')
        self.thread.daemon = True
        self.thread.start()

        logger.info("Forwarding publishers on %d to subscribers on %d", self.publish_port, self.subscribe_port)


    def _bind(self, socket, hostname, port):

        port = int(port)

        if port == 0:
            return socket.bind_to_random_port('tcp://' + hostname)

        try:
            socket.bind('tcp://%s:%d' % (hostname, port))
        except zmq.ZMQError as e:
            raise zmq.ZMQError(e.errno, 'port already in use: ' + str(port)) from e

        return port


    def run(self):

        try:
            zmq.proxy_steerable(self.frontend, self.backend, None, self.control_rx)
        except zmq.ZMQError:
            logger.exception('Forwarding device stopped')
        finally:
            self.frontend.close(linger=0)
            self.backend.close(linger=0)
            self.control_rx.close(linger=0)


    def stop(self):
        """ Shut down the device. Any connected peers will see a disconnect.
        """

        if self.context.closed:
            return

        if self.thread.is_alive():
            self.control_tx.send(b'TERMINATE')
            self.thread.join(5)

        self.control_tx.close(linger=0)
        self.context.term()


# end of class Broker



def main(argv=None):

    parser = argparse.ArgumentParser(description='Forward pubquery traffic between publishers and subscribers.')
    parser.add_argument('--hostname', default='*', help='interface to bind (default: all)')
    parser.add_argument('--publish-port', type=int, default=publish_port, help='port publishers connect to (default: %(default)s)')
    parser.add_argument('--subscribe-port', type=int, default=subscribe_port, help='port subscribers connect to (default: %(default)s)')
    parser.add_argument('-v', '--verbose', action='store_true', help='enable debug output')

    arguments = parser.parse_args(argv)

    level = logging.DEBUG if arguments.verbose else logging.INFO
    logging.basicConfig(level=level, format='%(message)s')

    broker = Broker(arguments.publish_port, arguments.subscribe_port, arguments.hostname)

    try:
        broker.thread.join()
    except KeyboardInterrupt:
        logger.info('Interrupted, shutting down')
    finally:
        broker.stop()

    return 0


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
