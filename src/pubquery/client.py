""" The :class:`Client` is the principal entry point for interacting with
    the catalog query service: it establishes the transport, observes the
    notification and activity broadcasts, issues queries, and retrieves
    products.
"""

import logging
import urllib.parse

from . import config
from .correlator import Correlator, SINGLE
from .download import Downloader, rewrite
from .protocol import channel as channels
from .protocol import query as queries
from .protocol.message import new_token
from .registry import Registry
from .transport import PublishError, ZMQTransport

logger = logging.getLogger(__name__)

DOWNLOAD_CONTEXT = '/services/catalog/sources/'
DOWNLOAD_TRANSFORM = '?transform=resource'


class Client:
    """ A session with the query service. *settings* default to
        :func:`pubquery.config.load`; a *transport* may be supplied, otherwise
        a :class:`pubquery.transport.ZMQTransport` is created from the
        settings when :func:`connect` is called.

        :ivar notifications: The most recent notification :class:`Message`.
        :ivar activities: The most recent activity :class:`Message`.
        :ivar session: A token identifying this client session to the service.
    """

    def __init__(self, settings=None, transport=None):

        if settings is None:
            settings = config.load()

        self.settings = settings
        self.transport = transport
        self.registry = None
        self.correlator = None
        self.downloader = None
        self.session = new_token()

        self.notifications = None
        self.activities = None
        self._watchers = {channels.ALL_NOTIFICATIONS: list(), channels.ALL_ACTIVITIES: list()}


    def __enter__(self):
        self.connect()
        return self


    def __exit__(self, *exc):
        self.close()


    def connect(self, watch=True):
        """ Connect the transport and, if *watch* is True, subscribe to the
            notification and activity broadcasts and ask the service to
            replay anything it has persisted.
        """

        if self.transport is None:
            settings = self.settings
            self.transport = ZMQTransport(
                settings.hostname,
                settings.publish_port,
                settings.subscribe_port,
                settings.connect_timeout,
            )

        self.transport.connect()

        self.registry = Registry(self.transport)
        self.correlator = Correlator(
            self.transport,
            self.registry,
            settle=self.settings.settle,
            timeout=self.settings.timeout,
        )

        if watch:
            logger.info("Subscribing to notifications: %s", channels.ALL_NOTIFICATIONS)
            self.registry.subscribe(channels.ALL_NOTIFICATIONS, self._notification)

            logger.info("Subscribing to activities: %s", channels.ALL_ACTIVITIES)
            self.registry.subscribe(channels.ALL_ACTIVITIES, self._activity)

            try:
                self.check_activities()
                self.check_notifications()
            except PublishError as e:
                logger.warning("Could not request persisted notifications and activities: %s", e)


    def close(self):

        if self.correlator is not None:
            self.correlator.close()
        if self.registry is not None:
            self.registry.clear()
        if self.downloader is not None:
            self.downloader.close()
            self.downloader = None
        if self.transport is not None:
            self.transport.close()


    def query(self, keyword=queries.DEFAULT_KEYWORD, timeout=None, callback=None):
        """ Issue a keyword query and return the :class:`Pending` request.
            Call :func:`Pending.wait` to block for the reply, or supply a
            *callback* to be invoked with the :class:`Reply`.
        """

        self._require_connection()

        build = queries.builder(keyword)
        logger.debug("Publishing query for %s on %s", repr(keyword), self.settings.query_channel)

        return self.correlator.issue(
            self.settings.query_channel,
            build,
            timeout=timeout,
            mode=SINGLE,
            callback=callback,
        )


    def check_notifications(self):
        """ Ask the service to replay all persisted notifications. They arrive
            on the notification broadcast channels.
        """

        self._require_connection()
        self.transport.publish(channels.NOTIFICATIONS, {})


    def check_downloads(self):
        """ Ask the service to replay download notifications.
        """

        self._require_connection()
        self.transport.publish(channels.DOWNLOADS, {})


    def check_activities(self):
        """ Ask the service to replay all persisted activities.
        """

        self._require_connection()
        self.transport.publish(channels.ACTIVITIES, {})


    def watch_notifications(self, handler):
        """ Invoke *handler* with every notification :class:`Message`.
        """

        self._watchers[channels.ALL_NOTIFICATIONS].append(handler)


    def watch_activities(self, handler):
        """ Invoke *handler* with every activity :class:`Message`.
        """

        self._watchers[channels.ALL_ACTIVITIES].append(handler)


    def download_url(self, url):
        """ Return *url* adapted to this client's environment.
        """

        settings = self.settings
        return rewrite(url, settings.rewrite_scheme or None, settings.rewrite_ports)


    def download(self, result, name=None):
        """ Begin downloading the resource referenced by a
            :class:`pubquery.results.Result`. Returns a future resolving to
            the local path; raises ValueError if the result has no download
            reference.
        """

        if result.download_url is None:
            raise ValueError('result #%d has no download reference' % (result.index))

        if name is None:
            name = result.id

        return self._downloads().submit(self.download_url(result.download_url), name)


    def download_by_id(self, catalog_id, source):
        """ Begin downloading a product given its catalog id and the name of
            the source that holds it.
        """

        url = self.settings.url.rstrip('/') + DOWNLOAD_CONTEXT
        url += urllib.parse.quote(source) + '/' + urllib.parse.quote(catalog_id)
        url += DOWNLOAD_TRANSFORM + '&session=' + urllib.parse.quote(self.session)

        return self._downloads().submit(url, catalog_id)


    def _downloads(self):

        if self.downloader is None:
            self.downloader = Downloader(
                self.settings.download_directory,
                self.settings.download_workers,
                verify=self.settings.verify,
            )

        return self.downloader


    def _require_connection(self):
        if self.correlator is None:
            raise RuntimeError('client is not connected; call connect() first')


    def _notification(self, message):
        logger.info("Received notification from: %s", message.channel)
        logger.debug("Contents: %s", message.payload)
        self.notifications = message
        self._notify(channels.ALL_NOTIFICATIONS, message)


    def _activity(self, message):
        logger.info("Activity observed: %s", message.payload)
        self.activities = message
        self._notify(channels.ALL_ACTIVITIES, message)


    def _notify(self, pattern, message):
        for handler in list(self._watchers[pattern]):
            try:
                handler(message)
            except Exception:
                logger.exception("Watcher for %s failed", pattern)


# end of class Client


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
