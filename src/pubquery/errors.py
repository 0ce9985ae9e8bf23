""" Exception classes shared across pubquery. Transport-specific exceptions
    live in :mod:`pubquery.transport.base` and derive from the same base.
"""


class PubqueryError(Exception):
    """ Base class for all pubquery errors. """


class RequestTimeout(PubqueryError, TimeoutError):
    """ No correlated reply arrived within the configured window. """


class RequestCancelled(PubqueryError):
    """ The request was cancelled before a reply arrived. """


class MalformedResponseError(PubqueryError, ValueError):
    """ A reply payload is missing the structure the projector expects.
        This is absorbed into an empty result set and logged; it is not
        expected to reach callers.
    """


class DispatchMismatchError(PubqueryError, LookupError):
    """ An inbound message matched no registered subscription. """


class DownloadError(PubqueryError):
    """ A resource could not be retrieved or written to disk. """


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
