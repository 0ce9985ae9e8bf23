""" Python client for a catalog query service reachable over a
    publish/subscribe transport. A query is published with a correlation
    token, and the reply is received on a private channel named after that
    token.
"""

# Utility components.

from . import json
from . import errors

# Submodules used by multiple other components.

from . import protocol
from . import transport
from . import config

# Primary public-facing interfaces.

from . import results
from . import download
from .registry import Registry, Subscription
from .correlator import Correlator, Pending, Reply, State, SINGLE, STREAMING
from .client import Client

from .errors import (
    DispatchMismatchError,
    DownloadError,
    MalformedResponseError,
    PubqueryError,
    RequestCancelled,
    RequestTimeout,
)
from .transport import ConnectivityError, PublishError

# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
