""" Client configuration. Settings start from built-in defaults, are
    overlaid by the contents of ``client.json`` in the configuration
    :func:`directory`, and finally by any ``PUBQUERY_<KEY>`` environment
    variables.
"""

import copy
import os

from . import json


defaults = dict()
defaults['hostname'] = 'localhost'
defaults['publish_port'] = 10139
defaults['subscribe_port'] = 10140
defaults['url'] = 'http://localhost:8181'
defaults['query_channel'] = '/service/query'
defaults['timeout'] = 60.0
defaults['settle'] = 0.5
defaults['connect_timeout'] = 1.0
defaults['rewrite_scheme'] = 'http'
defaults['rewrite_ports'] = {'8993': '8181'}
defaults['download_workers'] = 4
defaults['download_directory'] = '.'
defaults['verify'] = True

filename = 'client.json'


class Settings:
    """ A dictionary-like container for configuration values, which can
        also be accessed as attributes. Values are coerced to the type of
        the corresponding default when set, which matters for values that
        arrive as strings from the environment.
    """

    def __init__(self, values=None, **kwargs):

        self._values = copy.deepcopy(defaults)

        if values:
            self.update(values)
        if kwargs:
            self.update(kwargs)


    def __contains__(self, key):
        return key in self._values


    def __getattr__(self, key):

        if key.startswith('_'):
            raise AttributeError(key)

        try:
            return self._values[key]
        except KeyError:
            raise AttributeError('no such setting: ' + key) from None


    def __getitem__(self, key):
        return self._values[key]


    def __setitem__(self, key, value):

        try:
            default = defaults[key]
        except KeyError:
            raise KeyError('no such setting: ' + str(key)) from None

        self._values[key] = coerce(default, value)


    def __repr__(self):
        return 'Settings(%s)' % (repr(self._values))


    def get(self, key, default=None):
        return self._values.get(key, default)


    def items(self):
        return self._values.items()


    def update(self, values):
        for key, value in values.items():
            self[key] = value


# end of class Settings



def coerce(default, value):
    """ Convert *value* to the type of *default*. Strings destined for a
        dictionary setting are parsed as JSON.
    """

    if value is None or default is None:
        return value

    if isinstance(default, dict):
        if isinstance(value, (str, bytes)):
            value = json.loads(value)
        if isinstance(value, dict):
            return dict(value)
        raise ValueError('expected a JSON object, not ' + repr(value))

    if isinstance(default, bool):
        if isinstance(value, str):
            return value.strip().lower() not in ('', '0', 'false', 'no', 'off')
        return bool(value)

    return type(default)(value)



def directory(default=None):
    """ Return the directory location where configuration is loaded from.
        This defaults to ``$HOME/.pubquery``, but can be overridden by calling
        this method with a valid path, or by setting the ``PUBQUERY_HOME``
        environment variable.
    """

    if default is not None:
        default = str(default)
        default = os.path.expanduser(os.path.expandvars(default))

        if os.path.isabs(default):
            pass
        else:
            raise ValueError('the configuration directory must be an absolute path')

        os.environ['PUBQUERY_HOME'] = default
        return default

    try:
        return os.environ['PUBQUERY_HOME']
    except KeyError:
        pass

    return os.path.join(os.path.expanduser('~'), '.pubquery')



def load(path=None, environ=None):
    """ Return a :class:`Settings` instance. *path* overrides the location
        of the configuration file; *environ* overrides :data:`os.environ`.
        A missing configuration file is not an error.
    """

    if path is None:
        path = os.path.join(directory(), filename)

    if environ is None:
        environ = os.environ

    settings = Settings()

    try:
        with open(path, 'rb') as contents:
            loaded = json.loads(contents.read())
    except FileNotFoundError:
        loaded = dict()
    except json.JSONDecodeError as e:
        raise ValueError('invalid configuration in %s: %s' % (path, e)) from e

    if not isinstance(loaded, dict):
        raise ValueError('configuration in %s must be a JSON object' % (path))

    settings.update(loaded)

    for key in defaults:
        name = 'PUBQUERY_' + key.upper()
        try:
            value = environ[name]
        except KeyError:
            continue

        settings[key] = value

    return settings


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
