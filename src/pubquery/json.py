""" Wrapper module for the JSON handling used throughout pubquery. Both
    :func:`dumps` and :func:`loads` operate on bytes, which is what ends up
    on the wire.
"""

import orjson


def dumps(thing):
    """ Return the JSON encoding of *thing* as bytes. Non-string dictionary
        keys are converted to strings rather than rejected.
    """

    return orjson.dumps(thing, option=orjson.OPT_NON_STR_KEYS)


loads = orjson.loads
JSONDecodeError = orjson.JSONDecodeError


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
