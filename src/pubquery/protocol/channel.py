""" Channel naming conventions and channel pattern matching.

    Channel names are slash-delimited segments, such as ``/ddf/activities``.
    A channel *pattern* may end in a wildcard segment: ``*`` matches exactly
    one segment, ``**`` matches one or more segments. Wildcards are only
    meaningful as the final segment; anywhere else they are literal text.
"""

QUERY = '/service/query'

NOTIFICATIONS = '/ddf/notifications'
ALL_NOTIFICATIONS = NOTIFICATIONS + '/**'
DOWNLOADS = NOTIFICATIONS + '/downloads'

ACTIVITIES = '/ddf/activities'
ALL_ACTIVITIES = ACTIVITIES + '/**'


def reply(token):
    """ Return the private reply channel for a correlation *token*. The
        receiving service routes its reply to this exact channel, so the
        naming is not negotiable: a slash followed by the token.
    """

    token = str(token)

    if token == '' or '/' in token:
        raise ValueError('invalid correlation token: ' + repr(token))

    return '/' + token



def is_wild(pattern):
    """ Return True if the *pattern* ends in a wildcard segment.
    """

    return pattern.endswith('/*') or pattern.endswith('/**')



def prefix(pattern):
    """ Return the literal portion of a *pattern*, which is everything ahead
        of a trailing wildcard segment. This is the portion a transport can
        use for coarse, prefix-based filtering; precise matching is handled
        by :func:`matches`.
    """

    if pattern.endswith('/**'):
        return pattern[:-2]
    if pattern.endswith('/*'):
        return pattern[:-1]

    return pattern



def matches(pattern, channel):
    """ Return True if the *channel* is matched by the *pattern*. Patterns
        without a wildcard must match exactly.
    """

    if pattern == channel:
        return True

    if pattern.endswith('/**'):
        base = pattern[:-2]
        if channel.startswith(base) == False:
            return False
        remainder = channel[len(base):]
        return remainder != '' and '//' not in '/' + remainder

    if pattern.endswith('/*'):
        base = pattern[:-1]
        if channel.startswith(base) == False:
            return False
        remainder = channel[len(base):]
        return remainder != '' and '/' not in remainder

    return False


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
