import pytest

from pubquery.protocol import channel


def test_reply_channel():

    assert channel.reply('abc') == '/abc'

    token = '0f8fad5b-d9cb-469f-a165-70867728950e'
    assert channel.reply(token) == '/' + token

    with pytest.raises(ValueError):
        channel.reply('')

    with pytest.raises(ValueError):
        channel.reply('a/b')


def test_exact():

    assert channel.matches('/service/query', '/service/query')
    assert channel.matches('/service/query', '/service/query/x') == False
    assert channel.matches('/service/query', '/service') == False
    assert channel.matches('/abc', '/abcdef') == False


def test_single_segment_wildcard():

    assert channel.matches('/ddf/*', '/ddf/activities')
    assert channel.matches('/ddf/*', '/ddf/activities/one') == False
    assert channel.matches('/ddf/*', '/ddf/') == False
    assert channel.matches('/ddf/*', '/ddf') == False


def test_multiple_segment_wildcard():

    pattern = channel.ALL_NOTIFICATIONS

    assert channel.matches(pattern, '/ddf/notifications/downloads')
    assert channel.matches(pattern, '/ddf/notifications/a/b/c')
    assert channel.matches(pattern, '/ddf/notifications') == False
    assert channel.matches(pattern, '/ddf/notifications/') == False
    assert channel.matches(pattern, '/ddf/notificationsx/a') == False
    assert channel.matches(pattern, '/ddf/activities/a') == False


def test_prefix():

    assert channel.prefix('/ddf/activities/**') == '/ddf/activities/'
    assert channel.prefix('/ddf/*') == '/ddf/'
    assert channel.prefix('/service/query') == '/service/query'

    assert channel.is_wild('/ddf/activities/**')
    assert channel.is_wild('/ddf/*')
    assert channel.is_wild('/service/query') == False


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
