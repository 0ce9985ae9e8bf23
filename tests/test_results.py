import dataclasses
import logging

import pytest

from pubquery import results
from pubquery.protocol.message import Message

from conftest import reply_payload


def test_order_and_count():

    titles = ('first', 'second', 'third', 'fourth')
    projected = results.project(Message('/reply', reply_payload(*titles)))

    assert len(projected) == 4
    assert [result.index for result in projected] == [0, 1, 2, 3]
    assert [result.title for result in projected] == list(titles)


def test_fields():

    payload = reply_payload('Sample Laptop', cached='2024-01-01T00:00:00Z')
    result = results.project(Message('/reply', payload))[0]

    assert result.title == 'Sample Laptop'
    assert result.cached == '2024-01-01T00:00:00Z'
    assert result.id == 'id0'
    assert result.source == 'ddf.distribution'

    # Download references are passed through untouched.

    assert result.download_url.startswith('https://localhost:8993/')


def test_restartable():

    projected = results.project(Message('/reply', reply_payload('a', 'b')))

    first = list(projected)
    second = list(projected)

    assert first == second
    assert projected[-1].title == 'b'
    assert [result.title for result in projected[0:1]] == ['a']

    with pytest.raises(IndexError):
        projected[2]


def test_cached_flag_is_kept():

    result = results.project(Message('/reply', reply_payload('a', cached=False)))[0]
    assert result.cached is False


def test_results_are_immutable():

    result = results.project(Message('/reply', reply_payload('a')))[0]

    with pytest.raises(dataclasses.FrozenInstanceError):
        result.title = 'b'


def test_missing_fields():

    payload = dict()
    payload['results'] = [
        {},
        {'metacard': None},
        {'metacard': {'properties': {}}},
        {'metacard': {'properties': {'title': 'only a title'}, 'cached': False}},
        'not even a dictionary',
    ]

    projected = list(results.project(Message('/reply', payload)))

    assert len(projected) == 5
    assert projected[0] == results.Result(index=0)
    assert projected[1] == results.Result(index=1)
    assert projected[2] == results.Result(index=2)
    assert projected[3].title == 'only a title'
    assert projected[3].cached is False
    assert projected[4] == results.Result(index=4)


@pytest.mark.parametrize('payload', (
    {'status': [{'results': 0}]},
    {'results': 'nope'},
    None,
    ['a', 'list'],
))
def test_malformed(payload, caplog):

    caplog.set_level(logging.DEBUG, logger='pubquery.results')

    projected = results.project(Message('/reply', payload))

    assert len(projected) == 0
    assert list(projected) == []

    diagnostics = [record for record in caplog.records if record.name == 'pubquery.results']
    assert len(diagnostics) == 1
    assert diagnostics[0].levelno == logging.WARNING


def test_status(caplog):

    message = Message('/reply', reply_payload('a', 'b'))
    assert results.status(message)['results'] == 2

    caplog.set_level(logging.WARNING, logger='pubquery.results')

    assert results.status(Message('/reply', {'status': []})) is None
    assert results.status(Message('/reply', {})) is None
    assert len(caplog.records) == 2


def test_payload_is_not_modified():

    payload = reply_payload('a')
    original = repr(payload)

    list(results.project(Message('/reply', payload)))

    assert repr(payload) == original


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
