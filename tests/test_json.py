import json

import pytest

import pubquery

from conftest import reply_payload


def test_reply_payload_survives_the_wire():

    payload = reply_payload('Sample Laptop', 'Other', cached='2024-01-01T00:00:00Z')
    encoded = pubquery.json.dumps(payload)

    assert isinstance(encoded, bytes)
    assert pubquery.json.loads(encoded) == payload

    # Anything the standard library can read is fair game as well.

    assert json.loads(encoded) == payload


def test_query_payload():

    payload = {'id': 'c0ffee', 'cql': "anyText LIKE 'it''s'"}
    assert pubquery.json.loads(pubquery.json.dumps(payload)) == payload


def test_integer_keys():

    # JSON has no integer keys; they arrive as strings on the far side, and
    # the decoder has no way to know otherwise.

    encoded = pubquery.json.dumps({'ports': {8993: 8181}})
    assert pubquery.json.loads(encoded) == {'ports': {'8993': 8181}}


def test_empty_payload():
    assert pubquery.json.loads(pubquery.json.dumps({})) == {}


def test_decode_error():

    with pytest.raises(pubquery.json.JSONDecodeError):
        pubquery.json.loads(b'{not json')

    # The decode error is also a ValueError, which the framing relies on.

    assert issubclass(pubquery.json.JSONDecodeError, ValueError)


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
