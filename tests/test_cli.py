import logging

import pytest

from pubquery import cli, results
from pubquery.correlator import Reply
from pubquery.protocol.message import Message

from conftest import reply_payload


@pytest.fixture
def environment(monkeypatch, tmp_path):
    """ Isolate configuration from whatever is in the user's home directory.
    """

    monkeypatch.setenv('PUBQUERY_HOME', str(tmp_path))
    for name in ('HOSTNAME', 'URL', 'TIMEOUT', 'PUBLISH_PORT', 'SUBSCRIBE_PORT', 'VERIFY'):
        monkeypatch.delenv('PUBQUERY_' + name, raising=False)

    return tmp_path


def test_parse_defaults():

    arguments = cli.parse(['query'])

    assert arguments.command == 'query'
    assert arguments.keyword == '*'
    assert arguments.verbose == False
    assert arguments.hostname is None


def test_parse_retrieve():

    arguments = cli.parse(['-v', '--hostname', 'catalog', 'retrieve', 'laptop', '-d', '/tmp/products'])

    assert arguments.command == 'retrieve'
    assert arguments.keyword == 'laptop'
    assert arguments.directory == '/tmp/products'
    assert arguments.hostname == 'catalog'
    assert arguments.verbose == True


def test_parse_cid_only():

    assert cli.parse(['query', '--cid-only', 'laptop']).cid_only == True
    assert cli.parse(['query']).cid_only == False


def test_command_is_required():

    with pytest.raises(SystemExit):
        cli.parse([])


def test_settings_from_arguments(environment):

    arguments = cli.parse(['--hostname', 'catalog', '-t', '5', 'retrieve', '-d', str(environment)])
    settings = cli.settings_for(arguments)

    assert settings.hostname == 'catalog'
    assert settings.timeout == 5.0
    assert settings.download_directory == str(environment)
    assert settings.url == 'http://localhost:8181'
    assert settings.verify == True


def test_disable_validation(environment):

    arguments = cli.parse(['--disable-validation', 'retrieve'])
    assert cli.settings_for(arguments).verify == False


def messages(caplog):
    return [record.getMessage() for record in caplog.records if record.name == 'pubquery.cli']


def test_report(caplog):

    caplog.set_level(logging.INFO, logger='pubquery.cli')

    message = Message('/reply', reply_payload('Sample Laptop', 'Other', cached='2024-01-01T00:00:00Z'))
    reply = Reply(message, results.project(message))

    cli.report(reply)

    assert messages(caplog) == [
        'Query Results: 2',
        'Result #0',
        'Title: Sample Laptop',
        'Cached On: 2024-01-01T00:00:00Z',
        'Result #1',
        'Title: Other',
        'Cached On: 2024-01-01T00:00:00Z',
    ]


def test_report_uncached(caplog):

    caplog.set_level(logging.INFO, logger='pubquery.cli')

    message = Message('/reply', reply_payload('Sample Laptop'))
    cli.report(Reply(message, results.project(message)))

    assert messages(caplog) == ['Query Results: 1', 'Result #0', 'Title: Sample Laptop']


def test_report_catalog_ids(caplog):

    caplog.set_level(logging.INFO, logger='pubquery.cli')

    message = Message('/reply', reply_payload('Sample Laptop', 'Other', cached='2024-01-01T00:00:00Z'))
    cli.report(Reply(message, results.project(message)), cid_only=True)

    assert messages(caplog) == ['id0', 'id1']


def test_query_command(environment, monkeypatch, broker, responder, caplog):

    monkeypatch.setenv('PUBQUERY_PUBLISH_PORT', str(broker.publish_port))
    monkeypatch.setenv('PUBQUERY_SUBSCRIBE_PORT', str(broker.subscribe_port))
    monkeypatch.setenv('PUBQUERY_CONNECT_TIMEOUT', '5')

    caplog.set_level(logging.INFO, logger='pubquery.cli')

    status = cli.main(['--hostname', '127.0.0.1', '-t', '10', 'query', 'laptop'])

    assert status == 0
    assert 'Title: Sample Laptop' in messages(caplog)


def test_unreachable_service(environment, monkeypatch, broker, caplog):

    monkeypatch.setenv('PUBQUERY_PUBLISH_PORT', str(broker.publish_port))
    monkeypatch.setenv('PUBQUERY_SUBSCRIBE_PORT', str(broker.subscribe_port))
    monkeypatch.setenv('PUBQUERY_CONNECT_TIMEOUT', '5')

    caplog.set_level(logging.INFO, logger='pubquery.cli')

    # Nobody answers on the query channel.

    status = cli.main(['--hostname', '127.0.0.1', '-t', '0.2', 'query', 'laptop'])

    assert status == 1


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
