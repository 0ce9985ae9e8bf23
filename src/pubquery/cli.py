""" Command line interface: ``pubquery query [keyword]`` issues a keyword
    query and prints the results; ``pubquery retrieve [keyword]`` also
    watches the broadcast channels and downloads every result.
"""

import argparse
import concurrent.futures
import logging
import sys

from . import config
from .client import Client
from .errors import DownloadError, RequestCancelled, RequestTimeout
from .protocol import query as queries
from .transport import ConnectivityError, PublishError

logger = logging.getLogger(__name__)


def parse(argv=None):

    parser = argparse.ArgumentParser(prog='pubquery', description='Query a catalog over a publish/subscribe transport.')
    parser.add_argument('-v', '--verbose', action='store_true', help='enable debug output')
    parser.add_argument('--hostname', help='forwarding device host')
    parser.add_argument('--url', help='service base URL for downloads')
    parser.add_argument('-t', '--timeout', type=float, help='query timeout in seconds')
    parser.add_argument('--disable-validation', action='store_true', help='do not verify TLS certificates on downloads')

    commands = parser.add_subparsers(dest='command', required=True)

    query = commands.add_parser('query', help='search the catalog')
    query.add_argument('keyword', nargs='?', default=queries.DEFAULT_KEYWORD, help='keyword for the query (default: %(default)s)')
    query.add_argument('--cid-only', action='store_true', help='display only the catalog id of each result')

    retrieve = commands.add_parser('retrieve', help='search the catalog and download every result')
    retrieve.add_argument('keyword', nargs='?', default=queries.DEFAULT_KEYWORD, help='keyword for the query (default: %(default)s)')
    retrieve.add_argument('-d', '--directory', help='where to write downloads')

    return parser.parse_args(argv)



def settings_for(arguments):

    settings = config.load()

    if arguments.hostname:
        settings['hostname'] = arguments.hostname
    if arguments.url:
        settings['url'] = arguments.url
    if arguments.timeout:
        settings['timeout'] = arguments.timeout
    if getattr(arguments, 'directory', None):
        settings['download_directory'] = arguments.directory
    if arguments.disable_validation:
        settings['verify'] = False

    return settings



def report(reply, show_downloads=False, client=None, cid_only=False):
    """ Print a reply the way a person wants to read it. With *cid_only*
        set, only the catalog id of each result is printed.
    """

    if cid_only:
        for result in reply.results:
            if result.id is not None:
                logger.info("%s", result.id)
        return

    status = reply.status
    if status is not None:
        logger.info("Query Results: %s", status.get('results'))

    for result in reply.results:
        logger.info("Result #%d", result.index)
        logger.info("Title: %s", result.title)

        if show_downloads and result.download_url is not None:
            logger.info("Download URL: %s", client.download_url(result.download_url))

        if result.cached:
            logger.info("Cached On: %s", result.cached)



def run(arguments):

    settings = settings_for(arguments)
    retrieving = arguments.command == 'retrieve'

    client = Client(settings)

    try:
        client.connect(watch=retrieving)
    except ConnectivityError as e:
        logger.error(str(e))
        return 1

    try:
        logger.info("Publishing query: %s", queries.cql(arguments.keyword))

        try:
            reply = client.query(arguments.keyword).wait()
        except PublishError as e:
            logger.error("Query not sent: %s", e)
            return 1
        except (RequestTimeout, RequestCancelled) as e:
            logger.error(str(e))
            return 1

        report(reply, retrieving, client, getattr(arguments, 'cid_only', False))

        if retrieving == False:
            return 0

        futures = list()
        for result in reply.results:
            if result.download_url is None:
                continue
            futures.append(client.download(result))

        failed = 0
        for future in concurrent.futures.as_completed(futures):
            try:
                future.result()
            except DownloadError:
                failed += 1

        if failed:
            logger.error("%d of %d downloads failed", failed, len(futures))
            return 1

        return 0

    finally:
        client.close()



def main(argv=None):

    arguments = parse(argv)

    level = logging.DEBUG if arguments.verbose else logging.INFO
    logging.basicConfig(level=level, format='%(message)s')

    try:
        return run(arguments)
    except KeyboardInterrupt:
        return 130



if __name__ == '__main__':
    sys.exit(main())


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
