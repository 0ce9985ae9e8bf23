"""Retrieval of resources referenced by query results.

Download references in query replies are whatever the service advertises,
which is not always reachable from the client's environment; :func:`rewrite`
adapts them (scheme, port) before the HTTP GET.
"""

from __future__ import annotations

import concurrent.futures
import logging
import mimetypes
import os
import re
import urllib.parse
from pathlib import Path
from typing import Dict, Optional

import httpx

from .errors import DownloadError

logger = logging.getLogger(__name__)

_DISPOSITION = re.compile(r'filename\*?=(?:UTF-8\'\')?"?([^";]+)"?', re.IGNORECASE)


def rewrite(url: str, scheme: Optional[str] = 'http', ports: Optional[Dict[str, str]] = None) -> str:
    """Return *url* with its scheme replaced by *scheme* and its port mapped
    through *ports*. Empty values leave the corresponding part alone.
    """

    parts = urllib.parse.urlsplit(url)
    netloc = parts.netloc

    if ports and parts.port is not None:
        replacement = ports.get(str(parts.port))
        if replacement is not None:
            host = netloc.rsplit(':', 1)[0]
            netloc = f"{host}:{replacement}"

    if scheme:
        parts = parts._replace(scheme=scheme)

    return urllib.parse.urlunsplit(parts._replace(netloc=netloc))


def filename(response: httpx.Response, name: str) -> str:
    """Choose a local file name for a download.

    A server-supplied Content-Disposition name wins; otherwise *name* is
    used, with an extension derived from the Content-Type appended when it
    does not already have one.
    """

    disposition = response.headers.get('content-disposition', '')
    match = _DISPOSITION.search(disposition)
    if match:
        return os.path.basename(urllib.parse.unquote(match.group(1)))

    name = os.path.basename(name) or 'download'
    mimetype = response.headers.get('content-type', '').split(';')[0].strip()

    logger.debug("mimetype is: %s", mimetype)

    extension = mimetypes.guess_extension(mimetype) if mimetype else None
    logger.debug("file extension is: %s", extension)

    if extension and os.path.splitext(name)[1] == '':
        name = name + extension

    return name


class Downloader:
    """Download resources on a bounded pool of worker threads.

    Each :meth:`submit` returns a future resolving to the :class:`Path`
    written. Downloads are independent of each other; no ordering among
    them is guaranteed.
    """

    def __init__(
        self,
        directory: str = '.',
        workers: int = 4,
        client: Optional[httpx.Client] = None,
        timeout: float = 30.0,
        verify: bool = True,
    ):
        self.directory = Path(directory)
        self._owns_client = client is None

        if client is None:
            if not verify:
                logger.warning("TLS certificate validation is disabled for downloads")
            client = httpx.Client(timeout=timeout, follow_redirects=True, verify=verify)

        self.client = client
        self.executor = concurrent.futures.ThreadPoolExecutor(max_workers=workers, thread_name_prefix='pubquery.download')

    def __enter__(self) -> 'Downloader':
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def submit(self, url: str, name: Optional[str] = None) -> concurrent.futures.Future:
        if name is None:
            name = urllib.parse.urlsplit(url).path.rstrip('/').rsplit('/', 1)[-1]

        return self.executor.submit(self.fetch, url, name)

    def fetch(self, url: str, name: str) -> Path:
        """Download *url* into the target directory, blocking until done."""

        logger.debug("downloading product from: %s", url)

        try:
            with self.client.stream('GET', url) as response:
                response.raise_for_status()

                self.directory.mkdir(parents=True, exist_ok=True)
                path = self.directory / filename(response, name)

                with open(path, 'wb') as output:
                    for chunk in response.iter_bytes():
                        output.write(chunk)

        except httpx.HTTPError as e:
            logger.error("Error downloading %s: %s", url, e)
            raise DownloadError(f"download of {url} failed: {e}") from e
        except OSError as e:
            logger.error("Error writing download from %s: %s", url, e)
            raise DownloadError(f"could not write download of {url}: {e}") from e

        logger.info("Downloaded %s to %s", url, path)
        return path

    def close(self) -> None:
        self.executor.shutdown(wait=True)
        if self._owns_client:
            self.client.close()
