"""Projection of query replies into :class:`Result` records.

A reply from the query service looks like::

    {
        "status": [{"results": 3, ...}],
        "results": [
            {"metacard": {"properties": {"title": ..., "resource-download-url": ...},
                          "cached": ...}},
            ...
        ]
    }

Projection is a pure transformation. Download references are passed through
untouched; any environment-specific rewriting belongs to the caller (see
:func:`pubquery.download.rewrite`).
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, Iterator, Optional

from .errors import MalformedResponseError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Result:
    index: int
    title: Optional[str] = None
    cached: Any = None
    download_url: Optional[str] = None
    id: Optional[str] = None
    source: Optional[str] = None


class Results(Sequence):
    """Lazy, restartable view of the results carried by one reply.

    Each iteration projects the underlying elements afresh; nothing is
    cached and the reply payload is never modified.
    """

    def __init__(self, elements: Sequence = ()):
        self._elements = elements

    def __getitem__(self, index):
        if isinstance(index, slice):
            return [self[i] for i in range(*index.indices(len(self)))]

        if index < 0:
            index += len(self)
        if index < 0 or index >= len(self):
            raise IndexError('result index out of range')

        return _project_one(index, self._elements[index])

    def __iter__(self) -> Iterator[Result]:
        for index, element in enumerate(self._elements):
            yield _project_one(index, element)

    def __len__(self) -> int:
        return len(self._elements)

    def __repr__(self) -> str:
        return f"Results({len(self)})"


def _get(mapping: Any, *path: str) -> Any:
    """Walk *path* through nested dictionaries, returning None on any miss."""

    for key in path:
        if not isinstance(mapping, dict):
            return None
        mapping = mapping.get(key)

    return mapping


def _project_one(index: int, element: Any) -> Result:
    metacard = _get(element, 'metacard')

    return Result(
        index=index,
        title=_get(metacard, 'properties', 'title'),
        cached=_get(metacard, 'cached'),
        download_url=_get(metacard, 'properties', 'resource-download-url'),
        id=_get(metacard, 'properties', 'id'),
        source=_get(metacard, 'properties', 'source-id'),
    )


def _elements(payload: Any) -> list:
    if not isinstance(payload, dict):
        raise MalformedResponseError(f"reply payload is {type(payload).__name__}, not an object")

    try:
        elements = payload['results']
    except KeyError:
        raise MalformedResponseError('reply payload has no results list') from None

    if not isinstance(elements, list):
        raise MalformedResponseError(f"reply results is {type(elements).__name__}, not a list")

    return elements


def project(message) -> Results:
    """Return the :class:`Results` carried by a reply *message*.

    A reply without a usable ``results`` list projects to an empty
    sequence; the condition is logged and otherwise absorbed.
    """

    try:
        elements = _elements(message.payload)
    except MalformedResponseError as e:
        logger.warning("Malformed reply on %s: %s", message.channel, e)
        return Results()

    return Results(elements)


def status(message) -> Optional[dict]:
    """Return the first ``status`` entry of a reply, or None if absent."""

    entries = _get(message.payload, 'status')

    if isinstance(entries, list) and entries and isinstance(entries[0], dict):
        return entries[0]

    logger.warning("Malformed reply on %s: no status entry", message.channel)
    return None


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
