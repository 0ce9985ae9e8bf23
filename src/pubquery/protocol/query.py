""" Construction of query request payloads for the catalog query service.
    The field names here are fixed by the service: the correlation token
    travels as ``id`` and the query expression as ``cql``.
"""

from __future__ import annotations

from typing import Callable, Dict


ID = 'id'
CQL = 'cql'

DEFAULT_KEYWORD = '*'


def cql(keyword: str = DEFAULT_KEYWORD) -> str:
    """Return a CQL expression matching *keyword* against any text."""

    if keyword is None or keyword == '':
        keyword = DEFAULT_KEYWORD

    # CQL string literals escape a single quote by doubling it.
    keyword = str(keyword).replace("'", "''")
    return "anyText LIKE '%s'" % (keyword)


def payload(token: str, expression: str) -> Dict[str, str]:
    return {ID: token, CQL: expression}


def builder(keyword: str = DEFAULT_KEYWORD) -> Callable[[str], Dict[str, str]]:
    """Return a payload builder suitable for
    :meth:`pubquery.correlator.Correlator.issue`.
    """

    expression = cql(keyword)

    def build(token: str) -> Dict[str, str]:
        return payload(token, expression)

    return build


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
