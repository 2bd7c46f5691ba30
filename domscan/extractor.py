"""
Parameter extraction.

Parses the query string and the query string embedded in the fragment
(``#/route?a=1``) of the target URL.
"""

import logging
from urllib.parse import parse_qsl, urlparse

from domscan.models import ParameterMap, ParameterOrigin
from domscan.utils.urls import split_fragment_query

logger = logging.getLogger(__name__)


def _parse_into(query: str, target: ParameterMap):
    for name, value in parse_qsl(query, keep_blank_values=True):
        target.add(name, value)


def extract_parameters(url: str) -> tuple[ParameterMap, ParameterMap]:
    """
    Return (query parameters, fragment parameters) for ``url``.

    The fragment map is only populated when the fragment contains a
    ``?``-delimited query string. Repeated names keep all values in order.
    """
    parsed = urlparse(url)
    query_params = ParameterMap(ParameterOrigin.QUERY)
    fragment_params = ParameterMap(ParameterOrigin.FRAGMENT)

    _parse_into(parsed.query, query_params)

    prefix, fragment_query = split_fragment_query(parsed.fragment)
    if prefix.endswith("?"):
        _parse_into(fragment_query, fragment_params)

    if query_params:
        logger.info("URL parameters: %s", query_params.to_dict())
    else:
        logger.warning(
            "No URL parameters found. Unless you only intend to guess parameters, "
            "provide a URL that already includes GET parameters."
        )
    if fragment_params:
        logger.info("Fragment (#) parameters: %s", fragment_params.to_dict())

    return query_params, fragment_params
