"""
URL helpers for domscan.

Builds mutated URLs for the three injection modes and compares URLs
independent of percent-encoding.
"""

from urllib.parse import parse_qsl, quote, unquote, urldefrag, urlencode, urlparse, urlunparse

from domscan.models import InjectionMode

# Characters left unescaped in injected values, matching what browsers keep as-is.
_SAFE_CHARS = "/'()*!~"


def _encode_query(pairs: list[tuple[str, str]]) -> str:
    return urlencode(pairs, quote_via=quote, safe=_SAFE_CHARS)


def set_query_parameter(query: str, name: str, value: str) -> str:
    """
    Set ``name`` to ``value`` in a query string.

    The first occurrence is replaced in place and later duplicates are
    dropped. Unknown names are appended.
    """
    pairs = parse_qsl(query, keep_blank_values=True)
    result = []
    replaced = False
    for key, current in pairs:
        if key == name:
            if not replaced:
                result.append((key, value))
                replaced = True
            continue
        result.append((key, current))
    if not replaced:
        result.append((name, value))
    return _encode_query(result)


def split_fragment_query(fragment: str) -> tuple[str, str]:
    """Split ``/path?a=1`` into (``/path?``, ``a=1``). No ``?`` means no query."""
    index = fragment.find("?")
    if index == -1:
        return fragment, ""
    return fragment[: index + 1], fragment[index + 1:]


def build_mutated_url(url: str, parameter: str, payload: str, mode: InjectionMode) -> str:
    """
    Return a copy of ``url`` with ``payload`` injected.

    QUERY sets the query parameter, FRAGMENT_PARAMETER sets a parameter of
    the query string inside the fragment, FRAGMENT replaces the whole
    fragment. The input string is never modified.
    """
    parsed = urlparse(url)

    if mode is InjectionMode.FRAGMENT:
        return urlunparse(parsed._replace(fragment=payload))

    if mode is InjectionMode.FRAGMENT_PARAMETER:
        prefix, fragment_query = split_fragment_query(parsed.fragment)
        if not prefix.endswith("?"):
            prefix += "?"
        fragment = prefix + set_query_parameter(fragment_query, parameter, payload)
        return urlunparse(parsed._replace(fragment=fragment))

    return urlunparse(parsed._replace(query=set_query_parameter(parsed.query, parameter, payload)))


def same_document_url(a: str, b: str) -> bool:
    """Compare two URLs ignoring the fragment and percent-encoding differences."""
    return unquote(urldefrag(a)[0]).replace("+", " ") == unquote(urldefrag(b)[0]).replace("+", " ")


def origin_of(url: str) -> str:
    parsed = urlparse(url)
    return f"{parsed.scheme}://{parsed.netloc}"


def same_origin(a: str, b: str) -> bool:
    return origin_of(a) == origin_of(b)
