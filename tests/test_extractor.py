"""Tests for URL parameter extraction."""

from domscan.extractor import extract_parameters
from domscan.models import ParameterOrigin


class TestExtractParameters:
    """Query and fragment query parsing."""

    def test_query_parameters(self):
        query, fragment = extract_parameters("https://site.test/page?q=hello&lang=en")

        assert query.to_dict() == {"q": ["hello"], "lang": ["en"]}
        assert len(fragment) == 0

    def test_repeated_names_keep_every_value_in_order(self):
        query, _ = extract_parameters("https://site.test/?id=1&x=a&id=2&id=3")

        assert query.get("id").values == ["1", "2", "3"]
        assert query.names() == ["id", "x"]

    def test_fragment_query_only(self):
        """Fragment with query string and no query parameters."""
        query, fragment = extract_parameters("https://site.test/#/path?ref=home")

        assert len(query) == 0
        assert fragment.to_dict() == {"ref": ["home"]}
        assert fragment.get("ref").origin is ParameterOrigin.FRAGMENT

    def test_fragment_without_query_string_yields_no_fragment_parameters(self):
        _, fragment = extract_parameters("https://site.test/page?a=1#section")

        assert len(fragment) == 0

    def test_no_parameters_at_all(self):
        query, fragment = extract_parameters("https://site.test/")

        assert len(query) == 0
        assert len(fragment) == 0

    def test_blank_values_are_kept(self):
        query, _ = extract_parameters("https://site.test/?empty=&q=1")

        assert query.get("empty").values == [""]

    def test_input_url_is_not_modified(self):
        url = "https://site.test/page?q=hello#/p?ref=home"
        extract_parameters(url)

        assert url == "https://site.test/page?q=hello#/p?ref=home"


class TestParameterMap:
    """Merge semantics of guessed names."""

    def test_add_if_missing_is_idempotent(self):
        query, _ = extract_parameters("https://site.test/?q=1")

        assert query.add_if_missing("token", "mark", ParameterOrigin.GUESSED) is True
        assert query.add_if_missing("token", "mark", ParameterOrigin.GUESSED) is False
        assert query.add_if_missing("q", "mark", ParameterOrigin.GUESSED) is False
        assert query.names() == ["q", "token"]
        assert query.get("q").values == ["1"]
        assert query.get("token").origin is ParameterOrigin.GUESSED
