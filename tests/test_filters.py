"""
Tests for keyword filters.
"""

import pytest

from repairminer.learning import (
    AllOf, FeatureVector, FilterType, IdCounter, KeywordContext, KeywordFilter,
    KeywordType, KeywordUse, NO_FILTER,
)
from repairminer.learning.filters import matches_any
from repairminer.models import ChangeType

CB_INSERTED = KeywordUse(KeywordType.PARAMETER, KeywordContext.EXPRESSION,
                         ChangeType.INSERTED, "global", "callback")
READ_FILE = KeywordUse(KeywordType.METHOD_CALL, KeywordContext.EXPRESSION,
                       ChangeType.UNCHANGED, "fs", "readFile")


@pytest.fixture
def vector():
    v = FeatureVector("p", "a.js", "a.js", "c1", "c2", "f", counter=IdCounter())
    v.add_keywords([CB_INSERTED, READ_FILE])
    return v


class TestKeywordFilter:
    """Test matching of single filters."""

    def test_exact_keyword(self, vector):
        """A filter built from a keyword matches vectors holding it."""
        assert KeywordFilter.for_keyword(CB_INSERTED).matches(vector)
        assert not KeywordFilter.for_keyword(CB_INSERTED.with_change(ChangeType.REMOVED)).matches(vector)

    @pytest.mark.parametrize("keyword_filter", [
        KeywordFilter(api="fs"),
        KeywordFilter(type=KeywordType.PARAMETER),
        KeywordFilter(change_type=ChangeType.INSERTED, keyword="callback"),
        KeywordFilter(context=KeywordContext.EXPRESSION),
        NO_FILTER,
    ])
    def test_wildcards(self, vector, keyword_filter):
        """Unset fields match anything."""
        assert keyword_filter.matches(vector)

    @pytest.mark.parametrize("fields", [
        {"api": "http"},
        {"type": KeywordType.EVENT},
        {"change_type": ChangeType.REMOVED},
        {"keyword": "readFile", "change_type": ChangeType.INSERTED},
    ])
    def test_include_and_exclude_are_complements(self, vector, fields):
        """An EXCLUDE filter matches exactly where its INCLUDE twin does not."""
        include = KeywordFilter(FilterType.INCLUDE, **fields)
        exclude = KeywordFilter(FilterType.EXCLUDE, **fields)
        assert not include.matches(vector)
        assert exclude.matches(vector)
        assert include.matches(vector) != exclude.matches(vector)

    def test_zero_counts_do_not_match(self):
        """Keywords present with a zero count are ignored."""
        empty = FeatureVector(counter=IdCounter())
        empty.add_keyword(CB_INSERTED, 0)
        assert not KeywordFilter.for_keyword(CB_INSERTED).matches(empty)


class TestFilterComposition:
    """Test conjunctions and filter lists."""

    def test_and_requires_all(self, vector):
        """Combined filters match only when every part does."""
        both = KeywordFilter(api="fs") & KeywordFilter(keyword="callback")
        assert isinstance(both, AllOf)
        assert both.matches(vector)
        assert not (both & KeywordFilter(api="http")).matches(vector)

    def test_nested_conjunctions_flatten(self):
        """Chained conjunctions form one flat list."""
        combined = KeywordFilter(api="a") & KeywordFilter(api="b") & KeywordFilter(api="c")
        assert len(combined.filters) == 3

    def test_any_of_list(self, vector):
        """A list of filters matches when any member matches; an empty list matches all."""
        assert matches_any([], vector)
        assert matches_any([KeywordFilter(api="http"), KeywordFilter(api="fs")], vector)
        assert not matches_any([KeywordFilter(api="http")], vector)
