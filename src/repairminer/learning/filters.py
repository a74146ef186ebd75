"""
Keyword filters selecting feature vectors by the keywords they contain.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Sequence

from ..models import ChangeType
from .feature_vector import FeatureVector
from .keywords import KeywordContext, KeywordType, KeywordUse


class FilterType(Enum):
    INCLUDE = "INCLUDE"
    EXCLUDE = "EXCLUDE"


class VectorFilter(ABC):
    """A predicate over feature vectors, composable with ``&``."""

    @abstractmethod
    def matches(self, vector: FeatureVector) -> bool:
        pass

    def __and__(self, other: "VectorFilter") -> "VectorFilter":
        return AllOf([self, other])


@dataclass(frozen=True)
class KeywordFilter(VectorFilter):
    """
    Matches vectors by their keywords.

    ``UNKNOWN`` (for the enum fields) and ``""`` (for the api and keyword)
    are wildcards. An INCLUDE filter matches vectors holding at least one
    matching keyword, an EXCLUDE filter matches vectors holding none.
    """

    filter_type: FilterType = FilterType.INCLUDE
    type: KeywordType = KeywordType.UNKNOWN
    context: KeywordContext = KeywordContext.UNKNOWN
    change_type: ChangeType = ChangeType.UNKNOWN
    api: str = ""
    keyword: str = ""

    @classmethod
    def for_keyword(cls, keyword: KeywordUse) -> "KeywordFilter":
        """An INCLUDE filter matching exactly one keyword use."""
        return cls(FilterType.INCLUDE, keyword.type, keyword.context,
                   keyword.change_type, keyword.api, keyword.keyword)

    def matches_keyword(self, keyword: KeywordUse) -> bool:
        return ((self.type == KeywordType.UNKNOWN or self.type == keyword.type)
                and (self.context == KeywordContext.UNKNOWN or self.context == keyword.context)
                and (self.change_type == ChangeType.UNKNOWN or self.change_type == keyword.change_type)
                and (not self.api or self.api == keyword.api)
                and (not self.keyword or self.keyword == keyword.keyword))

    def matches(self, vector: FeatureVector) -> bool:
        found = any(self.matches_keyword(k) for k, count in vector.keywords.items() if count > 0)
        return found if self.filter_type == FilterType.INCLUDE else not found


class AllOf(VectorFilter):
    """Conjunction of filters."""

    def __init__(self, filters: Iterable[VectorFilter]):
        self.filters: List[VectorFilter] = []
        for vector_filter in filters:
            if isinstance(vector_filter, AllOf):
                self.filters.extend(vector_filter.filters)
            else:
                self.filters.append(vector_filter)

    def matches(self, vector: FeatureVector) -> bool:
        return all(f.matches(vector) for f in self.filters)

    def __repr__(self) -> str:
        return f"AllOf({self.filters!r})"


NO_FILTER = KeywordFilter()


def matches_any(filters: Sequence[VectorFilter], vector: FeatureVector) -> bool:
    """True if no filters are given or any of them matches."""
    return not filters or any(f.matches(vector) for f in filters)
