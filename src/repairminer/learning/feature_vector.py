"""
Feature vectors: keyword counts for one function of a file pair.
"""

import re
import threading
from typing import Dict, Iterable, List, Optional

from ..exceptions import MalformedVectorError
from ..models import AnalysisMetaInformation, ChangeType
from .keywords import KeywordColumn, KeywordContext, KeywordDefinition, KeywordType, KeywordUse

HEADER_COLUMNS = ("id", "projectID", "buggyFile", "repairedFile",
                  "buggyCommitID", "repairedCommitID", "functionName")

_UNSAFE = re.compile(r"[,:\r\n]")


def sanitize(value: str) -> str:
    """Replace characters that would break the CSV layout."""
    return _UNSAFE.sub("_", value or "")


class IdCounter:
    """Thread-safe, strictly increasing id source."""

    def __init__(self, start: int = 0):
        self._value = start
        self._lock = threading.Lock()

    def next(self) -> int:
        with self._lock:
            self._value += 1
            return self._value

    def advance(self, value: int) -> None:
        """Make sure later ids are greater than ``value``."""
        with self._lock:
            self._value = max(self._value, value)

    @property
    def current(self) -> int:
        return self._value


_ID_COUNTER = IdCounter()


class FeatureVector:
    """
    A meta information header plus a map of keyword uses to counts.

    Two vectors are equal when their ids, headers and keyword counts are
    equal. The source and destination code are not part of equality since
    they are not persisted.
    """

    def __init__(self, project_id: str = "", buggy_file: str = "", repaired_file: str = "",
                 buggy_commit_id: str = "", repaired_commit_id: str = "",
                 function_name: str = "", source_code: str = "", destination_code: str = "",
                 id: Optional[int] = None, counter: Optional[IdCounter] = None):
        counter = counter or _ID_COUNTER
        if id is None:
            id = counter.next()
        else:
            counter.advance(id)
        self.id = id
        self.project_id = project_id
        self.buggy_file = buggy_file
        self.repaired_file = repaired_file
        self.buggy_commit_id = buggy_commit_id
        self.repaired_commit_id = repaired_commit_id
        self.function_name = function_name
        self.source_code = source_code
        self.destination_code = destination_code
        self.keywords: Dict[KeywordUse, int] = {}

    @classmethod
    def from_ami(cls, ami: AnalysisMetaInformation, function_name: str,
                 counter: Optional[IdCounter] = None) -> "FeatureVector":
        return cls(ami.project_id, ami.buggy_file, ami.repaired_file,
                   ami.buggy_commit_id, ami.repaired_commit_id, function_name,
                   counter=counter)

    def add_keyword(self, keyword: KeywordUse, count: int = 1) -> None:
        """Add ``count`` uses of ``keyword``; counts of equal uses are summed."""
        if count < 0:
            raise ValueError(f"Keyword count must be non-negative: {count}")
        self.keywords[keyword] = self.keywords.get(keyword, 0) + count

    def add_keywords(self, keywords: Iterable[KeywordUse]) -> None:
        for keyword in keywords:
            self.add_keyword(keyword)

    def join(self, source: "FeatureVector") -> None:
        """
        Merge the buggy-side vector of the same function into this one.

        Only keywords labelled REMOVED are taken, every other source keyword
        is already visible from the repaired side.
        """
        self.source_code = source.source_code
        for keyword, count in source.keywords.items():
            if keyword.change_type == ChangeType.REMOVED:
                self.add_keyword(keyword, count)

    def has_changes(self) -> bool:
        return any(k.is_changed for k in self.keywords)

    def count(self, column: KeywordColumn) -> int:
        """Count of a keyword use, or the summed counts of every use of a definition."""
        if isinstance(column, KeywordDefinition):
            return sum(count for keyword, count in self.keywords.items()
                       if keyword.definition == column)
        return self.keywords.get(column, 0)

    def header(self) -> List[str]:
        return [str(self.id), self.project_id, self.buggy_file, self.repaired_file,
                self.buggy_commit_id, self.repaired_commit_id, self.function_name]

    def serialize(self) -> str:
        """One CSV line: the header columns followed by one field per keyword."""
        fields = [sanitize(value) for value in self.header()]
        for keyword in sorted(self.keywords, key=str):
            fields.append(":".join([
                keyword.type.value,
                keyword.context.value,
                keyword.change_type.value,
                sanitize(keyword.api),
                sanitize(keyword.keyword),
                str(self.keywords[keyword]),
            ]))
        return ",".join(fields)

    @classmethod
    def deserialize(cls, line: str, counter: Optional[IdCounter] = None) -> "FeatureVector":
        """
        Parse a line written by ``serialize``.

        Raises:
            MalformedVectorError: If the line does not have the expected layout
        """
        features = line.rstrip("\r\n").split(",")
        if len(features) < len(HEADER_COLUMNS):
            raise MalformedVectorError(
                f"Expected {len(HEADER_COLUMNS)} header columns, found {len(features)}")
        try:
            id = int(features[0])
        except ValueError:
            raise MalformedVectorError(f"Invalid vector id: {features[0]!r}")

        vector = cls(*features[1:7], id=id, counter=counter)
        for feature in features[7:]:
            parts = feature.split(":")
            if len(parts) < 6:
                raise MalformedVectorError(f"Keyword field has {len(parts)} of 6 parts: {feature!r}")
            try:
                keyword = KeywordUse(KeywordType(parts[0]), KeywordContext(parts[1]),
                                     ChangeType(parts[2]), parts[3], parts[4])
                count = int(parts[5])
            except ValueError as e:
                raise MalformedVectorError(f"Invalid keyword field {feature!r}: {e}")
            if count < 0:
                raise MalformedVectorError(f"Negative keyword count in {feature!r}")
            vector.add_keyword(keyword, count)
        return vector

    def project(self, columns: Iterable[KeywordColumn]) -> List[int]:
        """Counts of the given columns, looked up one by one, 0 for absent keywords."""
        return [self.count(column) for column in columns]

    def __eq__(self, other) -> bool:
        if not isinstance(other, FeatureVector):
            return NotImplemented
        return self.header() == other.header() and self.keywords == other.keywords

    def __hash__(self) -> int:
        return hash(self.id)

    def __repr__(self) -> str:
        return (f"FeatureVector(id={self.id}, project={self.project_id!r}, "
                f"function={self.function_name!r}, keywords={len(self.keywords)})")
