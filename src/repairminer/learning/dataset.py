"""
The learning data set: persisted feature vectors and their clustering.
"""

import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple, Union

import numpy as np

from ..analysis.base import DataSet
from ..exceptions import InvariantViolation, MalformedVectorError
from .arff import write_arff
from .clustering import Clusterer
from .feature_vector import FeatureVector, IdCounter
from .filters import VectorFilter, matches_any
from .keywords import KeywordColumn, KeywordDefinition, KeywordUse

logger = logging.getLogger(__name__)


@dataclass
class LoadReport:
    """Outcome of reading a persisted data set."""
    path: str
    rows_read: int = 0
    loaded: int = 0
    skipped: int = 0
    filtered_out: int = 0
    errors: List[Tuple[int, str]] = field(default_factory=list)


@dataclass(frozen=True)
class KeywordFrequency:
    keyword: KeywordUse
    frequency: int


@dataclass
class LearningMetrics:
    """Changed keywords ranked by the number of vectors containing them."""
    changed_keyword_frequency: List[KeywordFrequency] = field(default_factory=list)


class LearningDataSet(DataSet):
    """
    Feature vectors retained for learning.

    Vectors are kept in registration order. When filters are set, only
    vectors matching at least one of them are retained.
    """

    def __init__(self, filters: Optional[Sequence[VectorFilter]] = None,
                 counter: Optional[IdCounter] = None):
        self.filters: List[VectorFilter] = list(filters or [])
        self.counter = counter
        self._vectors: Dict[int, FeatureVector] = {}
        self._columns: Optional[List[KeywordUse]] = None
        self._lock = threading.Lock()
        self.load_report: Optional[LoadReport] = None

    @classmethod
    def from_file(cls, path: Union[str, Path], filters: Optional[Sequence[VectorFilter]] = None,
                  counter: Optional[IdCounter] = None) -> "LearningDataSet":
        """Read a data set written by ``write``."""
        data_set = cls(filters, counter)
        data_set.load(path)
        return data_set

    @property
    def vectors(self) -> List[FeatureVector]:
        return list(self._vectors.values())

    def __len__(self) -> int:
        return len(self._vectors)

    def __iter__(self):
        return iter(self.vectors)

    def accepts(self, result: object) -> bool:
        return isinstance(result, FeatureVector)

    def register(self, vector: FeatureVector) -> None:
        """
        Add a vector if it passes the filters.

        Raises:
            InvariantViolation: If a vector with the same id is already present
        """
        with self._lock:
            if vector.id in self._vectors:
                raise InvariantViolation(f"Duplicate feature vector id {vector.id}")
            if matches_any(self.filters, vector):
                self._vectors[vector.id] = vector
                self._columns = None

    def load(self, path: Union[str, Path]) -> LoadReport:
        """
        Read vectors from a file, one per line.

        Malformed rows, including rows repeating an id, are skipped and
        counted in the returned report.
        """
        report = LoadReport(str(path))
        with open(path, "r", encoding="utf-8") as f:
            for line_number, line in enumerate(f, 1):
                if not line.strip():
                    continue
                report.rows_read += 1
                try:
                    vector = FeatureVector.deserialize(line, self.counter)
                    if vector.id in self._vectors:
                        raise MalformedVectorError(f"Duplicate feature vector id {vector.id}")
                except MalformedVectorError as e:
                    report.skipped += 1
                    report.errors.append((line_number, str(e)))
                    logger.debug(f"{path}:{line_number}: {e}")
                    continue
                if not matches_any(self.filters, vector):
                    report.filtered_out += 1
                    continue
                self._vectors[vector.id] = vector
                report.loaded += 1

        self._columns = None
        if report.skipped:
            logger.warning(f"Skipped {report.skipped} malformed rows in {path}")
        logger.info(f"Loaded {report.loaded} of {report.rows_read} feature vectors from {path}")
        self.load_report = report
        return report

    def write(self, path: Union[str, Path], append: bool = False) -> None:
        """Persist the vectors, one serialized vector per line."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "a" if append else "w", encoding="utf-8") as f:
            for vector in self.vectors:
                f.write(vector.serialize() + "\n")
        logger.info(f"Wrote {len(self)} feature vectors to {path}")

    def filtered(self, filters: Sequence[VectorFilter]) -> "LearningDataSet":
        """A new data set with the vectors matching any of ``filters``."""
        subset = LearningDataSet(filters, self.counter)
        for vector in self.vectors:
            if matches_any(filters, vector):
                subset._vectors[vector.id] = vector
        return subset

    def metrics(self) -> LearningMetrics:
        """Changed keywords by descending frequency, ties broken lexicographically."""
        frequency: Dict[KeywordUse, int] = {}
        for vector in self.vectors:
            for keyword, count in vector.keywords.items():
                if count > 0 and keyword.is_changed:
                    frequency[keyword] = frequency.get(keyword, 0) + 1
        ranked = sorted(frequency.items(), key=lambda item: (-item[1], str(item[0])))
        return LearningMetrics([KeywordFrequency(k, f) for k, f in ranked])

    def pre_process(self) -> None:
        """Keep only changed keyword columns and the vectors that have one."""
        with self._lock:
            self._vectors = {i: v for i, v in self._vectors.items() if v.has_changes()}
            columns = {k for v in self._vectors.values() for k in v.keywords if k.is_changed}
            self._columns = sorted(columns, key=str)

    def keyword_columns(self) -> List[KeywordUse]:
        """Ordered keyword columns used for projection."""
        if self._columns is None:
            self._columns = sorted({k for v in self.vectors for k in v.keywords}, key=str)
        return list(self._columns)

    def keyword_definitions(self) -> List[KeywordDefinition]:
        """Distinct definitions of the keyword columns, ignoring context and change type."""
        return sorted({column.definition for column in self.keyword_columns()}, key=str)

    def columns(self, by_definition: bool = False) -> List[KeywordColumn]:
        return self.keyword_definitions() if by_definition else self.keyword_columns()

    def matrix(self, by_definition: bool = False) -> np.ndarray:
        columns = self.columns(by_definition)
        rows = [vector.project(columns) for vector in self.vectors]
        return np.array(rows, dtype=float).reshape(len(rows), len(columns))

    def write_arff(self, folder: Union[str, Path], filename: str,
                   by_definition: bool = False) -> Path:
        """Write the vectors projected on their keyword uses, or on the definitions when
        ``by_definition`` is set (each definition column sums all of its uses)."""
        return write_arff(Path(folder) / filename, Path(filename).stem,
                          self.columns(by_definition), self.vectors)

    def cluster(self, clusterer: Clusterer, vector_filter: Optional[VectorFilter] = None,
                arff_path: Optional[Union[str, Path]] = None,
                by_definition: bool = False) -> List[int]:
        """
        Cluster the vectors, optionally restricted to those matching a filter.

        Args:
            clusterer: Clusterer to run
            vector_filter: Optional cohort filter
            arff_path: If given, the clustered projection is also written here
            by_definition: Project on keyword definitions instead of keyword uses

        Returns:
            Cluster ids parallel to the clustered vectors

        Raises:
            ClustererError: If the clusterer fails
        """
        data_set = self.filtered([vector_filter]) if vector_filter is not None else self
        if arff_path is not None:
            path = Path(arff_path)
            data_set.write_arff(path.parent, path.name, by_definition)
        return clusterer.cluster(data_set.matrix(by_definition))
