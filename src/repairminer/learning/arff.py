"""
ARFF export of feature vectors.
"""

import logging
from pathlib import Path
from typing import Iterable, Sequence, Union

from .feature_vector import FeatureVector
from .keywords import KeywordColumn

logger = logging.getLogger(__name__)

STRING_ATTRIBUTES = ("ProjectID", "BuggyFile", "RepairedFile", "BuggyCommitID",
                     "RepairedCommitID", "FunctionName")


def _quote(value: str) -> str:
    escaped = (value or "").replace("\\", "\\\\").replace("'", "\\'")
    return f"'{escaped}'"


def arff_lines(relation: str, columns: Sequence[KeywordColumn],
               vectors: Iterable[FeatureVector]) -> Iterable[str]:
    """Lines of an ARFF document projecting ``vectors`` onto ``columns``."""
    yield f"@relation {_quote(relation)}"
    yield ""
    yield "@attribute ID numeric"
    for name in STRING_ATTRIBUTES:
        yield f"@attribute {name} string"
    for column in columns:
        yield f"@attribute {_quote(str(column))} numeric"
    yield ""
    yield "@data"
    for vector in vectors:
        values = [str(vector.id)] + [_quote(v) for v in vector.header()[1:]]
        values.extend(str(count) for count in vector.project(columns))
        yield ",".join(values)


def write_arff(path: Union[str, Path], relation: str, columns: Sequence[KeywordColumn],
               vectors: Iterable[FeatureVector]) -> Path:
    """
    Write an ARFF file.

    Args:
        path: Output file; parent directories are created
        relation: ARFF relation name
        columns: Keyword uses or definitions in output order
        vectors: Rows

    Returns:
        The written path
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        for line in arff_lines(relation, columns, vectors):
            f.write(line + "\n")
    logger.info(f"Wrote ARFF file {path}")
    return path
