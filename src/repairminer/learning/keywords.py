"""
Keyword data models.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Union

from ..models import ChangeType

GLOBAL_API = "global"


class KeywordType(Enum):
    """Syntactic role of a keyword."""
    UNKNOWN = "UNKNOWN"
    RESERVED = "RESERVED"
    PACKAGE = "PACKAGE"
    CLASS = "CLASS"
    METHOD_CALL = "METHOD_CALL"
    METHOD_NAME = "METHOD_NAME"
    FIELD = "FIELD"
    CONSTANT = "CONSTANT"
    ARGUMENT = "ARGUMENT"
    PARAMETER = "PARAMETER"
    EXCEPTION = "EXCEPTION"
    EVENT = "EVENT"


class KeywordContext(Enum):
    """Syntactic position a keyword was found in."""
    UNKNOWN = "UNKNOWN"
    STATEMENT = "STATEMENT"
    CONDITION = "CONDITION"
    ARGUMENT = "ARGUMENT"
    EXPRESSION = "EXPRESSION"


@dataclass(frozen=True)
class KeywordDefinition:
    """A keyword known to the API model, independent of where it is used."""
    type: KeywordType
    keyword: str
    api: str = GLOBAL_API

    def __str__(self) -> str:
        return f"{self.type.value}_{self.api}_{self.keyword}"


@dataclass(frozen=True)
class KeywordUse:
    """One kind of keyword occurrence: equal uses are counted together."""

    type: KeywordType
    context: KeywordContext
    change_type: ChangeType
    api: str
    keyword: str

    @property
    def definition(self) -> KeywordDefinition:
        return KeywordDefinition(self.type, self.keyword, self.api)

    @property
    def is_changed(self) -> bool:
        return self.change_type.is_change

    def with_change(self, change_type: ChangeType) -> "KeywordUse":
        return KeywordUse(self.type, self.context, change_type, self.api, self.keyword)

    def __str__(self) -> str:
        return (f"{self.type.value}_{self.context.value}_{self.change_type.value}_"
                f"{self.api}_{self.keyword}")


# A projection column: an exact keyword use, or a definition summing all its uses
KeywordColumn = Union[KeywordUse, KeywordDefinition]
