"""
Special value guard repairs: a dereference that used to run unconditionally
is now protected by a new check against a special value such as ``null``,
``undefined``, ``NaN``, ``0``, ``''`` or falsiness in general.
"""

import logging
from enum import Enum
from typing import Dict, Iterator, List, Optional, Set

from ..analysis.base import AnalysisContext, Detector
from ..ast_analysis.models import Ast
from ..ast_analysis.utilities import base_identifier, get_identifier, string_value
from ..models import ChangeType
from ..scope.models import Scope

logger = logging.getLogger(__name__)


class SpecialType(Enum):
    """Special value categories a variable can be compared against."""
    FALSEY = "FALSEY"
    TRUTHY = "TRUTHY"
    UNDEFINED = "UNDEFINED"
    NULL = "NULL"
    NAN = "NAN"
    BLANK = "BLANK"
    ZERO = "ZERO"


class SpecialTypeMap:
    """Variable name -> special types the variable was compared against."""

    def __init__(self):
        self._map: Dict[str, Set[SpecialType]] = {}

    def add(self, name: str, special_type: SpecialType) -> None:
        self._map.setdefault(name, set()).add(special_type)

    def set_contains(self, name: str, special_type: SpecialType) -> bool:
        return special_type in self._map.get(name, set())

    def names(self) -> List[str]:
        return list(self._map)

    def get_set(self, name: str) -> Set[SpecialType]:
        if name not in self._map:
            raise KeyError(f"Name not found in map: {name}")
        return self._map[name]

    def update(self, other: "SpecialTypeMap") -> None:
        for name in other.names():
            for special_type in other.get_set(name):
                self.add(name, special_type)

    def __contains__(self, name: str) -> bool:
        return name in self._map

    def __len__(self) -> int:
        return len(self._map)


EQUALITY_OPERATORS = frozenset({"==", "===", "!=", "!=="})
EXIT_KINDS = frozenset({"return_statement", "throw_statement", "break_statement",
                        "continue_statement"})
DEREFERENCE_KINDS = frozenset({"member_expression", "subscript_expression"})


def special_types(ast: Ast, condition_id: Optional[int]) -> SpecialTypeMap:
    """
    Collect the special value checks made by a condition.

    ``x`` and ``!x`` test FALSEY, ``x == null`` tests NULL, ``typeof x ===
    'undefined'`` and ``x === undefined`` test UNDEFINED, ``isNaN(x)`` tests
    NAN, and comparisons with ``0``, ``''``, ``true`` and ``false`` test ZERO,
    BLANK, TRUTHY and FALSEY. Checks combined with ``&&``/``||`` are all
    collected.
    """
    found = SpecialTypeMap()
    if condition_id is None:
        return found

    stack = [condition_id]
    while stack:
        node_id = stack.pop()
        node = ast.node(node_id)
        if node.kind in ("parenthesized_expression", "sequence_expression"):
            stack.extend(node.children[-1:])
        elif node.kind == "unary_expression" and node.value == "!":
            stack.extend(ast.fields(node_id, "argument"))
        elif node.kind == "binary_expression" and node.value in ("&&", "||"):
            stack.extend(ast.fields(node_id, "left") + ast.fields(node_id, "right"))
        elif node.kind == "binary_expression" and node.value in EQUALITY_OPERATORS:
            _comparison(ast, node_id, found)
        elif node.kind == "call_expression":
            callee = get_identifier(ast, ast.field(node_id, "function"))
            arguments = ast.field(node_id, "arguments")
            if callee in ("isNaN", "Number.isNaN") and arguments is not None and ast.children(arguments):
                name = get_identifier(ast, ast.children(arguments)[0])
                if name:
                    found.add(name, SpecialType.NAN)
        else:
            name = get_identifier(ast, node_id) if node.kind in ("identifier", "member_expression") else ""
            if name:
                found.add(name, SpecialType.FALSEY)
    return found


def _comparison(ast: Ast, node_id: int, found: SpecialTypeMap) -> None:
    left, right = ast.field(node_id, "left"), ast.field(node_id, "right")
    if left is None or right is None:
        return
    for variable, other in ((left, right), (right, left)):
        if ast.kind(variable) == "unary_expression" and ast.node(variable).value == "typeof":
            name = get_identifier(ast, ast.field(variable, "argument"))
            if name and string_value(ast, other) == "undefined":
                found.add(name, SpecialType.UNDEFINED)
                return
            continue
        special = _special_value(ast, other)
        name = get_identifier(ast, variable)
        if special is not None and name:
            found.add(name, special)
            return


def _special_value(ast: Ast, node_id: int) -> Optional[SpecialType]:
    node = ast.node(node_id)
    if node.kind == "null":
        return SpecialType.NULL
    if node.kind == "undefined" or (node.kind == "identifier" and node.value == "undefined"):
        return SpecialType.UNDEFINED
    if node.kind == "identifier" and node.value == "NaN":
        return SpecialType.NAN
    if node.kind == "true":
        return SpecialType.TRUTHY
    if node.kind == "false":
        return SpecialType.FALSEY
    if node.kind == "number" and node.value in ("0", "0.0"):
        return SpecialType.ZERO
    if node.kind == "string" and string_value(ast, node_id) == "":
        return SpecialType.BLANK
    return None


def dereferenced_name(ast: Ast, node_id: int, name: str) -> bool:
    """True if the node dereferences ``name`` (``name.x``, ``name[i]``)."""
    node = ast.node(node_id)
    if node.kind not in DEREFERENCE_KINDS:
        return False
    target = ast.field(node_id, "object")
    if target is None:
        return False
    return get_identifier(ast, target) == name or \
        ("." not in name and base_identifier(ast, target) == name)


def _is_early_exit(ast: Ast, statement_id: Optional[int]) -> bool:
    if statement_id is None:
        return False
    kind = ast.kind(statement_id)
    if kind in EXIT_KINDS:
        return True
    if kind == "statement_block":
        children = ast.children(statement_id)
        return bool(children) and ast.kind(children[-1]) in EXIT_KINDS
    return False


class SpecialValueDetector(Detector):
    """
    Flags dereferences newly guarded by an inserted special value check.

    A dereference is guarded when it sits in the consequence of an inserted
    ``if`` whose condition checks the dereferenced variable, or when it
    follows an inserted early exit such as ``if (!x) return;`` in the same
    block. The dereference itself must predate the repair and must not have
    been guarded by a check of the same variable in the buggy version.
    A member path such as ``obj.name`` is not reported when the same guard
    already reports its object ``obj``.
    """

    tag = "SPECIAL_VALUE_GUARD_ADDED"

    def __init__(self):
        # Buggy function node id -> every special value check in the function
        self.source_checks: Dict[int, SpecialTypeMap] = {}

    def visit_scope(self, context: AnalysisContext, src_scope: Optional[Scope],
                    dst_scope: Optional[Scope]) -> List[object]:
        if dst_scope is None:
            return []

        dst = context.dst_ast
        alerts = []
        for node_id in context.dst_scopes.own_nodes(dst_scope):
            node = dst.node(node_id)
            if node.kind != "if_statement" or node.change != ChangeType.INSERTED:
                continue
            checks = special_types(dst, dst.field(node_id, "condition"))
            guarded = [name for name in sorted(checks.names())
                       if self._newly_guarded(context, node_id, name)]
            for name in guarded:
                if any(name.startswith(other + ".") for other in guarded):
                    continue
                sentinels = frozenset(t.value for t in checks.get_set(name))
                alerts.append(self.alert(
                    context, dst_scope.name, node.line,
                    f"{name} guarded against {', '.join(sorted(sentinels))}",
                    identifier=name, sentinels=sentinels))
        return alerts

    def checks_before(self, context: AnalysisContext, node_id: int) -> SpecialTypeMap:
        """Special value checks of the buggy function containing ``node_id``."""
        src = context.src_ast
        function_id = src.enclosing_function(node_id)
        if function_id not in self.source_checks:
            self.source_checks[function_id] = self._scope_checks(
                src, src.preorder(function_id, prune=lambda n: n.is_function))
        return self.source_checks[function_id]

    @staticmethod
    def _scope_checks(ast: Ast, nodes: Iterator[int]) -> SpecialTypeMap:
        checks = SpecialTypeMap()
        for node_id in nodes:
            node = ast.node(node_id)
            if node.kind == "binary_expression" and node.value in EQUALITY_OPERATORS:
                _comparison(ast, node_id, checks)
            elif node.kind == "binary_expression" and node.value == "&&":
                checks.update(special_types(ast, ast.field(node_id, "left")))
            elif node.kind in ("if_statement", "while_statement", "ternary_expression"):
                checks.update(special_types(ast, ast.field(node_id, "condition")))
        return checks

    def _newly_guarded(self, context: AnalysisContext, if_id: int, name: str) -> bool:
        dst, src = context.dst_ast, context.src_ast
        for region in self._guarded_regions(dst, if_id):
            for node_id in dst.preorder(region, prune=lambda n: n.is_function):
                node = dst.node(node_id)
                if node.change == ChangeType.INSERTED or node.partner is None:
                    continue
                if not dereferenced_name(dst, node_id, name):
                    continue
                # Never checked in the buggy function, so it cannot have been guarded
                if name not in self.checks_before(context, node.partner):
                    return True
                if not self._guarded_in_source(src, node.partner, name):
                    return True
        return False

    @staticmethod
    def _guarded_regions(ast: Ast, if_id: int) -> List[int]:
        regions = []
        consequence = ast.field(if_id, "consequence")
        if consequence is not None:
            regions.append(consequence)
        if _is_early_exit(ast, consequence) and ast.field(if_id, "alternative") is None:
            parent = ast.parent(if_id)
            if parent is not None:
                siblings = ast.children(parent)
                regions.extend(siblings[siblings.index(if_id) + 1:])
        return regions

    @staticmethod
    def _guarded_in_source(src: Ast, node_id: int, name: str) -> bool:
        current = node_id
        for ancestor in src.ancestors(node_id):
            node = src.node(ancestor)
            if node.is_function:
                return False
            if node.kind in ("if_statement", "ternary_expression") \
                    and src.node(current).role == "consequence":
                if name in special_types(src, src.field(ancestor, "condition")):
                    return True
            if node.kind == "binary_expression" and node.value == "&&" \
                    and src.node(current).role == "right":
                if name in special_types(src, src.field(ancestor, "left")):
                    return True
            current = ancestor
        return False
