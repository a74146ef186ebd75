"""
Keyword extraction from classified ASTs.

Every node is mapped to zero or more ``KeywordUse`` records by its syntactic
position. The change type of a use is the change type of the node it came
from.
"""

import logging
from typing import Dict, Iterable, Iterator, List, Optional

from ..ast_analysis.models import Ast
from ..ast_analysis.utilities import (
    base_identifier, call_arguments, get_identifier, in_condition, is_callee,
    is_condition_slot, string_value,
)
from .apis import APIModel, ERROR_CLASSES, EVENT_METHODS, RESERVED_LITERALS
from .keywords import GLOBAL_API, KeywordContext, KeywordType, KeywordUse

logger = logging.getLogger(__name__)

STATEMENT_KEYWORDS = {
    "if_statement": "if",
    "else_clause": "else",
    "switch_statement": "switch",
    "switch_case": "case",
    "switch_default": "default",
    "while_statement": "while",
    "do_statement": "do",
    "for_statement": "for",
    "for_in_statement": "for",
    "try_statement": "try",
    "catch_clause": "catch",
    "finally_clause": "finally",
    "throw_statement": "throw",
    "return_statement": "return",
    "break_statement": "break",
    "continue_statement": "continue",
}

OPERATOR_KEYWORDS = frozenset({"typeof", "instanceof", "in", "delete", "void"})

CALLBACK_NAMES = frozenset({"cb", "callback", "done", "next"})
ERROR_NAMES = frozenset({"err", "error", "er"})

# Wrappers that do not change what a condition tests.
TRANSPARENT_KINDS = frozenset({"parenthesized_expression"})


class KeywordExtractor:
    """Maps AST nodes to keyword uses."""

    def __init__(self, api_model: Optional[APIModel] = None):
        self.api_model = api_model or APIModel()

    def package_aliases(self, ast: Ast) -> Dict[str, str]:
        """
        Variables bound to ``require``d modules.

        ``var fs = require('fs')`` maps ``fs`` to ``"fs"``.
        """
        aliases: Dict[str, str] = {}
        for node in ast:
            if node.kind == "variable_declarator":
                target, value = ast.field(node.id, "name"), ast.field(node.id, "value")
            elif node.kind == "assignment_expression":
                target, value = ast.field(node.id, "left"), ast.field(node.id, "right")
            else:
                continue
            if target is None or value is None or ast.kind(target) != "identifier":
                continue
            module = self._required_module(ast, value)
            if module:
                aliases[ast.node(target).value] = module
        return aliases

    def extract(self, ast: Ast, node_ids: Iterable[int],
                aliases: Optional[Dict[str, str]] = None) -> Iterator[KeywordUse]:
        """Keyword uses of every node in ``node_ids``."""
        if aliases is None:
            aliases = self.package_aliases(ast)
        for node_id in node_ids:
            yield from self.extract_node(ast, node_id, aliases)

    def extract_node(self, ast: Ast, node_id: int, aliases: Dict[str, str]) -> List[KeywordUse]:
        node = ast.node(node_id)
        change = node.change
        uses: List[KeywordUse] = []

        def use(type_: KeywordType, keyword: str, context: Optional[KeywordContext] = None,
                api: str = GLOBAL_API) -> None:
            uses.append(KeywordUse(type_, context or keyword_context(ast, node_id), change, api, keyword))

        kind = node.kind
        if kind in STATEMENT_KEYWORDS:
            use(KeywordType.RESERVED, STATEMENT_KEYWORDS[kind], KeywordContext.STATEMENT)
        elif kind in ("unary_expression", "binary_expression") and node.value in OPERATOR_KEYWORDS:
            use(KeywordType.RESERVED, node.value)
        elif kind in RESERVED_LITERALS:
            use(KeywordType.RESERVED, kind)
        elif kind == "new_expression":
            self._constructor(ast, node_id, aliases, use)
        elif kind == "call_expression":
            module = self._required_module(ast, node_id)
            if module:
                use(KeywordType.PACKAGE, module, api=module)
        elif kind == "identifier":
            self._identifier(ast, node_id, aliases, use)
        elif kind == "property_identifier" and node.role == "property":
            self._property(ast, node_id, aliases, use)

        if kind in ("identifier", "member_expression") and is_truth_test(ast, node_id):
            use(KeywordType.RESERVED, "falsey", KeywordContext.CONDITION)
        return uses

    def _identifier(self, ast: Ast, node_id: int, aliases: Dict[str, str], use) -> None:
        node = ast.node(node_id)
        name = node.value
        parent = node.parent
        parent_kind = ast.kind(parent) if parent is not None else ""

        if parent_kind == "formal_parameters" or (parent_kind in ("arrow_function",)
                                                  and node.role == "parameter"):
            self._parameter(ast, node_id, use)
            return
        if parent_kind == "new_expression" and node.role == "constructor":
            return

        if name in aliases:
            if is_callee(ast, node_id):
                use(KeywordType.METHOD_CALL, name, api=aliases[name])
            elif parent_kind == "member_expression" and node.role == "object":
                use(KeywordType.PACKAGE, aliases[name], api=aliases[name])
            return

        global_type = self.api_model.global_type(name)
        if global_type == KeywordType.METHOD_CALL:
            use(KeywordType.METHOD_CALL if is_callee(ast, node_id) else KeywordType.METHOD_NAME, name)
        elif global_type is not None:
            use(global_type, name)
        elif name == "undefined":
            use(KeywordType.RESERVED, name)
        elif name in ERROR_NAMES and parent_kind == "arguments":
            use(KeywordType.ARGUMENT, "error", KeywordContext.ARGUMENT)

    def _parameter(self, ast: Ast, node_id: int, use) -> None:
        name = ast.node(node_id).value
        if name in CALLBACK_NAMES:
            use(KeywordType.PARAMETER, "callback", KeywordContext.EXPRESSION)
        elif name in ERROR_NAMES:
            use(KeywordType.PARAMETER, "error", KeywordContext.EXPRESSION)

    def _property(self, ast: Ast, node_id: int, aliases: Dict[str, str], use) -> None:
        name = ast.node(node_id).value
        member = ast.parent(node_id)
        package = self._package_of(ast, ast.field(member, "object"), aliases)

        if is_callee(ast, member):
            api = self.api_model.member_api(package, name, KeywordType.METHOD_CALL)
            if api is None:
                return
            use(KeywordType.METHOD_CALL, name, api=api)
            if name in EVENT_METHODS:
                arguments = call_arguments(ast, ast.parent(member))
                event = string_value(ast, arguments[0]) if arguments else None
                if event:
                    use(KeywordType.EVENT, event, KeywordContext.ARGUMENT,
                        api=self.api_model.event_api(package, event) or GLOBAL_API)
            return

        for type_ in (KeywordType.FIELD, KeywordType.CLASS):
            api = self.api_model.member_api(package, name, type_)
            if api is not None:
                use(type_, name, api=api)
                return

    def _constructor(self, ast: Ast, node_id: int, aliases: Dict[str, str], use) -> None:
        constructor = ast.field(node_id, "constructor")
        if constructor is None:
            return
        if ast.kind(constructor) == "identifier":
            name = ast.node(constructor).value
            if name in ERROR_CLASSES:
                use(KeywordType.EXCEPTION, name)
            elif self.api_model.global_type(name) == KeywordType.CLASS:
                use(KeywordType.CLASS, name)
        elif ast.kind(constructor) == "member_expression":
            prop = ast.field(constructor, "property")
            package = self._package_of(ast, ast.field(constructor, "object"), aliases)
            if prop is not None and package is not None:
                name = ast.node(prop).value
                if self.api_model.member_api(package, name, KeywordType.CLASS) == package:
                    use(KeywordType.CLASS, name, api=package)

    def _package_of(self, ast: Ast, node_id: Optional[int], aliases: Dict[str, str]) -> Optional[str]:
        if node_id is None:
            return None
        module = self._required_module(ast, node_id)
        if module:
            return module
        return aliases.get(base_identifier(ast, node_id))

    @staticmethod
    def _required_module(ast: Ast, node_id: int) -> Optional[str]:
        if ast.kind(node_id) != "call_expression":
            return None
        if get_identifier(ast, ast.field(node_id, "function")) != "require":
            return None
        arguments = call_arguments(ast, node_id)
        if not arguments:
            return None
        return string_value(ast, arguments[0])


def keyword_context(ast: Ast, node_id: int) -> KeywordContext:
    """CONDITION inside a branch test, ARGUMENT inside call arguments, else EXPRESSION."""
    if in_condition(ast, node_id):
        return KeywordContext.CONDITION
    for ancestor in ast.ancestors(node_id):
        node = ast.node(ancestor)
        if node.kind == "arguments":
            return KeywordContext.ARGUMENT
        if node.is_statement or node.is_function:
            break
    return KeywordContext.EXPRESSION


def is_truth_test(ast: Ast, node_id: int) -> bool:
    """
    True if a branch condition tests the node for truthiness.

    ``x`` in ``if (x)``, ``if (!x)`` and ``if (x && y)`` qualifies, ``x`` in
    ``if (x === 1)`` does not.
    """
    if not get_identifier(ast, node_id):
        return False
    current = node_id
    while True:
        if is_condition_slot(ast, current):
            return True
        parent = ast.parent(current)
        if parent is None:
            return False
        parent_node = ast.node(parent)
        if parent_node.kind in TRANSPARENT_KINDS:
            pass
        elif parent_node.kind == "unary_expression" and parent_node.value == "!":
            pass
        elif parent_node.kind == "binary_expression" and parent_node.value in ("&&", "||"):
            pass
        elif parent_node.kind == "expression_statement" and is_condition_slot(ast, parent):
            # for (;x;) wraps its test in a statement
            pass
        else:
            return False
        current = parent
