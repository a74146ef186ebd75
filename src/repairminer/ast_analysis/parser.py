"""
JavaScript parsing into the arena AST.

The concrete syntax tree comes from tree-sitter; only named nodes are kept
(comments are dropped) and each node remembers the field it fills in its
parent, which is what the CFG builder and the detectors navigate by.
"""

import logging
import threading
from abc import ABC, abstractmethod
from typing import Iterator, Optional, Tuple

import tree_sitter_javascript as tsjavascript
from tree_sitter import Language, Parser

from ..exceptions import ASTBuildError
from .models import Ast, LEAF_KINDS, LOOP_KINDS, OPERATOR_KINDS, STATEMENT_KINDS

logger = logging.getLogger(__name__)

JS_LANGUAGE = Language(tsjavascript.language())

SKIPPED_KINDS = frozenset({"comment", "html_comment"})

# Parent kind -> roles whose non-block statement gets wrapped when pre-processing.
WRAPPED_BODIES = {
    "if_statement": ("consequence",),
    "for_statement": ("body",),
    "for_in_statement": ("body",),
    "while_statement": ("body",),
    "do_statement": ("body",),
}


class SourceParser(ABC):
    """Parser interface consumed by the control flow differencer."""

    @abstractmethod
    def parse(self, source: str, pre_process: bool = False, name: str = "") -> Ast:
        """
        Parse source text into an arena AST.

        Args:
            source: Source text
            pre_process: Normalize the tree before returning it
            name: Optional file name used in error messages

        Raises:
            ASTBuildError: If the source cannot be parsed
        """
        pass


class JavaScriptParser(SourceParser):
    """Tree-sitter backed JavaScript parser."""

    def __init__(self):
        # tree-sitter parsers keep internal state, so each thread gets its own
        self._local = threading.local()

    @property
    def _parser(self) -> Parser:
        parser = getattr(self._local, "parser", None)
        if parser is None:
            parser = Parser(JS_LANGUAGE)
            self._local.parser = parser
        return parser

    def parse(self, source: str, pre_process: bool = False, name: str = "") -> Ast:
        encoded = source.encode("utf8")
        tree = self._parser.parse(encoded)
        root = tree.root_node

        if root.has_error:
            line, column = _first_error_position(root)
            raise ASTBuildError(f"Syntax error in {name or '<source>'} at line {line}, column {column}")

        ast = Ast(source, name)
        self._convert(ast, root, pre_process)
        logger.debug(f"Parsed {name or '<source>'}: {len(ast)} nodes")
        return ast

    def _convert(self, ast: Ast, root, pre_process: bool) -> None:
        stack = [(root, None, None)]
        while stack:
            ts_node, parent, role = stack.pop()
            node = ast.add_node(
                ts_node.type,
                parent=parent,
                role=role,
                start=ts_node.start_byte,
                end=ts_node.end_byte,
                line=ts_node.start_point[0] + 1,
                column=ts_node.start_point[1],
            )

            if ts_node.type in LEAF_KINDS:
                node.value = ts_node.text.decode("utf8", errors="replace")
                continue
            if ts_node.type == "assignment_expression":
                node.value = "="

            pending = []
            for field_name, child in _fields(ts_node):
                if not child.is_named:
                    if field_name == "operator" and ts_node.type in OPERATOR_KINDS:
                        node.value = child.text.decode("utf8")
                    continue
                if child.type in SKIPPED_KINDS:
                    continue
                pending.append((field_name, child))

            for field_name, child in reversed(pending):
                if pre_process and _needs_block(ts_node.type, field_name, child):
                    block = ast.add_node(
                        "statement_block",
                        parent=node.id,
                        role=field_name,
                        start=child.start_byte,
                        end=child.end_byte,
                        line=child.start_point[0] + 1,
                        column=child.start_point[1],
                        synthetic=True,
                    )
                    stack.append((child, block.id, None))
                else:
                    stack.append((child, node.id, field_name))

        # Children were appended in pop order; restore source order.
        for node in ast.nodes:
            node.children.sort(key=lambda c: (ast.nodes[c].start, c))


def _fields(ts_node) -> Iterator[Tuple[Optional[str], object]]:
    """Yield ``(field_name, child)`` for every child of a tree-sitter node."""
    cursor = ts_node.walk()
    if not cursor.goto_first_child():
        return
    while True:
        yield cursor.field_name, cursor.node
        if not cursor.goto_next_sibling():
            break


def _needs_block(parent_kind: str, role: Optional[str], child) -> bool:
    if child.type == "statement_block" or child.type not in STATEMENT_KINDS:
        return False
    if parent_kind == "else_clause":
        return child.type != "if_statement"
    if parent_kind in LOOP_KINDS or parent_kind == "if_statement":
        return role in WRAPPED_BODIES.get(parent_kind, ())
    return False


def _first_error_position(root) -> Tuple[int, int]:
    stack = [root]
    while stack:
        node = stack.pop()
        if node.is_error or node.is_missing:
            return node.start_point[0] + 1, node.start_point[1]
        stack.extend(reversed(node.children))
    return root.start_point[0] + 1, root.start_point[1]
