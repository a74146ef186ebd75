"""
Control flow graph construction.

One CFG is built for the script root and one for every function. Statements
become CFG nodes; runs of straight-line statements with the same change label
are then coalesced into basic blocks. Statements inside a try region get an
exceptional edge to the innermost handler, and statements left without a
predecessor (dead code) are kept but marked unreachable.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

import networkx as nx

from ..ast_analysis.models import Ast, LOOP_KINDS
from ..ast_analysis.utilities import function_name
from ..models import ChangeType
from .models import CFG, CFGNode, EdgeKind

logger = logging.getLogger(__name__)

MARKED_CHANGES = (ChangeType.INSERTED, ChangeType.REMOVED)


@dataclass
class _Pending:
    """An edge whose target is not known yet."""
    source: int
    kind: EdgeKind = EdgeKind.NORMAL
    condition: Optional[int] = None
    selector: Optional[int] = None


@dataclass
class _Frame:
    """A break/continue target."""
    label: Optional[str]
    continue_target: Optional[int]
    breaks: List[_Pending] = field(default_factory=list)
    # Labelled blocks only catch labelled breaks.
    breakable: bool = True


class CFGBuilder:
    """Builds CFGs for every function of a classified AST."""

    def __init__(self, coalesce: bool = True):
        self.coalesce = coalesce

    def build_all(self, ast: Ast) -> List[CFG]:
        """Build the script CFG followed by one CFG per function in source order."""
        if ast.is_empty:
            return []
        functions = sorted((n for n in ast if n.is_function), key=lambda n: (n.start, n.id))
        cfgs = [self.build(ast, ast.root)]
        cfgs.extend(self.build(ast, node.id) for node in functions)
        return cfgs

    def build(self, ast: Ast, function_id: int) -> CFG:
        cfg = _FunctionCFGBuilder(ast, function_id).build()
        _mark_reachable(cfg)
        if self.coalesce:
            _coalesce(cfg)
        _label_edges(cfg)
        return cfg


class _FunctionCFGBuilder:
    """Builds the CFG of a single function body."""

    def __init__(self, ast: Ast, function_id: int):
        self.ast = ast
        self.function_id = function_id
        self.cfg = CFG(ast, function_id, function_name(ast, function_id))
        self.frames: List[_Frame] = []
        self.handlers: List[int] = []
        self.pending_label: Optional[str] = None

    def build(self) -> CFG:
        ast, cfg = self.ast, self.cfg
        entry = self._add(self.function_id, "entry")
        exit_node = self._add(self.function_id, "exit")
        cfg.entry, cfg.exit = entry.id, exit_node.id

        if self.function_id == ast.root:
            body = list(ast.children(ast.root))
        else:
            body_id = ast.function_body(self.function_id)
            if body_id is None:
                body = []
            elif ast.kind(body_id) == "statement_block":
                body = list(ast.children(body_id))
            else:
                body = [body_id]

        out = self._statements(body, [_Pending(entry.id)])
        self._link(out, exit_node.id)
        return cfg

    def _add(self, ast_id: int, kind: str, statements: Optional[List[int]] = None) -> CFGNode:
        node = self.cfg.add_node(ast_id, kind, statements)
        node.change = self.ast.node(ast_id).change
        return node

    def _link(self, pending: List[_Pending], target: int, back: bool = False) -> None:
        for edge in pending:
            kind = edge.kind
            if back and edge.condition is None and kind == EdgeKind.NORMAL:
                kind = EdgeKind.BACK
            self.cfg.add_edge(edge.source, target, kind, edge.condition, edge.selector)

    def _protect(self, node: CFGNode) -> None:
        if self.handlers:
            self.cfg.add_edge(node.id, self.handlers[-1], EdgeKind.EXCEPTION)

    def _statements(self, ids: List[int], pending: List[_Pending]) -> List[_Pending]:
        for statement_id in ids:
            pending = self._statement(statement_id, pending)
        return pending

    def _statement(self, statement_id: int, pending: List[_Pending]) -> List[_Pending]:
        visitor = getattr(self, f"_visit_{self.ast.kind(statement_id)}", None)
        if visitor is not None:
            return visitor(statement_id, pending)
        return self._visit_simple(statement_id, pending)

    def _visit_simple(self, statement_id: int, pending: List[_Pending]) -> List[_Pending]:
        node = self._add(statement_id, "statement", [statement_id])
        self._link(pending, node.id)
        self._protect(node)
        return [_Pending(node.id)]

    def _visit_statement_block(self, statement_id: int, pending: List[_Pending]) -> List[_Pending]:
        return self._statements(list(self.ast.children(statement_id)), pending)

    def _visit_if_statement(self, statement_id: int, pending: List[_Pending]) -> List[_Pending]:
        ast = self.ast
        condition = ast.field(statement_id, "condition")
        node = self._add(statement_id, "branch", [statement_id])
        self._link(pending, node.id)
        self._protect(node)

        out = []
        consequence = ast.field(statement_id, "consequence")
        true_edge = [_Pending(node.id, EdgeKind.TRUE, condition)]
        out.extend(self._statement(consequence, true_edge) if consequence is not None else true_edge)

        false_edge = [_Pending(node.id, EdgeKind.FALSE, condition)]
        alternative = ast.field(statement_id, "alternative")
        if alternative is not None:
            out.extend(self._statements(list(ast.children(alternative)), false_edge))
        else:
            out.extend(false_edge)
        return out

    def _visit_while_statement(self, statement_id: int, pending: List[_Pending]) -> List[_Pending]:
        condition = self.ast.field(statement_id, "condition")
        head = self._add(statement_id, "loop", [statement_id])
        self._link(pending, head.id)
        self._protect(head)

        frame = self._push_frame(head.id)
        body_out = self._body(statement_id, [_Pending(head.id, EdgeKind.TRUE, condition)])
        self.frames.pop()
        self._link(body_out, head.id, back=True)
        return [_Pending(head.id, EdgeKind.FALSE, condition)] + frame.breaks

    def _visit_do_statement(self, statement_id: int, pending: List[_Pending]) -> List[_Pending]:
        condition = self.ast.field(statement_id, "condition")
        head = self._add(statement_id, "loop", [statement_id])
        self._link(pending, head.id)
        test = self._add(condition if condition is not None else statement_id, "branch")
        self._protect(test)

        frame = self._push_frame(test.id)
        body_out = self._body(statement_id, [_Pending(head.id)])
        self.frames.pop()
        self._link(body_out, test.id)
        self.cfg.add_edge(test.id, head.id, EdgeKind.BACK, condition)
        return [_Pending(test.id, EdgeKind.FALSE, condition)] + frame.breaks

    def _visit_for_statement(self, statement_id: int, pending: List[_Pending]) -> List[_Pending]:
        ast = self.ast
        initializer = ast.field(statement_id, "initializer")
        if initializer is not None:
            pending = self._statement(initializer, pending)

        condition = ast.field(statement_id, "condition")
        head = self._add(statement_id, "loop", [statement_id])
        self._link(pending, head.id)
        self._protect(head)

        increment = ast.field(statement_id, "increment")
        step = self._add(increment, "statement") if increment is not None else None
        frame = self._push_frame(step.id if step is not None else head.id)
        body_out = self._body(statement_id, [_Pending(head.id, EdgeKind.TRUE, condition)])
        self.frames.pop()

        if step is not None:
            self._link(body_out, step.id)
            self.cfg.add_edge(step.id, head.id, EdgeKind.BACK)
        else:
            self._link(body_out, head.id, back=True)
        return [_Pending(head.id, EdgeKind.FALSE, condition)] + frame.breaks

    def _visit_for_in_statement(self, statement_id: int, pending: List[_Pending]) -> List[_Pending]:
        iterated = self.ast.field(statement_id, "right")
        head = self._add(statement_id, "loop", [statement_id])
        self._link(pending, head.id)
        self._protect(head)

        frame = self._push_frame(head.id)
        body_out = self._body(statement_id, [_Pending(head.id, EdgeKind.TRUE, iterated)])
        self.frames.pop()
        self._link(body_out, head.id, back=True)
        return [_Pending(head.id, EdgeKind.FALSE, iterated)] + frame.breaks

    def _visit_switch_statement(self, statement_id: int, pending: List[_Pending]) -> List[_Pending]:
        ast = self.ast
        selector = ast.field(statement_id, "value")
        node = self._add(statement_id, "branch", [statement_id])
        self._link(pending, node.id)
        self._protect(node)

        frame = _Frame(self._take_label(), None)
        self.frames.append(frame)
        fallthrough: List[_Pending] = []
        has_default = False
        body = ast.field(statement_id, "body")
        for case in (ast.children(body) if body is not None else []):
            if ast.kind(case) == "switch_default":
                has_default = True
                test = None
                entry = [_Pending(node.id, EdgeKind.DEFAULT, None, selector)]
            else:
                test = ast.field(case, "value")
                entry = [_Pending(node.id, EdgeKind.CASE, test, selector)]
            statements = [c for c in ast.children(case) if c != test]
            fallthrough = self._statements(statements, entry + fallthrough)
        self.frames.pop()

        out = fallthrough + frame.breaks
        if not has_default:
            out.append(_Pending(node.id, EdgeKind.DEFAULT, None, selector))
        return out

    def _visit_try_statement(self, statement_id: int, pending: List[_Pending]) -> List[_Pending]:
        ast = self.ast
        node = self._add(statement_id, "try", [statement_id])
        self._link(pending, node.id)
        self._protect(node)

        handler = ast.field(statement_id, "handler")
        finalizer = ast.field(statement_id, "finalizer")
        catch_node = self._add(handler, "catch", [handler]) if handler is not None else None
        finally_node = self._add(finalizer, "finally", [finalizer]) if finalizer is not None else None

        target = catch_node or finally_node
        if target is not None:
            self.handlers.append(target.id)
        out = self._statement_or_pass(ast.field(statement_id, "body"), [_Pending(node.id)])
        if target is not None:
            self.handlers.pop()

        if catch_node is not None:
            if finally_node is not None:
                self.handlers.append(finally_node.id)
            out = out + self._statement_or_pass(ast.field(handler, "body"), [_Pending(catch_node.id)])
            if finally_node is not None:
                self.handlers.pop()

        if finally_node is not None:
            self._link(out, finally_node.id)
            self._protect(finally_node)
            out = self._statement_or_pass(ast.field(finalizer, "body"), [_Pending(finally_node.id)])
        return out

    def _visit_return_statement(self, statement_id: int, pending: List[_Pending]) -> List[_Pending]:
        node = self._add(statement_id, "statement", [statement_id])
        self._link(pending, node.id)
        self._protect(node)
        self.cfg.add_edge(node.id, self.cfg.exit, EdgeKind.RETURN)
        return []

    def _visit_throw_statement(self, statement_id: int, pending: List[_Pending]) -> List[_Pending]:
        node = self._add(statement_id, "statement", [statement_id])
        self._link(pending, node.id)
        target = self.handlers[-1] if self.handlers else self.cfg.exit
        self.cfg.add_edge(node.id, target, EdgeKind.EXCEPTION)
        return []

    def _visit_break_statement(self, statement_id: int, pending: List[_Pending]) -> List[_Pending]:
        node = self._add(statement_id, "statement", [statement_id])
        self._link(pending, node.id)
        frame = self._find_frame(self._label_of(statement_id), need_continue=False)
        if frame is None:
            return [_Pending(node.id)]
        frame.breaks.append(_Pending(node.id, EdgeKind.BREAK))
        return []

    def _visit_continue_statement(self, statement_id: int, pending: List[_Pending]) -> List[_Pending]:
        node = self._add(statement_id, "statement", [statement_id])
        self._link(pending, node.id)
        frame = self._find_frame(self._label_of(statement_id), need_continue=True)
        if frame is None:
            return [_Pending(node.id)]
        self.cfg.add_edge(node.id, frame.continue_target, EdgeKind.CONTINUE)
        return []

    def _visit_labeled_statement(self, statement_id: int, pending: List[_Pending]) -> List[_Pending]:
        ast = self.ast
        label = self._label_of(statement_id)
        body = ast.field(statement_id, "body")
        if body is None:
            return pending
        if ast.kind(body) in LOOP_KINDS or ast.kind(body) == "switch_statement":
            self.pending_label = label
            return self._statement(body, pending)
        frame = _Frame(label, None, breakable=False)
        self.frames.append(frame)
        out = self._statement(body, pending)
        self.frames.pop()
        return out + frame.breaks

    def _body(self, loop_id: int, pending: List[_Pending]) -> List[_Pending]:
        return self._statement_or_pass(self.ast.field(loop_id, "body"), pending)

    def _statement_or_pass(self, statement_id: Optional[int], pending: List[_Pending]) -> List[_Pending]:
        if statement_id is None:
            return pending
        return self._statement(statement_id, pending)

    def _push_frame(self, continue_target: int) -> _Frame:
        frame = _Frame(self._take_label(), continue_target)
        self.frames.append(frame)
        return frame

    def _take_label(self) -> Optional[str]:
        label, self.pending_label = self.pending_label, None
        return label

    def _label_of(self, statement_id: int) -> Optional[str]:
        label = self.ast.field(statement_id, "label")
        return self.ast.node(label).value if label is not None else None

    def _find_frame(self, label: Optional[str], need_continue: bool) -> Optional[_Frame]:
        for frame in reversed(self.frames):
            if label is not None:
                if frame.label == label:
                    return frame
                continue
            if need_continue and frame.continue_target is None:
                continue
            if not frame.breakable:
                continue
            return frame
        return None


def _mark_reachable(cfg: CFG) -> None:
    reachable = nx.descendants(cfg.graph, cfg.entry) | {cfg.entry}
    for node in cfg.nodes():
        node.reachable = node.id in reachable


def _coalesce(cfg: CFG) -> None:
    """Merge straight-line statement nodes into basic blocks."""
    graph = cfg.graph
    for node in cfg.nodes():
        if node.id not in graph or node.kind != "statement" or not node.statements:
            continue
        while True:
            follower = _sole_follower(cfg, node)
            if follower is None:
                break
            node.statements.extend(follower.statements)
            for _, target, data in list(graph.out_edges(follower.id, data=True)):
                if not graph.has_edge(node.id, target):
                    graph.add_edge(node.id, target, **data)
            graph.remove_edge(node.id, follower.id)
            cfg.remove_node(follower.id)


def _sole_follower(cfg: CFG, node: CFGNode) -> Optional[CFGNode]:
    graph = cfg.graph
    normal = []
    handlers = set()
    for _, target, data in graph.out_edges(node.id, data=True):
        if data["kind"] == EdgeKind.NORMAL:
            normal.append(target)
        elif data["kind"] == EdgeKind.EXCEPTION:
            handlers.add(target)
        else:
            return None
    if len(normal) != 1 or normal[0] == node.id:
        return None

    follower = cfg.node(normal[0])
    if follower.kind != "statement" or not follower.statements or graph.in_degree(follower.id) != 1:
        return None
    if follower.change != node.change or follower.reachable != node.reachable:
        return None
    follower_handlers = {t for _, t, d in graph.out_edges(follower.id, data=True)
                         if d["kind"] == EdgeKind.EXCEPTION}
    if follower_handlers != handlers:
        return None
    return follower


def _label_edges(cfg: CFG) -> None:
    """Propagate AST change labels onto edges."""
    ast = cfg.ast
    for source, target, data in cfg.graph.edges(data=True):
        if data["condition"] is not None:
            data["change"] = ast.node(data["condition"]).change
            continue
        target_change = cfg.node(target).change
        source_change = cfg.node(source).change
        if target_change in MARKED_CHANGES:
            data["change"] = target_change
        elif source_change in MARKED_CHANGES:
            data["change"] = source_change
        else:
            data["change"] = ChangeType.UNCHANGED
