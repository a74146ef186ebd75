"""
AST differencing and change classification.

``TreeMatcher`` computes a one-to-one mapping between the nodes of a source
and a destination AST in the style of GumTree: a greedy top-down pass pairs
the largest isomorphic subtrees, a bottom-up pass pairs containers that share
enough mapped descendants, and a recovery pass pairs the leftover children of
every newly mapped container. ``AstClassifier`` turns the mapping into an edit
script and labels every node of both trees with its change type.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Dict, Iterator, List, Optional, Sequence, Set, Tuple

from ..exceptions import InvariantViolation
from ..models import ChangeType
from .models import Ast
from .similarity import TreeMetrics, dice, weighted_similarity

logger = logging.getLogger(__name__)


class Mapping:
    """Bidirectional, functional pairing of source and destination node ids."""

    def __init__(self):
        self.src_to_dst: Dict[int, int] = {}
        self.dst_to_src: Dict[int, int] = {}

    def add(self, src_id: int, dst_id: int) -> None:
        if src_id in self.src_to_dst or dst_id in self.dst_to_src:
            raise InvariantViolation(f"Node already paired: src={src_id}, dst={dst_id}")
        self.src_to_dst[src_id] = dst_id
        self.dst_to_src[dst_id] = src_id

    def has_src(self, src_id: int) -> bool:
        return src_id in self.src_to_dst

    def has_dst(self, dst_id: int) -> bool:
        return dst_id in self.dst_to_src

    def dst(self, src_id: int) -> Optional[int]:
        return self.src_to_dst.get(src_id)

    def src(self, dst_id: int) -> Optional[int]:
        return self.dst_to_src.get(dst_id)

    def items(self) -> Iterator[Tuple[int, int]]:
        return iter(sorted(self.src_to_dst.items()))

    def __len__(self) -> int:
        return len(self.src_to_dst)


class _HeightQueue:
    """Nodes waiting for top-down matching, grouped by subtree height."""

    def __init__(self, metrics: TreeMetrics):
        self.metrics = metrics
        self.buckets: Dict[int, List[int]] = {}

    def push(self, node_id: int) -> None:
        self.buckets.setdefault(self.metrics.height[node_id], []).append(node_id)

    def peek_height(self) -> int:
        return max(self.buckets) if self.buckets else -1

    def pop(self) -> List[int]:
        nodes = self.buckets.pop(self.peek_height())
        return sorted(nodes, key=lambda n: self.metrics.ast.node(n).start)

    def open(self, node_id: int) -> None:
        for child in self.metrics.ast.children(node_id):
            self.push(child)


class TreeMatcher:
    """Computes the node mapping between two ASTs."""

    def __init__(self, min_height: int = 2, similarity_threshold: float = 0.5):
        """
        Args:
            min_height: Smallest subtree height considered by top-down matching
            similarity_threshold: Minimum weighted similarity for bottom-up matches
        """
        self.min_height = min_height
        self.similarity_threshold = similarity_threshold

    def match(self, src: Ast, dst: Ast) -> Mapping:
        mapping = Mapping()
        if src.is_empty or dst.is_empty:
            return mapping

        src_metrics, dst_metrics = TreeMetrics(src), TreeMetrics(dst)
        self._top_down(src_metrics, dst_metrics, mapping)
        self._bottom_up(src_metrics, dst_metrics, mapping)
        logger.debug(f"Matched {len(mapping)} of {len(src)}/{len(dst)} nodes")
        return mapping

    def _top_down(self, sm: TreeMetrics, dm: TreeMetrics, mapping: Mapping) -> None:
        src, dst = sm.ast, dm.ast
        src_counts, dst_counts = sm.hash_counts(), dm.hash_counts()
        src_queue, dst_queue = _HeightQueue(sm), _HeightQueue(dm)
        src_queue.push(src.root)
        dst_queue.push(dst.root)
        candidates: List[Tuple[int, int]] = []

        while min(src_queue.peek_height(), dst_queue.peek_height()) >= self.min_height:
            src_height, dst_height = src_queue.peek_height(), dst_queue.peek_height()
            if src_height != dst_height:
                queue = src_queue if src_height > dst_height else dst_queue
                for node_id in queue.pop():
                    queue.open(node_id)
                continue

            src_nodes, dst_nodes = src_queue.pop(), dst_queue.pop()
            matched_src: Set[int] = set()
            matched_dst: Set[int] = set()
            for s in src_nodes:
                for d in dst_nodes:
                    digest = sm.hash[s]
                    if digest != dm.hash[d]:
                        continue
                    if src_counts[digest] > 1 or dst_counts[digest] > 1:
                        candidates.append((s, d))
                    else:
                        self._map_subtree(src, dst, s, d, mapping)
                    matched_src.add(s)
                    matched_dst.add(d)
            for s in src_nodes:
                if s not in matched_src:
                    src_queue.open(s)
            for d in dst_nodes:
                if d not in matched_dst:
                    dst_queue.open(d)

        # Ambiguous isomorphic subtrees: prefer pairs whose parents already
        # agree, then pairs at similar relative positions, then earliest source.
        src_length = max(len(src.source), 1)
        dst_length = max(len(dst.source), 1)

        def rank(pair: Tuple[int, int]):
            s, d = pair
            src_parent, dst_parent = src.parent(s), dst.parent(d)
            if src_parent is None or dst_parent is None:
                parent_dice = 1.0 if src_parent == dst_parent else 0.0
            else:
                parent_dice = dice(src, dst, src_parent, dst_parent, mapping.src_to_dst)
            drift = abs(src.node(s).start / src_length - dst.node(d).start / dst_length)
            return (-sm.height[s], -parent_dice, drift, src.node(s).start, dst.node(d).start)

        for s, d in sorted(candidates, key=rank):
            if not mapping.has_src(s) and not mapping.has_dst(d):
                self._map_subtree(src, dst, s, d, mapping)

    def _bottom_up(self, sm: TreeMetrics, dm: TreeMetrics, mapping: Mapping) -> None:
        src, dst = sm.ast, dm.ast
        for s in src.postorder():
            if s == src.root:
                if not mapping.has_src(s) and not mapping.has_dst(dst.root):
                    mapping.add(s, dst.root)
                if mapping.dst(s) == dst.root:
                    self._recover(sm, dm, s, dst.root, mapping)
                continue
            if mapping.has_src(s) or not src.children(s):
                continue

            best, best_score = None, self.similarity_threshold
            for d in self._candidates(src, dst, s, mapping):
                score = weighted_similarity(sm, dm, s, d, mapping.src_to_dst)
                if score > best_score or (best is None and score == best_score):
                    best, best_score = d, score
            if best is not None:
                mapping.add(s, best)
                self._recover(sm, dm, s, best, mapping)

    def _candidates(self, src: Ast, dst: Ast, s: int, mapping: Mapping) -> List[int]:
        kind = src.kind(s)
        found: Set[int] = set()
        for descendant in src.descendants(s):
            seed = mapping.dst(descendant)
            if seed is None:
                continue
            for ancestor in dst.ancestors(seed):
                if ancestor in found:
                    break
                if dst.kind(ancestor) == kind and not mapping.has_dst(ancestor):
                    found.add(ancestor)
        return sorted(found, key=lambda d: dst.node(d).start)

    def _recover(self, sm: TreeMetrics, dm: TreeMetrics, s: int, d: int, mapping: Mapping) -> None:
        """Pair the unmapped children of a freshly mapped pair of nodes."""
        src, dst = sm.ast, dm.ast

        def remaining() -> Tuple[List[int], List[int]]:
            return ([c for c in src.children(s) if not mapping.has_src(c)],
                    [c for c in dst.children(d) if not mapping.has_dst(c)])

        src_children, dst_children = remaining()
        if not src_children or not dst_children:
            return

        for a, b in _lcs(src_children, dst_children, lambda a, b: sm.hash[a] == dm.hash[b]):
            self._map_subtree(src, dst, a, b, mapping)

        src_children, dst_children = remaining()
        same_label = lambda a, b: (src.kind(a) == dst.kind(b)
                                   and src.node(a).value == dst.node(b).value
                                   and src.node(a).role == dst.node(b).role)
        for a, b in _lcs(src_children, dst_children, same_label):
            mapping.add(a, b)
            self._recover(sm, dm, a, b, mapping)

        src_children, dst_children = remaining()
        src_kinds = _unique_kinds(src, src_children)
        dst_kinds = _unique_kinds(dst, dst_children)
        for kind, a in src_kinds.items():
            b = dst_kinds.get(kind)
            if b is not None and not mapping.has_src(a) and not mapping.has_dst(b):
                mapping.add(a, b)
                self._recover(sm, dm, a, b, mapping)

    @staticmethod
    def _map_subtree(src: Ast, dst: Ast, s: int, d: int, mapping: Mapping) -> None:
        for a, b in zip(src.preorder(s), dst.preorder(d)):
            if not mapping.has_src(a) and not mapping.has_dst(b):
                mapping.add(a, b)


def _lcs(left: Sequence[int], right: Sequence[int],
         equal: Callable[[int, int], bool]) -> List[Tuple[int, int]]:
    """Longest common subsequence of two id sequences under ``equal``."""
    rows, cols = len(left), len(right)
    table = [[0] * (cols + 1) for _ in range(rows + 1)]
    for i in range(rows - 1, -1, -1):
        for j in range(cols - 1, -1, -1):
            if equal(left[i], right[j]):
                table[i][j] = table[i + 1][j + 1] + 1
            else:
                table[i][j] = max(table[i + 1][j], table[i][j + 1])
    pairs = []
    i = j = 0
    while i < rows and j < cols:
        if equal(left[i], right[j]):
            pairs.append((left[i], right[j]))
            i += 1
            j += 1
        elif table[i + 1][j] >= table[i][j + 1]:
            i += 1
        else:
            j += 1
    return pairs


def _unique_kinds(ast: Ast, nodes: Sequence[int]) -> Dict[str, int]:
    seen: Dict[str, List[int]] = {}
    for node_id in nodes:
        seen.setdefault(ast.kind(node_id), []).append(node_id)
    return {kind: ids[0] for kind, ids in seen.items() if len(ids) == 1}


@dataclass(frozen=True)
class EditAction:
    """One operation of an edit script."""
    operation: str  # insert, delete, update, move
    node: int
    side: str  # "src" or "dst"
    partner: Optional[int] = None


class EditScript:
    """The insert/delete/update/move operations implied by a mapping."""

    def __init__(self, actions: List[EditAction]):
        self.actions = actions

    def __iter__(self) -> Iterator[EditAction]:
        return iter(self.actions)

    def __len__(self) -> int:
        return len(self.actions)

    @classmethod
    def from_mapping(cls, src: Ast, dst: Ast, mapping: Mapping) -> "EditScript":
        actions: List[EditAction] = []
        for node in src:
            if not mapping.has_src(node.id):
                actions.append(EditAction("delete", node.id, "src"))
        for node in dst:
            if not mapping.has_dst(node.id):
                actions.append(EditAction("insert", node.id, "dst"))

        stable = _stable_children(src, dst, mapping)
        for s, d in mapping.items():
            if src.node(s).value != dst.node(d).value:
                actions.append(EditAction("update", s, "src", d))
            elif s not in stable:
                actions.append(EditAction("move", s, "src", d))
        return cls(actions)


def _stable_children(src: Ast, dst: Ast, mapping: Mapping) -> Set[int]:
    """Mapped source nodes that kept both their parent and their sibling order."""
    stable: Set[int] = set()
    if mapping.has_src(src.root):
        stable.add(src.root)
    for s, d in mapping.items():
        dst_children = set(dst.children(d))
        in_src = [c for c in src.children(s) if mapping.dst(c) in dst_children]
        in_dst = [c for c in dst.children(d) if mapping.has_dst(c) and src.parent(mapping.src(c)) == s]
        for a, _ in _lcs(in_src, in_dst, lambda a, b: mapping.dst(a) == b):
            stable.add(a)
    return stable


class AstClassifier:
    """Labels both sides of a diff with change types."""

    def __init__(self, matcher: Optional[TreeMatcher] = None):
        self.matcher = matcher or TreeMatcher()

    def classify(self, src: Ast, dst: Ast) -> Tuple[Ast, Ast, Mapping]:
        """
        Pair and label every node of ``src`` and ``dst`` in place.

        Returns:
            The same two trees and the mapping between them
        """
        mapping = self.matcher.match(src, dst)
        script = EditScript.from_mapping(src, dst, mapping)

        for node in src:
            node.partner = mapping.dst(node.id)
            node.change = ChangeType.UNCHANGED
        for node in dst:
            node.partner = mapping.src(node.id)
            node.change = ChangeType.UNCHANGED

        for action in script:
            if action.operation == "delete":
                src.node(action.node).change = ChangeType.REMOVED
            elif action.operation == "insert":
                dst.node(action.node).change = ChangeType.INSERTED
            else:
                label = ChangeType.UPDATED if action.operation == "update" else ChangeType.MOVED
                src.node(action.node).change = label
                dst.node(action.partner).change = label

        self._check(src, dst)
        return src, dst, mapping

    @staticmethod
    def _check(src: Ast, dst: Ast) -> None:
        for node in src:
            if node.change in (ChangeType.UNKNOWN, ChangeType.INSERTED):
                raise InvariantViolation(f"Source node {node.id} labelled {node.change.value}")
            if node.partner is not None and dst.node(node.partner).partner != node.id:
                raise InvariantViolation(f"Pairing of source node {node.id} is not symmetric")
        for node in dst:
            if node.change in (ChangeType.UNKNOWN, ChangeType.REMOVED):
                raise InvariantViolation(f"Destination node {node.id} labelled {node.change.value}")
