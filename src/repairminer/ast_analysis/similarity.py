"""
Subtree metrics and similarity used by the tree matcher.
"""

import hashlib
from typing import Dict, List, Mapping, Optional

from .models import Ast


class TreeMetrics:
    """Per-node height, size, depth and isomorphism hash for one AST."""

    def __init__(self, ast: Ast):
        self.ast = ast
        self.height: Dict[int, int] = {}
        self.size: Dict[int, int] = {}
        self.depth: Dict[int, int] = {}
        self.hash: Dict[int, str] = {}
        self._compute()

    def _compute(self) -> None:
        ast = self.ast
        for node_id in ast.postorder():
            node = ast.node(node_id)
            if node.children:
                self.height[node_id] = 1 + max(self.height[c] for c in node.children)
                self.size[node_id] = 1 + sum(self.size[c] for c in node.children)
            else:
                self.height[node_id] = 1
                self.size[node_id] = 1
            digest = hashlib.md5()
            digest.update(f"{node.kind}|{node.value}(".encode("utf8"))
            for child in node.children:
                digest.update(f"{ast.node(child).role or ''}:{self.hash[child]};".encode("utf8"))
            digest.update(b")")
            self.hash[node_id] = digest.hexdigest()

        for node_id in ast.preorder():
            parent = ast.parent(node_id)
            self.depth[node_id] = 0 if parent is None else self.depth[parent] + 1

    def hash_counts(self) -> Dict[str, int]:
        counts: Dict[str, int] = {}
        for value in self.hash.values():
            counts[value] = counts.get(value, 0) + 1
        return counts

    def ancestor_kinds(self, node_id: int) -> List[str]:
        return [self.ast.kind(a) for a in self.ast.ancestors(node_id)]


def dice(src: Ast, dst: Ast, src_id: int, dst_id: int, mapping: Mapping[int, int]) -> float:
    """
    Dice coefficient of the mapped descendants of two nodes.

    Args:
        mapping: Current src -> dst node mapping
    """
    src_desc = list(src.descendants(src_id))
    dst_desc = set(dst.descendants(dst_id))
    if not src_desc and not dst_desc:
        return 1.0 if src.kind(src_id) == dst.kind(dst_id) else 0.0
    common = sum(1 for s in src_desc if mapping.get(s) in dst_desc)
    return 2.0 * common / (len(src_desc) + len(dst_desc))


def context_similarity(src_metrics: TreeMetrics, dst_metrics: TreeMetrics,
                       src_id: int, dst_id: int) -> float:
    """Position-wise agreement of the ancestor kind chains of two nodes."""
    src_chain = src_metrics.ancestor_kinds(src_id)
    dst_chain = dst_metrics.ancestor_kinds(dst_id)
    longest = max(len(src_chain), len(dst_chain))
    if longest == 0:
        return 1.0
    same = sum(1 for a, b in zip(src_chain, dst_chain) if a == b)
    return same / longest


def signature(ast: Ast, node_id: int) -> str:
    """Identity of a node beyond its kind: a function's name, else its value."""
    node = ast.node(node_id)
    if node.is_function:
        name = ast.field(node_id, "name")
        return ast.node(name).value if name is not None else ""
    return node.value


def weighted_similarity(src_metrics: TreeMetrics, dst_metrics: TreeMetrics,
                        src_id: int, dst_id: int, mapping: Mapping[int, int],
                        dice_value: Optional[float] = None) -> float:
    """
    Weighted subtree similarity used by bottom-up matching.

    Combines the dice coefficient of mapped descendants, the similarity of the
    ancestor kind chains and the equality of node signatures.
    """
    src, dst = src_metrics.ast, dst_metrics.ast
    if dice_value is None:
        dice_value = dice(src, dst, src_id, dst_id, mapping)
    context = context_similarity(src_metrics, dst_metrics, src_id, dst_id)
    same_signature = 1.0 if signature(src, src_id) == signature(dst, dst_id) else 0.0
    return 0.5 * dice_value + 0.3 * context + 0.2 * same_signature
