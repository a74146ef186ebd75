"""
Tests for tree matching and change classification.
"""

import pytest

from repairminer.ast_analysis.classifier import AstClassifier, EditScript, Mapping, TreeMatcher
from repairminer.exceptions import InvariantViolation
from repairminer.models import ChangeType

PAIRS = [
    ("f();", "f(); g();"),
    ("function f(x){ g(x); }", "function f(x){ try { g(x); } catch(e){} }"),
    ("function h(cb,x){ doWork(x); }",
     "function h(cb,x){ if(x==null){ cb(new Error('bad')); return; } doWork(x); }"),
    ("function f(obj){ return obj.name.length; }",
     "function f(obj){ if(obj && obj.name){ return obj.name.length; } }"),
    ("a(); b(); c();", "c(); a(); b();"),
    ("var x = 1; function g() { return x; }", "var x = 2;"),
    ("for (var i = 0; i < n; i++) { s += i; }", "while (n--) { s += n; }"),
]

LABELS = {ChangeType.UNCHANGED, ChangeType.INSERTED, ChangeType.REMOVED,
          ChangeType.UPDATED, ChangeType.MOVED}


def classify(parser, src, dst):
    return AstClassifier().classify(parser.parse(src), parser.parse(dst))


def labels_of(ast, kind):
    return [n.change for n in ast if n.kind == kind]


class TestClassificationInvariants:
    """Test the invariants every classified pair satisfies."""

    @pytest.mark.parametrize("src_text,dst_text", PAIRS)
    def test_every_node_is_labelled(self, parser, src_text, dst_text):
        """Both trees are completely labelled with edit labels."""
        src, dst, _ = classify(parser, src_text, dst_text)
        assert len(src.labels()) == len(src)
        assert len(dst.labels()) == len(dst)
        assert set(src.labels().values()) <= LABELS
        assert set(dst.labels().values()) <= LABELS

    @pytest.mark.parametrize("src_text,dst_text", PAIRS)
    def test_pairing_is_an_involution(self, parser, src_text, dst_text):
        """Paired nodes point at each other."""
        src, dst, mapping = classify(parser, src_text, dst_text)
        for node in src:
            if node.partner is not None:
                assert dst.node(node.partner).partner == node.id
                assert mapping.dst(node.id) == node.partner
        for node in dst:
            if node.partner is not None:
                assert src.node(node.partner).partner == node.id

    @pytest.mark.parametrize("src_text,dst_text", PAIRS)
    def test_sides_have_no_foreign_labels(self, parser, src_text, dst_text):
        """Sources are never INSERTED and destinations never REMOVED."""
        src, dst, _ = classify(parser, src_text, dst_text)
        assert ChangeType.INSERTED not in set(src.labels().values())
        assert ChangeType.REMOVED not in set(dst.labels().values())

    @pytest.mark.parametrize("src_text,dst_text", PAIRS)
    def test_unpaired_nodes_are_added_or_removed(self, parser, src_text, dst_text):
        """Exactly the unpaired nodes are INSERTED or REMOVED."""
        src, dst, _ = classify(parser, src_text, dst_text)
        for node in src:
            assert (node.partner is None) == (node.change == ChangeType.REMOVED)
        for node in dst:
            assert (node.partner is None) == (node.change == ChangeType.INSERTED)


class TestChangeLabels:
    """Test the labels produced for typical edits."""

    def test_identical_files_are_unchanged(self, parser):
        """Identical sources pair every node and change nothing."""
        source = "function f(a, b) { if (a) { return b; } return a + b; }"
        src, dst, mapping = classify(parser, source, source)
        assert len(mapping) == len(src) == len(dst)
        assert set(src.labels().values()) == {ChangeType.UNCHANGED}
        assert set(dst.labels().values()) == {ChangeType.UNCHANGED}

    def test_inserted_statement(self, parser):
        """A new statement and its subtree are INSERTED."""
        src, dst, _ = classify(parser, "f();", "f(); g();")
        statements = dst.children(dst.root)
        assert dst.node(statements[0]).change == ChangeType.UNCHANGED
        assert all(dst.node(n).change == ChangeType.INSERTED for n in dst.preorder(statements[1]))
        assert set(src.labels().values()) == {ChangeType.UNCHANGED}

    def test_removed_statement(self, parser):
        """A deleted statement and its subtree are REMOVED."""
        src, dst, _ = classify(parser, "f(); g();", "f();")
        statements = src.children(src.root)
        assert all(src.node(n).change == ChangeType.REMOVED for n in src.preorder(statements[1]))
        assert set(dst.labels().values()) == {ChangeType.UNCHANGED}

    def test_updated_literal(self, parser):
        """A changed literal value is UPDATED on both sides."""
        src, dst, _ = classify(parser, "var x = 1;", "var x = 2;")
        assert labels_of(src, "number") == [ChangeType.UPDATED]
        assert labels_of(dst, "number") == [ChangeType.UPDATED]
        assert labels_of(dst, "identifier") == [ChangeType.UNCHANGED]

    def test_swapped_statements_move(self, parser):
        """Reordering siblings moves one of them."""
        src, dst, _ = classify(parser, "a(); b();", "b(); a();")
        moved = [n for n in src if n.change == ChangeType.MOVED]
        assert len(moved) == 1
        assert moved[0].kind == "expression_statement"
        assert dst.node(moved[0].partner).change == ChangeType.MOVED

    def test_wrapped_call_keeps_identity(self, parser):
        """A call wrapped in a new try keeps its pairing."""
        src, dst, _ = classify(parser, "function f(x){ g(x); }",
                               "function f(x){ try { g(x); } catch(e){} }")
        assert labels_of(dst, "try_statement") == [ChangeType.INSERTED]
        call = next(n for n in dst if n.kind == "call_expression")
        assert call.partner is not None
        assert call.change in (ChangeType.UNCHANGED, ChangeType.MOVED)


class TestMapping:
    """Test the bidirectional mapping."""

    def test_lookup_both_directions(self):
        """Pairs can be looked up from either side."""
        mapping = Mapping()
        mapping.add(1, 5)
        assert mapping.dst(1) == 5
        assert mapping.src(5) == 1
        assert mapping.dst(2) is None
        assert len(mapping) == 1

    def test_mapping_is_functional(self):
        """A node cannot be paired twice."""
        mapping = Mapping()
        mapping.add(1, 5)
        with pytest.raises(InvariantViolation):
            mapping.add(1, 6)
        with pytest.raises(InvariantViolation):
            mapping.add(2, 5)


class TestEditScript:
    """Test edit scripts derived from mappings."""

    def test_insert_actions(self, parser):
        """Each unpaired destination node is one insert."""
        src, dst = parser.parse("f();"), parser.parse("f(); g();")
        mapping = TreeMatcher().match(src, dst)
        script = EditScript.from_mapping(src, dst, mapping)
        inserts = [a for a in script if a.operation == "insert"]
        assert len(inserts) == len(dst) - len(src)
        assert all(a.side == "dst" for a in inserts)

    def test_no_actions_for_identical_trees(self, parser):
        """Identical trees need no edits."""
        src, dst = parser.parse("f(a);"), parser.parse("f(a);")
        mapping = TreeMatcher().match(src, dst)
        assert len(EditScript.from_mapping(src, dst, mapping)) == 0
