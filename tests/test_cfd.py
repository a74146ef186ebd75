"""
Tests for control flow differencing of file pairs.
"""

from unittest.mock import Mock

import pytest

from repairminer.cfd import CFDOptions, ControlFlowDifferencing
from repairminer.exceptions import ASTBuildError, EmptyInputError, InternalError, InvariantViolation


class TestControlFlowDifferencing:
    """Test the differencing entry point and its error contract."""

    @pytest.mark.parametrize("src,dst", [
        ("", "a();"),
        ("a();", ""),
        ("   \n\t", "a();"),
        ("a();", "\n\n"),
    ])
    def test_empty_input_is_rejected(self, diff, src, dst):
        """Empty or whitespace-only text is a recoverable error."""
        with pytest.raises(EmptyInputError):
            diff(src, dst)

    def test_syntax_error_is_reported(self, diff):
        """A parse failure surfaces as an ASTBuildError."""
        with pytest.raises(ASTBuildError):
            diff("a();", "function (")

    def test_unexpected_failure_is_wrapped(self):
        """Unexpected exceptions become InternalError with the cause kept."""
        classifier = Mock()
        classifier.classify.side_effect = RuntimeError("boom")
        differencer = ControlFlowDifferencing(classifier=classifier)

        with pytest.raises(InternalError) as excinfo:
            differencer.diff(CFDOptions(), "a();", "b();", "x.js")
        assert isinstance(excinfo.value.__cause__, RuntimeError)
        assert "x.js" in str(excinfo.value)

    def test_invariant_violation_propagates(self):
        """Broken invariants are not wrapped."""
        classifier = Mock()
        classifier.classify.side_effect = InvariantViolation("unpaired node")
        differencer = ControlFlowDifferencing(classifier=classifier)

        with pytest.raises(InvariantViolation):
            differencer.diff(CFDOptions(), "a();", "b();")

    def test_view_pairs_cfgs_by_function(self, diff):
        """CFGs can be looked up by the id of their function node."""
        view = diff("function f() { a(); }", "function f() { a(); b(); }")
        src_function = next(n.id for n in view.src_ast if n.kind == "function_declaration")
        dst_function = next(n.id for n in view.dst_ast if n.kind == "function_declaration")

        assert view.src_cfg(src_function).name == "f"
        assert view.dst_cfg(dst_function).name == "f"
        assert view.src_cfg(view.src_ast.root).name == "~script~"
        assert view.src_cfg(9999) is None
        assert view.mapping.dst(src_function) == dst_function

    def test_pre_process_option_is_applied(self, diff):
        """Pre-processing wraps bare bodies on both sides."""
        view = diff("if (a) b();", "if (a) { b(); c(); }", pre_process=True)
        assert any(node.synthetic for node in view.src_ast)
        assert not any(node.synthetic for node in view.dst_ast)
