"""
Tests for the JavaScript parser and the arena AST.
"""

import pytest

from repairminer.exceptions import ASTBuildError


def find(ast, kind):
    """Ids of every node of a kind, in preorder."""
    return [n for n in ast.preorder() if ast.kind(n) == kind]


class TestJavaScriptParser:
    """Test conversion of tree-sitter trees into arena ASTs."""

    def test_root_is_program(self, parser):
        """The root node has id 0 and no parent."""
        ast = parser.parse("var x = 1;")
        assert ast.root == 0
        assert ast.kind(ast.root) == "program"
        assert ast.parent(ast.root) is None

    def test_ids_match_arena_positions(self, parser):
        """Every node id is its index in the arena."""
        ast = parser.parse("function f(a) { return a + 1; }")
        assert [node.id for node in ast] == list(range(len(ast)))

    def test_leaves_carry_source_text(self, parser):
        """Identifiers and literals keep their text as value."""
        ast = parser.parse("var x = 'hello';")
        identifier = find(ast, "identifier")[0]
        string = find(ast, "string")[0]
        assert ast.node(identifier).value == "x"
        assert ast.node(string).value == "'hello'"
        assert ast.children(string) == []

    def test_operators_are_values(self, parser):
        """Binary and unary nodes carry their operator."""
        ast = parser.parse("var y = !a || b === c;")
        operators = sorted(ast.node(n).value for n in find(ast, "binary_expression"))
        assert operators == ["===", "||"]
        assert ast.node(find(ast, "unary_expression")[0]).value == "!"

    def test_fields_are_recorded_as_roles(self, parser):
        """Children remember the grammar field they fill."""
        ast = parser.parse("if (x) { a(); } else { b(); }")
        if_id = find(ast, "if_statement")[0]
        condition = ast.field(if_id, "condition")
        assert ast.kind(condition) == "parenthesized_expression"
        assert ast.kind(ast.field(if_id, "consequence")) == "statement_block"
        assert ast.kind(ast.field(if_id, "alternative")) == "else_clause"

    def test_children_in_source_order(self, parser):
        """Statements of a block are ordered by position."""
        ast = parser.parse("a(); b(); c();")
        starts = [ast.node(c).start for c in ast.children(ast.root)]
        assert starts == sorted(starts)
        assert len(starts) == 3

    def test_comments_are_dropped(self, parser):
        """Comments do not become nodes."""
        ast = parser.parse("// leading\nfoo(); /* trailing */")
        assert find(ast, "comment") == []
        assert len(ast.children(ast.root)) == 1

    def test_lines_are_one_based(self, parser):
        """Line numbers start at 1."""
        ast = parser.parse("a();\n\nb();")
        lines = [ast.node(c).line for c in ast.children(ast.root)]
        assert lines == [1, 3]

    def test_text_returns_covered_source(self, parser):
        """Node text is the slice of source it spans."""
        source = "function f(a) { return a; }"
        ast = parser.parse(source)
        function = find(ast, "function_declaration")[0]
        assert ast.text(function) == source

    @pytest.mark.parametrize("source", [
        "function (",
        "var = ;",
        "if (x { }",
    ])
    def test_syntax_error_raises(self, parser, source):
        """Trees with ERROR or MISSING nodes are rejected."""
        with pytest.raises(ASTBuildError):
            parser.parse(source, name="broken.js")

    def test_syntax_error_names_file(self, parser):
        """The error message identifies the file."""
        with pytest.raises(ASTBuildError, match="broken.js"):
            parser.parse("function (", name="broken.js")


class TestPreProcessing:
    """Test normalization of non-block bodies."""

    def test_if_body_without_pre_processing(self, parser):
        """A bare statement body stays as it is."""
        ast = parser.parse("if (a) b();")
        if_id = find(ast, "if_statement")[0]
        assert ast.kind(ast.field(if_id, "consequence")) == "expression_statement"

    def test_if_body_is_wrapped(self, parser):
        """A bare statement body gets a synthetic block."""
        ast = parser.parse("if (a) b();", pre_process=True)
        if_id = find(ast, "if_statement")[0]
        consequence = ast.field(if_id, "consequence")
        assert ast.kind(consequence) == "statement_block"
        assert ast.node(consequence).synthetic
        assert ast.kind(ast.children(consequence)[0]) == "expression_statement"

    def test_loop_body_is_wrapped(self, parser):
        """Loop bodies are wrapped too."""
        ast = parser.parse("while (a) b();", pre_process=True)
        loop = find(ast, "while_statement")[0]
        assert ast.kind(ast.field(loop, "body")) == "statement_block"

    def test_existing_blocks_are_kept(self, parser):
        """Bodies that already are blocks are not wrapped again."""
        ast = parser.parse("if (a) { b(); }", pre_process=True)
        if_id = find(ast, "if_statement")[0]
        consequence = ast.field(if_id, "consequence")
        assert not ast.node(consequence).synthetic


class TestAstNavigation:
    """Test the traversal helpers of the arena AST."""

    def test_preorder_prune_skips_function_bodies(self, parser):
        """Pruned nodes are yielded but not descended into."""
        ast = parser.parse("a(); function f() { b(); }")
        visited = list(ast.preorder(prune=lambda n: n.is_function))
        function = find(ast, "function_declaration")[0]
        assert function in visited
        assert not any(ast.is_descendant(n, function) for n in visited)

    def test_visit_can_skip_subtrees(self, parser):
        """Returning False from the visitor skips the subtree."""
        ast = parser.parse("a(); try { b(); } catch (e) {}")
        calls = []

        def visitor(node):
            if node.kind == "try_statement":
                return False
            if node.kind == "call_expression":
                calls.append(node.id)
            return True

        ast.visit(visitor)
        assert len(calls) == 1

    def test_enclosing_function(self, parser):
        """Nodes resolve to their nearest function, or the root."""
        ast = parser.parse("a(); function f() { b(); }")
        calls = find(ast, "call_expression")
        function = find(ast, "function_declaration")[0]
        assert ast.enclosing_function(calls[0]) == ast.root
        assert ast.enclosing_function(calls[1]) == function

    def test_postorder_visits_children_first(self, parser):
        """Every node follows its descendants in postorder."""
        ast = parser.parse("var x = f(a, b);")
        order = {node_id: i for i, node_id in enumerate(ast.postorder())}
        for node in ast:
            for child in node.children:
                assert order[child] < order[node.id]
