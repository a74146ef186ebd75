"""
Tests for keyword extraction.
"""

from repairminer.ast_analysis.classifier import AstClassifier
from repairminer.learning import KeywordContext, KeywordExtractor, KeywordType, KeywordUse
from repairminer.models import ChangeType


def keywords(ast):
    """(type, context, api, keyword) of every keyword use in a tree."""
    uses = KeywordExtractor().extract(ast, ast.preorder())
    return [(u.type.value, u.context.value, u.api, u.keyword) for u in uses]


class TestPackageAliases:
    """Test detection of required modules."""

    def test_declarations_and_assignments(self, parser):
        """Both declared and assigned require results are aliases."""
        ast = parser.parse("var fs = require('fs'); p = require(\"path\"); var x = other('y');")
        assert KeywordExtractor().package_aliases(ast) == {"fs": "fs", "p": "path"}


class TestKeywordExtractor:
    """Test keyword uses produced for common constructs."""

    def test_statement_keywords(self, parser):
        """Control statements give reserved statement keywords."""
        found = keywords(parser.parse("function f() { while (a) { if (b) { break; } } return; }"))
        for keyword in ("while", "if", "break", "return"):
            assert ("RESERVED", "STATEMENT", "global", keyword) in found

    def test_package_and_method_calls(self, parser):
        """Calls on a required module belong to that package."""
        found = keywords(parser.parse("var fs = require('fs'); fs.readFile(p, done);"))
        assert ("PACKAGE", "EXPRESSION", "fs", "fs") in found
        assert ("METHOD_CALL", "EXPRESSION", "fs", "readFile") in found
        assert found.count(("PACKAGE", "EXPRESSION", "fs", "fs")) == 2

    def test_alias_call(self, parser):
        """Calling an alias directly is a method call of its package."""
        found = keywords(parser.parse("var debug = require('debug'); debug('x');"))
        assert ("METHOD_CALL", "EXPRESSION", "debug", "debug") in found

    def test_event_registration(self, parser):
        """Event names passed to listener methods are event keywords."""
        found = keywords(parser.parse("emitter.on('data', handle);"))
        assert ("METHOD_CALL", "EXPRESSION", "global", "on") in found
        assert ("EVENT", "ARGUMENT", "global", "data") in found

    def test_exceptions(self, parser):
        """Constructing an error class gives an exception keyword."""
        found = keywords(parser.parse("throw new TypeError('bad');"))
        assert ("EXCEPTION", "EXPRESSION", "global", "TypeError") in found
        assert ("RESERVED", "STATEMENT", "global", "throw") in found

    def test_callback_and_error_parameters(self, parser):
        """Conventional parameter names are normalized."""
        found = keywords(parser.parse("function f(cb) { g(function (err, data) {}); }"))
        assert ("PARAMETER", "EXPRESSION", "global", "callback") in found
        assert ("PARAMETER", "EXPRESSION", "global", "error") in found
        assert not any(k[3] == "data" for k in found)

    def test_error_argument(self, parser):
        """Passing an error variable on is an argument keyword."""
        found = keywords(parser.parse("cb(err);"))
        assert ("ARGUMENT", "ARGUMENT", "global", "error") in found

    def test_truth_tests(self, parser):
        """Variables tested for truthiness give a falsey condition keyword."""
        found = keywords(parser.parse("if (!a || b.c) {} if (d === 1) {}"))
        assert found.count(("RESERVED", "CONDITION", "global", "falsey")) == 2

    def test_typeof_in_condition(self, parser):
        """Operators like typeof are reserved keywords in their context."""
        found = keywords(parser.parse("if (typeof x === 'undefined') {}"))
        assert ("RESERVED", "CONDITION", "global", "typeof") in found

    def test_literals(self, parser):
        """Reserved literals are keywords."""
        found = keywords(parser.parse("x = null; y = this;"))
        assert ("RESERVED", "EXPRESSION", "global", "null") in found
        assert ("RESERVED", "EXPRESSION", "global", "this") in found

    def test_unclassified_change_is_unknown(self, parser):
        """Keywords of an unclassified tree have no change type."""
        ast = parser.parse("if (a) {}")
        uses = list(KeywordExtractor().extract(ast, ast.preorder()))
        assert {u.change_type for u in uses} == {ChangeType.UNKNOWN}

    def test_change_type_follows_node(self, parser):
        """Keywords of inserted nodes are INSERTED."""
        _, dst, _ = AstClassifier().classify(parser.parse("a();"),
                                             parser.parse("a(); if (b) { c(); }"))
        uses = list(KeywordExtractor().extract(dst, dst.preorder()))
        statement = next(u for u in uses if u.keyword == "if")
        assert statement.change_type == ChangeType.INSERTED


class TestKeywordUse:
    """Test the keyword use value type."""

    def test_string_form(self):
        """The string form joins every field."""
        use = KeywordUse(KeywordType.RESERVED, KeywordContext.STATEMENT,
                         ChangeType.INSERTED, "global", "if")
        assert str(use) == "RESERVED_STATEMENT_INSERTED_global_if"

    def test_equal_uses_hash_equal(self):
        """Uses with equal fields are interchangeable as dictionary keys."""
        first = KeywordUse(KeywordType.EVENT, KeywordContext.ARGUMENT,
                           ChangeType.UNCHANGED, "fs", "data")
        second = KeywordUse(KeywordType.EVENT, KeywordContext.ARGUMENT,
                            ChangeType.UNCHANGED, "fs", "data")
        assert {first: 1}[second] == 1
        assert first.with_change(ChangeType.REMOVED).is_changed
        assert not first.is_changed
