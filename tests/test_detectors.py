"""
Tests for the repair pattern detectors.
"""

import pytest

from repairminer.detectors import SpecialType, SpecialTypeMap, SpecialValueDetector, default_detectors
from repairminer.detectors.special_value import special_types


def with_pattern(alerts, pattern):
    return [alert for alert in alerts if alert.pattern == pattern]


class TestErrorHandlingDetector:
    """Test detection of calls wrapped in a new try statement."""

    def test_existing_call_wrapped_in_try(self, alerts_for):
        """A pre-existing call moved into a new try is reported."""
        alerts = alerts_for("function f(x){ g(x); }",
                            "function f(x){ try { g(x); } catch(e){} }")
        found = with_pattern(alerts, "ERROR_HANDLING_ADDED")
        assert len(found) == 1
        assert found[0].identifier == "g"
        assert found[0].function_name == "f"
        assert "call g newly protected by inserted try" in found[0].description

    def test_call_already_protected(self, alerts_for):
        """Calls protected in the buggy version are not reported."""
        alerts = alerts_for("function f(x){ try { g(x); } catch(e){} }",
                            "function f(x){ try { g(x); h(); } catch(e){} }")
        assert with_pattern(alerts, "ERROR_HANDLING_ADDED") == []

    def test_new_call_in_new_try(self, alerts_for):
        """Calls inserted together with the try are not repairs of old code."""
        alerts = alerts_for("function f(x){ a(); }",
                            "function f(x){ a(); try { g(x); } catch(e){} }")
        assert with_pattern(alerts, "ERROR_HANDLING_ADDED") == []


class TestCallbackErrorDetector:
    """Test detection of errors newly passed to a callback."""

    def test_error_passed_to_callback(self, alerts_for):
        """An inserted call of the first parameter with an error is reported."""
        alerts = alerts_for(
            "function h(cb,x){ doWork(x); }",
            "function h(cb,x){ if(x==null){ cb(new Error('bad')); return; } doWork(x); }")
        found = with_pattern(alerts, "CALLBACK_ERROR_ADDED")
        assert len(found) == 1
        assert found[0].identifier == "cb"
        assert found[0].function_name == "h"
        assert found[0].line == 1

    def test_callback_in_nested_function(self, alerts_for):
        """Calls from nested functions are attributed to the declaring function."""
        alerts = alerts_for(
            "function h(cb){ fs.readFile(p, function(err){ log(err); }); }",
            "function h(cb){ fs.readFile(p, function(err){ log(err); cb(err); }); }")
        found = with_pattern(alerts, "CALLBACK_ERROR_ADDED")
        assert [alert.function_name for alert in found] == ["h"]

    def test_function_rewritten_as_property(self, alerts_for):
        """A function moved into an object literal keeps its callback contract."""
        alerts = alerts_for(
            "function h(cb){ work(); }",
            "var o = { h: function h(cb){ work(); cb(new Error('x')); } };")
        found = with_pattern(alerts, "CALLBACK_ERROR_ADDED")
        assert [(alert.function_name, alert.identifier) for alert in found] == [("h", "cb")]

    def test_new_function_is_ignored(self, alerts_for):
        """Functions without a buggy counterpart are not callback repairs."""
        alerts = alerts_for("work();",
                            "work(); function h(cb){ cb(new Error('x')); }")
        assert with_pattern(alerts, "CALLBACK_ERROR_ADDED") == []

    @pytest.mark.parametrize("call", ["cb(null);", "cb(undefined);", "cb();"])
    def test_success_calls_are_ignored(self, alerts_for, call):
        """Calls signalling success are not error propagation."""
        alerts = alerts_for("function h(cb){ work(); }",
                            f"function h(cb){{ work(); {call} }}")
        assert with_pattern(alerts, "CALLBACK_ERROR_ADDED") == []

    def test_non_callback_parameter(self, alerts_for):
        """Only the first parameter counts as the callback."""
        alerts = alerts_for("function h(x, log){ work(); }",
                            "function h(x, log){ work(); log(new Error('x')); }")
        assert with_pattern(alerts, "CALLBACK_ERROR_ADDED") == []


class TestSpecialValueDetector:
    """Test detection of new special value guards."""

    def test_dereference_guarded_by_new_if(self, alerts_for):
        """A dereference moved under a new truth test is reported."""
        alerts = alerts_for("function f(obj){ return obj.name; }",
                            "function f(obj){ if (obj) { return obj.name; } }")
        found = with_pattern(alerts, "SPECIAL_VALUE_GUARD_ADDED")
        assert [(a.identifier, a.sentinels) for a in found] == [("obj", frozenset({"FALSEY"}))]
        assert found[0].description == "obj guarded against FALSEY"

    def test_object_and_member_guard(self, alerts_for):
        """Checking an object and one of its members reports the object only."""
        alerts = alerts_for("function f(obj){ return obj.name.length; }",
                            "function f(obj){ if(obj && obj.name){ return obj.name.length; } }")
        assert [(a.pattern, a.identifier, a.sentinels) for a in alerts] == [
            ("SPECIAL_VALUE_GUARD_ADDED", "obj", frozenset({"FALSEY"}))]

    def test_member_guard_alone(self, alerts_for):
        """A guard of a member path alone is reported under that path."""
        alerts = alerts_for("function f(obj){ return obj.name.length; }",
                            "function f(obj){ if(obj.name){ return obj.name.length; } }")
        found = with_pattern(alerts, "SPECIAL_VALUE_GUARD_ADDED")
        assert [a.identifier for a in found] == ["obj.name"]

    def test_checks_of_buggy_function_are_consulted(self, make_runner, make_ami):
        """An existing short-circuit guard is found through the buggy function's checks."""
        detector = SpecialValueDetector()
        runner = make_runner([lambda: detector])
        results = runner.analyze_file(make_ami("function f(obj){ return obj && obj.name; }",
                                               "function f(obj){ if (obj) { return obj && obj.name; } }"))
        assert results == []
        assert [m.names() for m in detector.source_checks.values()] == [["obj"]]
        checks = list(detector.source_checks.values())[0]
        assert checks.get_set("obj") == {SpecialType.FALSEY}

    def test_early_exit_guard(self, alerts_for):
        """A new early return protects the statements after it."""
        alerts = alerts_for("function f(obj){ return obj.name; }",
                            "function f(obj){ if (obj == null) return; return obj.name; }")
        found = with_pattern(alerts, "SPECIAL_VALUE_GUARD_ADDED")
        assert [(a.identifier, a.sentinels) for a in found] == [("obj", frozenset({"NULL"}))]

    def test_guard_already_present(self, alerts_for):
        """Dereferences guarded in the buggy version are not reported."""
        alerts = alerts_for("function f(obj){ if (obj) { return obj.name; } }",
                            "function f(obj){ if (obj) { return obj.name; } log(); }")
        assert with_pattern(alerts, "SPECIAL_VALUE_GUARD_ADDED") == []

    def test_guard_of_other_variable(self, alerts_for):
        """A check of a different variable does not guard the dereference."""
        alerts = alerts_for("function f(obj, ok){ return obj.name; }",
                            "function f(obj, ok){ if (ok) { return obj.name; } }")
        assert with_pattern(alerts, "SPECIAL_VALUE_GUARD_ADDED") == []


class TestSpecialTypes:
    """Test extraction of special value checks from conditions."""

    @staticmethod
    def checks(parser, expression):
        ast = parser.parse(f"{expression};")
        statement = ast.children(ast.root)[0]
        return special_types(ast, ast.children(statement)[0])

    @pytest.mark.parametrize("expression,name,special", [
        ("x", "x", SpecialType.FALSEY),
        ("!x", "x", SpecialType.FALSEY),
        ("x == null", "x", SpecialType.NULL),
        ("null !== x", "x", SpecialType.NULL),
        ("x === undefined", "x", SpecialType.UNDEFINED),
        ("typeof x === 'undefined'", "x", SpecialType.UNDEFINED),
        ("isNaN(x)", "x", SpecialType.NAN),
        ("x === 0", "x", SpecialType.ZERO),
        ("x !== ''", "x", SpecialType.BLANK),
        ("x === true", "x", SpecialType.TRUTHY),
        ("a.b == null", "a.b", SpecialType.NULL),
    ])
    def test_single_checks(self, parser, expression, name, special):
        """Each form of check is recognized."""
        found = self.checks(parser, expression)
        assert found.set_contains(name, special)

    def test_combined_checks(self, parser):
        """Checks joined by logical operators are all collected."""
        found = self.checks(parser, "(a && !b) || c === ''")
        assert sorted(found.names()) == ["a", "b", "c"]
        assert found.get_set("c") == {SpecialType.BLANK}

    def test_ordinary_comparison(self, parser):
        """Comparisons with ordinary values are not special checks."""
        assert len(self.checks(parser, "x > 1")) == 0
        assert len(special_types(parser.parse("x;"), None)) == 0


class TestSpecialTypeMap:
    """Test the name to special types map."""

    def test_add_and_query(self):
        """Types accumulate per name."""
        types = SpecialTypeMap()
        types.add("x", SpecialType.NULL)
        types.add("x", SpecialType.UNDEFINED)
        assert "x" in types
        assert types.set_contains("x", SpecialType.NULL)
        assert not types.set_contains("y", SpecialType.NULL)
        assert types.get_set("x") == {SpecialType.NULL, SpecialType.UNDEFINED}

    def test_unknown_name(self):
        """Looking up a missing name raises KeyError."""
        with pytest.raises(KeyError):
            SpecialTypeMap().get_set("missing")

    def test_update_merges(self):
        """Updating merges the other map into this one."""
        first, second = SpecialTypeMap(), SpecialTypeMap()
        first.add("x", SpecialType.NULL)
        second.add("x", SpecialType.ZERO)
        second.add("y", SpecialType.FALSEY)
        first.update(second)
        assert len(first) == 2
        assert first.get_set("x") == {SpecialType.NULL, SpecialType.ZERO}


class TestDetectorRegistry:
    """Test the built-in detector list."""

    def test_default_detectors_are_fresh(self):
        """Factories create new detector instances with their tags."""
        factories = default_detectors()
        tags = [factory().tag for factory in factories]
        assert tags == ["ERROR_HANDLING_ADDED", "CALLBACK_ERROR_ADDED",
                        "SPECIAL_VALUE_GUARD_ADDED"]
        assert factories[0]() is not factories[0]()
