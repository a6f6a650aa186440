"""Tests for response body assertions and business code extraction."""

import pytest

from stressbench.core.models import AssertionRule, SuccessCondition
from stressbench.core.success import ABSENT, SuccessEvaluator, evaluate, resolve_path, stringify


def condition(field_path, operator, value=None, logic="AND"):
    return SuccessCondition(rules=[AssertionRule(field_path, operator, value)], logic=logic)


@pytest.mark.unit
class TestResolvePath:
    """Dot-path lookups through parsed JSON."""

    def test_nested_key(self):
        assert resolve_path({"data": {"status": "ok"}}, "data.status") == "ok"

    def test_missing_intermediate_key_is_absent(self):
        assert resolve_path({"data": {}}, "data.status.code") is ABSENT
        assert resolve_path({"code": 1}, "data.status") is ABSENT

    def test_array_index(self):
        doc = {"items": [{"id": 3}, {"id": 7}]}
        assert resolve_path(doc, "items.1.id") == 7
        assert resolve_path(doc, "items.5.id") is ABSENT
        assert resolve_path(doc, "items.first") is ABSENT

    def test_null_is_present(self):
        assert resolve_path({"code": None}, "code") is None


@pytest.mark.unit
class TestStringify:
    def test_scalars(self):
        assert stringify(0) == "0"
        assert stringify(200.0) == "200"
        assert stringify(1.5) == "1.5"
        assert stringify(True) == "true"
        assert stringify("ok") == "ok"

    def test_absent_and_null(self):
        assert stringify(ABSENT) is None
        assert stringify(None) is None

    def test_containers_are_compact_json(self):
        assert stringify({"a": 1}) == '{"a":1}'
        assert stringify([1, 2]) == "[1,2]"


@pytest.mark.unit
class TestEvaluate:
    """Classification of a response against a condition."""

    def test_code_equals(self):
        assert evaluate('{"code":"0"}', condition("code", "equals", "0"), True) == (True, "0")

    def test_nested_field_equals(self):
        success, code = evaluate(
            '{"data":{"status":"ok"}}', condition("data.status", "equals", "ok"), True
        )
        assert success is True
        assert code == "ok"

    def test_empty_body_not_exists(self):
        success, code = evaluate("", condition("code", "notExists"), True)
        assert success is True
        assert code is None

    def test_malformed_body_equals_fails(self):
        success, code = evaluate("<html>oops</html>", condition("code", "equals", "0"), True)
        assert success is False
        assert code is None

    def test_numeric_code_compared_as_string(self):
        assert evaluate('{"code": 0}', condition("code", "equals", "0"), True) == (True, "0")

    def test_mismatch_records_actual_code(self):
        assert evaluate('{"code": 1001}', condition("code", "equals", "0"), True) == (False, "1001")

    def test_absent_field_business_code(self):
        success, code = evaluate('{"msg": "hi"}', condition("code", "equals", "0"), True)
        assert success is False
        assert code == "N/A"

    def test_not_equals_on_absent_field_passes(self):
        assert evaluate("{}", condition("code", "notEquals", "500"), True)[0] is True

    def test_contains_and_not_contains(self):
        body = '{"message": "order accepted"}'
        assert evaluate(body, condition("message", "contains", "accepted"), True)[0] is True
        assert evaluate(body, condition("message", "notContains", "rejected"), True)[0] is True
        assert evaluate("{}", condition("message", "contains", ""), True)[0] is False
        assert evaluate("{}", condition("message", "notContains", "x"), True)[0] is True

    def test_null_value_exists(self):
        success, code = evaluate('{"data": null}', condition("data", "exists"), True)
        assert success is True
        assert code == "N/A"

    def test_condition_overrides_http_status(self):
        # Business-level success on a non-2xx status
        assert evaluate('{"code":"0"}', condition("code", "equals", "0"), False)[0] is True

    def test_no_condition_uses_http_status(self):
        assert evaluate('{"code":"9"}', None, True) == (True, None)
        assert evaluate('{"code":"0"}', None, False) == (False, None)

    def test_disabled_condition_uses_http_status(self):
        disabled = condition("code", "equals", "0")
        disabled.enabled = False
        assert evaluate('{"code":"9"}', disabled, True) == (True, None)


@pytest.mark.unit
class TestCombinedRules:
    """AND/OR over several rules."""

    def setup_method(self):
        self.rules = [
            AssertionRule("code", "equals", "0"),
            AssertionRule("data.id", "exists"),
        ]

    def test_and_requires_all(self):
        cond = SuccessCondition(rules=self.rules, logic="AND")
        assert evaluate('{"code":"0","data":{"id":1}}', cond, True) == (True, "0")
        assert evaluate('{"code":"0","data":{}}', cond, True) == (False, "0")

    def test_or_requires_any(self):
        cond = SuccessCondition(rules=self.rules, logic="OR")
        assert evaluate('{"code":"7","data":{"id":1}}', cond, True) == (True, "7")
        assert evaluate('{"code":"7"}', cond, True) == (False, "7")

    def test_unparseable_body_with_or(self):
        cond = SuccessCondition(
            rules=[AssertionRule("code", "equals", "0"), AssertionRule("code", "notExists")],
            logic="OR",
        )
        assert evaluate("not json", cond, True) == (True, None)


@pytest.mark.unit
def test_evaluator_binds_condition():
    evaluator = SuccessEvaluator(condition("status", "equals", "ok"))
    assert evaluator('{"status":"ok"}', False) == (True, "ok")
    assert SuccessEvaluator()(None, True) == (True, None)
