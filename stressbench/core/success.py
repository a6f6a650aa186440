"""Response success evaluation against JSON body assertions."""

import json
import logging
from typing import Any, List, Optional, Tuple

from .models import ABSENT_CODE, AssertionRule, SuccessCondition

logger = logging.getLogger(__name__)


class _Absent:
    """Marker for a path that does not exist in the document."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "ABSENT"

    def __bool__(self) -> bool:
        return False


ABSENT = _Absent()


def resolve_path(document: Any, path: str) -> Any:
    """
    Walk a dot-separated path through parsed JSON.

    Numeric segments index into arrays. A missing key at any depth yields
    ABSENT; a key holding JSON null yields None, so callers can tell
    "present but null" from "not there".
    """
    current = document
    for key in path.split("."):
        if isinstance(current, dict):
            if key not in current:
                return ABSENT
            current = current[key]
        elif isinstance(current, list):
            try:
                index = int(key)
            except ValueError:
                return ABSENT
            if not 0 <= index < len(current):
                return ABSENT
            current = current[index]
        else:
            return ABSENT
    return current


def stringify(value: Any) -> Optional[str]:
    """String form used for comparisons; None for absent or null values."""
    if value is ABSENT or value is None:
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (dict, list)):
        return json.dumps(value, separators=(",", ":"), ensure_ascii=False)
    return str(value)


def _check_rule(rule: AssertionRule, document: Any) -> Tuple[bool, str]:
    value = resolve_path(document, rule.field)
    text = stringify(value)
    business_code = text if text is not None else ABSENT_CODE
    expected = rule.value if rule.value is not None else ""

    op = rule.operator
    if op == "equals":
        success = text == expected
    elif op == "notEquals":
        success = text != expected
    elif op == "contains":
        success = text is not None and expected in text
    elif op == "notContains":
        success = text is None or expected not in text
    elif op == "exists":
        success = value is not ABSENT
    elif op == "notExists":
        success = value is ABSENT
    else:
        raise ValueError(f"Unknown assertion operator: {op}")

    return success, business_code


def _unparseable_outcome(rule: AssertionRule) -> bool:
    # Without a document only presence checks have an answer
    return rule.operator == "notExists"


def _combine(outcomes: List[bool], logic: str) -> bool:
    if logic == "OR":
        return any(outcomes)
    return all(outcomes)


def evaluate(
    raw_body: Optional[str],
    condition: Optional[SuccessCondition],
    http_ok: bool,
) -> Tuple[bool, Optional[str]]:
    """
    Classify a response.

    Args:
        raw_body: Response body text, None when nothing was read
        condition: Assertion rules, or None to classify by HTTP status
        http_ok: Whether the HTTP status was 2xx

    Returns:
        Tuple of (success, business_code). business_code is the first rule's
        field value as a string, "N/A" when that field is missing, and None
        when no condition applies or the body is not JSON.
    """
    if condition is None or not condition.is_active:
        return http_ok, None

    document = ABSENT
    if raw_body:
        try:
            document = json.loads(raw_body)
        except ValueError:
            logger.debug("Response body is not JSON; only presence checks can pass")

    if document is ABSENT:
        outcomes = [_unparseable_outcome(rule) for rule in condition.rules]
        return _combine(outcomes, condition.logic), None

    outcomes = []
    business_code = None
    for rule in condition.rules:
        success, code = _check_rule(rule, document)
        outcomes.append(success)
        if business_code is None:
            business_code = code

    return _combine(outcomes, condition.logic), business_code


class SuccessEvaluator:
    """Binds a success condition so dispatchers can call it per response."""

    def __init__(self, condition: Optional[SuccessCondition] = None):
        self.condition = condition

    def __call__(self, raw_body: Optional[str], http_ok: bool) -> Tuple[bool, Optional[str]]:
        return evaluate(raw_body, self.condition, http_ok)
