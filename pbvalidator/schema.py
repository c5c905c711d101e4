"""
Schema inspection and lint for (validator.field) rules.

Nothing here runs during validation. These helpers look at descriptors only,
so they can be used at schema load time or in a test suite to catch rules
that can never be satisfied or can never apply.
"""

import re
from collections import OrderedDict
from typing import Any, Dict, List, Optional, Set, Tuple

from . import rules as r
from .checkers import ValueKind, is_map, is_repeated, kind_of
from .rules import rule_for

_INT_RULES = (r.RULE_INT_GT, r.RULE_INT_LT)
_FLOAT_RULES = (r.RULE_FLOAT_GT, r.RULE_FLOAT_LT, r.RULE_FLOAT_EPSILON,
                r.RULE_FLOAT_GTE, r.RULE_FLOAT_LTE)
_LENGTH_RULES = (r.RULE_LENGTH_GT, r.RULE_LENGTH_LT, r.RULE_LENGTH_EQ)
_COUNT_RULES = (r.RULE_REPEATED_COUNT_MIN, r.RULE_REPEATED_COUNT_MAX)

# Rules that have an effect on each kind of value
_APPLICABLE_RULES = {
    ValueKind.INTEGER: set(_INT_RULES),
    ValueKind.FLOAT: set(_FLOAT_RULES),
    ValueKind.STRING: {r.RULE_REGEX, r.RULE_STRING_NOT_EMPTY} | set(_LENGTH_RULES),
    ValueKind.BYTES: set(_LENGTH_RULES),
    ValueKind.ENUM: {r.RULE_IS_IN_ENUM},
    ValueKind.MESSAGE: set(),
    ValueKind.UNSUPPORTED: set(),
}


def describe_rule(rule: Any) -> Dict[str, Any]:
    """Return the constraints set on a FieldValidator, in field-number order."""
    if rule is None:
        return OrderedDict()
    return OrderedDict((fd.name, value) for fd, value in rule.ListFields())


def collect_rules(message_descriptor: Any) -> Dict[str, Any]:
    """Map field name to FieldValidator for every field of a message that has one."""
    result = OrderedDict()
    for field in message_descriptor.fields:
        rule = rule_for(field)
        if rule is not None:
            result[field.name] = rule
    return result


def _float_conflicts(rule: Any) -> List[str]:
    epsilon = rule.float_epsilon if rule.HasField(r.RULE_FLOAT_EPSILON) else 0.0
    # (name, bound, strict) after widening by epsilon
    lower: List[Tuple[str, float, bool]] = []
    upper: List[Tuple[str, float, bool]] = []
    if rule.HasField(r.RULE_FLOAT_GT):
        lower.append((r.RULE_FLOAT_GT, rule.float_gt - epsilon, True))
    if rule.HasField(r.RULE_FLOAT_GTE):
        lower.append((r.RULE_FLOAT_GTE, rule.float_gte - epsilon, False))
    if rule.HasField(r.RULE_FLOAT_LT):
        upper.append((r.RULE_FLOAT_LT, rule.float_lt + epsilon, True))
    if rule.HasField(r.RULE_FLOAT_LTE):
        upper.append((r.RULE_FLOAT_LTE, rule.float_lte + epsilon, False))

    problems = []
    for low_name, low, low_strict in lower:
        for high_name, high, high_strict in upper:
            if low > high or (low == high and (low_strict or high_strict)):
                problems.append('%s=%r and %s=%r accept no value' % (
                    low_name, getattr(rule, low_name), high_name, getattr(rule, high_name)))
    return problems


def lint_rule(rule: Any, field: Optional[Any] = None) -> List[str]:
    """
    Report problems with a single FieldValidator.

    Args:
        rule: The FieldValidator to inspect.
        field: Optional descriptor of the field carrying the rule. When given,
               constraints that cannot apply to the field's kind are reported.

    Returns:
        Human readable problem descriptions; empty if none were found.
    """
    problems: List[str] = []
    if rule is None:
        return problems
    has = rule.HasField

    if has(r.RULE_INT_GT) and has(r.RULE_INT_LT) and rule.int_gt >= rule.int_lt - 1:
        problems.append('int_gt=%d and int_lt=%d accept no value' % (rule.int_gt, rule.int_lt))

    problems.extend(_float_conflicts(rule))
    if has(r.RULE_FLOAT_EPSILON) and rule.float_epsilon < 0:
        problems.append('float_epsilon=%r is negative' % rule.float_epsilon)

    if has(r.RULE_LENGTH_GT) and has(r.RULE_LENGTH_LT) and rule.length_gt >= rule.length_lt - 1:
        problems.append('length_gt=%d and length_lt=%d accept no length' % (
            rule.length_gt, rule.length_lt))
    if has(r.RULE_LENGTH_EQ):
        if rule.length_eq < 0:
            problems.append('length_eq=%d is negative' % rule.length_eq)
        if has(r.RULE_LENGTH_GT) and rule.length_eq <= rule.length_gt:
            problems.append('length_eq=%d contradicts length_gt=%d' % (rule.length_eq, rule.length_gt))
        if has(r.RULE_LENGTH_LT) and rule.length_eq >= rule.length_lt:
            problems.append('length_eq=%d contradicts length_lt=%d' % (rule.length_eq, rule.length_lt))

    if has(r.RULE_REPEATED_COUNT_MIN) and has(r.RULE_REPEATED_COUNT_MAX) \
            and rule.repeated_count_min > rule.repeated_count_max:
        problems.append('repeated_count_min=%d exceeds repeated_count_max=%d' % (
            rule.repeated_count_min, rule.repeated_count_max))

    if has(r.RULE_REGEX):
        try:
            re.compile(rule.regex)
        except re.error as e:
            problems.append('regex %r does not compile: %s' % (rule.regex, e))

    if field is not None:
        problems.extend(_inapplicable_rules(rule, field))
    return problems


def _inapplicable_rules(rule: Any, field: Any) -> List[str]:
    target = field
    if is_map(field):
        # The rule of a map field applies to its keys
        target = field.message_type.fields_by_name['key']

    kind = kind_of(target)
    allowed = set(_APPLICABLE_RULES[kind])
    if is_repeated(field) and not is_map(field):
        allowed.update(_COUNT_RULES)

    problems = []
    for fd, _ in rule.ListFields():
        if fd.name not in allowed:
            problems.append('%s has no effect on %s field' % (fd.name, kind.value))
    return problems


def lint_message(message_descriptor: Any, recursive: bool = True) -> List[str]:
    """
    Lint every rule of a message type.

    Args:
        message_descriptor: Descriptor of the message type to inspect.
        recursive: Also lint message types reachable through fields. Each
                   type is visited once, so recursive schemas terminate.

    Returns:
        Problems prefixed with the full name of the offending field.
    """
    problems: List[str] = []
    visited: Set[str] = set()
    pending = [message_descriptor]

    while pending:
        descriptor = pending.pop(0)
        if descriptor.full_name in visited:
            continue
        visited.add(descriptor.full_name)

        for field in descriptor.fields:
            rule = rule_for(field)
            for problem in lint_rule(rule, field):
                problems.append('%s: %s' % (field.full_name, problem))
            if recursive and field.message_type is not None:
                pending.append(field.message_type)
    return problems
