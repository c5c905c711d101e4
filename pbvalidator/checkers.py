#!/usr/bin/env python3
# kate: replace-tabs on; indent-width 4;

"""
Typed Checkers
==============

One checker per value kind. Each takes the field descriptor (used only to
name the field in a violation), the field value and its FieldValidator, and
returns a ValidationError for the first failed constraint or None.

Comparison policy
-----------------
- Integers: every signed, unsigned, zigzag and fixed width is compared as an
  exact Python int. ``int_gt`` and ``int_lt`` are strict.
- Floats: float and double compare as Python floats. The value is widened by
  ``float_epsilon`` (0 when unset) before each comparison: the upper edge
  ``value + eps`` is checked against ``float_gt``/``float_gte`` and the lower
  edge ``value - eps`` against ``float_lt``/``float_lte``.
- Strings: ``string_not_empty``, then ``length_gt``, ``length_lt``,
  ``length_eq``, then ``regex`` as a full match. A pattern that does not
  compile is logged and skipped. Lengths count UTF-8 bytes unless the
  config asks for code points.
- Bytes: length rules only.
- Enums: ``is_in_enum`` requires one of the declared enum numbers.
- Repeated fields: ``repeated_count_min``/``repeated_count_max`` are inclusive
  bounds on the element count.

A value of the wrong Python type raises TypeError; the engine treats that as
an internal anomaly, not a violation.
"""

import enum
import logging
import numbers
import re
from typing import Any, Optional, Sequence

from google.protobuf.descriptor import FieldDescriptor

from . import rules as r
from .config import STRING_LENGTH_BYTES, STRING_LENGTH_CHARS
from .errors import ValidationError
from .pattern_cache import PatternCache

logger = logging.getLogger(__name__)


class ValueKind(enum.Enum):
    """Closed set of value kinds the validator dispatches on."""
    INTEGER = 'integer'
    FLOAT = 'float'
    STRING = 'string'
    BYTES = 'bytes'
    ENUM = 'enum'
    MESSAGE = 'message'
    UNSUPPORTED = 'unsupported'


_KIND_BY_TYPE = {
    FieldDescriptor.TYPE_INT32: ValueKind.INTEGER,
    FieldDescriptor.TYPE_SINT32: ValueKind.INTEGER,
    FieldDescriptor.TYPE_SFIXED32: ValueKind.INTEGER,
    FieldDescriptor.TYPE_INT64: ValueKind.INTEGER,
    FieldDescriptor.TYPE_SINT64: ValueKind.INTEGER,
    FieldDescriptor.TYPE_SFIXED64: ValueKind.INTEGER,
    FieldDescriptor.TYPE_UINT32: ValueKind.INTEGER,
    FieldDescriptor.TYPE_FIXED32: ValueKind.INTEGER,
    FieldDescriptor.TYPE_UINT64: ValueKind.INTEGER,
    FieldDescriptor.TYPE_FIXED64: ValueKind.INTEGER,
    FieldDescriptor.TYPE_FLOAT: ValueKind.FLOAT,
    FieldDescriptor.TYPE_DOUBLE: ValueKind.FLOAT,
    FieldDescriptor.TYPE_STRING: ValueKind.STRING,
    FieldDescriptor.TYPE_BYTES: ValueKind.BYTES,
    FieldDescriptor.TYPE_ENUM: ValueKind.ENUM,
    FieldDescriptor.TYPE_MESSAGE: ValueKind.MESSAGE,
}


def kind_of(field: Any) -> ValueKind:
    """Classify a field descriptor; bool, group and unknown types are UNSUPPORTED."""
    return _KIND_BY_TYPE.get(getattr(field, 'type', None), ValueKind.UNSUPPORTED)


def is_repeated(field: Any) -> bool:
    """True for repeated fields, maps included."""
    repeated = getattr(field, 'is_repeated', None)
    if isinstance(repeated, bool):
        return repeated
    return field.label == FieldDescriptor.LABEL_REPEATED


def is_map(field: Any) -> bool:
    if field.type != FieldDescriptor.TYPE_MESSAGE or not is_repeated(field):
        return False
    message_type = field.message_type
    return message_type is not None and message_type.GetOptions().map_entry


def _require_int(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, numbers.Integral):
        raise TypeError("expected an integer, got %s" % type(value).__name__)
    return int(value)


def _require_float(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        raise TypeError("expected a number, got %s" % type(value).__name__)
    return float(value)


def _check_lengths(field: Any, length: int, rule: Any) -> Optional[ValidationError]:
    if rule.HasField(r.RULE_LENGTH_GT) and not length > rule.length_gt:
        return ValidationError(field, r.RULE_LENGTH_GT, rule.length_gt, length)
    if rule.HasField(r.RULE_LENGTH_LT) and not length < rule.length_lt:
        return ValidationError(field, r.RULE_LENGTH_LT, rule.length_lt, length)
    if rule.HasField(r.RULE_LENGTH_EQ) and not length == rule.length_eq:
        return ValidationError(field, r.RULE_LENGTH_EQ, rule.length_eq, length)
    return None


def check_integer(field: Any, value: Any, rule: Any) -> Optional[ValidationError]:
    if rule is None:
        return None
    value = _require_int(value)

    if rule.HasField(r.RULE_INT_GT) and not value > rule.int_gt:
        return ValidationError(field, r.RULE_INT_GT, rule.int_gt, value)
    if rule.HasField(r.RULE_INT_LT) and not value < rule.int_lt:
        return ValidationError(field, r.RULE_INT_LT, rule.int_lt, value)
    return None


def check_float(field: Any, value: Any, rule: Any) -> Optional[ValidationError]:
    if rule is None:
        return None
    value = _require_float(value)

    epsilon = rule.float_epsilon if rule.HasField(r.RULE_FLOAT_EPSILON) else 0.0
    value_max = value + epsilon
    value_min = value - epsilon

    if rule.HasField(r.RULE_FLOAT_GT) and not value_max > rule.float_gt:
        return ValidationError(field, r.RULE_FLOAT_GT, rule.float_gt, value)
    if rule.HasField(r.RULE_FLOAT_LT) and not value_min < rule.float_lt:
        return ValidationError(field, r.RULE_FLOAT_LT, rule.float_lt, value)
    if rule.HasField(r.RULE_FLOAT_GTE) and not value_max >= rule.float_gte:
        return ValidationError(field, r.RULE_FLOAT_GTE, rule.float_gte, value)
    if rule.HasField(r.RULE_FLOAT_LTE) and not value_min <= rule.float_lte:
        return ValidationError(field, r.RULE_FLOAT_LTE, rule.float_lte, value)
    return None


def check_string(field: Any, value: Any, rule: Any, patterns: PatternCache,
                 length_mode: str = STRING_LENGTH_BYTES) -> Optional[ValidationError]:
    """
    Check a string value.

    Args:
        field: Descriptor used to name the field in a violation.
        value: The string to check.
        rule: The field's FieldValidator, or None.
        patterns: Cache used to compile ``regex``.
        length_mode: 'bytes' or 'chars', see ValidatorConfig.string_length.
    """
    if rule is None:
        return None
    if not isinstance(value, str):
        raise TypeError("expected a string, got %s" % type(value).__name__)

    if rule.HasField(r.RULE_STRING_NOT_EMPTY) and rule.string_not_empty and value == '':
        return ValidationError(field, r.RULE_STRING_NOT_EMPTY, rule.string_not_empty, value)

    if length_mode == STRING_LENGTH_CHARS:
        length = len(value)
    else:
        length = len(value.encode('utf-8'))
    error = _check_lengths(field, length, rule)
    if error is not None:
        return error

    if rule.HasField(r.RULE_REGEX):
        try:
            pattern = patterns.get(rule.regex)
        except re.error as e:
            logger.warning("Ignoring regex %r of field %s: %s",
                           rule.regex, getattr(field, 'full_name', field), e)
        else:
            if pattern.fullmatch(value) is None:
                return ValidationError(field, r.RULE_REGEX, rule.regex, value)
    return None


def check_bytes(field: Any, value: Any, rule: Any) -> Optional[ValidationError]:
    if rule is None:
        return None
    if not isinstance(value, (bytes, bytearray)):
        raise TypeError("expected bytes, got %s" % type(value).__name__)
    return _check_lengths(field, len(value), rule)


def check_enum(field: Any, value: Any, rule: Any) -> Optional[ValidationError]:
    if rule is None or not rule.HasField(r.RULE_IS_IN_ENUM) or not rule.is_in_enum:
        return None
    value = _require_int(value)

    if value in field.enum_type.values_by_number:
        return None
    return ValidationError(field, r.RULE_IS_IN_ENUM, rule.is_in_enum, value)


def check_count(field: Any, values: Sequence[Any], rule: Any) -> Optional[ValidationError]:
    """Check the element count of a repeated field, before any element."""
    if rule is None:
        return None

    count = len(values)
    if rule.HasField(r.RULE_REPEATED_COUNT_MIN) and not count >= rule.repeated_count_min:
        return ValidationError(field, r.RULE_REPEATED_COUNT_MIN, rule.repeated_count_min, count)
    if rule.HasField(r.RULE_REPEATED_COUNT_MAX) and not count <= rule.repeated_count_max:
        return ValidationError(field, r.RULE_REPEATED_COUNT_MAX, rule.repeated_count_max, count)
    return None
