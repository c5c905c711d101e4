#!/usr/bin/env python3
# kate: replace-tabs on; indent-width 4;

"""
Validation Engine
=================

Walks a protobuf message through its descriptor and checks every field
against the FieldValidator attached to it with the ``(validator.field)``
option.

Main Flow
---------
1. Visit the message's fields in declaration order, skipping extensions.
2. Read the value. Unset message fields and unselected oneof members are
   absent and trivially valid.
3. Look up the field's rule.
4. Dispatch on cardinality:
   - map: the rule checks each key; values get no rule, only recursion
   - repeated: element count first, then every element in order
   - singular: the value itself
5. Dispatch on value kind; message values recurse, the wrapper field's own
   rule does not apply to them.
6. Return the first violation found. A full pass without one means valid.

Error Handling
--------------
Anything unexpected (an unreadable field, a container of the wrong shape, a
value whose type disagrees with its descriptor) is logged and treated as
valid for that one unit. Sibling fields are still checked.
"""

import logging
import threading
from collections.abc import Mapping
from typing import Any, Optional

from google.protobuf.descriptor import FieldDescriptor

from . import checkers
from .checkers import ValueKind, is_map, is_repeated
from .config import ValidatorConfig
from .errors import ValidationError
from .pattern_cache import PatternCache, default_cache
from .rules import rule_for

logger = logging.getLogger(__name__)


# =============================================================================
# DESCRIPTOR HELPERS
# =============================================================================

def _read_field(message: Any, field: Any) -> Any:
    """Return a field's value, or None when the field is absent."""
    if field.containing_oneof is not None and not message.HasField(field.name):
        return None
    if field.type == FieldDescriptor.TYPE_MESSAGE and not is_repeated(field) \
            and not message.HasField(field.name):
        return None
    return getattr(message, field.name)


# =============================================================================
# VALIDATOR
# =============================================================================

class Validator:
    """
    Checks protobuf messages against their (validator.field) rules.

    A Validator keeps no per-call state, so one instance can serve many
    threads. The only shared mutable state is its PatternCache.

    Attributes:
        cache: Compiled ``regex`` rules. Defaults to the process-wide cache.
        config: Depth limit and string length mode.
    """

    def __init__(self, cache: Optional[PatternCache] = None,
                 config: Optional[ValidatorConfig] = None):
        self.cache = cache if cache is not None else default_cache
        self.config = config if config is not None else ValidatorConfig()

    def validate(self, message: Any) -> Optional[ValidationError]:
        """
        Validate a message and everything nested in it.

        Args:
            message: Any protobuf message instance, or None.

        Returns:
            The first ValidationError found, or None if the message is valid.
        """
        return self._validate_message(message, 0)

    def check(self, message: Any) -> None:
        """Like validate(), but raise the violation instead of returning it."""
        error = self.validate(message)
        if error is not None:
            raise error

    def is_valid(self, message: Any) -> bool:
        return self.validate(message) is None

    def reset_cache(self) -> None:
        self.cache.reset()

    def _validate_message(self, message: Any, depth: int) -> Optional[ValidationError]:
        if message is None:
            return None
        if depth > self.config.max_depth:
            logger.warning("Not validating %s: nesting deeper than %d",
                           type(message).__name__, self.config.max_depth)
            return None

        try:
            fields = message.DESCRIPTOR.fields
        except AttributeError:
            logger.warning("Value of type %s is not a protobuf message",
                           type(message).__name__)
            return None

        for field in fields:
            if field.is_extension:
                continue

            try:
                value = _read_field(message, field)
            except Exception as e:
                logger.warning("Skipping field %s: cannot read value: %s", field.full_name, e)
                continue
            if value is None:
                continue

            rule = rule_for(field)
            if is_map(field):
                error = self._validate_map(field, value, rule, depth)
            elif is_repeated(field):
                error = self._validate_repeated(field, value, rule, depth)
            else:
                error = self._validate_value(field, value, rule, depth)

            if error is not None:
                return error
        return None

    def _validate_map(self, field: Any, value: Any, rule: Any,
                      depth: int) -> Optional[ValidationError]:
        try:
            entries = [(key, item) for key, item in value.items()]
        except (AttributeError, TypeError, ValueError):
            logger.warning("Skipping field %s: value of type %s is not a map",
                           field.full_name, type(value).__name__)
            return None

        entry_type = field.message_type
        key_field = entry_type.fields_by_name['key']
        value_field = entry_type.fields_by_name['value']
        for key, item in entries:
            error = self._validate_value(key_field, key, rule, depth)
            if error is not None:
                return error
            # Map values are only recursed into, never checked against the rule.
            error = self._validate_value(value_field, item, None, depth)
            if error is not None:
                return error
        return None

    def _validate_repeated(self, field: Any, value: Any, rule: Any,
                           depth: int) -> Optional[ValidationError]:
        if isinstance(value, (str, bytes, Mapping)):
            logger.warning("Skipping field %s: value of type %s is not a list",
                           field.full_name, type(value).__name__)
            return None
        try:
            items = list(value)
        except TypeError:
            logger.warning("Skipping field %s: value of type %s is not a list",
                           field.full_name, type(value).__name__)
            return None

        error = checkers.check_count(field, items, rule)
        if error is not None:
            return error

        for item in items:
            error = self._validate_value(field, item, rule, depth)
            if error is not None:
                return error
        return None

    def _validate_value(self, field: Any, value: Any, rule: Any,
                        depth: int) -> Optional[ValidationError]:
        if value is None:
            return None

        kind = checkers.kind_of(field)
        if kind is ValueKind.MESSAGE:
            return self._validate_message(value, depth + 1)
        if rule is None or kind is ValueKind.UNSUPPORTED:
            return None

        try:
            if kind is ValueKind.INTEGER:
                return checkers.check_integer(field, value, rule)
            if kind is ValueKind.FLOAT:
                return checkers.check_float(field, value, rule)
            if kind is ValueKind.STRING:
                return checkers.check_string(field, value, rule, self.cache,
                                             self.config.string_length)
            if kind is ValueKind.BYTES:
                return checkers.check_bytes(field, value, rule)
            if kind is ValueKind.ENUM:
                return checkers.check_enum(field, value, rule)
        except Exception as e:
            logger.warning("Skipping check of field %s (%s): %s",
                           getattr(field, 'full_name', field), kind.value, e)
            return None

        raise AssertionError("unhandled value kind %r" % kind)


# =============================================================================
# MODULE-LEVEL API
# =============================================================================

_default_validator = None
_default_lock = threading.Lock()


def default_validator() -> Validator:
    """Return the process-wide Validator, configured from the environment."""
    global _default_validator
    if _default_validator is None:
        with _default_lock:
            if _default_validator is None:
                try:
                    config = ValidatorConfig.from_env()
                except ValueError as e:
                    logger.warning("Ignoring validator environment settings: %s", e)
                    config = ValidatorConfig()
                _default_validator = Validator(default_cache, config)
    return _default_validator


def validate(message: Any) -> Optional[ValidationError]:
    """Validate a message with the process-wide Validator."""
    return default_validator().validate(message)


def is_valid(message: Any) -> bool:
    return default_validator().is_valid(message)


def reset_cache() -> None:
    """Clear the process-wide pattern cache."""
    default_cache.reset()
