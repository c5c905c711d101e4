"""
Reflective validation of protobuf messages against (validator.field) rules.

Example:
    >>> import pbvalidator
    >>> error = pbvalidator.validate(person)
    >>> if error is not None:
    ...     print(error.field_name, error.constraint, error.actual)
"""

from .checkers import ValueKind
from .config import ValidatorConfig
from .errors import ValidationError
from .pattern_cache import PatternCache
from .proto import FIELD_EXTENSION, FieldValidator
from .rules import rule_for
from .schema import collect_rules, describe_rule, lint_message, lint_rule
from .validator import Validator, is_valid, reset_cache, validate

__version__ = '0.1.0'

__all__ = [
    'FIELD_EXTENSION',
    'FieldValidator',
    'PatternCache',
    'ValidationError',
    'Validator',
    'ValidatorConfig',
    'ValueKind',
    'collect_rules',
    'describe_rule',
    'is_valid',
    'lint_message',
    'lint_rule',
    'reset_cache',
    'rule_for',
    'validate',
]
