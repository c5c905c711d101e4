"""
Rule names and the accessor that reads a field's (validator.field) option.
"""

import logging
from typing import Any, Optional

from .proto import FIELD_EXTENSION, FieldValidator

logger = logging.getLogger(__name__)

# =============================================================================
# RULE NAMES
# =============================================================================
# These are the FieldValidator field names; violations report them verbatim.

RULE_REGEX = 'regex'
RULE_INT_GT = 'int_gt'
RULE_INT_LT = 'int_lt'
RULE_FLOAT_GT = 'float_gt'
RULE_FLOAT_LT = 'float_lt'
RULE_FLOAT_EPSILON = 'float_epsilon'
RULE_FLOAT_GTE = 'float_gte'
RULE_FLOAT_LTE = 'float_lte'
RULE_STRING_NOT_EMPTY = 'string_not_empty'
RULE_REPEATED_COUNT_MIN = 'repeated_count_min'
RULE_REPEATED_COUNT_MAX = 'repeated_count_max'
RULE_LENGTH_GT = 'length_gt'
RULE_LENGTH_LT = 'length_lt'
RULE_LENGTH_EQ = 'length_eq'
RULE_IS_IN_ENUM = 'is_in_enum'


def rule_for(field: Any) -> Optional[FieldValidator]:
    """
    Return the FieldValidator attached to a field, or None.

    Malformed or incompatible metadata never raises; it is logged and the
    field is treated as carrying no rule.

    Args:
        field: A protobuf FieldDescriptor.
    """
    try:
        if not getattr(field, 'has_options', True):
            return None
        options = field.GetOptions()
        if options is None or not options.HasExtension(FIELD_EXTENSION):
            return None
        rule = options.Extensions[FIELD_EXTENSION]
    except Exception as e:
        logger.debug("Cannot read rule of field %s: %s",
                     getattr(field, 'full_name', field), e)
        return None

    if not isinstance(rule, FieldValidator):
        logger.debug("Field %s carries a %s instead of a FieldValidator",
                     getattr(field, 'full_name', field), type(rule).__name__)
        return None
    return rule
