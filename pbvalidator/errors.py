"""Violation reported by the validator."""

from typing import Any, Dict

from google.protobuf import descriptor_pb2

# TYPE_INT32 -> 'int32', TYPE_MESSAGE -> 'message', ...
_TYPE_NAMES = {
    number: name[len('TYPE_'):].lower()
    for name, number in descriptor_pb2.FieldDescriptorProto.Type.items()
}


def type_name(field: Any) -> str:
    """Return the lowercase protobuf type name of a field descriptor."""
    field_type = getattr(field, 'type', None)
    return _TYPE_NAMES.get(field_type, 'unknown')


class ValidationError(Exception):
    """
    A single failed constraint.

    Attributes:
        field: Descriptor of the offending field. For map keys this is the
               key descriptor of the map entry type.
        constraint: Name of the violated rule, e.g. 'int_gt'.
        threshold: The value configured for that rule.
        actual: The observed value, or the aggregate (length, element count)
                the rule was compared against.
    """

    def __init__(self, field: Any, constraint: str, threshold: Any, actual: Any):
        self.field = field
        self.constraint = constraint
        self.threshold = threshold
        self.actual = actual
        super().__init__(field, constraint, threshold, actual)

    @property
    def field_name(self) -> str:
        return getattr(self.field, 'name', str(self.field))

    @property
    def field_full_name(self) -> str:
        return getattr(self.field, 'full_name', self.field_name)

    @property
    def field_type(self) -> str:
        return type_name(self.field)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'field': self.field_full_name,
            'type': self.field_type,
            'constraint': self.constraint,
            'threshold': self.threshold,
            'actual': self.actual,
        }

    def __str__(self) -> str:
        return 'field[%s (type:%s)] rule[%s(threshold:%r)] actual[%r]' % (
            self.field_name, self.field_type, self.constraint,
            self.threshold, self.actual)

    def __repr__(self) -> str:
        return 'ValidationError(%s)' % self

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ValidationError):
            return NotImplemented
        return ((self.field_full_name, self.constraint, self.threshold, self.actual) ==
                (other.field_full_name, other.constraint, other.threshold, other.actual))

    def __hash__(self) -> int:
        return hash((self.field_full_name, self.constraint, self.threshold))
