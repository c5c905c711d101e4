"""
Pytest configuration and shared fixtures for pbvalidator tests.

Test schemas are assembled at runtime as FileDescriptorProto objects that
carry (validator.field) options, added to the default descriptor pool and
turned into message classes. This keeps the suite independent of protoc.

Key concepts:
    - SchemaBuilder creates one throwaway .proto file per instance
    - single_field builds a message with one rule-carrying field named 'value'
    - scenario_types holds the Person/Team/Node schema shared by most tests
"""

import itertools
from typing import Any, Dict, Optional

import pytest
from google.protobuf import descriptor_pb2
from google.protobuf import descriptor_pool
from google.protobuf import message_factory

from pbvalidator import FIELD_EXTENSION, FieldValidator, PatternCache, Validator
from pbvalidator.proto import DESCRIPTOR as VALIDATOR_FILE


# =============================================================================
# Schema Builder
# =============================================================================

_FieldProto = descriptor_pb2.FieldDescriptorProto

# 'int32' -> TYPE_INT32, 'message' -> TYPE_MESSAGE, ...
FIELD_TYPES = {
    name[len('TYPE_'):].lower(): number
    for name, number in _FieldProto.Type.items()
}

_file_counter = itertools.count()


class MessageBuilder:
    """Adds fields to one message of a SchemaBuilder."""

    def __init__(self, builder: 'SchemaBuilder', proto: descriptor_pb2.DescriptorProto):
        self.builder = builder
        self.proto = proto

    def _add(self, name: str, kind: str, repeated: bool, ref: Optional[str]) -> _FieldProto:
        field = self.proto.field.add(
            name=name,
            number=len(self.proto.field) + 1,
            label=_FieldProto.LABEL_REPEATED if repeated else _FieldProto.LABEL_OPTIONAL,
            type=FIELD_TYPES[kind],
        )
        if ref is not None:
            field.type_name = self.builder.ref(ref)
        return field

    @staticmethod
    def _attach(field: _FieldProto, rule: Optional[Dict[str, Any]]) -> None:
        if rule:
            field.options.Extensions[FIELD_EXTENSION].CopyFrom(FieldValidator(**rule))

    def field(self, name: str, kind: str, rule: Optional[Dict[str, Any]] = None,
              repeated: bool = False, ref: Optional[str] = None,
              oneof: Optional[str] = None) -> 'MessageBuilder':
        field = self._add(name, kind, repeated, ref)
        if oneof is not None:
            names = [decl.name for decl in self.proto.oneof_decl]
            if oneof not in names:
                self.proto.oneof_decl.add(name=oneof)
                names.append(oneof)
            field.oneof_index = names.index(oneof)
        self._attach(field, rule)
        return self

    def map_field(self, name: str, key_kind: str, value_kind: str,
                  rule: Optional[Dict[str, Any]] = None,
                  value_ref: Optional[str] = None) -> 'MessageBuilder':
        entry_name = ''.join(part.capitalize() for part in name.split('_')) + 'Entry'
        entry = self.proto.nested_type.add(name=entry_name)
        entry.options.map_entry = True
        entry.field.add(name='key', number=1, label=_FieldProto.LABEL_OPTIONAL,
                        type=FIELD_TYPES[key_kind])
        value = entry.field.add(name='value', number=2, label=_FieldProto.LABEL_OPTIONAL,
                                type=FIELD_TYPES[value_kind])
        if value_ref is not None:
            value.type_name = self.builder.ref(value_ref)

        field = self._add(name, 'message', True, None)
        field.type_name = self.builder.ref('%s.%s' % (self.proto.name, entry_name))
        self._attach(field, rule)
        return self


class SchemaBuilder:
    """Builds a uniquely named proto3 file in a descriptor pool."""

    def __init__(self, pool: Optional[descriptor_pool.DescriptorPool] = None):
        number = next(_file_counter)
        self.pool = pool if pool is not None else descriptor_pool.Default()
        self.package = 'pbvalidator_tests.schema%d' % number
        self.file_proto = descriptor_pb2.FileDescriptorProto(
            name='pbvalidator_tests/schema%d.proto' % number,
            package=self.package,
            syntax='proto3',
            dependency=[VALIDATOR_FILE.name],
        )

    def ref(self, name: str) -> str:
        return '.%s.%s' % (self.package, name)

    def enum(self, name: str, *values: str) -> 'SchemaBuilder':
        """Add an enum whose values are numbered 0, 1, 2, ... in order."""
        enum_proto = self.file_proto.enum_type.add(name=name)
        for number, value_name in enumerate(values):
            enum_proto.value.add(name=value_name, number=number)
        return self

    def message(self, name: str) -> MessageBuilder:
        return MessageBuilder(self, self.file_proto.message_type.add(name=name))

    def build(self) -> Dict[str, Any]:
        """Register the file and return its top-level message classes by name."""
        self.pool.AddSerializedFile(self.file_proto.SerializeToString())
        file_desc = self.pool.FindFileByName(self.file_proto.name)
        return {
            name: message_factory.GetMessageClass(desc)
            for name, desc in file_desc.message_types_by_name.items()
        }


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def schema() -> SchemaBuilder:
    """Provide a fresh SchemaBuilder."""
    return SchemaBuilder()


@pytest.fixture
def single_field():
    """
    Factory for a message with one field named 'value'.

    Usage: single_field('int64', int_gt=0) or
           single_field('string', repeated=True, repeated_count_min=1)

    Enum fields use an enum with values 0 (UNKNOWN), 1 (RED) and 2 (GREEN).
    """
    def make(kind: str, repeated: bool = False, **rule):
        builder = SchemaBuilder()
        ref = None
        if kind == 'enum':
            builder.enum('Color', 'COLOR_UNKNOWN', 'COLOR_RED', 'COLOR_GREEN')
            ref = 'Color'
        builder.message('Single').field('value', kind, rule or None, repeated=repeated, ref=ref)
        return builder.build()['Single']
    return make


@pytest.fixture
def pattern_cache() -> PatternCache:
    """Provide an empty, test-private pattern cache."""
    return PatternCache()


@pytest.fixture
def validator(pattern_cache: PatternCache) -> Validator:
    """Provide a Validator isolated from the process-wide cache."""
    return Validator(cache=pattern_cache)


@pytest.fixture(scope="session")
def scenario_types() -> Dict[str, Any]:
    """
    Shared schema used by the scenario and engine tests.

    Person carries one rule per value kind; Team nests Person singularly,
    as a list and as map values; Node is self-recursive.
    """
    builder = SchemaBuilder()
    builder.enum('Role', 'ROLE_UNSPECIFIED', 'ROLE_MEMBER', 'ROLE_LEAD')

    (builder.message('Person')
        .field('age', 'int32', {'int_gt': 0, 'int_lt': 150})
        .field('name', 'string', {'string_not_empty': True, 'length_lt': 50})
        .field('tags', 'string', {'repeated_count_min': 1, 'repeated_count_max': 3,
                                  'regex': '[a-z]+'}, repeated=True)
        .field('score', 'float', {'float_gte': 0.30, 'float_epsilon': 0.05})
        .field('role', 'enum', {'is_in_enum': True}, ref='Role')
        .field('badge', 'bytes', {'length_lt': 8})
        .field('active', 'bool'))

    (builder.message('Team')
        .field('lead', 'message', ref='Person')
        .field('members', 'message', {'repeated_count_max': 5}, repeated=True, ref='Person')
        .map_field('by_handle', 'string', 'message', {'length_gt': 2}, value_ref='Person')
        .map_field('quotas', 'string', 'int32', {'length_lt': 4})
        .field('motto', 'string', {'length_gt': 3}, oneof='banner')
        .field('emblem', 'bytes', {'length_eq': 4}, oneof='banner'))

    (builder.message('Node')
        .field('value', 'int32', {'int_lt': 100})
        .field('child', 'message', ref='Node'))

    return builder.build()


def make_person(types: Dict[str, Any], **overrides):
    """Return a Person that satisfies every rule, with overrides applied."""
    values = {
        'age': 30,
        'name': 'Ada',
        'tags': ['math', 'logic'],
        'score': 0.9,
        'role': 1,
        'badge': b'\x01\x02',
    }
    values.update(overrides)
    return types['Person'](**values)


# =============================================================================
# Pytest Markers
# =============================================================================

def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "cache: marks pattern cache tests"
    )
    config.addinivalue_line(
        "markers", "rules: marks tests of the rule extension and accessor"
    )
    config.addinivalue_line(
        "markers", "checkers: marks tests of the typed value checkers"
    )
    config.addinivalue_line(
        "markers", "engine: marks tests of message traversal and dispatch"
    )
    config.addinivalue_line(
        "markers", "scenarios: marks end-to-end validation scenarios"
    )
    config.addinivalue_line(
        "markers", "schema: marks schema inspection and lint tests"
    )
