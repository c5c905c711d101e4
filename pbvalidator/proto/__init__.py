'''This file dynamically builds the validator.proto definitions for Python.

The schema is assembled as a FileDescriptorProto and added to the default
descriptor pool, so no protoc run is needed. If another module already
registered a compatible validator.proto (for example a validator_pb2
generated by protoc), those definitions are reused instead.
'''

import logging

from google.protobuf import descriptor_pb2
from google.protobuf import descriptor_pool
from google.protobuf import message_factory

logger = logging.getLogger(__name__)

PROTO_FILE = 'validator.proto'
PROTO_PACKAGE = 'validator'
EXTENSION_NAME = 'field'
EXTENSION_NUMBER = 65020

_FieldProto = descriptor_pb2.FieldDescriptorProto

# Rule fields in declaration order. The numbers are a wire contract with
# existing schema-compiled artifacts and must not change.
RULE_FIELDS = (
    ('regex', 1, _FieldProto.TYPE_STRING),
    ('int_gt', 2, _FieldProto.TYPE_INT64),
    ('int_lt', 3, _FieldProto.TYPE_INT64),
    ('float_gt', 6, _FieldProto.TYPE_DOUBLE),
    ('float_lt', 7, _FieldProto.TYPE_DOUBLE),
    ('float_epsilon', 8, _FieldProto.TYPE_DOUBLE),
    ('float_gte', 9, _FieldProto.TYPE_DOUBLE),
    ('float_lte', 10, _FieldProto.TYPE_DOUBLE),
    ('string_not_empty', 11, _FieldProto.TYPE_BOOL),
    ('repeated_count_min', 12, _FieldProto.TYPE_INT64),
    ('repeated_count_max', 13, _FieldProto.TYPE_INT64),
    ('length_gt', 14, _FieldProto.TYPE_INT64),
    ('length_lt', 15, _FieldProto.TYPE_INT64),
    ('length_eq', 16, _FieldProto.TYPE_INT64),
    ('is_in_enum', 17, _FieldProto.TYPE_BOOL),
)


def _json_name(name):
    head, *rest = name.split('_')
    return head + ''.join(part.capitalize() for part in rest)


def build_file_proto():
    '''Return the FileDescriptorProto equivalent of validator.proto.'''
    file_proto = descriptor_pb2.FileDescriptorProto(
        name=PROTO_FILE,
        package=PROTO_PACKAGE,
        dependency=['google/protobuf/descriptor.proto'],
    )
    file_proto.options.go_package = '.;validator'

    message = file_proto.message_type.add(name='FieldValidator')
    for name, number, field_type in RULE_FIELDS:
        message.field.add(
            name=name,
            number=number,
            label=_FieldProto.LABEL_OPTIONAL,
            type=field_type,
            json_name=_json_name(name),
        )
    message.reserved_range.add(start=4, end=6)

    file_proto.extension.add(
        name=EXTENSION_NAME,
        number=EXTENSION_NUMBER,
        label=_FieldProto.LABEL_OPTIONAL,
        type=_FieldProto.TYPE_MESSAGE,
        type_name='.%s.FieldValidator' % PROTO_PACKAGE,
        extendee='.google.protobuf.FieldOptions',
        json_name=EXTENSION_NAME,
    )
    return file_proto


def load_validator_descriptor(pool=None):
    '''Register validator.proto in the pool (default pool if None) and
    return its FileDescriptor.

    Message classes and the FieldOptions extension are registered with the
    protobuf runtime as a side effect.
    '''
    if pool is None:
        pool = descriptor_pool.Default()

    full_name = '%s.%s' % (PROTO_PACKAGE, EXTENSION_NAME)
    try:
        file_desc = pool.FindExtensionByName(full_name).file
        logger.debug("Reusing %s from %s", full_name, file_desc.name)
    except KeyError:
        pool.AddSerializedFile(build_file_proto().SerializeToString())
        file_desc = pool.FindFileByName(PROTO_FILE)

    message_factory.GetMessageClassesForFiles([file_desc.name], pool)
    return file_desc


DESCRIPTOR = load_validator_descriptor()

FieldValidator = message_factory.GetMessageClass(
    DESCRIPTOR.message_types_by_name['FieldValidator'])

# Same object protoc would expose as validator_pb2.field
FIELD_EXTENSION = DESCRIPTOR.extensions_by_name[EXTENSION_NAME]
field = FIELD_EXTENSION
