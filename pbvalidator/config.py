"""Validator settings."""

import os
from dataclasses import dataclass
from typing import Mapping, Optional

# Same default as the protobuf runtime's own recursion limit.
DEFAULT_MAX_DEPTH = 100

STRING_LENGTH_CHARS = 'chars'
STRING_LENGTH_BYTES = 'bytes'
STRING_LENGTH_MODES = (STRING_LENGTH_CHARS, STRING_LENGTH_BYTES)

ENV_MAX_DEPTH = 'PBVALIDATOR_MAX_DEPTH'
ENV_STRING_LENGTH = 'PBVALIDATOR_STRING_LENGTH'


@dataclass(frozen=True)
class ValidatorConfig:
    """
    Settings for a Validator.

    Attributes:
        max_depth: Nesting depth below which nested messages are no longer
                   visited. Subtrees past the limit are logged and accepted.
        string_length: How length rules measure strings: 'bytes' counts UTF-8
                       encoded bytes, as on the wire; 'chars' counts code points.
    """
    max_depth: int = DEFAULT_MAX_DEPTH
    string_length: str = STRING_LENGTH_BYTES

    def __post_init__(self):
        if isinstance(self.max_depth, bool) or not isinstance(self.max_depth, int) \
                or self.max_depth < 0:
            raise ValueError(f"max_depth must be a non-negative integer, got {self.max_depth!r}")
        if self.string_length not in STRING_LENGTH_MODES:
            raise ValueError(
                f"string_length must be one of {STRING_LENGTH_MODES}, got {self.string_length!r}")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> 'ValidatorConfig':
        """
        Build a config from PBVALIDATOR_* environment variables.

        Unset variables keep their defaults.

        Raises:
            ValueError: If a variable holds an unusable value.
        """
        if environ is None:
            environ = os.environ

        kwargs = {}
        max_depth = environ.get(ENV_MAX_DEPTH)
        if max_depth:
            try:
                kwargs['max_depth'] = int(max_depth)
            except ValueError:
                raise ValueError(f"{ENV_MAX_DEPTH} must be an integer, got {max_depth!r}") from None

        string_length = environ.get(ENV_STRING_LENGTH)
        if string_length:
            kwargs['string_length'] = string_length.strip().lower()

        return cls(**kwargs)
