"""Message envelope: an immutable (tag, value) pair."""

from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import TYPE_CHECKING, Generic, TypeVar

if TYPE_CHECKING:
    from .registry import DefinitionRegistry

T = TypeVar("T")

# Tags are 4-byte big-endian signed ints on both the write and the read path
TAG_STRUCT = struct.Struct(">i")
TAG_SIZE = TAG_STRUCT.size
TAG_MIN = -(2**31)
TAG_MAX = 2**31 - 1


@dataclass(frozen=True)
class Message(Generic[T]):
    """Event message as it travels between producer and consumer.

    Built either by ``EventDefinition.apply`` or by the decoders. The
    definition metadata (doc, shape, schema) is not carried; only the tag.
    """

    tag: int
    value: T

    def to_binary(self, registry: DefinitionRegistry | None = None) -> bytes:
        from evtwire.codec.envelope import encode_binary

        return encode_binary(self, registry)

    def to_text(self, registry: DefinitionRegistry | None = None) -> bytes:
        from evtwire.codec.envelope import encode_text

        return encode_text(self, registry)

