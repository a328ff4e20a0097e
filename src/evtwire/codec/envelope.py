"""Message envelopes: ``[tag: 4 bytes big-endian][payload]``.

Both formats share the same tag prefix; only the payload encoding
differs (Avro binary datum vs. UTF-8 JSON).

Decoding never fails on what a newer or older peer might legitimately
send: a buffer too short for a tag, or a tag this process does not know,
decodes to ``None``. Corrupt payloads under a known tag raise
``PayloadDecodeError``.
"""

from __future__ import annotations

import logging
import struct
from collections.abc import Callable
from typing import Any

from evtwire.core.definition import EventDefinition
from evtwire.core.errors import PayloadDecodeError, PayloadEncodeError, UnknownTagError
from evtwire.core.message import TAG_SIZE, TAG_STRUCT, Message
from evtwire.core.registry import DefinitionRegistry, default_registry
from evtwire.core.schema import Schema

from . import binary, text

logger = logging.getLogger(__name__)


def read_tag(data: bytes | bytearray | memoryview) -> int | None:
    """Return the tag prefix of ``data``, or None if it is too short."""
    if len(data) < TAG_SIZE:
        return None
    return TAG_STRUCT.unpack_from(data, 0)[0]


def _definition_for(msg: Message[Any], registry: DefinitionRegistry | None) -> EventDefinition:
    reg = registry if registry is not None else default_registry()
    definition = reg.lookup(msg.tag)
    if definition is None:
        raise UnknownTagError(msg.tag)
    return definition


def _encode(
    msg: Message[Any],
    registry: DefinitionRegistry | None,
    encode_value: Callable[[Schema, Any], bytes],
) -> bytes:
    definition = _definition_for(msg, registry)
    try:
        prefix = TAG_STRUCT.pack(msg.tag)
    except struct.error as exc:
        raise PayloadEncodeError(f"Tag {msg.tag} does not fit in {TAG_SIZE} bytes") from exc
    return prefix + encode_value(definition.schema(), msg.value)


def encode_binary(msg: Message[Any], registry: DefinitionRegistry | None = None) -> bytes:
    """Encode ``msg`` as tag + Avro binary payload.

    Raises:
        UnknownTagError: no definition is registered for ``msg.tag``.
        PayloadEncodeError: the value does not fit the schema.
    """
    return _encode(msg, registry, binary.encode_value)


def encode_text(msg: Message[Any], registry: DefinitionRegistry | None = None) -> bytes:
    """Encode ``msg`` as tag + UTF-8 JSON payload."""
    return _encode(msg, registry, text.encode_value)


def _lookup(
    data: bytes | bytearray | memoryview, registry: DefinitionRegistry | None
) -> EventDefinition | None:
    tag = read_tag(data)
    if tag is None:
        logger.debug("Envelope of %d bytes is too short for a tag", len(data))
        return None
    reg = registry if registry is not None else default_registry()
    definition = reg.lookup(tag)
    if definition is None:
        logger.debug("Unknown tag %d in registry=%s, message dropped", tag, reg.name)
    return definition


def decode_binary(
    data: bytes | bytearray | memoryview, registry: DefinitionRegistry | None = None
) -> Message[Any] | None:
    """Decode a binary envelope; None for short buffers or unknown tags."""
    definition = _lookup(data, registry)
    if definition is None:
        return None
    value = binary.decode_value(definition.schema(), data, TAG_SIZE)
    return Message(definition.tag, value)


def decode_text(
    data: bytes | bytearray | memoryview, registry: DefinitionRegistry | None = None
) -> Message[Any] | None:
    """Decode a text envelope; None for short buffers or unknown tags."""
    definition = _lookup(data, registry)
    if definition is None:
        return None
    try:
        payload = bytes(data[TAG_SIZE:]).decode("utf-8")
    except UnicodeDecodeError as exc:
        raise PayloadDecodeError(f"Text payload is not UTF-8: {exc}") from exc
    value = text.decode_value(definition.schema(), payload)
    return Message(definition.tag, value)
