"""Typed application-event protocol.

Event definitions with unique integer tags, derived wire schemas,
binary/text envelopes and structural payload extraction.
"""

from evtwire.codec import decode_binary, decode_text, encode_binary, encode_text, read_tag
from evtwire.core.definition import EventDefinition
from evtwire.core.errors import (
    DuplicateTagError,
    EvtWireError,
    PayloadDecodeError,
    PayloadEncodeError,
    RegistrySealedError,
    UnknownTagError,
    UnsupportedShapeError,
)
from evtwire.core.matcher import conforms
from evtwire.core.message import Message
from evtwire.core.registry import DefinitionRegistry, default_registry
from evtwire.core.schema import Schema, derive_schema
from evtwire.core.shapes import Scalar, SequenceOf, TupleOf, parse_shape, shape_of

__all__ = [
    "DefinitionRegistry",
    "DuplicateTagError",
    "EventDefinition",
    "EvtWireError",
    "Message",
    "PayloadDecodeError",
    "PayloadEncodeError",
    "RegistrySealedError",
    "Scalar",
    "Schema",
    "SequenceOf",
    "TupleOf",
    "UnknownTagError",
    "UnsupportedShapeError",
    "conforms",
    "decode_binary",
    "decode_text",
    "default_registry",
    "derive_schema",
    "encode_binary",
    "encode_text",
    "parse_shape",
    "read_tag",
    "shape_of",
]
