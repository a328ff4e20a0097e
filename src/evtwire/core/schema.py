"""Wire schema derivation.

A ``Schema`` is derived once from a shape and drives both codecs:

- ``avro`` is an Avro-style schema document used by the binary codec;
- ``adapter`` is a pydantic ``TypeAdapter`` used by the text codec;
- ``json_schema`` is the JSON Schema pydantic reports for the payload.

Derivation is pure: the same shape always yields an equal schema.
"""

from __future__ import annotations

import json
import types
import typing
from dataclasses import dataclass, field
from typing import Any, Union

from pydantic import BaseModel, ConfigDict, TypeAdapter

from .errors import UnsupportedShapeError
from .shapes import (
    NoneType,
    Scalar,
    SequenceOf,
    ShapeDescriptor,
    TupleOf,
    python_type,
    shape_of,
)

AVRO_PRIMITIVES: dict[type, str] = {
    NoneType: "null",
    bool: "boolean",
    int: "long",
    float: "double",
    str: "string",
    bytes: "bytes",
}

# bytes travel as base64 and non-finite floats as Infinity/NaN constants in
# the text format so arbitrary payloads survive
_TEXT_CONFIG = ConfigDict(
    ser_json_bytes="base64",
    val_json_bytes="base64",
    ser_json_inf_nan="constants",
)


@dataclass(frozen=True)
class Schema:
    """Wire schema for one event payload."""

    shape: ShapeDescriptor
    avro: Any
    json_schema: dict[str, Any]
    # record name -> tuple or model class, for rebuilding decoded records
    records: dict[str, type] = field(compare=False, repr=False)
    adapter: TypeAdapter = field(compare=False, repr=False)

    def to_json(self) -> str:
        """Avro schema document as a canonical JSON string."""
        return json.dumps(self.avro, sort_keys=True, separators=(",", ":"))


class _AvroBuilder:
    def __init__(self) -> None:
        self.records: dict[str, type] = {}
        self._in_progress: set[str] = set()

    def _add_record(self, name: str, cls: type) -> None:
        known = self.records.get(name)
        if known is not None and known is not cls:
            raise UnsupportedShapeError(f"Two record types share the name {name!r}")
        self.records[name] = cls

    def shape(self, shape: ShapeDescriptor) -> Any:
        if isinstance(shape, Scalar):
            return self.scalar(shape.cls)
        if isinstance(shape, SequenceOf):
            return {"type": "array", "items": self.shape(shape.element)}
        if isinstance(shape, TupleOf):
            name = f"Tuple{shape.arity}"
            self._add_record(name, tuple)
            return {
                "type": "record",
                "name": name,
                "fields": [
                    {"name": f"_{i}", "type": self.shape(e)}
                    for i, e in enumerate(shape.elements, start=1)
                ],
            }
        raise UnsupportedShapeError(f"Not a shape: {shape!r}")

    def scalar(self, cls: type) -> Any:
        primitive = AVRO_PRIMITIVES.get(cls)
        if primitive is not None:
            return primitive
        if isinstance(cls, type) and issubclass(cls, BaseModel):
            return self.model(cls)
        raise UnsupportedShapeError(f"No wire schema for class {cls!r}")

    def model(self, cls: type[BaseModel]) -> dict[str, Any]:
        name = cls.__name__
        if name in self._in_progress:
            raise UnsupportedShapeError(f"Recursive model {name!r} is not supported")
        self._in_progress.add(name)
        try:
            fields = [
                {"name": fname, "type": self.annotation(info.annotation)}
                for fname, info in cls.model_fields.items()
            ]
        finally:
            self._in_progress.discard(name)
        self._add_record(name, cls)
        return {"type": "record", "name": name, "fields": fields}

    def annotation(self, annotation: Any) -> Any:
        origin = typing.get_origin(annotation)
        if origin in (Union, types.UnionType):
            args = typing.get_args(annotation)
            others = [a for a in args if a is not NoneType]
            if len(others) == 1 and len(args) == 2:
                return ["null", self.annotation(others[0])]
            raise UnsupportedShapeError(f"Only Optional unions are supported: {annotation!r}")
        return self.shape(shape_of(annotation))


def _text_adapter(shape: ShapeDescriptor) -> TypeAdapter:
    tp = python_type(shape)
    if isinstance(shape, Scalar) and isinstance(shape.cls, type) and issubclass(shape.cls, BaseModel):
        # Models carry their own config
        return TypeAdapter(tp)
    return TypeAdapter(tp, config=_TEXT_CONFIG)


def derive_schema(shape: ShapeDescriptor) -> Schema:
    """Derive the wire schema for a shape.

    Raises:
        UnsupportedShapeError: the shape contains a class with no wire form.
    """
    builder = _AvroBuilder()
    avro = builder.shape(shape)
    adapter = _text_adapter(shape)
    return Schema(
        shape=shape,
        avro=avro,
        json_schema=adapter.json_schema(),
        records=dict(builder.records),
        adapter=adapter,
    )
