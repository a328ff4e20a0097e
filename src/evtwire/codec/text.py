"""JSON payload encoding through the schema's pydantic adapter.

Non-finite floats are written as ``Infinity`` / ``NaN`` constants. Models
serialise with their own config, so a non-finite float inside a model that
does not opt into ``ser_json_inf_nan="constants"`` is rejected at encode
time instead of being written as an undecodable ``null``.
"""

from __future__ import annotations

import math
from typing import Any

from pydantic import BaseModel, ValidationError
from pydantic_core import PydanticSerializationError

from evtwire.core.errors import PayloadDecodeError, PayloadEncodeError
from evtwire.core.schema import Schema


def _check_model_floats(value: Any, path: str, writes_constants: bool) -> None:
    if isinstance(value, float):
        if not writes_constants and not math.isfinite(value):
            raise PayloadEncodeError(
                f"Non-finite float {value!r} at {path} cannot be written as JSON "
                "by a model without ser_json_inf_nan='constants'"
            )
    elif isinstance(value, BaseModel):
        constants = value.model_config.get("ser_json_inf_nan") == "constants"
        for name in type(value).model_fields:
            _check_model_floats(getattr(value, name), f"{path}.{name}", constants)
    elif isinstance(value, (list, tuple)):
        for i, item in enumerate(value):
            _check_model_floats(item, f"{path}[{i}]", writes_constants)


def encode_value(schema: Schema, value: Any) -> bytes:
    # Validate first so the serializer always sees the declared types
    try:
        typed = schema.adapter.validate_python(value)
    except ValidationError as exc:
        raise PayloadEncodeError(f"Cannot encode {value!r} as {schema.shape}: {exc}") from exc
    if any(cls is not tuple for cls in schema.records.values()):
        _check_model_floats(typed, "value", True)
    try:
        return schema.adapter.dump_json(typed)
    except (PydanticSerializationError, UnicodeEncodeError) as exc:
        raise PayloadEncodeError(f"Cannot serialise {value!r} as {schema.shape}: {exc}") from exc


def decode_value(schema: Schema, payload: bytes | str) -> Any:
    """Validate a JSON payload strictly against ``schema``."""
    try:
        return schema.adapter.validate_json(payload, strict=True)
    except ValidationError as exc:
        raise PayloadDecodeError(
            f"Invalid {schema.shape} payload: {exc.error_count()} error(s): {exc}"
        ) from exc
