"""Structural matcher: checks an untyped payload against a shape.

The check is one level deep. Top-level containers have every element
checked, but an element that is itself a container is only checked for
its container kind; its contents are trusted.
"""

from __future__ import annotations

from typing import Any

from .shapes import NoneType, Scalar, SequenceOf, ShapeDescriptor, TupleOf

_TEXT_TYPES = (str, bytes, bytearray)


def is_instance(cls: type, value: Any) -> bool:
    """isinstance with numeric widening: an int (not a bool) is a float."""
    if isinstance(value, cls):
        return True
    if cls is float:
        return isinstance(value, int) and not isinstance(value, bool)
    return False


def _is_sequence(value: Any) -> bool:
    return isinstance(value, (list, tuple)) and not isinstance(value, _TEXT_TYPES)


def _shallow(value: Any, shape: ShapeDescriptor) -> bool:
    if isinstance(shape, Scalar):
        return is_instance(shape.cls, value)
    if isinstance(shape, SequenceOf):
        return _is_sequence(value)
    if isinstance(shape, TupleOf):
        return isinstance(value, tuple)
    return False


def conforms(value: Any, shape: ShapeDescriptor) -> bool:
    """Return True if ``value`` has the runtime structure ``shape`` describes."""
    if isinstance(shape, Scalar):
        if shape.cls is NoneType:
            return value is None
        return is_instance(shape.cls, value)

    if isinstance(shape, SequenceOf):
        if not _is_sequence(value):
            return False
        element = shape.element
        for item in value:
            if not _shallow(item, element):
                return False
        return True

    if isinstance(shape, TupleOf):
        if not isinstance(value, tuple) or len(value) != shape.arity:
            return False
        for item, element in zip(value, shape.elements):
            if not _shallow(item, element):
                return False
        return True

    return False
