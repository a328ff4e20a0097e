"""Shape descriptors: the expected runtime structure of an event payload.

A shape is one of three immutable variants:

    Scalar(cls)            a single value of ``cls`` (or a subtype)
    SequenceOf(element)    a homogeneous ordered sequence
    TupleOf(elements)      a fixed-arity heterogeneous tuple

Shapes are built once per event definition, either directly, from a
Python annotation (``shape_of(list[str])``) or from the textual form used
in catalog files (``parse_shape("tuple[int, str, float]")``).
"""

from __future__ import annotations

import collections.abc
import re
import types
import typing
from dataclasses import dataclass
from typing import Any, Union

from .errors import ShapeParseError, UnsupportedShapeError

NoneType = type(None)


@dataclass(frozen=True)
class Scalar:
    cls: type

    def __str__(self) -> str:
        if self.cls is NoneType:
            return "none"
        return self.cls.__name__


@dataclass(frozen=True)
class SequenceOf:
    element: ShapeDescriptor

    def __str__(self) -> str:
        return f"list[{self.element}]"


@dataclass(frozen=True)
class TupleOf:
    elements: tuple[ShapeDescriptor, ...]

    def __post_init__(self) -> None:
        # Accept any iterable but store a tuple so the shape stays hashable
        object.__setattr__(self, "elements", tuple(self.elements))

    @property
    def arity(self) -> int:
        return len(self.elements)

    def __str__(self) -> str:
        return "tuple[" + ", ".join(str(e) for e in self.elements) + "]"


ShapeDescriptor = Union[Scalar, SequenceOf, TupleOf]

SHAPE_TYPES = (Scalar, SequenceOf, TupleOf)


# ---------------------------------------------------------------------------
# From annotations
# ---------------------------------------------------------------------------

_SEQUENCE_ORIGINS = (list, collections.abc.Sequence)


def shape_of(annotation: Any) -> ShapeDescriptor:
    """Build a shape from a Python type annotation.

    ``None`` maps to the unit shape, plain classes to ``Scalar``,
    ``list[X]`` / ``Sequence[X]`` / ``tuple[X, ...]`` to ``SequenceOf`` and
    ``tuple[A, B]`` to ``TupleOf``.
    """
    if isinstance(annotation, SHAPE_TYPES):
        return annotation
    if annotation is None or annotation is NoneType:
        return Scalar(NoneType)

    origin = typing.get_origin(annotation)
    if origin is None:
        if isinstance(annotation, type):
            return Scalar(annotation)
        raise UnsupportedShapeError(f"Cannot build a shape from {annotation!r}")

    args = typing.get_args(annotation)
    if origin in _SEQUENCE_ORIGINS:
        if len(args) != 1:
            raise UnsupportedShapeError(f"Sequence needs one element type: {annotation!r}")
        return SequenceOf(shape_of(args[0]))
    if origin is tuple:
        if len(args) == 2 and args[1] is Ellipsis:
            return SequenceOf(shape_of(args[0]))
        return TupleOf(tuple(shape_of(a) for a in args))
    if origin in (Union, types.UnionType):
        raise UnsupportedShapeError(f"Union payloads are not supported: {annotation!r}")
    raise UnsupportedShapeError(f"Cannot build a shape from {annotation!r}")


def python_type(shape: ShapeDescriptor) -> Any:
    """Return the annotation a shape stands for."""
    if isinstance(shape, Scalar):
        return None if shape.cls is NoneType else shape.cls
    if isinstance(shape, SequenceOf):
        return list[python_type(shape.element)]
    if isinstance(shape, TupleOf):
        if not shape.elements:
            return tuple[()]
        return tuple[tuple(python_type(e) for e in shape.elements)]
    raise UnsupportedShapeError(f"Not a shape: {shape!r}")


# ---------------------------------------------------------------------------
# From text
# ---------------------------------------------------------------------------

SCALAR_NAMES: dict[str, type] = {
    "str": str,
    "int": int,
    "float": float,
    "bool": bool,
    "bytes": bytes,
    "none": NoneType,
}

_TOKEN_RE = re.compile(r"\s*(?:([A-Za-z_][A-Za-z0-9_]*)|(\[|\]|,))")


def _tokenize(text: str) -> list[str]:
    tokens: list[str] = []
    pos = 0
    stripped = text.rstrip()
    while pos < len(stripped):
        m = _TOKEN_RE.match(stripped, pos)
        if m is None:
            raise ShapeParseError(text, f"unexpected character at {pos}")
        tokens.append(m.group(1) or m.group(2))
        pos = m.end()
    return tokens


class _ShapeParser:
    """Recursive-descent parser over the token list."""

    def __init__(self, text: str) -> None:
        self.text = text
        self.tokens = _tokenize(text)
        self.pos = 0

    def _peek(self) -> str | None:
        return self.tokens[self.pos] if self.pos < len(self.tokens) else None

    def _next(self) -> str:
        tok = self._peek()
        if tok is None:
            raise ShapeParseError(self.text, "unexpected end of input")
        self.pos += 1
        return tok

    def _expect(self, tok: str) -> None:
        got = self._next()
        if got != tok:
            raise ShapeParseError(self.text, f"expected {tok!r}, got {got!r}")

    def parse(self) -> ShapeDescriptor:
        shape = self._shape()
        if self._peek() is not None:
            raise ShapeParseError(self.text, f"trailing token {self._peek()!r}")
        return shape

    def _shape(self) -> ShapeDescriptor:
        name = self._next()
        if name == "list":
            self._expect("[")
            element = self._shape()
            self._expect("]")
            return SequenceOf(element)
        if name == "tuple":
            self._expect("[")
            elements: list[ShapeDescriptor] = []
            if self._peek() != "]":
                elements.append(self._shape())
                while self._peek() == ",":
                    self._next()
                    elements.append(self._shape())
            self._expect("]")
            return TupleOf(tuple(elements))
        cls = SCALAR_NAMES.get(name)
        if cls is None:
            raise ShapeParseError(self.text, f"unknown type name {name!r}")
        return Scalar(cls)


def parse_shape(text: str) -> ShapeDescriptor:
    """Parse ``"list[str]"``-style text into a shape."""
    if not text or not text.strip():
        raise ShapeParseError(text, "empty shape")
    return _ShapeParser(text).parse()
