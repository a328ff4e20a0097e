"""Event definitions: named, tagged event kinds with a payload shape.

An ``EventDefinition`` is the API definition of one kind of event. The
definition holds the metadata (tag, doc, shape, schema); each ``Message``
only carries the tag and the value, which keeps messages small and free of
per-class serialisation concerns.

Example::

    registry = DefinitionRegistry()
    StrEvt = EventDefinition(-1, str, registry=registry)
    MulEvt = EventDefinition(-5, tuple[int, str, float], "id, name, value",
                             registry=registry)

    msg = MulEvt(8, "a", 8.0)          # Message(tag=-5, value=(8, "a", 8.0))
    MulEvt.extract(msg)                # (8, "a", 8.0)
    StrEvt.extract(msg)                # None, tag differs

Because generic parameters are not available at runtime, ``extract``
verifies the payload against the stored shape instead of trusting
``isinstance`` on the erased container type.
"""

from __future__ import annotations

import logging
from typing import Any, Generic, TypeVar

from .errors import DefinitionError
from .matcher import conforms
from .message import TAG_MAX, TAG_MIN, TAG_SIZE, Message
from .registry import DefinitionRegistry, default_registry
from .schema import Schema, derive_schema
from .shapes import Scalar, ShapeDescriptor, shape_of

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _check_tag(tag: Any) -> int:
    if not isinstance(tag, int) or isinstance(tag, bool):
        raise DefinitionError(f"Tag must be an int, got {type(tag).__name__}")
    if not TAG_MIN <= tag <= TAG_MAX:
        raise DefinitionError(f"Tag {tag} does not fit in {TAG_SIZE} bytes")
    return tag


class EventDefinition(Generic[T]):
    """A registered event kind.

    Parameters
    ----------
    tag:
        Process-unique id, fits a signed 4-byte int.
    shape:
        A ``ShapeDescriptor`` or an annotation accepted by ``shape_of``
        (``str``, ``list[str]``, ``tuple[int, str]``, ``None``, a model class).
    doc:
        Free-form documentation of the payload.
    name:
        Optional human-readable name used in diagnostics.
    registry:
        Registry to join; the process-wide one when omitted.

    Raises
    ------
    DuplicateTagError
        ``tag`` is already registered. Nothing is overwritten.
    UnsupportedShapeError
        No wire schema exists for ``shape``.
    """

    def __init__(
        self,
        tag: int,
        shape: Any,
        doc: str = "",
        *,
        name: str = "",
        registry: DefinitionRegistry | None = None,
    ) -> None:
        self.tag = _check_tag(tag)
        self.shape: ShapeDescriptor = shape_of(shape)
        self.doc = doc
        self.name = name
        self._schema = derive_schema(self.shape)
        self.registry = registry if registry is not None else default_registry()
        self.registry.register(self)

    def schema(self) -> Schema:
        return self._schema

    def apply(self, value: T) -> Message[T]:
        """Build the message for ``value``. No runtime verification."""
        return Message(self.tag, value)

    def __call__(self, *values: Any) -> Message[T]:
        """``Evt(v)`` for single payloads, ``Evt(a, b, c)`` for tuple payloads.

        ``Evt()`` builds the message of a unit (``None``) event.
        """
        if not values:
            return self.apply(None)  # type: ignore[arg-type]
        if len(values) == 1:
            return self.apply(values[0])
        return self.apply(values)  # type: ignore[arg-type]

    def extract(self, candidate: Any) -> T | None:
        """Return the payload of ``candidate`` if it is a conforming message of this kind.

        Returns None on a different tag or a structural mismatch. For unit
        events the payload itself is None; use ``matches`` there.
        """
        if not isinstance(candidate, Message) or candidate.tag != self.tag:
            return None
        if not conforms(candidate.value, self.shape):
            logger.debug("Structural mismatch for %r: %r", self, candidate.value)
            return None
        return candidate.value

    def matches(self, candidate: Any) -> bool:
        if not isinstance(candidate, Message) or candidate.tag != self.tag:
            return False
        return conforms(candidate.value, self.shape)

    @property
    def is_unit(self) -> bool:
        return isinstance(self.shape, Scalar) and self.shape.cls is type(None)

    def __repr__(self) -> str:
        label = f"{self.name}, " if self.name else ""
        return f'Evt({label}tag={self.tag}, shape={self.shape}, doc="{self.doc}")'
