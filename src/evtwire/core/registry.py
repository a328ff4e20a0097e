"""Definition registry: process-wide tag -> EventDefinition mapping.

Append-only. Writers are serialised by a lock and publish a fresh dict on
every insert (copy-on-write), so ``lookup`` and ``all`` never lock and
never observe a half-inserted entry.

Intended lifecycle: construct every definition during start-up, call
``seal()``, then serve traffic.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterator
from typing import TYPE_CHECKING

from .errors import DuplicateTagError, RegistrySealedError

if TYPE_CHECKING:
    from .definition import EventDefinition

logger = logging.getLogger(__name__)


class DefinitionRegistry:
    """Tag-unique registry of event definitions."""

    def __init__(self, name: str = "default") -> None:
        self.name = name
        self._lock = threading.Lock()
        self._by_tag: dict[int, EventDefinition] = {}
        self._sealed = False

    def register(self, definition: EventDefinition) -> None:
        """Insert ``definition``; fail if its tag is taken or the registry is sealed."""
        tag = definition.tag
        with self._lock:
            if self._sealed:
                raise RegistrySealedError(
                    f"Registry {self.name!r} is sealed; cannot register tag {tag}"
                )
            existing = self._by_tag.get(tag)
            if existing is not None:
                raise DuplicateTagError(tag, existing)
            updated = dict(self._by_tag)
            updated[tag] = definition
            self._by_tag = updated
        logger.debug("Registered %r in registry=%s", definition, self.name)

    def lookup(self, tag: int) -> EventDefinition | None:
        return self._by_tag.get(tag)

    def all(self) -> tuple[EventDefinition, ...]:
        """Snapshot of all definitions in registration order."""
        return tuple(self._by_tag.values())

    def seal(self) -> None:
        """End the start-up phase. Later registrations raise."""
        with self._lock:
            self._sealed = True
        logger.info(
            "Registry %s sealed with %d definitions", self.name, len(self._by_tag)
        )

    @property
    def sealed(self) -> bool:
        return self._sealed

    def __contains__(self, tag: object) -> bool:
        return tag in self._by_tag

    def __len__(self) -> int:
        return len(self._by_tag)

    def __iter__(self) -> Iterator[EventDefinition]:
        return iter(self.all())

    def __repr__(self) -> str:
        return f"DefinitionRegistry(name={self.name!r}, size={len(self)}, sealed={self._sealed})"


_default: DefinitionRegistry | None = None
_default_lock = threading.Lock()


def default_registry() -> DefinitionRegistry:
    """Return the process-wide registry, creating it on first use."""
    global _default
    if _default is None:
        with _default_lock:
            if _default is None:
                _default = DefinitionRegistry()
    return _default
