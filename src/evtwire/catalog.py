"""Event catalog: declare event definitions in a TOML file.

Loading a catalog is the explicit start-up phase of a process: every
definition is constructed up front, then the registry can be sealed
before traffic starts.

Format::

    [[events]]
    tag = -5
    name = "MulEvt"
    doc = "id, name, value"
    shape = "tuple[int, str, float]"
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import tomli

from evtwire.core.definition import EventDefinition
from evtwire.core.errors import CatalogError
from evtwire.core.registry import DefinitionRegistry, default_registry
from evtwire.core.shapes import parse_shape

logger = logging.getLogger(__name__)


def definitions_from_dict(
    data: dict[str, Any],
    registry: DefinitionRegistry | None = None,
) -> list[EventDefinition]:
    """Construct the definitions listed under ``events`` in file order."""
    entries = data.get("events", [])
    if not isinstance(entries, list):
        raise CatalogError("'events' must be an array of tables")

    reg = registry if registry is not None else default_registry()
    created: list[EventDefinition] = []
    for i, entry in enumerate(entries):
        if not isinstance(entry, dict):
            raise CatalogError(f"events[{i}] must be a table")
        if "tag" not in entry or "shape" not in entry:
            raise CatalogError(f"events[{i}] needs both 'tag' and 'shape'")
        tag = entry["tag"]
        if not isinstance(tag, int) or isinstance(tag, bool):
            raise CatalogError(f"events[{i}].tag must be an integer, got {tag!r}")
        created.append(
            EventDefinition(
                tag,
                parse_shape(str(entry["shape"])),
                str(entry.get("doc", "")),
                name=str(entry.get("name", "")),
                registry=reg,
            )
        )
    return created


def load_catalog(
    path: str | Path,
    registry: DefinitionRegistry | None = None,
    *,
    seal: bool = False,
) -> list[EventDefinition]:
    """Load a TOML catalog into ``registry``.

    Raises:
        CatalogError: file missing, invalid TOML or malformed entries.
        ShapeParseError: an entry's shape text is invalid.
        DuplicateTagError: a tag is already registered.
    """
    p = Path(path)
    try:
        with open(p, "rb") as f:
            data = tomli.load(f)
    except FileNotFoundError as exc:
        raise CatalogError(f"Catalog not found: {p}") from exc
    except tomli.TOMLDecodeError as exc:
        raise CatalogError(f"Invalid TOML in catalog {p}: {exc}") from exc

    reg = registry if registry is not None else default_registry()
    created = definitions_from_dict(data, reg)
    logger.info("Loaded %d event definitions from %s", len(created), p)
    if seal:
        reg.seal()
    return created
