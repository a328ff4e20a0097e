"""CLI entry point: inspect catalogs and encode/decode envelopes."""

from __future__ import annotations

import click
from pydantic import ValidationError

from .catalog import load_catalog
from .codec import decode_binary, decode_text, encode_binary, encode_text
from .core.config import load_settings
from .core.errors import EvtWireError
from .core.registry import DefinitionRegistry
from .observability.logger import get_logger, setup_logging

_FORMATS = click.Choice(["binary", "text"])

log = get_logger(__name__)


def _load(ctx: click.Context) -> DefinitionRegistry:
    settings = ctx.obj["settings"]
    catalog = ctx.obj["catalog"] or settings.catalog_path
    if not catalog:
        raise click.UsageError("No catalog given (--catalog or EVTWIRE_CATALOG_PATH)")
    registry = DefinitionRegistry(name="cli")
    try:
        load_catalog(catalog, registry, seal=settings.seal_after_load)
    except EvtWireError as exc:
        raise click.ClickException(str(exc)) from exc
    log.debug(
        "catalog_loaded", path=str(catalog), definitions=len(registry), sealed=registry.sealed
    )
    return registry


@click.group()
@click.option("--config", default=None, help="Settings TOML file")
@click.option("--catalog", default=None, help="Event catalog TOML file")
@click.pass_context
def main(ctx: click.Context, config: str | None, catalog: str | None) -> None:
    """Typed event protocol tools."""
    try:
        settings = load_settings(config)
    except EvtWireError as exc:
        raise click.ClickException(str(exc)) from exc
    setup_logging(settings.observability.log_level, settings.observability.log_format)
    ctx.ensure_object(dict)
    ctx.obj["settings"] = settings
    ctx.obj["catalog"] = catalog


@main.command("list")
@click.pass_context
def list_events(ctx: click.Context) -> None:
    """Print every event definition in the catalog."""
    registry = _load(ctx)
    for definition in registry.all():
        click.echo(repr(definition))


@main.command()
@click.option("--format", "fmt", type=_FORMATS, default="binary", help="Payload encoding")
@click.argument("hex_data")
@click.pass_context
def decode(ctx: click.Context, fmt: str, hex_data: str) -> None:
    """Decode a hex-encoded envelope."""
    registry = _load(ctx)
    try:
        data = bytes.fromhex(hex_data)
    except ValueError as exc:
        raise click.BadParameter(f"not hex: {exc}", param_hint="HEX_DATA") from exc

    decoder = decode_binary if fmt == "binary" else decode_text
    try:
        msg = decoder(data, registry)
    except EvtWireError as exc:
        raise click.ClickException(str(exc)) from exc
    if msg is None:
        log.info("unknown_tag", size=len(data))
        click.echo("unknown")
        return
    definition = registry.lookup(msg.tag)
    name = definition.name if definition is not None and definition.name else "-"
    click.echo(f"tag={msg.tag} name={name} value={msg.value!r}")


@main.command()
@click.option("--tag", type=int, required=True, help="Event tag")
@click.option("--format", "fmt", type=_FORMATS, default="binary", help="Payload encoding")
@click.argument("json_value")
@click.pass_context
def encode(ctx: click.Context, tag: int, fmt: str, json_value: str) -> None:
    """Encode a JSON value as the envelope of event TAG and print it as hex."""
    registry = _load(ctx)
    definition = registry.lookup(tag)
    if definition is None:
        raise click.BadParameter(f"no event with tag {tag}", param_hint="--tag")
    try:
        value = definition.schema().adapter.validate_json(json_value)
    except ValidationError as exc:
        raise click.BadParameter(str(exc), param_hint="JSON_VALUE") from exc

    encoder = encode_binary if fmt == "binary" else encode_text
    try:
        data = encoder(definition.apply(value), registry)
    except EvtWireError as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(data.hex())


if __name__ == "__main__":
    main()
