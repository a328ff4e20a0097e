"""Custom exception hierarchy for the event protocol layer."""


class EvtWireError(Exception):
    """Base exception for all protocol layer errors."""


# --- Configuration ---
class ConfigError(EvtWireError):
    """Invalid or missing configuration."""


class CatalogError(ConfigError):
    """Event catalog file missing or malformed."""


class ShapeParseError(ConfigError):
    """Textual shape description could not be parsed."""

    def __init__(self, text: str, reason: str):
        self.text = text
        self.reason = reason
        super().__init__(f"Bad shape {text!r}: {reason}")


# --- Definitions ---
class DefinitionError(EvtWireError):
    """Event definition could not be constructed."""


class DuplicateTagError(DefinitionError):
    """Tag is already taken by another event definition."""

    def __init__(self, tag: int, existing: object = None):
        self.tag = tag
        self.existing = existing
        super().__init__(f"Tag: {tag} already existed!")


class RegistrySealedError(DefinitionError):
    """Registry no longer accepts definitions after the startup phase."""


class UnsupportedShapeError(DefinitionError):
    """No wire schema can be derived for the shape."""


# --- Codec ---
class CodecError(EvtWireError):
    """Encoding or decoding failure."""


class UnknownTagError(CodecError):
    """Message tag has no registered definition, so it cannot be encoded."""

    def __init__(self, tag: int):
        self.tag = tag
        super().__init__(f"No event definition registered for tag {tag}")


class PayloadEncodeError(CodecError):
    """Value does not fit the schema of its tag."""


class PayloadDecodeError(CodecError):
    """Payload bytes are corrupt under an otherwise known schema."""
