"""Binary and text codecs for event message envelopes."""

from evtwire.codec.envelope import (
    decode_binary,
    decode_text,
    encode_binary,
    encode_text,
    read_tag,
)

__all__ = [
    "decode_binary",
    "decode_text",
    "encode_binary",
    "encode_text",
    "read_tag",
]
