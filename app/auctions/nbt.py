"""
NBT (Named Binary Tag) loading for auction item blobs.

Item blobs arrive as base64 text of a gzip-compressed, big-endian NBT
document whose root is a named compound. Parsing is done by nbtlib; the
resulting tags subclass the builtin types (Compound is a dict, List a list,
String a str), so the tree can be walked like plain Python data.
"""
import base64
import binascii
import gzip
import io
import zlib
from typing import Any, List

import nbtlib

from app.errors import DecodeError

GZIP_MAGIC = b"\x1f\x8b"


def decompress(data: bytes) -> bytes:
    """Gunzip data if it carries the gzip magic, otherwise return it as-is."""
    if not data.startswith(GZIP_MAGIC):
        return data
    try:
        return gzip.decompress(data)
    except (OSError, EOFError, zlib.error) as e:
        raise DecodeError(f"Invalid gzip payload: {e}") from e


def parse(data: bytes) -> nbtlib.Compound:
    """
    Parse a (possibly gzipped) NBT document and return its root compound.

    Raises:
        DecodeError: the data is not a well-formed NBT document
    """
    raw = decompress(data)
    if raw[:1] != bytes([nbtlib.Compound.tag_id]):
        raise DecodeError("NBT root is not a compound")

    try:
        return nbtlib.File.parse(io.BytesIO(raw))
    except Exception as e:
        # nbtlib surfaces struct, lookup, unicode and recursion errors as-is
        raise DecodeError(f"Invalid NBT document: {type(e).__name__}: {e}") from e


def parse_base64(text: str) -> nbtlib.Compound:
    """Parse a base64-encoded NBT document."""
    try:
        raw = base64.b64decode(text, validate=True)
    except (binascii.Error, ValueError) as e:
        raise DecodeError(f"Invalid base64 item data: {e}") from e
    return parse(raw)


def get_path(value: Any, path: List[Any]) -> Any:
    """
    Walk a parsed tag tree along a path of compound keys and list indexes.

    Returns None as soon as a node is missing or has the wrong shape.
    """
    for step in path:
        if isinstance(step, int):
            if not isinstance(value, list) or not -len(value) <= step < len(value):
                return None
        elif not isinstance(value, dict) or step not in value:
            return None
        value = value[step]
    return value
