"""
Register Codec

Converts ledger-native register encodings to logical values and back.

ENCODING:
=========
Register values are serialized sigma constants: one type tag byte followed by
the value. Only the types the reputation contract uses are supported:

    0x01 Boolean      01 | 00
    0x04 Int          zigzag VLQ
    0x05 Long         zigzag VLQ
    0x0e Coll[Byte]   VLQ length + raw bytes

Strings are Coll[Byte] holding UTF-8 bytes.

TOLERANCE:
==========
Strict decoders (decode_*) raise CodecError on malformed input.
Lenient readers (hex_to_utf8, decode_content, read_*) never raise; they
substitute UNREADABLE_PLACEHOLDER or a documented default.
"""

from __future__ import annotations
from typing import Optional, Tuple, Union
import binascii
import json

from ..config import FilterForm
from ..contracts.base import CodecError
from ..contracts.entities import BoxContent, ContentKind
from ..contracts.ledger import Box


UNREADABLE_PLACEHOLDER = "[unreadable content]"

TAG_BOOLEAN = 0x01
TAG_INT = 0x04
TAG_LONG = 0x05
TAG_COLL_BYTE = 0x0e

ConstantValue = Union[bool, int, bytes]


# =============================================================================
# HEX
# =============================================================================

def hex_to_bytes(value: str) -> bytes:
    try:
        return bytes.fromhex(value)
    except (ValueError, TypeError) as e:
        raise CodecError(f"Invalid hex string: {value!r}") from e


def bytes_to_hex(value: bytes) -> str:
    return binascii.hexlify(value).decode('ascii')


def is_hex_id(value: str, length: int = 64) -> bool:
    """True for a hex identifier of the given length (token / box ids)."""
    if len(value) != length:
        return False
    try:
        bytes.fromhex(value)
    except ValueError:
        return False
    return True


# =============================================================================
# VLQ
# =============================================================================

def _write_vlq(value: int) -> bytes:
    if value < 0:
        raise CodecError("VLQ value must be unsigned")
    out = bytearray()
    while True:
        byte = value & 0x7F
        value >>= 7
        if value:
            out.append(byte | 0x80)
        else:
            out.append(byte)
            return bytes(out)


def _read_vlq(data: bytes, pos: int) -> Tuple[int, int]:
    result = 0
    shift = 0
    while True:
        if pos >= len(data):
            raise CodecError("Truncated VLQ")
        byte = data[pos]
        pos += 1
        result |= (byte & 0x7F) << shift
        if not byte & 0x80:
            return result, pos
        shift += 7


def _zigzag(value: int) -> int:
    return (value << 1) if value >= 0 else ((-value << 1) - 1)


def _unzigzag(value: int) -> int:
    return (value >> 1) ^ -(value & 1)


# =============================================================================
# ENCODE
# =============================================================================

def encode_coll_byte(value: Union[bytes, str]) -> str:
    """Coll[Byte] constant. A str argument is taken as hex."""
    raw = hex_to_bytes(value) if isinstance(value, str) else bytes(value)
    return bytes_to_hex(bytes([TAG_COLL_BYTE]) + _write_vlq(len(raw)) + raw)


def encode_string(value: str) -> str:
    return encode_coll_byte(value.encode('utf-8'))


def encode_bool(value: bool) -> str:
    return bytes_to_hex(bytes([TAG_BOOLEAN, 1 if value else 0]))


def encode_int(value: int) -> str:
    return bytes_to_hex(bytes([TAG_INT]) + _write_vlq(_zigzag(value)))


def encode_long(value: int) -> str:
    return bytes_to_hex(bytes([TAG_LONG]) + _write_vlq(_zigzag(value)))


# =============================================================================
# DECODE (strict)
# =============================================================================

def decode_constant(value: str) -> ConstantValue:
    """Decode any supported serialized constant by its type tag."""
    data = hex_to_bytes(value)
    if not data:
        raise CodecError("Empty constant")

    tag = data[0]
    if tag == TAG_BOOLEAN:
        if len(data) != 2 or data[1] not in (0, 1):
            raise CodecError(f"Malformed Boolean constant: {value}")
        return data[1] == 1

    if tag in (TAG_INT, TAG_LONG):
        raw, pos = _read_vlq(data, 1)
        if pos != len(data):
            raise CodecError(f"Trailing bytes after numeric constant: {value}")
        return _unzigzag(raw)

    if tag == TAG_COLL_BYTE:
        length, pos = _read_vlq(data, 1)
        if pos + length != len(data):
            raise CodecError(f"Coll[Byte] length mismatch: {value}")
        return data[pos:]

    raise CodecError(f"Unsupported constant type tag 0x{tag:02x}")


def decode_coll_byte(value: str) -> bytes:
    decoded = decode_constant(value)
    if not isinstance(decoded, bytes):
        raise CodecError(f"Not a Coll[Byte] constant: {value}")
    return decoded


def decode_string(value: str) -> str:
    try:
        return decode_coll_byte(value).decode('utf-8')
    except UnicodeDecodeError as e:
        raise CodecError(f"Coll[Byte] is not valid UTF-8: {value}") from e


def decode_bool(value: str) -> bool:
    decoded = decode_constant(value)
    if not isinstance(decoded, bool):
        raise CodecError(f"Not a Boolean constant: {value}")
    return decoded


def serialized_to_rendered(value: str) -> str:
    """Rendered form of a serialized constant, as the explorer shows it."""
    decoded = decode_constant(value)
    if isinstance(decoded, bool):
        return 'true' if decoded else 'false'
    if isinstance(decoded, bytes):
        return bytes_to_hex(decoded)
    return str(decoded)


# =============================================================================
# LENIENT READERS
# =============================================================================

def hex_to_utf8(value: Optional[str]) -> str:
    """Hex → UTF-8 text. Never raises."""
    if not value:
        return ""
    try:
        return bytes.fromhex(value).decode('utf-8')
    except (ValueError, UnicodeDecodeError):
        return UNREADABLE_PLACEHOLDER


def decode_content(value: Optional[str]) -> BoxContent:
    """
    Rendered R9 hex → BoxContent.

    JSON objects / arrays become STRUCTURED; any other text stays TEXT so a
    comment saying "42" is not turned into a number.
    """
    if not value:
        return BoxContent.empty()

    try:
        text = bytes.fromhex(value).decode('utf-8')
    except (ValueError, UnicodeDecodeError):
        return BoxContent(kind=ContentKind.UNREADABLE, text=UNREADABLE_PLACEHOLDER, raw=value)
    if not text:
        return BoxContent.empty()

    try:
        parsed = json.loads(text)
    except ValueError:
        return BoxContent(kind=ContentKind.TEXT, text=text)

    if isinstance(parsed, (dict, list)):
        return BoxContent(kind=ContentKind.STRUCTURED, text=text, data=parsed)
    return BoxContent(kind=ContentKind.TEXT, text=text)


def _rendered_or_derived(box: Box, name: str) -> Optional[str]:
    """Rendered value, derived from the serialized one when the explorer omitted it."""
    reg = box.register(name)
    if reg is None:
        return None
    if reg.rendered is not None:
        return reg.rendered
    try:
        return serialized_to_rendered(reg.serialized)
    except CodecError:
        return None


def read_bytes_hex(box: Box, name: str) -> str:
    """Coll[Byte] register as hex of the payload ('' if absent)."""
    return _rendered_or_derived(box, name) or ""


def read_text(box: Box, name: str) -> str:
    """Coll[Byte] register holding UTF-8 text ('' if absent, placeholder if unreadable)."""
    return hex_to_utf8(_rendered_or_derived(box, name))


def read_bool(box: Box, name: str) -> Optional[bool]:
    """Boolean register, None if absent or not a boolean rendering."""
    rendered = _rendered_or_derived(box, name)
    if rendered == 'true':
        return True
    if rendered == 'false':
        return False
    return None


def read_content(box: Box, name: str = 'R9') -> BoxContent:
    return decode_content(_rendered_or_derived(box, name))


# =============================================================================
# FILTER ENCODINGS
# =============================================================================

def to_filter(serialized: str, form: FilterForm = FilterForm.RENDERED) -> str:
    if form == FilterForm.SERIALIZED:
        return serialized
    return serialized_to_rendered(serialized)


def filter_bytes(value: Union[bytes, str], form: FilterForm = FilterForm.RENDERED) -> str:
    """Filter value for a Coll[Byte] register. A str argument is taken as hex."""
    return to_filter(encode_coll_byte(value), form)


def filter_text(value: str, form: FilterForm = FilterForm.RENDERED) -> str:
    return to_filter(encode_string(value), form)


def filter_bool(value: bool, form: FilterForm = FilterForm.RENDERED) -> str:
    return to_filter(encode_bool(value), form)
