"""Recursive Length Prefix encoding and strict decoding."""

from __future__ import annotations

from typing import Union

__all__ = ["RlpError", "encode", "encode_uint", "decode", "decode_uint"]

Item = Union[bytes, list]

_STRING_OFFSET = 0x80
_LIST_OFFSET = 0xC0
_SHORT_LIMIT = 56


class RlpError(ValueError):
    """Raised when RLP data is malformed or not canonical."""


def _prefix(length: int, offset: int) -> bytes:
    if length < _SHORT_LIMIT:
        return bytes([offset + length])
    length_bytes = length.to_bytes((length.bit_length() + 7) // 8, "big")
    return bytes([offset + 55 + len(length_bytes)]) + length_bytes


def encode(item) -> bytes:
    """RLP-encode a byte string, a non-negative integer, or a (nested) sequence."""
    if isinstance(item, (bytes, bytearray, memoryview)):
        data = bytes(item)
        if len(data) == 1 and data[0] < _STRING_OFFSET:
            return data
        return _prefix(len(data), _STRING_OFFSET) + data
    if isinstance(item, int) and not isinstance(item, bool):
        return encode_uint(item)
    if isinstance(item, (list, tuple)):
        payload = b"".join(encode(element) for element in item)
        return _prefix(len(payload), _LIST_OFFSET) + payload
    raise TypeError(f"cannot RLP-encode {type(item).__name__}")


def encode_uint(value: int) -> bytes:
    """RLP-encode a non-negative integer as its minimal big-endian bytes."""
    if value < 0:
        raise ValueError("cannot RLP-encode a negative integer")
    return encode(value.to_bytes((value.bit_length() + 7) // 8, "big"))


def _read_long_length(data: bytes, pos: int, size: int) -> int:
    if pos + size > len(data):
        raise RlpError("input too short for length")
    if data[pos] == 0:
        raise RlpError("length has leading zeros")
    length = int.from_bytes(data[pos : pos + size], "big")
    if length < _SHORT_LIMIT:
        raise RlpError("non-canonical long length")
    return length


def _decode_at(data: bytes, pos: int) -> tuple[Item, int]:
    if pos >= len(data):
        raise RlpError("input too short")
    prefix = data[pos]

    if prefix < _STRING_OFFSET:
        return data[pos : pos + 1], pos + 1

    if prefix < _LIST_OFFSET:
        if prefix <= 0xB7:
            length = prefix - _STRING_OFFSET
            start = pos + 1
        else:
            size = prefix - 0xB7
            length = _read_long_length(data, pos + 1, size)
            start = pos + 1 + size
        end = start + length
        if end > len(data):
            raise RlpError("input too short for string")
        value = data[start:end]
        if length == 1 and value[0] < _STRING_OFFSET:
            raise RlpError("non-canonical single byte")
        return value, end

    if prefix <= 0xF7:
        length = prefix - _LIST_OFFSET
        start = pos + 1
    else:
        size = prefix - 0xF7
        length = _read_long_length(data, pos + 1, size)
        start = pos + 1 + size
    end = start + length
    if end > len(data):
        raise RlpError("input too short for list")
    items: list = []
    cursor = start
    while cursor < end:
        item, cursor = _decode_at(data, cursor)
        items.append(item)
    if cursor != end:
        raise RlpError("list payload length mismatch")
    return items, end


def decode(data: bytes | bytearray | memoryview) -> Item:
    """Decode one RLP item; byte strings become bytes and lists become lists."""
    raw = bytes(data)
    item, end = _decode_at(raw, 0)
    if end != len(raw):
        raise RlpError("trailing bytes after RLP item")
    return item


def decode_uint(data: bytes | bytearray | memoryview) -> int:
    """Decode an RLP-encoded non-negative integer."""
    item = decode(data)
    if isinstance(item, list):
        raise RlpError("expected a string, got a list")
    if item and item[0] == 0:
        raise RlpError("integer has leading zeros")
    return int.from_bytes(item, "big")