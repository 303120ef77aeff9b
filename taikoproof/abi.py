"""Solidity ABI encoding and decoding of static and dynamic values."""

from __future__ import annotations

import functools
import re
from dataclasses import dataclass
from typing import Any, Optional, Sequence

__all__ = ["AbiError", "encode_params", "encode", "decode_params"]

_WORD = 32
_INT_RE = re.compile(r"(u?)int(\d*)")
_BYTES_RE = re.compile(r"bytes(\d+)")


class AbiError(ValueError):
    """Raised for unknown types, values that do not fit their type, or malformed data."""


@dataclass(frozen=True)
class _Type:
    kind: str
    size: int = 0
    components: tuple = ()
    length: Optional[int] = None

    @property
    def dynamic(self) -> bool:
        if self.kind in ("bytes", "string"):
            return True
        if self.kind == "array":
            return self.length is None or self.components[0].dynamic
        if self.kind == "tuple":
            return any(component.dynamic for component in self.components)
        return False

    def head_size(self) -> int:
        if self.dynamic:
            return _WORD
        if self.kind == "tuple":
            return sum(component.head_size() for component in self.components)
        if self.kind == "array":
            return self.length * self.components[0].head_size()
        return _WORD


def _split(body: str) -> list[str]:
    if not body.strip():
        return []
    parts: list[str] = []
    depth = 0
    start = 0
    for pos, char in enumerate(body):
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
            if depth < 0:
                raise AbiError(f"unbalanced parentheses in {body!r}")
        elif char == "," and depth == 0:
            parts.append(body[start:pos])
            start = pos + 1
    if depth:
        raise AbiError(f"unbalanced parentheses in {body!r}")
    parts.append(body[start:])
    return parts


@functools.lru_cache(maxsize=None)
def _parse(text: str) -> _Type:
    text = text.strip()
    if text.endswith("]"):
        start = text.rfind("[")
        if start <= 0:
            raise AbiError(f"invalid type {text!r}")
        inner = text[start + 1 : -1].strip()
        element = _parse(text[:start])
        if not inner:
            return _Type("array", components=(element,))
        if not inner.isdigit():
            raise AbiError(f"invalid array length in {text!r}")
        return _Type("array", components=(element,), length=int(inner))
    if text.startswith("("):
        if not text.endswith(")"):
            raise AbiError(f"invalid tuple type {text!r}")
        return _Type("tuple", components=tuple(_parse(part) for part in _split(text[1:-1])))
    if text in ("address", "bool", "bytes", "string"):
        return _Type(text)
    match = _INT_RE.fullmatch(text)
    if match:
        bits = int(match.group(2)) if match.group(2) else 256
        if bits % 8 or not 8 <= bits <= 256:
            raise AbiError(f"unknown type {text!r}")
        return _Type("int" if not match.group(1) else "uint", bits)
    match = _BYTES_RE.fullmatch(text)
    if match:
        size = int(match.group(1))
        if not 1 <= size <= 32:
            raise AbiError(f"unknown type {text!r}")
        return _Type("fixed_bytes", size)
    raise AbiError(f"unknown type {text!r}")


def _parse_all(types: Sequence[str]) -> tuple[_Type, ...]:
    if isinstance(types, str):
        raise AbiError("types must be a sequence of type names")
    return tuple(_parse(name) for name in types)


def _word(value: int) -> bytes:
    return value.to_bytes(_WORD, "big")


def _pad_right(data: bytes) -> bytes:
    return data + bytes(-len(data) % _WORD)


def _fixed_bytes(value: Any, what: str) -> bytes:
    if isinstance(value, str):
        text = value[2:] if value.startswith(("0x", "0X")) else value
        try:
            return bytes.fromhex(text)
        except ValueError:
            raise AbiError(f"invalid hex for {what}: {value!r}") from None
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value)
    raise AbiError(f"expected bytes for {what}, got {type(value).__name__}")


def _check_int(value: Any, name: str) -> int:
    if not isinstance(value, int) or isinstance(value, bool):
        raise AbiError(f"expected an integer for {name}, got {type(value).__name__}")
    return value


def _encode(kind: _Type, value: Any) -> bytes:
    if kind.kind == "uint":
        number = _check_int(value, f"uint{kind.size}")
        if not 0 <= number < 1 << kind.size:
            raise AbiError(f"value {number} does not fit uint{kind.size}")
        return _word(number)
    if kind.kind == "int":
        number = _check_int(value, f"int{kind.size}")
        limit = 1 << (kind.size - 1)
        if not -limit <= number < limit:
            raise AbiError(f"value {number} does not fit int{kind.size}")
        return _word(number % (1 << 256))
    if kind.kind == "bool":
        if not isinstance(value, bool):
            raise AbiError(f"expected a bool, got {type(value).__name__}")
        return _word(int(value))
    if kind.kind == "address":
        raw = _fixed_bytes(value, "address")
        if len(raw) != 20:
            raise AbiError(f"an address must be 20 bytes, got {len(raw)}")
        return bytes(12) + raw
    if kind.kind == "fixed_bytes":
        raw = _fixed_bytes(value, f"bytes{kind.size}")
        if len(raw) != kind.size:
            raise AbiError(f"expected {kind.size} bytes, got {len(raw)}")
        return _pad_right(raw)
    if kind.kind == "string":
        if not isinstance(value, str):
            raise AbiError(f"expected a string, got {type(value).__name__}")
        raw = value.encode("utf-8")
        return _word(len(raw)) + _pad_right(raw)
    if kind.kind == "bytes":
        if not isinstance(value, (bytes, bytearray, memoryview)):
            raise AbiError(f"expected bytes, got {type(value).__name__}")
        raw = bytes(value)
        return _word(len(raw)) + _pad_right(raw)
    if kind.kind == "tuple":
        return _encode_tuple(kind.components, value)
    items = _as_list(value)
    element = kind.components[0]
    if kind.length is None:
        return _word(len(items)) + _encode_tuple((element,) * len(items), items)
    if len(items) != kind.length:
        raise AbiError(f"expected {kind.length} array elements, got {len(items)}")
    return _encode_tuple((element,) * kind.length, items)


def _as_list(values: Any) -> list:
    if isinstance(values, (str, bytes, bytearray, dict)):
        raise AbiError(f"expected a sequence, got {type(values).__name__}")
    try:
        return list(values)
    except TypeError:
        raise AbiError(f"expected a sequence, got {type(values).__name__}") from None


def _encode_tuple(components: tuple, values: Any) -> bytes:
    items = _as_list(values)
    if len(items) != len(components):
        raise AbiError(f"expected {len(components)} values, got {len(items)}")
    tail_offset = sum(component.head_size() for component in components)
    heads: list[bytes] = []
    tails: list[bytes] = []
    for component, value in zip(components, items):
        encoded = _encode(component, value)
        if component.dynamic:
            heads.append(_word(tail_offset))
            tails.append(encoded)
            tail_offset += len(encoded)
        else:
            heads.append(encoded)
    return b"".join(heads) + b"".join(tails)


def _read_word(data: bytes, pos: int) -> bytes:
    if pos < 0 or pos + _WORD > len(data):
        raise AbiError("data too short")
    return data[pos : pos + _WORD]


def _read_uint(data: bytes, pos: int) -> int:
    return int.from_bytes(_read_word(data, pos), "big")


def _decode(kind: _Type, data: bytes, pos: int) -> Any:
    if kind.kind == "uint":
        value = _read_uint(data, pos)
        if value >> kind.size:
            raise AbiError(f"value {value} does not fit uint{kind.size}")
        return value
    if kind.kind == "int":
        value = _read_uint(data, pos)
        if value >= 1 << 255:
            value -= 1 << 256
        limit = 1 << (kind.size - 1)
        if not -limit <= value < limit:
            raise AbiError(f"value {value} does not fit int{kind.size}")
        return value
    if kind.kind == "bool":
        value = _read_uint(data, pos)
        if value > 1:
            raise AbiError(f"invalid bool value {value}")
        return bool(value)
    if kind.kind == "address":
        word = _read_word(data, pos)
        if any(word[:12]):
            raise AbiError("address has dirty upper bytes")
        return word[12:]
    if kind.kind == "fixed_bytes":
        word = _read_word(data, pos)
        if any(word[kind.size :]):
            raise AbiError(f"bytes{kind.size} has dirty lower bytes")
        return word[: kind.size]
    if kind.kind in ("bytes", "string"):
        length = _read_uint(data, pos)
        start = pos + _WORD
        end = start + length
        if end > len(data):
            raise AbiError("data too short for byte string")
        raw = data[start:end]
        if kind.kind == "bytes":
            return raw
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise AbiError(f"invalid utf-8 string: {exc}") from exc
    if kind.kind == "tuple":
        return _decode_tuple(kind.components, data, pos)
    element = kind.components[0]
    if kind.length is None:
        count = _read_uint(data, pos)
        if count > len(data):
            raise AbiError("array length exceeds data")
        return list(_decode_tuple((element,) * count, data, pos + _WORD))
    return list(_decode_tuple((element,) * kind.length, data, pos))


def _decode_tuple(components: tuple, data: bytes, base: int) -> tuple:
    values = []
    pos = base
    for component in components:
        if component.dynamic:
            offset = _read_uint(data, pos)
            values.append(_decode(component, data, base + offset))
        else:
            values.append(_decode(component, data, pos))
        pos += component.head_size()
    return tuple(values)


def encode_params(types: Sequence[str], values: Sequence[Any]) -> bytes:
    """Encode values as a parameter list, as in call data after the selector."""
    return _encode_tuple(_parse_all(types), values)


def encode(types: Sequence[str], values: Sequence[Any]) -> bytes:
    """Encode values as one tuple value.

    A tuple holding a dynamic member is preceded by the offset word of its body.
    """
    components = _parse_all(types)
    body = _encode_tuple(components, values)
    if any(component.dynamic for component in components):
        return _word(_WORD) + body
    return body


def decode_params(types: Sequence[str], data: bytes) -> tuple:
    """Decode a parameter list; tuples come back as tuples and arrays as lists."""
    return _decode_tuple(_parse_all(types), bytes(data), 0)