"""Sparse Merkle Patricia Trie as used for Ethereum state and storage."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Iterable, Optional, Union

from . import rlp
from .keccak import KECCAK_EMPTY, keccak

__all__ = [
    "EMPTY_ROOT",
    "KECCAK_EMPTY",
    "MptError",
    "NodeNotResolvedError",
    "ValueInBranchError",
    "StateAccount",
    "MptNode",
    "to_nibs",
    "to_encoded_path",
    "lcp",
    "prefix_nibs",
]

EMPTY_ROOT: bytes = bytes.fromhex(
    "56e81f171bcc55a6ff8345e692c0f86e5b48e01b996cadc001622fb5e363b421"
)
"""Root hash of an empty trie."""

_EMPTY_STRING_CODE = 0x80


class MptError(Exception):
    """Base error for trie operations and trie decoding."""


class NodeNotResolvedError(MptError):
    """An operation reached a sub-trie that is only known by its hash."""

    def __init__(self, digest: bytes) -> None:
        self.digest = bytes(digest)
        super().__init__(f"reached an unresolved node: 0x{self.digest.hex()}")


class ValueInBranchError(MptError):
    """A value would have to be stored in a branch node, which is not supported."""

    def __init__(self) -> None:
        super().__init__("branch node with value")


def _uint(data: bytes) -> int:
    if data and data[0] == 0:
        raise MptError("integer has leading zeros")
    return int.from_bytes(data, "big")


@dataclass
class StateAccount:
    """An account as stored in the state trie."""

    nonce: int = 0
    balance: int = 0
    storage_root: bytes = EMPTY_ROOT
    code_hash: bytes = KECCAK_EMPTY

    def to_rlp(self) -> bytes:
        """Return the RLP encoding of the account."""
        return rlp.encode([self.nonce, self.balance, self.storage_root, self.code_hash])

    @classmethod
    def from_rlp(cls, data: bytes) -> "StateAccount":
        """Decode an RLP-encoded account."""
        try:
            item = rlp.decode(data)
        except rlp.RlpError as exc:
            raise MptError(f"invalid account encoding: {exc}") from exc
        if not isinstance(item, list) or len(item) != 4:
            raise MptError("account must be a list of four items")
        nonce, balance, storage_root, code_hash = item
        if not all(isinstance(part, bytes) for part in item):
            raise MptError("account fields must be strings")
        if len(storage_root) != 32 or len(code_hash) != 32:
            raise MptError("account hashes must be 32 bytes")
        return cls(_uint(nonce), _uint(balance), storage_root, code_hash)


@dataclass(frozen=True)
class _Null:
    pass


@dataclass
class _Branch:
    children: list


@dataclass
class _Leaf:
    prefix: bytes
    value: bytes


@dataclass
class _Extension:
    prefix: bytes
    child: "MptNode"


@dataclass
class _Digest:
    digest: bytes


_NULL = _Null()
_NodeData = Union[_Null, _Branch, _Leaf, _Extension, _Digest]


def _list_encode(payload: bytes) -> bytes:
    length = len(payload)
    if length < 56:
        return bytes([0xC0 + length]) + payload
    length_bytes = length.to_bytes((length.bit_length() + 7) // 8, "big")
    return bytes([0xF7 + len(length_bytes)]) + length_bytes + payload


class MptNode:
    """A node of a sparse Merkle Patricia Trie; the root node represents the trie.

    Parts of the trie may be replaced by their hash (digest nodes); operations that
    reach such a part raise :class:`NodeNotResolvedError`. Branches never hold values.
    """

    __slots__ = ("_data", "_cache")

    def __init__(self, data: Optional[_NodeData] = None) -> None:
        self._data: _NodeData = _NULL if data is None else data
        self._cache: Optional[bytes] = None

    # construction -------------------------------------------------------

    @classmethod
    def leaf(cls, prefix: bytes, value: bytes) -> "MptNode":
        """Create a leaf node from its encoded path and value."""
        return cls(_Leaf(bytes(prefix), bytes(value)))

    @classmethod
    def extension(cls, prefix: bytes, child: "MptNode") -> "MptNode":
        """Create an extension node from its encoded path and child."""
        return cls(_Extension(bytes(prefix), child))

    @classmethod
    def branch(cls, children: Iterable[Optional["MptNode"]]) -> "MptNode":
        """Create a branch node from exactly 16 optional children."""
        nodes = list(children)
        if len(nodes) != 16:
            raise ValueError("a branch needs exactly 16 children")
        return cls(_Branch(nodes))

    @classmethod
    def digest(cls, value: bytes) -> "MptNode":
        """Create a node standing for a sub-trie known only by its hash."""
        if len(value) != 32:
            raise ValueError("a digest must be 32 bytes")
        return cls(_Digest(bytes(value)))

    @classmethod
    def decode(cls, data: bytes) -> "MptNode":
        """Decode an RLP-encoded node."""
        try:
            item = rlp.decode(data)
        except rlp.RlpError as exc:
            raise MptError(f"RLP error: {exc}") from exc
        return cls._from_item(item)

    @classmethod
    def _from_item(cls, item) -> "MptNode":
        if isinstance(item, bytes):
            if not item:
                return cls()
            if len(item) == 32:
                return cls(_Digest(item))
            raise MptError("unexpected string length for a node")
        if len(item) == 2:
            path, second = item
            if not isinstance(path, bytes) or not path:
                raise MptError("invalid node path")
            if path[0] & 0x20 == 0:
                return cls(_Extension(path, cls._from_item(second)))
            if not isinstance(second, bytes):
                raise MptError("leaf value must be a string")
            return cls(_Leaf(path, second))
        if len(item) == 17:
            children = [
                None if child == b"" else cls._from_item(child) for child in item[:16]
            ]
            value = item[16]
            if not isinstance(value, bytes):
                raise MptError("branch value must be a string")
            if value:
                raise MptError("branch node with value")
            return cls(_Branch(children))
        raise MptError("incorrect list length for a node")

    # encoding and hashing -----------------------------------------------

    def encode(self) -> bytes:
        """Return the RLP encoding of the node."""
        match self._data:
            case _Null():
                return bytes([_EMPTY_STRING_CODE])
            case _Branch(children):
                payload = b"".join(
                    child._reference_encoded()
                    if child is not None
                    else bytes([_EMPTY_STRING_CODE])
                    for child in children
                )
                return _list_encode(payload + bytes([_EMPTY_STRING_CODE]))
            case _Leaf(prefix, value):
                return _list_encode(rlp.encode(prefix) + rlp.encode(value))
            case _Extension(prefix, child):
                return _list_encode(rlp.encode(prefix) + child._reference_encoded())
            case _Digest(digest):
                return rlp.encode(digest)
        raise AssertionError("unknown node kind")

    def reference(self) -> bytes:
        """Return how this node is referenced from its parent.

        An encoding shorter than 32 bytes is returned as is; otherwise the 32-byte
        Keccak digest of the encoding is returned.
        """
        if self._cache is None:
            self._cache = self._calc_reference()
        return self._cache

    def _calc_reference(self) -> bytes:
        match self._data:
            case _Null():
                return bytes([_EMPTY_STRING_CODE])
            case _Digest(digest):
                return digest
        encoded = self.encode()
        return encoded if len(encoded) < 32 else keccak(encoded)

    def _reference_encoded(self) -> bytes:
        ref = self.reference()
        if len(ref) < 32:
            return ref
        return bytes([_EMPTY_STRING_CODE + 32]) + ref

    def hash(self) -> bytes:
        """Return the 32-byte hash of the node."""
        if isinstance(self._data, _Null):
            return EMPTY_ROOT
        ref = self.reference()
        return ref if len(ref) == 32 else keccak(ref)

    def _invalidate(self) -> None:
        self._cache = None

    # inspection ----------------------------------------------------------

    def is_empty(self) -> bool:
        """Return whether the trie holds no key at all."""
        return isinstance(self._data, _Null)

    def is_digest(self) -> bool:
        """Return whether the node is only known by its hash."""
        return isinstance(self._data, _Digest)

    def nibs(self) -> list[int]:
        """Return the nibbles of the node's path (empty for other node kinds)."""
        match self._data:
            case _Leaf(prefix, _) | _Extension(prefix, _):
                return prefix_nibs(prefix)
        return []

    def size(self) -> int:
        """Return the number of traversable nodes in the trie."""
        match self._data:
            case _Branch(children):
                return 1 + sum(child.size() for child in children if child is not None)
            case _Leaf():
                return 1
            case _Extension(_, child):
                return 1 + child.size()
        return 0

    def debug_rlp(self, decode: Callable[[bytes], object]) -> list[str]:
        """List the trie's leaves, one line each, with values passed through ``decode``."""
        nibs = "".join(f"{n:x}" for n in self.nibs())
        match self._data:
            case _Null():
                return ["Null"]
            case _Branch(children):
                lines = []
                for index, child in enumerate(children):
                    sub = child.debug_rlp(decode) if child is not None else ["None"]
                    lines.extend(f"{index:x} {line}" for line in sub)
                return lines
            case _Leaf(_, value):
                return [f"{nibs} -> {decode(value)!r}"]
            case _Extension(_, child):
                return [f"{nibs} {line}" for line in child.debug_rlp(decode)]
            case _Digest(digest):
                return [f"#0x{digest.hex()}"]
        raise AssertionError("unknown node kind")

    # lookup --------------------------------------------------------------

    def get(self, key: bytes) -> Optional[bytes]:
        """Return the value stored under ``key``, or None if it is provably absent."""
        nibs = to_nibs(key)
        node = self
        while True:
            match node._data:
                case _Null():
                    return None
                case _Branch(children):
                    if not nibs:
                        return None
                    child = children[nibs[0]]
                    if child is None:
                        return None
                    node, nibs = child, nibs[1:]
                case _Leaf(prefix, value):
                    return value if prefix_nibs(prefix) == nibs else None
                case _Extension(prefix, child):
                    path = prefix_nibs(prefix)
                    if nibs[: len(path)] != path:
                        return None
                    node, nibs = child, nibs[len(path):]
                case _Digest(digest):
                    raise NodeNotResolvedError(digest)

    def get_rlp(self, key: bytes):
        """Return the RLP-decoded value under ``key``, or None if absent."""
        value = self.get(key)
        if value is None:
            return None
        try:
            return rlp.decode(value)
        except rlp.RlpError as exc:
            raise MptError(f"RLP error: {exc}") from exc

    # modification --------------------------------------------------------

    def clear(self) -> None:
        """Remove every key from the trie."""
        self._data = _NULL
        self._invalidate()

    def insert(self, key: bytes, value: bytes) -> bool:
        """Insert or update ``key``; return False if the same value was already there."""
        if not value:
            raise ValueError("value must not be empty")
        return self._insert(to_nibs(key), bytes(value))

    def insert_rlp(self, key: bytes, value) -> bool:
        """Insert the RLP encoding of ``value`` under ``key``."""
        encoded = value.to_rlp() if isinstance(value, StateAccount) else rlp.encode(value)
        return self._insert(to_nibs(key), encoded)

    def insert_rlp_encoded(self, key: bytes, value: bytes) -> bool:
        """Insert an already RLP-encoded value under ``key``."""
        return self._insert(to_nibs(key), bytes(value))

    def _insert(self, nibs: list[int], value: bytes) -> bool:
        match self._data:
            case _Null():
                self._data = _Leaf(to_encoded_path(nibs, True), value)
            case _Branch(children):
                if not nibs:
                    raise ValueInBranchError()
                index, tail = nibs[0], nibs[1:]
                child = children[index]
                if child is None:
                    children[index] = MptNode(_Leaf(to_encoded_path(tail, True), value))
                elif not child._insert(tail, value):
                    return False
            case _Leaf(prefix, old_value):
                own = prefix_nibs(prefix)
                common = lcp(own, nibs)
                if common == len(own) and common == len(nibs):
                    if old_value == value:
                        return False
                    self._data = _Leaf(prefix, value)
                elif common == len(own) or common == len(nibs):
                    raise ValueInBranchError()
                else:
                    split = common + 1
                    children = [None] * 16
                    children[own[common]] = MptNode(
                        _Leaf(to_encoded_path(own[split:], True), old_value)
                    )
                    children[nibs[common]] = MptNode(
                        _Leaf(to_encoded_path(nibs[split:], True), value)
                    )
                    self._data = self._split(own, common, _Branch(children))
            case _Extension(prefix, existing):
                own = prefix_nibs(prefix)
                common = lcp(own, nibs)
                if common == len(own):
                    if not existing._insert(nibs[common:], value):
                        return False
                elif common == len(nibs):
                    raise ValueInBranchError()
                else:
                    split = common + 1
                    children = [None] * 16
                    if split < len(own):
                        children[own[common]] = MptNode(
                            _Extension(to_encoded_path(own[split:], False), existing)
                        )
                    else:
                        children[own[common]] = existing
                    children[nibs[common]] = MptNode(
                        _Leaf(to_encoded_path(nibs[split:], True), value)
                    )
                    self._data = self._split(own, common, _Branch(children))
            case _Digest(digest):
                raise NodeNotResolvedError(digest)
        self._invalidate()
        return True

    @staticmethod
    def _split(own: list[int], common: int, branch: _Branch) -> _NodeData:
        if common > 0:
            return _Extension(to_encoded_path(own[:common], False), MptNode(branch))
        return branch

    def delete(self, key: bytes) -> bool:
        """Remove ``key``; return whether it was present."""
        return self._delete(to_nibs(key))

    def _delete(self, nibs: list[int]) -> bool:
        match self._data:
            case _Null():
                return False
            case _Branch(children):
                if not nibs:
                    raise ValueInBranchError()
                index, tail = nibs[0], nibs[1:]
                child = children[index]
                if child is None or not child._delete(tail):
                    return False
                if child.is_empty():
                    children[index] = None
                remaining = [(i, node) for i, node in enumerate(children) if node is not None]
                if len(remaining) == 1:
                    position, orphan = remaining[0]
                    match orphan._data:
                        case _Leaf(prefix, value):
                            self._data = _Leaf(
                                to_encoded_path([position, *prefix_nibs(prefix)], True), value
                            )
                        case _Extension(prefix, grandchild):
                            self._data = _Extension(
                                to_encoded_path([position, *prefix_nibs(prefix)], False),
                                grandchild,
                            )
                        case _:
                            self._data = _Extension(to_encoded_path([position], False), orphan)
            case _Leaf(prefix, _):
                if prefix_nibs(prefix) != nibs:
                    return False
                self._data = _NULL
            case _Extension(prefix, child):
                own = prefix_nibs(prefix)
                if nibs[: len(own)] != own:
                    return False
                if not child._delete(nibs[len(own):]):
                    return False
                match child._data:
                    case _Null():
                        self._data = _NULL
                    case _Leaf(child_prefix, value):
                        self._data = _Leaf(
                            to_encoded_path(own + prefix_nibs(child_prefix), True), value
                        )
                    case _Extension(child_prefix, grandchild):
                        self._data = _Extension(
                            to_encoded_path(own + prefix_nibs(child_prefix), False), grandchild
                        )
            case _Digest(digest):
                raise NodeNotResolvedError(digest)
        self._invalidate()
        return True

    # dunder --------------------------------------------------------------

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, MptNode):
            return NotImplemented
        return self._data == other._data

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"MptNode({self._data!r})"


def to_nibs(data: bytes) -> list[int]:
    """Split bytes into nibbles, high nibble first."""
    return [nib for byte in data for nib in (byte >> 4, byte & 0xF)]


def to_encoded_path(nibs: list[int], is_leaf: bool) -> bytes:
    """Encode nibbles as a compact (hex-prefix) path for a leaf or extension."""
    nibs = list(nibs)
    prefix = 0x20 if is_leaf else 0x00
    if len(nibs) % 2:
        prefix += 0x10 + nibs[0]
        nibs = nibs[1:]
    return bytes([prefix]) + bytes((hi << 4) + lo for hi, lo in zip(nibs[::2], nibs[1::2]))


def lcp(a, b) -> int:
    """Return the length of the common prefix of two sequences."""
    for index, (x, y) in enumerate(zip(a, b)):
        if x != y:
            return index
    return min(len(a), len(b))


def prefix_nibs(prefix: bytes) -> list[int]:
    """Return the nibbles of a compact-encoded path."""
    if not prefix:
        raise ValueError("encoded path must not be empty")
    first = prefix[0]
    head = [first & 0xF] if first & 0x10 else []
    return head + to_nibs(prefix[1:])