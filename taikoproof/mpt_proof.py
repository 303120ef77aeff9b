"""Building sparse tries from EIP-1186 account and storage proofs."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Iterable, Mapping, MutableMapping, Optional, Sequence

from .keccak import keccak
from .mpt import (
    EMPTY_ROOT,
    MptError,
    MptNode,
    NodeNotResolvedError,
    _Branch,
    _Digest,
    _Extension,
    _Leaf,
    _Null,
    to_encoded_path,
)

__all__ = [
    "ProofError",
    "StorageProof",
    "AccountProof",
    "StorageEntry",
    "parse_proof",
    "mpt_from_proof",
    "is_not_included",
    "resolve_nodes",
    "shorten_node_path",
    "node_from_digest",
    "add_orphaned_leafs",
    "proofs_to_tries",
]

StorageEntry = tuple[MptNode, list[int]]
"""A storage trie together with the storage slots that were read from it."""

_ZERO_HASH = bytes(32)


class ProofError(ValueError):
    """A Merkle proof is malformed or does not match the expected root."""


@dataclass(frozen=True)
class StorageProof:
    """The proof of one storage slot."""

    key: bytes
    """The 32-byte storage slot."""
    proof: list[bytes] = field(default_factory=list)
    """RLP-encoded trie nodes from the storage root down."""

    def __post_init__(self) -> None:
        if len(self.key) != 32:
            raise ValueError("storage key must be 32 bytes")


@dataclass(frozen=True)
class AccountProof:
    """The proof of one account and of some of its storage slots."""

    account_proof: list[bytes] = field(default_factory=list)
    """RLP-encoded trie nodes from the state root down."""
    storage_hash: bytes = EMPTY_ROOT
    """Root hash of the account's storage trie."""
    storage_proof: list[StorageProof] = field(default_factory=list)


def _clone(node: MptNode) -> MptNode:
    return copy.deepcopy(node)


def parse_proof(proof: Iterable[bytes]) -> list[MptNode]:
    """Decode a list of RLP-encoded proof nodes."""
    try:
        return [MptNode.decode(bytes(encoded)) for encoded in proof]
    except MptError as exc:
        raise ProofError(f"invalid proof node: {exc}") from exc


def mpt_from_proof(proof_nodes: Sequence[MptNode]) -> MptNode:
    """Join proof nodes into one trie, replacing each hash reference by its node.

    For an inclusion proof the result holds exactly one leaf with the value.
    """
    resolved: Optional[MptNode] = None
    for index in reversed(range(len(proof_nodes))):
        node = proof_nodes[index]
        if resolved is None:
            resolved = _clone(node)
            continue

        child_ref = resolved.reference()
        if len(child_ref) != 32:
            raise ProofError(f"node {index + 1} in proof is not referenced by hash")

        match node._data:
            case _Branch(children):
                position = next(
                    (
                        i
                        for i, child in enumerate(children)
                        if child is not None
                        and isinstance(child._data, _Digest)
                        and child._data.digest == child_ref
                    ),
                    None,
                )
                if position is None:
                    raise ProofError(f"node {index} does not reference the successor")
                new_children = [
                    None if child is None else _clone(child) for child in children
                ]
                new_children[position] = resolved
                resolved = MptNode.branch(new_children)
            case _Extension(prefix, child):
                if not (
                    isinstance(child._data, _Digest) and child._data.digest == child_ref
                ):
                    raise ProofError(f"node {index} does not reference the successor")
                resolved = MptNode.extension(prefix, resolved)
            case _:
                raise ProofError(f"node {index} has no children to replace")

    return resolved if resolved is not None else MptNode()


def is_not_included(key: bytes, proof_nodes: Sequence[MptNode]) -> bool:
    """Return whether the proof shows that ``key`` is not in the trie."""
    trie = mpt_from_proof(proof_nodes)
    try:
        value = trie.get(key)
    except NodeNotResolvedError as exc:
        raise ProofError(f"proof does not resolve the key: {exc}") from exc
    return value is None


def resolve_nodes(root: MptNode, node_store: Mapping[bytes, MptNode]) -> MptNode:
    """Return a new trie in which every digest found in ``node_store`` is resolved.

    ``node_store`` maps node references (see :meth:`MptNode.reference`) to nodes.
    """
    match root._data:
        case _Null() | _Leaf():
            return _clone(root)
        case _Branch(children):
            return MptNode.branch(
                None if child is None else resolve_nodes(child, node_store)
                for child in children
            )
        case _Extension(prefix, child):
            return MptNode.extension(prefix, resolve_nodes(child, node_store))
        case _Digest(digest):
            node = node_store.get(digest)
            if node is None:
                return _clone(root)
            return resolve_nodes(node, node_store)
    raise AssertionError("unknown node kind")


def shorten_node_path(node: MptNode) -> list[MptNode]:
    """Return every node obtained by dropping leading nibbles from a leaf or extension path.

    After deletions, leaves and extensions may get longer paths; these variants let
    the original nodes still be found by reference.
    """
    nibs = node.nibs()
    match node._data:
        case _Leaf(_, value):
            return [
                MptNode.leaf(to_encoded_path(nibs[start:], True), value)
                for start in range(len(nibs) + 1)
            ]
        case _Extension(_, child):
            return [
                MptNode.extension(to_encoded_path(nibs[start:], False), _clone(child))
                for start in range(len(nibs) + 1)
            ]
    return []


def node_from_digest(digest: bytes) -> MptNode:
    """Return a trie known only by its root hash; empty for the empty or zero root."""
    if digest in (EMPTY_ROOT, _ZERO_HASH):
        return MptNode()
    return MptNode.digest(digest)


def add_orphaned_leafs(
    key: bytes,
    proof: Sequence[bytes],
    nodes_by_reference: MutableMapping[bytes, MptNode],
) -> None:
    """Add the leaf of a non-inclusion proof, in all shortened forms, to the node store."""
    if not proof:
        return
    try:
        proof_nodes = parse_proof(proof)
    except ProofError as exc:
        raise ProofError("invalid proof encoding") from exc
    if is_not_included(keccak(key), proof_nodes):
        for node in shorten_node_path(proof_nodes[-1]):
            nodes_by_reference[node.reference()] = node


def _collect(
    encoded_proof: Sequence[bytes], nodes: MutableMapping[bytes, MptNode]
) -> Optional[MptNode]:
    proof_nodes = parse_proof(encoded_proof)
    mpt_from_proof(proof_nodes)
    for node in proof_nodes:
        nodes[node.reference()] = node
    return proof_nodes[0] if proof_nodes else None


def proofs_to_tries(
    state_root: bytes,
    parent_proofs: Mapping[bytes, AccountProof],
    proofs: Mapping[bytes, AccountProof],
) -> tuple[MptNode, dict[bytes, StorageEntry]]:
    """Build the state trie and the storage tries from account proofs.

    ``parent_proofs`` are taken against ``state_root``; ``proofs`` are the proofs of
    the same addresses after the block and supply leaves needed for deletions.
    """
    if not parent_proofs:
        return node_from_digest(state_root), {}

    storage: dict[bytes, StorageEntry] = {}
    state_nodes: dict[bytes, MptNode] = {}
    state_root_node = MptNode()

    for address, proof in parent_proofs.items():
        first = _collect(proof.account_proof, state_nodes)
        if first is not None:
            state_root_node = first

        final_proof = proofs.get(address)
        if final_proof is None:
            raise ProofError(f"missing proof for address 0x{bytes(address).hex()}")

        add_orphaned_leafs(address, final_proof.account_proof, state_nodes)

        storage_root = proof.storage_hash
        if not proof.storage_proof:
            storage[address] = (node_from_digest(storage_root), [])
            continue

        storage_nodes: dict[bytes, MptNode] = {}
        storage_root_node = MptNode()
        for storage_proof in proof.storage_proof:
            first = _collect(storage_proof.proof, storage_nodes)
            if first is not None:
                storage_root_node = first

        for storage_proof in final_proof.storage_proof:
            add_orphaned_leafs(storage_proof.key, storage_proof.proof, storage_nodes)

        storage_trie = resolve_nodes(storage_root_node, storage_nodes)
        if storage_trie.hash() != storage_root:
            raise ProofError(
                f"storage root mismatch for 0x{bytes(address).hex()}: "
                f"expected 0x{storage_root.hex()}, got 0x{storage_trie.hash().hex()}"
            )

        slots = [int.from_bytes(p.key, "big") for p in proof.storage_proof]
        storage[address] = (storage_trie, slots)

    state_trie = resolve_nodes(state_root_node, state_nodes)
    if state_trie.hash() != state_root:
        raise ProofError(
            f"state root mismatch: expected 0x{state_root.hex()}, "
            f"got 0x{state_trie.hash().hex()}"
        )
    return state_trie, storage