"""Keccak, RLP, sparse Merkle Patricia tries, ABI encoding, block metadata and an in-memory account database."""

__version__ = "0.1.0"