# taikoproof

Building blocks for checking Taiko block proofs in Python.

## Modules

- `taikoproof.keccak`: `keccak(data)` returns the 32-byte Keccak-256 digest;
  `KECCAK_EMPTY` is the digest of the empty string.
- `taikoproof.rlp`: `encode`, `encode_uint`, `decode` and `decode_uint` for
  Recursive Length Prefix data. Decoding is strict and raises `RlpError` on
  malformed or non-canonical input; byte strings come back as `bytes` and lists
  as `list`.
- `taikoproof.mpt`: a sparse Merkle Patricia Trie, `MptNode`, with `insert`,
  `insert_rlp`, `get`, `get_rlp`, `delete`, `clear`, `hash`, `encode` and
  `decode`. Sub-tries known only by their hash are digest nodes; reaching one
  raises `NodeNotResolvedError`, and storing a value in a branch raises
  `ValueInBranchError`. `StateAccount` is the account record of the state trie,
  with `to_rlp` and `from_rlp`. `EMPTY_ROOT` is the root hash of an empty trie.
- `taikoproof.mpt_proof`: turning EIP-1186 proofs into tries.
  `AccountProof` and `StorageProof` hold the encoded proof nodes;
  `proofs_to_tries(state_root, parent_proofs, proofs)` returns the state trie and,
  per address, the storage trie with the slots read. `parse_proof`,
  `mpt_from_proof`, `is_not_included`, `resolve_nodes`, `shorten_node_path`,
  `node_from_digest` and `add_orphaned_leafs` are the steps it is built from.
  Bad proofs raise `ProofError`.
- `taikoproof.abi`: Solidity ABI encoding and decoding. `encode_params` and
  `decode_params` handle parameter lists; `encode` encodes one tuple value.
  Unknown types and out-of-range values raise `AbiError`.
- `taikoproof.metadata`: the on-chain structures `BlockMetadata`,
  `BlockMetadataV2`, `BaseFeeConfig`, `Transition` and `EthDeposit`, each with
  `abi_encode` (and `abi_decode` for the metadata and transitions), plus the
  proposal events `BlockProposed` and `BlockProposedV2`.
- `taikoproof.input`: `BlockProposedFork` wraps a proposal of either fork
  (`ForkKind`) and answers `blob_used`, `block_number`, `block_timestamp`,
  `base_fee_config`, `blob_tx_slice_param` and `blob_hash`. `BlobProofType`
  names how a blob is proven, `TaikoProverData` holds prover and graffiti, and
  `get_input_path` names a cached input file.
- `taikoproof.mem_db`: `MemDb`, an in-memory account database with `basic`,
  `storage`, `block_hash` lookups and `commit` of execution changes
  (`Account`, `AccountInfo`, `StorageSlot`). Missing data raises `DbError` or
  `AccountNotLoadedError`.

## Installation

```
pip install .
```

## Examples

```python
from taikoproof.mpt import MptNode

trie = MptNode()
trie.insert(b"dog", b"puppy")
trie.insert(b"horse", b"stallion")
print(trie.get(b"dog"))      # b'puppy'
print(trie.hash().hex())     # root hash of the trie

trie.delete(b"dog")
print(trie.get(b"dog"))      # None
```

```python
from taikoproof.metadata import Transition
from taikoproof.keccak import keccak

transition = Transition(parent_hash=bytes(32), block_hash=bytes(32))
encoded = transition.abi_encode()
assert Transition.abi_decode(encoded) == transition
print(keccak(encoded).hex())
```

## What it does not do

The package does not execute blocks, decode or unpack transaction lists, or
compute KZG commitments and proofs. It carries no chain specifications or
hard-fork tables, no verifier addresses, and does not compute the meta hash or
instance hash that a prover signs. It has no command line and talks to no node
or network; all data is passed in by the caller.

## Tests

```
pip install .[test]
pytest
```