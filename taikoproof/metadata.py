"""Block proposal metadata structures of the proving protocol and their ABI forms."""

from __future__ import annotations

from dataclasses import astuple, dataclass, field
from typing import ClassVar

from . import abi

__all__ = [
    "EthDeposit",
    "BlockMetadata",
    "BaseFeeConfig",
    "BlockMetadataV2",
    "Transition",
    "BlockProposed",
    "BlockProposedV2",
]

_ZERO32 = bytes(32)
_ZERO20 = bytes(20)


def _encode_struct(value) -> bytes:
    return abi.encode([value.ABI_TYPE], [astuple(value)])


def _decode_struct(abi_type: str, data: bytes) -> tuple:
    (values,) = abi.decode_params([abi_type], data)
    return values


@dataclass(frozen=True)
class EthDeposit:
    """An Ether deposit processed with a block."""

    ABI_TYPE: ClassVar[str] = "(address,uint96,uint64)"

    recipient: bytes = _ZERO20
    amount: int = 0
    id: int = 0

    def abi_encode(self) -> bytes:
        """Return the ABI encoding of the deposit."""
        return _encode_struct(self)


@dataclass(frozen=True)
class BlockMetadata:
    """Metadata of a block proposed before the Ontake fork."""

    ABI_TYPE: ClassVar[str] = (
        "(bytes32,bytes32,bytes32,bytes32,bytes32,address,uint64,uint32,"
        "uint64,uint64,uint16,bool,bytes32,address)"
    )

    l1_hash: bytes = _ZERO32
    difficulty: bytes = _ZERO32
    blob_hash: bytes = _ZERO32
    extra_data: bytes = _ZERO32
    deposits_hash: bytes = _ZERO32
    coinbase: bytes = _ZERO20
    id: int = 0
    gas_limit: int = 0
    timestamp: int = 0
    l1_height: int = 0
    min_tier: int = 0
    blob_used: bool = False
    parent_meta_hash: bytes = _ZERO32
    sender: bytes = _ZERO20

    def abi_encode(self) -> bytes:
        """Return the ABI encoding of the metadata."""
        return _encode_struct(self)

    @classmethod
    def abi_decode(cls, data: bytes) -> "BlockMetadata":
        """Decode ABI-encoded metadata."""
        return cls(*_decode_struct(cls.ABI_TYPE, data))


@dataclass(frozen=True)
class BaseFeeConfig:
    """Parameters of the protocol's base fee calculation."""

    ABI_TYPE: ClassVar[str] = "(uint8,uint8,uint32,uint64,uint32)"

    adjustment_quotient: int = 0
    sharing_pctg: int = 0
    gas_issuance_per_second: int = 0
    min_gas_excess: int = 0
    max_gas_issuance_per_block: int = 0

    def abi_encode(self) -> bytes:
        """Return the ABI encoding of the configuration."""
        return _encode_struct(self)


@dataclass(frozen=True)
class BlockMetadataV2:
    """Metadata of a block proposed from the Ontake fork on."""

    ABI_TYPE: ClassVar[str] = (
        "(bytes32,bytes32,bytes32,bytes32,address,uint64,uint32,uint64,uint64,"
        "uint16,bool,bytes32,address,uint96,uint64,uint64,uint32,uint32,uint8,"
        + BaseFeeConfig.ABI_TYPE
        + ")"
    )

    anchor_block_hash: bytes = _ZERO32
    difficulty: bytes = _ZERO32
    blob_hash: bytes = _ZERO32
    extra_data: bytes = _ZERO32
    coinbase: bytes = _ZERO20
    id: int = 0
    gas_limit: int = 0
    timestamp: int = 0
    anchor_block_id: int = 0
    min_tier: int = 0
    blob_used: bool = False
    parent_meta_hash: bytes = _ZERO32
    proposer: bytes = _ZERO20
    liveness_bond: int = 0
    proposed_at: int = 0
    proposed_in: int = 0
    blob_tx_list_offset: int = 0
    blob_tx_list_length: int = 0
    blob_index: int = 0
    base_fee_config: BaseFeeConfig = field(default_factory=BaseFeeConfig)

    def abi_encode(self) -> bytes:
        """Return the ABI encoding of the metadata."""
        return _encode_struct(self)

    @classmethod
    def abi_decode(cls, data: bytes) -> "BlockMetadataV2":
        """Decode ABI-encoded metadata."""
        *head, fee = _decode_struct(cls.ABI_TYPE, data)
        return cls(*head, BaseFeeConfig(*fee))


@dataclass(frozen=True)
class Transition:
    """A state transition from a parent block to a block."""

    ABI_TYPE: ClassVar[str] = "(bytes32,bytes32,bytes32,bytes32)"

    parent_hash: bytes = _ZERO32
    block_hash: bytes = _ZERO32
    state_root: bytes = _ZERO32
    graffiti: bytes = _ZERO32

    def abi_encode(self) -> bytes:
        """Return the ABI encoding of the transition."""
        return _encode_struct(self)

    @classmethod
    def abi_decode(cls, data: bytes) -> "Transition":
        """Decode an ABI-encoded transition."""
        return cls(*_decode_struct(cls.ABI_TYPE, data))


@dataclass(frozen=True)
class BlockProposed:
    """The block proposal event before the Ontake fork."""

    block_id: int = 0
    assigned_prover: bytes = _ZERO20
    liveness_bond: int = 0
    meta: BlockMetadata = field(default_factory=BlockMetadata)
    deposits_processed: tuple[EthDeposit, ...] = ()


@dataclass(frozen=True)
class BlockProposedV2:
    """The block proposal event from the Ontake fork on."""

    block_id: int = 0
    meta: BlockMetadataV2 = field(default_factory=BlockMetadataV2)