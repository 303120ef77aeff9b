"""Inputs that describe a proposed block and how its blob is proven."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from .metadata import BaseFeeConfig, BlockProposed, BlockProposedV2

__all__ = [
    "BlobProofType",
    "ForkKind",
    "BlockProposedFork",
    "TaikoProverData",
    "get_input_path",
]


class BlobProofType(str, enum.Enum):
    """How the guest proves that the transaction blob matches its commitment."""

    KZG_VERSIONED_HASH = "kzg_versioned_hash"
    """Compute the KZG commitment from the blob and then its versioned hash."""
    PROOF_OF_EQUIVALENCE = "proof_of_equivalence"
    """Prove the KZG evaluation at a Fiat-Shamir point derived from blob and commitment."""

    @classmethod
    def parse(cls, text: str) -> "BlobProofType":
        """Parse a blob proof type name, ignoring surrounding whitespace."""
        try:
            return cls(text.strip())
        except ValueError:
            raise ValueError("invalid blob proof type") from None

    def __str__(self) -> str:
        return self.value


class ForkKind(enum.Enum):
    """The protocol fork a block proposal belongs to."""

    NOTHING = "nothing"
    HEKLA = "hekla"
    ONTAKE = "ontake"


_PROPOSAL_TYPES = {
    ForkKind.NOTHING: type(None),
    ForkKind.HEKLA: BlockProposed,
    ForkKind.ONTAKE: BlockProposedV2,
}


@dataclass(frozen=True)
class BlockProposedFork:
    """A block proposal event of either fork, or none at all."""

    kind: ForkKind = ForkKind.NOTHING
    proposal: Optional[Union[BlockProposed, BlockProposedV2]] = None

    def __post_init__(self) -> None:
        expected = _PROPOSAL_TYPES[self.kind]
        if not isinstance(self.proposal, expected):
            raise ValueError(
                f"{self.kind.name} fork needs a {expected.__name__} proposal, "
                f"got {type(self.proposal).__name__}"
            )

    @property
    def _meta(self):
        return None if self.proposal is None else self.proposal.meta

    def blob_used(self) -> bool:
        """Return whether the transactions were posted in a blob."""
        meta = self._meta
        return False if meta is None else meta.blob_used

    def block_number(self) -> int:
        """Return the proposed block's number, or 0 without a proposal."""
        meta = self._meta
        return 0 if meta is None else meta.id

    def block_timestamp(self) -> int:
        """Return the proposed block's timestamp, or 0 without a proposal."""
        meta = self._meta
        return 0 if meta is None else meta.timestamp

    def base_fee_config(self) -> BaseFeeConfig:
        """Return the base fee configuration; the default one before Ontake."""
        if self.kind is ForkKind.ONTAKE:
            return self.proposal.meta.base_fee_config
        return BaseFeeConfig()

    def blob_tx_slice_param(self) -> Optional[tuple[int, int]]:
        """Return the (offset, length) of the transaction list in the blob, from Ontake on."""
        if self.kind is ForkKind.ONTAKE:
            meta = self.proposal.meta
            return meta.blob_tx_list_offset, meta.blob_tx_list_length
        return None

    def blob_hash(self) -> bytes:
        """Return the blob hash, or 32 zero bytes without a proposal."""
        meta = self._meta
        return bytes(32) if meta is None else meta.blob_hash


@dataclass(frozen=True)
class TaikoProverData:
    """The prover's address and the graffiti it adds to the transition."""

    prover: bytes = bytes(20)
    graffiti: bytes = bytes(32)


def get_input_path(directory: Union[str, Path], block_number: int, network: str) -> Path:
    """Return the path of the cached input file for a block of a network."""
    return Path(directory) / f"input-{network}-{block_number}.bin"