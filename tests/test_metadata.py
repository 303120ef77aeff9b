from dataclasses import astuple, fields

import pytest

from taikoproof.abi import AbiError, decode_params
from taikoproof.metadata import (
    BaseFeeConfig,
    BlockMetadata,
    BlockMetadataV2,
    EthDeposit,
    Transition,
)


def sample_meta() -> BlockMetadata:
    return BlockMetadata(
        l1_hash=b"\x01" * 32,
        difficulty=b"\x02" * 32,
        blob_hash=b"\x03" * 32,
        extra_data=b"\x04" * 32,
        deposits_hash=b"\x05" * 32,
        coinbase=b"\x0c" * 20,
        id=1234,
        gas_limit=240_000_000,
        timestamp=1_700_000_000,
        l1_height=99,
        min_tier=200,
        blob_used=True,
        parent_meta_hash=b"\x0d" * 32,
        sender=b"\x0e" * 20,
    )


def sample_meta_v2() -> BlockMetadataV2:
    return BlockMetadataV2(
        anchor_block_hash=b"\x01" * 32,
        difficulty=b"\x02" * 32,
        blob_hash=b"\x03" * 32,
        extra_data=b"\x04" * 32,
        coinbase=b"\x0c" * 20,
        id=538304,
        gas_limit=240_000_000,
        timestamp=1_700_000_000,
        anchor_block_id=77,
        min_tier=100,
        blob_used=False,
        parent_meta_hash=b"\x0d" * 32,
        proposer=b"\x0e" * 20,
        liveness_bond=10**20,
        proposed_at=1_700_000_100,
        proposed_in=78,
        blob_tx_list_offset=16,
        blob_tx_list_length=512,
        blob_index=2,
        base_fee_config=BaseFeeConfig(8, 75, 5_000_000, 1_340_000_000, 600_000_000),
    )


def word(data: bytes, name: str, cls) -> bytes:
    index = [f.name for f in fields(cls)].index(name)
    return data[index * 32 : (index + 1) * 32]


def test_metadata_round_trip():
    meta = sample_meta()
    assert BlockMetadata.abi_decode(meta.abi_encode()) == meta


def test_metadata_length_is_one_word_per_field():
    assert len(sample_meta().abi_encode()) == 32 * len(fields(BlockMetadata))


def test_metadata_field_layout():
    meta = sample_meta()
    encoded = meta.abi_encode()
    assert word(encoded, "coinbase", BlockMetadata) == bytes(12) + meta.coinbase
    assert word(encoded, "blob_used", BlockMetadata) == (1).to_bytes(32, "big")
    assert word(encoded, "id", BlockMetadata) == meta.id.to_bytes(32, "big")


def test_default_metadata_encodes_to_zeros():
    encoded = BlockMetadata().abi_encode()
    assert encoded == bytes(len(encoded))


def test_metadata_v2_round_trip():
    meta = sample_meta_v2()
    assert BlockMetadataV2.abi_decode(meta.abi_encode()) == meta


def test_metadata_v2_ends_with_base_fee_config():
    meta = sample_meta_v2()
    encoded = meta.abi_encode()
    fee = meta.base_fee_config.abi_encode()
    assert encoded.endswith(fee)
    assert len(encoded) == 32 * (len(fields(BlockMetadataV2)) - 1) + len(fee)


def test_transition_is_concatenated_hashes():
    transition = Transition(b"\x01" * 32, b"\x02" * 32, b"\x03" * 32, b"\x04" * 32)
    encoded = transition.abi_encode()
    assert encoded == b"".join(astuple(transition))
    assert Transition.abi_decode(encoded) == transition


def test_eth_deposit_encoding():
    deposit = EthDeposit(recipient=b"\x09" * 20, amount=10**18, id=3)
    encoded = deposit.abi_encode()
    assert decode_params([EthDeposit.ABI_TYPE], encoded)[0] == astuple(deposit)


def test_gas_limit_overflow_raises():
    with pytest.raises(AbiError):
        BlockMetadata(gas_limit=2**32).abi_encode()


def test_truncated_data_raises():
    encoded = sample_meta().abi_encode()
    with pytest.raises(AbiError):
        BlockMetadata.abi_decode(encoded[:-1])