import pytest

from taikoproof.rlp import RlpError, decode, decode_uint, encode, encode_uint

TINY_TRIE_RLP = bytes.fromhex("d816d680c3208180c220018080808080808080808080808080")


def test_empty_string():
    assert encode(b"") == b"\x80"
    assert decode(b"\x80") == b""


def test_small_integers():
    assert encode_uint(0) == b"\x80"
    assert encode_uint(1) == b"\x01"
    assert decode_uint(b"\x80") == 0
    assert decode_uint(b"\x01") == 1


def test_leaf_lists_from_trie():
    assert encode([b"\x20", b"\x80"]) == bytes.fromhex("c3208180")
    assert encode([b"\x20", b"\x01"]) == bytes.fromhex("c22001")


def test_tiny_trie_structure():
    branch = [b"", [b"\x20", b"\x80"], [b"\x20", b"\x01"]] + [b""] * 14
    assert encode([b"\x16", branch]) == TINY_TRIE_RLP
    assert decode(TINY_TRIE_RLP) == [b"\x16", branch]


def test_long_string_prefix():
    data = b"x" * 56
    encoded = encode(data)
    assert encoded[:2] == bytes([0xB8, 56])
    assert decode(encoded) == data


@pytest.mark.parametrize(
    "item",
    [
        b"",
        b"\x00",
        b"\x7f",
        b"\x80",
        b"dog",
        b"a" * 55,
        b"b" * 1024,
        [],
        [b"cat", b"dog"],
        [[], [[]], [b"x" * 60, [b"y"]]],
        [b"z" * 40, b"w" * 40],
    ],
)
def test_round_trip(item):
    assert decode(encode(item)) == item


@pytest.mark.parametrize("value", [0, 1, 127, 128, 255, 256, 2**64 - 1, 2**256 - 1])
def test_uint_round_trip(value):
    assert decode_uint(encode_uint(value)) == value
    assert encode(value) == encode_uint(value)


def test_tuple_encodes_like_list():
    assert encode((b"a", b"b")) == encode([b"a", b"b"])


def test_negative_integer_rejected():
    with pytest.raises(ValueError):
        encode_uint(-1)


def test_unsupported_type_rejected():
    with pytest.raises(TypeError):
        encode("text")


@pytest.mark.parametrize(
    "data",
    [
        b"",
        b"\x81\x05",
        b"\x83ab",
        b"\x80\x80",
        b"\xc2\x80",
        b"\xb8\x05hello",
        b"\xb9\x00\x38" + b"a" * 56,
        b"\xc3\x82ab\x80",
    ],
)
def test_malformed_input_rejected(data):
    with pytest.raises(RlpError):
        decode(data)


def test_uint_with_leading_zero_rejected():
    with pytest.raises(RlpError):
        decode_uint(b"\x00")
    with pytest.raises(RlpError):
        decode_uint(b"\x82\x00\x01")


def test_uint_from_list_rejected():
    with pytest.raises(RlpError):
        decode_uint(b"\xc0")