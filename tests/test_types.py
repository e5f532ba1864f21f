import pytest

from kaspaindex.types import HASH_SIZE, Hash


def _hex(byte: int) -> str:
    return f"{byte:02x}" * HASH_SIZE


def test_default_is_all_zero_bytes():
    assert Hash().as_bytes() == bytes(HASH_SIZE)


def test_hex_round_trip():
    text = "ab" * 16 + "01" * 16
    value = Hash.from_hex(text)
    assert str(value) == text
    assert Hash.from_hex(str(value)) == value


def test_uppercase_hex_is_accepted():
    text = "AB" * HASH_SIZE
    assert str(Hash.from_hex(text)) == text.lower()


def test_bytes_round_trip():
    raw = bytes(range(HASH_SIZE))
    value = Hash(raw)
    assert value.as_bytes() == raw
    assert bytes(value) == raw


def test_bytearray_is_normalised_to_bytes():
    raw = bytearray(range(HASH_SIZE))
    assert Hash(raw) == Hash(bytes(raw))


def test_ordering_follows_bytes():
    low = Hash.from_hex(_hex(0x01))
    high = Hash.from_hex(_hex(0x02))
    assert low < high
    assert sorted([high, low]) == [low, high]


def test_equal_hashes_deduplicate_in_set():
    raw = bytes(range(HASH_SIZE))
    assert len({Hash(raw), Hash(raw), Hash()}) == 2


def test_wrong_length_rejected():
    with pytest.raises(ValueError):
        Hash(b"\x00" * (HASH_SIZE - 1))


def test_wrong_hex_length_rejected():
    with pytest.raises(ValueError):
        Hash.from_hex("abcd")


def test_invalid_hex_rejected():
    with pytest.raises(ValueError):
        Hash.from_hex("zz" * HASH_SIZE)


def test_non_bytes_rejected():
    with pytest.raises(TypeError):
        Hash("not bytes")