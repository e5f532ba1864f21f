"""A Bloom filter for fast probabilistic membership testing."""

from __future__ import annotations

import hashlib
import math


class BloomFilter:
    """Probabilistic set: false positives are possible, false negatives are not."""

    def __init__(self, expected_items: int, false_positive_rate: float) -> None:
        bits_per_item = -1.44 * math.log2(false_positive_rate)
        num_bits = math.ceil(expected_items * bits_per_item)
        self._num_hashes = math.ceil(bits_per_item * 0.693)
        self._bits = bytearray(num_bits)

    def _indexes(self, item: bytes):
        size = len(self._bits)
        for seed in range(self._num_hashes):
            digest = hashlib.blake2b(bytes(item), digest_size=8, salt=seed.to_bytes(16, "little")).digest()
            yield int.from_bytes(digest, "little") % size

    def insert(self, item: bytes) -> None:
        """Add an item to the filter."""
        for index in self._indexes(item):
            self._bits[index] = 1

    def might_contain(self, item: bytes) -> bool:
        """Return False if the item is certainly absent, True if it may be present."""
        return all(self._bits[index] for index in self._indexes(item))

    def memory_usage(self) -> int:
        """Size of the bit array in bytes."""
        return len(self._bits) // 8

    def num_hash_functions(self) -> int:
        return self._num_hashes

    def bit_array_size(self) -> int:
        return len(self._bits)