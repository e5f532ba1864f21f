"""Value types shared by the database models."""

from __future__ import annotations

from dataclasses import dataclass

HASH_SIZE = 32

BlueWork = bytes
Nonce = bytes
Payload = bytes


@dataclass(frozen=True, order=True)
class Hash:
    """A 32-byte block or transaction hash, ordered by its raw bytes."""

    data: bytes = bytes(HASH_SIZE)

    def __post_init__(self) -> None:
        if not isinstance(self.data, (bytes, bytearray, memoryview)):
            raise TypeError(f"Hash expects bytes, got {type(self.data).__name__}")
        data = bytes(self.data)
        if len(data) != HASH_SIZE:
            raise ValueError(f"Hash must be {HASH_SIZE} bytes, got {len(data)}")
        object.__setattr__(self, "data", data)

    @classmethod
    def from_hex(cls, text: str) -> Hash:
        """Parse a hash from its 64-character hexadecimal form."""
        if len(text) != HASH_SIZE * 2:
            raise ValueError(f"Hash hex string must be {HASH_SIZE * 2} characters, got {len(text)}")
        return cls(bytes.fromhex(text))

    def as_bytes(self) -> bytes:
        """Return the raw 32 bytes of the hash."""
        return self.data

    def __bytes__(self) -> bytes:
        return self.data

    def __str__(self) -> str:
        return self.data.hex()

    def __repr__(self) -> str:
        return f"Hash('{self.data.hex()}')"