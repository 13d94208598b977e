"""Public key (identity / address) value type."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Union

import base58

PUBLIC_KEY_LENGTH = 32


@dataclass(frozen=True)
class PublicKey:
    """A 32-byte ledger key, shown to humans in base58."""

    raw: bytes

    def __post_init__(self) -> None:
        if not isinstance(self.raw, (bytes, bytearray)):
            raise TypeError("public key must be bytes")
        if len(self.raw) != PUBLIC_KEY_LENGTH:
            raise ValueError(f"public key must be {PUBLIC_KEY_LENGTH} bytes, got {len(self.raw)}")
        object.__setattr__(self, "raw", bytes(self.raw))

    @classmethod
    def from_base58(cls, value: str) -> "PublicKey":
        try:
            raw = base58.b58decode(value.strip())
        except ValueError as exc:
            raise ValueError(f"invalid base58 public key: {value!r}") from exc
        return cls(raw)

    @classmethod
    def coerce(cls, value: Union["PublicKey", str, bytes]) -> "PublicKey":
        if isinstance(value, PublicKey):
            return value
        if isinstance(value, str):
            return cls.from_base58(value)
        return cls(value)

    def to_base58(self) -> str:
        return base58.b58encode(self.raw).decode("ascii")

    def __bytes__(self) -> bytes:
        return self.raw

    def __str__(self) -> str:
        return self.to_base58()

    def __repr__(self) -> str:
        return f"PublicKey({self.to_base58()})"


SYSTEM_PROGRAM_ID = PublicKey(bytes(PUBLIC_KEY_LENGTH))
