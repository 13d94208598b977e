"""Ed25519 wallets and signature helpers."""
from __future__ import annotations

import json
from pathlib import Path
from typing import Callable, Optional, Protocol, Tuple, Union

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey, Ed25519PublicKey
from cryptography.hazmat.primitives.serialization import Encoding, NoEncryption, PrivateFormat, PublicFormat

from .errors import SignatureDeclined
from .keys import PublicKey

USER_REJECTED_MESSAGE = "User rejected the request."


class Wallet(Protocol):
    """Identity provider plus signing capability. ``public_key`` is None when disconnected."""

    @property
    def public_key(self) -> Optional[PublicKey]: ...

    def sign_message(self, message: bytes) -> bytes: ...


def generate_keypair() -> Tuple[bytes, bytes]:
    private_key = Ed25519PrivateKey.generate()
    public_key = private_key.public_key()
    return (
        private_key.private_bytes(Encoding.Raw, PrivateFormat.Raw, NoEncryption()),
        public_key.public_bytes(Encoding.Raw, PublicFormat.Raw),
    )


def sign_message(private_bytes: bytes, message: bytes) -> bytes:
    private_key = Ed25519PrivateKey.from_private_bytes(private_bytes)
    return private_key.sign(message)


def verify_signature(public_key: Union[PublicKey, bytes], message: bytes, signature: bytes) -> bool:
    try:
        Ed25519PublicKey.from_public_bytes(bytes(public_key)).verify(signature, message)
    except InvalidSignature:
        return False
    return True


class KeypairWallet:
    """In-process wallet holding an Ed25519 secret.

    ``approve`` stands in for the wallet's confirmation prompt: it receives the
    message about to be signed and returns False to decline.
    """

    def __init__(
        self,
        private_bytes: bytes,
        approve: Optional[Callable[[bytes], bool]] = None,
        connected: bool = True,
    ) -> None:
        self._private_bytes = private_bytes
        private_key = Ed25519PrivateKey.from_private_bytes(private_bytes)
        self._public_key = PublicKey(private_key.public_key().public_bytes(Encoding.Raw, PublicFormat.Raw))
        self._approve = approve
        self.connected = connected

    @classmethod
    def generate(cls, **kwargs) -> "KeypairWallet":
        private_bytes, _ = generate_keypair()
        return cls(private_bytes, **kwargs)

    @classmethod
    def from_keypair_file(cls, path: Union[str, Path], **kwargs) -> "KeypairWallet":
        """Load a keypair file: a JSON array of 64 ints (secret seed + public key)."""
        values = json.loads(Path(path).expanduser().read_text())
        if not isinstance(values, list) or len(values) != 64:
            raise ValueError(f"{path}: expected a JSON array of 64 bytes")
        raw = bytes(values)
        wallet = cls(raw[:32], **kwargs)
        if bytes(wallet._public_key) != raw[32:]:
            raise ValueError(f"{path}: public key does not match secret key")
        return wallet

    @property
    def public_key(self) -> Optional[PublicKey]:
        return self._public_key if self.connected else None

    def connect(self) -> None:
        self.connected = True

    def disconnect(self) -> None:
        self.connected = False

    def sign_message(self, message: bytes) -> bytes:
        if not self.connected:
            raise SignatureDeclined("Wallet is not connected")
        if self._approve is not None and not self._approve(message):
            raise SignatureDeclined(USER_REJECTED_MESSAGE)
        return sign_message(self._private_bytes, message)


class WatchWallet:
    """Read-only identity: good for lookups and balances, refuses to sign."""

    def __init__(self, public_key: PublicKey) -> None:
        self._public_key = public_key

    @property
    def public_key(self) -> Optional[PublicKey]:
        return self._public_key

    def sign_message(self, message: bytes) -> bytes:
        raise SignatureDeclined(f"{USER_REJECTED_MESSAGE} Watch-only wallet cannot sign")
