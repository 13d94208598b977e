"""Binary layout of the consent program's instruction and account data."""
from __future__ import annotations

import hashlib

from .hashing import DIGEST_SIZE
from .keys import PUBLIC_KEY_LENGTH, PublicKey
from .models import Attestation

DISCRIMINATOR_SIZE = 8
CONSENT_RECORD_SPACE = DISCRIMINATOR_SIZE + PUBLIC_KEY_LENGTH + DIGEST_SIZE + 1

# Rent-exemption parameters of the cluster: two years of rent at the default rate.
LAMPORTS_PER_BYTE_YEAR = 3480
EXEMPTION_THRESHOLD_YEARS = 2
ACCOUNT_STORAGE_OVERHEAD = 128


def _discriminator(namespace: str, name: str) -> bytes:
    return hashlib.sha256(f"{namespace}:{name}".encode("utf-8")).digest()[:DISCRIMINATOR_SIZE]


SIGN_CONSENT_DISCRIMINATOR = _discriminator("global", "sign_consent")
CONSENT_RECORD_DISCRIMINATOR = _discriminator("account", "ConsentRecord")


def encode_sign_consent(digest: bytes) -> bytes:
    if len(digest) != DIGEST_SIZE:
        raise ValueError(f"agreement hash must be {DIGEST_SIZE} bytes")
    return SIGN_CONSENT_DISCRIMINATOR + digest


def encode_consent_record(attestation: Attestation) -> bytes:
    return (
        CONSENT_RECORD_DISCRIMINATOR
        + bytes(attestation.owner)
        + attestation.digest
        + (b"\x01" if attestation.verified else b"\x00")
    )


def decode_consent_record(data: bytes) -> Attestation:
    """Parse account data. Bytes past ``is_verified`` are ignored."""
    if len(data) < CONSENT_RECORD_SPACE:
        raise ValueError(f"consent record too short: {len(data)} bytes")
    if data[:DISCRIMINATOR_SIZE] != CONSENT_RECORD_DISCRIMINATOR:
        raise ValueError("account is not a ConsentRecord")
    offset = DISCRIMINATOR_SIZE
    owner = PublicKey(data[offset : offset + PUBLIC_KEY_LENGTH])
    offset += PUBLIC_KEY_LENGTH
    digest = bytes(data[offset : offset + DIGEST_SIZE])
    offset += DIGEST_SIZE
    return Attestation(owner=owner, digest=digest, verified=data[offset] != 0)


def rent_exempt_minimum(space: int = CONSENT_RECORD_SPACE) -> int:
    return (space + ACCOUNT_STORAGE_OVERHEAD) * LAMPORTS_PER_BYTE_YEAR * EXEMPTION_THRESHOLD_YEARS
