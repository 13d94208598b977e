"""Program-derived address (PDA) derivation.

A PDA is a SHA-256 hash of the seeds, the program id and a fixed marker that
deliberately falls *off* the Ed25519 curve, so no private key can exist for
it. When the hash lands on the curve the caller retries with a different
trailing "bump" byte, starting at 255 and counting down.
"""
from __future__ import annotations

import hashlib
from typing import Sequence

from .errors import AddressDerivationExhausted
from .keys import PUBLIC_KEY_LENGTH, PublicKey
from .models import DerivedAddress

PDA_MARKER = b"ProgramDerivedAddress"
MAX_SEED_LENGTH = 32
MAX_SEEDS = 16
CONSENT_SEED = b"consent"

# Curve25519 field prime and the Edwards curve constant d = -121665/121666.
_P = 2**255 - 19
_D = (-121665 * pow(121666, _P - 2, _P)) % _P


class InvalidSeeds(ValueError):
    pass


def is_on_curve(raw: bytes) -> bool:
    """Whether ``raw`` decompresses to a point on the Ed25519 curve.

    The top bit is the x sign and plays no part in the test. y is taken mod p
    without rejecting non-canonical encodings, matching the ledger.
    """
    if len(raw) != PUBLIC_KEY_LENGTH:
        raise ValueError(f"expected {PUBLIC_KEY_LENGTH} bytes, got {len(raw)}")
    y = (int.from_bytes(raw, "little") & ((1 << 255) - 1)) % _P
    y2 = y * y % _P
    u = (y2 - 1) % _P
    v = (_D * y2 + 1) % _P
    x2 = u * pow(v, _P - 2, _P) % _P
    # x^2 = u/v must have a square root mod p.
    return x2 == 0 or pow(x2, (_P - 1) // 2, _P) == 1


def _check_seeds(seeds: Sequence[bytes]) -> None:
    if len(seeds) > MAX_SEEDS:
        raise InvalidSeeds(f"at most {MAX_SEEDS} seeds allowed, got {len(seeds)}")
    for seed in seeds:
        if len(seed) > MAX_SEED_LENGTH:
            raise InvalidSeeds(f"seed longer than {MAX_SEED_LENGTH} bytes")


def create_program_address(seeds: Sequence[bytes], program_id: PublicKey) -> PublicKey:
    _check_seeds(seeds)
    hasher = hashlib.sha256()
    for seed in seeds:
        hasher.update(seed)
    hasher.update(bytes(program_id))
    hasher.update(PDA_MARKER)
    digest = hasher.digest()
    if is_on_curve(digest):
        raise InvalidSeeds("derived address lies on the ed25519 curve")
    return PublicKey(digest)


def find_program_address(seeds: Sequence[bytes], program_id: PublicKey) -> DerivedAddress:
    """Return the first off-curve address and its bump, trying 255 down to 1."""
    _check_seeds(list(seeds) + [b"\x00"])
    for bump in range(255, 0, -1):
        try:
            address = create_program_address([*seeds, bytes([bump])], program_id)
        except InvalidSeeds:
            continue
        return DerivedAddress(address, bump)
    raise AddressDerivationExhausted(
        f"no valid bump seed for program {program_id.to_base58()}"
    )


def derive_address(domain_tag: bytes, identity: PublicKey, program_id: PublicKey) -> DerivedAddress:
    """Storage address for ``identity`` under ``domain_tag``. Pure and repeatable."""
    return find_program_address([domain_tag, bytes(identity)], program_id)
