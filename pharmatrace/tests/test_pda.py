import pytest

from pharmatrace.app.domain import pda
from pharmatrace.app.domain.errors import AddressDerivationExhausted
from pharmatrace.app.domain.keys import PublicKey
from pharmatrace.app.domain.pda import (
    CONSENT_SEED,
    InvalidSeeds,
    create_program_address,
    derive_address,
    find_program_address,
    is_on_curve,
)
from pharmatrace.app.domain.sign import generate_keypair

LOADER_ID = PublicKey.from_base58("BPFLoaderUpgradeab1e11111111111111111111111")
PROGRAM_ID = PublicKey.from_base58("5DMXqq7v2gkNSyBQ9P6XMFgUFQNcLdJHdhFi9JEPfcpa")


def test_create_program_address_known_vectors():
    assert create_program_address([b"", bytes([1])], LOADER_ID) == PublicKey.from_base58(
        "BwqrghZA2htAcqq8dzP1WDAhTXYTYWj7CHxF5j7TDBAe"
    )
    assert create_program_address([b"Talking", b"Squirrels"], LOADER_ID) == PublicKey.from_base58(
        "2fnQrngrQT4SeLcdToJAD96phoEjNL2man2kfRLCASVk"
    )


def test_real_public_keys_are_on_curve():
    for _ in range(5):
        _, public = generate_keypair()
        assert is_on_curve(public)
    # Ed25519 base point.
    assert is_on_curve(bytes.fromhex("58" + "66" * 31))


def test_derivation_is_stable():
    _, public = generate_keypair()
    identity = PublicKey(public)
    first = derive_address(CONSENT_SEED, identity, PROGRAM_ID)
    second = derive_address(CONSENT_SEED, identity, PROGRAM_ID)
    assert first == second
    assert 1 <= first.bump <= 255


def test_derived_address_is_off_curve_and_reproducible_from_bump():
    for _ in range(10):
        _, public = generate_keypair()
        address, bump = find_program_address([CONSENT_SEED, public], PROGRAM_ID)
        assert not is_on_curve(bytes(address))
        assert create_program_address([CONSENT_SEED, public, bytes([bump])], PROGRAM_ID) == address


def test_distinct_identities_get_distinct_addresses():
    identities = {PublicKey(generate_keypair()[1]) for _ in range(5)}
    addresses = {derive_address(CONSENT_SEED, identity, PROGRAM_ID).address for identity in identities}
    assert len(addresses) == len(identities)


def test_domain_tag_and_program_change_the_address():
    identity = PublicKey(generate_keypair()[1])
    consent = derive_address(CONSENT_SEED, identity, PROGRAM_ID).address
    assert derive_address(b"revocation", identity, PROGRAM_ID).address != consent
    assert derive_address(CONSENT_SEED, identity, LOADER_ID).address != consent


def test_seed_limits():
    with pytest.raises(InvalidSeeds):
        create_program_address([b"x" * 33], PROGRAM_ID)
    with pytest.raises(InvalidSeeds):
        create_program_address([b"x"] * 17, PROGRAM_ID)
    # The bump counts as a seed.
    with pytest.raises(InvalidSeeds):
        find_program_address([b"x"] * 16, PROGRAM_ID)


def test_exhausted_bumps_raise(monkeypatch):
    monkeypatch.setattr(pda, "is_on_curve", lambda raw: True)
    identity = PublicKey(generate_keypair()[1])
    with pytest.raises(AddressDerivationExhausted):
        derive_address(CONSENT_SEED, identity, PROGRAM_ID)


def test_first_off_curve_bump_wins(monkeypatch):
    real = pda.is_on_curve
    seen = []

    def reject_first_two(raw):
        seen.append(raw)
        return len(seen) < 3 or real(raw)

    monkeypatch.setattr(pda, "is_on_curve", reject_first_two)
    identity = PublicKey(generate_keypair()[1])
    result = derive_address(CONSENT_SEED, identity, PROGRAM_ID)
    assert result.bump <= 253
    assert not real(bytes(result.address))
