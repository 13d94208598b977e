import pytest

from pharmatrace.app.domain.accounts import SIGN_CONSENT_DISCRIMINATOR
from pharmatrace.app.domain.hashing import hash_document
from pharmatrace.app.domain.keys import SYSTEM_PROGRAM_ID, PublicKey
from pharmatrace.app.domain.models import CommitRequest
from pharmatrace.app.domain.pda import CONSENT_SEED, derive_address
from pharmatrace.app.domain.sign import KeypairWallet
from pharmatrace.app.infra.transaction import (
    compile_message,
    encode_compact_u16,
    serialize_transaction,
    sign_consent_instruction,
)

PROGRAM_ID = PublicKey.from_base58("5DMXqq7v2gkNSyBQ9P6XMFgUFQNcLdJHdhFi9JEPfcpa")
BLOCKHASH = PublicKey(bytes(range(32)))


def test_compact_u16():
    assert encode_compact_u16(0) == b"\x00"
    assert encode_compact_u16(127) == b"\x7f"
    assert encode_compact_u16(128) == b"\x80\x01"
    assert encode_compact_u16(16384) == b"\x80\x80\x01"
    with pytest.raises(ValueError):
        encode_compact_u16(0x10000)


def _request():
    owner = KeypairWallet.generate().public_key
    address, bump = derive_address(CONSENT_SEED, owner, PROGRAM_ID)
    return CommitRequest(address=address, bump=bump, owner=owner, digest=hash_document("I agree"))


def test_sign_consent_message_layout():
    request = _request()
    message = compile_message(request.owner, [sign_consent_instruction(PROGRAM_ID, request)], BLOCKHASH)

    # header: one signer, no readonly signers, system program + consent program readonly
    assert message[:3] == bytes([1, 0, 2])
    assert message[3] == 4
    keys = [message[4 + 32 * i : 4 + 32 * (i + 1)] for i in range(4)]
    assert keys == [bytes(request.owner), bytes(request.address), bytes(SYSTEM_PROGRAM_ID), bytes(PROGRAM_ID)]
    assert message[132:164] == bytes(BLOCKHASH)
    assert message[164] == 1  # one instruction
    assert message[165] == 3  # program id index
    assert message[166] == 3  # account count
    assert list(message[167:170]) == [1, 0, 2]
    assert message[170] == 40
    assert message[171:179] == SIGN_CONSENT_DISCRIMINATOR
    assert message[179:] == request.digest


def test_serialized_transaction_prefixes_signatures():
    request = _request()
    message = compile_message(request.owner, [sign_consent_instruction(PROGRAM_ID, request)], BLOCKHASH)
    signature = bytes(64)
    wire = serialize_transaction([signature], message)
    assert wire[0] == 1
    assert wire[1:65] == signature
    assert wire[65:] == message
    with pytest.raises(ValueError):
        serialize_transaction([b"short"], message)
