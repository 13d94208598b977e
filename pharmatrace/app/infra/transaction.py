"""Legacy transaction wire format: message compilation and serialization."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Sequence, Tuple

from ..domain.accounts import encode_sign_consent
from ..domain.keys import SYSTEM_PROGRAM_ID, PublicKey
from ..domain.models import CommitRequest

SIGNATURE_LENGTH = 64


@dataclass(frozen=True)
class AccountMeta:
    pubkey: PublicKey
    is_signer: bool
    is_writable: bool


@dataclass(frozen=True)
class Instruction:
    program_id: PublicKey
    accounts: Tuple[AccountMeta, ...]
    data: bytes


def encode_compact_u16(value: int) -> bytes:
    """Little-endian base-128 varint capped at u16, used for every length prefix."""
    if not 0 <= value <= 0xFFFF:
        raise ValueError(f"compact-u16 out of range: {value}")
    out = bytearray()
    while True:
        byte = value & 0x7F
        value >>= 7
        if value:
            out.append(byte | 0x80)
        else:
            out.append(byte)
            return bytes(out)


def sign_consent_instruction(program_id: PublicKey, request: CommitRequest) -> Instruction:
    return Instruction(
        program_id=program_id,
        accounts=(
            AccountMeta(request.address, is_signer=False, is_writable=True),
            AccountMeta(request.owner, is_signer=True, is_writable=True),
            AccountMeta(SYSTEM_PROGRAM_ID, is_signer=False, is_writable=False),
        ),
        data=encode_sign_consent(request.digest),
    )


def _ordered_accounts(fee_payer: PublicKey, instructions: Sequence[Instruction]) -> List[AccountMeta]:
    merged: Dict[PublicKey, AccountMeta] = {fee_payer: AccountMeta(fee_payer, True, True)}

    def add(meta: AccountMeta) -> None:
        existing = merged.get(meta.pubkey)
        if existing is None:
            merged[meta.pubkey] = meta
        else:
            merged[meta.pubkey] = AccountMeta(
                meta.pubkey,
                existing.is_signer or meta.is_signer,
                existing.is_writable or meta.is_writable,
            )

    for instruction in instructions:
        for meta in instruction.accounts:
            add(meta)
        add(AccountMeta(instruction.program_id, False, False))

    metas = list(merged.values())
    # Stable sort keeps insertion order inside each group; the fee payer stays first.
    return sorted(metas, key=lambda m: (m.pubkey != fee_payer, not m.is_signer, not m.is_writable))


def compile_message(
    fee_payer: PublicKey,
    instructions: Sequence[Instruction],
    recent_blockhash: PublicKey,
) -> bytes:
    accounts = _ordered_accounts(fee_payer, instructions)
    index = {meta.pubkey: position for position, meta in enumerate(accounts)}

    num_signers = sum(1 for m in accounts if m.is_signer)
    num_readonly_signed = sum(1 for m in accounts if m.is_signer and not m.is_writable)
    num_readonly_unsigned = sum(1 for m in accounts if not m.is_signer and not m.is_writable)

    out = bytearray([num_signers, num_readonly_signed, num_readonly_unsigned])
    out += encode_compact_u16(len(accounts))
    for meta in accounts:
        out += bytes(meta.pubkey)
    out += bytes(recent_blockhash)
    out += encode_compact_u16(len(instructions))
    for instruction in instructions:
        out.append(index[instruction.program_id])
        out += encode_compact_u16(len(instruction.accounts))
        out += bytes(index[meta.pubkey] for meta in instruction.accounts)
        out += encode_compact_u16(len(instruction.data))
        out += instruction.data
    return bytes(out)


def serialize_transaction(signatures: Sequence[bytes], message: bytes) -> bytes:
    for signature in signatures:
        if len(signature) != SIGNATURE_LENGTH:
            raise ValueError(f"signature must be {SIGNATURE_LENGTH} bytes")
    return encode_compact_u16(len(signatures)) + b"".join(signatures) + message
