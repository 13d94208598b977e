"""Local ledger: an SQL-backed stand-in for the consent program.

It applies the same acceptance rules the deployed program and the cluster
apply. Those rules are the signature check, the seeds constraint, fee and
rent funding, and a single account per derived address. Development and
tests can then exercise the full write/read path without a cluster.
"""
from __future__ import annotations

import asyncio
import logging
import threading
from typing import Any, Callable, List, Optional, TypeVar

import base58
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from ..domain.accounts import rent_exempt_minimum
from ..domain.errors import LedgerRejection, RejectionKind
from ..domain.hashing import canonical_bytes
from ..domain.keys import SYSTEM_PROGRAM_ID, PublicKey
from ..domain.models import Attestation, CommitRequest, ConsentRecord, LedgerBalance
from ..domain.pda import CONSENT_SEED, create_program_address
from ..domain.sign import Wallet, verify_signature
from ..infra.db import get_session, init_db

logger = logging.getLogger(__name__)

FEE_LAMPORTS = 5000
SIMULATION_FAILED = "Transaction simulation failed: "

T = TypeVar("T")


def commit_message(program_id: PublicKey, request: CommitRequest) -> bytes:
    """Bytes the owner signs to authorize a commit on the local ledger."""
    return canonical_bytes(
        {
            "program_id": program_id.to_base58(),
            "instruction": "sign_consent",
            "consent_record": request.address.to_base58(),
            "patient": request.owner.to_base58(),
            "bump": request.bump,
            "agreement_hash": request.digest.hex(),
        }
    )


class LocalLedger:
    """Consent program emulation backed by SQLModel tables.

    Session work is blocking, so the async entry points run it on a worker
    thread. One lock serializes it. An in-memory SQLite engine shares a single
    connection between threads.
    """

    def __init__(self, program_id: PublicKey, engine: Optional[Engine] = None, create_tables: bool = True) -> None:
        self.program_id = program_id
        self.engine = engine
        self._lock = threading.Lock()
        if create_tables:
            init_db(engine)

    async def submit_consent(self, request: CommitRequest, wallet: Wallet) -> str:
        message = commit_message(self.program_id, request)
        signature = wallet.sign_message(message)
        return await self._run(self._commit, request, message, signature)

    async def fetch_consent(self, address: PublicKey) -> Optional[Attestation]:
        return await self._run(self._load_consent, address)

    async def get_balance(self, owner: PublicKey) -> int:
        return await self._run(self._load_balance, owner)

    def airdrop(self, owner: PublicKey, lamports: int) -> int:
        with self._lock, get_session(self.engine) as session:
            balance = session.get(LedgerBalance, owner.to_base58())
            if balance is None:
                balance = LedgerBalance(owner=owner.to_base58(), lamports=0)
            balance.lamports += lamports
            session.add(balance)
            session.flush()
            return balance.lamports

    def mark_verified(self, address: PublicKey) -> Attestation:
        """Set the verified flag. Only the verifying authority does this, never the client."""
        with self._lock, get_session(self.engine) as session:
            record = session.get(ConsentRecord, address.to_base58())
            if record is None:
                raise LookupError(f"no consent record at {address.to_base58()}")
            record.is_verified = True
            session.add(record)
            session.flush()
            return self._to_attestation(record)

    async def _run(self, fn: Callable[..., T], *args: Any) -> T:
        return await asyncio.to_thread(self._locked, fn, *args)

    def _locked(self, fn: Callable[..., T], *args: Any) -> T:
        with self._lock:
            return fn(*args)

    def _load_consent(self, address: PublicKey) -> Optional[Attestation]:
        with get_session(self.engine) as session:
            record = session.get(ConsentRecord, address.to_base58())
            if record is None:
                return None
            return self._to_attestation(record)

    def _load_balance(self, owner: PublicKey) -> int:
        with get_session(self.engine) as session:
            balance = session.get(LedgerBalance, owner.to_base58())
            return balance.lamports if balance else 0

    def _commit(self, request: CommitRequest, message: bytes, signature: bytes) -> str:
        if not verify_signature(request.owner, message, signature):
            raise LedgerRejection(
                "Transaction signature verification failure", kind=RejectionKind.PROGRAM
            )
        self._check_seeds(request)

        tx_id = base58.b58encode(signature).decode("ascii")
        owner = request.owner.to_base58()
        address = request.address.to_base58()
        rent = rent_exempt_minimum()
        try:
            with get_session(self.engine) as session:
                balance = session.get(LedgerBalance, owner)
                lamports = balance.lamports if balance else 0
                if balance is None or lamports < FEE_LAMPORTS:
                    raise LedgerRejection(
                        SIMULATION_FAILED + "Attempt to debit an account but found no record of a prior credit.",
                        kind=RejectionKind.INSUFFICIENT_FUNDS,
                    )
                if session.get(ConsentRecord, address) is not None:
                    raise self._already_in_use(request)
                if lamports < FEE_LAMPORTS + rent:
                    raise self._insufficient_rent(lamports - FEE_LAMPORTS, rent)

                balance.lamports = lamports - FEE_LAMPORTS - rent
                session.add(balance)
                session.add(
                    ConsentRecord(
                        address=address,
                        owner=owner,
                        agreement_hash=request.digest.hex(),
                        bump=request.bump,
                        signature=tx_id,
                        lamports=rent,
                    )
                )
                session.flush()
        except IntegrityError as exc:
            # A concurrent commit for the same identity won the insert.
            raise self._already_in_use(request) from exc

        logger.info("consent record %s created for %s in %s", address, owner, tx_id)
        return tx_id

    def _check_seeds(self, request: CommitRequest) -> None:
        try:
            expected = create_program_address(
                [CONSENT_SEED, bytes(request.owner), bytes([request.bump])], self.program_id
            )
        except ValueError:
            expected = None
        if expected != request.address:
            raise LedgerRejection(
                SIMULATION_FAILED + "Error processing Instruction 0: custom program error: 0x7d6",
                logs=self._program_logs(
                    [
                        "Program log: AnchorError caused by account: consent_record. "
                        "Error Code: ConstraintSeeds. Error Number: 2006. "
                        "Error Message: A seeds constraint was violated.",
                    ],
                    "0x7d6",
                ),
                kind=RejectionKind.PROGRAM,
            )

    def _already_in_use(self, request: CommitRequest) -> LedgerRejection:
        system = SYSTEM_PROGRAM_ID.to_base58()
        return LedgerRejection(
            SIMULATION_FAILED + "Error processing Instruction 0: custom program error: 0x0",
            logs=self._program_logs(
                [
                    f"Program {system} invoke [2]",
                    f"Allocate: account Address {{ address: {request.address.to_base58()}, base: None }} already in use",
                    f"Program {system} failed: custom program error: 0x0",
                ],
                "0x0",
            ),
            kind=RejectionKind.PROGRAM,
        )

    def _insufficient_rent(self, available: int, rent: int) -> LedgerRejection:
        system = SYSTEM_PROGRAM_ID.to_base58()
        return LedgerRejection(
            SIMULATION_FAILED + "Error processing Instruction 0: custom program error: 0x1",
            logs=self._program_logs(
                [
                    f"Program {system} invoke [2]",
                    f"Transfer: insufficient lamports {available}, need {rent}",
                    f"Program {system} failed: custom program error: 0x1",
                ],
                "0x1",
            ),
            kind=RejectionKind.INSUFFICIENT_FUNDS,
        )

    def _program_logs(self, inner: List[str], code: str) -> List[str]:
        program = self.program_id.to_base58()
        return [
            f"Program {program} invoke [1]",
            "Program log: Instruction: SignConsent",
            *inner,
            f"Program {program} failed: custom program error: {code}",
        ]

    @staticmethod
    def _to_attestation(record: ConsentRecord) -> Attestation:
        return Attestation(
            owner=PublicKey.from_base58(record.owner),
            digest=bytes.fromhex(record.agreement_hash),
            verified=record.is_verified,
        )
