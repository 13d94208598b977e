"""Domain models shared between the client, gateways and persistence layers."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import NamedTuple, Union

from sqlalchemy import DateTime
from sqlmodel import Field as SQLField, SQLModel

from .keys import PublicKey


class DerivedAddress(NamedTuple):
    address: PublicKey
    bump: int


@dataclass(frozen=True)
class CommitRequest:
    """What ``sign_consent`` asks the ledger to record."""

    address: PublicKey
    bump: int
    owner: PublicKey
    digest: bytes


@dataclass(frozen=True)
class Attestation:
    """Ledger-resident consent record. ``verified`` is set by an outside authority."""

    owner: PublicKey
    digest: bytes
    verified: bool = False

    @property
    def digest_hex(self) -> str:
        return self.digest.hex()


@dataclass(frozen=True)
class Found:
    attestation: Attestation
    address: PublicKey

    found = True


@dataclass(frozen=True)
class NotFound:
    address: PublicKey

    found = False


ConsentLookup = Union[Found, NotFound]


class ConsentRecord(SQLModel, table=True):
    """Consent account row kept by the local development ledger."""

    __tablename__ = "consent_records"

    # One row per derived address, hence one attestation per identity.
    address: str = SQLField(primary_key=True)
    owner: str = SQLField(index=True)
    agreement_hash: str
    is_verified: bool = SQLField(default=False)
    bump: int
    signature: str = SQLField(index=True)
    lamports: int = SQLField(default=0)
    created_at: datetime = SQLField(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_type=DateTime(timezone=True),
        nullable=False,
    )


class LedgerBalance(SQLModel, table=True):
    __tablename__ = "ledger_balances"

    owner: str = SQLField(primary_key=True)
    lamports: int = SQLField(default=0)
