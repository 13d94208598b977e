"""API I/O schemas and the medical-record upload payload."""
import re
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from .models import Attestation, ConsentLookup, Found

WALLET_ADDRESS_MIN = 32
WALLET_ADDRESS_MAX = 44
BASE58_PATTERN = re.compile(r"^[1-9A-HJ-NP-Za-km-z]+$")
BLOOD_PRESSURE_PATTERN = re.compile(r"^\d{2,3}/\d{2,3}$")

WALLET_REQUIRED = "Please enter your Solana wallet address"
WALLET_INVALID = "Please enter a valid Solana wallet address"
DEMOGRAPHICS_REQUIRED = "Please fill in all required demographic fields"
BLOOD_PRESSURE_INVALID = "Blood pressure should be in format: 120/80"


class DigestRequest(BaseModel):
    document: str


class DigestResponse(BaseModel):
    digest: str
    encoding: str


class ProgramInfo(BaseModel):
    program_id: str
    domain_tag: str


class DerivedAddressOut(BaseModel):
    wallet_address: str
    address: str
    bump: int


class AttestationOut(BaseModel):
    owner: str
    digest: str
    verified: bool

    @classmethod
    def from_attestation(cls, attestation: Attestation) -> "AttestationOut":
        return cls(
            owner=attestation.owner.to_base58(),
            digest=attestation.digest_hex,
            verified=attestation.verified,
        )


class ConsentStatusOut(BaseModel):
    wallet_address: str
    address: str
    found: bool
    attestation: Optional[AttestationOut] = None

    @classmethod
    def from_lookup(cls, wallet_address: str, lookup: ConsentLookup) -> "ConsentStatusOut":
        attestation = None
        if isinstance(lookup, Found):
            attestation = AttestationOut.from_attestation(lookup.attestation)
        return cls(
            wallet_address=wallet_address,
            address=lookup.address.to_base58(),
            found=lookup.found,
            attestation=attestation,
        )


class BalanceOut(BaseModel):
    wallet_address: str
    sol: Optional[str] = Field(None, description="balance in SOL, null when unknown")


class Demographics(BaseModel):
    age_group: str = ""
    gender: str = ""
    ethnicity: str = ""

    @model_validator(mode="after")
    def _required(self) -> "Demographics":
        if not self.age_group.strip() or not self.gender.strip():
            raise ValueError(DEMOGRAPHICS_REQUIRED)
        return self


class HealthMetrics(BaseModel):
    bmi: Optional[float] = None
    blood_pressure: Optional[str] = None
    last_hba1c_level: Optional[float] = None

    @field_validator("blood_pressure")
    @classmethod
    def _blood_pressure_format(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        value = value.strip()
        if not value:
            return None
        if not BLOOD_PRESSURE_PATTERN.match(value):
            raise ValueError(BLOOD_PRESSURE_INVALID)
        return value


class MedicalRecordUpload(BaseModel):
    """Body of ``POST /api/upload-record``."""

    wallet_address: str
    demographics: Demographics
    medical_conditions: List[str] = Field(default_factory=list)
    current_medications: List[str] = Field(default_factory=list)
    health_metrics: HealthMetrics = Field(default_factory=HealthMetrics)

    @field_validator("wallet_address")
    @classmethod
    def _wallet_address(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError(WALLET_REQUIRED)
        if not WALLET_ADDRESS_MIN <= len(value) <= WALLET_ADDRESS_MAX or not BASE58_PATTERN.match(value):
            raise ValueError(WALLET_INVALID)
        return value
