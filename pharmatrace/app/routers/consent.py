"""Consent lookup routes."""
from fastapi import APIRouter, Depends, HTTPException, status

from ..deps import ledger_gateway
from ..domain.errors import ConsentError, NotReady
from ..domain.hashing import DOCUMENT_ENCODING, hash_document
from ..domain.keys import PublicKey
from ..domain.schemas import (
    BalanceOut,
    ConsentStatusOut,
    DerivedAddressOut,
    DigestRequest,
    DigestResponse,
    ProgramInfo,
)
from ..domain.sign import WatchWallet
from ..services.attestation import AttestationClient
from ..services.gateway import LedgerGateway
from ..services.session import SessionGate

router = APIRouter()


def _wallet_key(wallet_address: str) -> PublicKey:
    try:
        return PublicKey.from_base58(wallet_address)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail="Invalid wallet address") from exc


def _http_error(exc: ConsentError) -> HTTPException:
    if isinstance(exc, NotReady):
        return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc))
    return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc))


@router.get("/program", response_model=ProgramInfo)
def program_info(gateway: LedgerGateway = Depends(ledger_gateway)) -> ProgramInfo:
    client = AttestationClient(SessionGate(gateway=gateway))
    return ProgramInfo(
        program_id=gateway.program_id.to_base58(),
        domain_tag=client.domain_tag.decode("utf-8"),
    )


@router.post("/digest", response_model=DigestResponse)
def document_digest(payload: DigestRequest) -> DigestResponse:
    return DigestResponse(digest=hash_document(payload.document).hex(), encoding=DOCUMENT_ENCODING)


@router.get("/{wallet_address}/address", response_model=DerivedAddressOut)
def consent_address(wallet_address: str, gateway: LedgerGateway = Depends(ledger_gateway)):
    identity = _wallet_key(wallet_address)
    try:
        address, bump = AttestationClient(SessionGate(gateway=gateway)).derive(identity)
    except ConsentError as exc:
        raise _http_error(exc) from exc
    return DerivedAddressOut(wallet_address=wallet_address, address=address.to_base58(), bump=bump)


@router.get("/{wallet_address}/balance", response_model=BalanceOut)
async def wallet_balance(wallet_address: str, gateway: LedgerGateway = Depends(ledger_gateway)):
    identity = _wallet_key(wallet_address)
    client = AttestationClient(SessionGate(wallet=WatchWallet(identity), gateway=gateway))
    sol = await client.check_balance()
    return BalanceOut(wallet_address=wallet_address, sol=None if sol is None else str(sol))


@router.get("/{wallet_address}", response_model=ConsentStatusOut)
async def consent_status(wallet_address: str, gateway: LedgerGateway = Depends(ledger_gateway)):
    identity = _wallet_key(wallet_address)
    try:
        lookup = await AttestationClient(SessionGate(gateway=gateway)).verify_consent(identity)
    except ConsentError as exc:
        raise _http_error(exc) from exc
    return ConsentStatusOut.from_lookup(wallet_address, lookup)
