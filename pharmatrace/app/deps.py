"""Dependency injection utilities."""
from functools import lru_cache
from typing import Optional

from .config import DATABASE_URL, LEDGER_BACKEND, PROGRAM_ID, SOLANA_COMMITMENT, SOLANA_RPC_URL
from .domain.keys import PublicKey
from .infra.db import make_engine
from .infra.rpc import SolanaRpcGateway
from .services.gateway import LedgerGateway
from .services.ledger import LocalLedger


def build_gateway(
    backend: str = LEDGER_BACKEND,
    program_id: str = PROGRAM_ID,
    rpc_url: str = SOLANA_RPC_URL,
    commitment: str = SOLANA_COMMITMENT,
    database_url: Optional[str] = None,
) -> LedgerGateway:
    program = PublicKey.from_base58(program_id)
    if backend == "rpc":
        return SolanaRpcGateway(program, endpoint=rpc_url, commitment=commitment)
    if backend == "local":
        engine = make_engine(database_url) if database_url and database_url != DATABASE_URL else None
        return LocalLedger(program, engine=engine)
    raise RuntimeError(f"unknown ledger backend {backend!r}")


@lru_cache(maxsize=1)
def ledger_gateway() -> LedgerGateway:
    """Provide the configured ledger collaborator to FastAPI endpoints."""
    return build_gateway()
