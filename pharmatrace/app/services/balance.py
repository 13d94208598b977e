"""Advisory balance check run before submitting."""
from __future__ import annotations

import logging
from decimal import Decimal
from typing import Optional

import httpx
from sqlalchemy.exc import SQLAlchemyError

from ..config import LOW_BALANCE_SOL
from ..domain.errors import FAUCET_URL, LedgerRejection
from .session import SessionGate

logger = logging.getLogger(__name__)

LAMPORTS_PER_SOL = 1_000_000_000


def lamports_to_sol(lamports: int) -> Decimal:
    return Decimal(lamports) / LAMPORTS_PER_SOL


class BalanceProbe:
    """Read-only funds check. Returns None ("unknown") rather than failing."""

    def __init__(self, gate: SessionGate, low_balance: Decimal = LOW_BALANCE_SOL) -> None:
        self.gate = gate
        self.low_balance = low_balance

    async def check(self) -> Optional[Decimal]:
        if not self.gate.ready:
            return None
        identity = self.gate.identity
        gateway = self.gate.gateway
        if identity is None or gateway is None:
            return None
        try:
            lamports = await gateway.get_balance(identity)
        except (LedgerRejection, httpx.HTTPError, SQLAlchemyError) as exc:
            logger.warning("balance for %s unavailable: %s", identity.to_base58(), exc)
            return None

        sol = lamports_to_sol(lamports)
        logger.info("wallet balance: %.4f SOL", sol)
        if sol < self.low_balance:
            logger.warning("low balance (%.4f SOL); get devnet SOL at %s", sol, FAUCET_URL)
        return sol
