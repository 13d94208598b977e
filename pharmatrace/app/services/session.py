"""Readiness gate combining the wallet connection and the ledger endpoint."""
from __future__ import annotations

from typing import Optional

from ..domain.errors import NotReady, NotReadyReason
from ..domain.keys import PublicKey
from ..domain.sign import Wallet
from .gateway import LedgerGateway


class SessionGate:
    """Session handle passed explicitly to the client.

    Nothing is cached. Every property reads the wallet and gateway as they are
    now, so a disconnect is visible on the next access.
    """

    def __init__(self, wallet: Optional[Wallet] = None, gateway: Optional[LedgerGateway] = None) -> None:
        self.wallet = wallet
        self.gateway = gateway

    @property
    def identity(self) -> Optional[PublicKey]:
        if self.wallet is None:
            return None
        return self.wallet.public_key

    @property
    def endpoint_loaded(self) -> bool:
        return self.gateway is not None

    @property
    def ready(self) -> bool:
        return self.identity is not None and self.endpoint_loaded

    @property
    def wallet_address(self) -> Optional[str]:
        identity = self.identity
        return identity.to_base58() if identity is not None else None

    def require_identity(self) -> PublicKey:
        identity = self.identity
        if identity is None:
            raise NotReady(NotReadyReason.IDENTITY_MISSING)
        return identity

    def require_endpoint(self) -> LedgerGateway:
        if self.gateway is None:
            raise NotReady(NotReadyReason.ENDPOINT_NOT_LOADED)
        return self.gateway
