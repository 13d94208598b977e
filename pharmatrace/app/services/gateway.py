"""Interface every ledger collaborator implements."""
from __future__ import annotations

from typing import Optional, Protocol

from ..domain.keys import PublicKey
from ..domain.models import Attestation, CommitRequest
from ..domain.sign import Wallet


class LedgerGateway(Protocol):
    """Ledger endpoint bound to one consent program.

    Failures are raised as ``LedgerRejection`` (typed where the transport can
    tell) and are translated by the caller. ``fetch_consent`` returns None for
    a missing account. It never raises for one.
    """

    program_id: PublicKey

    async def submit_consent(self, request: CommitRequest, wallet: Wallet) -> str: ...

    async def fetch_consent(self, address: PublicKey) -> Optional[Attestation]: ...

    async def get_balance(self, owner: PublicKey) -> int: ...
