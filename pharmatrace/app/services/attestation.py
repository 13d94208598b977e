"""Consent attestation client: hash, derive, submit, verify."""
from __future__ import annotations

import logging
from decimal import Decimal
from typing import Optional, Union

from ..config import explorer_url
from ..domain.errors import InvalidIdentity, ProgramExecutionError, classify_failure
from ..domain.hashing import digest_hex, hash_document
from ..domain.keys import PublicKey
from ..domain.models import CommitRequest, ConsentLookup, DerivedAddress, Found, NotFound
from ..domain.pda import CONSENT_SEED, derive_address
from .balance import BalanceProbe
from .session import SessionGate

logger = logging.getLogger(__name__)


class AttestationClient:
    """Per-call orchestration over a ``SessionGate``.

    Nothing is held between calls. Two concurrent ``sign_consent`` calls for
    one identity both reach the ledger, and the ledger rejects the second.
    Failures are raised as ``ConsentError`` subclasses and never retried.
    """

    def __init__(self, gate: SessionGate, domain_tag: bytes = CONSENT_SEED) -> None:
        self.gate = gate
        self.domain_tag = domain_tag

    @property
    def is_ready(self) -> bool:
        return self.gate.ready

    @property
    def wallet_address(self) -> Optional[str]:
        return self.gate.wallet_address

    def derive(self, identity: PublicKey) -> DerivedAddress:
        gateway = self.gate.require_endpoint()
        return derive_address(self.domain_tag, identity, gateway.program_id)

    async def sign_consent(self, document: str) -> str:
        """Commit the digest of ``document`` for the connected identity.

        Returns the transaction id.
        """
        identity = self.gate.require_identity()
        gateway = self.gate.require_endpoint()
        wallet = self.gate.wallet
        logger.info("signing consent for wallet %s", identity.to_base58())

        digest = hash_document(document)
        logger.info("document digest %s", digest_hex(digest))

        address, bump = self.derive(identity)
        logger.info("consent address %s (bump %d)", address.to_base58(), bump)

        request = CommitRequest(address=address, bump=bump, owner=identity, digest=digest)
        try:
            tx_id = await gateway.submit_consent(request, wallet)
        except Exception as exc:
            error = classify_failure(exc)
            if isinstance(error, ProgramExecutionError) and error.logs:
                logger.error("consent transaction failed: %s\n%s", error, "\n".join(error.logs))
            else:
                logger.error("consent transaction failed: %s", error)
            if error is exc:
                raise
            raise error from exc

        logger.info("consent recorded in %s (%s)", tx_id, explorer_url(tx_id))
        return tx_id

    async def verify_consent(self, identity: Union[PublicKey, str]) -> ConsentLookup:
        """Look up the attestation for ``identity``. Absence is ``NotFound``, not an error."""
        gateway = self.gate.require_endpoint()
        try:
            identity = PublicKey.coerce(identity)
        except ValueError as exc:
            raise InvalidIdentity(identity, str(exc)) from exc
        address, _bump = self.derive(identity)
        try:
            attestation = await gateway.fetch_consent(address)
        except Exception as exc:
            error = classify_failure(exc)
            if error is exc:
                raise
            raise error from exc

        if attestation is None:
            logger.info("no consent found for %s", identity.to_base58())
            return NotFound(address=address)
        logger.info(
            "consent found for %s: hash=%s verified=%s",
            attestation.owner.to_base58(),
            attestation.digest_hex,
            attestation.verified,
        )
        return Found(attestation=attestation, address=address)

    async def check_status(self) -> ConsentLookup:
        """``verify_consent`` for the connected wallet."""
        identity = self.gate.require_identity()
        return await self.verify_consent(identity)

    async def check_balance(self) -> Optional[Decimal]:
        return await BalanceProbe(self.gate).check()
