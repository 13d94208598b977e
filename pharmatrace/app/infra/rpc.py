"""JSON-RPC ledger gateway for a Solana-compatible endpoint."""
from __future__ import annotations

import asyncio
import base64
import logging
from contextlib import asynccontextmanager
from itertools import count
from typing import Any, AsyncIterator, List, Optional, Sequence

import httpx

from ..config import SOLANA_COMMITMENT, SOLANA_RPC_URL
from ..domain.accounts import decode_consent_record
from ..domain.errors import LedgerRejection, RejectionKind
from ..domain.keys import PublicKey
from ..domain.models import Attestation, CommitRequest
from ..domain.sign import Wallet
from .transaction import compile_message, serialize_transaction, sign_consent_instruction

logger = logging.getLogger(__name__)

COMMITMENT_LEVELS = ("processed", "confirmed", "finalized")
FUNDS_ERRORS = {"AccountNotFound", "InsufficientFundsForFee", "InsufficientFundsForRent"}


def rejection_kind(err: Any, logs: Sequence[str]) -> Optional[RejectionKind]:
    """Read the structured transaction error, if the node sent one."""
    if isinstance(err, str) and err in FUNDS_ERRORS:
        return RejectionKind.INSUFFICIENT_FUNDS
    if isinstance(err, dict):
        if "InsufficientFundsForRent" in err:
            return RejectionKind.INSUFFICIENT_FUNDS
        if "InstructionError" in err:
            if any("insufficient lamports" in line for line in logs):
                return RejectionKind.INSUFFICIENT_FUNDS
            return RejectionKind.PROGRAM
    return None


def rejection_from_rpc_error(error: dict) -> LedgerRejection:
    message = error.get("message") or "RPC request failed"
    data = error.get("data")
    logs: List[str] = []
    err = None
    if isinstance(data, dict):
        logs = list(data.get("logs") or [])
        err = data.get("err")
    return LedgerRejection(message, logs=logs, kind=rejection_kind(err, logs), code=error.get("code"))


class SolanaRpcGateway:
    """Talks JSON-RPC to the ledger. HTTP connections live for one call only.

    An injected ``client`` is borrowed and never closed here.
    """

    def __init__(
        self,
        program_id: PublicKey,
        endpoint: str = SOLANA_RPC_URL,
        commitment: str = SOLANA_COMMITMENT,
        client: Optional[httpx.AsyncClient] = None,
        confirm_attempts: int = 30,
        confirm_interval: float = 1.0,
        timeout: float = 30.0,
    ) -> None:
        if commitment not in COMMITMENT_LEVELS:
            raise ValueError(f"unknown commitment {commitment!r}")
        self.program_id = program_id
        self.endpoint = endpoint
        self.commitment = commitment
        self.confirm_attempts = confirm_attempts
        self.confirm_interval = confirm_interval
        self.timeout = timeout
        self._client = client
        self._ids = count(1)

    @asynccontextmanager
    async def _http(self) -> AsyncIterator[httpx.AsyncClient]:
        if self._client is not None:
            yield self._client
            return
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            yield client

    async def _call(self, client: httpx.AsyncClient, method: str, params: list) -> Any:
        payload = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params}
        response = await client.post(self.endpoint, json=payload)
        response.raise_for_status()
        try:
            body = response.json()
        except ValueError as exc:
            raise LedgerRejection(f"{method}: response from {self.endpoint} is not JSON") from exc
        if not isinstance(body, dict):
            raise LedgerRejection(f"{method}: unexpected response body {body!r}")
        if body.get("error"):
            raise rejection_from_rpc_error(body["error"])
        if "result" not in body:
            raise LedgerRejection(f"{method}: response carries neither result nor error")
        return body["result"]

    async def get_balance(self, owner: PublicKey) -> int:
        async with self._http() as client:
            result = await self._call(
                client, "getBalance", [owner.to_base58(), {"commitment": self.commitment}]
            )
        try:
            return int(result["value"])
        except (KeyError, TypeError, ValueError) as exc:
            raise LedgerRejection(f"getBalance: malformed result {result!r}") from exc

    async def fetch_consent(self, address: PublicKey) -> Optional[Attestation]:
        async with self._http() as client:
            result = await self._call(
                client,
                "getAccountInfo",
                [address.to_base58(), {"encoding": "base64", "commitment": self.commitment}],
            )
        account = result.get("value")
        if account is None:
            return None
        if account.get("owner") != self.program_id.to_base58():
            raise LedgerRejection(
                f"account {address.to_base58()} is owned by {account.get('owner')}, "
                f"not program {self.program_id.to_base58()}"
            )
        data, _encoding = account["data"]
        try:
            return decode_consent_record(base64.b64decode(data))
        except ValueError as exc:
            raise LedgerRejection(f"account {address.to_base58()}: {exc}") from exc

    async def submit_consent(self, request: CommitRequest, wallet: Wallet) -> str:
        async with self._http() as client:
            latest = await self._call(client, "getLatestBlockhash", [{"commitment": self.commitment}])
            blockhash = PublicKey.from_base58(latest["value"]["blockhash"])
            message = compile_message(
                request.owner,
                [sign_consent_instruction(self.program_id, request)],
                blockhash,
            )
            signature = wallet.sign_message(message)
            wire = serialize_transaction([signature], message)
            tx_id = await self._call(
                client,
                "sendTransaction",
                [
                    base64.b64encode(wire).decode("ascii"),
                    {"encoding": "base64", "preflightCommitment": self.commitment},
                ],
            )
            logger.info("transaction %s sent, awaiting %s confirmation", tx_id, self.commitment)
            await self._confirm(client, tx_id)
        return tx_id

    async def _confirm(self, client: httpx.AsyncClient, tx_id: str) -> None:
        wanted = COMMITMENT_LEVELS.index(self.commitment)
        for _ in range(self.confirm_attempts):
            result = await self._call(client, "getSignatureStatuses", [[tx_id]])
            status = (result.get("value") or [None])[0]
            if status is not None:
                if status.get("err") is not None:
                    err = status["err"]
                    raise LedgerRejection(
                        f"Transaction {tx_id} failed: {err}", kind=rejection_kind(err, ())
                    )
                level = status.get("confirmationStatus") or "processed"
                if COMMITMENT_LEVELS.index(level) >= wanted:
                    return
            await asyncio.sleep(self.confirm_interval)
        raise LedgerRejection(
            f"Transaction {tx_id} was sent but not confirmed after {self.confirm_attempts} checks"
        )
