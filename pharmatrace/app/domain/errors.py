"""Client-observable error taxonomy for consent submission and lookup.

Every failure raised out of ``AttestationClient`` is one of the
``ConsentError`` subclasses below. Transport collaborators report failures as
``LedgerRejection`` (or ``SignatureDeclined`` from a wallet) and
``classify_failure`` turns them into the taxonomy. Typed kinds are used first.
Untyped failures fall back to the substring markers documented here:

* ``"user rejected"`` -> ``UserRejectedSignature``
* ``"insufficient funds"``, ``"insufficient lamports"``,
  ``"no record of a prior credit"`` -> ``InsufficientFunds``
* anything else carrying program logs -> ``ProgramExecutionError``
* everything else -> ``UnknownLedgerError`` (message kept verbatim)

Matching is case-insensitive.
"""
from __future__ import annotations

from enum import Enum
from typing import Iterable, List, Optional, Sequence

USER_REJECTED_MARKERS = ("user rejected",)
INSUFFICIENT_FUNDS_MARKERS = (
    "insufficient funds",
    "insufficient lamports",
    "no record of a prior credit",
)
FAUCET_URL = "https://faucet.solana.com"
DEFAULT_FAILURE_MESSAGE = "Transaction failed"


class ConsentError(Exception):
    """Base class for every error surfaced by the attestation client."""


class NotReadyReason(str, Enum):
    IDENTITY_MISSING = "identity_missing"
    ENDPOINT_NOT_LOADED = "endpoint_not_loaded"


class NotReady(ConsentError):
    _MESSAGES = {
        NotReadyReason.IDENTITY_MISSING: "Please connect your wallet first",
        NotReadyReason.ENDPOINT_NOT_LOADED: "Consent program not loaded. Try reconnecting your wallet.",
    }

    def __init__(self, reason: NotReadyReason) -> None:
        super().__init__(self._MESSAGES[reason])
        self.reason = reason


class AddressDerivationExhausted(ConsentError):
    """No bump seed produced an off-curve address."""


class InvalidIdentity(ConsentError, ValueError):
    """The identity to look up is not a 32-byte base58 public key."""

    def __init__(self, value: object, detail: str = "") -> None:
        message = f"invalid wallet address {value!r}"
        super().__init__(f"{message}: {detail}" if detail else message)
        self.value = value


class UserRejectedSignature(ConsentError):
    def __init__(self, message: str = "You rejected the transaction in your wallet") -> None:
        super().__init__(message)


class InsufficientFunds(ConsentError):
    def __init__(self, detail: str = "", logs: Sequence[str] = ()) -> None:
        self.detail = detail
        self.logs: List[str] = list(logs)
        self.remedy = f"Fund the wallet to cover fees and rent (devnet SOL: {FAUCET_URL})"
        super().__init__(f"Insufficient SOL for transaction fees. {self.remedy}")


class ProgramExecutionError(ConsentError):
    def __init__(self, message: str, logs: Sequence[str] = ()) -> None:
        super().__init__(message)
        self.logs: List[str] = list(logs)


class UnknownLedgerError(ConsentError):
    def __init__(self, message: str) -> None:
        self.message = message or DEFAULT_FAILURE_MESSAGE
        super().__init__(self.message)


class RejectionKind(str, Enum):
    INSUFFICIENT_FUNDS = "insufficient_funds"
    PROGRAM = "program"


class LedgerRejection(Exception):
    """Raw failure reported by a ledger gateway.

    ``kind`` is set when the transport could tell what went wrong from a
    structured error. Otherwise it stays ``None`` and the message is
    classified by substring.
    """

    def __init__(
        self,
        message: str,
        logs: Iterable[str] = (),
        kind: Optional[RejectionKind] = None,
        code: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.logs: List[str] = list(logs)
        self.kind = kind
        self.code = code


class SignatureDeclined(Exception):
    """Raised by a wallet that refuses to sign."""


def _contains(text: str, markers: Sequence[str]) -> bool:
    lowered = text.lower()
    return any(marker in lowered for marker in markers)


def classify_message(message: str, logs: Sequence[str] = ()) -> ConsentError:
    """Classify an untyped failure message (plus any logs) by substring."""
    if _contains(message, USER_REJECTED_MARKERS):
        return UserRejectedSignature()
    if _contains(message, INSUFFICIENT_FUNDS_MARKERS) or any(
        _contains(line, INSUFFICIENT_FUNDS_MARKERS) for line in logs
    ):
        return InsufficientFunds(message, logs)
    if logs:
        return ProgramExecutionError(message or DEFAULT_FAILURE_MESSAGE, logs)
    return UnknownLedgerError(message)


def classify_failure(exc: BaseException) -> ConsentError:
    if isinstance(exc, ConsentError):
        return exc
    if isinstance(exc, SignatureDeclined):
        return UserRejectedSignature()
    if isinstance(exc, LedgerRejection):
        if exc.kind is RejectionKind.INSUFFICIENT_FUNDS:
            return InsufficientFunds(exc.message, exc.logs)
        if exc.kind is RejectionKind.PROGRAM:
            return ProgramExecutionError(exc.message or DEFAULT_FAILURE_MESSAGE, exc.logs)
        return classify_message(exc.message, exc.logs)
    return classify_message(str(exc))
