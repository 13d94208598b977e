"""
PharmaTrace: wallet-signed consent attestations.

A patient's consent document is reduced to a SHA-256 digest and committed at
a program-derived address computed from the patient's public key and the
``b"consent"`` seed. Anyone can re-derive that address and verify the
commitment without trusting whoever submitted it. The document itself never
leaves the caller.
"""

__all__ = [
    "AttestationClient",
    "SessionGate",
    "hash_document",
    "derive_address",
]

from .app.domain.hashing import hash_document
from .app.domain.pda import derive_address
from .app.services.attestation import AttestationClient
from .app.services.session import SessionGate

__version__ = "0.1.0"
