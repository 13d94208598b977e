#!/usr/bin/env python3
"""
Check whether a wallet has a consent attestation on-ledger.

Usage:
    python scripts/verify_consent.py <wallet-address> [--json] [--local]
"""
from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys

from pharmatrace.app.config import DATABASE_URL, PROGRAM_ID, SOLANA_RPC_URL
from pharmatrace.app.deps import build_gateway
from pharmatrace.app.domain.errors import ConsentError
from pharmatrace.app.domain.models import Found
from pharmatrace.app.domain.schemas import ConsentStatusOut
from pharmatrace.app.services.attestation import AttestationClient
from pharmatrace.app.services.session import SessionGate


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Verify a wallet's consent attestation.")
    parser.add_argument("wallet_address")
    parser.add_argument("--program-id", default=PROGRAM_ID)
    parser.add_argument("--rpc-url", default=SOLANA_RPC_URL)
    parser.add_argument("--local", action="store_true", help="read the local SQL ledger instead of RPC")
    parser.add_argument("--database-url", default=DATABASE_URL)
    parser.add_argument("--json", action="store_true")
    return parser.parse_args()


async def run(args: argparse.Namespace) -> int:
    gateway = build_gateway(
        backend="local" if args.local else "rpc",
        program_id=args.program_id,
        rpc_url=args.rpc_url,
        database_url=args.database_url,
    )
    client = AttestationClient(SessionGate(gateway=gateway))
    try:
        lookup = await client.verify_consent(args.wallet_address)
    except ValueError as exc:
        print(f"[ERROR] {exc}", file=sys.stderr)
        return 2
    except ConsentError as exc:
        print(f"[ERROR] {exc}", file=sys.stderr)
        return 1

    if args.json:
        status = ConsentStatusOut.from_lookup(args.wallet_address, lookup)
        print(json.dumps(status.model_dump(), indent=2))
    elif isinstance(lookup, Found):
        attestation = lookup.attestation
        print(f"Consent found at {lookup.address}")
        print(f"  patient:  {attestation.owner}")
        print(f"  hash:     {attestation.digest_hex}")
        print(f"  verified: {attestation.verified}")
    else:
        print(f"No consent found for {args.wallet_address} (address {lookup.address})")
    return 0 if isinstance(lookup, Found) else 3


def main() -> int:
    logging.basicConfig(level=logging.WARNING, format="%(levelname)s %(name)s: %(message)s")
    return asyncio.run(run(parse_args()))


if __name__ == "__main__":
    raise SystemExit(main())
