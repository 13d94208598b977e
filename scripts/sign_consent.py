#!/usr/bin/env python3
"""
Sign a consent document on-ledger with a keypair file.

Usage:
    python scripts/sign_consent.py --keypair ~/.config/solana/id.json --document "I consent to data sharing"
    python scripts/sign_consent.py --keypair id.json --document-file consent.txt --local --airdrop 0.5
"""
from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from decimal import Decimal
from pathlib import Path

from pharmatrace.app.config import DATABASE_URL, PROGRAM_ID, SOLANA_RPC_URL, explorer_url
from pharmatrace.app.deps import build_gateway
from pharmatrace.app.domain.errors import ConsentError, InsufficientFunds, ProgramExecutionError
from pharmatrace.app.domain.sign import KeypairWallet
from pharmatrace.app.services.attestation import AttestationClient
from pharmatrace.app.services.balance import LAMPORTS_PER_SOL
from pharmatrace.app.services.session import SessionGate


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Commit a consent document digest on-ledger.")
    parser.add_argument("--keypair", required=True, help="JSON keypair file (64-byte array)")
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--document", help="consent text")
    source.add_argument("--document-file", type=Path, help="file holding the consent text (UTF-8)")
    parser.add_argument("--program-id", default=PROGRAM_ID)
    parser.add_argument("--rpc-url", default=SOLANA_RPC_URL)
    parser.add_argument("--local", action="store_true", help="use the local SQL ledger instead of RPC")
    parser.add_argument("--database-url", default=DATABASE_URL, help="local ledger database")
    parser.add_argument(
        "--airdrop",
        type=Decimal,
        help="local ledger only: credit this many SOL to the wallet first",
    )
    return parser.parse_args()


async def run(args: argparse.Namespace) -> int:
    document = args.document if args.document is not None else args.document_file.read_text(encoding="utf-8")
    wallet = KeypairWallet.from_keypair_file(args.keypair)
    gateway = build_gateway(
        backend="local" if args.local else "rpc",
        program_id=args.program_id,
        rpc_url=args.rpc_url,
        database_url=args.database_url,
    )
    if args.airdrop is not None:
        if not args.local:
            print("--airdrop is only available with --local", file=sys.stderr)
            return 2
        gateway.airdrop(wallet.public_key, int(args.airdrop * LAMPORTS_PER_SOL))

    client = AttestationClient(SessionGate(wallet=wallet, gateway=gateway))
    balance = await client.check_balance()
    if balance is not None:
        print(f"Wallet {client.wallet_address}: {balance:.4f} SOL")

    try:
        tx_id = await client.sign_consent(document)
    except InsufficientFunds as exc:
        print(f"[ERROR] {exc}", file=sys.stderr)
        return 1
    except ProgramExecutionError as exc:
        print(f"[ERROR] {exc}", file=sys.stderr)
        for line in exc.logs:
            print(f"  {line}", file=sys.stderr)
        return 1
    except ConsentError as exc:
        print(f"[ERROR] {exc}", file=sys.stderr)
        return 1

    print(f"Transaction: {tx_id}")
    if not args.local:
        print(f"Explorer: {explorer_url(tx_id)}")
    return 0


def main() -> int:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    return asyncio.run(run(parse_args()))


if __name__ == "__main__":
    raise SystemExit(main())
