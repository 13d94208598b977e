"""Runtime configuration read from the environment (and an optional .env)."""
import os
from decimal import Decimal

from dotenv import load_dotenv

load_dotenv()

# Must match the deployed program's declare_id!() exactly.
PROGRAM_ID = os.getenv("PHARMATRACE_PROGRAM_ID", "5DMXqq7v2gkNSyBQ9P6XMFgUFQNcLdJHdhFi9JEPfcpa")

SOLANA_RPC_URL = os.getenv("SOLANA_RPC_URL", "https://api.devnet.solana.com")
SOLANA_COMMITMENT = os.getenv("SOLANA_COMMITMENT", "processed")
SOLANA_CLUSTER = os.getenv("SOLANA_CLUSTER", "devnet")

# "local" keeps attestations in the SQL-backed development ledger, "rpc" talks to SOLANA_RPC_URL.
LEDGER_BACKEND = os.getenv("LEDGER_BACKEND", "local").lower()

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./pharmatrace.db")

RECORDS_API_URL = os.getenv("RECORDS_API_URL", "http://localhost:5000")

LOW_BALANCE_SOL = Decimal("0.01")


def explorer_url(signature: str, cluster: str = SOLANA_CLUSTER) -> str:
    return f"https://explorer.solana.com/tx/{signature}?cluster={cluster}"
