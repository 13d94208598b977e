#!/usr/bin/env python3
"""
Upload an anonymized medical record to the records backend.

Usage:
    python scripts/upload_record.py --wallet-address <addr> --age-group 30-39 --gender female \
        --medical-conditions "type 2 diabetes, hypertension" --blood-pressure 120/80
"""
from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys

from pharmatrace.app.config import RECORDS_API_URL
from pharmatrace.app.services.records import (
    RecordUploadClient,
    RecordUploadError,
    RecordValidationError,
    build_record_from_form,
    validate_record,
)

FORM_FIELDS = (
    "wallet_address",
    "age_group",
    "gender",
    "ethnicity",
    "medical_conditions",
    "current_medications",
    "bmi",
    "blood_pressure",
    "last_hba1c_level",
)


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Upload a medical record")
    for name in FORM_FIELDS:
        parser.add_argument(f"--{name.replace('_', '-')}", dest=name, default="")
    parser.add_argument("--api-url", default=RECORDS_API_URL)
    parser.add_argument("--dry-run", action="store_true", help="validate and print the body only")
    return parser.parse_args()


async def run(args: argparse.Namespace) -> int:
    form = {name: getattr(args, name) for name in FORM_FIELDS}
    try:
        record = validate_record(build_record_from_form(form))
    except RecordValidationError as exc:
        for message in exc.messages:
            print(f"[ERROR] {message}", file=sys.stderr)
        return 2

    if args.dry_run:
        print(json.dumps(record.model_dump(mode="json"), indent=2, ensure_ascii=False))
        return 0

    try:
        result = await RecordUploadClient(args.api_url).upload(record)
    except RecordUploadError as exc:
        print(f"[ERROR] {exc}", file=sys.stderr)
        return 1
    print("Medical record uploaded successfully!")
    print(json.dumps(result, indent=2, ensure_ascii=False))
    return 0


def main() -> int:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    return asyncio.run(run(parse_args()))


if __name__ == "__main__":
    raise SystemExit(main())
