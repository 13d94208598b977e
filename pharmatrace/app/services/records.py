"""Client for the medical-record upload endpoint of the REST backend."""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional, Union

import httpx
from pydantic import ValidationError

from ..config import RECORDS_API_URL
from ..domain.schemas import DEMOGRAPHICS_REQUIRED, WALLET_REQUIRED, MedicalRecordUpload

logger = logging.getLogger(__name__)

UPLOAD_PATH = "/api/upload-record"
UPLOAD_FAILED = "Failed to upload record. Please try again."
NETWORK_ERROR = "Network error. Please check your connection and try again."

_MISSING_MESSAGES = {
    "wallet_address": WALLET_REQUIRED,
    "demographics": DEMOGRAPHICS_REQUIRED,
}


class RecordValidationError(ValueError):
    def __init__(self, messages: List[str]) -> None:
        super().__init__("; ".join(messages))
        self.messages = messages


class RecordUploadError(Exception):
    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


def parse_comma_separated(value: Optional[str]) -> List[str]:
    if not value or not value.strip():
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


def _parse_float(value: Optional[str]) -> Optional[float]:
    # Blank, unparseable and zero all mean "not provided".
    try:
        number = float((value or "").strip())
    except ValueError:
        return None
    return number or None


def build_record_from_form(form: Mapping[str, str]) -> Dict[str, Any]:
    """Assemble the upload body from flat form fields."""
    return {
        "wallet_address": (form.get("wallet_address") or "").strip(),
        "demographics": {
            "age_group": form.get("age_group") or "",
            "gender": form.get("gender") or "",
            "ethnicity": (form.get("ethnicity") or "").strip(),
        },
        "medical_conditions": parse_comma_separated(form.get("medical_conditions")),
        "current_medications": parse_comma_separated(form.get("current_medications")),
        "health_metrics": {
            "bmi": _parse_float(form.get("bmi")),
            "blood_pressure": (form.get("blood_pressure") or "").strip() or None,
            "last_hba1c_level": _parse_float(form.get("last_hba1c_level")),
        },
    }


def _error_message(error: Mapping[str, Any]) -> str:
    if error.get("type") == "missing" and error.get("loc"):
        return _MISSING_MESSAGES.get(str(error["loc"][0]), f"{error['loc'][0]} is required")
    ctx = error.get("ctx") or {}
    if "error" in ctx:
        return str(ctx["error"])
    return error.get("msg", "invalid value")


def validate_record(data: Mapping[str, Any]) -> MedicalRecordUpload:
    try:
        return MedicalRecordUpload.model_validate(data)
    except ValidationError as exc:
        messages: List[str] = []
        for error in exc.errors():
            message = _error_message(error)
            if message not in messages:
                messages.append(message)
        raise RecordValidationError(messages) from exc


class RecordUploadClient:
    def __init__(self, base_url: str = RECORDS_API_URL, client: Optional[httpx.AsyncClient] = None) -> None:
        self.url = base_url.rstrip("/") + UPLOAD_PATH
        self._client = client

    async def upload(self, record: Union[MedicalRecordUpload, Mapping[str, Any]]) -> Dict[str, Any]:
        """Validate, then POST. Validation failures never reach the network."""
        if not isinstance(record, MedicalRecordUpload):
            record = validate_record(record)
        payload = record.model_dump(mode="json")

        try:
            if self._client is not None:
                response = await self._client.post(self.url, json=payload)
            else:
                async with httpx.AsyncClient() as client:
                    response = await client.post(self.url, json=payload)
        except httpx.HTTPError as exc:
            logger.error("record upload to %s failed: %s", self.url, exc)
            raise RecordUploadError(NETWORK_ERROR) from exc

        try:
            body = response.json()
        except ValueError:
            body = {}
        if response.is_success:
            logger.info("medical record uploaded for %s", record.wallet_address)
            return body if isinstance(body, dict) else {"result": body}
        message = body.get("error") if isinstance(body, dict) else None
        raise RecordUploadError(message or UPLOAD_FAILED, status_code=response.status_code)
