import asyncio
import json

import httpx
import pytest

from pharmatrace.app.domain.schemas import (
    BLOOD_PRESSURE_INVALID,
    DEMOGRAPHICS_REQUIRED,
    WALLET_INVALID,
    WALLET_REQUIRED,
)
from pharmatrace.app.services.records import (
    NETWORK_ERROR,
    UPLOAD_FAILED,
    RecordUploadClient,
    RecordUploadError,
    RecordValidationError,
    build_record_from_form,
    parse_comma_separated,
    validate_record,
)

WALLET = "5DMXqq7v2gkNSyBQ9P6XMFgUFQNcLdJHdhFi9JEPfcpa"


def _form(**overrides):
    form = {
        "wallet_address": f"  {WALLET} ",
        "age_group": "30-39",
        "gender": "female",
        "ethnicity": " Asian ",
        "medical_conditions": "type 2 diabetes, , hypertension",
        "current_medications": "",
        "bmi": "24.5",
        "blood_pressure": "120/80",
        "last_hba1c_level": "0",
    }
    form.update(overrides)
    return form


def _uploader(handler):
    calls = []

    def transport(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return handler(request)

    client = httpx.AsyncClient(transport=httpx.MockTransport(transport))
    return RecordUploadClient("http://records.test/", client=client), calls


def test_parse_comma_separated():
    assert parse_comma_separated(" a, b ,,c ") == ["a", "b", "c"]
    assert parse_comma_separated("   ") == []
    assert parse_comma_separated(None) == []


def test_form_is_trimmed_and_parsed():
    body = build_record_from_form(_form(bmi="not a number"))
    assert body["wallet_address"] == WALLET
    assert body["demographics"]["ethnicity"] == "Asian"
    assert body["medical_conditions"] == ["type 2 diabetes", "hypertension"]
    assert body["current_medications"] == []
    assert body["health_metrics"] == {"bmi": None, "blood_pressure": "120/80", "last_hba1c_level": None}


def test_valid_record():
    record = validate_record(build_record_from_form(_form()))
    assert record.wallet_address == WALLET
    assert record.health_metrics.bmi == 24.5


def test_short_wallet_rejected_before_network():
    uploader, calls = _uploader(lambda request: httpx.Response(200, json={"ok": True}))
    body = build_record_from_form(_form(wallet_address="abcdefghij"))

    with pytest.raises(RecordValidationError) as excinfo:
        asyncio.run(uploader.upload(body))
    assert excinfo.value.messages == [WALLET_INVALID]
    assert calls == []


def test_wallet_rules():
    with pytest.raises(RecordValidationError) as excinfo:
        validate_record(build_record_from_form(_form(wallet_address="")))
    assert excinfo.value.messages == [WALLET_REQUIRED]

    # right length, but '0' is outside the base58 alphabet
    with pytest.raises(RecordValidationError) as excinfo:
        validate_record(build_record_from_form(_form(wallet_address="0" * 40)))
    assert excinfo.value.messages == [WALLET_INVALID]


def test_demographics_required():
    with pytest.raises(RecordValidationError) as excinfo:
        validate_record(build_record_from_form(_form(gender="")))
    assert excinfo.value.messages == [DEMOGRAPHICS_REQUIRED]

    body = build_record_from_form(_form())
    del body["demographics"]
    with pytest.raises(RecordValidationError) as excinfo:
        validate_record(body)
    assert excinfo.value.messages == [DEMOGRAPHICS_REQUIRED]


def test_blood_pressure_format():
    with pytest.raises(RecordValidationError) as excinfo:
        validate_record(build_record_from_form(_form(blood_pressure="12/8")))
    assert excinfo.value.messages == [BLOOD_PRESSURE_INVALID]
    assert validate_record(build_record_from_form(_form(blood_pressure=""))).health_metrics.blood_pressure is None


def test_upload_posts_json_body():
    uploader, calls = _uploader(lambda request: httpx.Response(201, json={"record_id": "rec-1"}))
    result = asyncio.run(uploader.upload(build_record_from_form(_form())))

    assert result == {"record_id": "rec-1"}
    request, = calls
    assert request.method == "POST"
    assert str(request.url) == "http://records.test/api/upload-record"
    sent = json.loads(request.content)
    assert sent["wallet_address"] == WALLET
    assert sent["demographics"]["age_group"] == "30-39"


def test_server_error_message_is_surfaced():
    uploader, _ = _uploader(lambda request: httpx.Response(400, json={"error": "Wallet has no consent on record"}))
    with pytest.raises(RecordUploadError) as excinfo:
        asyncio.run(uploader.upload(build_record_from_form(_form())))
    assert str(excinfo.value) == "Wallet has no consent on record"
    assert excinfo.value.status_code == 400


def test_server_error_without_body_uses_default():
    uploader, _ = _uploader(lambda request: httpx.Response(500, text="Internal Server Error"))
    with pytest.raises(RecordUploadError, match=UPLOAD_FAILED):
        asyncio.run(uploader.upload(build_record_from_form(_form())))


def test_network_failure():
    def refuse(request):
        raise httpx.ConnectError("connection refused", request=request)

    uploader, _ = _uploader(refuse)
    with pytest.raises(RecordUploadError) as excinfo:
        asyncio.run(uploader.upload(build_record_from_form(_form())))
    assert str(excinfo.value) == NETWORK_ERROR
