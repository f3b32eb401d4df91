# tests/test_mandate_validation.py
import pytest
from pydantic import ValidationError

from schemas.mandate import MandateSubmission


def _errors_for(payload):
    with pytest.raises(ValidationError) as exc_info:
        MandateSubmission(**payload)
    return exc_info.value.errors()


def test_valid_submission(mandate_payload):
    submission = MandateSubmission(**mandate_payload("c-1", accounts=3))
    assert submission.ghanaCardNumber == "GHA-123456789-0"
    assert [a.accountOrder.value for a in submission.accounts] == ["1ST", "2ND", "3RD"]


@pytest.mark.parametrize("card", ["GHA-000000000-0", "GHA-999999999-9"])
def test_ghana_card_accepted(mandate_payload, card):
    assert MandateSubmission(**mandate_payload("c-1", ghanaCardNumber=card)).ghanaCardNumber == card


@pytest.mark.parametrize("card", [
    "GHA-12345678-0",
    "GHA-1234567890-0",
    "GHA-123456789-01",
    "gha-123456789-0",
    "GHA123456789-0",
    "GHA-12345678A-0",
    "",
])
def test_ghana_card_rejected(mandate_payload, card):
    errors = _errors_for(mandate_payload("c-1", ghanaCardNumber=card))
    assert errors[0]["loc"] == ("ghanaCardNumber",)


def test_no_accounts_rejected(mandate_payload):
    errors = _errors_for(mandate_payload("c-1", accounts=0))
    assert errors[0]["loc"] == ("accounts",)


def test_four_accounts_rejected(mandate_payload):
    payload = mandate_payload("c-1", accounts=3)
    payload["accounts"].append(dict(payload["accounts"][0], accountOrder="1ST"))
    errors = _errors_for(payload)
    assert errors[0]["loc"] == ("accounts",)


def test_duplicate_account_order_rejected(mandate_payload):
    payload = mandate_payload("c-1", accounts=2)
    payload["accounts"][1]["accountOrder"] = "1ST"
    errors = _errors_for(payload)
    assert "different accountOrder" in errors[0]["msg"]


def test_unknown_account_order_rejected(mandate_payload):
    payload = mandate_payload("c-1", accounts=1)
    payload["accounts"][0]["accountOrder"] = "4TH"
    errors = _errors_for(payload)
    assert errors[0]["loc"] == ("accounts", 0, "accountOrder")


def test_account_number_minimum_length(mandate_payload):
    payload = mandate_payload("c-1", accounts=1)
    payload["accounts"][0]["accountNumber"] = "12345678"
    MandateSubmission(**payload)

    payload["accounts"][0]["accountNumber"] = "1234567"
    errors = _errors_for(payload)
    assert errors[0]["loc"] == ("accounts", 0, "accountNumber")


def test_short_bank_name_rejected(mandate_payload):
    payload = mandate_payload("c-1", accounts=1)
    payload["accounts"][0]["bankName"] = "G"
    errors = _errors_for(payload)
    assert errors[0]["loc"] == ("accounts", 0, "bankName")


@pytest.mark.parametrize("value", [False, "true", 1])
def test_agreement_must_be_true(mandate_payload, value):
    errors = _errors_for(mandate_payload("c-1", agreementAccepted=value))
    assert errors[0]["loc"] == ("agreementAccepted",)


def test_missing_agreement_rejected(mandate_payload):
    payload = mandate_payload("c-1")
    del payload["agreementAccepted"]
    errors = _errors_for(payload)
    assert errors[0]["loc"] == ("agreementAccepted",)


@pytest.mark.parametrize("signature", ["", "   "])
def test_signature_required(mandate_payload, signature):
    errors = _errors_for(mandate_payload("c-1", signature=signature))
    assert errors[0]["loc"] == ("signature",)


def test_short_full_name_rejected(mandate_payload):
    errors = _errors_for(mandate_payload("c-1", fullName="A"))
    assert errors[0]["loc"] == ("fullName",)
