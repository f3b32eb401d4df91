# tests/test_token_gate.py
from datetime import datetime, timedelta

import pytest

from models import Customer, CustomerStatus
from services.errors import InvalidTokenError, TokenAlreadyUsedError, TokenExpiredError
from services.token_gate import SessionTokenGate, generate_session_token

ISSUED_AT = datetime(2026, 10, 1, 9, 0, 0)


@pytest.fixture
def customer(make_customer):
    return make_customer(now=ISSUED_AT, token_ttl_hours=48)


def test_generated_tokens_are_64_hex_chars_and_unique():
    tokens = {generate_session_token() for _ in range(50)}
    assert len(tokens) == 50
    for token in tokens:
        assert len(token) == 64
        int(token, 16)


def test_valid_token_returns_customer(db_session, customer):
    found = SessionTokenGate(db_session).validate(customer.session_token, now=ISSUED_AT + timedelta(hours=1))
    assert found.id == customer.id


def test_token_one_second_before_expiry_is_accepted(db_session, customer):
    now = customer.token_expiry - timedelta(seconds=1)
    assert SessionTokenGate(db_session).validate(customer.session_token, now=now).id == customer.id


def test_token_one_second_after_expiry_is_rejected(db_session, customer):
    now = customer.token_expiry + timedelta(seconds=1)
    with pytest.raises(TokenExpiredError):
        SessionTokenGate(db_session).validate(customer.session_token, now=now)


@pytest.mark.parametrize("token", [None, "", "0" * 64])
def test_unknown_token_is_invalid(db_session, customer, token):
    with pytest.raises(InvalidTokenError):
        SessionTokenGate(db_session).validate(token, now=ISSUED_AT)


def test_non_pending_customer_is_rejected(db_session, customer):
    row = db_session.get(Customer, customer.id)
    row.status = CustomerStatus.SUBMITTED
    db_session.commit()

    with pytest.raises(TokenAlreadyUsedError):
        SessionTokenGate(db_session).validate(customer.session_token, now=ISSUED_AT)


def test_validation_does_not_consume_token(db_session, customer):
    gate = SessionTokenGate(db_session)
    gate.validate(customer.session_token, now=ISSUED_AT)
    gate.validate(customer.session_token, now=ISSUED_AT)

    row = db_session.get(Customer, customer.id)
    assert row.session_token == customer.session_token
    assert row.status == CustomerStatus.PENDING
