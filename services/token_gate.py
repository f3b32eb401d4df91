# services/token_gate.py
"""
Session Token Gate - authorizes one-time public access to the mandate form.

Validation is read-only. A token is only invalidated when its mandate is
stored (see MandateSubmissionPipeline), never by checking it.
"""
import secrets
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from models import Customer, CustomerStatus
from models.base import utcnow
from .errors import InvalidTokenError, TokenAlreadyUsedError, TokenExpiredError

# 32 random bytes, hex encoded: 256 bits of entropy
TOKEN_BYTES = 32


def generate_session_token() -> str:
     """Cryptographically strong single-use token for an invitation link."""
     return secrets.token_hex(TOKEN_BYTES)


class SessionTokenGate:
     """Maps a presented token to the PENDING customer it was issued to."""

     def __init__(self, db: Session):
          self.db = db

     def validate(self, token: Optional[str], now: Optional[datetime] = None) -> Customer:
          """
          Return the customer owning `token` if the form may be shown.

          Raises:
               InvalidTokenError: no customer holds this token.
               TokenAlreadyUsedError: the customer is no longer PENDING.
               TokenExpiredError: the token expiry is in the past.
          """
          if not token:
               raise InvalidTokenError()

          if now is None:
               now = utcnow()

          customer = self.db.query(Customer).filter(Customer.session_token == token).first()
          if customer is None:
               raise InvalidTokenError()

          if customer.status != CustomerStatus.PENDING:
               raise TokenAlreadyUsedError()

          if customer.is_token_expired(now):
               raise TokenExpiredError()

          return customer
