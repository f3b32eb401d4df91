# services/customer_service.py
"""
Customer Service - business rules for customers and their session tokens.

The import and admin flows hand over a validated CustomerCreate; this
service owns token issuance and the time-based expiry policy.
"""
import logging
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from models import Customer, CustomerStatus
from models.base import utcnow
from schemas.customer import CustomerCreate
from .errors import AlreadySubmittedError, CustomerNotFoundError
from .token_gate import generate_session_token

logger = logging.getLogger(__name__)

LOAN_FIELDS = (
     "account_number",
     "loan_status",
     "loan_balance",
     "monthly_repayment",
     "start_date",
     "no_of_months",
)


class CustomerService:
     """Service class for customer-related business logic."""

     @staticmethod
     def create_customer(
          db: Session,
          data: CustomerCreate,
          token_ttl_hours: int = 48,
          now: Optional[datetime] = None
     ) -> Customer:
          """
          Create a PENDING customer with a fresh session token.

          If `data.external_id` matches an existing customer, that record's
          contact and loan fields are updated instead and its token is left
          untouched.

          Returns:
               The created or updated Customer (flushed, not committed)
          """
          if now is None:
               now = utcnow()

          if data.external_id:
               existing = db.query(Customer).filter(Customer.external_id == data.external_id).first()
               if existing:
                    existing.full_name = data.full_name
                    existing.phone_number = data.phone_number
                    for name in LOAN_FIELDS:
                         setattr(existing, name, getattr(data, name))
                    db.flush()
                    logger.info("Updated customer %s from external id", existing.id)
                    return existing

          customer = Customer(
               full_name=data.full_name,
               phone_number=data.phone_number,
               external_id=data.external_id,
               status=CustomerStatus.PENDING,
               session_token=generate_session_token(),
               token_expiry=now + timedelta(hours=token_ttl_hours),
               **{name: getattr(data, name) for name in LOAN_FIELDS},
          )
          db.add(customer)
          db.flush()  # Flush to get the ID without committing
          logger.info("Created customer %s", customer.id)
          return customer

     @staticmethod
     def reissue_token(
          db: Session,
          customer_id: str,
          token_ttl_hours: int = 48,
          now: Optional[datetime] = None
     ) -> Customer:
          """
          Give a customer who has not submitted a new token and expiry.

          Raises:
               CustomerNotFoundError: unknown customer
               AlreadySubmittedError: SUBMITTED is terminal; no new link
          """
          if now is None:
               now = utcnow()

          customer = db.get(Customer, customer_id)
          if customer is None:
               raise CustomerNotFoundError()
          if customer.status == CustomerStatus.SUBMITTED:
               raise AlreadySubmittedError()

          customer.session_token = generate_session_token()
          customer.token_expiry = now + timedelta(hours=token_ttl_hours)
          customer.status = CustomerStatus.PENDING
          db.flush()
          return customer

     @staticmethod
     def mark_expired_customers(db: Session, now: Optional[datetime] = None) -> int:
          """
          Mark PENDING customers whose token expiry has passed as EXPIRED.

          This should be called by a scheduled job. Records are never deleted.

          Returns:
               Number of customers marked as expired
          """
          if now is None:
               now = utcnow()

          stale = db.query(Customer).filter(
               Customer.status == CustomerStatus.PENDING,
               Customer.token_expiry.isnot(None),
               Customer.token_expiry < now
          ).all()

          for customer in stale:
               customer.mark_as_expired()

          return len(stale)

     @staticmethod
     def invitation_link(customer: Customer, base_url: str) -> Optional[str]:
          """Public form URL carried in the SMS invitation."""
          if not customer.session_token:
               return None
          return f"{base_url.rstrip('/')}/mandate?token={customer.session_token}"
