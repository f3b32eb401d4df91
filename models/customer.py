# models/customer.py
import enum
from sqlalchemy import Column, Integer, String, Date, DateTime, Enum, func
from sqlalchemy.orm import relationship
from .base import Base, new_id


class CustomerStatus(str, enum.Enum):
     """Lifecycle of a customer's mandate invitation."""
     PENDING = "PENDING"
     SUBMITTED = "SUBMITTED"
     EXPIRED = "EXPIRED"


class Customer(Base):
     """
     Customer model - a borrower invited to sign a direct debit mandate.

     Created by the import/admin flow with status PENDING and a fresh
     session token. The token is cleared and the status moves to SUBMITTED
     in the same transaction that stores the mandate.
     """
     __tablename__ = "customers"

     id = Column(String(36), primary_key=True, default=new_id)
     external_id = Column(String(100), nullable=True, index=True)  # lender's customer number

     # Contact
     full_name = Column(String(200), nullable=False)
     phone_number = Column(String(50), nullable=False)

     # Loan metadata (all optional, copied from the loan book)
     account_number = Column(String(100), nullable=True)
     loan_status = Column(String(100), nullable=True)
     loan_balance = Column(String(50), nullable=True)
     monthly_repayment = Column(String(50), nullable=True)
     start_date = Column(Date, nullable=True)
     no_of_months = Column(Integer, nullable=True)

     status = Column(
          Enum(CustomerStatus, name="customer_status", create_constraint=True),
          default=CustomerStatus.PENDING,
          nullable=False,
          index=True
     )

     # Single-use access token for the public mandate form
     session_token = Column(String(128), unique=True, nullable=True)
     token_expiry = Column(DateTime, nullable=True)

     # Timestamps
     created_at = Column(DateTime, server_default=func.now(), nullable=False)
     updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)

     # Relationships
     mandates = relationship("DirectDebitMandate", back_populates="customer")

     def __repr__(self):
          return f"<Customer(id={self.id}, name='{self.full_name}', status='{self.status.value}')>"

     def is_token_expired(self, now) -> bool:
          """True if the session token expiry is strictly before `now`."""
          return self.token_expiry is not None and now > self.token_expiry

     def mark_as_expired(self) -> None:
          self.status = CustomerStatus.EXPIRED
