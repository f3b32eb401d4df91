# models/mandate.py
"""
Direct debit mandate and its bank accounts.

A mandate is written once, together with its 1-3 accounts, and never
updated. National ID and account numbers hold ciphertext produced by the
field codec; the models treat them as opaque strings.
"""
import enum
from sqlalchemy import Column, String, Boolean, Text, DateTime, ForeignKey, Enum, UniqueConstraint
from sqlalchemy.orm import relationship
from .base import Base, new_id, utcnow


class AccountOrder(str, enum.Enum):
     """Priority rank of an account within one mandate."""
     FIRST = "1ST"
     SECOND = "2ND"
     THIRD = "3RD"


class DirectDebitMandate(Base):
     """A customer's signed authorization for recurring debits."""
     __tablename__ = "direct_debit_mandates"

     id = Column(String(36), primary_key=True, default=new_id)
     customer_id = Column(
          String(36),
          ForeignKey("customers.id", ondelete="CASCADE"),
          nullable=False,
          index=True
     )

     ghana_card_number = Column(Text, nullable=False)  # encrypted
     agreement_accepted = Column(Boolean, nullable=False)
     # data: URI (inline storage) or a storage reference (path / blob URL)
     digital_signature_path = Column(Text, nullable=True)

     submitted_at = Column(DateTime, default=utcnow, nullable=False, index=True)
     ip_address = Column(String(64), nullable=True)

     # Relationships
     customer = relationship("Customer", back_populates="mandates")
     accounts = relationship(
          "DirectDebitAccount",
          back_populates="mandate",
          cascade="all, delete-orphan",
          order_by="DirectDebitAccount.account_order"
     )
     generated_pdfs = relationship(
          "GeneratedPDF",
          back_populates="mandate",
          cascade="all, delete-orphan",
          order_by="GeneratedPDF.generated_at.desc()"
     )

     def __repr__(self):
          return f"<DirectDebitMandate(id={self.id}, customer_id={self.customer_id})>"

     @property
     def reference(self) -> str:
          """Short human-legible mandate reference printed on the form."""
          return self.id[:8].upper()


class DirectDebitAccount(Base):
     """One bank account authorized under a mandate."""
     __tablename__ = "direct_debit_accounts"
     __table_args__ = (
          UniqueConstraint("mandate_id", "account_order", name="uq_direct_debit_accounts_mandate_order"),
     )

     id = Column(String(36), primary_key=True, default=new_id)
     mandate_id = Column(
          String(36),
          ForeignKey("direct_debit_mandates.id", ondelete="CASCADE"),
          nullable=False,
          index=True
     )

     account_order = Column(
          Enum(AccountOrder, name="account_order", create_constraint=True,
               values_callable=lambda e: [m.value for m in e]),
          nullable=False
     )
     bank_name = Column(String(200), nullable=False)
     branch = Column(String(200), nullable=False)
     account_name = Column(String(200), nullable=False)
     account_number = Column(Text, nullable=False)  # encrypted

     # Relationships
     mandate = relationship("DirectDebitMandate", back_populates="accounts")

     def __repr__(self):
          return f"<DirectDebitAccount(id={self.id}, order='{self.account_order.value}', bank='{self.bank_name}')>"
