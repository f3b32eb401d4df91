# models/__init__.py
from .base import Base
from .customer import Customer, CustomerStatus
from .mandate import DirectDebitMandate, DirectDebitAccount, AccountOrder
from .generated_pdf import GeneratedPDF

__all__ = [
     "Base",
     "Customer",
     "CustomerStatus",
     "DirectDebitMandate",
     "DirectDebitAccount",
     "AccountOrder",
     "GeneratedPDF",
]
