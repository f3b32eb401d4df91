# schemas/__init__.py
from .mandate import (
     MandateAccountIn,
     MandateSubmission,
     MandateCreatedResponse,
     MandateSummary,
     MandateListResponse,
)
from .customer import (
     CustomerCreate,
     CustomerResponse,
     MandateFormContext,
     ExpireCustomersResponse,
)

__all__ = [
     "MandateAccountIn",
     "MandateSubmission",
     "MandateCreatedResponse",
     "MandateSummary",
     "MandateListResponse",
     "CustomerCreate",
     "CustomerResponse",
     "MandateFormContext",
     "ExpireCustomersResponse",
]
