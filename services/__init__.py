# services/__init__.py
from .encryption import FieldCipher
from .token_gate import SessionTokenGate, generate_session_token
from .signatures import SignatureStore
from .mandate_service import (
     MandateSubmissionPipeline,
     get_mandate,
     list_mandates,
     pdf_filename,
     generate_document,
)
from .customer_service import CustomerService
from .pdf_renderer import (
     TemplateLayout,
     MandateDocumentRenderer,
     ScratchMandateRenderer,
     build_renderer,
     render_with_timeout,
)

__all__ = [
     "FieldCipher",
     "SessionTokenGate",
     "generate_session_token",
     "SignatureStore",
     "MandateSubmissionPipeline",
     "get_mandate",
     "list_mandates",
     "pdf_filename",
     "generate_document",
     "CustomerService",
     "TemplateLayout",
     "MandateDocumentRenderer",
     "ScratchMandateRenderer",
     "build_renderer",
     "render_with_timeout",
]
