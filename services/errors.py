# services/errors.py
"""
Error taxonomy for the mandate pipeline.

Routers translate these into HTTP responses. Nothing below the service
layer should let storage-specific exceptions reach a caller; they are
wrapped in MandateStorageError instead.
"""
from typing import Optional


GENERIC_LINK_MESSAGE = (
     "This link is no longer valid. It may have already been used or has expired. "
     "Please contact support or request a new link."
)
EXPIRED_LINK_MESSAGE = "This link has expired. Please contact support to request a new one."


class MandateError(Exception):
     """Base class for every error raised by the mandate services."""

     message = "Mandate request failed"

     def __init__(self, message: Optional[str] = None):
          super().__init__(message or self.message)
          self.message = message or self.message


# State ----------------------------------------------------------------------

class CustomerNotFoundError(MandateError):
     message = "Customer not found"


class AlreadySubmittedError(MandateError):
     message = "Mandate already submitted"


class MandateNotFoundError(MandateError):
     message = "Mandate not found"


class TokenError(MandateError):
     """Base for session token failures."""
     message = GENERIC_LINK_MESSAGE


class InvalidTokenError(TokenError):
     pass


class TokenAlreadyUsedError(TokenError):
     pass


class TokenExpiredError(TokenError):
     message = EXPIRED_LINK_MESSAGE


# Storage --------------------------------------------------------------------

class MandateStorageError(MandateError):
     message = "Failed to store mandate"


# Encryption -----------------------------------------------------------------

class DecryptionError(MandateError):
     """Stored ciphertext could not be decrypted with the configured key."""
     message = "Could not decrypt protected field"


# Rendering ------------------------------------------------------------------

class RenderError(MandateError):
     message = "Failed to generate PDF"


class TemplateMissingError(RenderError):
     message = "Mandate PDF template not found"


class TemplateMismatchError(RenderError):
     message = "Mandate PDF template does not match its position table"


class RenderTimeoutError(RenderError):
     message = "Mandate PDF generation timed out"
