# services/signatures.py
"""
Signature image handling.

The public form posts the signature canvas as a data URI
("data:image/png;base64,..."). Depending on SIGNATURE_STORAGE it is kept
inline in the mandate row or written to document storage, in which case
the mandate stores the returned reference instead.

Anything else the client sends is kept as an opaque value. It is never
used as a storage reference: load() only reads from storage below the
customer's own signatures folder, so such a value renders as a missing
signature.
"""
import base64
import binascii
import logging
import uuid
from typing import Optional, Tuple

from .errors import MandateStorageError

logger = logging.getLogger(__name__)

DATA_URI_PREFIXES = {
     "data:image/png;base64,": "image/png",
     "data:image/jpeg;base64,": "image/jpeg",
     "data:image/jpg;base64,": "image/jpeg",
}
EXTENSIONS = {"image/png": ".png", "image/jpeg": ".jpg"}


def parse_data_uri(value: str) -> Optional[Tuple[str, bytes]]:
     """
     Decode an inline base64 image.

     Returns:
          (content_type, raw bytes), or None if `value` is not a supported
          PNG/JPEG data URI or its payload is not valid base64.
     """
     for prefix, content_type in DATA_URI_PREFIXES.items():
          if value.startswith(prefix):
               try:
                    return content_type, base64.b64decode(value[len(prefix):], validate=True)
               except (binascii.Error, ValueError):
                    return None
     return None


def signature_folder(customer_id: str) -> str:
     return f"signatures/{customer_id}"


class SignatureStore:
     """Turns a submitted signature into the reference kept on the mandate."""

     def __init__(self, storage, mode: str = "inline"):
          if mode not in ("inline", "blob"):
               raise ValueError(f"Unknown SIGNATURE_STORAGE: {mode}")
          self.storage = storage
          self.mode = mode

     def save(self, signature: str, customer_id: str) -> str:
          """
          Persist a signature and return its stable reference.

          Inline mode returns the submitted value unchanged. Blob mode decodes
          a data URI and writes the image to storage; values that are not a
          decodable data URI are kept as they are, since image validation
          happens at render time.

          Raises:
               MandateStorageError: the storage backend failed to write the image
          """
          if self.mode == "inline":
               return signature

          decoded = parse_data_uri(signature)
          if decoded is None:
               logger.info("Signature for customer %s is not a data URI; keeping it inline", customer_id)
               return signature

          content_type, data = decoded
          filename = f"{uuid.uuid4()}{EXTENSIONS[content_type]}"
          try:
               return self.storage.put(data, signature_folder(customer_id), filename, content_type)
          except Exception as exc:
               logger.exception("Could not store signature for customer %s", customer_id)
               raise MandateStorageError() from exc

     def load(self, reference: Optional[str], customer_id: str) -> Optional[bytes]:
          """
          Return image bytes for a stored reference, or None if unavailable.

          Only data URIs and references inside `customer_id`'s signature
          folder are resolved.
          """
          if not reference:
               return None
          if reference.startswith("data:"):
               decoded = parse_data_uri(reference)
               return decoded[1] if decoded else None
          if not self.storage.owns(reference, signature_folder(customer_id)):
               logger.warning("Signature reference for customer %s is not a stored signature", customer_id)
               return None
          return self.storage.get(reference)

     def discard(self, reference: Optional[str], customer_id: str) -> None:
          """Delete a signature written by save() whose mandate was never stored."""
          if not reference or reference.startswith("data:"):
               return
          if not self.storage.owns(reference, signature_folder(customer_id)):
               return
          try:
               self.storage.delete(reference)
          except Exception:
               logger.exception("Could not delete orphaned signature for customer %s", customer_id)
