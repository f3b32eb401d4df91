# services/encryption.py
"""
Field encryption for PII stored at rest (national ID, account numbers).

Values are encrypted with Fernet (AES-128-CBC + HMAC-SHA256). Every token
carries its own random IV, so encrypting the same plaintext twice yields
different ciphertext. The Fernet key is derived from the configured
secret with SHA-256, which lets operators use any sufficiently long
secret string.
"""
import base64
import hashlib

from cryptography.fernet import Fernet, InvalidToken

from .errors import DecryptionError


class FieldCipher:
     """Symmetric encrypt/decrypt of individual string fields."""

     def __init__(self, secret: str):
          if not secret:
               raise ValueError("FIELD_ENCRYPTION_KEY is not set")
          key = base64.urlsafe_b64encode(hashlib.sha256(secret.encode("utf-8")).digest())
          self._fernet = Fernet(key)

     def __repr__(self):
          return "<FieldCipher>"

     def encrypt(self, plaintext: str) -> str:
          return self._fernet.encrypt(plaintext.encode("utf-8")).decode("ascii")

     def decrypt(self, ciphertext: str) -> str:
          """
          Decrypt a value produced by encrypt().

          Raises:
               DecryptionError: malformed ciphertext, or ciphertext produced
                    under a different key. Callers must not treat this as an
                    empty field.
          """
          if not ciphertext:
               raise DecryptionError("Cannot decrypt an empty value")
          try:
               return self._fernet.decrypt(ciphertext.encode("ascii")).decode("utf-8")
          except (InvalidToken, UnicodeError, ValueError, TypeError) as exc:
               raise DecryptionError() from exc
