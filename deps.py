# deps.py
"""
Shared FastAPI dependencies.

Components built by create_app() live on app.state; these helpers hand
them to routes so handlers never reach for globals.
"""
import ipaddress
import logging
from typing import Optional

from fastapi import HTTPException, Request
from jose import JWTError, jwt

logger = logging.getLogger(__name__)

ADMIN_COOKIE = "admin_token"
MAX_IP_LENGTH = 64  # direct_debit_mandates.ip_address


def verify_token(request: Request) -> dict:
     """
     Admin authorization: a JWT in the Authorization header (Bearer) or in
     the admin_token cookie, signed with JWT_SECRET.
     """
     settings = request.app.state.settings
     auth = request.headers.get("Authorization")
     if auth and auth.startswith("Bearer "):
          token = auth.split(" ", 1)[1]
     else:
          token = request.cookies.get(ADMIN_COOKIE)
     if not token:
          raise HTTPException(status_code=401, detail="Missing token")
     if not settings.jwt_secret:
          raise HTTPException(status_code=403, detail="Invalid token")
     try:
          return jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
     except JWTError:
          raise HTTPException(status_code=403, detail="Invalid token")


def _parse_ip(value: str) -> Optional[str]:
     try:
          address = str(ipaddress.ip_address(value))
     except ValueError:
          return None
     # IPv6 scope ids are unbounded
     return address if len(address) <= MAX_IP_LENGTH else None


def get_client_ip(request: Request) -> Optional[str]:
     """
     First X-Forwarded-For hop, else the socket peer address.

     The header is client-controlled: a first hop that is not an IPv4 or
     IPv6 address is ignored.
     """
     forwarded = request.headers.get("x-forwarded-for")
     if forwarded:
          first = _parse_ip(forwarded.split(",")[0].strip())
          if first:
               return first
          logger.info("Ignoring malformed X-Forwarded-For header")
     return request.client.host[:MAX_IP_LENGTH] if request.client else None


def get_settings(request: Request):
     return request.app.state.settings


def get_cipher(request: Request):
     return request.app.state.cipher


def get_signature_store(request: Request):
     return request.app.state.signature_store


def get_renderer(request: Request):
     return request.app.state.renderer
