# catalog/auth.py

from typing import Optional
from fastapi import Header, HTTPException, status

from catalog.exceptions import AuthenticationError
from catalog.logger import get_logger

log = get_logger(__name__)

BEARER_PREFIX = "Bearer "


def check_authorization_header(authorization: Optional[str]) -> None:
  """
  Check the shape of an Authorization header: it must be present and start with 'Bearer '.
  The token itself is NOT verified.

  Raises:
    AuthenticationError: header missing or not a bearer header
  """
  if not authorization:
    raise AuthenticationError("Authorization header is missing")

  if not authorization.startswith(BEARER_PREFIX):
    raise AuthenticationError("Invalid authorization header format")


def require_bearer_token(authorization: Optional[str] = Header(default=None)) -> str:
  """FastAPI dependency guarding protected routes. Returns the raw token."""
  try:
    check_authorization_header(authorization)
  except AuthenticationError as e:
    log.warning(f"[AUTH] Rejected request: {e}")
    raise HTTPException(
      status_code=status.HTTP_401_UNAUTHORIZED,
      detail=str(e),
      headers={"WWW-Authenticate": "Bearer"},
    )
  return authorization[len(BEARER_PREFIX):]
