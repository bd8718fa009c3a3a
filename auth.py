"""
Token service and authorization guard.

Tokens are HS256 JWTs carrying the caller's ``email`` claim. The guard is a
set of FastAPI dependencies:

* ``get_current_claims``: a missing header is 401, a bad or unverifiable one
  is 403.
* ``require_admin``: the caller's stored role must be admin or super admin.
* ``ensure_owner_or_admin``: called by handlers once the target order's
  ``buyerEmail`` is known.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt
from fastapi import Depends, Header, HTTPException, Request, status

from config import Settings
from database import Store, get_store
from schemas import ADMIN_ROLES

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


# ===================== Tokens =====================

def issue_token(claims: Dict[str, Any], settings: Settings) -> str:
    payload = dict(claims)
    payload["exp"] = datetime.now(timezone.utc) + timedelta(minutes=settings.access_token_expire_minutes)
    return jwt.encode(payload, settings.access_token_secret, algorithm=ALGORITHM)


def verify_token(token: str, settings: Settings) -> Dict[str, Any]:
    """Decode ``token`` and return its claims.

    Raises ``jwt.InvalidTokenError`` (or its subclass
    ``jwt.ExpiredSignatureError``) when the signature or expiry is bad.
    """
    return jwt.decode(token, settings.access_token_secret, algorithms=[ALGORITHM], options={"require": ["exp"]})


# ===================== Guard =====================

def _forbidden() -> HTTPException:
    return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden access")


def get_current_claims(
    authorization: Optional[str] = Header(None),
    settings: Settings = Depends(get_settings),
) -> Dict[str, Any]:
    if not authorization:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized access",
            headers={"WWW-Authenticate": "Bearer"},
        )
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise _forbidden()
    try:
        claims = verify_token(token.strip(), settings)
    except jwt.InvalidTokenError as exc:
        logger.warning("Rejected token: %s", exc)
        raise _forbidden()
    if not claims.get("email"):
        raise _forbidden()
    return claims


def is_admin(store: Store, email: str) -> bool:
    user = store.find_one("users", {"email": email})
    return bool(user) and user.get("role") in ADMIN_ROLES


def require_admin(
    claims: Dict[str, Any] = Depends(get_current_claims),
    store: Store = Depends(get_store),
) -> Dict[str, Any]:
    if not is_admin(store, claims["email"]):
        logger.warning("Admin gate denied %s", claims["email"])
        raise _forbidden()
    return claims


def ensure_owner_or_admin(store: Store, claims: Dict[str, Any], owner_email: Optional[str]) -> None:
    if owner_email == claims["email"]:
        return
    if is_admin(store, claims["email"]):
        return
    logger.warning("%s denied access to orders of %s", claims["email"], owner_email)
    raise _forbidden()
