"""
Bearer Token Verification

Verifies HS256 access tokens issued by the identity provider and yields the
patient id carried in the ``sub`` claim.
"""
from typing import Any, Dict, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError, jwt

from healthrisk.config import settings
from healthrisk.utils import get_logger

logger = get_logger(__name__)

security = HTTPBearer(auto_error=False)


class AuthenticationError(Exception):
    """Missing, malformed or unverifiable bearer token."""


def decode_token(token: str) -> Dict[str, Any]:
    options = {"verify_aud": settings.jwt_audience is not None}
    try:
        return jwt.decode(
            token,
            settings.secret_key,
            algorithms=[settings.algorithm],
            audience=settings.jwt_audience,
            options=options,
        )
    except JWTError as e:
        raise AuthenticationError(f"Invalid token: {e}") from e


def decode_patient_id(token: Optional[str]) -> str:
    """
    Resolve the patient id from a bearer token.

    Raises:
        AuthenticationError: if the token is missing, invalid or has no subject
    """
    if not token:
        raise AuthenticationError("Missing bearer token")

    claims = decode_token(token)
    subject = claims.get("sub")
    if not subject:
        raise AuthenticationError("Token has no subject")
    return str(subject)


async def get_current_patient_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> str:
    """FastAPI dependency returning the authenticated patient id."""
    token = credentials.credentials if credentials else None
    try:
        return decode_patient_id(token)
    except AuthenticationError as e:
        logger.warning(f"Rejected request: {e}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )
