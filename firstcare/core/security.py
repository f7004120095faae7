"""Bearer tokens naming the acting user.

A token only carries the actor ID. Districts and roles are always read
from the users table, so a stale token cannot widen access.
"""

from datetime import UTC, datetime, timedelta
from typing import Any

from jose import JWTError, jwt

from firstcare.config import settings

TOKEN_TYPE = "access"


def create_access_token(
    actor_id: str,
    expires_delta: timedelta | None = None,
    **claims: Any,
) -> str:
    """
    Issue a signed access token for ``actor_id``.

    Args:
        actor_id: User ID placed in the ``sub`` claim
        expires_delta: Token lifetime; defaults to the configured expiry
        **claims: Additional claims to carry

    Returns:
        Encoded JWT
    """
    issued_at = datetime.now(UTC)
    lifetime = expires_delta or timedelta(minutes=settings.access_token_expire_minutes)

    payload = {
        **claims,
        "sub": actor_id,
        "iat": issued_at,
        "exp": issued_at + lifetime,
        "type": TOKEN_TYPE,
    }
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> dict[str, Any] | None:
    """Verified claims of an access token, or None if it is unusable."""
    try:
        payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError:
        return None
    return payload if payload.get("type") == TOKEN_TYPE else None


def actor_id_from_token(token: str) -> str | None:
    """Subject of a valid access token."""
    payload = decode_access_token(token)
    subject = payload.get("sub") if payload else None
    if isinstance(subject, str) and subject:
        return subject
    return None
