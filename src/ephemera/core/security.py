"""Bearer token helpers.

Tokens are issued by the external identity service; the ``sub`` claim is the
authenticated principal id. ``create_access_token`` mirrors that format for
tooling and tests.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

from jose import JWTError, jwt

from ephemera.core.settings import settings


def create_access_token(subject: str, extra_claims: dict[str, str] | None = None) -> str:
    """Create a JWT access token for the given principal id."""
    to_encode: dict[str, object] = {"sub": subject}
    if extra_claims:
        to_encode.update(extra_claims)
    expire = datetime.now(UTC) + timedelta(minutes=settings.access_token_expire_minutes)
    to_encode["exp"] = expire
    encoded_jwt: str = jwt.encode(
        to_encode,
        settings.secret_key,
        algorithm=settings.jwt_algorithm,
    )
    return encoded_jwt


def decode_principal(token: str) -> str:
    """Return the principal id carried by ``token``.

    Raises:
        ValueError: If the token is invalid, expired or has no subject.
    """
    try:
        payload = jwt.decode(
            token,
            settings.secret_key,
            algorithms=[settings.jwt_algorithm],
        )
    except JWTError as err:
        raise ValueError("Could not validate credentials") from err
    subject = payload.get("sub")
    if not subject or not isinstance(subject, str):
        raise ValueError("Could not validate credentials")
    return subject
