"""JWT access token validation (ES256).

Identity is issued elsewhere; this service only verifies bearer tokens
and reads ``sub`` (user id) and ``roles`` (guide / apprentice).

The issuer's public key comes from ``JWT_PUBLIC_KEY`` (PEM).  Without
it, dev and test runs generate an ephemeral key pair at import so that
create_access_token() can mint tokens locally; prod refuses to start.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime, timedelta

import jwt
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec

from collab.core.config import SETTINGS, Settings

ALGORITHM = "ES256"
ISSUER = "collab-service"
AUDIENCE = "collab-service"
ACCESS_TOKEN_TTL_MIN = 15


def load_signing_keys(
    settings: Settings,
) -> tuple[ec.EllipticCurvePublicKey, ec.EllipticCurvePrivateKey | None]:
    """Return (verification key, local signing key or None)."""
    if settings.jwt_public_key:
        key = serialization.load_pem_public_key(settings.jwt_public_key.encode())
        if not isinstance(key, ec.EllipticCurvePublicKey):
            raise ValueError("JWT_PUBLIC_KEY must be an EC public key for ES256")
        return key, None
    if settings.is_prod:
        raise ValueError("JWT_PUBLIC_KEY is required when APP_ENV=prod")
    private_key = ec.generate_private_key(ec.SECP256R1())
    return private_key.public_key(), private_key


_public_key, _private_key = load_signing_keys(SETTINGS)


def create_access_token(*, sub: str, roles: list[str] | None = None) -> str:
    if _private_key is None:
        raise RuntimeError("tokens are issued externally when JWT_PUBLIC_KEY is set")
    now = datetime.now(UTC)
    payload = {
        "sub": sub,
        "iss": ISSUER,
        "aud": AUDIENCE,
        "exp": now + timedelta(minutes=ACCESS_TOKEN_TTL_MIN),
        "iat": now,
        "jti": str(uuid.uuid4()),
        "roles": roles or [],
    }
    return jwt.encode(payload, _private_key, algorithm=ALGORITHM)


def decode_access_token(token: str) -> dict:
    """Verify signature and claims, return the payload.

    Pins algorithm to ES256 to prevent alg:none and alg-switching attacks.
    Raises jwt.ExpiredSignatureError, jwt.InvalidTokenError on failure.
    """
    return jwt.decode(
        token,
        _public_key,
        algorithms=[ALGORITHM],
        issuer=ISSUER,
        audience=AUDIENCE,
        options={"require": ["sub", "exp", "iat", "jti"]},
    )
