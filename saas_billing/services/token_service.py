"""Session token issuance and validation (ES256 JWT).

One ``TokenService`` per application, built from Settings: the signing
key comes from JWT_PRIVATE_KEY_PATH, or is generated on construction for
dev/test (tokens then stop validating when the process restarts).
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime, timedelta
from pathlib import Path
from uuid import UUID

import jwt
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec

from saas_billing.core.errors import ExpiredTokenError, InvalidTokenError

ALGORITHM = "ES256"
ISSUER = "saas-billing"
AUDIENCE = "saas-billing-api"


def load_private_key(path: str | None) -> ec.EllipticCurvePrivateKey:
    if path is None:
        return ec.generate_private_key(ec.SECP256R1())
    key = serialization.load_pem_private_key(Path(path).read_bytes(), password=None)
    if not isinstance(key, ec.EllipticCurvePrivateKey):
        raise ValueError(f"{path} is not an EC private key")
    return key


class TokenService:
    def __init__(
        self,
        private_key: ec.EllipticCurvePrivateKey,
        *,
        ttl: timedelta = timedelta(minutes=60),
    ) -> None:
        self._private_key = private_key
        self._public_key = private_key.public_key()
        self.ttl = ttl

    def create_session_token(self, *, sub: str, now: datetime | None = None) -> str:
        """Build and sign a session token carrying the user id as ``sub``."""
        now = now or datetime.now(UTC)
        payload = {
            "sub": sub,
            "iss": ISSUER,
            "aud": AUDIENCE,
            "exp": now + self.ttl,
            "iat": now,
            "jti": str(uuid.uuid4()),
        }
        return jwt.encode(payload, self._private_key, algorithm=ALGORITHM)

    def validate(self, token: str) -> UUID:
        """Verify signature and claims and return the subject user id.

        Pins the algorithm to ES256 to prevent alg:none and alg-switching
        attacks.  Raises ExpiredTokenError or InvalidTokenError.
        """
        try:
            claims = jwt.decode(
                token,
                self._public_key,
                algorithms=[ALGORITHM],
                issuer=ISSUER,
                audience=AUDIENCE,
                options={"require": ["sub", "exp", "iat", "jti"]},
            )
        except jwt.ExpiredSignatureError:
            raise ExpiredTokenError() from None
        except jwt.InvalidTokenError as e:
            raise InvalidTokenError(details=str(e)) from None

        try:
            return UUID(claims["sub"])
        except (TypeError, ValueError):
            raise InvalidTokenError(details="subject is not a user id") from None
