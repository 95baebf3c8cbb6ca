"""
Self-signed identity assertions.

An assertion is a compact RS256 JWT with exactly three claims: the issuer
id, the issue time and an expiry one hour later. It is presented once to the
token endpoint.
"""

import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

import jwt
from cryptography.hazmat.primitives.asymmetric import rsa

from fusion_auth.core.exceptions import SigningError

SIGNING_ALGORITHM = "RS256"
ASSERTION_LIFETIME_SECONDS = 3600


@dataclass(frozen=True)
class AssertionClaims:
    """
    Claim set of an identity assertion.

    Attributes:
        issuer: Caller's issuer identity (``iss``).
        issued_at: Unix seconds when the assertion was built (``iat``).
        expires_at: ``issued_at`` plus one hour (``exp``).
    """

    issuer: str
    issued_at: int
    expires_at: int

    def to_jwt_claims(self) -> Dict[str, Any]:
        return {
            "iss": self.issuer,
            "iat": self.issued_at,
            "exp": self.expires_at,
        }


def build_claims(issuer: str, now: Optional[int] = None) -> AssertionClaims:
    """
    Build the claim set for an issuer.

    Args:
        issuer: Issuer identity string.
        now: Issue time in Unix seconds. Defaults to the current time.

    Returns:
        AssertionClaims expiring exactly one hour after issue.
    """
    issued_at = int(time.time()) if now is None else int(now)
    return AssertionClaims(
        issuer=issuer,
        issued_at=issued_at,
        expires_at=issued_at + ASSERTION_LIFETIME_SECONDS,
    )


def build_identity_assertion(
    private_key: rsa.RSAPrivateKey,
    issuer: str,
    now: Optional[int] = None,
) -> str:
    """
    Sign an identity assertion for ``issuer``.

    Args:
        private_key: RSA key the issuer is registered with.
        issuer: Issuer identity string.
        now: Issue time in Unix seconds. Defaults to the current time.

    Returns:
        Compact JWS string (header.payload.signature).

    Raises:
        SigningError: If signing fails for any reason.
    """
    claims = build_claims(issuer, now)
    try:
        return jwt.encode(
            claims.to_jwt_claims(),
            private_key,
            algorithm=SIGNING_ALGORITHM,
        )
    except (jwt.PyJWTError, TypeError, ValueError) as e:
        raise SigningError(f"failed to sign identity token err:{e}") from e
