"""
Identity assertion tests.
"""

import jwt
import pytest

from fusion_auth import SigningError
from fusion_auth.core.assertion import (
    ASSERTION_LIFETIME_SECONDS,
    build_claims,
    build_identity_assertion,
)


def decode(assertion, rsa_key):
    return jwt.decode(
        assertion,
        rsa_key.public_key(),
        algorithms=["RS256"],
        options={"verify_exp": False, "verify_iat": False},
    )


class TestBuildClaims:
    """Test suite for build_claims."""

    def test_expiry_is_one_hour_after_issue(self):
        claims = build_claims("issuer", now=1_700_000_000)
        assert claims.issued_at == 1_700_000_000
        assert claims.expires_at == 1_700_000_000 + 3600
        assert ASSERTION_LIFETIME_SECONDS == 3600

    def test_defaults_to_current_time(self):
        claims = build_claims("issuer")
        assert claims.issued_at > 0
        assert claims.expires_at - claims.issued_at == 3600

    def test_jwt_claims_are_exactly_iss_iat_exp(self):
        claims = build_claims("issuer", now=10)
        assert claims.to_jwt_claims() == {"iss": "issuer", "iat": 10, "exp": 3610}


class TestBuildIdentityAssertion:
    """Test suite for build_identity_assertion."""

    def test_compact_rs256_token(self, rsa_key):
        assertion = build_identity_assertion(rsa_key, "test-issuer")

        assert assertion.count(".") == 2
        header = jwt.get_unverified_header(assertion)
        assert header["alg"] == "RS256"

    def test_signature_verifies_with_public_key(self, rsa_key):
        assertion = build_identity_assertion(rsa_key, "test-issuer", now=1_700_000_000)
        claims = decode(assertion, rsa_key)

        assert claims == {"iss": "test-issuer", "iat": 1_700_000_000, "exp": 1_700_003_600}

    @pytest.mark.parametrize("issuer", ["pure1:apikey:123", "a&b=c d+e/f?g", "ünïcode"])
    def test_expiry_for_any_issuer(self, rsa_key, issuer):
        claims = decode(build_identity_assertion(rsa_key, issuer), rsa_key)

        assert claims["iss"] == issuer
        assert claims["exp"] == claims["iat"] + 3600
        assert set(claims) == {"iss", "iat", "exp"}

    def test_invalid_key_raises_signing_error(self):
        with pytest.raises(SigningError):
            build_identity_assertion(None, "test-issuer")
