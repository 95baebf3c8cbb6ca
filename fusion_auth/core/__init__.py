"""
Core functionality for Fusion authentication.

This module contains the core components:
- Key loading (PEM, optionally password protected)
- Identity assertion signing (RS256)
- OAuth 2.0 token exchange
- Configuration management
- Exception definitions
"""

from fusion_auth.core.assertion import (
    AssertionClaims,
    build_claims,
    build_identity_assertion,
)
from fusion_auth.core.config import FusionAuthConfig, ProfileConfig, load_profile_config
from fusion_auth.core.exceptions import (
    ExchangeCancelledError,
    ExchangeError,
    FusionAuthError,
    KeyDecryptionError,
    KeyFormatError,
    KeyReadError,
    ProfileConfigError,
    SigningError,
)
from fusion_auth.core.exchange import (
    DEFAULT_TOKEN_ENDPOINT,
    TOKEN_ENDPOINT_OVERRIDE_ENV_VAR,
    TokenExchanger,
)
from fusion_auth.core.issuer import (
    SelfSignedTokenIssuer,
    issue_access_token,
    resolve_access_token,
)
from fusion_auth.core.keys import (
    Encrypted,
    Unencrypted,
    key_protection,
    load_private_key,
    parse_private_key,
    read_private_key_file,
)

__all__ = [
    "AssertionClaims",
    "build_claims",
    "build_identity_assertion",
    "FusionAuthConfig",
    "ProfileConfig",
    "load_profile_config",
    "ExchangeCancelledError",
    "ExchangeError",
    "FusionAuthError",
    "KeyDecryptionError",
    "KeyFormatError",
    "KeyReadError",
    "ProfileConfigError",
    "SigningError",
    "DEFAULT_TOKEN_ENDPOINT",
    "TOKEN_ENDPOINT_OVERRIDE_ENV_VAR",
    "TokenExchanger",
    "SelfSignedTokenIssuer",
    "issue_access_token",
    "resolve_access_token",
    "Encrypted",
    "Unencrypted",
    "key_protection",
    "load_private_key",
    "parse_private_key",
    "read_private_key_file",
]
