"""
Fusion authentication client.

Issues short-lived bearer access tokens for the Pure Storage Fusion API by
signing an identity assertion with an RSA private key and exchanging it at
the Pure1 token endpoint (OAuth 2.0 token exchange).

Each call is a single, self-contained issuance: nothing is cached and
nothing is retried internally.

Main Components:
    - issue_access_token: Load key, sign assertion, exchange for a token
    - SelfSignedTokenIssuer: Issues tokens from a fixed configuration
    - FusionAuthConfig: Configuration with environment and config file support
    - TokenExchanger: The OAuth 2.0 token-exchange request
    - Custom exceptions for detailed error handling

Quick Start:
    >>> from fusion_auth import FusionAuthConfig, resolve_access_token
    >>>
    >>> # Load configuration from environment variables / ~/.pure/fusion.json
    >>> config = FusionAuthConfig.from_env()
    >>>
    >>> # Obtain a token good for one hour
    >>> token = resolve_access_token(config)
"""

from fusion_auth.core import (
    DEFAULT_TOKEN_ENDPOINT,
    TOKEN_ENDPOINT_OVERRIDE_ENV_VAR,
    AssertionClaims,
    Encrypted,
    ExchangeCancelledError,
    ExchangeError,
    FusionAuthConfig,
    FusionAuthError,
    KeyDecryptionError,
    KeyFormatError,
    KeyReadError,
    ProfileConfigError,
    SelfSignedTokenIssuer,
    SigningError,
    TokenExchanger,
    Unencrypted,
    build_identity_assertion,
    issue_access_token,
    load_private_key,
    read_private_key_file,
    resolve_access_token,
)
from fusion_auth.retry import issue_access_token_with_retry, retry_on_server_error

__all__ = [
    "DEFAULT_TOKEN_ENDPOINT",
    "TOKEN_ENDPOINT_OVERRIDE_ENV_VAR",
    "AssertionClaims",
    "Encrypted",
    "ExchangeCancelledError",
    "ExchangeError",
    "FusionAuthConfig",
    "FusionAuthError",
    "KeyDecryptionError",
    "KeyFormatError",
    "KeyReadError",
    "ProfileConfigError",
    "SelfSignedTokenIssuer",
    "SigningError",
    "TokenExchanger",
    "Unencrypted",
    "build_identity_assertion",
    "issue_access_token",
    "issue_access_token_with_retry",
    "load_private_key",
    "read_private_key_file",
    "resolve_access_token",
    "retry_on_server_error",
]

__version__ = "0.1.0"
