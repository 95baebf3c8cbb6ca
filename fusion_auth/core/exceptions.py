"""
Custom exceptions for Fusion authentication operations.

This module defines a hierarchy of custom exceptions that let callers tell
configuration errors (bad key, bad password, bad profile) apart from
environmental errors (endpoint unreachable, server rejected the exchange).
"""

from typing import Optional


class FusionAuthError(Exception):
    """
    Base exception for all fusion_auth errors.

    All exceptions raised by this package inherit from this class,
    allowing for broad exception handling if needed.

    Examples:
        >>> try:
        ...     token = issue_access_token(issuer_id, pem)
        ... except FusionAuthError as e:
        ...     print(f"No access token obtained: {e}")
    """

    pass


class KeyReadError(FusionAuthError):
    """
    Raised when private key material cannot be read from its source.

    Attributes:
        path: Filesystem path that could not be read.
    """

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path


class KeyFormatError(FusionAuthError):
    """Raised when PEM content is not a parseable RSA private key."""

    pass


class KeyDecryptionError(FusionAuthError):
    """
    Raised when an encrypted private key cannot be decrypted.

    This covers a wrong password, a missing password for an encrypted key,
    a password supplied for a key that is not encrypted, and a corrupt
    encrypted body.
    """

    pass


class SigningError(FusionAuthError):
    """Raised when the identity assertion cannot be signed."""

    pass


class ExchangeError(FusionAuthError):
    """
    Raised when the token exchange round-trip fails.

    This exception is raised for connection failures, timeouts, non-2xx
    responses, unparseable response bodies and cancellation. It is safe to
    retry the whole issuance (with a freshly signed assertion).

    Attributes:
        endpoint: Token endpoint URL the exchange was sent to.
        status_code: HTTP status code of the response, if one was received.
        response_body: Response body of a failed response, if available.

    Examples:
        >>> try:
        ...     exchanger.exchange(assertion)
        ... except ExchangeError as e:
        ...     if e.status_code == 401:
        ...         print("Issuer or key not registered")
    """

    def __init__(
        self,
        endpoint: str,
        message: str,
        status_code: Optional[int] = None,
        response_body=None,
    ):
        """
        Initialize exchange error.

        Args:
            endpoint: Token endpoint URL.
            message: Error message describing the failure.
            status_code: Optional HTTP status code of the response.
            response_body: Optional response body (parsed JSON or text).
        """
        super().__init__(f"failed to exchange token endpoint:{endpoint} err:{message}")
        self.endpoint = endpoint
        self.status_code = status_code
        self.response_body = response_body

    @property
    def is_server_error(self) -> bool:
        """True when the endpoint answered with a 5xx status."""
        return self.status_code is not None and 500 <= self.status_code < 600


class ExchangeCancelledError(FusionAuthError):
    """Cause attached to an ExchangeError when the caller cancelled the exchange."""

    pass


class ProfileConfigError(FusionAuthError):
    """Raised when the Fusion profile config file is unreadable or incomplete."""

    pass
