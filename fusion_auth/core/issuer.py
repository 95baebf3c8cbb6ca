"""
Self-signed access token issuance.

Issuance is a single linear transaction: load the key, sign an identity
assertion, exchange it for an access token. A failure at any stage ends the
call with an exception; nothing is kept between calls.
"""

import logging
import threading
from typing import Optional, Union

import requests

from fusion_auth.core.assertion import build_identity_assertion
from fusion_auth.core.config import FusionAuthConfig
from fusion_auth.core.exceptions import FusionAuthError
from fusion_auth.core.exchange import DEFAULT_TOKEN_ENDPOINT, TokenExchanger
from fusion_auth.core.keys import load_private_key

logger = logging.getLogger(__name__)


def issue_access_token(
    issuer_id: str,
    private_key: Union[str, bytes],
    token_endpoint: str = DEFAULT_TOKEN_ENDPOINT,
    private_key_password: Optional[str] = "",
    timeout: float = TokenExchanger.DEFAULT_TIMEOUT,
    cancel_event: Optional[threading.Event] = None,
    session: Optional[requests.Session] = None,
) -> str:
    """
    Obtain an access token good for one hour from a Pure1 token endpoint.

    Args:
        issuer_id: Issuer identity the key is registered under.
        private_key: PEM encoded RSA private key.
        token_endpoint: Token endpoint URL.
        private_key_password: Password of an encrypted key. Leave empty when
                              the key is not encrypted.
        timeout: Token exchange timeout in seconds.
        cancel_event: Optional event; setting it aborts the exchange.
        session: Optional HTTP session for the exchange.

    Returns:
        The access token returned by the endpoint.

    Raises:
        KeyFormatError: If the PEM is not an RSA private key.
        KeyDecryptionError: If the key cannot be decrypted.
        SigningError: If the assertion cannot be signed.
        ExchangeError: If the exchange fails.

    Examples:
        >>> pem = read_private_key_file("private.pem")
        >>> token = issue_access_token("pure1:apikey:123", pem)
    """
    key = load_private_key(private_key, private_key_password)
    assertion = build_identity_assertion(key, issuer_id)
    logger.debug("Signed identity assertion for issuer %s", issuer_id)

    exchanger = TokenExchanger(token_endpoint, timeout=timeout, session=session)
    access_token = exchanger.exchange(assertion, cancel_event=cancel_event)
    logger.info("Obtained access token for issuer %s from %s", issuer_id, token_endpoint)
    return access_token


class SelfSignedTokenIssuer:
    """
    Issues access tokens from a fixed configuration.

    The issuer keeps configuration only. Every call to
    :meth:`get_access_token` reads the key, signs a fresh assertion and makes
    one exchange request; caching and refresh belong to the caller.

    Examples:
        >>> issuer = SelfSignedTokenIssuer.from_config(FusionAuthConfig.from_env())
        >>> token = issuer.get_access_token()
    """

    def __init__(
        self,
        issuer_id: str,
        private_key: Union[str, bytes],
        token_endpoint: str = DEFAULT_TOKEN_ENDPOINT,
        private_key_password: Optional[str] = "",
        timeout: float = TokenExchanger.DEFAULT_TIMEOUT,
    ):
        self.issuer_id = issuer_id
        self.token_endpoint = token_endpoint
        self.timeout = timeout
        self._private_key = private_key
        self._private_key_password = private_key_password

    @classmethod
    def from_config(cls, config: FusionAuthConfig) -> "SelfSignedTokenIssuer":
        """
        Build an issuer from resolved configuration.

        Raises:
            KeyReadError: If the configured key file cannot be read.
        """
        return cls(
            issuer_id=config.issuer_id,
            private_key=config.load_private_key_material(),
            token_endpoint=config.token_endpoint,
            private_key_password=config.private_key_password,
            timeout=config.timeout,
        )

    def get_access_token(self, cancel_event: Optional[threading.Event] = None) -> str:
        """Issue a new access token. See :func:`issue_access_token`."""
        return issue_access_token(
            self.issuer_id,
            self._private_key,
            token_endpoint=self.token_endpoint,
            private_key_password=self._private_key_password,
            timeout=self.timeout,
            cancel_event=cancel_event,
        )

    def __repr__(self) -> str:
        return (
            f"SelfSignedTokenIssuer(issuer_id={self.issuer_id!r}, "
            f"token_endpoint={self.token_endpoint!r})"
        )


def resolve_access_token(
    config: FusionAuthConfig,
    cancel_event: Optional[threading.Event] = None,
) -> str:
    """
    Return an access token for a configuration.

    A configured access token is returned as-is; otherwise a new one is
    issued with the configured issuer id and key.

    Raises:
        FusionAuthError: If a token cannot be obtained.
    """
    if config.access_token:
        logger.debug("Using configured access token")
        return config.access_token

    try:
        return SelfSignedTokenIssuer.from_config(config).get_access_token(cancel_event)
    except FusionAuthError as e:
        logger.error("Error getting API token: %s", e)
        raise
