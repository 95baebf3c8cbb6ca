"""
OAuth 2.0 token exchange against the Pure1 authentication endpoint.

This module presents a signed identity assertion under the token-exchange
grant (RFC 8693) and returns the access token from the response. Exactly one
request is made per call; retrying is left to the caller.
"""

import json
import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from fusion_auth.core.exceptions import ExchangeCancelledError, ExchangeError

logger = logging.getLogger(__name__)

DEFAULT_TOKEN_ENDPOINT = "https://api.pure1.purestorage.com/oauth2/1.0/token"
TOKEN_ENDPOINT_OVERRIDE_ENV_VAR = "FUSION_TOKEN_ENDPOINT"

TOKEN_EXCHANGE_GRANT_TYPE = "urn:ietf:params:oauth:grant-type:token-exchange"
JWT_TOKEN_TYPE = "urn:ietf:params:oauth:token-type:jwt"

_CANCEL_POLL_SECONDS = 0.05


class TokenExchanger:
    """
    Exchanges identity assertions for access tokens.

    The exchanger holds only the endpoint, timeout and HTTP session; it keeps
    no token state, so one instance may serve concurrent callers as long as
    each call gets its own session (the default when ``session`` is None).

    Attributes:
        endpoint: Token endpoint URL.
        timeout: Connect and read timeout in seconds.

    Examples:
        >>> exchanger = TokenExchanger(DEFAULT_TOKEN_ENDPOINT)
        >>> access_token = exchanger.exchange(assertion)
    """

    DEFAULT_TIMEOUT = 30

    def __init__(
        self,
        endpoint: str = DEFAULT_TOKEN_ENDPOINT,
        timeout: float = DEFAULT_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize the exchanger.

        Args:
            endpoint: Token endpoint URL.
            timeout: Request timeout in seconds.
            session: Optional pre-configured session (useful for dependency
                     injection). When None, a fresh session is created for
                     every exchange and closed afterwards.
        """
        self.endpoint = endpoint
        self.timeout = timeout
        self._session = session

    @staticmethod
    def _new_session() -> requests.Session:
        session = requests.Session()
        # One attempt only: no urllib3 level retries of any kind.
        adapter = HTTPAdapter(max_retries=Retry(total=0, raise_on_status=False))
        session.mount("https://", adapter)
        session.mount("http://", adapter)
        return session

    @staticmethod
    def build_form(assertion: str) -> Dict[str, str]:
        """Form parameters of a token-exchange request."""
        return {
            "grant_type": TOKEN_EXCHANGE_GRANT_TYPE,
            "subject_token": assertion,
            "subject_token_type": JWT_TOKEN_TYPE,
        }

    def exchange(
        self,
        assertion: str,
        cancel_event: Optional[threading.Event] = None,
    ) -> str:
        """
        Exchange a signed assertion for an access token.

        Args:
            assertion: Compact signed identity assertion.
            cancel_event: Optional event; setting it aborts the exchange.

        Returns:
            The access token exactly as returned by the endpoint.

        Raises:
            ExchangeError: If the request fails, the endpoint answers with a
                           non-2xx status, the body is not a token response,
                           or the exchange is cancelled.
        """
        if cancel_event is not None and cancel_event.is_set():
            raise self._cancelled()

        owns_session = self._session is None
        session = self._session or self._new_session()
        logger.debug("Exchanging identity assertion at %s", self.endpoint)
        response = self._post(session, assertion, cancel_event, close_session=owns_session)
        return self._parse_response(response)

    def _post(
        self,
        session: requests.Session,
        assertion: str,
        cancel_event: Optional[threading.Event],
        close_session: bool = False,
    ) -> requests.Response:
        kwargs = {
            "data": self.build_form(assertion),
            "headers": {
                "Content-Type": "application/x-www-form-urlencoded",
                "Accept": "application/json",
            },
            "timeout": self.timeout,
        }

        try:
            if cancel_event is None:
                try:
                    return session.post(self.endpoint, **kwargs)
                finally:
                    if close_session:
                        session.close()
            return self._post_cancellable(session, kwargs, cancel_event, close_session)

        except requests.exceptions.Timeout as e:
            raise ExchangeError(self.endpoint, f"request timed out: {e}") from e

        except requests.exceptions.RequestException as e:
            raise ExchangeError(self.endpoint, f"network error: {e}") from e

    def _post_cancellable(
        self,
        session: requests.Session,
        kwargs: Dict[str, Any],
        cancel_event: threading.Event,
        close_session: bool,
    ) -> requests.Response:
        pool = ThreadPoolExecutor(max_workers=1, thread_name_prefix="fusion-token-exchange")
        try:
            future = pool.submit(session.post, self.endpoint, **kwargs)
            if close_session:
                # Closed when the request ends, whether or not the caller still waits.
                future.add_done_callback(lambda _: session.close())
            while not future.done():
                if cancel_event.wait(_CANCEL_POLL_SECONDS):
                    # The worker is abandoned and ends within the request timeout.
                    future.cancel()
                    raise self._cancelled()
            return future.result()
        finally:
            pool.shutdown(wait=False)

    def _cancelled(self) -> ExchangeError:
        logger.warning("Token exchange at %s cancelled", self.endpoint)
        cause = ExchangeCancelledError("token exchange cancelled by caller")
        error = ExchangeError(self.endpoint, str(cause))
        error.__cause__ = cause
        return error

    def _parse_response(self, response: requests.Response) -> str:
        status_code = response.status_code
        if not 200 <= status_code < 300:
            # Redirects count as failures; only 2xx carries a token.
            http_error = requests.exceptions.HTTPError(
                f"{status_code} {response.reason} for url: {response.url}",
                response=response,
            )
            error_message = str(http_error)
            try:
                response_body = response.json()
                if isinstance(response_body, dict):
                    error_message = str(
                        response_body.get("error_description")
                        or response_body.get("error")
                        or error_message
                    )
            except ValueError:
                response_body = response.text
                error_message = response_body or error_message

            logger.error(
                "Token endpoint %s rejected exchange with status %s",
                self.endpoint,
                status_code,
            )
            raise ExchangeError(
                self.endpoint,
                f"{status_code} {response.reason}: {error_message}",
                status_code=status_code,
                response_body=response_body,
            ) from http_error

        try:
            token_data = response.json()
            access_token = token_data["access_token"]
        except (json.JSONDecodeError, ValueError, KeyError, TypeError) as e:
            raise ExchangeError(
                self.endpoint,
                f"invalid token response format: {e}",
                status_code=response.status_code,
                response_body=response.text,
            ) from e

        if not isinstance(access_token, str) or not access_token:
            raise ExchangeError(
                self.endpoint,
                "invalid token response format: empty access_token",
                status_code=response.status_code,
                response_body=response.text,
            )

        logger.debug("Token endpoint %s issued an access token", self.endpoint)
        return access_token
