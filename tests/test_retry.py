"""
Caller-side retry tests.
"""

from unittest import mock

import pytest

from fusion_auth import ExchangeError, KeyFormatError, retry_on_server_error
from fusion_auth.retry import issue_access_token_with_retry


def exchange_error(status_code=None):
    return ExchangeError("https://auth.example.com/token", "failed", status_code=status_code)


class TestRetryOnServerError:
    """Test suite for retry_on_server_error."""

    def test_retries_server_errors_until_success(self):
        func = mock.Mock(side_effect=[exchange_error(502), exchange_error(503), "token"])
        sleep = mock.Mock()

        result = retry_on_server_error(func, sleep=sleep)("issuer", key="pem")

        assert result == "token"
        assert func.call_count == 3
        func.assert_called_with("issuer", key="pem")
        assert sleep.call_count == 2

    def test_backoff_grows_and_is_capped(self):
        func = mock.Mock(side_effect=[exchange_error(500)] * 4 + ["token"])
        sleep = mock.Mock()

        retry_on_server_error(
            func, initial_delay=1.0, backoff_factor=2.0, max_delay=3.0, jitter=0.0, sleep=sleep
        )()

        assert [c.args[0] for c in sleep.call_args_list] == [1.0, 2.0, 3.0, 3.0]

    def test_gives_up_after_max_attempts(self):
        func = mock.Mock(side_effect=exchange_error(500))
        sleep = mock.Mock()

        with pytest.raises(ExchangeError):
            retry_on_server_error(func, max_attempts=3, sleep=sleep)()

        assert func.call_count == 3
        assert sleep.call_count == 2

    @pytest.mark.parametrize(
        "error",
        [exchange_error(401), exchange_error(None), KeyFormatError("bad key")],
    )
    def test_other_errors_are_not_retried(self, error):
        func = mock.Mock(side_effect=error)
        sleep = mock.Mock()

        with pytest.raises(type(error)):
            retry_on_server_error(func, sleep=sleep)()

        assert func.call_count == 1
        sleep.assert_not_called()

    def test_invalid_max_attempts(self):
        with pytest.raises(ValueError):
            retry_on_server_error(mock.Mock(), max_attempts=0)


class TestIssueAccessTokenWithRetry:
    """Test suite for issue_access_token_with_retry against a local endpoint."""

    def test_retries_server_error_then_succeeds(self, token_endpoint, rsa_pem):
        token_endpoint.responses = [(500, {"error": "temporarily_unavailable"})]

        token = issue_access_token_with_retry("test-issuer", rsa_pem, token_endpoint.url)

        assert token == "abc123"
        assert len(token_endpoint.requests) == 2

    def test_client_error_is_not_retried(self, token_endpoint, rsa_pem):
        token_endpoint.status = 401
        token_endpoint.body = {"error": "invalid_client"}

        with pytest.raises(ExchangeError):
            issue_access_token_with_retry("test-issuer", rsa_pem, token_endpoint.url)

        assert len(token_endpoint.requests) == 1
