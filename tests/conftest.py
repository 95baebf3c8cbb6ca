"""
Pytest configuration and shared fixtures.
"""

import json
import threading
import time
from collections.abc import Generator
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import parse_qs

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec, rsa

KEY_PASSWORD = "correct horse battery staple"


class TokenEndpoint:
    """
    A local token endpoint recording every request it receives.

    Set ``status``, ``body`` (dict for JSON, str for raw text) and ``delay``
    to shape the response. ``responses`` holds (status, body) pairs served
    first, one per request.
    """

    def __init__(self):
        self.requests: List[Dict[str, Any]] = []
        self.status = 200
        self.body: Any = {"access_token": "abc123", "token_type": "Bearer", "expires_in": 3600}
        self.delay = 0.0
        self.responses: List[Tuple[int, Any]] = []
        self.url = ""

    @property
    def last_form(self) -> Dict[str, List[str]]:
        return self.requests[-1]["form"]


def _make_handler(endpoint: TokenEndpoint):
    class Handler(BaseHTTPRequestHandler):
        def do_POST(self):
            length = int(self.headers.get("Content-Length", 0))
            raw = self.rfile.read(length).decode("utf-8")
            endpoint.requests.append(
                {
                    "path": self.path,
                    "headers": dict(self.headers),
                    "raw": raw,
                    "form": parse_qs(raw, keep_blank_values=True),
                }
            )
            if endpoint.delay:
                time.sleep(endpoint.delay)

            if endpoint.responses:
                status, body = endpoint.responses.pop(0)
            else:
                status, body = endpoint.status, endpoint.body

            if isinstance(body, (dict, list)):
                payload = json.dumps(body).encode("utf-8")
                content_type = "application/json"
            else:
                payload = str(body).encode("utf-8")
                content_type = "text/plain"

            try:
                self.send_response(status)
                self.send_header("Content-Type", content_type)
                self.send_header("Content-Length", str(len(payload)))
                self.end_headers()
                self.wfile.write(payload)
            except (BrokenPipeError, ConnectionResetError):
                pass

        def log_message(self, format, *args):
            pass

    return Handler


@pytest.fixture
def token_endpoint() -> Generator[TokenEndpoint, None, None]:
    """Run a token endpoint on localhost for the duration of a test."""
    endpoint = TokenEndpoint()
    server = ThreadingHTTPServer(("127.0.0.1", 0), _make_handler(endpoint))
    server.daemon_threads = True
    host, port = server.server_address[:2]
    endpoint.url = f"http://{host}:{port}/oauth2/1.0/token"

    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    yield endpoint
    server.shutdown()
    server.server_close()


@pytest.fixture
def unused_endpoint() -> str:
    """URL of a local port with nothing listening on it."""
    server = ThreadingHTTPServer(("127.0.0.1", 0), BaseHTTPRequestHandler)
    host, port = server.server_address[:2]
    server.server_close()
    return f"http://{host}:{port}/oauth2/1.0/token"


@pytest.fixture(scope="session")
def rsa_key() -> rsa.RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def rsa_pem(rsa_key) -> str:
    """Unencrypted 2048-bit RSA key in traditional PEM format."""
    return rsa_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.TraditionalOpenSSL,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode("utf-8")


@pytest.fixture(scope="session")
def rsa_pkcs8_pem(rsa_key) -> str:
    """Unencrypted RSA key in PKCS#8 PEM format."""
    return rsa_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode("utf-8")


@pytest.fixture(scope="session")
def encrypted_rsa_pem(rsa_key) -> str:
    """RSA key encrypted with KEY_PASSWORD."""
    return rsa_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.BestAvailableEncryption(KEY_PASSWORD.encode("utf-8")),
    ).decode("utf-8")


@pytest.fixture(scope="session")
def ec_pem() -> str:
    """A private key that is not RSA."""
    key = ec.generate_private_key(ec.SECP256R1())
    return key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode("utf-8")


@pytest.fixture
def clean_fusion_env(monkeypatch, tmp_path) -> None:
    """Remove FUSION_* variables and point HOME at an empty directory."""
    for name in (
        "FUSION_ACCESS_TOKEN",
        "FUSION_API_HOST",
        "FUSION_ISSUER_ID",
        "FUSION_PRIVATE_KEY",
        "FUSION_PRIVATE_KEY_FILE",
        "FUSION_PRIVATE_KEY_PASSWORD",
        "FUSION_TOKEN_ENDPOINT",
        "FUSION_CONFIG",
        "FUSION_CONFIG_PROFILE",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("HOME", str(tmp_path))


def write_fusion_config(path, profiles: Dict[str, Any], default_profile: Optional[str] = None) -> str:
    """Write a Fusion config file and return its path."""
    config: Dict[str, Any] = {"profiles": profiles}
    if default_profile is not None:
        config["default_profile"] = default_profile
    path.write_text(json.dumps(config), encoding="utf-8")
    return str(path)


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests (require real Pure1 credentials)"
    )
