"""
Private key loading for self-signed identity assertions.

Key material is PEM text, optionally protected with a password. Whether the
key is treated as encrypted is decided by the password alone: an empty
password means the PEM is unencrypted, anything else means it is encrypted
with that password. A password given for a key that is not encrypted is an
error; there is no fallback to unencrypted parsing.
"""

import logging
import re
from dataclasses import dataclass
from typing import Optional, Union

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from fusion_auth.core.exceptions import (
    KeyDecryptionError,
    KeyFormatError,
    KeyReadError,
)

logger = logging.getLogger(__name__)

_PEM_PRIVATE_KEY_BLOCK = re.compile(rb"-----BEGIN [A-Z0-9 ]*PRIVATE KEY-----")


@dataclass(frozen=True)
class Unencrypted:
    """Key material is plain PEM."""

    @property
    def password(self) -> Optional[bytes]:
        return None


@dataclass(frozen=True)
class Encrypted:
    """Key material is PEM encrypted with ``secret``."""

    secret: str

    def __repr__(self) -> str:
        return "Encrypted(***)"

    @property
    def password(self) -> Optional[bytes]:
        return self.secret.encode("utf-8")


KeyProtection = Union[Unencrypted, Encrypted]


def key_protection(password: Optional[str]) -> KeyProtection:
    """
    Pick the key protection variant for a password.

    Args:
        password: Password string. Empty or None means unencrypted.

    Returns:
        Unencrypted() or Encrypted(password).
    """
    if password:
        return Encrypted(password)
    return Unencrypted()


def read_private_key_file(private_key_path: str) -> str:
    """
    Read PEM key material from a file without parsing it.

    Args:
        private_key_path: Path of the PEM file.

    Returns:
        File content as text.

    Raises:
        KeyReadError: If the file cannot be read.
    """
    try:
        with open(private_key_path, "r", encoding="utf-8") as f:
            return f.read()
    except (OSError, UnicodeDecodeError) as e:
        raise KeyReadError(
            f"failed to read private key file path:{private_key_path} err:{e}",
            path=str(private_key_path),
        ) from e


def load_private_key(
    private_key: Union[str, bytes],
    password: Optional[str] = "",
) -> rsa.RSAPrivateKey:
    """
    Parse an RSA private key from PEM text.

    Args:
        private_key: PEM encoded key material.
        password: Decryption password. Empty for an unencrypted key.

    Returns:
        The parsed RSA private key.

    Raises:
        KeyFormatError: If the content is not a PEM RSA private key.
        KeyDecryptionError: If the key cannot be decrypted with the password,
            or the password presence does not match the key's encryption.
    """
    return parse_private_key(private_key, key_protection(password))


def parse_private_key(
    private_key: Union[str, bytes],
    protection: KeyProtection,
) -> rsa.RSAPrivateKey:
    """Parse PEM key material according to an explicit protection variant."""
    data = private_key.encode("utf-8") if isinstance(private_key, str) else private_key

    if not _PEM_PRIVATE_KEY_BLOCK.search(data):
        raise KeyFormatError("failed to parse private key: no PEM private key block found")

    encrypted = isinstance(protection, Encrypted)
    try:
        key = serialization.load_pem_private_key(data, password=protection.password)
    except TypeError as e:
        # Password presence does not match the PEM's encryption.
        raise KeyDecryptionError(f"failed to parse private key with password {e}") from e
    except ValueError as e:
        if encrypted:
            raise KeyDecryptionError(f"failed to parse private key with password {e}") from e
        raise KeyFormatError(f"failed to parse private key {e}") from e
    except UnsupportedAlgorithm as e:
        raise KeyFormatError(f"failed to parse private key {e}") from e

    if not isinstance(key, rsa.RSAPrivateKey):
        raise KeyFormatError(
            f"failed to parse private key: expected RSA key, got {type(key).__name__}"
        )

    logger.debug("Loaded %d-bit RSA private key (encrypted=%s)", key.key_size, encrypted)
    return key
