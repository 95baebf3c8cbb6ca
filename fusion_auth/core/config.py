"""
Configuration management for Fusion authentication.

Every setting is resolved with the same priority: a value passed directly,
then an environment variable, then the selected profile of the Fusion config
file, then a built-in default. The token endpoint override is therefore
resolved once here and handed to the exchanger explicitly.
"""

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

from dotenv import load_dotenv

from fusion_auth.core.exceptions import ProfileConfigError
from fusion_auth.core.exchange import (
    DEFAULT_TOKEN_ENDPOINT,
    TOKEN_ENDPOINT_OVERRIDE_ENV_VAR,
)
from fusion_auth.core.keys import read_private_key_file

# Load environment variables from .env file
load_dotenv()

logger = logging.getLogger(__name__)

DEFAULT_API_HOST = "https://api.pure1.purestorage.com/fusion"

ACCESS_TOKEN_ENV_VAR = "FUSION_ACCESS_TOKEN"
API_HOST_ENV_VAR = "FUSION_API_HOST"
ISSUER_ID_ENV_VAR = "FUSION_ISSUER_ID"
PRIVATE_KEY_ENV_VAR = "FUSION_PRIVATE_KEY"
PRIVATE_KEY_FILE_ENV_VAR = "FUSION_PRIVATE_KEY_FILE"
PRIVATE_KEY_PASSWORD_ENV_VAR = "FUSION_PRIVATE_KEY_PASSWORD"
CONFIG_PATH_ENV_VAR = "FUSION_CONFIG"
CONFIG_PROFILE_ENV_VAR = "FUSION_CONFIG_PROFILE"

_SOURCES = ("argument", "environment variable", "Fusion config file", "default value")


@dataclass
class ProfileConfig:
    """
    One profile of the Fusion config file.

    The file lives at ``~/.pure/fusion.json`` by default and looks like::

        {
          "default_profile": "main",
          "profiles": {
            "main": {
              "endpoint": "https://api.pure1.purestorage.com/fusion",
              "auth": {
                "issuer_id": "pure1:apikey:123",
                "private_pem_file": "/home/me/.pure/private.pem"
              }
            }
          }
        }
    """

    api_host: str = ""
    issuer_id: str = ""
    private_key_file: str = ""
    token_endpoint: str = ""
    access_token: str = ""
    private_key: str = ""
    private_key_password: str = ""

    @classmethod
    def from_dict(cls, profile: Dict[str, Any]) -> "ProfileConfig":
        auth = profile.get("auth") or {}

        def field(source: Dict[str, Any], key: str) -> str:
            value = source.get(key) or ""
            if not isinstance(value, str):
                raise ProfileConfigError(f"cannot read fusion config: `{key}` must be a string")
            return value

        return cls(
            api_host=field(profile, "endpoint"),
            issuer_id=field(auth, "issuer_id"),
            private_key_file=field(auth, "private_pem_file"),
            token_endpoint=field(auth, "token_endpoint"),
            access_token=field(auth, "access_token"),
            private_key=field(auth, "private_key"),
            private_key_password=field(auth, "private_key_password"),
        )


def default_config_path() -> Path:
    """Path of the Fusion config file in the user's home directory."""
    return Path.home() / ".pure" / "fusion.json"


def load_profile_config(path, profile_name: Optional[str] = None) -> ProfileConfig:
    """
    Load one profile from a Fusion config file.

    Args:
        path: Path of the JSON config file.
        profile_name: Profile to select. Defaults to the file's
                      ``default_profile``.

    Returns:
        The selected ProfileConfig.

    Raises:
        ProfileConfigError: If the file cannot be read or parsed, lacks the
                            ``profiles`` or ``default_profile`` field, does
                            not contain the profile, or the profile has no
                            usable auth fields.
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            config = json.load(f)
    except (OSError, ValueError) as e:
        raise ProfileConfigError(f"cannot read fusion config: {e}") from e

    if not isinstance(config, dict) or "profiles" not in config:
        raise ProfileConfigError(
            "cannot read fusion config: config does not have required field `profiles`"
        )
    profiles = config["profiles"]
    if not isinstance(profiles, dict):
        raise ProfileConfigError("cannot read fusion config: `profiles` must be an object")

    profile_name = profile_name or config.get("default_profile")
    if not profile_name or not isinstance(profile_name, str):
        raise ProfileConfigError("config does not have required field `default_profile`")

    raw_profile = profiles.get(profile_name)
    if raw_profile is None:
        raise ProfileConfigError(f"profile does not exist. profile name: {profile_name}")
    if not isinstance(raw_profile, dict) or not isinstance(raw_profile.get("auth", {}), dict):
        raise ProfileConfigError(
            f"cannot read fusion config: profile {profile_name} must be an object "
            "with an `auth` object"
        )

    profile = ProfileConfig.from_dict(raw_profile)
    if (
        (not profile.issuer_id or not profile.private_key_file)
        and not profile.access_token
        and not profile.private_key
    ):
        raise ProfileConfigError("profile does not have required auth fields")

    return profile


def _first_set(option_name: str, candidates: Sequence[Optional[str]]) -> str:
    for position, value in enumerate(candidates):
        if value:
            logger.debug("Using %s for option %s", _SOURCES[position], option_name)
            return value
    return ""


def _first_set_pair(
    first_name: str,
    first_candidates: List[Optional[str]],
    second_name: str,
    second_candidates: List[Optional[str]],
) -> Tuple[str, str]:
    """
    Pick one member of a mutually exclusive pair by source priority.

    At each source the first option wins over the second; a higher priority
    source always wins over a lower one, whichever member it sets.
    """
    for position, (first, second) in enumerate(zip(first_candidates, second_candidates)):
        if first:
            logger.debug("Using %s for option %s", _SOURCES[position], first_name)
            return first, ""
        if second:
            logger.debug("Using %s for option %s", _SOURCES[position], second_name)
            return "", second
    return "", ""


class FusionAuthConfig:
    """
    Configuration for obtaining a Fusion access token.

    Either an access token is used directly, or an issuer id and its private
    key (inline PEM or a PEM file) are used to issue one.

    Attributes:
        issuer_id: Issuer identity the key is registered under.
        private_key: Inline PEM key material.
        private_key_file: Path of a PEM key file.
        private_key_password: Password of an encrypted key, empty otherwise.
        token_endpoint: Token endpoint URL.
        access_token: Pre-issued access token, used as-is when set.
        api_host: Fusion API host the token is meant for.
        timeout: Token exchange timeout in seconds (default: 30).

    Examples:
        >>> # From environment variables and ~/.pure/fusion.json
        >>> config = FusionAuthConfig.from_env()
        >>>
        >>> # Direct initialization
        >>> config = FusionAuthConfig(
        ...     issuer_id="pure1:apikey:123",
        ...     private_key_file="/path/to/private.pem",
        ... )
    """

    def __init__(
        self,
        issuer_id: Optional[str] = None,
        private_key: Optional[str] = None,
        private_key_file: Optional[str] = None,
        private_key_password: Optional[str] = None,
        token_endpoint: Optional[str] = None,
        access_token: Optional[str] = None,
        api_host: Optional[str] = None,
        timeout: int = 30,
        config_path: Optional[str] = None,
        profile: Optional[str] = None,
    ):
        """
        Initialize configuration.

        Direct parameters take precedence over environment variables, which
        take precedence over the Fusion config file.

        Args:
            issuer_id: Issuer id. Falls back to FUSION_ISSUER_ID.
            private_key: Inline PEM. Falls back to FUSION_PRIVATE_KEY.
            private_key_file: PEM file path. Falls back to FUSION_PRIVATE_KEY_FILE.
            private_key_password: Key password. Falls back to FUSION_PRIVATE_KEY_PASSWORD.
            token_endpoint: Token endpoint. Falls back to FUSION_TOKEN_ENDPOINT,
                            then the production endpoint.
            access_token: Pre-issued token. Falls back to FUSION_ACCESS_TOKEN.
            api_host: API host. Falls back to FUSION_API_HOST, then the
                      production host.
            timeout: Token exchange timeout in seconds. Defaults to 30.
            config_path: Fusion config file. Falls back to FUSION_CONFIG, then
                         ~/.pure/fusion.json.
            profile: Profile name. Falls back to FUSION_CONFIG_PROFILE, then
                     the file's default profile.

        Raises:
            ProfileConfigError: If an explicitly selected config file or
                                profile cannot be loaded.
            ValueError: If the resolved settings cannot produce a token.
        """
        file_profile = self._load_profile(config_path, profile)

        self.token_endpoint = _first_set(
            "token_endpoint",
            [token_endpoint, os.getenv(TOKEN_ENDPOINT_OVERRIDE_ENV_VAR),
             file_profile.token_endpoint, DEFAULT_TOKEN_ENDPOINT],
        )
        self.api_host = _first_set(
            "api_host",
            [api_host, os.getenv(API_HOST_ENV_VAR), file_profile.api_host, DEFAULT_API_HOST],
        )
        self.access_token, self.issuer_id = _first_set_pair(
            "access_token",
            [access_token, os.getenv(ACCESS_TOKEN_ENV_VAR), file_profile.access_token],
            "issuer_id",
            [issuer_id, os.getenv(ISSUER_ID_ENV_VAR), file_profile.issuer_id],
        )
        self.private_key, self.private_key_file = _first_set_pair(
            "private_key",
            [private_key, os.getenv(PRIVATE_KEY_ENV_VAR), file_profile.private_key],
            "private_key_file",
            [private_key_file, os.getenv(PRIVATE_KEY_FILE_ENV_VAR), file_profile.private_key_file],
        )
        self.private_key_password = _first_set(
            "private_key_password",
            [private_key_password, os.getenv(PRIVATE_KEY_PASSWORD_ENV_VAR),
             file_profile.private_key_password],
        )
        self.timeout = timeout

        self._validate()

    @staticmethod
    def _load_profile(config_path: Optional[str], profile: Optional[str]) -> ProfileConfig:
        profile = profile or os.getenv(CONFIG_PROFILE_ENV_VAR)
        explicit_path = config_path or os.getenv(CONFIG_PATH_ENV_VAR)

        if explicit_path:
            logger.debug("Reading Fusion config from %s", explicit_path)
            return load_profile_config(explicit_path, profile)

        home_path = default_config_path()
        try:
            return load_profile_config(home_path, profile)
        except ProfileConfigError:
            # The home config file is optional unless a profile was asked for.
            if profile:
                raise
            logger.debug("No usable Fusion config at %s", home_path)
            return ProfileConfig()

    def _validate(self) -> None:
        """
        Validate that the settings can produce an access token.

        Raises:
            ValueError: If a required value is missing.
        """
        if not self.api_host:
            raise ValueError("no Fusion host specified")

        if self.access_token:
            return

        if not self.issuer_id:
            raise ValueError(
                "neither access_token nor issuer_id specified. "
                f"Set {ACCESS_TOKEN_ENV_VAR} or {ISSUER_ID_ENV_VAR}, pass a parameter, "
                "or add them to the Fusion config file."
            )

        if not self.private_key and not self.private_key_file:
            raise ValueError(
                "neither private_key nor private_key_file specified. "
                f"Set {PRIVATE_KEY_ENV_VAR} or {PRIVATE_KEY_FILE_ENV_VAR}, pass a parameter, "
                "or add them to the Fusion config file."
            )

    def load_private_key_material(self) -> str:
        """
        Return the PEM key material, reading the key file if needed.

        Raises:
            KeyReadError: If the key file cannot be read.
        """
        if self.private_key:
            return self.private_key
        return read_private_key_file(self.private_key_file)

    @classmethod
    def from_env(cls, timeout: int = 30) -> "FusionAuthConfig":
        """
        Create configuration from environment variables and the config file.

        The .env file is automatically loaded if present.

        Args:
            timeout: Token exchange timeout in seconds. Defaults to 30.

        Returns:
            FusionAuthConfig instance.

        Raises:
            ProfileConfigError: If a selected config file or profile is invalid.
            ValueError: If the settings cannot produce a token.
        """
        return cls(timeout=timeout)

    def __repr__(self) -> str:
        return (
            f"FusionAuthConfig(issuer_id={self.issuer_id!r}, "
            f"token_endpoint={self.token_endpoint!r}, api_host={self.api_host!r}, "
            f"private_key_file={self.private_key_file!r}, timeout={self.timeout!r})"
        )
