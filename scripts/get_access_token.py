"""
Access token issuance script.

Resolves Fusion auth settings from arguments, environment variables
(FUSION_ISSUER_ID, FUSION_PRIVATE_KEY_FILE, FUSION_TOKEN_ENDPOINT, ...) and
~/.pure/fusion.json, obtains an access token and prints it to stdout.
Useful to validate a key/issuer registration against production or staging.
"""

import argparse
import logging
import sys
from pathlib import Path

# Add project root to path for imports
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from fusion_auth.logging_utils import setup_script_logging  # noqa: E402

logger = logging.getLogger(__name__)

from fusion_auth import (  # noqa: E402
    FusionAuthConfig,
    FusionAuthError,
    issue_access_token_with_retry,
    resolve_access_token,
)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Obtain a Fusion access token.")
    parser.add_argument("--issuer-id", help="Issuer id (FUSION_ISSUER_ID)")
    parser.add_argument("--private-key-file", help="PEM key file (FUSION_PRIVATE_KEY_FILE)")
    parser.add_argument("--token-endpoint", help="Token endpoint (FUSION_TOKEN_ENDPOINT)")
    parser.add_argument("--config", help="Fusion config file (FUSION_CONFIG)")
    parser.add_argument("--profile", help="Fusion config profile (FUSION_CONFIG_PROFILE)")
    parser.add_argument("--timeout", type=int, default=30, help="Exchange timeout in seconds")
    parser.add_argument(
        "--retry",
        action="store_true",
        help="Retry when the token endpoint answers with a 5xx status",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    setup_script_logging(verbose=args.verbose)

    try:
        config = FusionAuthConfig(
            issuer_id=args.issuer_id,
            private_key_file=args.private_key_file,
            token_endpoint=args.token_endpoint,
            config_path=args.config,
            profile=args.profile,
            timeout=args.timeout,
        )
    except (ValueError, FusionAuthError) as e:
        logger.error("Configuration error: %s", e)
        logger.info(
            "Set FUSION_ISSUER_ID and FUSION_PRIVATE_KEY_FILE, pass arguments, "
            "or provide ~/.pure/fusion.json."
        )
        return 2

    logger.info("Token endpoint: %s", config.token_endpoint)

    try:
        if args.retry and not config.access_token:
            token = issue_access_token_with_retry(
                config.issuer_id,
                config.load_private_key_material(),
                token_endpoint=config.token_endpoint,
                private_key_password=config.private_key_password,
                timeout=config.timeout,
            )
        else:
            token = resolve_access_token(config)
    except FusionAuthError as e:
        logger.error("No access token obtained: %s", e)
        return 1

    print(token)
    return 0


if __name__ == "__main__":
    sys.exit(main())
