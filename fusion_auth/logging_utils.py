"""
Logging setup for scripts issuing Fusion access tokens.

Every handler installed here carries a SecretRedactingFilter, so private key
PEM blocks, passwords, signed assertions and access tokens never reach the
console or the log file, whichever library logged them.
"""

import logging
import os
import re
import sys

LOG_FILE_ENV_VAR = "FUSION_LOG_FILE"
REDACTED = "***"

_RESET = "\033[0m"
_LEVEL_COLORS = {
    logging.DEBUG: "\033[36m",
    logging.INFO: "\033[32m",
    logging.WARNING: "\033[33m",
    logging.ERROR: "\033[31m",
    logging.CRITICAL: "\033[1;31m",
}

_PEM_PRIVATE_KEY = re.compile(
    r"-----BEGIN ([A-Z0-9 ]*)PRIVATE KEY-----.*?-----END [A-Z0-9 ]*PRIVATE KEY-----",
    re.DOTALL,
)
# JSON members and form/query parameters holding credentials.
_SECRET_FIELD = re.compile(
    r"""(?P<key>["']?(?:access_token|subject_token|private_key_password|password)["']?\s*[:=]\s*)"""
    r"""(?P<quote>["']?)(?P<value>[^"'&\s,}]+)""",
    re.IGNORECASE,
)
# Compact JWS: base64url header starting with {" then payload and signature.
_COMPACT_JWS = re.compile(r"\beyJ[\w-]+\.[\w-]+\.[\w-]+")


def redact_secrets(text: str) -> str:
    """Mask private keys, credential fields and signed assertions in ``text``."""
    text = _PEM_PRIVATE_KEY.sub(
        lambda m: f"-----BEGIN {m.group(1)}PRIVATE KEY-----{REDACTED}"
        f"-----END {m.group(1)}PRIVATE KEY-----",
        text,
    )
    text = _SECRET_FIELD.sub(lambda m: f"{m.group('key')}{m.group('quote')}{REDACTED}", text)
    return _COMPACT_JWS.sub(REDACTED, text)


class SecretRedactingFilter(logging.Filter):
    """
    Handler filter rewriting each record's message with secrets masked.

    The formatted message replaces ``msg`` and ``args`` is cleared, so later
    formatters see the masked text only. Exception text is masked as well.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        record.msg = redact_secrets(record.getMessage())
        record.args = None
        if record.exc_info and not record.exc_text:
            record.exc_text = logging.Formatter().formatException(record.exc_info)
        if record.exc_text:
            record.exc_text = redact_secrets(record.exc_text)
        return True


class ColoredFormatter(logging.Formatter):
    """Formatter coloring the level name when the console is a terminal."""

    def __init__(self, fmt=None, datefmt=None, use_color=None):
        super().__init__(fmt, datefmt)
        if use_color is None:
            isatty = getattr(sys.stderr, "isatty", None)
            use_color = bool(isatty and isatty())
        self.use_color = use_color

    def format(self, record):
        if not self.use_color or record.levelno not in _LEVEL_COLORS:
            return super().format(record)
        levelname = record.levelname
        record.levelname = f"{_LEVEL_COLORS[record.levelno]}{levelname}{_RESET}"
        try:
            return super().format(record)
        finally:
            record.levelname = levelname


def setup_script_logging(
    verbose: bool = False,
    log_file=None,
    log_format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
):
    """
    Configure the root logger for scripts.

    Console output goes to stderr (colored on a terminal); a plain copy goes
    to ``log_file`` or, when not given, the path in FUSION_LOG_FILE. Both
    handlers redact secrets. ``verbose`` turns on debug output for this
    package; urllib3 stays at WARNING unless verbose.
    """
    root = logging.getLogger()
    root.setLevel(logging.DEBUG if verbose else logging.INFO)
    for handler in root.handlers[:]:
        root.removeHandler(handler)

    redacting = SecretRedactingFilter()

    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(ColoredFormatter(log_format, datefmt=datefmt))
    console.addFilter(redacting)
    root.addHandler(console)

    path = log_file or os.environ.get(LOG_FILE_ENV_VAR)
    if path:
        file_handler = logging.FileHandler(path, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(log_format, datefmt=datefmt))
        file_handler.addFilter(redacting)
        root.addHandler(file_handler)

    logging.getLogger("urllib3").setLevel(logging.DEBUG if verbose else logging.WARNING)
