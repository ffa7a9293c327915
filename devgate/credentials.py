"""Resolution and verification of the gateway's single shared secret."""

from __future__ import annotations

import base64
import hashlib
import logging
from pathlib import Path

import bcrypt

from devgate.errors import ConfigError

logger = logging.getLogger(__name__)


def resolve_credential(inline: str | None, path: str | Path | None) -> str:
    """Return the secret from exactly one of *inline* or the file at *path*.

    A file's contents are used as-is apart from one trailing line terminator,
    so ``echo secret > password.txt`` yields ``"secret"``.

    Raises:
        ConfigError: both or neither source given, the file is missing or
            unreadable, or the resolved secret is empty.
    """
    if inline is not None and path is not None:
        raise ConfigError("Provide either an inline password or a password file, not both")
    if inline is None and path is None:
        raise ConfigError("No password configured: provide an inline password or a password file")

    if inline is not None:
        secret = inline
    else:
        file = Path(path)
        if not file.is_file():
            raise ConfigError(f"Provided file password path does not exist: {file}")
        try:
            secret = file.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise ConfigError(f"Failed to read file password at path: {file}") from e
        secret = _strip_line_terminator(secret)
        logger.debug("Password loaded from %s", file)

    if not secret:
        raise ConfigError("Configured password is empty")
    return secret


def _strip_line_terminator(text: str) -> str:
    if text.endswith("\r\n"):
        return text[:-2]
    if text.endswith("\n"):
        return text[:-1]
    return text


# ── Hashing ───────────────────────────────────────────────────────

def _prehash(secret: str) -> bytes:
    # bcrypt only looks at the first 72 bytes
    return base64.b64encode(hashlib.sha256(secret.encode()).digest())


def hash_credential(secret: str) -> bytes:
    return bcrypt.hashpw(_prehash(secret), bcrypt.gensalt())


def verify_credential(candidate: str, hashed: bytes) -> bool:
    return bcrypt.checkpw(_prehash(candidate), hashed)
