"""
Credential set: primary bearer token plus optional user token.

The primary credential is one of two variants:
    - SignedCredential: developer token minted and renewed by a
      TokenLifecycleManager
    - StaticCredential: pre-generated developer token fixed for the
      process lifetime

Both variants carry an optional secondary (user) credential that can be
replaced independently of the primary.

Thread Safety:
    All reads and writes go through a single threading.Lock. Renewal happens
    under that lock, so concurrent requests never see a half-updated token
    and a renewal triggered by one request is reused by the others. Nothing
    awaits while the lock is held.

Example:
    >>> creds = CredentialSet.static("eyJhbGciOi...")
    >>> creds.set_secondary("user-token")
    >>> creds.authorization_headers()
    {'Authorization': 'Bearer eyJhbGciOi...', 'Music-User-Token': 'user-token'}
"""

import logging
import threading
from dataclasses import dataclass, field

from core.auth.token_manager import TokenLifecycleManager
from core.errors.exceptions import config_error

logger = logging.getLogger(__name__)

AUTHORIZATION_HEADER = "Authorization"
USER_TOKEN_HEADER = "Music-User-Token"

SENSITIVE_HEADERS = frozenset({AUTHORIZATION_HEADER.lower(), USER_TOKEN_HEADER.lower()})


def mask_headers(headers: dict[str, str]) -> dict[str, str]:
    """Copy of headers safe for logging; credential values are replaced."""
    return {
        name: "[REDACTED]" if name.lower() in SENSITIVE_HEADERS else value
        for name, value in headers.items()
    }


@dataclass(frozen=True)
class SignedCredential:
    """Primary credential renewed on demand by a TokenLifecycleManager."""

    manager: TokenLifecycleManager


@dataclass(frozen=True)
class StaticCredential:
    """Primary credential supplied by the caller and never renewed."""

    token: str = field(repr=False)


PrimaryCredential = SignedCredential | StaticCredential


def _normalize_secondary(value: str | None) -> str | None:
    return value or None


class CredentialSet:
    """Holds the primary credential variant and the optional user token."""

    def __init__(self, primary: PrimaryCredential, secondary: str | None = None):
        if isinstance(primary, StaticCredential) and not primary.token:
            raise config_error("Developer token is required")

        self._primary = primary
        self._secondary = _normalize_secondary(secondary)
        self._lock = threading.Lock()

    @classmethod
    def signed(
        cls,
        issuer: str,
        key_id: str,
        private_key: str,
        secondary: str | None = None,
        **manager_kwargs,
    ) -> "CredentialSet":
        """
        Build a signed-mode credential set.

        Raises:
            ClassifiedError: AUTHENTICATION for malformed key material,
                CONFIG for missing identifiers
        """
        manager = TokenLifecycleManager(issuer, key_id, private_key, **manager_kwargs)
        return cls(SignedCredential(manager), secondary)

    @classmethod
    def static(cls, token: str, secondary: str | None = None) -> "CredentialSet":
        """Build a static-mode credential set from a pre-generated token."""
        return cls(StaticCredential(token), secondary)

    @classmethod
    def from_config(cls, config) -> "CredentialSet":
        """
        Build from any object carrying client config attributes.

        Reads auth_mode, team_id, key_id, private_key (PEM text, already
        resolved from any key file), developer_token and user_token.
        """
        if config.auth_mode == "signed":
            return cls.signed(
                config.team_id,
                config.key_id,
                config.private_key,
                secondary=config.user_token,
            )
        return cls.static(config.developer_token, secondary=config.user_token)

    @property
    def mode(self) -> str:
        return "signed" if isinstance(self._primary, SignedCredential) else "static"

    @property
    def primary(self) -> PrimaryCredential:
        return self._primary

    def _primary_token(self) -> str:
        # Caller must hold self._lock
        match self._primary:
            case SignedCredential(manager=manager):
                return manager.current_token()
            case StaticCredential(token=token):
                return token
            case _:
                raise TypeError(f"Unknown primary credential: {self._primary!r}")

    def primary_token(self) -> str:
        """Get the primary token, renewing it first in signed mode."""
        with self._lock:
            return self._primary_token()

    def authorization_headers(self) -> dict[str, str]:
        """
        Build credential headers for one outbound request.

        Returns:
            Bearer header for the primary credential, plus the user token
            header when a secondary credential is set

        Raises:
            ClassifiedError: AUTHENTICATION if signed-mode renewal fails
        """
        with self._lock:
            headers = {AUTHORIZATION_HEADER: f"Bearer {self._primary_token()}"}
            if self._secondary is not None:
                headers[USER_TOKEN_HEADER] = self._secondary
        return headers

    @property
    def secondary(self) -> str | None:
        with self._lock:
            return self._secondary

    def set_secondary(self, value: str | None) -> None:
        """Replace the user token; empty string clears it."""
        with self._lock:
            self._secondary = _normalize_secondary(value)
        logger.debug(
            "User token %s", "set" if value else "cleared", extra={"auth_mode": self.mode}
        )

    def has_secondary(self) -> bool:
        with self._lock:
            return self._secondary is not None

    def clear(self) -> None:
        """Drop the renewable token (signed mode) and the user token."""
        with self._lock:
            if isinstance(self._primary, SignedCredential):
                self._primary.manager.clear()
            self._secondary = None

    def __repr__(self) -> str:
        return f"CredentialSet(mode={self.mode!r}, has_secondary={self._secondary is not None})"


__all__ = [
    "CredentialSet",
    "SignedCredential",
    "StaticCredential",
    "PrimaryCredential",
    "AUTHORIZATION_HEADER",
    "USER_TOKEN_HEADER",
    "mask_headers",
]
