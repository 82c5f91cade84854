"""Developer token lifecycle with lazy, on-demand renewal."""

import logging
from datetime import UTC, datetime, timedelta
from typing import Any

from core.auth.signer import (
    DEFAULT_TOKEN_VALIDITY,
    SignedToken,
    TokenSigner,
    check_pem_markers,
)
from core.errors.exceptions import config_error
from core.types import Clock

logger = logging.getLogger(__name__)

# Renew when the token is within 24 hours of its signed expiry
DEFAULT_RENEWAL_THRESHOLD = timedelta(hours=24)


def _utc_now() -> datetime:
    return datetime.now(UTC)


class TokenLifecycleManager:
    """
    Owns the current signed developer token and decides when to mint a new one.

    Two states:
        Fresh: a token exists and expires later than the renewal threshold
        Stale: no token yet, or the token is within the renewal threshold

    Renewal is lazy: the state is checked when a token is requested, and a
    Stale manager signs a replacement synchronously before returning. There
    is no background timer.

    Not synchronized on its own; CredentialSet serializes access.

    Usage:
        manager = TokenLifecycleManager(
            issuer="TEAM123456",
            key_id="KEY1234567",
            private_key=pem_text,
        )
        token = manager.current_token()
        headers = {"Authorization": f"Bearer {token}"}
    """

    def __init__(
        self,
        issuer: str,
        key_id: str,
        private_key: str,
        validity: timedelta = DEFAULT_TOKEN_VALIDITY,
        renewal_threshold: timedelta = DEFAULT_RENEWAL_THRESHOLD,
        signer: TokenSigner | None = None,
        clock: Clock | None = None,
    ):
        """
        Initialize token manager.

        Args:
            issuer: Developer team ID (iss claim)
            key_id: Signing key ID (kid header)
            private_key: PKCS#8 PEM text of the EC private key
            validity: Lifetime of each signed token (default: 180 days)
            renewal_threshold: Lead time before expiry that triggers renewal
                (default: 24 hours)
            signer: Token signer (default: TokenSigner())
            clock: Returns current UTC time (default: datetime.now(UTC))

        Raises:
            ClassifiedError: CONFIG for missing identifiers or an unusable
                renewal window, AUTHENTICATION for malformed PEM text
        """
        if not issuer:
            raise config_error("Token issuer (team ID) is required")
        if not key_id:
            raise config_error("Signing key ID is required")
        if validity <= timedelta(0):
            raise config_error(f"Token validity must be positive, got {validity}")
        if renewal_threshold < timedelta(0) or renewal_threshold >= validity:
            raise config_error(
                f"Renewal threshold must be within the validity window "
                f"({renewal_threshold} vs {validity})"
            )

        check_pem_markers(private_key)

        self.issuer = issuer
        self.key_id = key_id
        self._private_key = private_key
        self.validity = validity
        self.renewal_threshold = renewal_threshold
        self._signer = signer or TokenSigner()
        self._clock = clock or _utc_now
        self._token: SignedToken | None = None

        logger.debug(
            "Initialized TokenLifecycleManager",
            extra={
                "key_id": key_id,
                "validity_seconds": validity.total_seconds(),
                "renewal_threshold_seconds": renewal_threshold.total_seconds(),
            },
        )

    def __repr__(self) -> str:
        return f"TokenLifecycleManager(issuer={self.issuer!r}, key_id={self.key_id!r})"

    @property
    def token(self) -> SignedToken | None:
        """Currently stored token, if any."""
        return self._token

    @property
    def token_expires_at(self) -> datetime | None:
        return self._token.expires_at if self._token else None

    def _is_stale(self, now: datetime) -> bool:
        if self._token is None:
            return True
        return now >= self._token.expires_at - self.renewal_threshold

    def is_stale(self) -> bool:
        """True if the next current_token() call will sign a new token."""
        return self._is_stale(self._clock())

    def current_token(self) -> str:
        """
        Get the current token value, renewing it first if Stale.

        Returns:
            Token valid for at least the renewal threshold

        Raises:
            ClassifiedError: AUTHENTICATION if signing fails; the stored
                token is left untouched
        """
        now = self._clock()
        if self._is_stale(now):
            self._token = self._renew(now)
        return self._token.value

    def _renew(self, now: datetime) -> SignedToken:
        reason = "initial" if self._token is None else "renewal_threshold"
        try:
            token = self._signer.sign(
                self.issuer,
                self.key_id,
                self._private_key,
                self.validity,
                now=now,
            )
        except Exception as e:
            logger.error(
                "Failed to sign developer token: %s",
                e,
                extra={"key_id": self.key_id, "reason": reason},
            )
            raise

        logger.info(
            "Developer token valid until %s",
            token.expires_at.isoformat(),
            extra={"key_id": self.key_id, "reason": reason},
        )
        return token

    def is_expired(self) -> bool:
        """True if no token is stored or the stored token has expired."""
        if self._token is None:
            return True
        return self._clock() >= self._token.expires_at

    def time_until_expiry(self) -> timedelta | None:
        """Remaining lifetime, or None if no token or already expired."""
        if self._token is None:
            return None
        remaining = self._token.expires_at - self._clock()
        if remaining <= timedelta(0):
            return None
        return remaining

    def clear(self) -> None:
        """Drop the stored token; the next access signs a new one."""
        self._token = None
        logger.debug("Cleared developer token", extra={"key_id": self.key_id})

    def get_cached_token_info(self) -> dict[str, Any] | None:
        """
        Get information about the stored token for diagnostics.

        Returns:
            Dict with token timing info, or None if no token stored
        """
        if self._token is None:
            return None

        now = self._clock()
        return {
            "key_id": self.key_id,
            "issued_at": self._token.issued_at.isoformat(),
            "expires_at": self._token.expires_at.isoformat(),
            "remaining_seconds": (self._token.expires_at - now).total_seconds(),
            "is_stale": self._is_stale(now),
            "is_expired": now >= self._token.expires_at,
        }


__all__ = [
    "TokenLifecycleManager",
    "DEFAULT_RENEWAL_THRESHOLD",
]
