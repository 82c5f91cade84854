"""
Authentication module.

Provides developer token signing and renewal plus the credential set that
produces request headers.

Components:
    - TokenSigner: ES256 developer token signing
    - TokenLifecycleManager: lazy renewal 24h before a 180-day expiry
    - CredentialSet: signed or static primary token plus optional user token
"""

from .credentials import (
    AUTHORIZATION_HEADER,
    USER_TOKEN_HEADER,
    CredentialSet,
    PrimaryCredential,
    SignedCredential,
    StaticCredential,
    mask_headers,
)
from .signer import (
    DEFAULT_TOKEN_VALIDITY,
    SignedToken,
    TokenSigner,
    check_pem_markers,
    create_developer_token,
    load_signing_key,
)
from .token_manager import DEFAULT_RENEWAL_THRESHOLD, TokenLifecycleManager

__all__ = [
    # Signing
    "SignedToken",
    "TokenSigner",
    "check_pem_markers",
    "load_signing_key",
    "create_developer_token",
    "DEFAULT_TOKEN_VALIDITY",
    # Lifecycle
    "TokenLifecycleManager",
    "DEFAULT_RENEWAL_THRESHOLD",
    # Credentials
    "CredentialSet",
    "SignedCredential",
    "StaticCredential",
    "PrimaryCredential",
    "AUTHORIZATION_HEADER",
    "USER_TOKEN_HEADER",
    "mask_headers",
]
