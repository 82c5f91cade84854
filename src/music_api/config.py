"""Music API client configuration from YAML file.

Loads the music_api: section of a YAML file into ClientConfig:
- Endpoint settings (base URL, storefront, timeout, user agent)
- Retry and throttle settings (advisory: enforced by MusicApiClient)
- Credentials: team_id/key_id/private_key for signed developer tokens, or a
  pre-generated developer_token for static mode, plus an optional user token

Environment variables ARE supported using ${VAR_NAME} and
${VAR_NAME:-default} syntax in YAML files.
"""

import logging
import os
import re
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from core.auth.credentials import CredentialSet
from core.auth.signer import load_signing_key
from core.errors.exceptions import ClassifiedError, config_error
from music_api.validation import parse_storefront

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.music.apple.com"
DEFAULT_STOREFRONT = "us"
DEFAULT_USER_AGENT = "music-api-client/0.1.0"

CONFIG_SECTION = "music_api"

# Secrets can come straight from the environment instead of the YAML file
ENV_DEVELOPER_TOKEN = "MUSIC_API_DEVELOPER_TOKEN"
ENV_USER_TOKEN = "MUSIC_API_USER_TOKEN"

_ENV_PLACEHOLDER = re.compile(r"\$\{(?P<name>[^}:]+)(?::-(?P<default>[^}]*))?\}")


def load_yaml(path: Path) -> Dict[str, Any]:
    """Parsed YAML mapping, or {} for a missing or empty file."""
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return {}
    return yaml.safe_load(text) or {}


def _substitute(match: re.Match) -> str:
    value = os.environ.get(match["name"])
    if value is not None:
        return value
    # Unset without a default: leave the placeholder so validation names it
    return match["default"] if match["default"] is not None else match[0]


def _expand_env_vars(data: Any) -> Any:
    """Replace ${VAR} and ${VAR:-default} in every string inside data."""
    match data:
        case str():
            return _ENV_PLACEHOLDER.sub(_substitute, data)
        case dict():
            return {key: _expand_env_vars(value) for key, value in data.items()}
        case list():
            return [_expand_env_vars(item) for item in data]
        case _:
            return data


def _deep_merge(base: Dict[str, Any], overlay: Dict[str, Any]) -> Dict[str, Any]:
    """New dict of base updated by overlay; nested mappings merge key by key."""
    merged = dict(base)
    for key, value in overlay.items():
        current = merged.get(key)
        both_dicts = isinstance(current, dict) and isinstance(value, dict)
        merged[key] = _deep_merge(current, value) if both_dicts else value
    return merged


@dataclass
class ClientConfig:
    """Music API client configuration.

    Configuration structure:
        music_api:
          base_url: https://api.music.apple.com
          storefront: us
          timeout_seconds: 30
          max_retries: 3
          retry_delay_seconds: 0.1
          rate_limit_per_second: 20     # omit to disable throttling
          # Signed mode (preferred when all three are present)
          team_id: ${MUSIC_API_TEAM_ID}
          key_id: ${MUSIC_API_KEY_ID}
          private_key_path: ${MUSIC_API_PRIVATE_KEY_PATH}
          # Static mode
          developer_token: ${MUSIC_API_DEVELOPER_TOKEN:-}
          user_token: ${MUSIC_API_USER_TOKEN:-}
    """

    # =========================================================================
    # ENDPOINT SETTINGS
    # =========================================================================
    base_url: str = DEFAULT_BASE_URL
    storefront: str = DEFAULT_STOREFRONT
    timeout_seconds: float = 30.0
    user_agent: str = DEFAULT_USER_AGENT
    max_concurrent: int = 20

    # =========================================================================
    # RETRY AND THROTTLE (advisory, applied by the caller-facing client)
    # =========================================================================
    max_retries: int = 3
    retry_delay_seconds: float = 0.1
    rate_limit_per_second: Optional[int] = None

    # =========================================================================
    # CREDENTIALS
    # =========================================================================
    team_id: str = ""
    key_id: str = ""
    private_key: str = field(default="", repr=False)
    private_key_path: str = ""
    developer_token: str = field(default="", repr=False)
    user_token: Optional[str] = field(default=None, repr=False)

    def __post_init__(self):
        """Ensure proper types from YAML/env vars."""
        try:
            self.timeout_seconds = float(self.timeout_seconds)
            self.retry_delay_seconds = float(self.retry_delay_seconds)
            self.max_retries = int(self.max_retries)
            self.max_concurrent = int(self.max_concurrent)
            if self.rate_limit_per_second in (None, ""):
                self.rate_limit_per_second = None
            else:
                self.rate_limit_per_second = int(self.rate_limit_per_second)
        except (TypeError, ValueError) as e:
            raise config_error(f"Invalid numeric setting: {e}", cause=e) from e

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ClientConfig":
        """Build from a mapping, ignoring (and logging) unknown keys."""
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            logger.warning("Ignoring unknown music_api config keys: %s", ", ".join(unknown))
        return cls(**{key: value for key, value in data.items() if key in known})

    @property
    def auth_mode(self) -> str:
        """'signed' when team_id, key_id and a private key are set, else 'static'."""
        has_key = bool(self.private_key or self.private_key_path)
        if self.team_id and self.key_id and has_key:
            return "signed"
        return "static"

    def resolve_private_key(self) -> None:
        """Read private_key_path into private_key when no inline key is set."""
        if self.private_key or not self.private_key_path:
            return
        try:
            self.private_key = Path(self.private_key_path).read_text()
        except OSError as e:
            raise config_error(
                f"Failed to read private key file {self.private_key_path}: {e}", cause=e
            ) from e

    def validate(self) -> None:
        """Validate configuration before any client is built.

        Normalizes base_url (trailing slash) and storefront (case).

        Raises:
            ClassifiedError: CONFIG naming the first failed rule, AUTHENTICATION
                for signed mode with malformed key material
        """
        self.base_url = (self.base_url or "").strip().rstrip("/")
        if not self.base_url:
            raise config_error("Base URL cannot be empty")
        if not self.base_url.startswith(("http://", "https://")):
            raise config_error("Base URL must start with http:// or https://")

        if not self.storefront or not self.storefront.strip():
            raise config_error("Storefront cannot be empty")
        try:
            self.storefront = parse_storefront(self.storefront)
        except ClassifiedError as e:
            raise config_error(f"Invalid storefront {self.storefront!r}: {e.message}", cause=e) from e

        if self.auth_mode == "static" and not self.developer_token:
            raise config_error(
                "Developer token is required (or team_id, key_id and private_key "
                "for signed tokens)"
            )
        if self.auth_mode == "signed":
            self.resolve_private_key()
            load_signing_key(self.private_key)

        self._validate_min("timeout_seconds", self.timeout_seconds, 0, inclusive=False)
        self._validate_min("max_retries", self.max_retries, 0, inclusive=True)
        self._validate_min("retry_delay_seconds", self.retry_delay_seconds, 0, inclusive=True)
        self._validate_min("max_concurrent", self.max_concurrent, 1, inclusive=True)
        if self.rate_limit_per_second is not None:
            self._validate_min(
                "rate_limit_per_second", self.rate_limit_per_second, 1, inclusive=True
            )

    @staticmethod
    def _validate_min(key: str, value: float, min_value: float, inclusive: bool) -> None:
        """Validate that a setting's value meets a minimum threshold."""
        if inclusive and value < min_value:
            raise config_error(f"{key} must be >= {min_value}, got {value}")
        elif not inclusive and value <= min_value:
            raise config_error(f"{key} must be > {min_value}, got {value}")

    def build_credentials(self) -> CredentialSet:
        """
        Build the credential set for the configured auth mode.

        Raises:
            ClassifiedError: CONFIG for unreadable key files, AUTHENTICATION
                for malformed key material
        """
        self.resolve_private_key()
        return CredentialSet.from_config(self)


def _read_section(config_path: Path) -> Dict[str, Any]:
    try:
        document = load_yaml(config_path)
    except yaml.YAMLError as e:
        raise config_error(f"Invalid YAML in {config_path}: {e}", cause=e) from e

    if not isinstance(document, dict) or CONFIG_SECTION not in document:
        raise config_error(
            f"{config_path} is missing '{CONFIG_SECTION}:' section "
            "(config/config.yaml.example shows the expected layout)"
        )
    return _expand_env_vars(document[CONFIG_SECTION] or {})


def _apply_env_secrets(section: Dict[str, Any]) -> Dict[str, Any]:
    for env_name, key in (
        (ENV_DEVELOPER_TOKEN, "developer_token"),
        (ENV_USER_TOKEN, "user_token"),
    ):
        if os.environ.get(env_name):
            section[key] = os.environ[env_name]
    # ${VAR:-} leaves an empty string; treat it as no user token
    section["user_token"] = section.get("user_token") or None
    return section


def load_config(
    config_path: Optional[Path] = None,
    overrides: Optional[Dict[str, Any]] = None,
) -> ClientConfig:
    """Load, resolve and validate the music_api: section of a YAML file.

    Strings may reference the environment as ${VAR_NAME} or
    ${VAR_NAME:-default}. overrides are deep-merged over the section, and
    MUSIC_API_DEVELOPER_TOKEN / MUSIC_API_USER_TOKEN, when set, win over both.

    Raises:
        ClassifiedError: CONFIG for a missing file or section, or any
            validation failure
    """
    if config_path is None:
        raise config_error("No configuration file given")

    config_path = Path(config_path)
    if not config_path.is_file():
        raise config_error(f"Configuration file not found: {config_path}")

    logger.info("Reading client configuration", extra={"path": str(config_path)})
    section = _read_section(config_path)
    if overrides:
        section = _deep_merge(section, overrides)
    section = _apply_env_secrets(section)

    try:
        config = ClientConfig.from_dict(section)
    except TypeError as e:
        raise config_error(f"Invalid music_api section: {e}", cause=e) from e

    config.resolve_private_key()
    config.validate()
    logger.info(
        "Music API configuration loaded",
        extra={"auth_mode": config.auth_mode, "storefront": config.storefront},
    )
    return config


__all__ = [
    "ClientConfig",
    "load_config",
    "load_yaml",
    "DEFAULT_BASE_URL",
    "DEFAULT_STOREFRONT",
    "DEFAULT_USER_AGENT",
]
