"""Local input validation; failures raise INVALID_REQUEST before any I/O."""

import re

from core.errors.exceptions import invalid_request

MAX_RESOURCE_ID_LENGTH = 100

_RESOURCE_ID_PATTERN = re.compile(r"[A-Za-z0-9._-]+")
_STOREFRONT_PATTERN = re.compile(r"[a-z]{2,3}")


def validate_resource_id(resource_id: str) -> str:
    """
    Check a catalog or library resource ID.

    Accepts ASCII letters, digits, hyphens, underscores and periods, up to
    100 characters.

    Returns:
        The ID unchanged

    Raises:
        ClassifiedError: INVALID_REQUEST naming the failed rule
    """
    if not resource_id:
        raise invalid_request("Resource ID cannot be empty")
    if len(resource_id) > MAX_RESOURCE_ID_LENGTH:
        raise invalid_request("Resource ID is too long")
    if not _RESOURCE_ID_PATTERN.fullmatch(resource_id):
        raise invalid_request(
            "Resource ID contains invalid characters. Only alphanumeric characters, "
            "hyphens, underscores, and periods are allowed"
        )
    return resource_id


def validate_resource_ids(resource_ids: list[str]) -> list[str]:
    for resource_id in resource_ids:
        validate_resource_id(resource_id)
    return list(resource_ids)


def parse_storefront(storefront: str) -> str:
    """
    Normalize a storefront code ("US " -> "us").

    Raises:
        ClassifiedError: INVALID_REQUEST unless the trimmed value is 2-3
            ASCII letters
    """
    normalized = storefront.strip().lower()

    if not 2 <= len(normalized) <= 3:
        raise invalid_request("Storefront identifier must be 2-3 characters long")
    if not _STOREFRONT_PATTERN.fullmatch(normalized):
        raise invalid_request("Storefront identifier must contain only letters")

    return normalized


__all__ = [
    "MAX_RESOURCE_ID_LENGTH",
    "validate_resource_id",
    "validate_resource_ids",
    "parse_storefront",
]
