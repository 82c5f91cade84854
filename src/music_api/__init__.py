"""
Apple Music API client.

Modules:
    config      - ClientConfig and YAML loading
    transport   - aiohttp JSON transport
    pipeline    - RequestSpec and the authenticated RequestPipeline
    pagination  - PaginationCursor for "next" links
    params      - MediaType and search parameter building
    validation  - Resource ID and storefront validation
    client      - MusicApiClient caller-facing API
"""

from music_api.client import MusicApiClient
from music_api.config import ClientConfig, load_config
from music_api.pagination import PaginationCursor, has_more
from music_api.params import (
    MediaType,
    SearchOptions,
    SearchParamsBuilder,
    media_types_to_string,
)
from music_api.pipeline import RequestPipeline, RequestSpec
from music_api.transport import AiohttpTransport, TransportResponse
from music_api.validation import parse_storefront, validate_resource_id

__version__ = "0.1.0"

__all__ = [
    "MusicApiClient",
    "ClientConfig",
    "load_config",
    "PaginationCursor",
    "has_more",
    "MediaType",
    "SearchOptions",
    "SearchParamsBuilder",
    "media_types_to_string",
    "RequestPipeline",
    "RequestSpec",
    "AiohttpTransport",
    "TransportResponse",
    "parse_storefront",
    "validate_resource_id",
]
