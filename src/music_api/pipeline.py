"""
Authenticated request pipeline.

One execute() call does exactly this, in order:
1. Resolve the {storefront} placeholder in the path
2. Percent-encode query parameters in their given order (duplicates kept)
3. Fetch credential headers (may renew the developer token)
4. Send once through the transport
5. Classify the response; return the body or raise ClassifiedError

There are no retries here. Callers that retry call execute() again, which
fetches fresh headers so a renewed token is used.
"""

import json
import logging
import time
from dataclasses import dataclass, field
from typing import Any, TypeVar
from urllib.parse import quote, urlencode

from pydantic import BaseModel, ValidationError

from core.auth.credentials import CredentialSet, mask_headers
from core.errors.classifiers import ErrorClassifier
from core.errors.exceptions import invalid_request, serialization_error
from core.logging.context import get_log_context
from music_api.transport import Transport

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

STOREFRONT_PLACEHOLDER = "{storefront}"

JSON_HEADERS = {
    "Accept": "application/json",
    "Content-Type": "application/json",
}

# Requests slower than this are logged at INFO
SLOW_REQUEST_SECONDS = 2.0


@dataclass
class RequestSpec:
    """
    One outbound request before resolution.

    Attributes:
        path: Path relative to the base URL; may contain {storefront} and
            may already carry a query string
        method: HTTP method
        params: Ordered query parameters; keys may repeat
        body: JSON-serializable request body
    """

    path: str
    method: str = "GET"
    params: list[tuple[str, str]] = field(default_factory=list)
    body: Any | None = None


class RequestPipeline:
    """Builds, authenticates, sends and classifies single API requests."""

    def __init__(
        self,
        base_url: str,
        credentials: CredentialSet,
        transport: Transport,
        storefront: str = "",
        classifier: type[ErrorClassifier] = ErrorClassifier,
    ):
        self.base_url = base_url.rstrip("/")
        self.credentials = credentials
        self.transport = transport
        self.storefront = storefront
        self._classifier = classifier

    def resolve_path(self, path: str) -> str:
        """
        Substitute the storefront placeholder.

        Raises:
            ClassifiedError: INVALID_REQUEST if the path needs a storefront
                and none is configured
        """
        if STOREFRONT_PLACEHOLDER not in path:
            return path
        if not self.storefront:
            raise invalid_request(f"Storefront is required for path {path!r}")
        return path.replace(STOREFRONT_PLACEHOLDER, self.storefront)

    def build_url(self, spec: RequestSpec) -> str:
        path = self.resolve_path(spec.path).lstrip("/")
        url = f"{self.base_url}/{path}"

        if spec.params:
            query = urlencode(spec.params, quote_via=quote)
            separator = "&" if "?" in path else "?"
            url = f"{url}{separator}{query}"

        return url

    async def execute(self, spec: RequestSpec) -> bytes:
        """
        Send one request and return the raw body of a 2xx response.

        Raises:
            ClassifiedError: INVALID_REQUEST before any I/O, AUTHENTICATION
                from credential renewal, TIMEOUT/TRANSPORT from the
                transport, API_ERROR for non-2xx responses
        """
        url = self.build_url(spec)

        headers = self.credentials.authorization_headers()
        headers.update(JSON_HEADERS)

        ctx = {k: v for k, v in get_log_context().items() if v}

        logger.debug(
            "API request starting",
            extra={
                **ctx,
                "api_method": spec.method,
                "api_url": url,
                "request_headers": mask_headers(headers),
                "has_body": spec.body is not None,
            },
        )

        start_time = time.perf_counter()
        response = await self.transport.send(spec.method, url, headers, spec.body)
        duration = time.perf_counter() - start_time

        error = self._classifier.classify(response.status, response.body)
        if error is not None:
            logger.warning(
                "API request failed",
                extra={
                    **ctx,
                    "api_method": spec.method,
                    "api_url": url,
                    "http_status": response.status,
                    "error_category": error.kind.value,
                    "error_message": error.message[:200],
                    "error_code": error.context.get("code"),
                    "duration_seconds": round(duration, 3),
                },
            )
            raise error

        slow = duration > SLOW_REQUEST_SECONDS
        logger.log(
            logging.INFO if slow else logging.DEBUG,
            "Slow API request" if slow else "API request succeeded",
            extra={
                **ctx,
                "api_method": spec.method,
                "api_url": url,
                "http_status": response.status,
                "response_bytes": len(response.body),
                "duration_seconds": round(duration, 3),
            },
        )
        return response.body

    async def get_json(
        self, spec: RequestSpec, model: type[ModelT] | None = None
    ) -> Any:
        """
        Execute and decode the JSON body.

        Args:
            spec: Request to send
            model: Optional pydantic model to validate into

        Returns:
            Decoded JSON (None for an empty body) or a model instance

        Raises:
            ClassifiedError: SERIALIZATION when the body is not valid JSON
                or does not match the model, plus everything execute() raises
        """
        body = await self.execute(spec)
        return decode_json(body, model)

    async def post_json(
        self, path: str, body: Any, model: type[ModelT] | None = None
    ) -> Any:
        return await self.get_json(RequestSpec(path, method="POST", body=body), model)


def decode_json(body: bytes, model: type[ModelT] | None = None) -> Any:
    if not body.strip():
        if model is not None:
            raise serialization_error(f"Empty response body, expected {model.__name__}")
        return None

    try:
        data = json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise serialization_error(f"Invalid JSON response: {e}", cause=e) from e

    if model is None:
        return data

    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise serialization_error(
            f"Response does not match {model.__name__}: {e.error_count()} validation errors",
            cause=e,
        ) from e


__all__ = [
    "RequestSpec",
    "RequestPipeline",
    "STOREFRONT_PLACEHOLDER",
    "JSON_HEADERS",
    "decode_json",
]
