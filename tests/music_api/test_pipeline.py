"""Tests for the authenticated request pipeline."""

import logging

import pytest
from pydantic import BaseModel

from core.auth.credentials import CredentialSet
from core.errors.exceptions import ClassifiedError, ErrorKind, timeout_error
from music_api.pipeline import RequestPipeline, RequestSpec, decode_json
from music_api.transport import TransportResponse


BASE_URL = "https://api.music.apple.com"


class Album(BaseModel):
    id: str
    type: str


@pytest.fixture
def transport(fake_transport):
    return fake_transport


@pytest.fixture
def pipeline(transport):
    return RequestPipeline(
        BASE_URL,
        CredentialSet.static("dev-token"),
        transport,
        storefront="us",
    )


class TestBuildUrl:
    """Tests for URL resolution and query encoding."""

    def test_storefront_substituted(self, pipeline):
        url = pipeline.build_url(RequestSpec("v1/catalog/{storefront}/albums/310730204"))
        assert url == "https://api.music.apple.com/v1/catalog/us/albums/310730204"

    def test_leading_slash_tolerated(self, pipeline):
        url = pipeline.build_url(RequestSpec("/v1/storefronts"))
        assert url == "https://api.music.apple.com/v1/storefronts"

    def test_params_encoded_in_order(self, pipeline):
        spec = RequestSpec(
            "v1/catalog/{storefront}/search",
            params=[("term", "daft punk & co"), ("types", "songs,albums"), ("term", "x")],
        )
        assert pipeline.build_url(spec) == (
            "https://api.music.apple.com/v1/catalog/us/search"
            "?term=daft%20punk%20%26%20co&types=songs%2Calbums&term=x"
        )

    def test_params_appended_to_existing_query(self, pipeline):
        spec = RequestSpec("v1/catalog/{storefront}/songs?ids=1,2", params=[("l", "en")])
        assert pipeline.build_url(spec).endswith("/songs?ids=1,2&l=en")

    def test_trailing_slash_in_base_url(self, transport):
        pipeline = RequestPipeline(BASE_URL + "/", CredentialSet.static("t"), transport)
        assert pipeline.build_url(RequestSpec("v1/storefronts")) == BASE_URL + "/v1/storefronts"

    def test_missing_storefront_rejected(self, transport):
        pipeline = RequestPipeline(BASE_URL, CredentialSet.static("t"), transport)
        with pytest.raises(ClassifiedError) as exc_info:
            pipeline.build_url(RequestSpec("v1/catalog/{storefront}/albums/1"))
        assert exc_info.value.kind == ErrorKind.INVALID_REQUEST
        assert "Storefront is required" in exc_info.value.message

    def test_path_without_placeholder_needs_no_storefront(self, transport):
        pipeline = RequestPipeline(BASE_URL, CredentialSet.static("t"), transport)
        assert pipeline.build_url(RequestSpec("v1/storefronts")).endswith("/v1/storefronts")


class TestExecute:
    """Tests for RequestPipeline.execute."""

    @pytest.mark.asyncio
    async def test_success_returns_body(self, pipeline, transport):
        transport.queue(TransportResponse(200, b'{"data": []}'))

        body = await pipeline.execute(RequestSpec("v1/catalog/{storefront}/albums/310730204"))

        assert body == b'{"data": []}'
        assert len(transport.calls) == 1
        call = transport.calls[0]
        assert call.method == "GET"
        assert call.url == "https://api.music.apple.com/v1/catalog/us/albums/310730204"
        assert call.headers == {
            "Authorization": "Bearer dev-token",
            "Accept": "application/json",
            "Content-Type": "application/json",
        }
        assert call.body is None

    @pytest.mark.asyncio
    async def test_user_token_header_sent_when_set(self, transport):
        credentials = CredentialSet.static("dev-token", secondary="user-token")
        pipeline = RequestPipeline(BASE_URL, credentials, transport, storefront="us")
        transport.queue(TransportResponse(200, b"{}"))

        await pipeline.execute(RequestSpec("v1/me/library/songs"))

        assert transport.calls[0].headers["Music-User-Token"] == "user-token"

    @pytest.mark.asyncio
    async def test_not_found_envelope(self, pipeline, transport, error_body):
        transport.queue(
            TransportResponse(404, error_body("Resource Not Found", "404", "40400", "Not Found"))
        )

        with pytest.raises(ClassifiedError) as exc_info:
            await pipeline.execute(RequestSpec("v1/catalog/{storefront}/albums/0"))

        error = exc_info.value
        assert error.kind == ErrorKind.API_ERROR
        assert error.status == 404
        assert error.message == "Resource Not Found"
        assert error.is_retryable is False
        assert error.context["code"] == "40400"

    @pytest.mark.asyncio
    async def test_non_envelope_error_body(self, pipeline, transport):
        transport.queue(TransportResponse(500, b"upstream exploded"))

        with pytest.raises(ClassifiedError) as exc_info:
            await pipeline.execute(RequestSpec("v1/storefronts"))

        assert exc_info.value.status == 500
        assert exc_info.value.message == "upstream exploded"

    @pytest.mark.asyncio
    async def test_failure_logged_as_warning(self, pipeline, transport, caplog):
        transport.queue(TransportResponse(401, b""))

        with caplog.at_level(logging.WARNING, logger="music_api.pipeline"):
            with pytest.raises(ClassifiedError):
                await pipeline.execute(RequestSpec("v1/storefronts"))

        record = caplog.records[-1]
        assert record.message == "API request failed"
        assert record.http_status == 401
        assert record.error_category == "api_error"

    @pytest.mark.asyncio
    async def test_debug_log_masks_credentials(self, transport, caplog):
        credentials = CredentialSet.static("dev-token", secondary="user-token")
        pipeline = RequestPipeline(BASE_URL, credentials, transport, storefront="us")
        transport.queue(TransportResponse(200, b"{}"))

        with caplog.at_level(logging.DEBUG, logger="music_api.pipeline"):
            await pipeline.execute(RequestSpec("v1/me/library/songs"))

        starting = next(r for r in caplog.records if r.message == "API request starting")
        assert starting.request_headers["Authorization"] == "[REDACTED]"
        assert starting.request_headers["Music-User-Token"] == "[REDACTED]"
        assert "dev-token" not in caplog.text
        assert "user-token" not in caplog.text

    @pytest.mark.asyncio
    async def test_transport_error_propagates(self, pipeline, transport):
        transport.queue(timeout_error("Request timed out"))

        with pytest.raises(ClassifiedError) as exc_info:
            await pipeline.execute(RequestSpec("v1/storefronts"))

        assert exc_info.value.kind == ErrorKind.TIMEOUT

    @pytest.mark.asyncio
    async def test_invalid_request_before_io(self, transport):
        pipeline = RequestPipeline(BASE_URL, CredentialSet.static("t"), transport)

        with pytest.raises(ClassifiedError):
            await pipeline.execute(RequestSpec("v1/catalog/{storefront}/songs/1"))

        assert transport.calls == []

    @pytest.mark.asyncio
    async def test_post_sends_body(self, pipeline, transport):
        transport.queue(TransportResponse(202, b""))

        result = await pipeline.post_json("v1/me/library", {"ids": ["1"], "type": "songs"})

        assert result is None
        assert transport.calls[0].method == "POST"
        assert transport.calls[0].body == {"ids": ["1"], "type": "songs"}


class TestGetJson:
    @pytest.mark.asyncio
    async def test_decodes_into_model(self, pipeline, transport):
        transport.queue(TransportResponse(200, b'{"id": "1", "type": "albums"}'))

        album = await pipeline.get_json(RequestSpec("v1/catalog/{storefront}/albums/1"), Album)

        assert album == Album(id="1", type="albums")

    @pytest.mark.asyncio
    async def test_decodes_to_dict(self, pipeline, transport):
        transport.queue(TransportResponse(200, b'{"data": [{"id": "1"}]}'))
        result = await pipeline.get_json(RequestSpec("v1/storefronts"))
        assert result == {"data": [{"id": "1"}]}


class TestDecodeJson:
    """Tests for decode_json."""

    def test_empty_body_without_model(self):
        assert decode_json(b"") is None
        assert decode_json(b"  \n") is None

    def test_empty_body_with_model(self):
        with pytest.raises(ClassifiedError) as exc_info:
            decode_json(b"", Album)
        assert exc_info.value.kind == ErrorKind.SERIALIZATION

    def test_invalid_json(self):
        with pytest.raises(ClassifiedError) as exc_info:
            decode_json(b"{not json")
        assert exc_info.value.kind == ErrorKind.SERIALIZATION
        assert exc_info.value.is_retryable is False

    def test_invalid_utf8(self):
        with pytest.raises(ClassifiedError) as exc_info:
            decode_json(b"\xff\xfe{")
        assert exc_info.value.kind == ErrorKind.SERIALIZATION

    def test_model_mismatch(self):
        with pytest.raises(ClassifiedError) as exc_info:
            decode_json(b'{"id": "1"}', Album)
        assert exc_info.value.kind == ErrorKind.SERIALIZATION
        assert "Album" in exc_info.value.message
