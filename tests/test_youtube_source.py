"""Tests for the YouTube Data API video source."""

from datetime import UTC, datetime

import httpx
import pytest

from outlier_scout.adapters.video_source.base import VideoSourceError
from outlier_scout.adapters.video_source.stub import StubVideoSource
from outlier_scout.adapters.video_source.youtube import (
    YouTubeAPIError,
    YouTubeErrorType,
    YouTubeVideoSource,
    parse_iso_duration,
    parse_youtube_error,
)

BASE_URL = "https://youtube.test/v3"


def _error_body(reason: str, message: str = "Error") -> dict:
    return {"error": {"code": 403, "message": message, "errors": [{"reason": reason}]}}


def _source(handler, max_retries: int = 3) -> YouTubeVideoSource:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return YouTubeVideoSource(
        "test-key",
        base_url=BASE_URL,
        client=client,
        max_retries=max_retries,
        retry_base_delay=0,
    )


def _video_item(video_id: str, views: str = "1000") -> dict:
    return {
        "id": video_id,
        "snippet": {
            "title": f"Title {video_id}",
            "publishedAt": "2026-03-09T12:00:00Z",
            "thumbnails": {
                "default": {"url": f"https://i.ytimg.com/vi/{video_id}/default.jpg"},
                "high": {"url": f"https://i.ytimg.com/vi/{video_id}/hqdefault.jpg"},
            },
        },
        "statistics": {"viewCount": views, "likeCount": "50", "commentCount": "5"},
        "contentDetails": {"duration": "PT12M30S"},
    }


@pytest.mark.parametrize(
    ("status_code", "body", "error_type", "retryable"),
    [
        (403, _error_body("quotaExceeded"), YouTubeErrorType.QUOTA_EXCEEDED, False),
        (403, _error_body("dailyLimitExceeded"), YouTubeErrorType.QUOTA_EXCEEDED, False),
        (403, _error_body("rateLimitExceeded"), YouTubeErrorType.RATE_LIMIT, True),
        (403, _error_body("accessNotConfigured"), YouTubeErrorType.FORBIDDEN, False),
        (403, _error_body("keyInvalid"), YouTubeErrorType.INVALID_API_KEY, False),
        (401, None, YouTubeErrorType.INVALID_API_KEY, False),
        (404, {"error": {"message": "Video not found"}}, YouTubeErrorType.VIDEO_NOT_FOUND, False),
        (
            404,
            {"error": {"message": "Playlist not found"}},
            YouTubeErrorType.CHANNEL_NOT_FOUND,
            False,
        ),
        (400, {"error": {"message": "Bad id"}}, YouTubeErrorType.UNKNOWN, False),
        (503, None, YouTubeErrorType.NETWORK_ERROR, True),
        (418, None, YouTubeErrorType.UNKNOWN, False),
    ],
)
def test_parse_youtube_error(status_code, body, error_type, retryable) -> None:
    error = parse_youtube_error(status_code, body)

    assert error.error_type == error_type
    assert error.retryable is retryable
    assert error.status_code == status_code
    assert error.user_message


def test_parse_iso_duration() -> None:
    assert parse_iso_duration("PT12M30S") == 750
    assert parse_iso_duration("PT1H") == 3600
    assert parse_iso_duration("P1DT2S") == 86402
    assert parse_iso_duration("garbage") == 0
    assert parse_iso_duration(None) == 0


def test_api_key_required() -> None:
    with pytest.raises(ValueError):
        YouTubeVideoSource("")


@pytest.mark.asyncio
async def test_fetch_channel_stats() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/v3/channels"
        assert request.url.params["key"] == "test-key"
        assert request.url.params["id"] == "UCabc"
        return httpx.Response(
            200,
            json={
                "items": [
                    {
                        "snippet": {"title": "Some Channel"},
                        "statistics": {
                            "subscriberCount": "1200",
                            "videoCount": "40",
                            "viewCount": "400000",
                        },
                    }
                ]
            },
        )

    source = _source(handler)
    stats = await source.fetch_channel_stats("UCabc")
    await source.close()

    assert stats.title == "Some Channel"
    assert stats.subscriber_count == 1200
    assert stats.total_videos == 40
    assert stats.avg_views_hint == pytest.approx(10_000)


@pytest.mark.asyncio
async def test_fetch_channel_stats_unknown_channel() -> None:
    source = _source(lambda request: httpx.Response(200, json={"items": []}))

    assert await source.fetch_channel_stats("UCnope") is None


@pytest.mark.asyncio
async def test_fetch_latest_videos() -> None:
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        if request.url.path == "/v3/playlistItems":
            assert request.url.params["playlistId"] == "UUabc"
            assert request.url.params["maxResults"] == "3"
            return httpx.Response(
                200,
                json={
                    "items": [
                        {"snippet": {"resourceId": {"videoId": vid}}}
                        for vid in ("v1", "gone", "v2")
                    ]
                },
            )
        assert request.url.path == "/v3/videos"
        assert request.url.params["id"] == "v1,gone,v2"
        return httpx.Response(200, json={"items": [_video_item("v2", "20"), _video_item("v1")]})

    source = _source(handler)
    videos = await source.fetch_latest_videos("UCabc", 3)

    assert [v.id for v in videos] == ["v1", "v2"]
    first = videos[0]
    assert first.views == 1000
    assert first.likes == 50
    assert first.comments == 5
    assert first.duration_seconds == 750
    assert first.published_at == datetime(2026, 3, 9, 12, tzinfo=UTC)
    assert first.thumbnail_url == "https://i.ytimg.com/vi/v1/hqdefault.jpg"
    assert len(requests) == 2


@pytest.mark.asyncio
async def test_fetch_latest_videos_empty_playlist() -> None:
    source = _source(lambda request: httpx.Response(200, json={"items": []}))

    assert await source.fetch_latest_videos("UCabc", 5) == []


@pytest.mark.asyncio
async def test_malformed_video_payload() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/v3/playlistItems":
            return httpx.Response(
                200, json={"items": [{"snippet": {"resourceId": {"videoId": "v1"}}}]}
            )
        return httpx.Response(200, json={"items": [{"id": "v1", "snippet": {"title": "x"}}]})

    source = _source(handler)

    with pytest.raises(VideoSourceError):
        await source.fetch_latest_videos("UCabc", 5)


@pytest.mark.asyncio
async def test_non_uc_channel_resolves_uploads_playlist() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/v3/channels":
            return httpx.Response(
                200,
                json={"items": [{"contentDetails": {"relatedPlaylists": {"uploads": "UUxyz"}}}]},
            )
        assert request.url.params["playlistId"] == "UUxyz"
        return httpx.Response(200, json={"items": []})

    source = _source(handler)

    assert await source.fetch_latest_videos("HCxyz", 5) == []


@pytest.mark.asyncio
async def test_quota_error_is_not_retried() -> None:
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(403, json=_error_body("quotaExceeded"))

    source = _source(handler)

    with pytest.raises(YouTubeAPIError) as exc_info:
        await source.fetch_channel_stats("UCabc")

    assert exc_info.value.error_type == YouTubeErrorType.QUOTA_EXCEEDED
    assert len(calls) == 1


@pytest.mark.asyncio
async def test_server_errors_are_retried() -> None:
    responses = [httpx.Response(503), httpx.Response(500), httpx.Response(200, json={"items": []})]

    source = _source(lambda request: responses.pop(0))

    assert await source.fetch_channel_stats("UCabc") is None
    assert responses == []


@pytest.mark.asyncio
async def test_retries_are_bounded() -> None:
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        raise httpx.ConnectError("down", request=request)

    source = _source(handler, max_retries=2)

    with pytest.raises(YouTubeAPIError) as exc_info:
        await source.fetch_channel_stats("UCabc")

    assert exc_info.value.error_type == YouTubeErrorType.NETWORK_ERROR
    assert len(calls) == 3


@pytest.mark.asyncio
async def test_stub_source_is_deterministic() -> None:
    now = datetime(2026, 3, 10, 12, tzinfo=UTC)
    source = StubVideoSource(now=now)

    first = await source.fetch_latest_videos("UCstub123456", 4)
    second = await source.fetch_latest_videos("UCstub123456", 4)
    stats = await source.fetch_channel_stats("UCstub123456")

    assert first == second
    assert len(first) == 4
    assert all(v.published_at < now for v in first)
    assert stats.total_videos > 0
    assert await source.health_check() is True
