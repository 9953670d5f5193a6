"""YouTube video source using the Data API v3."""

import asyncio
import re
from datetime import datetime
from enum import StrEnum
from typing import Any

import httpx

from outlier_scout.adapters.video_source.base import (
    ChannelStats,
    VideoMetadata,
    VideoSourceAdapter,
    VideoSourceError,
)
from outlier_scout.logging import get_logger

logger = get_logger(__name__)

YOUTUBE_API_URL = "https://www.googleapis.com/youtube/v3"

_ISO_DURATION = re.compile(
    r"^P(?:(?P<days>\d+)D)?(?:T(?:(?P<hours>\d+)H)?(?:(?P<minutes>\d+)M)?(?:(?P<seconds>\d+)S)?)?$"
)


class YouTubeErrorType(StrEnum):
    """Classification of YouTube Data API failures."""

    QUOTA_EXCEEDED = "quota_exceeded"
    RATE_LIMIT = "rate_limit"
    INVALID_API_KEY = "invalid_api_key"
    FORBIDDEN = "forbidden"
    VIDEO_NOT_FOUND = "video_not_found"
    CHANNEL_NOT_FOUND = "channel_not_found"
    NETWORK_ERROR = "network_error"
    UNKNOWN = "unknown"


class YouTubeAPIError(VideoSourceError):
    """A classified YouTube Data API error."""

    def __init__(
        self,
        error_type: YouTubeErrorType,
        message: str,
        user_message: str,
        status_code: int | None = None,
        retryable: bool = False,
    ) -> None:
        super().__init__(message, retryable=retryable)
        self.error_type = error_type
        self.user_message = user_message
        self.status_code = status_code


def parse_youtube_error(status_code: int, body: dict[str, Any] | None) -> YouTubeAPIError:
    """Classify an error response from the Data API.

    Args:
        status_code: HTTP status code.
        body: Decoded JSON body, if any.

    Returns:
        The matching YouTubeAPIError.
    """
    error = (body or {}).get("error") or {}
    message = error.get("message") or f"HTTP {status_code}"
    errors = error.get("errors") or []
    reason = errors[0].get("reason") if errors else None

    if status_code == 403:
        if reason in ("quotaExceeded", "dailyLimitExceeded"):
            return YouTubeAPIError(
                YouTubeErrorType.QUOTA_EXCEEDED,
                "YouTube API quota exceeded",
                "Daily API quota limit reached. Quota resets at midnight Pacific Time.",
                status_code,
            )
        if reason in ("rateLimitExceeded", "userRateLimitExceeded"):
            return YouTubeAPIError(
                YouTubeErrorType.RATE_LIMIT,
                "Rate limit exceeded",
                "Too many requests in a short time. Wait a few minutes before trying again.",
                status_code,
                retryable=True,
            )
        if reason in ("forbidden", "accessNotConfigured"):
            return YouTubeAPIError(
                YouTubeErrorType.FORBIDDEN,
                "API access forbidden",
                "YouTube Data API is not enabled for this API key.",
                status_code,
            )
        return YouTubeAPIError(
            YouTubeErrorType.INVALID_API_KEY,
            "Invalid API key",
            "API key is invalid or lacks required permissions.",
            status_code,
        )

    if status_code == 400:
        return YouTubeAPIError(
            YouTubeErrorType.UNKNOWN,
            message,
            "Invalid request. Check that the channel or video ID is correct.",
            status_code,
        )

    if status_code == 404:
        lowered = message.lower()
        if "video" in lowered:
            return YouTubeAPIError(
                YouTubeErrorType.VIDEO_NOT_FOUND,
                "Video not found",
                "The requested video could not be found.",
                status_code,
            )
        if "channel" in lowered or "playlist" in lowered:
            return YouTubeAPIError(
                YouTubeErrorType.CHANNEL_NOT_FOUND,
                "Channel not found",
                "The requested channel could not be found.",
                status_code,
            )
        return YouTubeAPIError(
            YouTubeErrorType.UNKNOWN,
            "Resource not found",
            "The requested resource could not be found.",
            status_code,
        )

    if status_code == 401:
        return YouTubeAPIError(
            YouTubeErrorType.INVALID_API_KEY,
            "Authentication failed",
            "API key is missing or invalid.",
            status_code,
        )

    if status_code >= 500:
        return YouTubeAPIError(
            YouTubeErrorType.NETWORK_ERROR,
            "YouTube server error",
            "YouTube servers are experiencing issues. Try again in a few minutes.",
            status_code,
            retryable=True,
        )

    return YouTubeAPIError(
        YouTubeErrorType.UNKNOWN,
        message,
        f"An unexpected error occurred: {message}",
        status_code,
    )


def parse_iso_duration(value: str | None) -> int:
    """Convert an ISO 8601 duration (PT1H2M3S) to seconds; 0 when unparseable."""
    if not value:
        return 0
    match = _ISO_DURATION.match(value)
    if not match:
        return 0
    parts = {k: int(v) for k, v in match.groupdict().items() if v}
    return (
        parts.get("days", 0) * 86400
        + parts.get("hours", 0) * 3600
        + parts.get("minutes", 0) * 60
        + parts.get("seconds", 0)
    )


def _parse_published_at(value: str) -> datetime:
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def _best_thumbnail(thumbnails: dict[str, Any]) -> str | None:
    for size in ("maxres", "high", "medium", "default"):
        if size in thumbnails:
            return thumbnails[size].get("url")
    return None


class YouTubeVideoSource(VideoSourceAdapter):
    """Fetches channel statistics and latest uploads from the YouTube Data API.

    Calls used:
    - channels.list (statistics, snippet) for channel stats
    - playlistItems.list on the uploads playlist, then videos.list for counters
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = YOUTUBE_API_URL,
        client: httpx.AsyncClient | None = None,
        max_retries: int = 3,
        retry_base_delay: float = 1.0,
    ) -> None:
        """Initialize the source.

        Args:
            api_key: YouTube Data API key.
            base_url: API base URL (overridable for tests).
            client: Optional preconfigured HTTP client.
            max_retries: Retries for retryable errors (rate limit, 5xx, network).
            retry_base_delay: First backoff delay in seconds, doubled per attempt.
        """
        if not api_key:
            raise ValueError("YouTube API key is required")
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.max_retries = max_retries
        self.retry_base_delay = retry_base_delay
        self._client = client

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=30)
        return self._client

    async def _get(self, resource: str, params: dict[str, Any]) -> dict[str, Any]:
        """GET a Data API resource with exponential backoff on retryable errors."""
        client = await self._get_client()
        url = f"{self.base_url}/{resource}"
        query = {**params, "key": self.api_key}

        attempt = 0
        while True:
            try:
                response = await client.get(url, params=query)
            except httpx.RequestError as e:
                error = YouTubeAPIError(
                    YouTubeErrorType.NETWORK_ERROR,
                    f"Network error: {e}",
                    "Network connection failed. Check your internet connection.",
                    retryable=True,
                )
            else:
                if response.status_code == 200:
                    return response.json()
                try:
                    body = response.json()
                except ValueError:
                    body = None
                error = parse_youtube_error(response.status_code, body)
                logger.error(
                    "youtube_api_error",
                    resource=resource,
                    status=response.status_code,
                    error_type=error.error_type,
                    body=response.text[:500],
                )

            if not error.retryable or attempt >= self.max_retries:
                raise error

            delay = self.retry_base_delay * (2**attempt)
            attempt += 1
            logger.warning(
                "youtube_api_retry",
                resource=resource,
                attempt=attempt,
                max_retries=self.max_retries,
                delay_seconds=delay,
            )
            await asyncio.sleep(delay)

    async def fetch_channel_stats(self, channel_id: str) -> ChannelStats | None:
        """Fetch lifetime statistics via channels.list.

        Args:
            channel_id: The YouTube channel ID (UC...).

        Returns:
            ChannelStats, or None if the channel does not exist.
        """
        data = await self._get("channels", {"part": "statistics,snippet", "id": channel_id})
        items = data.get("items") or []
        if not items:
            return None

        item = items[0]
        stats = item.get("statistics", {})
        return ChannelStats(
            channel_id=channel_id,
            subscriber_count=int(stats.get("subscriberCount", 0)),
            total_videos=int(stats.get("videoCount", 0)),
            view_count=int(stats.get("viewCount", 0)),
            title=item.get("snippet", {}).get("title"),
            raw_data=stats,
        )

    async def _uploads_playlist_id(self, channel_id: str) -> str:
        """Resolve a channel's uploads playlist."""
        if channel_id.startswith("UC"):
            return "UU" + channel_id[2:]

        data = await self._get("channels", {"part": "contentDetails", "id": channel_id})
        items = data.get("items") or []
        uploads = (
            items[0].get("contentDetails", {}).get("relatedPlaylists", {}).get("uploads")
            if items
            else None
        )
        if not uploads:
            raise YouTubeAPIError(
                YouTubeErrorType.CHANNEL_NOT_FOUND,
                f"Could not find uploads playlist for {channel_id}",
                "The requested channel could not be found.",
            )
        return str(uploads)

    async def fetch_latest_videos(self, channel_id: str, limit: int) -> list[VideoMetadata]:
        """Fetch the latest uploads with current counters.

        Args:
            channel_id: The YouTube channel ID.
            limit: Maximum number of videos (capped at 50 by the API).

        Returns:
            Videos in upload order, newest first.
        """
        playlist_id = await self._uploads_playlist_id(channel_id)
        playlist = await self._get(
            "playlistItems",
            {"part": "snippet", "playlistId": playlist_id, "maxResults": min(limit, 50)},
        )
        video_ids = [
            item["snippet"]["resourceId"]["videoId"]
            for item in playlist.get("items", [])
            if item.get("snippet", {}).get("resourceId", {}).get("videoId")
        ]
        if not video_ids:
            return []

        data = await self._get(
            "videos",
            {"part": "statistics,snippet,contentDetails", "id": ",".join(video_ids)},
        )

        by_id = {item["id"]: item for item in data.get("items", [])}
        videos = []
        for video_id in video_ids:
            item = by_id.get(video_id)
            if item is None:
                # Private or deleted since the playlist was listed
                continue
            snippet = item.get("snippet", {})
            stats = item.get("statistics", {})
            try:
                videos.append(
                    VideoMetadata(
                        id=video_id,
                        title=snippet.get("title", ""),
                        published_at=_parse_published_at(snippet["publishedAt"]),
                        views=int(stats.get("viewCount", 0)),
                        likes=int(stats.get("likeCount", 0)),
                        comments=int(stats.get("commentCount", 0)),
                        thumbnail_url=_best_thumbnail(snippet.get("thumbnails", {})),
                        duration_seconds=parse_iso_duration(
                            item.get("contentDetails", {}).get("duration")
                        ),
                    )
                )
            except (KeyError, ValueError) as e:
                raise VideoSourceError(f"Malformed video payload for {video_id}: {e}") from e

        return videos

    async def health_check(self) -> bool:
        """The source is usable when an API key is configured."""
        return bool(self.api_key)

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None
