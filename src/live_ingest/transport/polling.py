"""
Polling transport: YouTube Data API v3 live chat over HTTPS with OAuth2.
"""

from __future__ import annotations

import asyncio
import json
import threading
import time
from typing import Any, Dict, Optional

import httpx
from loguru import logger

from ..errors import (
    AuthenticationError,
    IngestError,
    QuotaExceededError,
    StreamUnavailableError,
    TransportError,
)
from ..message_queue import CrossThreadMessageQueue
from .background_loop import BackgroundLoop
from .base import DisconnectReason, TransportAdapter
from .oauth import OAuthManager


DEFAULT_API_BASE_URL = "https://www.googleapis.com/youtube/v3"

QUOTA_REASONS = {"quotaExceeded", "rateLimitExceeded", "dailyLimitExceeded", "userRateLimitExceeded"}
ENDED_REASONS = {"liveChatEnded", "liveChatDisabled", "liveChatNotFound", "videoNotFound"}


def _error_reason(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return ""
    if not isinstance(body, dict):
        return ""
    error = body.get("error", {})
    if not isinstance(error, dict):
        return str(error)
    errors = error.get("errors") or []
    if errors and isinstance(errors[0], dict):
        return errors[0].get("reason", "")
    return error.get("status", "")


class PollingTransport(TransportAdapter):
    """
    Timer-driven chat polling.

    One connect resolves the video's live chat id, then runs three loops on
    the network thread: the message poll (cursor + server-suggested
    interval, pausable), the like-count poll and the proactive token refresh.
    Each chat item and each video resource is pushed into the queue as JSON.
    """

    def __init__(
        self,
        queue: CrossThreadMessageQueue,
        loop: BackgroundLoop,
        oauth: OAuthManager,
        api_base_url: str = DEFAULT_API_BASE_URL,
        poll_interval: float = 12.0,
        like_poll_interval: float = 30.0,
        request_timeout: float = 10.0,
        max_consecutive_failures: int = 3,
        skip_initial_backlog: bool = True,
        http_transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(queue, loop, tag="[YouTube]")
        self.oauth = oauth
        self.api_base_url = api_base_url.rstrip("/")
        self.default_poll_interval = poll_interval
        self.like_poll_interval = like_poll_interval
        self.request_timeout = request_timeout
        self.max_consecutive_failures = max_consecutive_failures
        self.skip_initial_backlog = skip_initial_backlog
        self._http_transport = http_transport
        self._ingestion_enabled = threading.Event()
        self._ingestion_enabled.set()
        self.poll_interval = poll_interval

    def set_ingestion_enabled(self, enabled: bool) -> None:
        """Pause or resume message polling. The like poll keeps running."""
        if enabled == self._ingestion_enabled.is_set():
            return
        if enabled:
            self._ingestion_enabled.set()
        else:
            self._ingestion_enabled.clear()
        logger.info(f"{self.tag} Chat polling {'resumed' if enabled else 'paused'}")

    @property
    def ingestion_enabled(self) -> bool:
        return self._ingestion_enabled.is_set()

    async def _request(
        self, client: httpx.AsyncClient, path: str, params: Dict[str, Any]
    ) -> Dict[str, Any]:
        """
        Authenticated GET. A 401 triggers one token refresh and one retry.

        Raises:
            AuthenticationError: Credentials rejected after refresh
            QuotaExceededError: Quota or rate limit hit
            StreamUnavailableError: Chat or video missing or ended
            TransportError: Network failure or server error
        """
        for attempt in range(2):
            token = await self.oauth.ensure_access_token()
            try:
                response = await client.get(
                    f"{self.api_base_url}/{path}",
                    params=params,
                    headers={"Authorization": f"Bearer {token}"},
                )
            except httpx.HTTPError as e:
                raise TransportError(f"{path} request failed: {e}") from e

            if response.status_code == 401 and attempt == 0:
                logger.info(f"{self.tag} Access token rejected, refreshing")
                self.oauth.invalidate()
                continue
            break

        status = response.status_code
        if status < 400:
            return response.json()

        reason = _error_reason(response)
        if status == 401:
            raise AuthenticationError("Access token rejected after refresh; re-authorize")
        if reason in QUOTA_REASONS or status == 429:
            raise QuotaExceededError(f"API quota exceeded ({reason or status})")
        if reason in ENDED_REASONS or status == 404:
            raise StreamUnavailableError(f"Live chat unavailable ({reason or status})")
        if status == 403:
            raise AuthenticationError(
                f"Access forbidden ({reason or status}); check API access and scopes"
            )
        raise TransportError(f"{path} returned HTTP {status} {reason}".strip(), status_code=status)

    async def fetch_live_chat_id(self, client: httpx.AsyncClient, video_id: str) -> str:
        data = await self._request(
            client, "videos", {"part": "liveStreamingDetails", "id": video_id}
        )
        items = data.get("items") or []
        if not items:
            raise StreamUnavailableError(f"Video {video_id} not found")
        video = items[0]
        live_chat_id = (video.get("liveStreamingDetails") or {}).get("activeLiveChatId")
        if not live_chat_id:
            raise StreamUnavailableError(f"Stream {video_id} has not started or has no live chat")
        # The video resource doubles as the connection acknowledgement
        self.queue.put(json.dumps(video, ensure_ascii=False))
        return live_chat_id

    async def poll_messages(
        self, client: httpx.AsyncClient, live_chat_id: str, page_token: Optional[str]
    ) -> Dict[str, Any]:
        params = {"liveChatId": live_chat_id, "part": "snippet,authorDetails"}
        if page_token:
            params["pageToken"] = page_token
        data = await self._request(client, "liveChat/messages", params)

        interval_ms = data.get("pollingIntervalMillis")
        if isinstance(interval_ms, (int, float)) and interval_ms > 0:
            self.poll_interval = interval_ms / 1000.0
        return data

    async def poll_likes(self, client: httpx.AsyncClient, video_id: str) -> None:
        data = await self._request(client, "videos", {"part": "statistics", "id": video_id})
        items = data.get("items") or []
        if items:
            self.queue.put(json.dumps(items[0], ensure_ascii=False))

    async def _run(self, credentials: str, reconnect: bool, cancel: threading.Event):
        video_id = credentials
        self.poll_interval = self.default_poll_interval
        try:
            if not self.oauth.has_client_credentials:
                raise AuthenticationError("YouTube OAuth client id/secret not configured")
            if not self.oauth.is_authorized:
                raise AuthenticationError("YouTube authorization required (run with --authorize)")

            async with httpx.AsyncClient(
                transport=self._http_transport, timeout=self.request_timeout
            ) as client:
                live_chat_id = await self.fetch_live_chat_id(client, video_id)
                logger.info(f"{self.tag} Live chat found for {video_id}: {live_chat_id}")

                helpers = [
                    asyncio.create_task(self._like_loop(client, video_id, cancel)),
                    asyncio.create_task(self._refresh_loop(cancel)),
                ]
                try:
                    await self._chat_loop(client, live_chat_id, cancel)
                finally:
                    for task in helpers:
                        task.cancel()
                    await asyncio.gather(*helpers, return_exceptions=True)
        except AuthenticationError as e:
            self.report_disconnected(cancel, DisconnectReason.AUTH, str(e))
        except QuotaExceededError as e:
            self.report_disconnected(cancel, DisconnectReason.QUOTA, str(e))
        except StreamUnavailableError as e:
            self.report_disconnected(cancel, DisconnectReason.FATAL, str(e))
        except TransportError as e:
            self.report_disconnected(cancel, DisconnectReason.TRANSIENT, str(e))

    async def _chat_loop(
        self, client: httpx.AsyncClient, live_chat_id: str, cancel: threading.Event
    ) -> None:
        page_token: Optional[str] = None
        first_page = True
        failures = 0

        while not cancel.is_set():
            if not self._ingestion_enabled.is_set():
                await asyncio.sleep(0.5)
                continue

            try:
                data = await self.poll_messages(client, live_chat_id, page_token)
            except TransportError as e:
                failures += 1
                logger.warning(
                    f"{self.tag} Poll failed ({failures}/{self.max_consecutive_failures}): {e}"
                )
                if failures >= self.max_consecutive_failures:
                    raise
                await asyncio.sleep(self.poll_interval)
                continue

            failures = 0
            page_token = data.get("nextPageToken") or page_token
            items = data.get("items") or []

            if first_page and self.skip_initial_backlog:
                if items:
                    logger.debug(f"{self.tag} Skipped {len(items)} backlog messages")
            else:
                for item in items:
                    self.queue.put(json.dumps(item, ensure_ascii=False))
            first_page = False

            await asyncio.sleep(self.poll_interval)

    async def _like_loop(
        self, client: httpx.AsyncClient, video_id: str, cancel: threading.Event
    ) -> None:
        while not cancel.is_set():
            try:
                await self.poll_likes(client, video_id)
            except QuotaExceededError as e:
                logger.warning(f"{self.tag} Like polling stopped: {e}")
                return
            except IngestError as e:
                logger.warning(f"{self.tag} Like poll failed: {e}")
            await asyncio.sleep(self.like_poll_interval)

    async def _refresh_loop(self, cancel: threading.Event) -> None:
        while not cancel.is_set():
            delay = self.oauth.expires_at - self.oauth.refresh_margin - time.time()
            if delay > 0:
                await asyncio.sleep(min(delay, 60.0))
                continue
            try:
                await self.oauth.refresh_access_token()
            except AuthenticationError as e:
                self.report_disconnected(cancel, DisconnectReason.AUTH, str(e))
                cancel.set()
                return
            except TransportError as e:
                logger.warning(f"{self.tag} Token refresh failed, retrying: {e}")
                await asyncio.sleep(5.0)
