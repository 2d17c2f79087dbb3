"""Riot API adapter for Match-V5 over direct REST.

Provides:
- Match-V5 IDs by PUUID (paged)
- Match-V5 match detail

Every call is classified into a ``FetchOutcome`` (success / rate-limited /
error); nothing is retried here. One pooled ``aiohttp.ClientSession`` is kept
per event loop so connections to the regional host are reused.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any
from urllib.parse import quote

import aiohttp

from riftsync.config.settings import Settings
from riftsync.contracts import (
    FetchError,
    FetchOutcome,
    FetchRateLimited,
    FetchSuccess,
    parse_retry_after,
    regional_routing,
)
from riftsync.core.metrics import record_upstream
from riftsync.core.observability import trace_adapter
from riftsync.core.ports import RiotMatchPort

logger = logging.getLogger(__name__)

MAX_IDS_PER_PAGE = 100


class RiotAPIAdapter(RiotMatchPort):
    def __init__(
        self,
        api_key: str,
        *,
        platform: str = "na1",
        timeout_seconds: float = 8.0,
        pool_size: int = 128,
        keepalive_seconds: float = 10.0,
    ) -> None:
        self._api_key = api_key
        self._platform = platform
        self._region = regional_routing(platform).value
        self._timeout_seconds = timeout_seconds
        self._pool_size = pool_size
        self._keepalive_seconds = keepalive_seconds
        self._session: Any | None = None
        self._session_loop: asyncio.AbstractEventLoop | None = None
        logger.info(
            "Riot API adapter initialized",
            extra={"platform": platform, "region": self._region, "pool_size": pool_size},
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> RiotAPIAdapter:
        return cls(
            settings.riot_api_key,
            platform=settings.riot_platform,
            timeout_seconds=settings.riot_request_timeout_seconds,
            pool_size=settings.riot_pool_size,
            keepalive_seconds=settings.riot_keepalive_seconds,
        )

    @property
    def base_url(self) -> str:
        return f"https://{self._region}.api.riotgames.com"

    async def _ensure_session(self) -> Any:
        loop = asyncio.get_running_loop()
        needs_new_session = (
            self._session is None
            or getattr(self._session, "closed", True)
            or self._session_loop is None
            or self._session_loop is not loop
        )
        if needs_new_session:
            if self._session and not getattr(self._session, "closed", True):
                try:
                    await self._session.close()
                except (aiohttp.ClientError, RuntimeError):
                    logger.warning("Failed to close stale Riot API session", exc_info=True)
            connector = aiohttp.TCPConnector(
                limit=self._pool_size,
                keepalive_timeout=self._keepalive_seconds,
            )
            self._session = aiohttp.ClientSession(
                connector=connector,
                timeout=aiohttp.ClientTimeout(total=self._timeout_seconds),
            )
            self._session_loop = loop
        return self._session

    async def close(self) -> None:
        try:
            if self._session and not self._session.closed:
                await self._session.close()
        finally:
            self._session = None
            self._session_loop = None

    async def __aenter__(self) -> RiotAPIAdapter:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    @trace_adapter
    async def fetch(self, url: str, *, timeout_seconds: float | None = None) -> FetchOutcome:
        """GET ``url`` once with the API key header and classify the response."""
        total = timeout_seconds if timeout_seconds is not None else self._timeout_seconds
        headers = {"X-Riot-Token": self._api_key}
        try:
            session = await self._ensure_session()
            async with session.get(
                url, headers=headers, timeout=aiohttp.ClientTimeout(total=total)
            ) as resp:
                if resp.status == 429:
                    retry_after = parse_retry_after(resp.headers.get("Retry-After"))
                    logger.warning(
                        "Riot API rate limited",
                        extra={"url": url, "retry_after": retry_after},
                    )
                    return FetchRateLimited(retry_after_seconds=retry_after)
                if not 200 <= resp.status < 300:
                    body = await self._read_text(resp)
                    logger.error(f"Riot API error {resp.status} for {url}: {body[:200]}")
                    return FetchError(status_code=resp.status, body_text=body)
                try:
                    data = await resp.json(content_type=None)
                except ValueError as e:
                    logger.error(f"Malformed JSON from {url}: {e}")
                    return FetchError(status_code=resp.status, body_text=f"malformed JSON body: {e}")
                return FetchSuccess(payload=data)
        except TimeoutError:
            logger.warning(f"Riot API request timed out after {total}s: {url}")
            return FetchError(status_code=0, body_text=f"timed out after {total}s", timed_out=True)
        except aiohttp.ClientError as e:
            logger.warning(f"Riot API network failure for {url}: {e}")
            return FetchError(status_code=0, body_text=f"{type(e).__name__}: {e}")

    @staticmethod
    async def _read_text(resp: Any) -> str:
        try:
            return await resp.text()
        except (aiohttp.ClientError, UnicodeDecodeError, TimeoutError):
            return ""

    async def get_match_ids(self, puuid: str, *, start: int, count: int) -> FetchOutcome:
        count = max(1, min(count, MAX_IDS_PER_PAGE))
        url = (
            f"{self.base_url}/lol/match/v5/matches/by-puuid/{quote(puuid, safe='')}/ids"
            f"?start={max(0, start)}&count={count}"
        )
        outcome = await self.fetch(url)
        record_upstream("match_ids", outcome.kind)
        return outcome

    async def get_match_detail(self, match_id: str) -> FetchOutcome:
        url = f"{self.base_url}/lol/match/v5/matches/{quote(match_id, safe='')}"
        outcome = await self.fetch(url)
        record_upstream("match_detail", outcome.kind)
        return outcome
