"""Exception taxonomy for the match-history core.

Rate limits and degraded projections are not exceptions: they travel as
``FetchRateLimited`` outcomes and result flags. What remains here aborts a sync
and reaches the caller with its status and detail intact.
"""

from __future__ import annotations

from riftsync.contracts import FetchError


class RiftSyncError(Exception):
    """Base class for riftsync errors."""


class UpstreamError(RiftSyncError):
    """Non-2xx/non-429 response, malformed payload, network failure or timeout."""

    def __init__(
        self,
        detail: str,
        status_code: int,
        *,
        url: str | None = None,
        timed_out: bool = False,
    ) -> None:
        message = f"Upstream error {status_code}: {detail}" if detail else f"Upstream error {status_code}"
        super().__init__(message)
        self.status_code = status_code
        self.detail = detail
        self.url = url
        self.timed_out = timed_out

    @classmethod
    def from_outcome(cls, outcome: FetchError, *, url: str | None = None) -> UpstreamError:
        return cls(outcome.body_text, outcome.status_code, url=url, timed_out=outcome.timed_out)

    @property
    def is_retryable(self) -> bool:
        """Server-side and transport failures may succeed on a later attempt."""
        return self.timed_out or self.status_code == 0 or self.status_code >= 500

    def to_dict(self) -> dict[str, object]:
        return {
            "type": "timeout" if self.timed_out else "upstream_error",
            "status_code": self.status_code,
            "detail": self.detail,
            "url": self.url,
        }


class CacheIOError(RiftSyncError):
    """Cache store read or write failure."""

    def __init__(self, operation: str, puuid: str, detail: str) -> None:
        super().__init__(f"Cache {operation} failed for {puuid}: {detail}")
        self.operation = operation
        self.puuid = puuid
        self.detail = detail

    def to_dict(self) -> dict[str, object]:
        return {
            "type": "cache_error",
            "operation": self.operation,
            "detail": self.detail,
        }
