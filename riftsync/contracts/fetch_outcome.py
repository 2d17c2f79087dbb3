"""Tagged result of a single upstream Riot API call.

Every call through the Riot adapter yields exactly one of:

- ``FetchSuccess``: 2xx with a decoded JSON payload
- ``FetchRateLimited``: HTTP 429, with the ``Retry-After`` hint in seconds
- ``FetchError``: any other status, a malformed body, a network failure or a
  timeout (status 0 for the last two, ``timed_out`` marks the timeout case)

Callers must handle all three variants; ``unreachable_outcome`` is the
exhaustiveness guard for the final ``else`` branch.
"""

import math
from typing import Annotated, Any, Literal, NoReturn

from pydantic import BaseModel, ConfigDict, Field

NETWORK_FAILURE_STATUS = 0


class _Outcome(BaseModel):
    model_config = ConfigDict(frozen=True)


class FetchSuccess(_Outcome):
    kind: Literal["success"] = "success"
    payload: Any = None


class FetchRateLimited(_Outcome):
    kind: Literal["rate_limited"] = "rate_limited"
    retry_after_seconds: float = Field(0.0, ge=0)


class FetchError(_Outcome):
    kind: Literal["error"] = "error"
    status_code: int = Field(..., description="HTTP status, 0 for network failure/timeout")
    body_text: str = ""
    timed_out: bool = False

    @property
    def is_network_failure(self) -> bool:
        return self.status_code == NETWORK_FAILURE_STATUS


FetchOutcome = Annotated[
    FetchSuccess | FetchRateLimited | FetchError,
    Field(discriminator="kind"),
]


def unreachable_outcome(outcome: object) -> NoReturn:
    """Raise for an outcome variant the caller did not handle."""
    raise TypeError(f"Unhandled fetch outcome: {outcome!r}")


def parse_retry_after(raw: str | None) -> float:
    """Read a ``Retry-After`` header value; absent or non-numeric yields 0."""
    if raw is None:
        return 0.0
    try:
        value = float(raw.strip())
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(value) or value < 0:
        return 0.0
    return value
