"""Client for the public item price API.

Synchronous by design: the measurement builder resolves prices inline, and the
lookup caches results so the API is hit once per refresh, not once per item.

- `fetch_mapping()` returns item definitions (`/mapping`).
- `fetch_latest()` returns latest high/low prices (`/latest`).
- Requests are retried on 429/5xx and transport errors with exponential
  backoff + jitter, bounded by `max_attempt` and `max_delay`.
"""

from __future__ import annotations

import logging
import random
import time
from typing import Any

import requests  # type: ignore

from config import PriceConfig

from .models import ItemDefinition, LatestPrice

logger = logging.getLogger(__name__)


class WikiPriceClient:
    """Price API client.

    The API asks callers to send a descriptive `User-Agent`; requests without
    one may be blocked, so the config always carries it.
    """

    def __init__(self, config: PriceConfig):
        """Create a client using the given endpoint and retry configuration."""
        self.config = config
        self.base_url: str = config.base_url.rstrip("/")
        self._session = requests.Session()
        self._session.headers.update({"User-Agent": config.user_agent})

    def close(self) -> None:
        """Close the underlying HTTP session."""
        self._session.close()

    def _send_request(self, path: str) -> Any:
        """Send a GET request, returning the decoded JSON response.

        Raises:
        - `PriceApiError` for non-2xx responses
        - `requests.RequestException` for transport errors
        """
        resp = self._session.get(self.base_url + path, timeout=self.config.timeout)
        if 200 <= resp.status_code < 300:
            return resp.json()

        error_payload: dict[str, Any] | None
        try:
            error_payload = resp.json()
        except Exception:  # noqa: BLE001 - best-effort parsing
            error_payload = None
        raise PriceApiError(status_code=resp.status_code, payload=error_payload)

    def _send_with_retries(self, path: str) -> Any:
        """Send a request with retry/backoff for transient failures."""
        attempt = 0
        start = time.monotonic()

        while True:
            try:
                return self._send_request(path)
            except Exception as exc:  # noqa: BLE001 - classify and retry/raise
                attempt += 1
                if not _is_retryable_error(exc):
                    raise
                if attempt >= self.config.max_attempt:
                    raise

                delay = self.config.base_delay * (self.config.backoff_multiplier ** (attempt - 1))
                delay += random.uniform(0.0, delay * 0.1)  # small jitter

                if (time.monotonic() - start) + delay > self.config.max_delay:
                    raise
                logger.warning("Price API request %s failed (%s); retrying in %.2fs", path, exc, delay)
                time.sleep(delay)

    def fetch_mapping(self) -> list[ItemDefinition]:
        """Get every tradeable item definition."""
        response = self._send_with_retries("/mapping")
        return [ItemDefinition.from_mapping(item) for item in response]

    def fetch_latest(self) -> dict[int, LatestPrice]:
        """Get latest prices keyed by item id."""
        response = self._send_with_retries("/latest")
        return {int(item_id): LatestPrice.model_validate(p) for item_id, p in response.get("data", {}).items()}


class PriceApiError(RuntimeError):
    """HTTP-level error returned by the price API."""

    def __init__(self, *, status_code: int, payload: dict[str, Any] | None):
        """Create an error capturing HTTP status code and parsed payload (if any)."""
        self.status_code = status_code
        self.payload = payload
        super().__init__(f"Price API HTTP {status_code}: {payload}")


def _is_retryable_error(exc: BaseException) -> bool:
    """Return True if the error is transient."""
    if isinstance(exc, PriceApiError):
        # Retry 429 and all 5xx.
        return exc.status_code == 429 or exc.status_code >= 500

    # Network/transport errors.
    return isinstance(exc, requests.RequestException)
