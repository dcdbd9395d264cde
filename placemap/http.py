"""HTTP client with retry/backoff for the places provider endpoint."""
from __future__ import annotations

import logging
import random
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

import requests

logger = logging.getLogger(__name__)

RETRYABLE_STATUSES = (429, 500, 502, 503, 504)


@dataclass
class RequestMetrics:
    network: int = 0
    retries: int = 0
    cache_hits: int = 0
    failures: int = 0

    def as_dict(self) -> Dict[str, int]:
        return {
            "network": self.network,
            "retries": self.retries,
            "cache_hits": self.cache_hits,
            "failures": self.failures,
        }


class HttpClient:
    def __init__(
        self,
        api_key: Optional[str] = None,
        timeout: int = 20,
        retry_max: int = 4,
        backoff_base: float = 0.5,
        backoff_max: float = 8.0,
        metrics: Optional[RequestMetrics] = None,
    ) -> None:
        self.api_key = api_key
        self.timeout = timeout
        self.retry_max = max(1, int(retry_max))
        self.backoff_base = backoff_base
        self.backoff_max = backoff_max
        self.metrics = metrics or RequestMetrics()
        self.session = requests.Session()

    def get_json(
        self,
        url: str,
        params: Dict[str, str],
        extra_headers: Optional[Dict[str, str]] = None,
    ) -> Any:
        headers = {"Accept": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        if extra_headers:
            headers.update(extra_headers)

        for attempt in range(1, self.retry_max + 1):
            self.metrics.network += 1
            try:
                resp = self.session.get(url, params=params, headers=headers, timeout=self.timeout)
            except requests.RequestException:
                if attempt >= self.retry_max:
                    raise
                logger.warning("Request to %s failed (attempt %s)", url, attempt)
                self.metrics.retries += 1
                self._sleep_backoff(attempt)
                continue

            status = resp.status_code
            if status == 200:
                try:
                    return resp.json()
                except ValueError:
                    logger.error("Non-JSON response from %s", url)
                    raise

            if status in RETRYABLE_STATUSES:
                logger.warning("HTTP %s from %s (attempt %s)", status, url, attempt)
                if attempt >= self.retry_max:
                    resp.raise_for_status()
                self.metrics.retries += 1
                if not self._sleep_retry_after(resp):
                    self._sleep_backoff(attempt)
                continue

            # Non-retryable
            logger.error("HTTP %s from %s", status, url)
            resp.raise_for_status()

        raise RuntimeError("Unexpected HTTP retry loop exit")

    def _sleep_backoff(self, attempt: int) -> None:
        base = min(self.backoff_base * (2 ** (attempt - 1)), self.backoff_max)
        jitter = random.uniform(0, self.backoff_base)
        time.sleep(base + jitter)

    def _sleep_retry_after(self, resp: requests.Response) -> bool:
        retry_after = resp.headers.get("Retry-After")
        if not retry_after:
            return False
        try:
            delay = float(retry_after)
        except ValueError:
            return False
        delay = max(0.0, min(delay, self.backoff_max))
        time.sleep(delay)
        return True
