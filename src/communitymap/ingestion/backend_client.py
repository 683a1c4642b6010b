"""
REST client for the hosted backend.

Communities, projects and everything else the console manages live in a
managed backend that exposes its tables over a PostgREST-style HTTP API
(`GET /rest/v1/<table>?select=...`). Row-level security is enforced by the
backend; this client only needs the project URL and an API key.

The client wraps `requests` to centralize:
- credentials (read from the environment / `.env`, never from YAML),
- timeouts and retries on transient errors (429/5xx, honoring Retry-After),
- an optional on-disk response cache so repeated CLI runs stay fast.
"""

from __future__ import annotations

import logging
import os
import random
import time
from dataclasses import dataclass
from typing import Any, Callable

import requests

from communitymap.cache import DiskCache
from communitymap.log import LOGGER_NAME

TRANSIENT_STATUS = {429, 502, 503, 504}


class BackendAuthError(RuntimeError):
    pass


class BackendRequestError(RuntimeError):
    pass


def _safe_response_text(resp: requests.Response, *, limit: int = 500) -> str:
    try:
        text = resp.text
    except Exception:
        return "<unreadable response body>"
    return text.strip()[:limit]


@dataclass
class BackendClient:
    base_url: str
    api_key: str
    cache: DiskCache | None = None
    rest_path: str = "/rest/v1"
    request_timeout_s: int = 30
    max_retries: int = 3
    retry_backoff_initial_s: float = 1.0
    retry_backoff_max_s: float = 30.0
    # Tests inject a no-op sleep and a fake session.
    sleep_fn: Callable[[float], None] | None = None
    session: requests.Session | None = None
    logger: logging.Logger | None = None

    @classmethod
    def from_env(cls, *, settings: dict[str, Any], cache: DiskCache | None = None) -> "BackendClient":
        backend = settings.get("backend", {}) or {}
        base_url = os.getenv("COMMUNITYMAP_BACKEND_URL") or backend.get("base_url")
        api_key = os.getenv("COMMUNITYMAP_BACKEND_KEY")
        if not base_url or not api_key:
            raise BackendAuthError(
                "Missing backend credentials. Set COMMUNITYMAP_BACKEND_URL and COMMUNITYMAP_BACKEND_KEY (see .env.example)."
            )
        return cls(
            base_url=str(base_url).rstrip("/"),
            api_key=str(api_key),
            cache=cache,
            rest_path=str(backend.get("rest_path", "/rest/v1")),
            request_timeout_s=int(backend.get("request_timeout_s", 30)),
            max_retries=int(backend.get("max_retries", 3)),
            retry_backoff_initial_s=float(backend.get("retry_backoff_initial_s", 1.0)),
            retry_backoff_max_s=float(backend.get("retry_backoff_max_s", 30.0)),
            logger=logging.getLogger(LOGGER_NAME),
        )

    def _log(self) -> logging.Logger:
        return self.logger or logging.getLogger(LOGGER_NAME)

    def _http(self) -> requests.Session:
        if self.session is None:
            self.session = requests.Session()
        return self.session

    def _sleep(self, seconds: float) -> None:
        (self.sleep_fn or time.sleep)(max(0.0, float(seconds)))

    def _headers(self) -> dict[str, str]:
        return {
            "apikey": self.api_key,
            "Authorization": f"Bearer {self.api_key}",
            "Accept": "application/json",
        }

    def table_url(self, table: str) -> str:
        return f"{self.base_url}{self.rest_path.rstrip('/')}/{table.lstrip('/')}"

    def _retry_delay(self, resp: requests.Response, attempt: int) -> float:
        retry_after = resp.headers.get("Retry-After") if hasattr(resp, "headers") else None
        if retry_after:
            try:
                return float(retry_after)
            except ValueError:
                pass
        base = float(self.retry_backoff_initial_s) * (2 ** attempt)
        return min(float(self.retry_backoff_max_s), base) + random.uniform(0, 0.25)

    def get_rows(
        self,
        table: str,
        *,
        params: dict[str, Any] | None = None,
        cache_ttl_s: int | None = None,
        refresh: bool = False,
    ) -> list[dict[str, Any]]:
        url = self.table_url(table)
        params = dict(params or {})
        cache_key = f"GET {url} {sorted(params.items())}"

        if self.cache is not None and cache_ttl_s is not None:
            if refresh:
                self.cache.invalidate(cache_key)
            else:
                cached = self.cache.get(cache_key, ttl_s=cache_ttl_s)
                if cached is not None:
                    return cached

        resp: requests.Response | None = None
        for attempt in range(int(self.max_retries) + 1):
            try:
                resp = self._http().get(url, params=params, headers=self._headers(), timeout=self.request_timeout_s)
            except requests.RequestException as e:
                raise BackendRequestError(f"Backend GET failed: url={url} error={e}") from e

            if resp.status_code in TRANSIENT_STATUS and attempt < int(self.max_retries):
                sleep_s = self._retry_delay(resp, attempt)
                self._log().warning(
                    "Backend transient error %s, retrying in %.2fs (attempt %s/%s)",
                    resp.status_code,
                    sleep_s,
                    attempt + 1,
                    self.max_retries,
                )
                self._sleep(sleep_s)
                continue
            break

        if resp is None:
            raise BackendRequestError(f"Backend GET failed: url={url} no response")
        if resp.status_code in {401, 403}:
            raise BackendAuthError(f"Backend rejected credentials: status={resp.status_code} body={_safe_response_text(resp)}")
        try:
            resp.raise_for_status()
        except requests.HTTPError as e:
            raise BackendRequestError(
                f"Backend GET failed: url={url} status={resp.status_code} body={_safe_response_text(resp)}"
            ) from e

        data = resp.json()
        if not isinstance(data, list):
            raise BackendRequestError(f"Expected a list of rows from {table}, got: {type(data).__name__}")
        if self.cache is not None and cache_ttl_s is not None:
            self.cache.set(cache_key, data)
        return data
