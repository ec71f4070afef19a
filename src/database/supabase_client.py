from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Any, Optional

import requests

from src.utils.env import getenv_float


logger = logging.getLogger(__name__)


class SupabaseError(RuntimeError):
    def __init__(self, message: str, *, status: Optional[int] = None) -> None:
        super().__init__(message)
        self.status = status


@dataclass(frozen=True)
class SupabaseConfig:
    url: str
    service_role_key: str
    timeout_seconds: float = 30.0

    @classmethod
    def from_env(cls) -> "SupabaseConfig":
        url = (os.getenv("SUPABASE_URL") or "").strip()
        key = (os.getenv("SUPABASE_SERVICE_ROLE_KEY") or os.getenv("SUPABASE_ANON_KEY") or "").strip()
        if not url or not key:
            raise SupabaseError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY (or SUPABASE_ANON_KEY) are required")
        return cls(url=url, service_role_key=key, timeout_seconds=getenv_float("SUPABASE_TIMEOUT_SECONDS", 30.0))


class SupabaseClient:
    """
    Thin read-only PostgREST client.

    Filters use PostgREST operator syntax verbatim, e.g. {"season": "eq.2025"} or
    {"full_name": "ilike.*smith*"}. There is no retry: a failed request raises
    SupabaseError and the caller decides what to surface.
    """

    def __init__(self, config: SupabaseConfig, *, session: Optional[requests.Session] = None) -> None:
        if not config.url.strip():
            raise SupabaseError("Supabase url is required")
        if not config.service_role_key.strip():
            raise SupabaseError("Supabase key is required")
        self._base_url = config.url.rstrip("/") + "/rest/v1"
        self._key = config.service_role_key.strip()
        self._timeout = config.timeout_seconds
        self._session = session or requests.Session()

    def _headers(self) -> dict[str, str]:
        return {
            "apikey": self._key,
            "Authorization": f"Bearer {self._key}",
            "Accept": "application/json",
        }

    def select(
        self,
        table: str,
        *,
        select: str = "*",
        filters: Optional[dict[str, str]] = None,
        order: Optional[str] = None,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> list[dict[str, Any]]:
        params: dict[str, Any] = {"select": select}
        params.update(filters or {})
        if order:
            params["order"] = order
        if limit is not None:
            params["limit"] = int(limit)
        if offset:
            params["offset"] = int(offset)

        url = f"{self._base_url}/{table}"
        try:
            resp = self._session.get(url, headers=self._headers(), params=params, timeout=self._timeout)
        except requests.RequestException as e:
            raise SupabaseError(f"Request failed for {table}: {e}") from e

        if not resp.ok:
            message = resp.text
            try:
                body = resp.json()
                if isinstance(body, dict):
                    message = str(body.get("message") or body)
            except ValueError:
                pass
            raise SupabaseError(f"HTTP {resp.status_code} for {table}: {message}", status=resp.status_code)

        try:
            data = resp.json()
        except ValueError as e:
            raise SupabaseError(f"Invalid JSON from {table}: {e}", status=resp.status_code) from e
        if not isinstance(data, list):
            raise SupabaseError(f"Unexpected payload for {table}: {type(data).__name__}")
        logger.debug("select %s params=%s -> %d rows", table, params, len(data))
        return data
