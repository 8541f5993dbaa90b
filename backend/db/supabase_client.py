"""Minimal Supabase PostgREST client used by backend repositories only."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any
from urllib.error import HTTPError, URLError
from urllib.parse import urlencode
from urllib.request import Request, urlopen


logger = logging.getLogger(__name__)

Query = dict[str, str | int] | list[tuple[str, str | int]]


class SupabaseRequestError(RuntimeError):
    """Raised when PostgREST answers with an error status or is unreachable."""

    def __init__(self, message: str, *, status_code: int | None = None, body: str = "") -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


@dataclass(slots=True)
class SupabaseSettings:
    url: str
    service_role_key: str
    timeout_seconds: float = 10.0


class SupabaseClient:
    def __init__(self, settings: SupabaseSettings) -> None:
        self.settings = settings

    def _url(self, table: str, query: Query | None) -> str:
        base = f"{self.settings.url.rstrip('/')}/rest/v1/{table}"
        if not query:
            return base
        return f"{base}?{urlencode(query, doseq=True)}"

    def _headers(self, *, prefer: str | None) -> dict[str, str]:
        api_key = self.settings.service_role_key
        if not api_key:
            raise ValueError("Missing Supabase service role key")
        headers = {
            "apikey": api_key,
            "Authorization": f"Bearer {api_key}",
            "Accept": "application/json",
            "Content-Type": "application/json",
        }
        if prefer:
            headers["Prefer"] = prefer
        return headers

    def _send(self, request: Request) -> tuple[Any, Any]:
        try:
            with urlopen(request, timeout=self.settings.timeout_seconds) as response:  # noqa: S310 - URL comes from trusted env config
                raw_body = response.read().decode("utf-8")
                payload = json.loads(raw_body) if raw_body else []
                return payload, response.headers
        except HTTPError as exc:
            body = exc.read().decode("utf-8", errors="replace")[:500]
            raise SupabaseRequestError(
                f"Supabase request failed with status {exc.code}: {body}",
                status_code=exc.code,
                body=body,
            ) from exc
        except URLError as exc:
            logger.warning("supabase_unreachable url=%s reason=%s", request.full_url, exc.reason)
            raise SupabaseRequestError(f"Supabase request failed: {exc.reason}") from exc

    def get_rows(
        self,
        *,
        table: str,
        query: Query,
        with_count: bool,
    ) -> tuple[list[dict[str, Any]], int | None]:
        """Fetch rows from PostgREST and optionally parse exact row count."""

        request = Request(
            url=self._url(table, query),
            headers=self._headers(prefer="count=exact" if with_count else None),
            method="GET",
        )
        rows, headers = self._send(request)
        total: int | None = None
        if with_count:
            content_range = headers.get("content-range")
            if content_range and "/" in content_range:
                _, total_str = content_range.split("/", maxsplit=1)
                if total_str != "*":
                    total = int(total_str)
        return rows, total

    def post_rows(
        self,
        *,
        table: str,
        payload: dict[str, Any] | list[dict[str, Any]],
        prefer: str = "return=representation",
    ) -> list[dict[str, Any]]:
        """Insert rows and return the stored representation."""

        request = Request(
            url=self._url(table, None),
            data=json.dumps(payload).encode("utf-8"),
            headers=self._headers(prefer=prefer),
            method="POST",
        )
        rows, _ = self._send(request)
        return rows

    def patch_rows(
        self,
        *,
        table: str,
        query: Query,
        payload: dict[str, Any],
    ) -> list[dict[str, Any]]:
        """Update rows matching `query` and return them after the update."""

        request = Request(
            url=self._url(table, query),
            data=json.dumps(payload).encode("utf-8"),
            headers=self._headers(prefer="return=representation"),
            method="PATCH",
        )
        rows, _ = self._send(request)
        return rows

    def delete_rows(self, *, table: str, query: Query) -> list[dict[str, Any]]:
        """Delete rows matching `query` and return the deleted representation."""

        request = Request(
            url=self._url(table, query),
            headers=self._headers(prefer="return=representation"),
            method="DELETE",
        )
        rows, _ = self._send(request)
        return rows
