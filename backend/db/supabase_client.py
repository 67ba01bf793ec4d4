"""Minimal Supabase PostgREST client used by ledger repositories only."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any
from urllib.error import HTTPError
from urllib.parse import urlencode
from urllib.request import Request, urlopen


Query = dict[str, str | int] | list[tuple[str, str | int]]

# PostgREST `db-max-rows` default on Supabase.
DEFAULT_PAGE_SIZE = 1000


@dataclass(slots=True)
class SupabaseSettings:
    url: str
    service_role_key: str
    timeout_s: float = 10.0


class SupabaseClient:
    def __init__(self, settings: SupabaseSettings) -> None:
        self.settings = settings

    def _headers(self, *, prefer: str | None = None) -> dict[str, str]:
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

    def _send(self, request: Request) -> Any:
        try:
            with urlopen(request, timeout=self.settings.timeout_s) as response:  # noqa: S310 - URL comes from trusted env config
                raw_body = response.read().decode("utf-8")
                return json.loads(raw_body) if raw_body else []
        except HTTPError as exc:
            body = exc.read().decode("utf-8", errors="replace")[:500]
            raise RuntimeError(
                f"Supabase request failed with status {exc.code}: {body}"
            ) from exc

    def get_rows(self, *, table: str, query: Query) -> list[dict[str, Any]]:
        """Fetch rows from a PostgREST table."""

        encoded_query = urlencode(query, doseq=True)
        request = Request(
            url=f"{self.settings.url}/rest/v1/{table}?{encoded_query}",
            headers=self._headers(),
            method="GET",
        )
        rows = self._send(request)
        if not isinstance(rows, list):
            raise RuntimeError(f"Unexpected Supabase payload for table {table}")
        return rows

    def insert_rows(
        self,
        *,
        table: str,
        rows: list[dict[str, object]],
        on_conflict: str | None = None,
    ) -> None:
        """Insert rows, silently skipping duplicates when ``on_conflict`` is given."""

        if not rows:
            return
        query = urlencode({"on_conflict": on_conflict}) if on_conflict else ""
        request = Request(
            url=f"{self.settings.url}/rest/v1/{table}" + (f"?{query}" if query else ""),
            data=json.dumps(rows, default=str).encode("utf-8"),
            headers=self._headers(
                prefer="resolution=ignore-duplicates,return=minimal" if on_conflict else "return=minimal"
            ),
            method="POST",
        )
        self._send(request)


def fetch_all_rows(
    client: SupabaseClient,
    *,
    table: str,
    query: list[tuple[str, str | int]],
    order: str,
    page_size: int = DEFAULT_PAGE_SIZE,
) -> list[dict[str, Any]]:
    """Read every matching row with ``limit``/``offset`` pages under a stable ``order``.

    Stops on the first short page, so a server-side row cap never truncates results.
    """

    rows: list[dict[str, Any]] = []
    offset = 0
    while True:
        page = client.get_rows(
            table=table,
            query=[*query, ("order", order), ("limit", page_size), ("offset", offset)],
        )
        rows.extend(page)
        if len(page) < page_size:
            return rows
        offset += page_size
