"""Client for the Webconnex (RegFox) public API.

Two kinds of calls:
- paginated searches, which are a hard dependency of every run (any failure is fatal)
- per-form detail lookups, which are best-effort (failures read as "no detail")
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

import requests

from regsync.ingestion.record_types import UpstreamRecord


logger = logging.getLogger(__name__)

USER_AGENT = "regsync/1.0"


class UpstreamError(RuntimeError):
    """A page request failed; carries the HTTP status (None for transport errors) and body."""

    def __init__(self, message: str, *, status: Optional[int] = None, body: str = ""):
        super().__init__(message)
        self.status = status
        self.body = body


def has_more_pages(payload: Mapping[str, Any]) -> bool:
    # Upstream spells the flag both ways depending on the endpoint.
    return bool(payload.get("hasMore")) or bool(payload.get("isMore"))


@dataclass
class WebconnexClient:
    api_key: str
    api_base: str = "https://api.webconnex.com/v2/public"
    product: str = "regfox.com"
    page_size: int = 50
    fetch_timeout: float = 12.0
    detail_timeout: float = 8.0
    # Shared with mapping workers for detail lookups; never mutated after creation.
    session: requests.Session = field(default_factory=requests.Session)

    @classmethod
    def from_config(cls, config, *, session: Optional[requests.Session] = None) -> "WebconnexClient":
        return cls(
            api_key=config.api_key,
            api_base=config.api_base,
            product=config.product,
            page_size=config.page_size,
            fetch_timeout=config.fetch_timeout,
            detail_timeout=config.detail_timeout,
            session=session or requests.Session(),
        )

    def _headers(self) -> Dict[str, str]:
        return {
            "apiKey": self.api_key,
            "Accept": "application/json",
            "User-Agent": USER_AGENT,
        }

    def fetch_all(self, path: str, params: Optional[Mapping[str, Any]] = None) -> List[UpstreamRecord]:
        """Fetch every page of `path`, one request in flight at a time."""
        url = f"{self.api_base}/{path.lstrip('/')}"
        out: List[UpstreamRecord] = []
        starting_after = 0
        pages = 0

        while True:
            query: Dict[str, Any] = {
                "product": self.product,
                "limit": str(self.page_size),
                "sort": "desc",
            }
            query.update(params or {})
            if starting_after > 0:
                query["startingAfter"] = str(starting_after)

            try:
                resp = self.session.get(url, params=query, headers=self._headers(), timeout=self.fetch_timeout)
            except requests.RequestException as e:
                raise UpstreamError(f"webconnex request failed: {e}") from e

            if not resp.ok:
                body = resp.text or ""
                raise UpstreamError(f"webconnex {resp.status_code}: {body}", status=resp.status_code, body=body)

            try:
                payload = resp.json() or {}
            except ValueError as e:
                raise UpstreamError(f"webconnex returned non-JSON page: {e}", status=resp.status_code) from e
            if not isinstance(payload, dict):
                raise UpstreamError("webconnex returned an unexpected page shape", status=resp.status_code)

            batch = payload.get("data") or []
            out.extend(UpstreamRecord.from_api(r) for r in batch if isinstance(r, dict))
            pages += 1

            if not has_more_pages(payload):
                break
            starting_after += self.page_size

        logger.info(f"Fetched {len(out)} records from {path} in {pages} page(s)")
        return out

    def fetch_form_detail(self, form_id: int) -> Optional[Dict[str, Any]]:
        """Return the `data` block for one form, or None on any failure."""
        url = f"{self.api_base}/forms/{form_id}"
        try:
            resp = self.session.get(
                url,
                params={"product": self.product},
                headers=self._headers(),
                timeout=self.detail_timeout,
            )
            if not resp.ok:
                logger.debug(f"Form detail {form_id} returned {resp.status_code}")
                return None
            payload = resp.json() or {}
            data = payload.get("data") if isinstance(payload, dict) else None
        except (requests.RequestException, ValueError) as e:
            logger.debug(f"Form detail {form_id} failed: {e}")
            return None
        return data if isinstance(data, dict) else None
