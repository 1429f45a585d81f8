"""Resolve a form's public webpage by probing the candidate hosts.

Each host is checked cheapest-first (HEAD, then GET) with a few retries for
timeouts/transport errors. Across hosts the policy is asymmetric:

- primary exists                        -> primary
- primary inconclusive, secondary found -> secondary
- primary inconclusive, otherwise       -> primary, flagged ambiguous
- primary 404, secondary found          -> secondary
- primary 404, secondary inconclusive   -> no URL ("inconclusive")
- primary 404, secondary 404            -> no URL ("both-404")

A best guess is only kept when the primary host could not be ruled out.
"""

from __future__ import annotations

import logging
import math
import random
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, MutableMapping, Optional

import requests
from tenacity import Retrying, retry_if_result, stop_after_attempt


logger = logging.getLogger(__name__)


class ProbeOutcome(str, Enum):
    EXISTS = "exists"
    NOT_FOUND = "not-found"
    INCONCLUSIVE = "inconclusive"


# Only definitive outcomes are reusable within a run.
CACHEABLE = (ProbeOutcome.EXISTS, ProbeOutcome.NOT_FOUND)

REASON_BOTH_404 = "both-404"
REASON_INCONCLUSIVE = "inconclusive"


def probe_backoff(attempt: int, *, base_ms: int = 120, jitter_ms: int = 80, rng: Callable[[], float] = random.random) -> float:
    """Delay in seconds before retrying after `attempt` (1-based) failed."""
    return (base_ms * max(1, attempt) + math.floor(rng() * jitter_ms)) / 1000.0


@dataclass(frozen=True)
class Resolution:
    url: Optional[str]
    ambiguous: bool = False
    reason: Optional[str] = None


class HttpProber:
    """One probe attempt against a single URL."""

    def __init__(self, session: Optional[requests.Session] = None, *, timeout: float = 3.0):
        self.session = session or requests.Session()
        self.timeout = timeout

    def status(self, url: str, method: str) -> Optional[int]:
        """HTTP status, or None when the request did not complete."""
        headers = {"Accept": "text/html"} if method == "GET" else None
        try:
            resp = self.session.request(method, url, headers=headers, timeout=self.timeout, allow_redirects=True)
        except requests.Timeout:
            logger.debug(f"{method} {url} timed out")
            return None
        except requests.RequestException as e:
            logger.debug(f"{method} {url} failed: {e}")
            return None
        try:
            return resp.status_code
        finally:
            resp.close()

    def check(self, url: str) -> Optional[ProbeOutcome]:
        """Exists / not-found for this attempt, or None if neither request was conclusive."""
        head = self.status(url, "HEAD")
        if head is not None and head != 404:
            return ProbeOutcome.EXISTS
        get = self.status(url, "GET")
        if get is not None and get != 404:
            return ProbeOutcome.EXISTS
        if get == 404:
            return ProbeOutcome.NOT_FOUND
        return None


class LinkResolver:
    def __init__(
        self,
        prober: HttpProber,
        *,
        primary_host: str,
        secondary_host: str,
        cache: Optional[MutableMapping[str, ProbeOutcome]] = None,
        retries: int = 3,
        sleep: Callable[[float], None] = time.sleep,
        rng: Callable[[], float] = random.random,
    ):
        self.prober = prober
        self.primary_host = primary_host.rstrip("/")
        self.secondary_host = secondary_host.rstrip("/")
        # Shared by all workers of a run; racing writes store the same value.
        self.cache: MutableMapping[str, ProbeOutcome] = cache if cache is not None else {}
        self.retries = retries
        self.sleep = sleep
        self.rng = rng

    def _retrying(self) -> Retrying:
        return Retrying(
            stop=stop_after_attempt(self.retries),
            wait=lambda state: probe_backoff(state.attempt_number, rng=self.rng),
            retry=retry_if_result(lambda outcome: outcome is None),
            retry_error_callback=lambda state: None,
            sleep=self.sleep,
        )

    def probe(self, url: str) -> ProbeOutcome:
        cached = self.cache.get(url)
        if cached is not None:
            return cached

        outcome = self._retrying()(self.prober.check, url)
        if outcome is None:
            logger.debug(f"Probe inconclusive after {self.retries} attempts: {url}")
            return ProbeOutcome.INCONCLUSIVE
        if outcome in CACHEABLE:
            self.cache[url] = outcome
        return outcome

    def resolve(self, web_path: str) -> Resolution:
        if not web_path:
            return Resolution(url=None, reason=REASON_BOTH_404)

        primary_url = f"{self.primary_host}/{web_path}"
        secondary_url = f"{self.secondary_host}/{web_path}"

        primary = self.probe(primary_url)
        if primary is ProbeOutcome.EXISTS:
            return Resolution(url=primary_url)

        secondary = self.probe(secondary_url)
        if secondary is ProbeOutcome.EXISTS:
            return Resolution(url=secondary_url)

        if primary is ProbeOutcome.INCONCLUSIVE:
            return Resolution(url=primary_url, ambiguous=True, reason=REASON_INCONCLUSIVE)
        if secondary is ProbeOutcome.INCONCLUSIVE:
            return Resolution(url=None, reason=REASON_INCONCLUSIVE)
        return Resolution(url=None, reason=REASON_BOTH_404)

