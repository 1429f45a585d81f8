"""Everything one sync run owns, built fresh per invocation.

The probe cache and the diagnostics live here rather than in module globals so
that two runs (or two tests) never share state.
"""

from __future__ import annotations

import random
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

import requests

from regsync.config import SyncConfig
from regsync.ingestion.webconnex import WebconnexClient
from regsync.pipeline.diagnostics import RunStats
from regsync.resolution.link_resolver import HttpProber, LinkResolver, ProbeOutcome
from regsync.storage.postgres_repo import PostgresRepo


@dataclass
class RunContext:
    pipeline: str
    config: SyncConfig
    client: WebconnexClient
    # PostgresRepo or anything with the same upsert/checkpoint methods.
    store: Any
    stats: RunStats
    probe_cache: Dict[str, ProbeOutcome] = field(default_factory=dict)
    resolver: Optional[LinkResolver] = None

    @classmethod
    def create(
        cls,
        pipeline: str,
        config: SyncConfig,
        *,
        client: Optional[WebconnexClient] = None,
        store: Any = None,
        prober: Optional[HttpProber] = None,
        sleep: Callable[[float], None] = time.sleep,
        rng: Callable[[], float] = random.random,
    ) -> "RunContext":
        ctx = cls(
            pipeline=pipeline,
            config=config,
            client=client or WebconnexClient.from_config(config),
            store=store if store is not None else PostgresRepo(config.pg_dsn),
            stats=RunStats(pipeline=pipeline, sample_limit=config.sample_limit),
        )
        # Shared by all mapping workers; probes never change session state.
        ctx.resolver = LinkResolver(
            prober or HttpProber(requests.Session(), timeout=config.probe_timeout),
            primary_host=config.primary_host,
            secondary_host=config.secondary_host,
            cache=ctx.probe_cache,
            retries=config.probe_retries,
            sleep=sleep,
            rng=rng,
        )
        return ctx
