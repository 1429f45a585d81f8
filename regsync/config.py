"""Runtime configuration for the sync pipelines.

Values come from the environment (optionally seeded from a `.env` file).
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv


DEFAULT_PG_DSN = "dbname=regsync user=regsync password=regsyncpass host=localhost port=5432"


@dataclass(frozen=True)
class SyncConfig:
    """Settings shared by the forms, memberships and registrants pipelines."""

    api_key: str
    pg_dsn: str = DEFAULT_PG_DSN

    # Upstream API
    api_base: str = "https://api.webconnex.com/v2/public"
    product: str = "regfox.com"
    page_size: int = 50
    fetch_timeout: float = 12.0   # seconds, page requests
    detail_timeout: float = 8.0   # seconds, per-form detail requests

    # Webpage probing
    primary_host: str = "https://schoolofranch.net"
    secondary_host: str = "https://schoolofranch.org"
    probe_timeout: float = 3.0
    probe_retries: int = 3

    # Mapping stage
    map_concurrency: int = 4
    sample_limit: int = 200

    @classmethod
    def from_env(cls, *, dotenv_path: Optional[str] = None) -> "SyncConfig":
        """Load and validate configuration from environment variables."""
        load_dotenv(dotenv_path)
        config = cls(
            api_key=os.getenv("REGFOX_API_KEY", "").strip(),
            pg_dsn=os.getenv("PG_DSN", DEFAULT_PG_DSN),
            api_base=os.getenv("REGFOX_API_BASE", "https://api.webconnex.com/v2/public").rstrip("/"),
            product=os.getenv("REGFOX_PRODUCT", "regfox.com"),
            page_size=int(os.getenv("PAGE_SIZE", "50")),
            fetch_timeout=float(os.getenv("FETCH_TIMEOUT", "12")),
            detail_timeout=float(os.getenv("DETAIL_TIMEOUT", "8")),
            primary_host=os.getenv("WEBPAGE_PRIMARY_HOST", "https://schoolofranch.net").rstrip("/"),
            secondary_host=os.getenv("WEBPAGE_SECONDARY_HOST", "https://schoolofranch.org").rstrip("/"),
            probe_timeout=float(os.getenv("PROBE_TIMEOUT", "3")),
            probe_retries=int(os.getenv("PROBE_RETRIES", "3")),
            map_concurrency=int(os.getenv("MAP_CONCURRENCY", "4")),
            sample_limit=int(os.getenv("DIAG_SAMPLE_LIMIT", "200")),
        )
        config._validate()
        return config

    def _validate(self) -> None:
        errors = []

        if not self.api_key:
            errors.append("REGFOX_API_KEY is required")
        if not self.pg_dsn:
            errors.append("PG_DSN is required")
        if not self.api_base.startswith(("http://", "https://")):
            errors.append("REGFOX_API_BASE must be an http(s) URL")
        for name, host in (("WEBPAGE_PRIMARY_HOST", self.primary_host), ("WEBPAGE_SECONDARY_HOST", self.secondary_host)):
            if not host.startswith(("http://", "https://")):
                errors.append(f"{name} must be an http(s) URL")

        if self.page_size < 1 or self.page_size > 50:
            errors.append("PAGE_SIZE should be between 1 and 50")
        for name, value in (
            ("FETCH_TIMEOUT", self.fetch_timeout),
            ("DETAIL_TIMEOUT", self.detail_timeout),
            ("PROBE_TIMEOUT", self.probe_timeout),
        ):
            if value <= 0 or value > 120:
                errors.append(f"{name} should be between 0 and 120 seconds")
        if self.probe_retries < 1 or self.probe_retries > 10:
            errors.append("PROBE_RETRIES should be between 1 and 10")
        if self.map_concurrency < 1 or self.map_concurrency > 32:
            errors.append("MAP_CONCURRENCY should be between 1 and 32")
        if self.sample_limit < 0:
            errors.append("DIAG_SAMPLE_LIMIT must not be negative")

        if errors:
            error_msg = "Configuration validation failed:\n" + "\n".join(f"  - {error}" for error in errors)
            raise ValueError(error_msg)
