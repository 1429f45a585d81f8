#!/usr/bin/env python3
"""
HTTP trigger for the RegFox sync pipelines.

Each endpoint runs one pipeline to completion and returns its summary:
  POST /forms        open forms + verified webpage links
  POST /memberships  memberships changed since the last run
  POST /registrants  new registrants for every open form
"""

import logging
import os

from flask import Flask, jsonify

from regsync.config import SyncConfig
from regsync.storage.postgres_schema import ensure_postgres_schema
from regsync.sync import PIPELINES, run_sync

# Configure logging
logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def create_app(config: SyncConfig = None, *, ensure_schema: bool = True, **context_kwargs) -> Flask:
    app = Flask(__name__)
    app.config["SYNC_CONFIG"] = config
    app.config["SYNC_CONTEXT_KWARGS"] = context_kwargs

    if ensure_schema and config is not None:
        try:
            ensure_postgres_schema(config.pg_dsn)
            logger.info("Postgres schema ready")
        except Exception as e:
            logger.error(f"Postgres schema init failed: {e}")

    def _config() -> SyncConfig:
        return app.config["SYNC_CONFIG"] or SyncConfig.from_env()

    def _trigger(name: str):
        try:
            result = run_sync(name, _config(), **app.config["SYNC_CONTEXT_KWARGS"])
        except Exception as e:
            # Configuration problems and anything raised before the run starts.
            logger.error(f"{name} error: {e}", exc_info=True)
            return jsonify({"ok": False, "error": str(e)}), 500
        return jsonify(result.to_payload()), result.http_status

    for name in PIPELINES:
        app.add_url_rule(f"/{name}", endpoint=f"sync_{name}", view_func=lambda name=name: _trigger(name), methods=["POST"])

    @app.route("/health", methods=["GET"])
    def health():
        return jsonify({"ok": True, "pipelines": sorted(PIPELINES)})

    return app


if __name__ == "__main__":
    app = create_app(SyncConfig.from_env())
    port = int(os.getenv("PORT", "5055"))
    app.run(host="0.0.0.0", port=port, debug=False)
