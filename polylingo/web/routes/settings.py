"""Settings management API routes."""

from __future__ import annotations

import asyncio
from typing import Any, Dict

from flask import Blueprint, current_app, jsonify, request

import polylingo.config as config
from polylingo.config import BUILTIN_PROVIDERS, BUILTIN_PROVIDER_DISPLAY_NAMES, KEYLESS_PROVIDERS
from polylingo.language_codes import get_all_language_codes
from polylingo.logger import get_logger, set_log_mode

settings_bp = Blueprint("settings", __name__)
logger = get_logger(__name__)


def _meta() -> Dict[str, Any]:
    return {
        "builtin_providers": [
            {"id": p, "name": BUILTIN_PROVIDER_DISPLAY_NAMES[p], "requires_key": p not in KEYLESS_PROVIDERS}
            for p in BUILTIN_PROVIDERS
        ],
    }


@settings_bp.get("/")
def get_settings():
    """Return current configuration with default values merged."""
    current_config = config.load_config()
    logger.debug("Settings retrieved with defaults merged")
    return jsonify({"config": current_config, "meta": _meta()})


@settings_bp.put("/")
def update_settings():
    """
    Update configuration. Body: {"config": {...}} with any subset of keys.

    Scheduler sizing (max_parallel_jobs, max_requests_per_minute) applies after a restart;
    everything else applies to the next job run.
    """
    data = request.get_json(silent=True)
    if not data or not isinstance(data.get("config"), dict):
        return jsonify({"error": "Request body must contain a config object", "code": "invalid_request"}), 400

    # Deep merge onto the saved config so partial updates keep the other fields
    new_config = config.merge_defaults(data["config"], config.load_config())

    validation_error = config.validate_config(new_config)
    if validation_error:
        return jsonify({"error": validation_error, "code": "invalid_config"}), 400

    config.save_config(new_config)
    set_log_mode(new_config.get("log_mode", "info"))
    logger.info("Settings updated")
    return jsonify({"config": new_config, "meta": _meta()})


@settings_bp.post("/wordpress/test")
def test_wordpress_connection():
    """Check the saved WordPress URL and credentials."""
    source_factory = current_app.extensions["polylingo"]["source_factory"]
    if source_factory is None:
        return jsonify({"error": "No content source configured", "code": "config_missing"}), 400

    source = source_factory(config.load_config())
    result = asyncio.run(source.test_connection())
    return jsonify(result)


@settings_bp.get("/languages")
def list_languages():
    """Known language codes and names, for picking target languages."""
    return jsonify({"languages": get_all_language_codes()})


@settings_bp.post("/reset")
def reset_settings():
    """
    Factory reset: deletes every job, log and setting. Body must be {"confirm": true}.

    Jobs still held by the scheduler are dropped at their next store write.
    """
    data = request.get_json(silent=True) or {}
    if data.get("confirm") is not True:
        return jsonify({"error": "Factory reset must be confirmed", "code": "invalid_request"}), 400

    config.factory_reset()
    logger.warning("Factory reset performed via API")
    return jsonify({"config": config.load_config(), "meta": _meta()})
