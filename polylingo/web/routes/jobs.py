"""Translation job API routes."""

from __future__ import annotations

import asyncio
from typing import Any, Dict

from flask import Blueprint, current_app, jsonify, request

import polylingo.config as config
from polylingo.logger import get_logger
from polylingo.ai.exceptions import JobNotFoundError, TranslationError
from polylingo.ai.service import validate_ai_config
from polylingo.jobs import service
from polylingo.jobs.models import JobStatus

jobs_bp = Blueprint("jobs", __name__)
logger = get_logger(__name__)


def _context() -> Dict[str, Any]:
    return current_app.extensions["polylingo"]


def _scheduler():
    scheduler = _context()["scheduler"]
    if scheduler is None:
        raise TranslationError("Translation scheduler is not running", code="scheduler_unavailable")
    return scheduler


@jobs_bp.get("/jobs")
def list_jobs():
    """List jobs, newest first. Optional ?status= filter."""
    status = request.args.get("status")
    if status:
        status = status.upper()
        if status not in JobStatus.__members__:
            return jsonify({"error": f"Unknown status: {status}", "code": "invalid_request"}), 400
    jobs = _context()["store"].list(status)
    return jsonify({"jobs": [job.to_dict() for job in jobs]})


@jobs_bp.get("/jobs/<job_id>")
def get_job(job_id: str):
    job = _context()["store"].get(job_id)
    if job is None:
        raise JobNotFoundError(job_id)
    return jsonify(job.to_dict())


@jobs_bp.get("/jobs/<job_id>/logs")
def get_job_logs(job_id: str):
    store = _context()["store"]
    if store.get(job_id) is None:
        raise JobNotFoundError(job_id)
    return jsonify({"logs": store.logs(job_id)})


@jobs_bp.post("/translate")
def start_translation():
    """
    Create and queue translation jobs.

    Body: {"content_ids": [1, 2], "languages": ["de", "fr"], "titles": {"1": "..."}}
    """
    data: Dict[str, Any] = request.get_json(silent=True) or {}
    content_ids = data.get("content_ids")
    if content_ids is None and data.get("content_id") is not None:
        content_ids = [data["content_id"]]
    if not isinstance(content_ids, list) or not content_ids:
        return jsonify({"error": "content_ids must be a non-empty list", "code": "invalid_request"}), 400

    languages = data.get("languages")
    if languages is not None and not isinstance(languages, list):
        return jsonify({"error": "languages must be a list", "code": "invalid_request"}), 400

    try:
        content_ids = [int(content_id) for content_id in content_ids]
        titles = {int(key): str(value) for key, value in (data.get("titles") or {}).items()}
    except (TypeError, ValueError, AttributeError):
        return jsonify({"error": "content ids must be integers", "code": "invalid_request"}), 400

    current_config = config.load_config()
    # Fail at submit time instead of producing a batch of FAILED jobs
    validate_ai_config(current_config)

    jobs = service.create_translation_jobs(
        _context()["store"],
        _scheduler(),
        current_config,
        content_ids,
        target_languages=languages,
        titles=titles,
    )
    return jsonify({"jobs": [job.to_dict() for job in jobs]}), 202


@jobs_bp.post("/jobs/<job_id>/publish")
def publish_job(job_id: str):
    """Publish a completed job; optional {"title", "content"} overrides the saved translation."""
    data: Dict[str, Any] = request.get_json(silent=True) or {}
    source_factory = _context()["source_factory"]
    if source_factory is None:
        raise TranslationError("No content source configured", code="config_missing")

    source = source_factory(config.load_config())
    job = asyncio.run(service.publish_job(
        _context()["store"],
        source,
        job_id,
        title=data.get("title"),
        content=data.get("content"),
    ))
    return jsonify(job.to_dict())


@jobs_bp.delete("/jobs/<job_id>")
def delete_job(job_id: str):
    service.delete_job(_context()["store"], job_id)
    return jsonify({"deleted": job_id})


@jobs_bp.get("/queue/status")
def queue_status():
    return jsonify(_scheduler().status().to_dict())


@jobs_bp.get("/stats")
def job_stats():
    """Job totals and cumulative token usage."""
    return jsonify(_context()["store"].stats().to_dict())
