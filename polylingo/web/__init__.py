"""Web application package for PolyLingo."""

from flask import Flask

from polylingo.config import initialize_app


def create_app(start_scheduler: bool = True) -> Flask:
    """
    Application factory for the HTTP API.

    Initializes the database and config, starts the background scheduler and
    resubmits jobs left unfinished by the previous run.
    """
    initialize_app()

    from .app import build_app  # Import here to avoid circular imports
    from polylingo.ai.service import create_provider
    from polylingo.content.wordpress import WordPressClient
    from polylingo.jobs.runner import BackgroundScheduler
    from polylingo.jobs.service import restore_pending_jobs
    from polylingo.jobs.store import JobStore

    store = JobStore()
    scheduler = BackgroundScheduler(store, WordPressClient.from_config, create_provider)
    app = build_app(store=store, scheduler=scheduler, source_factory=WordPressClient.from_config)

    if start_scheduler:
        scheduler.start()
        restore_pending_jobs(store, scheduler)

    return app


__all__ = ["create_app"]
