"""
Tests for the Flask API (web/app.py and web/routes)
"""
import pytest

import polylingo.config as config
from polylingo.jobs.models import JobStatus
from polylingo.web.app import build_app


@pytest.fixture
def client(store, recording_scheduler, source, app_config):
    config.save_config(app_config)
    app = build_app(store=store, scheduler=recording_scheduler, source_factory=lambda cfg: source)
    app.config["TESTING"] = True
    return app.test_client()


def finish(store, job):
    store.update(job.id, status=JobStatus.PROCESSING)
    return store.update(job.id, status=JobStatus.COMPLETED, progress=100,
                        translated_title="Titel", translated_content="<p>Inhalt</p>")


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.get_json() == {"status": "ok"}


def test_unknown_route_is_json(client):
    response = client.get("/api/nothing-here")
    assert response.status_code == 404
    assert response.get_json()["code"] == "not_found"


class TestTranslate:

    def test_creates_and_submits_jobs(self, client, recording_scheduler):
        response = client.post("/api/translate", json={"content_ids": [1, 2], "titles": {"1": "First post"}})

        assert response.status_code == 202
        jobs = response.get_json()["jobs"]
        assert len(jobs) == 4
        assert {job["status"] for job in jobs} == {"PENDING"}
        assert jobs[0]["content_title"] == "First post"
        assert len(recording_scheduler.submitted) == 4

    def test_single_content_id_and_languages(self, client):
        response = client.post("/api/translate", json={"content_id": 3, "languages": ["es"]})
        jobs = response.get_json()["jobs"]
        assert [(job["content_id"], job["target_language"]) for job in jobs] == [(3, "es")]

    @pytest.mark.parametrize("body", [
        {},
        {"content_ids": []},
        {"content_ids": "1,2"},
        {"content_ids": ["abc"]},
        {"content_ids": [1], "languages": "de"},
    ])
    def test_bad_request(self, client, recording_scheduler, body):
        response = client.post("/api/translate", json=body)
        assert response.status_code == 400
        assert response.get_json()["code"] == "invalid_request"
        assert recording_scheduler.submitted == []

    def test_missing_api_key(self, client, app_config, store):
        app_config["gemini"]["api_key"] = config.API_KEY_PLACEHOLDER
        config.save_config(app_config)

        response = client.post("/api/translate", json={"content_ids": [1]})

        assert response.status_code == 400
        assert response.get_json()["code"] == "ai_config_missing"
        assert store.list() == []

    def test_no_target_languages(self, client, app_config):
        app_config["target_languages"] = []
        config.save_config(app_config)

        response = client.post("/api/translate", json={"content_ids": [1]})

        assert response.status_code == 400
        assert "target languages" in response.get_json()["error"]


class TestJobs:

    def test_list_and_filter(self, client, store):
        pending = store.create(1, "A", "en", "de")
        done = finish(store, store.create(2, "B", "en", "de"))

        all_jobs = client.get("/api/jobs").get_json()["jobs"]
        assert {job["id"] for job in all_jobs} == {pending.id, done.id}

        completed = client.get("/api/jobs?status=completed").get_json()["jobs"]
        assert [job["id"] for job in completed] == [done.id]

    def test_unknown_status_filter(self, client):
        response = client.get("/api/jobs?status=DANCING")
        assert response.status_code == 400

    def test_get_job_and_logs(self, client, store):
        job = store.create(1, "A", "en", "de")
        store.append_log(job.id, "info", "Job created")

        assert client.get(f"/api/jobs/{job.id}").get_json()["id"] == job.id
        logs = client.get(f"/api/jobs/{job.id}/logs").get_json()["logs"]
        assert [entry["message"] for entry in logs] == ["Job created"]

    def test_unknown_job(self, client):
        response = client.get("/api/jobs/missing")
        assert response.status_code == 404
        body = response.get_json()
        assert body["code"] == "job_not_found"
        assert body["details"] == {"job_id": "missing"}

    def test_delete(self, client, store):
        job = store.create(1, "A", "en", "de")

        response = client.delete(f"/api/jobs/{job.id}")

        assert response.get_json() == {"deleted": job.id}
        assert store.get(job.id) is None
        assert client.delete(f"/api/jobs/{job.id}").status_code == 404

    def test_publish(self, client, store, source):
        job = finish(store, store.create(1, "A", "en", "de"))

        response = client.post(f"/api/jobs/{job.id}/publish", json={"content": "<p>Bearbeitet</p>"})

        assert response.status_code == 200
        body = response.get_json()
        assert body["status"] == "PUBLISHED"
        assert body["external_id"] == 9001
        assert source.published == [(1, "de", "Titel", "<p>Bearbeitet</p>")]

    def test_publish_requires_completed_job(self, client, store):
        job = store.create(1, "A", "en", "de")
        response = client.post(f"/api/jobs/{job.id}/publish")
        assert response.status_code == 400
        assert response.get_json()["code"] == "invalid_status"

    def test_queue_status(self, client, store):
        client.post("/api/translate", json={"content_ids": [1]})
        assert client.get("/api/queue/status").get_json() == {
            "queue_length": 2,
            "active_count": 0,
            "max_parallel": 2,
        }


def test_queue_status_without_scheduler(store, app_config):
    config.save_config(app_config)
    client = build_app(store=store).test_client()
    response = client.get("/api/queue/status")
    assert response.status_code == 400
    assert response.get_json()["code"] == "scheduler_unavailable"


class TestSettings:

    def test_get(self, client):
        body = client.get("/api/settings/").get_json()
        assert body["config"]["target_languages"] == ["de", "fr"]
        providers = {p["id"]: p["requires_key"] for p in body["meta"]["builtin_providers"]}
        assert providers == {"gemini": True, "deepl": True, "mymemory": False}

    def test_partial_update_keeps_other_fields(self, client):
        response = client.put("/api/settings/", json={"config": {"scheduler": {"max_retries": 5}}})

        assert response.status_code == 200
        saved = config.load_config()
        assert saved["scheduler"]["max_retries"] == 5
        assert saved["scheduler"]["max_requests_per_minute"] == 100
        assert saved["gemini"]["api_key"] == "test-gemini-key"

    def test_invalid_update_is_rejected(self, client):
        response = client.put("/api/settings/", json={"config": {"translation_provider": "babelfish"}})

        assert response.status_code == 400
        assert response.get_json()["code"] == "invalid_config"
        assert config.load_config()["translation_provider"] == "gemini"

    def test_missing_body(self, client):
        assert client.put("/api/settings/", json={}).status_code == 400

    def test_wordpress_connection(self, client):
        response = client.post("/api/settings/wordpress/test")
        assert response.get_json() == {"success": True, "user": "Fake editor"}

    def test_languages(self, client):
        languages = client.get("/api/settings/languages").get_json()["languages"]
        assert languages["de"] == "German"
        assert languages["pt-BR"] == "Portuguese (Brazil)"

    def test_reset_requires_confirmation(self, client, store):
        store.create(1, "A", "en", "de")
        assert client.post("/api/settings/reset", json={}).status_code == 400
        assert len(store.list()) == 1

    def test_reset(self, client, store):
        store.create(1, "A", "en", "de")

        response = client.post("/api/settings/reset", json={"confirm": True})

        assert response.status_code == 200
        assert response.get_json()["config"]["target_languages"] == []
        assert store.list() == []
        assert config.load_config()["gemini"]["api_key"] == config.API_KEY_PLACEHOLDER


def test_stats(client, store):
    store.create(1, "A", "en", "de")
    done = store.create(2, "B", "en", "de")
    store.update(done.id, status=JobStatus.PROCESSING)
    store.update(done.id, status=JobStatus.COMPLETED, progress=100, tokens_used=120)

    response = client.get("/api/stats")

    assert response.status_code == 200
    assert response.get_json() == {
        "total_jobs": 2,
        "pending_jobs": 1,
        "completed_jobs": 1,
        "published_jobs": 0,
        "failed_jobs": 0,
        "translated_items": 1,
        "tokens_used": 120,
    }
