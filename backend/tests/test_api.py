import pytest
from fastapi.testclient import TestClient

from server import app
from sportlens.analysis.grok_client import demo_result
from sportlens.api.dependencies import get_workspace
from sportlens.jobs.models import AnalysisResult, EnhancementSettings


@pytest.fixture()
def client(workspace):
    app.dependency_overrides[get_workspace] = lambda: workspace
    yield TestClient(app)
    app.dependency_overrides.clear()


def upload(client, png_bytes, *names):
    files = [("files", (name, png_bytes, "image/png")) for name in names]
    return client.post("/api/upload/", files=files)


def test_root_lists_endpoints(client):
    body = client.get("/").json()

    assert body["name"] == "SportLens Batch API"
    assert body["endpoints"]["upload"] == "/api/upload/"


def test_health_reports_demo_mode(client):
    body = client.get("/health").json()

    assert body["status"] == "healthy"
    assert body["analysis"]["credentials"] is False
    assert body["jobs"] == 0


def test_upload_queues_jobs_and_runs_analysis(client, png_bytes):
    response = upload(client, png_bytes, "a.png", "b.png", "c.png")

    assert response.status_code == 200
    body = response.json()
    assert body["filenames"] == ["a.png", "b.png", "c.png"]

    jobs = client.get("/api/jobs/").json()
    assert [job["id"] for job in jobs] == body["job_ids"]
    assert all(job["status"] == "PENDING" for job in jobs)
    assert all(job["analysis"]["sport_type"] == "Demo Sport" for job in jobs)
    assert [job["selected"] for job in jobs] == [True, False, False]


def test_upload_rejects_non_images(client):
    files = [("files", ("notes.txt", b"hello", "text/plain"))]

    response = client.post("/api/upload/", files=files)

    assert response.status_code == 400


def test_get_unknown_job_is_404(client):
    assert client.get("/api/jobs/ghost").status_code == 404
    assert client.post("/api/jobs/ghost/select").status_code == 404
    assert client.patch("/api/jobs/ghost/settings", json={"contrast": 20}).status_code == 404


def test_patch_settings(client, png_bytes):
    job_id = upload(client, png_bytes, "a.png").json()["job_ids"][0]

    response = client.patch(
        f"/api/jobs/{job_id}/settings",
        json={"style": "VIBRANT", "sharpness": 70},
    )

    assert response.status_code == 200
    settings = response.json()["settings"]
    assert settings["style"] == "VIBRANT"
    assert settings["sharpness"] == 70
    assert settings["ev_offset"] == 0.3


def test_patch_out_of_range_is_422(client, png_bytes):
    job_id = upload(client, png_bytes, "a.png").json()["job_ids"][0]

    response = client.patch(f"/api/jobs/{job_id}/settings", json={"contrast": 80})

    assert response.status_code == 422
    assert "contrast" in response.json()["detail"]["errors"]
    assert client.get(f"/api/jobs/{job_id}").json()["settings"]["contrast"] == 15


def test_process_selected(client, png_bytes):
    ids = upload(client, png_bytes, "a.png", "b.png").json()["job_ids"]
    client.post(f"/api/jobs/{ids[1]}/select")

    response = client.post("/api/jobs/selected/process")

    assert response.status_code == 200
    assert response.json()["id"] == ids[1]
    assert response.json()["status"] == "COMPLETED"
    assert client.post("/api/jobs/selected/process").status_code == 409


def test_process_selected_without_selection_is_400(client):
    assert client.post("/api/jobs/selected/process").status_code == 400


def test_process_all_and_stats(client, png_bytes):
    ids = upload(client, png_bytes, "a.png", "b.png", "c.png").json()["job_ids"]

    report = client.post("/api/jobs/process-all").json()

    assert report["completed"] == ids
    assert report["failed"] == []

    stats = client.get("/api/jobs/stats").json()
    assert stats["total"] == 3
    assert stats["completed"] == 3
    assert stats["is_batch_processing"] is False
    assert stats["selected_job_id"] == ids[-1]

    completed = client.get("/api/jobs/", params={"status": "COMPLETED"}).json()
    assert len(completed) == 3


def test_job_payload_round_trips_into_domain_objects(client, png_bytes, workspace):
    job_id = upload(client, png_bytes, "a.png").json()["job_ids"][0]
    client.patch(f"/api/jobs/{job_id}/settings", json={"style": "DRAMATIC", "contrast": 33})

    body = client.get(f"/api/jobs/{job_id}").json()

    stored = workspace.get_job(job_id)
    assert EnhancementSettings.from_dict(body["settings"]) == stored.settings
    assert AnalysisResult.from_dict(body["analysis"]) == stored.analysis == demo_result()
