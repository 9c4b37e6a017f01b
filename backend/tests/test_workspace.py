import asyncio
from collections import defaultdict
from dataclasses import replace

import pytest

from sportlens.analysis.grok_client import demo_result
from sportlens.jobs.errors import (
    JobNotFoundError,
    NoSelectionError,
    SettingsValidationError,
)
from sportlens.jobs.models import JobStatus, SportStyle
from sportlens.workspace import DEMO_JOB_ID, Workspace


def test_upload_three_files_runs_analysis_and_selects_first(workspace, png_bytes):
    files = [(name, png_bytes) for name in ("a.png", "b.png", "c.png")]
    history = defaultdict(list)

    def record(before, after):
        if before is None or before.status != after.status:
            history[after.id].append(after.status)

    workspace.queue.add_listener(record)

    jobs = asyncio.run(workspace.upload_files(files))

    assert [job.filename for job in jobs] == ["a.png", "b.png", "c.png"]
    for job in jobs:
        assert history[job.id] == [JobStatus.PENDING, JobStatus.ANALYZING, JobStatus.PENDING]
    assert all(job.status == JobStatus.PENDING for job in jobs)
    assert all(job.analysis == demo_result() for job in jobs)
    assert all(job.settings.ev_offset == 0.3 for job in jobs)
    assert workspace.selected_job_id == jobs[0].id
    assert [job.id for job in workspace.list_jobs()] == [job.id for job in jobs]


def test_second_upload_keeps_existing_selection(workspace, png_bytes):
    first = workspace.add_files([("one.png", png_bytes)])
    workspace.add_files([("two.png", png_bytes)])

    assert workspace.selected_job_id == first[0].id


def test_add_files_stores_thumbnails(workspace, png_bytes):
    job = workspace.add_files([("court.png", png_bytes)])[0]

    assert job.source_uri.startswith("file://")
    assert job.thumbnail_uri.endswith("_thumb.jpg")
    assert job.analysis is None


def test_upload_then_edit_then_process_all(workspace, png_bytes):
    jobs = asyncio.run(workspace.upload_files([("x.png", png_bytes), ("y.png", png_bytes)]))

    workspace.update_settings(jobs[1].id, {"style": "DRAMATIC", "sharpness": 65})
    report = asyncio.run(workspace.process_all_pending())

    assert report.completed == [jobs[0].id, jobs[1].id]
    edited = workspace.get_job(jobs[1].id)
    assert edited.status == JobStatus.COMPLETED
    assert edited.settings.style == SportStyle.DRAMATIC
    assert edited.settings.sharpness == 65
    assert edited.settings.ev_offset == 0.3
    assert workspace.selected_job_id == jobs[1].id


def test_out_of_range_edit_is_rejected_and_nothing_changes(workspace, png_bytes):
    job = workspace.add_files([("z.png", png_bytes)])[0]

    with pytest.raises(SettingsValidationError) as excinfo:
        workspace.update_settings(job.id, {"sharpness": 60, "contrast": 99})

    assert "contrast" in excinfo.value.errors
    assert workspace.get_job(job.id).settings == job.settings


def test_edit_unknown_job(workspace):
    with pytest.raises(JobNotFoundError):
        workspace.update_settings("nope", {"contrast": 20})


def test_process_selected_without_selection(workspace):
    with pytest.raises(NoSelectionError):
        asyncio.run(workspace.process_selected())


def test_process_selected_completes_selection(workspace, png_bytes):
    jobs = workspace.add_files([("p.png", png_bytes), ("q.png", png_bytes)])
    workspace.set_selected(jobs[1].id)

    done = asyncio.run(workspace.process_selected())

    assert done.id == jobs[1].id
    assert done.status == JobStatus.COMPLETED
    assert workspace.get_job(jobs[0].id).status == JobStatus.PENDING


def test_select_unknown_job_keeps_selection(workspace, png_bytes):
    job = workspace.add_files([("s.png", png_bytes)])[0]

    with pytest.raises(JobNotFoundError):
        workspace.set_selected("ghost")
    assert workspace.selected_job.id == job.id


def test_stats(workspace, png_bytes):
    jobs = workspace.add_files([(f"{n}.png", png_bytes) for n in range(3)])
    asyncio.run(workspace.process_selected())
    workspace.queue.update(jobs[2].id, status=JobStatus.PROCESSING)
    workspace.queue.update(jobs[2].id, status=JobStatus.FAILED, error="boom")

    stats = workspace.stats()

    assert stats.total == 3
    assert stats.completed == 1
    assert stats.failed == 1
    assert stats.average_time >= 0.0


def test_empty_stats(workspace):
    assert workspace.stats().to_dict() == {
        "total": 0, "completed": 0, "failed": 0, "average_time": 0.0,
    }


def test_demo_job_is_seeded_and_selected(settings):
    workspace = Workspace(replace(settings, seed_demo_job=True))

    jobs = workspace.list_jobs()

    assert [job.id for job in jobs] == [DEMO_JOB_ID]
    assert workspace.selected_job_id == DEMO_JOB_ID
    assert jobs[0].analysis.sport_type == "Soccer"
    assert jobs[0].settings.contrast == 10


def test_invalid_settings_refuse_to_build_workspace(settings):
    with pytest.raises(ValueError):
        Workspace(replace(settings, progress_steps=0))
