import pytest

from sportlens.analysis.grok_client import demo_result
from sportlens.jobs.errors import (
    DuplicateJobError,
    InvalidTransitionError,
    JobBusyError,
    JobNotFoundError,
)
from sportlens.jobs.job_queue import JobQueue, can_transition
from sportlens.jobs.models import EnhancementSettings, Job, JobStatus, SportStyle


def build_job(name="dunk.jpg", **fields):
    return Job(
        filename=name,
        source_uri=f"file:///tmp/{name}",
        thumbnail_uri=f"file:///tmp/thumb_{name}",
        **fields,
    )


def test_insert_then_get_returns_equal_pending_job():
    queue = JobQueue()
    job = build_job()

    queue.insert(job)
    fetched = queue.get(job.id)

    assert fetched == job
    assert fetched.status == JobStatus.PENDING
    assert len(queue) == 1


def test_get_returns_snapshot_not_live_view():
    queue = JobQueue()
    job = build_job()
    queue.insert(job)

    snapshot = queue.get(job.id)
    snapshot.status = JobStatus.COMPLETED
    job.progress = 55

    assert queue.get(job.id).status == JobStatus.PENDING
    assert queue.get(job.id).progress == 0


def test_insert_duplicate_id_rejected():
    queue = JobQueue()
    job = build_job()
    queue.insert(job)

    with pytest.raises(DuplicateJobError):
        queue.insert(build_job("other.jpg", id=job.id))
    assert len(queue) == 1


def test_update_missing_job_leaves_queue_unchanged():
    queue = JobQueue()
    queue.insert(build_job())
    before = queue.list()

    with pytest.raises(JobNotFoundError) as excinfo:
        queue.update("missing", status=JobStatus.ANALYZING, settings={"contrast": 40})

    assert excinfo.value.job_id == "missing"
    assert "missing" not in queue
    assert len(queue) == 1
    assert queue.list() == before


def test_get_missing_job_is_distinct_error():
    with pytest.raises(JobNotFoundError):
        JobQueue().get("nope")


def test_settings_merge_is_shallow():
    queue = JobQueue()
    job = build_job(settings=EnhancementSettings(ev_offset=0.5, contrast=10, sharpness=40))
    queue.insert(job)

    updated = queue.update(job.id, settings={"sharpness": 70})

    assert updated.settings == EnhancementSettings(
        ev_offset=0.5, contrast=10, sharpness=70, style=SportStyle.REALISTIC
    )


def test_list_preserves_insertion_order_and_filters():
    queue = JobQueue()
    jobs = [build_job(f"{n}.jpg") for n in ("a", "b", "c")]
    for job in jobs:
        queue.insert(job)
    queue.update(jobs[1].id, status=JobStatus.PROCESSING)

    assert [j.id for j in queue.list()] == [j.id for j in jobs]
    assert [j.id for j in queue.list(JobStatus.PENDING)] == [jobs[0].id, jobs[2].id]


@pytest.mark.parametrize("current, new, allowed", [
    (JobStatus.PENDING, JobStatus.ANALYZING, True),
    (JobStatus.PENDING, JobStatus.PROCESSING, True),
    (JobStatus.ANALYZING, JobStatus.PENDING, True),
    (JobStatus.ANALYZING, JobStatus.FAILED, True),
    (JobStatus.FAILED, JobStatus.PROCESSING, True),
    (JobStatus.PROCESSING, JobStatus.COMPLETED, True),
    (JobStatus.COMPLETED, JobStatus.PROCESSING, False),
    (JobStatus.ANALYZING, JobStatus.PROCESSING, False),
    (JobStatus.FAILED, JobStatus.ANALYZING, False),
    (JobStatus.PENDING, JobStatus.COMPLETED, False),
])
def test_transition_table(current, new, allowed):
    assert can_transition(current, new) is allowed


def test_completed_job_cannot_reenter_processing():
    queue = JobQueue()
    job = build_job()
    queue.insert(job)
    queue.update(job.id, status=JobStatus.PROCESSING)
    queue.update(job.id, status=JobStatus.COMPLETED)

    with pytest.raises(InvalidTransitionError):
        queue.update(job.id, status=JobStatus.PROCESSING)
    assert queue.get(job.id).status == JobStatus.COMPLETED


def test_same_status_write_is_rejected():
    queue = JobQueue()
    job = build_job()
    queue.insert(job)
    queue.update(job.id, status=JobStatus.PROCESSING)

    with pytest.raises(InvalidTransitionError):
        queue.update(job.id, status=JobStatus.PROCESSING)


def test_settings_edit_rejected_while_processing():
    queue = JobQueue()
    job = build_job()
    queue.insert(job)
    queue.update(job.id, status=JobStatus.PROCESSING)

    with pytest.raises(JobBusyError):
        queue.update(job.id, settings={"contrast": 30})
    assert queue.get(job.id).settings.contrast == 15


def test_rejected_update_applies_nothing():
    queue = JobQueue()
    job = build_job()
    queue.insert(job)

    with pytest.raises(InvalidTransitionError):
        queue.update(job.id, status=JobStatus.COMPLETED, settings={"contrast": 44})

    fetched = queue.get(job.id)
    assert fetched.status == JobStatus.PENDING
    assert fetched.settings.contrast == 15


def test_analysis_written_only_once():
    queue = JobQueue()
    job = build_job()
    queue.insert(job)
    queue.update(job.id, analysis=demo_result())

    with pytest.raises(InvalidTransitionError):
        queue.update(job.id, analysis=demo_result())


def test_timestamps_follow_status():
    queue = JobQueue()
    job = build_job()
    queue.insert(job)

    processing = queue.update(job.id, status=JobStatus.PROCESSING)
    assert processing.started_at is not None
    assert processing.completed_at is None

    done = queue.update(job.id, status=JobStatus.COMPLETED)
    assert done.completed_at >= done.started_at
    assert done.processing_seconds is not None


def test_failed_then_retried_clears_error():
    queue = JobQueue()
    job = build_job()
    queue.insert(job)
    queue.update(job.id, status=JobStatus.PROCESSING)
    queue.update(job.id, status=JobStatus.FAILED, error="boom")

    retried = queue.update(job.id, status=JobStatus.PROCESSING)

    assert retried.error is None
    assert retried.completed_at is None


def test_progress_is_clamped():
    queue = JobQueue()
    job = build_job()
    queue.insert(job)

    assert queue.update(job.id, progress=140).progress == 100.0
    assert queue.update(job.id, progress=-3).progress == 0.0


def test_listeners_see_every_change():
    queue = JobQueue()
    seen = []
    queue.add_listener(lambda before, after: seen.append((before, after.status)))
    job = build_job()

    queue.insert(job)
    queue.update(job.id, status=JobStatus.ANALYZING)

    assert seen[0] == (None, JobStatus.PENDING)
    assert seen[1][0].status == JobStatus.PENDING
    assert seen[1][1] == JobStatus.ANALYZING


def test_failing_listener_does_not_break_update():
    queue = JobQueue()

    def broken(before, after):
        raise RuntimeError("listener exploded")

    queue.add_listener(broken)
    job = build_job()
    queue.insert(job)

    assert queue.update(job.id, status=JobStatus.ANALYZING).status == JobStatus.ANALYZING

    queue.remove_listener(broken)
    queue.update(job.id, status=JobStatus.PENDING)
