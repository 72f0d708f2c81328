import asyncio

import pytest

from conftest import make_image
from pixelsqueeze import storage
from pixelsqueeze.job_schema import ImageOptions, JobStatus, Mode, OutputFormat
from pixelsqueeze.state import start_job
from worker import worker


def _create(data, options=None, content_type="image/jpeg", session_id="session"):
    job = start_job(session_id, data, "photo.jpg", options or ImageOptions(), content_type)
    return storage.create_job(job)


def _run(job):
    return asyncio.run(worker.process_job(job))


def _exactly_one_outcome(job):
    return (job.result_bytes is not None) != (job.error is not None)


def test_successful_job_is_ready_and_stored():
    job = _run(_create(make_image("JPEG", size=(640, 480), noise=True)))

    assert job.status == JobStatus.READY
    assert job.result_bytes
    assert _exactly_one_outcome(job)
    assert storage.get_current_job("session").status == JobStatus.READY


@pytest.mark.parametrize("mode, message", [
    (Mode.COMPRESS, "Failed to compress the image. Please try again."),
    (Mode.CONVERT, "Failed to process the image. Please try again."),
])
def test_corrupt_upload_goes_straight_to_errored(mode, message):
    job = _run(_create(b"\xff\xd8corrupt", ImageOptions(mode=mode)))

    assert job.status == JobStatus.ERRORED
    assert job.error == message
    assert _exactly_one_outcome(job)
    assert storage.get_current_job("session").error == message


def test_non_image_upload_is_rejected():
    job = _run(_create(make_image("PNG"), content_type="text/plain"))

    assert job.status == JobStatus.ERRORED


def test_oversize_upload_is_rejected(monkeypatch):
    monkeypatch.setattr(worker, "MAX_UPLOAD_MB", 0.001)
    job = _run(_create(make_image("PNG", size=(200, 200), noise=True)))

    assert job.status == JobStatus.ERRORED
    assert job.source_bytes == b""
    assert storage.get_current_job("session").source_bytes == b""


def test_stale_job_does_not_replace_newer_upload():
    first = _create(make_image("PNG"), ImageOptions(mode=Mode.CONVERT, output_format=OutputFormat.WEBP))
    second = _create(make_image("PNG"))

    finished = _run(first)

    assert finished.status == JobStatus.READY
    current = storage.get_current_job("session")
    assert current.id == second.id
    assert current.status == JobStatus.LOADING
