"""
Job state transitions.

A job is created in LOADING and ends in exactly one of READY or ERRORED.
Every transition returns a new ImageJob; the input value is left untouched.
"""

from typing import Optional

from pixelsqueeze.exceptions import InvalidTransitionError
from pixelsqueeze.job_schema import ImageJob, ImageOptions, JobStatus
from pixelsqueeze.options import to_engine_config


def start_job(
    session_id: str,
    source_bytes: bytes,
    source_filename: str,
    options: ImageOptions,
    source_content_type: Optional[str] = None,
) -> ImageJob:
    """empty -> loading"""
    return ImageJob(
        session_id=session_id,
        source_bytes=source_bytes,
        source_filename=source_filename,
        source_content_type=source_content_type,
        options=options,
        engine_config=to_engine_config(options),
        status=JobStatus.LOADING,
    )


def _require_loading(job: ImageJob, target: JobStatus) -> None:
    if job.status != JobStatus.LOADING:
        raise InvalidTransitionError(
            f"job {job.id} cannot move from {job.status.value} to {target.value}"
        )


def resolve_job(job: ImageJob, result_bytes: bytes) -> ImageJob:
    """loading -> ready"""
    _require_loading(job, JobStatus.READY)
    if not result_bytes:
        raise InvalidTransitionError(f"job {job.id} cannot be ready without a result")
    return job.model_copy(
        update={"status": JobStatus.READY, "result_bytes": result_bytes, "error": None}
    )


def reject_job(job: ImageJob, message: str) -> ImageJob:
    """loading -> errored"""
    _require_loading(job, JobStatus.ERRORED)
    if not message:
        raise InvalidTransitionError(f"job {job.id} cannot fail without a message")
    return job.model_copy(
        update={"status": JobStatus.ERRORED, "result_bytes": None, "error": message}
    )
