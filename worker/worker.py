import logging

from pixelsqueeze import engine
from pixelsqueeze.config import MAX_UPLOAD_MB
from pixelsqueeze.exceptions import CompressionFailure
from pixelsqueeze.job_schema import ImageJob, Mode
from pixelsqueeze.state import reject_job, resolve_job
from pixelsqueeze.storage import update_job

logger = logging.getLogger(__name__)

FAILURE_MESSAGES = {
    Mode.COMPRESS: "Failed to compress the image. Please try again.",
    Mode.CONVERT: "Failed to process the image. Please try again.",
}


def upload_limit() -> int:
    """Largest accepted upload, in bytes."""
    return int(MAX_UPLOAD_MB * 1024 * 1024)


def _check_upload(job: ImageJob) -> None:
    content_type = job.source_content_type
    if content_type and not content_type.startswith("image/"):
        raise CompressionFailure(f"upload is not an image: {content_type}")
    if not job.source_bytes:
        raise CompressionFailure("upload is empty")
    if job.source_size > upload_limit():
        raise CompressionFailure(f"upload exceeds {MAX_UPLOAD_MB} MB")


async def process_job(job: ImageJob) -> ImageJob:
    """
    Runs a loading job through the engine and records the outcome.

    The returned job is always READY or ERRORED. It only lands in the store
    if no newer upload replaced it in the meantime.
    """
    try:
        _check_upload(job)
        result = await engine.compress(job.source_bytes, job.engine_config)
        if not result:
            raise CompressionFailure("engine returned no data")
        job = resolve_job(job, result)
        logger.info("Processed job %s: %d -> %d bytes", job.id, job.source_size, job.result_size)
    except CompressionFailure:
        logger.exception("Failed job %s (%s)", job.id, job.source_filename)
        job = reject_job(job, FAILURE_MESSAGES[job.options.mode])
        # Oversize uploads are not kept around for the preview
        if job.source_size > upload_limit():
            job = job.model_copy(update={"source_bytes": b""})

    update_job(job)
    return job
