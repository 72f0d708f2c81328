from typing import Any, Dict, Optional

from pixelsqueeze.job_schema import ImageJob, JobStatus, Mode, OutputFormat, download_filename

LOADING_MESSAGES = {
    Mode.COMPRESS: "Compressing image...",
    Mode.CONVERT: "Converting image...",
}


def human_size(num_bytes: float) -> str:
    for unit in ["B", "KB", "MB", "GB"]:
        if num_bytes < 1024.0:
            return f"{num_bytes:3.1f} {unit}"
        num_bytes /= 1024.0
    return f"{num_bytes:.1f} TB"


def media_type(output_format: OutputFormat) -> str:
    return output_format.mime_type


def result_heading(job: ImageJob) -> str:
    if job.options.mode == Mode.CONVERT:
        return f"Converted Image ({job.options.output_format.value.upper()})"
    return f"Compressed Image ({job.options.target_size_kb}KB)"


def preview_context(job: Optional[ImageJob]) -> Dict[str, Any]:
    """Template context for the two previews and the download link."""
    if job is None:
        return {"status": JobStatus.EMPTY.value, "job": None}

    context: Dict[str, Any] = {
        "status": job.status.value,
        "job": job,
        "original_url": f"/jobs/{job.id}/original" if job.source_bytes else None,
        "original_size": human_size(job.source_size),
        "loading_message": LOADING_MESSAGES[job.options.mode],
        "error": job.error if job.status == JobStatus.ERRORED else None,
    }

    if job.status == JobStatus.READY:
        context.update(
            result_url=f"/jobs/{job.id}/result",
            download_url=f"/jobs/{job.id}/result?download=true",
            download_filename=download_filename(job.source_filename, job.options.output_format),
            result_heading=result_heading(job),
            result_size=human_size(job.result_size or 0),
        )
    return context
