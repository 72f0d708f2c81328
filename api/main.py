import logging
import uuid
from pathlib import Path
from typing import Optional
from urllib.parse import quote

from fastapi import Depends, FastAPI, UploadFile, File, Form, HTTPException, Request, Response
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates

from pixelsqueeze.config import (
    DEFAULT_OUTPUT_FORMAT,
    DEFAULT_QUALITY,
    DEFAULT_TARGET_SIZE_KB,
    SESSION_COOKIE,
    TARGET_SIZE_CHOICES,
)
from pixelsqueeze.job_schema import ImageJob, ImageOptions, JobStatus, Mode, OutputFormat
from pixelsqueeze.log import configure_logging
from pixelsqueeze.presenter import media_type, preview_context
from pixelsqueeze.state import start_job
from pixelsqueeze.storage import create_job, get_current_job, get_job
from worker.worker import process_job, upload_limit

configure_logging()
logger = logging.getLogger(__name__)

app = FastAPI(title="PixelSqueeze")

# Static files and templates
# check_dir=False prevents crashes if the directory is present but empty (or even missing).
app.mount(
    "/static",
    StaticFiles(directory=str(Path(__file__).parent / "static"), check_dir=False),
    name="static",
)
templates = Jinja2Templates(directory=str(Path(__file__).parent / "templates"))


def image_options(
    output_format: OutputFormat = Form(OutputFormat(DEFAULT_OUTPUT_FORMAT)),
    quality: float = Form(DEFAULT_QUALITY, ge=0.5, le=1.0),
    target_size: int = Form(DEFAULT_TARGET_SIZE_KB, gt=0),
    mode: Mode = Form(Mode.COMPRESS),
) -> ImageOptions:
    return ImageOptions(
        output_format=output_format,
        quality=quality,
        target_size_kb=target_size,
        mode=mode,
    )


def _session_id(request: Request) -> str:
    return request.cookies.get(SESSION_COOKIE) or str(uuid.uuid4())


def _remember_session(response: Response, session_id: str) -> None:
    response.set_cookie(SESSION_COOKIE, session_id, httponly=True, samesite="lax")


async def _run_upload(session_id: str, file: UploadFile, options: ImageOptions) -> ImageJob:
    # One byte past the limit is enough to tell an oversize upload apart
    content = await file.read(upload_limit() + 1)
    logger.info("Upload %s (%d bytes, %s) for session %s", file.filename, len(content), options.mode.value, session_id)
    job = create_job(
        start_job(session_id, content, file.filename, options, file.content_type)
    )
    return await process_job(job)


def _require_job(job_id: str) -> ImageJob:
    job = get_job(job_id)
    if not job:
        raise HTTPException(status_code=404, detail="Job not found")
    return job


def _content_disposition(disposition: str, filename: str) -> str:
    quoted = quote(filename)
    if quoted != filename:
        return f"{disposition}; filename*=utf-8''{quoted}"
    return f'{disposition}; filename="{filename}"'


# ---------- API endpoints ----------

@app.post("/jobs")
async def create_job_endpoint(
    request: Request,
    response: Response,
    file: UploadFile = File(...),
    options: ImageOptions = Depends(image_options),
):
    if not file.filename:
        raise HTTPException(status_code=400, detail="File required")

    session_id = _session_id(request)
    job = await _run_upload(session_id, file, options)
    _remember_session(response, session_id)
    return job


@app.get("/jobs/{job_id}")
def read_job(job_id: str):
    return _require_job(job_id)


@app.get("/jobs/{job_id}/original")
def get_original(job_id: str):
    job = _require_job(job_id)
    if not job.source_bytes:
        raise HTTPException(status_code=404, detail="Original not available")
    return Response(
        content=job.source_bytes,
        media_type=job.source_content_type or "application/octet-stream",
    )


@app.get("/jobs/{job_id}/result")
def get_result(job_id: str, download: bool = False):
    job = _require_job(job_id)
    if job.status != JobStatus.READY or not job.result_bytes:
        raise HTTPException(status_code=404, detail="Result not available")

    disposition = "attachment" if download else "inline"
    return Response(
        content=job.result_bytes,
        media_type=media_type(job.options.output_format),
        headers={"Content-Disposition": _content_disposition(disposition, job.download_filename)},
    )


# ---------- Web UI endpoints ----------

@app.get("/", response_class=HTMLResponse)
def home(request: Request, job_id: str | None = None):
    session_id = _session_id(request)

    job = None
    if job_id:
        job = get_job(job_id)
        if job and job.session_id != session_id:
            job = None
    if job is None:
        job = get_current_job(session_id)

    options = job.options if job else ImageOptions()
    context = {
        "options": options,
        "output_formats": list(OutputFormat),
        "modes": list(Mode),
        "target_sizes": TARGET_SIZE_CHOICES,
        **preview_context(job),
    }
    response = templates.TemplateResponse(request, "index.html", context)
    _remember_session(response, session_id)
    return response


@app.post("/upload", response_class=HTMLResponse)
async def upload_image(
    request: Request,
    file: Optional[UploadFile] = File(None),
    options: ImageOptions = Depends(image_options),
):
    session_id = _session_id(request)

    # No file picked: nothing to do
    if not file or not file.filename:
        response = RedirectResponse(url="/", status_code=303)
        _remember_session(response, session_id)
        return response

    job = await _run_upload(session_id, file, options)
    response = RedirectResponse(url=f"/?job_id={job.id}", status_code=303)
    _remember_session(response, session_id)
    return response
