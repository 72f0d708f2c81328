from datetime import datetime, timezone
from enum import Enum
from pathlib import PurePosixPath
from typing import Optional
import re
import uuid

from pydantic import BaseModel, Field, computed_field

from pixelsqueeze.config import DEFAULT_OUTPUT_FORMAT, DEFAULT_QUALITY, DEFAULT_TARGET_SIZE_KB


class JobStatus(str, Enum):
    EMPTY = "empty"
    LOADING = "loading"
    READY = "ready"
    ERRORED = "errored"


class Mode(str, Enum):
    COMPRESS = "compress"
    CONVERT = "convert"


class OutputFormat(str, Enum):
    JPEG = "jpeg"
    PNG = "png"
    WEBP = "webp"
    GIF = "gif"
    BMP = "bmp"

    @property
    def mime_type(self) -> str:
        return f"image/{self.value}"


class ImageOptions(BaseModel):
    output_format: OutputFormat = OutputFormat(DEFAULT_OUTPUT_FORMAT)
    quality: float = Field(DEFAULT_QUALITY, ge=0.5, le=1.0)
    target_size_kb: int = Field(DEFAULT_TARGET_SIZE_KB, gt=0)
    mode: Mode = Mode.COMPRESS


class EngineConfig(BaseModel):
    """Options record handed to the engine, one field per contract key."""

    max_size_mb: float = Field(gt=0)
    max_width_or_height: int = Field(gt=0)
    use_web_worker: bool = True
    file_type: str
    quality: float = Field(ge=0, le=1.0)


_EXTENSION_RE = re.compile(r"\.[^/.]+$")


def source_basename(filename: str) -> str:
    """'photos/cat.final.png' -> 'cat.final'"""
    name = PurePosixPath(filename.replace("\\", "/")).name
    return _EXTENSION_RE.sub("", name) or "image"


def download_filename(source_filename: str, output_format: OutputFormat) -> str:
    return f"compressed-{source_basename(source_filename)}.{output_format.value}"


class ImageJob(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    session_id: str
    generation: int = 0
    source_bytes: bytes = Field(b"", exclude=True, repr=False)
    source_filename: str
    source_content_type: Optional[str] = None
    options: ImageOptions
    engine_config: EngineConfig
    status: JobStatus = JobStatus.LOADING
    result_bytes: Optional[bytes] = Field(None, exclude=True, repr=False)
    error: Optional[str] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @computed_field
    @property
    def download_filename(self) -> str:
        return download_filename(self.source_filename, self.options.output_format)

    @computed_field
    @property
    def source_size(self) -> int:
        return len(self.source_bytes)

    @computed_field
    @property
    def result_size(self) -> Optional[int]:
        return len(self.result_bytes) if self.result_bytes is not None else None
