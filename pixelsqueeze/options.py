from pixelsqueeze.config import CONVERT_MAX_SIZE_MB, ENGINE_USE_THREAD, MAX_WIDTH_OR_HEIGHT
from pixelsqueeze.job_schema import EngineConfig, ImageOptions, Mode

# Quality requested for format-only conversion
CONVERT_QUALITY = 1.0


def to_engine_config(options: ImageOptions) -> EngineConfig:
    """
    Maps the user's choices onto the engine's options record.

    compress: size budget is target_size_kb / 1024 MB, quality as selected.
    convert:  size budget is effectively unbounded and quality is pinned to
              the maximum; the target size selector is ignored.
    """
    if options.mode == Mode.CONVERT:
        max_size_mb = CONVERT_MAX_SIZE_MB
        quality = CONVERT_QUALITY
    else:
        max_size_mb = options.target_size_kb / 1024
        quality = options.quality

    return EngineConfig(
        max_size_mb=max_size_mb,
        max_width_or_height=MAX_WIDTH_OR_HEIGHT,
        use_web_worker=ENGINE_USE_THREAD,
        file_type=options.output_format.mime_type,
        quality=quality,
    )
