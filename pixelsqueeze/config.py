import os

LOG_LEVEL = os.getenv("PIXELSQUEEZE_LOG_LEVEL", "INFO")

# Engine limits
MAX_WIDTH_OR_HEIGHT = int(os.getenv("PIXELSQUEEZE_MAX_WIDTH_OR_HEIGHT", "1920"))
CONVERT_MAX_SIZE_MB = float(os.getenv("PIXELSQUEEZE_CONVERT_MAX_SIZE_MB", "10240"))
MAX_UPLOAD_MB = float(os.getenv("PIXELSQUEEZE_MAX_UPLOAD_MB", "25"))
ENGINE_USE_THREAD = os.getenv("PIXELSQUEEZE_ENGINE_USE_THREAD", "true").lower() in ("1", "true", "yes")
ENGINE_MAX_ITERATION = int(os.getenv("PIXELSQUEEZE_ENGINE_MAX_ITERATION", "20"))

# Job store
MAX_SESSIONS = int(os.getenv("PIXELSQUEEZE_MAX_SESSIONS", "256"))
SESSION_COOKIE = "pixelsqueeze_session"

# Form defaults
DEFAULT_OUTPUT_FORMAT = "jpeg"
DEFAULT_QUALITY = 0.8
DEFAULT_TARGET_SIZE_KB = 80
TARGET_SIZE_CHOICES = (50, 64, 80, 100, 200)
