"""
PixelSqueeze: upload an image, compress or convert it, download the result.
"""

from pixelsqueeze.exceptions import (
    PixelSqueezeError,
    CompressionFailure,
    InvalidTransitionError,
)

__all__ = [
    "PixelSqueezeError",
    "CompressionFailure",
    "InvalidTransitionError",
]
