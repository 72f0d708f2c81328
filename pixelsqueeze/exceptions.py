"""
PixelSqueeze exceptions
"""


class PixelSqueezeError(Exception):
    """Base class for PixelSqueeze errors"""
    pass


class CompressionFailure(PixelSqueezeError):
    """The engine could not decode or re-encode the upload"""
    pass


class InvalidTransitionError(PixelSqueezeError):
    """A job was moved out of a state that does not allow it"""
    pass
