"""
degas_errors.py — Failures raised while converting to or from Degas images.

format errors   : the bytes are not a (complete) Degas or PNG image
semantic errors : the image is readable but cannot be represented
codec errors    : the compressed pixel stream is corrupted
"""

from typing import Optional


class DegasError(ValueError):
    """Root of every conversion failure.

    ``stage`` is filled in by the conversion pipeline with the step it had
    reached when the error surfaced (see ``converter.Stage``).
    """

    def __init__(self, message: str):
        super().__init__(message)
        self.stage: Optional[object] = None


class FormatError(DegasError):
    pass


class SemanticError(DegasError):
    pass


class UnsupportedDimensions(SemanticError):
    def __init__(self, width: int, height: int):
        super().__init__(f"unsupported image dimensions -- {width}x{height}")
        self.width = width
        self.height = height


class UnsupportedPixelFormat(SemanticError):
    def __init__(self, bit_depth: int, channels: int, color_type):
        name = getattr(color_type, "value", color_type)
        super().__init__(
            f"unsupported pixel format -- {bit_depth}-bit, {channels} channel(s), {name}"
        )
        self.bit_depth = bit_depth
        self.channels = channels
        self.color_type = color_type


class TooManyColors(SemanticError):
    def __init__(self, count: int, capacity: int):
        super().__init__(f"too many colors -- {count} > {capacity}")
        self.count = count
        self.capacity = capacity


class CodecError(DegasError):
    pass


class RLEOverflow(CodecError):
    pass


class RLETruncated(CodecError):
    pass
