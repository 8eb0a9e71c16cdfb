"""
Internal error taxonomy of the compression pipeline.
None of these ever reach the caller of AudioCompressor.compress.
"""


class CompressionError(Exception):
    """Base class for compression pipeline failures"""


class DecodeError(CompressionError):
    """Input buffer is not parseable as audio"""


class RenderError(CompressionError):
    """Offline dynamics render failed"""


class EncodeError(CompressionError):
    """Intermediate WAV encode failed"""


class CaptureError(CompressionError):
    """Opus/WebM re-encode failed"""


class CaptureTimeout(CaptureError):
    """Opus/WebM re-encode exceeded its duration-based deadline"""

    def __init__(self, timeout_seconds: float):
        super().__init__(f"Re-encode did not finish within {timeout_seconds:.2f}s")
        self.timeout_seconds = timeout_seconds
