"""
Errors raised by provider clients
"""


class CallCoachError(Exception):
    """Base class for service errors surfaced to the API layer"""

    def __init__(self, message: str, details: str = ""):
        super().__init__(message)
        self.message = message
        self.details = details


class ConfigurationError(CallCoachError):
    """A required setting (usually the API key) is missing"""


class TranscriptionError(CallCoachError):
    """Transcription provider failed or returned an unusable payload"""


class AnalysisError(CallCoachError):
    """Analysis provider failed or returned an unusable payload"""
