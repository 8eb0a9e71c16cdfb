"""
CallCoach - sales call coaching backend
Audio compression, transcription and AI analysis of recorded sales calls
"""

__version__ = "1.0.0"
