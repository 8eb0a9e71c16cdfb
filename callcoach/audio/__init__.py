"""
Audio processing module
Handles compression of recorded calls before upload
"""

from .compressor import AudioCompressor, estimate_compression_ratio
from .models import AudioSegment, CompressionOptions, DecodedAudio
