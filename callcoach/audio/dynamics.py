"""
Offline dynamics compressor
Feed-forward peak compressor with a soft knee, modelled on the Web Audio
DynamicsCompressorNode (linked channels, block-rate envelope, makeup gain).
"""

import math

import numpy as np

from .models import DecodedAudio

# Envelope is computed once per block of frames
BLOCK_SIZE = 32
# Floor for level detection, avoids log10(0)
MIN_LEVEL = 1e-10
MAKEUP_EXPONENT = 0.6


class DynamicsCompressor:
    """Loudness-range reduction with fixed parameters"""

    def __init__(
        self,
        threshold: float = -24.0,
        knee: float = 30.0,
        ratio: float = 12.0,
        attack: float = 0.003,
        release: float = 0.25,
        block_size: int = BLOCK_SIZE
    ):
        if ratio < 1.0:
            raise ValueError("ratio must be >= 1")
        if attack <= 0 or release <= 0:
            raise ValueError("attack and release must be positive")

        self.threshold = threshold
        self.knee = knee
        self.ratio = ratio
        self.attack = attack
        self.release = release
        self.block_size = block_size

    def static_curve(self, level_db: np.ndarray) -> np.ndarray:
        """Output level in dB for a steady input level in dB"""
        level_db = np.asarray(level_db, dtype=np.float64)
        overshoot = level_db - self.threshold
        slope = 1.0 / self.ratio - 1.0

        output = level_db.copy()
        if self.knee > 0:
            in_knee = np.abs(2.0 * overshoot) <= self.knee
            knee_offset = overshoot[in_knee] + self.knee / 2.0
            output[in_knee] = level_db[in_knee] + slope * knee_offset ** 2 / (2.0 * self.knee)
            above = 2.0 * overshoot > self.knee
        else:
            above = overshoot > 0

        output[above] = self.threshold + overshoot[above] / self.ratio
        return output

    def makeup_gain(self) -> float:
        """Linear gain restoring part of the reduction applied at full scale"""
        full_scale_db = float(self.static_curve(np.array([0.0]))[0])
        return 10.0 ** (-full_scale_db * MAKEUP_EXPONENT / 20.0)

    def gain_envelope(self, audio: DecodedAudio) -> np.ndarray:
        """Per-frame linear gain for the whole buffer"""
        frames = audio.frames
        block_count = int(math.ceil(frames / float(self.block_size)))

        # Channels are linked: the loudest channel drives the detector
        peak = np.max(np.abs(audio.samples), axis=0)
        padded = np.zeros(block_count * self.block_size, dtype=np.float64)
        padded[:frames] = peak
        block_peak = padded.reshape(block_count, self.block_size).max(axis=1)

        level_db = 20.0 * np.log10(np.maximum(block_peak, MIN_LEVEL))
        target_db = self.static_curve(level_db) - level_db

        block_seconds = self.block_size / float(audio.sample_rate)
        attack_coef = math.exp(-block_seconds / self.attack)
        release_coef = math.exp(-block_seconds / self.release)

        smoothed = np.empty(block_count, dtype=np.float64)
        current = 0.0
        for index, target in enumerate(target_db):
            coef = attack_coef if target < current else release_coef
            current = coef * current + (1.0 - coef) * target
            smoothed[index] = current

        block_gain = 10.0 ** (smoothed / 20.0) * self.makeup_gain()
        block_centers = np.arange(block_count) * self.block_size + self.block_size / 2.0
        return np.interp(np.arange(frames), block_centers, block_gain)

    def process(self, audio: DecodedAudio) -> DecodedAudio:
        """Render the buffer through the compressor; shape and rate are kept"""
        if audio.frames == 0:
            return DecodedAudio(sample_rate=audio.sample_rate, samples=audio.samples.copy())

        gain = self.gain_envelope(audio)
        rendered = audio.samples * gain[np.newaxis, :]
        np.clip(rendered, -1.0, 1.0, out=rendered)

        return DecodedAudio(
            sample_rate=audio.sample_rate,
            samples=rendered.astype(np.float32, copy=False)
        )
