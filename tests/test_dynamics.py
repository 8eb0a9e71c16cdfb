"""
Tests for the offline dynamics compressor and WAV encoding
"""

import io
import wave

import numpy as np
import pytest

from callcoach.audio.dynamics import DynamicsCompressor
from callcoach.audio.models import DecodedAudio
from callcoach.audio.wav import encode_wav, to_pcm16


@pytest.fixture
def compressor():
    return DynamicsCompressor()


class TestStaticCurve:

    def test_below_knee_is_unchanged(self, compressor):
        assert compressor.static_curve(np.array([-60.0]))[0] == pytest.approx(-60.0)

    def test_above_knee_uses_ratio(self, compressor):
        # -24 + (0 - -24) / 12
        assert compressor.static_curve(np.array([0.0]))[0] == pytest.approx(-22.0)

    def test_knee_midpoint(self, compressor):
        # threshold + (1/12 - 1) * 15^2 / 60
        expected = -24.0 + (1.0 / 12.0 - 1.0) * 225.0 / 60.0
        assert compressor.static_curve(np.array([-24.0]))[0] == pytest.approx(expected)

    def test_curve_is_continuous_at_knee_edges(self, compressor):
        edges = np.array([-39.0, -9.0])
        below = compressor.static_curve(edges - 1e-6)
        above = compressor.static_curve(edges + 1e-6)
        assert np.allclose(below, above, atol=1e-4)

    def test_makeup_gain(self, compressor):
        assert compressor.makeup_gain() == pytest.approx(10 ** (22.0 * 0.6 / 20.0))

    def test_invalid_parameters(self):
        with pytest.raises(ValueError):
            DynamicsCompressor(ratio=0.5)
        with pytest.raises(ValueError):
            DynamicsCompressor(attack=0)


class TestProcess:

    def test_shape_and_rate_preserved(self, compressor):
        samples = np.random.default_rng(7).uniform(-1, 1, size=(2, 1001)).astype(np.float32)
        audio = DecodedAudio(sample_rate=22050, samples=samples)

        rendered = compressor.process(audio)

        assert rendered.samples.shape == (2, 1001)
        assert rendered.sample_rate == 22050
        assert rendered.samples.dtype == np.float32
        assert np.all(np.abs(rendered.samples) <= 1.0)

    def test_silence_stays_silent(self, compressor):
        audio = DecodedAudio(sample_rate=16000, samples=np.zeros((1, 4000), dtype=np.float32))

        rendered = compressor.process(audio)

        assert not rendered.samples.any()

    def test_empty_buffer(self, compressor):
        audio = DecodedAudio(sample_rate=16000, samples=np.zeros((1, 0), dtype=np.float32))
        assert compressor.process(audio).frames == 0

    def test_quiet_signal_gets_makeup_gain(self, compressor):
        audio = DecodedAudio(sample_rate=16000, samples=np.full((1, 16000), 0.01, dtype=np.float32))

        gain = compressor.gain_envelope(audio)

        assert gain[-1] == pytest.approx(compressor.makeup_gain(), rel=1e-3)

    def test_loud_signal_is_reduced(self, compressor):
        audio = DecodedAudio(sample_rate=16000, samples=np.full((1, 16000), 1.0, dtype=np.float32))

        gain = compressor.gain_envelope(audio)

        expected = 10 ** (-22.0 / 20.0) * compressor.makeup_gain()
        assert gain[-1] == pytest.approx(expected, rel=1e-3)
        assert gain[-1] < 1.0

    def test_channels_are_linked(self, compressor):
        samples = np.zeros((2, 8000), dtype=np.float32)
        samples[0, :] = 0.9
        samples[1, :] = 0.01
        audio = DecodedAudio(sample_rate=16000, samples=samples)

        rendered = compressor.process(audio)

        # Same gain on both channels keeps the stereo balance
        ratio = rendered.samples[0, -1] / rendered.samples[1, -1]
        assert ratio == pytest.approx(90.0, rel=1e-3)


class TestWavEncoding:

    def test_pcm16_scaling(self):
        pcm = to_pcm16(np.array([-1.0, 1.0, 0.0, 0.5, -0.5, 2.0, -3.0]))
        assert pcm.tolist() == [-32768, 32767, 0, 16383, -16384, 32767, -32768]

    def test_wav_header_and_interleaving(self):
        samples = np.array([[0.5, -1.0, 0.0], [-0.5, 1.0, 0.25]], dtype=np.float32)
        data = encode_wav(DecodedAudio(sample_rate=8000, samples=samples))

        assert data[:4] == b"RIFF"
        assert data[8:12] == b"WAVE"
        assert len(data) == 44 + 3 * 2 * 2

        with wave.open(io.BytesIO(data), "rb") as wav_file:
            assert wav_file.getnchannels() == 2
            assert wav_file.getframerate() == 8000
            assert wav_file.getsampwidth() == 2
            frames = np.frombuffer(wav_file.readframes(3), dtype="<i2")

        assert frames.tolist() == [16383, -16384, -32768, 32767, 0, 8191]

    def test_decoded_audio_requires_2d_samples(self):
        with pytest.raises(ValueError):
            DecodedAudio(sample_rate=8000, samples=np.zeros(10))
