"""
Tests for AudioCompressor
"""

import asyncio
import math
import time

import pytest

from callcoach.audio import AudioCompressor, AudioSegment, CompressionOptions, estimate_compression_ratio
from callcoach.audio.backends import Decoder, DynamicsCompressorRenderer, OfflineRenderer
from callcoach.audio.models import DecodedAudio

from .conftest import EchoEncoder, FailingEncoder, make_wav, read_wav


class RecordingRenderer(OfflineRenderer):
    """Real dynamics render that remembers input and output shapes"""

    def __init__(self):
        self.inner = DynamicsCompressorRenderer()
        self.shapes = []

    async def render(self, audio: DecodedAudio) -> DecodedAudio:
        rendered = await self.inner.render(audio)
        self.shapes.append((
            (audio.channels, audio.frames, audio.sample_rate),
            (rendered.channels, rendered.frames, rendered.sample_rate)
        ))
        return rendered


class TruncatingRenderer(OfflineRenderer):
    async def render(self, audio: DecodedAudio) -> DecodedAudio:
        return DecodedAudio(sample_rate=audio.sample_rate, samples=audio.samples[:, :-10])


class BrokenDecoder(Decoder):
    async def decode(self, segment: AudioSegment) -> DecodedAudio:
        raise ValueError("unexpected decoder bug")


class TestFallback:
    """Invalid input comes back untouched"""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("data,media_type", [
        (b"definitely not audio", "audio/wav"),
        (b"RIFF\x00\x00\x00\x00WAVEjunk", "audio/x-wav"),
        (b"", "audio/webm"),
    ])
    async def test_undecodable_input_returns_original(self, echo_encoder, data, media_type):
        compressor = AudioCompressor(encoder=echo_encoder)
        segment = AudioSegment(data=data, media_type=media_type)

        result = await compressor.compress(segment)

        assert result.data == data
        assert result.media_type == media_type
        assert echo_encoder.bitrates == []

    @pytest.mark.asyncio
    async def test_unexpected_decoder_exception_returns_original(self, echo_encoder):
        compressor = AudioCompressor(decoder=BrokenDecoder(), encoder=echo_encoder)
        segment = AudioSegment(data=make_wav(), media_type="audio/wav")

        result = await compressor.compress(segment)

        assert result is segment

    @pytest.mark.asyncio
    async def test_render_shape_mismatch_returns_original(self, echo_encoder):
        compressor = AudioCompressor(renderer=TruncatingRenderer(), encoder=echo_encoder)
        segment = AudioSegment(data=make_wav(), media_type="audio/wav")

        result = await compressor.compress(segment)

        assert result is segment
        assert echo_encoder.bitrates == []


class TestShapePreservation:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("sample_rate,channels,duration", [
        (16000, 1, 0.25),
        (44100, 2, 0.1),
        (22050, 2, 0.3337),
    ])
    async def test_render_keeps_shape(self, echo_encoder, sample_rate, channels, duration):
        renderer = RecordingRenderer()
        compressor = AudioCompressor(renderer=renderer, encoder=echo_encoder)
        data = make_wav(duration=duration, sample_rate=sample_rate, channels=channels)

        result = await compressor.compress(AudioSegment(data=data, media_type="audio/wav"))

        (source_shape, rendered_shape), = renderer.shapes
        assert source_shape == rendered_shape
        assert read_wav(result.data) == (channels, sample_rate, source_shape[1])


class TestFormatContract:

    @pytest.mark.asyncio
    async def test_webm_success_is_tagged_webm(self, echo_encoder):
        compressor = AudioCompressor(encoder=echo_encoder)
        segment = AudioSegment(data=make_wav(), media_type="audio/wav")

        result = await compressor.compress(segment, CompressionOptions(format="webm"))

        assert result.media_type == "audio/webm"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("fmt", ["mp3", "ogg"])
    async def test_formats_without_encoder_return_wav(self, echo_encoder, fmt):
        compressor = AudioCompressor(encoder=echo_encoder)
        segment = AudioSegment(data=make_wav(), media_type="audio/wav")

        result = await compressor.compress(segment, CompressionOptions(format=fmt))

        assert result.media_type == "audio/wav"
        assert result.data[:4] == b"RIFF"
        assert echo_encoder.bitrates == []

    @pytest.mark.asyncio
    async def test_target_bitrate_scales_with_quality(self, echo_encoder):
        compressor = AudioCompressor(encoder=echo_encoder)
        segment = AudioSegment(data=make_wav(), media_type="audio/wav")

        await compressor.compress(segment, CompressionOptions(quality=0.5, bitrate=64))
        await compressor.compress(segment)

        assert echo_encoder.bitrates == [32000, 44800]

    @pytest.mark.asyncio
    async def test_capture_error_falls_back_to_wav(self):
        compressor = AudioCompressor(encoder=FailingEncoder())
        segment = AudioSegment(data=make_wav(), media_type="audio/wav")

        result = await compressor.compress(segment)

        assert result.media_type == "audio/wav"
        assert read_wav(result.data)[0] == 1

    @pytest.mark.asyncio
    async def test_empty_encoder_output_falls_back_to_wav(self):
        class EmptyEncoder(EchoEncoder):
            async def encode(self, waveform, bitrate_bps):
                return b""

        compressor = AudioCompressor(encoder=EmptyEncoder())
        result = await compressor.compress(AudioSegment(data=make_wav(), media_type="audio/wav"))

        assert result.media_type == "audio/wav"

    def test_invalid_options_rejected(self):
        with pytest.raises(ValueError):
            CompressionOptions(quality=1.5)
        with pytest.raises(ValueError):
            CompressionOptions(format="flac")


class TestTimeoutAndCleanup:

    @pytest.mark.asyncio
    async def test_stalled_capture_resolves_with_wav(self, stalling_encoder):
        duration = 0.5
        compressor = AudioCompressor(encoder=stalling_encoder, timeout_factor=1.2)
        segment = AudioSegment(data=make_wav(duration=duration), media_type="audio/wav")

        started = time.monotonic()
        result = await compressor.compress(segment)
        elapsed = time.monotonic() - started

        assert result.media_type == "audio/wav"
        assert elapsed < duration * 1.2 + 0.5
        assert stalling_encoder.opened == 1
        assert stalling_encoder.closed == 1

    @pytest.mark.asyncio
    async def test_abandoned_call_releases_capture(self, stalling_encoder):
        compressor = AudioCompressor(encoder=stalling_encoder)
        segment = AudioSegment(data=make_wav(duration=5.0), media_type="audio/wav")

        task = asyncio.create_task(compressor.compress(segment))
        for _ in range(200):
            if stalling_encoder.opened:
                break
            await asyncio.sleep(0.01)
        assert stalling_encoder.opened == 1

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert stalling_encoder.closed == 1


class TestConcurrency:

    @pytest.mark.asyncio
    async def test_concurrent_calls_are_independent(self):
        cases = [
            (8000, 1, 0.2, "webm"),
            (16000, 2, 0.3, "mp3"),
            (22050, 1, 0.1, "ogg"),
            (44100, 2, 0.15, "webm"),
            (48000, 1, 0.05, "mp3"),
            (11025, 2, 0.4, "webm"),
        ]
        compressor = AudioCompressor(encoder=EchoEncoder())

        results = await asyncio.gather(*[
            compressor.compress(
                AudioSegment(data=make_wav(duration=d, sample_rate=sr, channels=ch), media_type="audio/wav"),
                CompressionOptions(format=fmt)
            )
            for sr, ch, d, fmt in cases
        ])

        for (sample_rate, channels, duration, fmt), result in zip(cases, results):
            assert result.media_type == ("audio/webm" if fmt == "webm" else "audio/wav")
            assert read_wav(result.data) == (channels, sample_rate, int(duration * sample_rate))


class TestCompressionRatio:

    def test_ratio_values(self):
        assert estimate_compression_ratio(1000, 1000) == 0
        assert estimate_compression_ratio(1000, 500) == 50
        assert estimate_compression_ratio(1000, 1200) == -20

    def test_zero_original_is_nan(self):
        assert math.isnan(estimate_compression_ratio(0, 10))


class TestTimeoutFactor:

    def test_defaults_to_settings(self):
        assert AudioCompressor(encoder=EchoEncoder()).timeout_factor == 1.2

    def test_explicit_value_kept(self):
        assert AudioCompressor(encoder=EchoEncoder(), timeout_factor=2.5).timeout_factor == 2.5

    @pytest.mark.parametrize("factor", [0, 0.5, 1.0])
    def test_factor_must_exceed_realtime(self, factor):
        with pytest.raises(ValueError):
            AudioCompressor(encoder=EchoEncoder(), timeout_factor=factor)
