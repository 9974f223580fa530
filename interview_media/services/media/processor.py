"""Audio processing utilities for recorded answers.

Frames PCM as a streamable WAV container, decodes recorded audio with
soundfile, resamples for speech recognition and detects silence.
"""

import io
import struct

import numpy as np
import soundfile as sf

# RIFF/data sizes written while the final length is still unknown
_UNKNOWN_SIZE = 0xFFFFFFFF


class AudioProcessor:
    """Handles PCM audio framing, decoding and analysis.

    Provides utilities for framing streamed WAV data, decoding recorded
    audio to numpy arrays, resampling, and detecting silence via RMS
    energy.
    """

    def __init__(
        self,
        sample_rate: int = 16000,
        sample_width: int = 2,
        channels: int = 1,
    ) -> None:
        """Initialize the audio processor.

        Args:
            sample_rate: Audio sample rate in Hz (default: 16 kHz).
            sample_width: Bytes per sample (2 = 16-bit signed PCM).
            channels: Number of audio channels (1 = mono).
        """
        self.sample_rate = sample_rate
        self.sample_width = sample_width
        self.channels = channels

    def wav_stream_header(self) -> bytes:
        """Return a 44-byte WAV header for PCM whose length is not known yet.

        The RIFF and data sizes are set to 0xFFFFFFFF, the convention used
        by streaming writers; decoders read until the end of the data.
        """
        byte_rate = self.sample_rate * self.channels * self.sample_width
        block_align = self.channels * self.sample_width
        return (
            b"RIFF"
            + struct.pack("<I", _UNKNOWN_SIZE)
            + b"WAVE"
            + b"fmt "
            + struct.pack(
                "<IHHIIHH",
                16,
                1,  # PCM
                self.channels,
                self.sample_rate,
                byte_rate,
                block_align,
                self.sample_width * 8,
            )
            + b"data"
            + struct.pack("<I", _UNKNOWN_SIZE)
        )

    @staticmethod
    def decode_wav(data: bytes) -> tuple[np.ndarray, int]:
        """Decode WAV bytes (streamed or complete) into mono float32.

        Returns:
            Tuple of (samples, sample_rate).

        Raises:
            ValueError: If libsndfile cannot read the data.
        """
        try:
            samples, sample_rate = sf.read(io.BytesIO(data), dtype="float32")
        except sf.SoundFileError as exc:
            raise ValueError(f"Could not decode audio: {exc}") from exc

        # Convert to mono if stereo
        if samples.ndim > 1:
            samples = samples.mean(axis=1).astype(np.float32)
        return samples, sample_rate

    @staticmethod
    def resample(audio: np.ndarray, from_rate: int, to_rate: int = 16000) -> np.ndarray:
        """Linear-interpolation resample (sufficient for speech recognition)."""
        if from_rate == to_rate or len(audio) == 0:
            return audio.astype(np.float32)
        duration = len(audio) / from_rate
        num_samples = int(duration * to_rate)
        indices = np.linspace(0, len(audio) - 1, num_samples)
        return np.interp(indices, np.arange(len(audio)), audio).astype(np.float32)

    def is_silent(self, audio: np.ndarray, threshold: float = 0.01) -> bool:
        """Check if an audio segment is silence based on RMS energy.

        Args:
            audio: Float32 numpy array of audio samples.
            threshold: RMS energy below this value is considered silence.

        Returns:
            True if the audio is silence.
        """
        if len(audio) == 0:
            return True
        # RMS (Root Mean Square) measures signal energy - low RMS = silence
        rms = np.sqrt(np.mean(audio**2))
        return float(rms) < threshold
