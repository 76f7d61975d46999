"""
Basic audio processing functions including format conversions and resampling.
"""
from math import gcd

import numpy as np
from scipy.signal import resample_poly

from ....config import SAMPLE_RATE_TARGET


def pcm16_to_float(pcm: bytes, channels: int = 1) -> np.ndarray:
    """Interleaved little-endian PCM16 bytes to float32 in [-1, 1], shape (samples, channels)."""
    samples = np.frombuffer(pcm, dtype="<i2").astype(np.float32) / 32768.0
    usable = len(samples) - len(samples) % channels
    return samples[:usable].reshape(-1, channels)


def float_to_pcm16(audio: np.ndarray) -> bytes:
    """Float audio in [-1, 1] to little-endian PCM16 bytes."""
    return np.clip(audio * 32767, -32768, 32767).astype("<i2").tobytes()


def stereo_to_mono(x: np.ndarray) -> np.ndarray:
    """Convert multi-channel audio to mono by averaging channels."""
    if x.ndim == 1:
        return x
    return np.mean(x, axis=1)


def remove_dc(x: np.ndarray) -> np.ndarray:
    """Remove DC offset from audio signal."""
    if x.size == 0:
        return x
    return x - np.mean(x)


def resample(mono: np.ndarray, sr_from: int, sr_to: int = SAMPLE_RATE_TARGET) -> np.ndarray:
    """Polyphase resampling between integer rates (48kHz to 16kHz is 1/3)."""
    if sr_from == sr_to or mono.size == 0:
        return mono.astype(np.float32)
    divisor = gcd(sr_from, sr_to)
    return resample_poly(mono, up=sr_to // divisor, down=sr_from // divisor).astype(np.float32)


def apply_gain(audio: np.ndarray, gain: float) -> np.ndarray:
    if gain == 1.0:
        return audio
    return np.clip(audio * gain, -1.0, 1.0)


def prepare_for_recognition(pcm: bytes,
                            channels: int,
                            sr_capture: int,
                            sr_target: int = SAMPLE_RATE_TARGET,
                            gain: float = 1.0) -> bytes:
    """
    Turn one captured frame into what streaming recognition expects.

    Returns:
        Mono LINEAR16 bytes at ``sr_target``
    """
    frame = pcm16_to_float(pcm, channels)
    mono = remove_dc(stereo_to_mono(frame))
    mono = apply_gain(mono, gain)
    return float_to_pcm16(resample(mono, sr_capture, sr_target))
