"""Audio processing, capture and recording modules."""

# Import processing functions immediately (numpy/scipy only)
from .processing import (
    pcm16_to_float,
    float_to_pcm16,
    stereo_to_mono,
    remove_dc,
    resample,
    prepare_for_recognition,
)


# Lazy imports for capture (avoid importing pyaudio unless needed)
def _get_microphone_device():
    from .capture import MicrophoneDevice
    return MicrophoneDevice


def _get_ffmpeg_recorder():
    from .recorder import FfmpegRecorder
    return FfmpegRecorder


def __getattr__(name):
    if name == "MicrophoneDevice":
        return _get_microphone_device()
    if name == "FfmpegRecorder":
        return _get_ffmpeg_recorder()
    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")


__all__ = [
    "MicrophoneDevice",
    "FfmpegRecorder",
    "pcm16_to_float",
    "float_to_pcm16",
    "stereo_to_mono",
    "remove_dc",
    "resample",
    "prepare_for_recognition",
]
