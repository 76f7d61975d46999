import numpy as np

from mockinterview.infrastructure.audio.processing import (
    float_to_pcm16,
    pcm16_to_float,
    prepare_for_recognition,
    remove_dc,
    resample,
    stereo_to_mono,
)


def tone(seconds=0.1, sr=48000, freq=440.0):
    t = np.arange(int(seconds * sr)) / sr
    return (0.5 * np.sin(2 * np.pi * freq * t)).astype(np.float32)


def test_pcm16_to_float_reshapes_channels():
    pcm = np.array([0, 16384, -16384, 32767], dtype="<i2").tobytes()
    frame = pcm16_to_float(pcm, channels=2)
    assert frame.shape == (2, 2)
    assert frame[0, 1] == 0.5


def test_float_to_pcm16_clips():
    pcm = float_to_pcm16(np.array([2.0, -2.0], dtype=np.float32))
    assert list(np.frombuffer(pcm, dtype="<i2")) == [32767, -32768]


def test_stereo_to_mono_and_dc():
    stereo = np.array([[1.0, 0.0], [0.5, 0.5]], dtype=np.float32)
    assert list(stereo_to_mono(stereo)) == [0.5, 0.5]
    assert np.allclose(remove_dc(np.array([1.0, 3.0])), [-1.0, 1.0])
    assert remove_dc(np.array([])).size == 0


def test_resample_48k_to_16k():
    mono = tone()
    assert len(resample(mono, 48000, 16000)) == len(mono) // 3
    assert resample(mono, 16000, 16000).dtype == np.float32


def test_prepare_for_recognition_output_size():
    stereo = np.repeat(tone()[:, None], 2, axis=1)
    pcm = float_to_pcm16(stereo.reshape(-1))
    out = prepare_for_recognition(pcm, channels=2, sr_capture=48000, sr_target=16000)
    assert len(out) == 2 * (len(tone()) // 3)
