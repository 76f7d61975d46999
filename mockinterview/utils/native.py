"""
Quieting native audio and gRPC libraries.

PortAudio/ALSA write probe noise straight to file descriptor 2 while devices
are opened, which would scribble over the console prompt.
"""
import functools
import os
from contextlib import contextmanager

os.environ.setdefault("JACK_NO_START_SERVER", "1")
os.environ.setdefault("GRPC_VERBOSITY", "ERROR")
os.environ.setdefault("GLOG_minloglevel", "2")


@contextmanager
def suppressed_native_stderr():
    """Redirect fd 2 to /dev/null for the duration of the block."""
    try:
        saved_fd = os.dup(2)
    except OSError:
        yield
        return
    null_fd = os.open(os.devnull, os.O_WRONLY)
    os.dup2(null_fd, 2)
    os.close(null_fd)
    try:
        yield
    finally:
        os.dup2(saved_fd, 2)
        os.close(saved_fd)


def with_suppressed_audio_warnings(func):
    """Decorator form of ``suppressed_native_stderr``."""
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        with suppressed_native_stderr():
            return func(*args, **kwargs)
    return wrapper
