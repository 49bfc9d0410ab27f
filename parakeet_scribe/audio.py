"""Audio buffers, replay capture and audio file utilities."""

import logging
import shutil
import subprocess
import threading
import time
from pathlib import Path
from typing import Protocol, runtime_checkable

import numpy as np

from .config import SAMPLE_RATE

logger = logging.getLogger(__name__)

# Formats ffmpeg can decode for replay
SUPPORTED_EXTENSIONS = frozenset({
    ".wav", ".mp3", ".m4a", ".flac", ".ogg", ".webm", ".aac", ".wma"
})


class AudioBuffer:
    """Append-only mono float32 sample buffer.

    One producer appends, any number of readers take snapshots. A view
    returned by ``samples(n)`` keeps covering the same first ``n`` samples
    after later appends: growth copies into a new array and leaves old
    arrays alone, and appends only write past the published length.
    """

    def __init__(self, sample_rate: int = SAMPLE_RATE, capacity: int | None = None):
        self.sample_rate = sample_rate
        self._data = np.zeros(capacity or sample_rate * 30, dtype=np.float32)
        self._length = 0
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return self._length

    def current_length(self) -> int:
        return self._length

    @property
    def duration(self) -> float:
        """Buffered audio in seconds."""
        return self._length / self.sample_rate

    def append(self, samples) -> None:
        chunk = np.asarray(samples, dtype=np.float32).reshape(-1)
        if chunk.size == 0:
            return
        with self._lock:
            needed = self._length + chunk.size
            if needed > self._data.size:
                grown = np.zeros(max(needed, self._data.size * 2), dtype=np.float32)
                grown[: self._length] = self._data[: self._length]
                self._data = grown
            self._data[self._length:needed] = chunk
            self._length = needed

    def samples(self, length: int | None = None) -> np.ndarray:
        """Read-only view of the first ``length`` samples (all by default)."""
        with self._lock:
            data, available = self._data, self._length
        if length is None or length > available:
            length = available
        view = data[:length]
        view.flags.writeable = False
        return view

    def clear(self) -> None:
        with self._lock:
            self._data = np.zeros(self._data.size, dtype=np.float32)
            self._length = 0


@runtime_checkable
class AudioCapture(Protocol):
    """Something that fills an ``AudioBuffer`` while started."""

    @property
    def buffer(self) -> AudioBuffer:
        ...

    def start(self) -> None:
        ...

    def stop(self) -> None:
        ...


class ReplayCapture:
    """Feed pre-recorded samples into a buffer as if captured live.

    Blocks of ``block_duration`` seconds are appended from a daemon thread,
    paced at ``speed`` times real time (0 appends as fast as possible).
    """

    def __init__(
        self,
        samples,
        buffer: AudioBuffer | None = None,
        speed: float = 1.0,
        block_duration: float = 0.1,
    ):
        if speed < 0:
            raise ValueError(f"speed must be >= 0, got {speed}")
        if block_duration <= 0:
            raise ValueError(f"block_duration must be positive, got {block_duration}")
        self._samples = np.asarray(samples, dtype=np.float32).reshape(-1)
        self._buffer = buffer if buffer is not None else AudioBuffer()
        self.speed = speed
        self.block_duration = block_duration
        self._stop = threading.Event()
        self._finished = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def buffer(self) -> AudioBuffer:
        return self._buffer

    @property
    def finished(self) -> bool:
        """True once every sample has been appended."""
        return self._finished.is_set()

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._buffer.clear()
        self._stop = threading.Event()
        self._finished = threading.Event()
        self._thread = threading.Thread(
            target=self._run, args=(self._stop, self._finished), daemon=True
        )
        self._thread.start()

    def stop(self) -> None:
        self._stop.set()

    def wait(self, timeout: float | None = None) -> bool:
        """Block until replay finished; returns False on timeout."""
        return self._finished.wait(timeout)

    def _run(self, stop: threading.Event, finished: threading.Event) -> None:
        block = max(1, int(self.block_duration * self._buffer.sample_rate))
        started = time.monotonic()
        for offset in range(0, len(self._samples), block):
            if stop.is_set():
                return
            self._buffer.append(self._samples[offset:offset + block])
            if self.speed > 0:
                due = started + (offset + block) / self._buffer.sample_rate / self.speed
                delay = due - time.monotonic()
                if delay > 0 and stop.wait(delay):
                    return
        logger.debug("Replay finished after %.1fs of audio", self._buffer.duration)
        finished.set()


def is_supported_audio(path: Path) -> bool:
    """Check if a file has a supported audio extension."""
    return path.suffix.lower() in SUPPORTED_EXTENSIONS


def check_ffmpeg() -> bool:
    """Check if ffmpeg is available on the system."""
    return shutil.which("ffmpeg") is not None


def get_audio_duration(path: Path) -> float | None:
    """
    Get audio duration in seconds using ffprobe.

    Returns None if ffprobe is not available or fails.
    """
    ffprobe = shutil.which("ffprobe")
    if not ffprobe:
        return None

    try:
        result = subprocess.run(
            [
                ffprobe,
                "-v", "quiet",
                "-show_entries", "format=duration",
                "-of", "csv=p=0",
                str(path),
            ],
            capture_output=True,
            text=True,
            timeout=10,
        )
        if result.returncode == 0 and result.stdout.strip():
            return float(result.stdout.strip())
    except (subprocess.TimeoutExpired, ValueError):
        pass

    return None


def load_audio(path: Path, sample_rate: int = SAMPLE_RATE) -> np.ndarray:
    """
    Decode an audio file to mono float32 samples with ffmpeg.

    Raises:
        RuntimeError: If ffmpeg is missing or cannot decode the file.
    """
    ffmpeg = shutil.which("ffmpeg")
    if not ffmpeg:
        raise RuntimeError("ffmpeg not found. Install with: brew install ffmpeg")

    result = subprocess.run(
        [
            ffmpeg,
            "-nostdin",
            "-i", str(path),
            "-f", "f32le",
            "-ac", "1",
            "-ar", str(sample_rate),
            "-",
        ],
        capture_output=True,
    )
    if result.returncode != 0:
        message = result.stderr.decode(errors="replace").strip().splitlines()
        raise RuntimeError(
            f"ffmpeg failed to decode {path}: {message[-1] if message else 'unknown error'}"
        )
    return np.frombuffer(result.stdout, dtype=np.float32).copy()
