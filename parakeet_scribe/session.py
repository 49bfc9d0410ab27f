"""Recording session controller.

Starts and stops the microphone and system audio engines together. A
session moves ``IDLE -> RECORDING -> STOPPING -> IDLE``; ``start()`` while
recording and ``stop()`` while idle are ignored with a warning.
"""

import logging
import threading
import time
from collections.abc import Mapping
from enum import Enum

from .audio import AudioCapture
from .backends.base import SpeechEngine
from .config import DEFAULT_CONFIG, EngineConfig
from .engine import ReconciliationEngine
from .types import AudioSource, ConfirmedDelta, EventListener

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    IDLE = "idle"
    RECORDING = "recording"
    STOPPING = "stopping"


class RecordingSession:
    """Run one reconciliation engine per audio source."""

    def __init__(
        self,
        engines: Mapping[AudioSource, ReconciliationEngine],
        captures: Mapping[AudioSource, AudioCapture] | None = None,
    ):
        if not engines:
            raise ValueError("A session needs at least one engine")
        self._engines = dict(engines)
        self._captures = dict(captures or {})
        unknown = set(self._captures) - set(self._engines)
        if unknown:
            raise ValueError(f"Captures without an engine: {sorted(s.value for s in unknown)}")
        self._state = SessionState.IDLE
        self._lock = threading.Lock()

    @classmethod
    def create(
        cls,
        captures: Mapping[AudioSource, AudioCapture],
        transcriber: SpeechEngine,
        config: EngineConfig = DEFAULT_CONFIG,
    ) -> "RecordingSession":
        """Build a session with one engine per capture, sharing ``transcriber``."""
        engines = {
            source: ReconciliationEngine(source, capture.buffer, transcriber, config)
            for source, capture in captures.items()
        }
        return cls(engines, captures)

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_recording(self) -> bool:
        return self._state == SessionState.RECORDING

    @property
    def sources(self) -> list[AudioSource]:
        return list(self._engines)

    def engine(self, source: AudioSource) -> ReconciliationEngine:
        return self._engines[AudioSource(source)]

    def add_listener(self, listener: EventListener) -> None:
        """Subscribe ``listener`` to the events of every source."""
        for engine in self._engines.values():
            engine.add_listener(listener)

    def start(self) -> None:
        """Reset every source, then start capture and polling for each."""
        with self._lock:
            if self._state != SessionState.IDLE:
                logger.warning("Session is %s, ignoring start()", self._state.value)
                return
            self._state = SessionState.RECORDING

        started: list[AudioCapture | ReconciliationEngine] = []
        try:
            for engine in self._engines.values():
                engine.reset()
            for source, engine in self._engines.items():
                capture = self._captures.get(source)
                if capture is not None:
                    capture.start()
                    started.append(capture)
                engine.start()
                started.append(engine)
        except Exception:
            logger.error(
                "Failed to start recording, stopping %d started component(s)", len(started)
            )
            for component in reversed(started):
                component.stop()
            self._state = SessionState.IDLE
            raise
        logger.info("Recording started (%s)", ", ".join(s.value for s in self._engines))

    def stop(self) -> list[ConfirmedDelta]:
        """Stop polling and capture, then flush pending hypotheses.

        Returns:
            The final deltas produced by the flush.
        """
        with self._lock:
            if self._state != SessionState.RECORDING:
                logger.warning("Session is %s, ignoring stop()", self._state.value)
                return []
            self._state = SessionState.STOPPING

        try:
            for engine in self._engines.values():
                engine.stop()
            for capture in self._captures.values():
                capture.stop()
            deltas = self.finalize()
        finally:
            self._state = SessionState.IDLE
        logger.info("Recording stopped")
        return deltas

    def finalize(self) -> list[ConfirmedDelta]:
        """Move each source's pending hypothesis into its confirmed text."""
        deltas = []
        for engine in self._engines.values():
            delta = engine.finalize()
            if delta is not None:
                deltas.append(delta)
        return deltas

    def wait_idle(self, timeout: float | None = None, interval: float = 0.05) -> bool:
        """Block until no engine has audio left to decode.

        Returns:
            False if ``timeout`` expired first.
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        while any(engine.has_backlog() for engine in self._engines.values()):
            if deadline is not None and time.monotonic() >= deadline:
                return False
            time.sleep(interval)
        return True

    def drain(self, timeout: float | None = None) -> bool:
        """Wait for the engines to catch up, then decode the remaining tail.

        The polling loop leaves up to ``min_new_seconds`` of audio undecoded.
        Call this once capture has ended and before ``stop()`` so that the
        last words reach the hypothesis and are flushed by the stop.

        Returns:
            False if ``timeout`` expired before the engines caught up.
        """
        if not self.wait_idle(timeout):
            return False
        for engine in self._engines.values():
            engine.tick(force=True)
        return True

    def close(self) -> None:
        """Stop if recording and release decode workers."""
        if self.is_recording:
            self.stop()
        for engine in self._engines.values():
            engine.close()

    def __enter__(self) -> "RecordingSession":
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.stop()
