"""Per-source reconciliation engine.

One ``ReconciliationEngine`` drives one audio source: it polls the source's
growing buffer, re-transcribes it once enough new audio has arrived, folds
the result into its ``AgreementState`` and publishes events to listeners.
Microphone and system audio each get their own instance; the two share
nothing mutable.
"""

import concurrent.futures
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import replace

from .agreement import AgreementState, finalize, reconcile
from .audio import AudioBuffer
from .backends.base import SpeechEngine
from .config import DEFAULT_CONFIG, EngineConfig
from .types import (
    AudioSource,
    ConfirmedDelta,
    EventListener,
    HypothesisUpdate,
    TranscriptEvent,
    TranscriptionResult,
)

logger = logging.getLogger(__name__)


class ReconciliationEngine:
    """Turn periodic re-transcriptions of one buffer into confirmed text.

    Each tick reads the buffer length, skips unless more than
    ``config.min_new_seconds`` of audio arrived since the last decode,
    transcribes the whole buffer with ``last_agreed_seconds`` as clip start
    and commits the reconciled state in one step. The polling thread sleeps
    ``config.poll_interval`` after every tick, so a slow decode slows the
    loop down instead of piling up calls.

    Commits, ``stop()`` and ``finalize()`` serialize on one lock. A decode
    that returns after ``stop()`` is discarded.
    """

    def __init__(
        self,
        source: AudioSource,
        buffer: AudioBuffer,
        transcriber: SpeechEngine,
        config: EngineConfig = DEFAULT_CONFIG,
    ):
        self.source = AudioSource(source)
        self.buffer = buffer
        self.transcriber = transcriber
        self.config = config
        self._state = AgreementState()
        self._lock = threading.Lock()
        self._listeners: list[EventListener] = []
        self._cancel = threading.Event()
        self._thread: threading.Thread | None = None
        self._executor: ThreadPoolExecutor | None = None
        self._pending: Future | None = None
        # Token of the run whose decode is in flight
        self._decoding: threading.Event | None = None

    def __repr__(self) -> str:
        return f"ReconciliationEngine(source={self.source.value!r}, running={self.is_running})"

    @property
    def state(self) -> AgreementState:
        """Last committed state."""
        return self._state

    @property
    def is_running(self) -> bool:
        return (
            self._thread is not None
            and self._thread.is_alive()
            and not self._cancel.is_set()
        )

    def add_listener(self, listener: EventListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: EventListener) -> None:
        self._listeners.remove(listener)

    def reset(self) -> None:
        """Drop all state; only allowed while the polling loop is stopped."""
        if self.is_running:
            raise RuntimeError(f"Cannot reset the {self.source} engine while it is running")
        with self._lock:
            self._state = AgreementState()
            self._cancel = threading.Event()

    def start(self) -> None:
        """Start the polling loop in a background thread."""
        if self.is_running:
            logger.warning("%s engine already running, ignoring start()", self.source.label)
            return
        token = threading.Event()
        with self._lock:
            self._cancel = token
        self._thread = threading.Thread(
            target=self._run,
            args=(token,),
            name=f"reconcile-{self.source.value}",
            daemon=True,
        )
        self._thread.start()
        logger.debug("%s engine started", self.source.label)

    def stop(self) -> None:
        """Cancel the polling loop without waiting for an in-flight decode."""
        with self._lock:
            self._cancel.set()
        logger.debug("%s engine stopped", self.source.label)

    def close(self) -> None:
        """Stop and release the decode worker."""
        self.stop()
        if self._executor is not None:
            self._executor.shutdown(wait=False, cancel_futures=True)
            self._executor = None

    def has_backlog(self) -> bool:
        """True while a decode runs or the running loop still has audio to decode."""
        if self._decoding is not None or (self._pending is not None and not self._pending.done()):
            return True
        if not self.is_running:
            return False
        new_samples = self.buffer.current_length() - self._state.last_buffer_sample_count
        return new_samples > self.config.min_new_samples

    def tick(self, force: bool = False) -> bool:
        """Run one reconciliation tick. Returns True when a result was committed.

        With ``force`` any new audio is decoded, even less than
        ``config.min_new_seconds``. Used to drain the tail of a recording.
        """
        return self._tick(self._cancel, force)

    def finalize(self) -> ConfirmedDelta | None:
        """Flush the pending hypothesis into the confirmed text.

        Returns:
            The final delta, or None when there was no hypothesis.
        """
        with self._lock:
            state, text, words = finalize(self._state)
            self._state = state
        if not text:
            return None

        logger.debug("%s finalized %r", self.source.label, text)
        delta = ConfirmedDelta(self.source, text, words, final=True)
        self._publish([delta, self._hypothesis_event(state)])
        return delta

    def _run(self, token: threading.Event) -> None:
        while not token.is_set():
            self._tick(token)
            token.wait(self.config.poll_interval)

    def _tick(self, token: threading.Event, force: bool = False) -> bool:
        length = self.buffer.current_length()
        new_samples = length - self._state.last_buffer_sample_count
        if new_samples <= 0:
            return False
        if not force and new_samples / self.config.sample_rate <= self.config.min_new_seconds:
            return False

        if self._pending is not None and not self._pending.done():
            logger.debug("%s: previous decode still running, skipping tick", self.source.label)
            return False
        self._pending = None

        with self._lock:
            if token.is_set():
                return False
            if self._decoding is not None:
                # A decode from this or an earlier run has not returned yet
                logger.debug("%s: decode in flight, skipping tick", self.source.label)
                return False
            self._state = replace(self._state, last_buffer_sample_count=length)
            clip_start = self._state.last_agreed_seconds
            self._decoding = token

        try:
            state = self._decode_and_commit(token, length, clip_start)
        finally:
            with self._lock:
                if self._decoding is token:
                    self._decoding = None
        return state is not None

    def _decode_and_commit(
        self, token: threading.Event, length: int, clip_start: float
    ) -> AgreementState | None:
        logger.debug(
            "Transcribing %s %.2f-%.2f seconds",
            self.source.value,
            clip_start,
            length / self.config.sample_rate,
        )
        try:
            result = self._decode(self.buffer.samples(length), clip_start)
        except concurrent.futures.TimeoutError:
            logger.warning(
                "%s decode timed out after %.1fs, skipping",
                self.source.label,
                self.config.decode_timeout,
            )
            return None
        except Exception as exc:
            logger.warning("%s decode failed, skipping: %s", self.source.label, exc)
            return None

        events: list[TranscriptEvent] = []
        with self._lock:
            if token.is_set():
                logger.debug("%s: discarding result of a cancelled decode", self.source.label)
                return None
            state, text, words = reconcile(
                self._state,
                result,
                confirmations_needed=self.config.confirmations_needed,
                tolerance=self.config.timestamp_tolerance,
            )
            self._state = state

        if text:
            events.append(ConfirmedDelta(self.source, text, words))
        events.append(self._hypothesis_event(state))
        self._publish(events)
        return state

    def _decode(self, samples, clip_start: float) -> TranscriptionResult:
        timeout = self.config.decode_timeout
        if timeout is None:
            return self.transcriber.transcribe(samples, clip_start=clip_start)

        if self._executor is None:
            self._executor = ThreadPoolExecutor(
                max_workers=1, thread_name_prefix=f"decode-{self.source.value}"
            )
        future = self._executor.submit(self.transcriber.transcribe, samples, clip_start=clip_start)
        try:
            return future.result(timeout=timeout)
        except concurrent.futures.TimeoutError:
            self._pending = future
            raise

    def _hypothesis_event(self, state: AgreementState) -> HypothesisUpdate:
        return HypothesisUpdate(self.source, state.confirmed_text, state.hypothesis_text)

    def _publish(self, events: list[TranscriptEvent]) -> None:
        for event in events:
            for listener in list(self._listeners):
                try:
                    listener(event)
                except Exception:
                    logger.exception("%s listener failed", self.source.label)
