"""Transcript assembled from confirmed deltas of both sources."""

import threading
from dataclasses import dataclass

from .types import AudioSource, ConfirmedDelta, TranscriptEvent


@dataclass
class TranscriptMessage:
    """Consecutive confirmed text from one source."""

    source: AudioSource
    text: str
    start: float | None = None  # seconds
    end: float | None = None  # seconds

    @property
    def duration(self) -> float | None:
        if self.start is None or self.end is None:
            return None
        return self.end - self.start


class Transcript:
    """
    Collect ``ConfirmedDelta`` events into speaker turns.

    A delta from the same source as the last message extends it; a delta
    from the other source opens a new message. Instances are listeners and
    can be passed straight to ``RecordingSession.add_listener``.
    """

    def __init__(self, model_id: str = ""):
        self.model_id = model_id
        self._messages: list[TranscriptMessage] = []
        self._lock = threading.Lock()

    def __call__(self, event: TranscriptEvent) -> None:
        if isinstance(event, ConfirmedDelta):
            self.add(event)

    def __len__(self) -> int:
        return len(self._messages)

    @property
    def messages(self) -> list[TranscriptMessage]:
        with self._lock:
            return list(self._messages)

    def add(self, delta: ConfirmedDelta) -> None:
        text = delta.text.strip()
        if not text:
            return

        with self._lock:
            last = self._messages[-1] if self._messages else None
            if last is not None and last.source == delta.source:
                last.text = f"{last.text} {text}"
                if delta.end is not None:
                    last.end = delta.end
                if last.start is None:
                    last.start = delta.start
            else:
                self._messages.append(
                    TranscriptMessage(delta.source, text, delta.start, delta.end)
                )

    def text_for(self, source: AudioSource) -> str:
        """All confirmed text of one source, in order."""
        return " ".join(m.text for m in self.messages if m.source == source)

    def render(self) -> str:
        """
        Render as ``"<Source>: <text>"`` lines, the summarizer's input.

        Returns an empty string when nothing was confirmed.
        """
        return "".join(f"{m.source.label}: {m.text} \n" for m in self.messages)

    def clear(self) -> None:
        with self._lock:
            self._messages.clear()
