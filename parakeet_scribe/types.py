"""Transcription result and event types.

Contains dataclasses shared between the speech engine backends, the
reconciliation engines and the transcript consumers.
"""

from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Union


class AudioSource(str, Enum):
    """Audio streams captured during a recording session."""

    MICROPHONE = "microphone"
    SYSTEM = "system"

    def __str__(self) -> str:
        return self.value

    @property
    def label(self) -> str:
        """Human-readable name used in transcripts."""
        return self.value.capitalize()


@dataclass(frozen=True)
class WordTiming:
    """One recognized word with timing information.

    ``word`` keeps the whitespace emitted by the engine, so joining
    consecutive words without a separator reproduces spaced text.
    """

    word: str
    start: float  # seconds
    end: float  # seconds
    tokens: tuple[int, ...] = ()

    @property
    def duration(self) -> float:
        return self.end - self.start


@dataclass
class TranscriptionResult:
    """Output of one speech engine call."""

    text: str
    words: list[WordTiming]
    model_id: str = ""

    @property
    def all_words(self) -> list[WordTiming]:
        return self.words

    @property
    def duration(self) -> float:
        """Duration based on the last word end time."""
        if not self.words:
            return 0.0
        return self.words[-1].end


def join_words(words) -> str:
    """Concatenate word texts without inserting separators."""
    return "".join(w.word for w in words)


@dataclass(frozen=True)
class ConfirmedDelta:
    """Text newly promoted to confirmed for one source.

    Fired once per confirmation event. ``final`` marks the flush of the
    pending hypothesis when a session stops.
    """

    source: AudioSource
    text: str
    words: tuple[WordTiming, ...] = field(default_factory=tuple)
    final: bool = False

    @property
    def start(self) -> float | None:
        return self.words[0].start if self.words else None

    @property
    def end(self) -> float | None:
        return self.words[-1].end if self.words else None


@dataclass(frozen=True)
class HypothesisUpdate:
    """Current cumulative confirmed text and volatile tail for one source."""

    source: AudioSource
    confirmed_text: str
    hypothesis_text: str


TranscriptEvent = Union[ConfirmedDelta, HypothesisUpdate]
EventListener = Callable[[TranscriptEvent], None]
