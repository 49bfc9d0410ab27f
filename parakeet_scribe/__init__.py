"""Live meeting transcription with incremental prefix agreement."""

__version__ = "0.1.0"

from .agreement import (
    AgreementState,
    finalize,
    longest_common_prefix,
    longest_different_suffix,
    reconcile,
)
from .audio import AudioBuffer, ReplayCapture
from .config import DEFAULT_CONFIG, EngineConfig
from .engine import ReconciliationEngine
from .session import RecordingSession, SessionState
from .transcript import Transcript, TranscriptMessage
from .types import (
    AudioSource,
    ConfirmedDelta,
    HypothesisUpdate,
    TranscriptionResult,
    WordTiming,
)

__all__ = [
    "AgreementState",
    "AudioBuffer",
    "AudioSource",
    "ConfirmedDelta",
    "DEFAULT_CONFIG",
    "EngineConfig",
    "HypothesisUpdate",
    "ReconciliationEngine",
    "RecordingSession",
    "ReplayCapture",
    "SessionState",
    "Transcript",
    "TranscriptMessage",
    "TranscriptionResult",
    "WordTiming",
    "finalize",
    "longest_common_prefix",
    "longest_different_suffix",
    "reconcile",
]
