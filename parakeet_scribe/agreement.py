"""Prefix agreement between successive transcriptions of a growing buffer.

Each decode re-processes the audio from roughly the last confirmed boundary
forward, so two consecutive results mostly agree on their early words and
diverge near the growing edge. Words on which two results agree are promoted
to confirmed, except for a held-back tail of ``confirmations_needed`` words
that stays open to revision until the next decode.

Everything here is pure: ``reconcile`` and ``finalize`` build a new
``AgreementState`` and leave the input untouched, so the caller can commit
the whole step at once.
"""

import math
from collections.abc import Sequence
from dataclasses import dataclass, replace

from .types import TranscriptionResult, WordTiming, join_words

TOKEN_CONFIRMATIONS_NEEDED = 2
TIMESTAMP_TOLERANCE = 0.5  # seconds


@dataclass(frozen=True)
class AgreementState:
    """Per-source reconciliation state. ``AgreementState()`` is the reset value."""

    last_buffer_sample_count: int = 0
    last_agreed_seconds: float = 0.0
    previous_result: TranscriptionResult | None = None
    previous_words: tuple[WordTiming, ...] = ()
    last_agreed_words: tuple[WordTiming, ...] = ()
    hypothesis_words: tuple[WordTiming, ...] = ()
    confirmed_words: tuple[WordTiming, ...] = ()
    confirmed_text: str = ""
    hypothesis_text: str = ""


def longest_common_prefix(
    a: Sequence[WordTiming],
    b: Sequence[WordTiming],
    tolerance: float = TIMESTAMP_TOLERANCE,
) -> list[WordTiming]:
    """Leading words of ``a`` that ``b`` repeats with the same text and close start.

    Text equality is exact. A NaN start never agrees since the comparison
    below is False for it.
    """
    i = 0
    for left, right in zip(a, b):
        if left.word != right.word or not abs(left.start - right.start) < tolerance:
            break
        i += 1
    return list(a[:i])


def longest_different_suffix(
    a: Sequence[WordTiming],
    b: Sequence[WordTiming],
    tolerance: float = TIMESTAMP_TOLERANCE,
) -> list[WordTiming]:
    """Tail of ``b`` that follows the prefix it shares with ``a``."""
    return list(b[len(longest_common_prefix(a, b, tolerance)):])


def words_from(words: Sequence[WordTiming], boundary: float) -> tuple[WordTiming, ...]:
    """Words starting at or after ``boundary``; non-finite starts are dropped."""
    return tuple(w for w in words if math.isfinite(w.start) and w.start >= boundary)


def reconcile(
    state: AgreementState,
    result: TranscriptionResult,
    confirmations_needed: int = TOKEN_CONFIRMATIONS_NEEDED,
    tolerance: float = TIMESTAMP_TOLERANCE,
) -> tuple[AgreementState, str, tuple[WordTiming, ...]]:
    """Apply one transcription result to ``state``.

    Args:
        state: State before this result.
        result: New transcription of the whole buffer.
        confirmations_needed: Agreeing words held back before confirmation.
        tolerance: Maximum start time difference for two words to agree.

    Returns:
        Tuple of (new state, newly confirmed text, newly confirmed words).
        The text is empty when nothing was confirmed by this result.
    """
    if confirmations_needed < 1:
        raise ValueError(f"confirmations_needed must be >= 1, got {confirmations_needed}")

    last_agreed_seconds = state.last_agreed_seconds
    last_agreed_words = state.last_agreed_words
    previous_words = state.previous_words
    confirmed_words = state.confirmed_words
    newly_confirmed: tuple[WordTiming, ...] = ()

    hypothesis_words = words_from(result.words, last_agreed_seconds)

    if state.previous_result is not None:
        previous_words = words_from(state.previous_result.words, last_agreed_seconds)
        common = longest_common_prefix(previous_words, hypothesis_words, tolerance)

        if len(common) >= confirmations_needed:
            last_agreed_words = tuple(common[-confirmations_needed:])
            last_agreed_seconds = last_agreed_words[0].start
            newly_confirmed = tuple(common[: len(common) - confirmations_needed])
            confirmed_words = confirmed_words + newly_confirmed

    tail = last_agreed_words + tuple(
        longest_different_suffix(previous_words, hypothesis_words, tolerance)
    )

    new_state = replace(
        state,
        last_agreed_seconds=last_agreed_seconds,
        previous_result=result,
        previous_words=previous_words,
        last_agreed_words=last_agreed_words,
        hypothesis_words=tail,
        confirmed_words=confirmed_words,
        confirmed_text=join_words(confirmed_words),
        hypothesis_text=join_words(tail),
    )
    return new_state, join_words(newly_confirmed), newly_confirmed


def finalize(state: AgreementState) -> tuple[AgreementState, str, tuple[WordTiming, ...]]:
    """Flush the pending hypothesis into the confirmed stream.

    Returns:
        Tuple of (new state, flushed text, flushed words). When there is no
        hypothesis the state is returned as is with empty text.
    """
    if not state.hypothesis_text:
        return state, "", ()

    flushed_text = state.hypothesis_text
    flushed_words = state.hypothesis_words
    new_state = replace(
        state,
        confirmed_words=state.confirmed_words + flushed_words,
        confirmed_text=state.confirmed_text + flushed_text,
        last_agreed_words=(),
        hypothesis_words=(),
        hypothesis_text="",
    )
    return new_state, flushed_text, flushed_words
