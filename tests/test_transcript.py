"""Tests for transcript assembly from confirmed deltas."""

from parakeet_scribe.transcript import Transcript
from parakeet_scribe.types import AudioSource, ConfirmedDelta, HypothesisUpdate, WordTiming

MIC = AudioSource.MICROPHONE
SYSTEM = AudioSource.SYSTEM


def make_delta(source: AudioSource, text: str, start: float | None = None, end: float | None = None):
    words = ()
    if start is not None:
        words = (WordTiming(text, start, end if end is not None else start + 0.5),)
    return ConfirmedDelta(source, text, words)


class TestGrouping:
    """Consecutive deltas from one source form one message."""

    def test_same_source_extends_message(self):
        transcript = Transcript()
        transcript(make_delta(MIC, " hello there", 0.0, 0.8))
        transcript(make_delta(MIC, " general", 1.0, 1.4))

        assert len(transcript) == 1
        message = transcript.messages[0]
        assert message.text == "hello there general"
        assert message.start == 0.0
        assert message.end == 1.4

    def test_source_switch_starts_new_message(self):
        transcript = Transcript()
        transcript(make_delta(MIC, " hi"))
        transcript(make_delta(SYSTEM, " hello"))
        transcript(make_delta(MIC, " how are you"))

        assert [(m.source, m.text) for m in transcript.messages] == [
            (MIC, "hi"),
            (SYSTEM, "hello"),
            (MIC, "how are you"),
        ]

    def test_blank_deltas_are_ignored(self):
        transcript = Transcript()
        transcript(make_delta(MIC, "   "))

        assert len(transcript) == 0

    def test_hypothesis_updates_are_ignored(self):
        transcript = Transcript()
        transcript(HypothesisUpdate(MIC, "", " maybe"))

        assert transcript.messages == []

    def test_message_without_timing_gets_it_later(self):
        transcript = Transcript()
        transcript(make_delta(MIC, " first"))
        transcript(make_delta(MIC, " second", 2.0, 2.5))

        message = transcript.messages[0]
        assert message.start == 2.0
        assert message.end == 2.5
        assert message.duration == 0.5


class TestRendering:
    """Tests for text output."""

    def test_text_for_source(self):
        transcript = Transcript()
        transcript(make_delta(MIC, " one"))
        transcript(make_delta(SYSTEM, " two"))
        transcript(make_delta(MIC, " three"))

        assert transcript.text_for(MIC) == "one three"
        assert transcript.text_for(SYSTEM) == "two"

    def test_render_labels_sources(self):
        transcript = Transcript()
        transcript(make_delta(MIC, " hi"))
        transcript(make_delta(SYSTEM, " hello"))

        assert transcript.render() == "Microphone: hi \nSystem: hello \n"

    def test_render_empty(self):
        assert Transcript().render() == ""

    def test_clear(self):
        transcript = Transcript()
        transcript(make_delta(MIC, " hi"))
        transcript.clear()

        assert len(transcript) == 0
