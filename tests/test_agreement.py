"""Tests for prefix agreement and the reconciliation step."""

import math
import random

import pytest

from parakeet_scribe.agreement import (
    AgreementState,
    finalize,
    longest_common_prefix,
    longest_different_suffix,
    reconcile,
)
from parakeet_scribe.types import TranscriptionResult, WordTiming


def make_word(text: str, start: float, duration: float = 0.4) -> WordTiming:
    return WordTiming(word=f" {text}", start=start, end=start + duration)


def make_result(*words: tuple[str, float]) -> TranscriptionResult:
    timings = [make_word(text, start) for text, start in words]
    return TranscriptionResult(text="".join(w.word for w in timings).strip(), words=timings)


def texts(words) -> list[str]:
    return [w.word.strip() for w in words]


class TestLongestCommonPrefix:
    """Tests for longest_common_prefix."""

    def test_words_within_tolerance_agree(self):
        """Start times 20ms apart still agree."""
        previous = [make_word("hello", 0.0), make_word("world", 0.5)]
        hypothesis = [make_word("hello", 0.0), make_word("world", 0.52), make_word("today", 1.0)]

        prefix = longest_common_prefix(previous, hypothesis)

        assert texts(prefix) == ["hello", "world"]

    def test_returns_elements_of_first_list(self):
        previous = [make_word("hello", 0.0), make_word("world", 0.5)]
        hypothesis = [make_word("hello", 0.1), make_word("world", 0.6)]

        prefix = longest_common_prefix(previous, hypothesis)

        assert prefix[1] is previous[1]

    def test_stops_at_text_mismatch(self):
        previous = [make_word("hello", 0.0), make_word("word", 0.5), make_word("today", 1.0)]
        hypothesis = [make_word("hello", 0.0), make_word("world", 0.5), make_word("today", 1.0)]

        assert texts(longest_common_prefix(previous, hypothesis)) == ["hello"]

    def test_text_comparison_is_exact(self):
        """Casing and punctuation differences break agreement."""
        previous = [make_word("Hello", 0.0)]
        hypothesis = [make_word("hello", 0.0)]

        assert longest_common_prefix(previous, hypothesis) == []

    def test_stops_when_start_differs_by_tolerance(self):
        """A difference of exactly 0.5s no longer agrees."""
        previous = [make_word("hello", 0.0), make_word("world", 1.0)]
        hypothesis = [make_word("hello", 0.0), make_word("world", 1.5)]

        assert texts(longest_common_prefix(previous, hypothesis)) == ["hello"]

    def test_custom_tolerance(self):
        previous = [make_word("hello", 0.0)]
        hypothesis = [make_word("hello", 0.2)]

        assert longest_common_prefix(previous, hypothesis, tolerance=0.1) == []

    def test_empty_inputs(self):
        words = [make_word("hello", 0.0)]
        assert longest_common_prefix([], words) == []
        assert longest_common_prefix(words, []) == []

    def test_bounded_by_shorter_list(self):
        previous = [make_word("hello", 0.0)]
        hypothesis = [make_word("hello", 0.0), make_word("world", 0.5)]

        assert texts(longest_common_prefix(previous, hypothesis)) == ["hello"]

    def test_nan_start_never_agrees(self):
        previous = [WordTiming(" hello", math.nan, 0.4)]
        hypothesis = [WordTiming(" hello", math.nan, 0.4)]

        assert longest_common_prefix(previous, hypothesis) == []


class TestLongestDifferentSuffix:
    """Tests for longest_different_suffix."""

    def test_returns_tail_after_common_prefix(self):
        previous = [make_word("hello", 0.0), make_word("world", 0.5)]
        hypothesis = [make_word("hello", 0.0), make_word("world", 0.52), make_word("today", 1.0)]

        suffix = longest_different_suffix(previous, hypothesis)

        assert len(suffix) == 1
        assert suffix[0].word == " today"
        assert suffix[0].start == 1.0

    def test_whole_list_when_nothing_agrees(self):
        hypothesis = [make_word("hi", 0.0), make_word("there", 0.5)]

        assert longest_different_suffix([], hypothesis) == hypothesis

    def test_empty_when_fully_agreed(self):
        words = [make_word("hi", 0.0)]

        assert longest_different_suffix(words, list(words)) == []


class TestReconcile:
    """Tests for one reconciliation step."""

    def test_first_result_only_sets_hypothesis(self):
        state, text, words = reconcile(AgreementState(), make_result(("testing", 0.0)))

        assert text == ""
        assert words == ()
        assert state.confirmed_words == ()
        assert state.confirmed_text == ""
        assert state.hypothesis_text == " testing"
        assert state.previous_result is not None

    def test_two_word_prefix_confirms_nothing(self):
        """With two confirmations needed, a two-word prefix is held back whole."""
        state, _, _ = reconcile(AgreementState(), make_result(("hello", 0.0), ("world", 0.5)))
        state, text, words = reconcile(
            state, make_result(("hello", 0.0), ("world", 0.5), ("today", 1.0))
        )

        assert text == ""
        assert words == ()
        assert state.confirmed_words == ()
        assert texts(state.last_agreed_words) == ["hello", "world"]
        assert state.last_agreed_seconds == 0.0
        assert state.hypothesis_text == " hello world today"

    def test_three_word_prefix_confirms_first_word(self):
        state, _, _ = reconcile(
            AgreementState(), make_result(("hello", 0.0), ("big", 0.5), ("world", 1.0))
        )
        state, text, words = reconcile(
            state, make_result(("hello", 0.0), ("big", 0.5), ("world", 1.0), ("today", 1.5))
        )

        assert text == " hello"
        assert texts(words) == ["hello"]
        assert texts(state.confirmed_words) == ["hello"]
        assert state.confirmed_text == " hello"
        assert texts(state.last_agreed_words) == ["big", "world"]
        assert state.last_agreed_seconds == 0.5
        assert state.hypothesis_text == " big world today"

    def test_below_threshold_keeps_agreement(self):
        state, _, _ = reconcile(
            AgreementState(), make_result(("a", 0.0), ("b", 0.5), ("c", 1.0))
        )
        state, _, _ = reconcile(
            state, make_result(("a", 0.0), ("b", 0.5), ("c", 1.0), ("d", 1.5))
        )
        before = (state.last_agreed_seconds, state.last_agreed_words, state.confirmed_words)

        # Only "b" agrees with the previous result past the boundary
        state, text, _ = reconcile(state, make_result(("a", 0.0), ("b", 0.5), ("x", 1.0)))

        assert text == ""
        assert (state.last_agreed_seconds, state.last_agreed_words, state.confirmed_words) == before

    def test_hypothesis_is_agreed_tail_plus_divergent_suffix(self):
        state, _, _ = reconcile(
            AgreementState(), make_result(("a", 0.0), ("b", 0.5), ("c", 1.0), ("d", 1.5))
        )
        state, _, _ = reconcile(
            state, make_result(("a", 0.0), ("b", 0.5), ("c", 1.0), ("e", 1.5), ("f", 2.0))
        )

        assert texts(state.confirmed_words) == ["a"]
        assert state.hypothesis_text == " b c e f"
        assert texts(state.hypothesis_words) == ["b", "c", "e", "f"]

    def test_words_before_boundary_are_ignored(self):
        state = AgreementState(
            last_agreed_seconds=1.0,
            previous_result=make_result(("old", 0.0), ("x", 1.0), ("y", 1.5)),
        )

        state, _, _ = reconcile(state, make_result(("new", 0.0), ("x", 1.0), ("y", 1.5)))

        assert texts(state.previous_words) == ["x", "y"]
        assert texts(state.last_agreed_words) == ["x", "y"]
        assert "old" not in state.hypothesis_text
        assert "new" not in state.hypothesis_text

    def test_nan_timestamps_are_dropped(self):
        result = TranscriptionResult(
            text="a b",
            words=[WordTiming(" a", math.nan, 0.2), make_word("b", 0.5)],
        )

        state, _, _ = reconcile(AgreementState(), result)

        assert state.hypothesis_text == " b"

    def test_input_state_is_not_mutated(self):
        initial = AgreementState()
        reconcile(initial, make_result(("hello", 0.0)))

        assert initial == AgreementState()

    def test_confirmed_text_is_rebuilt_from_words(self):
        state = AgreementState()
        for n in range(3, 7):
            words = [(f"w{i}", i * 0.5) for i in range(n)]
            state, _, _ = reconcile(state, make_result(*words))

        assert state.confirmed_text == "".join(w.word for w in state.confirmed_words)

    def test_rejects_zero_confirmations(self):
        with pytest.raises(ValueError, match="confirmations_needed"):
            reconcile(AgreementState(), make_result(("a", 0.0)), confirmations_needed=0)

    def test_confirmed_words_only_grow(self):
        """Confirmed words are never removed or altered across noisy results."""
        vocabulary = ["alpha", "beta", "gamma", "delta"]
        for seed in range(20):
            rng = random.Random(seed)
            state = AgreementState()
            confirmed: tuple[WordTiming, ...] = ()
            for step in range(1, 15):
                words = [
                    (rng.choice(vocabulary) if rng.random() < 0.2 else f"w{i}", i * 0.5 + rng.uniform(0, 0.3))
                    for i in range(step)
                ]
                state, _, _ = reconcile(state, make_result(*words))
                assert state.confirmed_words[: len(confirmed)] == confirmed
                confirmed = state.confirmed_words


class TestFinalize:
    """Tests for flushing the hypothesis."""

    def test_flushes_hypothesis(self):
        state, _, _ = reconcile(AgreementState(), make_result(("testing", 0.0)))

        state, text, words = finalize(state)

        assert text == " testing"
        assert texts(words) == ["testing"]
        assert state.confirmed_text.endswith("testing")
        assert state.hypothesis_text == ""
        assert texts(state.confirmed_words) == ["testing"]

    def test_appends_after_confirmed_text(self):
        state, _, _ = reconcile(
            AgreementState(), make_result(("a", 0.0), ("b", 0.5), ("c", 1.0))
        )
        state, _, _ = reconcile(state, make_result(("a", 0.0), ("b", 0.5), ("c", 1.0)))

        state, text, _ = finalize(state)

        assert text == " b c"
        assert state.confirmed_text == " a b c"
        assert state.last_agreed_words == ()

    def test_noop_without_hypothesis(self):
        state = AgreementState(confirmed_text=" done")

        new_state, text, words = finalize(state)

        assert new_state is state
        assert text == ""
        assert words == ()
