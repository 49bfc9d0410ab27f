"""Tests for the scribe command line interface."""

import json
from unittest.mock import patch

import numpy as np
import pytest
import typer
from typer.testing import CliRunner

from parakeet_scribe import __version__
from parakeet_scribe.backends.base import Backend
from parakeet_scribe.cli import LiveView, _validate_model, app, parse_formats
from parakeet_scribe.types import AudioSource, HypothesisUpdate, TranscriptionResult, WordTiming

runner = CliRunner()


class FakeTranscriber:
    """Stands in for Transcriber without loading a model."""

    def __init__(self, model_id="mlx-community/parakeet-tdt-0.6b-v3", backend=None, language=None):
        self.model_id = model_id
        self.calls = 0

    def transcribe(self, samples, clip_start=0.0):
        self.calls += 1
        if len(samples) <= 16000:
            return TranscriptionResult(text="", words=[])
        words = [WordTiming(" hello", 0.0, 0.4), WordTiming(" world", 0.5, 0.9)]
        return TranscriptionResult(text="hello world", words=words)


class TestParseFormats:
    """Tests for parse_formats."""

    def test_default(self):
        assert parse_formats("") == ["txt"]

    def test_multiple(self):
        assert parse_formats("txt, JSON") == ["txt", "json"]

    def test_all(self):
        assert set(parse_formats("all")) == {"txt", "json"}

    def test_unknown_is_ignored(self):
        assert parse_formats("srt,json") == ["json"]


class TestValidateModel:
    """Tests for model and backend validation."""

    def test_default_model(self):
        assert _validate_model("parakeet", None) is None

    def test_text_only_model_rejected(self):
        with pytest.raises(typer.BadParameter, match="word timestamps"):
            _validate_model("voxtral", None)

    def test_invalid_backend(self):
        with pytest.raises(typer.BadParameter, match="Invalid backend"):
            _validate_model("parakeet", "torch")

    def test_unknown_model_without_backend(self):
        with pytest.raises(typer.BadParameter, match="Unknown model"):
            _validate_model("someone/custom", None)

    def test_unknown_model_with_backend(self):
        assert _validate_model("someone/custom", "parakeet") == Backend.PARAKEET

    def test_missing_mlx_audio(self):
        with patch("parakeet_scribe.cli.is_mlx_audio_available", return_value=False):
            with pytest.raises(typer.BadParameter, match="mlx-audio"):
                _validate_model("whisper", None)


class TestLiveView:
    """Tests for the live table renderable."""

    def test_tracks_latest_hypothesis_per_source(self):
        view = LiveView([AudioSource.MICROPHONE, AudioSource.SYSTEM])

        view(HypothesisUpdate(AudioSource.SYSTEM, " so far", " maybe"))

        assert view.texts[AudioSource.SYSTEM] == (" so far", " maybe")
        assert view.texts[AudioSource.MICROPHONE] == ("", "")
        assert view.render().row_count == 2


class TestCommand:
    """Tests for invoking the scribe command."""

    def test_version(self):
        result = runner.invoke(app, ["--version"])

        assert result.exit_code == 0
        assert __version__ in result.output

    def test_list_models(self):
        result = runner.invoke(app, ["--list-models"])

        assert result.exit_code == 0
        assert "parakeet-tdt-0.6b-v3" in result.output
        assert "Aliases" in result.output

    def test_rejects_unsupported_file(self, tmp_path):
        notes = tmp_path / "notes.txt"
        notes.write_text("not audio")

        result = runner.invoke(app, [str(notes)])

        assert result.exit_code != 0

    def test_missing_ffmpeg(self, tmp_path):
        mic = tmp_path / "mic.wav"
        mic.write_bytes(b"RIFF")

        with patch("parakeet_scribe.cli.check_ffmpeg", return_value=False):
            result = runner.invoke(app, [str(mic)])

        assert result.exit_code == 1

    def test_transcribes_recording(self, tmp_path):
        mic = tmp_path / "mic.wav"
        mic.write_bytes(b"RIFF")
        out_dir = tmp_path / "out"

        with patch("parakeet_scribe.cli.check_ffmpeg", return_value=True), \
                patch(
                    "parakeet_scribe.cli.load_audio",
                    return_value=np.zeros(16000 * 2, dtype=np.float32),
                ), \
                patch("parakeet_scribe.cli.Transcriber", FakeTranscriber):
            result = runner.invoke(
                app, [str(mic), "--speed", "0", "-f", "all", "-o", str(out_dir)]
            )

        assert result.exit_code == 0, result.output
        assert (out_dir / "mic.txt").read_text() == "Microphone: hello world"
        data = json.loads((out_dir / "mic.json").read_text())
        assert data["messages"][0]["source"] == "microphone"
        assert data["messages"][0]["text"] == "hello world"
