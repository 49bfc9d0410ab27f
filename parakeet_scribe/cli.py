"""CLI that replays meeting recordings through a live transcription session."""

import logging
from pathlib import Path
from typing import Annotated

import numpy as np
import typer
from rich.console import Console
from rich.live import Live
from rich.logging import RichHandler
from rich.table import Table
from rich.text import Text

from . import __version__
from .audio import SUPPORTED_EXTENSIONS, ReplayCapture, check_ffmpeg, is_supported_audio, load_audio
from .backends.base import Backend
from .backends.mlx_audio import is_mlx_audio_available
from .backends.registry import list_models, require_word_timestamps, resolve_model
from .config import SAMPLE_RATE, EngineConfig
from .formatters import EXTENSIONS, FORMATTERS, format_txt
from .session import RecordingSession
from .transcriber import DEFAULT_MODEL, Transcriber
from .transcript import Transcript
from .types import AudioSource, HypothesisUpdate, TranscriptEvent

app = typer.Typer(
    name="scribe",
    help="Replay meeting audio through live microphone/system transcription.",
    no_args_is_help=True,
)

console = Console()
err_console = Console(stderr=True)


def parse_formats(format_str: str) -> list[str]:
    """Parse comma-separated format string into list of formats."""
    formats = []
    for part in format_str.split(","):
        fmt = part.strip().lower()
        if fmt == "all":
            return list(FORMATTERS.keys())
        if fmt and fmt in FORMATTERS:
            formats.append(fmt)
        elif fmt:
            err_console.print(f"[yellow]Warning: Unknown format '{fmt}', ignoring[/yellow]")
    return formats or ["txt"]


def version_callback(value: bool) -> None:
    if value:
        console.print(f"scribe {__version__}")
        raise typer.Exit()


def list_models_callback(value: bool) -> None:
    """Print curated models and exit."""
    if value:
        mlx_audio_available = is_mlx_audio_available()
        console.print("[bold]Models:[/bold]\n")
        for model in list_models():
            live = model.capabilities.supports_word_timestamps
            usable = live and (model.backend == Backend.PARAKEET or mlx_audio_available)
            mark = "[green]✓[/green]" if usable else "[red]✗[/red]"
            console.print(f"  {mark} [cyan]{model.model_id}[/cyan]")
            console.print(f"    Backend: {model.backend}")
            if model.aliases:
                console.print(f"    Aliases: {', '.join(model.aliases)}")
            console.print(f"    {model.description}")
            if live and not usable:
                console.print(
                    "    [dim]Install with: pip install 'parakeet-scribe\\[mlx-audio]'[/dim]"
                )
            console.print()
        raise typer.Exit()


def _validate_model(model_id: str, backend: str | None) -> Backend | None:
    """Check the model can drive live reconciliation and its backend is installed.

    Returns:
        The explicit backend override, if any.

    Raises:
        typer.BadParameter: On an invalid backend, a model without word
            timestamps, or a missing mlx-audio install.
    """
    backend_enum: Backend | None = None
    if backend:
        try:
            backend_enum = Backend(backend)
        except ValueError:
            raise typer.BadParameter(
                f"Invalid backend '{backend}'. Must be one of: parakeet, mlx-audio",
                param_hint="--backend",
            )

    try:
        info = resolve_model(model_id)
    except ValueError as exc:
        if backend_enum is None:
            raise typer.BadParameter(str(exc), param_hint="--model")
        requires_mlx_audio = backend_enum == Backend.MLX_AUDIO
    else:
        try:
            require_word_timestamps(info)
        except ValueError as exc:
            raise typer.BadParameter(str(exc), param_hint="--model")
        requires_mlx_audio = (backend_enum or info.backend) == Backend.MLX_AUDIO

    if requires_mlx_audio and not is_mlx_audio_available():
        raise typer.BadParameter(
            f"Model '{model_id}' requires the mlx-audio backend which is not installed. "
            "Install with: pip install 'parakeet-scribe[mlx-audio]'",
            param_hint="--model",
        )
    return backend_enum


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


class LiveView:
    """Rich renderable of confirmed and hypothesis text per source."""

    def __init__(self, sources: list[AudioSource]):
        self.texts = {source: ("", "") for source in sources}
        self.live: Live | None = None

    def __call__(self, event: TranscriptEvent) -> None:
        if isinstance(event, HypothesisUpdate):
            self.texts[event.source] = (event.confirmed_text, event.hypothesis_text)
            if self.live is not None:
                self.live.update(self.render())

    def render(self) -> Table:
        table = Table(expand=True, show_lines=True)
        table.add_column("Source", style="bold cyan", no_wrap=True)
        table.add_column("Transcript")
        for source, (confirmed, hypothesis) in self.texts.items():
            text = Text(confirmed.strip())
            text.append(hypothesis, style="dim italic")
            table.add_row(source.label, text)
        return table


def _write_outputs(
    transcript: Transcript,
    audio_path: Path,
    formats: list[str],
    output: Path | None,
    timestamps: bool,
    verbose: bool,
) -> None:
    """Write the transcript in all requested formats."""
    out_dir = output or audio_path.parent

    for fmt in formats:
        out_file = out_dir / (audio_path.stem + EXTENSIONS[fmt])

        if fmt == "txt":
            content = format_txt(transcript, timestamps=timestamps)
        else:
            content = FORMATTERS[fmt](transcript)

        out_file.write_text(content, encoding="utf-8")

        if verbose:
            console.print(f"  [green]✓[/green] {out_file}")


def _load_captures(
    mic: Path,
    system: Path | None,
    speed: float,
) -> dict[AudioSource, ReplayCapture]:
    """Decode the input files into replay captures."""
    captures = {AudioSource.MICROPHONE: ReplayCapture(load_audio(mic, SAMPLE_RATE), speed=speed)}
    if system is not None:
        captures[AudioSource.SYSTEM] = ReplayCapture(load_audio(system, SAMPLE_RATE), speed=speed)
    return captures


def _run_session(
    session: RecordingSession,
    captures: dict[AudioSource, ReplayCapture],
    view: LiveView,
) -> None:
    """Replay every capture to the end, decode what is left, then stop."""
    with Live(view.render(), console=console, refresh_per_second=8) as live:
        view.live = live
        session.start()
        try:
            for capture in captures.values():
                while not capture.wait(timeout=0.2):
                    pass
            session.drain()
        except KeyboardInterrupt:
            err_console.print("[yellow]Interrupted, finalizing transcript...[/yellow]")
        finally:
            session.stop()
            session.close()
            live.update(view.render())


@app.command()
def main(
    mic: Annotated[
        Path,
        typer.Argument(
            help="Microphone recording to replay",
            exists=True,
            dir_okay=False,
        ),
    ],
    system: Annotated[
        Path | None,
        typer.Option(
            "--system", "-s",
            help="System audio recording to replay alongside the microphone",
            exists=True,
            dir_okay=False,
        ),
    ] = None,
    output: Annotated[
        Path | None,
        typer.Option(
            "--output", "-o",
            help="Output directory (default: same as the microphone file)",
        ),
    ] = None,
    format: Annotated[
        str,
        typer.Option(
            "--format", "-f",
            help="Output format(s): txt, json, or 'all'. Comma-separated.",
        ),
    ] = "txt",
    timestamps: Annotated[
        bool,
        typer.Option(
            "--timestamps", "-t",
            help="Include timestamps in plain text output",
        ),
    ] = False,
    model: Annotated[
        str,
        typer.Option(
            "--model", "-m",
            help="HuggingFace model ID or alias (see --list-models)",
        ),
    ] = DEFAULT_MODEL,
    backend: Annotated[
        str | None,
        typer.Option(
            "--backend", "-b",
            help="Backend: parakeet or mlx-audio (auto-detected from model by default)",
        ),
    ] = None,
    language: Annotated[
        str | None,
        typer.Option(
            "--language", "-l",
            help="Language hint for models that accept one (e.g. en, fr)",
        ),
    ] = None,
    speed: Annotated[
        float,
        typer.Option(
            "--speed",
            help="Replay speed relative to real time (0 feeds audio as fast as possible)",
        ),
    ] = 1.0,
    decode_timeout: Annotated[
        float,
        typer.Option(
            "--decode-timeout",
            help="Seconds before a stuck decode is abandoned (0 to disable)",
        ),
    ] = 30.0,
    list_models_flag: Annotated[
        bool | None,
        typer.Option(
            "--list-models",
            callback=list_models_callback,
            is_eager=True,
            help="List supported models and exit",
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose", "-v",
            help="Show debug logging",
        ),
    ] = False,
    version: Annotated[
        bool | None,
        typer.Option(
            "--version", "-V",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit",
        ),
    ] = None,
) -> None:
    """Transcribe microphone and system recordings as a live session would."""
    _configure_logging(verbose)

    for path, hint in ((mic, "MIC"), (system, "--system")):
        if path is not None and not is_supported_audio(path):
            raise typer.BadParameter(
                f"Unsupported audio file '{path}'. "
                f"Supported formats: {', '.join(sorted(SUPPORTED_EXTENSIONS))}",
                param_hint=hint,
            )

    if speed < 0:
        raise typer.BadParameter("Must be >= 0", param_hint="--speed")
    if decode_timeout < 0:
        raise typer.BadParameter("Must be >= 0", param_hint="--decode-timeout")

    formats = parse_formats(format)
    backend_enum = _validate_model(model, backend)

    if not check_ffmpeg():
        err_console.print("[red]ffmpeg not found. Install with: brew install ffmpeg[/red]")
        raise typer.Exit(1)

    if output:
        output.mkdir(parents=True, exist_ok=True)

    try:
        captures = _load_captures(mic, system, speed)
    except RuntimeError as e:
        err_console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    transcriber = Transcriber(model_id=model, backend=backend_enum, language=language)
    try:
        with console.status(f"[dim]Loading model: {transcriber.model_id}...[/dim]"):
            # Warm up on one second of silence so load errors surface here
            transcriber.transcribe(np.zeros(SAMPLE_RATE, dtype=np.float32))
    except Exception as e:
        err_console.print(f"[red]Error loading model {transcriber.model_id}: {e}[/red]")
        raise typer.Exit(1)

    config = EngineConfig(decode_timeout=decode_timeout or None)
    session = RecordingSession.create(captures, transcriber, config)
    transcript = Transcript(model_id=transcriber.model_id)
    view = LiveView(session.sources)
    session.add_listener(transcript)
    session.add_listener(view)

    _run_session(session, captures, view)

    if not len(transcript):
        err_console.print("[yellow]No speech was transcribed.[/yellow]")
        raise typer.Exit(1)

    _write_outputs(transcript, mic, formats, output, timestamps, verbose)
    console.print(
        f"[bold green]✓ {len(transcript)} message(s) transcribed[/bold green]"
    )


if __name__ == "__main__":
    app()
