"""Output formatters for recorded transcripts."""

import json
from datetime import datetime, timezone

from .transcript import Transcript

# Schema version for JSON output (for future compatibility)
JSON_SCHEMA_VERSION = "1.0"


def _format_timestamp_simple(seconds: float) -> str:
    """Format seconds as simple timestamp: MM:SS or HH:MM:SS for longer audio."""
    hours = int(seconds // 3600)
    minutes = int((seconds % 3600) // 60)
    secs = int(seconds % 60)
    if hours > 0:
        return f"{hours:02d}:{minutes:02d}:{secs:02d}"
    return f"{minutes:02d}:{secs:02d}"


def _round(value: float | None) -> float | None:
    return None if value is None else round(value, 3)


def format_txt(
    transcript: Transcript, timestamps: bool = False, pause_threshold: float = 2.0
) -> str:
    """
    Format a transcript as plain text.

    Args:
        transcript: Recorded transcript
        timestamps: If True, prefix each message with its start time
        pause_threshold: Insert a blank line when the gap between messages exceeds this (seconds)

    Returns:
        One ``Source: text`` line per message
    """
    lines = []
    prev_end: float | None = None

    for message in transcript.messages:
        if (
            lines
            and prev_end is not None
            and message.start is not None
            and (message.start - prev_end) > pause_threshold
        ):
            lines.append("")

        line = f"{message.source.label}: {message.text}"
        if timestamps and message.start is not None:
            line = f"[{_format_timestamp_simple(message.start)}] {line}"
        lines.append(line)

        if message.end is not None:
            prev_end = message.end

    return "\n".join(lines)


def format_json(transcript: Transcript) -> str:
    """
    Format a transcript as structured JSON.

    Message times are seconds from the start of each source's recording,
    so microphone and system times are only comparable when both captures
    started together.
    """
    data = {
        "schema_version": JSON_SCHEMA_VERSION,
        "generated_at": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        "model_id": transcript.model_id,
        "messages": [
            {
                "source": message.source.value,
                "text": message.text,
                "start": _round(message.start),
                "end": _round(message.end),
            }
            for message in transcript.messages
        ],
    }
    return json.dumps(data, indent=2, ensure_ascii=False)


# Mapping of format names to formatter functions
FORMATTERS = {
    "txt": format_txt,
    "json": format_json,
}

# File extensions for each format
EXTENSIONS = {
    "txt": ".txt",
    "json": ".json",
}
