"""Output formatters for transcription outcomes."""

import json
import re
from datetime import datetime, timezone
from pathlib import Path

from .types import TranscriptionOutcome

# Schema version for JSON output (for future compatibility)
JSON_SCHEMA_VERSION = "1.0"

EMPTY_TRANSCRIPT_NOTICE = (
    "Não foi possível extrair texto do áudio. "
    "Verifique se o ficheiro de áudio é válido e tente novamente."
)

_HEADING_MARKUP = re.compile(r"^#{1,6}\s+", re.MULTILINE)
_EMPHASIS_MARKUP = re.compile(r"\*{1,2}([^*\n]+?)\*{1,2}")


def _format_timestamp_srt(seconds: float) -> str:
    """Format seconds as SRT timestamp: HH:MM:SS,mmm (comma for milliseconds)."""
    total_millis = int(round(max(seconds, 0.0) * 1000))
    hours, rest = divmod(total_millis, 3_600_000)
    minutes, rest = divmod(rest, 60_000)
    secs, millis = divmod(rest, 1000)
    return f"{hours:02d}:{minutes:02d}:{secs:02d},{millis:03d}"


def _format_duration(seconds: float) -> str:
    """Format a duration as M:SS, or H:MM:SS for longer audio."""
    total = int(round(seconds))
    hours, rest = divmod(total, 3600)
    minutes, secs = divmod(rest, 60)
    if hours > 0:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


def title_for(outcome: TranscriptionOutcome) -> str:
    """Document title derived from the source file name."""
    name = Path(outcome.source).stem
    return name if name and not name.startswith("<") else "Transcrição"


def strip_markup(markup: str) -> str:
    """Remove heading and emphasis markup, keeping list bullets and quotes."""
    text = _HEADING_MARKUP.sub("", markup)
    return _EMPHASIS_MARKUP.sub(r"\1", text)


def _info_lines(outcome: TranscriptionOutcome) -> list[tuple[str, str]]:
    transcript = outcome.transcript
    info = [
        ("Duração", _format_duration(outcome.duration_seconds)),
        ("Palavras", str(transcript.word_count)),
        ("Qualidade", f"{outcome.document.confidence_score * 100:.0f}%"),
        ("Modelo", outcome.model_id or "desconhecido"),
    ]
    if transcript.segments_failed:
        info.append(
            ("Partes em falta", f"{transcript.segments_failed} de {transcript.total_segments}")
        )
    return info


def format_txt(outcome: TranscriptionOutcome) -> str:
    """
    Format an outcome as plain text.

    Returns:
        Title, information block and the transcript without markup
    """
    title = title_for(outcome)
    lines = [title, "=" * len(title), "", "INFORMAÇÕES DA TRANSCRIÇÃO", "-" * 26]
    lines.extend(f"{label}: {value}" for label, value in _info_lines(outcome))
    lines.extend(["", "TRANSCRIÇÃO", "-" * 11, ""])

    body = strip_markup(outcome.document.markup_text).strip()
    lines.append(body or EMPTY_TRANSCRIPT_NOTICE)
    return "\n".join(lines) + "\n"


def format_markdown(outcome: TranscriptionOutcome) -> str:
    """
    Format an outcome as a Markdown document.

    The structured body is nested under a level-2 section, so its own
    headings are shifted down one level.
    """
    lines = [f"# {title_for(outcome)}", "", "## Informações da Transcrição", ""]
    for label, value in _info_lines(outcome):
        lines.extend([f"**{label}:** {value}", ""])
    lines.extend(["---", "", "## Transcrição", ""])

    body = outcome.document.markup_text.strip()
    if body:
        lines.append(re.sub(r"^(#{1,5}) ", r"#\1 ", body, flags=re.MULTILINE))
    else:
        lines.append(f"*{EMPTY_TRANSCRIPT_NOTICE}*")
    return "\n".join(lines) + "\n"


def format_srt(outcome: TranscriptionOutcome) -> str:
    """
    Format an outcome as SRT (SubRip) subtitles.

    Uses one cue per timed phrase when the backend reported timings,
    otherwise one cue per contributing segment.

    Returns:
        SRT formatted string
    """
    cues: list[tuple[float, float, str]] = []
    for piece in outcome.transcript.pieces:
        if piece.timed_phrases:
            cues.extend((p.offset_seconds, p.end_seconds, p.text) for p in piece.timed_phrases)
        elif piece.text:
            cues.append(
                (piece.start_offset_seconds, piece.start_offset_seconds + piece.duration_seconds, piece.text)
            )

    lines = []
    for i, (start, end, text) in enumerate(cues, start=1):
        lines.append(str(i))
        lines.append(f"{_format_timestamp_srt(start)} --> {_format_timestamp_srt(end)}")
        lines.append(text)
        lines.append("")  # Blank line between cues
    return "\n".join(lines)


def format_json(outcome: TranscriptionOutcome) -> str:
    """
    Format an outcome as structured JSON.

    Returns:
        JSON formatted string with full metadata
    """
    transcript = outcome.transcript
    document = outcome.document
    data = {
        "schema_version": JSON_SCHEMA_VERSION,
        "generated_at": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        "source": outcome.source,
        "model_id": outcome.model_id,
        "language_hint": outcome.language_hint,
        "dialect": outcome.dialect,
        "duration_seconds": round(outcome.duration_seconds, 3),
        "text": transcript.text,
        "markup": document.markup_text,
        "word_count": transcript.word_count,
        "confidence_score": document.confidence_score,
        "structure": {
            "paragraphs": document.structure.paragraphs,
            "headings": document.structure.headings,
            "lists": document.structure.lists,
            "quotes": document.structure.quotes,
        },
        "segments_used": transcript.segments_used,
        "segments_failed": transcript.segments_failed,
        "segments": [
            {
                "index": piece.segment_index,
                "start": round(piece.start_offset_seconds, 3),
                "duration": round(piece.duration_seconds, 3),
                "text": piece.text,
                "phrases": [
                    {
                        "text": p.text,
                        "start": round(p.offset_seconds, 3),
                        "end": round(p.end_seconds, 3),
                    }
                    for p in piece.timed_phrases
                ],
            }
            for piece in transcript.pieces
        ],
        "failures": [
            {
                "index": r.segment_index,
                "start": round(r.start_offset_seconds, 3),
                "duration": round(r.duration_seconds, 3),
                "error": r.error_message,
            }
            for r in transcript.failures
        ],
    }
    return json.dumps(data, indent=2, ensure_ascii=False)


# Mapping of format names to formatter functions
FORMATTERS = {
    "txt": format_txt,
    "md": format_markdown,
    "srt": format_srt,
    "json": format_json,
}

# File extensions for each format
EXTENSIONS = {
    "txt": ".txt",
    "md": ".md",
    "srt": ".srt",
    "json": ".json",
}
