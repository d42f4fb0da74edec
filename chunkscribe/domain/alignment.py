"""Word/speaker alignment for transcript assembly.

Functions turn one chunk's backend result into ordered transcript lines.
The diarized merge walks word tokens and speaker segments in a single
forward pass, so a word is never attributed to two segments.
"""

import logging
from typing import Optional

from chunkscribe.domain.models import NO_SPEAKER, SpeakerSegment, TranscriptResult, WordToken

logger = logging.getLogger(__name__)

EMPTY_TRANSCRIPT_PLACEHOLDER = "[no speech detected]"


def format_hms(seconds: float) -> str:
    """Render seconds as H:MM:SS (hours unpadded, fraction floored)."""
    total = int(max(0.0, seconds))
    hours = total // 3600
    minutes = (total % 3600) // 60
    secs = total % 60
    return f"{hours}:{minutes:02d}:{secs:02d}"


def merge(
    words: list[WordToken],
    speakers: list[SpeakerSegment],
    offset: float = 0.0,
) -> list[str]:
    """Attribute word tokens to speaker segments.

    Segments are visited in start order. Words are accumulated while their
    end time fits inside the segment; the first word ending past the segment
    becomes the cursor for the next segment. Words are never revisited.

    Args:
        words: Word tokens with leading spaces as emitted by the recognizer.
        speakers: Speaker segments, NO_SPEAKER entries are skipped.
        offset: Seconds added to the rendered segment times.

    Returns:
        One "{label} (H:MM:SS → H:MM:SS): text" line per non-empty segment.
    """
    lines: list[str] = []
    cursor = 0

    for seg in sorted(speakers, key=lambda s: s.start):
        if seg.label == NO_SPEAKER:
            continue

        texts: list[str] = []
        for i in range(cursor, len(words)):
            word = words[i]
            if word.end <= seg.end:
                texts.append(word.text)
            else:
                cursor = i
                break
        else:
            cursor = len(words)

        joined = "".join(texts)
        if not joined.strip():
            continue

        lines.append(
            f"{seg.label} ({format_hms(seg.start + offset)} → {format_hms(seg.end + offset)}): {joined}"
        )

    return lines


def _format_text_segment(speaker: str, text: str, start: Optional[float], end: Optional[float], offset: float) -> str:
    if start is None or end is None:
        return f"{speaker}: {text}"
    return f"{speaker} ({format_hms(start + offset)} → {format_hms(end + offset)}): {text}"


def lines_for_result(result: TranscriptResult, offset: float = 0.0) -> list[str]:
    """Convert any backend result to transcript lines."""
    if result.skipped:
        return []

    if result.speakers:
        return merge(result.words, result.speakers, offset=offset)

    if result.segments:
        lines = []
        for seg in result.segments:
            text = seg.text.strip()
            if text:
                lines.append(_format_text_segment(seg.speaker, text, seg.start, seg.end, offset))
        return lines

    text = result.text.strip()
    return [text or EMPTY_TRANSCRIPT_PLACEHOLDER]
