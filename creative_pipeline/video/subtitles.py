import re
from dataclasses import dataclass
from typing import List

_SENTENCE = re.compile(r"[^.!?]+(?:[.!?]+|$)")


@dataclass(frozen=True)
class SubtitleSegment:
    start_ms: int
    end_ms: int
    text: str


def ms_to_srt_time(ms: int) -> str:
    hours, rem = divmod(ms, 3_600_000)
    minutes, rem = divmod(rem, 60_000)
    seconds, millis = divmod(rem, 1000)
    return f"{hours:02d}:{minutes:02d}:{seconds:02d},{millis:03d}"


def split_sentences(text: str) -> List[str]:
    sentences = [s.strip() for s in _SENTENCE.findall(text) if s.strip()]
    return sentences or ([text.strip()] if text.strip() else [])


def build_segments(text: str, duration_ms: int) -> List[SubtitleSegment]:
    """Spreads sentences over the audio, each getting time proportional to its length."""
    sentences = split_sentences(text)
    if not sentences or duration_ms <= 0:
        return []

    total_chars = sum(len(s) for s in sentences)
    segments = []
    current = 0
    for i, sentence in enumerate(sentences):
        if i == len(sentences) - 1:
            end = duration_ms
        else:
            end = current + round(duration_ms * len(sentence) / total_chars)
        segments.append(SubtitleSegment(current, end, sentence))
        current = end
    return segments


def render_srt(segments: List[SubtitleSegment]) -> str:
    blocks = [
        f"{i}\n{ms_to_srt_time(s.start_ms)} --> {ms_to_srt_time(s.end_ms)}\n{s.text}\n"
        for i, s in enumerate(segments, start=1)
    ]
    return "\n".join(blocks)


def write_srt(text: str, duration_seconds: float, path: str) -> str:
    with open(path, "w", encoding="utf-8") as f:
        f.write(render_srt(build_segments(text, int(duration_seconds * 1000))))
    return path
