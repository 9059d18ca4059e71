"""Timing model: per-token start times for a known playback duration.

WHY: Neither ElevenLabs' plain MP3 endpoint nor on-device speech report
word timestamps. To highlight words in step with the voice we estimate
when each word starts, weighting long words and sentence ends, and then
stretch the estimate so it lands exactly on the real duration.

HOW: Every token starts from the same base duration (total / count) and
gets independent multipliers. The adjusted durations accumulate into raw
start times, which are linearly rescaled so the last start equals the
total duration.

RULES:
- Length > 8 chars → ×1.5; length in (5, 8] → ×1.2
- Sentence-ending word → ×1.5 (combined by multiplication with length)
- Paragraph break → ×0.5
- len(schedule) == len(tokens); schedule[0] == 0.0; non-decreasing
- For two or more tokens, schedule[-1] == duration_s
- No tokens → empty schedule; a single token → [0.0]
"""

from __future__ import annotations

from typing import List

from roastmenow.core.ir import Token

LONG_WORD_CHARS = 8
MEDIUM_WORD_CHARS = 5


def token_weight(token: Token) -> float:
    """Relative speaking time of *token* compared to an average word."""
    if token.is_break:
        return 0.5
    weight = 1.0
    length = len(token.text)
    if length > LONG_WORD_CHARS:
        weight *= 1.5
    elif length > MEDIUM_WORD_CHARS:
        weight *= 1.2
    if token.ends_sentence:
        weight *= 1.5
    return weight


def build_schedule(tokens: List[Token], duration_s: float) -> List[float]:
    """Compute the start time (seconds) of every token.

    Args:
        tokens: Display tokens in reading order.
        duration_s: Total playback duration, real or estimated. Must be >= 0.

    Returns:
        One start time per token, scaled so the final start is duration_s.
    """
    if not tokens:
        return []
    if duration_s < 0:
        raise ValueError("duration_s must not be negative, got {}".format(duration_s))

    base = duration_s / len(tokens)
    raw: List[float] = []
    elapsed = 0.0
    for token in tokens:
        raw.append(elapsed)
        elapsed += base * token_weight(token)

    last = raw[-1]
    if last <= 0:
        return [0.0] * len(tokens)

    scale = duration_s / last
    schedule = [start * scale for start in raw]
    # Pin the end exactly; floating-point scaling can drift by an ulp
    schedule[-1] = duration_s
    return schedule
