"""Roast preparation pipeline: RoastText → PreparedRoast → Timeline.

WHY: Marker extraction, segmentation and cue location always run
together and in that order; the timing model runs later, once a duration
is known (real audio or an estimate). Callers should not have to know the
ordering rules.

HOW: prepare_roast() runs extraction, segmentation and cue location,
falling back to the keyword heuristic when the text has no markers.
build_timeline() adds the schedule for a duration.

RULES:
- Normalization completes before anything is sent to speech synthesis
- cue_source is "markers" when at least one marker was found, otherwise
  "heuristic"
- build_timeline() on an empty token list returns an empty schedule; the
  playback scheduler refuses to start on it
- Tokens the speech never reaches are scheduled at the end of playback
"""

from __future__ import annotations

import logging
import random
from typing import Optional

from roastmenow.config import HEURISTIC_MAX_CUES, HEURISTIC_WINDOW_WORDS
from roastmenow.core.cues import locate_cues, synthesize_cues
from roastmenow.core.ir import PreparedRoast, Timeline
from roastmenow.core.markers import extract_markers
from roastmenow.core.segmenter import segment_words
from roastmenow.core.speech_text import spoken_token_count
from roastmenow.core.timing import build_schedule

logger = logging.getLogger(__name__)


def prepare_roast(
    roast_text: str,
    rng: Optional[random.Random] = None,
    window: int = HEURISTIC_WINDOW_WORDS,
    max_cues: int = HEURISTIC_MAX_CUES,
) -> PreparedRoast:
    """Turn raw LLM output into clean text, tokens and cue points."""
    clean_text, markers = extract_markers(roast_text)
    tokens = segment_words(clean_text)

    if markers:
        cues = locate_cues(markers, tokens)
        cue_source = "markers"
    else:
        cues = synthesize_cues(tokens, rng=rng, window=window, max_cues=max_cues)
        cue_source = "heuristic"

    logger.debug(
        "Prepared roast: %d tokens, %d markers, %d cues (%s)",
        len(tokens), len(markers), len(cues), cue_source,
    )
    return PreparedRoast(
        roast_text=roast_text,
        clean_text=clean_text,
        tokens=tokens,
        markers=markers,
        cues=cues,
        cue_source=cue_source,
    )


def build_timeline(
    prepared: PreparedRoast,
    duration_s: float,
    spoken_text: Optional[str] = None,
) -> Timeline:
    """Schedule *prepared* against a playback duration in seconds.

    With *spoken_text*, only the tokens the speech reaches share the
    duration; tokens past the end of the speech start at duration_s.
    """
    tokens = prepared.tokens
    spoken = len(tokens)
    if spoken_text is not None:
        spoken = spoken_token_count(tokens, spoken_text)
        if spoken < len(tokens):
            logger.info("Speech covers %d of %d tokens", spoken, len(tokens))

    schedule = build_schedule(tokens[:spoken], duration_s)
    schedule.extend([float(duration_s)] * (len(tokens) - spoken))
    return Timeline(
        tokens=list(tokens),
        cues=list(prepared.cues),
        schedule=schedule,
        duration_s=duration_s,
    )
