"""Intermediate representation dataclasses for prepared roasts.

WHY: The LLM returns one string with sound-effect markers mixed into the
prose. The on-screen highlighter, the cue firing logic and the timing
model each need a different view of it — clean text, an ordered token
list, cue points by token index, and a per-token schedule. The IR is the
single well-typed form every stage consumes.

HOW: Small frozen dataclasses form the pipeline contract:
  CueTag        — closed vocabulary of sound/visual effects
  CueMarker     — a marker found in the raw text, with its clean-text offset
  Token         — one word or a paragraph-break sentinel
  CuePoint      — token index → cue tag
  PreparedRoast — output of marker extraction, segmentation, cue location
  Timeline      — PreparedRoast plus a schedule for a known duration

RULES:
- Tokens are immutable and regenerated per roast; index is the list position
- A paragraph-break token has is_break=True and empty text
- CueMarker.offset is relative to CleanText, never to the raw text
- Timeline.schedule has exactly one start time (seconds) per token
"""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass, field
from typing import List

# Terminal punctuation, optionally followed by closing quotes or brackets.
_SENTENCE_END_RE = re.compile(r"[.!?…]+[\"'”’)\]]*$")


class CueTag(str, enum.Enum):
    """The closed set of effects a roast can trigger.

    RULES:
    - Values are the literal marker names, e.g. "[EMOTIONAL-DAMAGE]"
    - sound_file is the lower-case value with an .mp3 suffix
    """

    AIRHORN = "AIRHORN"
    OOF = "OOF"
    BRUH = "BRUH"
    EMOTIONAL_DAMAGE = "EMOTIONAL-DAMAGE"
    THUG_LIFE = "THUG-LIFE"
    WOW = "WOW"
    FATALITY = "FATALITY"

    @property
    def sound_file(self) -> str:
        return "{}.mp3".format(self.value.lower())

    @property
    def marker(self) -> str:
        return "[{}]".format(self.value)


@dataclass(frozen=True)
class CueMarker:
    """A cue marker found in RoastText.

    ``offset`` is where the marker sits in CleanText: the offset of the
    first word after it, or len(CleanText) when nothing follows.
    """

    tag: CueTag
    offset: int


@dataclass(frozen=True)
class Token:
    """One display unit: a word, or a paragraph-break sentinel.

    WHY: Highlighting, cue location and timing all index into the same
    sequence, so paragraph breaks have to occupy a slot of their own
    instead of being folded into a neighbouring word.

    RULES:
    - index is the position in the token list and stable for the roast
    - text is whitespace-free for words and "" for breaks
    - ends_sentence is derived from trailing punctuation (False for breaks)
    """

    index: int
    text: str
    is_break: bool = False

    @property
    def ends_sentence(self) -> bool:
        if self.is_break:
            return False
        return bool(_SENTENCE_END_RE.search(self.text))


@dataclass(frozen=True)
class CuePoint:
    """A cue bound to the token that triggers it."""

    token_index: int
    tag: CueTag


@dataclass
class PreparedRoast:
    """Everything derived from a RoastText before any audio exists.

    RULES:
    - cue_source is "markers" when the LLM embedded markers, else "heuristic"
    - cues are sorted by token_index
    """

    roast_text: str
    clean_text: str
    tokens: List[Token]
    markers: List[CueMarker] = field(default_factory=list)
    cues: List[CuePoint] = field(default_factory=list)
    cue_source: str = "markers"

    def cue_at(self, token_index: int) -> CueTag | None:
        for cue in self.cues:
            if cue.token_index == token_index:
                return cue.tag
        return None


@dataclass
class Timeline:
    """Tokens, cues and a per-token schedule for one audio asset.

    RULES:
    - len(schedule) == len(tokens)
    - schedule[0] == 0.0 and schedule is non-decreasing
    - schedule[-1] == duration_s for two or more tokens
    """

    tokens: List[Token]
    cues: List[CuePoint]
    schedule: List[float]
    duration_s: float
